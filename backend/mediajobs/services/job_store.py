"""Job persistence.

The reconciler only needs read-modify-write by job id plus two lookups: by
provider job id (webhooks) and by due time (the polling worker). Saving an
equivalent state twice is harmless in both implementations.

Every change to an existing job goes through ``save_if_active``: the write
lands only while the stored job is still non-terminal, whichever process
makes it.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediajobs.models.job import Job, JobStatus, WaitingStrategy, utcnow
from mediajobs.models.job_record import MediaJobRecord

logger = logging.getLogger(__name__)

_ACTIVE = (JobStatus.SUBMITTED.value, JobStatus.PROCESSING.value)


class JobStore(Protocol):
    async def load(self, job_id: str) -> Job | None: ...

    async def save(self, job: Job) -> None: ...

    async def save_if_active(self, job: Job) -> bool: ...

    async def find_by_provider_job_id(
        self, provider: str | None, provider_job_id: str
    ) -> Job | None: ...

    async def list_due(self, now: datetime | None = None, limit: int = 100) -> list[Job]: ...


class InMemoryJobStore:
    """Dict-backed store for tests and single-process use.

    Jobs are copied in and out so callers never share mutable state with
    the store.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}

    async def load(self, job_id: str) -> Job | None:
        job = self._jobs.get(job_id)
        return copy.deepcopy(job) if job else None

    async def save(self, job: Job) -> None:
        self._jobs[job.job_id] = copy.deepcopy(job)

    async def save_if_active(self, job: Job) -> bool:
        stored = self._jobs.get(job.job_id)
        if stored is None or stored.is_terminal:
            return False
        self._jobs[job.job_id] = copy.deepcopy(job)
        return True

    async def find_by_provider_job_id(
        self, provider: str | None, provider_job_id: str
    ) -> Job | None:
        for job in self._jobs.values():
            if job.provider_job_id != provider_job_id:
                continue
            if provider is None or job.provider == provider:
                return copy.deepcopy(job)
        return None

    async def list_due(self, now: datetime | None = None, limit: int = 100) -> list[Job]:
        now = now or utcnow()
        due = [
            job for job in self._jobs.values()
            if job.waiting_strategy is WaitingStrategy.POLLING
            and not job.is_terminal
            and job.next_poll_at is not None
            and job.next_poll_at <= now
        ]
        due.sort(key=lambda j: j.next_poll_at)
        return [copy.deepcopy(job) for job in due[:limit]]


class SqlAlchemyJobStore:
    """Async SQLAlchemy store over the ``media_jobs`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self, job_id: str) -> Job | None:
        async with self._session_factory() as session:
            record = await session.get(MediaJobRecord, job_id)
            return record.to_job() if record else None

    async def save(self, job: Job) -> None:
        async with self._session_factory() as session:
            await session.merge(MediaJobRecord.from_job(job))
            await session.commit()

    async def save_if_active(self, job: Job) -> bool:
        values = {
            getattr(MediaJobRecord, name): value
            for name, value in MediaJobRecord.values_from_job(job).items()
            if name != "job_id"
        }
        stmt = (
            update(MediaJobRecord)
            .where(
                MediaJobRecord.job_id == job.job_id,
                MediaJobRecord.status.in_(_ACTIVE),
            )
            .values(values)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount == 1

    async def find_by_provider_job_id(
        self, provider: str | None, provider_job_id: str
    ) -> Job | None:
        query = select(MediaJobRecord).where(
            MediaJobRecord.provider_job_id == provider_job_id
        )
        if provider is not None:
            query = query.where(MediaJobRecord.provider == provider)
        async with self._session_factory() as session:
            result = await session.execute(query.limit(1))
            record = result.scalar_one_or_none()
            return record.to_job() if record else None

    async def list_due(self, now: datetime | None = None, limit: int = 100) -> list[Job]:
        now = now or utcnow()
        query = (
            select(MediaJobRecord)
            .where(
                MediaJobRecord.waiting_strategy == WaitingStrategy.POLLING.value,
                MediaJobRecord.status.in_(_ACTIVE),
                MediaJobRecord.next_poll_at.is_not(None),
                MediaJobRecord.next_poll_at <= now,
            )
            .order_by(MediaJobRecord.next_poll_at)
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(query)
            jobs = [record.to_job() for record in result.scalars().all()]
        logger.debug("Found %d due polling jobs", len(jobs))
        return jobs
