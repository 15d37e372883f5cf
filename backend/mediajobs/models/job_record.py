"""MediaJob ORM model: persisted resumption state for a reconciled job."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mediajobs.database import Base
from mediajobs.models.job import Job, JobStatus, MediaOutput, WaitingStrategy


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything we store is UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class MediaJobRecord(Base):
    """One row per job, keyed by job_id, looked up by provider_job_id for webhooks."""

    __tablename__ = "media_jobs"
    __table_args__ = {
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    job_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    provider: Mapped[str] = mapped_column(String(64), nullable=False)
    model_id: Mapped[str] = mapped_column(String(255), nullable=False)
    provider_job_id: Mapped[Optional[str]] = mapped_column(
        String(512), nullable=True, index=True
    )
    waiting_strategy: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=JobStatus.SUBMITTED.value, index=True
    )

    # Polling bookkeeping
    poll_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_poll_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    # Results
    outputs: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    job_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    raw_options: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @classmethod
    def from_job(cls, job: Job) -> MediaJobRecord:
        return cls(**cls.values_from_job(job))

    @staticmethod
    def values_from_job(job: Job) -> dict[str, Any]:
        """Column values for ``job`` keyed by mapped attribute name."""
        return dict(
            job_id=job.job_id,
            provider=job.provider,
            model_id=job.model_id,
            provider_job_id=job.provider_job_id,
            waiting_strategy=job.waiting_strategy.value,
            status=job.status.value,
            poll_attempts=job.poll_attempts,
            next_poll_at=job.next_poll_at,
            outputs=[o.to_dict() for o in job.outputs],
            error=job.error,
            job_metadata=dict(job.metadata),
            raw_options=dict(job.raw_options),
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
        )

    def to_job(self) -> Job:
        return Job(
            job_id=self.job_id,
            provider=self.provider,
            model_id=self.model_id,
            provider_job_id=self.provider_job_id,
            waiting_strategy=WaitingStrategy(self.waiting_strategy),
            status=JobStatus(self.status),
            poll_attempts=self.poll_attempts or 0,
            next_poll_at=_as_utc(self.next_poll_at),
            outputs=[MediaOutput.from_dict(o) for o in (self.outputs or [])],
            error=self.error,
            metadata=dict(self.job_metadata or {}),
            raw_options=dict(self.raw_options or {}),
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
            completed_at=_as_utc(self.completed_at),
        )
