"""Job lifecycle reconciler.

Owns every Job state transition::

    submitted -> processing -> completed | failed

Webhook deliveries and poll ticks are two triggers for the same transition
function. Within a process, transitions for one job are serialized by a
per-job lock. Across processes (API webhooks and cancels against Celery poll
workers) every write is conditional on the stored job still being active, and
a losing writer reloads the stored state instead. Terminal states absorb every
later signal.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable

from mediajobs.exceptions import PollingTimeout, UnknownJob, UnsupportedStrategy
from mediajobs.models.job import Job, JobStatus, WaitingStrategy, utcnow
from mediajobs.schemas.unified import UnifiedOptions
from mediajobs.services.job_store import JobStore
from mediajobs.services.model_registry import ModelDescriptor, ModelRegistry
from mediajobs.services.param_mapping import to_provider_options
from mediajobs.services.polling import (
    FetchStatusFn,
    IntervalPolicy,
    PollingScheduler,
    ProgressCallback,
)
from mediajobs.services.result_parsers import NormalizedOutcome, parse
from mediajobs.services.strategy import select_strategy

logger = logging.getLogger(__name__)

SubmitFn = Callable[[str, str, dict[str, Any], str | None], Awaitable[str]]
TransitionCallback = Callable[[Job], Awaitable[Any]]
WebhookUrlFactory = Callable[[Job], str | None]


class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class JobReconciler:
    """Submits jobs and folds webhook / poll outcomes into persisted Job state."""

    def __init__(
        self,
        registry: ModelRegistry,
        store: JobStore,
        submit_fn: SubmitFn,
        fetch_status: FetchStatusFn,
        *,
        interval_policy: IntervalPolicy | None = None,
        max_poll_attempts: int = 100,
        webhook_url_factory: WebhookUrlFactory | None = None,
        on_transition: TransitionCallback | None = None,
        on_progress: ProgressCallback | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be at least 1")
        self._registry = registry
        self._store = store
        self._submit = submit_fn
        self._scheduler = PollingScheduler(
            fetch_status, registry, interval_policy, on_progress=on_progress,
        )
        self._max_poll_attempts = max_poll_attempts
        self._webhook_url_factory = webhook_url_factory
        self._on_transition = on_transition
        self._clock = clock
        self._locks = KeyedLocks()

    @property
    def scheduler(self) -> PollingScheduler:
        return self._scheduler

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_job(self, job_id: str) -> Job:
        job = await self._store.load(job_id)
        if job is None:
            raise UnknownJob(job_id)
        return job

    def list_models(self, provider: str | None = None) -> list[ModelDescriptor]:
        return self._registry.list_models(provider)

    async def due_jobs(self, now: datetime | None = None, limit: int = 100) -> list[Job]:
        """Polling jobs whose next poll time has passed."""
        return await self._store.list_due(now or self._clock(), limit)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        unified: UnifiedOptions | dict[str, Any],
        provider: str,
        model_id: str,
        job_id: str | None = None,
        preference: WaitingStrategy | str | None = None,
        webhook_url: str | None = None,
    ) -> Job:
        """Map, validate, and submit a job to its provider.

        Mapping, validation and strategy errors propagate and create no job.
        A provider rejection is persisted as a ``failed`` job. Resubmitting an
        existing ``job_id`` returns the stored job untouched.
        """
        desc = self._registry.lookup(provider, model_id)
        raw = to_provider_options(provider, model_id, unified)
        raw = self._registry.validate(provider, model_id, raw)
        strategy = select_strategy(desc.capabilities, preference)
        job_id = job_id or uuid.uuid4().hex

        async with self._locks.hold(job_id):
            existing = await self._store.load(job_id)
            if existing is not None:
                logger.info("Job %s already submitted, returning existing state", job_id)
                return existing

            now = self._clock()
            job = Job(
                job_id=job_id,
                provider=provider,
                model_id=model_id,
                waiting_strategy=strategy,
                raw_options=raw,
                metadata={"media_type": desc.media_type.value},
                created_at=now,
                updated_at=now,
            )

            if job.waiting_strategy is WaitingStrategy.WEBHOOK:
                webhook_url = webhook_url or self._build_webhook_url(job)
                if not webhook_url:
                    if not desc.capabilities.supports_polling:
                        raise UnsupportedStrategy(
                            f"No webhook URL available for {provider}/{model_id}"
                        )
                    logger.warning(
                        "No webhook URL for job %s (%s/%s), falling back to polling",
                        job_id, provider, model_id,
                    )
                    job.waiting_strategy = WaitingStrategy.POLLING
            else:
                webhook_url = None

            try:
                provider_job_id = await self._submit(provider, model_id, raw, webhook_url)
            except Exception as e:
                logger.error("Submission of job %s to %s/%s failed: %s", job_id, provider, model_id, e)
                job.status = JobStatus.FAILED
                job.error = str(e) or e.__class__.__name__
                job.completed_at = now
                await self._store.save(job)
                await self._notify(job)
                return job

            job.provider_job_id = provider_job_id
            if job.waiting_strategy is WaitingStrategy.POLLING:
                job.next_poll_at = self._scheduler.next_poll_at(0, now)
            await self._store.save(job)

        logger.info(
            "Submitted job %s to %s/%s as %s (%s)",
            job_id, provider, model_id, provider_job_id, job.waiting_strategy.value,
        )
        await self._notify(job)
        return job

    def _build_webhook_url(self, job: Job) -> str | None:
        if self._webhook_url_factory is None:
            return None
        return self._webhook_url_factory(job)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    async def on_webhook(
        self,
        provider_job_id: str,
        payload: Any,
        provider: str | None = None,
    ) -> Job:
        """Apply a webhook body delivered for ``provider_job_id``.

        ``provider_job_id`` must be the id stored at submission. For fal that
        is the composite ``model_id::request_id``; fal's own callback body only
        carries ``request_id``, so fal deliveries should arrive through the
        per-job URL (``on_job_webhook``) or be passed the composite id.
        """
        job = await self._store.find_by_provider_job_id(provider, provider_job_id)
        if job is None:
            raise UnknownJob(provider_job_id)
        return await self.on_job_webhook(job.job_id, payload)

    async def on_job_webhook(self, job_id: str, payload: Any) -> Job:
        """Apply a webhook body delivered to the per-job callback URL."""
        async with self._locks.hold(job_id):
            job = await self.get_job(job_id)
            outcome = parse(job.provider, payload, self._media_type(job))
            return await self._apply(job, outcome, source="webhook")

    async def on_poll_tick(self, job_or_id: Job | str) -> Job:
        """Run one poll cycle for a polling job.

        A fetch error still counts as an attempt. Reaching the attempt limit
        without a terminal outcome fails the job with PollingTimeout.
        """
        job_id = job_or_id.job_id if isinstance(job_or_id, Job) else job_or_id
        async with self._locks.hold(job_id):
            job = await self.get_job(job_id)
            if job.is_terminal or job.waiting_strategy is not WaitingStrategy.POLLING:
                logger.debug("Skipping poll for job %s (%s, %s)",
                             job_id, job.status.value, job.waiting_strategy.value)
                return job

            now = self._clock()
            outcome: NormalizedOutcome | None = None
            try:
                outcome = await self._scheduler.poll(job)
            except Exception as e:
                logger.warning("Poll of job %s failed: %s", job_id, e)
                job.metadata["last_poll_error"] = str(e) or e.__class__.__name__
            job.poll_attempts += 1

            if outcome is not None and outcome.is_terminal:
                return await self._apply(job, outcome, source="poll")

            if job.poll_attempts >= self._max_poll_attempts:
                timeout = PollingTimeout(self._max_poll_attempts)
                return await self._apply(job, NormalizedOutcome.failed(str(timeout)), source="poll")

            changed = False
            if outcome is not None:
                job.metadata.update(outcome.metadata)
                if job.status is JobStatus.SUBMITTED:
                    job.status = JobStatus.PROCESSING
                    changed = True
            job.next_poll_at = self._scheduler.next_poll_at(job.poll_attempts, now)
            job.updated_at = now
            if not await self._store.save_if_active(job):
                return await self._finished_elsewhere(job_id, "poll")

        logger.debug("Job %s still processing after %d polls", job_id, job.poll_attempts)
        if changed:
            await self._notify(job)
        return job

    async def cancel(self, job_id: str) -> Job:
        """Fail a non-terminal job with ``cancelled`` and stop its polling."""
        async with self._locks.hold(job_id):
            job = await self.get_job(job_id)
            if job.is_terminal:
                logger.debug("Cancel ignored for terminal job %s", job_id)
                return job
            now = self._clock()
            job.status = JobStatus.FAILED
            job.error = "cancelled"
            job.next_poll_at = None
            job.completed_at = now
            job.updated_at = now
            if not await self._store.save_if_active(job):
                return await self._finished_elsewhere(job_id, "cancel")
        logger.info("Cancelled job %s", job_id)
        await self._notify(job)
        return job

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _media_type(self, job: Job) -> str:
        media_type = job.metadata.get("media_type")
        if media_type:
            return media_type
        return self._registry.lookup(job.provider, job.model_id).media_type.value

    async def _apply(self, job: Job, outcome: NormalizedOutcome, source: str) -> Job:
        """Fold one normalized outcome into ``job``. Caller holds the job lock."""
        if job.is_terminal:
            if not outcome.is_terminal:
                logger.debug("Ignoring late %s signal for terminal job %s", source, job.job_id)
            elif _same_terminal(job, outcome):
                logger.debug("Duplicate terminal %s signal for job %s", source, job.job_id)
            else:
                logger.warning(
                    "Discarding %s %s signal for job %s already %s",
                    source, outcome.status.value, job.job_id, job.status.value,
                )
            return job

        now = self._clock()
        if not outcome.is_terminal:
            if job.status is not JobStatus.SUBMITTED:
                return job
            job.status = JobStatus.PROCESSING
            job.metadata.update(outcome.metadata)
            job.updated_at = now
            if not await self._store.save_if_active(job):
                return await self._finished_elsewhere(job.job_id, source, outcome)
            await self._notify(job)
            return job

        job.status = outcome.status
        job.outputs = list(outcome.outputs)
        job.error = outcome.error
        job.metadata.update(outcome.metadata)
        job.next_poll_at = None
        job.completed_at = now
        job.updated_at = now
        if not await self._store.save_if_active(job):
            return await self._finished_elsewhere(job.job_id, source, outcome)

        if job.status is JobStatus.COMPLETED:
            logger.info("Job %s completed via %s with %d output(s)",
                        job.job_id, source, len(job.outputs))
        else:
            logger.info("Job %s failed via %s: %s", job.job_id, source, job.error)
        await self._notify(job)
        return job

    async def _finished_elsewhere(
        self,
        job_id: str,
        source: str,
        outcome: NormalizedOutcome | None = None,
    ) -> Job:
        """Reload a job whose conditional write lost to another process."""
        stored = await self.get_job(job_id)
        logger.info(
            "Job %s became %s in another process, dropping %s update",
            job_id, stored.status.value, source,
        )
        if outcome is not None and stored.is_terminal:
            return await self._apply(stored, outcome, source)
        return stored

    async def _notify(self, job: Job) -> None:
        if self._on_transition is None:
            return
        try:
            await self._on_transition(job)
        except Exception as e:
            logger.warning("Transition observer failed for job %s: %s", job.job_id, e)


def _same_terminal(job: Job, outcome: NormalizedOutcome) -> bool:
    return (
        job.status is outcome.status
        and job.error == outcome.error
        and tuple(job.outputs) == outcome.outputs
    )
