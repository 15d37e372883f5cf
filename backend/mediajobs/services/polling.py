"""Polling scheduler: one status fetch per call, no timers.

The reconciler decides when to poll again; this module only fetches,
normalizes, and computes the next due time from an interval policy.
"""

from __future__ import annotations

import inspect
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Protocol

from mediajobs.models.job import Job, utcnow
from mediajobs.services.model_registry import ModelRegistry
from mediajobs.services.result_parsers import NormalizedOutcome, parse

logger = logging.getLogger(__name__)

FetchStatusFn = Callable[[str, str], Awaitable[Any]]
ProgressCallback = Callable[[Job, NormalizedOutcome], Any]


class IntervalPolicy(Protocol):
    def delay(self, attempts: int) -> float:
        """Seconds to wait after ``attempts`` completed polls."""
        ...


class FixedInterval:
    """Same delay between every poll."""

    def __init__(self, seconds: float = 5.0) -> None:
        if seconds <= 0:
            raise ValueError("Poll interval must be positive")
        self.seconds = seconds

    def delay(self, attempts: int) -> float:
        return self.seconds


class ExponentialBackoff:
    """base * multiplier ** attempts, capped at ``max_seconds``."""

    def __init__(
        self,
        base: float = 5.0,
        multiplier: float = 1.5,
        max_seconds: float = 300.0,
    ) -> None:
        if base <= 0:
            raise ValueError("Poll interval must be positive")
        if multiplier < 1:
            raise ValueError("Backoff multiplier must be >= 1")
        self.base = base
        self.multiplier = multiplier
        self.max_seconds = max_seconds

    def delay(self, attempts: int) -> float:
        return min(self.base * (self.multiplier ** max(attempts, 0)), self.max_seconds)


def interval_policy_from_settings(settings: Any) -> IntervalPolicy:
    if settings.POLL_BACKOFF_MULTIPLIER > 1:
        return ExponentialBackoff(
            base=settings.POLL_INTERVAL_SECONDS,
            multiplier=settings.POLL_BACKOFF_MULTIPLIER,
            max_seconds=settings.POLL_MAX_INTERVAL_SECONDS,
        )
    return FixedInterval(settings.POLL_INTERVAL_SECONDS)


class PollingScheduler:
    def __init__(
        self,
        fetch_status: FetchStatusFn,
        registry: ModelRegistry,
        interval_policy: IntervalPolicy | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._fetch_status = fetch_status
        self._registry = registry
        self._policy = interval_policy or FixedInterval()
        self._on_progress = on_progress

    async def poll(self, job: Job) -> NormalizedOutcome:
        """Fetch the provider status for ``job`` once and normalize it.

        Fetch errors propagate to the caller; progress callback errors do not.
        """
        if not job.provider_job_id:
            raise ValueError(f"Job {job.job_id} has no provider job id to poll")
        media_type = job.metadata.get("media_type")
        if not media_type:
            media_type = self._registry.lookup(job.provider, job.model_id).media_type
        payload = await self._fetch_status(job.provider, job.provider_job_id)
        outcome = parse(job.provider, payload, media_type)
        if not outcome.is_terminal:
            await self._notify_progress(job, outcome)
        return outcome

    def next_poll_at(self, attempts: int, now: datetime | None = None) -> datetime:
        now = now or utcnow()
        return now + timedelta(seconds=self._policy.delay(attempts))

    async def _notify_progress(self, job: Job, outcome: NormalizedOutcome) -> None:
        if self._on_progress is None:
            return
        try:
            result = self._on_progress(job, outcome)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning("Progress callback failed for job %s: %s", job.job_id, e)
