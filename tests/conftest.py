"""Pytest configuration helpers.

This conftest ensures ``backend/`` is on ``sys.path`` so tests can import the
``mediajobs`` package regardless of how pytest is invoked, and provides fake
provider transports so no test talks to a real provider.
"""
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")

from mediajobs.services.job_store import InMemoryJobStore  # noqa: E402
from mediajobs.services.model_registry import build_default_registry  # noqa: E402
from mediajobs.services.polling import FixedInterval  # noqa: E402
from mediajobs.services.reconciler import JobReconciler  # noqa: E402


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FakeTransport:
    """Records submissions and replays scripted status payloads.

    ``statuses[provider_job_id]`` is a list consumed one item per fetch; an
    Exception item is raised instead of returned. The last item repeats.
    """

    def __init__(self) -> None:
        self.submissions: list[dict] = []
        self.fetches: list[tuple[str, str]] = []
        self.statuses: dict[str, list] = {}
        self.submit_error: Exception | None = None
        self._counter = 0

    async def submit(self, provider, model_id, raw, webhook_url=None):
        if self.submit_error is not None:
            raise self.submit_error
        self._counter += 1
        provider_job_id = f"pred-{self._counter}"
        self.submissions.append({
            "provider": provider,
            "model_id": model_id,
            "raw": raw,
            "webhook_url": webhook_url,
            "provider_job_id": provider_job_id,
        })
        return provider_job_id

    async def fetch_status(self, provider, provider_job_id):
        self.fetches.append((provider, provider_job_id))
        queue = self.statuses.get(provider_job_id) or [{"status": "processing"}]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


def webhook_url_for(job):
    return f"https://hooks.example.com/api/webhooks/jobs/{job.job_id}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def transitions():
    return []


@pytest.fixture
def reconciler(registry, store, transport, clock, transitions):
    async def record(job):
        transitions.append((job.job_id, job.status))

    return JobReconciler(
        registry,
        store,
        transport.submit,
        transport.fetch_status,
        interval_policy=FixedInterval(5.0),
        max_poll_attempts=5,
        webhook_url_factory=webhook_url_for,
        on_transition=record,
        clock=clock,
    )
