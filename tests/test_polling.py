"""Tests for interval policies and the polling scheduler."""
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from mediajobs.models.job import Job, JobStatus, WaitingStrategy
from mediajobs.services.polling import (
    ExponentialBackoff,
    FixedInterval,
    PollingScheduler,
    interval_policy_from_settings,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _job(**overrides):
    values = dict(
        job_id="job-1",
        provider="replicate",
        model_id="elevenlabs/turbo-v2.5",
        waiting_strategy=WaitingStrategy.POLLING,
        provider_job_id="pred-1",
    )
    values.update(overrides)
    return Job(**values)


def test_fixed_interval():
    policy = FixedInterval(2.5)
    assert [policy.delay(n) for n in range(3)] == [2.5, 2.5, 2.5]


def test_fixed_interval_must_be_positive():
    with pytest.raises(ValueError):
        FixedInterval(0)


def test_exponential_backoff_is_capped():
    policy = ExponentialBackoff(base=2, multiplier=2, max_seconds=10)
    assert [policy.delay(n) for n in range(5)] == [2, 4, 8, 10, 10]


def test_exponential_backoff_rejects_shrinking_multiplier():
    with pytest.raises(ValueError):
        ExponentialBackoff(multiplier=0.5)


def test_policy_from_settings():
    fixed = interval_policy_from_settings(SimpleNamespace(
        POLL_INTERVAL_SECONDS=3.0, POLL_BACKOFF_MULTIPLIER=1.0, POLL_MAX_INTERVAL_SECONDS=60.0,
    ))
    assert isinstance(fixed, FixedInterval)
    assert fixed.delay(10) == 3.0

    backoff = interval_policy_from_settings(SimpleNamespace(
        POLL_INTERVAL_SECONDS=3.0, POLL_BACKOFF_MULTIPLIER=2.0, POLL_MAX_INTERVAL_SECONDS=60.0,
    ))
    assert isinstance(backoff, ExponentialBackoff)
    assert backoff.delay(10) == 60.0


def test_next_poll_at(registry):
    async def fetch(provider, provider_job_id):
        return {}

    scheduler = PollingScheduler(fetch, registry, ExponentialBackoff(base=5, multiplier=2))
    assert (scheduler.next_poll_at(0, NOW) - NOW).total_seconds() == 5
    assert (scheduler.next_poll_at(2, NOW) - NOW).total_seconds() == 20


@pytest.mark.asyncio
async def test_poll_normalizes_with_job_media_type(registry, transport):
    transport.statuses["pred-1"] = [{"status": "succeeded", "output": "https://x/speech.mp3"}]
    scheduler = PollingScheduler(transport.fetch_status, registry)

    outcome = await scheduler.poll(_job())

    assert transport.fetches == [("replicate", "pred-1")]
    assert outcome.status is JobStatus.COMPLETED
    assert outcome.outputs[0].type == "audio"


@pytest.mark.asyncio
async def test_poll_prefers_recorded_media_type(registry, transport):
    transport.statuses["pred-1"] = [{"status": "failed"}]
    scheduler = PollingScheduler(transport.fetch_status, registry)

    outcome = await scheduler.poll(_job(metadata={"media_type": "image"}))

    assert outcome.error == "Image generation failed"


@pytest.mark.asyncio
async def test_poll_reports_progress(registry, transport):
    seen = []
    scheduler = PollingScheduler(
        transport.fetch_status, registry, on_progress=lambda job, outcome: seen.append(outcome.status),
    )
    await scheduler.poll(_job())
    assert seen == [JobStatus.PROCESSING]


@pytest.mark.asyncio
async def test_progress_callback_errors_are_swallowed(registry, transport):
    async def broken(job, outcome):
        raise RuntimeError("listener gone")

    scheduler = PollingScheduler(transport.fetch_status, registry, on_progress=broken)
    outcome = await scheduler.poll(_job())
    assert outcome.status is JobStatus.PROCESSING


@pytest.mark.asyncio
async def test_fetch_errors_propagate(registry, transport):
    transport.statuses["pred-1"] = [ConnectionError("reset")]
    scheduler = PollingScheduler(transport.fetch_status, registry)
    with pytest.raises(ConnectionError):
        await scheduler.poll(_job())


@pytest.mark.asyncio
async def test_poll_requires_provider_job_id(registry, transport):
    scheduler = PollingScheduler(transport.fetch_status, registry)
    with pytest.raises(ValueError):
        await scheduler.poll(_job(provider_job_id=None))
