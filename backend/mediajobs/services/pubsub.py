"""Redis Pub/Sub notifications for job transitions, plus per-job poll locks.

Every transition the reconciler makes is published on
``mediajobs:jobs:{job_id}`` so dashboards or other processes can follow a job
without polling the database. Publishing is best-effort.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import redis
import redis.asyncio as aioredis

from mediajobs.config import get_settings
from mediajobs.models.job import Job

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "mediajobs:jobs:"
POLL_LOCK_PREFIX = "mediajobs:poll_lock:"

# ──────── Sync connection pool (Celery workers, locks) ────────

_sync_pool: redis.ConnectionPool | None = None


def _get_sync_pool() -> redis.ConnectionPool:
    """Lazy-init a module-level sync Redis ConnectionPool."""
    global _sync_pool
    if _sync_pool is None:
        settings = get_settings()
        _sync_pool = redis.ConnectionPool.from_url(settings.REDIS_URL)
    return _sync_pool


def get_redis() -> redis.Redis:
    return redis.Redis(connection_pool=_get_sync_pool())


# ──────── Publisher ────────

def channel_for(job_id: str) -> str:
    return f"{CHANNEL_PREFIX}{job_id}"


def _publish_sync(job_id: str, message: dict[str, Any]) -> None:
    try:
        get_redis().publish(channel_for(job_id), json.dumps(message))
    except Exception:
        # Best-effort: a missing Redis never blocks a transition
        logger.warning("Failed to publish update for job %s", job_id, exc_info=True)


async def publish_job_update(job: Job) -> None:
    """Transition observer for the reconciler."""
    message = {"type": "job_update", **job.to_dict()}
    await asyncio.to_thread(_publish_sync, job.job_id, message)


# ──────── Poll locks (SET NX EX) ────────

def acquire_poll_lock(job_id: str, ttl_seconds: int) -> bool:
    """Take the cross-worker poll lock for a job; False if someone holds it."""
    return bool(get_redis().set(f"{POLL_LOCK_PREFIX}{job_id}", "1", ex=ttl_seconds, nx=True))


def release_poll_lock(job_id: str) -> None:
    get_redis().delete(f"{POLL_LOCK_PREFIX}{job_id}")


# ──────── Subscriber (async) ────────

_async_client: aioredis.Redis | None = None


def _get_async_client() -> aioredis.Redis:
    """Lazy-init a module-level async Redis client (singleton)."""
    global _async_client
    if _async_client is None:
        settings = get_settings()
        _async_client = aioredis.from_url(settings.REDIS_URL)
    return _async_client


async def subscribe_job(job_id: str) -> aioredis.client.PubSub:
    """Subscribe to one job's channel. Caller closes the returned PubSub."""
    pubsub = _get_async_client().pubsub()
    await pubsub.subscribe(channel_for(job_id))
    return pubsub


async def listen_pubsub(pubsub: aioredis.client.PubSub):
    """Async generator that yields parsed messages from a PubSub subscription."""
    async for raw_message in pubsub.listen():
        if raw_message["type"] == "message":
            try:
                yield json.loads(raw_message["data"])
            except (json.JSONDecodeError, TypeError):
                continue
