"""Celery application configuration."""

import asyncio
import threading

from celery import Celery

from mediajobs.config import get_settings

settings = get_settings()

celery_app = Celery(
    "mediajobs",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "mediajobs.tasks.polling_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,               # ACK after task completes, not on receive
    task_reject_on_worker_lost=True,    # Re-queue task if worker crashes/restarts
    worker_prefetch_multiplier=1,       # Fetch one task at a time per worker
)

# Celery Beat: scan for polling jobs whose next poll time has passed
celery_app.conf.beat_schedule = {
    "poll-due-jobs": {
        "task": "mediajobs.tasks.polling_tasks.poll_due_jobs",
        "schedule": settings.POLL_SCAN_SECONDS,
    },
}

# Thread-local storage for event loop reuse within Celery workers
_thread_local = threading.local()


def run_async(coro):
    """Run async code in a sync Celery task.

    Reuses a thread-local event loop so the provider HTTP client and the
    database engine stay bound to one loop per worker thread.
    """
    loop = getattr(_thread_local, "loop", None)
    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        _thread_local.loop = loop
    return loop.run_until_complete(coro)
