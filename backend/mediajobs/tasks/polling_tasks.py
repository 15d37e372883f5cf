"""Celery tasks driving the polling path.

``poll_due_jobs`` runs on the beat schedule and fans out one ``poll_job``
per due job. ``poll_job`` holds a Redis mutex for the job while it runs one
poll cycle, so two workers never poll the same job at once.
"""

from __future__ import annotations

import logging

from celery import shared_task

from mediajobs.config import get_settings
from mediajobs.exceptions import UnknownJob
from mediajobs.models.job import utcnow
from mediajobs.services.container import get_reconciler
from mediajobs.services.pubsub import acquire_poll_lock, release_poll_lock
from mediajobs.tasks import run_async

logger = logging.getLogger(__name__)
settings = get_settings()


@shared_task
def poll_due_jobs(limit: int = 100) -> int:
    """Dispatch a poll for every polling job whose next poll time has passed."""
    jobs = run_async(get_reconciler().due_jobs(limit=limit))
    for job in jobs:
        poll_job.delay(job.job_id)
    if jobs:
        logger.info("Dispatched %d due poll(s)", len(jobs))
    return len(jobs)


@shared_task
def poll_job(job_id: str) -> dict:
    """Run one poll cycle for a job, unless another worker is already on it."""
    if not acquire_poll_lock(job_id, settings.POLL_LOCK_TTL_SECONDS):
        logger.debug("Poll already in progress for job %s", job_id)
        return {"job_id": job_id, "status": "locked"}

    try:
        reconciler = get_reconciler()
        job = run_async(reconciler.get_job(job_id))
        # A duplicate dispatch may arrive after the previous tick rescheduled the job.
        if job.is_terminal or (job.next_poll_at and job.next_poll_at > utcnow()):
            return {"job_id": job_id, "status": "skipped"}
        job = run_async(reconciler.on_poll_tick(job_id))
    except UnknownJob:
        logger.warning("Poll dispatched for unknown job %s", job_id)
        return {"job_id": job_id, "status": "unknown"}
    finally:
        release_poll_lock(job_id)

    return {
        "job_id": job.job_id,
        "status": job.status.value,
        "poll_attempts": job.poll_attempts,
    }
