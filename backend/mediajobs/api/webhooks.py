"""Inbound provider webhooks.

Each job is submitted with its own callback URL, so the job id in the path
identifies the job and its provider; the body is normalized by that
provider's parser exactly as a poll response would be.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from mediajobs.exceptions import UnknownJob
from mediajobs.services.container import get_reconciler
from mediajobs.services.reconciler import JobReconciler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/jobs/{job_id}")
async def receive_job_webhook(
    job_id: str,
    request: Request,
    reconciler: JobReconciler = Depends(get_reconciler),
) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Webhook body must be JSON")

    try:
        job = await reconciler.on_job_webhook(job_id, payload)
    except UnknownJob:
        logger.warning("Webhook for unknown job %s", job_id)
        raise HTTPException(status_code=404, detail="Job not found")

    return {"job_id": job.job_id, "status": job.status.value}
