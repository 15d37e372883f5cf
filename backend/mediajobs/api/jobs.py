"""Job submission and lifecycle API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from mediajobs.exceptions import (
    MappingError,
    UnknownJob,
    UnknownModel,
    UnsupportedStrategy,
    ValidationError,
)
from mediajobs.schemas.job import JobRead, JobSubmit
from mediajobs.services.container import get_reconciler
from mediajobs.services.reconciler import JobReconciler

router = APIRouter()


@router.post("", response_model=JobRead, status_code=201)
async def submit_job(
    data: JobSubmit,
    reconciler: JobReconciler = Depends(get_reconciler),
):
    """Map, validate and submit a job. Provider rejections come back as a failed job."""
    try:
        job = await reconciler.submit(
            data.options,
            data.provider,
            data.model_id,
            job_id=data.job_id,
            preference=data.waiting_strategy,
            webhook_url=data.webhook_url,
        )
    except UnknownModel as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(
            status_code=422, detail={"field": e.field, "reason": e.reason}
        )
    except (MappingError, UnsupportedStrategy) as e:
        raise HTTPException(status_code=422, detail=str(e))
    return job


@router.get("/{job_id}", response_model=JobRead)
async def get_job(job_id: str, reconciler: JobReconciler = Depends(get_reconciler)):
    try:
        return await reconciler.get_job(job_id)
    except UnknownJob:
        raise HTTPException(status_code=404, detail="Job not found")


@router.post("/{job_id}/cancel", response_model=JobRead)
async def cancel_job(job_id: str, reconciler: JobReconciler = Depends(get_reconciler)):
    """Cancel a job that has not reached a terminal state. Terminal jobs are returned as-is."""
    try:
        return await reconciler.cancel(job_id)
    except UnknownJob:
        raise HTTPException(status_code=404, detail="Job not found")
