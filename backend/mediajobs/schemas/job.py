"""Pydantic v2 schemas for the jobs API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from mediajobs.models.job import JobStatus, WaitingStrategy
from mediajobs.schemas.unified import UnifiedOptions


class JobSubmit(BaseModel):
    """Schema for submitting a generation job."""

    provider: str
    model_id: str
    options: UnifiedOptions = Field(default_factory=UnifiedOptions)
    job_id: str | None = Field(default=None, max_length=64)
    waiting_strategy: WaitingStrategy | None = None
    webhook_url: str | None = None


class MediaOutputRead(BaseModel):
    type: str
    url: str
    mime_type: str | None = None

    model_config = {"from_attributes": True}


class JobRead(BaseModel):
    """Schema for reading a job snapshot."""

    job_id: str
    provider: str
    model_id: str
    provider_job_id: str | None = None
    waiting_strategy: WaitingStrategy
    status: JobStatus
    poll_attempts: int
    next_poll_at: datetime | None = None
    outputs: list[MediaOutputRead] = []
    error: str | None = None
    metadata: dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class ModelRead(BaseModel):
    provider: str
    model_id: str
    media_type: str
    supports_webhook: bool
    supports_polling: bool
    default_strategy: str
    options: list[str]


class ModelList(BaseModel):
    models: list[ModelRead]
    providers: list[str]
    total: int
