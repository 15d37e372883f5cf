"""Job domain model: the stateful entity reconciled across webhooks and polls."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


class JobStatus(str, enum.Enum):
    """Job lifecycle statuses. COMPLETED and FAILED are terminal."""

    SUBMITTED = "submitted"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class WaitingStrategy(str, enum.Enum):
    """How completion of a submitted job is detected."""

    WEBHOOK = "webhook"
    POLLING = "polling"


class MediaType(str, enum.Enum):
    VIDEO = "video"
    IMAGE = "image"
    AUDIO = "audio"


@dataclass(frozen=True)
class MediaOutput:
    """One generated artifact reported by a provider."""
    type: str
    url: str
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MediaOutput:
        return cls(
            type=data["type"],
            url=data["url"],
            mime_type=data.get("mime_type"),
        )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """A generative-media job as persisted between signals.

    Only the reconciler mutates a Job. ``provider_job_id`` and
    ``waiting_strategy`` are fixed at submission; ``poll_attempts`` and
    ``next_poll_at`` are only meaningful for polling jobs.
    """

    job_id: str
    provider: str
    model_id: str
    waiting_strategy: WaitingStrategy
    status: JobStatus = JobStatus.SUBMITTED
    provider_job_id: str | None = None
    poll_attempts: int = 0
    next_poll_at: datetime | None = None
    outputs: list[MediaOutput] = field(default_factory=list)
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    raw_options: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses and pub/sub messages."""
        return {
            "job_id": self.job_id,
            "provider": self.provider,
            "model_id": self.model_id,
            "provider_job_id": self.provider_job_id,
            "waiting_strategy": self.waiting_strategy.value,
            "status": self.status.value,
            "poll_attempts": self.poll_attempts,
            "next_poll_at": self.next_poll_at.isoformat() if self.next_poll_at else None,
            "outputs": [o.to_dict() for o in self.outputs],
            "error": self.error,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
