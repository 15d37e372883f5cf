"""Error taxonomy for media job submission and reconciliation.

Validation, mapping and strategy errors are raised synchronously to the
submitter and never create a job. Everything that happens after a provider
accepts (or rejects) a job is recorded on the job as ``failed`` instead of
being raised through the webhook / poll entry points.
"""

from __future__ import annotations


class MediaJobError(Exception):
    """Base class for all mediajobs errors."""


class UnknownModel(MediaJobError, LookupError):
    """No model is registered under the requested (provider, model_id)."""

    def __init__(self, provider: str, model_id: str | None = None) -> None:
        self.provider = provider
        self.model_id = model_id
        if model_id is None:
            message = f"Unknown provider: {provider}"
        else:
            message = f"Unknown model: {provider}/{model_id}"
        super().__init__(message)


class ValidationError(MediaJobError, ValueError):
    """Raw provider options do not satisfy the model's schema."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid option '{field}': {reason}")


class MappingError(MediaJobError, ValueError):
    """A field required by the target model is missing from the unified options."""


class UnsupportedStrategy(MediaJobError):
    """The model supports neither webhooks nor polling."""


class ProviderSubmissionError(MediaJobError):
    """The provider rejected the request at submit time."""


class ProviderResultError(MediaJobError):
    """The provider reported success but the payload carries no usable output."""


class PollingTimeout(MediaJobError):
    """A polling job ran out of poll attempts without reaching a terminal outcome."""

    def __init__(self, max_attempts: int) -> None:
        self.max_attempts = max_attempts
        super().__init__(
            f"PollingTimeout: exceeded maximum polling attempts ({max_attempts})"
        )


class UnknownJob(MediaJobError, LookupError):
    """A signal or lookup referenced a job that does not exist."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Unknown job: {key}")
