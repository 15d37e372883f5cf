"""Provider result normalization.

Turns the status payload of any provider into one ``NormalizedOutcome``.
There is exactly one parser per provider and it is used for webhook bodies
and poll responses alike, so both channels always agree on what a payload
means.
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import urlparse

from mediajobs.exceptions import ProviderResultError, UnknownModel
from mediajobs.models.job import JobStatus, MediaOutput, MediaType

logger = logging.getLogger(__name__)

_DEFAULT_MIME = {
    MediaType.VIDEO: "video/mp4",
    MediaType.IMAGE: "image/jpeg",
    MediaType.AUDIO: "audio/mpeg",
}

_FALLBACK_ERROR = {
    MediaType.VIDEO: "Generation failed",
    MediaType.IMAGE: "Image generation failed",
    MediaType.AUDIO: "Audio generation failed",
}


@dataclass(frozen=True)
class NormalizedOutcome:
    """Provider-agnostic interpretation of one status payload."""
    status: JobStatus
    outputs: tuple[MediaOutput, ...] = ()
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def processing(cls, **metadata: Any) -> NormalizedOutcome:
        return cls(JobStatus.PROCESSING, metadata=metadata)

    @classmethod
    def completed(cls, outputs: list[MediaOutput], **metadata: Any) -> NormalizedOutcome:
        if not outputs:
            raise ProviderResultError("completed outcome requires at least one output")
        return cls(JobStatus.COMPLETED, outputs=tuple(outputs), metadata=metadata)

    @classmethod
    def failed(cls, error: str, **metadata: Any) -> NormalizedOutcome:
        return cls(JobStatus.FAILED, error=error, metadata=metadata)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _media_type(value: MediaType | str) -> MediaType:
    return value if isinstance(value, MediaType) else MediaType(value)


def _guess_mime(url: str, media_type: MediaType) -> str:
    parsed = urlparse(url)
    guessed = mimetypes.guess_type(url if parsed.scheme == "data" else parsed.path)[0]
    if guessed and guessed.split("/")[0] == media_type.value:
        return guessed
    return _DEFAULT_MIME[media_type]


def _output(url: str, media_type: MediaType, mime_type: str | None = None) -> MediaOutput:
    return MediaOutput(
        type=media_type.value,
        url=url,
        mime_type=mime_type or _guess_mime(url, media_type),
    )


def _error_text(value: Any) -> str | None:
    """Best-effort human text out of a provider error field."""
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        for key in ("message", "detail", "msg", "error"):
            text = _error_text(value.get(key))
            if text:
                return text
        return str(value)
    if isinstance(value, list):
        return _error_text(value[0])
    return str(value)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _url_of(item: Any) -> tuple[str | None, str | None]:
    """(url, content_type) of a string or ``{"url": ...}`` output item."""
    if isinstance(item, str) and item:
        return item, None
    if isinstance(item, dict):
        url = item.get("url") or item.get("gcsUri") or item.get("uri")
        if isinstance(url, str) and url:
            mime = item.get("content_type") or item.get("mimeType")
            return url, mime if isinstance(mime, str) else None
    return None, None


def _first_url(value: Any) -> tuple[str | None, str | None]:
    # Scalar wins; otherwise the first element of a sequence.
    if isinstance(value, list):
        return _url_of(value[0]) if value else (None, None)
    return _url_of(value)


# ---------------------------------------------------------------------------
# Replicate
# ---------------------------------------------------------------------------

_REPLICATE_IN_FLIGHT = ("starting", "queued", "processing")
_REPLICATE_FAILED = ("failed", "canceled")


def _parse_replicate(payload: dict[str, Any], media_type: MediaType) -> NormalizedOutcome:
    status = payload.get("status")
    if status in _REPLICATE_FAILED:
        return NormalizedOutcome.failed(
            _error_text(payload.get("error")) or _FALLBACK_ERROR[media_type],
            provider_status=status,
        )
    if status != "succeeded":
        return NormalizedOutcome.processing(provider_status=status)

    output = payload.get("output")
    outputs: list[MediaOutput] = []
    if media_type is MediaType.IMAGE and isinstance(output, list):
        for item in output:
            url, mime = _url_of(item)
            if url:
                outputs.append(_output(url, media_type, mime))
    else:
        url, mime = _first_url(output)
        if url:
            outputs.append(_output(url, media_type, mime))

    if not outputs:
        raise ProviderResultError(
            f"No {media_type.value} output in completed response"
        )
    metadata: dict[str, Any] = {}
    if payload.get("id"):
        metadata["prediction_id"] = payload["id"]
    if isinstance(payload.get("metrics"), dict):
        metadata["metrics"] = payload["metrics"]
    return NormalizedOutcome.completed(outputs, **metadata)


# ---------------------------------------------------------------------------
# fal.ai
# ---------------------------------------------------------------------------

_FAL_IN_FLIGHT = ("IN_QUEUE", "IN_PROGRESS")
_FAL_COMPLETED = ("COMPLETED", "OK")
_FAL_FAILED = ("FAILED", "ERROR")
_FAL_RESULT_KEYS = ("payload", "outputs", "output", "response")


def _fal_result(payload: dict[str, Any]) -> Any:
    for key in _FAL_RESULT_KEYS:
        if payload.get(key) is not None:
            return payload[key]
    return payload


def _fal_outputs(result: Any, media_type: MediaType) -> list[MediaOutput]:
    if isinstance(result, list):
        result = result[0] if result else {}
    if not isinstance(result, dict):
        return []

    outputs: list[MediaOutput] = []
    if media_type is MediaType.IMAGE:
        images = result.get("images")
        if images is None and result.get("image") is not None:
            images = [result["image"]]
        for item in _as_list(images):
            url, mime = _url_of(item)
            if url:
                outputs.append(_output(url, media_type, mime))
        return outputs

    url, mime = _first_url(result.get(media_type.value))
    if url:
        outputs.append(_output(url, media_type, mime))
    return outputs


def _has_fal_output(payload: dict[str, Any]) -> bool:
    return any(key in payload for key in ("video", "images", "image", "audio"))


def _parse_fal(payload: dict[str, Any], media_type: MediaType) -> NormalizedOutcome:
    status = payload.get("status")
    metadata: dict[str, Any] = {}
    if payload.get("request_id"):
        metadata["request_id"] = payload["request_id"]

    if status in _FAL_FAILED:
        error = _error_text(payload.get("error"))
        if not error and isinstance(payload.get("payload"), dict):
            error = _error_text(payload["payload"].get("detail"))
        return NormalizedOutcome.failed(
            error or _FALLBACK_ERROR[media_type], provider_status=status, **metadata,
        )
    if status in _FAL_IN_FLIGHT:
        return NormalizedOutcome.processing(provider_status=status)

    result = _fal_result(payload)
    if status in _FAL_COMPLETED or (status is None and _has_fal_output(payload)):
        outputs = _fal_outputs(result, media_type)
        if not outputs:
            raise ProviderResultError(
                f"No {media_type.value} output in completed response"
            )
        if isinstance(result, dict) and result.get("seed") is not None:
            metadata["seed"] = result["seed"]
        return NormalizedOutcome.completed(outputs, **metadata)

    return NormalizedOutcome.processing(provider_status=status)


# ---------------------------------------------------------------------------
# Google Cloud Vertex AI (long-running operations)
# ---------------------------------------------------------------------------

def _parse_google_cloud(payload: dict[str, Any], media_type: MediaType) -> NormalizedOutcome:
    operation = payload.get("name")
    if not payload.get("done"):
        return NormalizedOutcome.processing(provider_status="running")

    metadata = {"operation_name": operation} if operation else {}
    if payload.get("error"):
        return NormalizedOutcome.failed(
            _error_text(payload["error"]) or _FALLBACK_ERROR[media_type], **metadata,
        )

    response = _as_dict(payload.get("response"))
    candidates: list[Any] = []
    candidates.extend(_as_list(response.get("videos")))
    if response.get("video"):
        candidates.append(response["video"])
    if response.get("videoUri"):
        candidates.append(response["videoUri"])
    for item in _as_list(response.get("outputs")):
        if isinstance(item, dict) and item.get("video"):
            candidates.append(item["video"])

    outputs: list[MediaOutput] = []
    for item in candidates:
        url, mime = _url_of(item)
        if url:
            outputs.append(_output(url, media_type, mime))

    if not outputs:
        if response.get("raiMediaFilteredCount"):
            reasons = [
                reason for reason in _as_list(response.get("raiMediaFilteredReasons"))
                if isinstance(reason, str)
            ]
            return NormalizedOutcome.failed(
                "; ".join(reasons) or "Output blocked by safety filters", **metadata,
            )
        raise ProviderResultError(f"No {media_type.value} output in completed response")
    return NormalizedOutcome.completed(outputs[:1], **metadata)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

Parser = Callable[[dict[str, Any], MediaType], NormalizedOutcome]

PARSERS: dict[str, Parser] = {
    "replicate": _parse_replicate,
    "fal": _parse_fal,
    "google-cloud": _parse_google_cloud,
}


def parse(
    provider: str,
    payload: Any,
    media_type: MediaType | str = MediaType.VIDEO,
) -> NormalizedOutcome:
    """Normalize a webhook body or poll response for ``provider``.

    Never raises for a malformed payload: anomalies become ``failed``.
    Raises UnknownModel for a provider with no parser.
    """
    parser = PARSERS.get(provider)
    if parser is None:
        raise UnknownModel(provider)
    media = _media_type(media_type)
    if not isinstance(payload, dict):
        return NormalizedOutcome.failed(
            f"Malformed {provider} payload: expected an object, got {type(payload).__name__}"
        )
    try:
        return parser(payload, media)
    except ProviderResultError as e:
        logger.warning("Anomalous %s result payload: %s", provider, e)
        return NormalizedOutcome.failed(str(e))
