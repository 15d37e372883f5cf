"""Pydantic v2 schema for the caller-facing unified option vocabulary."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, field_validator

# Alternate spellings accepted from callers, folded to one canonical value.
_FORMAT_ALIASES = {"jpeg": "jpg"}


class UnifiedOptions(BaseModel):
    """Superset of request fields across every registered model.

    Every field is optional here; per-model requirements are enforced by the
    parameter mapper for the target model.
    """

    # Generation
    prompt: str | None = None
    duration: int | None = None
    resolution: str | None = None
    aspect_ratio: str | None = None
    seed: int | None = None
    num_images: int | None = None
    output_format: str | None = None

    # Media inputs
    start_image: str | None = None
    end_image: str | None = None
    camera_motion: Literal["fixed", "dynamic"] | None = None
    image: str | list[str] | None = None
    audio: str | None = None
    video: str | None = None
    output_type: str | None = None

    # Speech
    text: str | None = None
    voice: str | None = None
    stability: float | None = None
    similarity_boost: float | None = None
    style: float | None = None
    speed: float | None = None
    language_code: str | None = None

    @field_validator("output_format")
    @classmethod
    def _canonical_format(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _FORMAT_ALIASES.get(value.lower(), value)

    def image_list(self) -> list[str]:
        """Image inputs as a list regardless of how the caller supplied them."""
        if self.image is None:
            return []
        if isinstance(self.image, str):
            return [self.image]
        return list(self.image)
