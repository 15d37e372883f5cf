"""Pydantic v2 schemas for provider/model-specific raw options.

One model per registered (provider, model_id). These are the shapes the
provider APIs accept; the registry validates mapper output against them before
anything is submitted. Unknown keys are rejected and types are checked strictly.
"""

from __future__ import annotations

from typing import Annotated, Literal
from urllib.parse import urlparse

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator


def _check_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme == "data":
        return value
    if parsed.scheme not in ("http", "https", "gs") or not parsed.netloc:
        raise ValueError("must be an http(s), gs:// or data: URL")
    return value


MediaUrl = Annotated[str, AfterValidator(_check_url)]
UnitFloat = Annotated[float, Field(ge=0.0, le=1.0)]

VideoAspectRatio = Literal["16:9", "4:3", "1:1", "3:4", "9:16", "21:9", "9:21"]
FalAspectRatio = Literal[
    "21:9", "16:9", "3:2", "4:3", "5:4", "1:1", "4:5", "3:4", "2:3", "9:16",
]
FalEditAspectRatio = Literal[
    "auto", "21:9", "16:9", "3:2", "4:3", "5:4", "1:1", "4:5", "3:4", "2:3", "9:16",
]
FalOutputFormat = Literal["jpeg", "png", "webp"]
ImageResolution = Literal["1K", "2K", "4K"]


class RawOptions(BaseModel):
    """Base for every provider option schema."""

    model_config = ConfigDict(extra="forbid", strict=True)


# ---------------------------------------------------------------------------
# Replicate: video
# ---------------------------------------------------------------------------

class Seedance1ProOptions(RawOptions):
    """bytedance/seedance-1-pro: text/image to video."""

    prompt: str
    duration: int | None = None
    resolution: Literal["480p", "720p", "1080p"] | None = None
    aspect_ratio: VideoAspectRatio | None = None
    seed: int | None = None
    image: MediaUrl | None = None
    last_frame_image: MediaUrl | None = None
    camera_fixed: bool | None = None


class MinimaxVideo01Options(RawOptions):
    prompt: str
    prompt_optimizer: bool | None = None
    first_frame_image: MediaUrl | None = None


class RobustVideoMattingOptions(RawOptions):
    input_video: MediaUrl
    output_type: Literal["green-screen", "alpha-mask", "foreground-mask"] | None = None


class VideoBackgroundRemoverOptions(RawOptions):
    """nateraw/video-background-remover: always outputs green screen."""

    video: MediaUrl


# ---------------------------------------------------------------------------
# Replicate: image
# ---------------------------------------------------------------------------

class Seedream4Options(RawOptions):
    prompt: str
    size: Literal["1K", "2K", "4K", "custom"] | None = None
    aspect_ratio: str | None = None
    width: Annotated[int, Field(ge=1024, le=4096)] | None = None
    height: Annotated[int, Field(ge=1024, le=4096)] | None = None
    sequential_image_generation: Literal["disabled", "auto"] | None = None
    max_images: Annotated[int, Field(ge=1, le=15)] | None = None
    enhance_prompt: bool | None = None
    image_input: Annotated[list[MediaUrl], Field(max_length=10)] | None = None

    @model_validator(mode="after")
    def _check_size_and_input(self) -> Seedream4Options:
        if self.size == "custom" and (self.width is None or self.height is None):
            raise ValueError("When size is 'custom', both width and height must be specified")
        if self.aspect_ratio == "match_input_image" and not self.image_input:
            raise ValueError(
                "When aspect_ratio is 'match_input_image', image_input must be provided"
            )
        return self


class ReplicateNanoBananaOptions(RawOptions):
    prompt: str
    image_input: list[MediaUrl] | None = None
    aspect_ratio: str | None = None
    output_format: Literal["jpg", "png"] | None = None


class ReplicateNanoBananaProOptions(RawOptions):
    prompt: str
    image_input: Annotated[list[MediaUrl], Field(max_length=14)] | None = None
    aspect_ratio: str | None = None
    resolution: ImageResolution | None = None
    output_format: str | None = None
    safety_filter_level: Literal[
        "block_low_and_above", "block_medium_and_above", "block_only_high",
    ] | None = None


class BackgroundRemoverOptions(RawOptions):
    """codeplugtech/background_remover."""

    image: MediaUrl


# ---------------------------------------------------------------------------
# Replicate: audio
# ---------------------------------------------------------------------------

class ElevenLabsTurboV25Options(RawOptions):
    """elevenlabs/turbo-v2.5 as hosted on Replicate (text is sent as ``prompt``)."""

    prompt: Annotated[str, Field(min_length=1)]
    voice: str | None = None
    stability: UnitFloat | None = None
    similarity_boost: UnitFloat | None = None
    style: UnitFloat | None = None
    speed: Annotated[float, Field(ge=0.25, le=4.0)] | None = None
    language_code: str | None = None
    previous_text: str | None = None
    next_text: str | None = None


# ---------------------------------------------------------------------------
# fal.ai
# ---------------------------------------------------------------------------

class FabricOptions(RawOptions):
    """veed/fabric-1.0 and veed/fabric-1.0/fast: talking video from image + audio."""

    image_url: MediaUrl
    audio_url: MediaUrl
    resolution: Literal["720p", "480p"]


class FalNanoBananaOptions(RawOptions):
    prompt: str
    num_images: Annotated[int, Field(ge=1, le=4)] | None = None
    aspect_ratio: FalAspectRatio | None = None
    output_format: FalOutputFormat | None = None


class FalNanoBananaProOptions(RawOptions):
    prompt: str
    num_images: Annotated[int, Field(ge=1, le=4)] | None = None
    aspect_ratio: FalAspectRatio | None = None
    output_format: FalOutputFormat | None = None
    sync_mode: bool | None = None
    resolution: ImageResolution | None = None


class FalNanoBananaProEditOptions(RawOptions):
    prompt: str
    image_urls: Annotated[list[MediaUrl], Field(min_length=1)]
    num_images: Annotated[int, Field(ge=1, le=4)] | None = None
    aspect_ratio: FalEditAspectRatio | None = None
    output_format: FalOutputFormat | None = None
    sync_mode: bool | None = None
    resolution: ImageResolution | None = None


# ---------------------------------------------------------------------------
# Google Cloud Vertex AI
# ---------------------------------------------------------------------------

class VeoOptions(RawOptions):
    """Veo on Vertex AI; the transport splits these into instances/parameters."""

    prompt: str
    image: MediaUrl | None = None
    aspect_ratio: Literal["16:9", "9:16"] | None = None
    duration_seconds: Annotated[int, Field(ge=4, le=8)] | None = None
    resolution: Literal["720p", "1080p"] | None = None
    seed: int | None = None
    generate_audio: bool | None = None
