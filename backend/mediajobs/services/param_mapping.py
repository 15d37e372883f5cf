"""Bidirectional mapping between unified options and provider raw options.

Each registered model has a ``ParameterMapping``: ``to_provider`` builds the
exact raw shape the provider expects (raising MappingError when a field the
model needs is missing), ``from_provider`` recovers the unified fields the raw
shape faithfully carries. The reverse direction is for echoing and auditing
only; nothing downstream makes decisions from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from mediajobs.exceptions import MappingError, UnknownModel, ValidationError
from mediajobs.schemas.unified import UnifiedOptions

RawOptions = dict[str, Any]


@dataclass(frozen=True)
class ParameterMapping:
    to_provider: Callable[[UnifiedOptions], RawOptions]
    from_provider: Callable[[RawOptions], dict[str, Any]]
    # Unified fields that survive a to_provider -> from_provider round trip.
    reverse_fields: tuple[str, ...]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _require(value: Any, field: str, model_id: str) -> Any:
    if value is None or value == "" or value == []:
        raise MappingError(f"'{field}' is required for {model_id}")
    return value


def _images_or_none(unified: UnifiedOptions) -> list[str] | None:
    return unified.image_list() or None


def _first_image(unified: UnifiedOptions) -> str | None:
    images = unified.image_list()
    return images[0] if images else None


def _drop_auto(value: str | None) -> str | None:
    # "auto" and unspecified are the same aspect ratio in both directions.
    return None if value == "auto" else value


_FAL_FORMAT_TO = {"jpg": "jpeg"}
_FAL_FORMAT_FROM = {"jpeg": "jpg"}


def _fal_format_to(value: str | None) -> str | None:
    return _FAL_FORMAT_TO.get(value, value) if value else value


def _fal_format_from(value: str | None) -> str | None:
    return _FAL_FORMAT_FROM.get(value, value) if value else value


# ---------------------------------------------------------------------------
# Replicate: video
# ---------------------------------------------------------------------------

def _seedance_to(u: UnifiedOptions) -> RawOptions:
    camera_fixed = None
    if u.camera_motion is not None:
        camera_fixed = u.camera_motion == "fixed"
    return _compact({
        "prompt": _require(u.prompt, "prompt", "bytedance/seedance-1-pro"),
        "duration": u.duration,
        "resolution": u.resolution,
        "aspect_ratio": u.aspect_ratio,
        "seed": u.seed,
        "image": u.start_image,
        "last_frame_image": u.end_image,
        "camera_fixed": camera_fixed,
    })


def _seedance_from(raw: RawOptions) -> dict[str, Any]:
    camera_motion = None
    if raw.get("camera_fixed") is not None:
        camera_motion = "fixed" if raw["camera_fixed"] else "dynamic"
    return _compact({
        "prompt": raw.get("prompt"),
        "duration": raw.get("duration"),
        "resolution": raw.get("resolution"),
        "aspect_ratio": raw.get("aspect_ratio"),
        "seed": raw.get("seed"),
        "start_image": raw.get("image"),
        "end_image": raw.get("last_frame_image"),
        "camera_motion": camera_motion,
    })


def _minimax_to(u: UnifiedOptions) -> RawOptions:
    return _compact({
        "prompt": _require(u.prompt, "prompt", "minimax/video-01"),
        "prompt_optimizer": True,
        "first_frame_image": u.start_image,
    })


def _minimax_from(raw: RawOptions) -> dict[str, Any]:
    return _compact({
        "prompt": raw.get("prompt"),
        "start_image": raw.get("first_frame_image"),
    })


def _matting_to(u: UnifiedOptions) -> RawOptions:
    return _compact({
        "input_video": _require(u.video, "video", "arielreplicate/robust_video_matting"),
        "output_type": u.output_type,
    })


def _matting_from(raw: RawOptions) -> dict[str, Any]:
    return _compact({
        "video": raw.get("input_video"),
        "output_type": raw.get("output_type"),
    })


def _video_bg_to(u: UnifiedOptions) -> RawOptions:
    return {"video": _require(u.video, "video", "nateraw/video-background-remover")}


def _video_bg_from(raw: RawOptions) -> dict[str, Any]:
    return _compact({"video": raw.get("video")})


# ---------------------------------------------------------------------------
# Replicate: image
# ---------------------------------------------------------------------------

def _seedream_to(u: UnifiedOptions) -> RawOptions:
    return _compact({
        "prompt": _require(u.prompt, "prompt", "bytedance/seedream-4"),
        "size": u.resolution,
        "aspect_ratio": u.aspect_ratio,
        "image_input": _images_or_none(u),
    })


def _seedream_from(raw: RawOptions) -> dict[str, Any]:
    return _compact({
        "prompt": raw.get("prompt"),
        "resolution": raw.get("size"),
        "aspect_ratio": raw.get("aspect_ratio"),
        "image": raw.get("image_input"),
    })


def _nano_banana_to(model_id: str, with_resolution: bool) -> Callable[[UnifiedOptions], RawOptions]:
    def to_provider(u: UnifiedOptions) -> RawOptions:
        raw = {
            "prompt": _require(u.prompt, "prompt", model_id),
            "image_input": _images_or_none(u),
            "aspect_ratio": u.aspect_ratio,
            "output_format": u.output_format,
        }
        if with_resolution:
            raw["resolution"] = u.resolution
        return _compact(raw)
    return to_provider


def _nano_banana_from(raw: RawOptions) -> dict[str, Any]:
    return _compact({
        "prompt": raw.get("prompt"),
        "image": raw.get("image_input"),
        "aspect_ratio": raw.get("aspect_ratio"),
        "output_format": raw.get("output_format"),
        "resolution": raw.get("resolution"),
    })


def _image_bg_to(u: UnifiedOptions) -> RawOptions:
    return {"image": _require(_first_image(u), "image", "codeplugtech/background_remover")}


def _image_bg_from(raw: RawOptions) -> dict[str, Any]:
    return _compact({"image": raw.get("image")})


# ---------------------------------------------------------------------------
# Replicate: audio
# ---------------------------------------------------------------------------

_SPEECH_FIELDS = ("voice", "stability", "similarity_boost", "style", "speed", "language_code")


def _elevenlabs_to(u: UnifiedOptions) -> RawOptions:
    # Replicate's ElevenLabs deployment takes the text as ``prompt``.
    raw = {"prompt": _require(u.text, "text", "elevenlabs/turbo-v2.5")}
    raw.update({name: getattr(u, name) for name in _SPEECH_FIELDS})
    return _compact(raw)


def _elevenlabs_from(raw: RawOptions) -> dict[str, Any]:
    unified = {"text": raw.get("prompt")}
    unified.update({name: raw.get(name) for name in _SPEECH_FIELDS})
    return _compact(unified)


# ---------------------------------------------------------------------------
# fal.ai
# ---------------------------------------------------------------------------

def _fabric_to(model_id: str) -> Callable[[UnifiedOptions], RawOptions]:
    def to_provider(u: UnifiedOptions) -> RawOptions:
        # Fabric tops out at 720p and requires a resolution.
        resolution = u.resolution or "720p"
        if resolution == "1080p":
            resolution = "720p"
        return {
            "image_url": _require(_first_image(u) or u.start_image, "image", model_id),
            "audio_url": _require(u.audio, "audio", model_id),
            "resolution": resolution,
        }
    return to_provider


def _fabric_from(raw: RawOptions) -> dict[str, Any]:
    return _compact({
        "image": raw.get("image_url"),
        "audio": raw.get("audio_url"),
        "resolution": raw.get("resolution"),
    })


def _fal_nano_banana_to(model_id: str, pro: bool) -> Callable[[UnifiedOptions], RawOptions]:
    def to_provider(u: UnifiedOptions) -> RawOptions:
        raw = {
            "prompt": _require(u.prompt, "prompt", model_id),
            "num_images": u.num_images,
            "aspect_ratio": _drop_auto(u.aspect_ratio),
            "output_format": _fal_format_to(u.output_format),
        }
        if pro:
            raw["resolution"] = u.resolution
        return _compact(raw)
    return to_provider


def _fal_nano_banana_from(raw: RawOptions) -> dict[str, Any]:
    return _compact({
        "prompt": raw.get("prompt"),
        "num_images": raw.get("num_images"),
        "aspect_ratio": _drop_auto(raw.get("aspect_ratio")),
        "output_format": _fal_format_from(raw.get("output_format")),
        "resolution": raw.get("resolution"),
    })


def _fal_edit_to(u: UnifiedOptions) -> RawOptions:
    model_id = "fal-ai/nano-banana-pro/edit"
    images = u.image_list()
    if not images:
        raise MappingError(f"At least one image is required for {model_id}")
    return _compact({
        "prompt": _require(u.prompt, "prompt", model_id),
        "image_urls": images,
        "num_images": u.num_images,
        "aspect_ratio": _drop_auto(u.aspect_ratio),
        "output_format": _fal_format_to(u.output_format),
        "resolution": u.resolution,
    })


def _fal_edit_from(raw: RawOptions) -> dict[str, Any]:
    unified = _fal_nano_banana_from(raw)
    if raw.get("image_urls"):
        unified["image"] = list(raw["image_urls"])
    return unified


# ---------------------------------------------------------------------------
# Google Cloud Vertex AI
# ---------------------------------------------------------------------------

def _veo_to(u: UnifiedOptions) -> RawOptions:
    return _compact({
        "prompt": _require(u.prompt, "prompt", "veo-3.0-generate-preview"),
        "image": u.start_image,
        "aspect_ratio": u.aspect_ratio,
        "duration_seconds": u.duration,
        "resolution": u.resolution,
        "seed": u.seed,
    })


def _veo_from(raw: RawOptions) -> dict[str, Any]:
    return _compact({
        "prompt": raw.get("prompt"),
        "start_image": raw.get("image"),
        "aspect_ratio": raw.get("aspect_ratio"),
        "duration": raw.get("duration_seconds"),
        "resolution": raw.get("resolution"),
        "seed": raw.get("seed"),
    })


# ---------------------------------------------------------------------------
# Mapping table
# ---------------------------------------------------------------------------

_GENERATION = ("prompt", "aspect_ratio")

MAPPINGS: dict[tuple[str, str], ParameterMapping] = {
    ("replicate", "bytedance/seedance-1-pro"): ParameterMapping(
        _seedance_to, _seedance_from,
        ("prompt", "duration", "resolution", "aspect_ratio", "seed",
         "start_image", "end_image", "camera_motion"),
    ),
    ("replicate", "minimax/video-01"): ParameterMapping(
        _minimax_to, _minimax_from, ("prompt", "start_image"),
    ),
    ("replicate", "arielreplicate/robust_video_matting"): ParameterMapping(
        _matting_to, _matting_from, ("video", "output_type"),
    ),
    ("replicate", "nateraw/video-background-remover"): ParameterMapping(
        _video_bg_to, _video_bg_from, ("video",),
    ),
    ("replicate", "bytedance/seedream-4"): ParameterMapping(
        _seedream_to, _seedream_from, _GENERATION + ("resolution", "image"),
    ),
    ("replicate", "google/nano-banana"): ParameterMapping(
        _nano_banana_to("google/nano-banana", with_resolution=False),
        _nano_banana_from,
        _GENERATION + ("image", "output_format"),
    ),
    ("replicate", "google/nano-banana-pro"): ParameterMapping(
        _nano_banana_to("google/nano-banana-pro", with_resolution=True),
        _nano_banana_from,
        _GENERATION + ("image", "output_format", "resolution"),
    ),
    ("replicate", "codeplugtech/background_remover"): ParameterMapping(
        _image_bg_to, _image_bg_from, ("image",),
    ),
    ("replicate", "elevenlabs/turbo-v2.5"): ParameterMapping(
        _elevenlabs_to, _elevenlabs_from, ("text",) + _SPEECH_FIELDS,
    ),
    ("fal", "veed/fabric-1.0"): ParameterMapping(
        _fabric_to("veed/fabric-1.0"), _fabric_from, ("image", "audio", "resolution"),
    ),
    ("fal", "veed/fabric-1.0/fast"): ParameterMapping(
        _fabric_to("veed/fabric-1.0/fast"), _fabric_from, ("image", "audio", "resolution"),
    ),
    ("fal", "fal-ai/nano-banana"): ParameterMapping(
        _fal_nano_banana_to("fal-ai/nano-banana", pro=False),
        _fal_nano_banana_from,
        _GENERATION + ("num_images", "output_format"),
    ),
    ("fal", "fal-ai/nano-banana-pro"): ParameterMapping(
        _fal_nano_banana_to("fal-ai/nano-banana-pro", pro=True),
        _fal_nano_banana_from,
        _GENERATION + ("num_images", "output_format", "resolution"),
    ),
    ("fal", "fal-ai/nano-banana-pro/edit"): ParameterMapping(
        _fal_edit_to, _fal_edit_from,
        _GENERATION + ("image", "num_images", "output_format", "resolution"),
    ),
    ("google-cloud", "veo-3.0-generate-preview"): ParameterMapping(
        _veo_to, _veo_from,
        ("prompt", "start_image", "aspect_ratio", "duration", "resolution", "seed"),
    ),
}


def get_mapping(provider: str, model_id: str) -> ParameterMapping:
    try:
        return MAPPINGS[(provider, model_id)]
    except KeyError:
        raise UnknownModel(provider, model_id) from None


def coerce_unified(unified: UnifiedOptions | dict[str, Any]) -> UnifiedOptions:
    """Accept either a UnifiedOptions instance or a plain dict of unified fields."""
    if isinstance(unified, UnifiedOptions):
        return unified
    try:
        return UnifiedOptions.model_validate(unified)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "options"
        raise ValidationError(field, first.get("msg", "invalid value")) from e


def to_provider_options(
    provider: str,
    model_id: str,
    unified: UnifiedOptions | dict[str, Any],
) -> RawOptions:
    """Translate unified options into the raw shape ``model_id`` expects."""
    mapping = get_mapping(provider, model_id)
    return mapping.to_provider(coerce_unified(unified))


def from_provider_options(provider: str, model_id: str, raw: RawOptions) -> dict[str, Any]:
    """Best-effort reverse mapping; fields the raw shape lacks are omitted."""
    return get_mapping(provider, model_id).from_provider(raw)
