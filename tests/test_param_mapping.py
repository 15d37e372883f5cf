"""Tests for unified <-> provider option mapping."""
import pytest

from mediajobs.exceptions import MappingError, UnknownModel, ValidationError
from mediajobs.schemas.unified import UnifiedOptions
from mediajobs.services.param_mapping import (
    MAPPINGS,
    from_provider_options,
    to_provider_options,
)

IMG_A = "https://cdn.example.com/a.png"
IMG_B = "https://cdn.example.com/b.png"
VIDEO = "https://cdn.example.com/in.mp4"
AUDIO = "https://cdn.example.com/in.mp3"

# A fully populated unified request per model, restricted to the fields the
# model's raw shape carries.
ROUND_TRIP = {
    ("replicate", "bytedance/seedance-1-pro"): {
        "prompt": "a cat surfing", "duration": 5, "resolution": "1080p",
        "aspect_ratio": "16:9", "seed": 7, "start_image": IMG_A,
        "end_image": IMG_B, "camera_motion": "fixed",
    },
    ("replicate", "minimax/video-01"): {"prompt": "a cat", "start_image": IMG_A},
    ("replicate", "arielreplicate/robust_video_matting"): {
        "video": VIDEO, "output_type": "alpha-mask",
    },
    ("replicate", "nateraw/video-background-remover"): {"video": VIDEO},
    ("replicate", "bytedance/seedream-4"): {
        "prompt": "a lighthouse", "resolution": "2K", "aspect_ratio": "4:3", "image": [IMG_A],
    },
    ("replicate", "google/nano-banana"): {
        "prompt": "a lighthouse", "image": [IMG_A, IMG_B], "aspect_ratio": "1:1",
        "output_format": "png",
    },
    ("replicate", "google/nano-banana-pro"): {
        "prompt": "a lighthouse", "image": [IMG_A], "aspect_ratio": "1:1",
        "output_format": "png", "resolution": "2K",
    },
    ("replicate", "codeplugtech/background_remover"): {"image": IMG_A},
    ("replicate", "elevenlabs/turbo-v2.5"): {
        "text": "Hello there", "voice": "Rachel", "stability": 0.5,
        "similarity_boost": 0.75, "style": 0.1, "speed": 1.2, "language_code": "en",
    },
    ("fal", "veed/fabric-1.0"): {"image": IMG_A, "audio": AUDIO, "resolution": "480p"},
    ("fal", "veed/fabric-1.0/fast"): {"image": IMG_A, "audio": AUDIO, "resolution": "720p"},
    ("fal", "fal-ai/nano-banana"): {
        "prompt": "a lighthouse", "num_images": 2, "aspect_ratio": "3:2", "output_format": "png",
    },
    ("fal", "fal-ai/nano-banana-pro"): {
        "prompt": "a lighthouse", "num_images": 1, "aspect_ratio": "3:2",
        "output_format": "webp", "resolution": "4K",
    },
    ("fal", "fal-ai/nano-banana-pro/edit"): {
        "prompt": "make it blue", "image": [IMG_A, IMG_B], "num_images": 1,
        "aspect_ratio": "1:1", "output_format": "png", "resolution": "1K",
    },
    ("google-cloud", "veo-3.0-generate-preview"): {
        "prompt": "a cat surfing", "start_image": "gs://bucket/frame.png",
        "aspect_ratio": "9:16", "duration": 8, "resolution": "1080p", "seed": 3,
    },
}


def test_every_registered_model_has_a_mapping(registry):
    assert {desc.key for desc in registry.list_models()} == set(MAPPINGS)


@pytest.mark.parametrize("key", list(ROUND_TRIP), ids=lambda k: f"{k[0]}:{k[1]}")
def test_round_trip_preserves_carried_fields(registry, key):
    provider, model_id = key
    unified = ROUND_TRIP[key]
    assert set(unified) == set(MAPPINGS[key].reverse_fields)

    raw = to_provider_options(provider, model_id, unified)
    # The forward mapping must produce options the model's schema accepts.
    registry.validate(provider, model_id, raw)
    assert from_provider_options(provider, model_id, raw) == unified


def test_seedance_maps_frames_and_camera():
    raw = to_provider_options("replicate", "bytedance/seedance-1-pro", {
        "prompt": "a cat", "start_image": IMG_A, "end_image": IMG_B, "camera_motion": "dynamic",
    })
    assert raw == {
        "prompt": "a cat", "image": IMG_A, "last_frame_image": IMG_B, "camera_fixed": False,
    }


def test_seedance_omits_camera_fixed_without_camera_motion():
    raw = to_provider_options("replicate", "bytedance/seedance-1-pro", {"prompt": "a cat"})
    assert raw == {"prompt": "a cat"}


def test_minimax_always_enables_prompt_optimizer():
    raw = to_provider_options("replicate", "minimax/video-01", {"prompt": "a cat"})
    assert raw == {"prompt": "a cat", "prompt_optimizer": True}


def test_single_image_string_becomes_list():
    raw = to_provider_options("replicate", "google/nano-banana", {"prompt": "x", "image": IMG_A})
    assert raw["image_input"] == [IMG_A]
    assert from_provider_options("replicate", "google/nano-banana", raw)["image"] == [IMG_A]


def test_background_remover_takes_first_image():
    raw = to_provider_options(
        "replicate", "codeplugtech/background_remover", {"image": [IMG_A, IMG_B]}
    )
    assert raw == {"image": IMG_A}


def test_elevenlabs_sends_text_as_prompt():
    raw = to_provider_options("replicate", "elevenlabs/turbo-v2.5", {"text": "hi", "voice": "Aria"})
    assert raw == {"prompt": "hi", "voice": "Aria"}


def test_elevenlabs_requires_text():
    with pytest.raises(MappingError, match="'text' is required"):
        to_provider_options("replicate", "elevenlabs/turbo-v2.5", {"prompt": "hi"})


@pytest.mark.parametrize("model_id", ["bytedance/seedance-1-pro", "google/nano-banana"])
def test_prompt_required(model_id):
    with pytest.raises(MappingError, match="'prompt' is required"):
        to_provider_options("replicate", model_id, {"prompt": ""})


def test_fabric_requires_audio():
    with pytest.raises(MappingError, match="'audio' is required for veed/fabric-1.0"):
        to_provider_options("fal", "veed/fabric-1.0", {"image": IMG_A})


def test_fabric_accepts_start_image():
    raw = to_provider_options("fal", "veed/fabric-1.0", {"start_image": IMG_A, "audio": AUDIO})
    assert raw["image_url"] == IMG_A


@pytest.mark.parametrize("resolution,expected", [(None, "720p"), ("1080p", "720p"), ("480p", "480p")])
def test_fabric_resolution(resolution, expected):
    unified = {"image": IMG_A, "audio": AUDIO, "resolution": resolution}
    raw = to_provider_options("fal", "veed/fabric-1.0/fast", unified)
    assert raw["resolution"] == expected


def test_fal_edit_requires_an_image():
    with pytest.raises(MappingError, match="At least one image is required"):
        to_provider_options("fal", "fal-ai/nano-banana-pro/edit", {"prompt": "make it blue"})


def test_fal_output_format_jpg_is_jpeg():
    raw = to_provider_options(
        "fal", "fal-ai/nano-banana", {"prompt": "x", "output_format": "jpg"}
    )
    assert raw["output_format"] == "jpeg"
    assert from_provider_options("fal", "fal-ai/nano-banana", raw)["output_format"] == "jpg"


@pytest.mark.parametrize("spelling", ["jpg", "jpeg", "JPEG"])
@pytest.mark.parametrize("key", [
    ("fal", "fal-ai/nano-banana"),
    ("fal", "fal-ai/nano-banana-pro"),
    ("replicate", "google/nano-banana"),
    ("replicate", "google/nano-banana-pro"),
])
def test_jpeg_spellings_round_trip_to_one_value(registry, key, spelling):
    provider, model_id = key
    unified = {"prompt": "a lighthouse", "output_format": spelling}

    raw = to_provider_options(provider, model_id, unified)
    registry.validate(provider, model_id, raw)
    back = from_provider_options(provider, model_id, raw)

    assert back["output_format"] == "jpg"
    assert to_provider_options(provider, model_id, back) == raw


def test_unified_output_format_is_canonical():
    assert UnifiedOptions(output_format="jpeg").output_format == "jpg"
    assert UnifiedOptions(output_format="png").output_format == "png"


def test_fal_auto_aspect_ratio_is_omitted():
    raw = to_provider_options("fal", "fal-ai/nano-banana-pro", {"prompt": "x", "aspect_ratio": "auto"})
    assert "aspect_ratio" not in raw
    reverse = from_provider_options("fal", "fal-ai/nano-banana-pro", {"prompt": "x", "aspect_ratio": "auto"})
    assert "aspect_ratio" not in reverse


def test_veo_duration_is_seconds():
    raw = to_provider_options("google-cloud", "veo-3.0-generate-preview", {"prompt": "x", "duration": 6})
    assert raw == {"prompt": "x", "duration_seconds": 6}


def test_unified_fields_a_model_ignores_are_dropped():
    raw = to_provider_options(
        "replicate", "nateraw/video-background-remover", {"video": VIDEO, "prompt": "ignored"}
    )
    assert raw == {"video": VIDEO}


def test_accepts_unified_options_instance():
    raw = to_provider_options("replicate", "minimax/video-01", UnifiedOptions(prompt="x"))
    assert raw["prompt"] == "x"


def test_malformed_unified_options():
    with pytest.raises(ValidationError) as exc:
        to_provider_options("replicate", "minimax/video-01", {"prompt": "x", "camera_motion": "orbit"})
    assert exc.value.field == "camera_motion"


def test_unknown_model():
    with pytest.raises(UnknownModel):
        to_provider_options("replicate", "nobody/nothing", {"prompt": "x"})
    with pytest.raises(UnknownModel):
        from_provider_options("fal", "nobody/nothing", {})
