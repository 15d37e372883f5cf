"""Tests for the model capability registry and raw option validation."""
import pytest

from mediajobs.exceptions import UnknownModel, ValidationError
from mediajobs.models.job import MediaType, WaitingStrategy
from mediajobs.services.model_registry import get_model_registry

VIDEO = "https://cdn.example.com/in.mp4"
IMAGE = "https://cdn.example.com/in.png"
AUDIO = "https://cdn.example.com/in.mp3"

# Smallest accepted raw options per model; every key here is required.
MINIMAL_RAW = {
    ("replicate", "bytedance/seedance-1-pro"): {"prompt": "a cat surfing"},
    ("replicate", "minimax/video-01"): {"prompt": "a cat surfing"},
    ("replicate", "arielreplicate/robust_video_matting"): {"input_video": VIDEO},
    ("replicate", "nateraw/video-background-remover"): {"video": VIDEO},
    ("replicate", "bytedance/seedream-4"): {"prompt": "a lighthouse"},
    ("replicate", "google/nano-banana"): {"prompt": "a lighthouse"},
    ("replicate", "google/nano-banana-pro"): {"prompt": "a lighthouse"},
    ("replicate", "codeplugtech/background_remover"): {"image": IMAGE},
    ("replicate", "elevenlabs/turbo-v2.5"): {"prompt": "Hello there"},
    ("fal", "veed/fabric-1.0"): {"image_url": IMAGE, "audio_url": AUDIO, "resolution": "720p"},
    ("fal", "veed/fabric-1.0/fast"): {"image_url": IMAGE, "audio_url": AUDIO, "resolution": "480p"},
    ("fal", "fal-ai/nano-banana"): {"prompt": "a lighthouse"},
    ("fal", "fal-ai/nano-banana-pro"): {"prompt": "a lighthouse"},
    ("fal", "fal-ai/nano-banana-pro/edit"): {"prompt": "make it blue", "image_urls": [IMAGE]},
    ("google-cloud", "veo-3.0-generate-preview"): {"prompt": "a cat surfing"},
}

MISSING_FIELD_CASES = [
    (key, field) for key, raw in MINIMAL_RAW.items() for field in raw
]


def test_every_registered_model_has_a_minimal_example(registry):
    registered = {desc.key for desc in registry.list_models()}
    assert registered == set(MINIMAL_RAW)


def test_lookup_returns_descriptor(registry):
    desc = registry.lookup("replicate", "bytedance/seedance-1-pro")
    assert desc.media_type is MediaType.VIDEO
    assert desc.capabilities.supports_webhook
    assert desc.capabilities.default_strategy is WaitingStrategy.WEBHOOK
    assert desc.provider_model_id is None


def test_lookup_carries_replicate_version_hash(registry):
    desc = registry.lookup("replicate", "nateraw/video-background-remover")
    assert desc.provider_model_id.startswith("ac5c1381")


def test_lookup_unknown_model(registry):
    with pytest.raises(UnknownModel) as exc:
        registry.lookup("replicate", "nobody/nothing")
    assert exc.value.model_id == "nobody/nothing"


def test_lookup_model_under_wrong_provider(registry):
    with pytest.raises(UnknownModel):
        registry.lookup("fal", "bytedance/seedance-1-pro")


def test_list_models_filters_by_provider(registry):
    assert len(registry.list_models()) == 15
    assert len(registry.list_models("replicate")) == 9
    assert len(registry.list_models("fal")) == 5
    assert [d.model_id for d in registry.list_models("google-cloud")] == ["veo-3.0-generate-preview"]
    assert registry.list_models("nobody") == []


def test_list_providers_sorted(registry):
    assert registry.list_providers() == ["fal", "google-cloud", "replicate"]


def test_polling_only_models(registry):
    veo = registry.lookup("google-cloud", "veo-3.0-generate-preview")
    assert not veo.capabilities.supports_webhook
    assert veo.capabilities.supports_polling
    fabric = registry.lookup("fal", "veed/fabric-1.0")
    assert fabric.capabilities.supports_webhook
    assert fabric.capabilities.default_strategy is WaitingStrategy.POLLING


def test_register_duplicate_rejected(registry):
    desc = registry.lookup("fal", "fal-ai/nano-banana")
    with pytest.raises(ValueError):
        registry.register(desc)


@pytest.mark.parametrize("key", list(MINIMAL_RAW), ids=lambda k: f"{k[0]}:{k[1]}")
def test_validate_accepts_minimal_example(registry, key):
    provider, model_id = key
    assert registry.validate(provider, model_id, dict(MINIMAL_RAW[key])) == MINIMAL_RAW[key]


@pytest.mark.parametrize(
    "key,field", MISSING_FIELD_CASES, ids=lambda v: v if isinstance(v, str) else f"{v[0]}:{v[1]}"
)
def test_validate_rejects_missing_required_field(registry, key, field):
    raw = dict(MINIMAL_RAW[key])
    del raw[field]
    with pytest.raises(ValidationError) as exc:
        registry.validate(key[0], key[1], raw)
    assert exc.value.field == field


def test_validate_rejects_value_outside_enum(registry):
    with pytest.raises(ValidationError) as exc:
        registry.validate(
            "replicate", "bytedance/seedance-1-pro", {"prompt": "x", "aspect_ratio": "5:1"}
        )
    assert exc.value.field == "aspect_ratio"


def test_validate_is_strict_about_types(registry):
    with pytest.raises(ValidationError) as exc:
        registry.validate("replicate", "bytedance/seedance-1-pro", {"prompt": "x", "duration": "5"})
    assert exc.value.field == "duration"


def test_validate_rejects_unknown_keys(registry):
    with pytest.raises(ValidationError) as exc:
        registry.validate("fal", "fal-ai/nano-banana", {"prompt": "x", "guidance": 3})
    assert exc.value.field == "guidance"


def test_validate_checks_numeric_ranges(registry):
    with pytest.raises(ValidationError) as exc:
        registry.validate("replicate", "elevenlabs/turbo-v2.5", {"prompt": "hi", "stability": 1.5})
    assert exc.value.field == "stability"


def test_validate_checks_urls(registry):
    with pytest.raises(ValidationError) as exc:
        registry.validate(
            "replicate", "arielreplicate/robust_video_matting", {"input_video": "not a url"}
        )
    assert exc.value.field == "input_video"


def test_validate_accepts_gs_and_data_urls(registry):
    raw = {"prompt": "x", "image": "gs://bucket/frame.png"}
    assert registry.validate("google-cloud", "veo-3.0-generate-preview", raw) == raw
    raw = {"image": "data:image/png;base64,iVBORw0KGgo="}
    assert registry.validate("replicate", "codeplugtech/background_remover", raw) == raw


def test_seedream_custom_size_needs_dimensions(registry):
    with pytest.raises(ValidationError) as exc:
        registry.validate(
            "replicate", "bytedance/seedream-4", {"prompt": "x", "size": "custom", "width": 2048}
        )
    assert "width and height" in exc.value.reason

    raw = {"prompt": "x", "size": "custom", "width": 2048, "height": 2048}
    assert registry.validate("replicate", "bytedance/seedream-4", raw) == raw


def test_seedream_match_input_image_needs_input(registry):
    with pytest.raises(ValidationError) as exc:
        registry.validate(
            "replicate", "bytedance/seedream-4",
            {"prompt": "x", "aspect_ratio": "match_input_image"},
        )
    assert "image_input" in exc.value.reason


def test_fabric_rejects_1080p(registry):
    raw = {"image_url": IMAGE, "audio_url": AUDIO, "resolution": "1080p"}
    with pytest.raises(ValidationError) as exc:
        registry.validate("fal", "veed/fabric-1.0", raw)
    assert exc.value.field == "resolution"


def test_fal_edit_needs_at_least_one_image(registry):
    with pytest.raises(ValidationError) as exc:
        registry.validate("fal", "fal-ai/nano-banana-pro/edit", {"prompt": "x", "image_urls": []})
    assert exc.value.field == "image_urls"


def test_validate_drops_unset_optional_fields(registry):
    raw = {"prompt": "x", "seed": None}
    assert registry.validate("replicate", "bytedance/seedance-1-pro", raw) == {"prompt": "x"}


def test_to_dict_list(registry):
    models = registry.to_dict_list("google-cloud")
    assert models == [{
        "provider": "google-cloud",
        "model_id": "veo-3.0-generate-preview",
        "media_type": "video",
        "supports_webhook": False,
        "supports_polling": True,
        "default_strategy": "polling",
        "options": sorted([
            "prompt", "image", "aspect_ratio", "duration_seconds",
            "resolution", "seed", "generate_audio",
        ]),
    }]


def test_default_registry_is_memoized():
    assert get_model_registry() is get_model_registry()
