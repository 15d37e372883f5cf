"""Declarative media model capability registry.

Single source of truth for every (provider, model_id) the engine can submit
to: media type, raw option schema, and which completion strategies the
provider supports for it.

Usage:
    from mediajobs.services.model_registry import get_model_registry
    registry = get_model_registry()
    desc = registry.lookup("replicate", "bytedance/seedance-1-pro")
    raw = registry.validate("replicate", "bytedance/seedance-1-pro", {"prompt": "a cat"})
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from mediajobs.exceptions import UnknownModel, ValidationError
from mediajobs.models.job import MediaType, WaitingStrategy
from mediajobs.schemas import provider_options as opts

logger = logging.getLogger(__name__)

PROVIDER_REPLICATE = "replicate"
PROVIDER_FAL = "fal"
PROVIDER_GOOGLE_CLOUD = "google-cloud"


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Capabilities:
    """Completion strategies a provider supports for one model."""
    supports_webhook: bool
    supports_polling: bool
    default_strategy: WaitingStrategy

    def supports(self, strategy: WaitingStrategy) -> bool:
        if strategy is WaitingStrategy.WEBHOOK:
            return self.supports_webhook
        return self.supports_polling


@dataclass(frozen=True)
class ModelDescriptor:
    """Capability descriptor for a single (provider, model_id)."""
    provider: str
    model_id: str
    media_type: MediaType
    options_schema: type[BaseModel]
    capabilities: Capabilities
    # Replicate version hash for models that are not addressable by name.
    provider_model_id: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.provider, self.model_id)


# ---------------------------------------------------------------------------
# Registry class
# ---------------------------------------------------------------------------

class ModelRegistry:
    """In-memory registry of all supported media models."""

    def __init__(self) -> None:
        self._models: dict[tuple[str, str], ModelDescriptor] = {}
        self._by_provider: dict[str, list[ModelDescriptor]] = {}

    def register(self, desc: ModelDescriptor) -> None:
        if desc.key in self._models:
            raise ValueError(f"Model already registered: {desc.provider}/{desc.model_id}")
        self._models[desc.key] = desc
        self._by_provider.setdefault(desc.provider, []).append(desc)

    def lookup(self, provider: str, model_id: str) -> ModelDescriptor:
        try:
            return self._models[(provider, model_id)]
        except KeyError:
            raise UnknownModel(provider, model_id) from None

    def has_provider(self, provider: str) -> bool:
        return provider in self._by_provider

    def list_models(self, provider: str | None = None) -> list[ModelDescriptor]:
        """List models, optionally filtered by provider."""
        if provider:
            return list(self._by_provider.get(provider, []))
        return list(self._models.values())

    def list_providers(self) -> list[str]:
        """Return sorted list of unique provider names."""
        return sorted(self._by_provider.keys())

    def validate(self, provider: str, model_id: str, raw: dict[str, Any]) -> dict[str, Any]:
        """Validate raw provider options against the model's schema.

        Returns the cleaned options (unset fields dropped) or raises
        ValidationError naming the first failing field.
        """
        desc = self.lookup(provider, model_id)
        try:
            parsed = desc.options_schema.model_validate(raw)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or "options"
            raise ValidationError(field, first.get("msg", "invalid value")) from e
        return parsed.model_dump(exclude_none=True)

    def to_dict_list(self, provider: str | None = None) -> list[dict[str, Any]]:
        """Serialize models for API response."""
        result = []
        for desc in self.list_models(provider):
            caps = desc.capabilities
            result.append({
                "provider": desc.provider,
                "model_id": desc.model_id,
                "media_type": desc.media_type.value,
                "supports_webhook": caps.supports_webhook,
                "supports_polling": caps.supports_polling,
                "default_strategy": caps.default_strategy.value,
                "options": sorted(desc.options_schema.model_fields),
            })
        return result


# ---------------------------------------------------------------------------
# Helper to reduce boilerplate
# ---------------------------------------------------------------------------

_WEBHOOK_DEFAULT = Capabilities(True, True, WaitingStrategy.WEBHOOK)
_POLLING_DEFAULT = Capabilities(True, True, WaitingStrategy.POLLING)
_POLLING_ONLY = Capabilities(False, True, WaitingStrategy.POLLING)


def _desc(
    provider: str,
    model_id: str,
    media_type: MediaType,
    schema: type[BaseModel],
    caps: Capabilities,
    version: str | None = None,
) -> ModelDescriptor:
    return ModelDescriptor(
        provider=provider,
        model_id=model_id,
        media_type=media_type,
        options_schema=schema,
        capabilities=caps,
        provider_model_id=version,
    )


def build_default_registry() -> ModelRegistry:
    """Register every supported model."""
    registry = ModelRegistry()
    video, image, audio = MediaType.VIDEO, MediaType.IMAGE, MediaType.AUDIO

    # ================== Replicate: video ==================
    registry.register(_desc(
        PROVIDER_REPLICATE, "bytedance/seedance-1-pro", video,
        opts.Seedance1ProOptions, _WEBHOOK_DEFAULT,
    ))
    registry.register(_desc(
        PROVIDER_REPLICATE, "minimax/video-01", video,
        opts.MinimaxVideo01Options, _WEBHOOK_DEFAULT,
    ))
    registry.register(_desc(
        PROVIDER_REPLICATE, "arielreplicate/robust_video_matting", video,
        opts.RobustVideoMattingOptions, _WEBHOOK_DEFAULT,
        version="73d2128a371922d5d1abf0712a1d974be0e4e2358cc1218e4e34714767232bac",
    ))
    registry.register(_desc(
        PROVIDER_REPLICATE, "nateraw/video-background-remover", video,
        opts.VideoBackgroundRemoverOptions, _WEBHOOK_DEFAULT,
        version="ac5c138171b04413a69222c304f67c135e259d46089fc70ef12da685b3c604aa",
    ))

    # ================== Replicate: image ==================
    registry.register(_desc(
        PROVIDER_REPLICATE, "bytedance/seedream-4", image,
        opts.Seedream4Options, _POLLING_ONLY,
    ))
    registry.register(_desc(
        PROVIDER_REPLICATE, "google/nano-banana", image,
        opts.ReplicateNanoBananaOptions, _POLLING_ONLY,
    ))
    registry.register(_desc(
        PROVIDER_REPLICATE, "google/nano-banana-pro", image,
        opts.ReplicateNanoBananaProOptions, _POLLING_ONLY,
    ))
    registry.register(_desc(
        PROVIDER_REPLICATE, "codeplugtech/background_remover", image,
        opts.BackgroundRemoverOptions, _POLLING_ONLY,
    ))

    # ================== Replicate: audio ==================
    registry.register(_desc(
        PROVIDER_REPLICATE, "elevenlabs/turbo-v2.5", audio,
        opts.ElevenLabsTurboV25Options, _POLLING_ONLY,
    ))

    # ================== fal.ai ==================
    for model_id in ("veed/fabric-1.0", "veed/fabric-1.0/fast"):
        registry.register(_desc(
            PROVIDER_FAL, model_id, video, opts.FabricOptions, _POLLING_DEFAULT,
        ))
    registry.register(_desc(
        PROVIDER_FAL, "fal-ai/nano-banana", image,
        opts.FalNanoBananaOptions, _POLLING_ONLY,
    ))
    registry.register(_desc(
        PROVIDER_FAL, "fal-ai/nano-banana-pro", image,
        opts.FalNanoBananaProOptions, _POLLING_ONLY,
    ))
    registry.register(_desc(
        PROVIDER_FAL, "fal-ai/nano-banana-pro/edit", image,
        opts.FalNanoBananaProEditOptions, _POLLING_ONLY,
    ))

    # ================== Google Cloud Vertex AI ==================
    registry.register(_desc(
        PROVIDER_GOOGLE_CLOUD, "veo-3.0-generate-preview", video,
        opts.VeoOptions, _POLLING_ONLY,
    ))

    logger.debug("Registered %d media models", len(registry.list_models()))
    return registry


@lru_cache
def get_model_registry() -> ModelRegistry:
    """Process-wide default registry, built on first use."""
    return build_default_registry()
