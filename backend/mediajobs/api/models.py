"""Model catalogue API: supported models and their capabilities."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from mediajobs.schemas.job import ModelList
from mediajobs.services.model_registry import ModelRegistry, get_model_registry

router = APIRouter()


@router.get("", response_model=ModelList)
async def list_models(
    provider: str | None = None,
    registry: ModelRegistry = Depends(get_model_registry),
):
    """List all registered models, optionally for one provider."""
    models = registry.to_dict_list(provider)
    return {
        "models": models,
        "providers": registry.list_providers(),
        "total": len(models),
    }
