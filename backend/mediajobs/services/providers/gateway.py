"""Dispatch submit / fetch-status to the provider transport modules.

``ProviderGateway.submit`` and ``ProviderGateway.fetch_status`` are the two
capabilities the reconciler is constructed with.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mediajobs.config import Settings, get_settings
from mediajobs.exceptions import ProviderSubmissionError, UnknownModel
from mediajobs.services.model_registry import (
    PROVIDER_FAL,
    PROVIDER_GOOGLE_CLOUD,
    PROVIDER_REPLICATE,
    ModelRegistry,
)
from mediajobs.services.providers import fal, google_cloud, replicate

logger = logging.getLogger(__name__)


def _response_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(data, dict):
        for key in ("detail", "error", "message", "title"):
            value = data.get(key)
            if isinstance(value, dict):
                value = value.get("message")
            if value:
                return str(value)
    return str(data)[:500]


class ProviderGateway:
    def __init__(
        self,
        registry: ModelRegistry,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._registry = registry
        self._settings = settings or get_settings()
        self._client = http_client or httpx.AsyncClient(timeout=self._settings.PROVIDER_TIMEOUT)
        self._own_client = http_client is None

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()

    async def submit(
        self,
        provider: str,
        model_id: str,
        raw: dict[str, Any],
        webhook_url: str | None = None,
    ) -> str:
        """Submit validated raw options; returns the provider job id.

        Any provider-side or transport failure becomes ProviderSubmissionError.
        """
        desc = self._registry.lookup(provider, model_id)
        try:
            return await self._submit(provider, model_id, raw, webhook_url, desc.provider_model_id)
        except httpx.HTTPStatusError as e:
            detail = _response_detail(e.response)
            raise ProviderSubmissionError(
                f"{provider} rejected {model_id} (HTTP {e.response.status_code}): {detail}"
            ) from e
        except (httpx.HTTPError, ValueError, RuntimeError) as e:
            raise ProviderSubmissionError(f"{provider} submission failed: {e}") from e

    async def _submit(
        self,
        provider: str,
        model_id: str,
        raw: dict[str, Any],
        webhook_url: str | None,
        version: str | None,
    ) -> str:
        s = self._settings
        if provider == PROVIDER_REPLICATE:
            prediction = await replicate.create_prediction(
                model_id=model_id,
                input=raw,
                api_token=s.REPLICATE_API_TOKEN,
                version=version,
                webhook_url=webhook_url,
                base_url=s.REPLICATE_BASE_URL,
                http_client=self._client,
            )
            if not prediction.get("id"):
                raise RuntimeError(f"Replicate returned no prediction id for {model_id}")
            return prediction["id"]
        if provider == PROVIDER_FAL:
            return await fal.submit_request(
                model_id=model_id,
                arguments=raw,
                api_key=s.FAL_KEY,
                webhook_url=webhook_url,
                queue_url=s.FAL_QUEUE_URL,
                http_client=self._client,
            )
        if provider == PROVIDER_GOOGLE_CLOUD:
            return await google_cloud.start_generation(
                model_id=model_id,
                raw=raw,
                project=s.GOOGLE_CLOUD_PROJECT,
                access_token=s.GOOGLE_CLOUD_ACCESS_TOKEN,
                location=s.GOOGLE_CLOUD_LOCATION,
                http_client=self._client,
            )
        raise UnknownModel(provider)

    async def fetch_status(self, provider: str, provider_job_id: str) -> dict[str, Any]:
        """Fetch the raw status payload; transport errors propagate."""
        s = self._settings
        if provider == PROVIDER_REPLICATE:
            return await replicate.get_prediction(
                provider_job_id,
                api_token=s.REPLICATE_API_TOKEN,
                base_url=s.REPLICATE_BASE_URL,
                http_client=self._client,
            )
        if provider == PROVIDER_FAL:
            return await fal.get_request_status(
                provider_job_id,
                api_key=s.FAL_KEY,
                queue_url=s.FAL_QUEUE_URL,
                http_client=self._client,
            )
        if provider == PROVIDER_GOOGLE_CLOUD:
            return await google_cloud.fetch_operation(
                provider_job_id,
                project=s.GOOGLE_CLOUD_PROJECT,
                access_token=s.GOOGLE_CLOUD_ACCESS_TOKEN,
                location=s.GOOGLE_CLOUD_LOCATION,
                http_client=self._client,
            )
        raise UnknownModel(provider)
