"""Replicate predictions API.

Models registered with a version hash are created through ``/predictions``;
everything else goes through the official-model endpoint
``/models/{owner}/{name}/predictions``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.replicate.com/v1"
_WEBHOOK_EVENTS = ["start", "completed"]


def _headers(api_token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_token}",
        "Content-Type": "application/json",
    }


async def create_prediction(
    *,
    model_id: str,
    input: dict[str, Any],
    api_token: str,
    version: str | None = None,
    webhook_url: str | None = None,
    base_url: str | None = None,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> dict[str, Any]:
    """Create a prediction and return Replicate's prediction object."""
    if not api_token:
        raise ValueError("Replicate API token is required")

    endpoint = (base_url or _DEFAULT_BASE_URL).rstrip("/")
    body: dict[str, Any] = {"input": input}
    if version:
        url = f"{endpoint}/predictions"
        body["version"] = version
    else:
        url = f"{endpoint}/models/{model_id}/predictions"

    if webhook_url:
        body["webhook"] = webhook_url
        body["webhook_events_filter"] = _WEBHOOK_EVENTS

    client = http_client or httpx.AsyncClient(timeout=timeout)
    own_client = http_client is None

    try:
        resp = await client.post(url, json=body, headers=_headers(api_token))
        resp.raise_for_status()
        prediction = resp.json()
    finally:
        if own_client:
            await client.aclose()

    logger.info("Replicate prediction %s created for %s", prediction.get("id"), model_id)
    return prediction


async def get_prediction(
    prediction_id: str,
    *,
    api_token: str,
    base_url: str | None = None,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> dict[str, Any]:
    """Fetch the current prediction object (same shape as the webhook body)."""
    endpoint = (base_url or _DEFAULT_BASE_URL).rstrip("/")
    client = http_client or httpx.AsyncClient(timeout=timeout)
    own_client = http_client is None

    try:
        resp = await client.get(
            f"{endpoint}/predictions/{prediction_id}", headers=_headers(api_token)
        )
        resp.raise_for_status()
        data = resp.json()
    finally:
        if own_client:
            await client.aclose()

    logger.debug("Replicate prediction %s: %s", prediction_id, data.get("status"))
    return data
