"""fal.ai queue API.

The queue addresses status and result by app id (``owner/app``) even for
sub-path endpoints such as ``fal-ai/nano-banana-pro/edit``, so the provider
job id we hand back is ``{model_id}::{request_id}``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_DEFAULT_QUEUE_URL = "https://queue.fal.run"
_JOB_ID_SEPARATOR = "::"


def compose_job_id(model_id: str, request_id: str) -> str:
    return f"{model_id}{_JOB_ID_SEPARATOR}{request_id}"


def split_job_id(provider_job_id: str) -> tuple[str, str]:
    model_id, sep, request_id = provider_job_id.partition(_JOB_ID_SEPARATOR)
    if not sep or not model_id or not request_id:
        raise ValueError(
            f"Invalid fal job id {provider_job_id!r}, expected modelId::requestId"
        )
    return model_id, request_id


def _app_id(model_id: str) -> str:
    return "/".join(model_id.split("/")[:2])


def _headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": f"Key {api_key}",
        "Content-Type": "application/json",
    }


async def submit_request(
    *,
    model_id: str,
    arguments: dict[str, Any],
    api_key: str,
    webhook_url: str | None = None,
    queue_url: str | None = None,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> str:
    """Enqueue a request and return the composite provider job id."""
    if not api_key:
        raise ValueError("fal API key is required")

    endpoint = (queue_url or _DEFAULT_QUEUE_URL).rstrip("/")
    params = {"fal_webhook": webhook_url} if webhook_url else None

    client = http_client or httpx.AsyncClient(timeout=timeout)
    own_client = http_client is None

    try:
        resp = await client.post(
            f"{endpoint}/{model_id}", json=arguments, params=params, headers=_headers(api_key)
        )
        resp.raise_for_status()
        data = resp.json()
    finally:
        if own_client:
            await client.aclose()

    request_id = data.get("request_id")
    if not request_id:
        raise RuntimeError(f"fal returned no request_id for {model_id}")
    logger.info("fal request %s queued for %s", request_id, model_id)
    return compose_job_id(model_id, request_id)


async def get_request_status(
    provider_job_id: str,
    *,
    api_key: str,
    queue_url: str | None = None,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> dict[str, Any]:
    """Return the queue status; once COMPLETED, the result is under ``payload``.

    The status endpoint carries no output, so a completed request costs a
    second call to fetch the result.
    """
    model_id, request_id = split_job_id(provider_job_id)
    base = f"{(queue_url or _DEFAULT_QUEUE_URL).rstrip('/')}/{_app_id(model_id)}/requests/{request_id}"

    client = http_client or httpx.AsyncClient(timeout=timeout)
    own_client = http_client is None

    try:
        resp = await client.get(f"{base}/status", headers=_headers(api_key))
        resp.raise_for_status()
        status = resp.json()
        logger.debug("fal request %s: %s", request_id, status.get("status"))
        if status.get("status") != "COMPLETED":
            return status

        result_resp = await client.get(base, headers=_headers(api_key))
        result_resp.raise_for_status()
        return {
            "status": "COMPLETED",
            "request_id": request_id,
            "payload": result_resp.json(),
        }
    finally:
        if own_client:
            await client.aclose()
