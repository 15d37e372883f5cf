"""Veo on Google Cloud Vertex AI (long-running predict operations)."""

from __future__ import annotations

import logging
import mimetypes
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_ENDPOINT = "https://{location}-aiplatform.googleapis.com/v1"

# Raw option name → Vertex parameter name
_PARAMETERS = {
    "aspect_ratio": "aspectRatio",
    "duration_seconds": "durationSeconds",
    "resolution": "resolution",
    "seed": "seed",
    "generate_audio": "generateAudio",
}


def _model_url(project: str, location: str, model_id: str) -> str:
    return (
        f"{_ENDPOINT.format(location=location)}/projects/{project}/locations/{location}"
        f"/publishers/google/models/{model_id}"
    )


def _image_instance(url: str) -> dict[str, str]:
    if url.startswith("gs://"):
        return {
            "gcsUri": url,
            "mimeType": mimetypes.guess_type(url)[0] or "image/png",
        }
    if url.startswith("data:"):
        header, _, data = url.partition(",")
        mime_type = header[5:].split(";")[0] or "image/png"
        return {"bytesBase64Encoded": data, "mimeType": mime_type}
    raise ValueError("Vertex AI image input must be a gs:// or data: URL")


def build_request(raw: dict[str, Any]) -> dict[str, Any]:
    """Split flat raw options into Vertex ``instances`` and ``parameters``."""
    instance: dict[str, Any] = {"prompt": raw["prompt"]}
    if raw.get("image"):
        instance["image"] = _image_instance(raw["image"])
    parameters: dict[str, Any] = {"sampleCount": 1}
    for name, vertex_name in _PARAMETERS.items():
        if raw.get(name) is not None:
            parameters[vertex_name] = raw[name]
    return {"instances": [instance], "parameters": parameters}


def model_from_operation(operation_name: str) -> str:
    """``projects/p/locations/l/publishers/google/models/{model}/operations/{id}`` → model."""
    parts = operation_name.split("/")
    try:
        return parts[parts.index("models") + 1]
    except (ValueError, IndexError):
        raise ValueError(f"Cannot derive model from operation {operation_name!r}") from None


def _headers(access_token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {access_token}",
        "Content-Type": "application/json",
    }


async def start_generation(
    *,
    model_id: str,
    raw: dict[str, Any],
    project: str,
    access_token: str,
    location: str = "us-central1",
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> str:
    """Start a predictLongRunning operation and return its name."""
    if not project or not access_token:
        raise ValueError("Google Cloud project and access token are required")

    url = f"{_model_url(project, location, model_id)}:predictLongRunning"
    client = http_client or httpx.AsyncClient(timeout=timeout)
    own_client = http_client is None

    try:
        resp = await client.post(url, json=build_request(raw), headers=_headers(access_token))
        resp.raise_for_status()
        operation = resp.json().get("name")
    finally:
        if own_client:
            await client.aclose()

    if not operation:
        raise RuntimeError(f"Vertex AI returned no operation name for {model_id}")
    logger.info("Vertex AI operation %s started", operation)
    return operation


async def fetch_operation(
    operation_name: str,
    *,
    project: str,
    access_token: str,
    location: str = "us-central1",
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> dict[str, Any]:
    """Fetch the long-running operation (``done``/``error``/``response``)."""
    model_id = model_from_operation(operation_name)
    url = f"{_model_url(project, location, model_id)}:fetchPredictOperation"
    client = http_client or httpx.AsyncClient(timeout=timeout)
    own_client = http_client is None

    try:
        resp = await client.post(
            url, json={"operationName": operation_name}, headers=_headers(access_token)
        )
        resp.raise_for_status()
        data = resp.json()
    finally:
        if own_client:
            await client.aclose()

    logger.debug("Vertex AI operation %s done=%s", operation_name, data.get("done"))
    return data
