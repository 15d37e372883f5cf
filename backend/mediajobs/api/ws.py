"""WebSocket endpoint for live job transitions.

Relays the Redis Pub/Sub channel of one job to a connected client, so
workers in other processes can report progress without shared memory.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from mediajobs.services.pubsub import listen_pubsub, subscribe_job

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/jobs/{job_id}")
async def ws_job(ws: WebSocket, job_id: str):
    """Stream ``job_update`` messages for ``job_id``; answers ``ping`` with ``pong``."""
    await ws.accept()
    logger.info("WS connected: job=%s", job_id)

    pubsub = None
    listener_task = None
    try:
        pubsub = await subscribe_job(job_id)
        listener_task = asyncio.create_task(_relay_pubsub_to_ws(pubsub, ws, job_id))

        while True:
            data = await ws.receive_text()
            if data == "ping":
                await ws.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info("WS disconnected: job=%s", job_id)
    except Exception as exc:
        logger.warning("WS error for job=%s: %s", job_id, exc)
    finally:
        if listener_task:
            listener_task.cancel()
        if pubsub:
            await pubsub.unsubscribe()
            await pubsub.close()


async def _relay_pubsub_to_ws(pubsub, ws: WebSocket, job_id: str):
    try:
        async for message in listen_pubsub(pubsub):
            try:
                await ws.send_json(message)
            except Exception:
                break  # WebSocket closed
    except asyncio.CancelledError:
        pass
    except Exception as exc:
        logger.warning("Pub/Sub relay error for job=%s: %s", job_id, exc)
