"""Process-wide wiring of the reconciler and its collaborators.

The API (through ``Depends``) and the Celery tasks both go through
``get_reconciler()``; tests override it instead of touching module state.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Callable

from mediajobs.config import get_settings
from mediajobs.database import get_session_factory
from mediajobs.models.job import Job
from mediajobs.services.job_store import SqlAlchemyJobStore
from mediajobs.services.model_registry import get_model_registry
from mediajobs.services.polling import interval_policy_from_settings
from mediajobs.services.providers.gateway import ProviderGateway
from mediajobs.services.pubsub import publish_job_update
from mediajobs.services.reconciler import JobReconciler

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/api/webhooks/jobs/{job_id}"


def webhook_url_factory(base_url: str) -> Callable[[Job], str | None]:
    """Per-job callback URL under ``base_url``; None when no public URL is configured."""
    def build(job: Job) -> str | None:
        if not base_url:
            return None
        return base_url.rstrip("/") + WEBHOOK_PATH.format(job_id=job.job_id)
    return build


@lru_cache
def get_gateway() -> ProviderGateway:
    return ProviderGateway(get_model_registry(), get_settings())


@lru_cache
def get_reconciler() -> JobReconciler:
    settings = get_settings()
    gateway = get_gateway()
    logger.debug("Building reconciler (max_poll_attempts=%d)", settings.MAX_POLL_ATTEMPTS)
    return JobReconciler(
        get_model_registry(),
        SqlAlchemyJobStore(get_session_factory()),
        gateway.submit,
        gateway.fetch_status,
        interval_policy=interval_policy_from_settings(settings),
        max_poll_attempts=settings.MAX_POLL_ATTEMPTS,
        webhook_url_factory=webhook_url_factory(settings.WEBHOOK_BASE_URL),
        on_transition=publish_job_update,
    )


async def close_services() -> None:
    if get_gateway.cache_info().currsize:
        await get_gateway().aclose()
