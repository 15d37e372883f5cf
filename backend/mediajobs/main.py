"""mediajobs: FastAPI application entry point.

Mounts the job, model, webhook and WebSocket routes and manages the
database and provider HTTP client lifecycles.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mediajobs import __version__
from mediajobs.api.router import api_router
from mediajobs.config import get_settings
from mediajobs.database import close_db, init_db
from mediajobs.services.container import close_services

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: init DB on startup, close clients on shutdown."""
    logger.info("%s starting up...", settings.APP_NAME)
    logger.info("Webhook base URL: %s", settings.WEBHOOK_BASE_URL or "(none, polling only)")

    await init_db()

    yield

    await close_services()
    await close_db()
    logger.info("%s shut down", settings.APP_NAME)


app = FastAPI(
    title="mediajobs API",
    description="Cross-provider generative media jobs: submit, webhook/poll, normalize",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"service": settings.APP_NAME, "status": "running"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": settings.DB_HOST,
        "webhooks_enabled": bool(settings.WEBHOOK_BASE_URL),
    }
