"""Master API router: mounts all sub-routers."""

from fastapi import APIRouter

from mediajobs.api.jobs import router as jobs_router
from mediajobs.api.models import router as models_router
from mediajobs.api.webhooks import router as webhooks_router
from mediajobs.api.ws import router as ws_router

api_router = APIRouter(prefix="/api")

api_router.include_router(jobs_router, prefix="/jobs", tags=["Jobs"])
api_router.include_router(models_router, prefix="/models", tags=["Models"])
api_router.include_router(webhooks_router, prefix="/webhooks", tags=["Webhooks"])
api_router.include_router(ws_router, tags=["WebSocket"])
