from __future__ import annotations
"""Master API router: mounts all sub-routers."""

from fastapi import APIRouter

from promptmedia.api.metrics import router as metrics_router
from promptmedia.api.models import router as models_router
from promptmedia.api.process import router as process_router
from promptmedia.api.results import router as results_router

api_router = APIRouter(redirect_slashes=False)

api_router.include_router(process_router, tags=["Generation"])
api_router.include_router(results_router, tags=["Results"])
api_router.include_router(metrics_router, prefix="/metrics", tags=["Metrics"])
api_router.include_router(models_router, prefix="/models", tags=["Models"])
