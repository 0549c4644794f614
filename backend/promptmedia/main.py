from __future__ import annotations
"""PromptMedia: FastAPI application entry point.

Wires the backends, task registry and dispatcher into ``app.state``,
configures CORS and renders every ``MediaError`` as a JSON envelope.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from promptmedia.api.router import api_router
from promptmedia.config import Settings, get_settings
from promptmedia.errors import MediaError
from promptmedia.services.dispatcher import ModeDispatcher
from promptmedia.services.image_source import ImageSourceResolver
from promptmedia.services.operation_poller import OperationPoller, PollPolicy
from promptmedia.services.providers import create_image_backend, create_video_backend
from promptmedia.services.providers.base import ImageBackend, VideoBackend
from promptmedia.services.strategies import build_strategies
from promptmedia.services.task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(MediaError)
    async def media_error_handler(request: Request, exc: MediaError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"error": "Endpoint not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(
    settings: Settings | None = None,
    *,
    image_backend: ImageBackend | None = None,
    video_backend: VideoBackend | None = None,
    registry: TaskRegistry | None = None,
    poll_policy: PollPolicy | None = None,
) -> FastAPI:
    """Build the application. Backends and registry may be injected for tests."""
    settings = settings or get_settings()
    configure_logging(settings)

    http_client = httpx.AsyncClient()
    image_backend = image_backend or create_image_backend(settings)
    video_backend = video_backend or create_video_backend(settings, http_client=http_client)
    registry = registry or TaskRegistry(
        capacity=settings.TASK_REGISTRY_CAPACITY,
        ttl_seconds=settings.TASK_TTL_SECONDS,
    )
    poller = OperationPoller(video_backend, poll_policy or PollPolicy.from_settings(settings))
    resolver = ImageSourceResolver(
        http_client,
        timeout=settings.IMAGE_DOWNLOAD_TIMEOUT,
        max_bytes=settings.MAX_UPLOAD_BYTES,
    )
    dispatcher = ModeDispatcher(
        build_strategies(settings, image_backend, video_backend, poller),
        registry,
        resolver,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s starting up...", settings.APP_NAME)
        logger.info("USE_MOCK_API: %s", settings.USE_MOCK_API)
        logger.info(
            "Task registry: capacity=%d ttl=%.0fs", settings.TASK_REGISTRY_CAPACITY, settings.TASK_TTL_SECONDS,
        )
        yield
        await http_client.aclose()
        logger.info("%s shut down", settings.APP_NAME)

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Prompt-driven image, description and video generation",
        version="0.1.0",
        lifespan=lifespan,
        redirect_slashes=False,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    async def health():
        return {"status": "OK", "message": "Image Prompt Server is running"}

    return app


app = create_app()
