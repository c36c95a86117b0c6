"""
FastAPI application factory for bikecolors.
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import humanize
import yaml
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.templating import Jinja2Templates
from google.cloud.exceptions import GoogleCloudError

from .. import __version__
from ..config import AppSettings, load_settings
from ..errors import BikeColorsError, ErrorHandler
from ..logging_config import get_logger
from ..services.gallery import GalleryService
from ..services.image_processor import ImageProcessor
from ..services.intake import IntakeService
from ..services.moderation import ModerationService
from ..services.storage import BlobStore, create_blob_store
from .caching import CachedStaticFiles, CachePolicy
from .limits import UploadSizeLimit
from .routes import AppServices, admin_router, public_router

logger = get_logger(__name__)
access_logger = get_logger("bikecolors.access")


def relative_time(value: datetime | None) -> str:
    if value is None:
        return ""
    return humanize.naturaltime(value, when=datetime.now(UTC))


def to_yaml(value: Any) -> str:
    return yaml.safe_dump(value, indent=2, sort_keys=False, default_flow_style=False, allow_unicode=True)


def build_templates(settings: AppSettings) -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(settings.template_dir))
    templates.env.auto_reload = settings.dev_mode
    templates.env.filters["comma"] = humanize.intcomma
    templates.env.filters["time"] = relative_time
    templates.env.filters["yaml"] = to_yaml
    return templates


def create_app(settings: AppSettings | None = None, store: BlobStore | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Resolved settings (loaded from the environment by default)
        store: Object store shared by every handler (built from settings by default)

    Returns:
        FastAPI: Configured application
    """
    settings = settings or load_settings()
    store = store or create_blob_store(settings)

    image_processor = ImageProcessor()
    cache_policy = CachePolicy(dev_mode=settings.dev_mode)
    services = AppServices(
        settings=settings,
        intake=IntakeService(store, image_processor, max_upload_size=settings.max_upload_size),
        moderation=ModerationService(
            store, pending_limit=settings.pending_limit, skip_corrupt=settings.skip_corrupt_pending
        ),
        gallery=GalleryService(store, image_processor, gallery_limit=settings.gallery_limit),
        cache_policy=cache_policy,
        templates=build_templates(settings),
    )
    error_handler = ErrorHandler()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "server_starting",
            port=settings.port,
            dev_mode=settings.dev_mode,
            enable_admin=settings.enable_admin,
            storage_backend=settings.storage_backend,
        )
        yield
        store.close()
        logger.info("server_stopped", error_counts=error_handler.get_error_statistics())

    app = FastAPI(
        title="bikecolors",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.services = services
    app.state.error_handler = error_handler

    @app.exception_handler(BikeColorsError)
    async def handle_app_error(request: Request, exc: BikeColorsError) -> PlainTextResponse:
        info = error_handler.handle_error(exc, {"path": request.url.path})
        return PlainTextResponse(info.user_message, status_code=info.status_code)

    @app.exception_handler(GoogleCloudError)
    async def handle_storage_error(request: Request, exc: GoogleCloudError) -> PlainTextResponse:
        info = error_handler.handle_error(exc, {"path": request.url.path})
        return PlainTextResponse(info.user_message, status_code=info.status_code)

    if settings.log_requests:

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            start = time.perf_counter()
            response = await call_next(request)
            access_logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_seconds=round(time.perf_counter() - start, 6),
                client=request.client.host if request.client else None,
            )
            return response

    app.add_middleware(
        UploadSizeLimit, path="/upload", max_size=settings.max_upload_size, error_handler=error_handler
    )

    app.include_router(public_router)
    if settings.enable_admin:
        app.include_router(admin_router)
        logger.warning("admin_routes_enabled", note="no authentication; restrict access at the network layer")

    app.mount(
        "/static",
        CachedStaticFiles(directory=str(settings.static_dir), cache_policy=cache_policy),
        name="static",
    )

    return app
