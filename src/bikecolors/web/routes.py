"""Public and admin HTTP routes."""

from dataclasses import dataclass

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response, StreamingResponse
from fastapi.templating import Jinja2Templates

from ..config import AppSettings
from ..errors import NotFoundError, ValidationError
from ..logging_config import get_logger
from ..services.gallery import GalleryService
from ..services.intake import IntakeService, UploadedImage
from ..services.moderation import ModerationService
from ..services.storage import PENDING_PREFIX, PUBLISHED_PREFIX
from .caching import IMAGE_MAX_AGE, MISSING_MAX_AGE, ROBOTS_MAX_AGE, CachePolicy

logger = get_logger(__name__)

ROBOTS_TXT = "# robots welcome\n"


@dataclass
class AppServices:
    """Everything a request handler needs, built once per application."""

    settings: AppSettings
    intake: IntakeService
    moderation: ModerationService
    gallery: GalleryService
    cache_policy: CachePolicy
    templates: Jinja2Templates


def get_services(request: Request) -> AppServices:
    return request.app.state.services


public_router = APIRouter()
admin_router = APIRouter(prefix="/_admin")


def stream_image(services: AppServices, prefix: str, name: str) -> Response:
    """Proxy one stored image, with cache headers for hits and confirmed misses."""
    if not services.gallery.is_servable_name(name):
        return PlainTextResponse("404 page not found", status_code=404)

    try:
        stream, content_type = services.gallery.open_image(prefix, name)
    except NotFoundError:
        response = PlainTextResponse("404 page not found", status_code=404)
        services.cache_policy.replace(response.headers, MISSING_MAX_AGE)
        return response

    response = StreamingResponse(iter(stream), media_type=content_type)
    services.cache_policy.apply(response.headers, IMAGE_MAX_AGE)
    return response


@public_router.get("/", response_class=HTMLResponse)
def index(request: Request, services: AppServices = Depends(get_services)):
    images = services.gallery.list_published()
    return services.templates.TemplateResponse(request, "index.html", {"images": images})


@public_router.get("/robots.txt", response_class=PlainTextResponse)
def robots_txt(services: AppServices = Depends(get_services)):
    response = PlainTextResponse(ROBOTS_TXT)
    services.cache_policy.apply(response.headers, ROBOTS_MAX_AGE)
    return response


@public_router.get("/images/{name}")
def published_image(name: str, services: AppServices = Depends(get_services)):
    return stream_image(services, PUBLISHED_PREFIX, name)


@public_router.get("/upload", response_class=HTMLResponse)
def upload_form(request: Request, services: AppServices = Depends(get_services)):
    return services.templates.TemplateResponse(
        request, "upload.html", {"max_upload_size": services.settings.max_upload_size}
    )


@public_router.post("/upload", response_class=PlainTextResponse)
def upload_post(
    img: UploadFile | None = File(None),
    copyright: str = Form("", alias="Copyright"),
    bike: str = Form("", alias="Bike"),
    colors: str = Form("", alias="Colors"),
    src: str = Form("", alias="SRC"),
    services: AppServices = Depends(get_services),
):
    upload = None
    if img is not None and img.filename:
        upload = UploadedImage(stream=img.file, content_type=img.content_type, filename=img.filename, size=img.size)

    fields = {"Copyright": copyright, "Bike": bike, "Colors": colors, "SRC": src}
    message = services.intake.submit(fields, upload)
    return PlainTextResponse(message)


@admin_router.get("/", response_class=HTMLResponse)
def admin_queue(request: Request, services: AppServices = Depends(get_services)):
    # Materialised before rendering so a bad sidecar fails the whole page cleanly
    pending = list(services.moderation.list_pending())
    return services.templates.TemplateResponse(request, "admin.html", {"pending": pending})


@admin_router.post("/")
def admin_action(
    image_file: str = Form(""),
    action: str = Form("approve"),
    services: AppServices = Depends(get_services),
):
    if action == "approve":
        services.moderation.approve(image_file)
    elif action == "reject":
        services.moderation.reject(image_file)
    else:
        raise ValidationError(f"unknown action {action!r}", code="unknown_action")
    return RedirectResponse("/_admin/", status_code=302)


@admin_router.get("/images/{name}")
def pending_image(name: str, services: AppServices = Depends(get_services)):
    return stream_image(services, PENDING_PREFIX, name)
