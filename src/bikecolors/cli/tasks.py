"""Command line tasks: run the server and moderate from a shell."""

import os
import sys

import structlog
import uvicorn
from dotenv import load_dotenv
from invoke import Collection, Context, Program, task

from .. import __version__
from ..config import load_settings
from ..logging_config import configure_structured_logging
from ..services.moderation import ModerationService
from ..services.storage import create_blob_store
from ..web.app import create_app

logger = structlog.get_logger()


def _load_env(env_file: str) -> None:
    if os.path.exists(env_file):
        logger.info(f"Loading environment variables from {env_file}")
        load_dotenv(dotenv_path=env_file)


@task(
    help={
        "dev_mode": "Disable cache headers and serve templates/static from the working tree",
        "log_requests": "Log every request",
        "enable_admin": "Expose the /_admin/ moderation routes",
        "port": "Port to listen on (defaults to $PORT or 8082)",
        "env_file": "Path to an environment file",
    }
)
def serve(
    c: Context,
    dev_mode: bool = False,
    log_requests: bool = False,
    enable_admin: bool = False,
    port: int = 0,
    env_file: str = ".env",
):
    """Start the web server."""
    _load_env(env_file)
    # Flags only ever switch features on; unset flags fall back to the environment
    settings = load_settings(
        dev_mode=dev_mode or None,
        log_requests=log_requests or None,
        enable_admin=enable_admin or None,
        port=port or None,
    )
    configure_structured_logging(dev_mode=settings.dev_mode)

    app = create_app(settings)
    logger.info("listening", host=settings.host, port=settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, access_log=False, log_config=None)


def _moderation(env_file: str) -> ModerationService:
    _load_env(env_file)
    settings = load_settings()
    return ModerationService(
        create_blob_store(settings),
        pending_limit=settings.pending_limit,
        skip_corrupt=settings.skip_corrupt_pending,
    )


@task(help={"limit": "Maximum number of submissions to show", "env_file": "Path to an environment file"})
def pending(c: Context, limit: int = 0, env_file: str = ".env"):
    """List the moderation queue."""
    moderation = _moderation(env_file)
    count = 0
    for item in moderation.list_pending(limit or None):
        photo = item.photo
        print(f"{photo.image}\t{photo.copyright}\t{', '.join(photo.color_tokens)}")
        count += 1
    print(f"\n{count} pending submission(s)")


@task(help={"name": "Stored image filename, e.g. <id>.jpg", "env_file": "Path to an environment file"})
def approve(c: Context, name: str, env_file: str = ".env"):
    """Publish a pending submission."""
    _moderation(env_file).approve(name)
    print(f"Approved {name}")


@task(help={"name": "Stored image filename, e.g. <id>.jpg", "env_file": "Path to an environment file"})
def reject(c: Context, name: str, env_file: str = ".env"):
    """Discard a pending submission."""
    _moderation(env_file).reject(name)
    print(f"Rejected {name}")


namespace = Collection.from_module(sys.modules[__name__])
program = Program(namespace=namespace, version=__version__, name="bikecolors", binary="bikecolors")
