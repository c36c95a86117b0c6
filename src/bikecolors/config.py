"""Configuration management for bikecolors.

This module provides centralized configuration management using environment
variables. Command-line flags are applied as keyword overrides on top of the
environment when the settings are loaded.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from .logging_config import get_logger

logger = get_logger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
BUNDLED_TEMPLATE_DIR = PACKAGE_DIR / "web" / "templates"
BUNDLED_STATIC_DIR = PACKAGE_DIR / "web" / "static"

DEFAULT_PORT = 8082
DEFAULT_BUCKET = "workcycles-colors"
DEFAULT_MAX_UPLOAD_SIZE = 15 * 1024 * 1024
DEFAULT_PENDING_LIMIT = 50
DEFAULT_GALLERY_LIMIT = 500


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self):
        """Initialize configuration."""
        self._cache = {}

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get configuration value from environment variables.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = os.getenv(key)

        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")  # type: ignore[assignment]
                    else:
                        value = bool(value)  # type: ignore[assignment]
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning(f"Failed to cast config value '{key}' to {cast_type.__name__}: {e}")
                value = default

        self._cache[cache_key] = value
        return value


@dataclass(frozen=True)
class AppSettings:
    """Resolved settings for one server process."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    dev_mode: bool = False
    log_requests: bool = False
    enable_admin: bool = False
    bucket_name: str = DEFAULT_BUCKET
    project_id: str | None = None
    storage_backend: str = "gcs"
    storage_timeout: float = 60.0
    max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE
    pending_limit: int = DEFAULT_PENDING_LIMIT
    gallery_limit: int = DEFAULT_GALLERY_LIMIT
    skip_corrupt_pending: bool = False
    template_dir: Path = BUNDLED_TEMPLATE_DIR
    static_dir: Path = BUNDLED_STATIC_DIR


def _asset_dir(name: str, bundled: Path, dev_mode: bool) -> Path:
    # Dev mode serves from the working tree so edits show up without reinstalling
    if dev_mode:
        local = Path.cwd() / name
        if local.is_dir():
            return local
    return bundled


def load_settings(config: Config | None = None, **overrides: Any) -> AppSettings:
    """
    Build AppSettings from the environment.

    Args:
        config: Config instance to read from (a fresh one by default)
        **overrides: Values that win over the environment (e.g. CLI flags);
            None values are ignored

    Returns:
        AppSettings: Resolved settings
    """
    config = config or Config()
    values: dict[str, Any] = {
        "host": config.get("HOST", "0.0.0.0"),
        "port": config.get("PORT", DEFAULT_PORT, int),
        "dev_mode": config.get("DEV_MODE", False, bool),
        "log_requests": config.get("LOG_REQUESTS", False, bool),
        "enable_admin": config.get("ENABLE_ADMIN", False, bool),
        "bucket_name": config.get("GCS_BUCKET", DEFAULT_BUCKET),
        "project_id": config.get("GOOGLE_CLOUD_PROJECT"),
        "storage_backend": config.get("STORAGE_BACKEND", "gcs").lower(),
        "storage_timeout": config.get("STORAGE_TIMEOUT", 60.0, float),
        "max_upload_size": config.get("MAX_UPLOAD_SIZE", DEFAULT_MAX_UPLOAD_SIZE, int),
        "pending_limit": config.get("PENDING_LIST_LIMIT", DEFAULT_PENDING_LIMIT, int),
        "gallery_limit": config.get("GALLERY_LIST_LIMIT", DEFAULT_GALLERY_LIMIT, int),
        "skip_corrupt_pending": config.get("SKIP_CORRUPT_PENDING", False, bool),
    }

    known = {f.name for f in fields(AppSettings)}
    for key, value in overrides.items():
        if key not in known:
            raise ValueError(f"Unknown setting '{key}'")
        if value is not None:
            values[key] = value

    if values["storage_backend"] not in ("gcs", "memory"):
        raise ValueError(f"Unsupported STORAGE_BACKEND '{values['storage_backend']}'")

    values.setdefault("template_dir", _asset_dir("templates", BUNDLED_TEMPLATE_DIR, values["dev_mode"]))
    values.setdefault("static_dir", _asset_dir("static", BUNDLED_STATIC_DIR, values["dev_mode"]))

    settings = AppSettings(**values)
    logger.debug(
        "settings_loaded",
        port=settings.port,
        dev_mode=settings.dev_mode,
        enable_admin=settings.enable_admin,
        bucket=settings.bucket_name,
        storage_backend=settings.storage_backend,
    )
    return settings
