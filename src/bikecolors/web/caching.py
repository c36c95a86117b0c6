"""HTTP caching headers."""

import time
from collections.abc import MutableMapping
from datetime import timedelta
from email.utils import formatdate

from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

ROBOTS_MAX_AGE = timedelta(days=7)
STATIC_MAX_AGE = timedelta(days=7)
IMAGE_MAX_AGE = timedelta(hours=6)
MISSING_MAX_AGE = timedelta(minutes=10)


class CachePolicy:
    """Sets Cache-Control and Expires; does nothing in dev mode."""

    def __init__(self, dev_mode: bool = False) -> None:
        self.dev_mode = dev_mode

    def apply(self, headers: MutableMapping[str, str], duration: timedelta) -> None:
        """Set expiry headers unless a Cache-Control header is already present."""
        if self.dev_mode:
            return
        if headers.get("Cache-Control") or headers.get("cache-control"):
            return
        seconds = int(duration.total_seconds())
        headers["Cache-Control"] = f"public, max-age={seconds}"
        headers["Expires"] = formatdate(time.time() + seconds, usegmt=True)

    def replace(self, headers: MutableMapping[str, str], duration: timedelta) -> None:
        """Overwrite any previous expiry headers."""
        self.clear(headers)
        self.apply(headers, duration)

    @staticmethod
    def clear(headers: MutableMapping[str, str]) -> None:
        for name in ("Cache-Control", "Expires"):
            if name in headers:
                del headers[name]


class CachedStaticFiles(StaticFiles):
    """StaticFiles that marks successful responses as long-lived."""

    def __init__(self, *args, cache_policy: CachePolicy, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.cache_policy = cache_policy

    async def get_response(self, path: str, scope: Scope) -> Response:
        response = await super().get_response(path, scope)
        if response.status_code in (200, 304):
            self.cache_policy.apply(response.headers, STATIC_MAX_AGE)
        return response
