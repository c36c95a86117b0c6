"""
Request body size limit for the upload endpoint.

The declared Content-Length is checked up front; chunked bodies are counted
as they stream in and cut off as soon as they pass the bound.
"""

from starlette.datastructures import Headers
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..errors import ErrorHandler, RequestTooLargeError


class UploadSizeLimit:
    """ASGI middleware answering 413 for oversized POST bodies on one path."""

    def __init__(self, app: ASGIApp, path: str, max_size: int, error_handler: ErrorHandler | None = None) -> None:
        self.app = app
        self.path = path
        self.max_size = max_size
        self.error_handler = error_handler or ErrorHandler()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "POST" or scope["path"] != self.path:
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length", "")
        if length.isdigit() and int(length) > self.max_size:
            await self._reject(RequestTooLargeError(int(length), self.max_size), scope, receive, send)
            return

        received = 0
        overflow: RequestTooLargeError | None = None
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received, overflow
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_size:
                    overflow = RequestTooLargeError(received, self.max_size)
                    raise overflow
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started
            # Whatever the app answers after the body was cut off is replaced by the 413
            if overflow is not None and not response_started:
                return
            response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except RequestTooLargeError as e:
            if e is not overflow or response_started:
                raise

        if overflow is not None and not response_started:
            await self._reject(overflow, scope, receive, send)

    async def _reject(self, error: RequestTooLargeError, scope: Scope, receive: Receive, send: Send) -> None:
        info = self.error_handler.handle_error(error, {"path": scope["path"]})
        response = PlainTextResponse(info.user_message, status_code=info.status_code)
        await response(scope, receive, send)
