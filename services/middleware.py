"""Request correlation: an ``X-Request-ID`` per HTTP exchange, stamped on log lines."""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "x-request-id"

# "-" outside a request (startup, background tasks)
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIdMiddleware:
    """Pure ASGI middleware binding a request id for the lifetime of a request.

    A client-supplied ``X-Request-ID`` is honoured; otherwise a short random
    id is minted. The id is echoed on the response, exposed as
    ``request.state.request_id`` and readable from :data:`request_id_var`
    by anything logging while the request is in flight.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        request_id = Headers(scope=scope).get(REQUEST_ID_HEADER) or new_request_id()
        scope.setdefault("state", {})["request_id"] = request_id

        async def stamp_response(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(REQUEST_ID_HEADER, request_id)
            await send(message)

        token = request_id_var.set(request_id)
        try:
            await self.app(scope, receive, stamp_response)
        finally:
            request_id_var.reset(token)


class RequestIdLogFilter(logging.Filter):
    """Stamp ``record.request_id`` so formatters can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def configure_logging(level: int = logging.INFO) -> None:
    """Root handler with the request-id format; idempotent."""
    root = logging.getLogger()
    for handler in root.handlers:
        if any(isinstance(f, RequestIdLogFilter) for f in handler.filters):
            return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdLogFilter())
    root.addHandler(handler)
    root.setLevel(level)
