"""Request context middleware using ContextVar.

Takes the request id from the X-Request-ID header (or generates one),
stores it in a ContextVar and binds it into structlog's context vars so
every log line emitted while handling the request carries it. The id is
echoed back on the response.
"""

import uuid
from contextvars import ContextVar

from structlog.contextvars import bind_contextvars, clear_contextvars
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# ---------------------------------------------------------------------------
# Context variable: task-safe request state
# ---------------------------------------------------------------------------

_current_request_id: ContextVar[str] = ContextVar("current_request_id", default="")


def get_request_id() -> str:
    """Return the id of the request being handled ("" outside a request)."""
    return _current_request_id.get()


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request_id, method and path for the duration of a request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        token = _current_request_id.set(request_id)
        bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_contextvars()
            _current_request_id.reset(token)
