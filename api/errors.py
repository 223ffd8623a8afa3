"""Map gateway errors to HTTP responses.

One handler for the whole GatewayError tree; the status comes from
ERROR_STATUS by walking the exception's MRO, so subclasses inherit the
status of their parent unless listed themselves.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gateway.errors import (
    ConfigurationError,
    EventNotFound,
    GatewayError,
    InvalidCredentials,
    NoCredentials,
    OAuthExchangeFailed,
    RemoteError,
    RetriesExhausted,
    SignatureInvalid,
    UnsupportedEvents,
    UnsupportedFormat,
    UnsupportedPlatform,
)

logger = structlog.get_logger(__name__)

ERROR_STATUS: dict[type[GatewayError], int] = {
    UnsupportedPlatform: 404,
    EventNotFound: 404,
    NoCredentials: 401,
    InvalidCredentials: 401,
    SignatureInvalid: 401,
    OAuthExchangeFailed: 400,
    UnsupportedFormat: 400,
    UnsupportedEvents: 400,
    RemoteError: 502,
    RetriesExhausted: 409,
    ConfigurationError: 500,
}


def status_for(exc: GatewayError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    status_code = status_for(exc)
    body: dict = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, RemoteError):
        body["platform_status"] = exc.status_code
        body["platform_status_text"] = exc.status_text

    log = logger.error if status_code >= 500 else logger.warning
    log("gateway_error", error=type(exc).__name__, status=status_code, path=request.url.path)
    return JSONResponse(status_code=status_code, content=body)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_error_handler)
