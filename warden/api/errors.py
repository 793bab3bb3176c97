"""
Error responses.

Every access control failure leaves the API as the same JSON shape,
with a status that keeps "not authenticated", "forbidden" and "not
found" apart.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from warden.auth.errors import AccessError, ConfigurationError, EntityLoadError, ErrorKind
from warden.core.utils import utc_now

logger = logging.getLogger(__name__)


STATUS_TITLES: dict[int, str] = {
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class ErrorResponse(BaseModel):
    """Body of every access control error response."""

    timestamp: datetime
    status: int
    error: str
    kind: ErrorKind
    message: str
    path: str


def error_response(request: Request, exc: AccessError) -> JSONResponse:
    message = exc.message
    if isinstance(exc, (ConfigurationError, EntityLoadError)):
        # Details are in the server log, not in the response
        message = type(exc).default_message

    body = ErrorResponse(
        timestamp=utc_now(),
        status=exc.status_code,
        error=STATUS_TITLES.get(exc.status_code, "Error"),
        kind=exc.kind,
        message=message,
        path=request.url.path,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


async def handle_access_error(request: Request, exc: AccessError) -> JSONResponse:
    if isinstance(exc, ConfigurationError):
        logger.error(f"Access control misconfigured on {request.url.path}: {exc.message}")
    return error_response(request, exc)


def install_error_handlers(app: FastAPI) -> None:
    """Map AccessError subclasses to their HTTP statuses."""
    app.add_exception_handler(AccessError, handle_access_error)
