"""JSON error responses for the administrative HTTP surface."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

ERROR_CODES: Dict[int, str] = {
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "internal_error",
    status.HTTP_503_SERVICE_UNAVAILABLE: "unavailable",
}
UNAVAILABLE_MESSAGE = "Service unavailable, retry against another instance"


def error_body(status_code: int, detail: Any = None) -> Dict[str, Any]:
    """
    Render ``{error, message, detail}``.

    ``detail`` may be a plain message or a dict carrying its own ``error`` and
    ``message``; anything else in the dict is passed through as ``detail``.
    """
    error = ERROR_CODES.get(status_code, "error")
    if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        message = UNAVAILABLE_MESSAGE
    else:
        message = "Internal server error" if status_code >= 500 else "Request failed"
    extra = None

    if isinstance(detail, dict):
        error = detail.get("error", error)
        message = detail.get("message", message)
        extra = {k: v for k, v in detail.items() if k not in {"error", "message"}} or None
    elif isinstance(detail, str) and detail and status_code != status.HTTP_503_SERVICE_UNAVAILABLE:
        message = detail
    return {"error": error, "message": message, "detail": extra}


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def internal_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach shared exception handlers to the FastAPI application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, internal_exception_handler)


__all__ = [
    "error_body",
    "register_error_handlers",
    "http_exception_handler",
    "internal_exception_handler",
]
