"""ASGI middleware, transport security checks and error handling."""

from .activity import RequestActivityMiddleware
from .error_handlers import (
    error_body,
    http_exception_handler,
    internal_exception_handler,
    register_error_handlers,
)
from .security import (
    is_acceptable,
    is_allowed_origin,
    origin_regex,
    wants_event_stream,
)

__all__ = [
    "RequestActivityMiddleware",
    "register_error_handlers",
    "error_body",
    "http_exception_handler",
    "internal_exception_handler",
    "is_acceptable",
    "is_allowed_origin",
    "origin_regex",
    "wants_event_stream",
]
