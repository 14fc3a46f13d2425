"""ASGI middleware feeding request activity into drain detection."""

from __future__ import annotations

from starlette.types import ASGIApp, Receive, Scope, Send

from ...services.lifecycle import ConnectionManager


class RequestActivityMiddleware:
    """Record every HTTP request with the connection manager before routing it."""

    def __init__(self, app: ASGIApp, lifecycle: ConnectionManager) -> None:
        self.app = app
        self.lifecycle = lifecycle

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            self.lifecycle.record_request()
        await self.app(scope, receive, send)


__all__ = ["RequestActivityMiddleware"]
