"""MCP streamable HTTP endpoint with per-connection handlers and lifecycle tracking."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from fastapi.responses import JSONResponse
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS
from starlette.requests import Request
from starlette.types import Message, Receive, Scope, Send

from ..mcp.server import create_server
from ..services.docs_index import DocsIndex
from ..services.lifecycle import ConnectionManager
from ..services.prompt_loader import PromptLoader
from .middleware.security import (
    EVENT_STREAM_MEDIA_TYPE,
    is_acceptable,
    is_allowed_origin,
    wants_event_stream,
)

logger = logging.getLogger(__name__)

DEFAULT_PROTOCOL_VERSION = "2025-03-26"
PROTOCOL_VERSION_HEADER = b"mcp-protocol-version"

INVALID_REQUEST = -32600
INTERNAL_ERROR = -32603

STREAM_HEADERS: List[Tuple[bytes, bytes]] = [
    (b"x-accel-buffering", b"no"),
    (b"cache-control", b"no-cache, no-store, must-revalidate"),
    (b"connection", b"keep-alive"),
]
_STREAM_HEADER_NAMES = {name for name, _ in STREAM_HEADERS} | {b"content-length"}


def jsonrpc_error(status_code: int, code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
    )


def _with_header(scope: Scope, name: bytes, value: Optional[bytes]) -> Scope:
    """Copy of ``scope`` with header ``name`` replaced (or removed when value is None)."""
    headers = [(key, val) for key, val in scope.get("headers", []) if key.lower() != name]
    if value is not None:
        headers.append((name, value))
    return {**scope, "headers": headers}


class _ResponseTracker:
    """Wrap ``send`` to note whether a response started and to fix up event-stream headers."""

    def __init__(self, send: Send) -> None:
        self._send = send
        self.started = False

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.started = True
            headers = list(message.get("headers", []))
            content_type = next(
                (value for key, value in headers if key.lower() == b"content-type"), b""
            )
            if content_type.startswith(EVENT_STREAM_MEDIA_TYPE.encode()):
                headers = [
                    (key, value) for key, value in headers if key.lower() not in _STREAM_HEADER_NAMES
                ]
                headers.extend(STREAM_HEADERS)
                message = {**message, "headers": headers}
        await self._send(message)


class McpEndpoint:
    """
    ASGI endpoint serving MCP over streamable HTTP.

    Every request gets a fresh MCP server and a fresh stateless transport so
    concurrent connections never share framing state; only the index is shared.
    """

    def __init__(
        self,
        *,
        index: DocsIndex,
        lifecycle: ConnectionManager,
        allowed_origins: List[str],
        prompts: PromptLoader | None = None,
    ) -> None:
        self.index = index
        self.lifecycle = lifecycle
        self.allowed_origins = list(allowed_origins)
        self.prompts = prompts or PromptLoader()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        method = request.method

        origin = request.headers.get("origin")
        if origin and not is_allowed_origin(origin, self.allowed_origins):
            logger.warning("Rejected request from invalid origin", extra={"origin": origin})
            response = jsonrpc_error(403, INVALID_REQUEST, "Invalid Origin header")
            await response(scope, receive, send)
            return

        accept = request.headers.get("accept")
        if not is_acceptable(accept):
            logger.warning("Rejected request with invalid Accept header", extra={"accept": accept})
            response = jsonrpc_error(
                400,
                INVALID_REQUEST,
                "Accept header must include application/json or text/event-stream",
            )
            await response(scope, receive, send)
            return

        protocol_version = request.headers.get("mcp-protocol-version") or DEFAULT_PROTOCOL_VERSION
        if protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            logger.warning(
                "Unsupported MCP protocol version, continuing with default",
                extra={"protocol_version": protocol_version},
            )
            scope = _with_header(scope, PROTOCOL_VERSION_HEADER, None)
        logger.info(
            "MCP request",
            extra={"method": method, "protocol_version": protocol_version},
        )

        long_lived = method == "GET"
        if long_lived and not self.lifecycle.accepts_streams():
            logger.info("Rejecting new SSE connection during drain")
            response = jsonrpc_error(503, INTERNAL_ERROR, "Server draining")
            await response(scope, receive, send)
            return

        streaming = long_lived or wants_event_stream(accept)
        if method == "POST":
            # the SDK insists on both media types; the reply mode is chosen via json_response
            scope = _with_header(scope, b"accept", b"application/json, text/event-stream")
        elif long_lived:
            scope = _with_header(scope, b"accept", EVENT_STREAM_MEDIA_TYPE.encode())
        if long_lived:
            logger.info(
                "SSE stream initiated",
                extra={"last_event_id": request.headers.get("last-event-id") or "none"},
            )

        await self._serve(scope, receive, send, streaming=streaming, long_lived=long_lived)

    async def _serve(
        self, scope: Scope, receive: Receive, send: Send, *, streaming: bool, long_lived: bool
    ) -> None:
        handler = create_server(self.index, self.prompts)
        transport = StreamableHTTPSessionManager(
            app=handler._mcp_server,
            event_store=None,
            json_response=not streaming,
            stateless=True,
        )
        connection = self.lifecycle.open(
            transport=transport, handler=handler, long_lived=long_lived
        )
        self.lifecycle.activate(connection)
        tracker = _ResponseTracker(send)

        try:
            async with asyncio.timeout(self.lifecycle.request_timeout):
                async with transport.run():
                    await transport.handle_request(scope, receive, tracker)
        except TimeoutError:
            logger.warning(
                "MCP request timed out",
                extra={
                    "connection_id": connection.id,
                    "timeout_seconds": self.lifecycle.request_timeout,
                },
            )
            if not tracker.started:
                response = jsonrpc_error(504, INTERNAL_ERROR, "Request timed out")
                await response(scope, receive, send)
        except asyncio.CancelledError:
            if not connection.closed:
                raise
            task = asyncio.current_task()
            if task is not None:
                task.uncancel()
            logger.info("MCP connection closed by server", extra={"connection_id": connection.id})
        except Exception as exc:
            logger.exception("MCP error: %s", exc)
            if not tracker.started:
                response = jsonrpc_error(500, INTERNAL_ERROR, "Internal server error")
                await response(scope, receive, send)
        finally:
            self.lifecycle.close(connection)


__all__ = ["McpEndpoint", "jsonrpc_error", "STREAM_HEADERS"]
