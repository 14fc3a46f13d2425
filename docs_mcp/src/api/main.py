"""FastAPI application factory for the documentation MCP server."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from .mcp_endpoint import McpEndpoint
from .middleware import RequestActivityMiddleware, origin_regex, register_error_handlers
from .routes import admin
from ..services.config import AppConfig, get_config
from ..services.docs_index import DocsIndex
from ..services.lifecycle import ConnectionManager
from ..services.prompt_loader import PromptLoader

logger = logging.getLogger(__name__)


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the application: MCP endpoint at /mcp plus /health and /reindex."""
    config = config or get_config()
    index = DocsIndex(config.docs)
    lifecycle = ConnectionManager.from_config(config)
    prompts = PromptLoader(config.prompts_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Running startup: building documentation index...")
        count = await run_in_threadpool(index.rebuild)
        logger.info(
            "Startup complete",
            extra={"documents": count, "host": config.host, "port": config.port},
        )
        lifecycle.start()
        try:
            yield
        finally:
            await lifecycle.shutdown()
            logger.info("Shutdown complete")

    app = FastAPI(
        title="Docs MCP Server",
        description="Serves a documentation tree to MCP clients over streamable HTTP",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.index = index
    app.state.lifecycle = lifecycle
    app.state.prompts = prompts

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=origin_regex(config.allowed_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["mcp-session-id"],
    )
    app.add_middleware(RequestActivityMiddleware, lifecycle=lifecycle)
    register_error_handlers(app)

    app.include_router(admin.router, tags=["admin"])
    app.add_route(
        "/mcp",
        McpEndpoint(
            index=index,
            lifecycle=lifecycle,
            allowed_origins=config.allowed_origins,
            prompts=prompts,
        ),
        methods=["GET", "POST", "DELETE"],
    )
    logger.info("MCP HTTP endpoint mounted at /mcp")
    return app


# module-level instance for `uvicorn docs_mcp.src.api.main:app` and docs_mcp.main
app = create_app()

__all__ = ["app", "create_app"]
