"""FastMCP server exposing documentation search tools and prompts."""

from __future__ import annotations

import logging
import time
from typing import Annotated, Any, Dict, List, Literal, Optional

from fastmcp import FastMCP
from pydantic import Field

from ..models.document import DocRecord, PageInclude
from ..services.docs_index import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT, DocsIndex
from ..services.prompt_loader import ANSWER_FROM_DOCS, WRITE_MDX_SNIPPET, PromptLoader

logger = logging.getLogger(__name__)

SERVER_NAME = "docs-mcp"
SERVER_INSTRUCTIONS = (
    "Documentation MCP server. It searches and retrieves pages from the product documentation.\n\n"
    "Use the tools to:\n"
    "- docs_search: search for features, APIs and concepts; returns pages with excerpts\n"
    "- docs_getPage: retrieve a full page (resolved MDX, plain text, front matter) by route or file path\n"
    "- docs_listRoutes: explore the documentation structure, optionally under a route prefix\n\n"
    "The prompts provide pre-configured workflows for answering questions from the docs "
    "and drafting new MDX that matches the existing style."
)

NOT_FOUND = {"error": "Not found"}


def _log_tool_call(tool_name: str, start_time: float, **fields: Any) -> None:
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "MCP tool called",
        extra={"tool_name": tool_name, "duration_ms": f"{duration_ms:.2f}", **fields},
    )


def _page_payload(doc: DocRecord, include: Optional[PageInclude]) -> Dict[str, Any]:
    include = include or PageInclude()
    payload: Dict[str, Any] = {
        "route": doc.route,
        "title": doc.title,
        "filePath": doc.file_path,
    }
    if include.frontmatter is not False:
        payload["frontmatter"] = doc.metadata
    if include.mdx is not False:
        payload["mdx"] = doc.resolved_body
    if include.text is not False:
        payload["text"] = doc.search_text
    return payload


def create_server(index: DocsIndex, prompts: PromptLoader | None = None) -> FastMCP:
    """
    Build an MCP server bound to ``index``.

    Servers carry per-connection protocol state, so callers build one per
    connection. The index is shared and only read.
    """
    prompts = prompts or PromptLoader()
    mcp = FastMCP(SERVER_NAME, instructions=SERVER_INSTRUCTIONS)

    @mcp.tool(
        name="docs_search",
        description=(
            "Search the documentation. Returns relevant pages with excerpts showing the "
            "matched content. Use this to find information about specific features, APIs, or concepts."
        ),
    )
    def docs_search(
        query: str = Field(..., min_length=1, description="Search query string"),
        limit: int = Field(
            DEFAULT_SEARCH_LIMIT,
            ge=1,
            le=MAX_SEARCH_LIMIT,
            description="Maximum number of results to return (default: 8)",
        ),
    ) -> Dict[str, Any]:
        start_time = time.time()
        hits = [
            {
                "route": hit.document.route,
                "title": hit.document.title,
                "filePath": hit.document.file_path,
                "excerpt": hit.excerpt,
                "score": hit.score,
            }
            for hit in index.search(query, limit)
        ]
        _log_tool_call("docs_search", start_time, query=query, limit=limit, result_count=len(hits))
        return {"query": query, "hits": hits}

    @mcp.tool(
        name="docs_getPage",
        description=(
            "Retrieve a documentation page by its route (URL path) or file path. Returns the "
            "resolved MDX content, plain text, and front matter metadata. If both are given the "
            "route wins. Use this after searching to get complete details about a page."
        ),
    )
    def docs_get_page(
        route: Optional[str] = Field(
            default=None,
            description="URL route of the documentation page (e.g., /docs/getting-started)",
        ),
        filePath: Optional[str] = Field(
            default=None, description="Workspace-relative path to the documentation file"
        ),
        include: Optional[PageInclude] = Field(
            default=None, description="Which parts of the page to return (all by default)"
        ),
    ) -> Dict[str, Any]:
        start_time = time.time()
        doc = index.get_by_route(route) if route else None
        if doc is None and filePath:
            doc = index.get_by_file_path(filePath)

        _log_tool_call(
            "docs_getPage",
            start_time,
            route=route,
            file_path=filePath,
            found=doc is not None,
        )
        if doc is None:
            return dict(NOT_FOUND)
        return _page_payload(doc, include)

    @mcp.tool(
        name="docs_listRoutes",
        description=(
            "List available documentation routes. Optionally filter by a route prefix to explore "
            "a specific section of the docs."
        ),
    )
    def docs_list_routes(
        prefix: Optional[str] = Field(
            default=None, description="Optional prefix to filter routes (e.g., /docs/api)"
        ),
    ) -> Dict[str, Any]:
        start_time = time.time()
        routes: List[Dict[str, str]] = [
            {"route": entry.route, "title": entry.title, "filePath": entry.file_path}
            for entry in index.list_routes(prefix)
        ]
        _log_tool_call("docs_listRoutes", start_time, prefix=prefix, result_count=len(routes))
        return {"prefix": prefix, "routes": routes}

    @mcp.prompt(
        name="answer_from_docs",
        description=(
            "Answer a question grounded in the documentation: search, read the top pages, "
            "and cite them."
        ),
    )
    def answer_from_docs(
        question: Annotated[
            str, Field(min_length=1, description="The question to answer from the documentation")
        ],
    ) -> str:
        return prompts.load(ANSWER_FROM_DOCS, {"question": question})

    @mcp.prompt(
        name="write_mdx_snippet",
        description=(
            "Draft new MDX documentation that matches the existing docs style and terminology."
        ),
    )
    def write_mdx_snippet(
        topic: Annotated[str, Field(min_length=1, description="The topic or feature to document")],
        style: Annotated[
            Literal["concise", "tutorial", "reference"],
            Field(description="concise (brief overview), tutorial (step-by-step), or reference"),
        ] = "concise",
    ) -> str:
        return prompts.load(WRITE_MDX_SNIPPET, {"topic": topic, "style": style})

    return mcp


__all__ = ["create_server", "SERVER_NAME", "SERVER_INSTRUCTIONS"]
