"""Document index models."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class DocRecord(BaseModel):
    """One documentation file after loading and include resolution."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "file_path": "content/docs/guides/install.mdx",
                "route": "/guides/install",
                "title": "Install",
                "metadata": {"title": "Install", "description": "Set up the SDK"},
                "raw_body": "# Install\n\n<include>../shared/npm.mdx</include>",
                "resolved_body": "# Install\n\nnpm install journium",
                "search_text": "Install npm install journium",
                "warnings": [],
            }
        },
    )

    file_path: str = Field(..., description="Workspace-relative POSIX path")
    route: str = Field(..., description="Canonical URL path, always starts with '/'")
    title: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    raw_body: str = Field("", description="Body as authored, includes unresolved")
    resolved_body: str = Field("", description="Body with includes spliced in")
    search_text: str = Field("", description="Normalized plain text used for scoring")
    warnings: Tuple[str, ...] = Field(default=(), description="Non-fatal load warnings")


class RouteEntry(BaseModel):
    """Route listing entry."""

    model_config = ConfigDict(frozen=True)

    route: str
    title: str
    file_path: str


class SearchHit(BaseModel):
    """Scored search result with an excerpt of the matching text."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., gt=0)
    excerpt: str
    document: DocRecord


class PageInclude(BaseModel):
    """Which parts of a page docs_getPage should return (all default to included)."""

    mdx: Optional[bool] = Field(None, description="Include the resolved MDX body")
    text: Optional[bool] = Field(None, description="Include the plain-text rendition")
    frontmatter: Optional[bool] = Field(None, description="Include front matter metadata")


__all__ = ["DocRecord", "RouteEntry", "SearchHit", "PageInclude"]
