"""Pydantic models for data validation and serialization."""

from .document import DocRecord, PageInclude, RouteEntry, SearchHit
from .health import ConnectionStats, HealthResponse, ReindexResponse

__all__ = [
    "DocRecord",
    "RouteEntry",
    "SearchHit",
    "PageInclude",
    "HealthResponse",
    "ConnectionStats",
    "ReindexResponse",
]
