"""Service layer: configuration, content loading, indexing and connection lifecycle."""

from .config import AppConfig, LoaderConfig, get_config, reload_config
from .docs_index import DocsIndex, IndexSnapshot, build_excerpt, score_document
from .lifecycle import Connection, ConnectionManager, ConnectionState, DrainReason
from .loader import ContentLoader, ContentLoaderError, derive_route_from_path
from .prompt_loader import PromptLoader, PromptLoaderError
from .text import normalize_text

__all__ = [
    "AppConfig",
    "LoaderConfig",
    "get_config",
    "reload_config",
    "ContentLoader",
    "ContentLoaderError",
    "derive_route_from_path",
    "normalize_text",
    "DocsIndex",
    "IndexSnapshot",
    "build_excerpt",
    "score_document",
    "Connection",
    "ConnectionManager",
    "ConnectionState",
    "DrainReason",
    "PromptLoader",
    "PromptLoaderError",
]
