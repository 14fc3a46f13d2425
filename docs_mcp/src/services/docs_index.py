"""In-memory documentation index with lexical search."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import threading
import time
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..models.document import DocRecord, RouteEntry, SearchHit
from .config import LoaderConfig
from .loader import ContentLoader

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 8
MAX_SEARCH_LIMIT = 25
EXCERPT_BEFORE = 80
EXCERPT_AFTER = 160
EXCERPT_FALLBACK = 240

TITLE_MATCH_SCORE = 50
ROUTE_MATCH_SCORE = 20
TEXT_MATCH_SCORE = 10
TITLE_TOKEN_SCORE = 5
TEXT_TOKEN_SCORE = 2


class DocumentSource(Protocol):
    def load_all(self) -> List[DocRecord]: ...


def normalize_route(route: str) -> str:
    return route if route.startswith("/") else f"/{route}"


def score_document(document: DocRecord, query: str, tokens: Sequence[str]) -> int:
    """Score one document against a lower-cased, trimmed query."""
    title = document.title.lower()
    route = document.route.lower()
    text = document.search_text.lower()

    score = 0
    if query in title:
        score += TITLE_MATCH_SCORE
    if query in route:
        score += ROUTE_MATCH_SCORE
    if query in text:
        score += TEXT_MATCH_SCORE

    if len(tokens) > 1:
        for token in tokens:
            if token in text:
                score += TEXT_TOKEN_SCORE
            if token in title:
                score += TITLE_TOKEN_SCORE
    return score


def build_excerpt(search_text: str, query: str) -> str:
    """Window of text around the first match, or the leading text when the query is absent."""
    position = search_text.lower().find(query)
    if position >= 0:
        start = max(0, position - EXCERPT_BEFORE)
        excerpt = search_text[start : position + len(query) + EXCERPT_AFTER]
    else:
        excerpt = search_text[:EXCERPT_FALLBACK]
    return excerpt.strip()


@dataclass(frozen=True)
class IndexSnapshot:
    """Immutable view of one complete rebuild."""

    documents: Tuple[DocRecord, ...] = ()
    by_route: Mapping[str, DocRecord] = field(default_factory=lambda: MappingProxyType({}))
    by_file_path: Mapping[str, DocRecord] = field(default_factory=lambda: MappingProxyType({}))
    built_at: Optional[datetime] = None

    @classmethod
    def build(cls, documents: Iterable[DocRecord]) -> "IndexSnapshot":
        """Index documents in order; a repeated route keeps the later document."""
        by_route: dict[str, DocRecord] = {}
        for document in documents:
            previous = by_route.pop(document.route, None)
            if previous is not None:
                logger.warning(
                    "Duplicate route, keeping later document",
                    extra={
                        "route": document.route,
                        "kept": document.file_path,
                        "dropped": previous.file_path,
                    },
                )
            by_route[document.route] = document

        ordered = tuple(by_route.values())
        return cls(
            documents=ordered,
            by_route=MappingProxyType(by_route),
            by_file_path=MappingProxyType({doc.file_path: doc for doc in ordered}),
            built_at=datetime.now(timezone.utc),
        )


class DocsIndex:
    """
    Serve lookups and search over the most recent complete snapshot.

    ``rebuild`` constructs a new snapshot off to the side and publishes it with
    a single reference assignment. Every read method takes the reference once,
    so a call sees either the old or the new document set, never a mix.
    """

    def __init__(
        self,
        config: LoaderConfig | None = None,
        *,
        source: DocumentSource | None = None,
    ) -> None:
        if source is None:
            source = ContentLoader(config or LoaderConfig())
        self.source = source
        self._snapshot = IndexSnapshot()
        self._rebuild_lock = threading.Lock()

    @classmethod
    def from_documents(cls, documents: Iterable[DocRecord]) -> "DocsIndex":
        """Build an index around a fixed set of documents."""
        records = list(documents)
        index = cls(source=_StaticSource(records))
        index.rebuild()
        return index

    @property
    def snapshot(self) -> IndexSnapshot:
        return self._snapshot

    @property
    def built_at(self) -> Optional[datetime]:
        return self._snapshot.built_at

    def __len__(self) -> int:
        return len(self._snapshot.documents)

    def rebuild(self) -> int:
        """
        Reload every document and swap in the new snapshot.

        Per-document failures are absorbed by the loader; enumeration failures
        propagate and leave the current snapshot in place. Returns the new
        document count.
        """
        with self._rebuild_lock:
            start_time = time.time()
            snapshot = IndexSnapshot.build(self.source.load_all())
            self._snapshot = snapshot

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Docs index rebuilt",
            extra={
                "document_count": len(snapshot.documents),
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        return len(snapshot.documents)

    def list_routes(self, prefix: str | None = None) -> List[RouteEntry]:
        """Return route entries starting with ``prefix`` (all when empty), sorted by route."""
        snapshot = self._snapshot
        cleaned = (prefix or "").strip()
        entries = [
            RouteEntry(route=doc.route, title=doc.title, file_path=doc.file_path)
            for doc in snapshot.documents
            if not cleaned or doc.route.startswith(cleaned)
        ]
        return sorted(entries, key=lambda entry: entry.route)

    def get_by_route(self, route: str) -> Optional[DocRecord]:
        return self._snapshot.by_route.get(normalize_route(route))

    def get_by_file_path(self, file_path: str) -> Optional[DocRecord]:
        return self._snapshot.by_file_path.get(file_path)

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[SearchHit]:
        """Score every document, drop non-matches, keep the top ``limit`` (max 25)."""
        normalized = (query or "").strip().lower()
        if not normalized:
            return []
        limit = max(1, min(int(limit), MAX_SEARCH_LIMIT))
        tokens = normalized.split()

        snapshot = self._snapshot
        scored = [
            (score_document(document, normalized, tokens), document)
            for document in snapshot.documents
        ]
        matches = [(score, document) for score, document in scored if score > 0]
        # sorted() is stable, so ties keep document order
        matches = sorted(matches, key=lambda item: item[0], reverse=True)[:limit]

        return [
            SearchHit(
                score=score,
                excerpt=build_excerpt(document.search_text, normalized),
                document=document,
            )
            for score, document in matches
        ]


class _StaticSource:
    def __init__(self, documents: List[DocRecord]) -> None:
        self._documents = documents

    def load_all(self) -> List[DocRecord]:
        return list(self._documents)


__all__ = [
    "DocsIndex",
    "IndexSnapshot",
    "DocumentSource",
    "build_excerpt",
    "score_document",
    "normalize_route",
    "DEFAULT_SEARCH_LIMIT",
    "MAX_SEARCH_LIMIT",
]
