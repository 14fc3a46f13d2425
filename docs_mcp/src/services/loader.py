"""Filesystem loading of documentation files."""

from __future__ import annotations

from fnmatch import fnmatchcase
import glob
import logging
from pathlib import Path
import re
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

import frontmatter

from ..models.document import DocRecord
from .config import LoaderConfig
from .text import normalize_text

logger = logging.getLogger(__name__)

INCLUDE_PATTERN = re.compile(r"<include>\s*(.*?)\s*</include>", re.DOTALL)
MARKUP_SUFFIX_PATTERN = re.compile(r"\.mdx?$", re.IGNORECASE)
REPEATED_SLASHES = re.compile(r"/{2,}")


class ContentLoaderError(Exception):
    """Raised when the documentation tree cannot be enumerated at all."""


def derive_route_from_path(file_path: str, docs_root_dir: str) -> str:
    """
    Map a workspace-relative file path to a route.

    ``content/docs/a/b/c.mdx`` -> ``/a/b/c``; ``content/docs/a/b/index.mdx`` -> ``/a/b``.
    """
    relative = file_path.replace("\\", "/")
    root = docs_root_dir.replace("\\", "/").rstrip("/")
    if root and relative.startswith(root + "/"):
        relative = relative[len(root) + 1 :]
    without_ext = MARKUP_SUFFIX_PATTERN.sub("", relative)
    segments = [segment for segment in without_ext.split("/") if segment]
    if segments and segments[-1] == "index":
        segments.pop()
    return REPEATED_SLASHES.sub("/", "/" + "/".join(segments))


def frontmatter_route(metadata: Dict[str, Any], route_keys: Sequence[str]) -> Optional[str]:
    """Return the first non-empty explicit route among ``route_keys``."""
    for key in route_keys:
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            cleaned = value.strip()
            return cleaned if cleaned.startswith("/") else f"/{cleaned}"
    return None


def derive_title(file_path: str, metadata: Dict[str, Any]) -> str:
    title = metadata.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    return MARKUP_SUFFIX_PATTERN.sub("", Path(file_path).name)


def is_excluded(route: str, patterns: Sequence[str]) -> bool:
    return any(fnmatchcase(route, pattern) for pattern in patterns)


class ContentLoader:
    """Enumerate, parse and resolve documentation files into DocRecords."""

    def __init__(self, config: LoaderConfig) -> None:
        self.config = config
        self.workspace_root = Path(config.workspace_root).resolve()

    def discover(self) -> List[str]:
        """
        Return workspace-relative POSIX paths matching the configured glob, sorted.

        Raises ContentLoaderError if the workspace root is not a directory.
        """
        if not self.workspace_root.is_dir():
            raise ContentLoaderError(f"Workspace root is not a directory: {self.workspace_root}")
        matches = glob.glob(self.config.docs_glob, root_dir=self.workspace_root, recursive=True)
        return sorted(
            Path(match).as_posix()
            for match in matches
            if (self.workspace_root / match).is_file()
        )

    def load_all(self) -> List[DocRecord]:
        """Load every discovered document, skipping unreadable and excluded ones."""
        documents: List[DocRecord] = []
        for file_path in self.discover():
            try:
                document = self.load_document(file_path)
            except Exception as exc:
                logger.warning(
                    "Skipping unreadable document",
                    extra={"file_path": file_path, "error": str(exc)},
                )
                continue
            if is_excluded(document.route, self.config.exclude_routes):
                logger.debug(
                    "Route excluded from index",
                    extra={"file_path": file_path, "route": document.route},
                )
                continue
            documents.append(document)
        return documents

    def load_document(self, file_path: str) -> DocRecord:
        """Read and parse one document. Raises on unreadable or malformed files."""
        absolute_path = (self.workspace_root / file_path).resolve()
        post = frontmatter.loads(absolute_path.read_text(encoding="utf-8"))
        metadata = dict(post.metadata or {})
        raw_body = post.content or ""

        warnings: List[str] = []
        resolved_body = self.resolve_includes(raw_body, absolute_path, warnings=warnings)

        route = None
        if self.config.use_frontmatter_routes:
            route = frontmatter_route(metadata, self.config.route_keys)
        if route is None:
            route = derive_route_from_path(file_path, self.config.docs_root_dir)

        return DocRecord(
            file_path=file_path,
            route=route,
            title=derive_title(file_path, metadata),
            metadata=metadata,
            raw_body=raw_body,
            resolved_body=resolved_body,
            search_text=normalize_text(resolved_body),
            warnings=tuple(warnings),
        )

    def resolve_includes(
        self,
        body: str,
        source: Path,
        *,
        warnings: Optional[List[str]] = None,
        _chain: Optional[FrozenSet[Path]] = None,
    ) -> str:
        """
        Splice ``<include>relative/path</include>`` targets into ``body``.

        Paths resolve against the directory of ``source``. Targets already on
        the current include chain, outside the workspace, or unreadable are
        left as literal markup and reported in ``warnings``.
        """
        source = source.resolve()
        chain = _chain if _chain is not None else frozenset({source})
        if warnings is None:
            warnings = []

        def _splice(match: re.Match[str]) -> str:
            reference = match.group(1)
            target = (source.parent / reference).resolve()
            if target in chain:
                message = f"Include cycle: {reference} (from {self._display(source)})"
            elif not target.is_relative_to(self.workspace_root):
                message = f"Include escapes workspace: {reference} (from {self._display(source)})"
            else:
                try:
                    included = frontmatter.loads(target.read_text(encoding="utf-8"))
                except Exception as exc:
                    message = f"Include failed: {reference} (from {self._display(source)}): {exc}"
                else:
                    return self.resolve_includes(
                        included.content or "",
                        target,
                        warnings=warnings,
                        _chain=chain | {target},
                    )
            logger.warning(message)
            warnings.append(message)
            return match.group(0)

        return INCLUDE_PATTERN.sub(_splice, body)

    def _display(self, path: Path) -> str:
        try:
            return path.relative_to(self.workspace_root).as_posix()
        except ValueError:
            return str(path)


__all__ = [
    "ContentLoader",
    "ContentLoaderError",
    "derive_route_from_path",
    "derive_title",
    "frontmatter_route",
    "is_excluded",
]
