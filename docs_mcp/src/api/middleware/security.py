"""Origin and Accept header checks for the MCP endpoint."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

JSON_MEDIA_TYPE = "application/json"
EVENT_STREAM_MEDIA_TYPE = "text/event-stream"
WILDCARD_MEDIA_TYPES = {"*/*", "application/*", "text/*"}


def _origin_pattern(allowed: str) -> str:
    """Regex for one allow-list entry; ``*`` matches exactly one host label."""
    if "*" not in allowed:
        return re.escape(allowed)
    return r"[^./:]+".join(re.escape(part) for part in allowed.split("*"))


def origin_regex(allowed_origins: Iterable[str]) -> str:
    """Single regex matching any allowed origin (for CORSMiddleware)."""
    return "^(?:" + "|".join(_origin_pattern(origin) for origin in allowed_origins) + ")$"


def is_allowed_origin(origin: Optional[str], allowed_origins: Iterable[str]) -> bool:
    """
    Check an Origin header against the allow-list.

    Requests without an Origin (non-browser clients) are allowed.
    """
    if not origin:
        return True
    origin = origin.rstrip("/")
    for allowed in allowed_origins:
        if "*" in allowed:
            if re.fullmatch(_origin_pattern(allowed), origin):
                return True
        elif origin == allowed:
            return True
    return False


def media_types(accept: Optional[str]) -> List[str]:
    if not accept:
        return []
    return [part.split(";", 1)[0].strip().lower() for part in accept.split(",") if part.strip()]


def is_acceptable(accept: Optional[str]) -> bool:
    """An absent Accept header is fine; a present one must allow JSON, SSE or a wildcard."""
    if accept is None:
        return True
    for media_type in media_types(accept):
        if media_type in {JSON_MEDIA_TYPE, EVENT_STREAM_MEDIA_TYPE} or media_type in WILDCARD_MEDIA_TYPES:
            return True
    return False


def wants_event_stream(accept: Optional[str]) -> bool:
    return EVENT_STREAM_MEDIA_TYPE in media_types(accept)


__all__ = [
    "JSON_MEDIA_TYPE",
    "EVENT_STREAM_MEDIA_TYPE",
    "is_acceptable",
    "is_allowed_origin",
    "media_types",
    "origin_regex",
    "wants_event_stream",
]
