"""Flatten MDX/Markdown bodies into plain text for lexical search."""

from __future__ import annotations

import re

CODE_FENCE_PATTERN = re.compile(r"```.*?```", re.DOTALL)
TAG_PATTERN = re.compile(r"<[^>]+>")
INLINE_CODE_PATTERN = re.compile(r"`[^`]*`")
MARKUP_PUNCTUATION_PATTERN = re.compile(r"[#>*_\-\[\]()!]")
WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_text(body: str | None) -> str:
    """
    Strip markup from a resolved document body.

    Fenced blocks must be removed before inline code spans, and tags before
    markup punctuation. Normalizing already-normalized text is a no-op.
    """
    if not body:
        return ""
    text = CODE_FENCE_PATTERN.sub(" ", body)
    text = TAG_PATTERN.sub(" ", text)
    text = INLINE_CODE_PATTERN.sub(" ", text)
    text = MARKUP_PUNCTUATION_PATTERN.sub(" ", text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


__all__ = ["normalize_text"]
