"""Jinja2-based prompt templates for the documentation MCP prompts.

Templates are looked up in the configured prompts directory first, so a
deployment can reword them without a release. Built-in inline templates are
used when the directory or a given file does not exist.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jinja2

from .config import DEFAULT_PROMPTS_DIR

logger = logging.getLogger(__name__)

ANSWER_FROM_DOCS = "answer_from_docs.md"
WRITE_MDX_SNIPPET = "write_mdx_snippet.md"

INLINE_PROMPTS: Dict[str, str] = {
    ANSWER_FROM_DOCS: """You are a docs assistant. You MUST ground answers in the docs tool outputs. Use citations: (route, title).

Question: {{ question }}

Instructions:
1) Call docs_search with a focused query.
2) Call docs_getPage for the top 2-3 hits.
3) Answer using only those sources; include citations like: [title](route).
""",
    WRITE_MDX_SNIPPET: """You write MDX that matches an existing docs site tone. Prefer short sections, clear headings, and code blocks where useful.

Topic: {{ topic }}
Style: {{ style }}

Workflow:
- Use docs_search to find the closest existing pages/sections.
- Use docs_getPage to pull canonical terminology.
- Draft an MDX snippet with 2-4 headings and one example.
""",
}


class PromptLoaderError(Exception):
    """Raised when a prompt cannot be loaded."""

    pass


class PromptLoader:
    """Load and render Jinja2 prompt templates.

    Example:
        >>> loader = PromptLoader()
        >>> loader.load(ANSWER_FROM_DOCS, {"question": "How do I track events?"})
    """

    def __init__(self, prompts_dir: Optional[Path] = None) -> None:
        self.prompts_dir = prompts_dir or DEFAULT_PROMPTS_DIR

        if self.prompts_dir.is_dir():
            self.env = jinja2.Environment(
                loader=jinja2.FileSystemLoader(str(self.prompts_dir)),
                autoescape=False,
                auto_reload=True,
                keep_trailing_newline=True,
                undefined=jinja2.StrictUndefined,
            )
            logger.debug(
                "PromptLoader initialized with filesystem templates",
                extra={"prompts_dir": str(self.prompts_dir)},
            )
        else:
            self.env = None
            logger.debug(
                "Prompts directory not found, using inline templates",
                extra={"prompts_dir": str(self.prompts_dir)},
            )

    def load(self, path: str, context: Optional[Dict[str, Any]] = None) -> str:
        """Render the template at ``path`` with ``context``.

        Raises:
            PromptLoaderError: If the template is unknown or fails to render.
        """
        context = context or {}

        if self.env is not None:
            try:
                template = self.env.get_template(path)
                return template.render(**context)
            except jinja2.TemplateNotFound:
                logger.debug(
                    "Template not found in filesystem, trying inline template",
                    extra={"path": path},
                )
            except jinja2.TemplateError as e:
                logger.error(
                    "Failed to render template",
                    extra={"path": path, "error": str(e)},
                )
                raise PromptLoaderError(f"Failed to render template {path}: {e}") from e

        return self._render_inline(path, context)

    def _render_inline(self, path: str, context: Dict[str, Any]) -> str:
        template_str = INLINE_PROMPTS.get(path)
        if template_str is None:
            raise PromptLoaderError(
                f"Prompt not found: {path}. Available inline prompts: {sorted(INLINE_PROMPTS)}"
            )

        try:
            template = jinja2.Template(
                template_str, keep_trailing_newline=True, undefined=jinja2.StrictUndefined
            )
            return template.render(**context)
        except jinja2.TemplateError as e:
            raise PromptLoaderError(f"Failed to render inline template {path}: {e}") from e


__all__ = [
    "PromptLoader",
    "PromptLoaderError",
    "ANSWER_FROM_DOCS",
    "WRITE_MDX_SNIPPET",
    "INLINE_PROMPTS",
]
