"""Unit tests for the PromptLoader service."""

from pathlib import Path

import pytest

from docs_mcp.src.services.prompt_loader import (
    ANSWER_FROM_DOCS,
    DEFAULT_PROMPTS_DIR,
    WRITE_MDX_SNIPPET,
    PromptLoader,
    PromptLoaderError,
)


@pytest.fixture
def prompts_dir(tmp_path: Path) -> Path:
    """Create a temporary prompts directory overriding one template."""
    prompts = tmp_path / "prompts"
    prompts.mkdir()
    (prompts / ANSWER_FROM_DOCS).write_text("Custom answer prompt for: {{ question }}")
    return prompts


@pytest.fixture
def loader(prompts_dir: Path) -> PromptLoader:
    return PromptLoader(prompts_dir=prompts_dir)


class TestPromptLoaderInit:
    """Tests for PromptLoader initialization."""

    def test_init_with_existing_directory(self, prompts_dir: Path) -> None:
        loader = PromptLoader(prompts_dir=prompts_dir)

        assert loader.prompts_dir == prompts_dir
        assert loader.env is not None

    def test_init_with_nonexistent_directory(self, tmp_path: Path) -> None:
        loader = PromptLoader(prompts_dir=tmp_path / "nonexistent")

        assert loader.env is None

    def test_default_prompts_dir_ships_templates(self) -> None:
        assert DEFAULT_PROMPTS_DIR.name == "prompts"
        assert (DEFAULT_PROMPTS_DIR / ANSWER_FROM_DOCS).is_file()
        assert (DEFAULT_PROMPTS_DIR / WRITE_MDX_SNIPPET).is_file()


class TestPromptLoaderLoad:
    """Tests for PromptLoader.load()."""

    def test_filesystem_template_overrides_inline(self, loader: PromptLoader) -> None:
        result = loader.load(ANSWER_FROM_DOCS, {"question": "How do I track events?"})

        assert result == "Custom answer prompt for: How do I track events?"

    def test_missing_file_falls_back_to_inline(self, loader: PromptLoader) -> None:
        result = loader.load(WRITE_MDX_SNIPPET, {"topic": "Sessions", "style": "tutorial"})

        assert "Topic: Sessions" in result
        assert "Style: tutorial" in result
        assert "docs_getPage" in result

    def test_missing_variable_raises(self, loader: PromptLoader) -> None:
        with pytest.raises(PromptLoaderError):
            loader.load(ANSWER_FROM_DOCS, {})

    def test_default_templates_render(self) -> None:
        result = PromptLoader().load(ANSWER_FROM_DOCS, {"question": "What is Journium?"})

        assert "Question: What is Journium?" in result
        assert "docs_search" in result


class TestPromptLoaderInlineFallback:
    """Tests for inline prompt fallback behavior."""

    def test_inline_answer_prompt(self, tmp_path: Path) -> None:
        loader = PromptLoader(prompts_dir=tmp_path / "nonexistent")

        result = loader.load(ANSWER_FROM_DOCS, {"question": "Where are API keys?"})

        assert "Question: Where are API keys?" in result
        assert "citations" in result

    def test_inline_missing_variable_raises(self, tmp_path: Path) -> None:
        loader = PromptLoader(prompts_dir=tmp_path / "nonexistent")

        with pytest.raises(PromptLoaderError):
            loader.load(WRITE_MDX_SNIPPET, {"topic": "Sessions"})

    def test_unknown_template_raises(self, tmp_path: Path) -> None:
        loader = PromptLoader(prompts_dir=tmp_path / "nonexistent")

        with pytest.raises(PromptLoaderError, match="Prompt not found"):
            loader.load("unknown.md", {})
