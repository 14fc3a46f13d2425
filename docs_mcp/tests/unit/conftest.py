from pathlib import Path

import pytest

from docs_mcp.src.services.config import AppConfig, LoaderConfig


def write(root: Path, relative: str, text: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A small documentation tree under content/docs."""
    write(
        tmp_path,
        "content/docs/index.mdx",
        "---\ntitle: Welcome\n---\n# Welcome\n\nStart here.\n",
    )
    write(
        tmp_path,
        "content/docs/getting-started.mdx",
        "---\ntitle: Getting Started\n---\n# Getting Started\n\n"
        "Install the SDK and start tracking events.\n\n<include>./shared/install.mdx</include>\n",
    )
    write(
        tmp_path,
        "content/docs/shared/install.mdx",
        "---\ntitle: Install snippet\n---\nRun `npm install journium` to get started.\n",
    )
    write(
        tmp_path,
        "content/docs/api/reference.mdx",
        "---\ntitle: API Reference\nslug: /api\n---\n## Methods\n\n"
        "The track method records getting an event and started sessions.\n",
    )
    return tmp_path


@pytest.fixture
def loader_config(workspace: Path) -> LoaderConfig:
    return LoaderConfig(workspace_root=workspace, exclude_routes=["/shared/**"])


@pytest.fixture
def app_config(loader_config: LoaderConfig, tmp_path: Path) -> AppConfig:
    return AppConfig(
        allowed_origins=["http://localhost:3000", "https://*.journium.app"],
        prompts_dir=tmp_path / "no-prompts",
        docs=loader_config,
    )


@pytest.fixture
def write_file():
    """Helper writing ``text`` to ``root / relative``, creating parent directories."""
    return write
