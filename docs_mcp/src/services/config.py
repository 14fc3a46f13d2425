"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PROMPTS_DIR = Path(__file__).resolve().parents[2] / "prompts"
DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "https://journium.app",
    "https://*.journium.app",
]
DEFAULT_ROUTE_KEYS = ["route", "slug", "pathname", "href"]


def _split_csv(value: str | List[str] | None) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [item.strip() for item in value if item and item.strip()]


class LoaderConfig(BaseModel):
    """Where documentation files live and how their routes are derived."""

    model_config = ConfigDict(frozen=True)

    docs_glob: str = Field(
        default="content/docs/**/*.mdx",
        description="Glob (relative to workspace_root) selecting documentation files",
    )
    workspace_root: Path = Field(
        default_factory=Path.cwd, description="Directory the glob is evaluated in"
    )
    use_frontmatter_routes: bool = Field(
        default=True,
        description="Trust explicit route fields in front matter over file-derived routes",
    )
    route_keys: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ROUTE_KEYS),
        description="Front matter keys holding an explicit route, in priority order",
    )
    docs_root_dir: str = Field(
        default="content/docs",
        description="Prefix stripped from file paths when deriving routes",
    )
    exclude_routes: List[str] = Field(
        default_factory=list,
        description="Route globs omitted from the index (e.g. /shared/**)",
    )

    @field_validator("workspace_root", mode="before")
    @classmethod
    def _normalize_workspace_root(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            return Path.cwd()
        return Path(value).expanduser().resolve()

    @field_validator("docs_glob")
    @classmethod
    def _ensure_glob(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("DOCS_GLOB cannot be empty")
        return cleaned

    @field_validator("docs_root_dir")
    @classmethod
    def _normalize_docs_root(cls, value: str) -> str:
        return value.replace("\\", "/").strip().rstrip("/")

    @field_validator("route_keys", "exclude_routes", mode="before")
    @classmethod
    def _parse_lists(cls, value: str | List[str] | None) -> List[str]:
        return _split_csv(value)


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3100, ge=1, le=65535, description="Listen port")
    request_timeout_ms: int = Field(
        default=300_000, gt=0, description="Per-connection timeout in milliseconds"
    )
    sse_keepalive_interval_ms: int = Field(
        default=30_000, gt=0, description="Interval between stream keep-alive checks"
    )
    drain_detection_timeout_ms: int = Field(
        default=60_000,
        gt=0,
        description="Request inactivity after which the server assumes it is being drained",
    )
    drain_check_interval_ms: int = Field(
        default=10_000, gt=0, description="How often the drain watcher runs"
    )
    shutdown_timeout_ms: int = Field(
        default=30_000, gt=0, description="Upper bound for graceful shutdown"
    )
    allowed_origins: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS),
        description="Origins allowed to call the MCP endpoint (supports https://*.domain)",
    )
    log_level: str = Field(default="INFO", description="Root log level")
    prompts_dir: Path = Field(
        default=DEFAULT_PROMPTS_DIR, description="Optional directory of prompt template overrides"
    )
    docs: LoaderConfig = Field(default_factory=LoaderConfig)

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: str | List[str] | None) -> List[str]:
        origins = _split_csv(value)
        if not origins:
            raise ValueError("ALLOWED_ORIGINS must contain at least one origin")
        return [origin.rstrip("/") for origin in origins]

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str | None) -> str:
        level = (value or "INFO").strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unsupported LOG_LEVEL: {value}")
        return level

    @field_validator("prompts_dir", mode="before")
    @classmethod
    def _normalize_prompts_dir(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            return DEFAULT_PROMPTS_DIR
        return Path(value).expanduser().resolve()

    @property
    def request_timeout(self) -> float:
        return self.request_timeout_ms / 1000

    @property
    def shutdown_timeout(self) -> float:
        return self.shutdown_timeout_ms / 1000


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_flag(key: str, default: str = "true") -> bool:
    return (_read_env(key, default) or default).strip().lower() not in {"0", "false", "no"}


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    docs = LoaderConfig(
        docs_glob=_read_env("DOCS_GLOB", "content/docs/**/*.mdx"),
        workspace_root=_read_env("WORKSPACE_ROOT"),
        use_frontmatter_routes=_read_flag("USE_FRONTMATTER_ROUTES"),
        route_keys=_read_env("ROUTE_KEYS", ",".join(DEFAULT_ROUTE_KEYS)),
        docs_root_dir=_read_env("DOCS_ROOT_DIR", "content/docs"),
        exclude_routes=_read_env("EXCLUDE_ROUTES", ""),
    )

    return AppConfig(
        host=_read_env("HOST", "0.0.0.0"),
        port=int(_read_env("PORT", "3100")),
        request_timeout_ms=int(_read_env("REQUEST_TIMEOUT", "300000")),
        sse_keepalive_interval_ms=int(_read_env("SSE_KEEPALIVE_INTERVAL", "30000")),
        drain_detection_timeout_ms=int(_read_env("DRAIN_DETECTION_TIMEOUT", "60000")),
        drain_check_interval_ms=int(_read_env("DRAIN_CHECK_INTERVAL", "10000")),
        shutdown_timeout_ms=int(_read_env("SHUTDOWN_TIMEOUT", "30000")),
        allowed_origins=_read_env("ALLOWED_ORIGINS", ",".join(DEFAULT_ALLOWED_ORIGINS)),
        log_level=_read_env("LOG_LEVEL", "INFO"),
        prompts_dir=_read_env("PROMPTS_DIR"),
        docs=docs,
    )


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = [
    "AppConfig",
    "LoaderConfig",
    "get_config",
    "reload_config",
    "DEFAULT_ALLOWED_ORIGINS",
    "DEFAULT_PROMPTS_DIR",
]
