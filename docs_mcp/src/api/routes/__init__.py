"""HTTP API route handlers."""

from . import admin

__all__ = ["admin"]
