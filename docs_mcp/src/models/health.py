"""Administrative endpoint payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConnectionStats(_CamelModel):
    """Age statistics for tracked MCP connections (seconds)."""

    sse_keep_alive_interval: int = Field(..., description="Keep-alive interval in ms")
    oldest_connection: int = Field(0, ge=0)
    average_age: int = Field(0, ge=0)


class HealthResponse(_CamelModel):
    """Health report including drain state for orchestrators."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "ok": True,
                "draining": False,
                "activeConnections": 2,
                "uptime": 5321.4,
                "connections": {
                    "sseKeepAliveInterval": 30000,
                    "oldestConnection": 118,
                    "averageAge": 61,
                },
            }
        },
    )

    ok: bool = True
    draining: bool
    active_connections: int = Field(..., ge=0)
    uptime: float = Field(..., ge=0, description="Seconds since process start")
    connections: ConnectionStats


class ReindexResponse(BaseModel):
    """Response from an index rebuild."""

    ok: bool = True
    count: int = Field(..., ge=0, description="Documents in the rebuilt index")


__all__ = ["ConnectionStats", "HealthResponse", "ReindexResponse"]
