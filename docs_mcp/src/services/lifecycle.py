"""Connection tracking, drain detection and graceful shutdown for the MCP endpoint.

Each inbound MCP connection gets its own ``Connection`` holding a freshly built
protocol handler and transport. The manager owns the set of live connections,
infers draining from request inactivity, and closes everything on shutdown.

Inactivity is only a heuristic for "the platform is draining this instance";
an explicit shutdown signal (``request_shutdown``) is the authoritative one.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Set
import uuid

from .config import AppConfig

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class ConnectionState(str, Enum):
    OPEN = "open"
    ACTIVE = "active"
    CLOSED = "closed"


class DrainReason(str, Enum):
    INACTIVITY = "inactivity"
    SHUTDOWN = "shutdown"


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


@dataclass(eq=False)
class Connection:
    """One inbound MCP connection and the resources bound to it."""

    transport: Any
    handler: Any
    created_at: float
    long_lived: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: ConnectionState = ConnectionState.OPEN
    keepalive: Optional[asyncio.Task] = None
    task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    def close(self) -> Optional[asyncio.Task]:
        """
        Mark closed, stop the keep-alive timer and cancel the serving task.

        Returns the serving task when it was cancelled from elsewhere and still
        has to unwind, otherwise None. Safe to call more than once.
        """
        if self.closed:
            return None
        self.state = ConnectionState.CLOSED

        if self.keepalive is not None and not self.keepalive.done():
            self.keepalive.cancel()

        task = self.task
        if task is None or task.done() or task is _current_task():
            return None
        task.cancel()
        return task


class ConnectionManager:
    """Registry of live connections plus the server's draining state."""

    def __init__(
        self,
        *,
        request_timeout: float = 300.0,
        keepalive_interval: float = 30.0,
        drain_detection_timeout: float = 60.0,
        drain_check_interval: float = 10.0,
        shutdown_timeout: float = 30.0,
        clock: Clock = time.monotonic,
    ) -> None:
        self.request_timeout = request_timeout
        self.keepalive_interval = keepalive_interval
        self.drain_detection_timeout = drain_detection_timeout
        self.drain_check_interval = drain_check_interval
        self.shutdown_timeout = shutdown_timeout
        self._clock = clock

        self._connections: Set[Connection] = set()
        self._lock = threading.Lock()
        self._pending: List[asyncio.Task] = []
        self._watcher: Optional[asyncio.Task] = None
        self._stopped = asyncio.Event()

        self.started_at = clock()
        self.last_request_at = self.started_at
        self.drain_reason: Optional[DrainReason] = None

    @classmethod
    def from_config(cls, config: AppConfig) -> "ConnectionManager":
        return cls(
            request_timeout=config.request_timeout,
            keepalive_interval=config.sse_keepalive_interval_ms / 1000,
            drain_detection_timeout=config.drain_detection_timeout_ms / 1000,
            drain_check_interval=config.drain_check_interval_ms / 1000,
            shutdown_timeout=config.shutdown_timeout,
        )

    @property
    def draining(self) -> bool:
        return self.drain_reason is not None

    @property
    def shutting_down(self) -> bool:
        return self.drain_reason is DrainReason.SHUTDOWN

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def accepts_streams(self) -> bool:
        """Whether a new long-lived stream may be opened."""
        return not self.draining

    # ------------------------------------------------------------------
    # Connection registry
    # ------------------------------------------------------------------

    def open(self, *, transport: Any, handler: Any, long_lived: bool = False) -> Connection:
        """Register a new connection; long-lived streams get a keep-alive timer."""
        connection = Connection(
            transport=transport,
            handler=handler,
            created_at=self._clock(),
            long_lived=long_lived,
        )
        with self._lock:
            self._connections.add(connection)
            count = len(self._connections)

        if long_lived:
            connection.keepalive = asyncio.create_task(self._keepalive(connection))

        logger.info(
            "Connection opened",
            extra={
                "connection_id": connection.id,
                "long_lived": long_lived,
                "active_connections": count,
            },
        )
        return connection

    def activate(self, connection: Connection, task: Optional[asyncio.Task] = None) -> None:
        """Mark a request in flight and remember which task serves it."""
        if connection.closed:
            return
        connection.task = task or _current_task()
        connection.state = ConnectionState.ACTIVE

    def close(self, connection: Connection) -> Optional[asyncio.Task]:
        with self._lock:
            self._connections.discard(connection)
            count = len(self._connections)
        pending = connection.close()
        logger.info(
            "Connection closed",
            extra={"connection_id": connection.id, "active_connections": count},
        )
        return pending

    def close_all(self) -> List[asyncio.Task]:
        """Close every registered connection and return tasks still unwinding."""
        with self._lock:
            connections = list(self._connections)
            self._connections.clear()

        pending: List[asyncio.Task] = []
        for connection in connections:
            try:
                task = connection.close()
            except Exception as exc:
                logger.error(
                    "Error closing connection",
                    extra={"connection_id": connection.id, "error": str(exc)},
                )
                continue
            if task is not None:
                pending.append(task)
        return pending

    async def _keepalive(self, connection: Connection) -> None:
        while not connection.closed:
            await asyncio.sleep(self.keepalive_interval)
            logger.info(
                "SSE connection active",
                extra={
                    "connection_id": connection.id,
                    "age_seconds": round(self._clock() - connection.created_at),
                },
            )

    # ------------------------------------------------------------------
    # Draining
    # ------------------------------------------------------------------

    def record_request(self) -> None:
        """Stamp request activity; a request while inactivity-draining ends the drain."""
        self.last_request_at = self._clock()
        if self.drain_reason is DrainReason.INACTIVITY:
            self.drain_reason = None
            logger.info("Requests resumed, exiting drain mode")

    def check_drain(self) -> bool:
        """Enter draining after prolonged inactivity while connections are open."""
        idle = self._clock() - self.last_request_at
        if not self.draining and idle > self.drain_detection_timeout:
            active = self.active_count
            if active > 0:
                self.drain_reason = DrainReason.INACTIVITY
                logger.info(
                    "No requests for %.0fs, assuming drain",
                    idle,
                    extra={"active_connections": active},
                )
        return self.draining

    def start(self) -> None:
        """Start the periodic drain watcher on the running loop."""
        if self._watcher is None or self._watcher.done():
            self._stopped = asyncio.Event()
            self._watcher = asyncio.create_task(self._watch_for_drain())

    async def _watch_for_drain(self) -> None:
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.drain_check_interval)
                break
            except asyncio.TimeoutError:
                pass
            try:
                self.check_drain()
            except Exception as exc:
                logger.error(f"Error in drain watcher: {exc}")

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def request_shutdown(self) -> List[asyncio.Task]:
        """Latch shutdown draining, stop timers and close every connection."""
        if not self.shutting_down:
            logger.info(
                "Shutting down gracefully...",
                extra={"active_connections": self.active_count},
            )
        self.drain_reason = DrainReason.SHUTDOWN
        self._stopped.set()
        if self._watcher is not None and not self._watcher.done():
            self._watcher.cancel()

        self._pending.extend(self.close_all())
        self._pending = [task for task in self._pending if not task.done()]
        return list(self._pending)

    async def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Close all connections and wait for them to unwind.

        Returns False when tasks were still running after ``timeout``
        (defaults to ``shutdown_timeout``); those are abandoned.
        """
        pending = self.request_shutdown()
        if self._watcher is not None:
            await asyncio.gather(self._watcher, return_exceptions=True)
        if not pending:
            return True

        _, still_running = await asyncio.wait(
            pending, timeout=self.shutdown_timeout if timeout is None else timeout
        )
        self._pending = list(still_running)
        if still_running:
            logger.error(
                "Forced shutdown after timeout",
                extra={"unfinished_connections": len(still_running)},
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def health(self) -> Dict[str, Any]:
        now = self._clock()
        with self._lock:
            ages = [now - connection.created_at for connection in self._connections]
        return {
            "draining": self.draining,
            "active_connections": len(ages),
            "uptime": round(now - self.started_at, 3),
            "connections": {
                "sse_keep_alive_interval": round(self.keepalive_interval * 1000),
                "oldest_connection": round(max(ages)) if ages else 0,
                "average_age": round(sum(ages) / len(ages)) if ages else 0,
            },
        }


__all__ = ["Connection", "ConnectionManager", "ConnectionState", "DrainReason"]
