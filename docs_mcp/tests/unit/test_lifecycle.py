import asyncio

import pytest

from docs_mcp.src.services.config import AppConfig, LoaderConfig
from docs_mcp.src.services.lifecycle import (
    ConnectionManager,
    ConnectionState,
    DrainReason,
)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(clock: FakeClock) -> ConnectionManager:
    return ConnectionManager(
        request_timeout=5.0,
        keepalive_interval=30.0,
        drain_detection_timeout=60.0,
        drain_check_interval=0.01,
        shutdown_timeout=1.0,
        clock=clock,
    )


def test_from_config_converts_milliseconds(tmp_path) -> None:
    config = AppConfig(
        request_timeout_ms=1500,
        sse_keepalive_interval_ms=2000,
        drain_detection_timeout_ms=3000,
        drain_check_interval_ms=500,
        shutdown_timeout_ms=4000,
        docs=LoaderConfig(workspace_root=tmp_path),
    )

    manager = ConnectionManager.from_config(config)

    assert manager.request_timeout == 1.5
    assert manager.keepalive_interval == 2.0
    assert manager.drain_detection_timeout == 3.0
    assert manager.drain_check_interval == 0.5
    assert manager.shutdown_timeout == 4.0


def test_open_and_close_track_connections(manager: ConnectionManager) -> None:
    connection = manager.open(transport=object(), handler=object())

    assert manager.active_count == 1
    assert connection.state is ConnectionState.OPEN

    manager.close(connection)
    manager.close(connection)

    assert manager.active_count == 0
    assert connection.closed


def test_inactivity_enters_drain_only_with_open_connections(
    manager: ConnectionManager, clock: FakeClock
) -> None:
    clock.advance(61)
    assert manager.check_drain() is False

    manager.open(transport=object(), handler=object())
    assert manager.check_drain() is True
    assert manager.drain_reason is DrainReason.INACTIVITY
    assert manager.accepts_streams() is False


def test_no_drain_before_timeout(manager: ConnectionManager, clock: FakeClock) -> None:
    manager.open(transport=object(), handler=object())
    clock.advance(59)

    assert manager.check_drain() is False


def test_request_exits_inactivity_drain(manager: ConnectionManager, clock: FakeClock) -> None:
    manager.open(transport=object(), handler=object())
    clock.advance(120)
    manager.check_drain()

    manager.record_request()

    assert manager.draining is False
    assert manager.accepts_streams() is True
    assert manager.last_request_at == clock.now


def test_shutdown_drain_is_latched(manager: ConnectionManager) -> None:
    manager.open(transport=object(), handler=object())

    manager.request_shutdown()
    manager.record_request()

    assert manager.shutting_down is True
    assert manager.draining is True
    assert manager.accepts_streams() is False
    assert manager.active_count == 0


def test_health_reports_connection_ages(manager: ConnectionManager, clock: FakeClock) -> None:
    manager.open(transport=object(), handler=object())
    clock.advance(10)
    manager.open(transport=object(), handler=object())
    clock.advance(20)

    health = manager.health()

    assert health["draining"] is False
    assert health["active_connections"] == 2
    assert health["uptime"] == 30
    assert health["connections"] == {
        "sse_keep_alive_interval": 30000,
        "oldest_connection": 30,
        "average_age": 25,
    }


def test_health_without_connections(manager: ConnectionManager) -> None:
    assert manager.health()["connections"]["oldest_connection"] == 0
    assert manager.health()["connections"]["average_age"] == 0


@pytest.mark.asyncio
async def test_shutdown_cancels_active_connections(manager: ConnectionManager) -> None:
    started = asyncio.Event()

    async def serve() -> None:
        started.set()
        await asyncio.sleep(3600)

    task = asyncio.create_task(serve())
    connection = manager.open(transport=object(), handler=object(), long_lived=True)
    manager.activate(connection, task)
    await started.wait()

    assert connection.state is ConnectionState.ACTIVE
    assert connection.keepalive is not None

    assert await manager.shutdown() is True
    assert task.cancelled()
    await asyncio.gather(connection.keepalive, return_exceptions=True)
    assert connection.keepalive.cancelled()
    assert manager.active_count == 0


@pytest.mark.asyncio
async def test_shutdown_forces_after_timeout(manager: ConnectionManager) -> None:
    release = asyncio.Event()

    async def stubborn() -> None:
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            await release.wait()

    task = asyncio.create_task(stubborn())
    await asyncio.sleep(0)
    connection = manager.open(transport=object(), handler=object())
    manager.activate(connection, task)

    assert await manager.shutdown(timeout=0.05) is False

    release.set()
    await task


@pytest.mark.asyncio
async def test_watcher_detects_inactivity(manager: ConnectionManager, clock: FakeClock) -> None:
    manager.open(transport=object(), handler=object())
    manager.start()
    clock.advance(61)

    for _ in range(100):
        if manager.draining:
            break
        await asyncio.sleep(0.01)

    assert manager.drain_reason is DrainReason.INACTIVITY
    assert await manager.shutdown() is True
