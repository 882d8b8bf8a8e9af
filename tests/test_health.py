import anyio
import pytest

from watchlist_core.storage.health import ConnectionHealthMonitor
from watchlist_core.storage.raw_sql import RawSqlExecutor
from fakes import UnreachableExecutor

pytestmark = pytest.mark.anyio


class SlowExecutor(RawSqlExecutor):
    """Holds every statement until released"""

    def __init__(self):
        super().__init__(engine=None)
        self.release = anyio.Event()
        self.started = anyio.Event()
        self.calls = 0

    async def execute(self, sql, params=(), operation="raw query"):
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return [{"?column?": 1}]


async def test_healthy_backend(engine):
    monitor = ConnectionHealthMonitor(RawSqlExecutor(engine))

    assert await monitor.check_connection() is True
    assert monitor.degraded_mode is False
    assert monitor.consecutive_failures == 0
    assert monitor.last_checked_at is not None


async def test_failures_are_counted_and_flag_degraded_mode():
    monitor = ConnectionHealthMonitor(UnreachableExecutor())

    assert await monitor.check_connection() is False
    assert await monitor.check_connection() is False

    assert monitor.degraded_mode is True
    assert monitor.consecutive_failures == 2
    assert "Connection refused" in monitor.last_error
    assert monitor.status()["healthy"] is False


async def test_success_resets_failure_state(engine):
    monitor = ConnectionHealthMonitor(UnreachableExecutor())
    await monitor.check_connection()
    assert monitor.degraded_mode is True

    monitor._executor = RawSqlExecutor(engine)
    assert await monitor.check_connection() is True
    assert monitor.degraded_mode is False
    assert monitor.consecutive_failures == 0
    assert monitor.last_error is None


async def test_concurrent_checks_fail_fast_while_one_is_in_flight():
    executor = SlowExecutor()
    monitor = ConnectionHealthMonitor(executor)
    results = []

    async def check():
        results.append(await monitor.check_connection())

    async with anyio.create_task_group() as tg:
        tg.start_soon(check)
        await executor.started.wait()
        assert monitor.check_in_progress is True

        # Arrives while the first check is still waiting on the database
        assert await monitor.check_connection() is False
        executor.release.set()

    assert results == [True]
    assert executor.calls == 1
    assert monitor.check_in_progress is False
