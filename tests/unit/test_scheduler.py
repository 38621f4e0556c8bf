"""
Unit Tests for Refresh Scheduler
================================

Sleep is injected so family loops run without real delays.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pulsefeed.scheduler.refresh_scheduler import RefreshScheduler
from pulsefeed.utils.exceptions import ConfigurationError

HOUR = 3600


class RecordingSleep:
    """Records requested delays; blocks forever once `block_after` calls are made."""

    def __init__(self, block_after=None, on_call=None):
        self.calls = []
        self.block_after = block_after
        self.on_call = on_call

    async def __call__(self, seconds):
        self.calls.append(seconds)
        if self.on_call:
            self.on_call(len(self.calls))
        if self.block_after is not None and len(self.calls) >= self.block_after:
            await asyncio.Event().wait()
        await asyncio.sleep(0)


@pytest.fixture
def orchestrator(test_settings):
    orchestrator = MagicMock()
    orchestrator.settings = test_settings
    orchestrator.run_family = AsyncMock(return_value=3)
    return orchestrator


@pytest.fixture
def warmup():
    coordinator = MagicMock()
    coordinator.warmup = AsyncMock(return_value={"updates": 3, "blogs": 2, "videos": 2})
    return coordinator


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


class TestRunCycle:
    """Single refresh cycles."""

    @pytest.mark.asyncio
    async def test_success_is_counted(self, orchestrator, warmup):
        scheduler = RefreshScheduler(orchestrator, warmup)

        assert await scheduler.run_cycle("updates") == 3
        assert scheduler.cycles_completed == {"updates": 1}
        orchestrator.run_family.assert_awaited_once_with("updates")

    @pytest.mark.asyncio
    async def test_failure_is_counted_and_swallowed(self, orchestrator, warmup):
        orchestrator.run_family.side_effect = RuntimeError("network down")
        scheduler = RefreshScheduler(orchestrator, warmup)

        assert await scheduler.run_cycle("blogs") == 0
        assert scheduler.cycle_failures == {"blogs": 1}
        assert scheduler.cycles_completed == {}

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, orchestrator, warmup):
        orchestrator.run_family.side_effect = ConfigurationError("unknown family")
        scheduler = RefreshScheduler(orchestrator, warmup)

        with pytest.raises(ConfigurationError):
            await scheduler.run_cycle("podcasts")


class TestFamilyLoop:
    """Per-family refresh loops."""

    @pytest.mark.asyncio
    async def test_runs_immediately_then_sleeps_interval(self, orchestrator, warmup):
        scheduler = RefreshScheduler(orchestrator, warmup)
        scheduler.running = True

        def stop(_):
            scheduler.running = False

        scheduler._sleep = RecordingSleep(on_call=stop)
        await scheduler._family_loop("updates", 6 * HOUR, run_immediately=True)

        assert orchestrator.run_family.await_count == 1
        assert scheduler._sleep.calls == [6 * HOUR]

    @pytest.mark.asyncio
    async def test_waits_one_interval_before_first_run(self, orchestrator, warmup):
        scheduler = RefreshScheduler(orchestrator, warmup)
        scheduler.running = True

        def stop_on_second(count):
            if count == 2:
                scheduler.running = False

        scheduler._sleep = RecordingSleep(on_call=stop_on_second)
        await scheduler._family_loop("blogs", 12 * HOUR, run_immediately=False)

        assert scheduler._sleep.calls == [12 * HOUR, 12 * HOUR]
        assert orchestrator.run_family.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_cycle_keeps_looping(self, orchestrator, warmup):
        orchestrator.run_family.side_effect = [RuntimeError("boom"), 4]
        scheduler = RefreshScheduler(orchestrator, warmup)
        scheduler.running = True

        def stop_on_second(count):
            if count == 2:
                scheduler.running = False

        scheduler._sleep = RecordingSleep(on_call=stop_on_second)
        await scheduler._family_loop("videos", HOUR, run_immediately=True)

        assert orchestrator.run_family.await_count == 2
        assert scheduler.cycle_failures == {"videos": 1}
        assert scheduler.cycles_completed == {"videos": 1}

    @pytest.mark.asyncio
    async def test_configuration_error_stops_family(self, orchestrator, warmup):
        orchestrator.run_family.side_effect = ConfigurationError("bad store")
        sleep = RecordingSleep()
        scheduler = RefreshScheduler(orchestrator, warmup, sleep=sleep)
        scheduler.running = True

        await scheduler._family_loop("updates", HOUR, run_immediately=True)

        assert sleep.calls == []
        assert orchestrator.run_family.await_count == 1


class TestLifecycle:
    """start / stop / run_forever."""

    @pytest.mark.asyncio
    async def test_start_warms_up_then_waits_an_interval(self, orchestrator, warmup, test_settings):
        sleep = RecordingSleep(block_after=1)
        scheduler = RefreshScheduler(orchestrator, warmup, test_settings, sleep=sleep)

        await scheduler.start()
        await _settle()

        warmup.warmup.assert_awaited_once()
        assert orchestrator.run_family.await_count == 0
        assert sorted(sleep.calls) == [6 * HOUR, 12 * HOUR, 12 * HOUR]

        await scheduler.stop()
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_start_without_warmup_runs_every_family(self, orchestrator, warmup, test_settings):
        test_settings.scheduler.warmup_on_start = False
        sleep = RecordingSleep(block_after=1)
        scheduler = RefreshScheduler(orchestrator, warmup, test_settings, sleep=sleep)

        await scheduler.start()
        await _settle()

        warmup.warmup.assert_not_awaited()
        called = sorted(c.args[0] for c in orchestrator.run_family.await_args_list)
        assert called == ["blogs", "updates", "videos"]

        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, orchestrator, warmup, test_settings):
        scheduler = RefreshScheduler(orchestrator, warmup, test_settings, sleep=RecordingSleep(block_after=1))

        await scheduler.start()
        await scheduler.start()

        assert len(scheduler._tasks) == 3
        warmup.warmup.assert_awaited_once()
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_run_forever_ends_when_every_family_stops(self, orchestrator, warmup, test_settings):
        test_settings.scheduler.warmup_on_start = False
        orchestrator.run_family.side_effect = ConfigurationError("store misconfigured")
        scheduler = RefreshScheduler(orchestrator, warmup, test_settings, sleep=RecordingSleep())

        await asyncio.wait_for(scheduler.run_forever(), timeout=5)

        assert orchestrator.run_family.await_count == 3
        assert not scheduler.running
        assert scheduler._tasks == []

    @pytest.mark.asyncio
    async def test_stop_cancels_blocked_loops(self, orchestrator, warmup, test_settings):
        scheduler = RefreshScheduler(orchestrator, warmup, test_settings, sleep=RecordingSleep(block_after=1))

        runner = asyncio.create_task(scheduler.run_forever())
        await _settle()
        await scheduler.stop()
        await asyncio.wait_for(runner, timeout=5)

        assert runner.done()
        assert not scheduler.running
