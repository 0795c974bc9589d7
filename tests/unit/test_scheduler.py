"""Tests for swarm_updater.scheduler — periodic sweeps and shutdown."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from swarm_updater.errors import ServiceListError
from swarm_updater.models import SweepReport
from swarm_updater.scheduler import UpdateScheduler


def _make_sweeper(side_effect=None) -> AsyncMock:
    sweeper = AsyncMock()
    sweeper.run = AsyncMock(side_effect=side_effect, return_value=SweepReport())
    return sweeper


class TestRunOnce:
    """Tests for UpdateScheduler.run_once()."""

    @pytest.mark.asyncio
    async def test_passes_fresh_cancel_event(self) -> None:
        sweeper = _make_sweeper()
        scheduler = UpdateScheduler(sweeper, interval_seconds=60)

        await scheduler.run_once()
        await scheduler.run_once()

        first = sweeper.run.await_args_list[0].args[0]
        second = sweeper.run.await_args_list[1].args[0]
        assert isinstance(first, asyncio.Event)
        assert first is not second
        assert not first.is_set()
        assert scheduler.sweeps_run == 2

    @pytest.mark.asyncio
    async def test_timeout_sets_cancel_event(self) -> None:
        async def _slow(cancel: asyncio.Event) -> SweepReport:
            await asyncio.wait_for(cancel.wait(), timeout=2)
            return SweepReport(canceled=True)

        scheduler = UpdateScheduler(
            _make_sweeper(side_effect=_slow), interval_seconds=60, sweep_timeout_seconds=0.01
        )

        report = await scheduler.run_once()

        assert report.canceled is True

    @pytest.mark.asyncio
    async def test_stop_cancels_running_sweep(self) -> None:
        started = asyncio.Event()

        async def _waits(cancel: asyncio.Event) -> SweepReport:
            started.set()
            await asyncio.wait_for(cancel.wait(), timeout=2)
            return SweepReport(canceled=True)

        scheduler = UpdateScheduler(_make_sweeper(side_effect=_waits), interval_seconds=60)

        task = asyncio.create_task(scheduler.run_once())
        await started.wait()
        scheduler.stop()
        report = await task

        assert report.canceled is True
        assert scheduler.stopped is True

    @pytest.mark.asyncio
    async def test_fatal_error_propagates(self) -> None:
        sweeper = _make_sweeper(side_effect=ServiceListError("down"))
        scheduler = UpdateScheduler(sweeper, interval_seconds=60)

        with pytest.raises(ServiceListError):
            await scheduler.run_once()

        assert scheduler.sweeps_run == 1


class TestRunForever:
    """Tests for UpdateScheduler.run_forever()."""

    @pytest.mark.asyncio
    async def test_sweeps_repeatedly_until_stopped(self) -> None:
        scheduler: UpdateScheduler

        async def _sweep(cancel: asyncio.Event) -> SweepReport:
            if scheduler.sweeps_run == 2:
                scheduler.stop()
            return SweepReport()

        sweeper = _make_sweeper(side_effect=_sweep)
        scheduler = UpdateScheduler(sweeper, interval_seconds=0.01)

        await asyncio.wait_for(scheduler.run_forever(), timeout=2)

        assert sweeper.run.await_count == 3

    @pytest.mark.asyncio
    async def test_fatal_error_does_not_stop_loop(self) -> None:
        calls = 0
        scheduler: UpdateScheduler

        async def _sweep(cancel: asyncio.Event) -> SweepReport:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise ServiceListError("down")
            scheduler.stop()
            return SweepReport()

        scheduler = UpdateScheduler(_make_sweeper(side_effect=_sweep), interval_seconds=0.01)

        await asyncio.wait_for(scheduler.run_forever(), timeout=2)

        assert calls == 2

    @pytest.mark.asyncio
    async def test_stop_interrupts_wait(self) -> None:
        scheduler = UpdateScheduler(_make_sweeper(), interval_seconds=3600)

        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.05)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=2)

        assert scheduler.sweeps_run == 1
