"""Periodic sweep scheduling with graceful shutdown."""

from __future__ import annotations

import asyncio

from swarm_updater.errors import SwarmUpdaterError
from swarm_updater.logging import get_logger
from swarm_updater.models import SweepReport
from swarm_updater.sweep import SwarmSweeper

log = get_logger("swarm_updater.scheduler")


class UpdateScheduler:
    """Run sweeps back to back, ``interval`` seconds apart.

    The first sweep starts immediately. Sweeps never overlap. ``stop()``
    cancels the running sweep at its next service boundary and prevents
    further sweeps.
    """

    def __init__(
        self,
        sweeper: SwarmSweeper,
        interval_seconds: float,
        sweep_timeout_seconds: float | None = None,
    ) -> None:
        self._sweeper = sweeper
        self._interval = interval_seconds
        self._sweep_timeout = sweep_timeout_seconds
        self._stop = asyncio.Event()
        self._cancel: asyncio.Event | None = None
        self._sweeps = 0

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    @property
    def sweeps_run(self) -> int:
        return self._sweeps

    def stop(self) -> None:
        """Request shutdown; safe to call from a signal handler."""
        if not self._stop.is_set():
            log.info("scheduler_stop_requested")
        self._stop.set()
        if self._cancel is not None:
            self._cancel.set()

    async def run_once(self) -> SweepReport:
        """Run a single sweep, honoring the sweep timeout and ``stop()``.

        Raises:
            SwarmUpdaterError: the sweep failed fatally.
        """
        cancel = asyncio.Event()
        if self._stop.is_set():
            cancel.set()
        self._cancel = cancel

        timer: asyncio.TimerHandle | None = None
        if self._sweep_timeout is not None:
            timer = asyncio.get_running_loop().call_later(self._sweep_timeout, cancel.set)

        try:
            return await self._sweeper.run(cancel)
        finally:
            if timer is not None:
                timer.cancel()
            self._cancel = None
            self._sweeps += 1

    async def run_forever(self) -> None:
        """Sweep until ``stop()`` is called. Fatal sweep errors are logged."""
        log.info("scheduler_started", interval_seconds=self._interval)
        while not self._stop.is_set():
            try:
                report = await self.run_once()
            except SwarmUpdaterError as exc:
                log.error("sweep_failed", error=str(exc))
            else:
                if report.canceled:
                    log.info("sweep_stopped_early", **report.summary())

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except TimeoutError:
                pass

        log.info("scheduler_stopped", sweeps=self._sweeps)
