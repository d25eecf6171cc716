"""Tick scheduler: one shared 1-second APScheduler job for all running sessions."""

from __future__ import annotations

import logging
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger("adagio.ticker")

TICK_JOB_ID = "adagio_tick"


class TickScheduler:
    """Registers the tick job while at least one session is running.

    ``start``/``stop`` are idempotent; ``sync(running_count)`` is the only
    call the engine needs to make after a mutation.
    """

    def __init__(self, scheduler, on_tick: Callable[[], None], interval_seconds: int = 1):
        self.scheduler = scheduler
        self._on_tick = on_tick
        self._interval_seconds = interval_seconds
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        if self._active:
            return
        self.scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            id=TICK_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            name="adagio tick",
        )
        self._active = True
        logger.debug("Tick scheduler started")

    def stop(self) -> None:
        if not self._active:
            return
        try:
            self.scheduler.remove_job(TICK_JOB_ID)
        except JobLookupError:
            pass
        self._active = False
        logger.debug("Tick scheduler stopped")

    async def _run(self) -> None:
        # Coroutine jobs run on the event loop thread, not the executor pool
        self._on_tick()

    def sync(self, running_count: int) -> None:
        if running_count > 0:
            self.start()
        else:
            self.stop()
