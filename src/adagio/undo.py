"""Soft-delete with a grace window before the deletion is committed remotely."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.date import DateTrigger

from .models import LogEntry

logger = logging.getLogger("adagio.undo")

UNDO_TIMEOUT_SECONDS = 5
UNDO_JOB_ID = "adagio_undo_finalize"


class UndoDeleteManager:
    """Holds at most one soft-deleted entry.

    Staging a second deletion finalizes the first immediately. ``undo``
    after the finalize job has run is a no-op.
    """

    def __init__(
        self,
        scheduler,
        clock,
        on_finalize: Callable[[LogEntry], None],
        grace_seconds: int = UNDO_TIMEOUT_SECONDS,
    ):
        self.scheduler = scheduler
        self.clock = clock
        self._on_finalize = on_finalize
        self.grace_seconds = grace_seconds
        self._pending: LogEntry | None = None

    @property
    def pending(self) -> LogEntry | None:
        return self._pending

    def stage(self, entry: LogEntry) -> None:
        if self._pending is not None:
            self.finalize()
        self._pending = entry
        run_at = datetime.fromtimestamp(self.clock.now_ms() / 1000, tz=timezone.utc)
        run_at += timedelta(seconds=self.grace_seconds)
        self.scheduler.add_job(
            self._finalize_job,
            trigger=DateTrigger(run_date=run_at),
            id=UNDO_JOB_ID,
            replace_existing=True,
            name="adagio undo finalize",
        )

    def finalize(self) -> LogEntry | None:
        entry = self._pending
        if entry is None:
            return None
        self._pending = None
        self._cancel_job()
        logger.info("Deletion of log entry %s committed", entry.id)
        self._on_finalize(entry)
        return entry

    async def _finalize_job(self) -> None:
        self.finalize()

    def undo(self) -> LogEntry | None:
        entry = self._pending
        if entry is None:
            return None
        self._pending = None
        self._cancel_job()
        logger.info("Deletion of log entry %s undone", entry.id)
        return entry

    def discard(self) -> None:
        """Drop the pending entry without committing (used by wipe)."""
        self._pending = None
        self._cancel_job()

    def _cancel_job(self) -> None:
        try:
            self.scheduler.remove_job(UNDO_JOB_ID)
        except JobLookupError:
            pass
