"""Interval state machine: pure logic, no I/O.

work -> shortBreak | longBreak -> work -> ...

Work intervals count up and never end on their own. Breaks count down
from their configured duration and fall back to a paused work interval
at zero.
"""

from __future__ import annotations

from enum import Enum

from .models import ActiveSession, IntervalKind, Settings


class SessionEvent(Enum):
    BREAK_FINISHED = "break_finished"
    WORK_TARGET_REACHED = "work_target_reached"


def next_break_kind(completed_in_set: int, sessions_per_set: int) -> IntervalKind:
    """Break that follows the work interval which brought the count to ``completed_in_set``."""
    if completed_in_set > 0 and completed_in_set % sessions_per_set == 0:
        return IntervalKind.LONG_BREAK
    return IntervalKind.SHORT_BREAK


def finish_work(session: ActiveSession, settings: Settings) -> IntervalKind:
    """Close the current work interval and load the next break (paused)."""
    session.completed_work_intervals_in_set += 1
    kind = next_break_kind(session.completed_work_intervals_in_set, settings.sessions_per_set)
    session.interval_kind = kind
    session.seconds = max(0, settings.break_seconds(kind))
    session.work_interval_start_ms = None
    session.is_running = False
    return kind


def finish_break(session: ActiveSession) -> None:
    """Break over: back to a fresh, paused work interval."""
    session.interval_kind = IntervalKind.WORK
    session.seconds = 0
    session.work_interval_start_ms = None
    session.is_running = False


def restart_work(session: ActiveSession) -> None:
    """Fresh work interval at zero, set counter untouched."""
    session.interval_kind = IntervalKind.WORK
    session.seconds = 0
    session.work_interval_start_ms = None
    session.is_running = False


def reset_interval(session: ActiveSession, settings: Settings) -> None:
    """Stop and zero the current interval without changing its kind."""
    session.is_running = False
    session.work_interval_start_ms = None
    if session.interval_kind.is_break:
        session.seconds = settings.break_seconds(session.interval_kind)
    else:
        session.seconds = 0


def _crossed(before: int, after: int, target: int) -> bool:
    return before < target <= after


def tick_session(session: ActiveSession, settings: Settings) -> list[SessionEvent]:
    """Advance one running session by one second."""
    if not session.is_running:
        return []

    if session.interval_kind is IntervalKind.WORK:
        before = session.seconds
        session.seconds += 1
        if _crossed(before, session.seconds, settings.work_minutes * 60):
            return [SessionEvent.WORK_TARGET_REACHED]
        return []

    session.seconds = max(0, session.seconds - 1)
    if session.seconds <= 0:
        finish_break(session)
        return [SessionEvent.BREAK_FINISHED]
    return []


def resync_session(session: ActiveSession, settings: Settings, now_ms: int) -> list[SessionEvent]:
    """Recompute a running work session's elapsed time from its anchor."""
    if not (session.is_running and session.in_work_interval):
        return []
    before = session.seconds
    session.seconds = max(0, (now_ms - session.work_interval_start_ms) // 1000)
    if _crossed(before, session.seconds, settings.work_minutes * 60):
        return [SessionEvent.WORK_TARGET_REACHED]
    return []
