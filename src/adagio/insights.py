"""Period filters and aggregates over the displayed log."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum

from .errors import InvalidInputError
from .models import LogEntry
from .retention import local_tz

NO_PROJECT = "No Project"


class TimeFilter(str, Enum):
    TODAY = "today"
    THIS_WEEK = "thisWeek"
    THIS_MONTH = "thisMonth"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ProjectTotal:
    name: str
    total_minutes: int

    def to_dict(self) -> dict:
        return {"name": self.name, "totalMinutes": self.total_minutes}


@dataclass(frozen=True)
class InsightsStats:
    total_minutes: int
    total_sessions: int
    average_session_minutes: int

    def to_dict(self) -> dict:
        return {
            "totalMinutes": self.total_minutes,
            "totalSessions": self.total_sessions,
            "averageSessionMinutes": self.average_session_minutes,
        }


def format_time(seconds: int) -> str:
    """MM:SS, or HH:MM:SS once an hour is reached."""
    seconds = max(0, int(seconds))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def _day_start_ms(day: date, tz: tzinfo) -> int:
    return int(datetime.combine(day, time.min, tzinfo=tz).timestamp() * 1000)


def period_bounds(
    period: TimeFilter,
    now_ms: int,
    tz: tzinfo | None = None,
    start: date | None = None,
    end: date | None = None,
) -> tuple[int, int]:
    """Half-open [start, end) bounds in epoch ms for a period."""
    tz = tz or local_tz()
    today = datetime.fromtimestamp(now_ms / 1000, tz=tz).date()

    if period is TimeFilter.TODAY:
        first, last = today, today
    elif period is TimeFilter.THIS_WEEK:
        first = today - timedelta(days=today.weekday())
        last = first + timedelta(days=6)
    elif period is TimeFilter.THIS_MONTH:
        first = today.replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        last = next_month - timedelta(days=1)
    else:
        if start is None:
            raise InvalidInputError("Custom period requires a start date")
        first, last = start, end or start
        if last < first:
            raise InvalidInputError("Custom period end is before its start")

    return _day_start_ms(first, tz), _day_start_ms(last + timedelta(days=1), tz)


def entries_for_period(
    log: list[LogEntry],
    period: TimeFilter,
    now_ms: int,
    tz: tzinfo | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[LogEntry]:
    lo, hi = period_bounds(period, now_ms, tz, start, end)
    return [e for e in log if lo <= e.end_ms < hi]


def project_totals(entries: list[LogEntry]) -> list[ProjectTotal]:
    totals: dict[str, int] = {}
    for entry in entries:
        name = entry.project_label or NO_PROJECT
        totals[name] = totals.get(name, 0) + entry.duration_minutes
    return sorted(
        (ProjectTotal(name, minutes) for name, minutes in totals.items()),
        key=lambda t: t.total_minutes,
        reverse=True,
    )


def insights_stats(entries: list[LogEntry]) -> InsightsStats:
    total_minutes = sum(e.duration_minutes for e in entries)
    total_sessions = len(entries)
    average = (2 * total_minutes + total_sessions) // (2 * total_sessions) if total_sessions else 0
    return InsightsStats(total_minutes, total_sessions, average)
