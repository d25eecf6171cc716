"""Data model: settings, active sessions, tasks and log entries.

Serialized forms use camelCase keys; the remote document and the local
records share them. The ``normalize_*`` functions repair records written
by older schemas or a corrupted store instead of rejecting them.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .errors import InvalidInputError

logger = logging.getLogger("adagio.models")

DEFAULT_PROJECT_LABEL = "Untitled Session"
MANUAL_ENTRY_SUFFIX = "manual"


class IntervalKind(str, Enum):
    WORK = "work"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @property
    def is_break(self) -> bool:
        return self is not IntervalKind.WORK


# ---- Time helpers ----

def ms_to_iso(ms: int) -> str:
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_to_ms(value: Any) -> int | None:
    """Parse an ISO-8601 string (or epoch ms number) into epoch ms."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return int(value)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def duration_minutes(start_ms: int, end_ms: int) -> int:
    """Whole minutes between two timestamps, rounded half-up, never negative."""
    return max(0, (end_ms - start_ms + 30_000) // 60_000)


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def make_log_entry_id(end_ms: int, session_id: str | None = None) -> str:
    return f"{end_ms}-{session_id or MANUAL_ENTRY_SUFFIX}"


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        return None
    value = int(value)
    return value if value > 0 else None


def _non_negative_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return max(0, int(value))


def _clean_text(value: Any) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return value


# ---- Account ----

@dataclass(frozen=True)
class Account:
    account_id: str | None = None
    is_premium: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.account_id is not None


# ---- Settings ----

# Keys written by earlier schemas, mapped to the current field names
_LEGACY_SETTINGS_KEYS = {
    "workMinutes": ("workDuration",),
    "shortBreakMinutes": ("shortBreakDuration",),
    "longBreakMinutes": ("longBreakDuration",),
    "sessionsPerSet": ("pomodorosPerSet", "timersPerSet"),
}


@dataclass
class Settings:
    work_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    sessions_per_set: int = 4

    def break_seconds(self, kind: IntervalKind) -> int:
        if kind is IntervalKind.SHORT_BREAK:
            return self.short_break_minutes * 60
        if kind is IntervalKind.LONG_BREAK:
            return self.long_break_minutes * 60
        return 0

    def validate(self) -> None:
        for name in ("work_minutes", "short_break_minutes", "long_break_minutes", "sessions_per_set"):
            if _positive_int(getattr(self, name)) is None:
                raise InvalidInputError(f"{name} must be a positive integer")

    def to_dict(self) -> dict:
        return {
            "workMinutes": self.work_minutes,
            "shortBreakMinutes": self.short_break_minutes,
            "longBreakMinutes": self.long_break_minutes,
            "sessionsPerSet": self.sessions_per_set,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Settings":
        return normalize_settings(data)


def normalize_settings(data: Any) -> Settings:
    defaults = Settings()
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Malformed settings record, using defaults: %r", data)
        return defaults

    values = {}
    for key, attr in (
        ("workMinutes", "work_minutes"),
        ("shortBreakMinutes", "short_break_minutes"),
        ("longBreakMinutes", "long_break_minutes"),
        ("sessionsPerSet", "sessions_per_set"),
    ):
        raw = data.get(key)
        if raw is None:
            for legacy in _LEGACY_SETTINGS_KEYS[key]:
                if legacy in data:
                    raw = data[legacy]
                    break
        value = _positive_int(raw)
        if value is None:
            if raw is not None:
                logger.warning("Invalid settings value %s=%r, using default", key, raw)
            value = getattr(defaults, attr)
        values[attr] = value
    return Settings(**values)


# ---- Tasks ----

@dataclass
class Task:
    id: str
    text: str
    completed: bool = False

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "completed": self.completed}


def normalize_task(data: Any) -> Task:
    if not isinstance(data, dict):
        data = {}
    task_id = data.get("id")
    text = data.get("text")
    return Task(
        id=str(task_id) if task_id not in (None, "") else new_id(),
        text=text if isinstance(text, str) else "",
        completed=bool(data.get("completed", False)),
    )


# ---- Active sessions ----

@dataclass
class ActiveSession:
    """A timed session. ``seconds`` counts up during work, down during breaks.

    ``work_interval_start_ms`` anchors the current work interval; it is set
    iff the session is in a work interval that is (or was, before pausing)
    in progress.
    """

    id: str
    project_label: str
    tasks: list[Task] = field(default_factory=list)
    interval_kind: IntervalKind = IntervalKind.WORK
    seconds: int = 0
    is_running: bool = False
    completed_work_intervals_in_set: int = 0
    work_interval_start_ms: int | None = None

    @property
    def in_work_interval(self) -> bool:
        return self.interval_kind is IntervalKind.WORK and self.work_interval_start_ms is not None

    def work_elapsed_ms(self, now_ms: int) -> int:
        """Elapsed time of the current work interval.

        Running sessions are measured from the anchor; paused sessions
        report the elapsed time frozen at pause.
        """
        if not self.in_work_interval:
            return 0
        if self.is_running:
            return max(0, now_ms - self.work_interval_start_ms)
        return self.seconds * 1000

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectLabel": self.project_label,
            "tasks": [t.to_dict() for t in self.tasks],
            "intervalKind": self.interval_kind.value,
            "elapsedOrRemainingSeconds": self.seconds,
            "isRunning": self.is_running,
            "completedWorkIntervalsInSet": self.completed_work_intervals_in_set,
            "workIntervalStartTimestamp": self.work_interval_start_ms,
        }

    @classmethod
    def from_dict(cls, data: Any, now_ms: int) -> "ActiveSession":
        return normalize_session(data, now_ms)


def _first_present(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def normalize_session(data: Any, now_ms: int) -> ActiveSession:
    if not isinstance(data, dict):
        logger.warning("Malformed session record, replacing with empty session: %r", data)
        data = {}

    session_id = data.get("id")
    label = _clean_text(_first_present(data, "projectLabel", "project"))

    try:
        kind = IntervalKind(_first_present(data, "intervalKind", "currentInterval") or "work")
    except ValueError:
        logger.warning("Unknown interval kind in session %s, resetting to work", session_id)
        kind = IntervalKind.WORK

    raw_tasks = data.get("tasks")
    tasks = [normalize_task(t) for t in raw_tasks] if isinstance(raw_tasks, list) else []

    session = ActiveSession(
        id=str(session_id) if session_id not in (None, "") else new_id(),
        project_label=label.strip() if label else DEFAULT_PROJECT_LABEL,
        tasks=tasks,
        interval_kind=kind,
        seconds=_non_negative_int(_first_present(data, "elapsedOrRemainingSeconds", "currentTime")),
        is_running=bool(data.get("isRunning", False)),
        completed_work_intervals_in_set=_non_negative_int(
            _first_present(data, "completedWorkIntervalsInSet", "pomodorosCompletedThisSet", "timersCompletedThisSet")
        ),
        work_interval_start_ms=iso_to_ms(_first_present(data, "workIntervalStartTimestamp", "lastWorkSessionStartTime")),
    )

    if kind.is_break:
        session.work_interval_start_ms = None
    elif session.is_running and session.work_interval_start_ms is None:
        session.work_interval_start_ms = now_ms - session.seconds * 1000
    elif session.work_interval_start_ms is not None and session.work_interval_start_ms > now_ms:
        session.work_interval_start_ms = now_ms
    return session


# ---- Log entries ----

@dataclass(frozen=True)
class LogEntry:
    id: str
    start_ms: int
    end_ms: int
    duration_minutes: int
    project_label: str | None = None
    summary: str | None = None
    source_session_id: str | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "startTime": ms_to_iso(self.start_ms),
            "endTime": ms_to_iso(self.end_ms),
            "durationMinutes": self.duration_minutes,
        }
        if self.project_label:
            data["projectLabel"] = self.project_label
        if self.summary:
            data["summary"] = self.summary
        if self.source_session_id:
            data["sourceSessionId"] = self.source_session_id
        return data

    @classmethod
    def from_dict(cls, data: Any, now_ms: int) -> "LogEntry":
        return normalize_log_entry(data, now_ms)


def normalize_log_entry(data: Any, now_ms: int) -> LogEntry:
    if not isinstance(data, dict):
        logger.warning("Malformed log entry, replacing with empty entry: %r", data)
        data = {}

    start_ms = iso_to_ms(data.get("startTime"))
    if start_ms is None:
        logger.warning("Invalid startTime in log entry %s, using current time", data.get("id"))
        start_ms = now_ms
    end_ms = iso_to_ms(data.get("endTime"))
    if end_ms is None:
        logger.warning("Invalid endTime in log entry %s, using startTime", data.get("id"))
        end_ms = start_ms

    duration = _first_present(data, "durationMinutes", "duration")
    if isinstance(duration, bool) or not isinstance(duration, (int, float)) or not math.isfinite(duration) or duration < 0:
        duration = 0

    source = _clean_text(_first_present(data, "sourceSessionId", "sessionId"))
    entry_id = data.get("id")
    return LogEntry(
        id=str(entry_id) if entry_id not in (None, "") else make_log_entry_id(end_ms, source),
        start_ms=start_ms,
        end_ms=end_ms,
        duration_minutes=int(duration),
        project_label=_clean_text(_first_present(data, "projectLabel", "project")),
        summary=_clean_text(data.get("summary")),
        source_session_id=source,
    )


def normalize_recent_projects(data: Any, limit: int) -> list[str]:
    if not isinstance(data, list):
        if data is not None:
            logger.warning("Malformed recent projects record, using empty list: %r", data)
        return []
    result: list[str] = []
    for item in data:
        label = _clean_text(item)
        if label and label.strip() not in result:
            result.append(label.strip())
    return result[:limit]
