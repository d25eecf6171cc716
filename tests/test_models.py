"""Unit tests for the data model and record normalization."""

import pytest

from adagio.errors import InvalidInputError
from adagio.models import (
    DEFAULT_PROJECT_LABEL,
    ActiveSession,
    IntervalKind,
    LogEntry,
    Settings,
    duration_minutes,
    iso_to_ms,
    make_log_entry_id,
    ms_to_iso,
    normalize_log_entry,
    normalize_recent_projects,
    normalize_session,
    normalize_settings,
)

from helpers import T0, at


# ---- Time helpers ----

class TestDurationMinutes:
    def test_rounds_half_up(self):
        assert duration_minutes(0, 90_000) == 2
        assert duration_minutes(0, 30_000) == 1
        assert duration_minutes(0, 29_999) == 0

    def test_exact_minutes(self):
        assert duration_minutes(T0, T0 + 25 * 60_000) == 25

    def test_never_negative(self):
        assert duration_minutes(T0, T0 - 120_000) == 0


class TestIsoConversion:
    def test_z_suffix(self):
        assert iso_to_ms("2026-02-11T12:00:00.000Z") == T0

    def test_offset(self):
        assert iso_to_ms("2026-02-11T13:00:00+01:00") == T0

    def test_naive_is_utc(self):
        assert iso_to_ms("2026-02-11T12:00:00") == T0

    def test_epoch_number_passthrough(self):
        assert iso_to_ms(T0) == T0

    @pytest.mark.parametrize("value", ["", "not a date", None, True, float("nan"), {}])
    def test_invalid(self, value):
        assert iso_to_ms(value) is None

    def test_ms_to_iso(self):
        assert ms_to_iso(T0) == "2026-02-11T12:00:00.000Z"


def test_log_entry_ids():
    assert make_log_entry_id(T0, "abc") == f"{T0}-abc"
    assert make_log_entry_id(T0) == f"{T0}-manual"


# ---- Settings ----

class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert (s.work_minutes, s.short_break_minutes, s.long_break_minutes, s.sessions_per_set) == (25, 5, 15, 4)

    def test_break_seconds(self):
        s = Settings()
        assert s.break_seconds(IntervalKind.SHORT_BREAK) == 300
        assert s.break_seconds(IntervalKind.LONG_BREAK) == 900
        assert s.break_seconds(IntervalKind.WORK) == 0

    @pytest.mark.parametrize("field", ["work_minutes", "short_break_minutes", "long_break_minutes", "sessions_per_set"])
    def test_validate_rejects_non_positive(self, field):
        s = Settings(**{field: 0})
        with pytest.raises(InvalidInputError):
            s.validate()

    def test_normalize_legacy_keys(self):
        s = normalize_settings({"workDuration": 50, "pomodorosPerSet": 3})
        assert s == Settings(work_minutes=50, short_break_minutes=5, long_break_minutes=15, sessions_per_set=3)

    def test_normalize_invalid_values_fall_back(self):
        s = normalize_settings({"workMinutes": -5, "shortBreakMinutes": "ten", "longBreakMinutes": 20})
        assert s.work_minutes == 25
        assert s.short_break_minutes == 5
        assert s.long_break_minutes == 20

    def test_normalize_non_dict(self):
        assert normalize_settings(["garbage"]) == Settings()
        assert normalize_settings(None) == Settings()

    def test_to_dict_keys(self):
        assert Settings().to_dict() == {
            "workMinutes": 25,
            "shortBreakMinutes": 5,
            "longBreakMinutes": 15,
            "sessionsPerSet": 4,
        }


# ---- Sessions ----

class TestNormalizeSession:
    def test_legacy_fields(self):
        s = normalize_session(
            {
                "id": "s1",
                "project": "Old",
                "currentTime": 42,
                "currentInterval": "shortBreak",
                "pomodorosCompletedThisSet": 2,
                "isRunning": True,
                "lastWorkSessionStartTime": "2026-02-11T11:00:00Z",
            },
            T0,
        )
        assert s.project_label == "Old"
        assert s.interval_kind is IntervalKind.SHORT_BREAK
        assert s.seconds == 42
        assert s.completed_work_intervals_in_set == 2
        # breaks never carry a work anchor
        assert s.work_interval_start_ms is None

    def test_running_work_without_anchor_is_anchored(self):
        s = normalize_session({"id": "s1", "projectLabel": "P", "isRunning": True, "elapsedOrRemainingSeconds": 30}, T0)
        assert s.work_interval_start_ms == T0 - 30_000

    def test_future_anchor_clamped(self):
        s = normalize_session({"id": "s1", "workIntervalStartTimestamp": T0 + 60_000}, T0)
        assert s.work_interval_start_ms == T0

    def test_missing_fields(self):
        s = normalize_session({}, T0)
        assert s.id
        assert s.project_label == DEFAULT_PROJECT_LABEL
        assert s.interval_kind is IntervalKind.WORK
        assert s.seconds == 0
        assert s.is_running is False
        assert s.tasks == []

    def test_unknown_kind_resets_to_work(self):
        s = normalize_session({"id": "s1", "intervalKind": "nap"}, T0)
        assert s.interval_kind is IntervalKind.WORK

    def test_tasks_normalized(self):
        s = normalize_session({"id": "s1", "tasks": [{"text": "Draft"}, "junk"]}, T0)
        assert [t.text for t in s.tasks] == ["Draft", ""]
        assert all(t.id for t in s.tasks)
        assert not any(t.completed for t in s.tasks)

    def test_round_trips_through_dict(self):
        original = ActiveSession(
            id="s1", project_label="P", interval_kind=IntervalKind.WORK,
            seconds=90, is_running=True, work_interval_start_ms=T0 - 90_000,
        )
        assert normalize_session(original.to_dict(), T0) == original


class TestWorkElapsed:
    def test_running_measures_from_anchor(self):
        s = ActiveSession(id="s", project_label="P", seconds=5, is_running=True, work_interval_start_ms=T0 - 90_000)
        assert s.work_elapsed_ms(T0) == 90_000

    def test_paused_uses_frozen_seconds(self):
        s = ActiveSession(id="s", project_label="P", seconds=75, is_running=False, work_interval_start_ms=T0 - 500_000)
        assert s.work_elapsed_ms(T0) == 75_000

    def test_not_started(self):
        s = ActiveSession(id="s", project_label="P")
        assert s.work_elapsed_ms(T0) == 0


# ---- Log entries ----

class TestNormalizeLogEntry:
    def test_legacy_fields(self):
        e = normalize_log_entry(
            {
                "startTime": "2026-02-11T11:00:00Z",
                "endTime": "2026-02-11T11:25:00Z",
                "duration": 25,
                "project": "Legacy",
                "sessionId": "abc",
            },
            T0,
        )
        assert e.duration_minutes == 25
        assert e.project_label == "Legacy"
        assert e.source_session_id == "abc"
        assert e.id == f"{at(2026, 2, 11, 11, 25)}-abc"

    def test_invalid_times_fall_back(self):
        e = normalize_log_entry({"id": "x", "startTime": "garbage", "endTime": None}, T0)
        assert e.start_ms == T0
        assert e.end_ms == T0

    def test_invalid_duration_is_zero(self):
        e = normalize_log_entry({"id": "x", "startTime": T0, "endTime": T0, "durationMinutes": -3}, T0)
        assert e.duration_minutes == 0

    def test_to_dict_omits_empty_optionals(self):
        e = LogEntry(id="x", start_ms=T0 - 60_000, end_ms=T0, duration_minutes=1)
        assert e.to_dict() == {
            "id": "x",
            "startTime": "2026-02-11T11:59:00.000Z",
            "endTime": "2026-02-11T12:00:00.000Z",
            "durationMinutes": 1,
        }


def test_normalize_recent_projects():
    assert normalize_recent_projects([" A ", "B", "A", "", 7, "C"], 2) == ["A", "B"]
    assert normalize_recent_projects("nope", 5) == []
