"""Tier-based retention of the work log.

Free accounts see entries that ended within the last N calendar days
(today counts as day one, whatever the hour); premium accounts see
everything. The full log is always kept; only the displayed view is
filtered.
"""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo

from .models import LogEntry

FREE_USER_LOG_HISTORY_DAYS = 3


def local_tz() -> tzinfo:
    return datetime.now().astimezone().tzinfo


def window_start_ms(now_ms: int, days: int, tz: tzinfo | None = None) -> int:
    """Start of the local day ``days - 1`` days before today."""
    tz = tz or local_tz()
    now = datetime.fromtimestamp(now_ms / 1000, tz=tz)
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    cutoff = start_of_today - timedelta(days=max(days, 1) - 1)
    return int(cutoff.timestamp() * 1000)


class RetentionManager:
    def __init__(self, days: int = FREE_USER_LOG_HISTORY_DAYS, tz: tzinfo | None = None):
        self.days = days
        self.tz = tz

    def cutoff_ms(self, now_ms: int) -> int:
        return window_start_ms(now_ms, self.days, self.tz)

    def within_window(self, entry: LogEntry, now_ms: int) -> bool:
        return entry.end_ms >= self.cutoff_ms(now_ms)

    def displayed(self, full_log: list[LogEntry], is_premium: bool, now_ms: int) -> list[LogEntry]:
        if is_premium:
            return list(full_log)
        cutoff = self.cutoff_ms(now_ms)
        return [e for e in full_log if e.end_ms >= cutoff]

    def exceeds_free_limit(self, full_log: list[LogEntry], is_premium: bool, now_ms: int) -> bool:
        """True when a free account has history hidden by the window."""
        if is_premium:
            return False
        cutoff = self.cutoff_ms(now_ms)
        return any(e.end_ms < cutoff for e in full_log)
