"""Engine facade: the single entry point the UI and the HTTP layer call.

Owns settings, the full log, the session registry and recent projects,
and wires them to the tick scheduler, the retention view, soft-delete,
the sync layer and the text service.

Single-threaded by contract: every operation and every scheduler job
runs on one event loop. Snapshots replace state wholesale (last write
wins); a snapshot applied twice leaves the same state as once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Callable

from .clock import SystemClock
from .errors import InvalidInputError, LogEntryNotFoundError, NothingPendingError
from .insights import InsightsStats, ProjectTotal, TimeFilter, entries_for_period, insights_stats, project_totals
from .intervals import SessionEvent, finish_break, finish_work, reset_interval, restart_work, resync_session, tick_session
from .local_store import ACTIVE_SESSIONS_KEY, LOG_KEY, RECENT_PROJECTS_KEY, SETTINGS_KEY, LocalStore
from .models import (
    Account,
    ActiveSession,
    IntervalKind,
    LogEntry,
    Settings,
    Task,
    duration_minutes,
    make_log_entry_id,
)
from .recent import RecentProjects
from .registry import SessionRegistry
from .remote_store import HttpRemoteStore, RemoteStore
from .retention import RetentionManager
from .sync import Document, SyncLayer, parse_document
from .text_gen import HttpTextGenerator, Quote, TextService
from .ticker import TickScheduler
from .undo import UNDO_TIMEOUT_SECONDS, UndoDeleteManager

logger = logging.getLogger("adagio.engine")

SHORT_SESSION_MS = 60_000
ALL_KEYS = (SETTINGS_KEY, LOG_KEY, ACTIVE_SESSIONS_KEY, RECENT_PROJECTS_KEY)


class EngineEvent(Enum):
    STATE_CHANGED = "state_changed"
    ENTRY_LOGGED = "entry_logged"
    CONFIRMATION_REQUIRED = "confirmation_required"
    INTERVAL_COMPLETED = "interval_completed"
    WORK_TARGET_REACHED = "work_target_reached"
    SESSION_REMOVED = "session_removed"
    ENTRY_DELETED = "entry_deleted"
    ENTRY_RESTORED = "entry_restored"
    SYNC_ERROR = "sync_error"


class PendingAction(str, Enum):
    END = "end"
    SKIP = "skip"
    REMOVE = "remove"


@dataclass(frozen=True)
class PendingLog:
    """A work interval waiting on the user before it is logged.

    The session is held paused while this is outstanding. ``end_ms`` and
    ``elapsed_ms`` are captured when the request was made, so the time
    spent deciding is not logged.
    """

    session_id: str
    action: PendingAction
    end_ms: int
    elapsed_ms: int
    was_running: bool
    short: bool

    @property
    def start_ms(self) -> int:
        return self.end_ms - self.elapsed_ms

    @property
    def duration_minutes(self) -> int:
        return duration_minutes(self.start_ms, self.end_ms)

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "action": self.action.value,
            "elapsedSeconds": self.elapsed_ms // 1000,
            "durationMinutes": self.duration_minutes,
            "short": self.short,
        }


Listener = Callable[[EngineEvent, dict], None]


class Engine:
    def __init__(
        self,
        local_store: LocalStore,
        scheduler,
        clock=None,
        remote_store: RemoteStore | None = None,
        text_service: TextService | None = None,
        retention: RetentionManager | None = None,
        undo_grace_seconds: int = UNDO_TIMEOUT_SECONDS,
        tz=None,
    ):
        self.clock = clock or SystemClock()
        self.tz = tz
        self.sync = SyncLayer(local_store, remote_store, scheduler, self.clock, on_error=self._on_sync_error)
        self.retention = retention or RetentionManager(tz=tz)
        self.text = text_service or TextService()
        self.ticker = TickScheduler(scheduler, self.tick)
        self.undo = UndoDeleteManager(scheduler, self.clock, self._finalize_delete, undo_grace_seconds)

        self.settings = Settings()
        self.registry = SessionRegistry()
        self.recent = RecentProjects()
        self.account = Account()
        self._full_log: list[LogEntry] = []
        self._pending: PendingLog | None = None
        self._deleted_index: int | None = None
        self._listeners: list[Listener] = []

    # ---- Observers ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: EngineEvent, **payload: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception("Listener failed handling %s", event.value)

    # ---- Read-only views ----

    @property
    def sessions(self) -> list[ActiveSession]:
        return self.registry.all()

    @property
    def full_log(self) -> list[LogEntry]:
        return list(self._full_log)

    @property
    def log(self) -> list[LogEntry]:
        """Log as displayed for the current tier."""
        return self.retention.displayed(self._full_log, self.account.is_premium, self.clock.now_ms())

    @property
    def exceeds_free_limit(self) -> bool:
        return self.retention.exceeds_free_limit(self._full_log, self.account.is_premium, self.clock.now_ms())

    @property
    def recent_projects(self) -> list[str]:
        return self.recent.items

    @property
    def pending(self) -> PendingLog | None:
        return self._pending

    @property
    def pending_deletion(self) -> LogEntry | None:
        return self.undo.pending

    def state(self) -> dict:
        pending_deletion = self.undo.pending
        return {
            "account": {
                "accountId": self.account.account_id,
                "isPremium": self.account.is_premium,
            },
            "settings": self.settings.to_dict(),
            "sessions": [s.to_dict() for s in self.registry.all()],
            "log": [e.to_dict() for e in self.log],
            "exceedsFreeLimit": self.exceeds_free_limit,
            "recentProjects": self.recent.items,
            "pending": self._pending.to_dict() if self._pending else None,
            "pendingDeletion": pending_deletion.to_dict() if pending_deletion else None,
            "tickerActive": self.ticker.active,
        }

    # ---- Persistence plumbing ----

    def _serialize(self, key: str) -> Any:
        if key == SETTINGS_KEY:
            return self.settings.to_dict()
        if key == LOG_KEY:
            return [e.to_dict() for e in self._full_log]
        if key == ACTIVE_SESSIONS_KEY:
            return [s.to_dict() for s in self.registry.all()]
        return self.recent.items

    def _commit(self, *keys: str) -> None:
        """Persist the given namespaces, then refresh the ticker and observers.

        Called once, last, by each mutating operation.
        """
        self.sync.persist({key: self._serialize(key) for key in keys})
        self.ticker.sync(self.registry.running_count)
        self._notify(EngineEvent.STATE_CHANGED)

    def _apply_document(self, doc: Document) -> list[tuple[SessionEvent, ActiveSession]]:
        self.settings = doc.settings
        self._full_log = doc.log
        self.registry.replace_all(doc.sessions)
        self.recent.replace(doc.recent_projects)
        return self._resync_running()

    def _replace_state(self, doc: Document) -> list[tuple[SessionEvent, ActiveSession]]:
        """Apply a document over live state; returns notices not yet announced.

        A work interval that was already past its target before the
        replacement was announced then, even if the incoming copy of it
        lags behind.
        """
        target = self.settings.work_minutes * 60
        announced = {
            (s.id, s.work_interval_start_ms)
            for s in self.registry.all()
            if s.in_work_interval and s.seconds >= target
        }
        held = self._pending.session_id if self._pending is not None else None
        return [
            (event, session)
            for event, session in self._apply_document(doc)
            if session.id != held and (session.id, session.work_interval_start_ms) not in announced
        ]

    def _resync_running(self) -> list[tuple[SessionEvent, ActiveSession]]:
        now = self.clock.now_ms()
        fired = []
        for session in self.registry.running():
            for event in resync_session(session, self.settings, now):
                fired.append((event, session))
        return fired

    # ---- Lifecycle ----

    def load(self) -> None:
        """Load local state on startup."""
        fired = self._apply_document(self.sync.load_local(self.clock.now_ms()))
        logger.info(
            "Loaded %d sessions and %d log entries from the local store",
            len(self.registry), len(self._full_log),
        )
        self.ticker.sync(self.registry.running_count)
        self._notify(EngineEvent.STATE_CHANGED)
        self._announce(fired)

    def set_account(self, account_id: str | None, is_premium: bool = False) -> None:
        """Sign in, sign out, or change tier.

        Signing in subscribes to the account's document; its snapshots
        become authoritative. Signing out makes the local store
        authoritative again.
        """
        previous = self.account
        self.account = Account(account_id or None, bool(account_id) and is_premium)
        self.text.premium = self.account.is_premium

        fired: list[tuple[SessionEvent, ActiveSession]] = []
        if self.account.account_id != previous.account_id:
            # Commit the pending deletion against the account it was made on
            self.undo.finalize()
            self._pending = None
            self.sync.detach()
            if self.account.is_authenticated:
                logger.info("Account %s signed in", self.account.account_id)
                self.sync.attach(self.account.account_id, self.apply_snapshot, self._on_subscription_error)
            else:
                logger.info("Signed out, local store is authoritative")
                fired = self._replace_state(self.sync.load_local(self.clock.now_ms()))
                self.ticker.sync(self.registry.running_count)
        self._notify(EngineEvent.STATE_CHANGED)
        self._announce(fired)

    def apply_snapshot(self, raw: dict) -> None:
        """Replace state with a remote snapshot and mirror it locally."""
        now = self.clock.now_ms()
        doc = parse_document(raw, now)
        deleting = self.undo.pending
        if deleting is not None:
            doc.log = [e for e in doc.log if e.id != deleting.id]
        fired = self._replace_state(doc)

        if self._pending is not None:
            if self._pending.session_id in self.registry:
                self.registry.get(self._pending.session_id).is_running = False
            else:
                self._pending = None

        self.sync.write_local({key: self._serialize(key) for key in ALL_KEYS})
        self.ticker.sync(self.registry.running_count)
        self._notify(EngineEvent.STATE_CHANGED)
        self._announce(fired)

    def _on_subscription_error(self, error: Exception) -> None:
        # In-memory state was loaded from the local mirror or an earlier
        # snapshot; keep working from it until the stream recovers.
        logger.warning("Remote subscription error, continuing on local data: %s", error)
        self._notify(EngineEvent.SYNC_ERROR, error=str(error))

    def _on_sync_error(self, error: Exception) -> None:
        self._notify(EngineEvent.SYNC_ERROR, error=str(error))

    # ---- Sessions ----

    def add_session(self, project_label: str) -> ActiveSession:
        session = self.registry.add(project_label)
        self.recent.add(session.project_label)
        logger.info("Session %s added for '%s'", session.id, session.project_label)
        self._commit(ACTIVE_SESSIONS_KEY, RECENT_PROJECTS_KEY)
        return session

    def start(self, session_id: str) -> ActiveSession:
        session = self.registry.get(session_id)
        if self._pending is not None and self._pending.session_id == session_id:
            self._pending = None
        self.registry.start(session_id, self.clock.now_ms())
        self._commit(ACTIVE_SESSIONS_KEY)
        return session

    def pause(self, session_id: str) -> ActiveSession:
        session = self.registry.get(session_id)
        if session.is_running and session.in_work_interval:
            resync_session(session, self.settings, self.clock.now_ms())
        self.registry.pause(session_id)
        self._commit(ACTIVE_SESSIONS_KEY)
        return session

    def reset_session(self, session_id: str) -> ActiveSession:
        session = self.registry.get(session_id)
        if self._pending is not None and self._pending.session_id == session_id:
            self._pending = None
        reset_interval(session, self.settings)
        self._commit(ACTIVE_SESSIONS_KEY)
        return session

    def end_work_interval(self, session_id: str) -> LogEntry | PendingLog | None:
        """Log the current work interval and start a fresh one.

        Returns the entry, a PendingLog when confirmation is needed, or
        None when there was nothing to log.
        """
        session = self.registry.get(session_id)
        if session.interval_kind is not IntervalKind.WORK:
            raise InvalidInputError("No work interval in progress")
        return self._close_work(session, PendingAction.END)

    def skip_interval(self, session_id: str) -> LogEntry | PendingLog | None:
        """Skip to the next interval. Skipping work logs it first."""
        session = self.registry.get(session_id)
        if session.interval_kind.is_break:
            finish_break(session)
            self._commit(ACTIVE_SESSIONS_KEY)
            self._notify(EngineEvent.INTERVAL_COMPLETED, session_id=session.id, kind=IntervalKind.WORK.value)
            return None
        return self._close_work(session, PendingAction.SKIP)

    def remove(self, session_id: str) -> PendingLog | None:
        """Remove a session. Loggable work asks for a summary first."""
        session = self.registry.get(session_id)
        if session.interval_kind is IntervalKind.WORK:
            result = self._close_work(session, PendingAction.REMOVE)
            return result if isinstance(result, PendingLog) else None
        self._apply_action(session, PendingAction.REMOVE)
        self._commit(ACTIVE_SESSIONS_KEY)
        self._notify(EngineEvent.SESSION_REMOVED, session_id=session_id)
        return None

    def _close_work(self, session: ActiveSession, action: PendingAction) -> LogEntry | PendingLog | None:
        now = self.clock.now_ms()
        elapsed = session.work_elapsed_ms(now)
        if elapsed < 1000:
            self._apply_action(session, action)
            self._commit(ACTIVE_SESSIONS_KEY)
            self._after_action(session, action)
            return None

        pending = PendingLog(
            session_id=session.id,
            action=action,
            end_ms=now,
            elapsed_ms=elapsed,
            was_running=session.is_running,
            short=elapsed < SHORT_SESSION_MS,
        )
        if action is PendingAction.REMOVE or pending.short:
            self._request_confirmation(session, pending)
            return pending

        entry = self._log_work(session, pending, None)
        self._apply_action(session, action)
        self._commit(LOG_KEY, ACTIVE_SESSIONS_KEY, RECENT_PROJECTS_KEY)
        self._notify(EngineEvent.ENTRY_LOGGED, entry=entry)
        self._after_action(session, action)
        return entry

    def _request_confirmation(self, session: ActiveSession, pending: PendingLog) -> None:
        if self._pending is not None:
            self.cancel_pending()
        self._pending = pending
        session.is_running = False
        self.ticker.sync(self.registry.running_count)
        logger.info(
            "Confirmation required to %s session %s (%ds of work)",
            pending.action.value, session.id, pending.elapsed_ms // 1000,
        )
        self._notify(EngineEvent.CONFIRMATION_REQUIRED, pending=pending)
        self._notify(EngineEvent.STATE_CHANGED)

    def _apply_action(self, session: ActiveSession, action: PendingAction) -> None:
        if action is PendingAction.END:
            restart_work(session)
        elif action is PendingAction.SKIP:
            finish_work(session, self.settings)
        else:
            self.registry.remove(session.id)
            logger.info("Session %s removed", session.id)

    def _after_action(self, session: ActiveSession, action: PendingAction) -> None:
        if action is PendingAction.SKIP:
            self._notify(EngineEvent.INTERVAL_COMPLETED, session_id=session.id, kind=session.interval_kind.value)
        elif action is PendingAction.REMOVE:
            self._notify(EngineEvent.SESSION_REMOVED, session_id=session.id)

    def _log_work(self, session: ActiveSession, pending: PendingLog, summary: str | None) -> LogEntry:
        entry = LogEntry(
            id=self._unique_entry_id(make_log_entry_id(pending.end_ms, session.id)),
            start_ms=pending.start_ms,
            end_ms=pending.end_ms,
            duration_minutes=pending.duration_minutes,
            project_label=session.project_label,
            summary=(summary or "").strip() or None,
            source_session_id=session.id,
        )
        self._full_log.append(entry)
        self.recent.add(session.project_label)
        session.tasks = []
        logger.info(
            "Logged %d min for '%s' (entry %s)", entry.duration_minutes, entry.project_label, entry.id
        )
        return entry

    def _unique_entry_id(self, base: str) -> str:
        taken = {e.id for e in self._full_log}
        if self.undo.pending is not None:
            taken.add(self.undo.pending.id)
        candidate, n = base, 1
        while candidate in taken:
            n += 1
            candidate = f"{base}-{n}"
        return candidate

    # ---- Confirmation ----

    def _take_pending(self) -> tuple[PendingLog, ActiveSession]:
        pending = self._pending
        if pending is None:
            raise NothingPendingError("No confirmation is pending")
        self._pending = None
        return pending, self.registry.get(pending.session_id)

    def confirm_pending(self, summary: str | None = None) -> LogEntry:
        """Log the pending interval (with an optional summary) and finish the action."""
        pending, session = self._take_pending()
        entry = self._log_work(session, pending, summary)
        self._apply_action(session, pending.action)
        self._commit(LOG_KEY, ACTIVE_SESSIONS_KEY, RECENT_PROJECTS_KEY)
        self._notify(EngineEvent.ENTRY_LOGGED, entry=entry)
        self._after_action(session, pending.action)
        return entry

    def discard_pending(self) -> None:
        """Finish the action without logging."""
        pending, session = self._take_pending()
        logger.info("Discarded %ds of work on session %s", pending.elapsed_ms // 1000, session.id)
        self._apply_action(session, pending.action)
        self._commit(ACTIVE_SESSIONS_KEY)
        self._after_action(session, pending.action)

    def cancel_pending(self) -> ActiveSession:
        """Back out: nothing is logged and the timer resumes if it was running."""
        pending, session = self._take_pending()
        session.is_running = pending.was_running
        if session.is_running:
            resync_session(session, self.settings, self.clock.now_ms())
        self.ticker.sync(self.registry.running_count)
        self._notify(EngineEvent.STATE_CHANGED)
        return session

    # ---- Session edits ----

    def edit_start_time(self, session_id: str, new_start_ms: int) -> ActiveSession:
        session = self.registry.edit_start_time(session_id, new_start_ms, self.clock.now_ms())
        self._commit(ACTIVE_SESSIONS_KEY)
        return session

    def add_task(self, session_id: str, text: str) -> Task:
        task = self.registry.add_task(session_id, text)
        self._commit(ACTIVE_SESSIONS_KEY)
        return task

    def toggle_task(self, session_id: str, task_id: str) -> Task:
        task = self.registry.toggle_task(session_id, task_id)
        self._commit(ACTIVE_SESSIONS_KEY)
        return task

    def delete_task(self, session_id: str, task_id: str) -> None:
        self.registry.delete_task(session_id, task_id)
        self._commit(ACTIVE_SESSIONS_KEY)

    # ---- Timing ----

    def tick(self) -> None:
        """Advance every running session by one second."""
        fired: list[tuple[SessionEvent, ActiveSession]] = []
        for session in self.registry.running():
            for event in tick_session(session, self.settings):
                fired.append((event, session))

        if any(event is SessionEvent.BREAK_FINISHED for event, _ in fired):
            self._commit(ACTIVE_SESSIONS_KEY)
        else:
            self.ticker.sync(self.registry.running_count)
            self._notify(EngineEvent.STATE_CHANGED)
        self._announce(fired)

    def on_visibility_change(self, visible: bool) -> None:
        """Catch up after the host was backgrounded or suspended."""
        if not visible:
            return
        fired = self._resync_running()
        self._notify(EngineEvent.STATE_CHANGED)
        self._announce(fired)

    def _announce(self, fired: list[tuple[SessionEvent, ActiveSession]]) -> None:
        for event, session in fired:
            if event is SessionEvent.BREAK_FINISHED:
                logger.info("Break finished for session %s", session.id)
                self._notify(EngineEvent.INTERVAL_COMPLETED, session_id=session.id, kind=IntervalKind.WORK.value)
            else:
                self._notify(
                    EngineEvent.WORK_TARGET_REACHED,
                    session_id=session.id,
                    work_minutes=self.settings.work_minutes,
                )

    # ---- Settings ----

    def update_settings(self, **changes: int) -> Settings:
        unknown = set(changes) - {"work_minutes", "short_break_minutes", "long_break_minutes", "sessions_per_set"}
        if unknown:
            raise InvalidInputError(f"Unknown settings: {', '.join(sorted(unknown))}")
        updated = replace(self.settings, **changes)
        updated.validate()
        self.settings = updated
        self._commit(SETTINGS_KEY)
        return updated

    # ---- Log ----

    def _find_entry(self, entry_id: str) -> int:
        for i, entry in enumerate(self._full_log):
            if entry.id == entry_id:
                return i
        raise LogEntryNotFoundError(entry_id)

    def _check_times(self, start_ms: int, end_ms: int) -> None:
        if end_ms <= start_ms:
            raise InvalidInputError("End time must be after start time")
        if end_ms > self.clock.now_ms():
            raise InvalidInputError("End time cannot be in the future")

    def add_manual_entry(
        self,
        start_ms: int,
        end_ms: int,
        project_label: str | None = None,
        summary: str | None = None,
        allow_short: bool = False,
    ) -> LogEntry:
        """Log time worked away from the timer.

        Entries shorter than one minute need ``allow_short``.
        """
        self._check_times(start_ms, end_ms)
        minutes = duration_minutes(start_ms, end_ms)
        if minutes < 1 and not allow_short:
            raise InvalidInputError("Entry is shorter than one minute; confirm to log it")
        label = (project_label or "").strip() or None
        entry = LogEntry(
            id=self._unique_entry_id(make_log_entry_id(end_ms)),
            start_ms=start_ms,
            end_ms=end_ms,
            duration_minutes=minutes,
            project_label=label,
            summary=(summary or "").strip() or None,
        )
        self._full_log.append(entry)
        self.recent.add(label)
        self._commit(LOG_KEY, RECENT_PROJECTS_KEY)
        self._notify(EngineEvent.ENTRY_LOGGED, entry=entry)
        return entry

    def update_log_entry(
        self,
        entry_id: str,
        start_ms: int | None = None,
        end_ms: int | None = None,
        project_label: str | None = None,
        summary: str | None = None,
    ) -> LogEntry:
        """Edit an entry. None leaves a field alone; an empty string clears it."""
        index = self._find_entry(entry_id)
        current = self._full_log[index]
        start = current.start_ms if start_ms is None else start_ms
        end = current.end_ms if end_ms is None else end_ms
        if start_ms is not None or end_ms is not None:
            self._check_times(start, end)
        label = current.project_label if project_label is None else (project_label.strip() or None)
        updated = LogEntry(
            id=current.id,
            start_ms=start,
            end_ms=end,
            duration_minutes=duration_minutes(start, end),
            project_label=label,
            summary=current.summary if summary is None else (summary.strip() or None),
            source_session_id=current.source_session_id,
        )
        self._full_log[index] = updated
        self.recent.add(label)
        self._commit(LOG_KEY, RECENT_PROJECTS_KEY)
        return updated

    def delete_log_entry(self, entry_id: str) -> LogEntry:
        """Soft-delete. The remote copy is removed when the grace window closes."""
        index = self._find_entry(entry_id)
        # Staging finalizes any earlier deletion, which rewrites the log
        entry = self._full_log[index]
        self.undo.stage(entry)
        index = self._find_entry(entry_id)
        del self._full_log[index]
        self._deleted_index = index
        self.sync.write_local({LOG_KEY: self._serialize(LOG_KEY)})
        logger.info("Log entry %s deleted, undo available for %ds", entry.id, self.undo.grace_seconds)
        self._notify(EngineEvent.ENTRY_DELETED, entry=entry, finalized=False)
        self._notify(EngineEvent.STATE_CHANGED)
        return entry

    def undo_delete(self) -> LogEntry | None:
        """Restore the soft-deleted entry. No-op after the window has closed."""
        entry = self.undo.undo()
        if entry is None:
            return None
        if all(e.id != entry.id for e in self._full_log):
            index = self._deleted_index if self._deleted_index is not None else len(self._full_log)
            self._full_log.insert(min(index, len(self._full_log)), entry)
        self._deleted_index = None
        self._commit(LOG_KEY)
        self._notify(EngineEvent.ENTRY_RESTORED, entry=entry)
        return entry

    def _finalize_delete(self, entry: LogEntry) -> None:
        self._deleted_index = None
        self._full_log = [e for e in self._full_log if e.id != entry.id]
        self._commit(LOG_KEY)
        self._notify(EngineEvent.ENTRY_DELETED, entry=entry, finalized=True)

    def remove_recent_project(self, label: str) -> bool:
        changed = self.recent.remove(label)
        if changed:
            self._commit(RECENT_PROJECTS_KEY)
        return changed

    def wipe_all(self) -> None:
        """Reset every namespace to its default, locally and remotely."""
        self.undo.discard()
        self._pending = None
        self._deleted_index = None
        self.settings = Settings()
        self._full_log = []
        self.registry.clear()
        self.recent.clear()
        self.sync.wipe_local()
        logger.warning("All data wiped")
        self._commit(*ALL_KEYS)

    # ---- Insights ----

    def entries_for_period(self, period: TimeFilter, start: date | None = None, end: date | None = None) -> list[LogEntry]:
        return entries_for_period(self.log, period, self.clock.now_ms(), self.tz, start, end)

    def project_totals(self, period: TimeFilter, start: date | None = None, end: date | None = None) -> list[ProjectTotal]:
        return project_totals(self.entries_for_period(period, start, end))

    def insights(self, period: TimeFilter, start: date | None = None, end: date | None = None) -> InsightsStats:
        return insights_stats(self.entries_for_period(period, start, end))

    # ---- Generated text ----

    async def summarize_session(self, session_id: str, description: str | None = None) -> str:
        """Suggested summary from the session's completed tasks."""
        session = self.registry.get(session_id)
        completed = [t.text for t in session.tasks if t.completed]
        return await self.text.summarize_session(completed, session.project_label, description)

    async def summarize_period(self, period: TimeFilter, start: date | None = None, end: date | None = None) -> str:
        return await self.text.summarize_period(self.entries_for_period(period, start, end))

    async def motivational_quote(self) -> Quote:
        return await self.text.motivational_quote()


def build_engine(config, scheduler, clock=None) -> Engine:
    """Wire an Engine from an EngineConfig."""
    remote = None
    if config.remote_url:
        remote = HttpRemoteStore(config.remote_url, scheduler, config.remote_token, config.poll_seconds)
    generator = None
    if config.textgen_url:
        generator = HttpTextGenerator(config.textgen_url, config.textgen_key)
    tz = config.tzinfo
    return Engine(
        LocalStore(config.db_path),
        scheduler,
        clock=clock,
        remote_store=remote,
        text_service=TextService(generator),
        retention=RetentionManager(config.free_history_days, tz),
        undo_grace_seconds=config.undo_seconds,
        tz=tz,
    )
