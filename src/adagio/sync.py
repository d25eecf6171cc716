"""Persistence & sync: local-first writes, remote mirror, snapshot intake.

Every persisted change is written to the local store synchronously. When
an account is attached, the same fields are queued as a fire-and-forget
remote write: merge-update first, create-or-overwrite when that fails.
Remote failures are logged and reported through ``on_error``; local state
is never rolled back.

Remote writes drain from one outbox in commit order. While writes to a
document are outstanding, only a snapshot stamped with the newest queued
``lastUpdated`` is passed on; anything older would rewind local state.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import DocumentNotFoundError, RemoteStoreError
from .local_store import (
    ACTIVE_SESSIONS_KEY,
    LOG_KEY,
    RECENT_PROJECTS_KEY,
    SETTINGS_KEY,
    LocalStore,
)
from .models import (
    ActiveSession,
    LogEntry,
    Settings,
    ms_to_iso,
    normalize_log_entry,
    normalize_recent_projects,
    normalize_session,
    normalize_settings,
)
from .recent import MAX_RECENT_PROJECTS
from .remote_store import RemoteStore

logger = logging.getLogger("adagio.sync")

LAST_UPDATED_KEY = "lastUpdated"


def document_key(account_id: str) -> str:
    return f"users/{account_id}"


@dataclass
class Document:
    """Normalized contents of a local snapshot or a remote document."""

    settings: Settings = field(default_factory=Settings)
    log: list[LogEntry] = field(default_factory=list)
    sessions: list[ActiveSession] = field(default_factory=list)
    recent_projects: list[str] = field(default_factory=list)


def parse_document(raw: Any, now_ms: int, recent_limit: int = MAX_RECENT_PROJECTS) -> Document:
    """Normalize a raw document. Missing fields take their defaults."""
    if not isinstance(raw, dict):
        raw = {}
    raw_log = raw.get(LOG_KEY)
    raw_sessions = raw.get(ACTIVE_SESSIONS_KEY)
    return Document(
        settings=normalize_settings(raw.get(SETTINGS_KEY)),
        log=[normalize_log_entry(e, now_ms) for e in raw_log] if isinstance(raw_log, list) else [],
        sessions=[normalize_session(s, now_ms) for s in raw_sessions] if isinstance(raw_sessions, list) else [],
        recent_projects=normalize_recent_projects(raw.get(RECENT_PROJECTS_KEY), recent_limit),
    )


class SyncLayer:
    def __init__(
        self,
        local: LocalStore,
        remote: RemoteStore | None,
        scheduler,
        clock,
        on_error: Callable[[Exception], None] | None = None,
    ):
        self.local = local
        self.remote = remote
        self.scheduler = scheduler
        self.clock = clock
        self._on_error = on_error
        self._account_id: str | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._write_seq = itertools.count(1)
        self._outbox: deque[tuple[str, dict]] = deque()
        self._write_lock = asyncio.Lock()
        self._outstanding: dict[str, int] = {}
        self._newest_stamp: dict[str, str] = {}
        self._last_stamp_ms = 0

    @property
    def account_id(self) -> str | None:
        return self._account_id

    @property
    def attached(self) -> bool:
        return self._account_id is not None and self.remote is not None

    # ---- Local ----

    def load_local(self, now_ms: int) -> Document:
        raw = {ns: self.local.read(ns) for ns in (SETTINGS_KEY, LOG_KEY, ACTIVE_SESSIONS_KEY, RECENT_PROJECTS_KEY)}
        return parse_document(raw, now_ms)

    def write_local(self, fields: dict[str, Any]) -> None:
        self.local.write_many(fields)

    def wipe_local(self) -> None:
        self.local.wipe()

    # ---- Remote ----

    def persist(self, fields: dict[str, Any]) -> None:
        """Write locally now; queue the remote write when attached."""
        self.local.write_many(fields)
        if self.attached:
            self._queue_remote_write(self._account_id, fields)

    def _queue_remote_write(self, account_id: str, fields: dict[str, Any]) -> None:
        key = document_key(account_id)
        # Stamps are strictly increasing so each write is identifiable in a snapshot
        self._last_stamp_ms = max(self.clock.now_ms(), self._last_stamp_ms + 1)
        payload = dict(fields)
        payload[LAST_UPDATED_KEY] = ms_to_iso(self._last_stamp_ms)
        self._outbox.append((key, payload))
        self._outstanding[key] = self._outstanding.get(key, 0) + 1
        self._newest_stamp[key] = payload[LAST_UPDATED_KEY]
        seq = next(self._write_seq)
        self.scheduler.add_job(
            self._drain,
            id=f"adagio_remote_write_{seq}",
            name=f"adagio remote write #{seq}",
            misfire_grace_time=None,
        )

    @property
    def pending_writes(self) -> int:
        return sum(self._outstanding.values())

    async def _drain(self) -> None:
        """Push queued writes one at a time, oldest first."""
        async with self._write_lock:
            while self._outbox:
                key, payload = self._outbox.popleft()
                try:
                    await self._push(key, payload)
                finally:
                    self._outstanding[key] -= 1

    async def _push(self, key: str, payload: dict) -> bool:
        try:
            await self.remote.merge_update(key, payload)
            return True
        except DocumentNotFoundError:
            logger.info("Remote document %s does not exist yet, creating it", key)
        except RemoteStoreError as e:
            logger.warning("Merge-update of %s failed, retrying as create-or-overwrite: %s", key, e)

        try:
            await self.remote.set(key, payload, merge=True)
            return True
        except RemoteStoreError as e:
            logger.error("Remote write to %s failed, local state kept: %s", key, e)
            if self._on_error is not None:
                self._on_error(e)
            return False

    def attach(
        self,
        account_id: str,
        on_snapshot: Callable[[dict], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.detach()
        self._account_id = account_id
        if self.remote is None:
            logger.warning("Account %s signed in but no remote store is configured", account_id)
            return
        logger.info("Subscribing to remote document for account %s", account_id)
        key = document_key(account_id)

        def deliver(raw: dict) -> None:
            if self._is_current(key, raw):
                on_snapshot(raw)

        self._unsubscribe = self.remote.subscribe(key, deliver, on_error)

    def _is_current(self, key: str, raw: Any) -> bool:
        if not self._outstanding.get(key):
            return True
        stamp = raw.get(LAST_UPDATED_KEY) if isinstance(raw, dict) else None
        if stamp == self._newest_stamp.get(key):
            return True
        logger.debug(
            "Dropping snapshot of %s stamped %s, %d local writes still outstanding",
            key, stamp, self._outstanding[key],
        )
        return False

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("Unsubscribed from remote document for account %s", self._account_id)
        self._account_id = None
