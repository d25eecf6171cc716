"""Remote document store collaborators.

One document per account at a stable key. Supports ``get``,
``merge_update`` (fails when the document is absent), ``set``
(create-or-overwrite) and ``subscribe`` (stream of full-document
snapshots).
"""

from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable
from urllib.parse import quote

import requests
from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.interval import IntervalTrigger

from .errors import DocumentNotFoundError, RemoteStoreError

logger = logging.getLogger("adagio.remote")

SnapshotCallback = Callable[[dict], None]
ErrorCallback = Callable[[Exception], None]


class RemoteStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> dict | None:
        ...

    @abstractmethod
    async def merge_update(self, key: str, fields: dict) -> None:
        """Update top-level fields of an existing document."""

    @abstractmethod
    async def set(self, key: str, fields: dict, merge: bool = True) -> None:
        """Create the document, or overwrite/merge into an existing one."""

    @abstractmethod
    def subscribe(
        self,
        key: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Callable[[], None]:
        """Deliver full-document snapshots until the returned callable is invoked."""


class MemoryRemoteStore(RemoteStore):
    """In-process document store. Snapshots fan out synchronously on every write."""

    def __init__(self):
        self.documents: dict[str, dict] = {}
        self._subscribers: dict[str, list[tuple[SnapshotCallback, ErrorCallback | None]]] = {}
        self.offline = False

    def _check_online(self) -> None:
        if self.offline:
            raise RemoteStoreError("remote store unreachable")

    async def get(self, key: str) -> dict | None:
        self._check_online()
        doc = self.documents.get(key)
        return copy.deepcopy(doc) if doc is not None else None

    async def merge_update(self, key: str, fields: dict) -> None:
        self._check_online()
        if key not in self.documents:
            raise DocumentNotFoundError(f"No document at {key}")
        self.documents[key].update(copy.deepcopy(fields))
        self._publish(key)

    async def set(self, key: str, fields: dict, merge: bool = True) -> None:
        self._check_online()
        if merge and key in self.documents:
            self.documents[key].update(copy.deepcopy(fields))
        else:
            self.documents[key] = copy.deepcopy(fields)
        self._publish(key)

    def subscribe(self, key, on_snapshot, on_error=None):
        entry = (on_snapshot, on_error)
        self._subscribers.setdefault(key, []).append(entry)
        on_snapshot(copy.deepcopy(self.documents.get(key, {})))

        def unsubscribe() -> None:
            subscribers = self._subscribers.get(key, [])
            if entry in subscribers:
                subscribers.remove(entry)

        return unsubscribe

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, []))

    def _publish(self, key: str) -> None:
        for on_snapshot, _ in list(self._subscribers.get(key, [])):
            on_snapshot(copy.deepcopy(self.documents[key]))


class HttpRemoteStore(RemoteStore):
    """REST document endpoint at ``{base_url}/documents/{key}``.

    Blocking requests run in a worker thread. The snapshot stream is a
    scheduler poll job that publishes whenever ``lastUpdated`` changes.
    """

    def __init__(
        self,
        base_url: str,
        scheduler,
        token: str | None = None,
        poll_seconds: int = 5,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.scheduler = scheduler
        self.poll_seconds = poll_seconds
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _url(self, key: str) -> str:
        return f"{self.base_url}/documents/{quote(key, safe='')}"

    def _request(self, method: str, key: str, **kwargs: Any) -> requests.Response:
        try:
            return self.session.request(method, self._url(key), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteStoreError(f"{method} {key} failed: {e}") from e

    @staticmethod
    def _raise_for_status(resp: requests.Response, method: str, key: str) -> None:
        if resp.status_code >= 400:
            raise RemoteStoreError(f"{method} {key} failed: HTTP {resp.status_code}")

    async def get(self, key: str) -> dict | None:
        resp = await asyncio.to_thread(self._request, "GET", key)
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp, "GET", key)
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteStoreError(f"GET {key} returned invalid JSON") from e

    async def merge_update(self, key: str, fields: dict) -> None:
        resp = await asyncio.to_thread(self._request, "PATCH", key, json=fields)
        if resp.status_code == 404:
            raise DocumentNotFoundError(f"No document at {key}")
        self._raise_for_status(resp, "PATCH", key)

    async def set(self, key: str, fields: dict, merge: bool = True) -> None:
        resp = await asyncio.to_thread(
            self._request, "PUT", key, json=fields, params={"merge": "true" if merge else "false"}
        )
        self._raise_for_status(resp, "PUT", key)

    def subscribe(self, key, on_snapshot, on_error=None):
        job_id = f"adagio_poll_{key}"
        state = {"seen": False, "marker": None}

        async def poll() -> None:
            try:
                doc = await self.get(key)
            except RemoteStoreError as e:
                logger.warning("Snapshot poll for %s failed: %s", key, e)
                if on_error is not None:
                    on_error(e)
                return
            doc = doc or {}
            marker = doc.get("lastUpdated")
            if state["seen"] and marker == state["marker"]:
                return
            state["seen"] = True
            state["marker"] = marker
            on_snapshot(doc)

        self.scheduler.add_job(
            poll,
            trigger=IntervalTrigger(seconds=self.poll_seconds),
            id=job_id,
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            name=f"adagio snapshot poll {key}",
        )

        def unsubscribe() -> None:
            try:
                self.scheduler.remove_job(job_id)
            except JobLookupError:
                pass

        return unsubscribe
