"""Tests for the local SQLite store and the remote document stores."""

import pytest
import requests

from adagio.errors import DocumentNotFoundError, RemoteStoreError
from adagio.local_store import LOG_KEY, SETTINGS_KEY, LocalStore
from adagio.remote_store import HttpRemoteStore, MemoryRemoteStore

from helpers import FakeScheduler


# ---- LocalStore ----

class TestLocalStore:
    def test_missing_reads_default(self):
        store = LocalStore()
        assert store.read(LOG_KEY, []) == []
        assert store.read(SETTINGS_KEY) is None

    def test_write_then_read(self):
        store = LocalStore()
        store.write(SETTINGS_KEY, {"workMinutes": 50})
        assert store.read(SETTINGS_KEY) == {"workMinutes": 50}

    def test_overwrite(self):
        store = LocalStore()
        store.write(LOG_KEY, [1])
        store.write(LOG_KEY, [1, 2])
        assert store.read(LOG_KEY) == [1, 2]

    def test_corrupt_record_reads_default(self):
        store = LocalStore()
        store._conn.execute(
            "INSERT INTO records (namespace, payload, updated_at) VALUES (?, ?, ?)",
            (LOG_KEY, "{not json", "2026-02-11"),
        )
        assert store.read(LOG_KEY, []) == []

    def test_unknown_namespace(self):
        with pytest.raises(ValueError):
            LocalStore().write("secrets", 1)

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "adagio.db"
        first = LocalStore(path)
        first.write(SETTINGS_KEY, {"workMinutes": 30})
        first.close()
        second = LocalStore(path)
        assert second.read(SETTINGS_KEY) == {"workMinutes": 30}
        second.close()

    def test_wipe(self):
        store = LocalStore()
        store.write_many({SETTINGS_KEY: {}, LOG_KEY: []})
        store.wipe()
        assert store.read(SETTINGS_KEY) is None
        assert store.read(LOG_KEY) is None


# ---- MemoryRemoteStore ----

class TestMemoryRemoteStore:
    @pytest.mark.asyncio
    async def test_merge_update_requires_document(self):
        remote = MemoryRemoteStore()
        with pytest.raises(DocumentNotFoundError):
            await remote.merge_update("users/u1", {"log": []})

    @pytest.mark.asyncio
    async def test_set_merges_top_level_fields(self):
        remote = MemoryRemoteStore()
        await remote.set("users/u1", {"log": [], "settings": {"workMinutes": 25}})
        await remote.set("users/u1", {"log": [{"id": "a"}]}, merge=True)
        assert await remote.get("users/u1") == {"log": [{"id": "a"}], "settings": {"workMinutes": 25}}

    @pytest.mark.asyncio
    async def test_set_without_merge_overwrites(self):
        remote = MemoryRemoteStore()
        await remote.set("users/u1", {"log": [], "settings": {}})
        await remote.set("users/u1", {"log": []}, merge=False)
        assert await remote.get("users/u1") == {"log": []}

    @pytest.mark.asyncio
    async def test_subscribe_delivers_snapshots_until_unsubscribed(self):
        remote = MemoryRemoteStore()
        seen = []
        unsubscribe = remote.subscribe("users/u1", seen.append)
        assert seen == [{}]
        await remote.set("users/u1", {"log": []})
        assert seen[-1] == {"log": []}
        unsubscribe()
        await remote.set("users/u1", {"log": [1]})
        assert len(seen) == 2
        assert remote.subscriber_count("users/u1") == 0

    @pytest.mark.asyncio
    async def test_offline(self):
        remote = MemoryRemoteStore()
        remote.offline = True
        with pytest.raises(RemoteStoreError):
            await remote.set("users/u1", {})

    @pytest.mark.asyncio
    async def test_get_returns_copy(self):
        remote = MemoryRemoteStore()
        await remote.set("users/u1", {"log": []})
        doc = await remote.get("users/u1")
        doc["log"].append("mutated")
        assert await remote.get("users/u1") == {"log": []}


# ---- HttpRemoteStore ----

class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


class FakeSession:
    def __init__(self, *responses):
        self.headers = {}
        self.calls = []
        self._responses = list(responses)

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_http(*responses):
    session = FakeSession(*responses)
    store = HttpRemoteStore("https://sync.example/api/", FakeScheduler(), token="t0k", session=session)
    return store, session


class TestHttpRemoteStore:
    def test_auth_header(self):
        _, session = make_http()
        assert session.headers["Authorization"] == "Bearer t0k"

    @pytest.mark.asyncio
    async def test_get(self):
        store, session = make_http(FakeResponse(200, {"log": []}))
        assert await store.get("users/u1") == {"log": []}
        method, url, _ = session.calls[0]
        assert method == "GET"
        assert url == "https://sync.example/api/documents/users%2Fu1"

    @pytest.mark.asyncio
    async def test_get_missing(self):
        store, _ = make_http(FakeResponse(404))
        assert await store.get("users/u1") is None

    @pytest.mark.asyncio
    async def test_merge_update_missing(self):
        store, session = make_http(FakeResponse(404))
        with pytest.raises(DocumentNotFoundError):
            await store.merge_update("users/u1", {"log": []})
        assert session.calls[0][0] == "PATCH"
        assert session.calls[0][2]["json"] == {"log": []}

    @pytest.mark.asyncio
    async def test_set_sends_merge_flag(self):
        store, session = make_http(FakeResponse(200))
        await store.set("users/u1", {"log": []}, merge=True)
        method, _, kwargs = session.calls[0]
        assert method == "PUT"
        assert kwargs["params"] == {"merge": "true"}

    @pytest.mark.asyncio
    async def test_server_error(self):
        store, _ = make_http(FakeResponse(503))
        with pytest.raises(RemoteStoreError):
            await store.set("users/u1", {})

    @pytest.mark.asyncio
    async def test_network_error(self):
        store, _ = make_http(requests.ConnectionError("down"))
        with pytest.raises(RemoteStoreError):
            await store.get("users/u1")

    @pytest.mark.asyncio
    async def test_poll_publishes_on_change_only(self):
        store, _ = make_http(
            FakeResponse(200, {"lastUpdated": "a"}),
            FakeResponse(200, {"lastUpdated": "a"}),
            FakeResponse(200, {"lastUpdated": "b"}),
        )
        seen = []
        store.subscribe("users/u1", seen.append)
        poll = store.scheduler.jobs["adagio_poll_users/u1"].func
        for _ in range(3):
            await poll()
        assert [doc["lastUpdated"] for doc in seen] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_poll_failure_reports_error(self):
        store, _ = make_http(FakeResponse(500))
        errors = []
        store.subscribe("users/u1", lambda doc: None, errors.append)
        await store.scheduler.jobs["adagio_poll_users/u1"].func()
        assert len(errors) == 1
        assert isinstance(errors[0], RemoteStoreError)

    def test_unsubscribe_removes_poll_job(self):
        store, _ = make_http()
        unsubscribe = store.subscribe("users/u1", lambda doc: None)
        unsubscribe()
        assert store.scheduler.get_job("adagio_poll_users/u1") is None
        # second call is harmless
        unsubscribe()
