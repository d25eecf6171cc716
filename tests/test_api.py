"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from adagio.api import create_app
from adagio.log import configure_logging, logger
from adagio.text_gen import PREMIUM_QUOTE_TEASER, SAMPLE_PERIOD_SUMMARY


@pytest.fixture
def client(engine):
    # No lifespan: the engine fixture is already loaded and the scheduler is fake
    return TestClient(create_app(engine))


def new_session(client, label="Q3"):
    resp = client.post("/api/sessions", json={"project_label": label})
    assert resp.status_code == 201
    return resp.json()


class TestSessions:
    def test_create_and_list(self, client):
        created = new_session(client)
        assert created["projectLabel"] == "Q3"
        assert created["intervalKind"] == "work"
        assert created["display"] == "00:00"
        sessions = client.get("/api/sessions").json()["sessions"]
        assert [s["id"] for s in sessions] == [created["id"]]

    def test_empty_label_is_bad_request(self, client):
        resp = client.post("/api/sessions", json={"project_label": "   "})
        assert resp.status_code == 400

    def test_unknown_session_is_not_found(self, client):
        assert client.post("/api/sessions/nope/start").status_code == 404

    def test_end_logs_entry(self, client, clock):
        sid = new_session(client)["id"]
        client.post(f"/api/sessions/{sid}/start")
        clock.advance(90)
        body = client.post(f"/api/sessions/{sid}/end").json()
        assert body["pending"] is None
        assert body["entry"]["durationMinutes"] == 2
        assert body["entry"]["projectLabel"] == "Q3"
        assert len(client.get("/api/log").json()["entries"]) == 1

    def test_short_work_needs_confirmation(self, client, clock):
        sid = new_session(client)["id"]
        client.post(f"/api/sessions/{sid}/start")
        clock.advance(20)
        body = client.post(f"/api/sessions/{sid}/end").json()
        assert body["entry"] is None
        assert body["pending"]["short"] is True
        assert client.get("/api/pending").json()["pending"]["sessionId"] == sid

        entry = client.post("/api/pending/confirm", json={"summary": "Quick fix"}).json()
        assert entry["summary"] == "Quick fix"
        assert client.get("/api/pending").json()["pending"] is None

    def test_confirm_without_pending_conflicts(self, client):
        assert client.post("/api/pending/confirm", json={}).status_code == 409

    def test_tasks(self, client):
        sid = new_session(client)["id"]
        task = client.post(f"/api/sessions/{sid}/tasks", json={"text": "Draft"}).json()
        toggled = client.post(f"/api/sessions/{sid}/tasks/{task['id']}/toggle").json()
        assert toggled["completed"] is True
        assert client.delete(f"/api/sessions/{sid}/tasks/{task['id']}").json() == {"deleted": task["id"]}

    def test_summary_suggestion_defaults_to_label(self, client):
        sid = new_session(client, "Auth")["id"]
        assert client.get(f"/api/sessions/{sid}/summary").json() == {"summary": "Auth"}


class TestLog:
    def test_manual_entry(self, client):
        resp = client.post("/api/log", json={
            "start_time": "2026-02-11T10:00:00Z",
            "end_time": "2026-02-11T10:30:00Z",
            "project_label": "Reading",
        })
        assert resp.status_code == 201
        assert resp.json()["durationMinutes"] == 30
        assert client.get("/api/recent").json()["recentProjects"] == ["Reading"]

    def test_bad_timestamp(self, client):
        resp = client.post("/api/log", json={"start_time": "yesterday", "end_time": "2026-02-11T10:30:00Z"})
        assert resp.status_code == 400

    def test_future_end_rejected(self, client):
        resp = client.post("/api/log", json={
            "start_time": "2026-02-11T11:00:00Z",
            "end_time": "2026-02-11T13:00:00Z",
        })
        assert resp.status_code == 400

    def test_delete_and_undo(self, client):
        entry = client.post("/api/log", json={
            "start_time": "2026-02-11T10:00:00Z",
            "end_time": "2026-02-11T10:30:00Z",
        }).json()
        deleted = client.delete(f"/api/log/{entry['id']}").json()
        assert deleted["undoSeconds"] == 5
        assert client.get("/api/log").json()["entries"] == []
        assert client.post("/api/log/undo").json()["id"] == entry["id"]
        assert client.post("/api/log/undo").status_code == 409

    def test_update_unknown_entry(self, client):
        assert client.patch("/api/log/missing", json={"summary": "x"}).status_code == 404


class TestSettingsAndInsights:
    def test_partial_settings_update(self, client):
        settings = client.patch("/api/settings", json={"work_minutes": 50}).json()
        assert settings["workMinutes"] == 50
        assert settings["shortBreakMinutes"] == 5

    def test_invalid_settings(self, client):
        assert client.patch("/api/settings", json={"sessions_per_set": 0}).status_code == 400

    def test_insights(self, client):
        client.post("/api/log", json={
            "start_time": "2026-02-11T10:00:00Z",
            "end_time": "2026-02-11T10:30:00Z",
            "project_label": "Reading",
        })
        body = client.get("/api/insights", params={"period": "today"}).json()
        assert body["stats"] == {"totalMinutes": 30, "totalSessions": 1, "averageSessionMinutes": 30}
        assert body["projects"] == [{"name": "Reading", "totalMinutes": 30}]

    def test_free_tier_text(self, client):
        assert client.get("/api/quote").json() == PREMIUM_QUOTE_TEASER.to_dict()
        assert client.get("/api/summaries/period").json() == {"periodSummary": SAMPLE_PERIOD_SUMMARY}

    def test_remove_unknown_recent_project(self, client):
        assert client.delete("/api/recent/ghost").status_code == 404


class TestAccountAndLogs:
    def test_sign_in(self, client):
        account = client.post("/api/account", json={"account_id": "u1", "is_premium": True}).json()
        assert account == {"accountId": "u1", "isPremium": True}

    def test_wipe(self, client):
        new_session(client)
        assert client.post("/api/wipe").json() == {"wiped": True}
        assert client.get("/api/state").json()["sessions"] == []

    def test_recent_logs(self, client):
        configure_logging("INFO")
        logger.info("api test marker")
        body = client.get("/api/logs/recent", params={"limit": 100}).json()
        assert body["count"] == len(body["logs"])
        assert any(r["message"] == "api test marker" for r in body["logs"])
