"""Tests for the HTTP surface: enrollment routes, admin audit route, health."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.admin.audit import AuditTrail
from src.admin.web import get_audit_trail
from src.admin.web import get_store as admin_get_store
from src.admin.web import router as admin_router
from src.api.enrollment import get_store, router
from src.enrollment.store import EnrollmentSessionStore
from src.schemas.events import EventType, SystemEvent

# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _mock_emit():
    """Keep the background event worker out of route tests."""
    with patch("src.enrollment.store.emit", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture()
def store() -> EnrollmentSessionStore:
    return EnrollmentSessionStore()


@pytest.fixture()
def trail() -> AuditTrail:
    return AuditTrail()


@pytest.fixture()
def client(store, trail):
    """FastAPI test client with the enrollment and admin routers over fresh state."""
    app = FastAPI()
    app.include_router(router)
    app.include_router(admin_router)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[admin_get_store] = lambda: store
    app.dependency_overrides[get_audit_trail] = lambda: trail
    return TestClient(app)


def _start(client: TestClient, **body) -> dict:
    response = client.post("/enrollment/sessions", json=body or None)
    assert response.status_code == 201
    return response.json()


def _say(client: TestClient, session_id: str, text: str) -> dict:
    response = client.post(f"/enrollment/sessions/{session_id}/messages", json={"text": text})
    assert response.status_code == 200
    return response.json()


# ── Enrollment routes ────────────────────────────────────────────────


class TestStartSession:
    def test_without_body(self, client, store):
        data = _start(client)
        assert data["state"]["step"] == "INTENT"
        assert data["is_complete"] is False
        assert data["decision"]["kind"] == "start"
        assert uuid.UUID(data["session_id"]) in store

    def test_with_account_facts(self, client):
        data = _start(client, is_eligible=True, current_age=52)
        assert data["state"]["current_age"] == 52
        assert data["state"]["collected_data"]["current_age"] == 52

    def test_rejects_impossible_age(self, client):
        response = client.post("/enrollment/sessions", json={"current_age": 500})
        assert response.status_code == 422

    @pytest.mark.parametrize("age", [13, 100, 120])
    def test_rejects_age_with_no_retirement_left(self, client, store, age):
        response = client.post("/enrollment/sessions", json={"current_age": age})
        assert response.status_code == 422
        assert len(store) == 0

    def test_oldest_seeded_age_reaches_location(self, client):
        session_id = _start(client, current_age=99)["session_id"]
        assert _say(client, session_id, "I want to enroll")["state"]["step"] == "RETIREMENT_AGE"
        assert _say(client, session_id, "100")["state"]["step"] == "LOCATION"


class TestMessages:
    def test_full_conversation(self, client):
        session_id = _start(client)["session_id"]

        data = _say(client, session_id, "I want to enroll")
        assert data["state"]["step"] == "RETIREMENT_AGE"
        assert data["decision"] is None

        for text in ("67", "USA"):
            data = _say(client, session_id, text)
        assert data["state"]["step"] == "PLAN_RECOMMENDATION"
        assert data["decision"]["kind"] == "plan_choice"

        for text in ("pay tax now", "8%", "let the system handle it"):
            data = _say(client, session_id, text)
        assert data["state"]["step"] == "REVIEW"
        assert data["decision"]["kind"] == "review"

        data = _say(client, session_id, "yes")
        assert data["state"]["step"] == "CONFIRMED"
        assert data["is_complete"] is True
        assert data["message"] == "Done. I submitted your enrollment."
        assert data["state"]["collected_data"]["plan_type"] == "Roth 401(k)"

    def test_manual_widgets(self, client):
        session_id = _start(client)["session_id"]
        for text in ("enroll", "67", "USA", "roth", "6%", "manual", "growth"):
            data = _say(client, session_id, text)
        assert data["decision"]["kind"] == "fund_selection"

        data = _say(client, session_id, "funds:us-lg,bond-ag")
        assert data["decision"]["kind"] == "allocation"
        assert data["decision"]["allocations"] == {"us-lg": 50.0, "bond-ag": 50.0}

        data = _say(client, session_id, "alloc:us-lg:60,bond-ag:30")
        assert data["state"]["step"] == "MANUAL_ALLOCATION"
        assert "doesn't add up" in data["message"]
        assert data["decision"]["allocations"] == {"us-lg": 60.0, "bond-ag": 30.0}

    def test_invalid_input_reprompts(self, client):
        session_id = _start(client)["session_id"]
        data = _say(client, session_id, "???")
        assert data["state"]["step"] == "INTENT"
        assert data["is_complete"] is False

    def test_empty_text_rejected(self, client):
        session_id = _start(client)["session_id"]
        response = client.post(f"/enrollment/sessions/{session_id}/messages", json={"text": ""})
        assert response.status_code == 422

    def test_unknown_session(self, client):
        response = client.post(f"/enrollment/sessions/{uuid.uuid4()}/messages", json={"text": "hi"})
        assert response.status_code == 404

    def test_malformed_session_id(self, client):
        response = client.post("/enrollment/sessions/not-a-uuid/messages", json={"text": "hi"})
        assert response.status_code == 422


class TestGetAndDelete:
    def test_get_returns_last_turn(self, client):
        session_id = _start(client)["session_id"]
        _say(client, session_id, "enroll")

        response = client.get(f"/enrollment/sessions/{session_id}")
        assert response.status_code == 200
        assert response.json()["state"]["step"] == "RETIREMENT_AGE"

    def test_get_unknown(self, client):
        assert client.get(f"/enrollment/sessions/{uuid.uuid4()}").status_code == 404

    def test_delete(self, client, store):
        session_id = _start(client)["session_id"]

        response = client.delete(f"/enrollment/sessions/{session_id}")
        assert response.status_code == 204
        assert uuid.UUID(session_id) not in store
        assert client.get(f"/enrollment/sessions/{session_id}").status_code == 404

    def test_delete_unknown(self, client):
        assert client.delete(f"/enrollment/sessions/{uuid.uuid4()}").status_code == 404


# ── Admin audit route ────────────────────────────────────────────────


class TestAuditRoute:
    def test_returns_recorded_events(self, client, trail):
        session_id = uuid.uuid4()
        trail.record(SystemEvent(event_type=EventType.SESSION_STARTED, session_id=session_id))

        response = client.get(f"/admin/sessions/{session_id}/audit")
        assert response.status_code == 200
        body = response.json()
        assert body["session_id"] == str(session_id)
        assert [event["event_type"] for event in body["events"]] == ["session.started"]

    def test_live_session_without_events(self, client):
        session_id = _start(client)["session_id"]
        response = client.get(f"/admin/sessions/{session_id}/audit")
        assert response.status_code == 200
        assert response.json()["events"] == []

    def test_unknown_session(self, client):
        assert client.get(f"/admin/sessions/{uuid.uuid4()}/audit").status_code == 404


# ── Application ──────────────────────────────────────────────────────


class TestApp:
    def test_health(self):
        from src.main import app

        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_lifespan_audits_sessions(self):
        from src.admin.audit import audit_trail
        from src.admin.events import emit
        from src.main import app

        with patch("src.enrollment.store.emit", new=emit), TestClient(app) as client:
            session_id = client.post("/enrollment/sessions").json()["session_id"]
            client.post(f"/enrollment/sessions/{session_id}/messages", json={"text": "enroll"})
            client.get("/health")

        types = [entry["event_type"] for entry in audit_trail.entries(uuid.UUID(session_id))]
        assert types[0] == "session.started"
        assert "session.state_changed" in types
    def test_deleted_session_leaves_no_audit_trail(self):
        from src.admin.audit import audit_trail
        from src.admin.events import emit
        from src.main import app

        with patch("src.enrollment.store.emit", new=emit), TestClient(app) as client:
            session_id = client.post("/enrollment/sessions").json()["session_id"]
            client.post(f"/enrollment/sessions/{session_id}/messages", json={"text": "enroll"})
            assert client.delete(f"/enrollment/sessions/{session_id}").status_code == 204

        assert audit_trail.entries(uuid.UUID(session_id)) == []
