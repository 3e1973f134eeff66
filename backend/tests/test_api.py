"""
HTTP API tests using FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from pairchat.core import get_matchmaking_service
from pairchat.main import app


@pytest.fixture
def client(service):
    app.dependency_overrides[get_matchmaking_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _join(client, name, gender, preferred="any", mode="text"):
    response = client.post("/participants", json={
        "name": name, "gender": gender, "preferred_gender": preferred, "mode": mode,
    })
    assert response.status_code == 201
    return response.json()


class TestParticipantsAPI:
    """Tests for /participants endpoints."""

    def test_join_and_match(self, client):
        first = _join(client, "A", "male", "female")
        assert first["session"] is None

        second = _join(client, "B", "female", "male")
        assert second["session"]["status"] == "matched"
        assert second["partner"]["id"] == first["participant"]["id"]

        response = client.get(f"/participants/{first['participant']['id']}")
        assert response.json()["session_id"] == second["session"]["id"]

    def test_blank_name_is_invalid_content(self, client):
        response = client.post("/participants", json={"name": "   ", "gender": "male"})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "invalid_content"

    def test_bad_gender_rejected(self, client):
        response = client.post("/participants", json={"name": "A", "gender": "robot"})
        assert response.status_code == 422

    def test_heartbeat(self, client):
        joined = _join(client, "A", "male")
        response = client.post(f"/participants/{joined['participant']['id']}/heartbeat")
        assert response.json() == {"ok": True}

    def test_heartbeat_unknown(self, client):
        response = client.post("/participants/missing/heartbeat")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    def test_search_returns_current_session(self, client):
        first = _join(client, "A", "male")
        second = _join(client, "B", "female")

        response = client.post(f"/participants/{first['participant']['id']}/search")

        assert response.status_code == 200
        assert response.json()["session"]["id"] == second["session"]["id"]


class TestSessionsAPI:
    """Tests for /sessions endpoints."""

    def test_messages_round_trip(self, client):
        first = _join(client, "A", "male")
        second = _join(client, "B", "female")
        session_id = second["session"]["id"]

        sent = client.post(f"/sessions/{session_id}/messages", json={
            "participant_id": first["participant"]["id"], "content": "  hi  ",
        })
        assert sent.status_code == 201
        assert sent.json()["content"] == "hi"

        history = client.get(f"/sessions/{session_id}/messages")
        assert [m["content"] for m in history.json()["messages"]] == ["hi"]

    def test_too_long_message(self, client):
        first = _join(client, "A", "male")
        second = _join(client, "B", "female")

        response = client.post(f"/sessions/{second['session']['id']}/messages", json={
            "participant_id": first["participant"]["id"], "content": "x" * 501,
        })

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "invalid_content"

    def test_send_after_stop_conflicts(self, client):
        first = _join(client, "A", "male")
        second = _join(client, "B", "female")
        session_id = second["session"]["id"]

        assert client.post(f"/participants/{first['participant']['id']}/stop").json() == {"ok": True}

        response = client.post(f"/sessions/{session_id}/messages", json={
            "participant_id": second["participant"]["id"], "content": "hello?",
        })
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "invalid_session"

    def test_skip(self, client):
        first = _join(client, "A", "male")
        second = _join(client, "B", "female")
        session_id = second["session"]["id"]

        response = client.post(f"/sessions/{session_id}/skip", json={
            "participant_id": first["participant"]["id"],
        })

        assert response.status_code == 200
        assert response.json()["new_search_started"] is True
        detail = client.get(f"/sessions/{session_id}").json()
        assert detail["session"]["status"] == "ended"
        assert detail["participants"] == []

    def test_unknown_session(self, client):
        assert client.get("/sessions/missing").status_code == 404


class TestAppEndpoints:
    """Tests for health and admin endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_reap(self, client, clock):
        _join(client, "A", "male")
        clock.advance(31)

        response = client.post("/admin/reap")

        assert response.status_code == 200
        assert len(response.json()["participants_marked_offline"]) == 1
