"""Tests for the round consumer API (sessions, rounds, diagnostics, health)."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from guessr.api import routes
from guessr.core.config import settings
from guessr.main import app


@pytest.fixture
def client(tmp_path, monkeypatch):
    """TestClient with rate limits off, no resolver key and history under tmp_path."""
    monkeypatch.setattr(settings, "history_file", str(tmp_path / "history.json"))
    monkeypatch.setattr(settings, "google_maps_api_key", None)
    monkeypatch.setattr(routes.limiter, "enabled", False)
    with TestClient(app) as test_client:
        yield test_client


def create_session(client, **body) -> str:
    response = client.post("/api/sessions", json=body)
    assert response.status_code == 200
    return response.json()["session_id"]


class TestSessions:
    """Tests for session lifecycle endpoints."""

    def test_create_session(self, client):
        """Verify a new session reports its mode and minting status."""
        response = client.post("/api/sessions", json={"mode": "urban", "seed": 7})
        data = response.json()
        assert data["ok"] is True
        assert data["mode"] == "urban"
        assert data["eligible_regions"] > 0
        assert data["dynamic_minting"] is False

    def test_empty_body_defaults_to_urban(self, client):
        """Verify an empty body starts an urban session."""
        response = client.post("/api/sessions")
        assert response.status_code == 200
        assert response.json()["mode"] == "urban"

    def test_invalid_mode_rejected(self, client):
        """Verify an unknown mode returns 400."""
        response = client.post("/api/sessions", json={"mode": "space"})
        assert response.status_code == 400
        assert "Invalid request body" in response.json()["detail"]

    def test_invalid_history_key_rejected(self, client):
        """Verify history keys cannot carry path components."""
        response = client.post("/api/sessions", json={"history_key": "../etc"})
        assert response.status_code == 400

    def test_close_flushes_history(self, client, tmp_path):
        """Verify closing a session writes its history file."""
        session_id = create_session(client, history_key="player1")
        client.post(f"/api/sessions/{session_id}/rounds")

        response = client.delete(f"/api/sessions/{session_id}")
        assert response.json() == {"ok": True, "session_id": session_id, "rounds": 1}

        document = json.loads((tmp_path / "history_player1.json").read_text(encoding="utf-8"))
        assert document["version"] == 1

    def test_engine_built_off_event_loop(self, client, monkeypatch):
        """Verify session construction runs in a worker thread, not on the event loop."""
        create = routes.registry.create
        loop_running: list[bool] = []

        def spy(*args, **kwargs):
            try:
                asyncio.get_running_loop()
                loop_running.append(True)
            except RuntimeError:
                loop_running.append(False)
            return create(*args, **kwargs)

        monkeypatch.setattr(routes.registry, "create", spy)
        create_session(client, seed=5)
        assert loop_running == [False]

    def test_same_history_key_sessions_merge_on_close(self, client, tmp_path):
        """Verify two sessions on one history key both land in the history file."""
        first = create_session(client, history_key="room1")
        second = create_session(client, history_key="room1")
        assert routes.registry.get(first).engine.history is routes.registry.get(second).engine.history

        client.delete(f"/api/sessions/{first}")
        client.delete(f"/api/sessions/{second}")
        assert (tmp_path / "history_room1.json").exists()

    def test_close_unknown_session(self, client):
        """Verify closing an unknown session returns 404."""
        assert client.delete("/api/sessions/missing").status_code == 404


class TestRounds:
    """Tests for round selection over HTTP."""

    def test_round_payload(self, client):
        """Verify a round returns the location in its camelCase wire shape."""
        session_id = create_session(client, seed=3)
        data = client.post(f"/api/sessions/{session_id}/rounds").json()

        assert data["ok"] is True
        assert data["round"] == 1
        assert data["source"] == "static"
        assert data["difficulty"] in {"easy", "medium", "hard"}
        location = data["location"]
        assert {"pano0", "pano1", "pano2", "pano3", "locationName", "blacklist"} <= set(location)
        assert location["pano0"]["panoId"]
        assert location["blacklist"] is False

    def test_rounds_alternate_regions(self, client):
        """Verify consecutive rounds never share a region."""
        session_id = create_session(client, seed=11)
        previous = None
        for _ in range(40):
            data = client.post(f"/api/sessions/{session_id}/rounds").json()
            assert data["ok"] is True
            assert data["region"] != previous
            previous = data["region"]

    def test_same_seed_same_rounds(self, client):
        """Verify seeded sessions replay the same sequence."""
        first = create_session(client, seed=5)
        second = create_session(client, seed=5)
        ids_a = [client.post(f"/api/sessions/{first}/rounds").json()["location"]["id"] for _ in range(10)]
        ids_b = [client.post(f"/api/sessions/{second}/rounds").json()["location"]["id"] for _ in range(10)]
        assert ids_a == ids_b

    def test_geo_session(self, client):
        """Verify geo sessions serve geo records."""
        session_id = create_session(client, mode="geo")
        data = client.post(f"/api/sessions/{session_id}/rounds").json()
        assert data["ok"] is True
        assert data["location"]["mode"] == "geo"

    def test_round_unknown_session(self, client):
        """Verify rounds for an unknown session return 404."""
        assert client.post("/api/sessions/missing/rounds").status_code == 404


class TestDiagnostics:
    """Tests for diagnostics and health."""

    def test_diagnostics(self, client):
        """Verify diagnostics expose windows, metrics and round count."""
        session_id = create_session(client)
        round_data = client.post(f"/api/sessions/{session_id}/rounds").json()

        data = client.get(f"/api/sessions/{session_id}/diagnostics").json()
        assert data["round_count"] == 1
        assert data["heavy_player"] is False
        assert data["anti_repeat"]["last_region"] == round_data["region"]
        assert data["anti_repeat"]["recent_selection_ids"] == [round_data["location"]["id"]]
        assert data["mint_metrics"]["total_attempts"] == 0
        assert data["persistent_history"] == 0

    def test_healthz(self, client):
        """Verify health reports dataset sizes without secrets."""
        data = client.get("/api/healthz").json()
        assert data["ok"] is True
        assert data["datasets"]["urban"] > 0
        assert data["regions"] == 81
        assert data["resolver"] == "key_missing"

    def test_security_headers(self, client):
        """Verify security headers are set on responses."""
        response = client.get("/")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
