"""HTTP and WebSocket surface tests against the FastAPI app."""

import json

import pytest
from fastapi.testclient import TestClient

from hatchmatch.api.dependencies import get_clock, get_http_client, set_oracle
from hatchmatch.exceptions import (
    ConfigurationError,
    NoTripWatersError,
    RecommendationError,
    WaterBodyNotFoundError,
)
from hatchmatch.main import app, error_status
from hatchmatch.models.database import get_db

from fakes import FakeOracle, mock_client

RECS = json.dumps([
    {"fly_name": "Zebra Midge", "fly_type": "nymph", "confidence": 88,
     "reasoning": "Midges all day.", "size": "20-24", "technique": "dead drift"},
    {"fly_name": "RS2", "fly_type": "emerger", "confidence": 80,
     "reasoning": "Afternoon emergence.", "size": "20-22", "technique": "swing"},
])


@pytest.fixture
def oracle():
    fake = FakeOracle(routes={
        # Shop discovery finds nothing; recommendations get a fixed reply.
        "Find the most reputable": "null",
        "expert fly fishing guide": RECS,
    })
    set_oracle(fake)
    yield fake
    set_oracle(None)


@pytest.fixture
def client(db, clock, oracle):
    def override_db():
        yield db

    http = mock_client({})
    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_http_client] = lambda: http
    app.dependency_overrides[get_clock] = lambda: clock
    # No context manager: the lifespan (real database, real HTTP client) never runs.
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_water(client, name="Blue River"):
    resp = client.post("/api/waters", json={
        "name": name, "type": "river", "state": "CO", "latitude": 39.6, "longitude": -106.0,
    })
    assert resp.status_code == 201
    return resp.json()


class TestErrorStatus:
    def test_mapping(self):
        assert error_status(WaterBodyNotFoundError("x")) == 404
        assert error_status(NoTripWatersError("x")) == 400
        assert error_status(ConfigurationError("x")) == 400
        assert error_status(ConfigurationError("x", missing_credentials=True)) == 500
        assert error_status(RecommendationError("x")) == 502


class TestRest:
    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_water_create_search_get(self, client):
        water = _create_water(client)
        _create_water(client, "Arkansas River")
        found = client.get("/api/waters", params={"query": "blue"}).json()
        assert [w["name"] for w in found] == ["Blue River"]
        assert client.get(f"/api/waters/{water['id']}").json()["name"] == "Blue River"

    def test_unknown_water_is_404(self, client):
        resp = client.get("/api/waters/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Water body not found: nope"}

    def test_invalid_water_type_rejected(self, client):
        resp = client.post("/api/waters", json={
            "name": "Ocean", "type": "ocean", "state": "CA", "latitude": 0, "longitude": 0,
        })
        assert resp.status_code == 422

    def test_source_lifecycle(self, client):
        created = client.post("/api/sources", json={
            "name": "Shop A",
            "website": "https://a.example",
            "reports_url": "https://a.example/fishing-reports",
            "waters_covered": ["Blue River"],
        })
        assert created.status_code == 201
        source_id = created.json()["id"]
        for _ in range(3):
            state = client.post(f"/api/sources/{source_id}/failure").json()
        assert state["is_active"] is False
        restored = client.post(f"/api/sources/{source_id}/success").json()
        assert restored["is_active"] is True
        assert restored["consecutive_failures"] == 0
        listed = client.get("/api/sources", params={"water": "Blue River"}).json()
        assert [s["id"] for s in listed] == [source_id]

    def test_unknown_source_is_404(self, client):
        resp = client.post("/api/sources/999/failure")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Source not found"}

    def test_fishing_report_requires_identifier(self, client):
        resp = client.post("/api/fishing-reports", json={})
        assert resp.status_code == 400
        assert "required" in resp.json()["error"]

    def test_fishing_report_without_shops(self, client):
        water = _create_water(client)
        body = client.post("/api/fishing-reports", json={"water_body_id": water["id"]}).json()
        assert body["report"] is None
        assert body["message"] == "Could not find any fly shops with fishing reports for this water"

    def test_recommendations_then_cache(self, client, oracle):
        water = _create_water(client)
        first = client.post("/api/recommendations", json={"water_body_id": water["id"]}).json()
        second = client.post("/api/recommendations", json={"water_body_id": water["id"]}).json()
        assert [r["fly_name"] for r in first["recommendations"]] == ["Zebra Midge", "RS2"]
        assert first["from_cache"] is False
        assert second["from_cache"] is True
        assert first["conditions_summary"].startswith("Based on ")

    def test_recommendations_unknown_water(self, client):
        resp = client.post("/api/recommendations", json={"water_body_id": "nope"})
        assert resp.status_code == 404

    def test_trip_without_waters(self, client):
        resp = client.post("/api/trips/recommendations", json={"waters": []})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Add waters to your trip first"}

    def test_trip_merges_waters(self, client):
        a = _create_water(client)
        b = _create_water(client, "Arkansas River")
        body = client.post("/api/trips/recommendations", json={"waters": [
            {"id": a["id"], "name": a["name"]},
            {"id": b["id"], "name": b["name"]},
            {"id": "nope", "name": "Ghost Creek"},
        ]}).json()
        top = body["recommendations"][0]
        assert top["fly_name"] == "Zebra Midge"
        assert top["waters"] == ["Blue River", "Arkansas River"]
        assert body["failed_waters"] == ["Ghost Creek"]


class TestTripWebSocket:
    def test_ping(self, client):
        with client.websocket_connect("/ws/trip-recommendations") as ws:
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_invalid_json(self, client):
        with client.websocket_connect("/ws/trip-recommendations") as ws:
            ws.send_text("{not json")
            assert ws.receive_json() == {"type": "error", "error": "Invalid JSON"}

    def test_progress_then_result(self, client):
        a = _create_water(client)
        b = _create_water(client, "Arkansas River")
        with client.websocket_connect("/ws/trip-recommendations") as ws:
            ws.send_json({"waters": [
                {"id": a["id"], "name": a["name"]},
                {"id": b["id"], "name": b["name"]},
            ]})
            assert ws.receive_json() == {"type": "progress", "done": 1, "total": 2}
            assert ws.receive_json() == {"type": "progress", "done": 2, "total": 2}
            result = ws.receive_json()
        assert result["type"] == "result"
        assert result["failed_waters"] == []
        assert [r["fly_name"] for r in result["recommendations"]] == ["Zebra Midge", "RS2"]
        assert result["recommendations"][0]["confidence"] == 88

    def test_empty_trip_errors(self, client):
        with client.websocket_connect("/ws/trip-recommendations") as ws:
            ws.send_json({"waters": []})
            assert ws.receive_json() == {"type": "error", "error": "Add waters to your trip first"}

    def test_unexpected_failure_still_answers(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("database locked")

        monkeypatch.setattr("hatchmatch.ws.handler.build_recommendation_service", broken)
        with client.websocket_connect("/ws/trip-recommendations") as ws:
            ws.send_json({"waters": [{"id": "w1", "name": "Blue River"}]})
            assert ws.receive_json() == {"type": "error", "error": "Could not get trip recommendations"}
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}
