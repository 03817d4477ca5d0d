"""
Tests for the FastAPI backend.

Uses FastAPI's TestClient, so no server needs to be running.
"""

import json

import pytest
from fastapi.testclient import TestClient

from api.main import app
from config.settings import APIConfig
from conftest import make_gpx, stepped_elevation


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def stepped_points():
    return [{'distance': i / 100, 'elevation': stepped_elevation(i)} for i in range(301)]


class TestInfoEndpoints:
    """Tests for the read-only endpoints."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "trail-profile-api"}

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "POST /api/segment" in response.json()["endpoints"]

    def test_methods(self, client):
        data = client.get("/api/methods").json()
        assert data["default"] == "gradient_v2"
        assert set(data["methods"]) == {"gradient_v2", "gradient", "refiner", "sustained_change"}

    def test_config(self, client):
        data = client.get("/api/config").json()
        assert data["default_method"] == "gradient_v2"
        assert data["defaults"]["refiner"]["diferencia_pendiente"] == 0.1
        assert data["ranges"]["prominencia_minima"]["min"] < data["ranges"]["prominencia_minima"]["max"]
        assert data["max_profile_points"] == APIConfig.MAX_PROFILE_POINTS


class TestSegmentEndpoint:
    """Tests for POST /api/segment."""

    def test_default_method(self, client, stepped_points):
        response = client.post("/api/segment", json={"points": stepped_points})
        assert response.status_code == 200

        data = response.json()
        assert data["method"] == "gradient_v2"
        assert [(s["start_idx"], s["end_idx"]) for s in data["segments"]] == [(0, 100), (100, 200), (200, 300)]
        assert [s["type"] for s in data["segments"]] == ["hor", "asc", "hor"]
        assert len(data["frames"]) == 4
        assert data["summary"]["segment_count"] == 3
        assert data["summary"]["max_elevation"] == 1100.0
        assert data["summary"]["estimated_time"] == "0h 36m"
        assert [row["name"] for row in data["rows"]] == ["Flat 1", "Ascent 1", "Flat 2"]

    @pytest.mark.parametrize("method", ["gradient", "refiner", "sustained_change"])
    def test_other_methods(self, client, stepped_points, method):
        response = client.post("/api/segment", json={"points": stepped_points, "method": method})
        assert response.status_code == 200

        segments = response.json()["segments"]
        assert segments[0]["start_idx"] == 0
        assert segments[-1]["end_idx"] == 300
        assert all(a["end_idx"] == b["start_idx"] for a, b in zip(segments, segments[1:]))

    def test_params_applied(self, client, stepped_points):
        response = client.post("/api/segment", json={
            "points": stepped_points,
            "method": "gradient_v2",
            "params": {"distancia_minima": 0.0}
        })
        assert response.status_code == 200
        assert len(response.json()["segments"]) == 6

    def test_invalid_params(self, client, stepped_points):
        response = client.post("/api/segment", json={
            "points": stepped_points,
            "method": "refiner",
            "params": {"prominencia_minima": -10}
        })
        assert response.status_code == 400
        assert "Prominence" in response.json()["detail"]

    def test_float_smoothing_window(self, client, stepped_points):
        """A JSON float window is accepted rather than crashing the smoother."""
        response = client.post("/api/segment", json={
            "points": stepped_points,
            "method": "sustained_change",
            "params": {"smoothing_window": 3.0}
        })
        assert response.status_code == 200
        assert response.json()["params"]["smoothing_window"] == 3

    def test_unreadable_flag(self, client, stepped_points):
        response = client.post("/api/segment", json={
            "points": stepped_points,
            "method": "sustained_change",
            "params": {"detect_inflection_points": "maybe"}
        })
        assert response.status_code == 400
        assert "boolean" in response.json()["detail"]

    def test_decreasing_distance(self, client):
        points = [{"distance": 0.2, "elevation": 100}, {"distance": 0.1, "elevation": 100}]
        response = client.post("/api/segment", json={"points": points})
        assert response.status_code == 400

    def test_empty_profile(self, client):
        response = client.post("/api/segment", json={"points": []})
        assert response.status_code == 400

    def test_malformed_body(self, client):
        response = client.post("/api/segment", json={"points": [{"distance": "far"}]})
        assert response.status_code == 422

    def test_too_many_points(self, client, monkeypatch):
        monkeypatch.setattr(APIConfig, "MAX_PROFILE_POINTS", 10)
        points = [{"distance": i / 100, "elevation": 100} for i in range(11)]
        response = client.post("/api/segment", json={"points": points})
        assert response.status_code == 413


class TestAnalyzeGpxEndpoint:
    """Tests for POST /api/analyze-gpx."""

    def test_upload(self, client, mountain_gpx):
        response = client.post(
            "/api/analyze-gpx",
            files={"file": ("col.gpx", mountain_gpx.encode(), "application/gpx+xml")},
            params={"method": "refiner"},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["method"] == "refiner"
        assert data["metadata"]["name"] == "Test Trail"
        assert data["segments"][-1]["end_idx"] == 199

    def test_upload_with_params(self, client, mountain_gpx):
        response = client.post(
            "/api/analyze-gpx",
            files={"file": ("col.gpx", mountain_gpx.encode(), "application/gpx+xml")},
            data={"params": json.dumps({"prominencia_minima": 50})},
        )
        assert response.status_code == 200
        assert response.json()["params"]["prominencia_minima"] == 50

    def test_wrong_extension(self, client, mountain_gpx):
        response = client.post(
            "/api/analyze-gpx",
            files={"file": ("col.kml", mountain_gpx.encode(), "application/xml")},
        )
        assert response.status_code == 400

    def test_empty_file(self, client):
        response = client.post("/api/analyze-gpx", files={"file": ("empty.gpx", b"  ", "application/gpx+xml")})
        assert response.status_code == 400
        assert "empty" in response.json()["detail"]

    def test_bad_params_json(self, client, mountain_gpx):
        response = client.post(
            "/api/analyze-gpx",
            files={"file": ("col.gpx", mountain_gpx.encode(), "application/gpx+xml")},
            data={"params": "{not json"},
        )
        assert response.status_code == 400

    def test_track_without_elevation(self, client):
        gpx_text = make_gpx([None, None, None])
        response = client.post("/api/analyze-gpx", files={"file": ("flat.gpx", gpx_text.encode(), "application/gpx+xml")})
        assert response.status_code == 400


class TestStreamEndpoint:
    """Tests for POST /api/segment/stream."""

    def test_ndjson_events(self, client, stepped_points):
        response = client.post("/api/segment/stream", json={"points": stepped_points})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")

        events = [json.loads(line) for line in response.text.splitlines() if line]
        assert [e["event"] for e in events] == ["raw_segment"] * 6 + ["frame"] * 4 + ["result"]
        assert len(events[-1]["segments"]) == 3

    def test_invalid_params_rejected_before_streaming(self, client, stepped_points):
        response = client.post("/api/segment/stream", json={
            "points": stepped_points,
            "params": {"cambio_gradiente": 0}
        })
        assert response.status_code == 400
