"""Tests for the HTTP result and settings API."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.pipeline import Pipeline
from src.web.app import create_app
from tests.conftest import FakeInvoker, make_frame, make_raw


@pytest.fixture
def pipeline(app_config, governor):
    invoker = FakeInvoker(make_raw([(320, 320, 64, 64, "Cup", 0.9)]))
    pipeline = Pipeline(app_config, invoker=invoker, governor=governor)
    yield pipeline
    pipeline.stop()


@pytest.fixture
def client(pipeline) -> TestClient:
    return TestClient(create_app(pipeline))


class TestRoutes:
    def test_stats(self, client):
        resp = client.get("/api/stats")
        assert resp.status_code == 200
        data = resp.json()
        assert data["frames_processed"] == 0
        assert data["thermal"] == "nominal"
        assert data["paused"] is False

    def test_detections_before_first_frame(self, client):
        resp = client.get("/api/detections")
        assert resp.json() == {"frame_index": 0, "detections": []}

    def test_latest_detections(self, client, pipeline):
        pipeline.submit(make_frame()).result(timeout=5.0)
        data = client.get("/api/detections").json()

        assert data["type"] == "detections"
        assert data["frame_index"] == 1
        assert data["detections"][0]["class_name"] == "Cup"
        assert data["detections"][0]["rect"]["x"] == pytest.approx(0.45)

    def test_update_settings(self, client, pipeline):
        resp = client.post("/api/settings",
                           json={"filter_mode": "indoor", "confidence_threshold": 1.5})
        assert resp.status_code == 200
        assert resp.json()["settings"] == {"filter_mode": "indoor",
                                           "confidence_threshold": 1.5}
        assert client.get("/api/settings").json() == pipeline.settings

    @pytest.mark.parametrize("body", [
        {"filter_mode": "garage"},
        {"confidence_threshold": -0.5},
        {"confidence_threshold": "high"},
    ])
    def test_invalid_settings_rejected(self, client, pipeline, body):
        before = pipeline.settings
        resp = client.post("/api/settings", json=body)
        assert resp.status_code == 400
        assert pipeline.settings == before

    def test_thermal_report(self, client, pipeline):
        resp = client.post("/api/thermal", json={"state": "critical"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["thermal"] == "critical"
        assert (data["frame_rate_target"], data["frame_skip_pattern"]) == (10, 4)
        assert pipeline.governor.is_paused()

    def test_invalid_thermal_state(self, client):
        resp = client.post("/api/thermal", json={"state": "lukewarm"})
        assert resp.status_code == 400
