"""
HTTP API Tests
==============

FastAPI routes served from a CameraService built on fakes.
"""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from bridgewatch import main
from bridgewatch.capture.controller import CaptureOutcome, CaptureStatus
from bridgewatch.capture.frame import Frame
from bridgewatch.classify import MockViewClassifier
from bridgewatch.detection import MockVehicleDetector
from bridgewatch.models.view import ViewCategory
from bridgewatch.service import CameraService

from conftest import SHARP_IMAGE, make_frame


class AlwaysCaptures:
    """Controller that succeeds on every call."""

    def __init__(self, clock):
        self.clock = clock

    async def capture(self):
        return CaptureOutcome(
            CaptureStatus.CAPTURED,
            frame=Frame(image=SHARP_IMAGE, timestamp=self.clock()),
        )

    def get_metrics(self):
        return {"attempts": 0}


@pytest.fixture
def service(settings, clock):
    return CameraService.from_settings(
        settings,
        classifier=MockViewClassifier(sequence=[ViewCategory.BRIDGE]),
        controller=AlwaysCaptures(clock),
        detector=MockVehicleDetector({"ls_to_sa": 3, "sa_to_ls": 1}),
        clock=clock,
    )


@pytest.fixture
def client(monkeypatch, service):
    monkeypatch.setattr(
        main,
        "CameraService",
        SimpleNamespace(from_settings=lambda settings: service),
    )
    with TestClient(main.app) as test_client:
        yield test_client


class TestProbes:
    """Tests for liveness, readiness and metrics."""

    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_ready_while_scheduler_runs(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_metrics(self, client):
        body = client.get("/metrics").json()
        assert "scheduler" in body
        assert "store" in body

    def test_not_ready_without_service(self):
        # No lifespan, so no service
        response = TestClient(main.app).get("/camera/health")
        assert response.status_code == 503


class TestFrameRoutes:
    """Tests for capture and frame selection routes."""

    def test_capture_returns_frame(self, client):
        response = client.post("/capture")
        assert response.status_code == 200

        body = response.json()
        assert body["category"] == "bridge"
        assert body["label"] == "Bridge"
        assert body["size"] == len(SHARP_IMAGE)
        assert body["image"]

    def test_capture_without_image(self, client):
        body = client.post("/capture", params={"include_image": False}).json()
        assert body["image"] is None

    def test_analysis_frames(self, client, service, clock):
        service.store.commit(make_frame(clock() - 30, ViewCategory.WIDE))

        body = client.get("/frames/analysis", params={"include_images": False}).json()

        assert body["has_data"] is True
        categories = [f["category"] for f in body["frames"]]
        assert "wide" in categories
        assert all(f["image"] is None for f in body["frames"])

    def test_display_frames(self, client):
        client.post("/capture")
        body = client.get("/frames/display").json()
        assert body["has_data"] is True
        assert body["frames"][0]["category"] == "bridge"


class TestHealthAndTrendRoutes:
    """Tests for camera health and trend routes."""

    def test_camera_health(self, client):
        body = client.get("/camera/health").json()
        assert body["state"] == "OPERATIONAL"
        assert body["advisory"] == "Camera feed is live."

    def test_trend_unknown_initially(self, client):
        body = client.get("/trend").json()
        assert body["flow_speed"] == "unknown"

    def test_record_readings(self, client):
        for timestamp in (1_700_000_000, 1_700_000_020, 1_700_000_040):
            response = client.post(
                "/trend/readings",
                json={"counts": {"ls_to_sa": 5, "sa_to_ls": 5}, "timestamp": timestamp},
            )
            assert response.status_code == 200

        assert response.json()["flow_speed"] == "slow"

    def test_negative_count_rejected(self, client):
        response = client.post("/trend/readings", json={"counts": {"ls_to_sa": -1}})
        assert response.status_code == 422

    def test_older_reading_conflicts(self, client):
        client.post("/trend/readings", json={"counts": {"ls_to_sa": 2}, "timestamp": 1_700_000_100})
        response = client.post(
            "/trend/readings",
            json={"counts": {"ls_to_sa": 8}, "timestamp": 1_700_000_000},
        )
        assert response.status_code == 409

    def test_refresh_trend(self, client):
        client.post("/capture")
        body = client.post("/trend/refresh").json()
        assert body["recorded"] is True
        assert body["counts"] == {"ls_to_sa": 3, "sa_to_ls": 1}
