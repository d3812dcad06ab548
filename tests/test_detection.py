"""
Vehicle Detection Tests
=======================

Direction split, the Vision object-localization detector and the factory.
"""

import asyncio
from types import SimpleNamespace

import pytest

from bridgewatch.config import DetectorConfig
from bridgewatch.detection import MockVehicleDetector, create_detector, split_by_direction
from bridgewatch.detection.vision_detector import VisionVehicleDetector
from bridgewatch.exceptions import DetectorError


def localized(name, score, xs):
    vertices = [SimpleNamespace(x=x, y=0.5) for x in xs]
    return SimpleNamespace(
        name=name,
        score=score,
        bounding_poly=SimpleNamespace(normalized_vertices=vertices),
    )


def fake_client(objects=(), error=""):
    def object_localization(image):
        return SimpleNamespace(
            error=SimpleNamespace(message=error),
            localized_object_annotations=list(objects),
        )
    return SimpleNamespace(object_localization=object_localization)


class TestSplitByDirection:
    """Tests for lane assignment by centre x."""

    def test_left_and_right(self):
        counts = split_by_direction([0.1, 0.3, 0.7], split_x=0.5)
        assert counts == {"ls_to_sa": 2, "sa_to_ls": 1}

    def test_both_keys_always_present(self):
        assert split_by_direction([]) == {"ls_to_sa": 0, "sa_to_ls": 0}

    def test_centre_on_split_goes_right(self):
        assert split_by_direction([0.5]) == {"ls_to_sa": 0, "sa_to_ls": 1}


class TestVisionVehicleDetector:
    """Tests for the object-localization detector."""

    def test_counts_vehicles_by_side(self):
        client = fake_client([
            localized("Car", 0.9, [0.1, 0.2]),
            localized("Truck", 0.8, [0.6, 0.8]),
            localized("Bus", 0.7, [0.7, 0.9]),
            localized("Person", 0.95, [0.1, 0.2]),
            localized("Car", 0.3, [0.1, 0.2]),
        ])
        detector = VisionVehicleDetector(
            vehicle_labels=["car", "truck", "bus"],
            min_score=0.5,
            client=client,
        )

        counts = asyncio.run(detector.count(b"jpeg"))

        assert counts == {"ls_to_sa": 1, "sa_to_ls": 2}
        assert detector.get_metrics()["api_call_count"] == 1

    def test_api_error_raises(self):
        detector = VisionVehicleDetector(
            vehicle_labels=["car"],
            client=fake_client(error="permission denied"),
        )
        with pytest.raises(DetectorError):
            asyncio.run(detector.count(b"jpeg"))
        assert detector.get_metrics()["api_error_count"] == 1

    def test_transport_error_raises(self):
        def object_localization(image):
            raise ConnectionError("unreachable")

        detector = VisionVehicleDetector(
            vehicle_labels=["car"],
            client=SimpleNamespace(object_localization=object_localization),
        )
        with pytest.raises(DetectorError):
            asyncio.run(detector.count(b"jpeg"))


class TestCreateDetector:
    """Tests for the detector factory."""

    def test_none_backend(self):
        assert create_detector(DetectorConfig(backend="none")) is None

    def test_mock_backend(self):
        detector = create_detector(DetectorConfig(backend="mock", mock_counts={"ls_to_sa": 7}))
        assert isinstance(detector, MockVehicleDetector)
        assert asyncio.run(detector.count(b"x")) == {"ls_to_sa": 7}

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            create_detector(DetectorConfig(backend="yolo"))
