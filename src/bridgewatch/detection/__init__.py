"""
Detection Module
================

External vehicle detectors feeding the trend tracker.

Components:
    - VehicleDetector: Protocol for detector backends
    - MockVehicleDetector: Fixed counts for testing
    - VisionVehicleDetector: Google Cloud Vision object localization

A backend of "none" means no detector; readings are then recorded as
unavailable and trends resolve to "unknown".
"""

import logging
from typing import Optional

from bridgewatch.config import DetectorConfig
from bridgewatch.detection.engine import (
    MockVehicleDetector,
    VehicleDetector,
    split_by_direction,
)


logger = logging.getLogger(__name__)


def create_detector(config: DetectorConfig) -> Optional[VehicleDetector]:
    """
    Create a vehicle detector from config (None for backend "none").

    Fails fast on unknown backends.
    """
    backend = config.backend

    if backend == "none":
        logger.info("No vehicle detector configured")
        return None

    elif backend == "mock":
        return MockVehicleDetector(counts=config.mock_counts)

    elif backend == "vision":
        from bridgewatch.detection.vision_detector import VisionVehicleDetector

        return VisionVehicleDetector(
            vehicle_labels=config.vehicle_labels,
            min_score=config.min_score,
            split_x=config.split_x,
            credentials_path=config.credentials_path,
        )

    else:
        raise ValueError(f"Unknown detector backend: {backend}")


__all__ = [
    "VehicleDetector",
    "MockVehicleDetector",
    "split_by_direction",
    "create_detector",
]
