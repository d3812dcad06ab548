"""
Vision Vehicle Detector
=======================

Vehicle detector using Google Cloud Vision object localization.

This detector:
    - Calls the Vision API object localizer (off the event loop)
    - Keeps objects whose name is a vehicle label above a minimum score
    - Splits them by bounding-box centre into the two travel directions

Design Rules:
    - Fail fast on misconfiguration
    - API errors raise DetectorError; the service records "unavailable"
"""

import asyncio
import logging
from typing import Dict, List, Optional

from bridgewatch.detection.engine import split_by_direction
from bridgewatch.exceptions import DetectorError


logger = logging.getLogger(__name__)


class VisionVehicleDetector:
    """
    Object-localization vehicle counter.

    Attributes:
        vehicle_labels: Object names counted as vehicles
        min_score: Minimum object confidence
        split_x: Normalised x dividing the two directions
    """

    def __init__(
        self,
        vehicle_labels: List[str],
        min_score: float = 0.5,
        split_x: float = 0.5,
        credentials_path: Optional[str] = None,
        client=None,
    ) -> None:
        self.vehicle_labels = {label.lower() for label in vehicle_labels}
        self.min_score = min_score
        self.split_x = split_x

        self._api_call_count: int = 0
        self._api_error_count: int = 0

        self._client = client
        if self._client is None:
            self._init_client(credentials_path)

        logger.info(
            f"VisionVehicleDetector initialized: "
            f"labels={sorted(self.vehicle_labels)}, split_x={split_x}"
        )

    def _init_client(self, credentials_path: Optional[str]) -> None:
        """Initialize Google Cloud Vision client."""
        try:
            from google.cloud import vision

            if credentials_path:
                self._client = vision.ImageAnnotatorClient.from_service_account_json(
                    credentials_path
                )
            else:
                self._client = vision.ImageAnnotatorClient()

        except ImportError:
            raise ImportError(
                "google-cloud-vision is required for VisionVehicleDetector. "
                "Install with: pip install google-cloud-vision"
            )
        except Exception as e:
            raise DetectorError(f"Failed to initialize Vision client: {e}")

    async def count(self, image: bytes) -> Optional[Dict[str, int]]:
        """
        Count vehicles per direction.

        Raises:
            DetectorError: If the API call fails
        """
        from google.cloud import vision

        try:
            response = await asyncio.to_thread(
                self._client.object_localization,
                image=vision.Image(content=image),
            )
        except Exception as e:
            self._api_error_count += 1
            raise DetectorError(f"Vision API request failed: {e}") from e

        self._api_call_count += 1
        if response.error.message:
            self._api_error_count += 1
            raise DetectorError(f"Vision API: {response.error.message}")

        centres = []
        for obj in response.localized_object_annotations:
            if obj.name.lower() not in self.vehicle_labels or obj.score < self.min_score:
                continue
            xs = [v.x for v in obj.bounding_poly.normalized_vertices]
            if xs:
                centres.append(sum(xs) / len(xs))

        counts = split_by_direction(centres, split_x=self.split_x)
        logger.debug(f"Vision detector counts: {counts}")
        return counts

    def get_metrics(self) -> dict:
        return {
            "api_call_count": self._api_call_count,
            "api_error_count": self._api_error_count,
        }
