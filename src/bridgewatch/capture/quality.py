"""
Blur / Quality Filter
=====================

Cheap pre-filter that rejects degraded stills before a classifier call is
spent on them.

At the configured output width a sharp daytime still compresses to well
above ``min_frame_bytes``. Motion blur, blackout and grey "no signal"
frames compress much better, so a small JPEG is a strong hint that the
frame is unusable.

Optionally (``sharpness_threshold > 0``) the JPEG is decoded with OpenCV
and the variance of its Laplacian is compared against the threshold.
False positives and negatives are acceptable; this is not a final judgment.
"""

import logging
from typing import Optional

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class QualityFilter:
    """
    Size-based blur/blackout detector with an optional sharpness check.

    Attributes:
        min_frame_bytes: JPEGs smaller than this are low quality
        sharpness_threshold: Minimum Laplacian variance (0 disables)

    Example:
        quality = QualityFilter(min_frame_bytes=15000)
        if quality.is_low_quality(jpeg_bytes):
            return  # skip classification
    """

    def __init__(
        self,
        min_frame_bytes: int = 15000,
        sharpness_threshold: float = 0.0,
    ) -> None:
        if min_frame_bytes < 0:
            raise ValueError("min_frame_bytes must be non-negative")
        if sharpness_threshold < 0:
            raise ValueError("sharpness_threshold must be non-negative")

        self.min_frame_bytes = min_frame_bytes
        self.sharpness_threshold = sharpness_threshold

        self._checked: int = 0
        self._rejected: int = 0

    def is_low_quality(self, image: bytes) -> bool:
        """
        Decide whether a still is too degraded to classify.

        Args:
            image: Raw JPEG bytes

        Returns:
            True if the frame should be dropped
        """
        self._checked += 1

        if len(image) < self.min_frame_bytes:
            self._rejected += 1
            logger.info(
                f"Frame rejected as low quality: {len(image)} bytes "
                f"< {self.min_frame_bytes}"
            )
            return True

        if self.sharpness_threshold > 0:
            sharpness = laplacian_variance(image)
            if sharpness is None or sharpness < self.sharpness_threshold:
                self._rejected += 1
                logger.info(f"Frame rejected as blurred: sharpness={sharpness}")
                return True

        return False

    def get_metrics(self) -> dict:
        """Get filter metrics for observability."""
        return {
            "checked": self._checked,
            "rejected": self._rejected,
            "min_frame_bytes": self.min_frame_bytes,
            "sharpness_threshold": self.sharpness_threshold,
        }


def laplacian_variance(image: bytes) -> Optional[float]:
    """
    Variance of the Laplacian of a JPEG, a standard focus measure.

    Returns None if the bytes do not decode to an image.
    """
    if not image:
        return None
    nparr = np.frombuffer(image, np.uint8)
    gray = cv2.imdecode(nparr, cv2.IMREAD_GRAYSCALE)
    if gray is None or gray.size == 0:
        return None
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())
