"""
Vehicle Detector Engine
=======================

Per-direction vehicle counting for trend tracking.

Contract:
    count(image) -> Dict[str, int] or None

    None means "detector unavailable" and is recorded as such by the trend
    tracker. Detectors raise DetectorError on backend failure; the caller
    maps that to None.

Components:
    - VehicleDetector: Protocol for detector backends
    - MockVehicleDetector: Fixed counts (tests, offline runs)
    - split_by_direction: Assign object centres to the two bridge lanes
"""

import logging
from typing import Dict, Iterable, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)


DEFAULT_DIRECTIONS = ("ls_to_sa", "sa_to_ls")


class VehicleDetector(Protocol):
    """Protocol for vehicle detector backends."""

    async def count(self, image: bytes) -> Optional[Dict[str, int]]:
        """
        Count vehicles per direction in a JPEG still.

        Returns:
            Counts keyed by direction, or None if unavailable
        """
        ...


class MockVehicleDetector:
    """Returns the same counts for every still."""

    def __init__(self, counts: Dict[str, int]) -> None:
        self.counts = dict(counts)
        self._calls: int = 0
        logger.info(f"MockVehicleDetector initialized: counts={self.counts}")

    async def count(self, image: bytes) -> Optional[Dict[str, int]]:
        self._calls += 1
        return dict(self.counts)


def split_by_direction(
    centres_x: Iterable[float],
    split_x: float = 0.5,
    directions: Tuple[str, str] = DEFAULT_DIRECTIONS,
) -> Dict[str, int]:
    """
    Count normalised object centres on each side of a vertical split.

    In the bridge view the left lanes carry Lesotho to South Africa
    traffic and the right lanes the opposite direction.

    Args:
        centres_x: Normalised x of each detected vehicle centre (0..1)
        split_x: Boundary between the two directions
        directions: (left, right) direction keys

    Returns:
        Count per direction (both keys always present)
    """
    left, right = directions
    counts = {left: 0, right: 0}
    for x in centres_x:
        if x < split_x:
            counts[left] += 1
        else:
            counts[right] += 1
    return counts
