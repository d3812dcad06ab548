"""
Frame Buffer
============

Bounded ring of recently committed, classified frames.

This module provides the FrameBuffer class, the rolling history the
selection policy draws from.

Design Rules:
    - Fixed capacity; the oldest frame is evicted on overflow
    - Insertion order is preserved (oldest first)
    - Only classified frames are accepted
    - Not thread-safe on its own: FrameStore holds the lock
"""

import logging
from collections import deque
from typing import Deque, Dict, List, Optional

from bridgewatch.capture.frame import Frame
from bridgewatch.models.view import ViewCategory


logger = logging.getLogger(__name__)


class FrameBuffer:
    """
    FIFO ring of classified frames.

    Attributes:
        capacity: Maximum number of frames held
        evicted_count: Frames dropped to make room

    Example:
        buffer = FrameBuffer(capacity=12)
        buffer.append(frame.with_category(ViewCategory.BRIDGE))
        latest = buffer.latest()
    """

    def __init__(self, capacity: int = 12) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")

        self._capacity = capacity
        self._frames: Deque[Frame] = deque(maxlen=capacity)
        self._evicted_count: int = 0
        self._total_appended: int = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evicted_count(self) -> int:
        return self._evicted_count

    def __len__(self) -> int:
        return len(self._frames)

    def append(self, frame: Frame) -> Optional[Frame]:
        """
        Append a frame, evicting the oldest if full.

        Args:
            frame: Classified frame

        Returns:
            The evicted frame, if any

        Raises:
            ValueError: If the frame has no category
        """
        if frame.category is None:
            raise ValueError("cannot buffer an unclassified frame")

        evicted = None
        if len(self._frames) == self._capacity:
            evicted = self._frames[0]
            self._evicted_count += 1
            logger.debug(f"Buffer full, evicting {evicted!r}")

        self._frames.append(frame)
        self._total_appended += 1
        return evicted

    def latest(self) -> Optional[Frame]:
        """Most recently appended frame, or None if empty."""
        return self._frames[-1] if self._frames else None

    def frames(self) -> List[Frame]:
        """Buffered frames, oldest first."""
        return list(self._frames)

    def count_by_category(self) -> Dict[ViewCategory, int]:
        counts: Dict[ViewCategory, int] = {}
        for frame in self._frames:
            counts[frame.category] = counts.get(frame.category, 0) + 1
        return counts

    def metrics(self) -> dict:
        """
        Get buffer metrics for observability.

        Returns:
            Dict with size, capacity, evicted_count, total_appended
        """
        return {
            "size": len(self._frames),
            "capacity": self._capacity,
            "evicted_count": self._evicted_count,
            "total_appended": self._total_appended,
        }
