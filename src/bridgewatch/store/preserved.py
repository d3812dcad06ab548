"""
Preserved Frame Set
===================

One "best known" frame per useful view category.

The camera can dwell on one preset for a long time, pushing every other
view out of the ring buffer. The preserved set keeps the latest frame of
each category regardless of buffer pressure, so a recent view of every
angle survives.

Rules:
    - USELESS frames are never preserved
    - A slot is replaced only by a strictly newer frame of its category
    - Slots are never deleted; staleness is decided by the reader
"""

from typing import Dict, Optional

from bridgewatch.capture.frame import Frame
from bridgewatch.models.view import USEFUL_CATEGORIES, ViewCategory


class PreservedFrameSet:
    """Per-category latest-frame slots. Not thread-safe on its own."""

    def __init__(self) -> None:
        self._slots: Dict[ViewCategory, Optional[Frame]] = {
            category: None for category in USEFUL_CATEGORIES
        }

    def offer(self, frame: Frame) -> bool:
        """
        Offer a frame for its category's slot.

        Returns:
            True if the slot was replaced
        """
        category = frame.category
        if category is None or not category.is_useful:
            return False

        current = self._slots[category]
        if current is not None and frame.timestamp <= current.timestamp:
            return False

        self._slots[category] = frame
        return True

    def get(self, category: ViewCategory) -> Optional[Frame]:
        return self._slots.get(category)

    def get_fresh(
        self,
        category: ViewCategory,
        max_age: float,
        now: float,
    ) -> Optional[Frame]:
        """Slot content if it is at most ``max_age`` seconds old, else None."""
        frame = self._slots.get(category)
        if frame is None or frame.age(now) > max_age:
            return None
        return frame

    def as_dict(self) -> Dict[ViewCategory, Optional[Frame]]:
        return dict(self._slots)
