"""
Frame Data Model
=================

Internal frame representation for the capture pipeline.

This module defines the typed Frame class passed between the capture
controller, the classifier, the frame store and the selection policy.

Design Rules:
    - This is the ONLY frame format passed between stages
    - Immutable: classification produces a new Frame, never mutates one
    - Does NOT decode image data
"""

from dataclasses import dataclass, replace
from typing import Optional

from bridgewatch.models.view import ViewCategory


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Captured still from the camera stream.

    It is immutable (frozen) so that whichever container holds it
    (buffer slot, preserved slot) can share it safely with readers.

    Attributes:
        image: Raw JPEG bytes exactly as produced by ffmpeg
        timestamp: UNIX timestamp when the still was captured
        category: Assigned view category (None until classified)
    """

    image: bytes
    timestamp: float
    category: Optional[ViewCategory] = None

    @property
    def size(self) -> int:
        """Compressed size in bytes (used by the quality filter)."""
        return len(self.image)

    @property
    def is_classified(self) -> bool:
        return self.category is not None

    def with_category(self, category: ViewCategory) -> "Frame":
        """Return a copy of this frame tagged with ``category``."""
        return replace(self, category=category)

    def age(self, now: float) -> float:
        """Seconds elapsed since capture."""
        return now - self.timestamp

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the image bytes."""
        category = self.category.value if self.category else None
        return (
            f"Frame(timestamp={self.timestamp:.3f}, "
            f"category={category}, "
            f"size={self.size})"
        )
