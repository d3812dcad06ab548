"""
View Categories
===============

Closed set of semantic camera angles a frame can be classified into.

The border camera rotates between a handful of fixed presets. Each captured
still is tagged with one of these categories; ``USELESS`` covers frames that
show trees, darkness or sky and carry no traffic information.

Rules:
    - USELESS frames are never preserved
    - USELESS frames are never selected for analysis
    - ANALYSIS_PRIORITY fixes the order used by frame selection
"""

from enum import Enum
from typing import Optional


class ViewCategory(str, Enum):
    """
    Semantic camera view of a frame.

    Attributes:
        BRIDGE: Bridge over the river, both lanes visible
        PROCESSING: Processing yard under the curved canopy roof
        WIDE: Wide approach road with the petrol station
        USELESS: Vegetation, darkness or no road visible
    """

    BRIDGE = "bridge"
    PROCESSING = "processing"
    WIDE = "wide"
    USELESS = "useless"

    @property
    def is_useful(self) -> bool:
        """Whether frames of this category may be preserved and analysed."""
        return self is not ViewCategory.USELESS

    @property
    def label(self) -> Optional[str]:
        """User-facing name of the view (None for USELESS)."""
        return _LABELS.get(self)

    @classmethod
    def parse(cls, value: str) -> "ViewCategory":
        """Parse a category name case-insensitively, defaulting to USELESS."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.USELESS


_LABELS = {
    ViewCategory.BRIDGE: "Bridge",
    ViewCategory.PROCESSING: "Canopy",
    ViewCategory.WIDE: "Engen",
}

# Bridge first: it shows both directions of travel.
ANALYSIS_PRIORITY = (
    ViewCategory.BRIDGE,
    ViewCategory.PROCESSING,
    ViewCategory.WIDE,
)

USEFUL_CATEGORIES = ANALYSIS_PRIORITY
