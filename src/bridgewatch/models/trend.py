"""
Trend Models
============

Data models for directional vehicle-count trends.

A TrendReading is one detector snapshot; a TrendSummary is what the
tracker derives from the trailing window of readings.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class TrendDirection(str, Enum):
    """Per-direction count trend."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    UNKNOWN = "unknown"


class FlowSpeed(str, Enum):
    """
    Coarse speed of traffic derived from count statistics.

    High, steady counts mean vehicles are sitting in a queue; counts that
    fluctuate a lot mean vehicles are passing through.
    """

    VERY_SLOW = "very_slow"
    SLOW = "slow"
    NORMAL = "normal"
    MOVING_WELL = "moving_well"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class TrendReading:
    """
    One detector snapshot.

    Attributes:
        timestamp: UNIX time of the reading
        counts: Vehicle count per direction, None if the detector was unavailable
    """

    timestamp: float
    counts: Optional[Dict[str, int]]

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.counts is not None:
            for direction, count in self.counts.items():
                if not isinstance(count, int) or count < 0:
                    raise ValueError(
                        f"count for {direction} must be a non-negative integer, got {count!r}"
                    )

    @property
    def total(self) -> Optional[int]:
        """Total count across directions (None when unavailable)."""
        if self.counts is None:
            return None
        return sum(self.counts.values())


class TrendSummary(BaseModel):
    """
    Derived trend over the trailing sub-window.

    Attributes:
        direction_trends: Trend tag per direction
        flow_speed: Flow speed tag from total-count statistics
        confidence: Fraction of the sub-window backed by usable readings
        sample_count: Number of usable readings used
        mean_total: Mean total count (None below minimum samples)
        variance_total: Population variance of total counts
    """

    direction_trends: Dict[str, TrendDirection] = Field(default_factory=dict)
    flow_speed: FlowSpeed = Field(default=FlowSpeed.UNKNOWN)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    sample_count: int = Field(default=0, ge=0)
    mean_total: Optional[float] = Field(default=None)
    variance_total: Optional[float] = Field(default=None)

    @property
    def is_known(self) -> bool:
        return self.flow_speed is not FlowSpeed.UNKNOWN
