"""
Directional Trend Tracker
=========================

Turns a series of per-direction vehicle counts into trend and flow tags.

This tracker:
    - Keeps a sliding window of TrendReadings (oldest evicted)
    - Looks at the trailing sub-window for every summary
    - Tags each direction increasing / decreasing / stable from the
      first-vs-last delta, against a dead-band
    - Tags flow speed from the mean and variance of total counts

Flow speed rule:
    variance >= moving_well_variance          -> moving_well
    mean >= slow_mean and variance <= low_var -> very_slow (mean >= very_slow_mean)
                                                 or slow
    otherwise                                 -> normal

    High steady counts mean vehicles are sitting in a queue; counts that
    swing a lot mean vehicles are passing through the view.

Readings are kept in timestamp order: a reading older than the newest one
is rejected, so the first-vs-last delta always runs oldest to newest.

Readings whose counts are None (detector unavailable) occupy a window slot
but are skipped by the statistics. Below ``min_samples`` usable readings
everything is UNKNOWN.
"""

import logging
import threading
import time
from collections import deque
from typing import Deque, Dict, List, Optional, Sequence

import numpy as np

from bridgewatch.models.trend import FlowSpeed, TrendDirection, TrendReading, TrendSummary


logger = logging.getLogger(__name__)


class DirectionalTrendTracker:
    """
    Sliding-window trend estimator over detector readings.

    Attributes:
        directions: Direction keys always present in summaries
        window_size: Readings kept
        sub_window: Trailing readings used per summary

    Example:
        tracker = DirectionalTrendTracker(directions=["ls_to_sa", "sa_to_ls"])
        tracker.add_reading({"ls_to_sa": 4, "sa_to_ls": 7})
        summary = tracker.summarize()
        print(summary.flow_speed, summary.direction_trends)
    """

    def __init__(
        self,
        directions: Sequence[str] = ("ls_to_sa", "sa_to_ls"),
        window_size: int = 20,
        sub_window: int = 6,
        min_samples: int = 2,
        dead_band: int = 2,
        slow_mean: float = 8.0,
        very_slow_mean: float = 15.0,
        low_variance: float = 2.0,
        moving_well_variance: float = 6.0,
        clock=time.time,
    ) -> None:
        """
        Initialize trend tracker.

        Args:
            directions: Direction keys reported by the detector
            window_size: Sliding window capacity
            sub_window: Trailing readings considered by summarize()
            min_samples: Usable readings required for any tag
            dead_band: Absolute count delta still considered stable
            slow_mean: Mean total at or above which steady traffic is slow
            very_slow_mean: Mean total at or above which it is very slow
            low_variance: Variance at or below which counts are steady
            moving_well_variance: Variance at or above which traffic moves well
            clock: Time source for readings without a timestamp
        """
        if sub_window > window_size:
            raise ValueError("sub_window must not exceed window_size")
        if min_samples < 2 or min_samples > sub_window:
            raise ValueError("min_samples must be in [2, sub_window]")

        self.directions = list(directions)
        self.window_size = window_size
        self.sub_window = sub_window
        self.min_samples = min_samples
        self.dead_band = dead_band
        self.slow_mean = slow_mean
        self.very_slow_mean = very_slow_mean
        self.low_variance = low_variance
        self.moving_well_variance = moving_well_variance

        self._lock = threading.Lock()
        self._clock = clock
        self._readings: Deque[TrendReading] = deque(maxlen=window_size)
        self._total_readings: int = 0
        self._unavailable: int = 0
        self._rejected: int = 0

    def add_reading(
        self,
        counts: Optional[Dict[str, int]],
        timestamp: Optional[float] = None,
    ) -> TrendReading:
        """
        Append a detector reading, evicting the oldest on overflow.

        Args:
            counts: Vehicles per direction, or None if the detector was unavailable
            timestamp: UNIX time of the reading (defaults to now)

        Returns:
            The stored reading

        Raises:
            ValueError: If any count is not a non-negative integer, or the
                reading is older than the newest one already held
        """
        reading = TrendReading(
            timestamp=self._clock() if timestamp is None else timestamp,
            counts=dict(counts) if counts is not None else None,
        )
        with self._lock:
            if self._readings and reading.timestamp < self._readings[-1].timestamp:
                self._rejected += 1
                raise ValueError(
                    f"reading at {reading.timestamp} is older than the newest "
                    f"({self._readings[-1].timestamp})"
                )
            self._readings.append(reading)
            self._total_readings += 1
            if counts is None:
                self._unavailable += 1
        return reading

    def readings(self) -> List[TrendReading]:
        with self._lock:
            return list(self._readings)

    def summarize(self) -> TrendSummary:
        """Derive trend tags from the trailing sub-window."""
        with self._lock:
            recent = list(self._readings)[-self.sub_window:]

        usable = [r for r in recent if r.counts is not None]
        unknown = {d: TrendDirection.UNKNOWN for d in self.directions}

        if len(usable) < self.min_samples:
            return TrendSummary(
                direction_trends=unknown,
                sample_count=len(usable),
            )

        totals = np.array([r.total for r in usable], dtype=float)
        mean = float(totals.mean())
        variance = float(totals.var())

        trends = dict(unknown)
        for direction in self._known_directions(usable):
            trends[direction] = self._direction_trend(usable, direction)

        return TrendSummary(
            direction_trends=trends,
            flow_speed=self._flow_speed(mean, variance),
            confidence=min(1.0, len(usable) / self.sub_window),
            sample_count=len(usable),
            mean_total=mean,
            variance_total=variance,
        )

    def _known_directions(self, usable: List[TrendReading]) -> List[str]:
        seen = list(self.directions)
        for reading in usable:
            for direction in reading.counts:
                if direction not in seen:
                    seen.append(direction)
        return seen

    def _direction_trend(self, usable: List[TrendReading], direction: str) -> TrendDirection:
        values = [r.counts[direction] for r in usable if direction in r.counts]
        if len(values) < self.min_samples:
            return TrendDirection.UNKNOWN

        delta = values[-1] - values[0]
        if delta > self.dead_band:
            return TrendDirection.INCREASING
        if delta < -self.dead_band:
            return TrendDirection.DECREASING
        return TrendDirection.STABLE

    def _flow_speed(self, mean: float, variance: float) -> FlowSpeed:
        if variance >= self.moving_well_variance:
            return FlowSpeed.MOVING_WELL
        if mean >= self.slow_mean and variance <= self.low_variance:
            if mean >= self.very_slow_mean:
                return FlowSpeed.VERY_SLOW
            return FlowSpeed.SLOW
        return FlowSpeed.NORMAL

    def get_metrics(self) -> dict:
        """Get tracker metrics for observability."""
        with self._lock:
            return {
                "window": len(self._readings),
                "window_size": self.window_size,
                "total_readings": self._total_readings,
                "unavailable_readings": self._unavailable,
                "rejected_readings": self._rejected,
            }
