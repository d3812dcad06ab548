"""
Frame Selection Policy
======================

Chooses which frames feed downstream analysis and display.

Analysis selection (at most ``analysis_frames``, default 3):
    1. For each category in ANALYSIS_PRIORITY (bridge, processing, wide):
       newest buffered frame of that category, else the preserved frame
       if it is within the fresh window, else skip.
    2. If still short, backfill from the buffered category with the most
       entries (ties broken by priority), oldest first, skipping frames
       already chosen.

Display selection:
    One frame per category in priority order, using the looser display
    window for preserved frames.

Both selections are pure functions of a StoreSnapshot and ``now``, so
calling them twice on the same state gives the same answer. An empty list
means "no data", not an error.
"""

import logging
from typing import Dict, List, Optional

from bridgewatch.capture.frame import Frame
from bridgewatch.models.view import ANALYSIS_PRIORITY, ViewCategory
from bridgewatch.store.state import StoreSnapshot


logger = logging.getLogger(__name__)


class FrameSelectionPolicy:
    """
    Deterministic frame picker.

    Attributes:
        analysis_frames: Maximum frames returned for analysis
        fresh_window: Max preserved-frame age for analysis (seconds)
        display_window: Max preserved-frame age for display (seconds)
    """

    def __init__(
        self,
        analysis_frames: int = 3,
        fresh_window: float = 600.0,
        display_window: float = 3600.0,
    ) -> None:
        if analysis_frames < 1:
            raise ValueError("analysis_frames must be >= 1")
        self.analysis_frames = analysis_frames
        self.fresh_window = fresh_window
        self.display_window = display_window

    def select_for_analysis(self, snapshot: StoreSnapshot, now: float) -> List[Frame]:
        selected = self._one_per_category(snapshot, now, self.fresh_window)
        selected = selected[: self.analysis_frames]

        if len(selected) < self.analysis_frames:
            selected.extend(
                self._backfill(snapshot, selected, self.analysis_frames - len(selected))
            )

        if not selected:
            logger.debug("No frames available for analysis")
        return selected

    def select_for_display(self, snapshot: StoreSnapshot, now: float) -> List[Frame]:
        """One frame per category, newest buffered else preserved within the display window."""
        return self._one_per_category(snapshot, now, self.display_window)

    @staticmethod
    def _one_per_category(
        snapshot: StoreSnapshot,
        now: float,
        max_age: float,
    ) -> List[Frame]:
        chosen: List[Frame] = []
        for category in ANALYSIS_PRIORITY:
            frame = snapshot.latest_of(category)
            if frame is None:
                frame = _fresh(snapshot.preserved.get(category), now, max_age)
            if frame is not None:
                chosen.append(frame)
        return chosen

    @staticmethod
    def _backfill(
        snapshot: StoreSnapshot,
        selected: List[Frame],
        needed: int,
    ) -> List[Frame]:
        counts: Dict[ViewCategory, int] = {}
        for frame in snapshot.frames:
            if frame.category in ANALYSIS_PRIORITY:
                counts[frame.category] = counts.get(frame.category, 0) + 1
        if not counts:
            return []

        # max() keeps the first of equal counts, i.e. the higher priority
        busiest = max(
            (c for c in ANALYSIS_PRIORITY if c in counts),
            key=lambda c: counts[c],
        )

        extra: List[Frame] = []
        for frame in snapshot.frames:
            if len(extra) == needed:
                break
            if frame.category is busiest and frame not in selected and frame not in extra:
                extra.append(frame)
        return extra


def _fresh(frame: Optional[Frame], now: float, max_age: float) -> Optional[Frame]:
    if frame is None or frame.age(now) > max_age:
        return None
    return frame
