"""
Frame Store
===========

Owned state object combining the ring buffer and the preserved set.

Writers:
    Only the capture scheduler commits. Request handlers read.

Atomicity:
    One threading.Lock guards both structures, so a reader sees either
    the state before a commit or the state after it, never a buffer
    append without the matching preserved-slot update.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from bridgewatch.capture.frame import Frame
from bridgewatch.models.view import ViewCategory
from bridgewatch.store.buffer import FrameBuffer
from bridgewatch.store.preserved import PreservedFrameSet


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreSnapshot:
    """
    Consistent, immutable view of the store at one instant.

    Attributes:
        frames: Buffered frames, oldest first
        preserved: Preserved slot per useful category (None if empty)
    """

    frames: Tuple[Frame, ...] = ()
    preserved: Dict[ViewCategory, Optional[Frame]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.frames and all(f is None for f in self.preserved.values())

    def latest_of(self, category: ViewCategory) -> Optional[Frame]:
        """Newest buffered frame of a category."""
        for frame in reversed(self.frames):
            if frame.category is category:
                return frame
        return None


class FrameStore:
    """
    Thread-safe frame buffer plus preservation store.

    Example:
        store = FrameStore(max_buffer_size=12)
        store.commit(frame)                    # scheduler only
        latest = store.read_latest()           # any reader
        bridge = store.read_preserved(ViewCategory.BRIDGE, max_age=600)
    """

    def __init__(
        self,
        max_buffer_size: int = 12,
        clock=time.time,
    ) -> None:
        self._lock = threading.Lock()
        self._buffer = FrameBuffer(capacity=max_buffer_size)
        self._preserved = PreservedFrameSet()
        self._clock = clock
        self._commits: int = 0

    def commit(self, frame: Frame) -> bool:
        """
        Append a classified frame and update its preserved slot.

        Args:
            frame: Frame with a category assigned

        Returns:
            True if the frame replaced its category's preserved slot

        Raises:
            ValueError: If the frame is unclassified
        """
        if frame.category is None:
            raise ValueError("cannot commit an unclassified frame")

        with self._lock:
            self._buffer.append(frame)
            replaced = self._preserved.offer(frame)
            self._commits += 1

        logger.debug(f"Committed {frame!r} (preserved={replaced})")
        return replaced

    def restore_preserved(self, frame: Frame) -> bool:
        """Seed a preserved slot (warm start) without touching the buffer."""
        with self._lock:
            return self._preserved.offer(frame)

    def read_latest(self) -> Optional[Frame]:
        with self._lock:
            return self._buffer.latest()

    def read_preserved(
        self,
        category: ViewCategory,
        max_age: float,
        now: Optional[float] = None,
    ) -> Optional[Frame]:
        """
        Preserved frame of a category if it is within ``max_age`` seconds.

        Stale frames are not deleted; a looser window may still return them.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            return self._preserved.get_fresh(category, max_age, now)

    def snapshot(self) -> StoreSnapshot:
        """Take a consistent copy of buffer and preserved slots."""
        with self._lock:
            return StoreSnapshot(
                frames=tuple(self._buffer.frames()),
                preserved=self._preserved.as_dict(),
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    def get_metrics(self) -> dict:
        """Get store metrics for observability."""
        with self._lock:
            counts = self._buffer.count_by_category()
            preserved = self._preserved.as_dict()
            buffer_metrics = self._buffer.metrics()
            commits = self._commits

        return {
            **buffer_metrics,
            "commits": commits,
            "by_category": {c.value: n for c, n in counts.items()},
            "preserved": {
                c.value: (f.timestamp if f is not None else None)
                for c, f in preserved.items()
            },
        }
