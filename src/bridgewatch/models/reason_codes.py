"""
Tick Reason Codes
=================

Fixed set of machine-readable outcomes for one scheduler tick.

Each tick ends with exactly ONE reason code explaining what happened to
the frame that was (or was not) captured.

Rules:
    - No free-text explanations
    - One clear cause per code
    - Only COMMITTED_* codes mean the frame entered the buffer
"""

from enum import Enum


class TickReason(str, Enum):
    """
    Outcome of a capture tick.

    Attributes:
        COMMITTED_NEW_ANGLE: Category differs from the last committed one
        COMMITTED_REFRESH: Same angle, but its last commit is stale
        DUPLICATE_ANGLE: Same angle, refresh not yet due; frame discarded
        USELESS_VIEW: Classified as useless (or classifier unavailable)
        LOW_QUALITY: Dropped by the blur/size pre-filter
        CAPTURE_FAILED: ffmpeg failed, timed out or produced no output
        CAPTURE_BUSY: Another capture was in flight; cached frame returned
        TICK_ERROR: Unexpected error inside the tick pipeline
    """

    COMMITTED_NEW_ANGLE = "COMMITTED_NEW_ANGLE"
    COMMITTED_REFRESH = "COMMITTED_REFRESH"
    DUPLICATE_ANGLE = "DUPLICATE_ANGLE"
    USELESS_VIEW = "USELESS_VIEW"
    LOW_QUALITY = "LOW_QUALITY"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    CAPTURE_BUSY = "CAPTURE_BUSY"
    TICK_ERROR = "TICK_ERROR"

    @property
    def is_commit(self) -> bool:
        return self in (TickReason.COMMITTED_NEW_ANGLE, TickReason.COMMITTED_REFRESH)
