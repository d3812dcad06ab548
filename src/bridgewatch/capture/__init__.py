"""
Capture Module
==============

Frame acquisition components.

This module provides the acquisition layer for BridgeWatch:
    - Frame: Immutable captured still (internal representation)
    - CaptureController: Single-flight ffmpeg frame grabber
    - QualityFilter: Size/sharpness pre-filter run before classification

Example:
    from bridgewatch.capture import CaptureController, QualityFilter

    controller = CaptureController(stream_url=url, fallback=store.read_latest)
    outcome = await controller.capture()
    if outcome.is_fresh and not QualityFilter().is_low_quality(outcome.frame.image):
        ...
"""

from bridgewatch.capture.frame import Frame
from bridgewatch.capture.controller import (
    CaptureController,
    CaptureError,
    CaptureOutcome,
    CaptureStatus,
)
from bridgewatch.capture.quality import QualityFilter


__all__ = [
    "Frame",
    "CaptureController",
    "CaptureError",
    "CaptureOutcome",
    "CaptureStatus",
    "QualityFilter",
]
