"""
Test Configuration
==================

Pytest fixtures and test doubles for BridgeWatch.
"""

from typing import List, Optional

import pytest

from bridgewatch.capture.controller import CaptureOutcome, CaptureStatus
from bridgewatch.capture.frame import Frame
from bridgewatch.models.view import ViewCategory


# A JPEG-looking blob comfortably above the default 15000-byte cutoff
SHARP_IMAGE = b"\xff\xd8\xff\xe0" + bytes(range(256)) * 80
TINY_IMAGE = b"\xff\xd8\xff\xe0" + b"\x00" * 1000


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class FakeController:
    """
    Scripted stand-in for CaptureController.

    Each script entry is an image (CAPTURED), None (FAILED) or the string
    "busy" (BUSY). An exhausted script keeps failing.
    """

    def __init__(self, clock: FakeClock, fallback, script: Optional[List] = None) -> None:
        self.clock = clock
        self.fallback = fallback
        self.script = list(script or [])
        self.calls = 0

    def push(self, *entries) -> None:
        self.script.extend(entries)

    async def capture(self) -> CaptureOutcome:
        self.calls += 1
        entry = self.script.pop(0) if self.script else None
        if entry == "busy":
            return CaptureOutcome(CaptureStatus.BUSY, frame=self.fallback())
        if entry is None:
            return CaptureOutcome(CaptureStatus.FAILED, frame=self.fallback(), error="scripted")
        return CaptureOutcome(
            CaptureStatus.CAPTURED,
            frame=Frame(image=entry, timestamp=self.clock()),
        )

    def get_metrics(self) -> dict:
        return {"attempts": self.calls, "successes": 0, "failures": 0, "timeouts": 0}


class ScriptedClassifier:
    """Returns categories from a list, one per call."""

    def __init__(self, categories: Optional[List[ViewCategory]] = None) -> None:
        self.categories = list(categories or [])

    def push(self, *categories: ViewCategory) -> None:
        self.categories.extend(categories)

    async def classify(self, image: bytes) -> ViewCategory:
        return self.categories.pop(0) if self.categories else ViewCategory.USELESS


def make_frame(
    timestamp: float,
    category: Optional[ViewCategory] = ViewCategory.BRIDGE,
    image: bytes = SHARP_IMAGE,
) -> Frame:
    """Build a frame; the timestamp is folded into the bytes so frames differ."""
    return Frame(image=image + str(timestamp).encode(), timestamp=timestamp, category=category)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sharp_image() -> bytes:
    return SHARP_IMAGE


@pytest.fixture
def tiny_image() -> bytes:
    return TINY_IMAGE


@pytest.fixture
def settings():
    """Default settings with offline backends."""
    from bridgewatch.config import Settings

    return Settings.model_validate({
        "classifier": {"backend": "mock"},
        "detector": {"backend": "none"},
        "persistence": {"enabled": False},
    })
