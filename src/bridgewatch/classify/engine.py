"""
View Classifier Engine
======================

Classifier abstraction and the gate the capture pipeline calls through.

This module provides:
    - ViewClassifier: Protocol every backend implements
    - MockViewClassifier: Scripted, deterministic backend for tests and demos
    - ClassifierGate: Single-flight, time-bounded wrapper around a backend

Gate contract:
    classify(image) -> ViewCategory, never raises.

    - Only one classification runs at a time. A second caller does NOT
      queue: it gets USELESS immediately and the frame is lost.
    - Backend errors and timeouts also map to USELESS.
    - None of these count as capture failures.
"""

import asyncio
import logging
from itertools import cycle
from typing import Iterable, Optional, Protocol

from bridgewatch.models.view import ViewCategory


logger = logging.getLogger(__name__)


class ViewClassifier(Protocol):
    """
    Protocol for view classification backends.

    Implemented by:
        - MockViewClassifier (tests, offline runs)
        - VisionViewClassifier (Google Cloud Vision labels)
        - VLMViewClassifier (OpenAI-compatible vision model)

    Backends MAY raise; the ClassifierGate absorbs every failure.
    """

    async def classify(self, image: bytes) -> ViewCategory:
        """
        Classify a JPEG still into a view category.

        Args:
            image: Raw JPEG bytes

        Returns:
            ViewCategory of the still
        """
        ...


class MockViewClassifier:
    """
    Deterministic mock classifier.

    Returns categories from a fixed sequence in rotation, which is enough to
    drive the scheduler through angle changes, duplicates and useless views
    without any external API.

    Attributes:
        sequence: Categories returned in order, repeating
        delay: Optional artificial latency in seconds
    """

    def __init__(
        self,
        sequence: Optional[Iterable[ViewCategory]] = None,
        delay: float = 0.0,
    ) -> None:
        """
        Initialize mock classifier.

        Args:
            sequence: Categories to cycle through (default: the three useful views)
            delay: Seconds to sleep per call (simulates backend latency)
        """
        categories = list(sequence) if sequence is not None else [
            ViewCategory.BRIDGE,
            ViewCategory.PROCESSING,
            ViewCategory.WIDE,
        ]
        if not categories:
            raise ValueError("sequence must not be empty")

        self.sequence = categories
        self.delay = delay
        self._iter = cycle(categories)
        self._calls: int = 0

        logger.info(
            f"MockViewClassifier initialized: "
            f"sequence={[c.value for c in categories]}"
        )

    async def classify(self, image: bytes) -> ViewCategory:
        self._calls += 1
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        return next(self._iter)

    @property
    def call_count(self) -> int:
        return self._calls


class ClassifierGate:
    """
    Single-flight, time-bounded classifier front.

    Wraps any ViewClassifier so the pipeline sees a total function
    ``bytes -> ViewCategory``.

    Attributes:
        backend: Underlying classifier
        timeout_seconds: Upper bound for one classification

    Example:
        gate = ClassifierGate(VLMViewClassifier(...), timeout_seconds=30)
        category = await gate.classify(frame.image)
    """

    def __init__(self, backend: ViewClassifier, timeout_seconds: float = 30.0) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.backend = backend
        self.timeout_seconds = timeout_seconds
        self._guard = asyncio.Semaphore(1)

        # Metrics
        self._calls: int = 0
        self._contended: int = 0
        self._timeouts: int = 0
        self._errors: int = 0
        self._last_category: Optional[ViewCategory] = None

    @property
    def in_flight(self) -> bool:
        """Whether a classification is currently running."""
        return self._guard.locked()

    async def classify(self, image: bytes) -> ViewCategory:
        """
        Classify a still, mapping every failure to USELESS.

        Args:
            image: Raw JPEG bytes

        Returns:
            ViewCategory (USELESS on contention, timeout or error)
        """
        if self._guard.locked():
            self._contended += 1
            logger.warning("Classifier busy, frame treated as useless")
            return ViewCategory.USELESS

        async with self._guard:
            self._calls += 1
            try:
                category = await asyncio.wait_for(
                    self.backend.classify(image),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                self._timeouts += 1
                logger.error(
                    f"Classification timed out after {self.timeout_seconds:.0f}s"
                )
                return ViewCategory.USELESS
            except Exception as e:
                self._errors += 1
                logger.error(f"Classification failed: {e}")
                return ViewCategory.USELESS

        if not isinstance(category, ViewCategory):
            category = ViewCategory.parse(str(category))

        self._last_category = category
        logger.info(f"Frame classified as: {category.value}")
        return category

    def get_metrics(self) -> dict:
        """Get gate metrics for observability."""
        return {
            "backend": type(self.backend).__name__,
            "calls": self._calls,
            "contended": self._contended,
            "timeouts": self._timeouts,
            "errors": self._errors,
            "last_category": self._last_category.value if self._last_category else None,
        }
