"""
Camera Health Monitor
=====================

Infers whether the capture source itself is degraded.

State is never stored; it is derived from two rolling counters every
time it is read:

    DOWN            consecutive_failures >= failure_threshold (checked first)
    STUCK_ON_ANGLE  the last stuck_threshold classifications all equal c
    OPERATIONAL     otherwise

Inputs (from the scheduler only):
    record_failure         capture failed (ffmpeg error, timeout, no output)
    record_classification  a useful category was observed
    record_noop            useless view, low-quality frame or busy tick;
                           touches neither counter

Design Rules:
    - A single success resets the failure counter
    - The angle history is never cleared by failures; a source that
      recovers onto the same angle may immediately read as STUCK
    - Transitions are logged at WARNING when observed
"""

import logging
import threading
import time
from collections import deque
from typing import Deque, Optional

from bridgewatch.models.health import CameraHealthState, HealthReport, HealthStatus
from bridgewatch.models.view import ViewCategory


logger = logging.getLogger(__name__)


def _format_elapsed(seconds: float) -> str:
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {seconds}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


class HealthMonitor:
    """
    Derives camera health from capture and classification outcomes.

    Attributes:
        failure_threshold: Consecutive failures that mean DOWN
        stuck_threshold: Identical consecutive classifications that mean STUCK

    Example:
        monitor = HealthMonitor(failure_threshold=3, stuck_threshold=10)
        monitor.record_failure()
        report = monitor.report(now)
        print(report.state, report.advisory)
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        stuck_threshold: int = 10,
        history_size: int = 10,
        clock=time.time,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if stuck_threshold < 1:
            raise ValueError("stuck_threshold must be >= 1")

        self.failure_threshold = failure_threshold
        self.stuck_threshold = stuck_threshold

        self._lock = threading.Lock()
        self._clock = clock
        self._consecutive_failures: int = 0
        self._angle_history: Deque[ViewCategory] = deque(
            maxlen=max(history_size, stuck_threshold)
        )
        self._last_success: Optional[float] = None
        self._total_failures: int = 0
        self._noops: int = 0

        # Logging only; never read by evaluate()
        self._last_logged: CameraHealthState = CameraHealthState.operational()

    def record_failure(self) -> None:
        with self._lock:
            self._consecutive_failures += 1
            self._total_failures += 1
        self._log_transition()

    def record_classification(
        self,
        category: ViewCategory,
        now: Optional[float] = None,
    ) -> None:
        """
        Record a successful, useful classification.

        Resets the failure run and appends to the angle history.
        """
        if not category.is_useful:
            self.record_noop()
            return

        if now is None:
            now = self._clock()
        with self._lock:
            self._consecutive_failures = 0
            self._angle_history.append(category)
            self._last_success = now
        self._log_transition()

    def record_noop(self) -> None:
        with self._lock:
            self._noops += 1

    def evaluate(self) -> CameraHealthState:
        """Derive the current health state from the counters."""
        with self._lock:
            return self._evaluate_locked()

    def _evaluate_locked(self) -> CameraHealthState:
        if self._consecutive_failures >= self.failure_threshold:
            return CameraHealthState.down()

        if len(self._angle_history) >= self.stuck_threshold:
            recent = list(self._angle_history)[-self.stuck_threshold:]
            first = recent[0]
            if all(c is first for c in recent):
                return CameraHealthState.stuck_on(first)

        return CameraHealthState.operational()

    def report(self, now: Optional[float] = None) -> HealthReport:
        """
        Build the user-facing report, computing the advisory at read time.

        Args:
            now: Current UNIX time (for "offline for ..." text)
        """
        if now is None:
            now = self._clock()

        with self._lock:
            state = self._evaluate_locked()
            last_success = self._last_success
            failures = self._consecutive_failures

        return HealthReport(
            state=state.status,
            stuck_category=state.stuck_category,
            advisory=self._advisory(state, last_success, now),
            last_success_timestamp=last_success,
            consecutive_failures=failures,
        )

    @staticmethod
    def _advisory(
        state: CameraHealthState,
        last_success: Optional[float],
        now: float,
    ) -> str:
        if state.status is HealthStatus.DOWN:
            if last_success is None:
                return "Camera feed is offline: no successful capture yet."
            elapsed = _format_elapsed(now - last_success)
            return (
                f"Camera feed is offline: last successful capture was {elapsed} ago. "
                f"Information may be outdated."
            )

        if state.status is HealthStatus.STUCK_ON_ANGLE:
            label = state.stuck_category.label or state.stuck_category.value
            return (
                f"Camera appears stuck on the {label} view. "
                f"Other areas of the crossing cannot be seen right now."
            )

        return "Camera feed is live."

    def _log_transition(self) -> None:
        state = self.evaluate()
        if state != self._last_logged:
            logger.warning(f"CAMERA HEALTH CHANGE: {self._last_logged} → {state}")
            self._last_logged = state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    def get_metrics(self) -> dict:
        """Get monitor metrics for observability."""
        with self._lock:
            state = self._evaluate_locked()
            return {
                "state": str(state),
                "consecutive_failures": self._consecutive_failures,
                "total_failures": self._total_failures,
                "noops": self._noops,
                "history": [c.value for c in self._angle_history],
                "last_success_timestamp": self._last_success,
            }
