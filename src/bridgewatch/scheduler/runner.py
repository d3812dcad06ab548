"""
Capture Scheduler
=================

Drives the tick graph on a fixed interval, independent of any request.

The scheduler is the only writer of the frame store and the health
monitor. Out-of-band ticks (a caller asking for a fresh frame now) go
through the same graph and therefore the same single-flight guards, so
they never race the background loop on the ffmpeg subprocess.

A tick that raises is logged and counted; the loop keeps running.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from bridgewatch.capture.frame import Frame
from bridgewatch.models.reason_codes import TickReason
from bridgewatch.models.view import ViewCategory
from bridgewatch.scheduler.graph import TickGraph


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TickResult:
    """
    Outcome of one tick.

    Attributes:
        reason: What happened to the captured frame
        frame: The captured frame (classified if it got that far), or the
            cached fallback frame for BUSY / FAILED ticks
        category: Classifier output, if classification ran
        committed: Whether the frame entered the buffer
    """

    reason: TickReason
    frame: Optional[Frame] = None
    category: Optional[ViewCategory] = None
    committed: bool = False

    @property
    def is_fresh(self) -> bool:
        """True when this tick grabbed a new frame."""
        return self.reason not in (
            TickReason.CAPTURE_BUSY,
            TickReason.CAPTURE_FAILED,
            TickReason.TICK_ERROR,
        )


class CaptureScheduler:
    """
    Periodic capture loop.

    Attributes:
        graph: Per-tick pipeline
        interval: Seconds between background ticks

    Example:
        scheduler = CaptureScheduler(graph, interval=20.0)
        task = asyncio.create_task(scheduler.run())
        ...
        await scheduler.stop()
        await task
    """

    def __init__(
        self,
        graph: TickGraph,
        interval: float = 20.0,
        log_every_n_ticks: int = 10,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.graph = graph
        self.interval = interval
        self.log_every_n_ticks = log_every_n_ticks

        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()

        # Metrics
        self._tick_count: int = 0
        self._reasons: Counter = Counter()
        self._last_result: Optional[TickResult] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def last_result(self) -> Optional[TickResult]:
        return self._last_result

    async def tick(self) -> TickResult:
        """
        Run one capture tick.

        Never raises; unexpected errors produce a TICK_ERROR result.
        """
        try:
            state = await self.graph.run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Tick error: {e}", exc_info=True)
            result = TickResult(reason=TickReason.TICK_ERROR)
        else:
            reason = state["reason"]
            frame = state.get("frame")
            if frame is None and state.get("outcome") is not None:
                frame = state["outcome"].frame
            result = TickResult(
                reason=reason,
                frame=frame,
                category=state.get("category"),
                committed=reason.is_commit,
            )

        self._record(result)
        return result

    def _record(self, result: TickResult) -> None:
        self._tick_count += 1
        self._reasons[result.reason.value] += 1
        self._last_result = result

        logger.debug(f"Tick {self._tick_count}: {result.reason.value}")
        if self._tick_count % self.log_every_n_ticks == 0:
            logger.info(
                f"Scheduler [tick {self._tick_count}]: "
                f"last={result.reason.value}, "
                f"reasons={dict(self._reasons)}"
            )

    async def run(self) -> None:
        """
        Tick every ``interval`` seconds until stop() is called.

        The first tick runs immediately.
        """
        self._running = True
        logger.info(f"CaptureScheduler starting, interval={self.interval:.0f}s")

        # A stop requested before the loop started is honoured
        while not self._stop_event.is_set():
            await self.tick()

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.interval,
                )
            except asyncio.TimeoutError:
                pass

        self._running = False
        self._stop_event.clear()
        logger.info("CaptureScheduler stopped")

    async def stop(self) -> None:
        """Signal the run loop to exit after the current tick."""
        logger.info("CaptureScheduler stopping...")
        self._running = False
        self._stop_event.set()

    def get_metrics(self) -> dict:
        """Get scheduler metrics for observability."""
        return {
            "running": self._running,
            "interval_seconds": self.interval,
            "tick_count": self._tick_count,
            "reasons": dict(self._reasons),
            "last_reason": self._last_result.reason.value if self._last_result else None,
        }
