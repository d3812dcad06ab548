"""
Camera Service
==============

Public contract of the capture/classification/health/trend core.

This is the only object request handlers talk to. It owns every
component, wires them together and exposes read operations plus the two
write paths that are allowed from outside the scheduler:

    - trigger_capture(): an out-of-band tick through the same guards
    - record_detection_reading(): feeds the trend tracker

Nothing here raises across the boundary; every failure resolves to a
typed result (None, empty list, UNKNOWN tags, advisory text).
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from bridgewatch.capture.controller import CaptureController
from bridgewatch.capture.frame import Frame
from bridgewatch.capture.quality import QualityFilter
from bridgewatch.classify import ClassifierGate, ViewClassifier, create_classifier
from bridgewatch.config import Settings
from bridgewatch.detection import VehicleDetector, create_detector
from bridgewatch.exceptions import DetectorError, PersistenceError
from bridgewatch.health.monitor import HealthMonitor
from bridgewatch.models.health import HealthReport
from bridgewatch.models.trend import TrendReading, TrendSummary
from bridgewatch.scheduler import CaptureScheduler, CommitPolicy, TickGraph
from bridgewatch.selection.policy import FrameSelectionPolicy
from bridgewatch.signals.trend import DirectionalTrendTracker
from bridgewatch.store.persistence import FilePreservedStore
from bridgewatch.store.state import FrameStore


logger = logging.getLogger(__name__)


def _persist_hook(persistence: FilePreservedStore):
    """Build the tick-graph hook that saves replaced preserved frames off the loop."""
    async def persist(frame: Frame) -> None:
        try:
            await asyncio.to_thread(persistence.save, frame)
        except PersistenceError as e:
            logger.error(f"Failed to persist preserved frame: {e}")
    return persist


class CameraService:
    """
    Facade over the border camera pipeline.

    Example:
        service = CameraService.from_settings(settings)
        await service.start()
        frames = service.get_frames_for_analysis()
        report = service.get_health()
        await service.stop()
    """

    def __init__(
        self,
        store: FrameStore,
        health: HealthMonitor,
        scheduler: CaptureScheduler,
        selection: FrameSelectionPolicy,
        trend: DirectionalTrendTracker,
        detector: Optional[VehicleDetector] = None,
        persistence: Optional[FilePreservedStore] = None,
        clock=time.time,
    ) -> None:
        self.store = store
        self.health = health
        self.scheduler = scheduler
        self.selection = selection
        self.trend = trend
        self.detector = detector
        self.persistence = persistence
        self._clock = clock

        self._scheduler_task: Optional[asyncio.Task] = None
        self._started_at: Optional[float] = None
        self._last_measured_at: Optional[float] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        classifier: Optional[ViewClassifier] = None,
        controller: Optional[CaptureController] = None,
        detector: Optional[VehicleDetector] = None,
        clock=time.time,
    ) -> "CameraService":
        """
        Build the full pipeline from configuration.

        Args:
            settings: Loaded settings
            classifier: Backend override (default: from classifier config)
            controller: Capture controller override (default: ffmpeg)
            detector: Vehicle detector override (default: from detector config)
            clock: Time source shared by every component

        Raises:
            ValueError: On unknown backends (fail fast)
        """
        store = FrameStore(max_buffer_size=settings.buffer.max_buffer_size, clock=clock)
        health = HealthMonitor(
            failure_threshold=settings.health.failure_threshold,
            stuck_threshold=settings.health.stuck_threshold,
            history_size=settings.health.history_size,
            clock=clock,
        )

        if controller is None:
            controller = CaptureController(
                stream_url=settings.stream.url,
                fallback=store.read_latest,
                ffmpeg_bin=settings.stream.ffmpeg_bin,
                scale_width=settings.stream.scale_width,
                jpeg_quality=settings.stream.jpeg_quality,
                capture_timeout=settings.stream.capture_timeout_seconds,
                kill_timeout=settings.stream.kill_timeout_seconds,
                clock=clock,
            )

        gate = ClassifierGate(
            classifier if classifier is not None else create_classifier(settings.classifier),
            timeout_seconds=settings.classifier.timeout_seconds,
        )

        persistence = None
        if settings.persistence.enabled:
            persistence = FilePreservedStore(settings.persistence.directory)

        if detector is None:
            detector = create_detector(settings.detector)

        trend_cfg = settings.trend
        trend = DirectionalTrendTracker(
            directions=trend_cfg.directions,
            window_size=trend_cfg.window_size,
            sub_window=trend_cfg.sub_window,
            min_samples=trend_cfg.min_samples,
            dead_band=trend_cfg.dead_band,
            slow_mean=trend_cfg.slow_mean,
            very_slow_mean=trend_cfg.very_slow_mean,
            low_variance=trend_cfg.low_variance,
            moving_well_variance=trend_cfg.moving_well_variance,
            clock=clock,
        )

        graph = TickGraph(
            controller=controller,
            quality=QualityFilter(
                min_frame_bytes=settings.quality.min_frame_bytes,
                sharpness_threshold=settings.quality.sharpness_threshold,
            ),
            classifier=gate,
            store=store,
            health=health,
            policy=CommitPolicy(refresh_after=settings.scheduler.refresh_after_seconds),
            on_preserved=_persist_hook(persistence) if persistence is not None else None,
        )
        scheduler = CaptureScheduler(
            graph,
            interval=settings.scheduler.tick_interval_seconds,
            log_every_n_ticks=settings.scheduler.log_every_n_ticks,
        )
        selection = FrameSelectionPolicy(
            analysis_frames=settings.buffer.analysis_frames,
            fresh_window=settings.buffer.fresh_window_seconds,
            display_window=settings.buffer.display_window_seconds,
        )

        return cls(
            store=store,
            health=health,
            scheduler=scheduler,
            selection=selection,
            trend=trend,
            detector=detector,
            persistence=persistence,
            clock=clock,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Warm-start preserved frames, then launch the background scheduler."""
        if self._scheduler_task is not None:
            return

        self._started_at = self._clock()
        await self._warm_start()

        self._scheduler_task = asyncio.create_task(
            self.scheduler.run(),
            name="capture_scheduler",
        )
        logger.info("CameraService started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop the scheduler, cancelling it if it does not exit in time."""
        if self._scheduler_task is None:
            return

        await self.scheduler.stop()
        try:
            await asyncio.wait_for(self._scheduler_task, timeout=timeout)
        except asyncio.TimeoutError:
            self._scheduler_task.cancel()
            try:
                await self._scheduler_task
            except asyncio.CancelledError:
                pass

        self._scheduler_task = None
        logger.info("CameraService stopped")

    @property
    def is_running(self) -> bool:
        return self._scheduler_task is not None and not self._scheduler_task.done()

    async def _warm_start(self) -> None:
        if self.persistence is None:
            return
        frames = await asyncio.to_thread(self.persistence.load)
        for frame in frames:
            self.store.restore_preserved(frame)

    # =========================================================================
    # Frames
    # =========================================================================

    async def trigger_capture(self) -> Optional[Frame]:
        """
        Capture a frame now, out of band.

        Returns:
            The newly captured frame if the grab succeeded, otherwise the
            latest buffered frame (stale while another capture is running),
            or None if nothing was ever captured
        """
        result = await self.scheduler.tick()
        if result.frame is not None:
            return result.frame
        return self.store.read_latest()

    def get_frames_for_analysis(self) -> List[Frame]:
        """Up to N frames for downstream analysis; empty means no data."""
        return self.selection.select_for_analysis(self.store.snapshot(), self._clock())

    def get_display_frames(self) -> List[Frame]:
        """One frame per view, using the looser display window."""
        return self.selection.select_for_display(self.store.snapshot(), self._clock())

    # =========================================================================
    # Health
    # =========================================================================

    def get_health(self) -> HealthReport:
        return self.health.report(self._clock())

    # =========================================================================
    # Trend
    # =========================================================================

    def record_detection_reading(
        self,
        counts: Optional[Dict[str, int]],
        timestamp: Optional[float] = None,
    ) -> Optional[TrendReading]:
        """
        Record one per-direction count reading.

        Returns:
            The stored reading, or None if it was rejected (negative or
            non-integer count, or older than the newest reading)
        """
        try:
            return self.trend.add_reading(counts, timestamp)
        except ValueError as e:
            logger.warning(f"Trend reading rejected: {e}")
            return None

    def get_trend_summary(self) -> TrendSummary:
        return self.trend.summarize()

    async def refresh_trend(self) -> Optional[TrendReading]:
        """
        Run the vehicle detector on the top analysis frame and record it.

        Returns:
            The recorded reading, or None when there is no frame to analyse
            or the top frame was already measured
        """
        frames = self.get_frames_for_analysis()
        if not frames:
            logger.info("No frames available, trend not refreshed")
            return None
        frame = frames[0]

        if self._last_measured_at is not None and frame.timestamp <= self._last_measured_at:
            logger.debug(
                f"Top frame at {frame.timestamp:.0f} already measured, trend not refreshed"
            )
            return None
        self._last_measured_at = frame.timestamp

        counts = None
        if self.detector is None:
            logger.debug("No vehicle detector, recording unavailable reading")
        else:
            try:
                counts = await self.detector.count(frame.image)
            except DetectorError as e:
                logger.error(f"Vehicle detection failed: {e}")

        return self.record_detection_reading(counts, frame.timestamp)

    # =========================================================================
    # Observability
    # =========================================================================

    def get_metrics(self) -> dict:
        """Aggregate component metrics for the /metrics endpoint."""
        graph = self.scheduler.graph
        metrics = {
            "uptime_seconds": (
                round(self._clock() - self._started_at, 1) if self._started_at else 0.0
            ),
            "scheduler": self.scheduler.get_metrics(),
            "capture": graph.controller.get_metrics(),
            "quality": graph.quality.get_metrics(),
            "classifier": graph.classifier.get_metrics(),
            "store": self.store.get_metrics(),
            "health": self.health.get_metrics(),
            "trend": self.trend.get_metrics(),
        }
        if self.persistence is not None:
            metrics["persistence"] = self.persistence.get_metrics()
        return metrics
