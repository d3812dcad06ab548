"""
Capture Scheduler Tests
=======================

Commit policy, the tick graph and the background loop.
"""

import asyncio

import pytest

from bridgewatch.capture.quality import QualityFilter
from bridgewatch.classify.engine import ClassifierGate
from bridgewatch.health import HealthMonitor
from bridgewatch.models.health import HealthStatus
from bridgewatch.models.reason_codes import TickReason
from bridgewatch.models.view import ViewCategory
from bridgewatch.scheduler import CaptureScheduler, CommitPolicy, TickGraph
from bridgewatch.store import FrameStore

from conftest import SHARP_IMAGE, TINY_IMAGE, FakeController, ScriptedClassifier


class Pipeline:
    """Wires a TickGraph from fakes and exposes the pieces."""

    def __init__(self, clock, refresh_after: float = 180.0, on_preserved=None):
        self.clock = clock
        self.store = FrameStore(max_buffer_size=12, clock=clock)
        self.controller = FakeController(clock, fallback=self.store.read_latest)
        self.classifier = ScriptedClassifier()
        self.health = HealthMonitor(failure_threshold=3, stuck_threshold=10, clock=clock)
        self.policy = CommitPolicy(refresh_after=refresh_after)
        self.graph = TickGraph(
            controller=self.controller,
            quality=QualityFilter(min_frame_bytes=15000),
            classifier=ClassifierGate(self.classifier, timeout_seconds=5),
            store=self.store,
            health=self.health,
            policy=self.policy,
            on_preserved=on_preserved,
        )
        self.scheduler = CaptureScheduler(self.graph, interval=20.0)

    def tick(self, image=SHARP_IMAGE, category=ViewCategory.BRIDGE):
        self.controller.push(image)
        if category is not None:
            self.classifier.push(category)
        return asyncio.run(self.scheduler.tick())


class TestCommitPolicy:
    """Tests for the novelty rules."""

    def test_first_useful_frame_is_new_angle(self):
        policy = CommitPolicy()
        assert policy.decide(ViewCategory.BRIDGE, 0.0) is TickReason.COMMITTED_NEW_ANGLE

    def test_same_angle_within_window_is_duplicate(self):
        policy = CommitPolicy(refresh_after=180)
        policy.mark_committed(ViewCategory.BRIDGE, 0.0)
        assert policy.decide(ViewCategory.BRIDGE, 20.0) is TickReason.DUPLICATE_ANGLE

    def test_refresh_requires_strictly_more_than_window(self):
        policy = CommitPolicy(refresh_after=180)
        policy.mark_committed(ViewCategory.BRIDGE, 0.0)

        assert policy.decide(ViewCategory.BRIDGE, 180.0) is TickReason.DUPLICATE_ANGLE
        assert policy.decide(ViewCategory.BRIDGE, 180.5) is TickReason.COMMITTED_REFRESH

    def test_angle_change_commits(self):
        policy = CommitPolicy()
        policy.mark_committed(ViewCategory.BRIDGE, 0.0)
        assert policy.decide(ViewCategory.WIDE, 20.0) is TickReason.COMMITTED_NEW_ANGLE

    def test_useless_never_commits(self):
        assert CommitPolicy().decide(ViewCategory.USELESS, 0.0) is TickReason.USELESS_VIEW

    def test_out_of_order_frame_not_committed(self):
        """A frame older than the last commit never enters the buffer."""
        policy = CommitPolicy()
        policy.mark_committed(ViewCategory.BRIDGE, 100.0)
        assert policy.decide(ViewCategory.WIDE, 90.0) is TickReason.DUPLICATE_ANGLE
        assert policy.decide(ViewCategory.WIDE, 100.0) is TickReason.DUPLICATE_ANGLE


class TestTickGraph:
    """Tests for single ticks through the graph."""

    def test_duplicate_bridge_frames_commit_once(self, clock):
        """Three BRIDGE frames 20s apart: only the first enters the buffer."""
        pipeline = Pipeline(clock)

        reasons = []
        for _ in range(3):
            reasons.append(pipeline.tick().reason)
            clock.advance(20)

        assert reasons == [
            TickReason.COMMITTED_NEW_ANGLE,
            TickReason.DUPLICATE_ANGLE,
            TickReason.DUPLICATE_ANGLE,
        ]
        assert len(pipeline.store) == 1

    def test_refresh_after_window(self, clock):
        pipeline = Pipeline(clock)
        t0 = clock()
        pipeline.tick()

        clock.now = t0 + 200
        result = pipeline.tick()

        assert result.reason is TickReason.COMMITTED_REFRESH
        assert result.committed
        assert len(pipeline.store) == 2
        assert pipeline.store.read_latest().timestamp == t0 + 200

    def test_no_refresh_at_exact_window(self, clock):
        pipeline = Pipeline(clock)
        t0 = clock()
        pipeline.tick()

        clock.now = t0 + 180
        assert pipeline.tick().reason is TickReason.DUPLICATE_ANGLE

    def test_duplicates_still_count_for_health(self, clock):
        """Uncommitted useful classifications feed the stuck detector."""
        pipeline = Pipeline(clock)
        for _ in range(10):
            pipeline.tick(category=ViewCategory.WIDE)
            clock.advance(20)

        assert len(pipeline.store) == 1
        assert pipeline.health.evaluate().status is HealthStatus.STUCK_ON_ANGLE

    def test_rotation_commits_each_angle(self, clock):
        pipeline = Pipeline(clock)
        for category in (ViewCategory.BRIDGE, ViewCategory.PROCESSING, ViewCategory.WIDE):
            assert pipeline.tick(category=category).reason is TickReason.COMMITTED_NEW_ANGLE
            clock.advance(20)

        snapshot = pipeline.store.snapshot()
        assert [f.category for f in snapshot.frames] == [
            ViewCategory.BRIDGE,
            ViewCategory.PROCESSING,
            ViewCategory.WIDE,
        ]

    def test_useless_view_not_committed(self, clock):
        pipeline = Pipeline(clock)
        result = pipeline.tick(category=ViewCategory.USELESS)

        assert result.reason is TickReason.USELESS_VIEW
        assert result.category is ViewCategory.USELESS
        assert result.frame.category is ViewCategory.USELESS
        assert len(pipeline.store) == 0
        assert pipeline.health.get_metrics()["history"] == []

    def test_low_quality_skips_classifier(self, clock):
        pipeline = Pipeline(clock)
        result = pipeline.tick(image=TINY_IMAGE, category=None)

        assert result.reason is TickReason.LOW_QUALITY
        assert result.frame is not None
        assert result.category is None
        assert pipeline.classifier.categories == []
        assert len(pipeline.store) == 0

    def test_failed_capture_counts_towards_down(self, clock):
        pipeline = Pipeline(clock)
        for _ in range(3):
            pipeline.controller.push(None)
            result = asyncio.run(pipeline.scheduler.tick())
            assert result.reason is TickReason.CAPTURE_FAILED
            assert not result.is_fresh

        assert pipeline.health.evaluate().status is HealthStatus.DOWN

    def test_failed_capture_returns_cached_frame(self, clock):
        pipeline = Pipeline(clock)
        first = pipeline.tick()

        pipeline.controller.push(None)
        result = asyncio.run(pipeline.scheduler.tick())

        assert result.reason is TickReason.CAPTURE_FAILED
        assert result.frame == first.frame

    def test_busy_capture_is_noop(self, clock):
        pipeline = Pipeline(clock)
        pipeline.controller.push(None)
        asyncio.run(pipeline.scheduler.tick())

        pipeline.controller.push("busy")
        result = asyncio.run(pipeline.scheduler.tick())

        assert result.reason is TickReason.CAPTURE_BUSY
        assert pipeline.health.consecutive_failures == 1

    def test_on_preserved_called_on_slot_change(self, clock):
        saved = []

        async def on_preserved(frame):
            saved.append(frame)

        pipeline = Pipeline(clock, on_preserved=on_preserved)
        pipeline.tick()
        clock.advance(20)
        pipeline.tick()  # duplicate

        assert len(saved) == 1
        assert saved[0].category is ViewCategory.BRIDGE

    def test_unexpected_error_becomes_tick_error(self, clock):
        pipeline = Pipeline(clock)

        async def explode():
            raise RuntimeError("boom")

        pipeline.controller.capture = explode
        result = asyncio.run(pipeline.scheduler.tick())

        assert result.reason is TickReason.TICK_ERROR
        assert result.frame is None
        assert pipeline.scheduler.get_metrics()["reasons"] == {"TICK_ERROR": 1}


class TestCaptureScheduler:
    """Tests for the background loop."""

    def test_rejects_non_positive_interval(self, clock):
        with pytest.raises(ValueError):
            CaptureScheduler(Pipeline(clock).graph, interval=0)

    def test_run_ticks_until_stopped(self, clock):
        pipeline = Pipeline(clock)
        pipeline.scheduler.interval = 0.01

        async def run_briefly():
            task = asyncio.create_task(pipeline.scheduler.run())
            await asyncio.sleep(0.1)
            assert pipeline.scheduler.running
            await pipeline.scheduler.stop()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(run_briefly())

        metrics = pipeline.scheduler.get_metrics()
        assert metrics["tick_count"] >= 2
        assert metrics["running"] is False
        assert metrics["last_reason"] == TickReason.CAPTURE_FAILED.value

    def test_metrics_track_reasons(self, clock):
        pipeline = Pipeline(clock)
        pipeline.tick()
        clock.advance(20)
        pipeline.tick()

        metrics = pipeline.scheduler.get_metrics()
        assert metrics["tick_count"] == 2
        assert metrics["reasons"] == {"COMMITTED_NEW_ANGLE": 1, "DUPLICATE_ANGLE": 1}
        assert pipeline.scheduler.last_result.reason is TickReason.DUPLICATE_ANGLE
