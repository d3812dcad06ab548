"""
Frame Store Tests
=================

Ring buffer, preserved slots and the lock-guarded FrameStore.
"""

import pytest

from bridgewatch.models.view import ViewCategory
from bridgewatch.store import FrameBuffer, FrameStore, PreservedFrameSet

from conftest import make_frame


class TestFrameBuffer:
    """Tests for the bounded ring."""

    def test_never_exceeds_capacity(self):
        """Length stays at capacity however many frames are appended."""
        buffer = FrameBuffer(capacity=4)
        for i in range(10):
            buffer.append(make_frame(float(i)))
            assert len(buffer) <= 4
        assert len(buffer) == 4

    def test_keeps_most_recent_in_commit_order(self):
        """After overflow the buffer holds the newest frames, oldest first."""
        buffer = FrameBuffer(capacity=3)
        for i in range(7):
            buffer.append(make_frame(float(i)))

        assert [f.timestamp for f in buffer.frames()] == [4.0, 5.0, 6.0]
        assert buffer.evicted_count == 4

    def test_append_returns_evicted_frame(self):
        buffer = FrameBuffer(capacity=1)
        first = make_frame(1.0)
        assert buffer.append(first) is None
        assert buffer.append(make_frame(2.0)) is first

    def test_rejects_unclassified_frame(self):
        buffer = FrameBuffer(capacity=2)
        with pytest.raises(ValueError):
            buffer.append(make_frame(1.0, category=None))

    def test_latest_and_counts(self):
        buffer = FrameBuffer(capacity=5)
        assert buffer.latest() is None

        buffer.append(make_frame(1.0, ViewCategory.BRIDGE))
        buffer.append(make_frame(2.0, ViewCategory.WIDE))
        buffer.append(make_frame(3.0, ViewCategory.BRIDGE))

        assert buffer.latest().timestamp == 3.0
        assert buffer.count_by_category() == {
            ViewCategory.BRIDGE: 2,
            ViewCategory.WIDE: 1,
        }

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            FrameBuffer(capacity=0)


class TestPreservedFrameSet:
    """Tests for per-category preserved slots."""

    def test_slot_holds_its_own_category(self):
        preserved = PreservedFrameSet()
        preserved.offer(make_frame(1.0, ViewCategory.PROCESSING))

        assert preserved.get(ViewCategory.PROCESSING).category is ViewCategory.PROCESSING
        assert preserved.get(ViewCategory.BRIDGE) is None

    def test_replaced_only_by_strictly_newer(self):
        """Equal or older timestamps never replace a slot."""
        preserved = PreservedFrameSet()
        current = make_frame(10.0)
        assert preserved.offer(current) is True

        assert preserved.offer(make_frame(10.0)) is False
        assert preserved.offer(make_frame(9.0)) is False
        assert preserved.get(ViewCategory.BRIDGE) is current

        newer = make_frame(11.0)
        assert preserved.offer(newer) is True
        assert preserved.get(ViewCategory.BRIDGE) is newer

    def test_useless_never_preserved(self):
        preserved = PreservedFrameSet()
        assert preserved.offer(make_frame(1.0, ViewCategory.USELESS)) is False
        assert ViewCategory.USELESS not in preserved.as_dict()


class TestFrameStore:
    """Tests for the combined store."""

    def test_commit_updates_buffer_and_preserved(self, clock):
        store = FrameStore(max_buffer_size=3, clock=clock)
        frame = make_frame(clock(), ViewCategory.WIDE)

        assert store.commit(frame) is True
        assert store.read_latest() is frame
        assert store.read_preserved(ViewCategory.WIDE, max_age=60) is frame

    def test_preserved_survives_buffer_pressure(self, clock):
        """A view pushed out of the ring is still available from its slot."""
        store = FrameStore(max_buffer_size=2, clock=clock)
        bridge = make_frame(clock(), ViewCategory.BRIDGE)
        store.commit(bridge)
        for i in range(1, 5):
            store.commit(make_frame(clock() + i, ViewCategory.WIDE))

        snapshot = store.snapshot()
        assert all(f.category is ViewCategory.WIDE for f in snapshot.frames)
        assert snapshot.preserved[ViewCategory.BRIDGE] is bridge

    def test_freshness_window_applied_at_read_time(self, clock):
        """Preserved frame at t0: gone at t0+700s, present at t0+500s."""
        store = FrameStore(max_buffer_size=4, clock=clock)
        t0 = clock()
        frame = make_frame(t0, ViewCategory.BRIDGE)
        store.commit(frame)

        assert store.read_preserved(ViewCategory.BRIDGE, max_age=600, now=t0 + 700) is None
        assert store.read_preserved(ViewCategory.BRIDGE, max_age=600, now=t0 + 500) is frame
        # Not deleted: a looser window still sees it
        assert store.read_preserved(ViewCategory.BRIDGE, max_age=3600, now=t0 + 700) is frame

    def test_freshness_boundary_is_inclusive(self, clock):
        store = FrameStore(clock=clock)
        frame = make_frame(100.0)
        store.commit(frame)
        assert store.read_preserved(ViewCategory.BRIDGE, max_age=600, now=700.0) is frame

    def test_commit_rejects_unclassified(self, clock):
        store = FrameStore(clock=clock)
        with pytest.raises(ValueError):
            store.commit(make_frame(1.0, category=None))
        assert store.read_latest() is None

    def test_useless_buffered_but_not_preserved(self, clock):
        store = FrameStore(clock=clock)
        assert store.commit(make_frame(1.0, ViewCategory.USELESS)) is False
        assert len(store) == 1
        assert all(f is None for f in store.snapshot().preserved.values())

    def test_restore_preserved_leaves_buffer_empty(self, clock):
        store = FrameStore(clock=clock)
        assert store.restore_preserved(make_frame(clock(), ViewCategory.PROCESSING)) is True

        snapshot = store.snapshot()
        assert snapshot.frames == ()
        assert snapshot.preserved[ViewCategory.PROCESSING] is not None
        assert not snapshot.is_empty

    def test_snapshot_latest_of(self, clock):
        store = FrameStore(clock=clock)
        store.commit(make_frame(1.0, ViewCategory.BRIDGE))
        store.commit(make_frame(2.0, ViewCategory.WIDE))
        store.commit(make_frame(3.0, ViewCategory.BRIDGE))

        snapshot = store.snapshot()
        assert snapshot.latest_of(ViewCategory.BRIDGE).timestamp == 3.0
        assert snapshot.latest_of(ViewCategory.PROCESSING) is None

    def test_metrics(self, clock):
        store = FrameStore(max_buffer_size=2, clock=clock)
        for i in range(3):
            store.commit(make_frame(float(i + 1), ViewCategory.BRIDGE))

        metrics = store.get_metrics()
        assert metrics["size"] == 2
        assert metrics["evicted_count"] == 1
        assert metrics["commits"] == 3
        assert metrics["by_category"] == {"bridge": 2}
        assert metrics["preserved"]["bridge"] == 3.0
