"""
Frame Slot Tests
================

Single-item hand-off between the subscription and the evaluator.
"""

import threading

import numpy as np
import pytest


class TestFrameSlot:
    """Tests for FrameSlot."""

    def test_starts_empty(self):
        """A new slot has nothing to snapshot."""
        from vicinity_condition.stream.slot import FrameSlot

        slot = FrameSlot()
        assert slot.snapshot() is None
        assert slot.publish_count == 0

    def test_snapshot_returns_published_frame(self, make_frame):
        """snapshot() hands out the published frame itself, not a copy."""
        from vicinity_condition.stream.slot import FrameSlot

        slot = FrameSlot()
        frame = make_frame(1)
        slot.publish(frame)

        assert slot.snapshot() is frame

    def test_latest_publish_wins(self, make_frame):
        """Publishing A then B makes B visible, never A."""
        from vicinity_condition.stream.slot import FrameSlot

        slot = FrameSlot()
        slot.publish(make_frame(1))
        slot.publish(make_frame(2))

        assert slot.snapshot().frame_id == 2
        assert slot.publish_count == 2

    def test_clear_empties_slot(self, make_frame):
        """clear() drops the stored frame."""
        from vicinity_condition.stream.slot import FrameSlot

        slot = FrameSlot()
        slot.publish(make_frame(1))
        slot.clear()

        assert slot.snapshot() is None

    def test_metrics(self, make_frame):
        """Metrics report presence, count and last id."""
        from vicinity_condition.stream.slot import FrameSlot

        slot = FrameSlot()
        assert slot.metrics() == {"has_frame": False, "publish_count": 0, "last_frame_id": None}

        slot.publish(make_frame(7))
        assert slot.metrics() == {"has_frame": True, "publish_count": 1, "last_frame_id": 7}

    def test_concurrent_publish_never_tears(self, make_frame):
        """Snapshots taken during concurrent publishes are always self-consistent."""
        from vicinity_condition.stream.slot import FrameSlot

        slot = FrameSlot()
        stop = threading.Event()

        def producer():
            frame_id = 0
            while not stop.is_set():
                frame_id += 1
                # Each frame's size and pixel values are derived from its id
                size = 4 + frame_id % 5
                slot.publish(make_frame(frame_id, width=size, height=size))

        thread = threading.Thread(target=producer, daemon=True)
        thread.start()

        seen = 0
        last_id = 0
        try:
            for _ in range(5000):
                frame = slot.snapshot()
                if frame is None:
                    continue
                seen += 1
                size = 4 + frame.frame_id % 5
                assert frame.pixels.shape == (size, size)
                assert np.all(frame.pixels == float(frame.frame_id))
                # Single reader never observes time going backwards
                assert frame.frame_id >= last_id
                last_id = frame.frame_id
        finally:
            stop.set()
            thread.join(timeout=2.0)

        assert seen > 0


class TestFrame:
    """Tests for the Frame value."""

    def test_pixels_are_read_only(self, make_frame):
        """Frames cannot be modified after construction."""
        frame = make_frame(3)

        with pytest.raises(ValueError):
            frame.pixels[0, 0] = 42.0

    def test_rejects_wrong_dtype(self):
        """Pixels must be float32."""
        from vicinity_condition.stream.frame import Frame

        with pytest.raises(ValueError):
            Frame(
                frame_id=1,
                timestamp=1.0,
                width=2,
                height=2,
                encoding="mono8",
                pixels=np.zeros((2, 2), dtype=np.uint8),
            )

    def test_rejects_shape_mismatch(self):
        """Pixels must match the declared dimensions."""
        from vicinity_condition.stream.frame import Frame

        with pytest.raises(ValueError):
            Frame(
                frame_id=1,
                timestamp=1.0,
                width=3,
                height=2,
                encoding="32FC1",
                pixels=np.zeros((2, 2), dtype=np.float32),
            )

    def test_repr_is_compact(self, make_frame):
        """repr does not dump pixel data."""
        text = repr(make_frame(5))
        assert "frame_id=5" in text
        assert "size=8x6" in text
