"""
Frame Slot
==========

Single-item, lock-guarded holder for the most recent frame.

This module provides the FrameSlot class, which is the only shared mutable
state between the subscription thread (producer) and the evaluator.

Design Rules:
    - Holds at most one frame; publish replaces, never merges
    - The lock guards only reference assignment, never pixel copies
    - snapshot() returns the shared immutable Frame handle or None
    - Does NOT process or modify frames
"""

import logging
import threading
from typing import Optional

from vicinity_condition.stream.frame import Frame


logger = logging.getLogger(__name__)


class FrameSlot:
    """
    Latest-frame slot for one producer and one reader.

    Because Frame is immutable, handing out the stored reference is
    enough to give the reader a complete, self-consistent frame.

    Example:
        slot = FrameSlot()

        # Producer thread
        slot.publish(frame)

        # Evaluator
        frame = slot.snapshot()
        if frame is not None:
            classify(frame)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Optional[Frame] = None
        self._publish_count: int = 0

    def publish(self, frame: Frame) -> None:
        """
        Store frame as the latest value, replacing any previous one.

        Args:
            frame: Fully constructed frame to publish
        """
        with self._lock:
            self._current = frame
            self._publish_count += 1

    def snapshot(self) -> Optional[Frame]:
        """
        Get the latest published frame.

        Returns:
            Most recently published Frame, or None if nothing was
            published (or the slot was cleared).
        """
        with self._lock:
            return self._current

    def clear(self) -> None:
        """Drop the stored frame. Only used at teardown."""
        with self._lock:
            self._current = None
        logger.debug("FrameSlot cleared")

    @property
    def publish_count(self) -> int:
        """Total frames ever published."""
        with self._lock:
            return self._publish_count

    def metrics(self) -> dict:
        """
        Get slot metrics for observability.

        Returns:
            Dict with has_frame, publish_count, last_frame_id
        """
        with self._lock:
            current = self._current
            count = self._publish_count
        return {
            "has_frame": current is not None,
            "publish_count": count,
            "last_frame_id": current.frame_id if current is not None else None,
        }
