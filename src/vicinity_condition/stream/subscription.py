"""
Frame Subscription
==================

Owns the lifecycle of a subscription to a frame source and feeds the slot.

This module provides the FrameSubscription class which:
    - Starts the frame source on construction
    - Decodes each delivered message into a Frame
    - Publishes decoded frames into the FrameSlot
    - Logs and drops frames that fail to decode
    - Stops the source on close()

Design Rules:
    - The delivery callback never blocks beyond the slot's critical section
    - Decode failures never propagate to the source
    - Ordering anomalies are logged but frames are still published
    - After close() returns, the slot is never touched again
"""

import logging
import threading
from typing import Callable

from vicinity_condition.models.outcome import FailureKind
from vicinity_condition.stream.frame import Frame
from vicinity_condition.stream.image_codec import ImageDecodeError, decode_frame_message
from vicinity_condition.stream.slot import FrameSlot
from vicinity_condition.stream.source import FrameSource, RawMessage


logger = logging.getLogger(__name__)


Decoder = Callable[[RawMessage], Frame]


class FrameSubscriptionMetrics:
    """Metrics for FrameSubscription observability."""

    __slots__ = (
        "frames_received",
        "frames_published",
        "decode_errors",
        "validation_warnings",
        "last_frame_id",
        "last_timestamp",
    )

    def __init__(self) -> None:
        self.frames_received: int = 0
        self.frames_published: int = 0
        self.decode_errors: int = 0
        self.validation_warnings: int = 0
        self.last_frame_id: int = -1
        self.last_timestamp: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_received": self.frames_received,
            "frames_published": self.frames_published,
            "decode_errors": self.decode_errors,
            "validation_warnings": self.validation_warnings,
            "last_frame_id": self.last_frame_id,
            "last_timestamp": self.last_timestamp,
        }


class FrameSubscription:
    """
    Subscription that keeps a FrameSlot filled with the latest frame.

    Attributes:
        source: Transport delivering raw messages
        slot: Slot receiving decoded frames
        metrics: Operational metrics

    Example:
        slot = FrameSlot()
        subscription = FrameSubscription(
            source=WebSocketFrameSource("ws://localhost:8000/ws/frames"),
            slot=slot,
        )
        ...
        subscription.close()
    """

    def __init__(
        self,
        source: FrameSource,
        slot: FrameSlot,
        decoder: Decoder = decode_frame_message,
    ) -> None:
        """
        Initialize the subscription and start listening.

        Args:
            source: Frame transport to subscribe to
            slot: Slot to publish decoded frames into
            decoder: Raw message -> Frame conversion
        """
        self.source = source
        self.slot = slot
        self._decoder = decoder

        self.metrics = FrameSubscriptionMetrics()

        # Guards the closed flag against a concurrent publish
        self._deliver_lock = threading.Lock()
        self._closed: bool = False

        self.source.start(self.handle_message)

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def handle_message(self, raw: RawMessage) -> None:
        """
        Decode one raw message and publish it.

        Called from the source's execution context. Never raises.

        Args:
            raw: Raw message as delivered by the source
        """
        if self._closed:
            return

        self.metrics.frames_received += 1

        try:
            frame = self._decoder(raw)
        except ImageDecodeError as e:
            self.metrics.decode_errors += 1
            logger.warning(
                f"Dropping frame: failure={FailureKind.DECODE_FAILURE.value} {e} "
                f"(total decode errors: {self.metrics.decode_errors})"
            )
            return
        except Exception as e:
            self.metrics.decode_errors += 1
            logger.error(
                f"Dropping frame: failure={FailureKind.DECODE_FAILURE.value} "
                f"unexpected decoder error: {e!r}"
            )
            return

        self._check_ordering(frame)

        with self._deliver_lock:
            if self._closed:
                return
            self.slot.publish(frame)

        self.metrics.frames_published += 1
        self.metrics.last_frame_id = frame.frame_id
        self.metrics.last_timestamp = frame.timestamp

    def _check_ordering(self, frame: Frame) -> None:
        """Log frame_id and timestamp regressions. Does not reject frames."""
        if self.metrics.last_frame_id >= 0 and frame.frame_id <= self.metrics.last_frame_id:
            self.metrics.validation_warnings += 1
            logger.warning(
                f"Frame ID did not increase: got {frame.frame_id}, "
                f"previous was {self.metrics.last_frame_id}"
            )

        if self.metrics.last_timestamp > 0 and frame.timestamp < self.metrics.last_timestamp:
            self.metrics.validation_warnings += 1
            logger.warning(
                f"Timestamp went backwards: got {frame.timestamp:.3f}, "
                f"previous was {self.metrics.last_timestamp:.3f}"
            )

    def close(self) -> None:
        """
        Unsubscribe from the source.

        Deliveries racing with close() are discarded. Safe to call twice.
        """
        with self._deliver_lock:
            if self._closed:
                return
            self._closed = True

        self.source.stop()
        logger.info(
            f"FrameSubscription closed after {self.metrics.frames_published} frames "
            f"({self.metrics.decode_errors} decode errors)"
        )
