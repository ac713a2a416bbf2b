"""
Stream Module
=============

Frame ingestion and latest-frame hand-off.

This module provides the ingestion layer for the vicinity condition:
    - Frame: Immutable decoded frame (single-channel float32)
    - FrameSlot: Lock-guarded single-item latest-frame buffer
    - WebSocketFrameSource: Reader thread on a WebSocket frame stream
    - FrameSubscription: Decodes delivered messages into the slot

Example:
    from vicinity_condition.stream import FrameSlot, FrameSubscription, WebSocketFrameSource

    slot = FrameSlot()
    subscription = FrameSubscription(
        source=WebSocketFrameSource("ws://localhost:8000/ws/frames"),
        slot=slot,
    )

    frame = slot.snapshot()  # latest frame or None
"""

from vicinity_condition.stream.frame import Frame
from vicinity_condition.stream.slot import FrameSlot
from vicinity_condition.stream.image_codec import (
    ImageDecodeError,
    ImageEncodeError,
    build_frame_message,
    decode_frame_message,
    encode_frame_png,
)
from vicinity_condition.stream.source import FrameSource, WebSocketFrameSource
from vicinity_condition.stream.subscription import (
    FrameSubscription,
    FrameSubscriptionMetrics,
)


__all__ = [
    "Frame",
    "FrameSlot",
    "FrameSource",
    "WebSocketFrameSource",
    "FrameSubscription",
    "FrameSubscriptionMetrics",
    "ImageDecodeError",
    "ImageEncodeError",
    "build_frame_message",
    "decode_frame_message",
    "encode_frame_png",
]
