"""
Frame Data Model
=================

Internal frame representation handed from the subscription to the evaluator.

Design Rules:
    - This is the ONLY frame format passed to downstream stages
    - Pixels are always single-channel float32 (H, W)
    - Immutable: the pixel array is marked read-only at construction
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True, eq=False)
class Frame:
    """
    Decoded frame from the sensor stream.

    Frames are shared by reference between the slot and the evaluator,
    so nothing may mutate them after construction.

    Attributes:
        frame_id: Frame counter from source
        timestamp: UNIX timestamp of capture
        width: Image width in pixels
        height: Image height in pixels
        encoding: Encoding the frame arrived in (before conversion)
        pixels: Single-channel float32 image of shape (height, width)
    """

    frame_id: int
    timestamp: float
    width: int
    height: int
    encoding: str
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.dtype != np.float32 or self.pixels.ndim != 2:
            raise ValueError(
                f"Frame pixels must be 2-D float32, got "
                f"{self.pixels.ndim}-D {self.pixels.dtype}"
            )
        if self.pixels.shape != (self.height, self.width):
            raise ValueError(
                f"Frame pixels shape {self.pixels.shape} does not match "
                f"declared {self.height}x{self.width}"
            )
        self.pixels.flags.writeable = False

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixels."""
        return (
            f"Frame(frame_id={self.frame_id}, "
            f"timestamp={self.timestamp:.3f}, "
            f"size={self.width}x{self.height}, "
            f"encoding={self.encoding})"
        )
