"""
Image Codec
===========

Conversion between wire frame messages, internal Frames, and the encoded
images sent to classifiers.

Design Rules:
    - This is the ONLY place in the codebase that decodes or encodes images
    - Every decoded frame is single-channel float32 (H, W)
    - Integer sources are converted without value scaling
    - Validates payload size and dimensions, fails fast on corrupt frames
"""

import base64
import binascii
import json
import logging
from typing import Union

import cv2
import numpy as np
from pydantic import ValidationError

from vicinity_condition.models.input import SUPPORTED_ENCODINGS, FrameMessage
from vicinity_condition.stream.frame import Frame


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when a frame message cannot be turned into a Frame."""
    pass


class ImageEncodeError(Exception):
    """Raised when a Frame cannot be encoded for a classifier."""
    pass


# encoding -> (numpy dtype, channels)
_RAW_LAYOUTS = {
    "32FC1": (np.dtype("<f4"), 1),
    "64FC1": (np.dtype("<f8"), 1),
    "mono8": (np.dtype(np.uint8), 1),
    "mono16": (np.dtype("<u2"), 1),
    "bgr8": (np.dtype(np.uint8), 3),
    "rgb8": (np.dtype(np.uint8), 3),
}

_COMPRESSED = ("jpeg", "png")


def decode_frame_message(raw: Union[str, bytes]) -> Frame:
    """
    Decode a raw JSON frame message into a Frame.

    Args:
        raw: JSON text (or UTF-8 bytes) of one frame message

    Returns:
        Frame with single-channel float32 pixels

    Raises:
        ImageDecodeError: If the message or its payload is invalid
    """
    try:
        message = FrameMessage.model_validate_json(raw)
    except ValidationError as e:
        raise ImageDecodeError(f"Invalid frame message: {e.error_count()} error(s): {e}")

    return decode_frame(message)


def decode_frame(message: FrameMessage) -> Frame:
    """
    Decode a validated FrameMessage into a Frame.

    Args:
        message: Validated frame message

    Returns:
        Frame with single-channel float32 pixels

    Raises:
        ImageDecodeError: If the payload cannot be decoded
    """
    if message.encoding not in SUPPORTED_ENCODINGS:
        raise ImageDecodeError(
            f"Unsupported encoding for frame {message.frame_id}: {message.encoding!r}"
        )

    try:
        payload = base64.b64decode(message.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(
            f"Base64 decode failed for frame {message.frame_id}: {e}"
        )

    if message.encoding in _COMPRESSED:
        pixels = _decode_compressed(message, payload)
    else:
        pixels = _decode_raw(message, payload)

    return Frame(
        frame_id=message.frame_id,
        timestamp=message.timestamp,
        width=message.width,
        height=message.height,
        encoding=message.encoding,
        pixels=pixels,
    )


def _decode_raw(message: FrameMessage, payload: bytes) -> np.ndarray:
    """Interpret an unpadded row-major payload and convert to float32."""
    dtype, channels = _RAW_LAYOUTS[message.encoding]
    expected = message.width * message.height * channels * dtype.itemsize

    if len(payload) != expected:
        raise ImageDecodeError(
            f"Payload size mismatch for frame {message.frame_id}: "
            f"got {len(payload)} bytes, expected {expected} "
            f"({message.width}x{message.height} {message.encoding})"
        )

    array = np.frombuffer(payload, dtype=dtype)

    if channels == 3:
        array = array.reshape(message.height, message.width, 3)
        code = cv2.COLOR_BGR2GRAY if message.encoding == "bgr8" else cv2.COLOR_RGB2GRAY
        array = cv2.cvtColor(array, code)
    else:
        array = array.reshape(message.height, message.width)

    return array.astype(np.float32, copy=False)


def _decode_compressed(message: FrameMessage, payload: bytes) -> np.ndarray:
    """Decode a JPEG/PNG payload to grayscale and convert to float32."""
    nparr = np.frombuffer(payload, np.uint8)
    gray = cv2.imdecode(nparr, cv2.IMREAD_GRAYSCALE | cv2.IMREAD_ANYDEPTH)

    if gray is None:
        raise ImageDecodeError(
            f"Failed to decode frame {message.frame_id}: cv2.imdecode returned None"
        )

    if gray.shape != (message.height, message.width):
        raise ImageDecodeError(
            f"Decoded shape {gray.shape} for frame {message.frame_id} does not "
            f"match declared {message.height}x{message.width}"
        )

    return gray.astype(np.float32)


def build_frame_message(
    frame_id: int,
    timestamp: float,
    pixels: np.ndarray,
    encoding: str = "32FC1",
) -> str:
    """
    Build the JSON wire message for a raw-encoded image.

    Used by producers feeding the stream and by test fixtures.

    Args:
        frame_id: Frame counter
        timestamp: UNIX capture timestamp
        pixels: (H, W) or (H, W, 3) array matching the encoding
        encoding: One of the raw encodings

    Returns:
        JSON text of the frame message
    """
    if encoding not in _RAW_LAYOUTS:
        raise ValueError(f"build_frame_message supports raw encodings only, got {encoding!r}")

    dtype, channels = _RAW_LAYOUTS[encoding]
    height, width = pixels.shape[:2]
    if (pixels.ndim == 3) != (channels == 3):
        raise ValueError(f"Array shape {pixels.shape} does not fit encoding {encoding}")

    data = np.ascontiguousarray(pixels, dtype=dtype).tobytes()
    return json.dumps({
        "frame_id": frame_id,
        "timestamp": timestamp,
        "width": width,
        "height": height,
        "encoding": encoding,
        "data": base64.b64encode(data).decode("ascii"),
    })


def encode_frame_png(frame: Frame) -> bytes:
    """
    Encode a frame as an 8-bit grayscale PNG for a classifier request.

    The float image is min-max normalized to 0..255. Non-finite values
    (e.g. missing depth readings) are mapped to 0 first.

    Args:
        frame: Frame to encode

    Returns:
        PNG file bytes

    Raises:
        ImageEncodeError: If OpenCV fails to encode the image
    """
    finite = np.nan_to_num(frame.pixels, nan=0.0, posinf=0.0, neginf=0.0)
    gray8 = cv2.normalize(finite, None, 0, 255, cv2.NORM_MINMAX, dtype=cv2.CV_8U)

    ok, buffer = cv2.imencode(".png", gray8)
    if not ok:
        raise ImageEncodeError(f"cv2.imencode failed for frame {frame.frame_id}")

    return buffer.tobytes()
