"""
Input Message Schema
====================

This module defines the Pydantic model for frame messages received from
the sensor stream.

Input Contract (one JSON object per WebSocket message):
    {
        "frame_id": 1234,
        "timestamp": 1707321234.567,
        "width": 640,
        "height": 480,
        "encoding": "32FC1",
        "data": "<base64 pixel payload>"
    }

Raw encodings carry row-major pixels without padding. Compressed
encodings ("jpeg", "png") carry the encoded file bytes.

Example:
    from vicinity_condition.models.input import FrameMessage

    message = FrameMessage.model_validate_json(raw)
    print(f"Received frame {message.frame_id} ({message.encoding})")
"""

from pydantic import BaseModel, ConfigDict, Field


SUPPORTED_ENCODINGS = (
    "32FC1",
    "64FC1",
    "mono8",
    "mono16",
    "bgr8",
    "rgb8",
    "jpeg",
    "png",
)


class FrameMessage(BaseModel):
    """
    Schema for frame messages received from the sensor stream.

    Any message that does not conform to this schema is rejected by the
    decoder and counted as a decode failure.

    Attributes:
        frame_id: Frame counter from the source
        timestamp: UNIX timestamp of capture
        width: Image width in pixels
        height: Image height in pixels
        encoding: Pixel encoding (see SUPPORTED_ENCODINGS)
        data: Base64-encoded pixel payload
    """

    frame_id: int = Field(
        ...,
        ge=0,
        description="Frame counter from source",
    )

    timestamp: float = Field(
        ...,
        gt=0,
        description="UNIX timestamp in seconds when frame was captured",
    )

    width: int = Field(..., ge=1, description="Image width in pixels")
    height: int = Field(..., ge=1, description="Image height in pixels")

    encoding: str = Field(
        ...,
        description="Pixel encoding, e.g. '32FC1', 'mono8', 'jpeg'",
    )

    data: str = Field(
        ...,
        min_length=1,
        description="Base64-encoded pixel payload",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "frame_id": 1234,
                "timestamp": 1707321234.567,
                "width": 640,
                "height": 480,
                "encoding": "32FC1",
                "data": "AAAAAAAAgD8...",
            }
        }
    )
