"""
Image Codec Tests
=================

Decoding of wire frame messages and PNG encoding for classifiers.
"""

import base64
import json

import cv2
import numpy as np
import pytest


def _message(frame_id=1, width=4, height=3, encoding="32FC1", data="AAAA", timestamp=1700000000.0):
    return json.dumps({
        "frame_id": frame_id,
        "timestamp": timestamp,
        "width": width,
        "height": height,
        "encoding": encoding,
        "data": data,
    })


def _compressed(encoding: str, image: np.ndarray, width: int, height: int) -> str:
    ext = ".png" if encoding == "png" else ".jpg"
    ok, buffer = cv2.imencode(ext, image)
    assert ok
    return _message(
        width=width,
        height=height,
        encoding=encoding,
        data=base64.b64encode(buffer.tobytes()).decode("ascii"),
    )


class TestDecodeRawEncodings:
    """Raw pixel encodings."""

    def test_decode_32fc1(self):
        """Float depth frames keep their values."""
        from vicinity_condition.stream.image_codec import build_frame_message, decode_frame_message

        pixels = np.arange(12, dtype=np.float32).reshape(3, 4) * 0.5
        frame = decode_frame_message(build_frame_message(9, 1700000000.0, pixels, "32FC1"))

        assert frame.frame_id == 9
        assert frame.width == 4
        assert frame.height == 3
        assert frame.encoding == "32FC1"
        assert frame.pixels.dtype == np.float32
        np.testing.assert_array_equal(frame.pixels, pixels)

    def test_decode_64fc1_converts_to_float32(self):
        """Double precision input becomes float32."""
        from vicinity_condition.stream.image_codec import build_frame_message, decode_frame_message

        pixels = np.full((2, 2), 1.25, dtype=np.float64)
        frame = decode_frame_message(build_frame_message(1, 1700000000.0, pixels, "64FC1"))

        assert frame.pixels.dtype == np.float32
        np.testing.assert_array_equal(frame.pixels, np.full((2, 2), 1.25, dtype=np.float32))

    def test_mono8_is_not_rescaled(self):
        """Integer sources convert value-for-value."""
        from vicinity_condition.stream.image_codec import build_frame_message, decode_frame_message

        pixels = np.array([[0, 128], [200, 255]], dtype=np.uint8)
        frame = decode_frame_message(build_frame_message(1, 1700000000.0, pixels, "mono8"))

        np.testing.assert_array_equal(frame.pixels, pixels.astype(np.float32))

    def test_mono16_is_not_rescaled(self):
        """16-bit depth in millimetres stays in millimetres."""
        from vicinity_condition.stream.image_codec import build_frame_message, decode_frame_message

        pixels = np.array([[1000, 2500, 65535]], dtype=np.uint16)
        frame = decode_frame_message(build_frame_message(1, 1700000000.0, pixels, "mono16"))

        np.testing.assert_array_equal(frame.pixels, pixels.astype(np.float32))

    def test_bgr8_and_rgb8_use_channel_order(self):
        """Color frames convert to gray according to their channel order."""
        from vicinity_condition.stream.image_codec import build_frame_message, decode_frame_message

        image = np.zeros((2, 2, 3), dtype=np.uint8)
        image[..., 0] = 255  # first channel only

        as_bgr = decode_frame_message(build_frame_message(1, 1700000000.0, image, "bgr8"))
        as_rgb = decode_frame_message(build_frame_message(2, 1700000000.0, image, "rgb8"))

        assert as_bgr.pixels.shape == (2, 2)
        # Blue weighs far less than red in the luma transform
        assert as_bgr.pixels[0, 0] < as_rgb.pixels[0, 0]

    def test_uniform_gray_color_frame(self):
        """Equal channels give the same gray value."""
        from vicinity_condition.stream.image_codec import build_frame_message, decode_frame_message

        image = np.full((3, 5, 3), 100, dtype=np.uint8)
        frame = decode_frame_message(build_frame_message(1, 1700000000.0, image, "bgr8"))

        assert frame.pixels.shape == (3, 5)
        np.testing.assert_allclose(frame.pixels, 100.0, atol=1.0)

    def test_accepts_bytes(self, make_message):
        """Binary WebSocket messages decode like text ones."""
        from vicinity_condition.stream.image_codec import decode_frame_message

        frame = decode_frame_message(make_message(3).encode("utf-8"))
        assert frame.frame_id == 3


class TestDecodeCompressed:
    """JPEG and PNG payloads."""

    def test_png_decodes_to_gray(self):
        """PNG frames decode losslessly to float32 gray."""
        from vicinity_condition.stream.image_codec import decode_frame_message

        image = np.arange(20, dtype=np.uint8).reshape(4, 5) * 10
        frame = decode_frame_message(_compressed("png", image, width=5, height=4))

        assert frame.pixels.dtype == np.float32
        np.testing.assert_array_equal(frame.pixels, image.astype(np.float32))

    def test_color_jpeg_decodes_to_gray(self):
        """Color JPEG frames become single-channel."""
        from vicinity_condition.stream.image_codec import decode_frame_message

        image = np.full((16, 24, 3), 120, dtype=np.uint8)
        frame = decode_frame_message(_compressed("jpeg", image, width=24, height=16))

        assert frame.pixels.shape == (16, 24)
        assert abs(float(frame.pixels.mean()) - 120.0) < 5.0

    def test_declared_size_must_match_image(self):
        """Compressed images must match the declared dimensions."""
        from vicinity_condition.stream.image_codec import ImageDecodeError, decode_frame_message

        image = np.zeros((4, 4), dtype=np.uint8)
        with pytest.raises(ImageDecodeError, match="does not match"):
            decode_frame_message(_compressed("png", image, width=5, height=5))

    def test_corrupt_compressed_payload(self):
        """Bytes that are not an image fail to decode."""
        from vicinity_condition.stream.image_codec import ImageDecodeError, decode_frame_message

        data = base64.b64encode(b"definitely not a png").decode("ascii")
        with pytest.raises(ImageDecodeError):
            decode_frame_message(_message(encoding="png", data=data))


class TestDecodeFailures:
    """Malformed messages raise ImageDecodeError."""

    def test_payload_size_mismatch(self):
        """Raw payloads must be exactly width*height*pixel size."""
        from vicinity_condition.stream.image_codec import ImageDecodeError, decode_frame_message

        data = base64.b64encode(b"\x00" * 10).decode("ascii")
        with pytest.raises(ImageDecodeError, match="size mismatch"):
            decode_frame_message(_message(width=4, height=3, encoding="32FC1", data=data))

    def test_invalid_base64(self):
        """Non-base64 payloads are rejected."""
        from vicinity_condition.stream.image_codec import ImageDecodeError, decode_frame_message

        with pytest.raises(ImageDecodeError, match="Base64"):
            decode_frame_message(_message(data="!!not base64!!"))

    def test_unsupported_encoding(self):
        """Unknown encodings are rejected."""
        from vicinity_condition.stream.image_codec import ImageDecodeError, decode_frame_message

        with pytest.raises(ImageDecodeError, match="Unsupported encoding"):
            decode_frame_message(_message(encoding="yuv422"))

    def test_invalid_json(self):
        """Text that is not a frame message is rejected."""
        from vicinity_condition.stream.image_codec import ImageDecodeError, decode_frame_message

        with pytest.raises(ImageDecodeError):
            decode_frame_message("this is not json")

    def test_missing_fields(self):
        """Messages without required fields are rejected."""
        from vicinity_condition.stream.image_codec import ImageDecodeError, decode_frame_message

        with pytest.raises(ImageDecodeError):
            decode_frame_message(json.dumps({"frame_id": 1, "encoding": "32FC1"}))

    def test_zero_dimensions(self):
        """Zero width is rejected by message validation."""
        from vicinity_condition.stream.image_codec import ImageDecodeError, decode_frame_message

        with pytest.raises(ImageDecodeError):
            decode_frame_message(_message(width=0))


class TestEncoding:
    """Encoding frames for classifier requests."""

    def test_decoded_frame_is_read_only(self, make_message):
        """Decoded pixels cannot be modified."""
        from vicinity_condition.stream.image_codec import decode_frame_message

        frame = decode_frame_message(make_message(1))
        with pytest.raises(ValueError):
            frame.pixels[0, 0] = 0.0

    def test_encode_frame_png(self, make_frame):
        """Frames encode to PNG bytes of the same size."""
        from vicinity_condition.stream.image_codec import encode_frame_png

        png = encode_frame_png(make_frame(4, width=10, height=7))

        assert png.startswith(b"\x89PNG")
        decoded = cv2.imdecode(np.frombuffer(png, np.uint8), cv2.IMREAD_GRAYSCALE)
        assert decoded.shape == (7, 10)

    def test_encode_handles_non_finite_values(self):
        """Missing depth readings do not break encoding."""
        from vicinity_condition.stream.frame import Frame
        from vicinity_condition.stream.image_codec import encode_frame_png

        pixels = np.array([[np.nan, 1.0], [np.inf, 2.0]], dtype=np.float32)
        frame = Frame(frame_id=1, timestamp=1.0, width=2, height=2, encoding="32FC1", pixels=pixels)

        assert encode_frame_png(frame).startswith(b"\x89PNG")

    def test_build_rejects_compressed_encoding(self):
        """Only raw encodings can be built from arrays."""
        from vicinity_condition.stream.image_codec import build_frame_message

        with pytest.raises(ValueError):
            build_frame_message(1, 1.0, np.zeros((2, 2), dtype=np.uint8), "png")
