"""
Pixel buffer and decoding boundary tests
"""

import numpy as np
import pytest

from pixel_buffer import DecodeFailure, PixelBuffer


class TestConstruction:
    def test_gray_array_is_expanded_to_rgba(self):
        buffer = PixelBuffer.from_array(np.full((3, 5), 70, dtype=np.uint8))

        assert buffer.width == 5
        assert buffer.height == 3
        assert buffer.pixel(4, 2) == (70, 70, 70, 255)

    def test_rgb_array_gets_opaque_alpha(self):
        rgb = np.zeros((2, 2, 3), dtype=np.uint8)
        rgb[0, 1] = (10, 20, 30)

        buffer = PixelBuffer.from_array(rgb)

        assert buffer.pixel(1, 0) == (10, 20, 30, 255)

    def test_pixels_are_read_only_copies(self):
        source = np.zeros((2, 2, 4), dtype=np.uint8)
        buffer = PixelBuffer(source)
        source[0, 0, 0] = 99

        assert buffer.pixel(0, 0)[0] == 0
        with pytest.raises(ValueError):
            buffer.pixels[0, 0, 0] = 1

    def test_bad_shape_rejected(self):
        with pytest.raises(DecodeFailure):
            PixelBuffer.from_array(np.zeros((2, 2, 2), dtype=np.uint8))

    def test_from_rgba_length_mismatch(self):
        with pytest.raises(DecodeFailure):
            PixelBuffer.from_rgba(b"\x00" * 15, 2, 2)

    def test_from_rgba_row_major(self):
        data = bytes([1, 2, 3, 4, 5, 6, 7, 8])
        buffer = PixelBuffer.from_rgba(data, 2, 1)

        assert buffer.pixel(0, 0) == (1, 2, 3, 4)
        assert buffer.pixel(1, 0) == (5, 6, 7, 8)

    def test_empty_buffer(self):
        buffer = PixelBuffer.empty()

        assert buffer.is_empty
        assert buffer.pixel_count == 0


class TestBrightness:
    def test_brightness_ignores_alpha(self):
        buffer = PixelBuffer(np.array([[[30, 60, 90, 0]]], dtype=np.uint8))

        assert buffer.brightness[0, 0] == pytest.approx(60.0)

    def test_rounded_brightness_rounds_to_nearest(self):
        # 1/3 -> 0, 2/3 -> 1
        pixels = np.array([[[1, 0, 0, 255], [1, 1, 0, 255]]], dtype=np.uint8)
        buffer = PixelBuffer(pixels)

        assert list(buffer.rounded_brightness[0]) == [0, 1]


class TestFromBytes:
    def test_decodes_png(self, brain_png):
        buffer = PixelBuffer.from_bytes(brain_png)

        assert (buffer.width, buffer.height) == (40, 40)
        assert buffer.pixel(0, 1) == (255, 255, 255, 255)

    def test_empty_payload(self):
        with pytest.raises(DecodeFailure):
            PixelBuffer.from_bytes(b"")

    def test_garbage_payload(self):
        with pytest.raises(DecodeFailure) as exc_info:
            PixelBuffer.from_bytes(b"definitely not an image")

        assert "Could not extract image data" in str(exc_info.value)

    def test_decode_failure_is_value_error(self):
        assert issubclass(DecodeFailure, ValueError)
