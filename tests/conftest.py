import io

import numpy as np
import pytest
from PIL import Image

from pixel_buffer import PixelBuffer


def striped_rows(width=40, height=40):
    """Rows alternate black/white: square, left-right symmetric, mean 127.5, high contrast."""
    gray = np.zeros((height, width), dtype=np.uint8)
    gray[1::2, :] = 255
    return gray


def chest_columns(width=60, height=40):
    """Dark, wide, edge-dense image: white at x % 20 in {0, 2, 4, 6, 8}, identical rows."""
    row = np.zeros(width, dtype=np.uint8)
    for x in range(width):
        if x % 20 in (0, 2, 4, 6, 8):
            row[x] = 255
    return np.tile(row, (height, 1))


def png_bytes(gray):
    buf = io.BytesIO()
    Image.fromarray(gray).convert("RGB").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def brain_buffer():
    return PixelBuffer.from_array(striped_rows())


@pytest.fixture
def chest_buffer():
    return PixelBuffer.from_array(chest_columns())


@pytest.fixture
def uniform_buffer():
    # 10x10 mid-gray
    return PixelBuffer.from_array(np.full((10, 10), 128, dtype=np.uint8))


@pytest.fixture
def black_buffer():
    return PixelBuffer.from_array(np.zeros((10, 10), dtype=np.uint8))


@pytest.fixture
def brain_png():
    return png_bytes(striped_rows())


@pytest.fixture
def chest_png():
    return png_bytes(chest_columns())
