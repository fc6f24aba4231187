"""
Pixel Sampler

Immutable RGBA pixel view shared by every feature extractor, plus the
decoding boundary that turns uploaded bytes into such a view.

Decoding is the only step of the analysis that can fail: anything Pillow
cannot open, an empty payload, or a raw buffer whose length does not match
its declared dimensions raises DecodeFailure. A zero-area buffer built in
code (PixelBuffer.empty()) is still a valid input for the extractors.
"""

import io
import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class DecodeFailure(ValueError):
    """Pixel data could not be obtained from the source image."""


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """
    Read-only ``height x width x 4`` uint8 view of an RGBA image.

    Brightness planes are derived lazily and cached; the underlying array is
    flagged non-writeable so no extractor can mutate the caller's pixels.
    """
    pixels: np.ndarray

    def __post_init__(self):
        array = np.asarray(self.pixels)
        if array.ndim != 3 or array.shape[2] != 4:
            raise DecodeFailure(f"Expected an RGBA array of shape (H, W, 4), got {array.shape}")
        if array.dtype != np.uint8:
            array = np.clip(array, 0, 255).astype(np.uint8)
        else:
            array = array.copy()
        array.setflags(write=False)
        object.__setattr__(self, "pixels", array)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.pixel_count == 0

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """Return the (R, G, B, A) channels of the pixel at column x, row y."""
        r, g, b, a = self.pixels[y, x]
        return int(r), int(g), int(b), int(a)

    @cached_property
    def red(self) -> np.ndarray:
        # int16 so neighbour differences never wrap around
        return self.pixels[:, :, 0].astype(np.int16)

    @cached_property
    def brightness(self) -> np.ndarray:
        """Unrounded per-pixel brightness (R + G + B) / 3 as float64."""
        rgb = self.pixels[:, :, :3].astype(np.float64)
        return rgb.sum(axis=2) / 3.0

    @cached_property
    def rounded_brightness(self) -> np.ndarray:
        """Brightness rounded half-up to an integer histogram bucket in [0, 255]."""
        return np.floor(self.brightness + 0.5).astype(np.int64)

    @classmethod
    def empty(cls) -> "PixelBuffer":
        return cls(np.zeros((0, 0, 4), dtype=np.uint8))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Build a buffer from a grayscale, RGB or RGBA numpy array.

        Grayscale values are replicated to the three colour channels and
        missing alpha is filled with 255.
        """
        array = np.asarray(array)
        if array.ndim == 2:
            array = np.stack([array] * 3, axis=-1)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise DecodeFailure(f"Unsupported pixel array shape: {array.shape}")
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=array.dtype)
            array = np.concatenate([array, alpha], axis=-1)
        return cls(array)

    @classmethod
    def from_rgba(cls, data: bytes, width: int, height: int) -> "PixelBuffer":
        """Wrap a raw, row-major RGBA byte buffer."""
        if width < 0 or height < 0:
            raise DecodeFailure(f"Invalid dimensions: {width}x{height}")
        expected = width * height * 4
        if len(data) != expected:
            raise DecodeFailure(
                f"RGBA buffer holds {len(data)} bytes, expected {expected} for {width}x{height}"
            )
        array = np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4)
        return cls(array)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.array(image, dtype=np.uint8))

    @classmethod
    def from_bytes(cls, image_bytes: bytes) -> "PixelBuffer":
        """
        Decode an encoded image (PNG, JPEG, ...) into a pixel buffer.

        Args:
            image_bytes: Raw file contents

        Returns:
            Decoded PixelBuffer

        Raises:
            DecodeFailure: If the payload is empty, undecodable or has no pixels
        """
        if not image_bytes:
            raise DecodeFailure("Could not extract image data: empty payload")

        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                image.load()
                buffer = cls.from_image(image)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.warning(f"Image decoding failed: {e}")
            raise DecodeFailure(f"Could not extract image data: {e}") from e

        if buffer.is_empty:
            raise DecodeFailure("Could not extract image data: image has zero area")
        return buffer
