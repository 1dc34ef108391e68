"""Decoding of native pre-multiplied ARGB pixel buffers.

OpenSlide fills a caller-provided ``uint32_t`` array with one word per
pixel, each packing alpha, red, green and blue (most significant byte
first) with the colour channels already multiplied by alpha. This module
turns such a buffer into a straight-alpha RGBA image.

The word order of the buffer is not reported by the native library. It is
an explicit parameter of ``decode_buffer``; a wrong choice yields a
structurally valid image with swapped channels. ``detect_word_order``
provides a calibration check for that mistake: in a genuine pre-multiplied
buffer no colour channel exceeds its alpha, which is almost never true once
the bytes of each word are reversed.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image

from slidebind.wsi.exceptions import BufferLengthError, DecodeError

BYTES_PER_PIXEL = 4


class WordOrder(str, Enum):
    """Byte order of the 32-bit ARGB words in a raw pixel buffer."""

    BIG = "big"
    LITTLE = "little"

    @classmethod
    def native(cls) -> WordOrder:
        """Return the word order of the host platform."""
        return cls(sys.byteorder)

    @classmethod
    def from_setting(cls, value: str) -> WordOrder:
        """Resolve a configuration value ("native", "big" or "little")."""
        if value == "native":
            return cls.native()
        return cls(value)

    @property
    def dtype(self) -> str:
        """numpy dtype string for one word in this order."""
        return ">u4" if self is WordOrder.BIG else "<u4"

    def swapped(self) -> WordOrder:
        """Return the opposite word order."""
        return WordOrder.LITTLE if self is WordOrder.BIG else WordOrder.BIG


@dataclass(frozen=True, eq=False)
class DecodedImage:
    """A straight-alpha RGBA image.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
        pixels: uint8 array of shape (height, width, 4) in R, G, B, A order.
    """

    width: int
    height: int
    pixels: npt.NDArray[np.uint8]

    @property
    def size(self) -> tuple[int, int]:
        """Return (width, height), the PIL size convention."""
        return (self.width, self.height)

    def tobytes(self) -> bytes:
        """Return the pixel data as a flat RGBA byte string."""
        return self.pixels.tobytes()

    def to_pil(self) -> Image.Image:
        """Convert to a PIL Image in RGBA mode."""
        return Image.frombytes("RGBA", self.size, self.tobytes())

    def save(self, path: str | Path) -> None:
        """Encode the image to disk; the format follows the file extension."""
        self.to_pil().save(path)


def _split_channels(
    buffer: bytes,
    word_order: WordOrder,
) -> tuple[npt.NDArray[np.uint32], ...]:
    words = np.frombuffer(buffer, dtype=word_order.dtype).astype(np.uint32)
    alpha = (words >> 24) & 0xFF
    red = (words >> 16) & 0xFF
    green = (words >> 8) & 0xFF
    blue = words & 0xFF
    return alpha, red, green, blue


def _check_length(buffer: bytes, height: int, width: int) -> None:
    if height < 0 or width < 0:
        raise DecodeError(f"Image dimensions must be non-negative, got {height}x{width}")
    expected = height * width * BYTES_PER_PIXEL
    if len(buffer) != expected:
        raise BufferLengthError(expected, len(buffer), height, width)


def decode_buffer(
    buffer: bytes,
    height: int,
    width: int,
    word_order: WordOrder,
) -> DecodedImage:
    """Decode a pre-multiplied ARGB buffer into a straight-alpha RGBA image.

    Each colour channel is un-premultiplied as
    ``min(255, round(channel * 255 / alpha))`` with halves rounded up.
    Fully transparent pixels decode to (0, 0, 0, 0).

    Args:
        buffer: Raw bytes, ``height * width`` words of 4 bytes each.
        height: Image height in pixels.
        width: Image width in pixels.
        word_order: Byte order of each 32-bit word.

    Returns:
        DecodedImage with exactly the requested dimensions.

    Raises:
        DecodeError: If ``height`` or ``width`` is negative.
        BufferLengthError: If ``len(buffer) != height * width * 4``. Raised
            before any output is produced.
    """
    _check_length(buffer, height, width)
    alpha, red, green, blue = _split_channels(buffer, word_order)

    transparent = alpha == 0
    divisor = np.where(transparent, 1, alpha)
    half = divisor // 2

    rgba = np.empty((height * width, 4), dtype=np.uint8)
    for index, channel in enumerate((red, green, blue)):
        straight = np.minimum((channel * 255 + half) // divisor, 255)
        rgba[:, index] = np.where(transparent, 0, straight)
    rgba[:, 3] = alpha

    return DecodedImage(
        width=width,
        height=height,
        pixels=rgba.reshape(height, width, 4),
    )


def is_premultiplied(buffer: bytes, word_order: WordOrder) -> bool:
    """Return True if no colour channel exceeds alpha under ``word_order``."""
    if len(buffer) % BYTES_PER_PIXEL:
        raise DecodeError(
            f"Buffer length {len(buffer)} is not a multiple of {BYTES_PER_PIXEL}"
        )
    alpha, red, green, blue = _split_channels(buffer, word_order)
    return bool(np.all((red <= alpha) & (green <= alpha) & (blue <= alpha)))


def detect_word_order(buffer: bytes) -> WordOrder | None:
    """Infer the word order of a calibration buffer.

    Returns:
        The only word order under which the buffer is a valid pre-multiplied
        image, or None when both or neither qualify (e.g. a blank region).
    """
    candidates = [order for order in WordOrder if is_premultiplied(buffer, order)]
    if len(candidates) == 1:
        return candidates[0]
    return None
