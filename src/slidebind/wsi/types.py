"""Type definitions for the slide layer.

Contains the value types passed across the slide API and the single
boundary conversion from Python integers to the native integer widths.
All coordinates follow the OpenSlide convention where Level-0 is the
highest resolution (full magnification).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from slidebind.wsi.exceptions import NumericConversionError

INT32_MAX = 2**31 - 1
INT64_MAX = 2**63 - 1


class Dimensions(NamedTuple):
    """Validated (width, height) pixel counts."""

    width: int
    height: int


class NativeRegion(NamedTuple):
    """Region parameters in the order and widths the native reader expects."""

    x: int
    y: int
    level: int
    width: int
    height: int


def to_native_int(value: object, name: str, *, maximum: int) -> int:
    """Convert a caller-supplied value to a non-negative native integer.

    Args:
        value: The value to convert. Must be a plain ``int`` (not ``bool``).
        name: Parameter name, used in the error message.
        maximum: Largest value representable by the native type.

    Returns:
        The value unchanged, now known to fit.

    Raises:
        NumericConversionError: If the value is not an integer, is negative,
            or exceeds ``maximum``.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise NumericConversionError(name, value, f"expected int, got {type(value).__name__}")
    if value < 0:
        raise NumericConversionError(name, value, "value must be non-negative")
    if value > maximum:
        raise NumericConversionError(name, value, f"value exceeds {maximum}")
    return value


@dataclass(frozen=True)
class RegionRequest:
    """A region read request.

    Attributes:
        row: Top-left row (y) in LEVEL-0 coordinates.
        col: Top-left column (x) in LEVEL-0 coordinates.
        level: Pyramid level to read from.
        height: Height of the region in pixels AT THE SPECIFIED LEVEL.
        width: Width of the region in pixels AT THE SPECIFIED LEVEL.
    """

    row: int
    col: int
    level: int
    height: int
    width: int

    def to_native(self) -> NativeRegion:
        """Convert every field once into the native widths.

        Raises:
            NumericConversionError: If any field does not fit.
        """
        return NativeRegion(
            x=to_native_int(self.col, "col", maximum=INT64_MAX),
            y=to_native_int(self.row, "row", maximum=INT64_MAX),
            level=to_native_int(self.level, "level", maximum=INT32_MAX),
            width=to_native_int(self.width, "width", maximum=INT64_MAX),
            height=to_native_int(self.height, "height", maximum=INT64_MAX),
        )


@dataclass(frozen=True)
class SlideMetadata:
    """Immutable metadata for an open slide.

    Attributes:
        path: Absolute path to the slide file.
        vendor: Vendor reported by the native library ("unknown" if none).
        width: Width of Level-0 (highest resolution) in pixels.
        height: Height of Level-0 (highest resolution) in pixels.
        level_count: Number of pyramid levels available.
        level_dimensions: Dimensions for each level, index 0 is Level-0.
        level_downsamples: Downsample factor for each level.
        mpp_x: Microns per pixel in X direction, None if unavailable.
        mpp_y: Microns per pixel in Y direction, None if unavailable.
    """

    path: str
    vendor: str
    width: int
    height: int
    level_count: int
    level_dimensions: tuple[Dimensions, ...]
    level_downsamples: tuple[float, ...]
    mpp_x: float | None
    mpp_y: float | None

    @property
    def dimensions(self) -> Dimensions:
        """Return Level-0 dimensions."""
        return Dimensions(self.width, self.height)
