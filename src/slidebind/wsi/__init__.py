"""Slide layer for slidebind.

This package wraps the native OpenSlide handle in a safe, typed interface:
every request is validated before the native call, every sentinel result is
turned into an exception, and raw pre-multiplied pixel buffers are decoded
into straight-alpha RGBA images.

Key Components:
    - Slide: Open a slide and query levels, regions, properties and
      associated images
    - SlideCache: Keep slides open across requests
    - decode_buffer: Raw ARGB buffer -> DecodedImage
    - sentinel checks: Native sentinel values -> typed exceptions

Example:
    from slidebind.wsi import Slide

    with Slide("slide.svs") as slide:
        width, height = slide.level0_dimensions()
        region = slide.read_region(row=2000, col=1000, level=0,
                                   height=512, width=512)
        region.save("region.png")
"""

from slidebind.wsi.exceptions import (
    AssociatedImageNotFoundError,
    BufferLengthError,
    DecodeError,
    InvalidDownsampleError,
    LevelOutOfRangeError,
    NativeContractViolationError,
    NativeError,
    NativeKnownFailureError,
    NativeLibraryError,
    NumericConversionError,
    PreconditionError,
    PropertyParseError,
    RegionTooLargeError,
    SlideClosedError,
    SlideError,
    SlideNotFoundError,
    SlideOpenError,
    WordOrderMismatchError,
)
from slidebind.wsi.decoder import DecodedImage, WordOrder, decode_buffer, detect_word_order
from slidebind.wsi.slide import Slide
from slidebind.wsi.cache import SlideCache
from slidebind.wsi.types import Dimensions, RegionRequest, SlideMetadata

__all__ = [
    "AssociatedImageNotFoundError",
    "BufferLengthError",
    "DecodeError",
    "DecodedImage",
    "Dimensions",
    "InvalidDownsampleError",
    "LevelOutOfRangeError",
    "NativeContractViolationError",
    "NativeError",
    "NativeKnownFailureError",
    "NativeLibraryError",
    "NumericConversionError",
    "PreconditionError",
    "PropertyParseError",
    "RegionRequest",
    "RegionTooLargeError",
    "Slide",
    "SlideCache",
    "SlideClosedError",
    "SlideError",
    "SlideMetadata",
    "SlideNotFoundError",
    "SlideOpenError",
    "WordOrder",
    "WordOrderMismatchError",
    "decode_buffer",
    "detect_word_order",
]
