"""slidebind: safe Python access to whole-slide images through libopenslide."""

__version__ = "0.1.0"

from slidebind.wsi import (  # noqa: E402
    DecodedImage,
    Dimensions,
    Slide,
    SlideCache,
    SlideError,
    WordOrder,
    decode_buffer,
)

__all__ = [
    "DecodedImage",
    "Dimensions",
    "Slide",
    "SlideCache",
    "SlideError",
    "WordOrder",
    "__version__",
    "decode_buffer",
]
