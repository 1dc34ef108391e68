"""Native capability surface for slidebind.

``NativeSlideLibrary`` is the protocol the slide layer is written against;
``OpenSlideLibrary`` implements it on top of libopenslide via ctypes.
"""

from slidebind.native.openslide import (
    OpenSlideLibrary,
    get_default_library,
    load_library,
)
from slidebind.native.protocol import NativeSlideLibrary

__all__ = [
    "NativeSlideLibrary",
    "OpenSlideLibrary",
    "get_default_library",
    "load_library",
]
