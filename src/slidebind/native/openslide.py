"""ctypes binding for libopenslide.

Declares the C signatures of the OpenSlide functions slidebind needs and
wraps each in a method that converts arguments and results at the call
boundary only: ``str`` <-> UTF-8 ``char *``, NULL-terminated string arrays
-> ``list[str]``, ``uint32_t`` pixel arrays -> ``bytes``. No result is
validated here.

Strings returned by OpenSlide are owned by the library (or by the handle)
and are copied into Python objects before the call returns.
"""

from __future__ import annotations

import ctypes
import ctypes.util
from collections.abc import Sequence
from typing import Any

from slidebind.config import settings
from slidebind.utils.logging import get_logger
from slidebind.wsi.exceptions import NativeLibraryError

logger = get_logger(__name__)

# Names tried after ctypes.util.find_library, per platform convention
_LIBRARY_NAMES: tuple[str, ...] = (
    "libopenslide.so.1",
    "libopenslide.so.0",
    "libopenslide.1.dylib",
    "libopenslide.0.dylib",
    "libopenslide-1.dll",
    "libopenslide-0.dll",
)

_c_int64_p = ctypes.POINTER(ctypes.c_int64)
_c_uint32_p = ctypes.POINTER(ctypes.c_uint32)
_c_char_p_p = ctypes.POINTER(ctypes.c_char_p)


def _candidate_names(path: str | None) -> list[str]:
    if path:
        return [path]
    found = ctypes.util.find_library("openslide")
    names = [found] if found else []
    names.extend(name for name in _LIBRARY_NAMES if name != found)
    return names


def load_library(path: str | None = None) -> ctypes.CDLL:
    """Load libopenslide.

    Args:
        path: Explicit library path. If None, system search paths are used.

    Returns:
        The loaded library.

    Raises:
        NativeLibraryError: If no candidate could be loaded.
    """
    errors: list[str] = []
    for name in _candidate_names(path):
        try:
            lib = ctypes.CDLL(name)
        except OSError as e:
            errors.append(f"{name}: {e}")
            continue
        logger.debug("Loaded native library", library=name)
        return lib
    raise NativeLibraryError(
        "Could not load libopenslide. Install OpenSlide or set "
        "OPENSLIDE_LIBRARY_PATH. Tried: " + "; ".join(errors)
    )


def _encode(text: str) -> bytes:
    return text.encode("utf-8")


def _decode(raw: bytes | None) -> str | None:
    if raw is None:
        return None
    return raw.decode("utf-8")


def _string_array(array: Any) -> list[str]:
    """Copy a NULL-terminated ``const char * const *`` into a list."""
    names: list[str] = []
    if not array:
        return names
    index = 0
    while array[index] is not None:
        names.append(array[index].decode("utf-8"))
        index += 1
    return names


class OpenSlideLibrary:
    """``NativeSlideLibrary`` implementation backed by libopenslide.

    Attributes:
        lib: The underlying ``ctypes.CDLL``.
    """

    def __init__(self, lib: ctypes.CDLL) -> None:
        self.lib = lib
        self._declare()

    @classmethod
    def load(cls, path: str | None = None) -> OpenSlideLibrary:
        """Load libopenslide from ``path`` or the system search paths."""
        return cls(load_library(path))

    def _func(self, name: str, restype: Any, argtypes: Sequence[Any]) -> Any:
        func = getattr(self.lib, name)
        func.restype, func.argtypes = restype, list(argtypes)
        return func

    def _declare(self) -> None:
        c_void_p, c_char_p = ctypes.c_void_p, ctypes.c_char_p
        c_int32, c_int64, c_double = ctypes.c_int32, ctypes.c_int64, ctypes.c_double

        self._get_version = self._func("openslide_get_version", c_char_p, [])
        self._detect_vendor = self._func("openslide_detect_vendor", c_char_p, [c_char_p])
        self._open = self._func("openslide_open", c_void_p, [c_char_p])
        self._close = self._func("openslide_close", None, [c_void_p])
        self._get_error = self._func("openslide_get_error", c_char_p, [c_void_p])
        self._get_level_count = self._func(
            "openslide_get_level_count", c_int32, [c_void_p]
        )
        self._get_level0_dimensions = self._func(
            "openslide_get_level0_dimensions", None, [c_void_p, _c_int64_p, _c_int64_p]
        )
        self._get_level_dimensions = self._func(
            "openslide_get_level_dimensions",
            None,
            [c_void_p, c_int32, _c_int64_p, _c_int64_p],
        )
        self._get_level_downsample = self._func(
            "openslide_get_level_downsample", c_double, [c_void_p, c_int32]
        )
        self._get_best_level_for_downsample = self._func(
            "openslide_get_best_level_for_downsample", c_int32, [c_void_p, c_double]
        )
        self._read_region = self._func(
            "openslide_read_region",
            None,
            [c_void_p, _c_uint32_p, c_int64, c_int64, c_int32, c_int64, c_int64],
        )
        self._get_property_names = self._func(
            "openslide_get_property_names", _c_char_p_p, [c_void_p]
        )
        self._get_property_value = self._func(
            "openslide_get_property_value", c_char_p, [c_void_p, c_char_p]
        )
        self._get_associated_image_names = self._func(
            "openslide_get_associated_image_names", _c_char_p_p, [c_void_p]
        )
        self._get_associated_image_dimensions = self._func(
            "openslide_get_associated_image_dimensions",
            None,
            [c_void_p, c_char_p, _c_int64_p, _c_int64_p],
        )
        self._read_associated_image = self._func(
            "openslide_read_associated_image", None, [c_void_p, c_char_p, _c_uint32_p]
        )

    @staticmethod
    def _pixel_buffer(width: int, height: int) -> Any:
        return (ctypes.c_uint32 * (width * height))()

    @staticmethod
    def _to_bytes(buf: Any) -> bytes:
        return ctypes.string_at(buf, ctypes.sizeof(buf))

    def get_version(self) -> str:
        return _decode(self._get_version()) or ""

    def detect_vendor(self, filename: str) -> str | None:
        return _decode(self._detect_vendor(_encode(filename)))

    def open(self, filename: str) -> int | None:
        handle: int | None = self._open(_encode(filename))
        return handle

    def close(self, osr: int) -> None:
        self._close(osr)

    def get_error(self, osr: int) -> str | None:
        return _decode(self._get_error(osr))

    def get_level_count(self, osr: int) -> int:
        return int(self._get_level_count(osr))

    def get_level0_dimensions(self, osr: int) -> tuple[int, int]:
        width, height = ctypes.c_int64(), ctypes.c_int64()
        self._get_level0_dimensions(osr, ctypes.byref(width), ctypes.byref(height))
        return (width.value, height.value)

    def get_level_dimensions(self, osr: int, level: int) -> tuple[int, int]:
        width, height = ctypes.c_int64(), ctypes.c_int64()
        self._get_level_dimensions(
            osr, level, ctypes.byref(width), ctypes.byref(height)
        )
        return (width.value, height.value)

    def get_level_downsample(self, osr: int, level: int) -> float:
        return float(self._get_level_downsample(osr, level))

    def get_best_level_for_downsample(self, osr: int, downsample: float) -> int:
        return int(self._get_best_level_for_downsample(osr, downsample))

    def read_region(
        self,
        osr: int,
        x: int,
        y: int,
        level: int,
        width: int,
        height: int,
    ) -> bytes:
        buf = self._pixel_buffer(width, height)
        self._read_region(osr, buf, x, y, level, width, height)
        return self._to_bytes(buf)

    def get_property_names(self, osr: int) -> list[str]:
        return _string_array(self._get_property_names(osr))

    def get_property_value(self, osr: int, name: str) -> str | None:
        return _decode(self._get_property_value(osr, _encode(name)))

    def get_associated_image_names(self, osr: int) -> list[str]:
        return _string_array(self._get_associated_image_names(osr))

    def get_associated_image_dimensions(self, osr: int, name: str) -> tuple[int, int]:
        width, height = ctypes.c_int64(), ctypes.c_int64()
        self._get_associated_image_dimensions(
            osr, _encode(name), ctypes.byref(width), ctypes.byref(height)
        )
        return (width.value, height.value)

    def read_associated_image(
        self,
        osr: int,
        name: str,
        width: int,
        height: int,
    ) -> bytes:
        buf = self._pixel_buffer(width, height)
        self._read_associated_image(osr, _encode(name), buf)
        return self._to_bytes(buf)


_default_library: OpenSlideLibrary | None = None


def get_default_library() -> OpenSlideLibrary:
    """Return the process-wide library, loading it on first use."""
    global _default_library  # noqa: PLW0603
    if _default_library is None:
        _default_library = OpenSlideLibrary.load(settings.OPENSLIDE_LIBRARY_PATH)
    return _default_library
