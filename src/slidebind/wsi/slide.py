"""Safe slide handle wrapping the native OpenSlide handle.

This module provides the Slide class, the only place where native handles
are opened and closed. It validates every request before it reaches the
native library and passes every native result through the sentinel
translation in ``slidebind.wsi.sentinel``.

Ownership:
    A native handle is owned by a reference-counted ``_NativeHandle``.
    ``Slide.share()`` returns another Slide on the same handle. Each Slide
    gives up its reference at most once, on ``close()``, on context-manager
    exit, or when it is garbage collected; the native close runs exactly
    once, when the last reference is released.

Threading:
    Slide does no locking. Callers that share a slide between threads must
    serialize access themselves or keep one slide per worker (see
    ``slidebind.wsi.cache``).
"""

from __future__ import annotations

import math
import numbers
import weakref
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from slidebind.config import Settings, settings as default_settings
from slidebind.native.openslide import get_default_library
from slidebind.utils.logging import get_logger
from slidebind.wsi.decoder import (
    DecodedImage,
    WordOrder,
    decode_buffer,
    detect_word_order,
    is_premultiplied,
)
from slidebind.wsi.exceptions import (
    AssociatedImageNotFoundError,
    InvalidDownsampleError,
    LevelOutOfRangeError,
    NativeError,
    NumericConversionError,
    RegionTooLargeError,
    SlideClosedError,
    SlideNotFoundError,
    SlideOpenError,
    WordOrderMismatchError,
)
from slidebind.wsi.sentinel import check_dimensions, check_downsample, check_int
from slidebind.wsi.types import Dimensions, RegionRequest, SlideMetadata

if TYPE_CHECKING:
    from types import TracebackType

    from slidebind.native.protocol import NativeSlideLibrary

logger = get_logger(__name__)

# Largest edge of the calibration region used by verify_word_order()
_CALIBRATION_SIZE = 64


class _NativeHandle:
    """Reference-counted owner of one native slide handle."""

    __slots__ = ("closed", "library", "osr", "path", "refs")

    def __init__(self, library: NativeSlideLibrary, osr: int, path: Path) -> None:
        self.library = library
        self.osr = osr
        self.path = path
        self.refs = 1
        self.closed = False

    def acquire(self) -> None:
        self.refs += 1

    def release(self) -> None:
        self.refs -= 1
        if self.refs > 0 or self.closed:
            return
        self.closed = True
        self.library.close(self.osr)
        logger.debug("Closed native slide handle", slide=str(self.path))


class Slide:
    """An open whole-slide image.

    The coordinate system follows OpenSlide conventions:
    - Level 0 is the highest resolution (full magnification)
    - Region row/col are in Level-0 pixel coordinates
    - Region height/width are in the target level's pixel coordinates

    Opening a slide is expensive. A service answering many requests should
    keep slides open and reuse them (see ``SlideCache``) rather than open
    one per request.

    Usage:
        with Slide("/path/to/slide.svs") as slide:
            print(slide.level_count(), slide.level0_dimensions())
            image = slide.read_region(row=2000, col=1000, level=0,
                                      height=512, width=512)
            image.save("region.png")

    Attributes:
        path: Path to the opened slide file.
    """

    __slots__ = ("__weakref__", "_finalizer", "_handle", "_metadata", "_settings")

    def __init__(
        self,
        path: str | Path,
        *,
        library: NativeSlideLibrary | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Open a slide.

        Args:
            path: Path to the slide file.
            library: Native library to use. Defaults to the process-wide
                libopenslide binding.
            settings: Settings to use. Defaults to the module singleton.

        Raises:
            SlideNotFoundError: If the file doesn't exist. No native call is made.
            SlideOpenError: If the native library cannot open the file.
        """
        resolved = Path(path).resolve()
        if not resolved.exists():
            raise SlideNotFoundError("Nonexisting path", path=resolved)

        self._settings = settings or default_settings
        self._metadata: SlideMetadata | None = None
        lib = library if library is not None else get_default_library()

        osr = lib.open(str(resolved))
        if not osr:
            raise SlideOpenError(
                "Native open failed, file format not recognized", path=resolved
            )

        error = lib.get_error(osr)
        if error is not None:
            lib.close(osr)
            raise SlideOpenError(
                "Native open failed", path=resolved, native_message=error
            )

        self._attach(_NativeHandle(lib, osr, resolved))
        logger.debug("Opened slide", slide=str(resolved))

        if self._settings.VERIFY_WORD_ORDER:
            try:
                self.verify_word_order()
            except Exception:
                self.close()
                raise

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        library: NativeSlideLibrary | None = None,
        settings: Settings | None = None,
    ) -> Slide:
        """Open a slide. Equivalent to calling the constructor."""
        return cls(path, library=library, settings=settings)

    def _attach(self, handle: _NativeHandle) -> None:
        self._handle = handle
        self._finalizer = weakref.finalize(self, handle.release)

    @staticmethod
    def detect_vendor(
        path: str | Path,
        library: NativeSlideLibrary | None = None,
    ) -> str | None:
        """Return the vendor that can read ``path``, or None if unrecognized.

        Raises:
            SlideNotFoundError: If the file doesn't exist.
        """
        resolved = Path(path).resolve()
        if not resolved.exists():
            raise SlideNotFoundError("Nonexisting path", path=resolved)
        lib = library if library is not None else get_default_library()
        return lib.detect_vendor(str(resolved))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def path(self) -> Path:
        """Return the path to the slide file."""
        return self._handle.path

    @property
    def closed(self) -> bool:
        """Return True once this slide has released its handle."""
        return not self._finalizer.alive

    def share(self) -> Slide:
        """Return another Slide on the same native handle.

        The native handle stays open until every sharing Slide is closed.

        Raises:
            SlideClosedError: If this slide is closed.
        """
        handle = self._ensure_open_handle()
        twin = object.__new__(Slide)
        twin._settings = self._settings
        twin._metadata = self._metadata
        handle.acquire()
        twin._attach(handle)
        return twin

    def __copy__(self) -> Slide:
        return self.share()

    def __deepcopy__(self, memo: dict[int, object]) -> Slide:
        return self.share()

    def close(self) -> None:
        """Release this slide's reference to the native handle.

        Safe to call more than once. After calling close(), the slide
        should not be used.
        """
        self._finalizer()

    def __enter__(self) -> Slide:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager and close the slide."""
        self.close()

    def __repr__(self) -> str:
        """Return string representation."""
        state = "closed" if self.closed else "open"
        return f"Slide(path={str(self.path)!r}, {state})"

    def _ensure_open_handle(self) -> _NativeHandle:
        if self.closed or self._handle.closed:
            raise SlideClosedError("Slide is closed", path=self._handle.path)
        return self._handle

    def _native(self) -> tuple[NativeSlideLibrary, int]:
        handle = self._ensure_open_handle()
        return handle.library, handle.osr

    def last_error(self) -> str | None:
        """Return the native error message for this handle, if any."""
        lib, osr = self._native()
        return lib.get_error(osr)

    # =========================================================================
    # Pyramid queries
    # =========================================================================

    def level_count(self) -> int:
        """Return the number of pyramid levels."""
        lib, osr = self._native()
        return check_int(
            lib.get_level_count(osr),
            "Number of levels",
            native_error=self.last_error,
            path=self.path,
        )

    def _check_level(self, level: int) -> None:
        if isinstance(level, bool) or not isinstance(level, int):
            raise NumericConversionError(
                "level", level, f"expected int, got {type(level).__name__}", path=self.path
            )
        level_count = self.level_count()
        if level < 0 or level >= level_count:
            raise LevelOutOfRangeError(level, level_count, path=self.path)

    def level0_dimensions(self) -> Dimensions:
        """Return the (width, height) of level 0."""
        lib, osr = self._native()
        return check_dimensions(
            lib.get_level0_dimensions(osr),
            "Level 0",
            native_error=self.last_error,
            path=self.path,
        )

    def level_dimensions(self, level: int) -> Dimensions:
        """Return the (width, height) of a pyramid level.

        Raises:
            LevelOutOfRangeError: If ``level`` is not in ``[0, level_count)``.
        """
        self._check_level(level)
        lib, osr = self._native()
        return check_dimensions(
            lib.get_level_dimensions(osr, level),
            f"Level {level}",
            native_error=self.last_error,
            path=self.path,
        )

    def level_downsample(self, level: int) -> float:
        """Return the downsample factor of a pyramid level.

        Raises:
            LevelOutOfRangeError: If ``level`` is not in ``[0, level_count)``.
        """
        self._check_level(level)
        lib, osr = self._native()
        return check_downsample(
            lib.get_level_downsample(osr, level),
            f"Downsample factor of level {level}",
            native_error=self.last_error,
            path=self.path,
        )

    def level_downsamples(self) -> tuple[float, ...]:
        """Return the downsample factor of every level."""
        return tuple(self.level_downsample(level) for level in range(self.level_count()))

    def best_level_for_downsample(self, factor: float) -> int:
        """Return the best level for displaying the given downsample factor.

        Raises:
            NumericConversionError: If ``factor`` is not a real number.
            InvalidDownsampleError: If ``factor`` is negative or NaN. No native
                call is made.
        """
        if isinstance(factor, bool) or not isinstance(factor, numbers.Real):
            raise NumericConversionError(
                "factor",
                factor,
                f"expected a real number, got {type(factor).__name__}",
                path=self.path,
            )
        if math.isnan(factor) or factor < 0:
            raise InvalidDownsampleError(factor, path=self.path)
        lib, osr = self._native()
        return check_int(
            lib.get_best_level_for_downsample(osr, float(factor)),
            "Returned level",
            native_error=self.last_error,
            path=self.path,
        )

    # =========================================================================
    # Pixel data
    # =========================================================================

    @property
    def word_order(self) -> WordOrder:
        """Return the word order used to decode native pixel buffers."""
        return WordOrder.from_setting(self._settings.WORD_ORDER)

    def _check_read_size(self, height: int, width: int) -> None:
        max_pixels = self._settings.MAX_READ_PIXELS
        if height * width > max_pixels:
            raise RegionTooLargeError(height, width, max_pixels, path=self.path)

    def _raise_on_native_error(self, what: str) -> None:
        error = self.last_error()
        if error is not None:
            raise NativeError(f"{what} failed", path=self.path, native_message=error)

    def _read_raw_region(self, request: RegionRequest) -> bytes:
        native = request.to_native()
        self._check_level(native.level)
        self._check_read_size(native.height, native.width)
        lib, osr = self._native()
        buffer = lib.read_region(
            osr, native.x, native.y, native.level, native.width, native.height
        )
        self._raise_on_native_error("Reading region")
        return buffer

    def read_region(
        self,
        row: int,
        col: int,
        level: int,
        height: int,
        width: int,
    ) -> DecodedImage:
        """Read and decode a region of the slide.

        Args:
            row: Top-left row (increasing downwards) in LEVEL-0 coordinates.
            col: Top-left column (increasing to the right) in LEVEL-0 coordinates.
            level: Pyramid level to read from (0 = highest resolution).
            height: Height in pixels of the region AT THE SPECIFIED LEVEL.
            width: Width in pixels of the region AT THE SPECIFIED LEVEL.

        Returns:
            Straight-alpha RGBA image of exactly ``height`` x ``width`` pixels.

        Raises:
            NumericConversionError: If any argument is not a non-negative int
                that fits the native integer width.
            LevelOutOfRangeError: If ``level`` is out of range.
            RegionTooLargeError: If the region exceeds ``MAX_READ_PIXELS``.
            NativeError: If the native library reports an error after reading.
            DecodeError: If the native buffer has the wrong length.
        """
        request = RegionRequest(row=row, col=col, level=level, height=height, width=width)
        buffer = self._read_raw_region(request)
        logger.debug(
            "Read region",
            slide=str(self.path),
            row=row,
            col=col,
            level=level,
            height=height,
            width=width,
        )
        return decode_buffer(buffer, height, width, self.word_order)

    def verify_word_order(self) -> WordOrder | None:
        """Check the configured word order against a calibration region.

        Reads a small region from the coarsest level and checks that it is
        a valid pre-multiplied image under the configured word order.

        Returns:
            The word order the calibration pixels indicate, or None when the
            region is inconclusive (e.g. blank, or the slide has no levels).

        Raises:
            WordOrderMismatchError: If the calibration pixels are only valid
                under the opposite word order.
        """
        level_count = self.level_count()
        if level_count == 0:
            logger.warning(
                "Word order calibration skipped, slide has no levels",
                slide=str(self.path),
            )
            return None
        level = level_count - 1
        dims = self.level_dimensions(level)
        height = min(dims.height, _CALIBRATION_SIZE)
        width = min(dims.width, _CALIBRATION_SIZE)
        buffer = self._read_raw_region(
            RegionRequest(row=0, col=0, level=level, height=height, width=width)
        )

        configured = self.word_order
        if is_premultiplied(buffer, configured):
            return configured
        detected = detect_word_order(buffer)
        if detected is None:
            logger.warning(
                "Word order calibration inconclusive",
                slide=str(self.path),
                configured=configured.value,
            )
            return None
        raise WordOrderMismatchError(
            f"Pixels decode as pre-multiplied only with word order "
            f"'{detected.value}', but '{configured.value}' is configured",
            path=self.path,
        )

    # =========================================================================
    # Properties and associated images
    # =========================================================================

    def properties(self) -> dict[str, str]:
        """Return every property name and value of the slide.

        There are standard properties (``openslide.*``) and vendor-specific
        ones. A property that disappears between enumeration and lookup is
        an error; partial maps are never returned.

        Raises:
            NativeError: If any property value cannot be read.
        """
        lib, osr = self._native()
        properties: dict[str, str] = {}
        for name in lib.get_property_names(osr):
            value = lib.get_property_value(osr, name)
            if value is None:
                raise NativeError(
                    f"Property '{name}' is listed but has no value",
                    path=self.path,
                    native_message=self.last_error(),
                )
            properties[name] = value
        return properties

    @property
    def vendor(self) -> str | None:
        """Return the ``openslide.vendor`` property, if present."""
        lib, osr = self._native()
        return lib.get_property_value(osr, "openslide.vendor")

    def associated_image_names(self) -> list[str]:
        """Return the names of associated images (thumbnail, label, ...)."""
        lib, osr = self._native()
        return lib.get_associated_image_names(osr)

    def _check_associated_name(self, name: str) -> None:
        available = self.associated_image_names()
        if name not in available:
            raise AssociatedImageNotFoundError(name, available, path=self.path)

    def associated_image_dimensions(self, name: str) -> Dimensions:
        """Return the (width, height) of an associated image.

        Raises:
            AssociatedImageNotFoundError: If the slide has no such image.
        """
        self._check_associated_name(name)
        lib, osr = self._native()
        return check_dimensions(
            lib.get_associated_image_dimensions(osr, name),
            f"Associated image '{name}'",
            native_error=self.last_error,
            path=self.path,
        )

    def read_associated_image(self, name: str) -> DecodedImage:
        """Read and decode an associated image.

        Raises:
            AssociatedImageNotFoundError: If the slide has no such image.
            NativeError: If the native library reports an error after reading.
            DecodeError: If the native buffer has the wrong length.
        """
        dims = self.associated_image_dimensions(name)
        self._check_read_size(dims.height, dims.width)
        lib, osr = self._native()
        buffer = lib.read_associated_image(osr, name, dims.width, dims.height)
        self._raise_on_native_error(f"Reading associated image '{name}'")
        return decode_buffer(buffer, dims.height, dims.width, self.word_order)

    def read_associated_images(self) -> dict[str, DecodedImage]:
        """Read every associated image."""
        return {name: self.read_associated_image(name) for name in self.associated_image_names()}

    # =========================================================================
    # Metadata
    # =========================================================================

    def get_metadata(self) -> SlideMetadata:
        """Return metadata for the slide.

        Note:
            Metadata is cached after the first call.
        """
        if self._metadata is not None:
            return self._metadata

        properties = self.properties()
        level_count = self.level_count()
        level0 = self.level0_dimensions()

        self._metadata = SlideMetadata(
            path=str(self.path),
            vendor=properties.get("openslide.vendor", "unknown"),
            width=level0.width,
            height=level0.height,
            level_count=level_count,
            level_dimensions=tuple(
                self.level_dimensions(level) for level in range(level_count)
            ),
            level_downsamples=self.level_downsamples(),
            mpp_x=_extract_mpp(properties, "openslide.mpp-x"),
            mpp_y=_extract_mpp(properties, "openslide.mpp-y"),
        )
        return self._metadata


def _extract_mpp(props: Mapping[str, str], key: str) -> float | None:
    """Extract an MPP value from properties, None if absent or malformed."""
    value = props.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None

