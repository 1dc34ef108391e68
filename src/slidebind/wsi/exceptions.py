"""Custom exceptions for slide operations.

The native library reports failure out of band (sentinel return values,
NULL pointers and a per-handle error string). These exceptions give each
failure class its own type so callers can tell caller-fixable input errors
apart from native-layer faults.

Hierarchy:
    SlideError
    ├── PreconditionError      (detected before any native call)
    ├── NativeError            (reported by or about the native library)
    ├── DecodeError            (raw pixel buffer could not be decoded)
    └── PropertyParseError     (vendor property value has the wrong type)
"""

from pathlib import Path


class SlideError(Exception):
    """Base exception for all slide-related errors."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize slide error with optional path context.

        Args:
            message: Human-readable error description.
            path: Path to the slide file that caused the error.
        """
        self.path = Path(path) if path else None
        self.message = message
        super().__init__(self._format_message())

    def _context(self) -> list[str]:
        """Return extra ``key=value`` context parts for the message."""
        return []

    def _format_message(self) -> str:
        """Format error message with context if available."""
        parts = []
        if self.path:
            parts.append(f"path={self.path}")
        parts.extend(self._context())

        if not parts:
            return self.message
        return f"{self.message} ({', '.join(parts)})"


# =============================================================================
# Precondition violations
# =============================================================================


class PreconditionError(SlideError):
    """Raised when a request is rejected before reaching the native library."""


class SlideNotFoundError(PreconditionError):
    """Raised when the slide path does not exist."""


class SlideClosedError(PreconditionError):
    """Raised when a closed slide is used."""


class LevelOutOfRangeError(PreconditionError):
    """Raised when a pyramid level is outside ``[0, level_count)``."""

    def __init__(
        self,
        level: int,
        level_count: int,
        path: Path | str | None = None,
    ) -> None:
        self.level = level
        self.level_count = level_count
        super().__init__(
            f"Specified level {level} is out of range, "
            f"the max slide level is {level_count - 1}",
            path,
        )

    def _context(self) -> list[str]:
        return [f"level={self.level}", f"level_count={self.level_count}"]


class InvalidDownsampleError(PreconditionError):
    """Raised when a requested downsample factor is negative or not a number."""

    def __init__(self, factor: float, path: Path | str | None = None) -> None:
        self.factor = factor
        super().__init__(
            f"Only non-negative downsample factors are allowed, got {factor}",
            path,
        )


class NumericConversionError(PreconditionError):
    """Raised when a value does not fit the native integer width."""

    def __init__(
        self,
        name: str,
        value: object,
        reason: str,
        path: Path | str | None = None,
    ) -> None:
        self.name = name
        self.value = value
        super().__init__(f"Numeric conversion error for {name}={value!r}: {reason}", path)


class RegionTooLargeError(PreconditionError):
    """Raised when a region request exceeds the configured pixel budget."""

    def __init__(
        self,
        height: int,
        width: int,
        max_pixels: int,
        path: Path | str | None = None,
    ) -> None:
        self.height = height
        self.width = width
        self.max_pixels = max_pixels
        super().__init__(
            f"Region of {height}x{width} pixels exceeds the limit of {max_pixels}",
            path,
        )


class AssociatedImageNotFoundError(PreconditionError):
    """Raised when a slide has no associated image with the given name."""

    def __init__(
        self,
        name: str,
        available: list[str],
        path: Path | str | None = None,
    ) -> None:
        self.name = name
        self.available = available
        listed = ", ".join(available) if available else "none"
        super().__init__(
            f"No associated image named '{name}'. Available: {listed}",
            path,
        )


# =============================================================================
# Native layer failures
# =============================================================================


class NativeError(SlideError):
    """Base class for failures reported by the native library.

    Attributes:
        native_message: The native last-error string, when one was available.
    """

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        *,
        native_message: str | None = None,
    ) -> None:
        self.native_message = native_message
        super().__init__(message, path)

    def _context(self) -> list[str]:
        if self.native_message:
            return [f"native_error={self.native_message!r}"]
        return []


class NativeLibraryError(NativeError):
    """Raised when the native library cannot be located or loaded."""


class SlideOpenError(NativeError):
    """Raised when the native library fails to open a slide.

    This error is raised when:
    - The file format is not recognized (native open returns NULL)
    - The native handle reports an error right after opening
    """


class NativeKnownFailureError(NativeError):
    """Raised when a native call returns its documented failure sentinel."""

    def __init__(
        self,
        what: str,
        value: float,
        path: Path | str | None = None,
        *,
        native_message: str | None = None,
    ) -> None:
        self.what = what
        self.value = value
        super().__init__(
            f"{what} is {value}, this is a known error from OpenSlide. "
            "OpenSlide returns -1 if an error occurred. "
            "See OpenSlide C API documentation.",
            path,
            native_message=native_message,
        )


class NativeContractViolationError(NativeError):
    """Raised when a native call returns a value outside its documented range."""

    def __init__(
        self,
        what: str,
        value: float,
        path: Path | str | None = None,
        *,
        native_message: str | None = None,
    ) -> None:
        self.what = what
        self.value = value
        super().__init__(
            f"{what} is {value}, this is an unknown error from OpenSlide. "
            "OpenSlide only documents -1 as an error value. "
            "See OpenSlide C API documentation.",
            path,
            native_message=native_message,
        )


# =============================================================================
# Decoding
# =============================================================================


class DecodeError(SlideError):
    """Raised when a raw pixel buffer cannot be decoded."""


class BufferLengthError(DecodeError):
    """Raised when a pixel buffer does not hold exactly height * width words."""

    def __init__(
        self,
        expected: int,
        actual: int,
        height: int,
        width: int,
    ) -> None:
        self.expected = expected
        self.actual = actual
        self.height = height
        self.width = width
        super().__init__(
            f"Buffer length {actual} does not match {height}x{width} pixels "
            f"({expected} bytes expected)"
        )


class WordOrderMismatchError(DecodeError):
    """Raised when calibration pixels contradict the configured word order."""


# =============================================================================
# Vendor properties
# =============================================================================


class PropertyParseError(SlideError):
    """Raised when a recognised vendor property has a malformed value."""

    def __init__(self, name: str, value: str, expected: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f"Property '{name}' has value {value!r}, expected {expected}")
