"""Unit tests for the slide exception hierarchy."""

from __future__ import annotations

from pathlib import Path

import pytest

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


class TestSlideError:
    """Tests for the SlideError base class."""

    def test_message_only(self) -> None:
        error = SlideError("Something failed")
        assert str(error) == "Something failed"
        assert error.path is None

    def test_with_path(self) -> None:
        error = SlideError("Something failed", path="/data/a.svs")
        assert error.path == Path("/data/a.svs")
        assert str(error) == "Something failed (path=/data/a.svs)"


class TestHierarchy:
    """Every failure class sits under the expected branch."""

    @pytest.mark.parametrize(
        ("error", "parent"),
        [
            (SlideNotFoundError("x"), PreconditionError),
            (SlideClosedError("x"), PreconditionError),
            (LevelOutOfRangeError(3, 3), PreconditionError),
            (InvalidDownsampleError(-1.0), PreconditionError),
            (NumericConversionError("row", -1, "negative"), PreconditionError),
            (RegionTooLargeError(10, 10, 50), PreconditionError),
            (AssociatedImageNotFoundError("macro", []), PreconditionError),
            (NativeLibraryError("x"), NativeError),
            (SlideOpenError("x"), NativeError),
            (NativeKnownFailureError("x", -1), NativeError),
            (NativeContractViolationError("x", -2), NativeError),
            (BufferLengthError(16, 15, 2, 2), DecodeError),
            (WordOrderMismatchError("x"), DecodeError),
            (PropertyParseError("aperio.MPP", "abc", "float"), SlideError),
        ],
    )
    def test_parent(self, error: SlideError, parent: type[SlideError]) -> None:
        assert isinstance(error, parent)
        assert isinstance(error, SlideError)

    def test_native_and_precondition_disjoint(self) -> None:
        assert not issubclass(NativeError, PreconditionError)
        assert not issubclass(PreconditionError, NativeError)


class TestMessages:
    """Tests for exception message formatting."""

    def test_level_out_of_range(self) -> None:
        error = LevelOutOfRangeError(5, 3, path="/a.svs")
        assert str(error).startswith(
            "Specified level 5 is out of range, the max slide level is 2"
        )
        assert "level_count=3" in str(error)

    def test_known_failure(self) -> None:
        error = NativeKnownFailureError("Number of levels", -1)
        assert str(error) == (
            "Number of levels is -1, this is a known error from OpenSlide. "
            "OpenSlide returns -1 if an error occurred. "
            "See OpenSlide C API documentation."
        )

    def test_contract_violation(self) -> None:
        error = NativeContractViolationError("Number of levels", -4)
        assert "Number of levels is -4, this is an unknown error" in str(error)

    def test_native_message_in_context(self) -> None:
        error = SlideOpenError("Native open failed", native_message="bad TIFF")
        assert error.native_message == "bad TIFF"
        assert str(error) == "Native open failed (native_error='bad TIFF')"

    def test_numeric_conversion(self) -> None:
        error = NumericConversionError("col", 2**63, "value exceeds 9223372036854775807")
        assert str(error) == (
            f"Numeric conversion error for col={2**63}: "
            "value exceeds 9223372036854775807"
        )

    def test_associated_lists_available(self) -> None:
        error = AssociatedImageNotFoundError("macro", ["label", "thumbnail"])
        assert "Available: label, thumbnail" in str(error)
        assert "Available: none" in str(AssociatedImageNotFoundError("macro", []))

    def test_buffer_length(self) -> None:
        error = BufferLengthError(expected=16, actual=12, height=2, width=2)
        assert "12" in str(error)
        assert "16 bytes expected" in str(error)
