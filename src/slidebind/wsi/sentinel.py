"""Translation of native sentinel return values into exceptions.

OpenSlide has no structured error channel for its numeric queries: a call
that fails returns a magic value (``-1`` for integers and each dimension
axis, ``-1.0`` for downsample factors) and records a message retrievable
with ``openslide_get_error``. Every numeric result crosses into Python
through exactly one of the functions below, so the treatment is uniform:

    value == sentinel  -> NativeKnownFailureError
    value <  sentinel  -> NativeContractViolationError
    otherwise          -> returned as a domain value
"""

from __future__ import annotations

import math
from collections.abc import Callable
from pathlib import Path

from slidebind.wsi.exceptions import (
    NativeContractViolationError,
    NativeKnownFailureError,
)
from slidebind.wsi.types import Dimensions

NativeErrorFetcher = Callable[[], str | None]

INT_SENTINEL = -1


def _native_message(native_error: NativeErrorFetcher | None) -> str | None:
    if native_error is None:
        return None
    return native_error()


def check_int(
    value: int,
    what: str,
    *,
    sentinel: int = INT_SENTINEL,
    native_error: NativeErrorFetcher | None = None,
    path: Path | str | None = None,
) -> int:
    """Validate an integer returned by the native library.

    Args:
        value: Raw native result.
        what: Name of the queried quantity, used in error messages.
        sentinel: The documented failure value.
        native_error: Optional callable returning the native last-error string.
        path: Slide path for error context.

    Returns:
        The validated value.

    Raises:
        NativeKnownFailureError: If ``value == sentinel``.
        NativeContractViolationError: If ``value < sentinel``.
    """
    if value == sentinel:
        raise NativeKnownFailureError(
            what, value, path, native_message=_native_message(native_error)
        )
    if value < sentinel:
        raise NativeContractViolationError(
            what, value, path, native_message=_native_message(native_error)
        )
    return int(value)


def check_dimensions(
    dims: tuple[int, int],
    what: str,
    *,
    native_error: NativeErrorFetcher | None = None,
    path: Path | str | None = None,
) -> Dimensions:
    """Validate a native (width, height) pair, each axis independently."""
    width, height = dims
    return Dimensions(
        width=check_int(width, f"{what} width", native_error=native_error, path=path),
        height=check_int(height, f"{what} height", native_error=native_error, path=path),
    )


def check_downsample(
    value: float,
    what: str,
    *,
    native_error: NativeErrorFetcher | None = None,
    path: Path | str | None = None,
) -> float:
    """Validate a native downsample factor.

    Floating-point sentinels are not compared exactly: any negative value is
    a known failure. NaN lies outside the documented range entirely.
    """
    if math.isnan(value):
        raise NativeContractViolationError(
            what, value, path, native_message=_native_message(native_error)
        )
    if value < 0.0:
        raise NativeKnownFailureError(
            what, value, path, native_message=_native_message(native_error)
        )
    return float(value)
