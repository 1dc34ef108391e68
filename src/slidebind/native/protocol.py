"""Protocol describing the raw capabilities of the native slide library.

Implementations return native results unchanged: ``-1`` sentinels, NULL
pointers (``None``) and all. Validation is the caller's job (see
``slidebind.wsi.sentinel``). Handles are opaque integers.
"""

from __future__ import annotations

from typing import Protocol


class NativeSlideLibrary(Protocol):
    """The narrow call surface of libopenslide used by ``Slide``."""

    def get_version(self) -> str:
        """Return the native library version string."""
        ...

    def detect_vendor(self, filename: str) -> str | None:
        """Return the vendor name for a file, or None if not recognized."""
        ...

    def open(self, filename: str) -> int | None:
        """Open a slide, returning an opaque handle or None."""
        ...

    def close(self, osr: int) -> None:
        """Release a handle. Must be called exactly once per handle."""
        ...

    def get_error(self, osr: int) -> str | None:
        """Return the handle's error message, or None if it is healthy."""
        ...

    def get_level_count(self, osr: int) -> int:
        """Return the number of levels, or -1 on error."""
        ...

    def get_level0_dimensions(self, osr: int) -> tuple[int, int]:
        """Return (width, height) of level 0; each is -1 on error."""
        ...

    def get_level_dimensions(self, osr: int, level: int) -> tuple[int, int]:
        """Return (width, height) of a level; each is -1 on error."""
        ...

    def get_level_downsample(self, osr: int, level: int) -> float:
        """Return the downsample factor of a level, or -1.0 on error."""
        ...

    def get_best_level_for_downsample(self, osr: int, downsample: float) -> int:
        """Return the best level for a downsample factor, or -1 on error."""
        ...

    def read_region(
        self,
        osr: int,
        x: int,
        y: int,
        level: int,
        width: int,
        height: int,
    ) -> bytes:
        """Read pre-multiplied ARGB words in host order."""
        ...

    def get_property_names(self, osr: int) -> list[str]:
        """Return all property names."""
        ...

    def get_property_value(self, osr: int, name: str) -> str | None:
        """Return a property value, or None if it does not exist."""
        ...

    def get_associated_image_names(self, osr: int) -> list[str]:
        """Return the names of all associated images."""
        ...

    def get_associated_image_dimensions(self, osr: int, name: str) -> tuple[int, int]:
        """Return (width, height) of an associated image; each is -1 on error."""
        ...

    def read_associated_image(
        self,
        osr: int,
        name: str,
        width: int,
        height: int,
    ) -> bytes:
        """Read an associated image as pre-multiplied ARGB words in host order."""
        ...
