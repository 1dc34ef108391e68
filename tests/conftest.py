"""Shared pytest fixtures and configuration."""

from __future__ import annotations

import sys
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from slidebind.config import Settings
from slidebind.utils.logging import clear_correlation_context, configure_logging

FAKE_HANDLE = 0x5EED


@dataclass
class FakeOpenSlide:
    """In-memory stand-in for libopenslide.

    Every method records its call in ``calls``; ``closed`` lists each handle
    passed to ``close``. Attributes can be changed per test to inject
    sentinel values and native errors.
    """

    open_result: int | None = FAKE_HANDLE
    vendor: str | None = "aperio"
    level_count: int = 3
    level0_dimensions: tuple[int, int] = (4000, 3000)
    level_dimensions: list[tuple[int, int]] = field(
        default_factory=lambda: [(4000, 3000), (1000, 750), (250, 187)]
    )
    level_downsamples: list[float] = field(default_factory=lambda: [1.0, 4.0, 16.0])
    best_level: int = 1
    properties: dict[str, str | None] = field(
        default_factory=lambda: {
            "openslide.vendor": "aperio",
            "openslide.mpp-x": "0.499",
            "openslide.mpp-y": "0.5",
            "aperio.AppMag": "20",
        }
    )
    associated: dict[str, tuple[int, int]] = field(
        default_factory=lambda: {"thumbnail": (8, 6), "label": (4, 4)}
    )
    # Pre-multiplied ARGB word returned for every pixel
    pixel: int = 0xFF102030
    error: str | None = None
    error_after_read: str | None = None
    short_read: bool = False
    calls: Counter[str] = field(default_factory=Counter)
    closed: list[int] = field(default_factory=list)

    def _pixels(self, width: int, height: int) -> bytes:
        data = self.pixel.to_bytes(4, sys.byteorder) * (width * height)
        if self.short_read:
            return data[:-1]
        return data

    def get_version(self) -> str:
        self.calls["get_version"] += 1
        return "4.0.0"

    def detect_vendor(self, filename: str) -> str | None:
        self.calls["detect_vendor"] += 1
        return self.vendor

    def open(self, filename: str) -> int | None:
        self.calls["open"] += 1
        return self.open_result

    def close(self, osr: int) -> None:
        self.calls["close"] += 1
        self.closed.append(osr)

    def get_error(self, osr: int) -> str | None:
        self.calls["get_error"] += 1
        return self.error

    def get_level_count(self, osr: int) -> int:
        self.calls["get_level_count"] += 1
        return self.level_count

    def get_level0_dimensions(self, osr: int) -> tuple[int, int]:
        self.calls["get_level0_dimensions"] += 1
        return self.level0_dimensions

    def get_level_dimensions(self, osr: int, level: int) -> tuple[int, int]:
        self.calls["get_level_dimensions"] += 1
        return self.level_dimensions[level]

    def get_level_downsample(self, osr: int, level: int) -> float:
        self.calls["get_level_downsample"] += 1
        return self.level_downsamples[level]

    def get_best_level_for_downsample(self, osr: int, downsample: float) -> int:
        self.calls["get_best_level_for_downsample"] += 1
        return self.best_level

    def read_region(
        self,
        osr: int,
        x: int,
        y: int,
        level: int,
        width: int,
        height: int,
    ) -> bytes:
        self.calls["read_region"] += 1
        if self.error_after_read is not None:
            self.error = self.error_after_read
        return self._pixels(width, height)

    def get_property_names(self, osr: int) -> list[str]:
        self.calls["get_property_names"] += 1
        return list(self.properties)

    def get_property_value(self, osr: int, name: str) -> str | None:
        self.calls["get_property_value"] += 1
        return self.properties.get(name)

    def get_associated_image_names(self, osr: int) -> list[str]:
        self.calls["get_associated_image_names"] += 1
        return list(self.associated)

    def get_associated_image_dimensions(self, osr: int, name: str) -> tuple[int, int]:
        self.calls["get_associated_image_dimensions"] += 1
        return self.associated.get(name, (-1, -1))

    def read_associated_image(
        self,
        osr: int,
        name: str,
        width: int,
        height: int,
    ) -> bytes:
        self.calls["read_associated_image"] += 1
        return self._pixels(width, height)


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def fake_library() -> FakeOpenSlide:
    """Provide a fresh counting fake of the native library."""
    return FakeOpenSlide()


@pytest.fixture
def slide_file(tmp_path: Path) -> Path:
    """Provide an existing (content-free) slide path."""
    path = tmp_path / "slide.svs"
    path.write_bytes(b"not really a slide")
    return path
