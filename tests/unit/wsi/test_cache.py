"""Unit tests for SlideCache."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from slidebind.wsi import Slide, SlideCache

if TYPE_CHECKING:
    from tests.conftest import FakeOpenSlide


@pytest.fixture
def slide_paths(tmp_path: Path) -> list[Path]:
    """Create three existing slide files."""
    paths = []
    for name in ("a.svs", "b.svs", "c.svs"):
        path = tmp_path / name
        path.write_bytes(b"slide")
        paths.append(path)
    return paths


@pytest.fixture
def cache(fake_library: FakeOpenSlide) -> SlideCache:
    """Create a two-slot cache opening slides on the fake library."""
    return SlideCache(max_size=2, opener=lambda path: Slide(path, library=fake_library))


class TestSlideCache:
    """Tests for SlideCache."""

    def test_reuses_open_slide(
        self, cache: SlideCache, slide_paths: list[Path], fake_library: FakeOpenSlide
    ) -> None:
        first = cache.get(slide_paths[0])
        second = cache.get(str(slide_paths[0]))
        assert first is second
        assert fake_library.calls["open"] == 1
        assert len(cache) == 1
        assert slide_paths[0] in cache

    def test_evicts_least_recently_used(
        self, cache: SlideCache, slide_paths: list[Path], fake_library: FakeOpenSlide
    ) -> None:
        a = cache.get(slide_paths[0])
        cache.get(slide_paths[1])
        cache.get(slide_paths[0])  # a is now most recent
        cache.get(slide_paths[2])

        assert slide_paths[1] not in cache
        assert slide_paths[0] in cache
        assert not a.closed
        assert fake_library.calls["close"] == 1

    def test_eviction_is_logged(
        self, cache: SlideCache, slide_paths: list[Path]
    ) -> None:
        with patch("slidebind.wsi.cache.logger") as mock_logger:
            for path in slide_paths:
                cache.get(path)
        mock_logger.debug.assert_called_once_with(
            "Evicted slide from cache", slide=str(slide_paths[0].resolve())
        )

    def test_reopens_slide_closed_elsewhere(
        self, cache: SlideCache, slide_paths: list[Path], fake_library: FakeOpenSlide
    ) -> None:
        first = cache.get(slide_paths[0])
        first.close()
        second = cache.get(slide_paths[0])
        assert second is not first
        assert not second.closed
        assert fake_library.calls["open"] == 2

    def test_evict(
        self, cache: SlideCache, slide_paths: list[Path], fake_library: FakeOpenSlide
    ) -> None:
        slide = cache.get(slide_paths[0])
        cache.evict(slide_paths[0])
        cache.evict(slide_paths[1])
        assert slide.closed
        assert len(cache) == 0
        assert fake_library.calls["close"] == 1

    def test_close_releases_everything(
        self, slide_paths: list[Path], fake_library: FakeOpenSlide
    ) -> None:
        with SlideCache(
            max_size=3, opener=lambda path: Slide(path, library=fake_library)
        ) as cache:
            slides = [cache.get(path) for path in slide_paths]
        assert all(slide.closed for slide in slides)
        assert len(cache) == 0
        assert fake_library.calls["close"] == 3

    def test_contains_ignores_non_paths(self, cache: SlideCache) -> None:
        assert 42 not in cache

    @pytest.mark.parametrize("size", [0, -1])
    def test_rejects_non_positive_size(self, size: int) -> None:
        with pytest.raises(ValueError, match="max_size must be positive"):
            SlideCache(max_size=size)

    def test_default_size_from_settings(self) -> None:
        with patch("slidebind.wsi.cache.settings") as mock_settings:
            mock_settings.SLIDE_CACHE_SIZE = 5
            assert SlideCache().max_size == 5
