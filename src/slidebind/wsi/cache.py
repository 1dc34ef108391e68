"""Single-owner cache of open slides.

Opening a slide is expensive, so a long-lived service should keep slides
open across requests instead of opening one per request. SlideCache keeps
up to ``max_size`` slides open, keyed by resolved path, and closes the
least recently used one when full.

The cache is not thread-safe. Keep one cache per worker, or serialize
access to a shared one.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from slidebind.config import settings
from slidebind.utils.logging import get_logger
from slidebind.wsi.slide import Slide

if TYPE_CHECKING:
    from types import TracebackType

logger = get_logger(__name__)

SlideOpener = Callable[[Path], Slide]


class SlideCache:
    """LRU cache of open Slide objects.

    Usage:
        with SlideCache(max_size=4) as cache:
            slide = cache.get("/data/a.svs")
            tile = slide.read_region(0, 0, 0, 256, 256)
    """

    def __init__(
        self,
        max_size: int | None = None,
        opener: SlideOpener | None = None,
    ) -> None:
        """Create an empty cache.

        Args:
            max_size: Maximum number of open slides. Defaults to
                settings.SLIDE_CACHE_SIZE.
            opener: Callable opening a slide from a path. Defaults to Slide.

        Raises:
            ValueError: If max_size is not positive.
        """
        size = settings.SLIDE_CACHE_SIZE if max_size is None else max_size
        if size <= 0:
            raise ValueError(f"max_size must be positive, got {size}")
        self.max_size = size
        self._opener: SlideOpener = opener or Slide
        self._slides: OrderedDict[Path, Slide] = OrderedDict()

    def __len__(self) -> int:
        return len(self._slides)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str | Path):
            return False
        return Path(path).resolve() in self._slides

    def get(self, path: str | Path) -> Slide:
        """Return the open slide for ``path``, opening it if needed.

        The returned slide is owned by the cache; do not close it.
        """
        key = Path(path).resolve()
        slide = self._slides.get(key)
        if slide is not None and not slide.closed:
            self._slides.move_to_end(key)
            return slide

        slide = self._opener(key)
        self._slides[key] = slide
        self._slides.move_to_end(key)
        while len(self._slides) > self.max_size:
            evicted_path, evicted = self._slides.popitem(last=False)
            evicted.close()
            logger.debug("Evicted slide from cache", slide=str(evicted_path))
        return slide

    def evict(self, path: str | Path) -> None:
        """Close and forget the slide for ``path``, if cached."""
        slide = self._slides.pop(Path(path).resolve(), None)
        if slide is not None:
            slide.close()

    def close(self) -> None:
        """Close every cached slide."""
        while self._slides:
            _, slide = self._slides.popitem(last=False)
            slide.close()

    def __enter__(self) -> SlideCache:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager and close every slide."""
        self.close()
