"""Fixtures for slide integration tests.

These tests require libopenslide and a real slide file. They are skipped if
either is unavailable.

Test files can be provided via:
1. WSI_TEST_FILE environment variable pointing to a local slide file
2. A ``data/`` directory next to this file containing .svs files

The CMU-1-Small-Region.svs file (~2MB) is recommended for CI:
    https://openslide.cs.cmu.edu/download/openslide-testdata/Aperio/CMU-1-Small-Region.svs
"""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest

from slidebind.native import OpenSlideLibrary
from slidebind.wsi.exceptions import NativeLibraryError

pytestmark = pytest.mark.integration


def get_test_wsi_path() -> Path | None:
    """Get the path to a real slide test file.

    Returns:
        Path to the slide file if available, None otherwise.
    """
    env_path = os.environ.get("WSI_TEST_FILE")
    if env_path:
        path = Path(env_path)
        if path.exists() and path.suffix.lower() in {".svs", ".ndpi", ".tiff", ".tif", ".mrxs"}:
            return path

    test_data_dir = Path(__file__).parent / "data"
    if test_data_dir.exists():
        for svs_file in test_data_dir.glob("*.svs"):
            return svs_file

    return None


@pytest.fixture(scope="session")
def native_library() -> OpenSlideLibrary:
    """Load libopenslide, skipping the test if it is not installed."""
    try:
        return OpenSlideLibrary.load(os.environ.get("OPENSLIDE_LIBRARY_PATH"))
    except NativeLibraryError as e:
        pytest.skip(f"libopenslide not available: {e}")


@pytest.fixture(scope="session")
def wsi_test_file() -> Generator[Path, None, None]:
    """Provide path to a real slide test file.

    Skips the test if no test file is available.
    """
    path = get_test_wsi_path()
    if path is None:
        pytest.skip(
            "No WSI test file available. "
            "Set WSI_TEST_FILE environment variable or download test data. "
            "Example: curl -LO https://openslide.cs.cmu.edu/download/"
            "openslide-testdata/Aperio/CMU-1-Small-Region.svs"
        )
    yield path
