"""CLI module for slidebind.

Provides the command-line driver for inspecting slides and exporting
regions and associated images.
"""

from __future__ import annotations

from slidebind.cli.main import app

__all__ = ["app"]
