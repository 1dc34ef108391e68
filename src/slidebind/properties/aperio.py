"""Typed view of Aperio (``aperio.*``) slide properties.

Aperio SVS files carry their scanner metadata in the ImageDescription tag,
which OpenSlide exposes as ``aperio.<Key>`` properties. This module maps
the known keys onto typed fields. Unknown ``aperio.*`` keys are logged and
skipped so newer scanner firmware does not break parsing.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from typing import Any

from slidebind.utils.logging import get_logger
from slidebind.wsi.exceptions import PropertyParseError

logger = get_logger(__name__)

PREFIX = "aperio."


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value, 10)
    except ValueError as e:
        raise PropertyParseError(name, value, "an integer") from e


def _parse_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise PropertyParseError(name, value, "a number") from e


def _parse_str(name: str, value: str) -> str:
    _ = name
    return value


# property name -> (field, parser, display label)
_FIELDS: dict[str, tuple[str, Callable[[str, str], Any], str]] = {
    "aperio.Filename": ("filename", _parse_str, "Filename"),
    "aperio.ImageID": ("image_id", _parse_str, "Image ID"),
    "aperio.ScanScope ID": ("scan_scope_id", _parse_str, "ScanScope ID"),
    "aperio.Date": ("date", _parse_str, "Date"),
    "aperio.Time": ("time", _parse_str, "Time"),
    "aperio.User": ("user", _parse_str, "User"),
    "aperio.ICC Profile": ("icc_profile", _parse_str, "ICC Profile"),
    "aperio.Parmset": ("parmset", _parse_str, "Parmset"),
    "aperio.OriginalHeight": ("original_height", _parse_int, "Original height"),
    "aperio.OriginalWidth": ("original_width", _parse_int, "Original width"),
    "aperio.Top": ("top", _parse_float, "Top"),
    "aperio.Left": ("left", _parse_float, "Left"),
    "aperio.MPP": ("mpp", _parse_float, "Microns per pixel"),
    "aperio.LineCameraSkew": ("line_camera_skew", _parse_float, "Line camera skew"),
    "aperio.LineAreaXOffset": ("line_area_x_offset", _parse_float, "Line area x offset"),
    "aperio.LineAreaYOffset": ("line_area_y_offset", _parse_float, "Line area y offset"),
    "aperio.Focus Offset": ("focus_offset", _parse_float, "Focus offset"),
    "aperio.AppMag": ("app_mag", _parse_int, "AppMag"),
    "aperio.StripeWidth": ("stripe_width", _parse_int, "Stripe width"),
    "aperio.Filtered": ("filtered", _parse_int, "Filtered"),
}

_LABELS = {field: label for field, _, label in _FIELDS.values()}


@dataclass
class AperioProperties:
    """Aperio scanner metadata. Fields are None when the slide lacks them."""

    filename: str | None = None
    image_id: str | None = None
    scan_scope_id: str | None = None
    date: str | None = None
    time: str | None = None
    user: str | None = None
    icc_profile: str | None = None
    parmset: str | None = None
    original_height: int | None = None
    original_width: int | None = None
    top: float | None = None
    left: float | None = None
    mpp: float | None = None
    line_camera_skew: float | None = None
    line_area_x_offset: float | None = None
    line_area_y_offset: float | None = None
    focus_offset: float | None = None
    app_mag: int | None = None
    stripe_width: int | None = None
    filtered: int | None = None

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> AperioProperties:
        """Build from a slide property map, considering only ``aperio.*`` keys.

        Raises:
            PropertyParseError: If a known numeric key has a malformed value.
        """
        parsed = cls()
        for name, value in properties.items():
            if name.startswith(PREFIX):
                parsed.parse_property(name, value)
        return parsed

    def parse_property(self, name: str, value: str) -> bool:
        """Store one property.

        Returns:
            True if the name was recognised, False if it was skipped.

        Raises:
            PropertyParseError: If the value does not match the field type.
        """
        entry = _FIELDS.get(name)
        if entry is None:
            logger.debug("Skipping unrecognized property", name=name, value=value)
            return False
        field, parser, _ = entry
        setattr(self, field, parser(name, value))
        return True

    def available(self) -> dict[str, Any]:
        """Return ``{label: value}`` for every field that is set, in field order."""
        return {
            _LABELS[f.name]: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
