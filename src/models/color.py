"""
Color models and textual color parsing.

Target colors arrive from the operator either as an ``rgb(r, g, b)`` string
(picked from a video pixel) or as a ``#rrggbb`` hex string (color picker).
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional, Sequence, Union


_RGB_PATTERN = re.compile(r"^rgb\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)$")
_HEX_PATTERN = re.compile(r"^#([0-9a-fA-F]{6})$")


class Color(NamedTuple):
    """An RGB color with integer channels in 0-255."""
    r: int
    g: int
    b: int

    @classmethod
    def parse(cls, value: str) -> Optional["Color"]:
        """
        Parse an ``rgb(r, g, b)`` or ``#rrggbb`` string.

        Returns None for malformed input so callers can keep their previous
        target color.
        """
        if not isinstance(value, str):
            return None
        text = value.strip()
        if text.startswith("rgb"):
            match = _RGB_PATTERN.match(text)
            if not match:
                return None
            channels = [int(c) for c in match.groups()]
            if any(c > 255 for c in channels):
                return None
            return cls(*channels)
        if text.startswith("#"):
            try:
                return hex_to_rgb(text)
            except ValueError:
                return None
        return None

    def to_hex(self) -> str:
        return rgb_to_hex(self)

    def to_rgb_string(self) -> str:
        return f"rgb({self.r}, {self.g}, {self.b})"


class HsvColor(NamedTuple):
    """HSV triple: h in [0, 360), s and v in [0, 1]."""
    h: float
    s: float
    v: float


def hex_to_rgb(value: str) -> Color:
    """Convert ``#rrggbb`` to a Color. Raises ValueError if malformed."""
    match = _HEX_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid hex color: {value!r}")
    digits = match.group(1)
    return Color(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def rgb_to_hex(r: Union[int, Sequence[int]], g: Optional[int] = None, b: Optional[int] = None) -> str:
    """
    Convert RGB channels to a lowercase ``#rrggbb`` string.

    Accepts either three channel ints or a single Color / (r, g, b) sequence.
    """
    if g is None and b is None:
        r, g, b = r
    for channel in (r, g, b):
        if not 0 <= int(channel) <= 255:
            raise ValueError(f"Channel out of range: {channel}")
    return f"#{int(r):02x}{int(g):02x}{int(b):02x}"
