"""
Color Math - hex/RGB conversion and Euclidean color similarity.

Pure functions, no I/O. Similarity is normalized inverse Euclidean
distance in the RGB cube:

    similarity = 100 * (MAX_DISTANCE - distance) / MAX_DISTANCE

so identical colors score 100 and black vs white scores 0.
"""

from __future__ import annotations
from dataclasses import dataclass
import math
import re

from ..errors import ValidationError

MAX_DISTANCE = math.sqrt(3 * 255 ** 2)

_HEX_PATTERN = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


@dataclass(frozen=True)
class RGB:
    """An 8-bit RGB triple."""
    r: int
    g: int
    b: int

    @property
    def hex(self) -> str:
        return rgb_to_hex(self.r, self.g, self.b)


BLACK = RGB(0, 0, 0)


def parse_hex(value: str) -> RGB:
    """
    Parse a 6-digit hex color, raising on malformed input.

    Accepts upper or lower case digits and an optional leading '#'.
    """
    match = _HEX_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(f"Invalid hex color: {value!r}")
    return RGB(*(int(part, 16) for part in match.groups()))


def hex_to_rgb(value: str) -> RGB:
    """
    Parse a hex color, falling back to black on malformed input.

    Prefer parse_hex() where a bad color should be reported.
    """
    try:
        return parse_hex(value)
    except ValidationError:
        return BLACK


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Format an RGB triple as '#RRGGBB' (uppercase, zero-padded)."""
    for channel in (r, g, b):
        if not 0 <= channel <= 255:
            raise ValidationError(f"Channel value out of range: {channel}")
    return f"#{r:02X}{g:02X}{b:02X}"


def normalize_hex(value: str) -> str:
    """Canonical '#RRGGBB' form of a hex color string."""
    return parse_hex(value).hex


def color_distance(c1: RGB, c2: RGB) -> float:
    """Euclidean distance between two colors in the RGB cube."""
    return math.sqrt(
        (c1.r - c2.r) ** 2 + (c1.g - c2.g) ** 2 + (c1.b - c2.b) ** 2
    )


def similarity(c1: RGB, c2: RGB) -> float:
    """Similarity in [0, 100]; 100 means identical."""
    return 100 * (MAX_DISTANCE - color_distance(c1, c2)) / MAX_DISTANCE
