"""Colour helpers for marker backgrounds.

Label colours arrive in whatever form the label taxonomy stores them
(``#f00``, ``#ff0000``, ``rgb(...)``, a CSS name).  Markers always carry an
``rgba(...)`` background so emphasis can be toggled by rewriting only the
alpha channel.
"""

from __future__ import annotations

import re

# CSS level 1 named colours plus the few extra names label configs tend to use
_NAMED_COLORS: dict[str, tuple[int, int, int]] = {
    "black": (0, 0, 0),
    "silver": (192, 192, 192),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
    "white": (255, 255, 255),
    "maroon": (128, 0, 0),
    "red": (255, 0, 0),
    "purple": (128, 0, 128),
    "fuchsia": (255, 0, 255),
    "magenta": (255, 0, 255),
    "green": (0, 128, 0),
    "lime": (0, 255, 0),
    "olive": (128, 128, 0),
    "yellow": (255, 255, 0),
    "navy": (0, 0, 128),
    "blue": (0, 0, 255),
    "teal": (0, 128, 128),
    "aqua": (0, 255, 255),
    "cyan": (0, 255, 255),
    "orange": (255, 165, 0),
    "pink": (255, 192, 203),
    "brown": (165, 42, 42),
}

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_FUNC_COLOR = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*"
    r"(?:,\s*([0-9]*\.?[0-9]+)\s*)?\)$"
)


def parse_color(color: str) -> tuple[int, int, int, float]:
    """Parse *color* into an ``(r, g, b, a)`` tuple.

    Raises:
        ValueError: If *color* is not a recognised colour.
    """
    value = color.strip().lower()

    if value in _NAMED_COLORS:
        r, g, b = _NAMED_COLORS[value]
        return r, g, b, 1.0

    if _HEX_COLOR.match(value):
        digits = value[1:]
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return (
            int(digits[0:2], 16),
            int(digits[2:4], 16),
            int(digits[4:6], 16),
            1.0,
        )

    match = _FUNC_COLOR.match(value)
    if match:
        r, g, b = (int(match.group(i)) for i in (1, 2, 3))
        if max(r, g, b) > 255:
            msg = f"Colour channel out of range: {color!r}"
            raise ValueError(msg)
        alpha = float(match.group(4)) if match.group(4) is not None else 1.0
        return r, g, b, alpha

    msg = f"Unrecognised colour: {color!r}"
    raise ValueError(msg)


def _format_rgba(r: int, g: int, b: int, alpha: float) -> str:
    # 0.30000000000000004 -> 0.3
    return f"rgba({r}, {g}, {b}, {round(alpha, 3):g})"


def convert_to_rgba(color: str, alpha: float) -> str:
    """Return *color* as an ``rgba(...)`` string with the given alpha."""
    r, g, b, _ = parse_color(color)
    return _format_rgba(r, g, b, alpha)


def rgba_change_alpha(color: str, alpha: float) -> str:
    """Rewrite the alpha channel of *color*, keeping its RGB channels."""
    return convert_to_rgba(color, alpha)
