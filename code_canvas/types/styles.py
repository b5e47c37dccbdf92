"""Style defaults and color handling."""

import re

from PIL import ImageColor

# Defaults applied when a style field is omitted
DEFAULT_STROKE_WIDTH = 0.0
DEFAULT_OPACITY = 1.0
DEFAULT_FONT = "sans-serif"
DEFAULT_TEXT_SIZE = 16.0
DEFAULT_TEXT_WEIGHT = 400
DEFAULT_TEXT_FILL = "#000000"

# Color keywords meaning "paint nothing"
NO_PAINT = frozenset({"", "none", "transparent"})

# CSS rgba(): alpha is a 0-1 number or a percentage (Pillow expects 0-255)
_RGBA_RE = re.compile(
    r"^rgba\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d*\.?\d+)(%?)\s*\)$",
    re.IGNORECASE,
)


def _parse_css_rgba(color: str) -> tuple[int, int, int, int] | None:
    match = _RGBA_RE.match(color)
    if match is None:
        return None
    r, g, b = (min(int(v), 255) for v in match.group(1, 2, 3))
    alpha = float(match.group(4))
    if match.group(5):
        alpha /= 100
    return (r, g, b, round(min(max(alpha, 0.0), 1.0) * 255))


def normalize_color(value: object) -> str | None:
    """Validate a CSS color string, mapping "none"/"transparent" to None.

    Accepts hex (#rgb, #rrggbb, #rrggbbaa), named colors, rgb(), rgba()
    with CSS alpha, hsl() and hsv().

    Raises:
        ValueError: If the value is not a string or not a recognized color.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"color must be a string, got {type(value).__name__}")
    color = value.strip()
    if color.lower() in NO_PAINT:
        return None
    if _parse_css_rgba(color) is not None:
        return color
    try:
        ImageColor.getrgb(color)
    except ValueError:
        raise ValueError(f"unknown color {value!r}") from None
    return color


def color_to_rgba(color: str | None) -> tuple[int, int, int, int] | None:
    """Convert a normalized color string to an RGBA tuple (None stays None)."""
    if color is None:
        return None
    rgba = _parse_css_rgba(color)
    if rgba is not None:
        return rgba
    rgb = ImageColor.getrgb(color)
    if len(rgb) == 4:
        return rgb  # type: ignore[return-value]
    r, g, b = rgb[:3]
    return (r, g, b, 255)
