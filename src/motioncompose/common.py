"""motioncompose.common — shared helpers for the outer layers.

Contains: color parsing, path variable resolution, font loading and text
metrics. The temporal core (easing, track, timeline, video, audio) does
not depend on this module.
"""

import re
from functools import lru_cache
from pathlib import Path

from PIL import ImageFont

from .scene import Color


# ── Font paths ─────────────────────────────────────────────────────
# Default font when a FontFamily slot is None. Inter preferred,
# DejaVu Sans as fallback, Pillow's built-in font as last resort.

FONT_PATHS = [
    Path.home() / ".local/share/fonts/Inter.ttc",
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
]


# ── Color utilities ────────────────────────────────────────────────

def parse_hex_color(hex_str: str) -> Color:
    """Convert '#RRGGBB' / '#RRGGBBAA' (hash optional) to a Color."""
    hex_str = hex_str.lstrip("#")
    if len(hex_str) not in (6, 8):
        raise ValueError(f"Bad hex color: '#{hex_str}'. Expected RRGGBB or RRGGBBAA.")
    channels = [int(hex_str[i:i + 2], 16) for i in range(0, len(hex_str), 2)]
    return Color(*channels)


def resolve_color(value, palette: dict[str, Color]) -> Color:
    """Resolve a color reference — palette key, inline hex, or [r, g, b(, a)].

    Palette keys are tried first. Strings starting with '#' or made of
    6/8 hex chars are parsed as inline hex. Otherwise raises ValueError.
    """
    if isinstance(value, (list, tuple)):
        if len(value) not in (3, 4):
            raise ValueError(f"Color list must have 3 or 4 channels, got {value!r}")
        return Color(*(int(c) for c in value))
    if value in palette:
        return palette[value]
    if value.startswith("#") or (
        len(value) in (6, 8)
        and all(c in "0123456789abcdefABCDEF" for c in value)
    ):
        return parse_hex_color(value)
    raise ValueError(
        f"Unknown color: '{value}'. Not in palette and not a hex value."
    )


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Font loading and metrics ───────────────────────────────────────

@lru_cache(maxsize=64)
def load_font(
    source: str | None, size: int,
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a font file at the given pixel size.

    source=None walks FONT_PATHS; a missing or unreadable explicit
    source raises OSError. Cached per (source, size): each worker
    process owns its own cache.
    """
    size = max(1, int(round(size)))
    if source is not None:
        return ImageFont.truetype(str(source), size=size)
    for font_path in FONT_PATHS:
        if font_path.exists():
            try:
                return ImageFont.truetype(str(font_path), size=size, index=0)
            except (OSError, IndexError):
                continue
    # Last resort: Pillow default font (scalable on Pillow >= 10.1).
    return ImageFont.load_default(size=size)


def measure_text(font, text: str, spacing: float = 0.0) -> float:
    """Pixel advance width of text, with `spacing` added between glyphs."""
    if not text:
        return 0.0
    return float(font.getlength(text)) + spacing * (len(text) - 1)
