"""slidecompose.common — shared utilities for timeline and slide rendering.

Contains: the global frame rate, seconds-to-frames conversion, color
parsing, font loading and text measurement.
"""

import math
from pathlib import Path

from PIL import ImageDraw, ImageFont


# ── Timing ─────────────────────────────────────────────────────────
# One fixed frame rate for the whole system. The timeline assembler and
# the keyframe engine both convert seconds through seconds_to_frames().

FPS = 30


def seconds_to_frames(seconds: float, fps: int = FPS) -> int:
    """Convert seconds to a whole frame count, rounding ties up (2.5 -> 3)."""
    return math.floor(seconds * fps + 0.5)


# ── Font paths ─────────────────────────────────────────────────────
# Inter preferred for clean slide text, DejaVu Sans as fallback.

FONT_PATHS = [
    Path.home() / ".local/share/fonts/Inter.ttc",
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
]


# ── Color utilities ────────────────────────────────────────────────

def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB' or 'RRGGBB' string to (R, G, B) tuple."""
    hex_str = hex_str.lstrip("#")
    if len(hex_str) != 6 or not all(c in "0123456789abcdefABCDEF" for c in hex_str):
        raise ValueError(f"Invalid hex color: '#{hex_str}'")
    return (int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


# ── Font loading ───────────────────────────────────────────────────

def load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load Inter (or fallback) at the given size."""
    for font_path in FONT_PATHS:
        if font_path.exists():
            try:
                return ImageFont.truetype(str(font_path), size=size, index=0)
            except (OSError, IndexError):
                continue
    # Last resort: Pillow default font (scalable since Pillow 10.1).
    return ImageFont.load_default(size=size)


# ── Text drawing ───────────────────────────────────────────────────

def measure_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
) -> tuple[int, int]:
    """Return (width, height) of a possibly multi-line string."""
    bbox = draw.multiline_textbbox((0, 0), text, font=font)
    return bbox[2] - bbox[0], bbox[3] - bbox[1]

