# labelplacer/core/text_metrics.py
"""
Measure text width/height in drawing units using Pillow.
Text is measured once at a fixed pixel size and scaled to the CAD text height.
"""

from __future__ import annotations

import warnings
from functools import lru_cache

from labelplacer.core.config import (
    DEFAULT_FONT_FAMILY,
    LINE_SPACING_FACTOR,
    MEASURE_FONT_SIZE_PX,
)

_font_warning_emitted: set[str] = set()


@lru_cache(maxsize=8)
def _load_font(font_family: str, size_px: int):
    """Load PIL ImageFont; fallback with warning if font not found."""
    from PIL import ImageFont

    candidates = [
        font_family + ".ttf",
        font_family.replace(" ", "") + ".ttf",
        "DejaVuSans.ttf",
        "arial.ttf",
        "Arial.ttf",
    ]
    for name in candidates:
        try:
            return ImageFont.truetype(name, size=size_px)
        except (OSError, IOError):
            continue
    if font_family not in _font_warning_emitted:
        _font_warning_emitted.add(font_family)
        warnings.warn(f"Font not found: {font_family!r}; using default.", UserWarning)
    return ImageFont.load_default()


def _line_width_px(line: str, font) -> float:
    from PIL import Image, ImageDraw

    draw = ImageDraw.Draw(Image.new("RGB", (1, 1)))
    left, _, right, _ = draw.textbbox((0, 0), line, font=font)
    return float(right - left)


def measure_text_units(
    text: str,
    height: float,
    width_factor: float = 1.0,
    font_family: str = DEFAULT_FONT_FAMILY,
) -> tuple[float, float]:
    """
    Return (width, height) in drawing units for text with CAD height `height`.
    Multi-line text (\\n) uses the widest line and LINE_SPACING_FACTOR pitch.
    """
    lines = text.split("\n") if text else [""]
    if height <= 0:
        return (0.0, 0.0)
    font = _load_font(font_family, MEASURE_FONT_SIZE_PX)
    size_used = float(getattr(font, "size", MEASURE_FONT_SIZE_PX) or MEASURE_FONT_SIZE_PX)
    widest_px = max(_line_width_px(line, font) for line in lines)
    # Cap height is roughly 0.7 of the em size; CAD height is cap height.
    scale = height / (size_used * 0.7)
    width = widest_px * scale * (width_factor or 1.0)
    total_height = height + (len(lines) - 1) * height * LINE_SPACING_FACTOR
    return (width, total_height)
