"""
Text dimension estimation for shape labels.

There is no font rasterizer in the loop, so label sizes come from
character-count heuristics calibrated against the target canvas fonts.
"""

import math
from typing import List, Optional

from .models import Size
from .styles import (
    AVG_CHAR_WIDTHS,
    DEFAULT_FONT,
    DEFAULT_SIZE,
    LABEL_H_PADDING,
    LABEL_V_PADDING,
    TEXT_LINE_HEIGHT_BY_SIZE,
)


def split_lines(text: str) -> List[str]:
    """Split text into display lines (always at least one)."""
    return text.split("\n") if text else [""]


def line_count(text: Optional[str]) -> int:
    return max(1, len(split_lines(text or "")))


def resolve_size_tier(size: Optional[str]) -> str:
    return size if size in TEXT_LINE_HEIGHT_BY_SIZE else DEFAULT_SIZE


def resolve_font(font: Optional[str]) -> str:
    return font if font in AVG_CHAR_WIDTHS else DEFAULT_FONT


def line_height(size: Optional[str]) -> float:
    """Line height for a size tier; unknown tiers use the default tier."""
    return TEXT_LINE_HEIGHT_BY_SIZE[resolve_size_tier(size)]


def estimate_label_box(
    label: str, size: Optional[str] = None, font: Optional[str] = None
) -> Size:
    """
    Estimate the box a label needs inside a shape, padding included.

    Args:
        label: Label text; ``\\n`` separates lines.
        size: Size tier (s, m, l, xl). Defaults to m.
        font: Font family (draw, mono, sans, serif). Defaults to draw.

    Returns:
        Minimum shape size that keeps the label inside its padding.
    """
    tier = resolve_size_tier(size)
    char_width = AVG_CHAR_WIDTHS[resolve_font(font)][tier]
    lines = split_lines(label)
    longest = max(len(line) for line in lines)

    width = math.ceil(longest * char_width) + LABEL_H_PADDING
    height = len(lines) * TEXT_LINE_HEIGHT_BY_SIZE[tier] + LABEL_V_PADDING
    return Size(w=width, h=height)
