"""
Style vocabularies and calibration tables.

All tables are read-only mappings shared by the parser, the layout expander,
the text estimator and the renderers. Sizes here must stay consistent with
each other: the layout expander, the label estimator and the renderers all
read the same line heights and note boxes.
"""

from types import MappingProxyType
from typing import Optional

from .models import ShapeKind, Size

# Closed DSL vocabularies
COLOR_HEX_BY_STYLE = MappingProxyType(
    {
        "black": "#1f1f1f",
        "grey": "#6b7280",
        "light-violet": "#c6a4ff",
        "violet": "#7048e8",
        "blue": "#2b6cf5",
        "light-blue": "#7da8ff",
        "yellow": "#f6c344",
        "orange": "#f08c00",
        "green": "#2f9e44",
        "light-green": "#73d08b",
        "light-red": "#ff8a8a",
        "red": "#e03131",
        "white": "#ffffff",
    }
)

FILL_STYLES = ("none", "semi", "solid", "pattern")
DASH_STYLES = ("draw", "solid", "dashed", "dotted")
SIZE_TIERS = ("s", "m", "l", "xl")
FONT_STYLES = ("draw", "mono", "sans", "serif")

DEFAULT_COLOR = "black"
DEFAULT_NOTE_COLOR = "yellow"
DEFAULT_FILL = "none"
DEFAULT_DASH = "draw"
DEFAULT_FONT = "draw"
DEFAULT_SIZE = "m"

# Box used when an instruction gives no explicit dimensions
DEFAULT_DIMENSIONS = MappingProxyType(
    {
        ShapeKind.RECTANGLE: Size(w=220, h=120),
        ShapeKind.ELLIPSE: Size(w=120, h=120),
        ShapeKind.TEXT: Size(w=280, h=40),
        ShapeKind.NOTE: Size(w=220, h=180),
        ShapeKind.FRAME: Size(w=460, h=260),
    }
)

NOTE_DIMENSIONS_BY_SIZE = MappingProxyType(
    {
        "s": Size(w=180, h=140),
        "m": Size(w=220, h=180),
        "l": Size(w=280, h=240),
        "xl": Size(w=340, h=300),
    }
)

TEXT_LINE_HEIGHT_BY_SIZE = MappingProxyType({"s": 22, "m": 28, "l": 36, "xl": 44})

# Average glyph width per font family and size tier, deliberately generous
AVG_CHAR_WIDTHS = MappingProxyType(
    {
        "draw": MappingProxyType({"s": 10, "m": 14, "l": 17, "xl": 22}),
        "mono": MappingProxyType({"s": 8.5, "m": 11, "l": 14, "xl": 17}),
        "sans": MappingProxyType({"s": 8, "m": 10.5, "l": 13, "xl": 16}),
        "serif": MappingProxyType({"s": 8, "m": 10.5, "l": 13, "xl": 16}),
    }
)

# Label padding inside geo shapes: 28px each side, 22px top and bottom
LABEL_H_PADDING = 56
LABEL_V_PADDING = 44

MIN_TEXT_WIDTH = 40

# Renderer tables
FONT_FAMILY_BY_STYLE = MappingProxyType(
    {
        "draw": '"Comic Sans MS", "Bradley Hand", cursive',
        "mono": '"Menlo", "Monaco", "Courier New", monospace',
        "sans": '"Arial", "Helvetica", sans-serif',
        "serif": '"Georgia", "Times New Roman", serif',
    }
)

FONT_SIZE_BY_SIZE = MappingProxyType({"s": 14, "m": 18, "l": 24, "xl": 30})

STROKE_WIDTH_BY_SIZE = MappingProxyType({"s": 1.5, "m": 2, "l": 2.5, "xl": 3})

DASH_ARRAY_BY_STYLE = MappingProxyType(
    {"draw": None, "solid": None, "dashed": "8 6", "dotted": "2 6"}
)

# semi and pattern both render as a translucent wash
FILL_OPACITY_BY_STYLE = MappingProxyType(
    {"none": 0.0, "semi": 0.2, "pattern": 0.2, "solid": 1.0}
)


def color_to_hex(color: Optional[str]) -> str:
    """Resolve a color name; unknown names are returned as literal colors."""
    if not color:
        return COLOR_HEX_BY_STYLE[DEFAULT_COLOR]
    return COLOR_HEX_BY_STYLE.get(color, color)
