"""
SVG renderer for materialized shapes.

Maps each shape kind to svgwrite primitives using the fixed style tables,
and sizes the document to the padded union of all shape bounds. Output is
a deterministic function of the shapes and the renderer options.
"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

import svgwrite

from .geometry import shape_bounds
from .models import Shape, ShapeKind
from .styles import (
    COLOR_HEX_BY_STYLE,
    DASH_ARRAY_BY_STYLE,
    DEFAULT_COLOR,
    DEFAULT_FONT,
    DEFAULT_SIZE,
    FILL_OPACITY_BY_STYLE,
    FONT_FAMILY_BY_STYLE,
    FONT_SIZE_BY_SIZE,
    STROKE_WIDTH_BY_SIZE,
    color_to_hex,
)

DEFAULT_BACKGROUND = "#ffffff"
DEFAULT_PADDING = 24

MIN_VIEWPORT_WIDTH = 200
MIN_VIEWPORT_HEIGHT = 120

ARROWHEAD_ID = "arrowhead"
ARROWHEAD_PATH = "M0,0 L10,4 L0,8 z"

RECT_CORNER_RADIUS = 8
NOTE_CORNER_RADIUS = 12
FRAME_CORNER_RADIUS = 10
FRAME_DASH_ARRAY = "10 6"
FRAME_STROKE_WIDTH = 2
FRAME_TITLE_FONT_SIZE = 14
FRAME_TITLE_LINE_HEIGHT = 18
NOTE_STROKE_WIDTH = 2
NOTE_TEXT_INSET = 16

LABEL_COLOR = COLOR_HEX_BY_STYLE[DEFAULT_COLOR]


@dataclass(frozen=True)
class Viewport:
    """Region of the canvas covered by an exported image."""

    x: float
    y: float
    width: float
    height: float


def export_viewport(shapes: Iterable[Shape], padding: float) -> Viewport:
    """
    Compute the padded union of shape bounds.

    Width and height are rounded up and floored at 200x120; an empty shape
    list gives a fixed viewport anchored at ``(-padding, -padding)``.
    """
    boxes = [shape_bounds(shape) for shape in shapes]
    if not boxes:
        return Viewport(-padding, -padding, MIN_VIEWPORT_WIDTH, MIN_VIEWPORT_HEIGHT)

    min_x = min(box.x for box in boxes)
    min_y = min(box.y for box in boxes)
    max_x = max(box.right for box in boxes)
    max_y = max(box.bottom for box in boxes)

    return Viewport(
        x=min_x - padding,
        y=min_y - padding,
        width=max(MIN_VIEWPORT_WIDTH, math.ceil(max_x - min_x + padding * 2)),
        height=max(MIN_VIEWPORT_HEIGHT, math.ceil(max_y - min_y + padding * 2)),
    )


def _num(value: float):
    """Print whole numbers without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _font_size(shape: Shape) -> int:
    return FONT_SIZE_BY_SIZE.get(shape.style.size, FONT_SIZE_BY_SIZE[DEFAULT_SIZE])


def _font_family(shape: Shape) -> str:
    return FONT_FAMILY_BY_STYLE.get(shape.style.font, FONT_FAMILY_BY_STYLE[DEFAULT_FONT])


def _stroke_width(shape: Shape) -> float:
    return STROKE_WIDTH_BY_SIZE.get(shape.style.size, STROKE_WIDTH_BY_SIZE[DEFAULT_SIZE])


def _stroke_attributes(shape: Shape) -> Dict[str, object]:
    attributes: Dict[str, object] = {
        "stroke": color_to_hex(shape.style.color),
        "stroke_width": _stroke_width(shape),
    }
    dash_array = DASH_ARRAY_BY_STYLE.get(shape.style.dash)
    if dash_array:
        attributes["stroke_dasharray"] = dash_array
    return attributes


def _fill_attributes(color: Optional[str], fill: Optional[str]) -> Dict[str, object]:
    opacity = FILL_OPACITY_BY_STYLE.get(fill or "none", 0.0)
    if not opacity:
        return {"fill": "none"}
    attributes: Dict[str, object] = {"fill": color_to_hex(color)}
    if opacity < 1:
        attributes["fill_opacity"] = opacity
    return attributes


class SvgRenderer:
    """
    Renders shapes to an SVG document string.

    Args:
        background: Fill of the background rectangle.
        padding: Space added around the shape bounds.

    Example:
        >>> renderer = SvgRenderer(padding=16)
        >>> svg = renderer.render(page.shapes)
    """

    def __init__(self, background: str = DEFAULT_BACKGROUND, padding: float = DEFAULT_PADDING):
        if not isinstance(padding, (int, float)) or not math.isfinite(padding) or padding < 0:
            raise ValueError("padding must be a finite number >= 0")
        self.background = background
        self.padding = padding
        self._renderers: Dict[ShapeKind, Callable] = {
            ShapeKind.RECTANGLE: self._render_geo,
            ShapeKind.ELLIPSE: self._render_geo,
            ShapeKind.TEXT: self._render_text,
            ShapeKind.NOTE: self._render_note,
            ShapeKind.FRAME: self._render_frame,
            ShapeKind.CONNECTOR: self._render_connector,
        }

    def supports(self, shape: Shape) -> bool:
        return shape.kind in self._renderers

    def unsupported(self, shapes: Iterable[Shape]) -> List[Shape]:
        """Shapes that render() skips because their kind is unknown."""
        return [shape for shape in shapes if not self.supports(shape)]

    def render(self, shapes: Iterable[Shape]) -> str:
        """
        Render shapes, in the given z-order, to SVG markup.

        Args:
            shapes: Materialized shapes, bottom first.

        Returns:
            The SVG document as a string.
        """
        shapes = list(shapes)
        viewport = export_viewport(shapes, self.padding)

        drawing = svgwrite.Drawing(
            size=(_num(viewport.width), _num(viewport.height)),
            viewBox=(
                f"{_num(viewport.x)} {_num(viewport.y)} "
                f"{_num(viewport.width)} {_num(viewport.height)}"
            ),
            debug=False,
        )
        drawing.attribs["role"] = "img"
        drawing.attribs["aria-label"] = "diagram export"

        marker = drawing.marker(
            insert=(8, 4), size=(10, 8), orient="auto", id=ARROWHEAD_ID
        )
        marker["markerUnits"] = "strokeWidth"
        marker.add(drawing.path(d=ARROWHEAD_PATH, fill="currentColor"))
        drawing.defs.add(marker)

        drawing.add(
            drawing.rect(
                insert=(_num(viewport.x), _num(viewport.y)),
                size=(_num(viewport.width), _num(viewport.height)),
                fill=self.background,
            )
        )

        group = drawing.g(color=LABEL_COLOR)
        for shape in shapes:
            render = self._renderers.get(shape.kind)
            if render is None:
                continue
            for element in render(drawing, shape):
                group.add(element)
        drawing.add(group)

        return drawing.tostring()

    def _text(
        self,
        drawing: svgwrite.Drawing,
        text: str,
        x: float,
        y: float,
        color: str,
        family: str,
        font_size: float,
        line_height: float,
        anchor: str,
    ):
        """Build a text element with one tspan per line."""
        element = drawing.text(
            "",
            fill=color,
            font_family=family,
            font_size=_num(font_size),
            text_anchor=anchor,
        )
        for index, line in enumerate(text.split("\n")):
            if index == 0:
                element.add(drawing.tspan(line, x=[_num(x)], y=[_num(y)]))
            else:
                element.add(drawing.tspan(line, x=[_num(x)], dy=[_num(line_height)]))
        return element

    def _render_geo(self, drawing: svgwrite.Drawing, shape: Shape) -> list:
        center_x = shape.x + shape.w / 2
        center_y = shape.y + shape.h / 2
        attributes = _stroke_attributes(shape)
        attributes.update(_fill_attributes(shape.style.color, shape.style.fill))

        if shape.kind == ShapeKind.ELLIPSE:
            body = drawing.ellipse(
                center=(_num(center_x), _num(center_y)),
                r=(_num(shape.w / 2), _num(shape.h / 2)),
                **attributes,
            )
        else:
            body = drawing.rect(
                insert=(_num(shape.x), _num(shape.y)),
                size=(_num(shape.w), _num(shape.h)),
                rx=RECT_CORNER_RADIUS,
                ry=RECT_CORNER_RADIUS,
                **attributes,
            )

        label = shape.label.strip()
        if not label:
            return [body]

        font_size = _font_size(shape)
        return [
            body,
            self._text(
                drawing,
                label,
                center_x,
                center_y + font_size * 0.35,
                color=LABEL_COLOR,
                family=_font_family(shape),
                font_size=font_size,
                line_height=font_size * 1.2,
                anchor="middle",
            ),
        ]

    def _render_text(self, drawing: svgwrite.Drawing, shape: Shape) -> list:
        font_size = _font_size(shape)
        return [
            self._text(
                drawing,
                shape.label,
                shape.x,
                shape.y + font_size,
                color=color_to_hex(shape.style.color),
                family=_font_family(shape),
                font_size=font_size,
                line_height=font_size * 1.25,
                anchor="start",
            )
        ]

    def _render_note(self, drawing: svgwrite.Drawing, shape: Shape) -> list:
        attributes = _fill_attributes(shape.style.color, "semi")
        body = drawing.rect(
            insert=(_num(shape.x), _num(shape.y)),
            size=(_num(shape.w), _num(shape.h)),
            rx=NOTE_CORNER_RADIUS,
            ry=NOTE_CORNER_RADIUS,
            stroke=color_to_hex(shape.style.color),
            stroke_width=NOTE_STROKE_WIDTH,
            **attributes,
        )
        font_size = _font_size(shape)
        return [
            body,
            self._text(
                drawing,
                shape.label,
                shape.x + NOTE_TEXT_INSET,
                shape.y + 24 + font_size * 0.3,
                color=LABEL_COLOR,
                family=_font_family(shape),
                font_size=font_size,
                line_height=font_size * 1.2,
                anchor="start",
            ),
        ]

    def _render_frame(self, drawing: svgwrite.Drawing, shape: Shape) -> list:
        stroke = color_to_hex(shape.style.color)
        body = drawing.rect(
            insert=(_num(shape.x), _num(shape.y)),
            size=(_num(shape.w), _num(shape.h)),
            rx=FRAME_CORNER_RADIUS,
            ry=FRAME_CORNER_RADIUS,
            fill="none",
            stroke=stroke,
            stroke_width=FRAME_STROKE_WIDTH,
            stroke_dasharray=FRAME_DASH_ARRAY,
        )

        title = shape.label.strip()
        if not title:
            return [body]

        return [
            body,
            self._text(
                drawing,
                title,
                shape.x + 10,
                shape.y + 20,
                color=stroke,
                family=FONT_FAMILY_BY_STYLE["sans"],
                font_size=FRAME_TITLE_FONT_SIZE,
                line_height=FRAME_TITLE_LINE_HEIGHT,
                anchor="start",
            ),
        ]

    def _render_connector(self, drawing: svgwrite.Drawing, shape: Shape) -> list:
        start = shape.start_point
        end = shape.end_point
        if start is None or end is None:
            return []

        stroke = color_to_hex(shape.style.color)
        line = drawing.line(
            start=(_num(start.x), _num(start.y)),
            end=(_num(end.x), _num(end.y)),
            color=stroke,
            marker_end=f"url(#{ARROWHEAD_ID})",
            **_stroke_attributes(shape),
        )

        label = shape.label.strip()
        if not label:
            return [line]

        font_size = _font_size(shape)
        return [
            line,
            self._text(
                drawing,
                label,
                (start.x + end.x) / 2,
                (start.y + end.y) / 2 - 6,
                color=LABEL_COLOR,
                family=_font_family(shape),
                font_size=font_size,
                line_height=font_size * 1.2,
                anchor="middle",
            ),
        ]


def render_svg(
    shapes: Iterable[Shape],
    background: str = DEFAULT_BACKGROUND,
    padding: float = DEFAULT_PADDING,
) -> str:
    """Convenience function to render shapes with default options."""
    return SvgRenderer(background=background, padding=padding).render(shapes)
