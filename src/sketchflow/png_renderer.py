"""
PNG renderer for materialized shapes.

Draws the same primitives as the SVG renderer with Pillow, over the same
viewport, at a configurable resolution multiplier. Dash patterns are drawn
as solid strokes.
"""

import math
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from .models import Point, Shape, ShapeKind
from .styles import (
    DEFAULT_SIZE,
    FILL_OPACITY_BY_STYLE,
    FONT_SIZE_BY_SIZE,
    STROKE_WIDTH_BY_SIZE,
    color_to_hex,
)
from .svg_renderer import (
    DEFAULT_BACKGROUND,
    DEFAULT_PADDING,
    FRAME_CORNER_RADIUS,
    FRAME_STROKE_WIDTH,
    FRAME_TITLE_FONT_SIZE,
    FRAME_TITLE_LINE_HEIGHT,
    LABEL_COLOR,
    NOTE_CORNER_RADIUS,
    NOTE_STROKE_WIDTH,
    NOTE_TEXT_INSET,
    RECT_CORNER_RADIUS,
    Viewport,
    export_viewport,
)

RGBA = Tuple[int, int, int, int]

# Distance from the baseline to the top of the glyph box, as a share of the
# font size
ASCENT_RATIO = 0.8


class PNGRenderer:
    """Renders shapes as PNG images."""

    def __init__(
        self,
        scale: float = 2,
        background: str = DEFAULT_BACKGROUND,
        padding: float = DEFAULT_PADDING,
    ):
        if (
            isinstance(scale, bool)
            or not isinstance(scale, (int, float))
            or not math.isfinite(scale)
            or scale <= 0
        ):
            raise ValueError("scale must be a finite number > 0")
        if not isinstance(padding, (int, float)) or not math.isfinite(padding) or padding < 0:
            raise ValueError("padding must be a finite number >= 0")

        self.scale = scale
        self.background = background
        self.padding = padding
        self._fonts: Dict[int, ImageFont.ImageFont] = {}
        self._viewport = Viewport(0, 0, 0, 0)
        self._renderers: Dict[ShapeKind, Callable] = {
            ShapeKind.RECTANGLE: self._draw_geo,
            ShapeKind.ELLIPSE: self._draw_geo,
            ShapeKind.TEXT: self._draw_text_shape,
            ShapeKind.NOTE: self._draw_note,
            ShapeKind.FRAME: self._draw_frame,
            ShapeKind.CONNECTOR: self._draw_connector,
        }

    def unsupported(self, shapes: Iterable[Shape]) -> List[Shape]:
        """Shapes that render() skips because their kind is unknown."""
        return [shape for shape in shapes if shape.kind not in self._renderers]

    def render(self, shapes: Iterable[Shape]) -> Image.Image:
        """
        Draw shapes, in the given z-order, onto a new RGB image.

        Args:
            shapes: Materialized shapes, bottom first.

        Returns:
            The rendered image.
        """
        shapes = list(shapes)
        self._viewport = export_viewport(shapes, self.padding)

        width = max(1, math.ceil(self._viewport.width * self.scale))
        height = max(1, math.ceil(self._viewport.height * self.scale))
        img = Image.new("RGB", (width, height), _parse_color(self.background)[:3])

        # RGBA mode blends translucent fills onto the RGB canvas
        draw = ImageDraw.Draw(img, "RGBA")

        for shape in shapes:
            render = self._renderers.get(shape.kind)
            if render is not None:
                render(draw, shape)

        return img

    def save(self, shapes: Iterable[Shape], output_path: str) -> str:
        """
        Render shapes and write them to a PNG file.

        Returns:
            Path to the saved PNG file
        """
        self.render(shapes).save(output_path, "PNG")
        return output_path

    def _point(self, x: float, y: float) -> Tuple[float, float]:
        return (
            (x - self._viewport.x) * self.scale,
            (y - self._viewport.y) * self.scale,
        )

    def _box(self, shape: Shape) -> List[float]:
        left, top = self._point(shape.x, shape.y)
        right, bottom = self._point(shape.x + shape.w, shape.y + shape.h)
        return [left, top, max(left, right), max(top, bottom)]

    def _width(self, stroke_width: float) -> int:
        return max(1, round(stroke_width * self.scale))

    def _get_font(self, font_size: float) -> ImageFont.ImageFont:
        """Get Pillow's default font at a scaled size, caching per size."""
        size = max(1, round(font_size * self.scale))
        if size not in self._fonts:
            try:
                self._fonts[size] = ImageFont.load_default(size=size)
            except TypeError:
                # Older Pillow versions don't support size parameter
                self._fonts[size] = ImageFont.load_default()
        return self._fonts[size]

    def _draw_lines(
        self,
        draw: ImageDraw.ImageDraw,
        text: str,
        x: float,
        y: float,
        fill: RGBA,
        font_size: float,
        line_height: float,
        centered: bool,
    ):
        """Draw multi-line text whose first baseline sits at (x, y)."""
        font = self._get_font(font_size)
        for index, line in enumerate(text.split("\n")):
            if not line:
                continue
            left, top = self._point(x, y + index * line_height - font_size * ASCENT_RATIO)
            if centered:
                left -= draw.textlength(line, font=font) / 2
            draw.text((left, top), line, fill=fill, font=font)

    def _draw_geo(self, draw: ImageDraw.ImageDraw, shape: Shape):
        outline = _parse_color(color_to_hex(shape.style.color))
        fill = _fill_color(shape.style.color, shape.style.fill)
        width = self._width(_stroke_width(shape))
        box = self._box(shape)

        if shape.kind == ShapeKind.ELLIPSE:
            draw.ellipse(box, fill=fill, outline=outline, width=width)
        else:
            draw.rounded_rectangle(
                box,
                radius=RECT_CORNER_RADIUS * self.scale,
                fill=fill,
                outline=outline,
                width=width,
            )

        label = shape.label.strip()
        if label:
            font_size = _font_size(shape)
            self._draw_lines(
                draw,
                label,
                shape.x + shape.w / 2,
                shape.y + shape.h / 2 + font_size * 0.35,
                fill=_parse_color(LABEL_COLOR),
                font_size=font_size,
                line_height=font_size * 1.2,
                centered=True,
            )

    def _draw_text_shape(self, draw: ImageDraw.ImageDraw, shape: Shape):
        font_size = _font_size(shape)
        self._draw_lines(
            draw,
            shape.label,
            shape.x,
            shape.y + font_size,
            fill=_parse_color(color_to_hex(shape.style.color)),
            font_size=font_size,
            line_height=font_size * 1.25,
            centered=False,
        )

    def _draw_note(self, draw: ImageDraw.ImageDraw, shape: Shape):
        draw.rounded_rectangle(
            self._box(shape),
            radius=NOTE_CORNER_RADIUS * self.scale,
            fill=_fill_color(shape.style.color, "semi"),
            outline=_parse_color(color_to_hex(shape.style.color)),
            width=self._width(NOTE_STROKE_WIDTH),
        )
        font_size = _font_size(shape)
        self._draw_lines(
            draw,
            shape.label,
            shape.x + NOTE_TEXT_INSET,
            shape.y + 24 + font_size * 0.3,
            fill=_parse_color(LABEL_COLOR),
            font_size=font_size,
            line_height=font_size * 1.2,
            centered=False,
        )

    def _draw_frame(self, draw: ImageDraw.ImageDraw, shape: Shape):
        outline = _parse_color(color_to_hex(shape.style.color))
        draw.rounded_rectangle(
            self._box(shape),
            radius=FRAME_CORNER_RADIUS * self.scale,
            outline=outline,
            width=self._width(FRAME_STROKE_WIDTH),
        )
        title = shape.label.strip()
        if title:
            self._draw_lines(
                draw,
                title,
                shape.x + 10,
                shape.y + 20,
                fill=outline,
                font_size=FRAME_TITLE_FONT_SIZE,
                line_height=FRAME_TITLE_LINE_HEIGHT,
                centered=False,
            )

    def _draw_connector(self, draw: ImageDraw.ImageDraw, shape: Shape):
        start = shape.start_point
        end = shape.end_point
        if start is None or end is None:
            return

        color = _parse_color(color_to_hex(shape.style.color))
        stroke_width = _stroke_width(shape)
        draw.line(
            [self._point(start.x, start.y), self._point(end.x, end.y)],
            fill=color,
            width=self._width(stroke_width),
        )
        self._draw_arrowhead(draw, start, end, stroke_width, color)

        label = shape.label.strip()
        if label:
            font_size = _font_size(shape)
            self._draw_lines(
                draw,
                label,
                (start.x + end.x) / 2,
                (start.y + end.y) / 2 - 6,
                fill=_parse_color(LABEL_COLOR),
                font_size=font_size,
                line_height=font_size * 1.2,
                centered=True,
            )

    def _draw_arrowhead(
        self,
        draw: ImageDraw.ImageDraw,
        start: Point,
        end: Point,
        stroke_width: float,
        color: RGBA,
    ):
        """
        Draw a filled arrowhead at the end of a connector.

        The head is 10x8 stroke widths with its reference point 8 widths
        behind the tip, placed on the line end.
        """
        dx = end.x - start.x
        dy = end.y - start.y
        length = math.hypot(dx, dy)
        if not length:
            return

        ux, uy = dx / length, dy / length
        tip = Point(end.x + ux * 2 * stroke_width, end.y + uy * 2 * stroke_width)
        base = Point(end.x - ux * 8 * stroke_width, end.y - uy * 8 * stroke_width)
        half = 4 * stroke_width

        draw.polygon(
            [
                self._point(tip.x, tip.y),
                self._point(base.x - uy * half, base.y + ux * half),
                self._point(base.x + uy * half, base.y - ux * half),
            ],
            fill=color,
        )


def _parse_color(color: str, alpha: int = 255) -> RGBA:
    """Parse a color with Pillow; colors it cannot read become black."""
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError:
        rgb = (0, 0, 0)
    return (rgb[0], rgb[1], rgb[2], alpha)


def _fill_color(color, fill) -> Optional[RGBA]:
    opacity = FILL_OPACITY_BY_STYLE.get(fill or "none", 0.0)
    if not opacity:
        return None
    return _parse_color(color_to_hex(color), round(255 * opacity))


def _font_size(shape: Shape) -> int:
    return FONT_SIZE_BY_SIZE.get(shape.style.size, FONT_SIZE_BY_SIZE[DEFAULT_SIZE])


def _stroke_width(shape: Shape) -> float:
    return STROKE_WIDTH_BY_SIZE.get(shape.style.size, STROKE_WIDTH_BY_SIZE[DEFAULT_SIZE])


def render_to_png(shapes: Iterable[Shape], output_path: str = "diagram.png", **kwargs) -> str:
    """
    Convenience function to render shapes to PNG.

    Args:
        shapes: Materialized shapes, bottom first
        output_path: Path to save the PNG file
        **kwargs: Additional parameters for PNGRenderer

    Returns:
        Path to the saved PNG file
    """
    renderer = PNGRenderer(**kwargs)
    return renderer.save(shapes, output_path)
