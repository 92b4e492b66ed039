"""
Main diagram generator module.

Combines parsing, materialization and rendering to turn DSL text into
shapes on a page and into SVG or PNG images.
"""

import math
from typing import Any, Iterable, Optional

from .document import ARROW_PADDING, Materializer, Page
from .export import DiagramExporter
from .parser import Parser, parse_json
from .svg_renderer import DEFAULT_BACKGROUND, DEFAULT_PADDING, SvgRenderer


class DiagramGenerator:
    """
    Generate diagrams from simple text descriptions.

    Example:
        >>> generator = DiagramGenerator()
        >>> svg = generator.render_svg('''
        ...     rect 0,0 "A"
        ...     rect 300,0 "B"
        ...     arrow "A" -> "B"
        ... ''')
    """

    def __init__(
        self,
        padding: float = DEFAULT_PADDING,
        background: str = DEFAULT_BACKGROUND,
        arrow_padding: float = ARROW_PADDING,
        scale: float = 2,
    ):
        """
        Initialize the diagram generator.

        Args:
            padding: Space around the shape bounds in exported images
            background: Background color of exported images
            arrow_padding: Gap between a connector tip and its target shape
            scale: Resolution multiplier for PNG output
        """
        for name, value in (("padding", padding), ("arrow_padding", arrow_padding)):
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite number >= 0")
        if not isinstance(scale, (int, float)) or not math.isfinite(scale) or scale <= 0:
            raise ValueError("scale must be a finite number > 0")
        if not isinstance(background, str) or not background:
            raise ValueError("background must be a non-empty color string")

        self.padding = padding
        self.background = background
        self.arrow_padding = arrow_padding
        self.scale = scale

        self.parser = Parser()
        self.renderer = SvgRenderer(background=background, padding=padding)
        self.exporter = DiagramExporter(background=background, padding=padding)

    def compile(self, input_text: str, page: Optional[Page] = None) -> Page:
        """
        Parse DSL text and materialize it onto a page.

        Args:
            input_text: Multi-line DSL source
            page: Existing page to add to; a new page when omitted

        Returns:
            The page holding the new shapes
        """
        return self._materialize(self.parser.parse(input_text), page)

    def compile_records(
        self, records: Iterable[Any], page: Optional[Page] = None
    ) -> Page:
        """Materialize structured instruction records onto a page."""
        return self._materialize(self.parser.parse_records(records), page)

    def compile_json(self, input_text: str, page: Optional[Page] = None) -> Page:
        """Materialize a JSON array of instruction records onto a page."""
        return self._materialize(parse_json(input_text), page)

    def _materialize(self, instructions, page: Optional[Page]) -> Page:
        page = page if page is not None else Page()
        Materializer(page, arrow_padding=self.arrow_padding).apply(instructions)
        return page

    def render_svg(self, input_text: str) -> str:
        """
        Generate an SVG document from input text.

        Args:
            input_text: Multi-line DSL source

        Returns:
            SVG markup as a string
        """
        return self.renderer.render(self.compile(input_text).shapes)

    def save_svg(self, input_text: str, filename: str) -> None:
        """
        Generate a diagram and save it to an SVG file.

        Args:
            input_text: Multi-line DSL source
            filename: Output filename (should end in .svg)
        """
        self.exporter.save_svg(self.compile(input_text).shapes, filename)

    def save_png(self, input_text: str, filename: str) -> None:
        """
        Generate a diagram and save it as a PNG image.

        Args:
            input_text: Multi-line DSL source
            filename: Output filename (should end in .png)

        Example:
            >>> generator = DiagramGenerator(scale=3)
            >>> generator.save_png('rect 0,0 "Box"', "diagram.png")
        """
        self.exporter.save_png(self.compile(input_text).shapes, filename, scale=self.scale)
