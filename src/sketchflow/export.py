"""
File export functionality for diagrams.

This module writes rendered pages to files:
- SVG files (.svg) - Vector output from the SVG renderer
- PNG images - Rasterized output at a configurable resolution

Shapes whose kind neither renderer understands are skipped, and each skip is
logged as a warning here rather than by the renderers.
"""

from pathlib import Path
from typing import Iterable, List

from .logging import get_logger
from .models import Shape
from .png_renderer import PNGRenderer
from .svg_renderer import DEFAULT_BACKGROUND, DEFAULT_PADDING, SvgRenderer

logger = get_logger("export")


class DiagramExporter:
    """
    Exports materialized shapes to SVG and PNG files.

    Attributes:
        background: Background fill for exported images.
        padding: Space around the shape bounds, in canvas units.
    """

    def __init__(self, background: str = DEFAULT_BACKGROUND, padding: float = DEFAULT_PADDING):
        """
        Initialize the diagram exporter.

        Args:
            background: Background color (e.g., "#ffffff").
            padding: Padding around the diagram in canvas units.
        """
        self.background = background
        self.padding = padding

    def _log_skipped(self, skipped: List[Shape]) -> None:
        for shape in skipped:
            logger.warning("Skipping unsupported shape %s of kind %r", shape.id, shape.kind)

    def save_svg(self, shapes: Iterable[Shape], filename: str) -> None:
        """
        Save shapes to an SVG file.

        Args:
            shapes: Materialized shapes in z-order.
            filename: Output filename (should end in .svg).
        """
        shapes = list(shapes)
        renderer = SvgRenderer(background=self.background, padding=self.padding)
        self._log_skipped(renderer.unsupported(shapes))

        output_path = Path(filename)
        output_path.write_text(renderer.render(shapes), encoding="utf-8")
        logger.info("Wrote SVG with %d shapes to %s", len(shapes), output_path)

    def save_png(self, shapes: Iterable[Shape], filename: str, scale: float = 2) -> None:
        """
        Save shapes as a PNG image.

        Args:
            shapes: Materialized shapes in z-order.
            filename: Output filename (should end in .png).
            scale: Resolution multiplier for crisp output (default 2 for retina).

        Example:
            >>> exporter = DiagramExporter(padding=16)
            >>> exporter.save_png(page.shapes, "output.png", scale=3)
        """
        shapes = list(shapes)
        renderer = PNGRenderer(scale=scale, background=self.background, padding=self.padding)
        self._log_skipped(renderer.unsupported(shapes))

        output_path = Path(filename)
        renderer.save(shapes, str(output_path))
        logger.info("Wrote PNG with %d shapes to %s", len(shapes), output_path)
