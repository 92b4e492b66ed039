"""
Sketchflow - Diagrams from a small text language

A Python library that compiles a line-oriented diagram DSL into positioned
shapes, and renders them to SVG or PNG.

Example:
    >>> from sketchflow import DiagramGenerator
    >>> generator = DiagramGenerator()
    >>> svg = generator.render_svg('''
    ...     rect 0,0 "Client"
    ...     rect 400,0 "Server"
    ...     arrow "Client" -> "Server" label="HTTP"
    ... ''')

Layout Block Example:
    >>> from sketchflow import parse_dsl
    >>> instructions = parse_dsl('''
    ...     stack vertical 10,20 gap=15 [
    ...       rect 100x30 "Top"
    ...       rect 200x40 "Bottom"
    ...     ]
    ... ''')
    >>> [i.position for i in instructions]
    [Point(x=10.0, y=20.0), Point(x=10.0, y=65.0)]
"""

from .document import Materializer, Page
from .errors import DocumentError, LayoutError, ParseError, ResolutionError, SketchflowError
from .export import DiagramExporter
from .generator import DiagramGenerator
from .geometry import border_point, shape_bounds, shape_center
from .layout import LayoutBox, auto_place, grid_shapes, stack_shapes
from .lexer import strip_comment, tokenize
from .models import (
    Binding,
    ConnectorInstruction,
    Point,
    Shape,
    ShapeBounds,
    ShapeInstruction,
    ShapeKind,
    ShapeStyle,
    Size,
    Token,
)
from .parser import Parser, parse_dsl, parse_json
from .png_renderer import PNGRenderer
from .svg_renderer import SvgRenderer, render_svg
from .text import estimate_label_box

__version__ = "0.1.0"

__all__ = [
    # Main API
    "DiagramGenerator",
    "DiagramExporter",
    # Parser
    "Parser",
    "parse_dsl",
    "parse_json",
    "tokenize",
    "strip_comment",
    # Models
    "ShapeKind",
    "Point",
    "Size",
    "Token",
    "ShapeStyle",
    "ShapeInstruction",
    "ConnectorInstruction",
    "ShapeBounds",
    "Shape",
    "Binding",
    # Layout and geometry
    "LayoutBox",
    "stack_shapes",
    "grid_shapes",
    "auto_place",
    "shape_bounds",
    "shape_center",
    "border_point",
    "estimate_label_box",
    # Document
    "Page",
    "Materializer",
    # Renderers
    "SvgRenderer",
    "PNGRenderer",
    "render_svg",
    # Errors
    "SketchflowError",
    "ParseError",
    "LayoutError",
    "ResolutionError",
    "DocumentError",
]
