"""
Data models for diagram compilation.

This module contains the dataclasses that flow between the parser, the layout
expander, the materializer and the renderers. Instructions are plain text-level
descriptions; shapes are materialized records with resolved geometry.

Classes:
    ShapeKind: Closed set of shape kinds understood by every stage.
    Point: An (x, y) coordinate.
    Size: A (w, h) pair of positive dimensions.
    Token: One lexical token of a DSL line.
    ShapeStyle: Validated style options of an instruction or shape.
    ShapeInstruction: A parsed basic shape statement.
    ConnectorInstruction: A parsed arrow statement.
    LayoutBlock: A stack/grid header with its nested instructions.
    ShapeBounds: Axis-aligned bounding box of a shape.
    Shape: A materialized, positioned shape record.
    Binding: Link from a connector terminal to the shape it targets.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


class ShapeKind(str, Enum):
    """Shape kinds; the value is the DSL keyword."""

    RECTANGLE = "rect"
    ELLIPSE = "ellipse"
    TEXT = "text"
    NOTE = "note"
    FRAME = "frame"
    CONNECTOR = "arrow"

    @classmethod
    def from_keyword(cls, keyword: str) -> Optional["ShapeKind"]:
        """Return the kind for a DSL keyword, or None if it is not one."""
        for kind in cls:
            if kind.value == keyword:
                return kind
        return None

    @property
    def has_text_body(self) -> bool:
        """Whether content is the shape body (text, note) rather than a label."""
        return self in (ShapeKind.TEXT, ShapeKind.NOTE)


@dataclass(frozen=True)
class Point:
    """An (x, y) coordinate in canvas units."""

    x: float
    y: float


@dataclass(frozen=True)
class Size:
    """Width and height of a shape."""

    w: float
    h: float


@dataclass(frozen=True)
class Token:
    """
    A single token produced by the lexer.

    Attributes:
        value: Token text with quotes removed and escapes applied.
        quoted: True when the token starts with a quoted region.
    """

    value: str
    quoted: bool = False


@dataclass
class ShapeStyle:
    """
    Style options attached to an instruction or shape.

    Every field is optional at parse time; the materializer fills in defaults.

    Attributes:
        color: Color name (or a literal color on shapes loaded from a page).
        fill: Fill style: none, semi, solid or pattern.
        dash: Dash style: draw, solid, dashed or dotted.
        font: Font family: draw, mono, sans or serif.
        size: Size tier: s, m, l or xl.
    """

    color: Optional[str] = None
    fill: Optional[str] = None
    dash: Optional[str] = None
    font: Optional[str] = None
    size: Optional[str] = None

    def as_dict(self) -> Dict[str, str]:
        """Return the options that are set, keyed by option name."""
        values = {
            "color": self.color,
            "fill": self.fill,
            "dash": self.dash,
            "font": self.font,
            "size": self.size,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass
class ShapeInstruction:
    """
    A parsed non-connector statement such as ``rect 0,0 100x40 "Box"``.

    Attributes:
        kind: Shape kind (never CONNECTOR).
        position: Absolute position, or None to auto-place.
        size: Explicit size from a ``WxH`` token or ``size=WxH``.
        dimensions: Explicit size from ``dimensions=WxH``; wins over ``size``.
        content: Body text for text and note shapes.
        label: Label for rectangles, ellipses and frames.
        style: Validated style options.
        shape_id: Custom id from ``id=``.
        line: 1-based source line (0 for structured input).
    """

    kind: ShapeKind
    position: Optional[Point] = None
    size: Optional[Size] = None
    dimensions: Optional[Size] = None
    content: Optional[str] = None
    label: Optional[str] = None
    style: ShapeStyle = field(default_factory=ShapeStyle)
    shape_id: Optional[str] = None
    line: int = 0

    @property
    def text(self) -> Optional[str]:
        """Content for text-bodied kinds, label for everything else."""
        return self.content if self.kind.has_text_body else self.label


@dataclass
class ConnectorInstruction:
    """
    A parsed arrow statement such as ``arrow "A" -> 300,200 color=red``.

    Endpoints stay unresolved text until materialization: a coordinate,
    a shape id or a shape label.
    """

    source: str
    target: str
    label: Optional[str] = None
    style: ShapeStyle = field(default_factory=ShapeStyle)
    shape_id: Optional[str] = None
    line: int = 0

    @property
    def kind(self) -> ShapeKind:
        return ShapeKind.CONNECTOR


Instruction = Union[ShapeInstruction, ConnectorInstruction]


@dataclass
class LayoutBlock:
    """
    A stack or grid block before expansion.

    Attributes:
        mode: "stack" or "grid".
        origin: Top-left corner of the first placed shape.
        gap: Space between neighbouring shapes.
        direction: "vertical" or "horizontal" (stack only).
        cols: Column count (grid only).
        nested: Instructions between ``[`` and ``]``.
        line: 1-based line of the block header.
    """

    mode: str
    origin: Point
    gap: float
    direction: Optional[str] = None
    cols: Optional[int] = None
    nested: List[ShapeInstruction] = field(default_factory=list)
    line: int = 0


@dataclass(frozen=True)
class ShapeBounds:
    """Axis-aligned bounding box of a shape."""

    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> Point:
        return Point(self.x + self.w / 2, self.y + self.h / 2)


@dataclass
class Shape:
    """
    A materialized shape on a page.

    Connectors keep ``start`` and ``end`` relative to ``(x, y)``; their ``w``
    and ``h`` are unused. Shapes loaded from an external page may carry a
    ``kind`` outside ShapeKind as a plain string.

    Attributes:
        id: Shape id, always prefixed with ``shape:``.
        kind: Shape kind.
        x: Left edge (connectors: min of both endpoints).
        y: Top edge (connectors: min of both endpoints).
        w: Stored width.
        h: Stored height.
        label: Label, frame name or body text.
        style: Fully resolved style.
        start: Connector start offset.
        end: Connector end offset.
    """

    id: str
    kind: Union[ShapeKind, str]
    x: float = 0
    y: float = 0
    w: float = 0
    h: float = 0
    label: str = ""
    style: ShapeStyle = field(default_factory=ShapeStyle)
    start: Optional[Point] = None
    end: Optional[Point] = None

    @property
    def start_point(self) -> Optional[Point]:
        """Absolute connector start, or None for non-connectors."""
        if self.start is None:
            return None
        return Point(self.x + self.start.x, self.y + self.start.y)

    @property
    def end_point(self) -> Optional[Point]:
        """Absolute connector end, or None for non-connectors."""
        if self.end is None:
            return None
        return Point(self.x + self.end.x, self.y + self.end.y)


@dataclass(frozen=True)
class Binding:
    """Link from a connector terminal ("start" or "end") to a shape."""

    connector_id: str
    shape_id: str
    terminal: str
