"""
In-memory page model and instruction materialization.

A Page is the boundary with the external document store: it holds the
shapes of one page in z-order plus the bindings that tie connector terminals
to shapes. The Materializer turns parsed instructions into shapes on a page,
resolving auto-placement, label-fit sizes and connector targets.

Bindings are kept in a networkx multigraph whose edges run from a connector
to the shape one of its terminals is attached to.
"""

import copy
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import networkx as nx

from .blocks import resolve_dimensions
from .errors import DocumentError, ResolutionError
from .geometry import border_point, shape_bounds, shape_center
from .instructions import POSITION_PATTERN, parse_position
from .layout import auto_place
from .logging import get_logger
from .models import (
    Binding,
    ConnectorInstruction,
    Instruction,
    Point,
    Shape,
    ShapeInstruction,
    ShapeKind,
    ShapeStyle,
)
from .styles import (
    DEFAULT_COLOR,
    DEFAULT_DASH,
    DEFAULT_FILL,
    DEFAULT_FONT,
    DEFAULT_NOTE_COLOR,
    DEFAULT_SIZE,
)

logger = get_logger("document")

SHAPE_ID_PREFIX = "shape:"

# Gap between a connector tip and the border of the shape it targets
ARROW_PADDING = 8

FRAME_EXPANSION_PADDING = 20

# A shape whose center lies within a frame grown by this much on every side
# counts as contained by the frame
FRAME_CONTAINMENT_TOLERANCE = 200

STYLE_FIELDS = ("color", "fill", "dash", "font", "size")


def normalize_shape_id(shape_id: str) -> str:
    """Prefix a custom id with ``shape:`` unless it already has it."""
    if shape_id.startswith(SHAPE_ID_PREFIX):
        return shape_id
    return f"{SHAPE_ID_PREFIX}{shape_id}"


class Page:
    """
    Shapes of a single page, in z-order, plus connector bindings.

    Example:
        >>> page = Page()
        >>> Materializer(page).apply(parse_dsl('rect 0,0 "A"'))
        ['shape:1']
    """

    def __init__(self, shapes: Optional[Iterable[Shape]] = None):
        self._shapes: List[Shape] = []
        self._bindings = nx.MultiDiGraph()
        for shape in shapes or []:
            self.add(shape)

    def __len__(self) -> int:
        return len(self._shapes)

    def __iter__(self):
        return iter(self._shapes)

    @property
    def shapes(self) -> List[Shape]:
        """Shapes in z-order, bottom first."""
        return list(self._shapes)

    def add(self, shape: Shape) -> None:
        if shape.id in self._bindings:
            raise DocumentError(f'Duplicate shape id "{shape.id}"')
        self._shapes.append(shape)
        self._bindings.add_node(shape.id)

    def get(self, shape_id: str) -> Optional[Shape]:
        for shape in self._shapes:
            if shape.id == shape_id:
                return shape
        return None

    def find(self, reference: str) -> Optional[Shape]:
        """
        Find a shape by id (with or without the ``shape:`` prefix) or label.

        Ids win over labels; among labels the lowest shape in z-order wins.
        """
        shape = self.get(reference) or self.get(normalize_shape_id(reference))
        if shape is not None:
            return shape

        for candidate in self._shapes:
            if candidate.label.strip() and candidate.label.strip() == reference:
                return candidate
        return None

    def next_id(self) -> str:
        """Return the lowest free ``shape:<n>`` id."""
        number = len(self._shapes) + 1
        while f"{SHAPE_ID_PREFIX}{number}" in self._bindings:
            number += 1
        return f"{SHAPE_ID_PREFIX}{number}"

    def reorder(self, shapes: List[Shape]) -> None:
        """Replace the z-order with a permutation of the current shapes."""
        if sorted(s.id for s in shapes) != sorted(s.id for s in self._shapes):
            raise DocumentError("Reordered shapes must match the page shapes")
        self._shapes = list(shapes)

    def bind(self, binding: Binding) -> None:
        for shape_id in (binding.connector_id, binding.shape_id):
            if shape_id not in self._bindings:
                raise DocumentError(f'Cannot bind unknown shape "{shape_id}"')
        self._bindings.add_edge(
            binding.connector_id,
            binding.shape_id,
            key=binding.terminal,
            terminal=binding.terminal,
        )

    def bindings(self) -> List[Binding]:
        return [
            Binding(connector_id=source, shape_id=target, terminal=data["terminal"])
            for source, target, data in self._bindings.edges(data=True)
        ]

    def bindings_for(self, shape_id: str) -> List[Binding]:
        """Bindings that attach connectors to the given shape."""
        if shape_id not in self._bindings:
            return []
        return [
            Binding(connector_id=source, shape_id=target, terminal=data["terminal"])
            for source, target, data in self._bindings.in_edges(shape_id, data=True)
        ]

    def bindings_of(self, connector_id: str) -> List[Binding]:
        """Bindings held by a connector, one per bound terminal."""
        if connector_id not in self._bindings:
            return []
        return [
            Binding(connector_id=source, shape_id=target, terminal=data["terminal"])
            for source, target, data in self._bindings.out_edges(connector_id, data=True)
        ]

    def copy(self) -> "Page":
        clone = Page()
        clone._shapes = copy.deepcopy(self._shapes)
        clone._bindings = self._bindings.copy()
        return clone

    def update_from(self, other: "Page") -> None:
        """Take over the contents of another page (used to commit a batch)."""
        self._shapes = other._shapes
        self._bindings = other._bindings

    def to_records(self) -> Dict[str, List[Dict[str, Any]]]:
        """Serialize shapes and bindings for the external document store."""
        shapes = []
        for shape in self._shapes:
            kind = shape.kind.value if isinstance(shape.kind, ShapeKind) else shape.kind
            record: Dict[str, Any] = {
                "id": shape.id,
                "type": kind,
                "x": shape.x,
                "y": shape.y,
                "w": shape.w,
                "h": shape.h,
                "label": shape.label,
            }
            record.update(shape.style.as_dict())
            if shape.start is not None and shape.end is not None:
                record["start"] = {"x": shape.start.x, "y": shape.start.y}
                record["end"] = {"x": shape.end.x, "y": shape.end.y}
            shapes.append(record)

        bindings = [
            {
                "type": "arrow",
                "fromId": binding.connector_id,
                "toId": binding.shape_id,
                "terminal": binding.terminal,
            }
            for binding in self.bindings()
        ]
        return {"shapes": shapes, "bindings": bindings}

    @classmethod
    def from_records(
        cls,
        shapes: Iterable[Dict[str, Any]],
        bindings: Iterable[Dict[str, Any]] = (),
    ) -> "Page":
        """
        Load a page from external shape records.

        Records need ``type`` (or ``kind``) and may carry ``id``, ``x``,
        ``y``, ``w``, ``h``, ``label``, style keys and, for connectors,
        ``start``/``end`` offsets. Types outside the known kinds are kept as
        plain strings so the renderers can skip them.
        """
        page = cls()
        for index, record in enumerate(shapes):
            page.add(_shape_from_record(record, index, page))
        for record in bindings:
            try:
                page.bind(
                    Binding(
                        connector_id=record["fromId"],
                        shape_id=record["toId"],
                        terminal=record["terminal"],
                    )
                )
            except KeyError as exc:
                raise DocumentError(f"Binding record is missing {exc}") from exc
        return page


def _record_number(record: Dict[str, Any], key: str, index: int) -> float:
    value = record.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DocumentError(f'Shape record {index} has an invalid "{key}"')
    if not math.isfinite(value):
        raise DocumentError(f'Shape record {index} has an invalid "{key}"')
    return value


def _record_point(record: Dict[str, Any], key: str, index: int) -> Optional[Point]:
    value = record.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise DocumentError(f'Shape record {index} has an invalid "{key}"')
    return Point(_record_number(value, "x", index), _record_number(value, "y", index))


def _shape_from_record(record: Dict[str, Any], index: int, page: Page) -> Shape:
    if not isinstance(record, dict):
        raise DocumentError(f"Shape record {index} must be an object")

    type_name = record.get("type", record.get("kind"))
    if not isinstance(type_name, str) or not type_name:
        raise DocumentError(f"Shape record {index} is missing a type")
    if type_name == "geo":
        type_name = "ellipse" if record.get("geo") == "ellipse" else "rect"
    kind: Union[ShapeKind, str] = ShapeKind.from_keyword(type_name) or type_name

    raw_id = record.get("id")
    shape_id = normalize_shape_id(raw_id) if isinstance(raw_id, str) and raw_id else page.next_id()

    style = ShapeStyle(
        **{key: record[key] for key in STYLE_FIELDS if isinstance(record.get(key), str)}
    )
    label = record.get("label", record.get("name", record.get("text", "")))

    return Shape(
        id=shape_id,
        kind=kind,
        x=_record_number(record, "x", index),
        y=_record_number(record, "y", index),
        w=_record_number(record, "w", index),
        h=_record_number(record, "h", index),
        label=label if isinstance(label, str) else "",
        style=style,
        start=_record_point(record, "start", index),
        end=_record_point(record, "end", index),
    )


def resolve_style(style: ShapeStyle, kind: ShapeKind) -> ShapeStyle:
    """Fill in default style values for a new shape."""
    default_color = DEFAULT_NOTE_COLOR if kind == ShapeKind.NOTE else DEFAULT_COLOR
    return ShapeStyle(
        color=style.color or default_color,
        fill=style.fill or DEFAULT_FILL,
        dash=style.dash or DEFAULT_DASH,
        font=style.font or DEFAULT_FONT,
        size=style.size or DEFAULT_SIZE,
    )


class Materializer:
    """
    Turns instructions into shapes and bindings on a page.

    A batch is all-or-nothing: instructions are applied to a staged copy of
    the page, and the page only changes once every instruction succeeded.

    After each batch frames are moved below every other shape, then grown
    to enclose the shapes whose centers sit on or near them.
    """

    def __init__(self, page: Optional[Page] = None, arrow_padding: float = ARROW_PADDING):
        if not math.isfinite(arrow_padding) or arrow_padding < 0:
            raise ValueError("arrow_padding must be a finite number >= 0")
        self.page = page if page is not None else Page()
        self.arrow_padding = arrow_padding

    def apply(self, instructions: Iterable[Instruction]) -> List[str]:
        """
        Materialize instructions in order.

        Args:
            instructions: Parsed instructions.

        Returns:
            Ids of the created shapes, in instruction order.

        Raises:
            ResolutionError: If a connector endpoint matches nothing.
            DocumentError: If a custom id is already taken.
        """
        staged = self.page.copy()
        ids = []

        for instruction in instructions:
            if isinstance(instruction, ConnectorInstruction):
                shape = self._create_connector(staged, instruction)
            else:
                shape = self._create_shape(staged, instruction)
            ids.append(shape.id)

        self._frames_to_bottom(staged)
        self._expand_frames(staged)

        self.page.update_from(staged)
        logger.debug("Materialized %d shapes", len(ids))
        return ids

    def _shape_id(self, page: Page, custom: Optional[str], line: int) -> str:
        if not custom:
            return page.next_id()
        shape_id = normalize_shape_id(custom)
        if page.get(shape_id) is not None:
            raise DocumentError(f'Duplicate shape id "{shape_id}"', line=line)
        return shape_id

    def _create_shape(self, page: Page, instruction: ShapeInstruction) -> Shape:
        if instruction.position is not None:
            position = instruction.position
        else:
            position = auto_place(shape_bounds(shape) for shape in page)

        size = resolve_dimensions(instruction)

        if instruction.kind == ShapeKind.FRAME:
            label = instruction.label or "Frame"
        else:
            label = instruction.text or ""

        shape = Shape(
            id=self._shape_id(page, instruction.shape_id, instruction.line),
            kind=instruction.kind,
            x=position.x,
            y=position.y,
            w=size.w,
            h=size.h,
            label=label,
            style=resolve_style(instruction.style, instruction.kind),
        )
        page.add(shape)
        logger.debug(
            "Created %s %s at (%s, %s) size %sx%s",
            shape.kind.value,
            shape.id,
            shape.x,
            shape.y,
            shape.w,
            shape.h,
        )
        return shape

    def _resolve_endpoint(
        self, page: Page, reference: str, line: int
    ) -> Tuple[Point, Optional[Shape]]:
        """Resolve a coordinate, shape id or label to a point and its shape."""
        if POSITION_PATTERN.match(reference):
            return parse_position(reference, line), None

        shape = page.find(reference)
        if shape is None:
            raise ResolutionError(reference, line=line)
        return shape_center(shape), shape

    def _create_connector(self, page: Page, instruction: ConnectorInstruction) -> Shape:
        source_ref, source_shape = self._resolve_endpoint(
            page, instruction.source, instruction.line
        )
        target_ref, target_shape = self._resolve_endpoint(
            page, instruction.target, instruction.line
        )

        start = source_ref
        if source_shape is not None:
            start = border_point(source_shape, target_ref, self.arrow_padding)
        end = target_ref
        if target_shape is not None:
            end = border_point(target_shape, source_ref, self.arrow_padding)

        origin_x = min(start.x, end.x)
        origin_y = min(start.y, end.y)

        shape = Shape(
            id=self._shape_id(page, instruction.shape_id, instruction.line),
            kind=ShapeKind.CONNECTOR,
            x=origin_x,
            y=origin_y,
            label=instruction.label or "",
            style=resolve_style(instruction.style, ShapeKind.CONNECTOR),
            start=Point(start.x - origin_x, start.y - origin_y),
            end=Point(end.x - origin_x, end.y - origin_y),
        )
        page.add(shape)

        for terminal, target in (("start", source_shape), ("end", target_shape)):
            if target is not None:
                page.bind(Binding(connector_id=shape.id, shape_id=target.id, terminal=terminal))
                logger.debug("Bound %s %s to %s", shape.id, terminal, target.id)

        return shape

    def _frames_to_bottom(self, page: Page) -> None:
        frames = [shape for shape in page if shape.kind == ShapeKind.FRAME]
        others = [shape for shape in page if shape.kind != ShapeKind.FRAME]
        page.reorder(frames + others)

    def _expand_frames(self, page: Page) -> None:
        others = [shape for shape in page if shape.kind != ShapeKind.FRAME]

        for frame in page:
            if frame.kind != ShapeKind.FRAME:
                continue

            contained = [
                shape_bounds(shape) for shape in others if _is_near_frame(shape, frame)
            ]
            if not contained:
                continue

            left = min(frame.x, min(b.x for b in contained) - FRAME_EXPANSION_PADDING)
            top = min(frame.y, min(b.y for b in contained) - FRAME_EXPANSION_PADDING)
            right = max(
                frame.x + frame.w,
                max(b.right for b in contained) + FRAME_EXPANSION_PADDING,
            )
            bottom = max(
                frame.y + frame.h,
                max(b.bottom for b in contained) + FRAME_EXPANSION_PADDING,
            )

            if (left, top, right - left, bottom - top) != (frame.x, frame.y, frame.w, frame.h):
                logger.debug("Expanded frame %s to enclose %d shapes", frame.id, len(contained))
                frame.x, frame.y = left, top
                frame.w, frame.h = right - left, bottom - top


def _is_near_frame(shape: Shape, frame: Shape) -> bool:
    center = shape_center(shape)
    return (
        frame.x - FRAME_CONTAINMENT_TOLERANCE
        <= center.x
        <= frame.x + frame.w + FRAME_CONTAINMENT_TOLERANCE
        and frame.y - FRAME_CONTAINMENT_TOLERANCE
        <= center.y
        <= frame.y + frame.h + FRAME_CONTAINMENT_TOLERANCE
    )
