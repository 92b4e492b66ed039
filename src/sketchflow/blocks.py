"""
Layout expander for stack and grid blocks.

A block is a header line, nested shape lines and a closing ``]``::

    stack vertical 10,20 gap=15 [
      rect 100x30 "Top"
      rect 200x40 "Bottom"
    ]

    grid 0,0 cols=3 gap=10 [
      ellipse "A"
      ...
    ]

Nested lines are parsed without positions, sized with resolve_dimensions
and placed by the layout engine; the result is a flat list of positioned
instructions in source order.
"""

import re
from dataclasses import replace
from typing import List, Tuple

from .errors import LayoutError, ParseError
from .instructions import parse_instruction, parse_position
from .layout import LayoutBox, grid_shapes, stack_shapes
from .lexer import strip_comment, tokenize
from .models import LayoutBlock, Point, ShapeInstruction, ShapeKind, Size
from .styles import DEFAULT_DIMENSIONS, NOTE_DIMENSIONS_BY_SIZE
from .text import estimate_label_box, line_count, line_height

STACK_HEADER_PATTERN = re.compile(
    r"^stack\s+(vertical|horizontal)\s+(\S+)\s+gap=([0-9]+(?:\.[0-9]+)?)\s*\[$",
    re.IGNORECASE,
)
GRID_HEADER_PATTERN = re.compile(
    r"^grid\s+(\S+)\s+cols=(\d+)\s+gap=([0-9]+(?:\.[0-9]+)?)\s*\[$",
    re.IGNORECASE,
)

BLOCK_CLOSE = "]"
LABEL_FIT_KINDS = (ShapeKind.RECTANGLE, ShapeKind.ELLIPSE)


def block_mode(line: str) -> str:
    """Return "stack" or "grid" for a block header line, else an empty string."""
    head = line.split(None, 1)[0].lower() if line.strip() else ""
    return head if head in ("stack", "grid") else ""


def parse_block_header(line: str, line_number: int) -> LayoutBlock:
    """Parse a stack or grid header into an empty LayoutBlock."""
    mode = block_mode(line)

    if mode == "stack":
        match = STACK_HEADER_PATTERN.match(line)
        if not match:
            raise ParseError("Invalid stack syntax", line=line_number)
        direction, origin_text, gap_text = match.groups()
        return LayoutBlock(
            mode=mode,
            direction=direction.lower(),
            origin=parse_position(origin_text, line_number),
            gap=float(gap_text),
            line=line_number,
        )

    match = GRID_HEADER_PATTERN.match(line)
    if not match:
        raise ParseError("Invalid grid syntax", line=line_number)
    origin_text, cols_text, gap_text = match.groups()
    cols = int(cols_text)
    if cols <= 0:
        raise ParseError("Invalid grid cols", line=line_number, token=cols_text)
    return LayoutBlock(
        mode=mode,
        origin=parse_position(origin_text, line_number),
        cols=cols,
        gap=float(gap_text),
        line=line_number,
    )


def read_block(lines: List[str], start: int) -> Tuple[LayoutBlock, int]:
    """
    Read a block whose header is ``lines[start]``.

    Args:
        lines: All source lines.
        start: 0-based index of the header line.

    Returns:
        The block with its nested instructions, and the index of the
        closing ``]`` line.

    Raises:
        ParseError: On nested blocks, arrows inside the block or a missing
            closing bracket.
    """
    header = strip_comment(lines[start]).strip()
    block = parse_block_header(header, start + 1)

    for index in range(start + 1, len(lines)):
        line = strip_comment(lines[index]).strip()
        if not line:
            continue
        if line == BLOCK_CLOSE:
            return block, index

        line_number = index + 1
        if block_mode(line):
            raise ParseError("Nested layout blocks are not supported", line=line_number)

        instruction = parse_instruction(
            tokenize(line, line_number), line_number, allow_position=False
        )
        if not isinstance(instruction, ShapeInstruction):
            raise ParseError(
                f"Arrow instructions are not supported in {block.mode} blocks",
                line=line_number,
            )
        block.nested.append(instruction)

    raise ParseError(f"Unterminated {block.mode} block", line=block.line)


def resolve_dimensions(instruction: ShapeInstruction) -> Size:
    """
    Size a shape instruction the way materialization will.

    Precedence: ``dimensions=``, then an explicit ``WxH`` size, then the
    note tier table, then text line metrics, then the kind default.
    Rectangles and ellipses on their default box grow to fit their label.
    """
    if instruction.kind == ShapeKind.CONNECTOR:
        raise ParseError(
            "Arrow instructions are not supported in stack/grid blocks",
            line=instruction.line,
        )

    if instruction.dimensions is not None:
        return instruction.dimensions

    if instruction.size is not None:
        return instruction.size

    tier = instruction.style.size

    if instruction.kind == ShapeKind.NOTE and tier in NOTE_DIMENSIONS_BY_SIZE:
        return NOTE_DIMENSIONS_BY_SIZE[tier]

    if instruction.kind == ShapeKind.TEXT:
        return Size(
            w=DEFAULT_DIMENSIONS[ShapeKind.TEXT].w,
            h=line_height(tier) * line_count(instruction.content),
        )

    base = DEFAULT_DIMENSIONS[instruction.kind]
    if instruction.kind in LABEL_FIT_KINDS and instruction.label:
        fit = estimate_label_box(instruction.label, tier, instruction.style.font)
        return Size(w=max(base.w, fit.w), h=max(base.h, fit.h))
    return base


def expand_block(block: LayoutBlock) -> List[ShapeInstruction]:
    """Assign absolute positions to the nested instructions of a block."""
    boxes = []
    for instruction in block.nested:
        size = resolve_dimensions(instruction)
        boxes.append(LayoutBox(width=size.w, height=size.h, payload=instruction))

    try:
        if block.mode == "stack":
            placed = stack_shapes(boxes, block.direction, block.origin, block.gap)
        else:
            placed = grid_shapes(boxes, block.origin, block.cols, block.gap)
    except LayoutError as exc:
        raise LayoutError(f"Line {block.line}: {exc}") from exc

    return [replace(box.payload, position=Point(box.x, box.y)) for box in placed]
