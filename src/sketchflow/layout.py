"""
Layout engine for stack and grid blocks.

Pure placement functions: they take sized boxes and return copies with
absolute x/y coordinates. Invalid geometry is rejected, never clamped.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Iterable, List

from .errors import LayoutError
from .models import Point

STACK_DIRECTIONS = ("vertical", "horizontal")

# Vertical space left between existing content and an auto-placed shape
AUTO_PLACE_GAP = 40


@dataclass
class LayoutBox:
    """A box to place; ``payload`` carries the caller's object through."""

    width: float
    height: float
    x: float = 0
    y: float = 0
    payload: Any = None


def _validate_dimension(label: str, value: float) -> None:
    if not math.isfinite(value) or value <= 0:
        raise LayoutError(f"Invalid {label}: {value}. Must be a positive number.")


def _validate_gap(gap: float) -> None:
    if not math.isfinite(gap) or gap < 0:
        raise LayoutError(f"Invalid gap: {gap}. Must be zero or greater.")


def _validate_origin(origin: Point) -> None:
    if not math.isfinite(origin.x) or not math.isfinite(origin.y):
        raise LayoutError(f"Invalid origin: ({origin.x}, {origin.y})")


def stack_shapes(
    boxes: List[LayoutBox], direction: str, origin: Point, gap: float
) -> List[LayoutBox]:
    """
    Place boxes one after another along a single axis.

    Args:
        boxes: Boxes in placement order.
        direction: "vertical" (top to bottom) or "horizontal" (left to right).
        origin: Position of the first box.
        gap: Space between consecutive boxes.

    Returns:
        Positioned copies of the boxes, in input order.
    """
    if direction not in STACK_DIRECTIONS:
        raise LayoutError(
            f"Invalid direction: {direction}. Must be vertical or horizontal."
        )
    _validate_origin(origin)
    _validate_gap(gap)

    cursor_x = origin.x
    cursor_y = origin.y
    placed: List[LayoutBox] = []

    for box in boxes:
        _validate_dimension("width", box.width)
        _validate_dimension("height", box.height)

        placed.append(replace(box, x=cursor_x, y=cursor_y))

        if direction == "vertical":
            cursor_y += box.height + gap
        else:
            cursor_x += box.width + gap

    return placed


def grid_shapes(
    boxes: List[LayoutBox], origin: Point, cols: int, gap: float
) -> List[LayoutBox]:
    """
    Place boxes row by row in a grid.

    Each column is as wide as its widest box and each row as tall as its
    tallest box; box ``i`` goes to column ``i % cols`` and row ``i // cols``.

    Args:
        boxes: Boxes in row-major order.
        origin: Top-left corner of the grid.
        cols: Number of columns (positive integer).
        gap: Space between columns and between rows.

    Returns:
        Positioned copies of the boxes, in input order.
    """
    _validate_origin(origin)
    _validate_gap(gap)

    if isinstance(cols, bool) or not isinstance(cols, int) or cols <= 0:
        raise LayoutError(f"Invalid cols: {cols}. Must be a positive integer.")

    if not boxes:
        return []

    # columns past the box count stay empty
    used_cols = min(cols, len(boxes))
    row_count = math.ceil(len(boxes) / cols)
    col_widths = [0.0] * used_cols
    row_heights = [0.0] * row_count

    for index, box in enumerate(boxes):
        _validate_dimension("width", box.width)
        _validate_dimension("height", box.height)

        col, row = index % cols, index // cols
        col_widths[col] = max(col_widths[col], box.width)
        row_heights[row] = max(row_heights[row], box.height)

    col_offsets = [origin.x] * used_cols
    for col in range(1, used_cols):
        col_offsets[col] = col_offsets[col - 1] + col_widths[col - 1] + gap

    row_offsets = [origin.y] * row_count
    for row in range(1, row_count):
        row_offsets[row] = row_offsets[row - 1] + row_heights[row - 1] + gap

    return [
        replace(box, x=col_offsets[index % cols], y=row_offsets[index // cols])
        for index, box in enumerate(boxes)
    ]


def auto_place(bounds: Iterable) -> Point:
    """
    Pick a position below all existing content.

    Args:
        bounds: ShapeBounds of the shapes already on the page.

    Returns:
        (0, 0) for an empty page, otherwise the left edge just below the
        lowest shape.
    """
    bottoms = [box.y + box.h for box in bounds]
    if not bottoms:
        return Point(0, 0)
    return Point(0, math.ceil(max(bottoms) + AUTO_PLACE_GAP))
