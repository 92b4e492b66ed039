"""
Shape geometry: bounding boxes, centers and border points.

Bounds are always derived from the stored shape fields and never cached.
"""

import math

from .models import Point, Shape, ShapeBounds, ShapeKind
from .styles import MIN_TEXT_WIDTH
from .text import line_count, line_height

BOX_KINDS = (ShapeKind.RECTANGLE, ShapeKind.ELLIPSE, ShapeKind.FRAME, ShapeKind.NOTE)


def shape_bounds(shape: Shape) -> ShapeBounds:
    """
    Compute the axis-aligned bounding box of a shape.

    Text height follows its line count; a connector spans its two endpoints
    with each side floored at 1. Kinds outside ShapeKind get an empty box
    at their origin.
    """
    if shape.kind == ShapeKind.CONNECTOR:
        start = shape.start_point or Point(shape.x, shape.y)
        end = shape.end_point or Point(shape.x, shape.y)
        return ShapeBounds(
            x=min(start.x, end.x),
            y=min(start.y, end.y),
            w=max(1, abs(end.x - start.x)),
            h=max(1, abs(end.y - start.y)),
        )

    if shape.kind == ShapeKind.TEXT:
        return ShapeBounds(
            x=shape.x,
            y=shape.y,
            w=max(MIN_TEXT_WIDTH, shape.w),
            h=line_count(shape.label) * line_height(shape.style.size),
        )

    if shape.kind in BOX_KINDS:
        return ShapeBounds(x=shape.x, y=shape.y, w=shape.w, h=shape.h)

    return ShapeBounds(x=shape.x, y=shape.y, w=0, h=0)


def shape_center(shape: Shape) -> Point:
    return shape_bounds(shape).center


def _pad(point: Point, dx: float, dy: float, padding: float) -> Point:
    if not padding:
        return point
    length = math.hypot(dx, dy)
    return Point(point.x + dx / length * padding, point.y + dy / length * padding)


def border_point(shape: Shape, toward: Point, padding: float = 0) -> Point:
    """
    Find where a ray from the shape's center toward a point leaves the shape.

    Ellipses use their elliptical outline; every other kind uses its
    bounding rectangle. The rectangle exit edge is the axis reached first:
    ``tY < tX`` exits through the top or bottom edge, otherwise through the
    left or right edge (on an exact tie both give the same corner).

    Args:
        shape: Shape to intersect.
        toward: Point the ray heads to.
        padding: Distance to push the result outward along the ray.

    Returns:
        The boundary point, or the unpadded center when ``toward`` is the
        center itself.
    """
    bounds = shape_bounds(shape)
    center = bounds.center
    dx = toward.x - center.x
    dy = toward.y - center.y

    if dx == 0 and dy == 0:
        return center

    half_w = bounds.w / 2
    half_h = bounds.h / 2

    if shape.kind == ShapeKind.ELLIPSE and half_w > 0 and half_h > 0:
        scale = 1 / math.hypot(dx / half_w, dy / half_h)
    else:
        t_x = half_w / abs(dx) if dx else math.inf
        t_y = half_h / abs(dy) if dy else math.inf
        scale = t_y if t_y < t_x else t_x

    edge = Point(center.x + dx * scale, center.y + dy * scale)
    return _pad(edge, dx, dy, padding)
