"""
Parser module for the diagram DSL.

Handles parsing of DSL text, and of equivalent structured instruction lists,
into a flat list of instructions ready for materialization.
"""

import json
import math
import re
from typing import Any, Dict, Iterable, List, Optional

from .blocks import block_mode, expand_block, read_block
from .errors import ParseError
from .instructions import (
    Conflict,
    apply_size_option,
    build_style,
    parse_instruction,
    reconcile_content,
)
from .lexer import strip_comment, tokenize
from .models import (
    ConnectorInstruction,
    Instruction,
    Point,
    ShapeInstruction,
    ShapeKind,
    Size,
)

LINE_BREAK = re.compile(r"\r?\n")
RECORD_STYLE_KEYS = ("color", "dash", "fill", "font")
GEO_KINDS = {"rectangle": ShapeKind.RECTANGLE, "ellipse": ShapeKind.ELLIPSE}
RECORD_TYPES = {"text": ShapeKind.TEXT, "note": ShapeKind.NOTE, "frame": ShapeKind.FRAME}


class Parser:
    """Parses DSL text or structured records into instructions."""

    def parse(self, input_text: str) -> List[Instruction]:
        """
        Parse DSL text into a flat list of instructions.

        Layout blocks are expanded in place, so their nested shapes come
        back with absolute positions, in source order.

        Args:
            input_text: Multi-line DSL source.

        Returns:
            Instructions in source order.

        Raises:
            ParseError: If any line is invalid; nothing is returned then.
            LayoutError: If a block cannot be laid out.
        """
        lines = LINE_BREAK.split(input_text)
        instructions: List[Instruction] = []
        index = 0

        while index < len(lines):
            line = strip_comment(lines[index]).strip()

            if not line:
                index += 1
                continue

            if block_mode(line):
                block, close_index = read_block(lines, index)
                instructions.extend(expand_block(block))
                index = close_index + 1
                continue

            line_number = index + 1
            instructions.append(
                parse_instruction(tokenize(line, line_number), line_number)
            )
            index += 1

        return instructions

    def parse_records(self, records: Iterable[Any]) -> List[Instruction]:
        """
        Convert structured instruction records into instructions.

        Each record is a mapping with either ``shape`` (a DSL keyword) or a
        ``type``/``geo`` pair, plus optional ``x``/``y``, ``w``/``h``,
        ``content``/``text``, ``label``, style keys and ``id``. Arrows need
        ``from`` and ``to`` as a string, ``[x, y]`` or ``{"x": .., "y": ..}``.

        Raises:
            ParseError: Naming the 0-based index of the first bad record.
        """
        if isinstance(records, (str, bytes)) or not isinstance(records, Iterable):
            raise ParseError("Expected a list of shape instructions")

        instructions: List[Instruction] = []
        for index, raw in enumerate(records):
            try:
                instructions.append(self._parse_record(raw, index))
            except ParseError as exc:
                if exc.index is not None:
                    raise
                raise ParseError(
                    f"Instruction at index {index}: {exc.reason}",
                    token=exc.token,
                    index=index,
                ) from exc
        return instructions

    def _parse_record(self, raw: Any, index: int) -> Instruction:
        if not isinstance(raw, dict):
            raise ParseError(
                f"Instruction at index {index} must be an object", index=index
            )

        kind = self._record_kind(raw, index)
        options = {
            key: raw[key]
            for key in RECORD_STYLE_KEYS
            if isinstance(raw.get(key), str) and raw[key]
        }
        style = build_style(options, 0)
        size = raw.get("size")
        explicit_size: Optional[Size] = None
        if isinstance(size, str) and size:
            explicit_size = apply_size_option(
                size, style, 0, allow_dimensions=kind != ShapeKind.CONNECTOR
            )

        content = _optional_string(raw.get("content")) or _optional_string(raw.get("text"))
        label = _optional_string(raw.get("label"))
        shape_id = _optional_string(raw.get("id"))

        if kind == ShapeKind.CONNECTOR:
            if "from" not in raw or "to" not in raw:
                raise ParseError(
                    f'Arrow instruction at index {index} is missing "from" or "to"',
                    index=index,
                )
            return ConnectorInstruction(
                source=_endpoint(raw["from"], f"instruction[{index}].from"),
                target=_endpoint(raw["to"], f"instruction[{index}].to"),
                label=label or content,
                style=style,
                shape_id=shape_id,
            )

        instruction = ShapeInstruction(kind=kind, style=style, shape_id=shape_id)
        instruction.position = _record_position(raw, index)
        instruction.size = _record_size(raw, index) or explicit_size

        merged = reconcile_content(content, label)
        if isinstance(merged, Conflict):
            what = "Text content" if kind.has_text_body else "Label"
            raise ParseError(f"{what} was provided twice", token=merged.option)
        if kind.has_text_body:
            instruction.content = merged.value
        else:
            instruction.label = merged.value
        return instruction

    def _record_kind(self, raw: Dict[str, Any], index: int) -> ShapeKind:
        shape = raw.get("shape")
        if isinstance(shape, str):
            kind = ShapeKind.from_keyword(shape)
            if kind is None:
                raise ParseError(
                    f'Unsupported shape "{shape}" at instruction index {index}',
                    token=shape,
                    index=index,
                )
            return kind

        record_type = raw.get("type")
        if record_type == "geo":
            geo = raw.get("geo")
            if geo not in GEO_KINDS:
                raise ParseError(
                    f'Unsupported geo style "{geo or ""}" at instruction index {index}',
                    index=index,
                )
            return GEO_KINDS[geo]
        if record_type in RECORD_TYPES:
            return RECORD_TYPES[record_type]
        if record_type == ShapeKind.CONNECTOR.value:
            return ShapeKind.CONNECTOR

        raise ParseError(
            f"Instruction at index {index} is missing a supported shape/type",
            index=index,
        )


def _optional_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _number(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"Invalid {label}")
    if not math.isfinite(value):
        raise ParseError(f"Invalid {label}")
    return value


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.6f}".rstrip("0").rstrip(".")


def _endpoint(value: Any, label: str) -> str:
    if isinstance(value, str):
        target = value.strip()
        if not target:
            raise ParseError(f"Invalid {label}")
        return target

    if isinstance(value, (list, tuple)) and len(value) == 2:
        x = _number(value[0], f"{label}.x")
        y = _number(value[1], f"{label}.y")
    elif isinstance(value, dict):
        x = _number(value.get("x"), f"{label}.x")
        y = _number(value.get("y"), f"{label}.y")
    else:
        raise ParseError(f"Invalid {label}")
    return f"{_format_number(x)},{_format_number(y)}"


def _record_position(raw: Dict[str, Any], index: int) -> Optional[Point]:
    has_x, has_y = "x" in raw, "y" in raw
    if has_x != has_y:
        raise ParseError(
            f"Instruction at index {index} must provide both x and y", index=index
        )
    if not has_x:
        return None
    return Point(
        _number(raw["x"], f"instruction[{index}].x"),
        _number(raw["y"], f"instruction[{index}].y"),
    )


def _record_size(raw: Dict[str, Any], index: int) -> Optional[Size]:
    has_w, has_h = "w" in raw, "h" in raw
    if has_w != has_h:
        raise ParseError(
            f"Instruction at index {index} must provide both w and h", index=index
        )
    if not has_w:
        return None
    w = _number(raw["w"], f"instruction[{index}].w")
    h = _number(raw["h"], f"instruction[{index}].h")
    if w <= 0 or h <= 0:
        raise ParseError(
            f"Instruction at index {index} needs a positive w and h", index=index
        )
    return Size(w=w, h=h)


def parse_dsl(input_text: str) -> List[Instruction]:
    """
    Convenience function to parse DSL text.

    Args:
        input_text: Multi-line DSL source.

    Returns:
        List of instructions with layout blocks expanded.
    """
    parser = Parser()
    return parser.parse(input_text)


def parse_json(input_text: str) -> List[Instruction]:
    """Parse a JSON array of structured instruction records."""
    try:
        records = json.loads(input_text)
    except json.JSONDecodeError as exc:
        raise ParseError("Invalid JSON instruction input") from exc

    if not isinstance(records, list):
        raise ParseError("JSON input must be an array of shape instructions")
    return Parser().parse_records(records)
