"""
Instruction parser for single DSL statements.

Turns the tokens of one line into a ShapeInstruction or a
ConnectorInstruction. Grammar::

    arrow <from...> -> <to...> [key=value ...]
    <kind> [x,y] [WxH] [content] [key=value ...]

Option values are validated against the closed style vocabularies here, so
later stages can rely on them.
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .errors import ParseError
from .models import (
    ConnectorInstruction,
    Instruction,
    Point,
    ShapeInstruction,
    ShapeKind,
    ShapeStyle,
    Size,
    Token,
)
from .styles import (
    COLOR_HEX_BY_STYLE,
    DASH_STYLES,
    FILL_STYLES,
    FONT_STYLES,
    SIZE_TIERS,
)

CONNECTOR_MARKER = "->"

POSITION_PATTERN = re.compile(r"^\s*-?\d+(\.\d+)?\s*,\s*-?\d+(\.\d+)?\s*$")
DIMENSION_PATTERN = re.compile(r"^\s*\d+(\.\d+)?x\d+(\.\d+)?\s*$", re.IGNORECASE)

SHAPE_OPTION_KEYS = ("color", "fill", "dash", "font", "size", "dimensions", "id", "label", "pos")
CONNECTOR_OPTION_KEYS = ("color", "fill", "dash", "font", "size", "id", "label")

STYLE_VOCABULARIES = {
    "color": tuple(COLOR_HEX_BY_STYLE),
    "fill": FILL_STYLES,
    "dash": DASH_STYLES,
    "font": FONT_STYLES,
}


@dataclass(frozen=True)
class Resolved:
    """Reconciled content: at most one distinct value was supplied."""

    value: Optional[str]


@dataclass(frozen=True)
class Conflict:
    """Content supplied positionally and as an option with different text."""

    positional: str
    option: str


def reconcile_content(
    positional: Optional[str], option: Optional[str]
) -> Union[Resolved, Conflict]:
    """
    Merge content given as a positional token with a ``label=`` option.

    Identical values collapse into one; differing values are a conflict.
    """
    if positional and option and positional != option:
        return Conflict(positional=positional, option=option)
    return Resolved(value=positional or option or None)


def is_key_value(token: Token) -> bool:
    """Whether a token has the key=value shape (quoted tokens never do)."""
    return not token.quoted and "=" in token.value


def is_position(token: Token) -> bool:
    return not token.quoted and bool(POSITION_PATTERN.match(token.value))


def is_dimension(value: str) -> bool:
    return bool(DIMENSION_PATTERN.match(value))


def _parse_number(text: str, label: str, line: int) -> float:
    try:
        value = float(text)
    except ValueError:
        raise ParseError(f'Invalid {label}: "{text}"', line=line, token=text) from None
    if not math.isfinite(value):
        raise ParseError(f'Invalid {label}: "{text}"', line=line, token=text)
    return value


def parse_position(text: str, line: int = 0) -> Point:
    """Parse ``x,y`` into a Point."""
    parts = text.split(",")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise ParseError(
            f'Invalid position "{text}". Expected format: x,y', line=line, token=text
        )
    return Point(
        _parse_number(parts[0].strip(), "x position", line),
        _parse_number(parts[1].strip(), "y position", line),
    )


def parse_size(text: str, line: int = 0) -> Size:
    """Parse ``WxH`` into a Size with positive dimensions."""
    parts = text.lower().split("x")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise ParseError(
            f'Invalid size "{text}". Expected format: WxH', line=line, token=text
        )
    w = _parse_number(parts[0].strip(), "width", line)
    h = _parse_number(parts[1].strip(), "height", line)
    if w <= 0 or h <= 0:
        raise ParseError(
            f'Invalid size "{text}". Width and height must be positive.',
            line=line,
            token=text,
        )
    return Size(w=w, h=h)


def _parse_key_value(token: Token, line: int):
    key, _, value = token.value.partition("=")
    key = key.strip()
    value = value.strip()
    if not key:
        raise ParseError(
            f'Expected key=value token: "{token.value}"', line=line, token=token.value
        )
    if not value:
        raise ParseError(f'Missing value for "{key}"', line=line, token=token.value)
    return key, value


def _collect_options(
    tokens: List[Token], allowed: tuple, line: int
) -> Dict[str, str]:
    """Read trailing key=value tokens; later keys override earlier ones."""
    options: Dict[str, str] = {}
    for token in tokens:
        if not is_key_value(token):
            raise ParseError(
                f'Unexpected token: "{token.value}"', line=line, token=token.value
            )
        key, value = _parse_key_value(token, line)
        if key not in allowed:
            raise ParseError(f'Unsupported option "{key}"', line=line, token=key)
        options[key] = value
    return options


def build_style(options: Dict[str, str], line: int) -> ShapeStyle:
    style = ShapeStyle()
    for key, allowed in STYLE_VOCABULARIES.items():
        value = options.get(key)
        if value is None:
            continue
        if value not in allowed:
            raise ParseError(
                f'Invalid {key}: "{value}". Allowed: {", ".join(allowed)}',
                line=line,
                token=value,
            )
        setattr(style, key, value)
    return style


def apply_size_option(
    value: str, style: ShapeStyle, line: int, allow_dimensions: bool
) -> Optional[Size]:
    """Interpret ``size=``: a WxH box or a named tier."""
    if value in SIZE_TIERS:
        style.size = value
        return None
    if is_dimension(value):
        if not allow_dimensions:
            raise ParseError(
                f'Size "{value}" is not supported for arrows', line=line, token=value
            )
        return parse_size(value, line)
    if "x" in value.lower():
        raise ParseError(
            f'Invalid size "{value}". Use WxH or one of {", ".join(SIZE_TIERS)}.',
            line=line,
            token=value,
        )
    raise ParseError(
        f'Invalid size: "{value}". Allowed: {", ".join(SIZE_TIERS)}',
        line=line,
        token=value,
    )


def parse_connector(tokens: List[Token], line: int) -> ConnectorInstruction:
    """
    Parse ``arrow <from> -> <to> [key=value ...]``.

    Multi-word endpoints are joined with single spaces; the target ends at
    the first key=value-shaped token.
    """
    marker_index = next(
        (
            index
            for index, token in enumerate(tokens)
            if token.value == CONNECTOR_MARKER and not token.quoted
        ),
        -1,
    )
    if marker_index <= 1 or marker_index >= len(tokens) - 1:
        raise ParseError(
            "Invalid arrow syntax; expected: arrow <from> -> <to>", line=line
        )

    source = " ".join(token.value for token in tokens[1:marker_index]).strip()

    trailing = tokens[marker_index + 1 :]
    option_start = next(
        (index for index, token in enumerate(trailing) if is_key_value(token)),
        len(trailing),
    )
    target = " ".join(token.value for token in trailing[:option_start]).strip()

    if not source or not target:
        raise ParseError("Invalid arrow endpoints", line=line)

    options = _collect_options(trailing[option_start:], CONNECTOR_OPTION_KEYS, line)
    style = build_style(options, line)
    if "size" in options:
        apply_size_option(options["size"], style, line, allow_dimensions=False)

    return ConnectorInstruction(
        source=source,
        target=target,
        label=options.get("label"),
        style=style,
        shape_id=options.get("id"),
        line=line,
    )


def parse_shape(
    tokens: List[Token], line: int, allow_position: bool = True
) -> ShapeInstruction:
    """
    Parse ``<kind> [x,y] [WxH] [content] [key=value ...]``.

    Args:
        tokens: Tokens of one line, kind first.
        line: 1-based source line.
        allow_position: False inside layout blocks, where positions are
            assigned by the block.
    """
    keyword = tokens[0].value if tokens else ""
    kind = ShapeKind.from_keyword(keyword)
    if kind is None or kind is ShapeKind.CONNECTOR:
        raise ParseError(f'Unsupported shape: "{keyword}"', line=line, token=keyword)

    instruction = ShapeInstruction(kind=kind, line=line)
    cursor = 1

    if cursor < len(tokens) and is_position(tokens[cursor]):
        if not allow_position:
            raise ParseError(
                "Position is not allowed inside layout blocks",
                line=line,
                token=tokens[cursor].value,
            )
        instruction.position = parse_position(tokens[cursor].value, line)
        cursor += 1

    if (
        cursor < len(tokens)
        and not tokens[cursor].quoted
        and is_dimension(tokens[cursor].value)
    ):
        instruction.size = parse_size(tokens[cursor].value, line)
        cursor += 1

    positional_content = None
    if cursor < len(tokens) and not is_key_value(tokens[cursor]):
        positional_content = tokens[cursor].value
        cursor += 1

    options = _collect_options(tokens[cursor:], SHAPE_OPTION_KEYS, line)
    instruction.style = build_style(options, line)
    instruction.shape_id = options.get("id")

    if "pos" in options:
        if not allow_position:
            raise ParseError(
                "Position is not allowed inside layout blocks",
                line=line,
                token=options["pos"],
            )
        instruction.position = parse_position(options["pos"], line)

    if "size" in options:
        explicit = apply_size_option(
            options["size"], instruction.style, line, allow_dimensions=True
        )
        if explicit is not None:
            instruction.size = explicit

    if "dimensions" in options:
        instruction.dimensions = parse_size(options["dimensions"], line)

    merged = reconcile_content(positional_content, options.get("label"))
    if isinstance(merged, Conflict):
        what = "Text content" if kind.has_text_body else "Label"
        raise ParseError(
            f"{what} was provided twice", line=line, token=merged.option
        )

    if kind.has_text_body:
        instruction.content = merged.value
    else:
        instruction.label = merged.value

    return instruction


def parse_instruction(
    tokens: List[Token], line: int, allow_position: bool = True
) -> Instruction:
    """Parse the tokens of one line into an instruction."""
    if not tokens:
        raise ParseError("Expected a shape instruction", line=line)

    if tokens[0].value == ShapeKind.CONNECTOR.value and not tokens[0].quoted:
        return parse_connector(tokens, line)

    return parse_shape(tokens, line, allow_position)
