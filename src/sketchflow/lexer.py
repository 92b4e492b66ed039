"""
Lexer for the diagram DSL.

Works on one logical line at a time: comments are stripped first, then the
line is split into tokens on whitespace outside double quotes.
"""

from typing import List

from .errors import ParseError
from .models import Token

QUOTE = '"'
ESCAPE = "\\"
COMMENT = "#"

# Escapes with a meaning; any other escaped character stands for itself
ESCAPE_SEQUENCES = {"n": "\n", "t": "\t"}


def strip_comment(line: str) -> str:
    """
    Remove a trailing ``#`` comment that is not inside quotes.

    Args:
        line: Raw source line.

    Returns:
        The line up to (not including) the first unquoted ``#``.
    """
    in_quotes = False
    escaped = False

    for index, char in enumerate(line):
        if char == QUOTE and not escaped:
            in_quotes = not in_quotes
        elif char == COMMENT and not in_quotes:
            return line[:index]

        escaped = char == ESCAPE and in_quotes and not escaped

    return line


def tokenize(line: str, line_number: int = 0) -> List[Token]:
    """
    Split a comment-free line into tokens.

    A double-quoted region is part of a single token regardless of the
    whitespace it contains, and a backslash inside quotes escapes the next
    character. Quote characters themselves are not kept.

    Args:
        line: Line with comments already stripped.
        line_number: 1-based line number used in error messages.

    Returns:
        Tokens in source order.

    Raises:
        ParseError: If a quote is left unterminated.
    """
    tokens: List[Token] = []
    current: List[str] = []
    in_quotes = False
    escaped = False
    token_quoted = False
    token_started = False

    def push() -> None:
        nonlocal token_quoted, token_started
        if current:
            tokens.append(Token(value="".join(current), quoted=token_quoted))
            current.clear()
        token_quoted = False
        token_started = False

    for char in line:
        if escaped:
            current.append(ESCAPE_SEQUENCES.get(char, char))
            escaped = False
            continue

        if char == QUOTE:
            if not token_started:
                token_quoted = True
            token_started = True
            in_quotes = not in_quotes
            continue

        if in_quotes and char == ESCAPE:
            escaped = True
            continue

        if not in_quotes and char.isspace():
            push()
            continue

        token_started = True
        current.append(char)

    if in_quotes:
        raise ParseError("Unterminated quote", line=line_number)

    push()
    return tokens
