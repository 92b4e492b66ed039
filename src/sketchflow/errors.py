"""
Error types raised while compiling diagrams.

Every error is fatal to the batch being processed: a single descriptive
exception reaches the caller and nothing is partially applied.

Classes:
    SketchflowError: Base class for all package errors.
    ParseError: Lexical, grammar and content-conflict errors in DSL input.
    LayoutError: Invalid stack/grid geometry (sizes, gaps, origins, columns).
    ResolutionError: A connector endpoint that names no coordinate or shape.
    DocumentError: Invalid page contents such as duplicate shape ids.
"""

from typing import Optional


class SketchflowError(Exception):
    """Base class for all sketchflow errors."""

    pass


class ParseError(SketchflowError):
    """
    Raised when DSL or structured instruction input is invalid.

    Attributes:
        line: 1-based DSL line, when the error came from DSL text.
        token: Offending token, when there is one.
        index: 0-based record index, when the error came from records.
        reason: Message without the line prefix.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        token: Optional[str] = None,
        index: Optional[int] = None,
    ):
        self.line = line
        self.token = token
        self.index = index
        self.reason = message
        if line:
            message = f"Line {line}: {message}"
        super().__init__(message)


class LayoutError(SketchflowError, ValueError):
    """Raised when stack or grid placement receives invalid geometry."""

    pass


class ResolutionError(SketchflowError):
    """Raised when a connector endpoint cannot be resolved."""

    def __init__(self, token: str, line: Optional[int] = None):
        self.token = token
        self.line = line
        message = f'Unable to resolve arrow target "{token}" to a coordinate or shape'
        if line:
            message = f"Line {line}: {message}"
        super().__init__(message)


class DocumentError(SketchflowError):
    """Raised when page records are malformed or conflict with each other."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line:
            message = f"Line {line}: {message}"
        super().__init__(message)
