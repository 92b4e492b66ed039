"""Unit tests for the lexer module."""

import pytest

from sketchflow.errors import ParseError
from sketchflow.lexer import strip_comment, tokenize
from sketchflow.models import Token


class TestStripComment:
    """Tests for comment stripping."""

    def test_strips_trailing_comment(self):
        """Test that text after an unquoted # is removed."""
        assert strip_comment("rect 0,0 # the header") == "rect 0,0 "

    def test_full_line_comment(self):
        """Test that a comment-only line becomes empty."""
        assert strip_comment("# just a comment") == ""

    def test_hash_inside_quotes_is_literal(self):
        """Test that # inside quotes does not start a comment."""
        assert strip_comment('text "#1 item" # rank') == 'text "#1 item" '

    def test_escaped_quote_keeps_quoted_region_open(self):
        """Test that an escaped quote does not close the quoted region."""
        line = 'text "a \\" # b" # c'
        assert strip_comment(line) == 'text "a \\" # b" '

    def test_line_without_comment_unchanged(self):
        """Test that lines without comments come back unchanged."""
        assert strip_comment('rect "A"') == 'rect "A"'


class TestTokenize:
    """Tests for tokenize."""

    def test_splits_on_whitespace(self):
        """Test plain whitespace separation."""
        assert tokenize("rect  0,0\t100x50") == [
            Token("rect"),
            Token("0,0"),
            Token("100x50"),
        ]

    def test_quoted_region_is_one_token(self):
        """Test that quoted text with spaces is a single quoted token."""
        assert tokenize('rect 0,0 "Hello World"') == [
            Token("rect"),
            Token("0,0"),
            Token("Hello World", quoted=True),
        ]

    def test_escaped_quote(self):
        """Test that a backslash escapes a quote inside quotes."""
        tokens = tokenize('text "say \\"hi\\""')
        assert tokens[1].value == 'say "hi"'

    def test_newline_escape(self):
        """Test that \\n inside quotes becomes a line break."""
        tokens = tokenize('note "first\\nsecond"')
        assert tokens[1].value == "first\nsecond"

    def test_escaped_backslash(self):
        """Test that an escaped backslash stands for itself."""
        tokens = tokenize('text "a\\\\b"')
        assert tokens[1].value == "a\\b"

    def test_quoted_key_value_is_content(self):
        """Test that a token starting with a quote is marked quoted."""
        assert tokenize('rect "a=b"')[1] == Token("a=b", quoted=True)

    def test_option_with_quoted_value(self):
        """Test that key="value with spaces" stays one unquoted token."""
        assert tokenize('rect label="a b"')[1] == Token("label=a b", quoted=False)

    def test_empty_line(self):
        """Test that a blank line produces no tokens."""
        assert tokenize("   ") == []

    def test_unterminated_quote(self):
        """Test that an unterminated quote names the line."""
        with pytest.raises(ParseError) as exc_info:
            tokenize('rect "open', line_number=3)
        assert str(exc_info.value) == "Line 3: Unterminated quote"
        assert exc_info.value.line == 3
