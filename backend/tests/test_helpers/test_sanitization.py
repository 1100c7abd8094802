"""
Unit tests for form input sanitization.

Covers the XSS payloads a public form should neutralize and the
idempotency guarantee the submission pipeline relies on.
"""

import pytest

from helpers.sanitization import (
    sanitize_form,
    sanitize_multiline,
    sanitize_text,
    sanitize_url,
)

XSS_PAYLOADS = [
    '<script>alert("XSS")</script>Safe content',
    '<img src=x onerror=alert("XSS")>',
    '<svg onload=alert("XSS")>',
    '"><script>alert("XSS")</script>',
    "<!-- hidden --><b>bold</b>",
]


class TestSanitizeText:
    """Tests for sanitize_text function."""

    @pytest.mark.parametrize("payload", XSS_PAYLOADS)
    def test_removes_markup(self, payload: str) -> None:
        """No tag survives sanitization."""
        result = sanitize_text(payload)
        assert result is not None
        assert "<script" not in result
        assert "<img" not in result
        assert "<svg" not in result
        assert "<b>" not in result

    def test_keeps_text_of_stripped_tags(self) -> None:
        """Tags go away but the visible text stays."""
        assert sanitize_text("<b>Jane</b> Doe") == "Jane Doe"

    def test_collapses_whitespace_and_newlines(self) -> None:
        """Single-line fields lose line breaks and repeated spaces."""
        assert sanitize_text("  Jane \n\n  Doe\t ") == "Jane Doe"

    def test_escapes_ampersand(self) -> None:
        """Leftover markup characters become entities."""
        assert sanitize_text("Tom & Jerry") == "Tom &amp; Jerry"

    def test_removes_invisible_characters(self) -> None:
        """Zero-width and control characters are dropped."""
        assert sanitize_text("Ja\u200bne\x00 Doe\ufeff") == "Jane Doe"

    def test_none_passes_through(self) -> None:
        """None stays None."""
        assert sanitize_text(None) is None


class TestSanitizeMultiline:
    """Tests for sanitize_multiline function."""

    def test_keeps_line_breaks(self) -> None:
        """Free-text fields keep paragraphs."""
        assert sanitize_multiline("Hello\nworld") == "Hello\nworld"

    def test_normalizes_line_endings_and_blank_runs(self) -> None:
        """CRLF becomes LF and long blank runs shrink to one blank line."""
        assert sanitize_multiline("Hello\r\n\r\n\r\n\r\n  world  ") == "Hello\n\nworld"

    def test_collapses_spaces_within_lines(self) -> None:
        """Repeated spaces inside a line collapse."""
        assert sanitize_multiline("Peanut    allergy") == "Peanut allergy"


class TestIdempotency:
    """Sanitizing twice gives the same result as sanitizing once."""

    @pytest.mark.parametrize(
        "value",
        [
            *XSS_PAYLOADS,
            "Tom & Jerry <3",
            "a < b > c",
            "Café &amp; crème",
            "  lots   of\n\n\nspace  ",
            "Привіт",
        ],
    )
    def test_text_is_idempotent(self, value: str) -> None:
        """sanitize_text(sanitize_text(x)) == sanitize_text(x)."""
        once = sanitize_text(value)
        assert sanitize_text(once) == once

    @pytest.mark.parametrize(
        "value",
        [
            "Line one\r\n\r\n\r\nLine <i>two</i> & three",
            "  indented\n\tline  ",
        ],
    )
    def test_multiline_is_idempotent(self, value: str) -> None:
        """sanitize_multiline is idempotent too."""
        once = sanitize_multiline(value)
        assert sanitize_multiline(once) == once

    def test_form_is_idempotent(self) -> None:
        """A whole form sanitized twice is unchanged by the second pass."""
        raw = {
            "name": " <b>Jane</b>  Doe ",
            "message": "Hi &\n\n\n<script>x</script>there",
            "consent": True,
        }
        once = sanitize_form(raw)
        assert sanitize_form(once) == once


class TestSanitizeForm:
    """Tests for sanitize_form function."""

    def test_multiline_fields_keep_newlines(self) -> None:
        """message keeps line breaks; name does not."""
        result = sanitize_form({"name": "Jane\nDoe", "message": "Hi\nthere"})
        assert result == {"name": "Jane Doe", "message": "Hi\nthere"}

    def test_non_string_values_pass_through(self) -> None:
        """Booleans, numbers and None are untouched."""
        raw = {"consent": True, "count": 2, "phone": None}
        assert sanitize_form(raw) == raw

    def test_lists_are_sanitized_elementwise(self) -> None:
        """String items of a list are sanitized."""
        assert sanitize_form({"tags": ["<b>a</b>", 1]}) == {"tags": ["a", 1]}

    def test_does_not_mutate_input(self) -> None:
        """A new dict is returned."""
        raw = {"name": "<b>Jane</b>"}
        sanitize_form(raw)
        assert raw == {"name": "<b>Jane</b>"}


class TestSanitizeUrl:
    """Tests for sanitize_url function."""

    def test_blocks_javascript_protocol(self) -> None:
        """javascript: URLs are removed."""
        assert sanitize_url("javascript:alert(1)") == ""
        assert sanitize_url("JAVASCRIPT:alert(1)") == ""

    def test_blocks_data_protocol(self) -> None:
        """Other schemes are removed."""
        assert sanitize_url("data:text/html,<script>x</script>") == ""

    def test_allows_http_and_relative(self) -> None:
        """http(s), mailto and relative URLs are kept."""
        assert sanitize_url("https://example.com") == "https://example.com"
        assert sanitize_url("mailto:info@example.com") == "mailto:info@example.com"
        assert sanitize_url("/resources/potty-training") == "/resources/potty-training"
