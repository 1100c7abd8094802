"""
Input sanitization for public form fields.

Every function here is pure and idempotent: running a value through twice
gives the same result as running it through once. No truncation happens
here; length limits are enforced by validation so that an escaped entity is
never cut in half.
"""

import re
from collections.abc import Mapping
from typing import Any, Optional

import bleach

# Fields that keep their line breaks
MULTILINE_FIELDS = frozenset(
    {
        "message",
        "notes",
        "allergies",
        "medications",
        "specialNeeds",
        "special_needs",
        "additionalInfo",
        "additional_info",
        "content",
        "description",
    }
)

# C0/C1 controls (except tab/newline/carriage return), zero-width and bidi marks
_INVISIBLE_CHARS = re.compile(
    "[\u0000-\u0008\u000b\u000c\u000e-\u001f\u007f-\u009f"
    "\u200b-\u200f\u202a-\u202e\u2060-\u2064\ufeff]"
)
_WHITESPACE_RUN = re.compile(r"\s+")
_INLINE_WHITESPACE_RUN = re.compile(r"[^\S\n]+")
_BLANK_LINE_RUN = re.compile(r"\n{3,}")


def _strip_markup(content: str) -> str:
    """Remove invisible characters, then every tag and comment."""
    content = _INVISIBLE_CHARS.sub("", content)
    return bleach.clean(content, tags=[], attributes={}, strip=True)


def sanitize_text(content: Optional[str]) -> Optional[str]:
    """
    Sanitize a single-line text field.

    Strips all HTML, escapes leftover markup characters as entities and
    collapses whitespace runs (including newlines) to single spaces.

    Examples:
        >>> sanitize_text('  <b>Jane</b>   Doe ')
        'Jane Doe'
        >>> sanitize_text('<script>x</script>Tom & Jerry')
        'xTom &amp; Jerry'
    """
    if content is None:
        return None

    cleaned = _strip_markup(content)
    return _WHITESPACE_RUN.sub(" ", cleaned).strip()


def sanitize_multiline(content: Optional[str]) -> Optional[str]:
    """
    Sanitize a free-text field that may span several lines.

    Line endings are normalized to "\\n", spaces inside a line collapse, each
    line is trimmed and runs of blank lines shrink to a single blank line.

    Examples:
        >>> sanitize_multiline('Hello\\r\\n\\r\\n\\r\\n  world  ')
        'Hello\\n\\nworld'
    """
    if content is None:
        return None

    cleaned = _strip_markup(content.replace("\r\n", "\n").replace("\r", "\n"))
    cleaned = _INLINE_WHITESPACE_RUN.sub(" ", cleaned)
    lines = [line.strip() for line in cleaned.split("\n")]
    return _BLANK_LINE_RUN.sub("\n\n", "\n".join(lines)).strip()


def sanitize_form(raw: Mapping[str, Any]) -> dict[str, Any]:
    """
    Sanitize every string value of a raw form submission.

    Keys are kept as given. Strings in MULTILINE_FIELDS keep line breaks,
    other strings are treated as single-line. Lists of strings are sanitized
    element-wise; any other value (booleans, numbers, None) passes through.

    Args:
        raw: Form data as received from the client.

    Returns:
        A new dict with sanitized values.
    """
    sanitized: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, str):
            if key in MULTILINE_FIELDS:
                sanitized[key] = sanitize_multiline(value)
            else:
                sanitized[key] = sanitize_text(value)
        elif isinstance(value, list):
            sanitized[key] = [
                sanitize_text(item) if isinstance(item, str) else item
                for item in value
            ]
        else:
            sanitized[key] = value
    return sanitized


def sanitize_url(url: Optional[str]) -> Optional[str]:
    """
    Only allow http(s), mailto and relative URLs.

    Examples:
        >>> sanitize_url('javascript:alert(1)')
        ''
        >>> sanitize_url('https://example.com')
        'https://example.com'
    """
    if url is None:
        return None

    url = url.strip()
    allowed_protocols = ("http://", "https://", "mailto:")

    if url.lower().startswith("javascript:"):
        return ""

    if url and not url.lower().startswith(allowed_protocols):
        if url.startswith("/") or ":" not in url.split("/")[0]:
            return url
        return ""

    return url
