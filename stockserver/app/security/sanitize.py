"""
security/sanitize.py — Request input scrubbing at the HTTP boundary.

sanitize_input()  : applied to every JSON body before schema validation.
                    Trims strings, strips HTML tags, collapses whitespace.
                    Secret-bearing keys (passwords, tokens) are left as sent,
                    since altering them would change the credential.
sanitize_search() : stricter pass for free-text search terms that end up
                    in a LIKE filter.
"""

from __future__ import annotations

import html
import re

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+", re.UNICODE)

SECRET_KEYS = frozenset({
    "password",
    "password_confirmation",
    "current_password",
    "token",
    "access_token",
    "refresh_token",
})

# Query-operator words that have no business in a search term.
_OPERATOR_WORDS = (
    "$where", "$regex", "$ne", "$gte", "$gt", "$lte", "$lt", "$in", "$nin",
    "$exists", "$or", "$and", "$not", "$nor", "$expr", "$function",
    "$accumulator", "$jsonSchema",
)
_OPERATOR_RE = re.compile(
    "|".join(re.escape(word) for word in _OPERATOR_WORDS),
    re.IGNORECASE,
)


def sanitize_input(value):
    """Recursively sanitizes dicts, lists and strings. Other types pass through."""
    if isinstance(value, dict):
        return {
            key: (item if key in SECRET_KEYS else sanitize_input(item))
            for key, item in value.items()
        }

    if isinstance(value, list):
        return [sanitize_input(item) for item in value]

    if isinstance(value, str):
        value = value.strip()
        value = _TAG_RE.sub("", value)
        value = _WHITESPACE_RE.sub(" ", value)
        return value

    return value


def sanitize_search(search: str | None, max_length: int = 100) -> str | None:
    """
    Cleans a search term. Returns None for empty input or input that is
    empty after cleaning.
    """
    if not search:
        return None

    value = _OPERATOR_RE.sub("", search)
    value = value.replace("$", "").replace("{", "").replace("}", "")
    value = value.replace("\0", "")
    value = html.escape(value, quote=True).strip()
    value = value[:max_length]

    return value or None
