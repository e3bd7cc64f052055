"""Header name casing.

Request header keys are stored in kebab-case so that ``randomHeader``,
``random_header`` and ``Random-Header`` all name the same header.
"""

from __future__ import annotations

import re

# Separators between words. Runs of separators collapse to one boundary.
# Dots are legal in header names and stay inside a word.
_SEPARATORS = re.compile(r"[\s_\-]+")

# Lowercase letter or digit followed by an uppercase letter: "randomHeader".
_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")

# End of an acronym before a capitalized word: "HTTPServer" -> "HTTP Server".
_ACRONYM = re.compile(r"([A-Z]+)([A-Z][a-z])")


def split_words(name: str) -> list[str]:
    """Split a header name into words on separators and case changes."""
    words: list[str] = []
    for segment in _SEPARATORS.split(name):
        if not segment:
            continue
        segment = _ACRONYM.sub(r"\1 \2", segment)
        segment = _LOWER_UPPER.sub(r"\1 \2", segment)
        words.extend(segment.split())
    return words


def to_kebab_case(name: str) -> str:
    """Convert a header name to kebab-case.

    Examples:
        randomHeader  -> random-header
        Content-Type  -> content-type
        X_API_KEY     -> x-api-key
        HTTPServer    -> http-server
        X-B3-TraceId  -> x-b3-trace-id

    Digits and dots never start a new word on their own. Already
    kebab-cased input is returned unchanged.
    """
    return "-".join(word.lower() for word in split_words(name))
