"""Percent-decoding helpers for untrusted path input."""

import re
import urllib.parse

MAX_NESTED_DECODES = 8

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
# Escapes for '.', '/', '\' and NUL.
_DANGEROUS_ESCAPE = re.compile(r"%(?:2e|2f|5c|00)", re.IGNORECASE)


def decode_once(raw: str) -> str:
    """Apply exactly one percent-decoding pass.

    A malformed escape or an escape sequence that is not valid UTF-8 leaves
    the raw string untouched instead of failing the request.
    """
    if "%" not in raw:
        return raw
    if _MALFORMED_ESCAPE.search(raw):
        return raw
    try:
        return urllib.parse.unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return raw


def has_nested_encoding(decoded: str) -> bool:
    """Return True when further decoding would surface '.', a separator or NUL."""
    current = decoded
    for _ in range(MAX_NESTED_DECODES):
        if _DANGEROUS_ESCAPE.search(current):
            return True
        following = urllib.parse.unquote(current)
        if following == current:
            return False
        current = following
    return True
