"""Directory name rules: sanitization and validation of user supplied text.

Everything here is pure. ``sanitize_name`` never fails; the ``validate_*``
helpers return booleans so callers decide which error to raise.
"""

from __future__ import annotations

import re
from typing import Any

from app.packages.wiki.core.constants import (
    DIRECTORY_DESCRIPTION_MAX_LENGTH,
    DIRECTORY_NAME_MAX_LENGTH,
    RESERVED_DIRECTORY_NAMES,
)

# Path separators and characters rejected by common file systems.
_ILLEGAL_CHARS = re.compile(r'[/\\:*?"<>|]')
_WHITESPACE_RUN = re.compile(r"\s+")


def sanitize_name(name: str) -> str:
    """Strip illegal characters, collapse whitespace, trim edge spaces and dots.

    The result never starts or ends with a space or a dot, so applying the
    function twice yields the same string. May return ``""``.
    """
    cleaned = _ILLEGAL_CHARS.sub("", name or "")
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned)
    return cleaned.strip(" .")


def contains_illegal_chars(name: str) -> bool:
    return bool(_ILLEGAL_CHARS.search(name))


def is_reserved_name(name: str) -> bool:
    return name.strip().upper() in RESERVED_DIRECTORY_NAMES


def validate_name(name: Any) -> bool:
    """Return True when ``name`` can be used as a directory name as-is.

    The raw (trimmed) text must be 1..255 characters, free of separators and
    reserved device characters, and not a reserved token. Its sanitized form
    must also be non-empty and not reserved, otherwise the node would map onto
    its parent's path (``"..."`` sanitizes to ``""``).
    """
    if not isinstance(name, str):
        return False

    trimmed = name.strip()
    if not 1 <= len(trimmed) <= DIRECTORY_NAME_MAX_LENGTH:
        return False
    if contains_illegal_chars(trimmed) or is_reserved_name(trimmed):
        return False

    sanitized = sanitize_name(trimmed)
    if not sanitized or is_reserved_name(sanitized):
        return False
    return True


def validate_description(description: Any = None) -> bool:
    if description is None:
        return True
    return isinstance(description, str) and len(description) <= DIRECTORY_DESCRIPTION_MAX_LENGTH


def validate_sort_order(sort_order: Any = None) -> bool:
    if sort_order is None:
        return True
    # bool is an int subclass; True/False are not sort orders
    if isinstance(sort_order, bool) or not isinstance(sort_order, int):
        return False
    return sort_order >= 0
