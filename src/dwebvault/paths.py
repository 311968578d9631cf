"""
Path validation -- what userland may name inside a vault.

Reads only normalize. Mutations normalize, then validate against the
allow-list, then refuse the reserved manifest path.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import unquote

from .errors import InvalidPathError, ProtectedFileNotWritableError

MANIFEST_FILENAME = "dweb.json"
MANIFEST_PATH = "/" + MANIFEST_FILENAME

# Letters, digits and unicode word characters, separators, whitespace and
# the RFC 3986 unreserved/sub-delim punctuation.
VALID_PATH_REGEX = re.compile(r"^[\w\-.~!$&'()*+,;=:@/\s]+$")


def normalize_path(filepath: Optional[str]) -> str:
    """Percent-decode a path and give it exactly one leading separator.

    Args:
        filepath: Raw path, possibly empty or percent-encoded.

    Returns:
        str: The normalized absolute path ('/' for empty input).
    """
    filepath = unquote(filepath or "")
    return "/" + filepath.lstrip("/")


def assert_valid_path(filepath: str) -> None:
    """Raise InvalidPathError if the path has characters outside the allow-list."""
    if not VALID_PATH_REGEX.match(filepath):
        raise InvalidPathError("Path contains invalid characters")


def assert_valid_file_path(filepath: str) -> None:
    """Like assert_valid_path, and a file path may not end in a separator."""
    if filepath.endswith("/"):
        raise InvalidPathError("Files can not have a trailing slash")
    assert_valid_path(filepath)


def assert_unprotected_path(filepath: str) -> None:
    """Raise ProtectedFileNotWritableError for the reserved manifest path."""
    if filepath == MANIFEST_PATH:
        raise ProtectedFileNotWritableError()
