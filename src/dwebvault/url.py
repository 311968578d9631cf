"""
dweb:// address parsing.

    dweb://<64 hex chars>[+<version>][/<path>]

A trailing path is accepted and ignored; callers address files by
path through the vault itself.

Parsing has no side effects: no lookups, no I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .errors import AddressError

SCHEME = "dweb"

_KEY_REGEX = re.compile(r"^[0-9a-f]{64}$", re.IGNORECASE)
_ADDRESS_REGEX = re.compile(
    r"^(?:(?P<scheme>[a-z][a-z0-9+.-]*)://)?"
    r"(?P<host>[^/+?#]+)"
    r"(?:\+(?P<version>[^/?#]*))?"
    r"(?P<path>/[^?#]*)?"
    r"(?:[?#].*)?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ParsedAddress:
    """The parts of a dweb:// address.

    Attributes:
        key: Lowercase hex identity of the vault.
        version: Requested version ordinal, or None for the live head.
    """

    key: str
    version: Optional[int] = None

    @property
    def url(self) -> str:
        """Origin URL without version or path."""
        return f"{SCHEME}://{self.key}"


def is_vault_key(value: str) -> bool:
    """Check whether a string is a bare 64-hex vault key."""
    return bool(_KEY_REGEX.match(value or ""))


def parse_address(address: str) -> ParsedAddress:
    """Split a dweb:// address into key and version.

    Args:
        address: Address string; the scheme may be omitted.

    Returns:
        ParsedAddress with a lowercased key.

    Raises:
        AddressError: On a foreign scheme, a non-hex identity, or a
            version that is not a positive integer.
    """
    match = _ADDRESS_REGEX.match((address or "").strip())
    if not match:
        raise AddressError(f"Invalid dweb address: {address!r}")

    scheme = match.group("scheme")
    if scheme and scheme.lower() != SCHEME:
        raise AddressError(f"Unsupported scheme {scheme!r} in {address!r}")

    host = match.group("host")
    if not is_vault_key(host):
        raise AddressError(
            f"Invalid vault key {host!r} (expected 64 hex characters; resolve names first)"
        )

    version = match.group("version")
    if version is not None:
        if not re.fullmatch(r"[0-9]+", version) or int(version) < 1:
            raise AddressError(f"Invalid version {version!r} in {address!r}")
        version = int(version)

    return ParsedAddress(
        key=host.lower(),
        version=version,
    )
