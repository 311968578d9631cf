"""
Checkout resolution -- which point in time a vault reads from.

A version is either Live (tracks the head of the log) or Fixed (pinned
to an ordinal). Fixed checkouts never advance and are never writable,
whatever the handle's own capability.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .drive import Drive, DriveCheckout
from .errors import VaultNotWritableError


@dataclass(frozen=True)
class Live:
    """The head of the log."""

    def __str__(self) -> str:
        return "live"


@dataclass(frozen=True)
class Fixed:
    """A historical version: the first `ordinal` log entries."""

    ordinal: int

    def __post_init__(self) -> None:
        if self.ordinal < 1:
            raise ValueError(f"Version must be a positive ordinal, got {self.ordinal}")

    def __str__(self) -> str:
        return f"+{self.ordinal}"


Version = Union[Live, Fixed]


def version_from_ordinal(ordinal: Optional[int]) -> Version:
    return Live() if ordinal is None else Fixed(ordinal)


@dataclass(frozen=True)
class Checkout:
    """A read view bound to a handle at a version."""

    drive: Drive
    requested: Version
    view: Union[Drive, DriveCheckout]

    @property
    def version(self) -> int:
        """Entries visible through this view (current length if live)."""
        return self.view.version

    @property
    def is_fixed(self) -> bool:
        return isinstance(self.requested, Fixed)

    @property
    def writable(self) -> bool:
        return not self.is_fixed and self.drive.writable

    def assert_writable(self) -> Drive:
        """Return the live handle for mutation, or raise VaultNotWritableError."""
        if self.writable:
            return self.drive
        if self.is_fixed:
            raise VaultNotWritableError("Cannot modify a historic version")
        raise VaultNotWritableError()


def resolve_checkout(drive: Drive, version: Version) -> Checkout:
    """Bind a handle to the requested version.

    Args:
        drive: The loaded handle.
        version: Live() or Fixed(n).

    Returns:
        Checkout: Live views read the handle itself; fixed views read
        the first n entries only.
    """
    if isinstance(version, Fixed):
        return Checkout(drive=drive, requested=version, view=drive.checkout(version.ordinal))
    return Checkout(drive=drive, requested=version, view=drive)
