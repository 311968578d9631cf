"""
Error taxonomy for vault operations.

Every public operation fails with exactly one of these. Validation
errors are raised before the storage layer is touched; storage errors
(NotFoundError, NotAFolderError, ...) surface unchanged.
"""

from __future__ import annotations


class VaultError(Exception):
    """Base class for every vault error."""


class AddressError(VaultError, ValueError):
    """Raised when a dweb:// address cannot be parsed."""


class VaultNotWritableError(VaultError):
    """Raised on a mutation without write capability or against a historic version."""

    def __init__(self, message: str = "Cannot write to this vault. (Not the owner.)") -> None:
        super().__init__(message)


class ProtectedFileNotWritableError(VaultError):
    """Raised when a mutation targets the reserved manifest file."""

    def __init__(self, message: str = "This file is protected and can not be written directly.") -> None:
        super().__init__(message)


class InvalidPathError(VaultError, ValueError):
    """Raised when a path contains disallowed characters or a file path ends in a separator."""


class OperationTimeoutError(VaultError, TimeoutError):
    """Raised when an operation does not settle before its deadline.

    The underlying operation is not cancelled; its outcome is unknown.
    """


class LoadFailureError(VaultError):
    """Raised when the store failed to open or the first sync failed."""


class NotFoundError(VaultError):
    """Raised when no entry exists at the given path."""


class NotAFolderError(VaultError):
    """Raised when a directory operation targets a file."""


class NotAFileError(VaultError):
    """Raised when a file operation targets a directory."""


class EntryAlreadyExistsError(VaultError):
    """Raised when creating an entry where one already exists."""


class DirectoryNotEmptyError(VaultError):
    """Raised when removing a non-empty directory without recursive=True."""


class NotSupportedError(VaultError):
    """Raised for operations not yet supported on historic checkouts."""


class InvalidLocationError(VaultError):
    """Raised when create/load refuses the given local path."""


class NameResolutionError(VaultError):
    """Raised when a name cannot be resolved to a vault key."""
