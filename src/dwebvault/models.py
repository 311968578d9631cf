"""
Pydantic models for what the vault layer hands back and accepts.

Options models ignore unknown fields so callers can pass settings
meant for newer versions without breaking older ones.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .drive.models import Stat


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class Author(BaseModel):
    """Structured manifest author."""

    name: Optional[str] = None
    url: Optional[str] = None


class Manifest(BaseModel):
    """The reserved dweb.json record at the vault root."""

    model_config = ConfigDict(extra="allow")

    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[list[str]] = None
    author: Optional[Union[str, Author]] = None

    @field_validator("type", mode="before")
    @classmethod
    def _wrap_type(cls, value):
        if isinstance(value, str):
            return [value]
        return value


MANIFEST_FIELDS = ("title", "description", "type", "author")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ChangeType(str, Enum):
    """Kind of change a history entry records."""

    PUT = "put"
    DELETE = "delete"


class HistoryEntry(BaseModel):
    """One log entry: which path changed, how, and the version it produced."""

    path: str
    version: int
    type: ChangeType


class DirEntry(BaseModel):
    """A readdir result augmented with its stat record."""

    name: str
    stat: Stat


class VaultInfo(BaseModel):
    """Vault state merged with its manifest."""

    key: str
    url: str
    is_owner: bool
    version: int
    peers: int = 0
    mtime: int = 0
    size: int = 0
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[list[str]] = None
    author: Optional[Union[str, Author]] = None


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class OperationOptions(BaseModel):
    """Options every operation accepts.

    Attributes:
        timeout: Deadline in milliseconds; None uses the configured default.
    """

    model_config = ConfigDict(extra="ignore")

    timeout: Optional[float] = None


class ReadOptions(OperationOptions):
    encoding: str = "utf8"


class WriteOptions(OperationOptions):
    encoding: str = "utf8"


class ReaddirOptions(OperationOptions):
    stat: bool = False


class RmdirOptions(OperationOptions):
    recursive: bool = False


class HistoryOptions(OperationOptions):
    """Range of the log to read.

    Attributes:
        start: First index (default 0).
        end: One past the last index (default: current length).
        reverse: Newest first; start/end then count from the newest entry.
    """

    start: Optional[int] = Field(default=None, ge=0)
    end: Optional[int] = Field(default=None, ge=0)
    reverse: bool = False
