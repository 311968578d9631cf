"""
Drive data models -- what a metadata log entry says about a path.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


class EntryKind(str, Enum):
    """What a path names."""

    FILE = "file"
    DIRECTORY = "directory"


class Stat(BaseModel):
    """Stat record for one path at one version.

    Attributes:
        kind: File or directory.
        size: File size in bytes.
        blocks: Number of content blocks holding the file.
        offset: Index of the file's first content block.
        downloaded: How many of those blocks are held locally.
        mtime: Last modification time.
        ctime: Creation time.
    """

    kind: EntryKind = EntryKind.FILE
    size: int = 0
    blocks: int = 0
    offset: int = 0
    downloaded: int = 0
    mtime: datetime = EPOCH
    ctime: datetime = EPOCH

    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

    def is_directory(self) -> bool:
        return self.kind == EntryKind.DIRECTORY


class LogEntry(BaseModel):
    """One metadata block: a put or a delete of a single path."""

    type: Literal["put", "del"]
    name: str
    value: Optional[Stat] = Field(default=None)
