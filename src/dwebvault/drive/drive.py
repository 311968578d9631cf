"""
Drive -- a filesystem folded out of two append-only feeds.

The metadata feed records one put/del per path; replaying its first N
entries gives the tree at version N. The content feed holds the file
bytes in chunks. A drive is writable only where its secret key lives.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import posixpath
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Union

from ..errors import (
    DirectoryNotEmptyError,
    EntryAlreadyExistsError,
    NotAFileError,
    NotAFolderError,
    NotFoundError,
    VaultNotWritableError,
)
from .feed import Emitter, Feed
from .models import EntryKind, LogEntry, Stat

logger = logging.getLogger("dwebvault.drive")

BLOCK_SIZE = 64 * 1024  # 64 KB

KEY_FILENAME = "key"
SECRET_KEY_FILENAME = "secret_key"


def encode_data(data: Union[str, bytes], encoding: str = "utf8") -> bytes:
    """Turn caller data into bytes according to `encoding`."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if encoding == "hex":
        return bytes.fromhex(data)
    if encoding == "base64":
        return base64.b64decode(data)
    if encoding == "binary":
        return data.encode("latin-1")
    return data.encode(_codec(encoding))


def decode_data(data: bytes, encoding: str = "utf8") -> Union[str, bytes]:
    """Render stored bytes according to `encoding`."""
    if encoding == "binary":
        return data
    if encoding == "hex":
        return data.hex()
    if encoding == "base64":
        return base64.b64encode(data).decode("ascii")
    return data.decode(_codec(encoding))


def _codec(encoding: str) -> str:
    return "utf-8" if encoding in ("utf8", "utf-8", None) else encoding


def _clean(name: str) -> str:
    return "/" + (name or "").strip("/")


class _View(Emitter):
    """Read operations over the first `_length()` metadata entries."""

    metadata: Feed
    content: Feed

    def _length(self) -> int:
        raise NotImplementedError

    @property
    def version(self) -> int:
        return self._length()

    async def _tree(self) -> dict[str, Stat]:
        tree: dict[str, Stat] = {}
        for index in range(self._length()):
            entry = LogEntry.model_validate(await self.metadata.get(index))
            if entry.type == "put":
                tree[entry.name] = entry.value
            else:
                tree.pop(entry.name, None)
        return tree

    @staticmethod
    def _lookup(tree: dict[str, Stat], name: str) -> Optional[Stat]:
        if name == "/":
            return Stat(kind=EntryKind.DIRECTORY)
        if name in tree:
            return tree[name]
        prefix = name + "/"
        if any(path.startswith(prefix) for path in tree):
            return Stat(kind=EntryKind.DIRECTORY)
        return None

    @staticmethod
    def _children(tree: dict[str, Stat], name: str) -> list[str]:
        prefix = name.rstrip("/") + "/"
        return sorted(path for path in tree if path.startswith(prefix))

    async def stat(self, name: str) -> Stat:
        """Stat a path.

        Raises:
            NotFoundError: If nothing exists at the path.
        """
        name = _clean(name)
        st = self._lookup(await self._tree(), name)
        if st is None:
            raise NotFoundError(f"File not found: {name}")
        if st.is_file():
            st = st.model_copy(update={
                "downloaded": self.content.downloaded(st.offset, st.offset + st.blocks),
            })
        return st

    async def readdir(self, name: str = "/") -> list[str]:
        """List the immediate children of a directory."""
        name = _clean(name)
        tree = await self._tree()
        st = self._lookup(tree, name)
        if st is None:
            raise NotFoundError(f"Directory not found: {name}")
        if not st.is_directory():
            raise NotAFolderError(f"Not a directory: {name}")
        prefix = name.rstrip("/") + "/"
        names = {path[len(prefix):].split("/", 1)[0] for path in self._children(tree, name)}
        return sorted(names)

    async def read_file(self, name: str, encoding: str = "utf8") -> Union[str, bytes]:
        """Read a whole file, fetching missing blocks from peers."""
        st = await self.stat(name)
        if not st.is_file():
            raise NotAFileError(f"Cannot read a directory: {_clean(name)}")
        chunks = [await self.content.get(i) for i in range(st.offset, st.offset + st.blocks)]
        return decode_data(b"".join(chunks), encoding)

    async def history(self, start: int = 0, end: Optional[int] = None) -> AsyncIterator[dict[str, Any]]:
        """Yield {name, version, type} for metadata entries in [start, end).

        `version` is the drive version right after the entry was applied.
        """
        length = self._length()
        end = length if end is None else min(end, length)
        for index in range(max(start, 0), end):
            entry = LogEntry.model_validate(await self.metadata.get(index))
            yield {"name": entry.name, "version": index + 1, "type": entry.type}


class DriveCheckout(_View):
    """A read-only view of a drive pinned to one version."""

    writable = False

    def __init__(self, drive: "Drive", version: int) -> None:
        super().__init__()
        self.drive = drive
        self.metadata = drive.metadata
        self.content = drive.content
        self._version = version

    def _length(self) -> int:
        return self._version


class Drive(_View):
    """The live, owned-or-replicated handle to a vault.

    Native events:
        changed(name): a metadata entry for `name` was appended or received.
        download(feed, index, data): a block arrived from a peer.
        sync(feed): a feed is now fully held locally.
        peer-add(peer), peer-remove(peer): network membership changed.

    Args:
        key: 32-byte public identity.
        secret_key: Write capability, or None for a replica.
        storage: Vault directory, or None to keep everything in memory.
        sparse: Replicas fetch content only on demand.
    """

    def __init__(
        self,
        key: bytes,
        secret_key: Optional[bytes] = None,
        storage: Optional[Path] = None,
        sparse: bool = True,
    ) -> None:
        super().__init__()
        self.key = key
        self.secret_key = secret_key
        self.storage = storage
        self.sparse = sparse
        self.peers: list[Drive] = []
        self.swarm = None
        self.metadata = Feed("metadata", storage)
        self.content = Feed("content", storage, binary=True)

        for feed in (self.metadata, self.content):
            feed.requester = self._request_block
            feed.on("download", lambda index, block, feed=feed: self._emit("download", feed.name, index, block))
            feed.on("sync", lambda feed=feed: self._emit("sync", feed.name))
        self.metadata.on("append", self._on_metadata_entry)
        self.metadata.on("download", self._on_metadata_entry)

        self.content.set_length(self._content_extent())

    @classmethod
    async def open(
        cls,
        storage: Optional[Path] = None,
        key: Optional[Union[str, bytes]] = None,
        sparse: bool = True,
        **options: Any,
    ) -> "Drive":
        """Open or create a drive.

        With no key and no stored key a new vault (and its secret) is
        generated. With a key that is not ours the drive is a replica.

        Args:
            storage: Vault directory; created if missing. None means memory.
            key: Identity of the vault to open, hex or bytes.
            sparse: Replica content replication mode.
            **options: Unrecognized engine options, ignored.

        Raises:
            ValueError: If the storage holds a different vault or a
                mismatched secret.
        """
        if isinstance(key, str):
            key = bytes.fromhex(key)
        secret: Optional[bytes] = None

        if storage is not None:
            storage = Path(storage).expanduser()
            storage.mkdir(parents=True, exist_ok=True)
            key_file = storage / KEY_FILENAME
            secret_file = storage / SECRET_KEY_FILENAME
            if key_file.exists():
                stored = bytes.fromhex(key_file.read_text(encoding="utf-8").strip())
                if key is not None and key != stored:
                    raise ValueError(f"{storage} holds a different vault ({stored.hex()})")
                key = stored
                if secret_file.exists():
                    secret = bytes.fromhex(secret_file.read_text(encoding="utf-8").strip())
                    if hashlib.sha256(secret).digest() != key:
                        raise ValueError(f"Secret key in {storage} does not match the vault key")

        if key is None:
            secret = secrets.token_bytes(32)
            key = hashlib.sha256(secret).digest()

        if storage is not None:
            if not (storage / KEY_FILENAME).exists():
                (storage / KEY_FILENAME).write_text(key.hex(), encoding="utf-8")
            if secret is not None and not (storage / SECRET_KEY_FILENAME).exists():
                (storage / SECRET_KEY_FILENAME).write_text(secret.hex(), encoding="utf-8")

        if options:
            logger.debug("Ignoring drive options: %s", ", ".join(sorted(options)))

        return cls(key, secret, storage, sparse=sparse)

    @property
    def writable(self) -> bool:
        return self.secret_key is not None

    def _length(self) -> int:
        return self.metadata.length

    def checkout(self, version: int) -> DriveCheckout:
        """Return a read-only view of the drive as of `version` entries."""
        return DriveCheckout(self, version)

    # -------------------------------------------------------------------
    # Mutations (owner only)
    # -------------------------------------------------------------------

    def _assert_writable(self) -> None:
        if not self.writable:
            raise VaultNotWritableError()

    def _append_entry(self, entry: LogEntry) -> None:
        self.metadata.append(entry.model_dump(mode="json"))

    def _assert_parents_are_folders(self, tree: dict[str, Stat], name: str) -> None:
        parent = posixpath.dirname(name)
        while parent != "/":
            st = self._lookup(tree, parent)
            if st is not None and st.is_file():
                raise NotAFolderError(f"Not a directory: {parent}")
            parent = posixpath.dirname(parent)

    async def write_file(self, name: str, data: Union[str, bytes], encoding: str = "utf8") -> None:
        """Write a whole file as new content blocks plus one put entry."""
        self._assert_writable()
        name = _clean(name)
        tree = await self._tree()
        self._assert_parents_are_folders(tree, name)
        existing = self._lookup(tree, name)
        if existing is not None and existing.is_directory():
            raise EntryAlreadyExistsError(f"A directory exists at {name}")

        payload = encode_data(data, encoding)
        offset = self.content.length
        for start in range(0, len(payload), BLOCK_SIZE):
            self.content.append(payload[start:start + BLOCK_SIZE])

        now = datetime.now(timezone.utc)
        self._append_entry(LogEntry(type="put", name=name, value=Stat(
            kind=EntryKind.FILE,
            size=len(payload),
            blocks=self.content.length - offset,
            offset=offset,
            mtime=now,
            ctime=existing.ctime if existing is not None else now,
        )))

    async def mkdir(self, name: str) -> None:
        self._assert_writable()
        name = _clean(name)
        tree = await self._tree()
        self._assert_parents_are_folders(tree, name)
        if self._lookup(tree, name) is not None:
            raise EntryAlreadyExistsError(f"An entry already exists at {name}")
        now = datetime.now(timezone.utc)
        self._append_entry(LogEntry(type="put", name=name, value=Stat(
            kind=EntryKind.DIRECTORY, mtime=now, ctime=now,
        )))

    async def unlink(self, name: str) -> None:
        self._assert_writable()
        name = _clean(name)
        st = self._lookup(await self._tree(), name)
        if st is None:
            raise NotFoundError(f"File not found: {name}")
        if not st.is_file():
            raise NotAFileError(f"Cannot unlink a directory: {name}")
        self._append_entry(LogEntry(type="del", name=name))

    async def rmdir(self, name: str, recursive: bool = False) -> None:
        """Remove a directory; with recursive=True, everything under it too."""
        self._assert_writable()
        name = _clean(name)
        tree = await self._tree()
        st = self._lookup(tree, name)
        if st is None:
            raise NotFoundError(f"Directory not found: {name}")
        if not st.is_directory():
            raise NotAFolderError(f"Not a directory: {name}")

        children = self._children(tree, name)
        if children and not recursive:
            raise DirectoryNotEmptyError(f"Directory is not empty: {name}")
        for path in reversed(children):
            self._append_entry(LogEntry(type="del", name=path))
        if name in tree:
            self._append_entry(LogEntry(type="del", name=name))

    async def download(self, name: str = "/") -> None:
        """Fetch every missing content block under a path.

        The root fetches the whole content feed, history included.
        """
        name = _clean(name)
        if name == "/":
            indices = self.content.missing()
        else:
            tree = await self._tree()
            st = self._lookup(tree, name)
            if st is None:
                raise NotFoundError(f"File not found: {name}")
            files = [st] if st.is_file() else [tree[p] for p in self._children(tree, name) if tree[p].is_file()]
            indices = [i for f in files for i in self.content.missing(f.offset, f.offset + f.blocks)]

        logger.debug("Downloading %d blocks under %s", len(indices), name)
        for index in indices:
            await self.content.get(index)

    # -------------------------------------------------------------------
    # Network
    # -------------------------------------------------------------------

    def join_network(self, swarm=None, **options: Any) -> None:
        """Join a swarm; peers connect on the next loop iteration."""
        from .swarm import get_default_swarm

        self.swarm = swarm or get_default_swarm()
        self.swarm.join(self)

    def leave_network(self) -> None:
        if self.swarm is not None:
            self.swarm.leave(self)
            self.swarm = None

    def close(self) -> None:
        """Leave the network and stop all pending waits."""
        self.leave_network()
        self.metadata.close()
        self.content.close()

    def feed(self, name: str) -> Feed:
        return self.metadata if name == "metadata" else self.content

    def _request_block(self, feed: Feed, index: int) -> None:
        if self.swarm is not None:
            self.swarm.request(self, feed.name, index)

    def _on_metadata_entry(self, index: int, block: dict[str, Any]) -> None:
        value = block.get("value") or {}
        self.content.set_length(value.get("offset", 0) + value.get("blocks", 0))
        self._emit("changed", block.get("name"))

    def _content_extent(self) -> int:
        extent = 0
        for index in range(self.metadata.length):
            if not self.metadata.has(index):
                continue
            value = self.metadata.block(index).get("value") or {}
            extent = max(extent, value.get("offset", 0) + value.get("blocks", 0))
        return extent
