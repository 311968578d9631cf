"""
Append-only feeds -- the two logs a drive is made of.

A feed is a numbered sequence of blocks. The owner appends; replicas
receive blocks from peers, possibly out of order and possibly only
some of them (sparse). Reading a block the replica lacks asks the
network for it and waits until it arrives.

Storage layout (when the drive has a local path):
    <vault>/
    ├── metadata.log    # one JSON line per block: {"index", "block"}
    └── content.log     # same, blocks base64-encoded
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger("dwebvault.drive.feed")


class Emitter:
    """Minimal native event emitter: ordered, synchronous, unbuffered."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable[..., None]]] = {}

    def on(self, event: str, listener: Callable[..., None]) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def off(self, event: str, listener: Callable[..., None]) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def _emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            listener(*args)


class Feed(Emitter):
    """An append-only log of blocks.

    Native events:
        append(index, block): the owner appended a block.
        download(index, block): a block arrived from a peer.
        sync(): every block up to length is now held locally.

    Args:
        name: 'metadata' or 'content'.
        storage: Vault directory to persist into, or None for memory.
        binary: Blocks are bytes (stored base64) instead of JSON values.
    """

    def __init__(self, name: str, storage: Optional[Path] = None, binary: bool = False) -> None:
        super().__init__()
        self.name = name
        self.length = 0
        self.requester: Optional[Callable[["Feed", int], None]] = None
        self._binary = binary
        self._blocks: dict[int, Any] = {}
        self._block_waiters: dict[int, list[asyncio.Future]] = {}
        self._update_waiters: list[asyncio.Future] = []
        self._log_path = storage / f"{name}.log" if storage is not None else None
        self._load()

    # -------------------------------------------------------------------
    # Local state
    # -------------------------------------------------------------------

    def has(self, index: int) -> bool:
        return index in self._blocks

    def block(self, index: int) -> Any:
        """Return a locally held block (KeyError if absent)."""
        return self._blocks[index]

    def missing(self, start: int = 0, end: Optional[int] = None) -> list[int]:
        """Indices in [start, end) not held locally."""
        end = self.length if end is None else end
        return [i for i in range(start, end) if i not in self._blocks]

    def downloaded(self, start: int = 0, end: Optional[int] = None) -> int:
        """Count of blocks in [start, end) held locally."""
        end = self.length if end is None else end
        return (end - start) - len(self.missing(start, end))

    def pending(self) -> list[int]:
        """Indices someone is currently waiting for."""
        return sorted(i for i, waiters in self._block_waiters.items() if waiters)

    # -------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------

    def append(self, block: Any) -> int:
        """Append a block at the head of the log.

        Returns:
            int: The index the block was stored at.
        """
        index = self.length
        self._store(index, block)
        self._emit("append", index, block)
        return index

    def put(self, index: int, block: Any) -> None:
        """Store a block received from a peer. Already-held blocks are ignored."""
        if index in self._blocks:
            return
        self._store(index, block)
        self._emit("download", index, block)
        if not self.missing():
            self._emit("sync")

    def set_length(self, length: int) -> None:
        """Learn that the log is at least `length` blocks long."""
        if length > self.length:
            self.length = length
            self._notify_update()

    def _store(self, index: int, block: Any) -> None:
        self._blocks[index] = block
        self._persist(index, block)
        if index >= self.length:
            self.length = index + 1
            self._notify_update()
        for waiter in self._block_waiters.pop(index, []):
            if not waiter.done():
                waiter.set_result(block)

    def _notify_update(self) -> None:
        waiters, self._update_waiters = self._update_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(self.length)

    # -------------------------------------------------------------------
    # Waiting
    # -------------------------------------------------------------------

    async def get(self, index: int) -> Any:
        """Return block `index`, fetching it from peers if needed.

        Waits until some peer supplies the block; callers bound the wait
        with a timeout.
        """
        if index in self._blocks:
            return self._blocks[index]

        waiter = asyncio.get_running_loop().create_future()
        self._block_waiters.setdefault(index, []).append(waiter)
        if self.requester is not None:
            self.requester(self, index)
        return await waiter

    async def update(self) -> int:
        """Wait until the log grows, then return the new length."""
        waiter = asyncio.get_running_loop().create_future()
        self._update_waiters.append(waiter)
        return await waiter

    def close(self) -> None:
        """Cancel everyone still waiting on this feed."""
        for waiters in self._block_waiters.values():
            for waiter in waiters:
                waiter.cancel()
        for waiter in self._update_waiters:
            waiter.cancel()
        self._block_waiters.clear()
        self._update_waiters.clear()

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------

    def _persist(self, index: int, block: Any) -> None:
        if self._log_path is None:
            return
        if self._binary:
            block = base64.b64encode(block).decode("ascii")
        with open(self._log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps({"index": index, "block": block}) + "\n")

    def _load(self) -> None:
        if self._log_path is None or not self._log_path.exists():
            return
        for line in self._log_path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                logger.warning("Skipping corrupt %s block: %s", self.name, exc)
                continue
            block = record["block"]
            if self._binary:
                block = base64.b64decode(block)
            self._blocks[record["index"]] = block
        if self._blocks:
            self.length = max(self._blocks) + 1
