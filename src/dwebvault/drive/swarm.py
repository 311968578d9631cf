"""
In-process swarm -- peers for drives that share a key.

Stands in for the replication network: every drive that joins with
the same key becomes a peer of the others on the next loop iteration.
Metadata replicates fully and live. Content replicates on demand for
sparse replicas, eagerly otherwise. Nothing crosses the process.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from .drive import Drive

logger = logging.getLogger("dwebvault.drive.swarm")


class Swarm:
    """Registry of joined drives, grouped by key."""

    def __init__(self) -> None:
        self._groups: dict[bytes, list["Drive"]] = {}
        self._listeners: dict[int, list[tuple[Any, str, Callable[..., None]]]] = {}

    def join(self, drive: "Drive") -> None:
        """Add a drive to the swarm and schedule connection to its peers."""
        group = self._groups.setdefault(drive.key, [])
        if drive in group:
            return
        group.append(drive)
        self._watch(drive)
        logger.debug("Drive %s joined swarm (%d in group)", drive.key.hex()[:8], len(group))
        asyncio.get_running_loop().call_soon(self._connect, drive)

    def leave(self, drive: "Drive") -> None:
        """Remove a drive and disconnect it from all peers."""
        group = self._groups.get(drive.key, [])
        if drive in group:
            group.remove(drive)
        if not group:
            self._groups.pop(drive.key, None)

        for feed, event, listener in self._listeners.pop(id(drive), []):
            feed.off(event, listener)

        for peer in list(drive.peers):
            peer.peers.remove(drive)
            drive.peers.remove(peer)
            peer._emit("peer-remove", drive)
            drive._emit("peer-remove", peer)

    def request(self, drive: "Drive", feed_name: str, index: int) -> bool:
        """Ask connected peers for a block; store it if any has it.

        Returns:
            bool: True if the block was supplied.
        """
        for peer in drive.peers:
            source = peer.feed(feed_name)
            if source.has(index):
                drive.feed(feed_name).put(index, source.block(index))
                return True
        return False

    def drives(self, key: bytes) -> list["Drive"]:
        return list(self._groups.get(key, []))

    # -------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------

    def _connect(self, drive: "Drive") -> None:
        if drive not in self._groups.get(drive.key, []):
            return
        for other in self.drives(drive.key):
            if other is drive or other in drive.peers:
                continue
            drive.peers.append(other)
            other.peers.append(drive)
            drive._emit("peer-add", other)
            other._emit("peer-add", drive)
            self._replicate(other, drive)
            self._replicate(drive, other)

    def _replicate(self, source: "Drive", target: "Drive") -> None:
        target.metadata.set_length(source.metadata.length)
        for index in range(source.metadata.length):
            if source.metadata.has(index) and not target.metadata.has(index):
                target.metadata.put(index, source.metadata.block(index))

        target.content.set_length(source.content.length)
        wanted = target.content.pending() if target.sparse else range(target.content.length)
        for index in wanted:
            if source.content.has(index) and not target.content.has(index):
                target.content.put(index, source.content.block(index))

    def _watch(self, drive: "Drive") -> None:
        def push_metadata(index: int, block: Any) -> None:
            for peer in list(drive.peers):
                peer.metadata.put(index, block)

        def push_content(index: int, block: Any) -> None:
            for peer in list(drive.peers):
                peer.content.set_length(drive.content.length)
                if not peer.sparse or index in peer.content.pending():
                    peer.content.put(index, block)

        listeners = [
            (drive.metadata, "append", push_metadata),
            (drive.metadata, "download", push_metadata),
            (drive.content, "append", push_content),
            (drive.content, "download", push_content),
        ]
        for feed, event, listener in listeners:
            feed.on(event, listener)
        self._listeners[id(drive)] = listeners


_default_swarm: Optional[Swarm] = None


def get_default_swarm() -> Swarm:
    """Return the process-wide swarm, creating it on first use."""
    global _default_swarm
    if _default_swarm is None:
        _default_swarm = Swarm()
    return _default_swarm


def reset_default_swarm() -> Swarm:
    """Replace the process-wide swarm with an empty one."""
    global _default_swarm
    _default_swarm = Swarm()
    return _default_swarm
