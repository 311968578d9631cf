"""
Activity streams -- native drive notifications as typed events.

Two streams exist:

    FileActivityStream     changed {path}        (optionally glob-filtered)
    NetworkActivityStream  network-changed {}
                           download {feed, block}
                           sync {feed}

Events are delivered in source order, one per notification, and only
to listeners attached at the time. Nothing is buffered.

Usage:
    events = vault.create_file_activity_stream("/docs/*")
    events.add_event_listener("changed", lambda ev: print(ev.path))
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel

if TYPE_CHECKING:
    from .drive import Drive
    from .loader import LoadedVault

logger = logging.getLogger("dwebvault.events")


# ---------------------------------------------------------------------------
# Event payloads
# ---------------------------------------------------------------------------


class FeedName(str, Enum):
    """Which of the drive's two logs an event concerns."""

    METADATA = "metadata"
    CONTENT = "content"


class ChangedEvent(BaseModel):
    type: Literal["changed"] = "changed"
    path: str


class NetworkChangedEvent(BaseModel):
    type: Literal["network-changed"] = "network-changed"
    connections: int = 0


class DownloadEvent(BaseModel):
    type: Literal["download"] = "download"
    feed: FeedName
    block: int
    size: int = 0


class SyncEvent(BaseModel):
    type: Literal["sync"] = "sync"
    feed: FeedName


ActivityEvent = Union[ChangedEvent, NetworkChangedEvent, DownloadEvent, SyncEvent]
Listener = Callable[[Any], None]


# ---------------------------------------------------------------------------
# Event target
# ---------------------------------------------------------------------------


class EventTarget:
    """Subscribe/unsubscribe by event name; dispatch in call order."""

    event_names: tuple[str, ...] = ()

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def add_event_listener(self, event_name: str, listener: Listener) -> None:
        if self.event_names and event_name not in self.event_names:
            raise ValueError(f"Unknown event {event_name!r}; expected one of {', '.join(self.event_names)}")
        self._listeners.setdefault(event_name, []).append(listener)

    def remove_event_listener(self, event_name: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_name, [])
        if listener in listeners:
            listeners.remove(listener)

    def dispatch_event(self, event: ActivityEvent) -> int:
        """Deliver an event to its listeners.

        A failing listener is logged and does not stop the others.

        Returns:
            int: Number of listeners that handled the event.
        """
        delivered = 0
        for listener in list(self._listeners.get(event.type, [])):
            try:
                listener(event)
                delivered += 1
            except Exception as exc:
                logger.warning("Listener error on '%s': %s", event.type, exc)
        return delivered


# ---------------------------------------------------------------------------
# Streams
# ---------------------------------------------------------------------------


class _DriveStream(EventTarget):
    """An event target fed by a drive once the vault has loaded."""

    _native_events: tuple[str, ...] = ()

    def __init__(self, loading: "asyncio.Future[LoadedVault]") -> None:
        super().__init__()
        self._drive: Optional["Drive"] = None
        self._closed = False
        self._handlers = {name: getattr(self, "_on_" + name.replace("-", "_")) for name in self._native_events}
        if loading.done():
            self._attach(loading)
        else:
            loading.add_done_callback(self._attach)

    def _attach(self, loading: "asyncio.Future[LoadedVault]") -> None:
        if self._closed or loading.cancelled() or loading.exception() is not None:
            return
        self._drive = loading.result().drive
        for name, handler in self._handlers.items():
            self._drive.on(name, handler)

    def close(self) -> None:
        """Stop listening to the drive."""
        self._closed = True
        if self._drive is not None:
            for name, handler in self._handlers.items():
                self._drive.off(name, handler)
            self._drive = None


class FileActivityStream(_DriveStream):
    """Emits `changed` for every log entry whose path matches the pattern.

    Args:
        loading: The vault's load future.
        pattern: fnmatch-style glob; None matches everything.
    """

    event_names = ("changed",)
    _native_events = ("changed",)

    def __init__(self, loading: "asyncio.Future[LoadedVault]", pattern: Optional[str] = None) -> None:
        self.pattern = pattern
        super().__init__(loading)

    def _on_changed(self, name: str) -> None:
        if self.pattern is None or fnmatch.fnmatch(name, self.pattern):
            self.dispatch_event(ChangedEvent(path=name))


class NetworkActivityStream(_DriveStream):
    """Emits peer, download and sync events for both feeds."""

    event_names = ("network-changed", "download", "sync")
    _native_events = ("peer-add", "peer-remove", "download", "sync")

    def _on_peer_add(self, peer: Any) -> None:
        self._network_changed()

    def _on_peer_remove(self, peer: Any) -> None:
        self._network_changed()

    def _network_changed(self) -> None:
        connections = len(self._drive.peers) if self._drive is not None else 0
        self.dispatch_event(NetworkChangedEvent(connections=connections))

    def _on_download(self, feed: str, index: int, data: Any) -> None:
        size = len(data) if isinstance(data, (bytes, bytearray)) else 0
        self.dispatch_event(DownloadEvent(feed=FeedName(feed), block=index, size=size))

    def _on_sync(self, feed: str) -> None:
        self.dispatch_event(SyncEvent(feed=FeedName(feed)))
