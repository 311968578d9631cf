"""
Reference storage engine -- the collaborator the vault layer talks to.

Two append-only feeds (metadata + content) folded into a drive, and an
in-process swarm that replicates drives sharing a key.
"""

from .drive import Drive, DriveCheckout
from .feed import Feed
from .models import EntryKind, LogEntry, Stat
from .swarm import Swarm, get_default_swarm, reset_default_swarm

__all__ = [
    "Drive",
    "DriveCheckout",
    "EntryKind",
    "Feed",
    "LogEntry",
    "Stat",
    "Swarm",
    "get_default_swarm",
    "reset_default_swarm",
]
