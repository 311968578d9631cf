"""
History reconstruction -- the log as a list of changes.

Forward reads return entries [start, end) oldest first. Reverse reads
count start/end from the newest entry instead, so

    history(reverse=True, start=s, end=e) == reversed(history())[s:e]

e.g. start=0, end=10, reverse=True is "the ten most recent changes".
"""

from __future__ import annotations

import logging
from typing import Optional

from .checkout import Checkout
from .models import ChangeType, HistoryEntry

logger = logging.getLogger("dwebvault.history")

_CHANGE_TYPES = {"put": ChangeType.PUT, "del": ChangeType.DELETE}


def history_window(length: int, start: Optional[int], end: Optional[int], reverse: bool) -> tuple[int, int]:
    """Compute the absolute [start, end) log window to read.

    Args:
        length: Current log length of the checkout.
        start: Requested start (default 0), clamped to [0, length].
        end: Requested end, clamped to [start, length]. None or 0 means
            the current length.
        reverse: Whether start/end count from the newest entry.

    Returns:
        tuple[int, int]: Absolute window in log order.
    """
    start = min(max(start or 0, 0), length)
    end = min(max(end, start), length) if end else length
    if reverse:
        start, end = length - end, length - start
    return start, end


async def reconstruct_history(
    checkout: Checkout,
    start: Optional[int] = None,
    end: Optional[int] = None,
    reverse: bool = False,
) -> list[HistoryEntry]:
    """Read a range of the log into HistoryEntry records.

    The whole range is collected before returning, then reversed if
    requested.
    """
    window = history_window(checkout.version, start, end, reverse)
    logger.debug("Reading history window %s (reverse=%s)", window, reverse)

    entries = [
        HistoryEntry(path=record["name"], version=record["version"], type=_CHANGE_TYPES[record["type"]])
        async for record in checkout.view.history(*window)
    ]
    if reverse:
        entries.reverse()
    return entries
