"""Tests for history windows and reconstruction."""

from __future__ import annotations

import pytest

from dwebvault.checkout import Fixed, Live, resolve_checkout
from dwebvault.drive import Drive
from dwebvault.history import history_window, reconstruct_history
from dwebvault.models import ChangeType


class TestHistoryWindow:
    """Tests for history_window arithmetic."""

    @pytest.mark.parametrize("start, end, reverse, expected", [
        (None, None, False, (0, 10)),
        (2, 5, False, (2, 5)),
        (20, None, False, (10, 10)),
        (5, 2, False, (5, 5)),
        (None, 30, False, (0, 10)),
        (0, 3, True, (7, 10)),
        (2, 5, True, (5, 8)),
        (None, None, True, (0, 10)),
        (0, 30, True, (0, 10)),
        (12, None, True, (0, 0)),
        (None, 0, False, (0, 10)),
        (3, 0, False, (3, 10)),
        (0, 0, True, (0, 10)),
        (2, 0, True, (0, 8)),
    ])
    def test_window(self, start, end, reverse, expected) -> None:
        assert history_window(10, start, end, reverse) == expected

    def test_empty_log(self) -> None:
        assert history_window(0, None, None, False) == (0, 0)
        assert history_window(0, 0, 5, True) == (0, 0)


async def _drive() -> Drive:
    """A drive whose log is: put a, put b, put c, del a."""
    drive = await Drive.open()
    await drive.write_file("/a.txt", "a")
    await drive.write_file("/b.txt", "b")
    await drive.write_file("/c.txt", "c")
    await drive.unlink("/a.txt")
    return drive


def _summary(entries):
    return [(e.path, e.version, e.type) for e in entries]


class TestReconstructHistory:
    """Tests for reconstruct_history against a drive."""

    @pytest.mark.asyncio
    async def test_forward(self) -> None:
        drive = await _drive()
        entries = await reconstruct_history(resolve_checkout(drive, Live()))
        assert _summary(entries) == [
            ("/a.txt", 1, ChangeType.PUT),
            ("/b.txt", 2, ChangeType.PUT),
            ("/c.txt", 3, ChangeType.PUT),
            ("/a.txt", 4, ChangeType.DELETE),
        ]

    @pytest.mark.asyncio
    async def test_forward_range(self) -> None:
        drive = await _drive()
        entries = await reconstruct_history(resolve_checkout(drive, Live()), start=1, end=3)
        assert [e.version for e in entries] == [2, 3]

    @pytest.mark.asyncio
    async def test_reverse_most_recent(self) -> None:
        drive = await _drive()
        entries = await reconstruct_history(resolve_checkout(drive, Live()), start=0, end=2, reverse=True)
        assert _summary(entries) == [
            ("/a.txt", 4, ChangeType.DELETE),
            ("/c.txt", 3, ChangeType.PUT),
        ]

    @pytest.mark.asyncio
    async def test_reverse_matches_reversed_forward(self) -> None:
        drive = await _drive()
        checkout = resolve_checkout(drive, Live())
        forward = await reconstruct_history(checkout)
        for start, end in [(0, 4), (1, 3), (2, 10), (3, 4), (4, 4)]:
            reverse = await reconstruct_history(checkout, start=start, end=end, reverse=True)
            assert reverse == list(reversed(forward))[start:end]

    @pytest.mark.asyncio
    async def test_fixed_checkout_bounds_length(self) -> None:
        drive = await _drive()
        entries = await reconstruct_history(resolve_checkout(drive, Fixed(2)))
        assert [e.path for e in entries] == ["/a.txt", "/b.txt"]

    @pytest.mark.asyncio
    async def test_start_past_end_is_empty(self) -> None:
        drive = await _drive()
        assert await reconstruct_history(resolve_checkout(drive, Live()), start=9) == []

    @pytest.mark.asyncio
    async def test_zero_end_reads_to_head(self) -> None:
        drive = await _drive()
        checkout = resolve_checkout(drive, Live())
        forward = await reconstruct_history(checkout)
        assert await reconstruct_history(checkout, end=0) == forward
        assert await reconstruct_history(checkout, end=0, reverse=True) == list(reversed(forward))
