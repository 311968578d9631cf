"""Tests for in-process replication between drives that share a key."""

from __future__ import annotations

import asyncio

import pytest

from dwebvault.drive import Drive, Swarm, get_default_swarm, reset_default_swarm


async def _pair(sparse: bool = True):
    """Return (swarm, owner, replica) after the peers have connected."""
    swarm = Swarm()
    owner = await Drive.open()
    await owner.write_file("/hello.txt", "hello")
    await owner.write_file("/data.bin", b"\x01" * 10)
    replica = await Drive.open(key=owner.key, sparse=sparse)
    owner.join_network(swarm)
    replica.join_network(swarm)
    await asyncio.sleep(0)
    return swarm, owner, replica


class TestConnect:
    """Tests for joining and leaving."""

    @pytest.mark.asyncio
    async def test_peers_connect_on_next_iteration(self) -> None:
        swarm = Swarm()
        owner = await Drive.open()
        replica = await Drive.open(key=owner.key)
        owner.join_network(swarm)
        replica.join_network(swarm)
        assert owner.peers == []

        await asyncio.sleep(0)
        assert owner.peers == [replica]
        assert replica.peers == [owner]

    @pytest.mark.asyncio
    async def test_different_keys_stay_apart(self) -> None:
        swarm = Swarm()
        a = await Drive.open()
        b = await Drive.open()
        a.join_network(swarm)
        b.join_network(swarm)
        await asyncio.sleep(0)
        assert a.peers == [] and b.peers == []

    @pytest.mark.asyncio
    async def test_join_twice_is_noop(self) -> None:
        swarm = Swarm()
        drive = await Drive.open()
        swarm.join(drive)
        swarm.join(drive)
        assert swarm.drives(drive.key) == [drive]

    @pytest.mark.asyncio
    async def test_leave_emits_peer_remove(self) -> None:
        swarm, owner, replica = await _pair()
        removed = []
        owner.on("peer-remove", removed.append)

        replica.leave_network()
        assert removed == [replica]
        assert owner.peers == []
        assert swarm.drives(owner.key) == [owner]

    @pytest.mark.asyncio
    async def test_peer_add_events(self) -> None:
        swarm = Swarm()
        owner = await Drive.open()
        added = []
        owner.on("peer-add", added.append)
        owner.join_network(swarm)
        replica = await Drive.open(key=owner.key)
        replica.join_network(swarm)
        await asyncio.sleep(0)
        assert added == [replica]


class TestReplication:
    """Tests for metadata and content replication."""

    @pytest.mark.asyncio
    async def test_metadata_replicates_fully(self) -> None:
        _, owner, replica = await _pair()
        assert replica.metadata.length == owner.metadata.length == 2
        assert replica.metadata.missing() == []
        assert await replica.readdir("/") == ["data.bin", "hello.txt"]

    @pytest.mark.asyncio
    async def test_sparse_content_on_demand(self) -> None:
        _, owner, replica = await _pair()
        assert replica.content.length == 2
        assert replica.content.downloaded() == 0
        assert (await replica.stat("/hello.txt")).downloaded == 0

        assert await replica.read_file("/hello.txt") == "hello"
        assert (await replica.stat("/hello.txt")).downloaded == 1
        assert replica.content.missing() == [1]

    @pytest.mark.asyncio
    async def test_eager_content(self) -> None:
        _, owner, replica = await _pair(sparse=False)
        assert replica.content.missing() == []

    @pytest.mark.asyncio
    async def test_live_updates(self) -> None:
        _, owner, replica = await _pair()
        changed = []
        replica.on("changed", changed.append)

        await owner.write_file("/new.txt", "fresh")
        assert changed == ["/new.txt"]
        assert replica.metadata.length == 3
        assert await replica.read_file("/new.txt") == "fresh"

    @pytest.mark.asyncio
    async def test_download_root_fetches_everything(self) -> None:
        _, owner, replica = await _pair()
        await owner.write_file("/hello.txt", "overwritten")
        await replica.download("/")
        assert replica.content.missing() == []

    @pytest.mark.asyncio
    async def test_download_single_file(self) -> None:
        _, owner, replica = await _pair()
        await replica.download("/data.bin")
        assert replica.content.missing() == [0]

    @pytest.mark.asyncio
    async def test_replica_events(self) -> None:
        _, owner, replica = await _pair()
        events = []
        replica.on("download", lambda feed, index, data: events.append(("download", feed, index)))
        replica.on("sync", lambda feed: events.append(("sync", feed)))

        await replica.read_file("/hello.txt")
        assert events == [("download", "content", 0)]

        await replica.read_file("/data.bin")
        assert events[-2:] == [("download", "content", 1), ("sync", "content")]

    @pytest.mark.asyncio
    async def test_unreachable_block_waits(self) -> None:
        owner = await Drive.open()
        await owner.write_file("/hello.txt", "hello")
        replica = await Drive.open(key=owner.key)
        replica.metadata.put(0, owner.metadata.block(0))
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(replica.read_file("/hello.txt"), 0.05)


def test_default_swarm_reset() -> None:
    first = get_default_swarm()
    assert get_default_swarm() is first
    second = reset_default_swarm()
    assert second is not first
    assert get_default_swarm() is second
