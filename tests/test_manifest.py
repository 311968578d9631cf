"""Tests for manifest reading and merging."""

from __future__ import annotations

import json

import pytest

from dwebvault.drive import Drive
from dwebvault.errors import NotFoundError
from dwebvault.manifest import read_manifest, update_manifest, write_manifest
from dwebvault.models import Author, Manifest


class TestManifestIO:
    """Tests for read_manifest / write_manifest."""

    @pytest.mark.asyncio
    async def test_write_then_read(self) -> None:
        drive = await Drive.open()
        await write_manifest(drive, Manifest(title="T", type="x", author={"name": "Bob"}))
        manifest = await read_manifest(drive)
        assert manifest.title == "T"
        assert manifest.type == ["x"]
        assert manifest.author == Author(name="Bob")

    @pytest.mark.asyncio
    async def test_none_fields_not_written(self) -> None:
        drive = await Drive.open()
        await write_manifest(drive, Manifest(title="T"))
        assert json.loads(await drive.read_file("/dweb.json")) == {"title": "T"}

    @pytest.mark.asyncio
    async def test_missing(self) -> None:
        drive = await Drive.open()
        with pytest.raises(NotFoundError):
            await read_manifest(drive)

    @pytest.mark.asyncio
    async def test_not_an_object(self) -> None:
        drive = await Drive.open()
        await drive.write_file("/dweb.json", "[1, 2]")
        with pytest.raises(ValueError):
            await read_manifest(drive)


class TestUpdateManifest:
    """Tests for update_manifest."""

    @pytest.mark.asyncio
    async def test_merges_recognized_fields(self) -> None:
        drive = await Drive.open()
        await write_manifest(drive, Manifest(url="dweb://x", title="Old", description="Kept"))

        merged = await update_manifest(drive, {"title": "New", "networked": True})
        assert merged.title == "New"
        assert merged.description == "Kept"
        assert merged.url == "dweb://x"
        assert "networked" not in merged.model_dump()

    @pytest.mark.asyncio
    async def test_extra_fields_survive(self) -> None:
        drive = await Drive.open()
        await drive.write_file("/dweb.json", json.dumps({"title": "Old", "links": {"home": "/"}}))
        await update_manifest(drive, {"description": "New"})
        stored = json.loads(await drive.read_file("/dweb.json"))
        assert stored == {"title": "Old", "description": "New", "links": {"home": "/"}}

    @pytest.mark.asyncio
    async def test_unreadable_manifest_replaced(self) -> None:
        drive = await Drive.open()
        await drive.write_file("/dweb.json", "garbage")
        merged = await update_manifest(drive, {"title": "Fresh"})
        assert merged.model_dump(exclude_none=True) == {"title": "Fresh"}
