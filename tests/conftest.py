"""Shared test fixtures for dwebvault."""

from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio

from dwebvault.drive import reset_default_swarm
from dwebvault.vault import DWebVault


@pytest.fixture(autouse=True)
def fresh_swarm():
    """Give every test its own in-process network."""
    swarm = reset_default_swarm()
    yield swarm
    reset_default_swarm()


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    """A not-yet-existing directory for a new vault."""
    return tmp_path / "vault"


@pytest_asyncio.fixture
async def owned_vault(vault_dir: Path) -> DWebVault:
    """A freshly created vault with a manifest, stored on disk."""
    vault = await DWebVault.create(
        vault_dir,
        title="The Title",
        description="The Description",
        type="dataset",
        author={"name": "Bob", "url": "dweb://" + "f" * 32},
    )
    yield vault
    await vault.close()


@pytest_asyncio.fixture
async def static_vault(tmp_path: Path) -> DWebVault:
    """An owned vault holding a small static site.

    Log: dweb.json, /hello.txt, /subdir/hello.txt,
    /subdir/space in the name.txt, /logo.png (version 5).
    """
    vault = await DWebVault.create(tmp_path / "static", title="Static")
    await vault.write_file("/hello.txt", "hello")
    await vault.write_file("/subdir/hello.txt", "hi")
    await vault.write_file("/subdir/space in the name.txt", "hi")
    await vault.write_file("/logo.png", bytes(range(256)) * 8)
    yield vault
    await vault.close()
