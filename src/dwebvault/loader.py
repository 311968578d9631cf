"""
Vault loading -- from an address (or nothing) to a ready checkout.

    INITIALIZING -> open/create the handle, join the network
    WAITING_FOR_FIRST_SYNC -> only for replicas that know no entries yet
    READY | FAILED -> terminal

A loader runs once. Its task is the single future every vault
operation awaits before doing anything else.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .checkout import Checkout, Version, resolve_checkout
from .drive import Drive
from .errors import LoadFailureError
from .url import SCHEME

logger = logging.getLogger("dwebvault.loader")


class LoadState(str, Enum):
    """Where a loader is in its lifecycle."""

    INITIALIZING = "initializing"
    WAITING_FOR_FIRST_SYNC = "waiting-for-first-sync"
    READY = "ready"
    FAILED = "failed"


@dataclass
class LoadedVault:
    """Everything a ready vault needs."""

    key: str
    url: str
    drive: Drive
    checkout: Checkout


class VaultLoader:
    """Opens a vault handle and waits until it is usable.

    Args:
        key: Hex identity to open, or None to create a fresh vault.
        version: Live() or Fixed(n) checkout to bind once ready.
        local_path: Vault directory, or None for an in-memory vault.
        drive_options: Extra options for the storage engine.
        net_options: Extra options for joining the network.
    """

    def __init__(
        self,
        key: Optional[str],
        version: Version,
        local_path: Optional[Path] = None,
        drive_options: Optional[dict[str, Any]] = None,
        net_options: Optional[dict[str, Any]] = None,
        sparse: bool = True,
    ) -> None:
        self.key = key
        self.version = version
        self.local_path = Path(local_path).expanduser() if local_path else None
        self.state = LoadState.INITIALIZING
        self._drive_options = dict(drive_options or {})
        self._net_options = dict(net_options or {})
        self._sparse = sparse
        self._task: Optional[asyncio.Task] = None

    def start(self) -> "asyncio.Task[LoadedVault]":
        """Begin loading. Idempotent: the same task is returned every time.

        Must be called with a running event loop.
        """
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def _open_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"sparse": self._sparse}
        options.update(self._drive_options)
        if self.key is not None:
            options["key"] = self.key
        return options

    async def _run(self) -> LoadedVault:
        try:
            drive = await Drive.open(self.local_path, **self._open_options())
        except Exception as exc:
            self.state = LoadState.FAILED
            raise LoadFailureError(f"Failed to open vault: {exc}") from exc

        try:
            drive.join_network(**self._net_options)
        except Exception as exc:
            self.state = LoadState.FAILED
            drive.close()
            raise LoadFailureError(f"Failed to join the network: {exc}") from exc

        key = drive.key.hex()
        logger.info("Opened vault %s (%s)", key, "owner" if drive.writable else "replica")

        if not drive.writable and drive.metadata.length == 0:
            self.state = LoadState.WAITING_FOR_FIRST_SYNC
            logger.debug("Waiting for first metadata sync of %s", key)
            try:
                await drive.metadata.update()
            except asyncio.CancelledError:
                self.state = LoadState.FAILED
                drive.close()
                raise
            except Exception as exc:
                self.state = LoadState.FAILED
                drive.close()
                raise LoadFailureError(f"First sync of {key} failed: {exc}") from exc

        checkout = resolve_checkout(drive, self.version)
        self.state = LoadState.READY
        return LoadedVault(key=key, url=f"{SCHEME}://{key}", drive=drive, checkout=checkout)
