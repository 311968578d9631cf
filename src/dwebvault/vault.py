"""
DWebVault -- the public face of a vault.

Every operation follows the same path:

    await load -> (mutations) refuse historic versions and missing
    write capability -> (mutations) validate the path -> delegate to
    the drive or checkout -> all of it under one deadline

Construct inside a running event loop; loading starts immediately and
runs exactly once per instance.

Usage:
    vault = await DWebVault.create(local_path=Path("notes"), title="Notes")
    await vault.write_file("/todo.txt", "buy milk")
    print(await vault.history())

    old = DWebVault(vault.url + "+1")
    await old.readdir("/")          # ['dweb.json']
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from . import dns
from .checkout import Checkout, Fixed, Version, version_from_ordinal
from .config import VaultConfig
from .errors import InvalidLocationError, NotSupportedError, VaultError
from .events import FileActivityStream, NetworkActivityStream
from .history import reconstruct_history
from .loader import LoadedVault, VaultLoader
from .manifest import read_manifest, update_manifest, write_manifest
from .models import (
    MANIFEST_FIELDS,
    DirEntry,
    HistoryEntry,
    HistoryOptions,
    Manifest,
    OperationOptions,
    ReaddirOptions,
    ReadOptions,
    RmdirOptions,
    VaultInfo,
    WriteOptions,
)
from .paths import (
    assert_unprotected_path,
    assert_valid_file_path,
    assert_valid_path,
    normalize_path,
)
from .timer import with_timeout
from .url import parse_address

logger = logging.getLogger("dwebvault.vault")

T = TypeVar("T")


class DWebVault:
    """Filesystem-shaped access to one vault at one version.

    Args:
        url: dweb://<key>[+version] to open, or None for a fresh vault.
        local_path: Directory to store the vault in; None keeps it in memory.
        drive_options: Extra storage engine options.
        net_options: Extra network options (e.g. ``swarm``).
        config: Defaults for deadlines and replication.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        local_path: Optional[Union[str, Path]] = None,
        drive_options: Optional[dict[str, Any]] = None,
        net_options: Optional[dict[str, Any]] = None,
        config: Optional[VaultConfig] = None,
    ) -> None:
        address = parse_address(url) if url else None
        self.url: Optional[str] = address.url if address else None
        self.version: Version = version_from_ordinal(address.version if address else None)
        self.local_path = Path(local_path).expanduser() if local_path else None
        self.config = config or VaultConfig()

        self._loader = VaultLoader(
            key=address.key if address else None,
            version=self.version,
            local_path=self.local_path,
            drive_options=drive_options,
            net_options=net_options,
            sparse=self.config.sparse,
        )
        self._loading = self._loader.start()
        self._loading.add_done_callback(self._on_loaded)

    def _on_loaded(self, task: "asyncio.Task[LoadedVault]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Vault %s failed to load: %s", self.url or "(new)", exc)
            return
        self.url = self.url or task.result().url

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------

    @property
    def key(self) -> Optional[str]:
        """Hex identity, once known."""
        return self.url.split("://", 1)[1] if self.url else None

    @property
    def load_state(self):
        return self._loader.state

    async def ready(self) -> LoadedVault:
        """Wait for the vault to finish loading."""
        loaded = await self._loading
        self.url = self.url or loaded.url
        return loaded

    async def close(self) -> None:
        """Leave the network and release the handle."""
        if not self._loading.done():
            self._loading.cancel()
            return
        if not self._loading.cancelled() and self._loading.exception() is None:
            self._loading.result().drive.close()

    @classmethod
    async def create(
        cls,
        local_path: Optional[Union[str, Path]] = None,
        *,
        drive_options: Optional[dict[str, Any]] = None,
        net_options: Optional[dict[str, Any]] = None,
        config: Optional[VaultConfig] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        type: Optional[Union[str, list[str]]] = None,
        author: Optional[Union[str, dict[str, Any]]] = None,
    ) -> "DWebVault":
        """Create a fresh vault and write its manifest.

        Raises:
            InvalidLocationError: If local_path is a file or a non-empty directory.
        """
        if local_path:
            target = Path(local_path).expanduser()
            if target.exists():
                if not target.is_dir():
                    raise InvalidLocationError("Cannot create vault. (A file exists at the target location.)")
                if any(target.iterdir()):
                    raise InvalidLocationError("Cannot create vault. (The target folder is not empty.)")

        vault = cls(None, local_path=local_path, drive_options=drive_options, net_options=net_options, config=config)
        loaded = await vault.ready()
        manifest = Manifest(url=loaded.url, title=title, description=description, type=type, author=author)
        await write_manifest(loaded.drive, manifest)
        logger.info("Created vault %s", loaded.url)
        return vault

    @classmethod
    async def load(
        cls,
        local_path: Optional[Union[str, Path]] = None,
        *,
        drive_options: Optional[dict[str, Any]] = None,
        net_options: Optional[dict[str, Any]] = None,
        config: Optional[VaultConfig] = None,
    ) -> "DWebVault":
        """Open the vault stored in an existing directory.

        Raises:
            InvalidLocationError: If local_path is missing or not a directory.
        """
        if not local_path:
            raise InvalidLocationError("Must provide local_path.")
        target = Path(local_path).expanduser()
        if not target.is_dir():
            raise InvalidLocationError("Cannot load vault. (No folder exists at the given location.)")

        vault = cls(None, local_path=target, drive_options=drive_options, net_options=net_options, config=config)
        loaded = await vault.ready()
        logger.info("Loaded vault %s from %s", loaded.url, target)
        return vault

    @staticmethod
    async def resolve_name(name: str, config: Optional[VaultConfig] = None) -> str:
        """Resolve a name to a 64-hex vault key.

        Args:
            name: Key, dweb:// URL or domain name.
            config: Supplies the lookup timeout and cache lifetime.
        """
        return await dns.resolve_name(name, config)

    # -------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------

    def _timeout(self, options: OperationOptions) -> float:
        return options.timeout if options.timeout is not None else self.config.timeout_ms

    async def _run(self, options: OperationOptions, fn: Callable[[Checkout], Awaitable[T]]) -> T:
        async def operation() -> T:
            loaded = await self._loading
            return await fn(loaded.checkout)

        return await with_timeout(operation(), self._timeout(options))

    # -------------------------------------------------------------------
    # Info and manifest
    # -------------------------------------------------------------------

    async def get_info(self, **opts: Any) -> VaultInfo:
        """Vault state merged with its manifest; an unreadable manifest reads as empty."""
        options = OperationOptions.model_validate(opts)

        async def op(checkout: Checkout) -> VaultInfo:
            try:
                manifest = await read_manifest(checkout.view)
            except (VaultError, ValueError) as exc:
                logger.warning("Could not read manifest: %s", exc)
                manifest = Manifest()

            drive = checkout.drive
            key = drive.key.hex()
            return VaultInfo(
                key=key,
                url=self.url or f"dweb://{key}",
                is_owner=drive.writable,
                version=checkout.version,
                peers=len(drive.peers),
                title=manifest.title,
                description=manifest.description,
                type=manifest.type,
                author=manifest.author,
            )

        return await self._run(options, op)

    async def configure(self, settings: dict[str, Any], **opts: Any) -> None:
        """Merge manifest fields (title, description, type, author) into dweb.json.

        Other settings are accepted and currently have no effect.
        """
        if not isinstance(settings, dict):
            raise TypeError("settings must be a dict")
        options = OperationOptions.model_validate(opts)

        async def op(checkout: Checkout) -> None:
            drive = checkout.assert_writable()
            if any(field in settings for field in MANIFEST_FIELDS):
                await update_manifest(drive, settings)
            if "networked" in settings:
                logger.debug("Ignoring reserved setting 'networked'")

        await self._run(options, op)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    async def stat(self, filepath: str, **opts: Any):
        filepath = normalize_path(filepath)
        options = OperationOptions.model_validate(opts)
        return await self._run(options, lambda checkout: checkout.view.stat(filepath))

    async def read_file(self, filepath: str, encoding: str = "utf8", **opts: Any) -> Union[str, bytes]:
        """Read a file as text (utf8) or as binary, hex or base64."""
        filepath = normalize_path(filepath)
        options = ReadOptions.model_validate({**opts, "encoding": encoding})
        return await self._run(options, lambda checkout: checkout.view.read_file(filepath, options.encoding))

    async def readdir(self, filepath: str = "/", **opts: Any) -> list[Union[str, DirEntry]]:
        """List a directory; with stat=True, each name comes with its stat."""
        filepath = normalize_path(filepath)
        options = ReaddirOptions.model_validate(opts)

        async def op(checkout: Checkout) -> list[Union[str, DirEntry]]:
            names = await checkout.view.readdir(filepath)
            if not options.stat:
                return names
            return [
                DirEntry(name=name, stat=await checkout.view.stat(posixpath.join(filepath, name)))
                for name in names
            ]

        return await self._run(options, op)

    async def history(self, **opts: Any) -> list[HistoryEntry]:
        """Change records for a range of the log (see dwebvault.history)."""
        options = HistoryOptions.model_validate(opts)
        return await self._run(
            options,
            lambda checkout: reconstruct_history(checkout, options.start, options.end, options.reverse),
        )

    async def download(self, filepath: str = "/", **opts: Any) -> None:
        """Fetch missing content under a path; a no-op for the owner."""
        filepath = normalize_path(filepath)
        options = OperationOptions.model_validate(opts)

        async def op(checkout: Checkout) -> None:
            if isinstance(checkout.requested, Fixed):
                raise NotSupportedError("Not yet supported: can't download() old versions yet.")
            if checkout.drive.writable:
                return
            await checkout.drive.download(filepath)

        await self._run(options, op)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------

    async def write_file(self, filepath: str, data: Union[str, bytes], encoding: str = "utf8", **opts: Any) -> None:
        filepath = normalize_path(filepath)
        options = WriteOptions.model_validate({**opts, "encoding": encoding})

        async def op(checkout: Checkout) -> None:
            drive = checkout.assert_writable()
            assert_valid_file_path(filepath)
            assert_unprotected_path(filepath)
            await drive.write_file(filepath, data, options.encoding)

        await self._run(options, op)

    async def unlink(self, filepath: str, **opts: Any) -> None:
        filepath = normalize_path(filepath)
        options = OperationOptions.model_validate(opts)

        async def op(checkout: Checkout) -> None:
            drive = checkout.assert_writable()
            assert_unprotected_path(filepath)
            await drive.unlink(filepath)

        await self._run(options, op)

    async def mkdir(self, filepath: str, **opts: Any) -> None:
        filepath = normalize_path(filepath)
        options = OperationOptions.model_validate(opts)

        async def op(checkout: Checkout) -> None:
            drive = checkout.assert_writable()
            assert_valid_path(filepath)
            assert_unprotected_path(filepath)
            await drive.mkdir(filepath)

        await self._run(options, op)

    async def rmdir(self, filepath: str, **opts: Any) -> None:
        filepath = normalize_path(filepath)
        options = RmdirOptions.model_validate(opts)

        async def op(checkout: Checkout) -> None:
            drive = checkout.assert_writable()
            assert_unprotected_path(filepath)
            await drive.rmdir(filepath, recursive=options.recursive)

        await self._run(options, op)

    # -------------------------------------------------------------------
    # Staging (reserved)
    # -------------------------------------------------------------------

    async def diff(self) -> list:
        return []

    async def commit(self) -> list:
        return []

    async def revert(self) -> list:
        return []

    # -------------------------------------------------------------------
    # Activity
    # -------------------------------------------------------------------

    def create_file_activity_stream(self, pattern: Optional[str] = None) -> FileActivityStream:
        return FileActivityStream(self._loading, pattern)

    def create_network_activity_stream(self) -> NetworkActivityStream:
        return NetworkActivityStream(self._loading)
