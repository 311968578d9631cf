"""Shared utilities for the CLI command modules.

Provides the Rich console, the --home option and a runner that opens
a vault directory, hands it to a coroutine and closes it again.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import click
from rich.console import Console

from .. import VAULT_HOME
from ..config import VaultConfig, load_config
from ..errors import VaultError
from ..vault import DWebVault

console = Console()

T = TypeVar("T")

home_option = click.option(
    "--home", default=VAULT_HOME, type=click.Path(), help="Directory holding config.yaml.",
)


def get_config(home: str) -> VaultConfig:
    return load_config(Path(home).expanduser())


def run_with_vault(path: str, home: str, fn: Callable[[DWebVault], Awaitable[T]]) -> T:
    """Load the vault at `path`, run `fn` against it, then close it.

    Vault errors are printed and exit with status 1.
    """
    config = get_config(home)

    async def _run() -> T:
        vault = await DWebVault.load(Path(path), config=config)
        try:
            return await fn(vault)
        finally:
            await vault.close()

    return run_or_exit(_run())


def run_or_exit(coro: Awaitable[T]) -> T:
    try:
        return asyncio.run(coro)
    except VaultError as exc:
        console.print(f"\n  [red]Error:[/] {exc}\n")
        sys.exit(1)


def format_author(author: Any) -> str:
    if author is None:
        return ""
    if isinstance(author, str):
        return author
    name = getattr(author, "name", None) or ""
    url = getattr(author, "url", None)
    return f"{name} <{url}>" if url else name
