"""
dwebvault -- versioned access to peer-to-peer dweb vaults.

A vault is a named, append-only log of file mutations. This package
opens one (as owner or as replica), waits for it to be ready, and
exposes filesystem-shaped reads and writes against the live head or
any historical version, each bounded by a timeout.

    vault = await DWebVault.create(local_path=path, title="Notes")
    await vault.write_file("/hello.txt", "hi")
    old = DWebVault(vault.url + "+1")
"""

import os

__version__ = "0.1.0"
__author__ = "dwebvault contributors"

VAULT_HOME = os.environ.get("DWEBVAULT_HOME", "~/.dwebvault")

from .vault import DWebVault  # noqa: E402

__all__ = ["DWebVault", "VAULT_HOME", "__version__"]
