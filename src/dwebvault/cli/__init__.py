"""
dwebvault CLI -- inspect and edit vaults from the shell.

The main Click group is defined here; command groups live in their own
modules and are attached via register functions.

Entry point: dwebvault.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="dwebvault")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool):
    """dwebvault -- versioned peer-to-peer vaults.

    Every command works on a vault directory created with `create`.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


from .vault_cmd import register_vault_commands  # noqa: E402
from .files import register_file_commands  # noqa: E402

register_vault_commands(main)
register_file_commands(main)
