"""File commands: ls, cat, put, mkdir, rm."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from rich.table import Table

from ._common import console, home_option, run_with_vault


def register_file_commands(main: click.Group) -> None:
    """Register the file commands on the main CLI group."""

    vault_path = click.argument("path", type=click.Path(exists=True, file_okay=False))

    @main.command("ls")
    @vault_path
    @click.argument("directory", default="/")
    @click.option("--stat", "with_stat", is_flag=True, help="Show size and kind.")
    @home_option
    def ls(path: str, directory: str, with_stat: bool, home: str):
        """List a directory inside the vault."""
        entries = run_with_vault(path, home, lambda vault: vault.readdir(directory, stat=with_stat))

        if not with_stat:
            for name in entries:
                click.echo(name)
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Name", style="cyan")
        table.add_column("Kind", style="dim")
        table.add_column("Size", justify="right")
        for entry in entries:
            kind = "dir" if entry.stat.is_directory() else "file"
            table.add_row(entry.name, kind, str(entry.stat.size))
        console.print(table)

    @main.command()
    @vault_path
    @click.argument("filepath")
    @home_option
    def cat(path: str, filepath: str, home: str):
        """Print a file from the vault."""
        data = run_with_vault(path, home, lambda vault: vault.read_file(filepath, "binary"))
        click.echo(data, nl=False)

    @main.command()
    @vault_path
    @click.argument("filepath")
    @click.option("--text", default=None, help="Content to write.")
    @click.option("--from-file", "source", type=click.Path(exists=True, dir_okay=False), help="Copy a local file.")
    @home_option
    def put(path: str, filepath: str, text: Optional[str], source: Optional[str], home: str):
        """Write a file into the vault."""
        if (text is None) == (source is None):
            console.print("\n  [yellow]Provide exactly one of --text or --from-file.[/]\n")
            sys.exit(1)
        data = text.encode("utf-8") if text is not None else Path(source).read_bytes()

        run_with_vault(path, home, lambda vault: vault.write_file(filepath, data))
        console.print(f"\n  [green]Wrote[/] [cyan]{filepath}[/] ({len(data)} bytes)\n")

    @main.command()
    @vault_path
    @click.argument("directory")
    @home_option
    def mkdir(path: str, directory: str, home: str):
        """Create a directory inside the vault."""
        run_with_vault(path, home, lambda vault: vault.mkdir(directory))
        console.print(f"\n  [green]Created[/] [cyan]{directory}[/]\n")

    @main.command()
    @vault_path
    @click.argument("target")
    @click.option("--recursive", "-r", is_flag=True, help="Remove a directory and its contents.")
    @home_option
    def rm(path: str, target: str, recursive: bool, home: str):
        """Remove a file (or, with -r, a directory) from the vault."""
        async def _remove(vault):
            st = await vault.stat(target)
            if st.is_directory():
                await vault.rmdir(target, recursive=recursive)
            else:
                await vault.unlink(target)

        run_with_vault(path, home, _remove)
        console.print(f"\n  [green]Removed[/] [cyan]{target}[/]\n")
