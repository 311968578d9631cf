"""Vault-level commands: create, info, history, resolve."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from ._common import console, format_author, get_config, home_option, run_or_exit, run_with_vault


def register_vault_commands(main: click.Group) -> None:
    """Register the vault-level commands on the main CLI group."""

    @main.command()
    @click.argument("path", type=click.Path())
    @click.option("--title", default=None, help="Manifest title.")
    @click.option("--description", default=None, help="Manifest description.")
    @click.option("--type", "types", multiple=True, help="Manifest type (repeatable).")
    @click.option("--author", default=None, help="Manifest author.")
    @home_option
    def create(path: str, title: Optional[str], description: Optional[str], types: tuple, author: Optional[str], home: str):
        """Create a new vault in an empty (or missing) directory."""
        from ..vault import DWebVault

        config = get_config(home)

        async def _create() -> str:
            vault = await DWebVault.create(
                Path(path), config=config, title=title, description=description,
                type=list(types) or None, author=author,
            )
            await vault.close()
            return vault.url

        url = run_or_exit(_create())
        console.print(f"\n  [green]Created vault:[/] [cyan]{url}[/]")
        console.print(f"  Stored in: [dim]{path}[/]\n")

    @main.command()
    @click.argument("path", type=click.Path(exists=True, file_okay=False))
    @click.option("--json-out", is_flag=True, help="Output as JSON.")
    @home_option
    def info(path: str, json_out: bool, home: str):
        """Show a vault's identity, version and manifest."""
        vault_info = run_with_vault(path, home, lambda vault: vault.get_info())

        if json_out:
            click.echo(json.dumps(vault_info.model_dump(mode="json"), indent=2))
            return

        lines = [
            f"[bold]URL:[/]          [cyan]{vault_info.url}[/]",
            f"[bold]Owner:[/]        {'yes' if vault_info.is_owner else 'no'}",
            f"[bold]Version:[/]      {vault_info.version}",
            f"[bold]Peers:[/]        {vault_info.peers}",
            f"[bold]Title:[/]        {vault_info.title or ''}",
            f"[bold]Description:[/]  {vault_info.description or ''}",
            f"[bold]Type:[/]         {', '.join(vault_info.type or [])}",
            f"[bold]Author:[/]       {format_author(vault_info.author)}",
        ]
        console.print()
        console.print(Panel("\n".join(lines), title="Vault", border_style="bright_blue"))
        console.print()

    @main.command()
    @click.argument("path", type=click.Path(exists=True, file_okay=False))
    @click.option("--start", type=int, default=None, help="First entry (default 0).")
    @click.option("--end", type=int, default=None, help="One past the last entry.")
    @click.option("--reverse", is_flag=True, help="Newest first.")
    @click.option("--json-out", is_flag=True, help="Output as JSON.")
    @home_option
    def history(path: str, start: Optional[int], end: Optional[int], reverse: bool, json_out: bool, home: str):
        """List the changes recorded in a vault's log."""
        entries = run_with_vault(
            path, home, lambda vault: vault.history(start=start, end=end, reverse=reverse),
        )

        if json_out:
            click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
            return

        console.print()
        if not entries:
            console.print("  [dim]No history.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2),
                      title=f"History ({len(entries)})")
        table.add_column("Version", justify="right")
        table.add_column("Change")
        table.add_column("Path", style="cyan")
        for entry in entries:
            change = "[green]put[/]" if entry.type.value == "put" else "[red]delete[/]"
            table.add_row(str(entry.version), change, entry.path)
        console.print(table)
        console.print()

    @main.command()
    @click.argument("name")
    @home_option
    def resolve(name: str, home: str):
        """Resolve a name (or key, or dweb:// URL) to a vault key."""
        from ..vault import DWebVault

        key = run_or_exit(DWebVault.resolve_name(name, get_config(home)))
        click.echo(f"dweb://{key}")
