"""Rich console helpers shared by the CLI commands."""

from __future__ import annotations

import json
from typing import Any, Sequence

from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def hex_addr(value: int) -> str:
    return f"0x{value:x}"


def print_table(
    rows: Sequence[dict[str, Any]],
    title: str | None = None,
    numeric: Sequence[str] = (),
) -> None:
    """Render a list of dicts as a Rich table.

    Columns named in ``numeric`` are right-aligned so addresses line up.
    """
    if not rows:
        console.print("[dim]No symbols.[/dim]")
        return

    table = Table(title=title, show_edge=False)
    cols = list(rows[0].keys())
    for col in cols:
        table.add_column(col, overflow="fold", justify="right" if col in numeric else "left")
    for row in rows:
        table.add_row(*(str(row[c]) for c in cols))
    console.print(table)


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, indent=2))


def print_success(msg: str) -> None:
    err_console.print(f"[bold green]{msg}[/bold green]")


def print_error(msg: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {msg}")
