"""asmlens symbols — list the code symbols of an executable."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer


def symbols_cmd(
    executable: Path = typer.Argument(..., help="Path to the executable"),
    filter_: Optional[str] = typer.Option(None, "--filter", "-f", help="Regular expression selecting symbols"),
    limit: int = typer.Option(0, "--limit", "-l", min=0, help="Max rows to show (0 = all)"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List code symbols in symbol-table order."""
    from asmlens.analysis.matcher import list_symbols
    from asmlens.cli.common import load_or_exit, require_filter
    from asmlens.utils.formatters import hex_addr, print_json, print_table

    regex = require_filter(filter_) if filter_ else None
    exe = load_or_exit(executable)
    symbols = list_symbols(exe, regex)

    if limit:
        symbols = symbols[:limit]
    rows = [
        {"name": s.name, "address": hex_addr(s.address), "size": s.size}
        for s in symbols
    ]
    if output_json:
        print_json(rows)
    else:
        print_table(
            rows,
            title=f"{exe.path.name} ({exe.format}, {exe.arch.name})",
            numeric=("address", "size"),
        )
