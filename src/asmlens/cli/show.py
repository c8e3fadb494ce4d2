"""asmlens show — print matches with assembly and source side by side."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer


def show_cmd(
    executable: Path = typer.Argument(..., help="Path to the executable"),
    filter_: str = typer.Option(..., "--filter", "-f", help="Regular expression selecting symbols"),
    context: Optional[int] = typer.Option(None, "--context", "-c", min=0, help="Source lines around each line [default: 3]"),
    max_matches: Optional[int] = typer.Option(None, "--max-matches", "-n", help="Maximum number of matches [default: 10]"),
    workers: Optional[int] = typer.Option(None, "--workers", "-j", min=1, help="Symbols correlated in parallel"),
    select: int = typer.Option(0, "--select", "-s", help="Index of the match to display"),
    scroll: int = typer.Option(0, "--scroll", help="First block to display"),
    max_blocks: Optional[int] = typer.Option(None, "--max-blocks", min=1, help="Blocks to display per match"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Display every match"),
    split: Optional[int] = typer.Option(
        None, "--split", help="Also display a second view of the selected match, scrolled N more blocks"
    ),
) -> None:
    """Show the selected functions as interleaved assembly and source."""
    from asmlens.cli.app import get_context
    from asmlens.cli.common import build_or_exit, load_or_exit, require_filter
    from asmlens.utils.formatters import console
    from asmlens.view.report import render_match, render_output
    from asmlens.view.state import ViewState

    regex = require_filter(filter_)
    ctx = get_context()

    exe = load_or_exit(executable)
    output = build_or_exit(ctx, exe, regex, context, max_matches, workers)

    state = ViewState()
    state.select(output, select)
    state.scroll(output, scroll)
    render_output(output, state, console, show_all=show_all, max_blocks=max_blocks)

    if split is not None and not show_all:
        second = state.open_in_new()
        second.scroll(output, split)
        match = second.current(output)
        if match is not None:
            render_match(match, second, console, max_blocks=max_blocks)
