"""asmlens export — write correlated matches as JSON or HTML."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Optional

import typer


class ExportFormat(str, Enum):
    json = "json"
    html = "html"


def export_cmd(
    executable: Path = typer.Argument(..., help="Path to the executable"),
    filter_: str = typer.Option(..., "--filter", "-f", help="Regular expression selecting symbols"),
    fmt: ExportFormat = typer.Option(ExportFormat.json, "--format", help="Output format"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
    context: Optional[int] = typer.Option(None, "--context", "-c", min=0, help="Source lines around each line [default: 3]"),
    max_matches: Optional[int] = typer.Option(None, "--max-matches", "-n", help="Maximum number of matches [default: 10]"),
    workers: Optional[int] = typer.Option(None, "--workers", "-j", min=1, help="Symbols correlated in parallel"),
    text_size: Optional[int] = typer.Option(None, "--text-size", min=1, help="HTML font size in points [default: 12]"),
    font: Optional[Path] = typer.Option(None, "--font", exists=True, dir_okay=False, help="Font file embedded in the HTML report"),
) -> None:
    """Export correlated matches for other tools or a browser."""
    from asmlens.cli.app import get_context
    from asmlens.cli.common import build_or_exit, load_or_exit, require_filter
    from asmlens.errors import InputError
    from asmlens.utils.formatters import print_error, print_success
    from asmlens.view.html import render_html

    regex = require_filter(filter_)
    ctx = get_context()
    cfg = ctx.ensure_config()

    exe = load_or_exit(executable)
    result = build_or_exit(ctx, exe, regex, context, max_matches, workers, show_progress=output is not None)

    if fmt is ExportFormat.json:
        text = json.dumps(result.to_dict(), indent=2)
    else:
        try:
            text = render_html(
                result,
                title=f"{exe.path.name}: {filter_}",
                text_size=text_size or cfg.view.text_size,
                font=font or cfg.view.font,
            )
        except InputError as exc:
            print_error(str(exc))
            raise typer.Exit(1)

    if output is None:
        typer.echo(text)
        return
    output.write_text(text)
    print_success(f"Wrote {len(result.matches)} match(es) to {output}")
