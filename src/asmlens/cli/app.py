"""Root Typer application with subcommand registration."""

from __future__ import annotations

from typing import Optional

import typer

from asmlens import AsmLensContext, __version__

app = typer.Typer(
    name="asmlens",
    help="asmlens — view assembly next to the source lines that produced it",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Shared state across commands
_ctx = AsmLensContext()


def get_context() -> AsmLensContext:
    return _ctx


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"asmlens {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Optional[str] = typer.Option(None, "--config", "-C", help="Path to asmlens.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    version: Optional[bool] = typer.Option(
        None, "--version", "-V", callback=_version_callback, is_eager=True
    ),
) -> None:
    """asmlens — view assembly next to the source lines that produced it."""
    from asmlens.config.loader import load_config
    from asmlens.errors import InputError
    from asmlens.utils.formatters import print_error
    from asmlens.utils.logging import setup_logging

    try:
        cfg = load_config(config)
    except InputError as exc:
        print_error(str(exc))
        raise typer.Exit(1)

    setup_logging(
        level="DEBUG" if verbose else cfg.logging.level,
        json_output=cfg.logging.json_output,
    )
    _ctx.config = cfg
    _ctx.source_cache = None


# -- Subcommand registration --
from asmlens.cli.show import show_cmd  # noqa: E402
from asmlens.cli.export import export_cmd  # noqa: E402
from asmlens.cli.symbols import symbols_cmd  # noqa: E402

app.command(name="show")(show_cmd)
app.command(name="export")(export_cmd)
app.command(name="symbols")(symbols_cmd)
