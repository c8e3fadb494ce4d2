"""Helpers shared by the analysis commands."""

from __future__ import annotations

import re
from pathlib import Path

import typer

from asmlens import AsmLensContext
from asmlens.errors import FormatError, InputError
from asmlens.extraction.binary_artifact import Output
from asmlens.extraction.executable import Executable
from asmlens.utils.formatters import print_error


def require_filter(pattern: str) -> re.Pattern[str]:
    """Compile the --filter pattern before any file is parsed."""
    from asmlens.analysis.matcher import compile_pattern

    if not pattern:
        print_error("an empty --filter matches nothing useful; give a symbol pattern")
        raise typer.Exit(1)
    try:
        return compile_pattern(pattern)
    except InputError as exc:
        print_error(str(exc))
        raise typer.Exit(1)


def load_or_exit(path: Path) -> Executable:
    """Parse ``path`` or exit with a readable error."""
    from asmlens.extraction.executable import load_executable

    try:
        return load_executable(path)
    except FormatError as exc:
        print_error(str(exc))
        raise typer.Exit(1)
    except OSError as exc:
        print_error(f"cannot read {path}: {exc.strerror or exc}")
        raise typer.Exit(1)


def build_or_exit(
    ctx: AsmLensContext,
    executable: Executable,
    pattern: re.Pattern[str],
    context: int | None,
    max_matches: int | None,
    workers: int | None,
    show_progress: bool = True,
) -> Output:
    """Run the matcher with CLI values falling back to the configuration."""
    from asmlens.analysis.matcher import build_output, select_symbols
    from asmlens.utils.progress import symbol_progress

    cfg = ctx.ensure_config().analysis
    context = cfg.context if context is None else context
    max_matches = cfg.max_matches if max_matches is None else max_matches
    workers = cfg.workers if workers is None else workers

    try:
        accepted, _more = select_symbols(executable.symbols, pattern, max_matches)
        total = len(accepted)
        if not show_progress or total < 2:
            return build_output(
                executable,
                pattern,
                context,
                max_matches,
                workers=workers,
                source_cache=ctx.ensure_source_cache(),
            )
        with symbol_progress(total) as advance:
            return build_output(
                executable,
                pattern,
                context,
                max_matches,
                workers=workers,
                source_cache=ctx.ensure_source_cache(),
                on_match=advance,
            )
    except InputError as exc:
        print_error(str(exc))
        raise typer.Exit(1)
