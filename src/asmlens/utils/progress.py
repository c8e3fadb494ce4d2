"""Progress display for per-symbol correlation."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Generator

from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from asmlens.extraction.binary_artifact import Symbol
from asmlens.utils.formatters import err_console


@contextmanager
def symbol_progress(total: int) -> Generator[Callable[[Symbol], None], None, None]:
    """Yield a callback that advances the bar and names the last symbol done.

    The callback may be invoked from worker threads; Rich serializes updates.
    """
    progress = Progress(
        SpinnerColumn(),
        TextColumn("Correlating"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("[dim]{task.fields[symbol]}"),
        console=err_console,
        transient=True,
    )
    with progress:
        task_id = progress.add_task("correlate", total=total, symbol="")

        def advance(symbol: Symbol) -> None:
            progress.update(task_id, advance=1, symbol=symbol.name)

        yield advance
