"""Terminal rendering of correlated matches with Rich."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text

from asmlens.extraction.binary_artifact import Block, Match, Output, SourceWindow
from asmlens.utils.formatters import hex_addr
from asmlens.view.state import ViewState


def render_match_list(output: Output, state: ViewState, console: Console) -> None:
    table = Table(title="Matches", show_edge=False)
    table.add_column("", width=1)
    table.add_column("#", justify="right")
    table.add_column("Symbol", overflow="fold")
    table.add_column("Address", justify="right")
    table.add_column("Blocks", justify="right")
    table.add_column("File", overflow="fold", style="dim")

    for index, match in enumerate(output.matches):
        marker = ">" if index == state.selected else ""
        table.add_row(
            marker,
            str(index),
            match.name,
            hex_addr(match.address),
            str(len(match.blocks)),
            match.file or "",
        )
    console.print(table)

    if output.more:
        console.print("[dim]More symbols match; raise --max-matches to see them.[/dim]")
    for err in output.errors:
        console.print(f"[yellow]skipped {err.name}:[/yellow] {err.error}")


def render_match(
    match: Match,
    state: ViewState,
    console: Console,
    max_blocks: int | None = None,
) -> None:
    """Print assembly and source side by side, one row per block.

    The assembly column starts at ``state.asm_scroll`` and the source column
    at ``state.src_scroll``.
    """
    console.rule(f"[bold]{match.name}[/bold] @ {hex_addr(match.address)} ({match.size} bytes)")
    if not match.blocks:
        console.print("[dim]empty symbol[/dim]")
        return

    count = len(match.blocks) - min(state.asm_scroll, state.src_scroll)
    if max_blocks is not None:
        count = min(count, max_blocks)

    table = Table(show_lines=True, expand=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Assembly", overflow="fold", ratio=1)
    table.add_column("Source", overflow="fold", ratio=1)

    for offset in range(count):
        asm_index = state.asm_scroll + offset
        src_index = state.src_scroll + offset
        asm = _asm_text(match, asm_index) if asm_index < len(match.blocks) else Text()
        src = (
            _source_text(match.blocks[src_index], match.windows[src_index])
            if src_index < len(match.blocks)
            else Text()
        )
        table.add_row(str(asm_index), asm, src)

    console.print(table)


def render_output(
    output: Output,
    state: ViewState,
    console: Console,
    show_all: bool = False,
    max_blocks: int | None = None,
) -> None:
    render_match_list(output, state, console)
    if not output.matches:
        console.print("[bold]no matches[/bold]")
        return

    if show_all:
        for match in output.matches:
            render_match(match, ViewState(), console, max_blocks=max_blocks)
        return

    match = state.current(output)
    if match is not None:
        render_match(match, state, console, max_blocks=max_blocks)


def _asm_text(match: Match, index: int) -> Text:
    text = Text()
    for i, insn in enumerate(match.blocks[index].instructions):
        if i:
            text.append("\n")
        text.append(f"{hex_addr(insn.address)}  ", style="dim")
        text.append(insn.mnemonic, style="red" if insn.is_raw else "bold cyan")
        if insn.op_str:
            text.append(f" {insn.op_str}")
        if insn.target is not None:
            target = match.jump_target(index, insn.target)
            if target is not None:
                text.append(f"  -> #{target}", style="magenta")
    return text


def _source_text(block: Block, window: SourceWindow | None) -> Text:
    if block.line is None:
        return Text("unknown location", style="dim italic")
    if window is None:
        return Text(f"{block.file}:{block.line} (source unavailable)", style="dim italic")

    text = Text(f"{block.file}\n", style="dim")
    width = len(str(window.last_line))
    for number, line in window.numbered():
        style = "bold" if number == block.line else "dim"
        text.append(f"{number:>{width}} ", style="dim")
        text.append(f"{line}\n", style=style)
    text.rstrip()
    return text
