"""Symbol matching and assembly/source correlation."""

from __future__ import annotations

import re
from bisect import bisect_right
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from itertools import groupby
from operator import attrgetter
from typing import Callable, Iterable, Sequence

from asmlens.config.defaults import DEFAULT_CONTEXT, DEFAULT_MAX_MATCHES
from asmlens.errors import InputError
from asmlens.extraction.binary_artifact import (
    Block,
    Instruction,
    Match,
    Output,
    Symbol,
    SymbolError,
)
from asmlens.extraction.disassembler import Disassembler
from asmlens.extraction.executable import Executable
from asmlens.extraction.source_cache import SourceCache
from asmlens.utils.logging import get_logger

log = get_logger(__name__)


def compile_pattern(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """Compile a symbol filter, reporting bad input as InputError."""
    if isinstance(pattern, re.Pattern):
        return pattern
    if not pattern:
        raise InputError("filter pattern must not be empty")
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InputError(f"invalid filter pattern {pattern!r}: {exc}") from exc


def list_symbols(executable: Executable, pattern: str | re.Pattern[str] | None = None) -> list[Symbol]:
    """Code symbols in table order, optionally filtered by ``pattern``."""
    if pattern is None:
        return list(executable.symbols)
    regex = compile_pattern(pattern)
    return [sym for sym in executable.symbols if regex.search(sym.name)]


def select_symbols(
    symbols: Iterable[Symbol],
    regex: re.Pattern[str],
    max_matches: int,
) -> tuple[list[Symbol], bool]:
    """Accept matching symbols in encounter order, up to ``max_matches``.

    Scanning stops at the first matching symbol past the cap; the returned
    flag tells whether such a symbol existed.
    """
    accepted: list[Symbol] = []
    for sym in symbols:
        if not regex.search(sym.name):
            continue
        if len(accepted) >= max_matches:
            return accepted, True
        accepted.append(sym)
    return accepted, False


def group_blocks(instructions: Sequence[Instruction]) -> tuple[Block, ...]:
    """Split instructions into runs that share one (file, line) location.

    An unknown location only groups with directly adjacent unknown ones.
    """
    blocks = []
    for location, run in groupby(instructions, key=attrgetter("location")):
        file, line = (location.file, location.line) if location is not None else (None, None)
        blocks.append(Block(file=file, line=line, instructions=tuple(run)))
    return tuple(blocks)


def correlate_symbol(
    executable: Executable,
    symbol: Symbol,
    context: int,
    source_cache: SourceCache,
) -> Match:
    """Disassemble one symbol and attach source windows to its blocks."""
    disassembler = Disassembler(executable.architecture_for(symbol))
    resolve = executable.line_table.resolve

    decoded = disassembler.decode(executable.symbol_bytes(symbol), symbol.address)
    instructions = [insn.located(resolve(insn.address)) for insn in decoded]
    blocks = group_blocks(instructions)
    windows = tuple(
        source_cache.window(block.file, block.line, context)
        if block.file is not None and block.line is not None
        else None
        for block in blocks
    )

    return Match(
        name=symbol.name,
        address=symbol.address,
        size=symbol.size,
        file=_dominant_file(blocks),
        blocks=blocks,
        windows=windows,
        jumps=_jumps(blocks),
    )


def build_output(
    executable: Executable,
    pattern: str | re.Pattern[str],
    context: int = DEFAULT_CONTEXT,
    max_matches: int = DEFAULT_MAX_MATCHES,
    *,
    workers: int = 1,
    source_cache: SourceCache | None = None,
    on_match: Callable[[Symbol], None] | None = None,
) -> Output:
    """Correlate every accepted symbol of ``executable`` with its source.

    Matches keep symbol-table order. A symbol that fails to correlate is
    logged, recorded in ``Output.errors`` and left out of the matches.
    """
    regex = compile_pattern(pattern)
    if context < 0:
        raise InputError(f"context must not be negative, got {context}")

    accepted, more = select_symbols(executable.symbols, regex, max_matches)
    cache = source_cache if source_cache is not None else SourceCache()
    log.debug("symbols_selected", pattern=regex.pattern, accepted=len(accepted), more=more)

    results: list[Match | None] = [None] * len(accepted)
    errors: list[SymbolError] = []

    def _record(index: int, symbol: Symbol, compute: Callable[[], Match]) -> None:
        try:
            results[index] = compute()
        except Exception as exc:
            log.warning("symbol_failed", symbol=symbol.name, error=str(exc))
            errors.append(SymbolError(name=symbol.name, error=str(exc)))
        if on_match is not None:
            on_match(symbol)

    if workers > 1 and len(accepted) > 1:
        with ThreadPoolExecutor(
            max_workers=min(workers, len(accepted)),
            thread_name_prefix="asmlens-match",
        ) as executor:
            futures = [
                executor.submit(correlate_symbol, executable, sym, context, cache)
                for sym in accepted
            ]
            for index, (sym, future) in enumerate(zip(accepted, futures)):
                _record(index, sym, future.result)
    else:
        for index, sym in enumerate(accepted):
            _record(index, sym, lambda sym=sym: correlate_symbol(executable, sym, context, cache))

    matches = tuple(m for m in results if m is not None)
    log.info("output_built", matches=len(matches), failed=len(errors), more=more)
    return Output(matches=matches, more=more, errors=tuple(errors))


def _dominant_file(blocks: Sequence[Block]) -> str | None:
    """The file most instructions resolve to; ties go to the first seen."""
    counts: Counter[str] = Counter()
    for block in blocks:
        if block.file is not None:
            counts[block.file] += len(block.instructions)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _jumps(blocks: Sequence[Block]) -> tuple[tuple[int, int], ...]:
    """Branch edges between blocks of the same symbol, in source order."""
    if not blocks:
        return ()
    starts = [block.address for block in blocks]
    end = blocks[-1].end
    edges: list[tuple[int, int]] = []
    for index, block in enumerate(blocks):
        for insn in block.instructions:
            if insn.target is None or not starts[0] <= insn.target < end:
                continue
            edge = (index, bisect_right(starts, insn.target) - 1)
            if edge not in edges:
                edges.append(edge)
    return tuple(edges)
