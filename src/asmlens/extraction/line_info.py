"""
Line number information from DWARF debug data.

Maps instruction addresses to source locations. The table is built once
from every compilation unit's line program and is read-only afterwards,
so lookups do not depend on the order in which they are made.
"""

from __future__ import annotations

import posixpath
import re
from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from elftools.dwarf.dwarfinfo import DWARFInfo

from asmlens.extraction.binary_artifact import SourceLocation
from asmlens.utils.logging import get_logger

log = get_logger(__name__)

_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[\\/]")


@dataclass(frozen=True)
class LineRow:
    """One row of a decoded line program."""

    address: int
    file: str | None
    line: int
    end_sequence: bool = False


@dataclass(frozen=True)
class LineRange:
    start: int
    end: int
    location: SourceLocation | None


class LineTable:
    """Sorted, non-overlapping address ranges with their source locations."""

    def __init__(self, ranges: Iterable[LineRange] = ()):
        self._ranges: list[LineRange] = []
        covered_until: int | None = None
        # Stable sort keeps the first writer of an address range.
        for rng in sorted(ranges, key=lambda r: r.start):
            start = rng.start
            if covered_until is not None and start < covered_until:
                start = covered_until
            if start >= rng.end:
                continue
            self._ranges.append(LineRange(start, rng.end, rng.location))
            covered_until = rng.end
        self._starts = [r.start for r in self._ranges]

    @classmethod
    def from_rows(cls, rows: Iterable[LineRow]) -> LineTable:
        """Build a table from rows in line-program order.

        Each row covers addresses up to the next row of the same sequence. A
        sequence that is never terminated contributes nothing for its last row.
        """
        ranges: list[LineRange] = []
        prev: LineRow | None = None
        for row in rows:
            if prev is not None and row.address > prev.address:
                ranges.append(LineRange(prev.address, row.address, _location(prev)))
            prev = None if row.end_sequence else row
        return cls(ranges)

    @classmethod
    def from_dwarf(cls, dwarf_info: DWARFInfo) -> LineTable:
        table = cls.from_rows(_iter_dwarf_rows(dwarf_info))
        log.debug("line_table_built", ranges=len(table))
        return table

    def __len__(self) -> int:
        return len(self._ranges)

    def resolve(self, address: int) -> SourceLocation | None:
        """Return the location of ``address``, or None when it is unknown."""
        i = bisect_right(self._starts, address) - 1
        if i < 0:
            return None
        rng = self._ranges[i]
        if address >= rng.end:
            return None
        return rng.location


def _location(row: LineRow) -> SourceLocation | None:
    # Line 0 marks code with no corresponding source line.
    if row.file is None or row.line <= 0:
        return None
    return SourceLocation(row.file, row.line)


def _iter_dwarf_rows(dwarf_info: DWARFInfo) -> Iterator[LineRow]:
    for cu in dwarf_info.iter_CUs():
        lineprog = dwarf_info.line_program_for_CU(cu)
        if lineprog is None:
            continue

        file_paths = _build_file_paths(lineprog.header, cu)
        for entry in lineprog.get_entries():
            state = entry.state
            if state is None:
                continue
            yield LineRow(
                address=state.address,
                file=file_paths.get(state.file),
                line=state.line,
                end_sequence=state.end_sequence,
            )


def _build_file_paths(header: Any, cu: Any) -> dict[int, str]:
    """Map line-program file indices to full paths.

    DWARF 5 indexes files from 0 and stores the compilation directory as
    directory 0. Earlier versions index files from 1 and use directory 0
    for the compilation directory, which is only available from the CU.
    """
    comp_dir = _decode(cu.get_top_DIE().attributes.get("DW_AT_comp_dir"))
    include_dirs = [_decode(d) for d in header.get("include_directory", ())]

    if header["version"] >= 5:
        dirs = include_dirs
        first_index = 0
    else:
        dirs = [comp_dir] + include_dirs
        first_index = 1

    paths: dict[int, str] = {}
    for i, file_entry in enumerate(header.get("file_entry", ())):
        name = _decode(file_entry.name)
        dir_index = file_entry.dir_index or 0
        directory = dirs[dir_index] if dir_index < len(dirs) else ""
        if dir_index > 0 and directory and comp_dir and not _is_abs(directory):
            directory = posixpath.join(comp_dir, directory)
        if directory and not _is_abs(name):
            name = posixpath.join(directory, name)
        paths[i + first_index] = name
    return paths


def _is_abs(path: str) -> bool:
    return posixpath.isabs(path) or _WINDOWS_DRIVE.match(path) is not None


def _decode(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "value"):
        value = value.value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
