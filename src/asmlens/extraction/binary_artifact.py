"""Frozen dataclasses representing symbols, disassembly and correlated output."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class Section:
    name: str
    index: int
    address: int
    data: bytes = field(default=b"", repr=False)
    executable: bool = False

    @property
    def end(self) -> int:
        return self.address + len(self.data)

    def contains(self, address: int) -> bool:
        return self.address <= address < self.end


@dataclass(frozen=True)
class Symbol:
    name: str
    address: int
    size: int
    section: int
    thumb: bool = False  # ARM symbol in Thumb state

    @property
    def end(self) -> int:
        return self.address + self.size


@dataclass(frozen=True)
class SourceLocation:
    file: str
    line: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Instruction:
    address: int
    size: int
    mnemonic: str
    op_str: str = ""
    opcode: str = ""  # hex encoded raw bytes
    file: str | None = None
    line: int | None = None
    target: int | None = None  # literal branch or call target

    @property
    def text(self) -> str:
        return f"{self.mnemonic} {self.op_str}".rstrip()

    @property
    def is_raw(self) -> bool:
        return self.mnemonic == ".byte"

    @property
    def location(self) -> SourceLocation | None:
        if self.file is None or self.line is None:
            return None
        return SourceLocation(self.file, self.line)

    def located(self, location: SourceLocation | None) -> Instruction:
        if location is None:
            return replace(self, file=None, line=None)
        return replace(self, file=location.file, line=location.line)


@dataclass(frozen=True)
class Block:
    """A maximal run of consecutive instructions sharing one source location."""

    file: str | None
    line: int | None
    instructions: tuple[Instruction, ...]

    def __post_init__(self) -> None:
        if not self.instructions:
            raise ValueError("a block needs at least one instruction")

    @property
    def address(self) -> int:
        return self.instructions[0].address

    @property
    def end(self) -> int:
        last = self.instructions[-1]
        return last.address + last.size

    @property
    def known(self) -> bool:
        return self.line is not None

    def contains(self, address: int) -> bool:
        return self.address <= address < self.end


@dataclass(frozen=True)
class SourceWindow:
    file: str
    first_line: int
    lines: tuple[str, ...]

    @property
    def last_line(self) -> int:
        return self.first_line + len(self.lines) - 1

    def contains(self, line: int) -> bool:
        return self.first_line <= line <= self.last_line

    def numbered(self) -> list[tuple[int, str]]:
        return [(self.first_line + i, text) for i, text in enumerate(self.lines)]


@dataclass(frozen=True)
class Match:
    name: str
    address: int
    size: int
    file: str | None = None
    blocks: tuple[Block, ...] = ()
    windows: tuple[SourceWindow | None, ...] = ()  # parallel to blocks
    jumps: tuple[tuple[int, int], ...] = ()  # (from block, to block)

    @property
    def instructions(self) -> tuple[Instruction, ...]:
        return tuple(insn for block in self.blocks for insn in block.instructions)

    def jump_target(self, block_index: int, address: int) -> int | None:
        """Block that a branch in block ``block_index`` to ``address`` lands in."""
        for source, dest in self.jumps:
            if source == block_index and self.blocks[dest].contains(address):
                return dest
        return None


@dataclass(frozen=True)
class SymbolError:
    name: str
    error: str


@dataclass(frozen=True)
class Output:
    matches: tuple[Match, ...] = ()
    more: bool = False  # the match cap stopped the scan early
    errors: tuple[SymbolError, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
