"""Executable image model and container-format dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from asmlens.errors import NotAnExecutableError, UnsupportedFormatError
from asmlens.extraction.binary_artifact import Section, Symbol
from asmlens.extraction.disassembler import Architecture, architecture
from asmlens.extraction.line_info import LineTable

ELF_MAGIC = b"\x7fELF"
MZ_MAGIC = b"MZ"
MACHO_MAGICS = {
    b"\xfe\xed\xfa\xce",
    b"\xce\xfa\xed\xfe",
    b"\xfe\xed\xfa\xcf",
    b"\xcf\xfa\xed\xfe",
    b"\xca\xfe\xba\xbe",
}


@dataclass(frozen=True)
class Executable:
    """A parsed executable: code symbols, code sections and line info."""

    path: Path
    format: str
    arch: Architecture
    symbols: tuple[Symbol, ...] = ()
    sections: tuple[Section, ...] = ()
    line_table: LineTable = field(default_factory=LineTable, repr=False)

    def section(self, index: int) -> Section | None:
        for section in self.sections:
            if section.index == index:
                return section
        return None

    def symbol_bytes(self, symbol: Symbol) -> bytes:
        """Return the bytes of ``symbol``, clipped to its owning section."""
        section = self.section(symbol.section)
        if section is None or not section.contains(symbol.address):
            return b""
        start = symbol.address - section.address
        return section.data[start : start + symbol.size]

    def architecture_for(self, symbol: Symbol) -> Architecture:
        if symbol.thumb:
            return architecture("thumb", self.arch.little_endian)
        return self.arch


def load_executable(path: str | Path) -> Executable:
    """Parse the executable at ``path``.

    Raises OSError when the file cannot be read and a FormatError subclass
    when it is not a supported executable.
    """
    path = Path(path)
    data = path.read_bytes()
    magic = data[:4]

    if magic == ELF_MAGIC:
        from asmlens.extraction.elf_loader import load_elf

        return load_elf(path, data)
    if magic[:2] == MZ_MAGIC:
        from asmlens.extraction.pe_loader import load_pe

        return load_pe(path, data)
    if magic in MACHO_MAGICS:
        raise UnsupportedFormatError(path, "Mach-O images are not supported")
    raise NotAnExecutableError(path, "not an ELF or PE executable")
