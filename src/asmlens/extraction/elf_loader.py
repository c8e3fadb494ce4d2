"""ELF symbol table and DWARF line info via pyelftools."""

from __future__ import annotations

import io
from pathlib import Path

from elftools.common.exceptions import DWARFError, ELFError
from elftools.elf.constants import SH_FLAGS
from elftools.elf.elffile import ELFFile
from elftools.elf.sections import SymbolTableSection

from asmlens.errors import FormatError, UnsupportedFormatError
from asmlens.extraction.binary_artifact import Section, Symbol
from asmlens.extraction.disassembler import Architecture, architecture
from asmlens.extraction.executable import Executable
from asmlens.extraction.line_info import LineTable
from asmlens.utils.logging import get_logger

log = get_logger(__name__)

_SKIPPED_SYMBOL_TYPES = {"STT_SECTION", "STT_FILE", "STT_OBJECT", "STT_TLS"}
# ARM and AArch64 mapping symbols mark code/data transitions, not functions.
_MAPPING_SYMBOLS = {"$a", "$t", "$x", "$d"}


def load_elf(path: Path, data: bytes) -> Executable:
    """Build an Executable from an in-memory ELF image."""
    try:
        elf = ELFFile(io.BytesIO(data))
        arch = _get_arch(elf, path)
        sections = _get_code_sections(elf)
        symbols = _get_symbols(elf, sections, arch)
        line_table = LineTable.from_dwarf(elf.get_dwarf_info()) if elf.has_dwarf_info() else LineTable()
    except (ELFError, DWARFError) as exc:
        raise FormatError(path, f"malformed ELF image: {exc}") from exc

    log.info(
        "elf_loaded",
        path=str(path),
        arch=arch.name,
        symbols=len(symbols),
        code_sections=len(sections),
        line_ranges=len(line_table),
    )

    return Executable(
        path=path,
        format="elf",
        arch=arch,
        symbols=tuple(symbols),
        sections=tuple(sections),
        line_table=line_table,
    )


def _get_arch(elf: ELFFile, path: Path) -> Architecture:
    machine = elf.header.e_machine
    bits = elf.elfclass
    mapping = {
        "EM_X86_64": "x86_64",
        "EM_386": "x86",
        "EM_ARM": "arm",
        "EM_AARCH64": "arm64",
        "EM_MIPS": f"mips{bits}",
        "EM_PPC": "ppc32",
        "EM_PPC64": "ppc64",
        "EM_RISCV": f"riscv{bits}",
    }
    name = mapping.get(machine)
    if name is None:
        raise UnsupportedFormatError(path, f"unsupported machine {machine}")
    return architecture(name, little_endian=elf.little_endian)


def _get_code_sections(elf: ELFFile) -> list[Section]:
    """Collect sections holding executable instructions."""
    sections: list[Section] = []
    for index, section in enumerate(elf.iter_sections()):
        if not section["sh_flags"] & SH_FLAGS.SHF_EXECINSTR:
            continue
        data = b"" if section["sh_type"] == "SHT_NOBITS" else section.data()
        sections.append(
            Section(
                name=section.name,
                index=index,
                address=section["sh_addr"],
                data=data,
                executable=True,
            )
        )
    return sections


def _get_symbols(elf: ELFFile, sections: list[Section], arch: Architecture) -> list[Symbol]:
    """Defined code symbols in symbol-table order, from .symtab or .dynsym."""
    table = elf.get_section_by_name(".symtab")
    if not isinstance(table, SymbolTableSection):
        table = elf.get_section_by_name(".dynsym")
    if not isinstance(table, SymbolTableSection):
        return []

    code_indices = {s.index for s in sections}
    symbols: list[Symbol] = []
    for sym in table.iter_symbols():
        shndx = sym.entry.st_shndx
        # SHN_UNDEF, SHN_ABS and friends come back as strings.
        if not isinstance(shndx, int) or shndx not in code_indices:
            continue
        if sym.entry.st_info.type in _SKIPPED_SYMBOL_TYPES:
            continue
        if not sym.name or _is_mapping_symbol(sym.name):
            continue

        address = sym.entry.st_value
        thumb = arch.name == "arm" and bool(address & 1)
        if thumb:
            address &= ~1
        symbols.append(
            Symbol(
                name=sym.name,
                address=address,
                size=sym.entry.st_size,
                section=shndx,
                thumb=thumb,
            )
        )
    return symbols


def _is_mapping_symbol(name: str) -> bool:
    return name[:2] in _MAPPING_SYMBOLS and (len(name) == 2 or name[2] == ".")
