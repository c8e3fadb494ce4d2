"""
PE/COFF symbol table and DWARF line info.

MinGW and Go toolchains keep a COFF symbol table and standard DWARF
sections in PE images. Section names longer than eight bytes (all the
.debug_* ones) live in the COFF string table, and Go may store them
zlib-compressed as .zdebug_* sections.
"""

from __future__ import annotations

import inspect
import io
import struct
import zlib
from bisect import bisect_right
from pathlib import Path

import pefile
from elftools.common.exceptions import DWARFError
from elftools.dwarf.dwarfinfo import DebugSectionDescriptor, DWARFInfo, DwarfConfig

from asmlens.errors import FormatError, UnsupportedFormatError
from asmlens.extraction.binary_artifact import Section, Symbol
from asmlens.extraction.disassembler import Architecture, architecture
from asmlens.extraction.executable import Executable
from asmlens.extraction.line_info import LineTable
from asmlens.utils.logging import get_logger

log = get_logger(__name__)

IMAGE_SCN_CNT_CODE = 0x00000020
IMAGE_SCN_MEM_EXECUTE = 0x20000000

IMAGE_SYM_CLASS_EXTERNAL = 2
IMAGE_SYM_CLASS_STATIC = 3

COFF_SYMBOL_SIZE = 18
_COFF_SYMBOL = struct.Struct("<8sIhHBB")

_MACHINES = {
    0x014C: "x86",
    0x8664: "x86_64",
    0x01C0: "arm",
    0x01C4: "thumb",
    0xAA64: "arm64",
}


def load_pe(path: Path, data: bytes) -> Executable:
    """Build an Executable from an in-memory PE image."""
    try:
        pe = pefile.PE(data=data, fast_load=True)
    except pefile.PEFormatError as exc:
        raise FormatError(path, f"malformed PE image: {exc}") from exc

    arch = _get_arch(pe, path)
    strtab = _get_string_table(pe, data)
    image_base = pe.OPTIONAL_HEADER.ImageBase

    named_sections = [(_section_name(s, strtab), s) for s in pe.sections]
    sections = [
        Section(
            name=name,
            index=index,
            address=image_base + s.VirtualAddress,
            data=_section_data(s),
            executable=True,
        )
        for index, (name, s) in enumerate(named_sections, start=1)
        if s.Characteristics & (IMAGE_SCN_CNT_CODE | IMAGE_SCN_MEM_EXECUTE)
    ]
    symbols = _get_symbols(pe, data, strtab, sections)

    try:
        line_table = _get_line_table(pe, named_sections)
    except (DWARFError, zlib.error) as exc:
        raise FormatError(path, f"malformed DWARF data: {exc}") from exc

    log.info(
        "pe_loaded",
        path=str(path),
        arch=arch.name,
        symbols=len(symbols),
        code_sections=len(sections),
        line_ranges=len(line_table),
    )

    return Executable(
        path=path,
        format="pe",
        arch=arch,
        symbols=tuple(symbols),
        sections=tuple(sections),
        line_table=line_table,
    )


def _get_arch(pe: pefile.PE, path: Path) -> Architecture:
    machine = pe.FILE_HEADER.Machine
    name = _MACHINES.get(machine)
    if name is None:
        raise UnsupportedFormatError(path, f"unsupported machine 0x{machine:04x}")
    return architecture(name)


def _get_string_table(pe: pefile.PE, data: bytes) -> bytes:
    """Return the COFF string table, including its 4-byte size prefix."""
    ptr = pe.FILE_HEADER.PointerToSymbolTable
    if not ptr:
        return b""
    offset = ptr + pe.FILE_HEADER.NumberOfSymbols * COFF_SYMBOL_SIZE
    if offset + 4 > len(data):
        return b""
    (size,) = struct.unpack_from("<I", data, offset)
    return data[offset : offset + size]


def _string_at(strtab: bytes, offset: int) -> str:
    end = strtab.find(b"\x00", offset)
    if end == -1:
        end = len(strtab)
    return strtab[offset:end].decode("utf-8", errors="replace")


def _section_name(section: pefile.SectionStructure, strtab: bytes) -> str:
    raw = section.Name.rstrip(b"\x00")
    if raw.startswith(b"/") and raw[1:].isdigit():
        return _string_at(strtab, int(raw[1:]))
    return raw.decode("utf-8", errors="replace")


def _section_data(section: pefile.SectionStructure) -> bytes:
    # Raw data is padded to the file alignment; the virtual size is exact.
    data = section.get_data()
    if section.Misc_VirtualSize:
        data = data[: section.Misc_VirtualSize]
    return data


def _get_symbols(
    pe: pefile.PE,
    data: bytes,
    strtab: bytes,
    sections: list[Section],
) -> list[Symbol]:
    """Code symbols from the COFF symbol table, in table order.

    COFF records carry no size, so each symbol extends to the next symbol
    address in its section, or to the end of the section.
    """
    ptr = pe.FILE_HEADER.PointerToSymbolTable
    count = pe.FILE_HEADER.NumberOfSymbols
    if not ptr or not count:
        return []

    by_index = {s.index: s for s in sections}
    found: list[tuple[str, int, int]] = []

    i = 0
    while i < count:
        offset = ptr + i * COFF_SYMBOL_SIZE
        if offset + COFF_SYMBOL_SIZE > len(data):
            break
        raw_name, value, section_number, _type, storage, aux_count = _COFF_SYMBOL.unpack_from(data, offset)
        i += 1 + aux_count

        section = by_index.get(section_number)
        if section is None or storage not in (IMAGE_SYM_CLASS_EXTERNAL, IMAGE_SYM_CLASS_STATIC):
            continue
        if raw_name[:4] == b"\x00\x00\x00\x00":
            name = _string_at(strtab, struct.unpack("<I", raw_name[4:])[0])
        else:
            name = raw_name.rstrip(b"\x00").decode("utf-8", errors="replace")
        # Section definition records and assembler-local labels.
        if not name or name.startswith("."):
            continue
        found.append((name, section.address + value, section_number))

    ends: dict[int, list[int]] = {}
    for _name, address, section_number in found:
        ends.setdefault(section_number, []).append(address)
    for addresses in ends.values():
        addresses.sort()

    symbols: list[Symbol] = []
    for name, address, section_number in found:
        section = by_index[section_number]
        addresses = ends[section_number]
        j = bisect_right(addresses, address)
        end = addresses[j] if j < len(addresses) else section.end
        symbols.append(
            Symbol(
                name=name,
                address=address,
                size=max(end - address, 0),
                section=section_number,
            )
        )
    return symbols


def _get_line_table(pe: pefile.PE, named_sections: list[tuple[str, pefile.SectionStructure]]) -> LineTable:
    debug: dict[str, bytes] = {}
    for name, section in named_sections:
        if name.startswith(".debug_"):
            debug[name[len(".debug_") :]] = _section_data(section)
        elif name.startswith(".zdebug_"):
            debug[name[len(".zdebug_") :]] = _inflate(_section_data(section))

    if "info" not in debug or "line" not in debug:
        return LineTable()

    is_64 = pe.OPTIONAL_HEADER.Magic == pefile.OPTIONAL_HEADER_MAGIC_PE_PLUS
    config = DwarfConfig(
        little_endian=True,
        machine_arch="x64" if is_64 else "x86",
        default_address_size=8 if is_64 else 4,
    )
    return LineTable.from_dwarf(_dwarf_info(config, debug))


def _inflate(data: bytes) -> bytes:
    """Decompress a Go-style .zdebug section ("ZLIB" + 8-byte size + stream)."""
    if data[:4] != b"ZLIB":
        return data
    return zlib.decompress(data[12:])


def _dwarf_info(config: DwarfConfig, debug: dict[str, bytes]) -> DWARFInfo:
    """Assemble a DWARFInfo from raw section contents.

    The set of section arguments grows with pyelftools releases, so absent
    ones are passed as None.
    """
    kwargs: dict[str, object] = {"config": config}
    for param in inspect.signature(DWARFInfo.__init__).parameters:
        if not param.endswith("_sec"):
            continue
        key = param[: -len("_sec")]
        if key.startswith("debug_"):
            key = key[len("debug_") :]
        content = debug.get(key) if param.startswith("debug_") else None
        kwargs[param] = (
            DebugSectionDescriptor(
                stream=io.BytesIO(content),
                name=f".debug_{key}",
                global_offset=0,
                size=len(content),
                address=0,
            )
            if content is not None
            else None
        )
    return DWARFInfo(**kwargs)
