"""Shared test fixtures."""

from __future__ import annotations

import struct
from pathlib import Path

import pytest

from asmlens.config.models import AnalysisConfig, AsmLensConfig
from asmlens.extraction.binary_artifact import Section, Symbol
from asmlens.extraction.disassembler import architecture
from asmlens.extraction.executable import Executable
from asmlens.extraction.line_info import LineRow, LineTable

TEXT_ADDR = 0x401000

# STT_* and STB_* values used by build_elf
STT_NOTYPE, STT_OBJECT, STT_FUNC, STT_FILE = 0, 1, 2, 4
STB_LOCAL, STB_GLOBAL = 0, 1
SHN_ABS = 0xFFF1


def make_executable(
    code: bytes,
    symbols: list[tuple[str, int, int]],
    rows: list[LineRow] | None = None,
    base: int = TEXT_ADDR,
) -> Executable:
    """Build an x86-64 Executable around one .text section.

    ``symbols`` holds (name, offset into code, size) triples.
    """
    return Executable(
        path=Path("test.elf"),
        format="elf",
        arch=architecture("x86_64"),
        symbols=tuple(
            Symbol(name=name, address=base + offset, size=size, section=1)
            for name, offset, size in symbols
        ),
        sections=(Section(name=".text", index=1, address=base, data=code, executable=True),),
        line_table=LineTable.from_rows(rows or []),
    )


def build_elf(code: bytes, symbols: list[tuple[str, int, int, int, int]], text_addr: int = TEXT_ADDR) -> bytes:
    """Assemble a minimal x86-64 ELF executable.

    ``symbols`` holds (name, value, size, st_type, shndx) tuples; a shndx of
    1 refers to .text.
    """

    def align(n: int, to: int) -> int:
        return (n + to - 1) // to * to

    strtab = b"\x00"
    name_offsets = []
    for name, *_ in symbols:
        name_offsets.append(len(strtab))
        strtab += name.encode() + b"\x00"

    symtab = b"\x00" * 24
    for (name, value, size, st_type, shndx), name_off in zip(symbols, name_offsets):
        bind = STB_LOCAL if st_type == STT_FILE else STB_GLOBAL
        symtab += struct.pack("<IBBHQQ", name_off, (bind << 4) | st_type, 0, shndx, value, size)

    shstrtab = b"\x00.text\x00.symtab\x00.strtab\x00.shstrtab\x00"
    text_off = 64
    symtab_off = align(text_off + len(code), 8)
    strtab_off = symtab_off + len(symtab)
    shstrtab_off = strtab_off + len(strtab)
    shoff = align(shstrtab_off + len(shstrtab), 8)

    ident = b"\x7fELF" + bytes([2, 1, 1, 0]) + b"\x00" * 8
    header = struct.pack(
        "<16sHHIQQQIHHHHHH",
        ident, 2, 62, 1, text_addr, 0, shoff, 0, 64, 0, 0, 64, 5, 4,
    )

    def shdr(name, sh_type, flags, addr, offset, size, link=0, info=0, addralign=1, entsize=0):
        return struct.pack("<IIQQQQIIQQ", name, sh_type, flags, addr, offset, size, link, info, addralign, entsize)

    first_global = 1 + sum(1 for s in symbols if s[3] == STT_FILE)
    headers = b"".join(
        [
            shdr(0, 0, 0, 0, 0, 0),
            shdr(1, 1, 0x6, text_addr, text_off, len(code), addralign=16),
            shdr(7, 2, 0, 0, symtab_off, len(symtab), link=3, info=first_global, addralign=8, entsize=24),
            shdr(15, 3, 0, 0, strtab_off, len(strtab)),
            shdr(23, 3, 0, 0, shstrtab_off, len(shstrtab)),
        ]
    )

    image = bytearray(header)
    image += code
    image += b"\x00" * (symtab_off - len(image))
    image += symtab + strtab + shstrtab
    image += b"\x00" * (shoff - len(image))
    image += headers
    return bytes(image)


IMAGE_BASE = 0x140000000
PE_TEXT_RVA = 0x1000
IMAGE_SYM_CLASS_EXTERNAL, IMAGE_SYM_CLASS_STATIC = 2, 3


def build_pe(
    code: bytes,
    symbols: list[tuple[str, int, int, int, int]],
    machine: int = 0x8664,
) -> bytes:
    """Assemble a minimal PE32+ image with one .text section and a COFF symbol table.

    ``symbols`` holds (name, value, section number, storage class, aux count)
    tuples; aux records are written as zero filler.
    """
    file_align = 0x200
    raw_size = (len(code) + file_align - 1) // file_align * file_align
    raw_ptr = file_align
    symtab_ptr = raw_ptr + raw_size

    strings = b""
    records = b""
    count = 0
    for name, value, section_number, storage, aux in symbols:
        encoded = name.encode()
        if len(encoded) > 8:
            raw_name = struct.pack("<II", 0, 4 + len(strings))
            strings += encoded + b"\x00"
        else:
            raw_name = encoded.ljust(8, b"\x00")
        records += struct.pack("<8sIhHBB", raw_name, value, section_number, 0, storage, aux)
        records += b"\x00" * 18 * aux
        count += 1 + aux
    strtab = struct.pack("<I", 4 + len(strings)) + strings

    dos = b"MZ" + b"\x00" * 58 + struct.pack("<I", 0x40)
    coff = struct.pack("<HHIIIHH", machine, 1, 0, symtab_ptr, count, 240, 0x22)
    optional = struct.pack(
        "<HBBIIIIIQIIHHHHHHIIIIHHQQQQII",
        0x20B, 14, 0, raw_size, 0, 0, PE_TEXT_RVA, PE_TEXT_RVA, IMAGE_BASE,
        0x1000, file_align, 6, 0, 0, 0, 6, 0, 0, 0x2000, file_align, 0, 3, 0,
        0x100000, 0x1000, 0x100000, 0x1000, 0, 16,
    ) + b"\x00" * 16 * 8
    section = struct.pack(
        "<8sIIIIIIHHI",
        b".text", len(code), PE_TEXT_RVA, raw_size, raw_ptr, 0, 0, 0, 0, 0x60000020,
    )

    image = bytearray(dos + b"PE\x00\x00" + coff + optional + section)
    image += b"\x00" * (raw_ptr - len(image))
    image += code.ljust(raw_size, b"\x00")
    image += records + strtab
    return bytes(image)


@pytest.fixture
def sample_config() -> AsmLensConfig:
    return AsmLensConfig(analysis=AnalysisConfig(context=1, max_matches=5))


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    """A 20-line source file whose line N reads "line N"."""
    path = tmp_path / "prog.c"
    path.write_text("".join(f"line {n}\n" for n in range(1, 21)))
    return path


@pytest.fixture
def elf_path(tmp_path: Path) -> Path:
    # main.foo: push rbp; mov rbp, rsp; pop rbp; ret
    # main.bar: xor eax, eax; ret
    # helper:   nop; ret
    code = bytes.fromhex("554889e55dc3" "31c0c3" "90c3")
    image = build_elf(
        code,
        [
            ("prog.c", 0, 0, STT_FILE, SHN_ABS),
            ("main.foo", TEXT_ADDR, 6, STT_FUNC, 1),
            ("main.bar", TEXT_ADDR + 6, 3, STT_FUNC, 1),
            ("table", TEXT_ADDR + 9, 0, STT_OBJECT, 1),
            ("helper", TEXT_ADDR + 9, 2, STT_FUNC, 1),
            ("main.empty", TEXT_ADDR + 11, 0, STT_NOTYPE, 1),
        ],
    )
    path = tmp_path / "prog"
    path.write_bytes(image)
    return path


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: requires a C compiler on PATH")
