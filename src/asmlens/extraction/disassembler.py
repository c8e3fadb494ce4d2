"""Capstone-backed instruction decoding that never gives up on a byte range."""

from __future__ import annotations

import re
from dataclasses import dataclass

from capstone import (
    CS_ARCH_ARM,
    CS_ARCH_ARM64,
    CS_ARCH_MIPS,
    CS_ARCH_PPC,
    CS_ARCH_RISCV,
    CS_ARCH_X86,
    CS_GRP_CALL,
    CS_GRP_JUMP,
    CS_MODE_32,
    CS_MODE_64,
    CS_MODE_ARM,
    CS_MODE_BIG_ENDIAN,
    CS_MODE_LITTLE_ENDIAN,
    CS_MODE_MIPS32,
    CS_MODE_MIPS64,
    CS_MODE_RISCV32,
    CS_MODE_RISCV64,
    CS_MODE_RISCVC,
    CS_MODE_THUMB,
    Cs,
    CsInsn,
)

from asmlens.errors import UnsupportedFormatError
from asmlens.extraction.binary_artifact import Instruction

# name -> (capstone arch, capstone mode, raw unit width)
_ARCH_TABLE: dict[str, tuple[int, int, int]] = {
    "x86": (CS_ARCH_X86, CS_MODE_32, 1),
    "x86_64": (CS_ARCH_X86, CS_MODE_64, 1),
    "arm": (CS_ARCH_ARM, CS_MODE_ARM, 4),
    "thumb": (CS_ARCH_ARM, CS_MODE_THUMB, 2),
    "arm64": (CS_ARCH_ARM64, CS_MODE_ARM, 4),
    "mips32": (CS_ARCH_MIPS, CS_MODE_MIPS32, 4),
    "mips64": (CS_ARCH_MIPS, CS_MODE_MIPS64, 4),
    "ppc32": (CS_ARCH_PPC, CS_MODE_32, 4),
    "ppc64": (CS_ARCH_PPC, CS_MODE_64, 4),
    "riscv32": (CS_ARCH_RISCV, CS_MODE_RISCV32 | CS_MODE_RISCVC, 2),
    "riscv64": (CS_ARCH_RISCV, CS_MODE_RISCV64 | CS_MODE_RISCVC, 2),
}

_LITERAL = re.compile(r"^#?(0x[0-9a-fA-F]+|\d+)$")


@dataclass(frozen=True)
class Architecture:
    name: str
    cs_arch: int
    cs_mode: int
    raw_width: int
    little_endian: bool = True


def architecture(name: str, little_endian: bool = True) -> Architecture:
    """Look up a supported instruction set by name."""
    try:
        cs_arch, cs_mode, raw_width = _ARCH_TABLE[name]
    except KeyError:
        known = ", ".join(supported_architectures())
        raise UnsupportedFormatError(name, f"unsupported architecture (known: {known})") from None
    if cs_arch not in (CS_ARCH_X86, CS_ARCH_RISCV):
        cs_mode |= CS_MODE_LITTLE_ENDIAN if little_endian else CS_MODE_BIG_ENDIAN
    return Architecture(
        name=name,
        cs_arch=cs_arch,
        cs_mode=cs_mode,
        raw_width=raw_width,
        little_endian=little_endian,
    )


def supported_architectures() -> list[str]:
    return sorted(_ARCH_TABLE)


class Disassembler:
    """Decodes a byte range into a gapless instruction sequence.

    A Capstone handle is not safe to share between threads, so each
    Disassembler should be used from a single thread.
    """

    def __init__(self, arch: Architecture):
        self.arch = arch
        self._md = Cs(arch.cs_arch, arch.cs_mode)
        self._md.detail = True

    def decode(self, data: bytes, base_address: int) -> tuple[Instruction, ...]:
        """Decode ``data`` as if it were loaded at ``base_address``.

        Capstone stops at the first byte sequence it cannot decode. Such a
        spot becomes one ``.byte`` unit of the architecture's raw width and
        decoding resumes right after it.
        """
        instructions: list[Instruction] = []
        offset = 0
        while offset < len(data):
            for insn in self._md.disasm(data[offset:], base_address + offset):
                instructions.append(self._convert(insn))
                offset += insn.size
            if offset < len(data):
                width = min(self.arch.raw_width, len(data) - offset)
                instructions.append(_raw_unit(data[offset : offset + width], base_address + offset))
                offset += width
        return tuple(instructions)

    def _convert(self, insn: CsInsn) -> Instruction:
        target = None
        if insn.group(CS_GRP_JUMP) or insn.group(CS_GRP_CALL):
            target = _literal_target(insn.op_str)
        return Instruction(
            address=insn.address,
            size=insn.size,
            mnemonic=insn.mnemonic,
            op_str=insn.op_str,
            opcode=bytes(insn.bytes).hex(),
            target=target,
        )


def _raw_unit(chunk: bytes, address: int) -> Instruction:
    return Instruction(
        address=address,
        size=len(chunk),
        mnemonic=".byte",
        op_str=", ".join(f"0x{b:02x}" for b in chunk),
        opcode=chunk.hex(),
    )


def _literal_target(op_str: str) -> int | None:
    """Return the branch target when the last operand is a plain address."""
    if not op_str:
        return None
    last = op_str.rsplit(",", 1)[-1].strip()
    m = _LITERAL.match(last)
    if m is None:
        return None
    literal = m.group(1)
    return int(literal, 16) if literal.startswith(("0x", "0X")) else int(literal)
