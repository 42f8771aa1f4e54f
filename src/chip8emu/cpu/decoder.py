"""Instruction word decoding."""

from __future__ import annotations

from dataclasses import dataclass

from chip8emu.memory import Addressable


@dataclass(frozen=True)
class Instruction:
    """Addressing fields of one 16-bit instruction word."""

    opcode: int
    category: int
    x: int
    y: int
    nibble: int
    byte: int
    address: int

    def __str__(self) -> str:
        return f"0x{self.opcode:04X}"


def decode(word: int) -> Instruction:
    word &= 0xFFFF
    return Instruction(
        opcode=word,
        category=(word & 0xF000) >> 12,
        x=(word & 0x0F00) >> 8,
        y=(word & 0x00F0) >> 4,
        nibble=word & 0x000F,
        byte=word & 0x00FF,
        address=word & 0x0FFF,
    )


def fetch(memory: Addressable, address: int) -> Instruction:
    return decode(memory.load16(address))
