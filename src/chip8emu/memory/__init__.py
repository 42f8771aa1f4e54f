"""Memory primitives for the CHIP-8 address space."""

from __future__ import annotations

from typing import Iterable, Protocol

MEMORY_SIZE = 0x1000
ADDRESS_MASK = 0x0FFF
FONT_START = 0x000
PROGRAM_START = 0x200

GLYPH_BYTES = 5
FONT_GLYPHS = (
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
)


class Addressable(Protocol):
    """Protocol describing the byte-addressed memory the CPU talks to."""

    def load8(self, address: int) -> int:
        ...

    def store8(self, address: int, value: int) -> None:
        ...

    def load16(self, address: int) -> int:
        ...


class Memory(Addressable):
    """4 KiB RAM with 12-bit address wrap-around."""

    def __init__(self, size: int = MEMORY_SIZE) -> None:
        if size <= 0 or size > MEMORY_SIZE:
            raise ValueError("invalid memory size")
        self.size = size
        self.data = bytearray(size)
        self._debug: bool = False
        self.install_font()

    def _index(self, address: int) -> int:
        return (address & ADDRESS_MASK) % self.size

    def load8(self, address: int) -> int:
        addr = self._index(address)
        value = self.data[addr]
        if self._debug:
            print(f"load8: addr={addr:03X} val={value:02X}")
        return value

    def store8(self, address: int, value: int) -> None:
        addr = self._index(address)
        if self._debug:
            print(f"store8: addr={addr:03X} val={value & 0xFF:02X}")
        self.data[addr] = value & 0xFF

    def load16(self, address: int) -> int:
        """Read a big-endian word; the high byte lives at the lower address."""

        hi = self.load8(address)
        lo = self.load8(address + 1)
        return ((hi << 8) | lo) & 0xFFFF

    def load_block(self, address: int, length: int) -> bytes:
        return bytes(self.load8(address + offset) for offset in range(length))

    def store_block(self, address: int, values: Iterable[int]) -> None:
        for offset, value in enumerate(values):
            self.store8(address + offset, value)

    def install_font(self) -> None:
        self.data[FONT_START:FONT_START + len(FONT_GLYPHS)] = bytes(FONT_GLYPHS)

    def clear(self) -> None:
        self.data = bytearray(self.size)
        self.install_font()

    def enable_debug(self, enabled: bool) -> None:
        self._debug = enabled


def glyph_address(digit: int) -> int:
    return FONT_START + (digit & 0x0F) * GLYPH_BYTES


__all__ = [
    "ADDRESS_MASK",
    "Addressable",
    "FONT_GLYPHS",
    "FONT_START",
    "GLYPH_BYTES",
    "MEMORY_SIZE",
    "Memory",
    "PROGRAM_START",
    "glyph_address",
]
