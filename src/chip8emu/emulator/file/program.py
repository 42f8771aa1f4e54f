"""Program loader for raw CHIP-8 ROM images."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from chip8emu.memory import MEMORY_SIZE, PROGRAM_START, Memory

MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START


class ProgramLoadError(RuntimeError):
    """Raised when a program image cannot be placed in memory."""


class RomTooLarge(ProgramLoadError):
    def __init__(self, size: int) -> None:
        super().__init__(f"program is {size} bytes; at most {MAX_PROGRAM_SIZE} fit above 0x{PROGRAM_START:03X}")
        self.size = size


class RomUnreadable(ProgramLoadError):
    """Raised when the program file cannot be opened or read."""


@dataclass
class ProgramInfo:
    name: str = ""
    size: int = 0
    start: int = PROGRAM_START
    path: Optional[Path] = None
    data: bytes = b""

    @property
    def end(self) -> int:
        return self.start + self.size - 1


def read_rom(path: str | Path) -> bytes:
    file_path = Path(path)
    try:
        with file_path.open("rb") as stream:
            data = stream.read()
    except OSError as exc:
        raise RomUnreadable(f"cannot read {file_path}: {exc.strerror or exc}") from exc
    if len(data) > MAX_PROGRAM_SIZE:
        raise RomTooLarge(len(data))
    return data


def load_program_bytes(memory: Memory, data: bytes, *, name: str = "") -> ProgramInfo:
    """Copy ``data`` verbatim to 0x200; oversized images leave memory untouched."""

    if len(data) > MAX_PROGRAM_SIZE:
        raise RomTooLarge(len(data))
    memory.store_block(PROGRAM_START, data)
    return ProgramInfo(name=name, size=len(data), data=bytes(data))


def load_rom(memory: Memory, path: str | Path) -> ProgramInfo:
    file_path = Path(path)
    data = read_rom(file_path)
    info = load_program_bytes(memory, data, name=file_path.stem.upper())
    info.path = file_path
    return info
