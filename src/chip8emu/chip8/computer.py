"""CHIP-8 system wiring."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

from chip8emu.chip8.display import Chip8Display
from chip8emu.chip8.hardware import Chip8Hardware
from chip8emu.chip8.keyboard import Chip8Keypad
from chip8emu.chip8.sound import Chip8Beeper
from chip8emu.chip8.timers import TIMER_INTERVAL_NS, Chip8Timers
from chip8emu.cpu.cpu import Chip8CPU, env_flag
from chip8emu.emulator.file import ProgramInfo, RomUnreadable, load_program_bytes, load_rom
from chip8emu.memory import Memory, PROGRAM_START
from chip8emu.system.computer import Computer


class Chip8Computer(Computer):
    """Concrete CHIP-8 machine: hardware bundle, CPU and scheduler."""

    ENV_ROM_PATH = "CHIP8EMU_ROM"
    ENV_TRACE_MEMORY = "CHIP8EMU_TRACE_MEMORY"

    def __init__(
        self,
        *,
        seed: Optional[int] = None,
        instructions_per_second: float = Computer.DEFAULT_SPEED,
        timer_interval_ns: int = TIMER_INTERVAL_NS,
        enable_audio: bool = False,
        trace: Optional[bool] = None,
        trace_memory: Optional[bool] = None,
        clock: Optional[Callable[[], int]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        hardware = Chip8Hardware(
            memory=Memory(),
            display=Chip8Display(),
            keypad=Chip8Keypad(),
            timers=Chip8Timers(interval_ns=timer_interval_ns),
            beeper=Chip8Beeper(enable_audio=enable_audio),
        )
        super().__init__(
            hardware,
            instructions_per_second=instructions_per_second,
            clock=clock,
            sleep=sleep,
        )
        if trace_memory is None:
            trace_memory = env_flag(self.ENV_TRACE_MEMORY)
        self.memory.enable_debug(trace_memory)
        self.program_info: Optional[ProgramInfo] = None
        self.cpu_core = Chip8CPU(self, seed=seed, trace=trace)
        self.set_cpu(self.cpu_core)

    @property
    def memory(self) -> Memory:
        return self.hardware.memory

    @property
    def display(self) -> Chip8Display:
        return self.hardware.display

    @property
    def keypad(self) -> Chip8Keypad:
        return self.hardware.keypad

    @property
    def timers(self) -> Chip8Timers:
        return self.hardware.timers

    # ------------------------------------------------------------------
    # Program loading
    # ------------------------------------------------------------------
    @classmethod
    def resolve_rom_path(cls, rom_path: str | os.PathLike[str] | None) -> Path:
        if rom_path is not None and str(rom_path):
            return Path(rom_path)
        env_value = os.getenv(cls.ENV_ROM_PATH)
        if env_value:
            return Path(env_value)
        raise RomUnreadable(f"no program given and {cls.ENV_ROM_PATH} is not set")

    def load_program(self, path: str | os.PathLike[str]) -> ProgramInfo:
        info = load_rom(self.memory, Path(path))
        self._start_program(info)
        return info

    def load_program_bytes(self, data: bytes, *, name: str = "") -> ProgramInfo:
        info = load_program_bytes(self.memory, data, name=name)
        self._start_program(info)
        return info

    def _start_program(self, info: ProgramInfo) -> None:
        self.program_info = info
        self.cpu_core.registers.program_counter = PROGRAM_START

    def reload_program(self) -> Optional[ProgramInfo]:
        """Power-cycle the machine and load the current program again."""

        info = self.program_info
        self.reset()
        if info is None:
            return None
        reloaded = self.load_program_bytes(info.data, name=info.name)
        reloaded.path = info.path
        return reloaded
