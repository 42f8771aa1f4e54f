"""CHIP-8 CPU core: register file, call stack and instruction dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
import random
from typing import Callable, Dict, List, Optional

from chip8emu.cpu.decoder import Instruction, fetch
from chip8emu.memory import ADDRESS_MASK, PROGRAM_START, glyph_address

FLAG = 0xF
REGISTER_COUNT = 16
STACK_DEPTH = 16
INSTRUCTION_SIZE = 2

ENV_TRACE = "CHIP8EMU_TRACE"


def env_flag(name: str) -> bool:
    """True when the environment variable is set to something other than "" or "0"."""

    value = os.getenv(name)
    return value is not None and value.strip() not in ("", "0")


class CPUError(RuntimeError):
    """Raised when the machine cannot continue executing."""


class StackOverflow(CPUError):
    def __init__(self, address: int) -> None:
        super().__init__(f"call stack overflow at 0x{address:03X}")
        self.address = address


class StackUnderflow(CPUError):
    def __init__(self, address: int) -> None:
        super().__init__(f"return with empty call stack at 0x{address:03X}")
        self.address = address


class UnknownInstruction(CPUError):
    def __init__(self, opcode: int, address: int) -> None:
        super().__init__(f"unknown instruction 0x{opcode:04X} at 0x{address:03X}")
        self.opcode = opcode
        self.address = address


@dataclass
class CallStack:
    """Fixed 16-entry return address stack; ``depth`` 0 means empty."""

    slots: List[int] = field(default_factory=lambda: [0] * STACK_DEPTH)
    depth: int = 0

    def push(self, address: int, *, pc: int) -> None:
        if self.depth >= STACK_DEPTH:
            raise StackOverflow(pc)
        self.slots[self.depth] = address & 0xFFFF
        self.depth += 1

    def pop(self, *, pc: int) -> int:
        if self.depth <= 0:
            raise StackUnderflow(pc)
        self.depth -= 1
        return self.slots[self.depth]

    def clear(self) -> None:
        self.slots = [0] * STACK_DEPTH
        self.depth = 0


@dataclass
class CPURegisters:
    """Register file matching the CHIP-8 layout."""

    v: List[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    index: int = 0
    program_counter: int = PROGRAM_START
    stack: CallStack = field(default_factory=CallStack)

    def read(self, register: int) -> int:
        if not (0 <= register < REGISTER_COUNT):
            raise IndexError(f"register V{register:X} out of range")
        return self.v[register]

    def write(self, register: int, value: int) -> None:
        if not (0 <= register < REGISTER_COUNT):
            raise IndexError(f"register V{register:X} out of range")
        self.v[register] = value & 0xFF


@dataclass
class CPUStatus:
    awaiting_key: Optional[int] = None
    executed: int = 0


class CPU:
    """Abstract CPU base class."""

    def __init__(self, computer: object) -> None:
        self.computer = computer

    def reset(self) -> None:
        raise NotImplementedError

    def step(self) -> None:
        raise NotImplementedError

    def execute(self, count: int) -> int:
        raise NotImplementedError


class Chip8CPU(CPU):
    """Fetch-decode-execute engine for the documented CHIP-8 instruction set."""

    OP_CLS = 0x00E0
    OP_RET = 0x00EE

    def __init__(self, computer: object, *, seed: Optional[int] = None, trace: Optional[bool] = None) -> None:
        super().__init__(computer)
        self.registers = CPURegisters()
        self.status = CPUStatus()
        self.seed = seed
        self.rng = random.Random(seed)
        self.trace = trace if trace is not None else env_flag(ENV_TRACE)
        hardware = self._resolve_hardware()
        self.memory = hardware.memory
        self.display = hardware.display
        self.keypad = hardware.keypad
        self.timers = hardware.timers
        self._main_table: Dict[int, Callable[[Instruction], None]] = {}
        self._alu_table: Dict[int, Callable[[Instruction], None]] = {}
        self._key_table: Dict[int, Callable[[Instruction], None]] = {}
        self._misc_table: Dict[int, Callable[[Instruction], None]] = {}
        self._init_opcode_tables()

    def _resolve_hardware(self):
        hardware = getattr(self.computer, "hardware", None)
        if hardware is None:
            raise RuntimeError("Computer object must provide hardware")
        return hardware

    def reset(self) -> None:
        self.registers = CPURegisters()
        self.status = CPUStatus()
        self.rng = random.Random(self.seed)

    @property
    def awaiting_key(self) -> bool:
        return self.status.awaiting_key is not None

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def step(self) -> None:
        """Execute one instruction, or nothing while waiting for a key."""

        if self.awaiting_key:
            return
        pc = self.registers.program_counter
        instruction = fetch(self.memory, pc)
        if self.trace:
            print(f"PC=0x{pc:03X} OP=0x{instruction.opcode:04X}")
        handler = self._lookup(instruction)
        if handler is None:
            raise UnknownInstruction(instruction.opcode, pc)
        handler(instruction)
        self.status.executed += 1

    def execute(self, count: int) -> int:
        executed = 0
        while executed < count and not self.awaiting_key:
            self.step()
            executed += 1
        return executed

    def resolve_key_wait(self, key: int) -> None:
        register = self.status.awaiting_key
        if register is None:
            return
        self.registers.write(register, key & 0x0F)
        self.status.awaiting_key = None
        self._advance()

    def _lookup(self, instruction: Instruction) -> Optional[Callable[[Instruction], None]]:
        category = instruction.category
        if category == 0x0:
            if instruction.opcode == self.OP_CLS:
                return self._op_cls
            if instruction.opcode == self.OP_RET:
                return self._op_ret
            return None
        if category == 0x8:
            return self._alu_table.get(instruction.nibble)
        if category in (0x5, 0x9) and instruction.nibble != 0:
            return None
        if category == 0xE:
            return self._key_table.get(instruction.byte)
        if category == 0xF:
            return self._misc_table.get(instruction.byte)
        return self._main_table.get(category)

    def _init_opcode_tables(self) -> None:
        self._main_table = {
            0x1: self._op_jp,
            0x2: self._op_call,
            0x3: self._op_se_byte,
            0x4: self._op_sne_byte,
            0x5: self._op_se_reg,
            0x6: self._op_ld_byte,
            0x7: self._op_add_byte,
            0x9: self._op_sne_reg,
            0xA: self._op_ld_index,
            0xB: self._op_jp_v0,
            0xC: self._op_rnd,
            0xD: self._op_drw,
        }
        self._alu_table = {
            0x0: self._op_ld_reg,
            0x1: self._op_or,
            0x2: self._op_and,
            0x3: self._op_xor,
            0x4: self._op_add_reg,
            0x5: self._op_sub,
            0x6: self._op_shr,
            0x7: self._op_subn,
            0xE: self._op_shl,
        }
        self._key_table = {
            0x9E: self._op_skp,
            0xA1: self._op_sknp,
        }
        self._misc_table = {
            0x07: self._op_ld_vx_dt,
            0x0A: self._op_ld_vx_key,
            0x15: self._op_ld_dt_vx,
            0x18: self._op_ld_st_vx,
            0x1E: self._op_add_index,
            0x29: self._op_ld_font,
            0x33: self._op_ld_bcd,
            0x55: self._op_store_block,
            0x65: self._op_load_block,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _advance(self, count: int = 1) -> None:
        pc = self.registers.program_counter + INSTRUCTION_SIZE * count
        self.registers.program_counter = pc & 0xFFFF

    def _skip_if(self, condition: bool) -> None:
        self._advance(2 if condition else 1)

    def _v(self, register: int) -> int:
        return self.registers.read(register)

    def _set_result_and_flag(self, register: int, result: int, flag: int) -> None:
        self.registers.write(register, result)
        self.registers.write(FLAG, flag)

    # ------------------------------------------------------------------
    # 0nnn - 7xkk
    # ------------------------------------------------------------------
    def _op_cls(self, ins: Instruction) -> None:
        self.display.clear()
        self._advance()

    def _op_ret(self, ins: Instruction) -> None:
        pc = self.registers.program_counter
        self.registers.program_counter = self.registers.stack.pop(pc=pc)
        self._advance()

    def _op_jp(self, ins: Instruction) -> None:
        self.registers.program_counter = ins.address

    def _op_call(self, ins: Instruction) -> None:
        pc = self.registers.program_counter
        self.registers.stack.push(pc, pc=pc)
        self.registers.program_counter = ins.address

    def _op_se_byte(self, ins: Instruction) -> None:
        self._skip_if(self._v(ins.x) == ins.byte)

    def _op_sne_byte(self, ins: Instruction) -> None:
        self._skip_if(self._v(ins.x) != ins.byte)

    def _op_se_reg(self, ins: Instruction) -> None:
        self._skip_if(self._v(ins.x) == self._v(ins.y))

    def _op_ld_byte(self, ins: Instruction) -> None:
        self.registers.write(ins.x, ins.byte)
        self._advance()

    def _op_add_byte(self, ins: Instruction) -> None:
        self.registers.write(ins.x, self._v(ins.x) + ins.byte)
        self._advance()

    # ------------------------------------------------------------------
    # 8xyn
    # ------------------------------------------------------------------
    def _op_ld_reg(self, ins: Instruction) -> None:
        self.registers.write(ins.x, self._v(ins.y))
        self._advance()

    def _op_or(self, ins: Instruction) -> None:
        self.registers.write(ins.x, self._v(ins.x) | self._v(ins.y))
        self._advance()

    def _op_and(self, ins: Instruction) -> None:
        self.registers.write(ins.x, self._v(ins.x) & self._v(ins.y))
        self._advance()

    def _op_xor(self, ins: Instruction) -> None:
        self.registers.write(ins.x, self._v(ins.x) ^ self._v(ins.y))
        self._advance()

    def _op_add_reg(self, ins: Instruction) -> None:
        total = self._v(ins.x) + self._v(ins.y)
        self._set_result_and_flag(ins.x, total & 0xFF, 1 if total > 0xFF else 0)
        self._advance()

    def _op_sub(self, ins: Instruction) -> None:
        vx, vy = self._v(ins.x), self._v(ins.y)
        self._set_result_and_flag(ins.x, (vx - vy) & 0xFF, 1 if vx >= vy else 0)
        self._advance()

    def _op_shr(self, ins: Instruction) -> None:
        vx = self._v(ins.x)
        self._set_result_and_flag(ins.x, vx >> 1, vx & 0x01)
        self._advance()

    def _op_subn(self, ins: Instruction) -> None:
        vx, vy = self._v(ins.x), self._v(ins.y)
        self._set_result_and_flag(ins.x, (vy - vx) & 0xFF, 1 if vy >= vx else 0)
        self._advance()

    def _op_shl(self, ins: Instruction) -> None:
        vx = self._v(ins.x)
        self._set_result_and_flag(ins.x, (vx << 1) & 0xFF, (vx >> 7) & 0x01)
        self._advance()

    # ------------------------------------------------------------------
    # 9xy0 - Dxyn
    # ------------------------------------------------------------------
    def _op_sne_reg(self, ins: Instruction) -> None:
        self._skip_if(self._v(ins.x) != self._v(ins.y))

    def _op_ld_index(self, ins: Instruction) -> None:
        self.registers.index = ins.address
        self._advance()

    def _op_jp_v0(self, ins: Instruction) -> None:
        self.registers.program_counter = (ins.address + self._v(0)) & ADDRESS_MASK

    def _op_rnd(self, ins: Instruction) -> None:
        self.registers.write(ins.x, self.rng.randrange(0x100) & ins.byte)
        self._advance()

    def _op_drw(self, ins: Instruction) -> None:
        sprite = self.memory.load_block(self.registers.index, ins.nibble)
        collision = self.display.draw_sprite(self._v(ins.x), self._v(ins.y), sprite)
        self.registers.write(FLAG, 1 if collision else 0)
        self._advance()

    # ------------------------------------------------------------------
    # Ex9E / ExA1
    # ------------------------------------------------------------------
    def _op_skp(self, ins: Instruction) -> None:
        self._skip_if(self.keypad.is_pressed(self._v(ins.x) & 0x0F))

    def _op_sknp(self, ins: Instruction) -> None:
        self._skip_if(not self.keypad.is_pressed(self._v(ins.x) & 0x0F))

    # ------------------------------------------------------------------
    # Fxkk
    # ------------------------------------------------------------------
    def _op_ld_vx_dt(self, ins: Instruction) -> None:
        self.registers.write(ins.x, self.timers.delay)
        self._advance()

    def _op_ld_vx_key(self, ins: Instruction) -> None:
        # PC stays on this word until resolve_key_wait() supplies a key.
        self.keypad.discard_key_down()
        self.status.awaiting_key = ins.x

    def _op_ld_dt_vx(self, ins: Instruction) -> None:
        self.timers.set_delay(self._v(ins.x))
        self._advance()

    def _op_ld_st_vx(self, ins: Instruction) -> None:
        self.timers.set_sound(self._v(ins.x))
        self._advance()

    def _op_add_index(self, ins: Instruction) -> None:
        total = self.registers.index + self._v(ins.x)
        self.registers.index = total & ADDRESS_MASK
        self.registers.write(FLAG, 1 if total > ADDRESS_MASK else 0)
        self._advance()

    def _op_ld_font(self, ins: Instruction) -> None:
        self.registers.index = glyph_address(self._v(ins.x))
        self._advance()

    def _op_ld_bcd(self, ins: Instruction) -> None:
        value = self._v(ins.x)
        index = self.registers.index
        self.memory.store8(index, value // 100)
        self.memory.store8(index + 1, (value // 10) % 10)
        self.memory.store8(index + 2, value % 10)
        self._advance()

    def _op_store_block(self, ins: Instruction) -> None:
        index = self.registers.index
        for register in range(ins.x + 1):
            self.memory.store8(index + register, self._v(register))
        self._advance()

    def _op_load_block(self, ins: Instruction) -> None:
        index = self.registers.index
        for register in range(ins.x + 1):
            self.registers.write(register, self.memory.load8(index + register))
        self._advance()
