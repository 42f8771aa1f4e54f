"""Headless runner for scripted CHIP-8 execution and state dumps."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.cpu.cpu import CPUError
from chip8emu.emulator.file import ProgramLoadError
from chip8emu.memory import ADDRESS_MASK
from chip8emu.system.computer import Computer

DEFAULT_MAX_CYCLES = 10_000
NS_PER_SECOND = 1_000_000_000


class SimulatedClock:
    """Nanosecond clock that only advances when the scheduler sleeps.

    Each tick then accounts for exactly one instruction interval, so timer
    values after N ticks do not depend on host speed.
    """

    def __init__(self, start_ns: int = 0) -> None:
        self.now_ns = start_ns

    def __call__(self) -> int:
        return self.now_ns

    def sleep(self, seconds: float) -> None:
        self.now_ns += int(round(seconds * NS_PER_SECOND))


@dataclass(frozen=True)
class DumpRange:
    """Inclusive memory range used for dumping."""

    start: int
    end: int

    def iter_addresses(self) -> Iterable[int]:
        for address in range(self.start, self.end + 1):
            yield address & ADDRESS_MASK


@dataclass(frozen=True)
class KeyPress:
    """Key held down from ``cycle`` for ``duration`` executed cycles."""

    key: int
    cycle: int
    duration: int = 1


def _parse_hex(value: str, *, limit: int = ADDRESS_MASK) -> int:
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    if not text:
        raise ValueError("empty hexadecimal value")
    result = int(text, 16)
    if not (0 <= result <= limit):
        raise ValueError("hex value out of range")
    return result


def _parse_range(spec: str) -> DumpRange:
    start_str, sep, end_str = spec.partition(":")
    if not sep:
        raise ValueError("range specification must contain ':'")
    start = _parse_hex(start_str)
    end = _parse_hex(end_str)
    if end < start:
        raise ValueError("range end must be >= start")
    return DumpRange(start, end)


def _parse_press(spec: str) -> KeyPress:
    """Parse ``KEY@CYCLE`` or ``KEY@CYCLE+DURATION``."""

    key_str, sep, when = spec.partition("@")
    if not sep:
        raise ValueError("key press must look like KEY@CYCLE")
    key = _parse_hex(key_str, limit=0xF)
    cycle_str, plus, duration_str = when.partition("+")
    cycle = int(cycle_str)
    duration = int(duration_str) if plus else 1
    if cycle < 0 or duration <= 0:
        raise ValueError("cycle must be >= 0 and duration > 0")
    return KeyPress(key, cycle, duration)


def _merge_ranges(ranges: Sequence[DumpRange]) -> List[DumpRange]:
    if not ranges:
        return [DumpRange(0x000, ADDRESS_MASK)]
    ordered = sorted(ranges, key=lambda r: (r.start, r.end))
    merged: List[DumpRange] = []
    for current in ordered:
        if not merged:
            merged.append(current)
            continue
        last = merged[-1]
        if current.start <= last.end + 1:
            merged[-1] = DumpRange(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def _format_hex_dump(memory, dump_ranges: Sequence[DumpRange]) -> str:
    lines: List[str] = []
    header = "ADDR " + " ".join(f"+{offset:X}" for offset in range(16))
    for index, dump_range in enumerate(dump_ranges):
        if index:
            lines.append("")
        lines.append(header)
        start_line = dump_range.start & ~0x0F
        end_line = dump_range.end | 0x0F
        for base in range(start_line, end_line + 1, 16):
            row = [f"{base & ADDRESS_MASK:04X}"]
            for offset in range(16):
                address = (base + offset) & ADDRESS_MASK
                value = memory.load8(address) & 0xFF
                row.append(f"{value:02X}")
            lines.append(" ".join(row))
    return "\n".join(lines)


def _write_dump(memory, dump_ranges: Sequence[DumpRange], *, target: Path | None, fmt: str) -> None:
    ranges = _merge_ranges(dump_ranges)
    if fmt == "bin":
        data = bytearray()
        for dump_range in ranges:
            for address in dump_range.iter_addresses():
                data.append(memory.load8(address) & 0xFF)
        if target is None:
            sys.stdout.buffer.write(bytes(data))
            return
        target.write_bytes(bytes(data))
        return

    text = _format_hex_dump(memory, ranges)
    if target is None:
        print(text)
    else:
        target.write_text(text + "\n")


def _format_registers(computer: Chip8Computer) -> str:
    regs = computer.cpu_core.registers
    timers = computer.timers
    v_line = " ".join(f"V{index:X}={value:02X}" for index, value in enumerate(regs.v))
    return (
        f"PC={regs.program_counter:03X} I={regs.index:03X} SP={regs.stack.depth} "
        f"DT={timers.delay:02X} ST={timers.sound:02X}\n{v_line}"
    )


def _setup_computer(
    seed: int | None,
    *,
    speed: float = Computer.DEFAULT_SPEED,
    trace_memory: bool | None = None,
) -> Chip8Computer:
    clock = SimulatedClock()
    return Chip8Computer(
        seed=seed,
        instructions_per_second=speed,
        trace_memory=trace_memory,
        clock=clock,
        sleep=clock.sleep,
    )


def _execute_program(
    computer: Chip8Computer,
    *,
    max_cycles: int,
    presses: Sequence[KeyPress] = (),
) -> Tuple[int, bool]:
    """Tick the scheduler ``max_cycles`` times; return (ticks, halted)."""

    keypad = computer.keypad
    computer.power_on()
    ticks = 0
    try:
        while ticks < max_cycles:
            for press in presses:
                if press.cycle == ticks:
                    keypad.press(press.key)
                elif press.cycle + press.duration == ticks:
                    keypad.release(press.key)
            computer.tick()
            ticks += 1
    except CPUError as exc:
        print(f"Execution halted: {exc}", file=sys.stderr)
        return ticks, True
    return ticks, False


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8emu-headless",
        description="Run a CHIP-8 program without a window and dump the resulting state.",
    )
    parser.add_argument("--program", type=str, required=True, help="Raw CHIP-8 program image")
    parser.add_argument(
        "--cycles",
        type=int,
        default=DEFAULT_MAX_CYCLES,
        help="Number of scheduler ticks to run (default: %(default)s)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random-number instruction")
    parser.add_argument(
        "--speed",
        type=float,
        default=Computer.DEFAULT_SPEED,
        help="Simulated instructions per second; sets how far the timers move per tick (default: %(default)s)",
    )
    parser.add_argument(
        "--press",
        action="append",
        default=[],
        help="Hold hex key KEY from tick CYCLE, as KEY@CYCLE[+DURATION]. Repeatable.",
    )
    parser.add_argument(
        "--dump",
        type=str,
        default=None,
        help="File path for memory dump (defaults to stdout)",
    )
    parser.add_argument(
        "--dump-range",
        action="append",
        default=[],
        help="Memory range to dump in START:END hex form (inclusive). Repeat to add multiple ranges.",
    )
    parser.add_argument(
        "--dump-format",
        choices=("hex", "bin", "none"),
        default="none",
        help="Dump format (hex table, raw binary, or no memory dump)",
    )
    parser.add_argument("--screen", action="store_true", help="Print the display as text after execution")
    parser.add_argument("--registers", action="store_true", help="Print registers and timers after execution")
    parser.add_argument(
        "--trace-memory",
        action="store_true",
        default=None,
        help="Print every memory load and store (same as setting CHIP8EMU_TRACE_MEMORY)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_argument_parser()
    args = parser.parse_args(argv)

    dump_ranges: List[DumpRange] = []
    for spec in args.dump_range:
        try:
            dump_ranges.append(_parse_range(spec))
        except ValueError as exc:
            parser.error(f"invalid dump range '{spec}': {exc}")

    presses: List[KeyPress] = []
    for spec in args.press:
        try:
            presses.append(_parse_press(spec))
        except ValueError as exc:
            parser.error(f"invalid key press '{spec}': {exc}")

    if args.cycles <= 0:
        parser.error("cycles must be positive")
    if args.speed <= 0:
        parser.error("speed must be positive")

    computer = _setup_computer(args.seed, speed=args.speed, trace_memory=args.trace_memory)

    try:
        computer.load_program(args.program)
    except ProgramLoadError as exc:
        print(f"Failed to load program: {exc}", file=sys.stderr)
        return 1

    _, halted = _execute_program(computer, max_cycles=args.cycles, presses=presses)

    if args.registers:
        print(_format_registers(computer))
    if args.screen:
        print(computer.display.render_text())
    if args.dump_format != "none":
        dump_target = Path(args.dump) if args.dump is not None else None
        _write_dump(computer.memory, dump_ranges, target=dump_target, fmt=args.dump_format)

    if halted:
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
