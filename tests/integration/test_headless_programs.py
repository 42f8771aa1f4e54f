"""Headless end-to-end checks running small hand-assembled programs."""

from __future__ import annotations

import importlib.util
from pathlib import Path
import sys

import pytest

from chip8emu.memory import FONT_GLYPHS

_HELPER_PATH = Path(__file__).resolve().parents[1] / "helpers" / "headless.py"
_SPEC = importlib.util.spec_from_file_location("headless_helper", _HELPER_PATH)
_MODULE = importlib.util.module_from_spec(_SPEC)
assert _SPEC is not None and _SPEC.loader is not None
sys.modules[_SPEC.name] = _MODULE
_SPEC.loader.exec_module(_MODULE)  # type: ignore[arg-type]

KeyEvent = _MODULE.KeyEvent
assemble = _MODULE.assemble
run_program = _MODULE.run_program


def _glyph_bits(digit: int) -> list[list[bool]]:
    rows = FONT_GLYPHS[digit * 5 : digit * 5 + 5]
    return [[bool(row & (0x80 >> bit)) for bit in range(8)] for row in rows]


@pytest.mark.parametrize("digit", [0x0, 0x7, 0xA, 0xF])
def test_font_glyph_is_drawn_at_position(digit: int) -> None:
    program = assemble(
        [
            0x6000 | digit,  # V0 = digit
            0xF029,  # I = glyph address of V0
            0x610A,  # V1 = 10
            0x620C,  # V2 = 12
            0xD125,  # draw 5 rows at (V1, V2)
            0x120A,  # halt loop
        ]
    )
    computer, pc_history = run_program(program, total_ticks=8)

    display = computer.display
    expected = _glyph_bits(digit)
    for row in range(5):
        for col in range(8):
            assert display.pixel(10 + col, 12 + row) is expected[row][col]
    assert display.lit_count() == sum(sum(row) for row in expected)
    assert computer.cpu_core.registers.read(0xF) == 0
    assert pc_history[-1] == 0x20A


def test_redraw_erases_and_reports_collision() -> None:
    program = assemble([0xF029, 0xD005, 0xD005, 0x1206])
    computer, _ = run_program(program, total_ticks=4)

    assert computer.display.lit_count() == 0
    assert computer.cpu_core.registers.read(0xF) == 1


def test_sprite_wraps_around_screen_edges() -> None:
    program = assemble([0x603C, 0x611E, 0xA20A, 0xD014, 0x1208, 0xFFFF, 0xFFFF])
    computer, _ = run_program(program, total_ticks=5)

    display = computer.display
    for x in (60, 61, 62, 63, 0, 1, 2, 3):
        for y in (30, 31, 0, 1):
            assert display.pixel(x, y) is True
    assert display.lit_count() == 32


def test_bcd_and_block_load_round_trip() -> None:
    program = assemble([0x6A7B, 0xA300, 0xFA33, 0xF265, 0x1208])
    computer, _ = run_program(program, total_ticks=5)

    regs = computer.cpu_core.registers
    assert [regs.read(r) for r in range(3)] == [1, 2, 3]
    assert regs.index == 0x300


def test_key_wait_resumes_after_scheduled_press() -> None:
    program = assemble([0xF50A, 0x7501, 0x1204])
    events = [KeyEvent(tick=10, key=0x9, pressed=True), KeyEvent(tick=12, key=0x9, pressed=False)]
    computer, pc_history = run_program(program, total_ticks=20, events=events)

    assert pc_history[:10] == [0x200] * 10
    assert computer.cpu_core.registers.read(5) == 0x0A
    assert computer.awaiting_key is False
    assert pc_history[-1] == 0x204


def test_key_skip_follows_held_key() -> None:
    # Counts loop passes that observe key 4 held.
    program = assemble([0x6104, 0xE19E, 0x1200, 0x7201, 0x1200])
    events = [KeyEvent(tick=0, key=0x4, pressed=True), KeyEvent(tick=9, key=0x4, pressed=False)]
    computer, _ = run_program(program, total_ticks=30, events=events)

    assert computer.cpu_core.registers.read(2) == 2


def test_subroutines_nest_and_return() -> None:
    program = assemble([0x2206, 0x7001, 0x1204, 0x220C, 0x7110, 0x00EE, 0x7210, 0x00EE])
    computer, _ = run_program(program, total_ticks=10)

    regs = computer.cpu_core.registers
    assert regs.read(0) == 1
    assert regs.read(1) == 0x10
    assert regs.read(2) == 0x10
    assert regs.stack.depth == 0


def test_loading_from_file(tmp_path) -> None:
    rom = tmp_path / "count.ch8"
    rom.write_bytes(assemble([0x7001, 0x1200]))
    computer, _ = run_program(str(rom), total_ticks=20)

    assert computer.cpu_core.registers.read(0) == 10
    assert computer.program_info is not None
    assert computer.program_info.name == "COUNT"
