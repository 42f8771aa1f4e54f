from __future__ import annotations

import pytest

from chip8emu import headless_runner


class DummyMemory:
    def __init__(self) -> None:
        self.values = {0x0000: 0x12, 0x0001: 0x34, 0x000F: 0xAB, 0x0010: 0xCD}

    def load8(self, address: int) -> int:
        return self.values.get(address & 0xFFF, 0x00)


def test_parse_hex_accepts_prefixed_and_plain() -> None:
    assert headless_runner._parse_hex("0x0300") == 0x0300
    assert headless_runner._parse_hex("300") == 0x0300


@pytest.mark.parametrize("value", ["", "0x1000", "xyz", "-1"])
def test_parse_hex_rejects_invalid(value: str) -> None:
    with pytest.raises(ValueError):
        headless_runner._parse_hex(value)


def test_parse_range_and_merge() -> None:
    rng = headless_runner._parse_range("0010:001F")
    assert rng.start == 0x0010
    assert rng.end == 0x001F
    merged = headless_runner._merge_ranges(
        [headless_runner.DumpRange(0x0000, 0x000F), headless_runner.DumpRange(0x0010, 0x0015)]
    )
    assert merged == [headless_runner.DumpRange(0x0000, 0x0015)]


def test_merge_ranges_defaults_to_full_memory() -> None:
    merged = headless_runner._merge_ranges([])
    assert merged == [headless_runner.DumpRange(0x000, 0xFFF)]


def test_format_hex_dump_renders_expected_table() -> None:
    memory = DummyMemory()
    dump = headless_runner._format_hex_dump(memory, [headless_runner.DumpRange(0x0000, 0x0010)])
    lines = dump.splitlines()
    assert lines[0].startswith("ADDR")
    assert lines[1].startswith("0000 12 34")
    assert lines[2].startswith("0010 CD 00")


@pytest.mark.parametrize(
    "spec, expected",
    [
        ("A@10", headless_runner.KeyPress(0xA, 10, 1)),
        ("0x5@0+20", headless_runner.KeyPress(0x5, 0, 20)),
    ],
)
def test_parse_press(spec: str, expected) -> None:
    assert headless_runner._parse_press(spec) == expected


@pytest.mark.parametrize("spec", ["A", "10@1", "A@-1", "A@1+0"])
def test_parse_press_rejects_invalid(spec: str) -> None:
    with pytest.raises(ValueError):
        headless_runner._parse_press(spec)


def test_simulated_clock_moves_only_on_sleep() -> None:
    clock = headless_runner.SimulatedClock(start_ns=5)
    assert clock() == 5
    assert clock() == 5
    clock.sleep(0.002)
    assert clock() == 2_000_005


def test_setup_computer_paces_ticks_on_simulated_time() -> None:
    computer = headless_runner._setup_computer(1, speed=500.0)
    computer.load_program_bytes(bytes([0x12, 0x00]))
    computer.power_on()
    computer.run(max_ticks=16)
    assert computer._time_manager.now() == 32_000_000
