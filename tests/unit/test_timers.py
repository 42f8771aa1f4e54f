"""Delay/sound timer cadence tests."""

import pytest

from chip8emu.chip8.timers import TIMER_INTERVAL_NS, Chip8Timers


@pytest.mark.parametrize("start, ticks", [(10, 3), (3, 10), (0, 1), (255, 255)])
def test_n_intervals_decrement_n_times(start: int, ticks: int) -> None:
    timers = Chip8Timers(delay=start, sound=start)
    timers.start(0)
    for step in range(1, ticks + 1):
        timers.update(step * TIMER_INTERVAL_NS)
    assert timers.delay == max(0, start - ticks)
    assert timers.sound == max(0, start - ticks)


def test_partial_interval_does_not_decrement() -> None:
    timers = Chip8Timers(delay=5)
    timers.start(1_000)
    assert timers.update(1_000 + TIMER_INTERVAL_NS - 1) == 0
    assert timers.delay == 5
    assert timers.update(1_000 + TIMER_INTERVAL_NS) == 1
    assert timers.delay == 4


def test_late_update_catches_up_and_keeps_phase() -> None:
    timers = Chip8Timers(delay=10)
    timers.start(0)
    assert timers.update(3 * TIMER_INTERVAL_NS + 5) == 3
    assert timers.delay == 7
    # Remainder of the late update still counts toward the next interval.
    assert timers.update(4 * TIMER_INTERVAL_NS) == 1
    assert timers.delay == 6


def test_first_update_only_sets_reference() -> None:
    timers = Chip8Timers(delay=2)
    assert timers.update(50 * TIMER_INTERVAL_NS) == 0
    assert timers.delay == 2


def test_setters_truncate_to_byte() -> None:
    timers = Chip8Timers()
    timers.set_delay(0x1FF)
    timers.set_sound(0x101)
    assert timers.delay == 0xFF
    assert timers.sound == 0x01
    assert timers.sound_active is True


def test_invalid_interval_rejected() -> None:
    with pytest.raises(ValueError):
        Chip8Timers(interval_ns=0)
