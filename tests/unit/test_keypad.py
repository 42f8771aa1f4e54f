"""Tests for the CHIP-8 keypad latch."""

import pytest

from chip8emu.chip8.keyboard import Chip8Keypad


def test_press_and_release_updates_latch() -> None:
    keypad = Chip8Keypad()
    keypad.press(0xA)
    assert keypad.is_pressed(0xA) is True
    keypad.release(0xA)
    assert keypad.is_pressed(0xA) is False


def test_key_down_edge_is_consumed_once() -> None:
    keypad = Chip8Keypad()
    keypad.press(3)
    keypad.press(7)
    assert keypad.take_key_down() == 7
    assert keypad.take_key_down() is None
    assert keypad.is_pressed(3) is True


def test_release_does_not_create_key_down() -> None:
    keypad = Chip8Keypad()
    keypad.release(4)
    assert keypad.take_key_down() is None


def test_clear_drops_state_and_edge() -> None:
    keypad = Chip8Keypad()
    keypad.press(1)
    keypad.clear()
    assert not any(keypad.is_pressed(key) for key in range(16))
    assert keypad.take_key_down() is None


@pytest.mark.parametrize("key", [-1, 16])
def test_out_of_range_keys_rejected(key: int) -> None:
    keypad = Chip8Keypad()
    with pytest.raises(ValueError):
        keypad.press(key)

