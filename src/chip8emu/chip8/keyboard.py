"""CHIP-8 hexadecimal keypad latch."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

KEY_COUNT = 16


@dataclass
class Chip8Keypad:
    """Sixteen pressed/released slots written by the input backend.

    Besides the level state the latch remembers the most recent key-down
    edge, which is what the wait-for-key instruction consumes.
    """

    _keys: List[bool] = field(default_factory=lambda: [False] * KEY_COUNT)
    _key_down: Optional[int] = None

    def press(self, key: int) -> None:
        self._check(key)
        self._keys[key] = True
        self._key_down = key

    def release(self, key: int) -> None:
        self._check(key)
        self._keys[key] = False

    def is_pressed(self, key: int) -> bool:
        self._check(key)
        return self._keys[key]

    def take_key_down(self) -> Optional[int]:
        key = self._key_down
        self._key_down = None
        return key

    def discard_key_down(self) -> None:
        self._key_down = None

    def clear(self) -> None:
        self._keys = [False] * KEY_COUNT
        self._key_down = None

    @staticmethod
    def _check(key: int) -> None:
        if not (0 <= key < KEY_COUNT):
            raise ValueError("key out of range")
