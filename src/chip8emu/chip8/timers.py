"""Delay and sound countdown timers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

TIMER_INTERVAL_NS = 16_000_000


@dataclass
class Chip8Timers:
    """Two 8-bit counters decremented at a fixed wall-clock rate."""

    delay: int = 0
    sound: int = 0
    interval_ns: int = TIMER_INTERVAL_NS
    _last_ns: Optional[int] = None

    def __post_init__(self) -> None:
        if self.interval_ns <= 0:
            raise ValueError("timer interval must be positive")

    def set_delay(self, value: int) -> None:
        self.delay = value & 0xFF

    def set_sound(self, value: int) -> None:
        self.sound = value & 0xFF

    @property
    def sound_active(self) -> bool:
        return self.sound > 0

    def tick(self, count: int = 1) -> None:
        if count <= 0:
            return
        self.delay = max(0, self.delay - count)
        self.sound = max(0, self.sound - count)

    def start(self, now_ns: int) -> None:
        self._last_ns = now_ns

    def update(self, now_ns: int) -> int:
        """Apply every whole interval elapsed since the last decrement point."""

        if self._last_ns is None:
            self._last_ns = now_ns
            return 0
        elapsed = now_ns - self._last_ns
        if elapsed < self.interval_ns:
            return 0
        count = elapsed // self.interval_ns
        self._last_ns += count * self.interval_ns
        self.tick(count)
        return count

    def reset(self) -> None:
        self.delay = 0
        self.sound = 0
        self._last_ns = None
