"""Square-wave beeper gated by the CHIP-8 sound timer."""

from __future__ import annotations

from dataclasses import dataclass, field
from array import array
from typing import List, Optional, Tuple


@dataclass
class Chip8Beeper:
    """Plays a constant tone while the sound timer is non-zero."""

    history: List[Tuple[str, Tuple[float, ...]]] = field(default_factory=list)
    frequency: float = 440.0
    sample_rate: int = 44100
    volume: float = 0.3
    enable_audio: bool = False

    def __post_init__(self) -> None:
        self._active: bool = False
        self._audio_initialized: bool = False
        self._channel = None
        self._sound = None

    @property
    def active(self) -> bool:
        return self._active

    def set_active(self, active: bool) -> None:
        if active == self._active:
            return
        self._active = active
        if active:
            self.history.append(("tone_on", (self.frequency,)))
            self._start_tone()
        else:
            self.history.append(("tone_off", tuple()))
            self._stop_tone()

    # ------------------------------------------------------------------
    # Audio control helpers
    # ------------------------------------------------------------------

    def _ensure_mixer(self) -> bool:
        if not self.enable_audio:
            return False
        if self._audio_initialized:
            return True
        try:
            import pygame  # type: ignore

            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=self.sample_rate, size=-16, channels=1)
            self._channel = pygame.mixer.Channel(0)
            self._sound = pygame.mixer.Sound(buffer=self.render_period_buffer())
            self._audio_initialized = True
        except Exception as exc:
            print(f"Audio disabled: {exc}")
            self.enable_audio = False
            self._channel = None
            self._sound = None
            self._audio_initialized = False
        return self._audio_initialized

    def render_period_buffer(self, periods: int = 32) -> array:
        """Render whole square-wave periods so the buffer loops without clicks."""

        if self.frequency <= 0.0:
            raise ValueError("frequency must be positive")
        half_period = max(1, int(round(self.sample_rate / (2.0 * self.frequency))))
        amplitude = int(self.volume * 32767)
        buffer = array("h")
        for _ in range(periods):
            buffer.extend([amplitude] * half_period)
            buffer.extend([-amplitude] * half_period)
        return buffer

    def _start_tone(self) -> None:
        if not self._ensure_mixer() or self._channel is None:
            return
        self._channel.play(self._sound, loops=-1)

    def _stop_tone(self) -> None:
        channel: Optional[object] = self._channel
        if channel is not None:
            channel.stop()

    def shutdown(self) -> None:
        self.set_active(False)
        self._channel = None
        self._sound = None
        self._audio_initialized = False
