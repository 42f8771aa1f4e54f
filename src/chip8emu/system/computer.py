"""Computer scaffold providing scheduling and control utilities."""

from __future__ import annotations

import time
from typing import Callable, Optional, TYPE_CHECKING

from chip8emu.cpu.cpu import CPUError

if TYPE_CHECKING:
    from chip8emu.chip8.display import Chip8Display
    from chip8emu.chip8.hardware import Chip8Hardware
else:  # pragma: no cover - used for runtime only
    Chip8Display = object
    Chip8Hardware = object


class TimeManager:
    """Paces scheduler ticks against the wall clock."""

    def __init__(
        self,
        frame_interval_ns: int,
        *,
        clock: Optional[Callable[[], int]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.frame_interval_ns = frame_interval_ns
        self._clock = clock or time.perf_counter_ns
        self._sleep = sleep or time.sleep
        self._base_time_ns = self._clock()

    def now(self) -> int:
        return self._clock()

    def reset(self) -> int:
        self._base_time_ns = self._clock()
        return self._base_time_ns

    def base_time(self) -> int:
        return self._base_time_ns

    def throttle(self) -> None:
        """Sleep until one frame interval has passed since the previous call."""

        deadline = self._base_time_ns + self.frame_interval_ns
        now = self._clock()
        if now < deadline:
            self._sleep((deadline - now) / 1_000_000_000)
            self._base_time_ns = deadline
        else:
            self._base_time_ns = now


class Computer:
    """Cycle scheduler tying together hardware, CPU and the host frontend."""

    STATUS_STOPPED = 0
    STATUS_RUNNING = 1
    STATUS_PAUSE_REQUESTED = 2
    STATUS_PAUSED = 3
    STATUS_HALTED = 4

    DEFAULT_SPEED = 500.0

    def __init__(
        self,
        hardware: Chip8Hardware,
        *,
        instructions_per_second: float = DEFAULT_SPEED,
        clock: Optional[Callable[[], int]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        if instructions_per_second <= 0:
            raise ValueError("instructions_per_second must be positive")
        self.hardware = hardware
        self.instructions_per_second = instructions_per_second
        self._cpu: Optional[object] = None
        self._running_status: int = self.STATUS_STOPPED
        self._time_manager = TimeManager(
            self._frame_interval_ns(instructions_per_second),
            clock=clock,
            sleep=sleep,
        )
        self._input_poller: Optional[Callable[["Computer"], None]] = None
        self._presenter: Optional[Callable[[Chip8Display], None]] = None
        self.last_error: Optional[CPUError] = None
        self.tick_count: int = 0

    @staticmethod
    def _frame_interval_ns(instructions_per_second: float) -> int:
        return max(1, int(1_000_000_000 / instructions_per_second))

    # ------------------------------------------------------------------
    # CPU and frontend integration
    # ------------------------------------------------------------------
    @property
    def cpu(self) -> Optional[object]:
        return self._cpu

    def set_cpu(self, cpu: object) -> None:
        self._cpu = cpu
        if hasattr(cpu, "computer"):
            setattr(cpu, "computer", self)

    def set_input_poller(self, poller: Optional[Callable[["Computer"], None]]) -> None:
        self._input_poller = poller

    def set_presenter(self, presenter: Optional[Callable[[Chip8Display], None]]) -> None:
        self._presenter = presenter

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def tick(self) -> None:
        """Run one scheduler step: input, timers, one instruction, present, pace."""

        if self._input_poller is not None:
            self._input_poller(self)
        if self._running_status == self.STATUS_PAUSE_REQUESTED:
            self._apply_pause()
        if self._running_status != self.STATUS_RUNNING:
            self._time_manager.throttle()
            return

        self._update_timers()
        self._execute_cycle()
        self.present()
        self.tick_count += 1
        self._time_manager.throttle()

    def run(self, max_ticks: Optional[int] = None) -> None:
        """Tick until stopped, halted or ``max_ticks`` is reached."""

        ticks = 0
        while self._running_status not in (self.STATUS_STOPPED, self.STATUS_HALTED):
            if max_ticks is not None and ticks >= max_ticks:
                return
            self.tick()
            ticks += 1

    def present(self) -> bool:
        display = getattr(self.hardware, "display", None)
        if display is None or not display.dirty:
            return False
        if self._presenter is not None:
            self._presenter(display)
        display.consume_dirty()
        return True

    def _update_timers(self) -> None:
        timers = self.hardware.timers
        timers.update(self._time_manager.now())
        beeper = getattr(self.hardware, "beeper", None)
        if beeper is not None:
            beeper.set_active(timers.sound_active)

    def _execute_cycle(self) -> None:
        cpu = self._cpu
        if cpu is None:
            return
        if cpu.awaiting_key:
            key = self.hardware.keypad.take_key_down()
            if key is not None:
                cpu.resolve_key_wait(key)
            return
        try:
            cpu.step()
        except CPUError as exc:
            self.last_error = exc
            self._running_status = self.STATUS_HALTED
            self._silence()
            raise

    # ------------------------------------------------------------------
    # Control lifecycle
    # ------------------------------------------------------------------
    def power_on(self) -> None:
        self._running_status = self.STATUS_RUNNING
        self.last_error = None
        self.hardware.timers.start(self._time_manager.now())
        self._time_manager.reset()

    def stop(self) -> None:
        self._running_status = self.STATUS_STOPPED
        self._silence()

    def power_off(self) -> None:
        self.stop()

    def reset(self) -> None:
        if self._cpu is not None and hasattr(self._cpu, "reset"):
            self._cpu.reset()
        self.hardware.memory.clear()
        self.hardware.display.reset()
        self.hardware.keypad.clear()
        self.hardware.timers.reset()
        self._silence()
        self.last_error = None
        self.tick_count = 0
        if self._running_status in (self.STATUS_RUNNING, self.STATUS_HALTED):
            self._running_status = self.STATUS_RUNNING
            self.hardware.timers.start(self._time_manager.now())

    def toggle_pause(self) -> None:
        if self._running_status == self.STATUS_RUNNING:
            self._running_status = self.STATUS_PAUSE_REQUESTED
        elif self._running_status in (self.STATUS_PAUSE_REQUESTED, self.STATUS_PAUSED):
            self._apply_resume()

    def pause(self) -> None:
        if self._running_status == self.STATUS_RUNNING:
            self._running_status = self.STATUS_PAUSE_REQUESTED

    def resume(self) -> None:
        if self._running_status in (self.STATUS_PAUSE_REQUESTED, self.STATUS_PAUSED):
            self._apply_resume()

    def get_running_status(self) -> int:
        return self._running_status

    @property
    def paused(self) -> bool:
        return self._running_status in (self.STATUS_PAUSE_REQUESTED, self.STATUS_PAUSED)

    @property
    def halted(self) -> bool:
        return self._running_status == self.STATUS_HALTED

    @property
    def awaiting_key(self) -> bool:
        return bool(getattr(self._cpu, "awaiting_key", False))

    def _apply_pause(self) -> None:
        self._running_status = self.STATUS_PAUSED
        self._silence()

    def _apply_resume(self) -> None:
        self._running_status = self.STATUS_RUNNING
        # Time spent paused must not count against the timers.
        self.hardware.timers.start(self._time_manager.now())
        self._time_manager.reset()

    def _silence(self) -> None:
        beeper = getattr(self.hardware, "beeper", None)
        if beeper is not None:
            beeper.set_active(False)

    # ------------------------------------------------------------------
    # Speed control
    # ------------------------------------------------------------------
    def get_speed(self) -> float:
        return self.instructions_per_second

    def set_speed(self, instructions_per_second: float) -> None:
        if instructions_per_second <= 0:
            raise ValueError("instructions_per_second must be positive")
        self.instructions_per_second = instructions_per_second
        self._time_manager.frame_interval_ns = self._frame_interval_ns(instructions_per_second)
