"""CHIP-8 emulator pygame frontend."""

from __future__ import annotations

import argparse
import sys
from typing import Dict, Iterable, Optional

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.keyboard import Chip8Keypad
from chip8emu.cpu.cpu import CPUError
from chip8emu.emulator.file import ProgramInfo, ProgramLoadError
from chip8emu.system.computer import Computer

BASE_CAPTION = "CHIP-8 Emulator"
DEFAULT_SCALE = 10
EXIT_QUIT = 1
HALTED_FPS = 30

# Mapping from pygame key constants (ASCII for printable keys) to hex keys.
#   1 2 3 4      1 2 3 C
#   q w e r  ->  4 5 6 D
#   a s d f      7 8 9 E
#   z x c v      A 0 B F
KEY_MAP: Dict[int, int] = {
    ord("1"): 0x1,
    ord("2"): 0x2,
    ord("3"): 0x3,
    ord("4"): 0xC,
    ord("q"): 0x4,
    ord("w"): 0x5,
    ord("e"): 0x6,
    ord("r"): 0xD,
    ord("a"): 0x7,
    ord("s"): 0x8,
    ord("d"): 0x9,
    ord("f"): 0xE,
    ord("z"): 0xA,
    ord("x"): 0x0,
    ord("c"): 0xB,
    ord("v"): 0xF,
}

PAUSE_KEY = ord("p")


class QuitRequested(Exception):
    """Raised by the input poller when the user closes the window or presses Escape."""


def _handle_key_event(keypad: Chip8Keypad, key: int, pressed: bool) -> bool:
    mapping = KEY_MAP.get(key)
    if mapping is None:
        return False
    if pressed:
        keypad.press(mapping)
    else:
        keypad.release(mapping)
    return True


def _build_caption(info: Optional[ProgramInfo], computer: Computer) -> str:
    caption = BASE_CAPTION
    if info is not None and info.name:
        caption = f"{caption} | {info.name}"
    if computer.halted:
        caption = f"{caption} | HALTED"
    elif computer.paused:
        caption = f"{caption} | PAUSED"
    return caption


def _make_input_poller(pygame, computer: Chip8Computer):
    def poll(comp: Computer) -> None:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                raise QuitRequested()
            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    raise QuitRequested()
                if event.key == PAUSE_KEY:
                    comp.toggle_pause()
                    continue
                if event.key == pygame.K_F5:
                    computer.reload_program()
                    continue
                _handle_key_event(computer.keypad, event.key, True)
            elif event.type == pygame.KEYUP:
                _handle_key_event(computer.keypad, event.key, False)

    return poll


def _make_presenter(pygame, screen, scale: int):
    def present(display) -> None:
        surface = display.render_pygame_surface(scale)
        screen.blit(surface, (0, 0))
        pygame.display.flip()

    return present


def _pygame_loop(
    rom_path: str,
    *,
    scale: int,
    speed: float,
    seed: Optional[int] = None,
    enable_audio: bool = False,
    trace: Optional[bool] = None,
    trace_memory: Optional[bool] = None,
) -> None:
    computer = Chip8Computer(
        seed=seed,
        instructions_per_second=speed,
        enable_audio=enable_audio,
        trace=trace,
        trace_memory=trace_memory,
    )
    info = computer.load_program(rom_path)

    import pygame  # type: ignore

    pygame.init()
    display = computer.display
    screen = pygame.display.set_mode((display.WIDTH * scale, display.HEIGHT * scale))
    computer.set_input_poller(_make_input_poller(pygame, computer))
    computer.set_presenter(_make_presenter(pygame, screen, scale))

    caption = _build_caption(info, computer)
    pygame.display.set_caption(caption)
    _make_presenter(pygame, screen, scale)(display)

    computer.power_on()
    try:
        while True:
            try:
                computer.tick()
            except CPUError as exc:
                print(f"Execution halted: {exc}", file=sys.stderr)
                pygame.display.set_caption(f"{_build_caption(info, computer)} | {exc}")
                _halted_loop(pygame, computer)
            current = _build_caption(computer.program_info, computer)
            if current != caption:
                caption = current
                pygame.display.set_caption(caption)
    except QuitRequested:
        computer.power_off()
    finally:
        computer.hardware.beeper.shutdown()
        pygame.quit()
    raise SystemExit(EXIT_QUIT)


def _halted_loop(pygame, computer: Chip8Computer) -> None:
    """Keep the last frame on screen until the user quits or reloads."""

    clock = pygame.time.Clock()
    poll = _make_input_poller(pygame, computer)
    while computer.halted:
        poll(computer)
        clock.tick(HALTED_FPS)


def main(argv: Iterable[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="CHIP-8 emulator")
    parser.add_argument(
        "rom",
        nargs="?",
        default=None,
        help=f"Path to a raw CHIP-8 program image (defaults to ${Chip8Computer.ENV_ROM_PATH})",
    )
    parser.add_argument(
        "--scale",
        type=int,
        default=DEFAULT_SCALE,
        help=f"Integer scaling factor for display (default: {DEFAULT_SCALE})",
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=Computer.DEFAULT_SPEED,
        help="Instructions executed per second (default: %(default)s)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random-number instruction")
    parser.add_argument(
        "--audio",
        dest="audio",
        action="store_true",
        help="Play a tone while the sound timer is non-zero (requires pygame mixer)",
    )
    parser.add_argument(
        "--no-audio",
        dest="audio",
        action="store_false",
        help="Disable audio output (default)",
    )
    parser.set_defaults(audio=False)
    parser.add_argument(
        "--trace",
        action="store_true",
        default=None,
        help="Print every executed instruction (same as setting CHIP8EMU_TRACE)",
    )
    parser.add_argument(
        "--trace-memory",
        action="store_true",
        default=None,
        help="Print every memory load and store (same as setting CHIP8EMU_TRACE_MEMORY)",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.scale <= 0:
        raise SystemExit("scale must be positive")
    if args.speed <= 0:
        raise SystemExit("speed must be positive")

    try:
        rom_path = Chip8Computer.resolve_rom_path(args.rom)
        _pygame_loop(
            str(rom_path),
            scale=args.scale,
            speed=args.speed,
            seed=args.seed,
            enable_audio=args.audio,
            trace=args.trace,
            trace_memory=args.trace_memory,
        )
    except ProgramLoadError as exc:
        raise SystemExit(f"Failed to load program: {exc}")
    except RuntimeError as exc:
        raise SystemExit(str(exc))


if __name__ == "__main__":
    main()
