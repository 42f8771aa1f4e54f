"""CHIP-8 monochrome display model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple


@dataclass
class Chip8Display:
    WIDTH: int = 64
    HEIGHT: int = 32
    SPRITE_WIDTH: int = 8

    foreground: int = 0xFFFFFF
    background: int = 0x000000
    dirty: bool = False
    _cells: List[List[bool]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._cells = [[False] * self.WIDTH for _ in range(self.HEIGHT)]

    # ------------------------------------------------------------------
    # Mutation (CPU side)
    # ------------------------------------------------------------------
    def clear(self) -> None:
        for row in self._cells:
            row[:] = [False] * self.WIDTH
        self.dirty = True

    def reset(self) -> None:
        for row in self._cells:
            row[:] = [False] * self.WIDTH
        self.dirty = False

    def draw_sprite(self, x: int, y: int, sprite: Iterable[int]) -> bool:
        """XOR a sprite onto the grid and report whether any lit cell was erased.

        Each byte of ``sprite`` is one row, most significant bit leftmost.
        Coordinates wrap around both edges instead of clipping.
        """

        collision = False
        for row_offset, value in enumerate(sprite):
            row = self._cells[(y + row_offset) % self.HEIGHT]
            for bit in range(self.SPRITE_WIDTH):
                if not (value >> (7 - bit)) & 0x01:
                    continue
                column = (x + bit) % self.WIDTH
                if row[column]:
                    collision = True
                row[column] = not row[column]
        self.dirty = True
        return collision

    # ------------------------------------------------------------------
    # Read-only access (presentation side)
    # ------------------------------------------------------------------
    def pixel(self, x: int, y: int) -> bool:
        if not (0 <= x < self.WIDTH and 0 <= y < self.HEIGHT):
            raise ValueError("pixel coordinate out of range")
        return self._cells[y][x]

    def rows(self) -> Tuple[Tuple[bool, ...], ...]:
        return tuple(tuple(row) for row in self._cells)

    def lit_count(self) -> int:
        return sum(sum(1 for cell in row if cell) for row in self._cells)

    def consume_dirty(self) -> bool:
        was_dirty = self.dirty
        self.dirty = False
        return was_dirty

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render_text(self, on: str = "#", off: str = ".") -> str:
        return "\n".join("".join(on if cell else off for cell in row) for row in self._cells)

    def render_pygame_surface(self, scaling: int = 1):
        """Render the display into a pygame Surface.

        Parameters
        ----------
        scaling:
            Integer scale factor applied to both axes; every lit cell becomes
            a filled ``scaling`` x ``scaling`` square.

        Returns
        -------
        pygame.Surface
            RGB surface representing the current screen.

        Raises
        ------
        RuntimeError
            If pygame is not available.
        """

        if scaling <= 0:
            raise ValueError("scaling factor must be positive")

        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required for render_pygame_surface") from exc

        surface = pygame.Surface((self.WIDTH * scaling, self.HEIGHT * scaling))
        surface.fill(self.background)
        for y, row in enumerate(self._cells):
            for x, cell in enumerate(row):
                if cell:
                    surface.fill(self.foreground, (x * scaling, y * scaling, scaling, scaling))
        return surface
