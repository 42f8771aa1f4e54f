"""Tests for Chip8Display sprite drawing and rendering."""

from chip8emu.chip8.display import Chip8Display
from chip8emu.memory import FONT_GLYPHS, GLYPH_BYTES


def test_draw_sets_pixels_msb_first() -> None:
    display = Chip8Display()
    collision = display.draw_sprite(0, 0, [0b10000001])
    assert collision is False
    assert display.pixel(0, 0) is True
    assert display.pixel(7, 0) is True
    assert display.pixel(1, 0) is False
    assert display.dirty is True


def test_drawing_twice_restores_previous_state() -> None:
    display = Chip8Display()
    display.draw_sprite(10, 10, [0x3C])
    before = display.rows()
    sprite = [0xF0, 0x90, 0xF0, 0x90, 0x90]

    assert display.draw_sprite(12, 9, sprite) is True
    assert display.draw_sprite(12, 9, sprite) is True
    assert display.rows() == before


def test_collision_only_when_lit_cell_is_erased() -> None:
    display = Chip8Display()
    display.draw_sprite(0, 0, [0xF0])
    assert display.draw_sprite(4, 0, [0xF0]) is False
    assert display.draw_sprite(3, 0, [0x80]) is True
    assert display.pixel(3, 0) is False


def test_sprite_wraps_horizontally() -> None:
    display = Chip8Display()
    display.draw_sprite(63, 0, [0xC0])
    assert display.pixel(63, 0) is True
    assert display.pixel(0, 0) is True
    assert display.lit_count() == 2


def test_sprite_wraps_vertically() -> None:
    display = Chip8Display()
    display.draw_sprite(0, 31, [0x80, 0x80])
    assert display.pixel(0, 31) is True
    assert display.pixel(0, 0) is True


def test_origin_beyond_screen_wraps() -> None:
    display = Chip8Display()
    display.draw_sprite(64 + 5, 32 + 2, [0x80])
    assert display.pixel(5, 2) is True


def test_clear_marks_dirty_and_reset_does_not() -> None:
    display = Chip8Display()
    display.draw_sprite(0, 0, [0xFF])
    display.consume_dirty()

    display.clear()
    assert display.lit_count() == 0
    assert display.consume_dirty() is True
    assert display.consume_dirty() is False

    display.draw_sprite(0, 0, [0xFF])
    display.reset()
    assert display.lit_count() == 0
    assert display.dirty is False


def test_grid_follows_configured_size() -> None:
    display = Chip8Display(WIDTH=16, HEIGHT=8)
    assert len(display.rows()) == 8
    assert all(len(row) == 16 for row in display.rows())
    display.draw_sprite(14, 7, [0xC0, 0xC0])
    assert display.pixel(15, 7) is True
    assert display.pixel(14, 0) is True
    assert display.lit_count() == 4


def test_render_text_shows_font_glyph() -> None:
    display = Chip8Display()
    display.draw_sprite(0, 0, FONT_GLYPHS[:GLYPH_BYTES])
    lines = display.render_text().splitlines()
    assert [line[:4] for line in lines[:5]] == ["####", "#..#", "#..#", "#..#", "####"]
