import pytest
from unittest.mock import patch

from ssd1306 import (
    FRAME_SIZE, HEIGHT, PAGES, WIDTH, DisplaySimulator, ScrollConfig, ScrollDirection,
    SSD1306, TransferError, frame_command, pack_line, pack_pixels,
)


@pytest.fixture
def display():
    return SSD1306.create_simulator_only(debug=False)


@pytest.fixture
def display_console():
    disp = SSD1306.create_simulator_only(render_console=True, debug=False)
    disp.console_verbose = False
    return disp


def test_write_line_lands_on_page(display):
    sim = display.simulator
    display.write_line(2, "HELLO")
    sim.assert_page_equals(2, pack_line("HELLO"))
    for page in range(PAGES):
        if page != 2:
            sim.assert_page_equals(page, b"")


def test_glyph_pixels(display):
    sim = display.simulator
    display.write_line(1, "H")
    # 'H' first column is 0x7F: seven lit pixels from the top of page 1
    for y in range(8, 15):
        sim.assert_pixel(0, y, True)
    sim.assert_pixel(0, 15, False)
    sim.assert_pixel(5, 8, False)


def test_clear_line_only_touches_its_page(display):
    sim = display.simulator
    display.write_line(0, "KEEP")
    display.write_line(1, "DROP")
    display.clear_line(1)
    sim.assert_page_equals(0, pack_line("KEEP"))
    sim.assert_page_equals(1, b"")


def test_clear_display_blanks_everything(display):
    sim = display.simulator
    display.write_image(b"\xFF" * FRAME_SIZE)
    display.clear_display()
    sim.assert_blank()


def test_write_image_fills_ram(display):
    sim = display.simulator
    image = bytes((i * 7) % 256 for i in range(FRAME_SIZE))
    display.write_image(image)
    assert bytes(sim.ram) == image


def test_write_byte_sets_single_column(display):
    sim = display.simulator
    display.write_byte(1, 10, 0x81)
    sim.assert_pixel(10, 8, True)
    sim.assert_pixel(10, 15, True)
    sim.assert_pixel(10, 9, False)
    sim.assert_pixel(11, 8, False)
    assert sum(1 for byte in sim.ram if byte) == 1


def test_window_state_tracked(display):
    sim = display.simulator
    display.write_byte(4, 30, 0x01)
    assert sim.column_window == (30, 30)
    assert sim.page_window == (4, 4)
    display.clear_line(6)
    assert sim.column_window == (0, WIDTH - 1)
    assert sim.page_window == (6, 6)


def test_data_wraps_within_window():
    sim = DisplaySimulator()
    for frame in (frame_command(b) for b in (0x21, 10, 11, 0x22, 2, 3)):
        sim.apply_frame(frame)
    sim.apply_frame(b"\x40\x01\x02\x03\x04\x05")
    assert sim.ram[2 * WIDTH + 10] == 0x05
    assert sim.ram[2 * WIDTH + 11] == 0x02
    assert sim.ram[3 * WIDTH + 10] == 0x03
    assert sim.ram[3 * WIDTH + 11] == 0x04


def test_pack_pixels_round_trip(display):
    sim = display.simulator
    rows = [[(x + y) % 3 == 0 for x in range(WIDTH)] for y in range(HEIGHT)]
    display.write_image(pack_pixels(rows))
    assert all(sim.get_pixel(x, y) == rows[y][x] for y in range(HEIGHT) for x in range(WIDTH))


def test_scroll_state(display):
    sim = display.simulator
    display.set_scroll(ScrollDirection.RIGHT, 0, 7, 2, 0xFF)
    sim.assert_scroll(True, ScrollConfig(0x26, 0, 7, 2, 0xFF))
    display.deactivate_scroll()
    sim.assert_scroll(False)


def test_initialize_panel_state(display):
    sim = display.simulator
    assert sim.display_on is False
    display.initialize()
    assert sim.display_on is True
    assert sim.contrast == 0xCF
    assert sim.inverted is False
    display.set_contrast(0x20)
    display.set_inverted(True)
    assert sim.contrast == 0x20
    assert sim.inverted is True


def test_render_dimensions_and_blocks(display):
    sim = display.simulator
    display.initialize()
    display.write_byte(0, 0, 0x03)
    display.write_byte(0, 1, 0x01)
    display.write_byte(0, 2, 0x02)
    rows = sim.render()
    assert len(rows) == HEIGHT // 2
    assert all(len(row) == WIDTH for row in rows)
    assert rows[0][:4] == "█▀▄ "


def test_render_blank_when_display_off(display):
    sim = display.simulator
    display.write_image(b"\xFF" * FRAME_SIZE)
    assert sim.dump().strip() == ""


def test_frame_history_records_every_transfer(display):
    sim = display.simulator
    display.clear_line(0)
    assert len(sim.frame_history) == 7
    assert sim.frame_history[-1] == b"\x40" + bytes(WIDTH)


def test_unrecognized_frame_ignored():
    sim = DisplaySimulator()
    sim.apply_frame(b"\x80\x01")
    sim.assert_blank()
    assert sim.frame_history == [b"\x80\x01"]


def test_validation_mode_mirrors_hardware():
    with patch('ssd1306.I2C') as mock_i2c:
        display = SSD1306.create_validation_mode('/dev/i2c-1')
        display.write_line(0, "BOTH")
        assert mock_i2c.return_value.transfer.call_count == 7
        display.simulator.assert_page_equals(0, pack_line("BOTH"))


def test_failed_hardware_write_not_mirrored():
    with patch('ssd1306.I2C'):
        display = SSD1306.create_validation_mode('/dev/i2c-1')
    display.bus.write = lambda data: len(data) if data[0] == 0x00 else 0
    with pytest.raises(TransferError):
        display.write_line(0, "LOST")
    display.simulator.assert_page_equals(0, b"")
    assert len(display.simulator.frame_history) == 6


def test_console_non_visual(display_console, capsys):
    display_console.run_command(0x2E)
    out = capsys.readouterr().out
    assert "[non-visual] Command 0x2E" in out
    assert "-" * WIDTH not in out


def test_console_renders_visible_change(display_console, capsys):
    display_console.display_on()
    out = capsys.readouterr().out
    assert "-" * WIDTH in out

    display_console.write_byte(0, 0, 0xFF)
    out = capsys.readouterr().out
    assert "\x1b[" in out
    assert "█" in out


def test_console_verbose_frames(display_console, capsys):
    display_console.console_verbose = True
    display_console.deactivate_scroll()
    out = capsys.readouterr().out
    assert "[non-visual]" in out
    assert "-" * WIDTH in out
