import argparse
import pytest
from unittest.mock import MagicMock, patch
from periphery import I2CError
import demo
from ssd1306 import FRAME_SIZE, PeripheralAddress, SSD1306, pack_line


@pytest.fixture
def mock_display():
    return MagicMock(spec=SSD1306)


def test_run_demos_single_segment(mock_display):
    with patch('time.sleep'):
        demo.run_demos(mock_display, 'text', 0.0)
    mock_display.initialize.assert_called_once()
    mock_display.write_line.assert_any_call(0, 'DEMO: TEXT')
    mock_display.write_text.assert_called_with('DEMO COMPLETE')


def test_run_demos_all_segments(mock_display):
    with patch('time.sleep'):
        demo.run_demos(mock_display, 'all', 0.0)
    titles = [c.args[1] for c in mock_display.write_line.call_args_list if c.args[0] == 0]
    assert titles == ['DEMO: TEXT', 'DEMO: IMAGE', 'DEMO: BYTES', 'DEMO: SCROLL']
    mock_display.set_scroll.assert_called()
    mock_display.write_image.assert_called_once()


def test_run_demos_on_simulator():
    display = SSD1306.create_simulator_only()
    with patch('time.sleep'):
        demo.run_demos(display, 'all', 0.0)
    sim = display.simulator
    sim.assert_page_equals(0, pack_line("DEMO COMPLETE"))
    for page in range(1, 8):
        sim.assert_page_equals(page, b"")
    sim.assert_scroll(False)
    assert sim.display_on is True


def test_checkerboard_frame():
    image = demo.checkerboard()
    assert len(image) == FRAME_SIZE
    # top-left 8x8 cell lit, its right neighbour dark
    assert image[0] == 0xFF
    assert image[8] == 0x00


def test_main_simulated():
    with patch('time.sleep'):
        assert demo.main(['--simulate', '--demo', 'bytes', '--fast']) == 0


def test_parse_address():
    assert demo.parse_address('0x3D') is PeripheralAddress.SA0_HIGH
    assert demo.parse_address('0x78') is PeripheralAddress.SA0_LOW
    with pytest.raises(argparse.ArgumentTypeError):
        demo.parse_address('0x50')
    with pytest.raises(argparse.ArgumentTypeError):
        demo.parse_address('sixty')


def test_main_rejects_bad_address():
    with pytest.raises(SystemExit):
        demo.main(['--simulate', '--address', '0x50'])


def test_main_reports_open_failure():
    with patch('ssd1306.I2C', side_effect=I2CError(2, "No such file or directory")):
        assert demo.main(['--device', '/dev/i2c-9']) == 1
