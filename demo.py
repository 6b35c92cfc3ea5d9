#!/usr/bin/env python3
"""
SSD1306 OLED Display Demo

Walks through every driver operation:
- Text lines: 25 glyphs per page via the built-in 5x7 font
- Raster image: full 1024-byte frame write
- Raw bytes: single-column pixel writes
- Line and full-screen clears
- Hardware scrolling: horizontal and vertical setups

Hardware Requirements:
- SSD1306 128x64 panel on a Linux I2C bus (e.g. /dev/i2c-1)
- Address 0x3C (SA0 low) or 0x3D (SA0 high)

Without hardware, run with --simulate --console to watch the simulator.
"""

import argparse
import logging
import os
import sys
import time

from ssd1306 import (
    PAGES, WIDTH, HEIGHT, PeripheralAddress, ScrollDirection, SSD1306, SSD1306Error, pack_pixels,
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)-8s [SSD1306] %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger('SSD1306_Demo')

DEFAULT_DEVICE = '/dev/i2c-1'


class SSD1306DemoFixture:
    """Demo fixture resetting the panel between demo segments."""

    def __init__(self, display: SSD1306, delay_multiplier: float = 1.0):
        self.display = display
        self.delay_multiplier = delay_multiplier

        self.VISUAL_CONFIRMATION_TIME = 2.0 * delay_multiplier
        self.SCROLL_OBSERVATION_TIME = 5.0 * delay_multiplier
        self.STEP_PAUSE = 0.5 * delay_multiplier

    def setup_demo(self, title: str) -> None:
        """Stop scrolling, blank the panel and show the demo title."""
        self.display.deactivate_scroll()
        self.display.clear_display()
        self.display.write_line(0, f"DEMO: {title}")
        time.sleep(self.STEP_PAUSE)

    def teardown_demo(self) -> None:
        self.display.deactivate_scroll()
        self.display.clear_display()

    def pause_for_observation(self, description: str, duration: float = None) -> None:
        """Pause with logging for operator observation."""
        if duration is None:
            duration = self.VISUAL_CONFIRMATION_TIME
        logger.info(f"Observe: {description} (pausing {duration:.1f}s)")
        time.sleep(duration)


def checkerboard(square: int = 8) -> bytes:
    """Full-frame checkerboard with ``square``-pixel cells."""
    rows = [[((x // square) + (y // square)) % 2 == 0 for x in range(WIDTH)] for y in range(HEIGHT)]
    return pack_pixels(rows)


def demo_text(display: SSD1306, fixture: SSD1306DemoFixture) -> None:
    for page in range(1, PAGES):
        display.write_line(page, f"Page {page}: " + "ABCDEFGHIJKLMNOP"[:page * 2])
    fixture.pause_for_observation("text on pages 1-7")
    display.write_line(7, "0123456789012345678901234")
    fixture.pause_for_observation("full 25-character line on page 7")
    display.clear_line(7)
    fixture.pause_for_observation("page 7 cleared")


def demo_image(display: SSD1306, fixture: SSD1306DemoFixture) -> None:
    display.write_image(checkerboard())
    fixture.pause_for_observation("checkerboard image")
    display.set_inverted(True)
    fixture.pause_for_observation("inverted checkerboard")
    display.set_inverted(False)


def demo_bytes(display: SSD1306, fixture: SSD1306DemoFixture) -> None:
    # Diagonal staircase: one set bit per column, stepping down each page
    for position in range(WIDTH):
        page = (position // 8) % PAGES
        display.write_byte(page, position, 1 << (position % 8))
    fixture.pause_for_observation("diagonal pixel staircase")


def demo_scroll(display: SSD1306, fixture: SSD1306DemoFixture) -> None:
    display.write_text("SCROLL RIGHT\n\nLine two\n\nLine four")
    display.set_scroll(ScrollDirection.RIGHT, 0, PAGES - 1, 0, 0xFF)
    fixture.pause_for_observation("horizontal scroll", fixture.SCROLL_OBSERVATION_TIME)
    display.set_scroll(ScrollDirection.VERTICAL_LEFT, 0, PAGES - 1, 0, 1)
    fixture.pause_for_observation("vertical + left scroll", fixture.SCROLL_OBSERVATION_TIME)
    display.deactivate_scroll()


DEMOS = {
    'text': ("TEXT", demo_text),
    'image': ("IMAGE", demo_image),
    'bytes': ("BYTES", demo_bytes),
    'scroll': ("SCROLL", demo_scroll),
}


def run_isolated_demo(display: SSD1306, demo_func, title: str, fixture: SSD1306DemoFixture) -> None:
    """Run a single demo with proper isolation."""
    logger.info(f"Starting demo: {title}")
    fixture.setup_demo(title)
    try:
        demo_func(display, fixture)
    finally:
        fixture.teardown_demo()
    logger.info(f"Completed demo: {title}")


def run_demos(display: SSD1306, selected: str, delay_multiplier: float) -> None:
    fixture = SSD1306DemoFixture(display, delay_multiplier)
    display.initialize()
    names = list(DEMOS) if selected == 'all' else [selected]
    for name in names:
        title, func = DEMOS[name]
        run_isolated_demo(display, func, title, fixture)
    display.write_text("DEMO COMPLETE")
    logger.info("=== DEMO COMPLETED ===")


def parse_address(value: str) -> PeripheralAddress:
    try:
        return PeripheralAddress.parse(int(value, 0))
    except (ValueError, SSD1306Error) as e:
        raise argparse.ArgumentTypeError(str(e))


def main(argv=None) -> int:
    """Main demo execution with CLI configuration."""
    parser = argparse.ArgumentParser(description="SSD1306 OLED Display Demo")
    parser.add_argument('--device', default=os.environ.get('SSD1306_DEVICE', DEFAULT_DEVICE),
                        help='I2C device (default: $SSD1306_DEVICE or /dev/i2c-1)')
    parser.add_argument('--address', type=parse_address, default=PeripheralAddress.SA0_LOW,
                        help='Peripheral address: 0x3C/0x78 or 0x3D/0x7A (default: 0x3C)')
    parser.add_argument('--demo', choices=['all'] + list(DEMOS), default='all',
                        help='Run specific demo')
    parser.add_argument('--simulate', action='store_true',
                        help='Run against the in-memory simulator only')
    parser.add_argument('--console', action='store_true',
                        help='Render the simulator to the terminal after each frame')
    parser.add_argument('--fast', action='store_true',
                        help='Reduce observation pauses')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose debug logging')
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    delay_multiplier = 0.2 if args.fast else 1.0
    target = "simulator" if args.simulate else args.device
    logger.info(f"Target: {target} | Address: 0x{args.address.bus_address:02X} | Demo: {args.demo}")

    try:
        if args.simulate:
            display = SSD1306.create_simulator_only(
                address=args.address, debug=args.verbose, render_console=args.console)
        else:
            display = SSD1306(
                args.device, args.address, debug=args.verbose,
                enable_simulator=args.console, render_console=args.console)
        with display:
            run_demos(display, args.demo, delay_multiplier)
    except SSD1306Error as e:
        logger.error(f"Display error (status {e.status}): {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Demo interrupted by user")
        return 130
    return 0


if __name__ == '__main__':
    sys.exit(main())
