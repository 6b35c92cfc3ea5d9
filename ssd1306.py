"""
SSD1306 OLED Display Control Library

Python interface for 128x64 SSD1306 displays on a Linux I2C bus.
Translates clear, text, image, byte and scroll operations into the
controller's command/data frames, with an optional in-memory simulator.
"""

import logging
import sys
import time
from enum import Enum, IntEnum
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple, Type, Union

from periphery import I2C, I2CError

from font5x7 import GLYPH_COUNT, GLYPH_WIDTH, glyph_bytes

logger = logging.getLogger('SSD1306')

WIDTH = 128
PAGES = 8
HEIGHT = PAGES * 8
FRAME_SIZE = WIDTH * PAGES
LINE_CHARS = 25

# Control byte leading every transfer
CONTROL_COMMAND = 0x00
CONTROL_DATA = 0x40


class PeripheralAddress(Enum):
    """The two write addresses an SSD1306 answers to, selected by the SA0 pin."""
    SA0_LOW = 0x78
    SA0_HIGH = 0x7A

    @property
    def bus_address(self) -> int:
        """7-bit address as used by the Linux I2C layer."""
        return self.value >> 1

    @classmethod
    def parse(cls, address: Union["PeripheralAddress", int]) -> "PeripheralAddress":
        """
        Resolve an address given as a member, a write-address byte (0x78/0x7A)
        or a 7-bit address (0x3C/0x3D).
        """
        if isinstance(address, cls):
            return address
        if isinstance(address, int) and not isinstance(address, bool):
            for member in cls:
                if address in (member.value, member.bus_address):
                    return member
        raise InvalidAddressError(
            f"Address {address!r} is not a valid SSD1306 address "
            f"(valid: 0x78/0x3C or 0x7A/0x3D)"
        )


class ScrollDirection(IntEnum):
    """Scroll setup opcodes; each starts the 6-byte scroll parameter block."""
    RIGHT = 0x26
    LEFT = 0x27
    VERTICAL_RIGHT = 0x29
    VERTICAL_LEFT = 0x2A


SCROLL_OPCODES = frozenset(direction.value for direction in ScrollDirection)


class ScrollConfig(NamedTuple):
    direction: int
    start_page: int
    end_page: int
    interval: int
    offset: int


class WriteStep(IntEnum):
    """Frames of an addressed write, in transmission order."""
    COLUMN_ADDRESS = 1
    COLUMN_START = 2
    COLUMN_END = 3
    PAGE_ADDRESS = 4
    PAGE_START = 5
    PAGE_END = 6
    PAYLOAD = 7


class ScrollStep(IntEnum):
    """Phases of a scroll reconfiguration."""
    DEACTIVATE = 1
    PARAMETERS = 2
    ACTIVATE = 3


class SSD1306Error(Exception):
    """Base exception for SSD1306 display errors.

    ``status`` is a negative integer identifying the failing step, so a
    caller can tell which phase of an operation broke.
    """

    def __init__(self, message: str, step: Optional[IntEnum] = None):
        super().__init__(message)
        self.step = step

    @property
    def status(self) -> int:
        return -int(self.step) if self.step is not None else -1


class InvalidArgumentError(SSD1306Error, ValueError):
    """Argument rejected before any bus activity."""
    pass


class InvalidAddressError(InvalidArgumentError):
    """Peripheral address outside the two legal values."""
    pass


class ProtocolStepError(SSD1306Error):
    """A command frame was not fully written."""
    pass


class TransferError(SSD1306Error):
    """A payload or parameter block was not fully written."""
    pass


class BusError(SSD1306Error):
    """The I2C device could not be opened or rejected a transfer."""
    pass


# ---------------------------------------------------------------------------
# Frame and buffer builders
# ---------------------------------------------------------------------------

def frame_command(opcode: int) -> bytes:
    """Wrap one command byte as ``{0x00, opcode}``."""
    return bytes((CONTROL_COMMAND, opcode))


def frame_payload(data: Union[bytes, bytearray, Sequence[int]]) -> bytes:
    """Prefix display data with the data control byte."""
    return bytes((CONTROL_DATA,)) + bytes(data)


def _character_codes(text: Union[str, bytes, Sequence[int]]) -> List[int]:
    if isinstance(text, str):
        codes = [ord(ch) for ch in text[:LINE_CHARS]]
    else:
        codes = list(text)[:LINE_CHARS]
    for code in codes:
        if not isinstance(code, int) or not 0 <= code < GLYPH_COUNT:
            raise InvalidArgumentError(
                f"Character code {code!r} outside font table (0-{GLYPH_COUNT - 1})"
            )
    return codes


def pack_line(text: Union[str, bytes, Sequence[int]]) -> bytes:
    """
    Pack up to 25 characters into one 128-byte page.

    Glyphs are laid out back to back, five columns each, with no spacer
    column between them. Columns past the last glyph stay blank, so the
    final three columns of a full line are always zero.

    Raises:
        InvalidArgumentError: a character code is outside 0-255
    """
    line = bytearray(WIDTH)
    for index, code in enumerate(_character_codes(text)):
        start = index * GLYPH_WIDTH
        line[start:start + GLYPH_WIDTH] = glyph_bytes(code)
    return bytes(line)


def pack_pixels(rows: Sequence[Sequence[Any]]) -> bytes:
    """
    Convert a 64-row x 128-column pixel grid into the controller's page layout.

    Args:
        rows: 64 rows of 128 truthy/falsy pixel values, top row first

    Returns:
        1024 bytes, page-major, bit 0 of each byte being the top pixel
    """
    if len(rows) != HEIGHT or any(len(row) != WIDTH for row in rows):
        raise InvalidArgumentError(f"Pixel grid must be {HEIGHT} rows of {WIDTH} columns")

    buffer = bytearray(FRAME_SIZE)
    for page in range(PAGES):
        for x in range(WIDTH):
            byte = 0
            for bit in range(8):
                if rows[page * 8 + bit][x]:
                    byte |= 1 << bit
            buffer[page * WIDTH + x] = byte
    return bytes(buffer)


def _hex_dump(data: bytes, limit: int = 16) -> str:
    hex_str = ' '.join(f'{byte:02X}' for byte in data[:limit])
    if len(data) > limit:
        hex_str += f" ... ({len(data)} bytes)"
    return hex_str


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class I2CBus:
    """Write-only connection to one peripheral on a Linux I2C character device."""

    def __init__(self, device: str, address: int):
        self.device = device
        self.address = address
        try:
            self._i2c = I2C(device)
        except I2CError as e:
            raise BusError(f"I2C connection failed: {e}") from e

    def write(self, data: bytes) -> int:
        """Write ``data`` in one transfer; returns the number of bytes written."""
        try:
            self._i2c.transfer(self.address, [I2C.Message(bytes(data))])
        except I2CError as e:
            raise BusError(f"I2C write to 0x{self.address:02X} failed: {e}") from e
        return len(data)

    def close(self) -> None:
        self._i2c.close()


# ---------------------------------------------------------------------------
# Display controller
# ---------------------------------------------------------------------------

class SSD1306:
    """
    SSD1306 OLED Display Controller

    Every data-bearing operation first sets a column/page window with six
    command frames, then sends one data frame. Any frame that is not fully
    written aborts the operation with an exception carrying the failing step.

    Basic Usage:
        with SSD1306('/dev/i2c-1') as display:
            display.initialize()
            display.clear_display()
            display.write_line(0, "Hello")

    Simulator:
        display = SSD1306.create_simulator_only()
        display.write_line(2, "TEST")
        print(display.simulator.dump())

    Concurrency:
        Window setup and payload are separate bus transfers. Serialize
        access if more than one caller shares a display.
    """

    DISPLAY_WIDTH = WIDTH
    DISPLAY_PAGES = PAGES
    DISPLAY_HEIGHT = HEIGHT

    # Addressing
    CMD_MEMORY_MODE = 0x20
    CMD_COLUMN_ADDRESS = 0x21
    CMD_PAGE_ADDRESS = 0x22

    # Scrolling
    CMD_DEACTIVATE_SCROLL = 0x2E
    CMD_ACTIVATE_SCROLL = 0x2F

    # Panel control
    CMD_START_LINE = 0x40
    CMD_CONTRAST = 0x81
    CMD_CHARGE_PUMP = 0x8D
    CMD_SEGMENT_REMAP = 0xA1
    CMD_RESUME_FROM_RAM = 0xA4
    CMD_NORMAL_DISPLAY = 0xA6
    CMD_INVERT_DISPLAY = 0xA7
    CMD_MULTIPLEX = 0xA8
    CMD_DISPLAY_OFF = 0xAE
    CMD_DISPLAY_ON = 0xAF
    CMD_COM_SCAN_DEC = 0xC8
    CMD_DISPLAY_OFFSET = 0xD3
    CMD_CLOCK_DIV = 0xD5
    CMD_PRECHARGE = 0xD9
    CMD_COM_PINS = 0xDA
    CMD_VCOM_DETECT = 0xDB

    # Power-up sequence for a 128x64 panel with the internal charge pump
    INIT_SEQUENCE = (
        CMD_DISPLAY_OFF,
        CMD_CLOCK_DIV, 0x80,
        CMD_MULTIPLEX, HEIGHT - 1,
        CMD_DISPLAY_OFFSET, 0x00,
        CMD_START_LINE,
        CMD_CHARGE_PUMP, 0x14,
        CMD_MEMORY_MODE, 0x00,
        CMD_SEGMENT_REMAP,
        CMD_COM_SCAN_DEC,
        CMD_COM_PINS, 0x12,
        CMD_CONTRAST, 0xCF,
        CMD_PRECHARGE, 0xF1,
        CMD_VCOM_DETECT, 0x40,
        CMD_RESUME_FROM_RAM,
        CMD_NORMAL_DISPLAY,
        CMD_DISPLAY_ON,
    )

    def __init__(self, device: Optional[str] = None,
                 address: Union[PeripheralAddress, int] = PeripheralAddress.SA0_LOW,
                 bus: Optional[Any] = None,
                 debug: bool = False,
                 command_delay: float = 0.0,
                 enable_simulator: bool = True,
                 hardware_enabled: bool = True,
                 render_console: bool = False,
                 console_verbose: bool = False):
        """
        Initialize SSD1306 controller.

        Args:
            device: I2C character device (e.g. ``/dev/i2c-1``), or ``None``
            address: Peripheral address (0x78/0x3C or 0x7A/0x3D)
            bus: Existing connection exposing ``write(data) -> int``; used instead of opening ``device``
            debug: Enable debug logging of every frame
            command_delay: Delay after each frame (seconds, default 0.0)
            enable_simulator: Create and maintain an in-memory simulator
            hardware_enabled: Write to the bus when ``device`` or ``bus`` is provided
            render_console: Render simulator state to stdout after each frame
            console_verbose: Show console output even when frames have no
                visible effect

        Raises:
            InvalidAddressError: ``address`` is not a legal SSD1306 address
            BusError: the I2C device could not be opened
        """
        self.debug = debug
        self.command_delay = command_delay
        self._render_console_enabled = render_console
        self.console_verbose = console_verbose
        self.simulator: Optional[DisplaySimulator] = DisplaySimulator() if enable_simulator or render_console else None
        self._first_console_render = True
        self._scroll_config: Optional[ScrollConfig] = None
        self.device = device
        self.bus = None
        self.hardware_enabled = False

        if debug:
            logger.setLevel(logging.DEBUG)
            logger.debug("Initializing SSD1306 controller")

        self._address = PeripheralAddress.parse(address)

        if hardware_enabled and (bus is not None or device is not None):
            if bus is None:
                logger.debug(f"Opening I2C device: {device} at 0x{self._address.bus_address:02X}")
                try:
                    bus = I2CBus(device, self._address.bus_address)
                except BusError as e:
                    logger.error(str(e))
                    raise
            else:
                logger.debug("Using existing bus connection")
                bus.address = self._address.bus_address
            self.bus = bus
            self.hardware_enabled = True

    @classmethod
    def create_hardware_only(cls, device: str, **kwargs) -> "SSD1306":
        """Factory for hardware-only operation."""
        return cls(device, enable_simulator=False, hardware_enabled=True, **kwargs)

    @classmethod
    def create_simulator_only(cls, **kwargs) -> "SSD1306":
        """Factory for simulator-only operation."""
        return cls(None, enable_simulator=True, hardware_enabled=False, **kwargs)

    @classmethod
    def create_validation_mode(cls, device: str, **kwargs) -> "SSD1306":
        """Factory for hardware + simulator validation mode."""
        return cls(device, enable_simulator=True, hardware_enabled=True, **kwargs)

    @property
    def address(self) -> PeripheralAddress:
        return self._address

    @property
    def scroll_config(self) -> Optional[ScrollConfig]:
        """Last scroll configuration successfully written, if any."""
        return self._scroll_config

    def get_display_info(self) -> Dict[str, Any]:
        """Return current driver configuration."""
        return {
            'device': self.device,
            'address': self._address.value,
            'bus_address': self._address.bus_address,
            'hardware_enabled': self.hardware_enabled,
            'simulator': self.simulator is not None,
            'command_delay': self.command_delay,
            'scroll': self._scroll_config,
        }

    # ------------------------------------------------------------------
    # Transmission
    # ------------------------------------------------------------------

    def _send(self, data: bytes, description: str,
              error_cls: Type[SSD1306Error] = TransferError,
              step: Optional[IntEnum] = None) -> None:
        """
        Write one frame to the bus and mirror it into the simulator.

        Args:
            data: Complete frame, control byte included
            description: Debug description
            error_cls: Exception raised when the frame is not fully written
            step: Step recorded on the raised exception
        """
        logger.debug(f"Sending: {description} | Bytes: {_hex_dump(data)}")

        if self.hardware_enabled and self.bus is not None:
            try:
                written = self.bus.write(data)
            except (BusError, OSError) as e:
                logger.error(f"{description} failed: {e}")
                raise error_cls(f"{description} failed: {e}", step) from e
            if written != len(data):
                logger.error(f"{description} failed: wrote {written} of {len(data)} bytes")
                raise error_cls(f"{description} failed: wrote {written} of {len(data)} bytes", step)

        if self.simulator:
            before = self.simulator.snapshot()
            self.simulator.apply_frame(data)
            if self._render_console_enabled:
                self._render_console_state(description, before != self.simulator.snapshot())

        if self.command_delay > 0:
            time.sleep(self.command_delay)

    def _render_console_state(self, description: str, changed: bool) -> None:
        if not self.simulator:
            return
        rows = self.simulator.render()
        if not changed and not self.console_verbose:
            sys.stdout.write(f"[non-visual] {description}\n")
            sys.stdout.flush()
            return
        sep = "-" * self.DISPLAY_WIDTH
        if not changed:
            sys.stdout.write(f"[non-visual] {description}\n")
        if self._first_console_render:
            self._first_console_render = False
        else:
            sys.stdout.write(f"\x1b[{len(rows) + 2}A")
        for row in [sep] + rows + [sep]:
            sys.stdout.write("\x1b[2K" + row + "\n")
        sys.stdout.flush()

    @staticmethod
    def _check_range(value: Any, low: int, high: int, name: str) -> None:
        if not isinstance(value, int) or not low <= value <= high:
            raise InvalidArgumentError(f"{name} must be {low}-{high}, got {value!r}")

    def run_command(self, opcode: int, step: Optional[IntEnum] = None) -> None:
        """
        Send one command frame ``{0x00, opcode}``.

        Parameters of multi-byte commands go through here too, one frame each.

        Raises:
            ProtocolStepError: the bus did not accept both bytes
        """
        self._check_range(opcode, 0, 0xFF, "Command byte")
        self._send(frame_command(opcode), f"Command 0x{opcode:02X}", ProtocolStepError, step)

    def set_window(self, col_start: int, col_end: int, page_start: int, page_end: int) -> None:
        """
        Set the column and page range that the next data frame fills.

        Sends six command frames; the first one that fails aborts the
        sequence and raises ``ProtocolStepError`` with its ``WriteStep``.
        The controller is then left with a partially updated window.
        """
        self._check_range(col_start, 0, WIDTH - 1, "Column start")
        self._check_range(col_end, col_start, WIDTH - 1, "Column end")
        self._check_range(page_start, 0, PAGES - 1, "Page start")
        self._check_range(page_end, page_start, PAGES - 1, "Page end")

        sequence = (
            (WriteStep.COLUMN_ADDRESS, self.CMD_COLUMN_ADDRESS),
            (WriteStep.COLUMN_START, col_start),
            (WriteStep.COLUMN_END, col_end),
            (WriteStep.PAGE_ADDRESS, self.CMD_PAGE_ADDRESS),
            (WriteStep.PAGE_START, page_start),
            (WriteStep.PAGE_END, page_end),
        )
        for step, opcode in sequence:
            self.run_command(opcode, step)

    def _write_payload(self, data: bytes, description: str) -> None:
        self._send(frame_payload(data), description, TransferError, WriteStep.PAYLOAD)

    # ------------------------------------------------------------------
    # Address management
    # ------------------------------------------------------------------

    def set_address(self, address: Union[PeripheralAddress, int]) -> None:
        """
        Select the peripheral address used by all following frames.

        Nothing is sent. An invalid address leaves the current one in place.

        Raises:
            InvalidAddressError: ``address`` is not 0x78/0x3C or 0x7A/0x3D
        """
        try:
            new_address = PeripheralAddress.parse(address)
        except InvalidAddressError as e:
            logger.error(str(e))
            raise

        self._address = new_address
        if self.bus is not None:
            self.bus.address = new_address.bus_address
        logger.debug(f"Address set to 0x{new_address.value:02X} (7-bit 0x{new_address.bus_address:02X})")

    # ------------------------------------------------------------------
    # Display data
    # ------------------------------------------------------------------

    def write_image(self, data: Union[bytes, bytearray, Sequence[int]]) -> None:
        """
        Write a full frame of pre-encoded page data.

        Args:
            data: 1024 bytes, page-major, 128 columns per page
        """
        try:
            image = bytes(data)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Image data must be bytes: {e}") from e
        if len(image) != FRAME_SIZE:
            raise InvalidArgumentError(f"Image must be exactly {FRAME_SIZE} bytes, got {len(image)}")

        self.set_window(0, WIDTH - 1, 0, PAGES - 1)
        self._write_payload(image, "Image data")

    def write_line(self, page: int, text: Union[str, bytes, Sequence[int]]) -> None:
        """
        Write up to 25 characters across one page.

        Args:
            page: Page 0-7
            text: String, bytes or character codes; truncated to 25
        """
        self._check_range(page, 0, PAGES - 1, "Page")
        line = pack_line(text)

        self.set_window(0, WIDTH - 1, page, page)
        self._write_payload(line, f"Line {page}: {text!r}")

    def write_byte(self, line: int, position: int, value: int) -> None:
        """
        Write one raw display byte (8 stacked pixels) at a column of a page.

        Args:
            line: Page 0-7
            position: Column 0-127
            value: Display byte, bit 0 on top
        """
        self._check_range(line, 0, PAGES - 1, "Line")
        self._check_range(position, 0, WIDTH - 1, "Position")
        self._check_range(value, 0, 0xFF, "Value")

        self.set_window(position, position, line, line)
        self._write_payload(bytes((value,)), f"Byte 0x{value:02X} at ({position},{line})")

    def write_text(self, text: str, clear_remaining: bool = True) -> None:
        """Write newline-separated text, one line per page from the top."""
        lines = text.split("\n")
        if len(lines) > PAGES:
            raise InvalidArgumentError(f"Text has {len(lines)} lines, display holds {PAGES}")
        for page, line in enumerate(lines):
            self.write_line(page, line)
        if clear_remaining:
            for page in range(len(lines), PAGES):
                self.clear_line(page)

    def clear_line(self, line: int) -> None:
        """Blank one page."""
        self._check_range(line, 0, PAGES - 1, "Line")
        self.set_window(0, WIDTH - 1, line, line)
        self._write_payload(bytes(WIDTH), f"Clear line {line}")

    def clear_display(self) -> None:
        """Blank the whole frame."""
        self.set_window(0, WIDTH - 1, 0, PAGES - 1)
        self._write_payload(bytes(FRAME_SIZE), "Clear display")

    # ------------------------------------------------------------------
    # Scrolling
    # ------------------------------------------------------------------

    def set_scroll(self, direction: Union[ScrollDirection, int], start_page: int,
                   end_page: int, interval: int, offset: int) -> None:
        """
        Reconfigure hardware scrolling and start it.

        Scrolling is stopped first, the 6-byte parameter block is written as
        one raw transfer, then scrolling is restarted. If the parameter block
        fails, scrolling stays stopped.

        Args:
            direction: Scroll setup opcode (see ``ScrollDirection``)
            start_page: First page to scroll, 0-7
            end_page: Last page to scroll, 0-7
            interval: Frame interval code, 0-7
            offset: Final parameter byte (vertical offset for vertical scrolls)

        Raises:
            ProtocolStepError: deactivate or activate frame failed
            TransferError: parameter block failed
        """
        if direction not in SCROLL_OPCODES:
            raise InvalidArgumentError(f"Invalid scroll direction: {direction!r}")
        self._check_range(start_page, 0, PAGES - 1, "Start page")
        self._check_range(end_page, 0, PAGES - 1, "End page")
        self._check_range(interval, 0, 7, "Time interval")
        self._check_range(offset, 0, 0xFF, "Offset")

        self.run_command(self.CMD_DEACTIVATE_SCROLL, ScrollStep.DEACTIVATE)

        block = bytes((direction, 0x00, start_page, interval, end_page, offset))
        self._send(block, "Scroll parameters", TransferError, ScrollStep.PARAMETERS)
        self._scroll_config = ScrollConfig(int(direction), start_page, end_page, interval, offset)

        self.run_command(self.CMD_ACTIVATE_SCROLL, ScrollStep.ACTIVATE)

    def activate_scroll(self) -> None:
        self.run_command(self.CMD_ACTIVATE_SCROLL)

    def deactivate_scroll(self) -> None:
        self.run_command(self.CMD_DEACTIVATE_SCROLL)

    # ------------------------------------------------------------------
    # Panel control
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Send the power-up sequence for a 128x64 panel."""
        logger.debug("Sending initialization sequence")
        for opcode in self.INIT_SEQUENCE:
            self.run_command(opcode)

    def display_on(self) -> None:
        self.run_command(self.CMD_DISPLAY_ON)

    def display_off(self) -> None:
        self.run_command(self.CMD_DISPLAY_OFF)

    def set_contrast(self, level: int) -> None:
        """Set contrast, 0-255."""
        self._check_range(level, 0, 0xFF, "Contrast")
        self.run_command(self.CMD_CONTRAST)
        self.run_command(level)

    def set_inverted(self, inverted: bool) -> None:
        """Invert all pixels (on hardware only; display RAM is untouched)."""
        self.run_command(self.CMD_INVERT_DISPLAY if inverted else self.CMD_NORMAL_DISPLAY)

    def close(self) -> None:
        """Close the bus connection."""
        if self.bus is not None and hasattr(self.bus, 'close'):
            logger.debug("Closing bus connection")
            self.bus.close()
        self.bus = None
        self.hardware_enabled = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# ---------------------------------------------------------------------------
# Simulator
# ---------------------------------------------------------------------------

class DisplaySimulator:
    """In-memory model of the SSD1306 display RAM and control state.

    Consumes the same frames the driver writes to the bus. Coordinates are
    0-based columns and pages, as on the controller.
    """

    # Opcodes followed by parameter bytes, and how many
    PARAMETER_COUNTS = {
        SSD1306.CMD_MEMORY_MODE: 1,
        SSD1306.CMD_COLUMN_ADDRESS: 2,
        SSD1306.CMD_PAGE_ADDRESS: 2,
        SSD1306.CMD_CONTRAST: 1,
        SSD1306.CMD_CHARGE_PUMP: 1,
        SSD1306.CMD_MULTIPLEX: 1,
        SSD1306.CMD_DISPLAY_OFFSET: 1,
        SSD1306.CMD_CLOCK_DIV: 1,
        SSD1306.CMD_PRECHARGE: 1,
        SSD1306.CMD_COM_PINS: 1,
        SSD1306.CMD_VCOM_DETECT: 1,
    }

    def __init__(self) -> None:
        self.ram = bytearray(FRAME_SIZE)
        self.column_window: Tuple[int, int] = (0, WIDTH - 1)
        self.page_window: Tuple[int, int] = (0, PAGES - 1)
        self.column = 0
        self.page = 0
        self.scroll_active = False
        self.scroll_config: Optional[ScrollConfig] = None
        self.display_on = False
        self.inverted = False
        self.contrast = 0x7F
        self.frame_history: List[bytes] = []
        self._pending: Optional[int] = None
        self._params: List[int] = []

    def clear(self) -> None:
        self.ram = bytearray(FRAME_SIZE)

    def snapshot(self) -> Tuple[bytes, bool, bool]:
        """Everything that affects what the panel shows."""
        return bytes(self.ram), self.display_on, self.inverted

    def apply_frame(self, frame: bytes) -> None:
        """Apply one bus transfer."""
        self.frame_history.append(bytes(frame))
        if not frame:
            return

        control = frame[0]
        if control == CONTROL_COMMAND:
            for byte in frame[1:]:
                self._apply_command_byte(byte)
        elif control == CONTROL_DATA:
            self._write_data(frame[1:])
        elif control in SCROLL_OPCODES and len(frame) == 6:
            direction, _, start_page, interval, end_page, offset = frame
            self.scroll_config = ScrollConfig(direction, start_page, end_page, interval, offset)
        else:
            logger.warning(f"Simulator ignoring unrecognized frame: {_hex_dump(frame)}")

    def _apply_command_byte(self, byte: int) -> None:
        if self._pending is not None:
            self._params.append(byte)
            if len(self._params) == self.PARAMETER_COUNTS[self._pending]:
                self._complete_command(self._pending, self._params)
                self._pending = None
                self._params = []
            return

        if byte in self.PARAMETER_COUNTS:
            self._pending = byte
            self._params = []
        elif byte == SSD1306.CMD_DISPLAY_ON:
            self.display_on = True
        elif byte == SSD1306.CMD_DISPLAY_OFF:
            self.display_on = False
        elif byte == SSD1306.CMD_INVERT_DISPLAY:
            self.inverted = True
        elif byte == SSD1306.CMD_NORMAL_DISPLAY:
            self.inverted = False
        elif byte == SSD1306.CMD_ACTIVATE_SCROLL:
            self.scroll_active = True
        elif byte == SSD1306.CMD_DEACTIVATE_SCROLL:
            self.scroll_active = False

    def _complete_command(self, opcode: int, params: List[int]) -> None:
        if opcode == SSD1306.CMD_COLUMN_ADDRESS:
            self.column_window = (params[0], params[1])
            self.column = params[0]
        elif opcode == SSD1306.CMD_PAGE_ADDRESS:
            self.page_window = (params[0], params[1])
            self.page = params[0]
        elif opcode == SSD1306.CMD_CONTRAST:
            self.contrast = params[0]

    def _write_data(self, data: bytes) -> None:
        # Horizontal addressing: wrap within the window
        col_start, col_end = self.column_window
        page_start, page_end = self.page_window
        for byte in data:
            self.ram[self.page * WIDTH + self.column] = byte
            if self.column >= col_end:
                self.column = col_start
                self.page = page_start if self.page >= page_end else self.page + 1
            else:
                self.column += 1

    def get_page(self, page: int) -> bytes:
        return bytes(self.ram[page * WIDTH:(page + 1) * WIDTH])

    def get_pixel(self, x: int, y: int) -> bool:
        return bool(self.ram[(y // 8) * WIDTH + x] >> (y % 8) & 1)

    def render(self) -> List[str]:
        """Text-art frame, two pixel rows per character row."""
        rows = []
        for y in range(0, HEIGHT, 2):
            row = []
            for x in range(WIDTH):
                top = self.get_pixel(x, y) != self.inverted
                bottom = self.get_pixel(x, y + 1) != self.inverted
                if not self.display_on:
                    top = bottom = False
                row.append("█" if top and bottom else "▀" if top else "▄" if bottom else " ")
            rows.append("".join(row))
        return rows

    # Assertion helpers for tests
    def assert_page_equals(self, page: int, expected: bytes) -> None:
        actual = self.get_page(page)
        expected = bytes(expected).ljust(WIDTH, b'\x00')
        assert actual == expected, (
            f"Page {page}: expected {_hex_dump(expected, 32)}, got {_hex_dump(actual, 32)}"
        )

    def assert_pixel(self, x: int, y: int, on: bool = True) -> None:
        actual = self.get_pixel(x, y)
        assert actual is on, f"Pixel ({x},{y}) expected {on}, got {actual}"

    def assert_blank(self) -> None:
        lit = sum(1 for byte in self.ram if byte)
        assert lit == 0, f"Expected blank display, {lit} bytes set"

    def assert_scroll(self, active: bool, config: Optional[ScrollConfig] = None) -> None:
        assert self.scroll_active is active, (
            f"Scroll active expected {active}, got {self.scroll_active}"
        )
        if config is not None:
            assert self.scroll_config == config, (
                f"Scroll config expected {config}, got {self.scroll_config}"
            )

    def dump(self) -> str:
        return "\n".join(self.render())
