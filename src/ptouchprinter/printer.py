"""
High-Level P-touch Printer Interface.

Wraps a byte stream with one method per raster command and a complete
print sequence. The protocol is half-duplex: a status request and the
32-byte reply that follows are sent and read under one lock.
"""

import threading
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from .commands import Commands
from .connection import ByteStream, DriverRegistry, open_stream
from .errors import (
    PaperError,
    PrintError,
    ProtocolViolation,
    UnsupportedTapeWidth,
)
from .image import DEFAULT_RASTER_WIDTH_PX, ImageRasterizer, RasterBuffer
from .status import STATUS_FRAME_LENGTH, MediaType, Status, TapeWidth

SUPPORTED_TAPE_WIDTHS = [
    TapeWidth.MM_3_5,
    TapeWidth.MM_6,
    TapeWidth.MM_9,
    TapeWidth.MM_12,
    TapeWidth.MM_18,
    TapeWidth.MM_24,
    TapeWidth.MM_62,
]

DEFAULT_TAPE_WIDTH = TapeWidth.MM_24
DEFAULT_FEED_AMOUNT = 10

# Payloads longer than this are logged by size only
LOG_HEX_LIMIT = 64


def check_tape_width(value: Union[TapeWidth, int, float, str]) -> TapeWidth:
    """
    Validate a tape width given as TapeWidth, device code or millimetres.

    Accepts 3.5 (or its device code 4), 6, 9, 12, 18, 24 and 62.

    Raises:
        UnsupportedTapeWidth: For anything else
    """
    supported = [tape.label for tape in SUPPORTED_TAPE_WIDTHS]
    try:
        mm = float(value)
    except (TypeError, ValueError):
        raise UnsupportedTapeWidth(value, supported) from None

    for tape in SUPPORTED_TAPE_WIDTHS:
        if mm == tape.mm or mm == tape.value:
            return tape
    raise UnsupportedTapeWidth(value, supported)


class PTouchPrinter:
    """
    High-level interface to a Brother P-touch printer.

    The printer owns its stream exclusively; use it as a context manager
    or call close() when done.
    """

    def __init__(
        self,
        stream: ByteStream,
        tape_width: Union[TapeWidth, int, float] = DEFAULT_TAPE_WIDTH,
        raster_width: int = DEFAULT_RASTER_WIDTH_PX,
        debug: bool = False,
    ):
        """
        Initialize printer interface.

        Args:
            stream: Open byte stream to the printer
            tape_width: Installed tape width (checked against supported widths)
            raster_width: Pixels per raster line of the print head
            debug: Log every frame sent
        """
        self.stream = stream
        self.tape_width = check_tape_width(tape_width)
        self.rasterizer = ImageRasterizer(raster_width)
        self._debug = debug
        self._lock = threading.RLock()

    @classmethod
    def open(
        cls,
        address: str,
        driver: Optional[str] = None,
        registry: Optional[DriverRegistry] = None,
        **kwargs,
    ) -> "PTouchPrinter":
        """
        Open a printer by device address.

        Args:
            address: Device path, "usb", "usb:0xNNNN" or "tcp://host:port"
            driver: Driver name; guessed from the address if omitted
            registry: Driver registry; default_registry() if omitted
            **kwargs: Passed to the constructor
        """
        stream = open_stream(address, driver=driver, registry=registry)
        return cls(stream, **kwargs)

    def set_debug(self, enabled: bool):
        """Enable/disable debug output."""
        self._debug = enabled

    def _log(self, message: str):
        """Print debug message if enabled."""
        if self._debug:
            print(f"[PTOUCH] {message}")

    def _send(self, name: str, frame: bytes):
        if len(frame) <= LOG_HEX_LIMIT:
            self._log(f"{name} {frame.hex()}")
        else:
            self._log(f"{name} ({len(frame)} bytes)")
        self.stream.write(frame)

    def close(self):
        """Close the underlying stream."""
        self.stream.close()
        self._log("Closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # --- Commands ---

    def clear_buffer(self):
        """Send the invalidate sequence."""
        self._send("ClearBuffer", Commands.clear_buffer())

    def initialize(self):
        """Clear mode settings."""
        self._send("Initialize", Commands.initialize())

    def reset(self):
        """Clear the buffer and initialize; stops any transfer in progress."""
        with self._lock:
            self.clear_buffer()
            self.initialize()

    def request_status(self):
        """Request a status frame. Do not use while printing."""
        self._send("RequestStatus", Commands.request_status())

    def read_status(self) -> Status:
        """
        Read one 32-byte status frame.

        Raises:
            ProtocolViolation: If the stream ends before any byte arrives
            InvalidFrameLength: If it ends part way through the frame
        """
        data = bytearray()
        while len(data) < STATUS_FRAME_LENGTH:
            chunk = self.stream.read(STATUS_FRAME_LENGTH - len(data))
            if not chunk:
                break
            data.extend(chunk)

        if not data:
            raise ProtocolViolation("printer sent no status frame")
        self._log(f"Status {bytes(data).hex()}")
        return Status.parse(data)

    def get_status(self) -> Status:
        """Request and read the current status."""
        with self._lock:
            self.request_status()
            return self.read_status()

    def set_raster_mode(self):
        self._send("SetRasterMode", Commands.set_raster_mode())

    def set_notification_mode(self, enabled: bool = True):
        self._send("SetNotificationMode", Commands.set_notification_mode(enabled))

    def set_print_property(self, raster_lines: int, **kwargs):
        """Send print information for a page of `raster_lines` lines."""
        kwargs.setdefault("media_width", self.tape_width.value)
        self._send("SetPrintProperty", Commands.set_print_property(raster_lines, **kwargs))

    def set_print_mode(self, autocut: bool = True, mirror: bool = False):
        self._send("SetPrintMode", Commands.set_print_mode(autocut, mirror))

    def set_extended_mode(self, **kwargs):
        self._send("SetExtendedMode", Commands.set_extended_mode(**kwargs))

    def set_feed_amount(self, amount: int):
        self._send("SetFeedAmount", Commands.set_feed_amount(amount))

    def set_autocut(self, pages: int = 1):
        """Cut every `pages` labels (PT-P750W only)."""
        self._send("SetAutocut", Commands.set_autocut(pages))

    def set_compression_enabled(self, enabled: bool = True):
        self._send("SetCompressionModeEnabled", Commands.set_compression_enabled(enabled))

    def send_raster(self, raster: RasterBuffer, compressed: bool = True):
        """Transfer every row of a raster buffer, one frame per row."""
        data = Commands.raster_transfer(raster.data, raster.stride, compressed)
        self._send("SendImage", data)

    def print_page(self):
        self._send("Print", Commands.print_page())

    def print_and_eject(self):
        self._send("PrintAndEject", Commands.print_and_eject())

    # --- Print jobs ---

    def rasterize(self, image: Union[str, Path, bytes, Image.Image]) -> RasterBuffer:
        """
        Load and rasterize an image for the print head.

        Raises:
            ImageError: If the image cannot be loaded
            DimensionMismatch: If no side matches the raster width
        """
        img = self.rasterizer.load(image)
        self._log(f"Image size: {img.width}x{img.height} pixels")
        raster, stride = self.rasterizer.rasterize(img)
        self._log(f"Raster: {raster.height} lines, {stride} bytes per line")
        return raster

    def check_ready(self) -> Status:
        """
        Read the status and fail if the printer reports an error.

        Raises:
            PaperError: No media, wrong media, cover open or cutter jam
            PrintError: Any other reported error
        """
        status = self.get_status()
        if status.has_error:
            message = ", ".join(status.error_messages())
            if status.media_error:
                raise PaperError(f"Printer not ready: {message}")
            raise PrintError(f"Printer not ready: {message}")
        if status.media_type == MediaType.NONE:
            raise PaperError("Printer not ready: no tape installed")
        return status

    def print_image(
        self,
        image: Union[str, Path, bytes, Image.Image, RasterBuffer],
        compressed: bool = True,
        autocut: bool = True,
        cut_at_end: bool = True,
        feed_amount: int = DEFAULT_FEED_AMOUNT,
        high_resolution: bool = False,
        check_status: bool = False,
        dry_run: bool = False,
    ) -> int:
        """
        Print an image as one label.

        Args:
            image: Image source or an already rasterized buffer
            compressed: Send raster rows PackBits-compressed
            autocut: Cut after the label
            cut_at_end: Disable chain printing
            feed_amount: Margin in dots
            high_resolution: High resolution printing
            check_status: Query status first and refuse to print on errors
            dry_run: Configure the printer but send neither raster nor print

        Returns:
            Number of raster lines in the label

        Raises:
            ImageError, DimensionMismatch: If the image is unusable
            PaperError, PrintError: If check_status finds an error
            ConnectionError: If the stream fails
        """
        if isinstance(image, RasterBuffer):
            raster = image
        else:
            raster = self.rasterize(image)

        with self._lock:
            self.reset()
            if check_status:
                status = self.check_ready()
                self._log(f"Ready: {status.media_width.label} {status.tape_color.label}")
            self.set_raster_mode()
            self.set_print_property(raster.height)
            self.set_print_mode(autocut=autocut)
            self.set_extended_mode(cut_at_end=cut_at_end, high_resolution=high_resolution)
            self.set_feed_amount(feed_amount)
            self.set_compression_enabled(compressed)

            if not dry_run:
                self.send_raster(raster, compressed)
                self.print_and_eject()

            self.reset()

        return raster.height
