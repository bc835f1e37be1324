"""Brother P-touch Raster Printer Driver."""

__version__ = "0.1.0"

from .errors import (
    PrinterError,
    ValidationError,
    DimensionMismatch,
    InvalidFrameLength,
    UnsupportedTapeWidth,
    ConnectionError,
    ProtocolViolation,
    ConfigurationError,
    ImageError,
    PrintError,
    PaperError,
)
from .packbits import compress
from .image import ImageRasterizer, ImageSizeError, RasterBuffer, rasterize
from .commands import Commands, CompressionMode
from .status import (
    Status,
    parse_status,
    Model,
    BatteryLevel,
    Error1Kind,
    Error2Kind,
    TapeWidth,
    MediaType,
    StatusKind,
    PhaseKind,
    PhaseNumber,
    Notification,
    TapeColor,
    FontColor,
)
from .connection import (
    ByteStream,
    DriverRegistry,
    SerialStream,
    TCPStream,
    USBStream,
    default_registry,
    open_stream,
)
from .printer import PTouchPrinter, check_tape_width, SUPPORTED_TAPE_WIDTHS

__all__ = [
    "PrinterError",
    "ValidationError",
    "DimensionMismatch",
    "InvalidFrameLength",
    "UnsupportedTapeWidth",
    "ConnectionError",
    "ProtocolViolation",
    "ConfigurationError",
    "ImageError",
    "PrintError",
    "PaperError",
    "compress",
    "ImageRasterizer",
    "ImageSizeError",
    "RasterBuffer",
    "rasterize",
    "Commands",
    "CompressionMode",
    "Status",
    "parse_status",
    "Model",
    "BatteryLevel",
    "Error1Kind",
    "Error2Kind",
    "TapeWidth",
    "MediaType",
    "StatusKind",
    "PhaseKind",
    "PhaseNumber",
    "Notification",
    "TapeColor",
    "FontColor",
    "ByteStream",
    "DriverRegistry",
    "SerialStream",
    "TCPStream",
    "USBStream",
    "default_registry",
    "open_stream",
    "PTouchPrinter",
    "check_tape_width",
    "SUPPORTED_TAPE_WIDTHS",
]
