"""
Exception classes for the P-touch driver.

Every error raised by this package derives from PrinterError so callers
can catch the whole family with one clause.
"""

from typing import Optional


class PrinterError(Exception):
    """Base exception for all printer errors."""

    pass


class ValidationError(PrinterError, ValueError):
    """Input rejected before anything was sent to the device."""

    pass


class DimensionMismatch(ValidationError):
    """Image size does not match the raster width of the print head."""

    def __init__(self, expected: int, actual: tuple[int, int]):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"image size must have {expected}px width or height, "
            f"got: {actual[0]}x{actual[1]}"
        )


class InvalidFrameLength(ValidationError):
    """Status frame is not exactly 32 bytes long."""

    def __init__(self, length: int, expected: int = 32):
        self.length = length
        self.expected = expected
        super().__init__(f"status must be {expected} bytes, got: {length}")


class UnsupportedTapeWidth(ValidationError):
    """Tape width is not one the printers can handle."""

    def __init__(self, value, supported: Optional[list] = None):
        self.value = value
        self.supported = supported or []
        message = f"unsupported tape width: {value}"
        if self.supported:
            message += f" (supported: {', '.join(str(s) for s in self.supported)})"
        super().__init__(message)


class ConnectionError(PrinterError, OSError):
    """Error connecting to or communicating with printer."""

    pass


class ProtocolViolation(PrinterError):
    """Device answered with something the protocol cannot produce."""

    pass


class ConfigurationError(PrinterError):
    """Transport driver registry was misused."""

    pass


class ImageError(PrinterError):
    """Error processing image for printing."""

    pass


class PrintError(PrinterError):
    """Error during print operation."""

    pass


class PaperError(PrintError):
    """Media-related error (no tape, wrong cassette, cover open)."""

    pass
