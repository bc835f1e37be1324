"""
P-touch Raster Command Builders.

Every builder returns the exact bytes of one command frame and performs
no I/O, so a whole print job can be assembled and inspected offline.

Command reference:
    Invalidate            00 x 100
    Initialize            1B 40
    Status request        1B 69 53
    Raster mode           1B 69 61 01
    Notification mode     1B 69 21 n
    Print information     1B 69 7A + 10 bytes
    Various mode          1B 69 4D n
    Autocut every n       1B 69 41 n
    Advanced mode         1B 69 4B n
    Feed (margin) amount  1B 69 64 n1 n2
    Compression mode      4D n
    Raster transfer       77 mode width data
    Zero raster line      5A
    Print                 0C
    Print and eject       1A
"""

from enum import IntEnum
from typing import Iterator, Optional, Union

from .packbits import compress

INVALIDATE_LENGTH = 100

CMD_INITIALIZE = bytes([0x1B, 0x40])
CMD_REQUEST_STATUS = bytes([0x1B, 0x69, 0x53])
# 0: ESC/P, 1: Raster, 3: P-touch Template. Only raster is supported.
CMD_SET_RASTER_MODE = bytes([0x1B, 0x69, 0x61, 0x01])
CMD_NOTIFY_MODE_PREFIX = bytes([0x1B, 0x69, 0x21])
CMD_PRINT_PROPERTY_PREFIX = bytes([0x1B, 0x69, 0x7A])
CMD_PRINT_MODE_PREFIX = bytes([0x1B, 0x69, 0x4D])
CMD_AUTOCUT_PREFIX = bytes([0x1B, 0x69, 0x41])  # PT-P750W only
CMD_EXTENDED_MODE_PREFIX = bytes([0x1B, 0x69, 0x4B])
CMD_FEED_AMOUNT_PREFIX = bytes([0x1B, 0x69, 0x64])
CMD_COMPRESSION_MODE_PREFIX = bytes([0x4D])
CMD_RASTER_TRANSFER = bytes([0x77])
CMD_RASTER_ZERO_LINE = bytes([0x5A])
CMD_PRINT = bytes([0x0C])
CMD_PRINT_AND_EJECT = bytes([0x1A])


class CompressionMode(IntEnum):
    """Compression byte of the compression-mode and raster-transfer commands."""

    NONE = 0x00
    TIFF = 0x02


class PrintPropertyFlag(IntEnum):
    """Valid-field bits of the print information command."""

    MEDIA = 0x02
    WIDTH = 0x04
    LENGTH = 0x08
    QUALITY = 0x40
    RECOVER_ON_DEVICE = 0x80


# Media type byte sent by default (continuous length tape).
DEFAULT_MEDIA_TYPE = 0x0A
DEFAULT_MEDIA_WIDTH_MM = 62


def set_bit(value: int, position: int) -> int:
    return value | (1 << position)


class Commands:
    """Command builders for P-touch raster printing."""

    @staticmethod
    def clear_buffer() -> bytes:
        """
        Invalidate: 100 empty bytes.

        Sending this followed by initialize() stops an ongoing transfer and
        returns the printer to its receiving state.
        """
        return bytes(INVALIDATE_LENGTH)

    @staticmethod
    def initialize() -> bytes:
        """Clear mode settings."""
        return CMD_INITIALIZE

    @staticmethod
    def request_status() -> bytes:
        """Ask for a 32-byte status frame. Do not use while printing."""
        return CMD_REQUEST_STATUS

    @staticmethod
    def set_raster_mode() -> bytes:
        """Switch the command interpreter to raster mode."""
        return CMD_SET_RASTER_MODE

    @staticmethod
    def set_notification_mode(enabled: bool = True) -> bytes:
        """
        Turn automatic status notifications on or off.

        The device is on by default; the flag byte is 0 for on, 1 for off.
        """
        return CMD_NOTIFY_MODE_PREFIX + bytes([0x00 if enabled else 0x01])

    @staticmethod
    def set_print_property(
        raster_lines: int,
        media_type: Optional[int] = DEFAULT_MEDIA_TYPE,
        media_width: Optional[int] = DEFAULT_MEDIA_WIDTH_MM,
        media_length: Optional[int] = 0,
        first_page: bool = True,
        high_quality: bool = False,
        recover_on_device: bool = True,
    ) -> bytes:
        """
        Build the print information command.

        Fields passed as None are sent as 0 with their valid bit cleared.

        Args:
            raster_lines: Number of raster lines in the page
            media_type: Media type byte
            media_width: Tape width in mm (code 4 for 3.5mm)
            media_length: Label length in mm, 0 for continuous tape
            first_page: False for every page after the first
            high_quality: Give priority to print quality
            recover_on_device: Let the printer recover after errors

        Layout:
            flags, media type, width, length, N1, N2, N3, N4, page, 0
            where raster_lines = N4*256^3 + N3*256^2 + N2*256 + N1
        """
        flags = 0
        if recover_on_device:
            flags |= PrintPropertyFlag.RECOVER_ON_DEVICE
        if high_quality:
            flags |= PrintPropertyFlag.QUALITY
        if media_type is not None:
            flags |= PrintPropertyFlag.MEDIA
        if media_width is not None:
            flags |= PrintPropertyFlag.WIDTH
        if media_length is not None:
            flags |= PrintPropertyFlag.LENGTH

        r = raster_lines
        n1 = r % 256
        n2 = (r // 256) % 256
        n3 = (r // 65536) % 256
        n4 = r // 16777216

        return CMD_PRINT_PROPERTY_PREFIX + bytes([
            flags,
            media_type or 0,
            media_width or 0,
            media_length or 0,
            n1,
            n2,
            n3,
            n4,
            0x00 if first_page else 0x01,
            0x00,
        ])

    @staticmethod
    def set_print_mode(autocut: bool = True, mirror: bool = False) -> bytes:
        """
        Various mode settings.

        Bit 6: automatic cut, bit 7: mirror printing.
        """
        value = 0
        if autocut:
            value = set_bit(value, 6)
        if mirror:
            value = set_bit(value, 7)
        return CMD_PRINT_MODE_PREFIX + bytes([value])

    @staticmethod
    def set_extended_mode(
        two_color: bool = False,
        cut_at_end: bool = True,
        high_resolution: bool = False,
        half_cut: bool = False,
        special_tape: bool = False,
        no_buffer_clearing: bool = False,
    ) -> bytes:
        """
        Advanced mode settings.

        Bit 0: two-color printing (two-color rolls only)
        Bit 2: half cut
        Bit 3: cut at end, i.e. no chain printing
        Bit 4: special tape (no cutting)
        Bit 6: high resolution printing
        Bit 7: no buffer clearing when printing
        """
        value = 0
        if two_color:
            value = set_bit(value, 0)
        if half_cut:
            value = set_bit(value, 2)
        if cut_at_end:
            value = set_bit(value, 3)
        if special_tape:
            value = set_bit(value, 4)
        if high_resolution:
            value = set_bit(value, 6)
        if no_buffer_clearing:
            value = set_bit(value, 7)
        return CMD_EXTENDED_MODE_PREFIX + bytes([value])

    @staticmethod
    def set_feed_amount(amount: int) -> bytes:
        """Margin (feed) amount in dots, 16-bit little-endian."""
        return CMD_FEED_AMOUNT_PREFIX + bytes([amount % 256, amount // 256])

    @staticmethod
    def set_autocut(pages: int = 1) -> bytes:
        """Cut after every `pages` labels (PT-P750W). 0 is sent as 1."""
        if pages == 0:
            pages = 1
        return CMD_AUTOCUT_PREFIX + bytes([pages])

    @staticmethod
    def set_compression_enabled(enabled: bool = True) -> bytes:
        """Select TIFF (PackBits) compression or none for raster transfers."""
        mode = CompressionMode.TIFF if enabled else CompressionMode.NONE
        return CMD_COMPRESSION_MODE_PREFIX + bytes([mode])

    @staticmethod
    def transfer_raster_chunk(row: Union[bytes, bytearray], compressed: bool = True) -> bytes:
        """
        Transfer one raster row.

        Layout: 77, compression mode, uncompressed row width in bytes,
        followed by the (compressed) row.
        """
        row = bytes(row)
        if compressed:
            return CMD_RASTER_TRANSFER + bytes([CompressionMode.TIFF, len(row)]) + compress(row)
        return CMD_RASTER_TRANSFER + bytes([CompressionMode.NONE, len(row)]) + row

    @staticmethod
    def transfer_zero_line() -> bytes:
        """Send a blank raster line."""
        return CMD_RASTER_ZERO_LINE

    @staticmethod
    def iter_raster_chunks(
        data: Union[bytes, bytearray], stride: int, compressed: bool = True
    ) -> Iterator[bytes]:
        """Yield one transfer frame per `stride` bytes of a raster buffer."""
        for offset in range(0, len(data), stride):
            yield Commands.transfer_raster_chunk(data[offset:offset + stride], compressed)

    @staticmethod
    def raster_transfer(
        data: Union[bytes, bytearray], stride: int, compressed: bool = True
    ) -> bytes:
        """All transfer frames for a raster buffer, concatenated."""
        return b"".join(Commands.iter_raster_chunks(data, stride, compressed))

    @staticmethod
    def print_page() -> bytes:
        """Print without feeding (more pages follow)."""
        return CMD_PRINT

    @staticmethod
    def print_and_eject() -> bytes:
        """Print the last page and feed it out."""
        return CMD_PRINT_AND_EJECT
