"""Tests for the high-level printer interface."""

import pytest
from PIL import Image

from ptouchprinter.commands import Commands
from ptouchprinter.errors import (
    DimensionMismatch,
    InvalidFrameLength,
    PaperError,
    PrintError,
    ProtocolViolation,
    UnsupportedTapeWidth,
)
from ptouchprinter.image import RasterBuffer
from ptouchprinter.printer import PTouchPrinter, check_tape_width
from ptouchprinter.status import StatusKind, TapeWidth

from conftest import FakeStream, make_status_frame

RESET = bytes(100) + bytes([0x1B, 0x40])

# No errors, 24mm laminated tape
READY_FRAME = make_status_frame({4: 0x76, 10: 24, 11: 0x01, 24: 0x01, 25: 0x08})


class TestCheckTapeWidth:
    """Test tape width validation."""

    @pytest.mark.parametrize("value,expected", [
        (3.5, TapeWidth.MM_3_5),
        ("3.5", TapeWidth.MM_3_5),
        (4, TapeWidth.MM_3_5),
        (6, TapeWidth.MM_6),
        (9, TapeWidth.MM_9),
        ("12", TapeWidth.MM_12),
        (18, TapeWidth.MM_18),
        (24, TapeWidth.MM_24),
        (62, TapeWidth.MM_62),
        (TapeWidth.MM_18, TapeWidth.MM_18),
    ])
    def test_supported(self, value, expected):
        assert check_tape_width(value) is expected

    @pytest.mark.parametrize("value", [0, 5, 36, "wide", None])
    def test_unsupported(self, value):
        with pytest.raises(UnsupportedTapeWidth) as exc_info:
            check_tape_width(value)
        assert "3.5mm" in str(exc_info.value)

    def test_constructor_validates(self, fake_stream):
        with pytest.raises(UnsupportedTapeWidth):
            PTouchPrinter(fake_stream, tape_width=5)


class TestCommandMethods:
    """Test that each command method writes its frame."""

    def test_reset(self, printer, fake_stream):
        """reset() sends invalidate then initialize."""
        printer.reset()
        assert fake_stream.written == [bytes(100), bytes([0x1B, 0x40])]

    def test_print_property_uses_tape_width(self, fake_stream):
        printer = PTouchPrinter(fake_stream, tape_width=12)
        printer.set_print_property(600)
        assert fake_stream.data == Commands.set_print_property(600, media_width=12)

    def test_print_property_override(self, printer, fake_stream):
        printer.set_print_property(10, media_width=62)
        assert fake_stream.data[5] == 62

    def test_notification_and_autocut(self, printer, fake_stream):
        printer.set_notification_mode(False)
        printer.set_autocut(2)
        assert fake_stream.written == [
            bytes([0x1B, 0x69, 0x21, 0x01]),
            bytes([0x1B, 0x69, 0x41, 0x02]),
        ]

    def test_print_page_and_eject(self, printer, fake_stream):
        printer.print_page()
        printer.print_and_eject()
        assert fake_stream.data == bytes([0x0C, 0x1A])

    def test_send_raster_single_write(self, printer, fake_stream):
        """All rows go out in one write."""
        raster = RasterBuffer(bytes([0xFF, 0x00]), width=8, height=2)
        printer.send_raster(raster, compressed=False)

        assert fake_stream.written == [
            bytes([0x77, 0x00, 0x01, 0xFF, 0x77, 0x00, 0x01, 0x00]),
        ]

    def test_close(self, fake_stream):
        with PTouchPrinter(fake_stream):
            pass
        assert fake_stream.closed


class TestReadStatus:
    """Test status frame reading."""

    def test_get_status(self, fake_stream):
        fake_stream.replies = [READY_FRAME]
        printer = PTouchPrinter(fake_stream)

        status = printer.get_status()

        assert fake_stream.written == [bytes([0x1B, 0x69, 0x53])]
        assert status.status_type is StatusKind.REPLY
        assert status.media_width is TapeWidth.MM_24

    def test_chunked_frame(self):
        """A frame split across reads is reassembled."""
        stream = FakeStream([READY_FRAME[:5], READY_FRAME[5:20], READY_FRAME[20:]])
        status = PTouchPrinter(stream).read_status()
        assert status.raw_data == READY_FRAME

    def test_leaves_following_bytes(self):
        """Only 32 bytes are consumed."""
        stream = FakeStream([READY_FRAME + b"\x01\x02"])
        PTouchPrinter(stream).read_status()
        assert stream.replies == [b"\x01\x02"]

    def test_no_reply(self, printer):
        """End of stream before any byte is a protocol violation."""
        with pytest.raises(ProtocolViolation):
            printer.read_status()

    def test_short_frame(self):
        """End of stream part way through the frame."""
        stream = FakeStream([bytes(20)])
        with pytest.raises(InvalidFrameLength) as exc_info:
            PTouchPrinter(stream).read_status()
        assert exc_info.value.length == 20


class TestCheckReady:
    """Test pre-print status check."""

    def test_ready(self):
        printer = PTouchPrinter(FakeStream([READY_FRAME]))
        status = printer.check_ready()
        assert not status.has_error

    def test_cover_open(self):
        frame = make_status_frame({10: 24, 11: 0x01, 9: 0x10})
        printer = PTouchPrinter(FakeStream([frame]))
        with pytest.raises(PaperError, match="cover open"):
            printer.check_ready()

    def test_overheating(self):
        frame = make_status_frame({10: 24, 11: 0x01, 9: 0x20})
        printer = PTouchPrinter(FakeStream([frame]))
        with pytest.raises(PrintError, match="overheating") as exc_info:
            printer.check_ready()
        assert not isinstance(exc_info.value, PaperError)

    def test_no_tape(self):
        printer = PTouchPrinter(FakeStream([bytes(32)]))
        with pytest.raises(PaperError, match="no tape"):
            printer.check_ready()


class TestPrintImage:
    """Test the complete print sequence."""

    @pytest.fixture
    def small_printer(self, fake_stream):
        """Printer with an 8-pixel print head so frames stay readable."""
        return PTouchPrinter(fake_stream, tape_width=12, raster_width=8)

    def test_sequence(self, small_printer, fake_stream):
        """Frames go out in protocol order."""
        img = Image.new("RGB", (8, 2), color=(0, 0, 0))

        lines = small_printer.print_image(img)

        assert lines == 2
        assert fake_stream.written == [
            bytes(100),
            bytes([0x1B, 0x40]),
            bytes([0x1B, 0x69, 0x61, 0x01]),
            bytes([0x1B, 0x69, 0x7A, 0x8E, 0x0A, 12, 0x00, 0x02, 0x00, 0x00, 0x00, 0x00, 0x00]),
            bytes([0x1B, 0x69, 0x4D, 0x40]),
            bytes([0x1B, 0x69, 0x4B, 0x08]),
            bytes([0x1B, 0x69, 0x64, 0x0A, 0x00]),
            bytes([0x4D, 0x02]),
            bytes([0x77, 0x02, 0x01, 0x00, 0xFF, 0x77, 0x02, 0x01, 0x00, 0xFF]),
            bytes([0x1A]),
            bytes(100),
            bytes([0x1B, 0x40]),
        ]

    def test_options(self, small_printer, fake_stream):
        """Print options change the mode frames."""
        img = Image.new("RGB", (8, 1), color=(255, 255, 255))

        small_printer.print_image(
            img, compressed=False, autocut=False, cut_at_end=False,
            feed_amount=300, high_resolution=True,
        )

        written = fake_stream.written
        assert bytes([0x1B, 0x69, 0x4D, 0x00]) in written
        assert bytes([0x1B, 0x69, 0x4B, 0x40]) in written
        assert bytes([0x1B, 0x69, 0x64, 0x2C, 0x01]) in written
        assert bytes([0x4D, 0x00]) in written
        assert bytes([0x77, 0x00, 0x01, 0x00]) in written

    def test_dry_run(self, small_printer, fake_stream):
        """Dry run sends no raster and no print command."""
        img = Image.new("RGB", (8, 3))

        lines = small_printer.print_image(img, dry_run=True)

        assert lines == 3
        assert not any(frame.startswith(b"\x77") for frame in fake_stream.written)
        assert bytes([0x1A]) not in fake_stream.written
        assert fake_stream.written[-2:] == [bytes(100), bytes([0x1B, 0x40])]

    def test_raster_buffer_input(self, small_printer, fake_stream):
        raster = RasterBuffer(bytes([0xF0]), width=8, height=1)
        assert small_printer.print_image(raster, compressed=False) == 1
        assert bytes([0x77, 0x00, 0x01, 0xF0]) in fake_stream.written

    def test_check_status_aborts(self, fake_stream):
        """Errors found by the status check stop the job before raster mode."""
        fake_stream.replies = [make_status_frame({8: 0x01})]
        printer = PTouchPrinter(fake_stream, raster_width=8)

        with pytest.raises(PaperError):
            printer.print_image(Image.new("RGB", (8, 1)), check_status=True)

        assert fake_stream.data == RESET + bytes([0x1B, 0x69, 0x53])

    def test_check_status_passes(self, fake_stream):
        fake_stream.replies = [READY_FRAME]
        printer = PTouchPrinter(fake_stream, raster_width=8)

        printer.print_image(Image.new("RGB", (8, 1)), check_status=True)

        assert fake_stream.written[2] == bytes([0x1B, 0x69, 0x53])
        assert bytes([0x1A]) in fake_stream.written

    def test_dimension_mismatch_sends_nothing(self, printer, fake_stream):
        with pytest.raises(DimensionMismatch):
            printer.print_image(Image.new("RGB", (100, 50)))
        assert fake_stream.written == []

    def test_debug_logging(self, fake_stream, capsys):
        printer = PTouchPrinter(fake_stream, raster_width=8, debug=True)
        printer.print_image(Image.new("RGB", (8, 1)))

        out = capsys.readouterr().out
        assert "[PTOUCH] Initialize 1b40" in out
        assert "[PTOUCH] ClearBuffer (100 bytes)" in out
        assert "[PTOUCH] PrintAndEject 1a" in out
