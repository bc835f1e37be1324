"""
Pytest configuration for P-touch printer tests.

Provides an in-memory byte stream and command-line options for hardware tests.
"""

import pytest

from ptouchprinter import PTouchPrinter


class FakeStream:
    """Records writes and replays scripted reads."""

    def __init__(self, replies=None):
        self.written = []
        self.replies = list(replies or [])
        self.closed = False

    def read(self, size: int) -> bytes:
        if not self.replies:
            return b""
        reply = self.replies.pop(0)
        if len(reply) > size:
            self.replies.insert(0, reply[size:])
            reply = reply[:size]
        return reply

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        return len(data)

    def close(self) -> None:
        self.closed = True

    @property
    def data(self) -> bytes:
        return b"".join(self.written)


def make_status_frame(fields=None) -> bytes:
    """Build a 32-byte status frame from an {offset: value} dict."""
    frame = bytearray(32)
    for offset, value in (fields or {}).items():
        frame[offset] = value
    return bytes(frame)


def pytest_addoption(parser):
    """Add command-line options for hardware tests."""
    parser.addoption(
        "--device",
        action="store",
        default=None,
        help="Printer device for hardware tests (e.g. /dev/rfcomm0 or usb)",
    )


@pytest.fixture
def fake_stream():
    """Provide an empty FakeStream."""
    return FakeStream()


@pytest.fixture
def printer(fake_stream):
    """Provide a printer on a FakeStream."""
    return PTouchPrinter(fake_stream)


@pytest.fixture
def printer_device(request):
    """Get the printer device from command line."""
    device = request.config.getoption("--device")
    if device is None:
        pytest.skip("No printer device provided (use --device=/dev/rfcomm0)")
    return device


@pytest.fixture
def connected_printer(printer_device):
    """Provide a printer opened on real hardware."""
    printer = PTouchPrinter.open(printer_device)
    printer.set_debug(True)

    yield printer

    printer.close()
