"""
Byte-Stream Transports for P-touch Printers.

The printer protocol only needs an ordered, reliable, blocking byte
channel. Serial ports and Bluetooth RFCOMM device nodes go through
pyserial, USB through pyusb, and network printers through a plain TCP
socket. Transport failures are re-raised as ConnectionError.

Drivers are looked up by name in a DriverRegistry that the caller builds
(usually with default_registry()) and passes to whoever opens a stream.
"""

import socket
import threading
from typing import Callable, Optional, Protocol

import serial
import usb.core
import usb.util

from .errors import ConfigurationError, ConnectionError

SERIAL_BAUD_RATE = 115200
DEFAULT_TCP_PORT = 9100

BROTHER_VENDOR_ID = 0x04F9
PRODUCT_ID_PT_P700 = 0x2061
PRODUCT_ID_PT_P750W = 0x2062
PRODUCT_ID_PT_P710BT = 0x20AF
PRODUCT_ID_QL_820NWB = 0x209D

# Probe order when no product ID is given
KNOWN_PRODUCT_IDS = [
    PRODUCT_ID_PT_P750W,
    PRODUCT_ID_PT_P700,
    PRODUCT_ID_PT_P710BT,
    PRODUCT_ID_QL_820NWB,
]

USB_ENDPOINT_IN = 0x81
USB_ENDPOINT_OUT = 0x02


class ByteStream(Protocol):
    """Blocking, ordered byte channel to a printer."""

    def read(self, size: int) -> bytes:
        ...

    def write(self, data: bytes) -> int:
        ...

    def close(self) -> None:
        ...


class _StreamBase:
    """Context manager support shared by the concrete streams."""

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class SerialStream(_StreamBase):
    """Serial port or Bluetooth RFCOMM node (e.g. /dev/rfcomm0), 8N1."""

    def __init__(self, port: str, baud_rate: int = SERIAL_BAUD_RATE,
                 timeout: Optional[float] = None):
        self.port = port
        try:
            self._serial = serial.Serial(
                port,
                baudrate=baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=timeout,
            )
        except (serial.SerialException, OSError) as e:
            raise ConnectionError(f"{port}: {e}") from e

    def read(self, size: int) -> bytes:
        try:
            return self._serial.read(size)
        except (serial.SerialException, OSError) as e:
            raise ConnectionError(f"{self.port}: read failed: {e}") from e

    def write(self, data: bytes) -> int:
        try:
            written = self._serial.write(data)
            self._serial.flush()
            return written
        except (serial.SerialException, OSError) as e:
            raise ConnectionError(f"{self.port}: write failed: {e}") from e

    def close(self) -> None:
        try:
            self._serial.close()
        except (serial.SerialException, OSError) as e:
            raise ConnectionError(f"{self.port}: close failed: {e}") from e


class TCPStream(_StreamBase):
    """Raw TCP printing port (host[:port], port 9100 by default)."""

    def __init__(self, address: str, timeout: Optional[float] = None):
        host, port = parse_tcp_address(address)
        self.address = f"[{host}]:{port}" if ":" in host else f"{host}:{port}"
        try:
            self._sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise ConnectionError(f"{self.address}: {e}") from e

    def read(self, size: int) -> bytes:
        try:
            return self._sock.recv(size)
        except OSError as e:
            raise ConnectionError(f"{self.address}: read failed: {e}") from e

    def write(self, data: bytes) -> int:
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise ConnectionError(f"{self.address}: write failed: {e}") from e
        return len(data)

    def close(self) -> None:
        try:
            self._sock.close()
        except OSError as e:
            raise ConnectionError(f"{self.address}: close failed: {e}") from e


class USBStream(_StreamBase):
    """
    USB bulk transport for Brother printers.

    Reads and writes use separate locks since the two endpoints are
    independent; close takes both.
    """

    def __init__(self, device, endpoint_in, endpoint_out):
        self._device = device
        self._in = endpoint_in
        self._out = endpoint_out
        self._read_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._close_lock = threading.Lock()

    @classmethod
    def open(cls, address: str = "") -> "USBStream":
        """
        Open the first known Brother printer, or a specific product ID.

        Args:
            address: "" to probe known models, or a product ID like "0x20af"

        Raises:
            ConnectionError: If no device is found or it cannot be claimed
        """
        if address:
            product_ids = [parse_usb_product_id(address)]
        else:
            product_ids = KNOWN_PRODUCT_IDS

        device = None
        try:
            for product_id in product_ids:
                device = usb.core.find(idVendor=BROTHER_VENDOR_ID, idProduct=product_id)
                if device is not None:
                    break
        except (usb.core.USBError, usb.core.NoBackendError) as e:
            raise ConnectionError(f"USB: {e}") from e
        if device is None:
            raise ConnectionError("USB device not found")

        try:
            if device.is_kernel_driver_active(0):
                device.detach_kernel_driver(0)
            device.set_configuration()
            interface = device.get_active_configuration()[(0, 0)]

            endpoint_in = usb.util.find_descriptor(
                interface, bEndpointAddress=USB_ENDPOINT_IN
            )
            endpoint_out = usb.util.find_descriptor(
                interface, bEndpointAddress=USB_ENDPOINT_OUT
            )
        except usb.core.USBError as e:
            usb.util.dispose_resources(device)
            raise ConnectionError(f"USB: {e}") from e

        if endpoint_in is None or endpoint_out is None:
            usb.util.dispose_resources(device)
            raise ConnectionError("USB: bulk endpoints 0x81/0x02 not found")

        return cls(device, endpoint_in, endpoint_out)

    def read(self, size: int) -> bytes:
        with self._read_lock:
            if self._in is None:
                raise ConnectionError("USB: stream closed")
            try:
                return bytes(self._in.read(size))
            except usb.core.USBError as e:
                raise ConnectionError(f"USB: read failed: {e}") from e

    def write(self, data: bytes) -> int:
        with self._write_lock:
            if self._out is None:
                raise ConnectionError("USB: stream closed")
            try:
                return self._out.write(data)
            except usb.core.USBError as e:
                raise ConnectionError(f"USB: write failed: {e}") from e

    def close(self) -> None:
        with self._close_lock, self._read_lock, self._write_lock:
            if self._device is None:
                return
            device, self._device = self._device, None
            self._in = None
            self._out = None
            try:
                usb.util.dispose_resources(device)
            except usb.core.USBError as e:
                raise ConnectionError(f"USB: close failed: {e}") from e


def parse_tcp_address(address: str) -> tuple[str, int]:
    """
    Split "host[:port]" (optionally prefixed with tcp://).

    IPv6 hosts with a port go in brackets ("[::1]:9100"); a bare IPv6
    address has no port.
    """
    if address.startswith("tcp://"):
        address = address[len("tcp://"):]

    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep or (rest and not rest.startswith(":")):
            raise ConfigurationError(f"invalid TCP address: {address!r}")
        port = rest[1:]
        if not port:
            return host, DEFAULT_TCP_PORT
    elif address.count(":") > 1:
        return address, DEFAULT_TCP_PORT
    else:
        host, sep, port = address.rpartition(":")
        if not sep:
            return address, DEFAULT_TCP_PORT

    try:
        return host, int(port)
    except ValueError:
        raise ConfigurationError(f"invalid TCP port in address: {address!r}") from None


def parse_usb_product_id(address: str) -> int:
    """Parse a product ID of the form "0x20af"."""
    if not address.lower().startswith("0x"):
        raise ConfigurationError('invalid device address. address should "0x0000" form')
    try:
        return int(address[2:], 16)
    except ValueError:
        raise ConfigurationError(f"invalid USB product ID: {address!r}") from None


Opener = Callable[[str], ByteStream]


class DriverRegistry:
    """Maps transport driver names to functions that open a ByteStream."""

    def __init__(self):
        self._drivers: dict[str, Opener] = {}
        self._lock = threading.RLock()

    def register(self, name: str, opener: Optional[Opener]) -> None:
        """
        Register a driver.

        Raises:
            ConfigurationError: If opener is None or name is taken
        """
        if opener is None:
            raise ConfigurationError(f"driver {name!r}: opener is None")
        with self._lock:
            if name in self._drivers:
                raise ConfigurationError(f"driver {name!r} registered twice")
            self._drivers[name] = opener

    def open(self, name: str, address: str) -> ByteStream:
        """
        Open a stream with the named driver.

        Raises:
            ConfigurationError: If no driver has that name
            ConnectionError: If the driver fails to open the device
        """
        with self._lock:
            opener = self._drivers.get(name)
        if opener is None:
            raise ConfigurationError(f"unknown driver {name!r}")
        return opener(address)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._drivers)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._drivers


def default_registry() -> DriverRegistry:
    """Build a registry with the serial, tcp and usb drivers."""
    registry = DriverRegistry()
    registry.register("serial", SerialStream)
    registry.register("tcp", TCPStream)
    registry.register("usb", USBStream.open)
    return registry


def resolve_driver(address: str) -> tuple[str, str]:
    """
    Guess the driver from a device address.

    "usb" or "usb:0x20af" -> usb, "tcp://host:port" -> tcp, else serial.

    Returns:
        (driver name, address to pass to the driver)
    """
    if address == "usb":
        return "usb", ""
    if address.startswith("usb:"):
        return "usb", address[len("usb:"):]
    if address.startswith("tcp://"):
        return "tcp", address[len("tcp://"):]
    return "serial", address


def open_stream(
    address: str,
    driver: Optional[str] = None,
    registry: Optional[DriverRegistry] = None,
) -> ByteStream:
    """Open a stream, resolving the driver from the address if not given."""
    if registry is None:
        registry = default_registry()
    if driver is None:
        driver, address = resolve_driver(address)
    return registry.open(driver, address)

