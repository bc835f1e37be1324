"""
Last-used device memory for the CLI.

After a successful print the CLI records which transport driver and
address it used, plus the tape width, in ~/.config/ptouch/last_device.
`ptouch print` and `ptouch status` fall back to that record when
--device or --tape is omitted. Records older than the TTL are ignored.
"""

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

DEFAULT_TTL_SECONDS = 30 * 24 * 60 * 60

CONFIG_DIR = Path.home() / ".config" / "ptouch"
CACHE_FILE = CONFIG_DIR / "last_device"


@dataclass
class CachedDevice:
    """Driver, address and tape width of the last device printed to."""

    driver: str
    address: str
    tape_width: float  # mm, e.g. 3.5 or 24
    last_used: float  # Unix timestamp

    @classmethod
    def from_json(cls, text: str) -> "CachedDevice":
        """
        Build a record from the JSON written by save_device.

        Raises:
            ValueError: Malformed JSON or a field of the wrong type
            KeyError: A field is missing
        """
        data = json.loads(text)
        return cls(
            driver=str(data["driver"]),
            address=str(data["address"]),
            tape_width=float(data["tape_width"]),
            last_used=float(data["last_used"]),
        )

    def age(self) -> float:
        """Seconds since this device was last used."""
        return time.time() - self.last_used


def load_cached_device(ttl_seconds: int = DEFAULT_TTL_SECONDS) -> Optional[CachedDevice]:
    """
    Return the remembered device, or None.

    None is returned when nothing was remembered, the record is older than
    `ttl_seconds`, or the file cannot be decoded as a device record.
    """
    if not CACHE_FILE.exists():
        return None

    try:
        cached = CachedDevice.from_json(CACHE_FILE.read_text())
    except (KeyError, TypeError, ValueError):
        return None

    if cached.age() > ttl_seconds:
        return None
    return cached


def save_device(driver: str, address: str, tape_width: float) -> None:
    """Remember `driver`/`address` and the tape width in mm, stamped with now."""
    record = CachedDevice(driver, address, float(tape_width), time.time())
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    CACHE_FILE.write_text(json.dumps(asdict(record), indent=2))


def clear_cache() -> bool:
    """Forget the remembered device; False if there was none."""
    try:
        CACHE_FILE.unlink()
    except FileNotFoundError:
        return False
    return True
