"""
Status Frame Parser for Brother P-touch Printers.

The printer answers a status request (ESC i S) and reports state changes
with the same fixed 32-byte frame. Only single-byte fields are decoded.

Frame layout (fields used here):
    Offset  Field
    4       Model code
    6       Battery level
    8       Error information 1 (bit flags)
    9       Error information 2 (bit flags)
    10      Media width (mm, 4 means 3.5mm)
    11      Media type
    15      Mode
    17      Media length (mm, 0 for continuous tape)
    18      Status type
    19      Phase type
    20      Phase number
    22      Notification number
    24      Tape color
    25      Text (font) color

Firmware revisions report codes that are not documented anywhere, so
every enum below keeps unknown values as UNKNOWN_0xNN members instead of
raising.
"""

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Union

from .errors import InvalidFrameLength

STATUS_FRAME_LENGTH = 32

OFFSET_MODEL = 4
OFFSET_BATTERY = 6
OFFSET_ERROR_INFO_1 = 8
OFFSET_ERROR_INFO_2 = 9
OFFSET_MEDIA_WIDTH = 10
OFFSET_MEDIA_TYPE = 11
OFFSET_MODE = 15
OFFSET_TAPE_LENGTH = 17
OFFSET_STATUS_TYPE = 18
OFFSET_PHASE_TYPE = 19
OFFSET_PHASE_NUMBER = 20
OFFSET_NOTIFICATION = 22
OFFSET_TAPE_COLOR = 24
OFFSET_FONT_COLOR = 25


class DeviceEnum(IntEnum):
    """IntEnum that turns undocumented device codes into pseudo-members."""

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, int) or isinstance(value, bool):
            return None
        member = int.__new__(cls, value)
        member._name_ = f"UNKNOWN_0x{value:02X}"
        member._value_ = value
        return member

    @property
    def is_unknown(self) -> bool:
        """True when the device sent a code this table does not list."""
        return self._name_.startswith("UNKNOWN_")

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'Printing Completed'."""
        if self.is_unknown:
            return f"Unknown (0x{self.value:02X})"
        return self._name_.replace("_", " ").title()


class Model(DeviceEnum):
    PT_P700 = 0x67
    PT_P750W = 0x68
    PT_P710BT = 0x76

    @property
    def label(self) -> str:
        if self.is_unknown:
            return super().label
        return self._name_.replace("_", "-")


class BatteryLevel(DeviceEnum):
    FULL = 0
    HALF = 1
    LOW = 2
    CHANGE_BATTERIES = 3
    AC_ADAPTER = 4


class Error1Kind(IntFlag):
    """Error information 1. Several bits may be set at once."""

    NO_MEDIA = 0x01
    CUTTER_JAM = 0x04
    WEAK_BATTERIES = 0x08
    HIGH_VOLTAGE_ADAPTER = 0x40


class Error2Kind(IntFlag):
    """Error information 2. Several bits may be set at once."""

    WRONG_MEDIA = 0x01
    COVER_OPEN = 0x10
    OVERHEATING = 0x20


class TapeWidth(DeviceEnum):
    NONE = 0
    MM_3_5 = 4
    MM_6 = 6
    MM_9 = 9
    MM_12 = 12
    MM_18 = 18
    MM_24 = 24
    MM_62 = 62

    @property
    def mm(self) -> float:
        """Physical width in millimetres."""
        if self is TapeWidth.MM_3_5:
            return 3.5
        return float(self.value)

    @property
    def label(self) -> str:
        if self is TapeWidth.NONE:
            return "No tape"
        if self.is_unknown:
            return super().label
        return f"{self.mm:g}mm"


class MediaType(DeviceEnum):
    NONE = 0x00
    LAMINATED = 0x01
    NON_LAMINATED = 0x03
    CONTINUOUS_LENGTH_TAPE = 0x0A
    DIE_CUT_LABELS = 0x0B
    HEAT_SHRINK_TUBE = 0x11
    INCOMPATIBLE = 0xFF


class StatusKind(DeviceEnum):
    REPLY = 0x00
    PRINTING_COMPLETED = 0x01
    ERROR_OCCURRED = 0x02
    IF_MODE_FINISHED = 0x03
    POWER_OFF = 0x04
    NOTIFICATION = 0x05
    PHASE_CHANGE = 0x06


class PhaseKind(DeviceEnum):
    EDITING = 0x00
    PRINTING = 0x01


class PhaseNumber(DeviceEnum):
    # Numbering depends on the phase type; EDITING and PRINTING share 0x00.
    EDITING = 0x00
    FEED = 0x01
    PRINTING = 0x00
    COVER_OPEN_WHILE_RECEIVING = 0x14


class Notification(DeviceEnum):
    NOT_AVAILABLE = 0x00
    COVER_OPEN = 0x01
    COVER_CLOSED = 0x02


class TapeColor(DeviceEnum):
    WHITE = 0x01
    OTHER = 0x02
    CLEAR = 0x03
    RED = 0x04
    BLUE = 0x05
    YELLOW = 0x06
    GREEN = 0x07
    BLACK = 0x08
    CLEAR_WHITE_TEXT = 0x09
    MATTE_WHITE = 0x20
    MATTE_CLEAR = 0x21
    MATTE_SILVER = 0x22
    SATIN_GOLD = 0x23
    SATIN_SILVER = 0x24
    BLUE_D = 0x30  # TZe-535, TZe-545, TZe-555
    RED_D = 0x31  # TZe-435
    FLUORESCENT_ORANGE = 0x40
    FLUORESCENT_YELLOW = 0x41
    BERRY_PINK = 0x50  # TZe-MQP35
    LIGHT_GRAY = 0x51  # TZe-MQL35
    LIME_GREEN = 0x52  # TZe-MQG35
    YELLOW_F = 0x60
    PINK_F = 0x61
    BLUE_F = 0x62
    WHITE_HEAT_SHRINK_TUBE = 0x70
    WHITE_FLEX_ID = 0x90
    YELLOW_FLEX_ID = 0x91
    CLEANING = 0xF0
    STENCIL = 0xF1
    INCOMPATIBLE = 0xFF


class FontColor(DeviceEnum):
    WHITE = 0x01
    OTHER = 0x02
    RED = 0x04
    BLUE = 0x05
    BLACK = 0x08
    GOLD = 0x0A
    BLUE_F = 0x62
    CLEANING = 0xF0
    STENCIL = 0xF1
    INCOMPATIBLE = 0xFF


def _flag_names(value: IntFlag) -> list[str]:
    names = [
        member.name.replace("_", " ").lower()
        for member in type(value)
        if member.value and value & member.value == member.value
    ]
    known = 0
    for member in type(value):
        known |= member.value
    leftover = int(value) & ~known
    if leftover:
        names.append(f"unknown error bits 0x{leftover:02X}")
    return names


@dataclass(frozen=True)
class Status:
    """
    Parsed 32-byte status frame.

    Instances are built fresh for every read and never modified.
    """

    model: Model
    battery: BatteryLevel
    error1: Error1Kind
    error2: Error2Kind
    media_width: TapeWidth
    media_type: MediaType
    mode: int
    tape_length: int
    status_type: StatusKind
    phase_type: PhaseKind
    phase_number: PhaseNumber
    notification: Notification
    tape_color: TapeColor
    font_color: FontColor
    raw_data: bytes = field(default=b"", repr=False)

    @classmethod
    def parse(cls, data: Union[bytes, bytearray, memoryview]) -> "Status":
        """
        Parse a status frame.

        Args:
            data: Raw frame, exactly 32 bytes

        Returns:
            Status instance

        Raises:
            InvalidFrameLength: If data is not exactly 32 bytes
        """
        data = bytes(data)
        if len(data) != STATUS_FRAME_LENGTH:
            raise InvalidFrameLength(len(data), STATUS_FRAME_LENGTH)

        return cls(
            model=Model(data[OFFSET_MODEL]),
            battery=BatteryLevel(data[OFFSET_BATTERY]),
            error1=Error1Kind(data[OFFSET_ERROR_INFO_1]),
            error2=Error2Kind(data[OFFSET_ERROR_INFO_2]),
            media_width=TapeWidth(data[OFFSET_MEDIA_WIDTH]),
            media_type=MediaType(data[OFFSET_MEDIA_TYPE]),
            mode=data[OFFSET_MODE],
            tape_length=data[OFFSET_TAPE_LENGTH],
            status_type=StatusKind(data[OFFSET_STATUS_TYPE]),
            phase_type=PhaseKind(data[OFFSET_PHASE_TYPE]),
            phase_number=PhaseNumber(data[OFFSET_PHASE_NUMBER]),
            notification=Notification(data[OFFSET_NOTIFICATION]),
            tape_color=TapeColor(data[OFFSET_TAPE_COLOR]),
            font_color=FontColor(data[OFFSET_FONT_COLOR]),
            raw_data=data,
        )

    @property
    def has_error(self) -> bool:
        """True if either error byte has a bit set."""
        return bool(self.error1) or bool(self.error2)

    @property
    def media_error(self) -> bool:
        """True if the error is about the tape cassette or its cover."""
        media_bits1 = Error1Kind.NO_MEDIA | Error1Kind.CUTTER_JAM
        media_bits2 = Error2Kind.WRONG_MEDIA | Error2Kind.COVER_OPEN
        return bool(self.error1 & media_bits1) or bool(self.error2 & media_bits2)

    def error_messages(self) -> list[str]:
        """Describe every error bit that is set, e.g. ['no media', 'cover open']."""
        return _flag_names(self.error1) + _flag_names(self.error2)

    def __str__(self) -> str:
        errors = ", ".join(self.error_messages()) or "none"
        return (
            f"Status(\n"
            f"  model={self.model.label},\n"
            f"  status_type={self.status_type.label},\n"
            f"  battery={self.battery.label},\n"
            f"  errors={errors},\n"
            f"  media={self.media_width.label} {self.media_type.label},\n"
            f"  tape_length={self.tape_length},\n"
            f"  tape_color={self.tape_color.label},\n"
            f"  font_color={self.font_color.label},\n"
            f"  phase={self.phase_type.label}/{self.phase_number.label},\n"
            f"  notification={self.notification.label},\n"
            f"  mode=0x{self.mode:02X}\n"
            f")"
        )


def parse_status(data: Union[bytes, bytearray, memoryview]) -> Status:
    """Parse a 32-byte status frame, see Status.parse."""
    return Status.parse(data)
