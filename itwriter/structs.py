from __future__ import annotations

from .errors import OutOfRange


MAGIC = b"IMPM"
SAMPLE_MAGIC = b"IMPS"
PATTERN_NAME_TAG = b"PNAM"
CHANNEL_NAME_TAG = b"CNAM"

HEADER_SIZE = 0xC0  # Fixed part of the song header, up to the order list
SAMPLE_HEADER_SIZE = 0x50
PATTERN_HEADER_SIZE = 8  # u16 packed length, u16 rows, 4 reserved bytes
SECTION_TAG_SIZE = 8  # 4-byte tag + u32 payload length

TITLE_WIDTH = 26
SAMPLE_NAME_WIDTH = 26
SAMPLE_FILENAME_WIDTH = 12
PATTERN_NAME_WIDTH = 32
CHANNEL_NAME_WIDTH = 20
MESSAGE_MAX_CHARS = 8000  # Impulse Tracker's editor limit

MAX_CHANNELS = 64
MAX_PATTERNS = 200
MAX_SAMPLES = 255
MAX_ROWS = 0xFFFF
MAX_PACKED_PATTERN = 0xFFFF

ORDER_SKIP = 254  # "+++"
ORDER_END = 255  # "---", also appended after the last order

ROW_HIGHLIGHT = (4, 16)  # minor, major
DEFAULT_CREATED_WITH = 0x5129
COMPATIBLE_WITH = 0x0214
DEFAULT_FLAGS = 0x0049  # stereo | linear slides | MIDI pitch controller
SPECIAL_MESSAGE = 0x0001
SPECIAL_HIGHLIGHT = 0x0004
GLOBAL_VOLUME = 0x80
PAN_SEPARATION = 0x80
PITCH_WHEEL_DEPTH = 0x00
CHANNEL_PAN = 0x20  # 0 = left, 32 = centre, 64 = right
CHANNEL_VOLUME = 0x40

U8_MAX = 0xFF
U16_MAX = 0xFFFF
U32_MAX = 0xFFFF_FFFF


def check_range(value: int, *, where: str, low: int, high: int) -> int:
    """Return `value` unchanged or raise ``OutOfRange`` naming the field."""

    if not (low <= value <= high):
        raise OutOfRange(f"{where}={value} must be in [{low}, {high}]")
    return value


def encode_text(text: str | None) -> bytes:
    """Encode `text` one byte per character; unmappable characters become ``?``."""

    return (text or "").encode("latin-1", errors="replace")


def fixed_text(text: str | None, width: int) -> bytes:
    """Return `text` truncated to `width` bytes and right-padded with NULs."""

    return encode_text(text)[:width].ljust(width, b"\x00")


def u16(value: int) -> bytes:
    return int(value).to_bytes(2, "little", signed=False)


def u32(value: int) -> bytes:
    return int(value).to_bytes(4, "little", signed=False)
