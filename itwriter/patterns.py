"""Pack a pattern grid into Impulse Tracker's compressed row stream.

Section layout (one per pattern):
  u16  packed length (bytes after this 8-byte header)
  u16  row count
  4    reserved, zero
  ...  rows

Each row lists its non-empty cells as ``[0x81 + channel] [mask] [fields]``
and always ends with a single ``0x00``.  A reader only advances to the next
row on that terminator, so empty rows still cost one byte.

Every cell carries an explicit mask byte (bit 7 of the channel marker is
always set); mask/value reuse from previous rows is never emitted.
"""

from __future__ import annotations

from typing import Dict, List

from .errors import OutOfRange
from .events import encode_event
from .song import Event, Pattern
from .structs import (
    MAX_CHANNELS,
    MAX_PACKED_PATTERN,
    MAX_ROWS,
    PATTERN_HEADER_SIZE,
    check_range,
    u16,
)

CHANNEL_MARKER = 0x81
ROW_END = 0x00


def validate_pattern(pattern: Pattern, *, where: str = "pattern") -> None:
    check_range(pattern.rows, where=f"{where}.rows", low=1, high=MAX_ROWS)
    if len(pattern.channels) > MAX_CHANNELS:
        raise OutOfRange(
            f"{where} has {len(pattern.channels)} channels; maximum is {MAX_CHANNELS}"
        )
    for ch, cells in enumerate(pattern.channels):
        for row in cells:
            if not isinstance(row, int) or not (0 <= row < pattern.rows):
                raise OutOfRange(
                    f"{where}.channels[{ch}] row {row!r} outside [0, {pattern.rows})"
                )


def pack_rows(rows: int, channels: List[Dict[int, Event]]) -> bytes:
    """Return the packed row stream without the section header."""

    out = bytearray()
    for row in range(rows):
        for ch, cells in enumerate(channels):
            event = cells.get(row)
            if event is None or event.is_empty:
                continue
            out.append(CHANNEL_MARKER + ch)
            out.extend(encode_event(event))
        out.append(ROW_END)
    return bytes(out)


def pack_pattern(pattern: Pattern, *, where: str = "pattern") -> bytes:
    """Return the full pattern section: 8-byte header followed by packed rows."""

    validate_pattern(pattern, where=where)
    packed = pack_rows(pattern.rows, pattern.channels)
    if len(packed) > MAX_PACKED_PATTERN:
        raise OutOfRange(
            f"{where} packs to {len(packed)} bytes; maximum is {MAX_PACKED_PATTERN}"
        )
    header = u16(len(packed)) + u16(pattern.rows) + bytes(4)
    assert len(header) == PATTERN_HEADER_SIZE
    return header + packed


def packed_length(section: bytes) -> int:
    """Read the length prefix of a packed pattern section."""

    return int.from_bytes(section[0:2], "little")
