from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import List

from .layout import (
    LayoutPlan,
    channel_name_table,
    message_bytes,
    pattern_name_table,
    plan_layout,
    validate_song,
)
from .patterns import pack_pattern
from .samples import encode_pcm, encode_sample_header, validate_sample
from .song import Song
from .structs import (
    CHANNEL_PAN,
    CHANNEL_VOLUME,
    COMPATIBLE_WITH,
    DEFAULT_CREATED_WITH,
    DEFAULT_FLAGS,
    GLOBAL_VOLUME,
    HEADER_SIZE,
    MAGIC,
    MAX_CHANNELS,
    ORDER_END,
    PAN_SEPARATION,
    PITCH_WHEEL_DEPTH,
    ROW_HIGHLIGHT,
    SPECIAL_HIGHLIGHT,
    SPECIAL_MESSAGE,
    TITLE_WIDTH,
    U16_MAX,
    check_range,
    fixed_text,
    u32,
)


log = logging.getLogger(__name__)

# IMPM header from the row highlight up to the reserved dword (0x1E-0x3F).
_SONG_FIELDS = struct.Struct("<BBHHHHHHHHBBBBBBHII")


class _Cursor:
    """Sequential writer over a preallocated buffer; never seeks backwards."""

    def __init__(self, size: int) -> None:
        self.buf = bytearray(size)
        self.pos = 0

    def write(self, data: bytes) -> None:
        end = self.pos + len(data)
        assert end <= len(self.buf), f"write past planned end ({end} > {len(self.buf)})"
        self.buf[self.pos : end] = data
        self.pos = end

    def expect(self, offset: int, section: str) -> None:
        assert self.pos == offset, (
            f"{section} planned at 0x{offset:X} but cursor is at 0x{self.pos:X}"
        )


def _song_header(song: Song, plan: LayoutPlan, *, created_with: int) -> bytes:
    special = SPECIAL_HIGHLIGHT
    if plan.message_offset is not None:
        special |= SPECIAL_MESSAGE
    fields = _SONG_FIELDS.pack(
        ROW_HIGHLIGHT[0],
        ROW_HIGHLIGHT[1],
        plan.order_count,
        0,  # instruments: samples-only mode
        len(song.samples),
        len(song.patterns),
        created_with,
        COMPATIBLE_WITH,
        DEFAULT_FLAGS,
        special,
        GLOBAL_VOLUME,
        song.mix_volume,
        song.ticks,
        song.tempo,
        PAN_SEPARATION,
        PITCH_WHEEL_DEPTH,
        plan.message_length,
        plan.message_offset or 0,
        0,
    )
    head = MAGIC + fixed_text(song.title, TITLE_WIDTH) + fields
    return (
        head
        + bytes([CHANNEL_PAN]) * MAX_CHANNELS
        + bytes([CHANNEL_VOLUME]) * MAX_CHANNELS
    )


def serialize(song: Song, *, created_with: int = DEFAULT_CREATED_WITH) -> bytes:
    """Serialize `song` into the bytes of an Impulse Tracker module.

    All validation and layout planning happens before the output buffer is
    allocated; on error nothing is produced.
    """
    check_range(created_with, where="created_with", low=0, high=U16_MAX)
    validate_song(song)
    for idx, sample in enumerate(song.samples):
        validate_sample(sample, where=f"samples[{idx}]")
    packed: List[bytes] = [
        pack_pattern(pattern, where=f"patterns[{idx}]")
        for idx, pattern in enumerate(song.patterns)
    ]

    plan = plan_layout(song, [len(section) for section in packed])
    sample_headers = [
        encode_sample_header(sample, offset, where=f"samples[{idx}]")
        for idx, (sample, offset) in enumerate(zip(song.samples, plan.pcm_offsets))
    ]
    log.debug(
        "layout: header=%d sample_headers=%d patterns=%d pcm=%d total=%d",
        plan.header_size,
        plan.sample_header_size,
        plan.patterns_size,
        plan.pcm_total_size,
        plan.file_size,
    )

    out = _Cursor(plan.file_size)
    out.write(_song_header(song, plan, created_with=created_with))
    out.expect(HEADER_SIZE, "order list")
    out.write(bytes(song.order_list) + bytes([ORDER_END]))

    out.expect(plan.sample_table_offset, "sample offset table")
    for offset in plan.sample_header_offsets:
        out.write(u32(offset))
    out.expect(plan.pattern_table_offset, "pattern offset table")
    for offset in plan.pattern_offsets:
        out.write(u32(offset))

    if plan.pattern_names_offset is not None:
        out.expect(plan.pattern_names_offset, "PNAM")
        out.write(pattern_name_table(song))
    if plan.channel_names_offset is not None:
        out.expect(plan.channel_names_offset, "CNAM")
        out.write(channel_name_table(song))
    if plan.message_offset is not None:
        out.expect(plan.message_offset, "message")
        out.write(message_bytes(song))

    out.expect(plan.sample_headers_offset, "sample headers")
    for offset, header in zip(plan.sample_header_offsets, sample_headers):
        out.expect(offset, "sample header")
        out.write(header)
    for offset, section in zip(plan.pattern_offsets, packed):
        out.expect(offset, "pattern")
        out.write(section)
    for idx, (offset, sample) in enumerate(zip(plan.pcm_offsets, song.samples)):
        out.expect(offset, f"samples[{idx}] PCM")
        out.write(encode_pcm(sample))

    out.expect(plan.file_size, "end of file")
    return bytes(out.buf)


def write_it(song: Song, path: Path | str, *, created_with: int = DEFAULT_CREATED_WITH) -> Path:
    """Serialize `song` and write it to `path`; returns the resolved path."""

    data = serialize(song, created_with=created_with)
    out_path = Path(path).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    log.info("wrote %d bytes -> %s", len(data), out_path)
    return out_path


__all__ = [
    "serialize",
    "write_it",
]
