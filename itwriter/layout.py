"""Plan every section size and absolute offset before any byte is written.

File order:
  0x00  fixed header (0xC0 bytes, includes channel pans/volumes)
  0xC0  order list + 0xFF
        sample header offset table   (u32 x samples)
        pattern offset table         (u32 x patterns)
        PNAM  pattern names           (optional)
        CNAM  channel names           (optional)
        song message                  (optional, NUL-terminated)
        sample headers                (0x50 x samples)
        packed patterns
        PCM payloads

Everything up to and including the message is the "header" region; its size
must be final before sample or pattern offsets can be derived.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .errors import DanglingOrderReference, LayoutOverflow, OutOfRange
from .samples import pcm_size
from .song import Song
from .structs import (
    CHANNEL_NAME_TAG,
    CHANNEL_NAME_WIDTH,
    HEADER_SIZE,
    MAX_CHANNELS,
    MAX_PATTERNS,
    MAX_SAMPLES,
    MESSAGE_MAX_CHARS,
    ORDER_END,
    ORDER_SKIP,
    PATTERN_NAME_TAG,
    PATTERN_NAME_WIDTH,
    SAMPLE_HEADER_SIZE,
    SECTION_TAG_SIZE,
    U16_MAX,
    U32_MAX,
    U8_MAX,
    check_range,
    encode_text,
    fixed_text,
    u32,
)


@dataclass(frozen=True)
class LayoutPlan:
    order_count: int  # including the appended end marker
    sample_table_offset: int
    pattern_table_offset: int
    pattern_names_offset: Optional[int]
    channel_names_offset: Optional[int]
    message_offset: Optional[int]
    message_length: int
    header_size: int
    sample_header_size: int
    patterns_size: int
    pcm_total_size: int
    sample_header_offsets: Tuple[int, ...]
    pattern_offsets: Tuple[int, ...]
    pattern_sizes: Tuple[int, ...]
    pcm_offsets: Tuple[int, ...]
    pcm_sizes: Tuple[int, ...]

    @property
    def sample_headers_offset(self) -> int:
        return self.header_size

    @property
    def patterns_offset(self) -> int:
        return self.header_size + self.sample_header_size

    @property
    def pcm_offset(self) -> int:
        return self.patterns_offset + self.patterns_size

    @property
    def file_size(self) -> int:
        return self.pcm_offset + self.pcm_total_size


def validate_song(song: Song) -> None:
    """Check song-level counts, header bytes and the order list."""

    check_range(len(song.samples), where="sample count", low=0, high=MAX_SAMPLES)
    check_range(len(song.patterns), where="pattern count", low=0, high=MAX_PATTERNS)
    check_range(song.tempo, where="tempo", low=0, high=U8_MAX)
    check_range(song.ticks, where="ticks", low=0, high=U8_MAX)
    check_range(song.mix_volume, where="mix_volume", low=0, high=U8_MAX)
    if len(song.channel_names) > MAX_CHANNELS:
        raise OutOfRange(
            f"{len(song.channel_names)} channel names; maximum is {MAX_CHANNELS}"
        )

    order = song.order_list
    check_range(len(order) + 1, where="order count", low=1, high=U16_MAX)
    for idx, entry in enumerate(order):
        if not isinstance(entry, int) or isinstance(entry, bool):
            raise OutOfRange(f"order[{idx}]={entry!r} must be an integer")
        if entry in (ORDER_SKIP, ORDER_END):
            continue
        if not (0 <= entry < MAX_PATTERNS):
            raise OutOfRange(
                f"order[{idx}]={entry!r} must be a pattern index in [0, {MAX_PATTERNS - 1}] "
                f"or a marker ({ORDER_SKIP}, {ORDER_END})"
            )
        if entry >= len(song.patterns):
            raise DanglingOrderReference(
                f"order[{idx}] references pattern {entry}, "
                f"but the song has {len(song.patterns)} patterns"
            )


def message_bytes(song: Song) -> bytes:
    """Song message with CR line breaks and a trailing NUL; empty when absent."""

    if not song.message:
        return b""
    text = song.message.replace("\r\n", "\r").replace("\n", "\r")
    return encode_text(text[:MESSAGE_MAX_CHARS]) + b"\x00"


def _tagged(tag: bytes, payload: bytes) -> bytes:
    section = tag + u32(len(payload))
    assert len(section) == SECTION_TAG_SIZE
    return section + payload


def pattern_name_table(song: Song) -> bytes:
    """PNAM section (32 bytes per pattern); empty when no pattern is named."""

    if not any(p.name for p in song.patterns):
        return b""
    payload = b"".join(fixed_text(p.name, PATTERN_NAME_WIDTH) for p in song.patterns)
    return _tagged(PATTERN_NAME_TAG, payload)


def channel_name_table(song: Song) -> bytes:
    """CNAM section (20 bytes per channel); empty when no channel is named."""

    if not any(song.channel_names):
        return b""
    payload = b"".join(fixed_text(n, CHANNEL_NAME_WIDTH) for n in song.channel_names)
    return _tagged(CHANNEL_NAME_TAG, payload)


def plan_layout(song: Song, pattern_sizes: Sequence[int]) -> LayoutPlan:
    """Derive every offset from the song and its packed pattern section sizes.

    `pattern_sizes` are whole pattern sections, 8-byte header included.
    """
    if len(pattern_sizes) != len(song.patterns):
        raise ValueError(
            f"got {len(pattern_sizes)} pattern sizes for {len(song.patterns)} patterns"
        )

    order_count = len(song.order_list) + 1
    sample_table_offset = HEADER_SIZE + order_count
    pattern_table_offset = sample_table_offset + 4 * len(song.samples)
    cursor = pattern_table_offset + 4 * len(song.patterns)

    # Optional sections live inside the header region.
    pattern_names_offset = None
    pnam_size = len(pattern_name_table(song))
    if pnam_size:
        pattern_names_offset = cursor
        cursor += pnam_size

    channel_names_offset = None
    cnam_size = len(channel_name_table(song))
    if cnam_size:
        channel_names_offset = cursor
        cursor += cnam_size

    message_offset = None
    message_length = len(message_bytes(song))
    if message_length:
        message_offset = cursor
        cursor += message_length
    check_range(message_length, where="message length", low=0, high=U16_MAX)

    header_size = cursor
    sample_header_size = SAMPLE_HEADER_SIZE * len(song.samples)
    sample_header_offsets = tuple(
        header_size + SAMPLE_HEADER_SIZE * i for i in range(len(song.samples))
    )

    pattern_offsets = []
    cursor = header_size + sample_header_size
    for size in pattern_sizes:
        pattern_offsets.append(cursor)
        cursor += size
    patterns_size = cursor - header_size - sample_header_size

    pcm_offsets = []
    pcm_sizes = []
    for sample in song.samples:
        size = pcm_size(sample)
        pcm_offsets.append(cursor)
        pcm_sizes.append(size)
        cursor += size

    if cursor > U32_MAX:
        raise LayoutOverflow(
            f"planned file size {cursor} bytes exceeds 32-bit offsets ({U32_MAX})"
        )

    return LayoutPlan(
        order_count=order_count,
        sample_table_offset=sample_table_offset,
        pattern_table_offset=pattern_table_offset,
        pattern_names_offset=pattern_names_offset,
        channel_names_offset=channel_names_offset,
        message_offset=message_offset,
        message_length=message_length,
        header_size=header_size,
        sample_header_size=sample_header_size,
        patterns_size=patterns_size,
        pcm_total_size=sum(pcm_sizes),
        sample_header_offsets=sample_header_offsets,
        pattern_offsets=tuple(pattern_offsets),
        pattern_sizes=tuple(pattern_sizes),
        pcm_offsets=tuple(pcm_offsets),
        pcm_sizes=tuple(pcm_sizes),
    )
