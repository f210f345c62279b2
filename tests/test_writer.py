from pathlib import Path
import math
import struct
import sys

import numpy as np
import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from itwriter.errors import (  # noqa: E402
    DanglingOrderReference,
    InconsistentSample,
    InvalidEffect,
    LayoutOverflow,
    OutOfRange,
)
from itwriter.samples import encode_pcm  # noqa: E402
from itwriter.song import Event, Pattern, Sample, Song  # noqa: E402
from itwriter.writer import serialize, write_it  # noqa: E402


def _u16(data: bytes, offset: int) -> int:
    return struct.unpack_from("<H", data, offset)[0]


def _u32(data: bytes, offset: int) -> int:
    return struct.unpack_from("<I", data, offset)[0]


def _tables(data: bytes) -> tuple[list[int], list[int]]:
    orders = _u16(data, 0x20)
    samples = _u16(data, 0x24)
    patterns = _u16(data, 0x26)
    base = 0xC0 + orders
    sample_offsets = [_u32(data, base + 4 * i) for i in range(samples)]
    base += 4 * samples
    pattern_offsets = [_u32(data, base + 4 * i) for i in range(patterns)]
    return sample_offsets, pattern_offsets


def _scenario_song() -> Song:
    return Song(
        title="scenario",
        samples=[Sample(name="tone", channels=[[0.0] * 10])],
        patterns=[Pattern(rows=4, channels=[{0: Event(note="C-5", instrument=0, vol="v64")}])],
    )


def _sine(frames: int, step: float = 0.1) -> list[float]:
    return [math.sin(i * step) for i in range(frames)]


@pytest.fixture(scope="module")
def rich_song() -> Song:
    sine = _sine(441)
    return Song(
        title="itwriter example with a long title",
        tempo=180,
        ticks=4,
        mix_volume=64,
        message="made by itwriter\nsecond line",
        order=[1, 0, 254, 1],
        samples=[
            Sample(name="piano", filename="000000156.wav", sample_rate=44100, channels=[sine]),
            Sample(name="pad", sample_rate=22050, channels=[sine[:100], sine[100:200]]),
            Sample(name="empty", channels=[[]]),
        ],
        patterns=[
            Pattern(
                rows=64,
                name="verse",
                channels=[
                    {
                        0: Event(note="E-6", instrument=0, vol="v64", fx="SD1"),
                        4: Event(note="C-6", instrument=0, vol="v64", fx="SD1"),
                    },
                    {
                        2: Event(note="E-6", instrument=1, vol="p16"),
                        4: Event(note="G-6", instrument=1),
                    },
                ],
            ),
            Pattern(rows=32, channels=[{}, {31: Event(fx="C00")}]),
        ],
        channel_names=["piano", "drums"],
    )


def test_scenario_single_note() -> None:
    data = serialize(_scenario_song())
    assert data[:4] == b"IMPM"
    assert _u16(data, 0x20) == 2
    assert _u16(data, 0x22) == 0
    assert _u16(data, 0x24) == 1
    assert _u16(data, 0x26) == 1
    assert data[0xC0:0xC2] == bytes([0, 0xFF])

    header_size = 0xC0 + 2 + 4 + 4
    (sample_offset,), (pattern_offset,) = _tables(data)
    assert sample_offset == header_size
    assert pattern_offset == header_size + 0x50
    assert data[pattern_offset : pattern_offset + 17] == bytes.fromhex(
        "0900 0400 00000000 81 07 3c 01 40 00 00 00 00"
    )
    pcm_offset = _u32(data, sample_offset + 0x48)
    assert pcm_offset == header_size + 0x50 + 17
    assert len(data) == pcm_offset + 20
    assert data[pcm_offset:] == bytes(20)


def test_fixed_header_defaults() -> None:
    data = serialize(_scenario_song())
    assert data[0x04:0x1E] == b"scenario".ljust(26, b"\x00")
    assert data[0x1E:0x20] == bytes([4, 16])
    assert _u16(data, 0x28) == 0x5129
    assert _u16(data, 0x2A) == 0x0214
    assert _u16(data, 0x2C) == 0x0049
    assert _u16(data, 0x2E) == 0x0004
    assert data[0x30:0x36] == bytes([0x80, 48, 6, 120, 0x80, 0])
    assert _u16(data, 0x36) == 0
    assert _u32(data, 0x38) == 0
    assert _u32(data, 0x3C) == 0
    assert data[0x40:0x80] == bytes([0x20]) * 64
    assert data[0x80:0xC0] == bytes([0x40]) * 64


def test_created_with_override() -> None:
    data = serialize(_scenario_song(), created_with=0x0217)
    assert _u16(data, 0x28) == 0x0217


def test_caller_header_fields(rich_song: Song) -> None:
    data = serialize(rich_song)
    assert data[0x31] == 64
    assert data[0x32] == 4
    assert data[0x33] == 180
    assert data[0x04:0x1E] == b"itwriter example with a lo"


def test_offset_integrity(rich_song: Song) -> None:
    data = serialize(rich_song)
    sample_offsets, pattern_offsets = _tables(data)
    assert len(sample_offsets) == 3
    assert len(pattern_offsets) == 2

    for offset in sample_offsets:
        assert data[offset : offset + 4] == b"IMPS"

    # Patterns are contiguous and each length prefix covers its own rows.
    for idx, offset in enumerate(pattern_offsets):
        section_end = offset + 8 + _u16(data, offset)
        expected_end = (
            pattern_offsets[idx + 1]
            if idx + 1 < len(pattern_offsets)
            else _u32(data, sample_offsets[0] + 0x48)
        )
        assert section_end == expected_end
        assert _u16(data, offset + 2) == rich_song.patterns[idx].rows

    # Each PCM payload runs exactly up to the next one (or EOF).
    pcm_offsets = [_u32(data, off + 0x48) for off in sample_offsets]
    ends = pcm_offsets[1:] + [len(data)]
    for sample, start, end in zip(rich_song.samples, pcm_offsets, ends):
        assert end - start == sample.frame_count * 2 * len(sample.channels)
        assert data[start:end] == encode_pcm(sample)


def test_order_list_and_markers(rich_song: Song) -> None:
    data = serialize(rich_song)
    assert _u16(data, 0x20) == 5
    assert data[0xC0:0xC5] == bytes([1, 0, 254, 1, 0xFF])


def test_message_and_name_tables(rich_song: Song) -> None:
    data = serialize(rich_song)
    assert _u16(data, 0x2E) & 0x0001
    tables_end = 0xC0 + 5 + 4 * 3 + 4 * 2
    assert data[tables_end : tables_end + 4] == b"PNAM"
    assert _u32(data, tables_end + 4) == 2 * 32
    assert data[tables_end + 8 : tables_end + 13] == b"verse"
    cnam = tables_end + 8 + 64
    assert data[cnam : cnam + 4] == b"CNAM"
    assert _u32(data, cnam + 4) == 2 * 20
    assert data[cnam + 8 : cnam + 28] == b"piano".ljust(20, b"\x00")

    msg_length = _u16(data, 0x36)
    msg_offset = _u32(data, 0x38)
    assert msg_offset == cnam + 8 + 40
    assert data[msg_offset : msg_offset + msg_length] == b"made by itwriter\rsecond line\x00"
    sample_offsets, _ = _tables(data)
    assert sample_offsets[0] == msg_offset + msg_length


def test_stereo_sample_size_and_length_field(rich_song: Song) -> None:
    data = serialize(rich_song)
    sample_offsets, _ = _tables(data)
    stereo_header = sample_offsets[1]
    assert data[stereo_header + 0x12] == 0x07
    assert _u32(data, stereo_header + 0x30) == 100
    assert _u32(data, stereo_header + 0x3C) == 22050
    start = _u32(data, stereo_header + 0x48)
    end = _u32(data, sample_offsets[2] + 0x48)
    assert end - start == 100 * 2 * 2


def test_text_is_truncated_not_rejected() -> None:
    song = Song(
        title="T" * 40,
        samples=[Sample(name="n" * 30, filename="f" * 20, channels=[[0.0]])],
    )
    data = serialize(song)
    assert data[0x04:0x1E] == b"T" * 26
    sample_offsets, _ = _tables(data)
    header = sample_offsets[0]
    assert data[header + 4 : header + 16] == b"f" * 12
    assert data[header + 0x14 : header + 0x2E] == b"n" * 26


def test_empty_song() -> None:
    data = serialize(Song())
    assert len(data) == 0xC0 + 1
    assert data[0xC0] == 0xFF
    assert _u16(data, 0x20) == 1


def test_serialize_is_deterministic(rich_song: Song) -> None:
    assert serialize(rich_song) == serialize(rich_song)


@pytest.mark.parametrize(
    "song, error",
    [
        (Song(patterns=[Pattern()], order=[0, 3]), DanglingOrderReference),
        (Song(samples=[Sample(channels=[[0.0], [0.0, 0.0]])]), InconsistentSample),
        (Song(patterns=[Pattern(rows=2, channels=[{1: Event(fx="QQQ")}])]), InvalidEffect),
        (Song(samples=[Sample(channels=[range(2**31)])]), LayoutOverflow),
        (Song(patterns=[Pattern(rows=1)], order=[0, 254.0]), OutOfRange),
    ],
)
def test_validation_errors(song: Song, error: type) -> None:
    with pytest.raises(error):
        serialize(song)


def test_write_it_writes_file(tmp_path: Path) -> None:
    out = write_it(_scenario_song(), tmp_path / "nested" / "song.it")
    assert out.read_bytes() == serialize(_scenario_song())


def test_write_it_leaves_no_file_on_error(tmp_path: Path) -> None:
    target = tmp_path / "bad.it"
    with pytest.raises(DanglingOrderReference):
        write_it(Song(order=[0]), target)
    assert not target.exists()


def test_stereo_sample_from_2d_array() -> None:
    song = Song(
        samples=[Sample(name="pad", channels=np.zeros((2, 10)))],
        patterns=[Pattern(rows=1)],
    )
    data = serialize(song)
    sample_offsets, _ = _tables(data)
    header = sample_offsets[0]
    assert data[header + 0x12] == 0x07
    assert _u32(data, header + 0x30) == 10
    start = _u32(data, header + 0x48)
    assert data[start:] == bytes(10 * 2 * 2)
