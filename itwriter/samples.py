"""Sample headers (IMPS records) and their 16-bit PCM payloads."""

from __future__ import annotations

import struct

import numpy as np

from .errors import InconsistentSample
from .song import Sample
from .structs import (
    SAMPLE_FILENAME_WIDTH,
    SAMPLE_HEADER_SIZE,
    SAMPLE_MAGIC,
    SAMPLE_NAME_WIDTH,
    U32_MAX,
    check_range,
    fixed_text,
)

# IMPS record, 0x50 bytes:
#   magic, filename, NUL, GvL, Flg, Vol, name, Cvt, DfP, Length,
#   LoopBegin, LoopEnd, C5Speed, SusLoopBegin, SusLoopEnd, SamplePointer,
#   ViS, ViD, ViR, ViT
_SAMPLE_HEADER = struct.Struct("<4s12sBBBB26sBBIIIIIIIBBBB")

FLAG_HAS_SAMPLE = 0x01
FLAG_16BIT = 0x02
FLAG_STEREO = 0x04

SAMPLE_GLOBAL_VOLUME = 64
SAMPLE_VOLUME = 64
CONVERT_SIGNED = 0x01
SAMPLE_PAN = 0x20  # bit 7 clear: default pan not applied

BYTES_PER_FRAME = 2  # per channel, 16-bit


def validate_sample(sample: Sample, *, where: str = "sample") -> None:
    count = len(sample.channels)
    if count not in (1, 2):
        raise InconsistentSample(f"{where} has {count} channels; expected 1 or 2")
    if count == 2 and len(sample.channels[0]) != len(sample.channels[1]):
        raise InconsistentSample(
            f"{where} stereo channels differ in length "
            f"({len(sample.channels[0])} vs {len(sample.channels[1])})"
        )
    check_range(sample.frame_count, where=f"{where}.frames", low=0, high=U32_MAX)
    check_range(sample.sample_rate, where=f"{where}.sample_rate", low=0, high=U32_MAX)


def pcm_size(sample: Sample) -> int:
    """Byte size of the sample's PCM payload (all channels)."""

    return sample.frame_count * BYTES_PER_FRAME * len(sample.channels)


def sample_flags(sample: Sample) -> int:
    flags = FLAG_HAS_SAMPLE | FLAG_16BIT
    if sample.is_stereo:
        flags |= FLAG_STEREO
    return flags


def encode_sample_header(sample: Sample, pcm_offset: int, *, where: str = "sample") -> bytes:
    """Encode the 0x50-byte IMPS record pointing at `pcm_offset`.

    Loop, sustain loop and vibrato fields are always zero.  The length field
    counts frames of one channel, also for stereo samples.
    """
    validate_sample(sample, where=where)
    check_range(pcm_offset, where=f"{where}.pcm_offset", low=0, high=U32_MAX)
    record = _SAMPLE_HEADER.pack(
        SAMPLE_MAGIC,
        fixed_text(sample.dos_filename, SAMPLE_FILENAME_WIDTH),
        0,
        SAMPLE_GLOBAL_VOLUME,
        sample_flags(sample),
        SAMPLE_VOLUME,
        fixed_text(sample.display_name, SAMPLE_NAME_WIDTH),
        CONVERT_SIGNED,
        SAMPLE_PAN,
        sample.frame_count,
        0,
        0,
        sample.sample_rate,
        0,
        0,
        pcm_offset,
        0,
        0,
        0,
        0,
    )
    assert len(record) == SAMPLE_HEADER_SIZE
    return record


def float_to_pcm16(channel) -> np.ndarray:
    """Clamp to [-1, 1] and scale asymmetrically to little-endian int16.

    Negative values scale by 0x8000 and non-negative ones by 0x7FFF, so
    -1.0 -> -32768 and 1.0 -> 32767.  Results truncate toward zero; NaN
    encodes as silence.
    """
    values = np.nan_to_num(
        np.asarray(channel, dtype=np.float64), nan=0.0, posinf=1.0, neginf=-1.0
    )
    clamped = np.clip(values, -1.0, 1.0)
    scaled = np.where(clamped < 0, clamped * 0x8000, clamped * 0x7FFF)
    return np.trunc(scaled).astype("<i2")


def encode_pcm(sample: Sample) -> bytes:
    """Return the payload: one block per channel, left block first for stereo."""

    return b"".join(float_to_pcm16(channel).tobytes() for channel in sample.channels)
