"""Translate pattern events into the byte values stored in packed patterns.

Field encodings:
  Note        "C-5"  -> octave * 12 + semitone  (C-0 = 0, B-9 = 119)
  Instrument  0-based sample index -> index + 1  (0 means "no instrument")
  Volume      "<class><decimal>" -> class base + magnitude

                v  set volume          0      p  set panning       128
                a  fine vol slide up  65      b  fine vol slide dn  75
                c  vol slide up       85      d  vol slide down     95
                e  portamento down   105      f  portamento up     115
                g  tone portamento   193      h  vibrato depth     203

  Effect      "<A-Z><hex>" -> (letter - 'A' + 1, parameter)  e.g. "SD1" -> (19, 0xD1)

Mask bits, in the order the encoded fields follow the mask byte:
  0x01 note, 0x02 instrument, 0x04 volume, 0x08 effect (two bytes)
"""

from __future__ import annotations

import logging
import string
from types import MappingProxyType
from typing import Mapping, Tuple

from .errors import InvalidEffect, InvalidNote, OutOfRange
from .song import Event
from .structs import U8_MAX


log = logging.getLogger(__name__)

NOTE_NAMES: Tuple[str, ...] = (
    "C-", "C#", "D-", "D#", "E-", "F-", "F#", "G-", "G#", "A-", "A#", "B-",
)
_NOTE_INDEX: Mapping[str, int] = MappingProxyType(
    {name: idx for idx, name in enumerate(NOTE_NAMES)}
)

VOLUME_CLASS_BASE: Mapping[str, int] = MappingProxyType(
    {
        "v": 0,
        "p": 128,
        "a": 65,
        "b": 75,
        "c": 85,
        "d": 95,
        "e": 105,
        "f": 115,
        "g": 193,
        "h": 203,
    }
)

MASK_NOTE = 0x01
MASK_INSTRUMENT = 0x02
MASK_VOLUME = 0x04
MASK_EFFECT = 0x08


def note_to_value(note: str) -> int:
    if not isinstance(note, str) or len(note) != 3:
        raise InvalidNote(f"note {note!r} must look like 'C-5'")
    idx = _NOTE_INDEX.get(note[:2])
    if idx is None:
        raise InvalidNote(f"unknown note name {note[:2]!r} in {note!r}")
    octave = note[2]
    if octave not in string.digits:
        raise InvalidNote(f"octave {octave!r} in {note!r} is not a digit")
    return int(octave) * 12 + idx


def instrument_to_value(idx: int) -> int:
    value = idx + 1
    if not (1 <= value <= U8_MAX):
        raise OutOfRange(f"instrument index {idx} must be in [0, {U8_MAX - 1}]")
    return value


def vol_to_value(token: str) -> int:
    """Encode a volume-column token.

    Unknown class letters and unparseable magnitudes encode as 0 and are
    logged rather than raised.
    """
    base = VOLUME_CLASS_BASE.get(token[:1])
    magnitude = token[1:]
    if base is None:
        log.warning("unknown volume class in %r; encoding as 0", token)
        return 0
    if not magnitude or not all(ch in string.digits for ch in magnitude):
        log.warning("non-decimal volume magnitude in %r; encoding as 0", token)
        return 0
    value = base + int(magnitude)
    if value > U8_MAX:
        raise OutOfRange(f"volume token {token!r} encodes to {value} (> {U8_MAX})")
    return value


def fx_to_value(token: str) -> Tuple[int, int]:
    if not isinstance(token, str) or not token:
        raise InvalidEffect(f"effect {token!r} must look like 'SD1'")
    letter, param = token[0], token[1:]
    if letter not in string.ascii_uppercase:
        raise InvalidEffect(f"effect command {letter!r} in {token!r} is not A-Z")
    if not (1 <= len(param) <= 2) or not all(ch in string.hexdigits for ch in param):
        raise InvalidEffect(f"effect parameter {param!r} in {token!r} is not 2-digit hex")
    return ord(letter) - ord("A") + 1, int(param, 16)


def event_mask(event: Event) -> int:
    mask = 0
    if event.note is not None:
        mask |= MASK_NOTE
    if event.instrument is not None:
        mask |= MASK_INSTRUMENT
    if event.vol is not None:
        mask |= MASK_VOLUME
    if event.fx is not None:
        mask |= MASK_EFFECT
    return mask


def encode_event(event: Event) -> bytes:
    """Return the mask byte followed by the encoded present fields."""

    mask = event_mask(event)
    buf = bytearray([mask])
    if mask & MASK_NOTE:
        buf.append(note_to_value(event.note))
    if mask & MASK_INSTRUMENT:
        buf.append(instrument_to_value(event.instrument))
    if mask & MASK_VOLUME:
        buf.append(vol_to_value(event.vol))
    if mask & MASK_EFFECT:
        buf.extend(fx_to_value(event.fx))
    return bytes(buf)
