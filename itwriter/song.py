"""In-memory song description consumed by the serializer.

The serializer never mutates these objects.  Callers build them directly or
through :mod:`itwriter.json_song_spec`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence


@dataclass(frozen=True)
class Event:
    """One cell of a pattern; every field is independently optional."""

    note: Optional[str] = None  # "C-5"
    instrument: Optional[int] = None  # 0-based sample index
    vol: Optional[str] = None  # "v64", "p32", ...
    fx: Optional[str] = None  # "SD1"

    @property
    def is_empty(self) -> bool:
        return (
            self.note is None
            and self.instrument is None
            and self.vol is None
            and self.fx is None
        )


@dataclass(frozen=True)
class Sample:
    name: str = ""
    filename: Optional[str] = None
    sample_rate: int = 44100
    channels: Sequence[Sequence[float]] = ()  # 1 (mono) or 2 (stereo) channels

    @property
    def frame_count(self) -> int:
        """Length of one channel in sample frames."""
        if len(self.channels) == 0:
            return 0
        return len(self.channels[0])

    @property
    def is_stereo(self) -> bool:
        return len(self.channels) == 2

    @property
    def display_name(self) -> str:
        return self.name or self.filename or ""

    @property
    def dos_filename(self) -> str:
        return self.filename or self.name or ""


@dataclass(frozen=True)
class Pattern:
    rows: int = 64
    channels: List[Dict[int, Event]] = field(default_factory=list)
    name: str = ""

    @property
    def event_count(self) -> int:
        return sum(
            1
            for channel in self.channels
            for event in channel.values()
            if event is not None and not event.is_empty
        )


@dataclass(frozen=True)
class Song:
    title: str = ""
    tempo: int = 120  # BPM
    ticks: int = 6  # ticks per row
    mix_volume: int = 48
    message: Optional[str] = None
    order: Optional[List[int]] = None  # None plays every pattern once
    samples: List[Sample] = field(default_factory=list)
    patterns: List[Pattern] = field(default_factory=list)
    channel_names: List[str] = field(default_factory=list)

    @property
    def order_list(self) -> List[int]:
        if self.order is None:
            return list(range(len(self.patterns)))
        return list(self.order)
