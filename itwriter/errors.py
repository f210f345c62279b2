"""Exceptions raised while validating and serializing a song.

Every error is a ``ValueError`` so callers that only care about "bad input"
can catch that, while tooling can branch on the specific kind.
"""

from __future__ import annotations


class ITWriteError(ValueError):
    """Base class for every serialization failure."""


class InvalidNote(ITWriteError):
    """A note spelling is not ``<name><filler><octave>`` (e.g. ``C-5``)."""


class InvalidEffect(ITWriteError):
    """An effect token is not a letter A-Z followed by a hex parameter."""


class OutOfRange(ITWriteError):
    """A count, index, length or offset does not fit its field."""


class LayoutOverflow(OutOfRange):
    """The planned file is larger than 32-bit offsets can address."""


class InconsistentSample(ITWriteError):
    """A sample is neither mono nor stereo, or its stereo channels differ in length."""


class DanglingOrderReference(ITWriteError):
    """An order list entry points at a pattern that does not exist."""
