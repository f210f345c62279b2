"""Write Impulse Tracker (.it) modules from an in-memory song description."""

from .errors import (  # noqa: F401
    DanglingOrderReference,
    ITWriteError,
    InconsistentSample,
    InvalidEffect,
    InvalidNote,
    LayoutOverflow,
    OutOfRange,
)
from .events import (  # noqa: F401
    encode_event,
    event_mask,
    fx_to_value,
    instrument_to_value,
    note_to_value,
    vol_to_value,
)
from .json_song_spec import load_song_spec, parse_song_spec  # noqa: F401
from .layout import LayoutPlan, plan_layout  # noqa: F401
from .patterns import pack_pattern  # noqa: F401
from .samples import encode_pcm, encode_sample_header, pcm_size  # noqa: F401
from .song import Event, Pattern, Sample, Song  # noqa: F401
from .structs import (  # noqa: F401
    HEADER_SIZE,
    MAGIC,
    PATTERN_HEADER_SIZE,
    SAMPLE_HEADER_SIZE,
    SAMPLE_MAGIC,
)
from .writer import serialize, write_it  # noqa: F401
