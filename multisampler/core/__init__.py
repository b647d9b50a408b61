"""Core types and constants for multisampler."""

from .constants import (
    PITCH_NAMES,
    NOTE_ALIASES,
    PIANO_MIN,
    PIANO_MAX,
    DEFAULT_NOTE,
    GAP_FILL_START,
)
from .note import (
    note_name_to_midi,
    midi_to_note_name,
    midi_to_frequency,
    frequency_to_midi,
)
from .presets import Quality, BitDepth, Density
from .sample import (
    Provenance,
    PitchEstimate,
    InputSample,
    ConditionedSample,
    EncodedSample,
    ProcessedSample,
)
from .errors import (
    MultisamplerError,
    DecodeError,
    EmptyBatchError,
    NoInstrumentError,
)

__all__ = [
    "PITCH_NAMES",
    "NOTE_ALIASES",
    "PIANO_MIN",
    "PIANO_MAX",
    "DEFAULT_NOTE",
    "GAP_FILL_START",
    "note_name_to_midi",
    "midi_to_note_name",
    "midi_to_frequency",
    "frequency_to_midi",
    "Quality",
    "BitDepth",
    "Density",
    "Provenance",
    "PitchEstimate",
    "InputSample",
    "ConditionedSample",
    "EncodedSample",
    "ProcessedSample",
    "MultisamplerError",
    "DecodeError",
    "EmptyBatchError",
    "NoInstrumentError",
]
