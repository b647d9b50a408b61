"""Input layer - Decoding, resampling and filename metadata."""

from .loader import AudioDecoder, resample, to_stereo
from .filename import (
    NoteIdentifier,
    parse_note_from_filename,
    parse_manual_note,
    strip_extension,
)
from .grouping import GroupingResult, detect_groups, strip_group_suffix

__all__ = [
    "AudioDecoder",
    "resample",
    "to_stereo",
    "NoteIdentifier",
    "parse_note_from_filename",
    "parse_manual_note",
    "strip_extension",
    "GroupingResult",
    "detect_groups",
    "strip_group_suffix",
]
