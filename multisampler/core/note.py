"""Note name and frequency conversions."""

import re
from typing import Optional

import numpy as np

from .constants import (
    PITCH_NAMES,
    NOTE_ALIASES,
    MIDI_MIN,
    MIDI_MAX,
    OCTAVE_MIN,
    OCTAVE_MAX,
)

_NOTE_NAME_RE = re.compile(r"^([A-Ga-g][#b]?)(-?\d)$")


def canonical_pitch_class(name: str) -> Optional[int]:
    """Pitch class index (0-11) of a note letter with optional accidental.

    Flat spellings resolve through NOTE_ALIASES (Bb -> A#, Cb -> B, ...).
    """
    key = name.upper()
    key = NOTE_ALIASES.get(key, key)
    if key not in PITCH_NAMES:
        return None
    return PITCH_NAMES.index(key)


def compose_midi(pitch_class: str, octave: int) -> Optional[int]:
    """Build a MIDI note from a note letter and an octave number."""
    index = canonical_pitch_class(pitch_class)
    if index is None or not OCTAVE_MIN <= octave <= OCTAVE_MAX:
        return None
    midi = (octave + 1) * 12 + index
    if not MIDI_MIN <= midi <= MIDI_MAX:
        return None
    return midi


def note_name_to_midi(name: str) -> Optional[int]:
    """Parse a full note name like 'C4', 'F#3' or 'Bb-1'."""
    match = _NOTE_NAME_RE.match(name.strip())
    if not match:
        return None
    return compose_midi(match.group(1), int(match.group(2)))


def midi_to_note_name(midi: int) -> str:
    """Get note name (e.g., 'C4', 'A#3')."""
    octave = (midi // 12) - 1
    return f"{PITCH_NAMES[midi % 12]}{octave}"


def midi_to_frequency(midi: float) -> float:
    """Convert MIDI pitch to frequency (Hz)."""
    return 440.0 * (2 ** ((midi - 69) / 12.0))


def frequency_to_midi(freq: float) -> Optional[int]:
    """Convert frequency (Hz) to the nearest MIDI pitch."""
    if not freq or freq <= 0 or not np.isfinite(freq):
        return None
    return int(round(12 * np.log2(freq / 440.0) + 69))
