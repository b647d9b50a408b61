"""Root note detection from sample filenames."""

import re
from pathlib import PurePath
from typing import Callable, Dict, Mapping, Optional, Union

import numpy as np

from ..core import PIANO_MIN, PIANO_MAX, Provenance, PitchEstimate, note_name_to_midi
from ..core.note import compose_midi

# Letter, optional accidental, optional sign, one octave digit (C#3, Bb-1)
_NOTE_TOKEN_RE = re.compile(r"([A-G][#b]?)(-?\d)", re.IGNORECASE)
# A bare MIDI note number
_MIDI_NUMBER_RE = re.compile(r"\b(\d{1,3})\b")

WaveformDetector = Callable[[np.ndarray, int], Optional[int]]


def strip_extension(filename: str) -> str:
    """Filename without directories and without its final extension."""
    return re.sub(r"\.[^/.]+$", "", PurePath(filename).name)


def parse_note_from_filename(filename: str) -> Optional[int]:
    """Detect a MIDI note from a filename.

    Note names may appear anywhere in the name; the rightmost one wins since
    sample packs tend to put unrelated numbers first and the note tag last:

        "C#3.wav"            -> 49
        "pianotest3-A3.wav"  -> 57
        "Piano_F#4_loud.wav" -> 66

    Names without a note token fall back to a bare number in the piano
    range (21-108), read as a MIDI note number.

    Args:
        filename: Sample filename, with or without extension

    Returns:
        MIDI note number, or None when nothing usable is found
    """
    name = strip_extension(filename)

    matches = list(_NOTE_TOKEN_RE.finditer(name))
    if matches:
        last = matches[-1]
        midi = compose_midi(last.group(1), int(last.group(2)))
        if midi is not None:
            return midi

    number = _MIDI_NUMBER_RE.search(name)
    if number:
        midi = int(number.group(1))
        if PIANO_MIN <= midi <= PIANO_MAX:
            return midi

    return None


def parse_manual_note(value: Union[int, str]) -> int:
    """Read a manually entered note given as a number or a note name.

    Raises:
        ValueError: If the value is not a valid note
    """
    if isinstance(value, (int, np.integer)):
        midi = int(value)
    else:
        text = str(value).strip()
        midi = int(text) if text.lstrip("-").isdigit() else note_name_to_midi(text)
    if midi is None or not 0 <= midi <= 127:
        raise ValueError(f"Invalid note: {value!r}")
    return midi


class NoteIdentifier:
    """Resolve a sample's root note.

    Order of precedence: manual entry, filename, waveform analysis. The
    waveform detector is pluggable so callers can swap in their own
    analyzer (or disable it by passing None).
    """

    def __init__(
        self,
        waveform_detector: Optional[WaveformDetector] = None,
        manual_notes: Optional[Mapping[str, Union[int, str]]] = None,
    ):
        """
        Initialize NoteIdentifier.

        Args:
            waveform_detector: Callable (mono audio, sr) -> MIDI note or None
            manual_notes: Mapping of filename -> note number or note name
        """
        self.waveform_detector = waveform_detector
        self.manual_notes: Dict[str, int] = {
            name: parse_manual_note(note) for name, note in (manual_notes or {}).items()
        }

    def identify(
        self,
        filename: str,
        audio: Optional[np.ndarray] = None,
        sr: Optional[int] = None,
        parse_name: Optional[str] = None,
    ) -> PitchEstimate:
        """
        Identify the root note of one sample.

        Args:
            filename: Sample filename (key for manual notes)
            audio: Waveform, used only if the filename has no note
            sr: Sample rate of audio
            parse_name: Name to parse for a note instead of filename, e.g.
                with a group suffix removed

        Returns:
            PitchEstimate (note None with provenance NONE when undetermined)
        """
        estimate = PitchEstimate()

        manual = self.manual_notes.get(filename)
        if manual is None:
            manual = self.manual_notes.get(PurePath(filename).name)
        if manual is not None:
            estimate.update(manual, Provenance.MANUAL)
            return estimate

        estimate.update(parse_note_from_filename(parse_name or filename), Provenance.FILENAME)

        if not estimate.is_known and self.waveform_detector and audio is not None and sr:
            estimate.update(self.waveform_detector(audio, sr), Provenance.WAVEFORM)

        return estimate
