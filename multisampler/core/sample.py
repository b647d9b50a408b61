"""Sample records that flow through the build pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from .note import midi_to_note_name


class Provenance(Enum):
    """How a sample's root note was determined."""

    FILENAME = "filename"
    WAVEFORM = "waveform"
    MANUAL = "manual"
    GAP_FILLED = "gap-filled"
    NONE = "none"


@dataclass
class PitchEstimate:
    """Root note of a sample together with where it came from."""

    note: Optional[int] = None
    provenance: Provenance = Provenance.NONE

    @property
    def is_known(self) -> bool:
        return self.note is not None

    def update(self, note: Optional[int], provenance: Provenance) -> None:
        """Record a note found by a detection stage."""
        if note is None:
            return
        self.note = int(note)
        self.provenance = provenance


@dataclass(frozen=True)
class InputSample:
    """A decoded source file.

    Attributes:
        name: Original filename
        audio: Waveform as (channels, frames) float32
        sample_rate: Native sample rate
        byte_length: Size of the undecoded file
    """

    name: str
    audio: np.ndarray
    sample_rate: int
    byte_length: int = 0

    @property
    def channels(self) -> int:
        return self.audio.shape[0]

    @property
    def frames(self) -> int:
        return self.audio.shape[1]

    @property
    def duration(self) -> float:
        return self.frames / self.sample_rate

    def mono(self) -> np.ndarray:
        """Average all channels into one."""
        return self.audio.mean(axis=0)


@dataclass
class ConditionedSample:
    """Stereo signal after the conditioning chain."""

    left: np.ndarray
    right: np.ndarray
    sample_rate: int
    max_duration: float
    truncated: bool = False

    @property
    def frames(self) -> int:
        return len(self.left)


@dataclass(frozen=True)
class EncodedSample:
    """Serialized PCM WAV data for one sample."""

    data: bytes
    frames: int
    sample_rate: int
    bit_depth: int


@dataclass
class ProcessedSample:
    """A sample that has been through detection, conditioning and encoding."""

    name: str
    pitch: PitchEstimate
    encoded: EncodedSample
    max_duration: float
    truncated: bool = False
    group: Optional[str] = None
    source: Optional[InputSample] = field(default=None, repr=False)

    @property
    def note(self) -> Optional[int]:
        return self.pitch.note

    @property
    def note_name(self) -> str:
        if self.pitch.note is None:
            return "?"
        return midi_to_note_name(self.pitch.note)

    @property
    def frames(self) -> int:
        return self.encoded.frames
