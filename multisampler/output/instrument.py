"""Instrument assembly - Keyboard zones and the patch.json document."""

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..core import EncodedSample, ProcessedSample, midi_to_note_name
from ..core.constants import (
    MIDI_MAX,
    MAX_NAME_LENGTH,
    DEFAULT_SAMPLE_NAME,
)

CROSSFADE_FRACTION = 0.10

# Engine, envelope and effect settings of the generated patch. These are the
# device defaults for a multisampler patch; the pipeline never changes them.
ENGINE_DEFAULTS: Dict[str, Any] = {
    "bendrange": 0,
    "highpass": 0,
    "modulation": {
        "aftertouch": {"amount": 30719, "target": 4096},
        "modwheel": {"amount": 32767, "target": 10240},
        "pitchbend": {"amount": 16383, "target": 0},
        "velocity": {"amount": 16383, "target": 0},
    },
    "params": [16384] * 8,
    "playmode": "poly",
    "portamento.amount": 0,
    "portamento.type": 32767,
    "transpose": 0,
    "tuning.root": 0,
    "tuning.scale": 0,
    "velocity.sensitivity": 10240,
    "volume": 26214,
    "width": 3072,
}

ENVELOPE_DEFAULTS: Dict[str, Any] = {
    "amp": {"attack": 655, "decay": 5898, "release": 10485, "sustain": 21954},
    "filter": {"attack": 655, "decay": 5898, "release": 10485, "sustain": 21954},
}

FX_DEFAULTS: Dict[str, Any] = {
    "active": True,
    "params": [32767, 0, 9439, 0, 13107, 32767, 2948, 8847],
    "type": "svf",
}

LFO_DEFAULTS: Dict[str, Any] = {
    "active": False,
    "params": [19024, 32255, 4048, 17408, 0, 0, 0, 0],
    "type": "element",
}

PLATFORM = "OP-XY"
PATCH_TYPE = "multisampler"
PATCH_VERSION = 4


def sanitize_filename(name: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Make a name safe for the device's file system.

    Allowed characters are letters, digits, '#', '-', '(' and ')'. Anything
    else becomes '-', whitespace runs become a single '-', repeated dashes
    collapse, and the result is lower-cased and cut to max_length.

    'My Piano!' -> 'my-piano'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9\s#\-()]", "-", name)
    cleaned = re.sub(r"\s+", "-", cleaned)
    cleaned = re.sub(r"-+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned[:max_length] or DEFAULT_SAMPLE_NAME


@dataclass
class Zone:
    """One keyboard region of the instrument.

    lokey is the effective lower bound of the region; the emitted region
    always carries lokey 0 because the device picks samples by root note
    proximity and only reads the upper bound. A zone whose root repeats the
    next zone's root ends up with hikey < lokey and covers no keys.
    """

    lokey: int
    hikey: int
    root: int
    filename: str
    sample: EncodedSample = field(repr=False)
    crossfade: int = 0

    @property
    def is_empty(self) -> bool:
        return self.hikey < self.lokey

    @property
    def framecount(self) -> int:
        return self.sample.frames

    def to_region(self) -> Dict[str, Any]:
        """Region entry of patch.json."""
        frames = self.framecount
        return {
            "framecount": frames,
            "gain": 0,
            "hikey": self.hikey,
            "lokey": 0,
            "loop.crossfade": self.crossfade,
            "loop.enabled": False,
            "loop.end": frames,
            "loop.onrelease": False,
            "loop.start": 0,
            "pitch.keycenter": self.root,
            "reverse": False,
            "sample": self.filename,
            "sample.end": frames,
            "sample.start": 0,
            "tune": 0,
        }


@dataclass
class InstrumentDocument:
    """A complete instrument: its zones plus the fixed patch settings."""

    name: str
    sanitized_name: str
    zones: List[Zone] = field(default_factory=list)
    samples: List[ProcessedSample] = field(default_factory=list, repr=False)

    @property
    def sample_count(self) -> int:
        return len(self.zones)

    @property
    def folder_name(self) -> str:
        return f"{self.sanitized_name}.preset"

    @property
    def sample_files(self) -> Dict[str, bytes]:
        """Generated filename -> WAV bytes."""
        return {zone.filename: zone.sample.data for zone in self.zones}

    @property
    def total_bytes(self) -> int:
        return sum(len(zone.sample.data) for zone in self.zones)

    def to_dict(self) -> Dict[str, Any]:
        """The patch.json document."""
        return {
            "engine": copy.deepcopy(ENGINE_DEFAULTS),
            "envelope": copy.deepcopy(ENVELOPE_DEFAULTS),
            "fx": copy.deepcopy(FX_DEFAULTS),
            "lfo": copy.deepcopy(LFO_DEFAULTS),
            "octave": 0,
            "platform": PLATFORM,
            "regions": [zone.to_region() for zone in self.zones],
            "type": PATCH_TYPE,
            "version": PATCH_VERSION,
        }


def build_zones(samples: Sequence[ProcessedSample], sanitized_name: str) -> List[Zone]:
    """
    Map note-sorted samples onto the keyboard.

    Each sample's region ends one key below the next sample's root note; the
    highest one extends to 127. Together the zones cover 0-127 without gaps.

    Args:
        samples: Samples with notes, sorted ascending by note
        sanitized_name: Prefix for the generated filenames
    """
    zones = []
    used_names = set()
    lokey = 0

    for index, sample in enumerate(samples):
        if index < len(samples) - 1:
            hikey = samples[index + 1].note - 1
        else:
            hikey = MIDI_MAX

        filename = f"{sanitized_name}-{midi_to_note_name(sample.note)}.wav"
        suffix = 2
        while filename in used_names:
            filename = f"{sanitized_name}-{midi_to_note_name(sample.note)}-{suffix}.wav"
            suffix += 1
        used_names.add(filename)

        zones.append(
            Zone(
                lokey=lokey,
                hikey=hikey,
                root=sample.note,
                filename=filename,
                sample=sample.encoded,
                crossfade=int(sample.frames * CROSSFADE_FRACTION),
            )
        )
        lokey = max(lokey, hikey + 1)

    return zones


def build_instrument(samples: Sequence[ProcessedSample], name: str) -> InstrumentDocument:
    """
    Assemble an instrument from fully pitched samples.

    Args:
        samples: Samples that all have a note (order doesn't matter)
        name: Display name of the instrument

    Returns:
        InstrumentDocument

    Raises:
        ValueError: If a sample has no note or the list is empty
    """
    if not samples:
        raise ValueError("Cannot build an instrument without samples")
    missing = [s.name for s in samples if s.note is None]
    if missing:
        raise ValueError(f"Samples without a note: {', '.join(missing)}")

    ordered = sorted(samples, key=lambda s: s.note)
    sanitized = sanitize_filename(name)

    return InstrumentDocument(
        name=name,
        sanitized_name=sanitized,
        zones=build_zones(ordered, sanitized),
        samples=list(ordered),
    )
