"""multisampler - Audio files to OP-XY multisample instruments.

Architecture Layers:
    1. core/        - Note math, presets, sample records, errors
    2. input/       - Decoding, resampling, filename notes, grouping
    3. analysis/    - Waveform pitch detection (McLeod, YIN)
    4. processing/  - Signal conditioning, density selection, gap filling
    5. output/      - WAV encoding, zone mapping, preset packaging
    6. pipeline     - Batch driver tying the layers together
"""

__version__ = "0.3.0"

# Core types
from .core import (
    Quality,
    BitDepth,
    Density,
    Provenance,
    PitchEstimate,
    InputSample,
    ProcessedSample,
    MultisamplerError,
    DecodeError,
    EmptyBatchError,
    NoInstrumentError,
)

# Input layer
from .input import AudioDecoder, NoteIdentifier, detect_groups

# Analysis layer
from .analysis import PitchAnalyzer

# Processing layer
from .processing import SignalConditioner, ConditionerConfig

# Output layer
from .output import InstrumentDocument, PresetWriter

# Batch driver
from .pipeline import (
    BuildConfig,
    BuildReport,
    BuildResult,
    SampleBatch,
    InstrumentBuilder,
    build_instruments,
)

__all__ = [
    "Quality",
    "BitDepth",
    "Density",
    "Provenance",
    "PitchEstimate",
    "InputSample",
    "ProcessedSample",
    "MultisamplerError",
    "DecodeError",
    "EmptyBatchError",
    "NoInstrumentError",
    "AudioDecoder",
    "NoteIdentifier",
    "detect_groups",
    "PitchAnalyzer",
    "SignalConditioner",
    "ConditionerConfig",
    "InstrumentDocument",
    "PresetWriter",
    "BuildConfig",
    "BuildReport",
    "BuildResult",
    "SampleBatch",
    "InstrumentBuilder",
    "build_instruments",
]
