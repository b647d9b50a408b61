"""Output layer - Encoding and packaging.

This layer turns processed samples into a device instrument:
- Stereo PCM WAV encoding (16/24 bit)
- Keyboard zone mapping and patch.json assembly
- Preset folders / zip archive
"""

from .wav import encode_wav, encode_sample, read_wav_header, WavInfo
from .instrument import (
    Zone,
    InstrumentDocument,
    build_instrument,
    build_zones,
    sanitize_filename,
)
from .preset import PresetWriter, build_archive, preset_tree, archive_name

__all__ = [
    "encode_wav",
    "encode_sample",
    "read_wav_header",
    "WavInfo",
    "Zone",
    "InstrumentDocument",
    "build_instrument",
    "build_zones",
    "sanitize_filename",
    "PresetWriter",
    "build_archive",
    "preset_tree",
    "archive_name",
]
