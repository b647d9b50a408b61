"""Global constants for multisampler."""

# Pitch names (sharp spelling is canonical)
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Flat spellings mapped to their canonical name
NOTE_ALIASES = {
    "DB": "C#",
    "EB": "D#",
    "FB": "E",
    "GB": "F#",
    "AB": "G#",
    "BB": "A#",
    "CB": "B",
}

# MIDI ranges
MIDI_MIN = 0
MIDI_MAX = 127
PIANO_MIN = 21  # A0
PIANO_MAX = 108  # C8
OCTAVE_MIN = -1
OCTAVE_MAX = 9

# Default root for samples with no known pitch
DEFAULT_NOTE = 60  # C4
GAP_FILL_START = 48  # C3

# Pitch detection acceptance window (Hz)
PITCH_FREQ_MIN = 20.0
PITCH_FREQ_MAX = 5000.0

# Instrument file naming
MAX_NAME_LENGTH = 14
DEFAULT_SAMPLE_NAME = "sample"
DEFAULT_PRESET_NAME = "My Preset"
PATCH_FILENAME = "patch.json"

SUPPORTED_FORMATS = {
    ".wav", ".aif", ".aiff", ".flac", ".ogg", ".mp3", ".m4a", ".webm",
}
