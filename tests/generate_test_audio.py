"""Generate a labelled sample pack for trying out the builder."""

import numpy as np
import os
from scipy.io import wavfile

from multisampler.core import midi_to_frequency, midi_to_note_name

# Ensure output directory exists
EXAMPLES_DIR = os.path.join(os.path.dirname(__file__), "..", "examples")
os.makedirs(EXAMPLES_DIR, exist_ok=True)


def generate_tone(freq: float, duration: float, sr: int = 44100, decay: float = 2.0) -> np.ndarray:
    """Generate a plucked tone: fundamental plus two harmonics, exponential decay."""
    t = np.arange(int(sr * duration)) / sr
    tone = (
        np.sin(2 * np.pi * freq * t)
        + 0.3 * np.sin(2 * np.pi * 2 * freq * t)
        + 0.1 * np.sin(2 * np.pi * 3 * freq * t)
    )
    envelope = np.exp(-t * decay)
    attack = int(0.005 * sr)
    envelope[:attack] *= np.linspace(0, 1, attack)
    tone = tone * envelope
    max_abs = np.max(np.abs(tone)) or 1.0
    return (tone / max_abs * 0.8).astype(np.float32)


def with_silence(audio: np.ndarray, lead: float, tail: float, sr: int = 44100) -> np.ndarray:
    """Pad with leading and trailing silence."""
    return np.concatenate([
        np.zeros(int(sr * lead), dtype=np.float32),
        audio,
        np.zeros(int(sr * tail), dtype=np.float32),
    ])


def save_wav(subdir: str, filename: str, audio: np.ndarray, sr: int = 44100):
    """Save audio as 16-bit WAV file."""
    folder = os.path.join(EXAMPLES_DIR, subdir)
    os.makedirs(folder, exist_ok=True)
    audio_16bit = (np.clip(audio, -1, 1) * 32767).astype(np.int16)
    filepath = os.path.join(folder, filename)
    wavfile.write(filepath, sr, audio_16bit)
    print(f"Created: {filepath}")
    return filepath


def main():
    sr = 44100

    # 1. Chromatic-ish pack named by note (every minor 3rd, C2-C6)
    print("Generating named_notes/...")
    for midi in range(36, 85, 3):
        tone = generate_tone(midi_to_frequency(midi), 3.0, sr)
        save_wav("named_notes", f"Keys_{midi_to_note_name(midi)}.wav", with_silence(tone, 0.3, 1.0, sr), sr)

    # 2. Same notes named by MIDI number
    print("Generating midi_numbers/...")
    for midi in (48, 55, 60, 67, 72):
        save_wav("midi_numbers", f"{midi}.wav", generate_tone(midi_to_frequency(midi), 2.0, sr), sr)

    # 3. Unlabelled files (pitch detection)
    print("Generating unlabelled/...")
    for i, midi in enumerate((45, 57, 69)):
        save_wav("unlabelled", f"pluck_take{i + 1}.wav", generate_tone(midi_to_frequency(midi), 2.0, sr), sr)

    # 4. Velocity layers (soft / hard)
    print("Generating velocity_layers/...")
    for midi in (48, 60, 72):
        name = midi_to_note_name(midi)
        tone = generate_tone(midi_to_frequency(midi), 2.0, sr)
        save_wav("velocity_layers", f"Piano_{name}_soft.wav", tone * 0.3, sr)
        save_wav("velocity_layers", f"Piano_{name}_hard.wav", tone, sr)

    # 5. Long sustained high note (gets truncated)
    print("Generating long_note/...")
    save_wav("long_note", "Bell_C7.wav", generate_tone(midi_to_frequency(96), 8.0, sr, decay=0.2), sr)

    # 6. Silence and noise (edge cases)
    print("Generating edge_cases/...")
    save_wav("edge_cases", "silence.wav", np.zeros(sr * 2, dtype=np.float32), sr)
    rng = np.random.default_rng(0)
    save_wav("edge_cases", "noise.wav", (rng.standard_normal(sr) * 0.2).astype(np.float32), sr)

    print("\nAll test audio files generated!")


if __name__ == "__main__":
    main()
