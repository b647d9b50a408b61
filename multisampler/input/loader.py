"""Audio decoding and resampling utilities."""

import io
import os
import tempfile
import warnings
from pathlib import Path
from typing import Union

import numpy as np
import librosa
import soundfile as sf

from ..core import DecodeError, InputSample
from ..core.constants import SUPPORTED_FORMATS


class AudioDecoder:
    """Decodes audio files into (channels, frames) float32 waveforms.

    Unlike a typical analysis loader this keeps the native sample rate and
    every channel; resampling and channel handling happen later in the
    pipeline.
    """

    SUPPORTED_FORMATS = SUPPORTED_FORMATS

    def is_supported(self, path: Union[str, Path]) -> bool:
        return Path(path).suffix.lower() in self.SUPPORTED_FORMATS

    def load(self, path: Union[str, Path]) -> InputSample:
        """
        Read and decode an audio file.

        Args:
            path: Path to audio file

        Returns:
            InputSample

        Raises:
            FileNotFoundError: If file doesn't exist
            DecodeError: If the file is unsupported or can't be decoded
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        if not self.is_supported(path):
            raise DecodeError(
                path.name,
                f"unsupported format {path.suffix} (supported: {sorted(self.SUPPORTED_FORMATS)})",
            )

        return self.decode(path.read_bytes(), path.name)

    def decode(self, data: bytes, filename: str) -> InputSample:
        """
        Decode an in-memory audio file.

        Args:
            data: Raw file bytes
            filename: Original filename (used for format hints and messages)

        Returns:
            InputSample with audio shaped (channels, frames)

        Raises:
            DecodeError: If neither soundfile nor librosa can read the data
        """
        if not data:
            raise DecodeError(filename, "empty file")

        try:
            audio, sr = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
            audio = audio.T
        except (sf.LibsndfileError, RuntimeError, TypeError) as e:
            warnings.warn(f"soundfile could not read {filename} ({e}), retrying with librosa")
            audio, sr = self._decode_with_librosa(data, filename)

        audio = np.ascontiguousarray(audio, dtype=np.float32)
        if audio.ndim != 2 or audio.shape[1] == 0:
            raise DecodeError(filename, "no audio frames")
        if not np.all(np.isfinite(audio)):
            audio = np.nan_to_num(audio, nan=0.0, posinf=0.0, neginf=0.0)

        return InputSample(
            name=filename,
            audio=audio,
            sample_rate=int(sr),
            byte_length=len(data),
        )

    def _decode_with_librosa(self, data: bytes, filename: str):
        """Fallback decoder for formats libsndfile can't handle (m4a, webm)."""
        suffix = Path(filename).suffix or ".bin"
        fd, tmp_path = tempfile.mkstemp(suffix=suffix, prefix="multisampler_")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            audio, sr = librosa.load(tmp_path, sr=None, mono=False)
        except Exception as e:
            raise DecodeError(filename, str(e)) from e
        finally:
            os.remove(tmp_path)

        if audio.ndim == 1:
            audio = audio[np.newaxis, :]
        return audio, sr


def resample(audio: np.ndarray, orig_sr: int, target_sr: int) -> np.ndarray:
    """
    Band-limited resampling along the last axis.

    Args:
        audio: Waveform, (frames,) or (channels, frames)
        orig_sr: Source sample rate
        target_sr: Target sample rate

    Returns:
        Resampled float32 waveform (the input itself when rates match)
    """
    if orig_sr == target_sr:
        return audio
    resampled = librosa.resample(
        audio,
        orig_sr=orig_sr,
        target_sr=target_sr,
        res_type="soxr_hq",
        axis=-1,
    )
    return resampled.astype(np.float32, copy=False)


def to_stereo(audio: np.ndarray) -> np.ndarray:
    """Return a (2, frames) view: mono is duplicated, extra channels dropped."""
    if audio.ndim == 1:
        audio = audio[np.newaxis, :]
    if audio.shape[0] == 1:
        return np.vstack([audio[0], audio[0]])
    return audio[:2]
