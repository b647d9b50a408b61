"""Root pitch estimation for single-note samples.

Two independent estimators are chained:

1. McLeod pitch method (normalized square difference function). Gives a
   clarity score, so it is trusted only above a clarity threshold.
2. YIN (librosa) over the same window, used when the first one gives
   nothing usable.

Both analyse at most the first second of the sample, which is where the
pitch of a one-shot recording is most stable. Neither raises on silent or
degenerate input: they simply return None.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import librosa

from ..core import PIANO_MIN, PIANO_MAX, frequency_to_midi
from ..core.constants import PITCH_FREQ_MIN, PITCH_FREQ_MAX


@dataclass(frozen=True)
class PitchResult:
    """A detected root pitch."""

    midi_note: int
    frequency: float
    method: str
    clarity: Optional[float] = None


def mcleod_pitch(
    audio: np.ndarray,
    sr: int,
    cutoff: float = 0.9,
) -> Tuple[float, float]:
    """
    Estimate pitch with the McLeod pitch method.

    Args:
        audio: Mono waveform (one analysis window)
        sr: Sample rate
        cutoff: Fraction of the highest NSDF key maximum a peak must reach
            to be picked

    Returns:
        Tuple of (frequency in Hz, clarity in [0, 1]); (0.0, 0.0) when no
        periodicity is found
    """
    x = np.asarray(audio, dtype=np.float64)
    n = len(x)
    if n < 4 or not np.any(x):
        return 0.0, 0.0

    # Autocorrelation through the FFT (zero padded to avoid wrap-around)
    size = 1 << int(np.ceil(np.log2(2 * n)))
    spectrum = np.fft.rfft(x, size)
    acf = np.fft.irfft(spectrum * np.conj(spectrum), size)[:n]

    max_lag = n // 2
    lags = np.arange(max_lag)
    energy = np.concatenate(([0.0], np.cumsum(x * x)))
    m = energy[n - lags] + (energy[n] - energy[lags])
    with np.errstate(divide="ignore", invalid="ignore"):
        nsdf = np.where(m > 0, 2.0 * acf[:max_lag] / m, 0.0)

    key_maxima = _key_maxima(nsdf)
    if not key_maxima:
        return 0.0, 0.0

    highest = max(nsdf[i] for i in key_maxima)
    threshold = cutoff * highest
    chosen = next(i for i in key_maxima if nsdf[i] >= threshold)

    lag, clarity = _parabolic_peak(nsdf, chosen)
    if lag <= 0:
        return 0.0, 0.0
    return float(sr / lag), float(min(max(clarity, 0.0), 1.0))


def _key_maxima(nsdf: np.ndarray) -> list:
    """Highest NSDF value between each positive and negative zero crossing.

    The initial positive lobe around lag 0 is skipped.
    """
    maxima = []
    pos = 0
    size = len(nsdf)

    while pos < size - 1 and nsdf[pos] > 0:
        pos += 1
    while pos < size - 1 and nsdf[pos] <= 0:
        pos += 1

    while pos < size - 1:
        best = pos
        while pos < size - 1 and nsdf[pos] > 0:
            if nsdf[pos] > nsdf[best]:
                best = pos
            pos += 1
        maxima.append(best)
        while pos < size - 1 and nsdf[pos] <= 0:
            pos += 1

    return [i for i in maxima if nsdf[i] > 0]


def _parabolic_peak(values: np.ndarray, index: int) -> Tuple[float, float]:
    """Refine a peak position and height by fitting a parabola."""
    if index <= 0 or index >= len(values) - 1:
        return float(index), float(values[index])
    left, center, right = values[index - 1], values[index], values[index + 1]
    denom = left - 2 * center + right
    if denom == 0:
        return float(index), float(center)
    shift = 0.5 * (left - right) / denom
    height = center - 0.25 * (left - right) * shift
    return index + shift, height


class PitchAnalyzer:
    """Root note detection from a sample's waveform."""

    def __init__(
        self,
        clarity_threshold: float = 0.8,
        analysis_seconds: float = 1.0,
        fmin: float = PITCH_FREQ_MIN,
        fmax: float = PITCH_FREQ_MAX,
        note_range: Tuple[int, int] = (PIANO_MIN, PIANO_MAX),
        yin_fmin: float = 27.5,  # A0
    ):
        """
        Initialize PitchAnalyzer.

        Args:
            clarity_threshold: Minimum McLeod clarity to accept an estimate
            analysis_seconds: Length of the analysed window from the start
            fmin: Estimates must be strictly above this frequency (Hz)
            fmax: Estimates must be strictly below this frequency (Hz)
            note_range: Accepted MIDI note range (inclusive)
            yin_fmin: Lowest frequency YIN searches for
        """
        self.clarity_threshold = clarity_threshold
        self.analysis_seconds = analysis_seconds
        self.fmin = fmin
        self.fmax = fmax
        self.note_range = note_range
        self.yin_fmin = yin_fmin

    def detect(self, audio: np.ndarray, sr: int) -> Optional[PitchResult]:
        """
        Detect the root note, McLeod first and YIN as fallback.

        Args:
            audio: Waveform, (frames,) or (channels, frames)
            sr: Sample rate

        Returns:
            PitchResult, or None if neither method finds a note in range
        """
        window = self.analysis_window(audio, sr)
        if window is None:
            return None
        return self.detect_mcleod(window, sr) or self.detect_yin(window, sr)

    def detect_note(self, audio: np.ndarray, sr: int) -> Optional[int]:
        """Same as detect() but only the MIDI note."""
        result = self.detect(audio, sr)
        return result.midi_note if result else None

    def analysis_window(self, audio: np.ndarray, sr: int) -> Optional[np.ndarray]:
        """Mono fold and crop to the analysis window."""
        audio = np.asarray(audio, dtype=np.float32)
        if audio.ndim == 2:
            audio = audio.mean(axis=0)
        if audio.size == 0 or sr <= 0:
            return None
        length = min(len(audio), int(sr * self.analysis_seconds))
        return audio[:length]

    def detect_mcleod(self, audio: np.ndarray, sr: int) -> Optional[PitchResult]:
        """McLeod estimate, gated on clarity."""
        try:
            freq, clarity = mcleod_pitch(audio, sr)
        except (ValueError, FloatingPointError, MemoryError):
            return None

        if clarity <= self.clarity_threshold:
            return None
        note = self._accept(freq)
        if note is None:
            return None
        return PitchResult(midi_note=note, frequency=freq, method="mcleod", clarity=clarity)

    def detect_yin(self, audio: np.ndarray, sr: int) -> Optional[PitchResult]:
        """YIN estimate: median over the voiced frames of the window."""
        if not np.any(audio):
            return None

        fmin = self.yin_fmin
        fmax = min(self.fmax, sr / 2.0 - 1.0)
        if fmax <= fmin:
            return None

        # Frame must hold two periods of the lowest frequency
        frame_length = 1 << int(np.ceil(np.log2(2 * np.ceil(sr / fmin) + 4)))
        hop_length = frame_length // 4

        try:
            f0 = librosa.yin(
                audio,
                fmin=fmin,
                fmax=fmax,
                sr=sr,
                frame_length=frame_length,
                hop_length=hop_length,
            )
            rms = librosa.feature.rms(
                y=audio, frame_length=frame_length, hop_length=hop_length
            )[0]
        except (librosa.util.exceptions.ParameterError, ValueError):
            return None

        count = min(len(f0), len(rms))
        f0, rms = f0[:count], rms[:count]
        voiced = np.isfinite(f0) & (rms >= 0.1 * rms.max()) if count else np.array([], bool)
        if not np.any(voiced):
            return None

        freq = float(np.median(f0[voiced]))
        note = self._accept(freq)
        if note is None:
            return None
        return PitchResult(midi_note=note, frequency=freq, method="yin")

    def _accept(self, freq: float) -> Optional[int]:
        """Apply the frequency and note range gates."""
        if not np.isfinite(freq) or not self.fmin < freq < self.fmax:
            return None
        note = frequency_to_midi(freq)
        if note is None or not self.note_range[0] <= note <= self.note_range[1]:
            return None
        return note
