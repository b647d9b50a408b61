"""Sample conditioning - Trim, normalize, limit, fade and truncate.

The chain always runs in this order:

1. Trim leading silence (transient aware) and trailing silence
2. Peak normalize
3. Peak limit
4. Fade in / fade out
5. Truncate to a pitch dependent maximum duration

Every stage takes and returns a (left, right) pair and never modifies its
inputs, so the conditioner can run on several samples at once.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..core import PIANO_MIN, PIANO_MAX, DEFAULT_NOTE, ConditionedSample

Stereo = Tuple[np.ndarray, np.ndarray]


def db_to_linear(db: float) -> float:
    return 10 ** (db / 20)


@dataclass
class ConditionerConfig:
    """Configuration for the conditioning chain.

    Attributes:
        threshold_db: Silence threshold for trimming (default: -50)
        transient_window: RMS window for onset detection in seconds (default: 0.003)
        transient_ratio: Energy jump, relative to the loudest window, that
            counts as an onset (default: 0.05)
        pre_attack: Back-off before the detected start in seconds (default: 0.002)
        tail_padding: Kept after the last audible sample in seconds (default: 0.5)
        min_length: Minimum trimmed length in seconds (default: 0.5)
        normalize_db: Peak level after normalization (default: -3.5)
        limiter_threshold_db: Limiter threshold (default: -0.5)
        limiter_ratio: Limiter ratio (default: 20)
        limiter_attack: Limiter attack in seconds (default: 0.001)
        limiter_release: Limiter release in seconds (default: 0.010)
        fade_in: Linear fade-in in seconds (default: 0.005)
        fade_out_fraction: Equal-power fade-out as a fraction of the length (default: 0.10)
        longest_duration: Duration cap at the lowest note in seconds (default: 10)
        shortest_duration: Duration cap at the highest note in seconds (default: 3)
        truncate_fade: Fade-out after truncation in seconds (default: 0.05)
    """

    threshold_db: float = -50.0
    transient_window: float = 0.003
    transient_ratio: float = 0.05
    pre_attack: float = 0.002
    tail_padding: float = 0.5
    min_length: float = 0.5
    normalize_db: float = -3.5
    limiter_threshold_db: float = -0.5
    limiter_ratio: float = 20.0
    limiter_attack: float = 0.001
    limiter_release: float = 0.010
    fade_in: float = 0.005
    fade_out_fraction: float = 0.10
    longest_duration: float = 10.0
    shortest_duration: float = 3.0
    truncate_fade: float = 0.05


def max_duration_for_note(
    midi_note: Optional[int],
    longest: float = 10.0,
    shortest: float = 3.0,
) -> float:
    """Pitch-aware maximum sample duration in seconds.

    Low notes ring longer, so they are allowed more time: A0 (21) gets the
    longest duration and C8 (108) the shortest, linearly in between.
    Unknown notes are treated as C4.
    """
    note = DEFAULT_NOTE if midi_note is None else midi_note
    note = max(PIANO_MIN, min(PIANO_MAX, note))
    t = (note - PIANO_MIN) / (PIANO_MAX - PIANO_MIN)
    return longest - t * (longest - shortest)


class SignalConditioner:
    """Prepare a stereo sample for the instrument."""

    def __init__(self, config: Optional[ConditionerConfig] = None):
        self.config = config or ConditionerConfig()

    def process(
        self,
        left: np.ndarray,
        right: np.ndarray,
        sr: int,
        midi_note: Optional[int] = None,
    ) -> ConditionedSample:
        """
        Run the full conditioning chain.

        Args:
            left: Left channel at the target sample rate
            right: Right channel (same length; pass left twice for mono)
            sr: Sample rate
            midi_note: Root note if known, drives the duration cap

        Returns:
            ConditionedSample
        """
        if len(left) != len(right):
            raise ValueError(f"Channel lengths differ: {len(left)} != {len(right)}")

        left = np.asarray(left, dtype=np.float32)
        right = np.asarray(right, dtype=np.float32)

        left, right = self.trim(left, right, sr)
        left, right = self.normalize(left, right)
        left, right = self.limit(left, right, sr)
        left, right = self.apply_fades(left, right, sr)

        max_duration = max_duration_for_note(
            midi_note,
            longest=self.config.longest_duration,
            shortest=self.config.shortest_duration,
        )
        truncated = len(left) > sr * max_duration
        if truncated:
            left, right = self.truncate(left, right, sr, max_duration)

        return ConditionedSample(
            left=left,
            right=right,
            sample_rate=sr,
            max_duration=max_duration,
            truncated=truncated,
        )

    # === Trim ===

    def detect_transient(self, left: np.ndarray, right: np.ndarray, sr: int) -> Optional[int]:
        """
        Find the attack of the sample from the windowed RMS energy.

        Windows overlap by half. The onset is the first window after which
        the energy jumps by more than a fraction of the loudest window while
        staying above the noise floor.

        Returns:
            Start index of the window just before the jump, or None
        """
        n = len(left)
        window = max(1, int(sr * self.config.transient_window))
        hop = max(1, window // 2)

        starts = np.arange(0, max(n - window, 0), hop)
        if len(starts) < 3:
            return None

        peak = np.maximum(np.abs(left), np.abs(right)).astype(np.float64)
        energy = np.concatenate(([0.0], np.cumsum(peak * peak)))
        power = (energy[starts + window] - energy[starts]) / window
        rms = np.sqrt(np.maximum(power, 0.0))

        max_energy = rms.max()
        if max_energy == 0:
            return None

        delta = rms[1:] - rms[:-1]
        onsets = np.flatnonzero(
            (delta > max_energy * self.config.transient_ratio)
            & (rms[1:] > db_to_linear(self.config.threshold_db))
        )
        if len(onsets) == 0:
            return None
        return int(starts[onsets[0]])

    def trim(self, left: np.ndarray, right: np.ndarray, sr: int) -> Stereo:
        """
        Trim silence before the attack and after the decay.

        The end keeps a tail of padding after the last audible sample, and
        the result is stretched back to the minimum length when the source
        is long enough. If the computed start is not before the end the
        input is returned untouched.
        """
        n = len(left)
        if n == 0:
            return left, right

        cfg = self.config
        threshold = db_to_linear(cfg.threshold_db)
        min_length = sr * cfg.min_length
        tail = int(sr * cfg.tail_padding)
        pre_attack = int(sr * cfg.pre_attack)

        audible = np.flatnonzero((np.abs(left) > threshold) | (np.abs(right) > threshold))

        start = 0
        transient = self.detect_transient(left, right, sr)
        if transient is not None:
            start = max(0, transient - pre_attack)
        elif len(audible):
            start = max(0, int(audible[0]) - pre_attack)

        end = n - 1
        if len(audible):
            end = min(n - 1, int(audible[-1]) + tail)

        if end - start + 1 < min_length and n >= min_length:
            end = min(n - 1, int(start + min_length))

        if start >= end:
            return left, right

        return left[start:end + 1].copy(), right[start:end + 1].copy()

    # === Level ===

    def normalize(self, left: np.ndarray, right: np.ndarray) -> Stereo:
        """Scale both channels so the joint peak sits at normalize_db."""
        if len(left) == 0:
            return left, right
        peak = max(np.abs(left).max(), np.abs(right).max())
        if peak == 0:
            return left, right
        gain = db_to_linear(self.config.normalize_db) / peak
        return (left * gain).astype(np.float32), (right * gain).astype(np.float32)

    def limit(self, left: np.ndarray, right: np.ndarray, sr: int) -> Stereo:
        """
        Hard-knee peak limiter with a stereo-linked detector.

        Gain reduction follows the overshoot above the threshold reduced by
        the ratio, smoothed with separate attack and release time constants.
        Signals that never cross the threshold pass through unchanged.
        """
        cfg = self.config
        threshold = db_to_linear(cfg.limiter_threshold_db)
        level = np.maximum(np.abs(left), np.abs(right))
        if len(level) == 0 or level.max() <= threshold:
            return left, right

        with np.errstate(divide="ignore"):
            level_db = 20 * np.log10(level.astype(np.float64))
        overshoot = np.maximum(level_db - cfg.limiter_threshold_db, 0.0)
        target = overshoot * (1 - 1 / cfg.limiter_ratio)

        attack = np.exp(-1.0 / (cfg.limiter_attack * sr))
        release = np.exp(-1.0 / (cfg.limiter_release * sr))

        reduction = np.empty_like(target)
        env = 0.0
        for i, value in enumerate(target):
            coeff = attack if value > env else release
            env = coeff * env + (1 - coeff) * value
            reduction[i] = env

        gain = (10 ** (-reduction / 20)).astype(np.float32)
        return left * gain, right * gain

    # === Envelope ===

    def apply_fades(self, left: np.ndarray, right: np.ndarray, sr: int) -> Stereo:
        """Short linear fade-in and an equal-power fade-out over the last 10%."""
        n = len(left)
        gain = np.ones(n, dtype=np.float64)

        fade_in = int(sr * self.config.fade_in)
        count = min(fade_in, n)
        if count > 0:
            gain[:count] = np.arange(count) / fade_in

        fade_out = int(n * self.config.fade_out_fraction)
        if fade_out > 0:
            # i counts back from the last sample
            i = np.arange(fade_out)
            curve = np.cos((1 - i / fade_out) * np.pi / 2)
            gain[n - 1 - i] *= curve

        gain = gain.astype(np.float32)
        return left * gain, right * gain

    def truncate(
        self,
        left: np.ndarray,
        right: np.ndarray,
        sr: int,
        max_duration: float,
    ) -> Stereo:
        """Cut to max_duration and fade out the new ending."""
        max_samples = int(sr * max_duration)
        if len(left) <= max_samples:
            return left, right

        left = left[:max_samples].copy()
        right = right[:max_samples].copy()

        fade = int(sr * self.config.truncate_fade)
        count = min(fade, max_samples)
        if count > 0:
            i = np.arange(count)
            curve = (i / fade).astype(np.float32)
            left[max_samples - 1 - i] *= curve
            right[max_samples - 1 - i] *= curve

        return left, right
