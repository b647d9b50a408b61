"""Tests for the sample conditioning chain."""

import pytest
import numpy as np

from multisampler.processing import SignalConditioner, ConditionerConfig, max_duration_for_note
from multisampler.processing.conditioner import db_to_linear


@pytest.fixture
def sample_rate():
    return 44100


@pytest.fixture
def conditioner():
    return SignalConditioner()


def pluck(sr: int, freq: float = 220.0, duration: float = 2.0, delay: float = 0.0) -> np.ndarray:
    """Decaying sine with optional leading silence."""
    n = int(sr * duration)
    t = np.arange(n) / sr
    tone = np.sin(2 * np.pi * freq * t) * np.exp(-t * 3) * 0.8
    return np.concatenate([np.zeros(int(sr * delay)), tone]).astype(np.float32)


class TestDurationCap:
    """Tests for max_duration_for_note."""

    def test_endpoints(self):
        assert max_duration_for_note(21) == pytest.approx(10.0)
        assert max_duration_for_note(108) == pytest.approx(3.0)

    def test_monotonic(self):
        caps = [max_duration_for_note(n) for n in range(21, 109)]
        assert all(a >= b for a, b in zip(caps, caps[1:]))

    def test_clamped_outside_piano(self):
        assert max_duration_for_note(0) == max_duration_for_note(21)
        assert max_duration_for_note(127) == max_duration_for_note(108)

    def test_unknown_is_middle_c(self):
        assert max_duration_for_note(None) == max_duration_for_note(60)


class TestTrim:
    """Tests for silence trimming."""

    def test_leading_silence_removed(self, conditioner, sample_rate):
        signal = pluck(sample_rate, delay=0.5)
        left, right = conditioner.trim(signal, signal, sample_rate)

        # Starts within a few milliseconds of the attack
        removed = len(signal) - len(left)
        assert removed > int(0.45 * sample_rate)
        assert np.array_equal(left, right)

    def test_trailing_silence_removed(self, conditioner, sample_rate):
        signal = np.concatenate([pluck(sample_rate, duration=1.0), np.zeros(sample_rate * 3, np.float32)])
        left, _ = conditioner.trim(signal, signal, sample_rate)

        # Last audible sample plus at most the tail padding
        assert len(left) <= sample_rate * 1.0 + sample_rate * 0.5 + 1

    def test_minimum_length(self, conditioner, sample_rate):
        blip = np.zeros(sample_rate * 2, dtype=np.float32)
        blip[1000:1100] = 0.5
        left, _ = conditioner.trim(blip, blip, sample_rate)

        assert len(left) >= sample_rate * 0.5

    def test_inputs_not_modified(self, conditioner, sample_rate):
        signal = pluck(sample_rate, delay=0.2)
        original = signal.copy()
        conditioner.process(signal, signal, sample_rate, 57)

        assert np.array_equal(signal, original)

    def test_transient_detection(self, conditioner, sample_rate):
        signal = pluck(sample_rate, delay=0.25)
        onset = conditioner.detect_transient(signal, signal, sample_rate)

        assert onset is not None
        assert abs(onset - int(0.25 * sample_rate)) < int(0.01 * sample_rate)

    def test_transient_on_tiny_input(self, conditioner, sample_rate):
        x = np.ones(10, dtype=np.float32)
        assert conditioner.detect_transient(x, x, sample_rate) is None

    def test_single_frame_returned_untouched(self, conditioner, sample_rate):
        x = np.array([0.5], dtype=np.float32)
        y = np.array([-0.5], dtype=np.float32)
        left, right = conditioner.trim(x, y, sample_rate)

        # start == end, nothing to trim
        assert left is x
        assert right is y

    def test_quiet_buffer_kept_whole(self, conditioner, sample_rate):
        # Nonzero but below the -50 dBFS threshold throughout
        t = np.arange(sample_rate) / sample_rate
        quiet = (np.sin(2 * np.pi * 220.0 * t) * 0.001).astype(np.float32)
        left, right = conditioner.trim(quiet, quiet, sample_rate)

        assert len(left) == len(quiet)
        assert np.array_equal(left, quiet)
        assert np.array_equal(right, quiet)


class TestLevel:
    """Tests for normalization and limiting."""

    def test_normalize_peak(self, conditioner):
        x = np.array([0.1, -0.2, 0.05], dtype=np.float32)
        left, right = conditioner.normalize(x, x * 0.5)

        assert np.abs(left).max() == pytest.approx(db_to_linear(-3.5), rel=1e-5)
        # Joint gain keeps the channel balance
        assert np.abs(right).max() == pytest.approx(db_to_linear(-3.5) / 2, rel=1e-5)

    def test_limiter_passthrough_below_threshold(self, conditioner, sample_rate):
        x = np.full(100, 0.5, dtype=np.float32)
        left, right = conditioner.limit(x, x, sample_rate)

        assert left is x and right is x

    def test_limiter_reduces_overs(self, conditioner, sample_rate):
        x = np.full(sample_rate // 10, 1.5, dtype=np.float32)
        left, _ = conditioner.limit(x, x, sample_rate)

        assert left[-1] < 1.5
        assert left[-1] < left[0]


class TestFades:
    """Tests for fade in / fade out."""

    def test_fade_shape(self, conditioner, sample_rate):
        x = np.ones(sample_rate, dtype=np.float32)
        left, _ = conditioner.apply_fades(x, x, sample_rate)

        assert left[0] == 0.0
        assert left[-1] == pytest.approx(0.0, abs=1e-6)
        assert left[sample_rate // 2] == 1.0
        fade_in = int(sample_rate * 0.005)
        assert left[fade_in // 2] == pytest.approx(0.5, abs=0.01)

    def test_fade_out_spans_last_tenth(self, conditioner, sample_rate):
        x = np.ones(1000, dtype=np.float32)
        left, _ = conditioner.apply_fades(x, x, sample_rate)

        assert left[899] == 1.0
        assert left[901] < 1.0


class TestProcess:
    """Tests for the full chain."""

    def test_silent_buffer(self, conditioner, sample_rate):
        silence = np.zeros(sample_rate, dtype=np.float32)
        result = conditioner.process(silence, silence, sample_rate, 60)

        assert np.all(np.isfinite(result.left))
        assert np.all(result.left == 0.0)
        assert not result.truncated

    def test_empty_buffer(self, conditioner, sample_rate):
        empty = np.zeros(0, dtype=np.float32)
        result = conditioner.process(empty, empty, sample_rate, 60)

        assert result.frames == 0

    def test_peak_at_most_limiter_ceiling(self, conditioner, sample_rate):
        signal = pluck(sample_rate)
        result = conditioner.process(signal, signal, sample_rate, 57)

        assert np.abs(result.left).max() <= db_to_linear(-0.5) + 1e-6

    def test_long_sample_truncated(self, conditioner, sample_rate):
        n = sample_rate * 6
        t = np.arange(n) / sample_rate
        drone = (np.sin(2 * np.pi * 1000 * t) * 0.5).astype(np.float32)
        result = conditioner.process(drone, drone, sample_rate, 108)

        assert result.truncated
        assert result.max_duration == pytest.approx(3.0)
        assert result.frames == int(sample_rate * 3.0)
        assert result.left[-1] == 0.0

    def test_low_note_keeps_length(self, conditioner, sample_rate):
        n = sample_rate * 6
        t = np.arange(n) / sample_rate
        drone = (np.sin(2 * np.pi * 55 * t) * 0.5).astype(np.float32)
        result = conditioner.process(drone, drone, sample_rate, 21)

        assert not result.truncated

    def test_channel_mismatch(self, conditioner, sample_rate):
        with pytest.raises(ValueError):
            conditioner.process(np.zeros(10), np.zeros(11), sample_rate)

    def test_custom_config(self, sample_rate):
        config = ConditionerConfig(normalize_db=-6.0, longest_duration=2.0, shortest_duration=1.0)
        conditioner = SignalConditioner(config)
        signal = pluck(sample_rate, duration=3.0)
        result = conditioner.process(signal, signal, sample_rate, 21)

        assert result.max_duration == pytest.approx(2.0)
        assert result.truncated
