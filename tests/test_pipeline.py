"""End-to-end tests for the batch driver."""

import pytest
import numpy as np
from scipy.io import wavfile

from multisampler.core import (
    BitDepth,
    Density,
    Quality,
    Provenance,
    EmptyBatchError,
    EncodedSample,
    PitchEstimate,
    ProcessedSample,
)
from multisampler.output import read_wav_header
from multisampler.pipeline import (
    BuildConfig,
    InstrumentBuilder,
    SampleBatch,
    build_instruments,
)

SR = 22050


def write_tone(path, freq: float = 220.0, duration: float = 1.0, sr: int = SR):
    """Write a 16-bit mono sine tone with a short attack."""
    t = np.arange(int(sr * duration)) / sr
    tone = np.sin(2 * np.pi * freq * t) * 0.5
    tone[: int(0.005 * sr)] *= np.linspace(0, 1, int(0.005 * sr))
    wavfile.write(str(path), sr, (tone * 32767).astype(np.int16))
    return path


def lofi_builder(**options) -> InstrumentBuilder:
    return InstrumentBuilder(BuildConfig(quality=Quality.LOFI, **options))


class TestBuild:
    """Tests for InstrumentBuilder.build."""

    def test_named_samples(self, tmp_path):
        files = [write_tone(tmp_path / f"{n}.wav") for n in ("C3", "C5", "C4")]
        result = lofi_builder(name="Keys").build(files)

        assert len(result.instruments) == 1
        instrument = result.instruments[0]
        assert instrument.name == "Keys"
        assert [z.root for z in instrument.zones] == [48, 60, 72]
        assert instrument.zones[-1].hikey == 127
        assert result.report.provenance == {"filename": 3}
        assert result.report.warnings == []

    def test_encoded_format(self, tmp_path):
        files = [write_tone(tmp_path / "A3.wav", sr=44100)]
        result = lofi_builder(bit_depth=BitDepth.PCM_24).build(files)

        info = read_wav_header(result.instruments[0].zones[0].sample.data)
        assert info.sample_rate == 22050
        assert info.bit_depth == 24
        assert info.channels == 2

    def test_waveform_detection(self, tmp_path):
        files = [write_tone(tmp_path / "tone.wav", freq=440.0)]
        result = lofi_builder().build(files)

        sample = result.instruments[0].samples[0]
        assert sample.note == 69
        assert sample.pitch.provenance == Provenance.WAVEFORM
        assert "1 sample detected via audio analysis" in result.report.notes

    def test_unpitched_gets_placeholder(self, tmp_path):
        files = [write_tone(tmp_path / "pad.wav"), write_tone(tmp_path / "C3.wav")]
        result = lofi_builder(detect_pitch=False).build(files)

        assert sorted(z.root for z in result.instruments[0].zones) == [48, 49]
        assert result.report.gap_filled == 1
        assert "1 sample assigned automatically" in result.report.warnings
        assert result.report.provenance == {"filename": 1, "gap-filled": 1}

    def test_manual_note(self, tmp_path):
        files = [write_tone(tmp_path / "pad.wav")]
        result = lofi_builder(manual_notes={"pad.wav": "A3"}).build(files)

        sample = result.instruments[0].samples[0]
        assert sample.note == 57
        assert sample.pitch.provenance == Provenance.MANUAL

    def test_decode_failure_is_a_warning(self, tmp_path):
        bad = tmp_path / "broken.wav"
        bad.write_bytes(b"RIFF garbage that is not audio")
        files = [bad, write_tone(tmp_path / "C4.wav")]

        with pytest.warns(UserWarning):
            result = lofi_builder().build(files)

        assert result.report.files_failed == 1
        assert any(w.startswith('Could not process "broken.wav"') for w in result.report.warnings)
        assert result.sample_count == 1

    def test_missing_file_is_a_warning(self, tmp_path):
        files = [tmp_path / "nope.wav", write_tone(tmp_path / "C4.wav")]
        result = lofi_builder().build(files)

        assert result.report.files_failed == 1

    def test_nothing_decodable(self, tmp_path):
        bad = tmp_path / "empty.wav"
        bad.write_bytes(b"")

        with pytest.raises(EmptyBatchError):
            lofi_builder().build([bad])

    def test_in_memory_sources(self, tmp_path):
        data = write_tone(tmp_path / "x.wav").read_bytes()
        result = lofi_builder().build([("E2.wav", data), ("E3.wav", data)])

        assert [z.root for z in result.instruments[0].zones] == [40, 52]

    def test_truncation_note(self, tmp_path):
        files = [write_tone(tmp_path / "C8.wav", freq=1000.0, duration=4.0)]
        result = lofi_builder().build(files)

        assert result.report.truncated == 1
        assert '"C8.wav" was trimmed to 3s' in result.report.notes
        assert result.instruments[0].zones[0].framecount == 3 * SR

    def test_density_selection(self, tmp_path):
        files = [write_tone(tmp_path / f"{n}.wav", duration=0.6) for n in range(40, 55)]
        result = lofi_builder(density=Density.LITE).build(files)

        assert result.sample_count <= 5
        assert any(n.startswith("Using ") and "of 15 samples (lite density" in n for n in result.report.notes)

    def test_threaded_matches_sequential(self, tmp_path):
        files = [write_tone(tmp_path / f"{n}.wav", duration=0.6) for n in ("C3", "E3", "G3", "C4")]
        sequential = lofi_builder().build(files)
        threaded = lofi_builder(max_workers=4).build(files)

        assert [z.filename for z in threaded.instruments[0].zones] == [
            z.filename for z in sequential.instruments[0].zones
        ]
        assert threaded.instruments[0].sample_files == sequential.instruments[0].sample_files

    def test_worker_results_collected_in_order(self):
        builder = lofi_builder(max_workers=4)
        results = builder._map(lambda x: x * 2, list(range(10)))

        assert isinstance(results, list)
        assert results == [x * 2 for x in range(10)]

    def test_progress_callback(self, tmp_path):
        files = [write_tone(tmp_path / f"{n}.wav", duration=0.6) for n in ("C3", "C4")]
        seen = []
        lofi_builder().build(files, on_progress=lambda i, total, name: seen.append((i, total, name)))

        assert seen == [(1, 2, "C3.wav"), (2, 2, "C4.wav")]

    def test_convenience_wrapper(self, tmp_path):
        files = [write_tone(tmp_path / "C4.wav")]
        result = build_instruments(files, name="Quick", quality=Quality.LOFI)

        assert result.instruments[0].name == "Quick"


class TestGrouping:
    """Tests for velocity layer / round robin builds."""

    @pytest.fixture
    def layered(self, tmp_path):
        return [
            write_tone(tmp_path / f"Piano_{n}_V{v}.wav", duration=0.6)
            for v in (1, 2) for n in ("C3", "C4")
        ]

    def test_one_instrument_per_group(self, layered):
        result = lofi_builder(name="Piano").build(layered)

        assert [i.name for i in result.instruments] == ["Piano-1", "Piano-2"]
        for instrument in result.instruments:
            assert [z.root for z in instrument.zones] == [48, 60]

    def test_grouping_off(self, layered):
        result = lofi_builder(name="Piano", grouping=False).build(layered)

        assert len(result.instruments) == 1
        assert result.sample_count == 4

    def test_unmatched_files_skipped(self, layered, tmp_path):
        files = layered + [write_tone(tmp_path / "Extra_C5.wav", duration=0.6)]
        result = lofi_builder(name="Piano").build(files)

        assert result.sample_count == 4
        assert any("did not match" in w for w in result.report.warnings)

    def test_shared_filename_keeps_both_inputs(self, tmp_path):
        short = write_tone(tmp_path / "short.wav", duration=1.0).read_bytes()
        long = write_tone(tmp_path / "long.wav", duration=2.0).read_bytes()
        sources = [
            ("Piano_C4_RR1.wav", short),
            ("Piano_C4_RR1.wav", long),
            ("Piano_C4_RR2.wav", short),
            ("Piano_C5_RR2.wav", short),
        ]

        processed = lofi_builder(name="Piano").process(sources)
        first_round = processed.batches["1"].resolved

        assert len(first_round) == 2
        assert len({s.frames for s in first_round}) == 2


class TestManualAssignment:
    """Tests for assigning notes between process() and assemble()."""

    def test_assign_pending(self, tmp_path):
        files = [write_tone(tmp_path / "pad.wav"), write_tone(tmp_path / "C3.wav")]
        builder = lofi_builder(detect_pitch=False)
        processed = builder.process(files)

        assert [s.name for s in processed.pending] == ["pad.wav"]
        processed.assign("pad.wav", "D4")
        result = builder.assemble(processed)

        assert sorted(z.root for z in result.instruments[0].zones) == [48, 62]
        assert result.report.gap_filled == 0

    def test_remove_pending(self, tmp_path):
        files = [write_tone(tmp_path / "pad.wav"), write_tone(tmp_path / "C3.wav")]
        builder = lofi_builder(detect_pitch=False)
        processed = builder.process(files)
        processed.remove("pad.wav")
        result = builder.assemble(processed)

        assert result.sample_count == 1

    def test_pending_keeps_source_audio(self, tmp_path):
        files = [write_tone(tmp_path / "pad.wav"), write_tone(tmp_path / "C3.wav")]
        processed = lofi_builder(detect_pitch=False).process(files)
        batch = processed.batches[""]

        assert batch.pending[0].source is not None
        assert batch.resolved[0].source is None


class TestSampleBatch:
    """Tests for SampleBatch."""

    def make_sample(self, name, note):
        return ProcessedSample(
            name=name,
            pitch=PitchEstimate(note, Provenance.FILENAME if note is not None else Provenance.NONE),
            encoded=EncodedSample(data=b"", frames=10, sample_rate=SR, bit_depth=16),
            max_duration=5.0,
        )

    def test_split(self):
        batch = SampleBatch([self.make_sample("a", 60), self.make_sample("b", None)])

        assert [s.name for s in batch.resolved] == ["a"]
        assert [s.name for s in batch.pending] == ["b"]
        assert len(batch) == 2

    def test_assign(self):
        batch = SampleBatch([self.make_sample("b", None)])
        sample = batch.assign("b", 64)

        assert sample.note == 64
        assert sample.pitch.provenance == Provenance.MANUAL
        assert batch.pending == []

    def test_assign_unknown(self):
        with pytest.raises(KeyError):
            SampleBatch().assign("missing", 60)

    def test_assign_invalid_note(self):
        batch = SampleBatch([self.make_sample("b", None)])
        with pytest.raises(ValueError):
            batch.assign("b", "Z9")
        assert len(batch.pending) == 1

    def test_finish(self):
        batch = SampleBatch([self.make_sample("b", None), self.make_sample("a", 60)])
        samples = batch.finish()

        assert [s.name for s in samples] == ["a", "b"]
        assert len(batch) == 0
