"""Batch driver - From a pile of audio files to finished instruments.

Pipeline:
1. Decode every file (failures become warnings)
2. Optionally split the batch into groups by filename suffix
3. Per sample: detect root note, resample, condition, encode
4. Per group: density selection, placeholder notes, zone assembly

Steps 1 and 3 are independent per file and can run on a thread pool;
step 4 only starts once every sample of the batch is done.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .analysis import PitchAnalyzer
from .core import (
    BitDepth,
    Density,
    Quality,
    DecodeError,
    EmptyBatchError,
    NoInstrumentError,
    InputSample,
    ProcessedSample,
    Provenance,
)
from .core.constants import DEFAULT_PRESET_NAME
from .input import (
    AudioDecoder,
    GroupingResult,
    NoteIdentifier,
    detect_groups,
    parse_manual_note,
    resample,
    strip_group_suffix,
    to_stereo,
)
from .output import InstrumentDocument, build_instrument, encode_sample
from .processing import (
    ConditionerConfig,
    SignalConditioner,
    assign_missing_notes,
    select_by_density,
)

Source = Union[str, Path, Tuple[str, bytes]]
ProgressCallback = Callable[[int, int, str], None]

# Name of the single group when grouping is off or finds nothing
DEFAULT_GROUP = ""


@dataclass
class BuildConfig:
    """Settings for one build.

    Attributes:
        name: Instrument name (group keys are appended when grouping)
        quality: Output sample rate tier (default: standard, 44.1 kHz)
        bit_depth: Output word size (default: 16)
        density: Sample density tier (default: balanced)
        grouping: Split velocity layers / round robins into separate instruments
        detect_pitch: Analyse the waveform when the filename has no note
        manual_notes: Filename -> note number or name, overrides detection
        max_workers: Threads for per-sample work (1 = sequential)
        conditioner: Conditioning chain settings
    """

    name: str = DEFAULT_PRESET_NAME
    quality: Quality = Quality.STANDARD
    bit_depth: BitDepth = BitDepth.PCM_16
    density: Density = Density.BALANCED
    grouping: bool = True
    detect_pitch: bool = True
    manual_notes: Dict[str, Union[int, str]] = field(default_factory=dict)
    max_workers: int = 1
    conditioner: ConditionerConfig = field(default_factory=ConditionerConfig)

    @property
    def sample_rate(self) -> int:
        return self.quality.sample_rate


@dataclass
class BuildReport:
    """Warnings and statistics collected during a build."""

    files_total: int = 0
    files_failed: int = 0
    samples_processed: int = 0
    truncated: int = 0
    gap_filled: int = 0
    provenance: Dict[str, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def note(self, message: str) -> None:
        self.notes.append(message)

    def count_provenance(self, samples: Iterable[ProcessedSample]) -> None:
        self.provenance = {}
        for sample in samples:
            key = sample.pitch.provenance.value
            self.provenance[key] = self.provenance.get(key, 0) + 1

    def to_dict(self) -> Dict:
        return {
            "files_total": self.files_total,
            "files_failed": self.files_failed,
            "samples_processed": self.samples_processed,
            "truncated": self.truncated,
            "gap_filled": self.gap_filled,
            "provenance": dict(self.provenance),
            "warnings": list(self.warnings),
            "notes": list(self.notes),
        }


class SampleBatch:
    """Processed samples of one instrument, split into pending and resolved.

    Samples with a known root note are resolved; the rest wait in pending
    until a note is assigned manually, they are removed, or finish() hands
    them to automatic note assignment.
    """

    def __init__(self, samples: Iterable[ProcessedSample] = ()):
        self.resolved: List[ProcessedSample] = []
        self.pending: List[ProcessedSample] = []
        for sample in samples:
            self.add(sample)

    def __len__(self) -> int:
        return len(self.resolved) + len(self.pending)

    def add(self, sample: ProcessedSample) -> None:
        if sample.note is None:
            self.pending.append(sample)
        else:
            self.resolved.append(sample)

    def assign(self, name: str, note: Union[int, str]) -> ProcessedSample:
        """
        Manually set the note of a pending sample and mark it resolved.

        Raises:
            KeyError: If no pending sample has that name
            ValueError: If the note is invalid
        """
        midi = parse_manual_note(note)
        sample = self._take_pending(name)
        sample.pitch.update(midi, Provenance.MANUAL)
        self.resolved.append(sample)
        return sample

    def remove(self, name: str) -> ProcessedSample:
        """Drop a pending sample from the batch."""
        return self._take_pending(name)

    def finish(self) -> List[ProcessedSample]:
        """All samples, resolved first; the batch is emptied."""
        samples = self.resolved + self.pending
        self.resolved, self.pending = [], []
        return samples

    def _take_pending(self, name: str) -> ProcessedSample:
        for index, sample in enumerate(self.pending):
            if sample.name == name:
                return self.pending.pop(index)
        raise KeyError(f"No pending sample named {name!r}")


@dataclass
class ProcessedBatch:
    """Output of the per-sample stage: one SampleBatch per group."""

    batches: Dict[str, SampleBatch]
    report: BuildReport
    grouping: Optional[GroupingResult] = None

    @property
    def pending(self) -> List[ProcessedSample]:
        return [s for batch in self.batches.values() for s in batch.pending]

    def find_batch(self, name: str) -> SampleBatch:
        for batch in self.batches.values():
            if any(s.name == name for s in batch.pending):
                return batch
        raise KeyError(f"No pending sample named {name!r}")

    def assign(self, name: str, note: Union[int, str]) -> ProcessedSample:
        return self.find_batch(name).assign(name, note)

    def remove(self, name: str) -> ProcessedSample:
        return self.find_batch(name).remove(name)


@dataclass
class BuildResult:
    """Finished instruments plus the build report."""

    instruments: List[InstrumentDocument]
    report: BuildReport

    @property
    def sample_count(self) -> int:
        return sum(i.sample_count for i in self.instruments)

    @property
    def total_bytes(self) -> int:
        return sum(i.total_bytes for i in self.instruments)


class SampleProcessor:
    """Per-sample stage: note detection, resampling, conditioning, encoding."""

    def __init__(
        self,
        config: BuildConfig,
        identifier: Optional[NoteIdentifier] = None,
        conditioner: Optional[SignalConditioner] = None,
    ):
        self.config = config
        if identifier is None:
            detector = PitchAnalyzer().detect_note if config.detect_pitch else None
            identifier = NoteIdentifier(detector, config.manual_notes)
        self.identifier = identifier
        self.conditioner = conditioner or SignalConditioner(config.conditioner)

    def process(
        self,
        sample: InputSample,
        group: Optional[str] = None,
        grouping: Optional[GroupingResult] = None,
    ) -> ProcessedSample:
        """
        Turn one decoded file into an encoded, pitched sample.

        Args:
            sample: Decoded input
            group: Group key the sample belongs to
            grouping: Active grouping, its suffix is ignored for note parsing

        Returns:
            ProcessedSample (note may still be None)
        """
        pitch = self.identifier.identify(
            sample.name,
            sample.audio,
            sample.sample_rate,
            parse_name=strip_group_suffix(sample.name, grouping),
        )

        sr = self.config.sample_rate
        stereo = to_stereo(resample(sample.audio, sample.sample_rate, sr))
        conditioned = self.conditioner.process(stereo[0], stereo[1], sr, pitch.note)
        encoded = encode_sample(conditioned, self.config.bit_depth.bits)

        return ProcessedSample(
            name=sample.name,
            pitch=pitch,
            encoded=encoded,
            max_duration=conditioned.max_duration,
            truncated=conditioned.truncated,
            group=group or None,
            source=sample if pitch.note is None else None,
        )


class InstrumentBuilder:
    """
    Build multisample instruments from a batch of audio files.

    Usage:
        builder = InstrumentBuilder(BuildConfig(name="Piano"))
        result = builder.build(["C3.wav", "C4.wav", "C5.wav"])

        # Or in two steps, to assign notes by hand in between
        processed = builder.process(paths)
        for sample in processed.pending:
            processed.assign(sample.name, "A3")
        result = builder.assemble(processed)
    """

    def __init__(
        self,
        config: Optional[BuildConfig] = None,
        decoder: Optional[AudioDecoder] = None,
        processor: Optional[SampleProcessor] = None,
    ):
        self.config = config or BuildConfig()
        self.decoder = decoder or AudioDecoder()
        self.processor = processor or SampleProcessor(self.config)

    def build(
        self,
        sources: Sequence[Source],
        on_progress: Optional[ProgressCallback] = None,
    ) -> BuildResult:
        """Process and assemble in one go."""
        return self.assemble(self.process(sources, on_progress))

    def process(
        self,
        sources: Sequence[Source],
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProcessedBatch:
        """
        Decode, group and process every source.

        Args:
            sources: File paths, or (filename, bytes) pairs
            on_progress: Called as (index, total, filename) per finished sample

        Returns:
            ProcessedBatch

        Raises:
            EmptyBatchError: If no file could be processed
        """
        report = BuildReport(files_total=len(sources))

        decoded = []
        for source, outcome in zip(sources, self._map(self._decode, sources)):
            if isinstance(outcome, Exception):
                report.files_failed += 1
                report.warn(f'Could not process "{_source_name(source)}": {outcome}')
            else:
                decoded.append(outcome)

        grouping = None
        groups: Dict[str, List[InputSample]] = {DEFAULT_GROUP: decoded}
        if self.config.grouping:
            grouping = detect_groups([s.name for s in decoded])
            if grouping is not None:
                groups = self._split(decoded, grouping, report)

        jobs = [(key, sample, grouping) for key in sorted(groups) for sample in groups[key]]
        batches = {key: SampleBatch() for key in groups}

        outcomes = self._map(self._process_one, jobs)
        for index, ((key, sample, _), outcome) in enumerate(zip(jobs, outcomes)):
            if on_progress:
                on_progress(index + 1, len(jobs), sample.name)
            if isinstance(outcome, Exception):
                report.files_failed += 1
                report.warn(f'Could not process "{sample.name}": {outcome}')
                continue
            if outcome.truncated:
                report.truncated += 1
                report.note(f'"{sample.name}" was trimmed to {round(outcome.max_duration)}s')
            batches[key].add(outcome)

        processed = [s for batch in batches.values() for s in batch.resolved + batch.pending]
        if not processed:
            raise EmptyBatchError("No samples could be processed")

        report.samples_processed = len(processed)
        report.count_provenance(processed)
        from_waveform = report.provenance.get(Provenance.WAVEFORM.value, 0)
        if from_waveform:
            plural = "s" if from_waveform > 1 else ""
            report.note(f"{from_waveform} sample{plural} detected via audio analysis")

        return ProcessedBatch(batches=batches, report=report, grouping=grouping)

    def assemble(self, processed: ProcessedBatch) -> BuildResult:
        """
        Turn processed batches into instruments.

        Unpitched samples still pending at this point get placeholder notes.

        Raises:
            NoInstrumentError: If every group is empty
        """
        report = processed.report
        density = self.config.density
        instruments = []

        for key in sorted(processed.batches):
            samples = processed.batches[key].finish()
            if not samples:
                continue

            original_count = len(samples)
            if original_count > density.max_samples:
                samples = select_by_density(samples, density)
                report.note(
                    f"Using {len(samples)} of {original_count} samples "
                    f"({density.value} density: {density.description})"
                )

            report.gap_filled += sum(1 for s in samples if s.note is None)
            samples = assign_missing_notes(samples)

            name = f"{self.config.name}-{key}" if key else self.config.name
            instruments.append(build_instrument(samples, name))

        if not instruments:
            raise NoInstrumentError("No presets could be created")

        if report.gap_filled:
            plural = "s" if report.gap_filled > 1 else ""
            report.warn(f"{report.gap_filled} sample{plural} assigned automatically")

        report.count_provenance(s for i in instruments for s in i.samples)
        return BuildResult(instruments=instruments, report=report)

    def _map(self, func, items: Sequence) -> List:
        """Apply func to items, returning results in input order.

        With more than one worker the calls run on a thread pool, which is
        shut down before this returns.
        """
        if self.config.max_workers <= 1 or len(items) <= 1:
            return [func(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            return list(pool.map(func, items))

    def _decode(self, source: Source) -> Union[InputSample, Exception]:
        try:
            if isinstance(source, tuple):
                return self.decoder.decode(source[1], source[0])
            return self.decoder.load(source)
        except (DecodeError, OSError) as e:
            return e

    def _process_one(self, job) -> Union[ProcessedSample, Exception]:
        key, sample, grouping = job
        try:
            return self.processor.process(sample, key, grouping)
        except ValueError as e:
            return e

    def _split(
        self,
        decoded: List[InputSample],
        grouping: GroupingResult,
        report: BuildReport,
    ) -> Dict[str, List[InputSample]]:
        # Inputs can share a filename; each listed name takes the next one
        by_name: Dict[str, List[InputSample]] = {}
        for sample in decoded:
            by_name.setdefault(sample.name, []).append(sample)
        groups = {
            key: [by_name[name].pop(0) for name in grouping.groups[key]]
            for key in grouping.group_keys
        }
        if grouping.ungrouped:
            report.warn(
                f"Skipped files that did not match the {grouping.label.lower()} "
                f"pattern: {', '.join(grouping.ungrouped)}"
            )
        return groups


def build_instruments(
    sources: Sequence[Source],
    name: str = DEFAULT_PRESET_NAME,
    manual_notes: Optional[Mapping[str, Union[int, str]]] = None,
    **options,
) -> BuildResult:
    """Convenience wrapper around InstrumentBuilder.build()."""
    config = BuildConfig(name=name, manual_notes=dict(manual_notes or {}), **options)
    return InstrumentBuilder(config).build(sources)


def _source_name(source: Source) -> str:
    return source[0] if isinstance(source, tuple) else Path(source).name
