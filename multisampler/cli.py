"""Command-line interface for multisampler.

Provides commands for:
- build: Turn a folder of samples into OP-XY multisample presets
- detect: Show the root note found for each file
- info: Show audio file information
"""

import typer
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, List
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn

app = typer.Typer(
    name="multisampler",
    help="Build OP-XY multisample instruments from audio files",
    rich_markup_mode="markdown",
)
console = Console()


@dataclass
class StageTimings:
    """Wall-clock time spent in each build stage (process, assemble, write)."""

    stages: Dict[str, float] = field(default_factory=dict)
    _current_stage: Optional[str] = field(default=None, repr=False)
    _start_time: float = field(default=0.0, repr=False)

    def start(self, stage: str) -> None:
        """Begin timing a named stage."""
        self._current_stage = stage
        self._start_time = time.time()

    def stop(self) -> float:
        """Record the running stage and return its duration in seconds."""
        if self._current_stage is None:
            return 0.0
        duration = time.time() - self._start_time
        self.stages[self._current_stage] = duration
        self._current_stage = None
        return duration

    @property
    def total_time(self) -> float:
        """Sum of all recorded stages."""
        return sum(self.stages.values())

    def print_summary(self) -> None:
        """Print per-stage build times."""
        console.print("\n[bold]Timing Summary:[/bold]")
        for stage, duration in self.stages.items():
            console.print(f"  {stage}: {duration:.2f}s")
        console.print(f"  [bold]Total: {self.total_time:.2f}s[/bold]")

    def to_dict(self) -> Dict[str, Any]:
        """Timing block of the --json output."""
        return {
            "stages": self.stages,
            "total_time": self.total_time,
        }


def collect_inputs(inputs: List[Path]) -> List[Path]:
    """
    Expand directories into the supported audio files they contain.

    Files are passed through as given; directory contents are sorted by name.
    """
    from .input import AudioDecoder

    decoder = AudioDecoder()
    files = []
    for path in inputs:
        if path.is_dir():
            files.extend(
                sorted(p for p in path.iterdir() if p.is_file() and decoder.is_supported(p))
            )
        elif path.exists():
            files.append(path)
        else:
            console.print(f"[red]Error: File not found: {path}[/red]")
            raise typer.Exit(1)
    return files


def parse_note_options(values: List[str]) -> Dict[str, str]:
    """Parse repeated FILE=NOTE options into a mapping."""
    notes = {}
    for value in values:
        filename, sep, note = value.rpartition("=")
        if not sep or not filename or not note:
            console.print(f"[red]Error: Expected FILE=NOTE, got '{value}'[/red]")
            raise typer.Exit(1)
        notes[filename] = note
    return notes


@app.command()
def build(
    inputs: List[Path] = typer.Argument(..., help="Audio files or folders of samples"),
    name: str = typer.Option(
        "My Preset", "-n", "--name", help="Instrument name"
    ),
    output_dir: Path = typer.Option(
        Path("."), "-o", "--output", help="Output directory"
    ),
    quality: str = typer.Option(
        "standard", "--quality", "-q", help="Sample rate: standard (44.1k) / high (48k) / lofi (22.05k)"
    ),
    bit_depth: int = typer.Option(
        16, "--bit-depth", "-b", help="Bit depth: 16 or 24"
    ),
    density: str = typer.Option(
        "balanced", "--density", "-d", help="Sample density: full / balanced / lite"
    ),
    group: bool = typer.Option(
        True, "--group/--no-group", help="Split velocity layers and round robins into separate presets"
    ),
    notes: Optional[List[str]] = typer.Option(
        None, "--note", help="Set a root note manually, e.g. --note kick.wav=C3 (repeatable)"
    ),
    detect_pitch: bool = typer.Option(
        True, "--detect/--no-detect", help="Analyse the waveform when the filename has no note"
    ),
    archive: bool = typer.Option(
        False, "--zip", help="Write a single zip archive instead of preset folders"
    ),
    workers: int = typer.Option(
        1, "--workers", "-w", help="Threads for per-sample processing"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="Verbose output"
    ),
):
    """Build multisample presets from a batch of samples.

    Root notes come from the filename (`Piano_C4.wav`, `C#3.wav`, `60.wav`),
    from a manual `--note`, or from pitch detection.

    **Examples:**

        multisampler build samples/ -n "Soft Piano"

        multisampler build *.wav -n Strings --density full --bit-depth 24 --zip
    """
    from .core import BitDepth, Density, Quality, MultisamplerError
    from .output import PresetWriter
    from .pipeline import BuildConfig, InstrumentBuilder

    try:
        config = BuildConfig(
            name=name,
            quality=Quality.from_name(quality),
            bit_depth=BitDepth.from_bits(bit_depth),
            density=Density.from_name(density),
            grouping=group,
            detect_pitch=detect_pitch,
            manual_notes=parse_note_options(notes or []),
            max_workers=max(1, workers),
        )
        builder = InstrumentBuilder(config)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    files = collect_inputs(inputs)
    if not files:
        console.print("[red]Error: No supported audio files found[/red]")
        raise typer.Exit(1)

    timings = StageTimings()

    try:
        if not json_output:
            console.print(f"\n[bold blue]Building: {name}[/bold blue]")
            console.print(f"   {len(files)} file(s), {config.sample_rate} Hz, "
                          f"{config.bit_depth.bits}-bit, {config.density.value} density\n")

        timings.start("process")
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TimeElapsedColumn(),
            console=console,
            disable=json_output,
        ) as progress:
            task = progress.add_task("Processing samples...", total=None)

            def on_progress(index: int, total: int, filename: str) -> None:
                progress.update(task, completed=index, total=total,
                                description=f"Processing {filename}")

            processed = builder.process(files, on_progress)
        timings.stop()

        timings.start("assemble")
        result = builder.assemble(processed)
        timings.stop()

        timings.start("write")
        written = PresetWriter().write(result.instruments, output_dir, archive=archive, name=name)
        timings.stop()

    except MultisamplerError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    report = result.report

    if json_output:
        console.print_json(data={
            "name": name,
            "output": [str(path) for path in written],
            "instruments": [
                {
                    "name": instrument.name,
                    "folder": instrument.folder_name,
                    "samples": instrument.sample_count,
                    "bytes": instrument.total_bytes,
                    "zones": [
                        {
                            "file": zone.filename,
                            "root": zone.root,
                            "hikey": zone.hikey,
                            "frames": zone.framecount,
                        }
                        for zone in instrument.zones
                    ],
                }
                for instrument in result.instruments
            ],
            "report": report.to_dict(),
            "timing": timings.to_dict(),
        })
        return

    for warning in report.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")
    for note in report.notes:
        console.print(f"[dim]{note}[/dim]")

    if verbose:
        for instrument in result.instruments:
            _show_zones_table(instrument)

    console.print(f"\n[green][OK] Built {len(result.instruments)} preset(s), "
                  f"{result.sample_count} samples, {result.total_bytes / 1e6:.1f} MB[/green]")
    for path in written:
        console.print(f"   {path}")

    if verbose:
        timings.print_summary()


@app.command()
def detect(
    input_files: List[Path] = typer.Argument(..., help="Audio files or folders"),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (for scripting)"
    ),
):
    """Show the root note each file would be mapped to."""
    from .analysis import PitchAnalyzer
    from .core import DecodeError, midi_to_note_name
    from .input import AudioDecoder, parse_note_from_filename

    decoder = AudioDecoder()
    analyzer = PitchAnalyzer()
    rows = []

    for path in collect_inputs(input_files):
        from_name = parse_note_from_filename(path.name)
        detected = None
        error = None
        try:
            sample = decoder.load(path)
            detected = analyzer.detect(sample.audio, sample.sample_rate)
        except (DecodeError, OSError) as e:
            error = str(e)

        rows.append({
            "file": path.name,
            "filename_note": from_name,
            "waveform_note": detected.midi_note if detected else None,
            "frequency": round(detected.frequency, 2) if detected else None,
            "method": detected.method if detected else None,
            "error": error,
        })

    if json_output:
        console.print_json(data=rows)
        return

    def fmt(note):
        return f"{midi_to_note_name(note)} ({note})" if note is not None else "-"

    table = Table(title="Root Notes")
    table.add_column("File", style="cyan")
    table.add_column("Filename", style="green")
    table.add_column("Waveform", style="yellow")
    table.add_column("Frequency", style="magenta")
    table.add_column("Method", style="blue")

    for row in rows:
        if row["error"]:
            table.add_row(row["file"], fmt(row["filename_note"]), f"[red]{row['error']}[/red]", "", "")
            continue
        table.add_row(
            row["file"],
            fmt(row["filename_note"]),
            fmt(row["waveform_note"]),
            f"{row['frequency']:.1f} Hz" if row["frequency"] else "-",
            row["method"] or "-",
        )

    console.print(table)


@app.command()
def info(
    input_file: Path = typer.Argument(..., help="Input audio file"),
):
    """Show information about an audio file."""
    from .analysis import PitchAnalyzer
    from .core import DecodeError, midi_to_note_name
    from .input import AudioDecoder, NoteIdentifier
    from .processing import max_duration_for_note

    if not input_file.exists():
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)

    try:
        sample = AudioDecoder().load(input_file)
    except DecodeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    pitch = NoteIdentifier(PitchAnalyzer().detect_note).identify(
        sample.name, sample.audio, sample.sample_rate
    )

    console.print(f"\n[bold]Audio Info:[/bold] {input_file.name}")
    console.print(f"  Duration: {sample.duration:.2f} seconds")
    console.print(f"  Sample rate: {sample.sample_rate} Hz")
    console.print(f"  Channels: {sample.channels}")
    console.print(f"  Frames: {sample.frames:,}")
    if pitch.is_known:
        console.print(f"  Root note: {midi_to_note_name(pitch.note)} ({pitch.note}, from {pitch.provenance.value})")
    else:
        console.print("  Root note: [yellow]unknown[/yellow]")
    console.print(f"  Duration cap: {max_duration_for_note(pitch.note):.1f}s")


def _show_zones_table(instrument):
    """Display an instrument's keyboard zones in a table."""
    from .core import midi_to_note_name

    table = Table(title=instrument.name)
    table.add_column("Sample", style="cyan")
    table.add_column("Root", style="green")
    table.add_column("Keys", style="yellow")
    table.add_column("Length (s)", style="magenta")
    table.add_column("Source", style="blue")

    for zone, sample in zip(instrument.zones, instrument.samples):
        keys = "-" if zone.is_empty else f"{zone.lokey}-{zone.hikey}"
        table.add_row(
            zone.filename,
            midi_to_note_name(zone.root),
            keys,
            f"{zone.framecount / zone.sample.sample_rate:.2f}",
            f"{sample.name} ({sample.pitch.provenance.value})",
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
