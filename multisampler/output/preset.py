"""Write instruments to disk as .preset folders or a zip archive."""

import io
import json
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, List, Sequence

from ..core.constants import PATCH_FILENAME
from .instrument import InstrumentDocument, sanitize_filename


def preset_tree(instruments: Sequence[InstrumentDocument]) -> Dict[str, Dict[str, bytes]]:
    """Folder name -> {filename: bytes} for every instrument."""
    tree: Dict[str, Dict[str, bytes]] = {}
    for instrument in instruments:
        files = {PATCH_FILENAME: patch_json(instrument)}
        files.update(instrument.sample_files)
        tree[instrument.folder_name] = files
    return tree


def patch_json(instrument: InstrumentDocument) -> bytes:
    """Compact patch.json bytes."""
    return json.dumps(instrument.to_dict(), separators=(",", ":")).encode("utf-8")


def archive_name(name: str, instrument_count: int) -> str:
    """Zip filename: '<name>.preset.zip', or '.presets.zip' for several."""
    suffix = "presets" if instrument_count > 1 else "preset"
    return f"{sanitize_filename(name)}.{suffix}.zip"


def build_archive(instruments: Sequence[InstrumentDocument]) -> bytes:
    """Zip every preset folder into one in-memory archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for folder, files in preset_tree(instruments).items():
            for filename, data in files.items():
                zf.writestr(f"{folder}/{filename}", data)
    return buffer.getvalue()


class PresetWriter:
    """Write built instruments to an output directory.

    Output is staged in a temporary directory next to the destination and
    moved into place only once everything has been written, so a failure
    never leaves a half-written preset behind.
    """

    def __init__(self, overwrite: bool = True):
        """
        Initialize PresetWriter.

        Args:
            overwrite: Replace existing presets/archives with the same name
        """
        self.overwrite = overwrite

    def write(
        self,
        instruments: Sequence[InstrumentDocument],
        output_dir: Path,
        archive: bool = False,
        name: str = "",
    ) -> List[Path]:
        """
        Write instruments.

        Args:
            instruments: Built instruments
            output_dir: Destination directory (created if missing)
            archive: Write a single zip instead of folders
            name: Base name of the zip (defaults to the first instrument's)

        Returns:
            Paths of the written folders or the zip file

        Raises:
            ValueError: If instruments is empty
            FileExistsError: If a target exists and overwrite is off
        """
        if not instruments:
            raise ValueError("Nothing to write")

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        if archive:
            target = output_dir / archive_name(name or instruments[0].name, len(instruments))
            self._check_target(target)
            staging = Path(tempfile.mkdtemp(prefix=".multisampler_", dir=output_dir))
            try:
                staged = staging / target.name
                staged.write_bytes(build_archive(instruments))
                self._move(staged, target)
            finally:
                shutil.rmtree(staging, ignore_errors=True)
            return [target]

        tree = preset_tree(instruments)
        targets = [output_dir / folder for folder in tree]
        for target in targets:
            self._check_target(target)

        staging = Path(tempfile.mkdtemp(prefix=".multisampler_", dir=output_dir))
        try:
            for folder, files in tree.items():
                folder_path = staging / folder
                folder_path.mkdir()
                for filename, data in files.items():
                    (folder_path / filename).write_bytes(data)
            for target in targets:
                self._move(staging / target.name, target)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        return targets

    def _check_target(self, target: Path) -> None:
        if target.exists() and not self.overwrite:
            raise FileExistsError(f"Output already exists: {target}")

    def _move(self, source: Path, target: Path) -> None:
        if target.exists():
            if target.is_dir():
                shutil.rmtree(target)
            else:
                target.unlink()
        shutil.move(str(source), str(target))
