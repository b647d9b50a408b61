"""Batch-wide sample selection and note assignment.

Both functions need the whole batch, so they run only after every sample
has been detected, conditioned and encoded.
"""

import math
from typing import List, Optional, Sequence

from ..core import Density, GAP_FILL_START, Provenance, ProcessedSample
from ..core.constants import MIDI_MAX


def select_by_density(
    samples: Sequence[ProcessedSample],
    density: Optional[Density] = None,
    max_samples: Optional[int] = None,
    interval: Optional[float] = None,
) -> List[ProcessedSample]:
    """
    Reduce a batch to at most max_samples, spread across the pitch range.

    Samples without a note are only kept when the pitched ones leave room
    in the budget. When there are too many pitched samples, evenly spaced
    target notes are laid over the pitch span (aiming for the given
    semitone interval) and the closest unused sample is taken for each.

    Args:
        samples: Processed samples
        density: Density tier supplying max_samples and interval
        max_samples: Budget, overrides the tier
        interval: Target spacing in semitones, overrides the tier

    Returns:
        Selected samples, pitched ones first in ascending note order
    """
    if density is None and (max_samples is None or interval is None):
        density = Density.BALANCED
    if max_samples is None:
        max_samples = density.max_samples
    if interval is None:
        interval = density.interval

    with_notes = sorted((s for s in samples if s.note is not None), key=lambda s: s.note)
    without_notes = [s for s in samples if s.note is None]

    if len(with_notes) <= max_samples:
        remaining = max_samples - len(with_notes)
        return with_notes + without_notes[:remaining]

    min_note = with_notes[0].note
    span = with_notes[-1].note - min_note

    if span == 0:
        return with_notes[:max_samples]

    target_count = min(math.ceil(span / interval) + 1, max_samples)
    step = span / (target_count - 1 or 1)

    selected: List[ProcessedSample] = []
    taken = set()

    for i in range(target_count):
        target = min_note + i * step
        closest = None
        closest_dist = math.inf
        for index, sample in enumerate(with_notes):
            if index in taken:
                continue
            dist = abs(sample.note - target)
            if dist < closest_dist:
                closest_dist = dist
                closest = index
        if closest is not None:
            taken.add(closest)
            selected.append(with_notes[closest])

    return selected


def assign_missing_notes(
    samples: Sequence[ProcessedSample],
    start_note: int = GAP_FILL_START,
) -> List[ProcessedSample]:
    """
    Give every sample without a note an unused one.

    Notes are handed out chromatically from start_note (C3) upwards,
    skipping notes already taken, in the order the unpitched samples
    appear.

    Args:
        samples: Processed samples, some possibly without a note
        start_note: First candidate note

    Returns:
        Pitched samples followed by the newly assigned ones

    Raises:
        ValueError: If every free note up to 127 is taken. Builds never get
            there: density selection caps an instrument at 24 samples and
            C3 leaves 80 notes to hand out, so no sample is lost.
    """
    with_notes = [s for s in samples if s.note is not None]
    without_notes = [s for s in samples if s.note is None]

    if not without_notes:
        return list(samples)

    used = {s.note for s in with_notes}
    next_note = start_note

    for sample in without_notes:
        while next_note in used and next_note <= MIDI_MAX:
            next_note += 1
        if next_note > MIDI_MAX:
            raise ValueError(
                f"No free note left for {sample.name} (searched {start_note}-{MIDI_MAX})"
            )
        sample.pitch.update(next_note, Provenance.GAP_FILLED)
        used.add(next_note)
        next_note += 1

    return with_notes + without_notes
