"""Split a sample batch into velocity layers / round robins by filename suffix."""

import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, List, Optional, Sequence

from .filename import strip_extension


@dataclass(frozen=True)
class GroupPattern:
    """A filename suffix that marks group membership."""

    regex: "re.Pattern"
    type: str
    label: str


def _pattern(expr: str, kind: str, label: str) -> GroupPattern:
    return GroupPattern(re.compile(expr, re.IGNORECASE), kind, label)


GROUPING_PATTERNS: List[GroupPattern] = [
    # Round robins
    _pattern(r"_RR(\d+)$", "round-robin", "Round Robin"),
    _pattern(r"-RR(\d+)$", "round-robin", "Round Robin"),
    _pattern(r"_R(\d+)$", "round-robin", "Round Robin"),
    # Velocity layers (dynamics markings)
    _pattern(r"[_-](fff|ff|f|mf|mp|ppp|pp|p)$", "velocity", "Velocity Layer"),
    _pattern(r"[_-](hard|medium|soft|light)$", "velocity", "Velocity Layer"),
    # Velocity layers (numbered)
    _pattern(r"_V(\d+)$", "velocity", "Velocity Layer"),
    _pattern(r"-V(\d+)$", "velocity", "Velocity Layer"),
    _pattern(r"_L(\d+)$", "layer", "Layer"),
    _pattern(r"-L(\d+)$", "layer", "Layer"),
]

# A pattern only counts when it splits at least this many files into
# at least two groups
MIN_MATCHED_FILES = 4
MIN_GROUPS = 2


@dataclass
class GroupingResult:
    """Winning suffix pattern and the files it assigned to each group."""

    type: str
    label: str
    pattern: GroupPattern
    groups: Dict[str, List[str]] = field(default_factory=dict)
    ungrouped: List[str] = field(default_factory=list)

    @property
    def group_keys(self) -> List[str]:
        return sorted(self.groups)

    @property
    def matched_count(self) -> int:
        return sum(len(files) for files in self.groups.values())


def detect_groups(filenames: Sequence[str]) -> Optional[GroupingResult]:
    """
    Find the suffix pattern that best partitions a set of filenames.

    Every pattern is tried; among those matching at least four files across
    at least two groups, the one matching the most files wins (ties go to
    the one producing more groups, then to table order).

    Args:
        filenames: Sample filenames

    Returns:
        GroupingResult, or None if no pattern qualifies
    """
    candidates = []

    for order, pattern in enumerate(GROUPING_PATTERNS):
        groups: Dict[str, List[str]] = {}
        for filename in filenames:
            match = pattern.regex.search(strip_extension(filename))
            if match:
                groups.setdefault(match.group(1).upper(), []).append(filename)

        matched = sum(len(files) for files in groups.values())
        if len(groups) >= MIN_GROUPS and matched >= MIN_MATCHED_FILES:
            candidates.append((-matched, -len(groups), order, pattern, groups))

    if not candidates:
        return None

    candidates.sort(key=lambda c: c[:3])
    _, _, _, best, groups = candidates[0]
    grouped = {f for files in groups.values() for f in files}

    return GroupingResult(
        type=best.type,
        label=best.label,
        pattern=best,
        groups=groups,
        ungrouped=[f for f in filenames if f not in grouped],
    )


def strip_group_suffix(filename: str, grouping: Optional[GroupingResult]) -> str:
    """Remove the group suffix so note detection sees only the base name.

    'Piano_C4_RR2.wav' -> 'Piano_C4.wav'
    """
    if grouping is None:
        return filename
    path = PurePath(filename)
    base = strip_extension(path.name)
    if not grouping.pattern.regex.search(base):
        return filename
    return grouping.pattern.regex.sub("", base) + path.name[len(base):]
