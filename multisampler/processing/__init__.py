"""Processing layer - Per-sample conditioning and batch selection.

- Signal conditioning (trim, normalize, limit, fade, truncate)
- Density based sample selection
- Placeholder notes for unpitched samples
"""

from .conditioner import SignalConditioner, ConditionerConfig, max_duration_for_note
from .selection import select_by_density, assign_missing_notes

__all__ = [
    "SignalConditioner",
    "ConditionerConfig",
    "max_duration_for_note",
    "select_by_density",
    "assign_missing_notes",
]
