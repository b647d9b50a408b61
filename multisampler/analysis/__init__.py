"""Analysis layer - Signal analysis of decoded samples.

- Root pitch detection (McLeod pitch method with YIN fallback)
"""

from .pitch import PitchAnalyzer, PitchResult, mcleod_pitch

__all__ = [
    "PitchAnalyzer",
    "PitchResult",
    "mcleod_pitch",
]
