"""Output presets: quality tiers, bit depths and sample density tiers."""

from enum import Enum


class Quality(Enum):
    """Target sample rate tier."""

    STANDARD = "standard"
    HIGH = "high"
    LOFI = "lofi"

    @property
    def sample_rate(self) -> int:
        return _SAMPLE_RATES[self]

    @classmethod
    def from_name(cls, name: str) -> "Quality":
        """Resolve a tier from its (case-insensitive) name."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(q.value for q in cls)
            raise ValueError(f"Unknown quality '{name}'. Choose one of: {valid}")


_SAMPLE_RATES = {
    Quality.STANDARD: 44100,
    Quality.HIGH: 48000,
    Quality.LOFI: 22050,
}


class BitDepth(Enum):
    """PCM word size of the encoded samples."""

    PCM_16 = 16
    PCM_24 = 24

    @property
    def bits(self) -> int:
        return self.value

    @property
    def bytes_per_sample(self) -> int:
        return self.value // 8

    @classmethod
    def from_bits(cls, bits: int) -> "BitDepth":
        try:
            return cls(int(bits))
        except ValueError:
            raise ValueError(f"Unsupported bit depth: {bits} (use 16 or 24)")


class Density(Enum):
    """Sample density tier.

    Each tier bundles the maximum number of samples kept in an instrument
    and the semitone spacing the selector aims for when it has to drop
    samples.
    """

    FULL = "full"
    BALANCED = "balanced"
    LITE = "lite"

    @property
    def max_samples(self) -> int:
        return _DENSITY_SETTINGS[self][0]

    @property
    def interval(self) -> int:
        return _DENSITY_SETTINGS[self][1]

    @property
    def description(self) -> str:
        return _DENSITY_SETTINGS[self][2]

    @classmethod
    def from_name(cls, name: str) -> "Density":
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(d.value for d in cls)
            raise ValueError(f"Unknown density '{name}'. Choose one of: {valid}")


_DENSITY_SETTINGS = {
    Density.FULL: (24, 4, "Every major 3rd"),
    Density.BALANCED: (12, 7, "Every perfect 5th"),
    Density.LITE: (5, 14, "Every octave+"),
}
