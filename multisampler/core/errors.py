"""Exceptions raised by the build pipeline."""


class MultisamplerError(Exception):
    """Base class for all pipeline errors."""


class DecodeError(MultisamplerError):
    """A single input file could not be decoded.

    Raised per file; the batch driver records it as a warning and keeps
    going with the remaining files.
    """

    def __init__(self, filename: str, reason: str = ""):
        self.filename = filename
        self.reason = reason
        message = f"Could not decode {filename}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class EmptyBatchError(MultisamplerError):
    """No input file survived decoding and processing."""


class NoInstrumentError(MultisamplerError):
    """Every group ended up empty, so no instrument could be assembled."""
