"""Stereo PCM WAV encoding."""

import struct
from dataclasses import dataclass

import numpy as np

from ..core import BitDepth, ConditionedSample, EncodedSample

HEADER_SIZE = 44
NUM_CHANNELS = 2


def quantize(samples: np.ndarray, bit_depth: int) -> np.ndarray:
    """
    Convert float samples to signed integer codes.

    Samples are clamped to [-1, 1]. Negative values scale by 2**(bits-1)
    and positive ones by 2**(bits-1) - 1, so -1.0 and 1.0 map to the two
    ends of the integer range. Values are rounded half up, not truncated.

    Args:
        samples: Float samples
        bit_depth: 16 or 24

    Returns:
        int32 array of codes
    """
    depth = BitDepth.from_bits(bit_depth)
    negative_scale = float(1 << (depth.bits - 1))
    positive_scale = negative_scale - 1

    x = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(x < 0, x * negative_scale, x * positive_scale)
    return np.floor(scaled + 0.5).astype(np.int32)


def interleave_pcm(left: np.ndarray, right: np.ndarray, bit_depth: int) -> bytes:
    """Interleave L/R channels as little-endian PCM frames."""
    if len(left) != len(right):
        raise ValueError(f"Channel lengths differ: {len(left)} != {len(right)}")

    frames = np.empty((len(left), NUM_CHANNELS), dtype=np.int32)
    frames[:, 0] = quantize(left, bit_depth)
    frames[:, 1] = quantize(right, bit_depth)
    codes = frames.reshape(-1)

    if bit_depth == 16:
        return codes.astype("<i2").tobytes()

    # 24-bit: low three bytes of each little-endian int32
    raw = codes.astype("<i4").view(np.uint8).reshape(-1, 4)
    return raw[:, :3].tobytes()


def wav_header(data_size: int, sample_rate: int, bit_depth: int) -> bytes:
    """Canonical 44 byte RIFF/WAVE header for stereo PCM."""
    block_align = NUM_CHANNELS * (bit_depth // 8)
    return b"".join([
        b"RIFF",
        struct.pack("<I", 36 + data_size),
        b"WAVE",
        b"fmt ",
        struct.pack(
            "<IHHIIHH",
            16,  # fmt chunk size
            1,  # PCM
            NUM_CHANNELS,
            sample_rate,
            sample_rate * block_align,  # byte rate
            block_align,
            bit_depth,
        ),
        b"data",
        struct.pack("<I", data_size),
    ])


def encode_wav(
    left: np.ndarray,
    right: np.ndarray,
    sample_rate: int,
    bit_depth: int = 16,
) -> bytes:
    """
    Encode a stereo float signal as a PCM WAV file.

    Args:
        left: Left channel, roughly in [-1, 1]
        right: Right channel, same length
        sample_rate: Sample rate written to the header
        bit_depth: 16 or 24

    Returns:
        Complete WAV file bytes

    Raises:
        ValueError: For an unsupported bit depth or mismatched channels
    """
    BitDepth.from_bits(bit_depth)
    pcm = interleave_pcm(left, right, bit_depth)
    return wav_header(len(pcm), sample_rate, bit_depth) + pcm


def encode_sample(sample: ConditionedSample, bit_depth: int = 16) -> EncodedSample:
    """Encode a conditioned sample."""
    data = encode_wav(sample.left, sample.right, sample.sample_rate, bit_depth)
    return EncodedSample(
        data=data,
        frames=sample.frames,
        sample_rate=sample.sample_rate,
        bit_depth=bit_depth,
    )


@dataclass(frozen=True)
class WavInfo:
    """Fields of a canonical WAV header."""

    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bit_depth: int
    data_size: int

    @property
    def frames(self) -> int:
        return self.data_size // self.block_align


def read_wav_header(data: bytes) -> WavInfo:
    """
    Parse the header written by encode_wav.

    Raises:
        ValueError: If the data is not a canonical PCM WAV file
    """
    if len(data) < HEADER_SIZE or data[0:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise ValueError("Not a RIFF/WAVE file")
    if data[12:16] != b"fmt " or data[36:40] != b"data":
        raise ValueError("Unexpected chunk layout")

    _, audio_format, channels, sample_rate, byte_rate, block_align, bits = struct.unpack(
        "<IHHIIHH", data[16:36]
    )
    if audio_format != 1:
        raise ValueError(f"Not PCM (format {audio_format})")
    (data_size,) = struct.unpack("<I", data[40:44])

    return WavInfo(
        channels=channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bit_depth=bits,
        data_size=data_size,
    )
