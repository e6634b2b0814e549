"""16-bit PCM RIFF/WAVE codec.

Decodes to and encodes from an in-memory ``AudioBuffer`` holding one
float32 array per channel, normalized to [-1, 1] by ``0x7FFF``. Only PCM
(format tag 1) at 16 bits per sample is accepted; anything else is a
``WavFormatError``. Output always uses the canonical 44-byte header with
no extension chunks.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from stationdesk.errors import WavFormatError

RIFF = b"RIFF"
WAVE = b"WAVE"
FMT = b"fmt "
DATA = b"data"

PCM_FORMAT = 1
BITS_PER_SAMPLE = 16
HEADER_SIZE = 44
FULL_SCALE = 0x7FFF


@dataclass
class AudioBuffer:
    """Decoded multi-channel audio, one float32 array per channel."""

    sample_rate: int
    channels: int
    length: int
    data: list[np.ndarray] = field(default_factory=list)

    @classmethod
    def empty(cls, sample_rate: int, channels: int, length: int) -> "AudioBuffer":
        return cls(
            sample_rate=sample_rate,
            channels=channels,
            length=length,
            data=[np.zeros(length, dtype=np.float32) for _ in range(channels)],
        )

    @property
    def duration_ms(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.length / self.sample_rate * 1000.0


def decode_wav(raw: bytes) -> AudioBuffer:
    """Parse a 16-bit PCM WAV byte string into an ``AudioBuffer``."""
    if len(raw) < 12 or raw[0:4] != RIFF or raw[8:12] != WAVE:
        raise WavFormatError("Invalid WAV header")

    offset = 12
    fmt: tuple[int, int, int, int] | None = None
    data_offset = -1
    data_size = 0

    while offset + 8 <= len(raw):
        chunk_id = raw[offset:offset + 4]
        (chunk_size,) = struct.unpack_from("<I", raw, offset + 4)
        offset += 8
        if chunk_id == FMT:
            if offset + 16 > len(raw):
                raise WavFormatError("Truncated fmt chunk")
            audio_format, channels, sample_rate = struct.unpack_from("<HHI", raw, offset)
            (bits,) = struct.unpack_from("<H", raw, offset + 14)
            fmt = (audio_format, channels, sample_rate, bits)
        elif chunk_id == DATA:
            data_offset = offset
            data_size = chunk_size
            break
        # chunks are word aligned
        offset += chunk_size + (chunk_size % 2)

    if fmt is None or data_offset < 0:
        raise WavFormatError("WAV missing fmt or data chunk")

    audio_format, channels, sample_rate, bits = fmt
    if audio_format != PCM_FORMAT or bits != BITS_PER_SAMPLE:
        raise WavFormatError("Only 16-bit PCM supported")
    if channels < 1:
        raise WavFormatError("WAV declares zero channels")
    if sample_rate == 0:
        raise WavFormatError("Invalid sample rate")

    available = max(0, len(raw) - data_offset)
    frame_bytes = channels * 2
    frames = min(data_size, available) // frame_bytes
    if frames == 0:
        return AudioBuffer.empty(sample_rate, channels, 0)

    pcm = np.frombuffer(raw, dtype="<i2", count=frames * channels, offset=data_offset)
    pcm = pcm.reshape(frames, channels)
    scaled = np.clip(pcm.astype(np.float32) / FULL_SCALE, -1.0, 1.0)

    return AudioBuffer(
        sample_rate=sample_rate,
        channels=channels,
        length=frames,
        data=[np.ascontiguousarray(scaled[:, ch]) for ch in range(channels)],
    )


def wav_header(sample_rate: int, channels: int, frames: int) -> bytes:
    """Build the canonical 44-byte PCM header."""
    block_align = channels * BITS_PER_SAMPLE // 8
    byte_rate = sample_rate * block_align
    data_size = frames * block_align
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        RIFF,
        36 + data_size,
        WAVE,
        FMT,
        16,
        PCM_FORMAT,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        BITS_PER_SAMPLE,
        DATA,
        data_size,
    )


def encode_wav(buffer: AudioBuffer) -> bytes:
    """Serialize an ``AudioBuffer`` to 16-bit PCM WAV bytes."""
    header = wav_header(buffer.sample_rate, buffer.channels, buffer.length)
    if buffer.length == 0:
        return header

    frames = np.zeros((buffer.length, buffer.channels), dtype=np.float64)
    for ch in range(buffer.channels):
        samples = np.asarray(buffer.data[ch][: buffer.length], dtype=np.float64)
        frames[: samples.shape[0], ch] = samples

    # round half up, so -0.5 steps go toward zero
    quantized = np.floor(np.clip(frames, -1.0, 1.0) * FULL_SCALE + 0.5)
    return header + quantized.astype("<i2").tobytes()


def read_wav(path: Path | str) -> AudioBuffer:
    """Read a WAV file from disk."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")
    if path.suffix.lower() != ".wav":
        raise WavFormatError("Only WAV input supported for processing")
    return decode_wav(path.read_bytes())


def write_wav(buffer: AudioBuffer, path: Path | str) -> Path:
    """Write an ``AudioBuffer`` to disk as 16-bit PCM WAV."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_wav(buffer))
    return path
