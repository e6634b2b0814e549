from __future__ import annotations

import struct
from pathlib import Path
from typing import Callable

import numpy as np
import pytest


def pcm16_wav_bytes(samples: np.ndarray, sample_rate: int = 44100) -> bytes:
    """Encode ``samples`` (frames × channels, or 1-D mono) as 16-bit PCM WAV."""
    frames = samples.reshape(-1, 1) if samples.ndim == 1 else samples
    channels = frames.shape[1]
    pcm = np.round(np.clip(frames, -1.0, 1.0) * 0x7FFF).astype("<i2").tobytes()
    block_align = channels * 2
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF", 36 + len(pcm), b"WAVE",
        b"fmt ", 16, 1, channels, sample_rate, sample_rate * block_align, block_align, 16,
        b"data", len(pcm),
    )
    return header + pcm


@pytest.fixture
def make_wav(tmp_path: Path) -> Callable[..., Path]:
    def _make(
        name: str = "input.wav",
        *,
        seconds: float = 1.0,
        sample_rate: int = 44100,
        channels: int = 1,
        level: float = 0.5,
        frames: int | None = None,
    ) -> Path:
        n = frames if frames is not None else int(round(seconds * sample_rate))
        data = np.full((n, channels), level, dtype=np.float64)
        path = tmp_path / name
        path.write_bytes(pcm16_wav_bytes(data, sample_rate))
        return path

    return _make
