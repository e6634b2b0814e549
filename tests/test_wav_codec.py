from __future__ import annotations

import struct
from pathlib import Path

import numpy as np
import pytest

from stationdesk.codec.wav import (
    HEADER_SIZE,
    AudioBuffer,
    decode_wav,
    encode_wav,
    read_wav,
    write_wav,
)
from stationdesk.errors import WavFormatError


def _fmt_chunk(audio_format: int = 1, channels: int = 1, rate: int = 8000, bits: int = 16) -> bytes:
    block_align = channels * bits // 8
    return b"fmt " + struct.pack("<IHHIIHH", 16, audio_format, channels, rate, rate * block_align, block_align, bits)


def _riff(*chunks: bytes) -> bytes:
    body = b"WAVE" + b"".join(chunks)
    return b"RIFF" + struct.pack("<I", len(body)) + body


def test_decode_stereo_keeps_channels_separate() -> None:
    pcm = struct.pack("<6h", 16384, -16384, 8192, 0, -32767, 32767)
    data = b"data" + struct.pack("<I", len(pcm)) + pcm
    buf = decode_wav(_riff(_fmt_chunk(channels=2, rate=22050), data))

    assert buf.sample_rate == 22050
    assert buf.channels == 2
    assert buf.length == 3
    assert buf.data[0].dtype == np.float32
    assert np.allclose(buf.data[0], [0.5, 0.25, -1.0], atol=1 / 0x7FFF)
    assert np.allclose(buf.data[1], [-0.5, 0.0, 1.0], atol=1 / 0x7FFF)


def test_encode_writes_canonical_header_and_rounds_half_up() -> None:
    buf = AudioBuffer(
        sample_rate=44100,
        channels=1,
        length=4,
        data=[np.array([0.5, -0.5, 1.5, -2.0], dtype=np.float32)],
    )
    raw = encode_wav(buf)

    assert len(raw) == HEADER_SIZE + 4 * 2
    assert raw[:4] == b"RIFF" and raw[8:16] == b"WAVEfmt "
    (riff_size,) = struct.unpack_from("<I", raw, 4)
    assert riff_size == 36 + 8
    assert raw[36:40] == b"data"

    pcm = np.frombuffer(raw, dtype="<i2", offset=HEADER_SIZE)
    # 0.5 * 32767 = 16383.5 rounds up; out-of-range input is clipped
    assert pcm.tolist() == [16384, -16383, 32767, -32767]


def test_encode_empty_buffer_is_header_only() -> None:
    raw = encode_wav(AudioBuffer.empty(44100, 2, 0))
    assert len(raw) == HEADER_SIZE
    assert decode_wav(raw).length == 0


def test_decode_rejects_bad_magic() -> None:
    with pytest.raises(WavFormatError, match="Invalid WAV header"):
        decode_wav(b"RIFX" + b"\x00" * 40)
    with pytest.raises(WavFormatError, match="Invalid WAV header"):
        decode_wav(b"RIFF")


def test_decode_rejects_float_and_24_bit() -> None:
    data = b"data" + struct.pack("<I", 4) + b"\x00" * 4
    with pytest.raises(WavFormatError, match="Only 16-bit PCM supported"):
        decode_wav(_riff(_fmt_chunk(audio_format=3, bits=32), data))
    with pytest.raises(WavFormatError, match="Only 16-bit PCM supported"):
        decode_wav(_riff(_fmt_chunk(bits=24), data))


def test_decode_requires_fmt_and_data() -> None:
    with pytest.raises(WavFormatError, match="missing fmt or data"):
        decode_wav(_riff(_fmt_chunk()))
    with pytest.raises(WavFormatError, match="missing fmt or data"):
        decode_wav(_riff(b"data" + struct.pack("<I", 2) + b"\x00\x00"))


def test_decode_skips_unknown_chunks_with_padding() -> None:
    odd = b"LIST" + struct.pack("<I", 3) + b"abc" + b"\x00"
    samples = struct.pack("<hh", 0x7FFF, -0x7FFF)
    data = b"data" + struct.pack("<I", len(samples)) + samples

    buf = decode_wav(_riff(odd, _fmt_chunk(), data))

    assert buf.sample_rate == 8000
    assert buf.data[0].tolist() == [1.0, -1.0]


def test_decode_rejects_zero_sample_rate() -> None:
    samples = struct.pack("<hh", 100, -100)
    data = b"data" + struct.pack("<I", len(samples)) + samples
    with pytest.raises(WavFormatError, match="Invalid sample rate"):
        decode_wav(_riff(_fmt_chunk(rate=0), data))


def test_every_pcm_level_survives_encode_and_decode() -> None:
    levels = np.arange(-0x7FFF, 0x8000).astype(np.float32) / 0x7FFF
    buf = AudioBuffer(sample_rate=48000, channels=2, length=levels.size, data=[levels, levels[::-1].copy()])

    raw = encode_wav(buf)
    decoded = decode_wav(raw)

    assert decoded.sample_rate == 48000
    assert decoded.channels == 2
    assert decoded.length == levels.size
    assert np.array_equal(decoded.data[0], buf.data[0])
    assert np.array_equal(decoded.data[1], buf.data[1])
    assert encode_wav(decoded) == raw


def test_decode_bounds_frames_by_available_bytes() -> None:
    samples = struct.pack("<hhh", 100, 200, 300)
    # declares far more data than the file holds
    data = b"data" + struct.pack("<I", 1000) + samples
    buf = decode_wav(_riff(_fmt_chunk(), data))
    assert buf.length == 3


def test_read_wav_checks_path_and_extension(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_wav(tmp_path / "missing.wav")

    mp3 = tmp_path / "take.mp3"
    mp3.write_bytes(b"ID3")
    with pytest.raises(WavFormatError, match="Only WAV input supported"):
        read_wav(mp3)


def test_written_file_is_readable_by_libsndfile(tmp_path: Path) -> None:
    sf = pytest.importorskip("soundfile")

    t = np.linspace(0, 1, 4410, endpoint=False)
    tone = (0.4 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
    buf = AudioBuffer(sample_rate=44100, channels=2, length=tone.size, data=[tone, -tone])
    path = write_wav(buf, tmp_path / "nested" / "tone.wav")

    data, rate = sf.read(str(path), dtype="float32", always_2d=True)
    assert rate == 44100
    assert data.shape == (4410, 2)
    assert np.allclose(data[:, 0], tone, atol=1e-4)
    assert np.allclose(data[:, 1], -tone, atol=1e-4)

    again = read_wav(path)
    assert again.length == 4410
    assert np.allclose(again.data[0], tone, atol=1 / 0x7FFF)
