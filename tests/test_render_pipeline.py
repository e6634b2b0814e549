from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import pytest

from stationdesk.codec.wav import AudioBuffer, read_wav, write_wav
from stationdesk.dsp.chain import EffectsSettings
from stationdesk.errors import RenderCancelled, RenderError, WavFormatError
from stationdesk.models.config import RenderConfig
from stationdesk.models.timeline import CompressorSettings, EQSettings, NoiseGateSettings
from stationdesk.render.pipeline import (
    CANCELLED_STATUS,
    CancelToken,
    OfflineRenderer,
    RenderRequest,
    RenderStage,
    process_audio_offline,
)

ATOL = 2 / 0x7FFF


class Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[float, str]] = []

    def __call__(self, progress: float, status: str) -> None:
        self.calls.append((progress, status))

    @property
    def statuses(self) -> list[str]:
        return [s for _, s in self.calls]


def test_trimmed_render_with_fades_and_normalize(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav(seconds=2.0, level=0.5)
    out = tmp_path / "out.wav"
    effects = EffectsSettings(normalize_gain_db=-3, fade_in_ms=100, fade_out_ms=100)
    progress = Recorder()

    renderer = OfflineRenderer(effects)
    result = renderer.render(
        RenderRequest(input_path=src, output_path=out, trim_start_ms=500, trim_end_ms=1500),
        progress,
    )

    assert result.stage is RenderStage.DONE
    assert result.samples == 44100
    assert result.duration_ms == pytest.approx(1000)

    rendered = read_wav(out)
    samples = rendered.data[0]
    assert rendered.length == 44100

    peak = 0.5 * 10 ** (-3 / 20)
    # fade-in ramps from the output floor toward the normalized level
    assert samples[0] == pytest.approx(0.001, abs=ATOL)
    assert samples[2205] == pytest.approx(peak * 0.5, abs=ATOL)
    assert samples[4410] == pytest.approx(peak, abs=ATOL)
    assert np.all(np.diff(samples[:4410]) >= 0)
    # flat middle
    assert np.allclose(samples[4410:-4410], peak, atol=ATOL)
    # symmetric fade-out
    assert samples[-2205] == pytest.approx(peak * 0.5, abs=ATOL)
    assert np.all(np.diff(samples[-4410:]) <= 0)
    assert samples[-1] == pytest.approx(0.001, abs=ATOL)


def test_sign_is_reapplied_per_sample(tmp_path: Path) -> None:
    src = tmp_path / "alt.wav"
    data = np.tile(np.array([0.4, -0.4], dtype=np.float32), 1000)
    write_wav(AudioBuffer(sample_rate=8000, channels=1, length=data.size, data=[data]), src)

    out = tmp_path / "alt-out.wav"
    OfflineRenderer(EffectsSettings()).render(RenderRequest(input_path=src, output_path=out))

    rendered = read_wav(out).data[0]
    assert rendered.size == 2000
    assert np.allclose(rendered, data, atol=ATOL)


def test_progress_is_monotonic_and_ends_at_one(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav(frames=10 * 1024, channels=2)
    progress = Recorder()
    effects = EffectsSettings(
        eq=EQSettings(enabled=True),
        compressor=CompressorSettings(enabled=True),
        noise_gate=NoiseGateSettings(enabled=True),
    )

    result = OfflineRenderer(effects).render(
        RenderRequest(input_path=src, output_path=tmp_path / "o.wav"), progress
    )

    values = [p for p, _ in progress.calls]
    assert values == sorted(values)
    assert values[0] == 0.0
    assert progress.calls[-1] == (1.0, "Processing complete")
    assert progress.statuses[:3] == ["Loading audio file...", "Analyzing audio...", "Applying audio effects..."]
    assert "Saving processed audio..." in progress.statuses

    processing = [(p, s) for p, s in progress.calls if s.startswith("Processing audio")]
    assert len(processing) == 10
    assert processing[0][1] == "Processing audio... 10%"
    assert processing[0][0] == pytest.approx(0.35)
    assert processing[-1][1] == "Processing audio... 100%"
    assert processing[-1][0] == pytest.approx(0.8)
    assert result.blocks == 10
    assert result.channels == 2


def test_non_wav_input_fails_without_output(tmp_path: Path) -> None:
    src = tmp_path / "take.m4a"
    src.write_bytes(b"\x00\x00\x00\x18ftypM4A ")
    out = tmp_path / "out.wav"
    renderer = OfflineRenderer(EffectsSettings())

    with pytest.raises(WavFormatError):
        renderer.render(RenderRequest(input_path=src, output_path=out))

    assert renderer.stage is RenderStage.FAILED
    assert not out.exists()


def test_missing_input_is_a_load_error(tmp_path: Path) -> None:
    renderer = OfflineRenderer(EffectsSettings())
    with pytest.raises(RenderError) as excinfo:
        renderer.render(RenderRequest(input_path=tmp_path / "gone.wav", output_path=tmp_path / "o.wav"))
    assert excinfo.value.stage == "loading"
    assert renderer.stage is RenderStage.FAILED


def test_cancel_mid_processing(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav(frames=20 * 1024)
    out = tmp_path / "out.wav"
    token = CancelToken()
    progress = Recorder()

    def on_progress(value: float, status: str) -> None:
        progress(value, status)
        if status.startswith("Processing audio") and len(
            [s for s in progress.statuses if s.startswith("Processing audio")]
        ) == 5:
            token.cancel()

    renderer = OfflineRenderer(EffectsSettings(fade_in_ms=10), cancel_token=token)
    with pytest.raises(RenderCancelled) as excinfo:
        renderer.render(RenderRequest(input_path=src, output_path=out), on_progress)

    assert (excinfo.value.block, excinfo.value.total_blocks) == (5, 20)
    assert renderer.stage is RenderStage.CANCELLED
    assert progress.statuses[-1] == CANCELLED_STATUS
    assert progress.calls[-1][0] == progress.calls[-2][0]
    assert "Saving processed audio..." not in progress.statuses
    assert not out.exists()


def test_unwritable_output_is_a_save_error(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav(frames=2048)
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    renderer = OfflineRenderer(EffectsSettings())

    with pytest.raises(RenderError) as excinfo:
        renderer.render(RenderRequest(input_path=src, output_path=blocker / "out.wav"))

    assert excinfo.value.stage == "saving"
    assert renderer.stage is RenderStage.FAILED


def test_renders_are_independent(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav(frames=4096, level=0.8)
    effects = EffectsSettings(compressor=CompressorSettings(enabled=True, threshold=-20))
    renderer = OfflineRenderer(effects, config=RenderConfig(block_size=256))

    renderer.render(RenderRequest(input_path=src, output_path=tmp_path / "a.wav"))
    renderer.render(RenderRequest(input_path=src, output_path=tmp_path / "b.wav"))
    fresh = OfflineRenderer(effects, config=RenderConfig(block_size=4096))
    fresh.render(RenderRequest(input_path=src, output_path=tmp_path / "c.wav"))

    a = (tmp_path / "a.wav").read_bytes()
    assert a == (tmp_path / "b.wav").read_bytes()
    # block size does not change the result
    assert a == (tmp_path / "c.wav").read_bytes()


def test_request_effects_override_renderer_settings(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav(frames=1000, level=0.5)
    renderer = OfflineRenderer(EffectsSettings(normalize_gain_db=-12))
    renderer.render(
        RenderRequest(
            input_path=src,
            output_path=tmp_path / "o.wav",
            effects=EffectsSettings(),
        )
    )
    assert np.allclose(read_wav(tmp_path / "o.wav").data[0], 0.5, atol=ATOL)


def test_process_audio_offline_reports_bool(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav(frames=1500)
    statuses: list[str] = []

    assert process_audio_offline(src, tmp_path / "ok.wav", EffectsSettings())
    assert (tmp_path / "ok.wav").exists()

    bad = tmp_path / "bad.mp3"
    bad.write_bytes(b"ID3")
    assert not process_audio_offline(bad, tmp_path / "no.wav", EffectsSettings(), on_progress=lambda p, s: statuses.append(s))
    assert not (tmp_path / "no.wav").exists()
    assert statuses[-1].startswith("Error:")

    token = CancelToken()
    token.cancel()
    assert not process_audio_offline(src, tmp_path / "c.wav", EffectsSettings(), cancel_token=token)
    assert not (tmp_path / "c.wav").exists()


def test_zero_sample_rate_input_fails_without_output(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav("broken.wav", frames=100, sample_rate=0)
    out = tmp_path / "out.wav"
    renderer = OfflineRenderer(EffectsSettings())

    with pytest.raises(WavFormatError, match="Invalid sample rate"):
        renderer.render(RenderRequest(input_path=src, output_path=out))
    assert renderer.stage is RenderStage.FAILED

    assert not process_audio_offline(src, out, EffectsSettings())
    assert not out.exists()
