from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import numpy as np

from stationdesk.cache.waveform import WaveformService
from stationdesk.codec.wav import read_wav
from stationdesk.models.render import RenderPlan
from stationdesk.render.jobs import (
    PENDING_PROGRESS,
    RenderJobs,
    generate_waveform_for_file,
    update_waveform_after_processing,
    wants_fx,
)


def test_start_render_persists_plan(tmp_path: Path) -> None:
    jobs = RenderJobs(tmp_path)
    plan = RenderPlan.model_validate({"baseUri": "/audio/take.wav", "fx": {"fadeInMs": 50}})

    job_id = jobs.start_render(plan, "kxyz")

    assert job_id.startswith("render-")
    saved = json.loads((tmp_path / "Flattened" / "kxyz" / f"{job_id}.json").read_text())
    assert saved["baseUri"] == "/audio/take.wav"
    assert saved["fx"]["fadeInMs"] == 50
    assert saved["outExt"] == "m4a"


def test_plain_plan_is_copied(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav(frames=800)
    jobs = RenderJobs(tmp_path / "store")
    job_id = jobs.start_render(RenderPlan(base_uri=str(src)), "kxyz")

    status = jobs.get_render_status(job_id, "kxyz")

    assert status.progress == 1.0
    out = Path(status.uri)
    assert out.name == f"{job_id}.m4a"
    assert out.read_bytes() == src.read_bytes()
    assert not out.with_name(out.name + ".tmp").exists()

    # resolved jobs are served from disk
    src.unlink()
    assert jobs.get_render_status(job_id, "kxyz").uri == str(out)


def test_wav_plan_with_fx_is_baked(make_wav: Callable[..., Path], tmp_path: Path) -> None:
    src = make_wav(seconds=1.0, level=0.5)
    jobs = RenderJobs(tmp_path)
    plan = RenderPlan.model_validate(
        {
            "baseUri": str(src),
            "fx": {"normalizeGainDb": -6, "fadeInMs": 100, "fadeOutMs": 100},
            "outExt": "wav",
        }
    )
    job_id = jobs.start_render(plan, "kxyz")

    status = jobs.get_render_status(job_id, "kxyz")

    out = Path(status.uri)
    assert status.progress == 1.0
    assert out.suffix == ".wav"
    baked = read_wav(out).data[0]
    assert baked[0] < 0.01
    assert np.isclose(baked[22050], 0.5 * 10 ** (-6 / 20), atol=1e-3)

    summary = json.loads(out.with_name(out.name + ".json").read_text())
    assert summary["baked"] is True
    assert summary["normalizeGainDb"] == -6
    assert summary["fadeInMs"] == 100 and summary["fadeOutMs"] == 100
    assert "createdAt" in summary
    assert not out.with_name(out.name + ".tmp").exists()


def test_failed_bake_falls_back_to_copy(tmp_path: Path) -> None:
    src = tmp_path / "take.mp3"
    src.write_bytes(b"ID3 not really audio")
    jobs = RenderJobs(tmp_path)
    plan = RenderPlan(base_uri=str(src), fx={"fade_in_ms": 100}, out_ext="wav")
    job_id = jobs.start_render(plan, "kxyz")

    status = jobs.get_render_status(job_id, "kxyz")

    out = Path(status.uri)
    assert status.progress == 1.0
    assert out.read_bytes() == src.read_bytes()
    assert not out.with_name(out.name + ".json").exists()


def test_unresolvable_jobs_stay_pending(tmp_path: Path) -> None:
    jobs = RenderJobs(tmp_path)
    assert jobs.get_render_status("render-none", "kxyz").progress == PENDING_PROGRESS

    broken = jobs.plan_path("render-bad", "kxyz")
    broken.parent.mkdir(parents=True)
    broken.write_text("{not json")
    status = jobs.get_render_status("render-bad", "kxyz")
    assert status.progress == PENDING_PROGRESS and status.uri is None

    job_id = jobs.start_render(RenderPlan(base_uri=str(tmp_path / "gone.wav")), "kxyz")
    assert jobs.get_render_status(job_id, "kxyz").progress == PENDING_PROGRESS


def test_wants_fx_ignores_padding_only() -> None:
    assert not wants_fx(RenderPlan(base_uri="x"))
    assert not wants_fx(RenderPlan(base_uri="x", fx={"pad_head_ms": 200}))
    assert wants_fx(RenderPlan(base_uri="x", fx={"normalize_gain_db": 0}))


def test_waveform_helpers_store_in_service() -> None:
    service = WaveformService()

    wf = generate_waveform_for_file(service, "/flat/render-1.wav", "rec-1")
    assert len(wf) == 160
    assert service.get("rec-1") == wf
    assert wf == service.generate_placeholder("/flat/render-1.wavrec-1")

    processed = update_waveform_after_processing(
        service, "rec-1", wf, fade_in_ms=1000, duration_ms=10_000
    )
    assert processed[0] == 0.0
    assert service.get("rec-1", processed=True) == processed
    assert service.get("rec-1") == wf
