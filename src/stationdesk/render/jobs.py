"""Render jobs: persist a plan, then resolve it into a flattened file.

Jobs live under ``<root>/Flattened/<station_id>/``: ``<job>.json`` holds the
plan, ``<job>.<ext>`` is the output and ``<job>.<ext>.json`` is the summary
written after an effects bake. Resolution is lazy and idempotent: the first
status call after ``start_render`` does the work, later calls see the output.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

from pydantic import ValidationError

from stationdesk.cache.waveform import WaveformService
from stationdesk.dsp.chain import EffectsSettings
from stationdesk.models.config import RenderConfig
from stationdesk.models.render import RenderPlan, RenderStatus, RenderSummary
from stationdesk.render.pipeline import process_audio_offline
from stationdesk.utils.io import copy_via_tmp, read_json, write_json
from stationdesk.utils.progress import log_step, log_success, log_warning

PENDING_PROGRESS = 0.4
OUTPUT_EXTENSIONS = ("m4a", "wav", "mp3")


def wants_fx(plan: RenderPlan) -> bool:
    return plan.wants_fx


class RenderJobs:
    """Stores render plans and produces their output files."""

    def __init__(self, root: Path | str, config: RenderConfig | None = None):
        self.root = Path(root)
        self.config = config or RenderConfig()

    def station_dir(self, station_id: str) -> Path:
        return self.root / self.config.output_dir_name / station_id

    def plan_path(self, job_id: str, station_id: str) -> Path:
        return self.station_dir(station_id) / f"{job_id}.json"

    def output_path(self, job_id: str, station_id: str, ext: str) -> Path:
        return self.station_dir(station_id) / f"{job_id}.{ext}"

    def start_render(self, plan: RenderPlan, station_id: str) -> str:
        """Persist ``plan`` and return the new job id."""
        job_id = f"render-{uuid.uuid4().hex[:6]}"
        write_json(
            self.plan_path(job_id, station_id),
            plan.model_dump(mode="json", by_alias=True),
        )
        log_step("Render", f"Queued {job_id} for station {station_id}")
        return job_id

    def _existing_output(self, job_id: str, station_id: str) -> Path | None:
        for ext in OUTPUT_EXTENSIONS:
            path = self.output_path(job_id, station_id, ext)
            if path.exists():
                return path
        return None

    def get_render_status(self, job_id: str, station_id: str) -> RenderStatus:
        existing = self._existing_output(job_id, station_id)
        if existing is not None:
            return RenderStatus(progress=1.0, uri=str(existing))

        try:
            plan = RenderPlan.model_validate(read_json(self.plan_path(job_id, station_id)))
        except (OSError, ValueError, ValidationError) as e:
            log_warning(f"Render plan {job_id} not readable yet: {e}")
            return RenderStatus(progress=PENDING_PROGRESS)

        out_path = self.output_path(job_id, station_id, plan.out_ext)

        if plan.wants_fx and plan.out_ext == "wav":
            if self._bake(plan, out_path):
                return RenderStatus(progress=1.0, uri=str(out_path))
            log_warning(f"Effects bake failed for {job_id}, copying the source instead")

        try:
            copy_via_tmp(plan.base_uri, out_path)
        except OSError as e:
            log_warning(f"Copy for {job_id} failed: {e}")
            return RenderStatus(progress=PENDING_PROGRESS)
        log_success(f"Flattened {job_id} → {out_path.name}")
        return RenderStatus(progress=1.0, uri=str(out_path))

    def _bake(self, plan: RenderPlan, out_path: Path) -> bool:
        fx = plan.fx
        effects = EffectsSettings(
            normalize_gain_db=fx.normalize_gain_db,
            fade_in_ms=fx.fade_in_ms,
            fade_out_ms=fx.fade_out_ms,
        )
        tmp = out_path.with_name(out_path.name + ".tmp")
        ok = process_audio_offline(plan.base_uri, tmp, effects, config=self.config)
        if not ok:
            tmp.unlink(missing_ok=True)
            return False

        os.replace(tmp, out_path)
        summary = RenderSummary(
            normalize_gain_db=fx.normalize_gain_db,
            fade_in_ms=fx.fade_in_ms,
            fade_out_ms=fx.fade_out_ms,
        )
        try:
            write_json(
                out_path.with_name(out_path.name + ".json"),
                summary.model_dump(mode="json", by_alias=True),
            )
        except OSError as e:
            # the rendered audio is still good without its summary
            log_warning(f"Could not write render summary: {e}")
        log_success(f"Baked effects into {out_path.name}")
        return True


def generate_waveform_for_file(
    service: WaveformService, uri: str, recording_id: str
) -> list[float]:
    """Store a deterministic placeholder waveform for a freshly rendered file."""
    waveform = service.generate_placeholder(uri + recording_id, service.samples)
    service.set(recording_id, waveform)
    return waveform


def update_waveform_after_processing(
    service: WaveformService,
    recording_id: str,
    original: list[float],
    *,
    normalize_gain_db: float | None = None,
    fade_in_ms: float | None = None,
    fade_out_ms: float | None = None,
    duration_ms: float,
) -> list[float]:
    """Derive and store the processed waveform for baked export fx."""
    processed = service.apply_effects(
        original,
        normalize_gain_db=normalize_gain_db,
        fade_in_ms=fade_in_ms,
        fade_out_ms=fade_out_ms,
        duration_ms=duration_ms,
    )
    service.set(recording_id, original, processed)
    return processed
