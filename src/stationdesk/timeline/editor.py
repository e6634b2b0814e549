"""Timeline editing operations over a single project.

Every mutator is total: an unknown track or segment id is a no-op, never an
error. Out-of-range numbers are clamped by the models. The editor is
single-writer; a multi-threaded host must serialize calls itself.
"""

from __future__ import annotations

import math
from typing import Any, Literal

from stationdesk.models.config import TimelineConfig
from stationdesk.models.project import Project
from stationdesk.models.timeline import (
    AudioSegment,
    AutomationPoint,
    FxSettings,
    ProjectSettings,
    TimelineViewport,
    Track,
    TrackAutomation,
)
from stationdesk.timeline import automation
from stationdesk.timeline.defaults import can_add_track, next_track_color
from stationdesk.timeline.ids import VersionCounter, new_id
from stationdesk.timeline.snap import enforce_min_width, snap_ms
from stationdesk.utils.progress import log_warning

AutomationParam = Literal["volume", "pan"]

_FROZEN_TRACK_FIELDS = {"id", "type"}


def _deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class TimelineEditor:
    """Applies edits to ``project`` in place and enforces its invariants."""

    def __init__(
        self,
        project: Project,
        *,
        config: TimelineConfig | None = None,
        versions: VersionCounter | None = None,
    ):
        self.project = project
        self.config = config or TimelineConfig()
        self.versions = versions or VersionCounter(project.waveform_version)

    def add_track(self, spec: dict[str, Any] | None = None) -> Track | None:
        """Append a track with a fresh id and index; returns None when over the limit."""
        spec = dict(spec or {})
        spec.pop("id", None)
        track_type = spec.get("type", "audio")
        tracks = self.project.tracks

        if not can_add_track(tracks, track_type, self.config):
            log_warning(f"Track limit reached, not adding {track_type} track")
            return None

        spec["index"] = max((t.index for t in tracks), default=-1) + 1
        spec.setdefault("color", next_track_color(tracks))
        spec.setdefault("name", f"{track_type.capitalize()} {spec['index']}")

        track = Track(id=new_id("track"), **spec)
        tracks.append(track)
        return track

    def remove_track(self, track_id: str) -> bool:
        """Delete a track and every segment on it. The master track is never removed."""
        track = self.project.get_track(track_id)
        if track is None or track.type == "master":
            return False
        self.project.tracks = [t for t in self.project.tracks if t.id != track_id]
        self.project.segments = [s for s in self.project.segments if s.track_id != track_id]
        return True

    def update_track(self, track_id: str, patch: dict[str, Any]) -> Track | None:
        for i, track in enumerate(self.project.tracks):
            if track.id != track_id:
                continue
            patch = {k: v for k, v in patch.items() if k not in _FROZEN_TRACK_FIELDS}
            patch = self._drop_short_curves(track_id, patch)
            updated = Track.model_validate(_deep_merge(track.model_dump(), patch))
            self.project.tracks[i] = updated
            return updated
        return None

    def _drop_short_curves(self, track_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        """Ignore automation curves in ``patch`` that carry fewer than two points."""
        auto = patch.get("automation")
        if not isinstance(auto, dict):
            return patch
        auto = dict(auto)
        for param in ("volume", "pan"):
            curve = auto.get(param)
            points = curve.get("points") if isinstance(curve, dict) else None
            if points is not None and len(points) < automation.MIN_POINTS:
                log_warning(
                    f"Ignoring {param} automation for {track_id}: "
                    f"fewer than {automation.MIN_POINTS} points"
                )
                del auto[param]
        return {**patch, "automation": auto}

    def reorder_tracks(self, track_ids: list[str]) -> None:
        """Assign indices in the given order; unlisted tracks follow in their old order."""
        by_id = {t.id: t for t in self.project.tracks}
        listed = []
        for track_id in track_ids:
            track = by_id.pop(track_id, None)
            if track is not None:
                listed.append(track)
        rest = sorted(by_id.values(), key=lambda t: t.index)
        self.project.tracks = [
            t.model_copy(update={"index": i}) for i, t in enumerate(listed + rest)
        ]

    def _snap(self, value: float, snap: bool) -> float:
        vp = self.project.viewport
        return snap_ms(value, vp.grid_size_ms, snap and vp.snap_to_grid)

    def _build_segment(self, data: dict[str, Any]) -> AudioSegment:
        start, end = enforce_min_width(
            float(data["start_ms"]), float(data["end_ms"]), self.config.min_segment_ms
        )
        data["start_ms"], data["end_ms"] = start, end
        return AudioSegment.model_validate(data)

    def _replace_segment(self, index: int, data: dict[str, Any]) -> AudioSegment:
        segment = self._build_segment(data)
        self.project.segments[index] = segment
        return segment

    def add_segment(self, spec: dict[str, Any]) -> AudioSegment | None:
        """Place a new segment on an existing track."""
        if self.project.get_track(spec.get("track_id", "")) is None:
            return None
        data = dict(spec)
        data["id"] = new_id("seg")
        data.setdefault("source_duration_ms", max(0.0, data["end_ms"] - data["start_ms"]))
        segment = self._build_segment(data)
        self.project.segments.append(segment)
        return segment

    def remove_segment(self, segment_id: str) -> bool:
        before = len(self.project.segments)
        self.project.segments = [s for s in self.project.segments if s.id != segment_id]
        return len(self.project.segments) != before

    def _find_segment(self, segment_id: str) -> tuple[int, AudioSegment] | None:
        for i, seg in enumerate(self.project.segments):
            if seg.id == segment_id:
                return i, seg
        return None

    def update_segment(self, segment_id: str, patch: dict[str, Any]) -> AudioSegment | None:
        found = self._find_segment(segment_id)
        if found is None:
            return None
        index, segment = found

        patch = {k: v for k, v in patch.items() if k != "id"}
        if "track_id" in patch and self.project.get_track(patch["track_id"]) is None:
            del patch["track_id"]
        if "waveform" in patch or "processed_waveform" in patch:
            patch["waveform_version"] = self.versions.next()

        return self._replace_segment(index, {**segment.model_dump(), **patch})

    def move_segment(
        self,
        segment_id: str,
        new_track_id: str,
        new_start_ms: float,
        *,
        snap: bool = False,
    ) -> AudioSegment | None:
        """Re-parent a segment and move it, keeping its duration."""
        found = self._find_segment(segment_id)
        if found is None:
            return None
        index, segment = found
        if self.project.get_track(segment.track_id) is None or self.project.get_track(new_track_id) is None:
            return None

        duration = segment.end_ms - segment.start_ms
        start = max(0.0, self._snap(new_start_ms, snap))
        data = segment.model_dump()
        data.update(track_id=new_track_id, start_ms=start, end_ms=start + duration)
        return self._replace_segment(index, data)

    def resize_segment(
        self,
        segment_id: str,
        *,
        start_ms: float | None = None,
        end_ms: float | None = None,
        snap: bool = False,
    ) -> AudioSegment | None:
        """Move one or both edges; a too-narrow result is widened by moving the start back."""
        found = self._find_segment(segment_id)
        if found is None:
            return None
        index, segment = found

        data = segment.model_dump()
        if start_ms is not None:
            data["start_ms"] = max(0.0, self._snap(start_ms, snap))
        if end_ms is not None:
            data["end_ms"] = max(0.0, self._snap(end_ms, snap))
        return self._replace_segment(index, data)

    def nudge_segment(self, segment_id: str, delta_ms: float) -> AudioSegment | None:
        """Shift a segment by ``delta_ms``, staying inside the recording."""
        found = self._find_segment(segment_id)
        if found is None:
            return None
        index, segment = found

        min_ms = self.config.min_segment_ms
        total = self.project.duration_ms if self.project.duration_ms else math.inf
        length = max(min_ms, segment.end_ms - segment.start_ms)

        start = max(0.0, min(total - 1, segment.start_ms + delta_ms))
        end = start + length
        if end > total:
            end = total
            start = max(0.0, end - length)

        data = segment.model_dump()
        data.update(start_ms=math.floor(start), end_ms=math.floor(max(start + min_ms, end)))
        return self._replace_segment(index, data)

    def set_viewport(self, patch: dict[str, Any]) -> TimelineViewport:
        self.project.viewport = TimelineViewport.model_validate(
            {**self.project.viewport.model_dump(), **patch}
        )
        return self.project.viewport

    def set_project_settings(self, patch: dict[str, Any]) -> ProjectSettings:
        self.project.settings = ProjectSettings.model_validate(
            _deep_merge(self.project.settings.model_dump(), patch)
        )
        return self.project.settings

    def set_effects(self, patch: dict[str, Any]) -> FxSettings:
        self.project.effects = FxSettings.model_validate(
            {**self.project.effects.model_dump(), **patch}
        )
        return self.project.effects

    def update_waveform(
        self,
        waveform: list[float],
        processed: list[float] | None = None,
        *,
        segment_id: str | None = None,
    ) -> int | None:
        """Store waveform data and bump its version; returns the new version."""
        if segment_id is not None:
            updated = self.update_segment(
                segment_id, {"waveform": waveform, "processed_waveform": processed}
            )
            return updated.waveform_version if updated else None

        self.project.waveform = waveform
        self.project.processed_waveform = processed
        self.project.waveform_version = self.versions.next()
        return self.project.waveform_version

    def clear_processed_waveform(self, *, segment_id: str | None = None) -> int | None:
        if segment_id is not None:
            updated = self.update_segment(segment_id, {"processed_waveform": None})
            return updated.waveform_version if updated else None

        self.project.processed_waveform = None
        self.project.waveform_version = self.versions.next()
        return self.project.waveform_version

    def _curve(self, track_id: str, param: AutomationParam, *, create: bool):
        track = self.project.get_track(track_id)
        if track is None:
            return None
        if track.automation is None:
            if not create:
                return None
            track.automation = TrackAutomation(enabled=True)
        curve = getattr(track.automation, param)
        if curve is None and create:
            resting = 1.0 if param == "volume" else 0.0
            curve = automation.default_curve(self.project.duration_ms or 0, resting)
            setattr(track.automation, param, curve)
        return curve

    def add_automation_point(
        self, track_id: str, param: AutomationParam, point: AutomationPoint | dict
    ) -> int | None:
        curve = self._curve(track_id, param, create=True)
        if curve is None:
            return None
        if isinstance(point, dict):
            point = AutomationPoint.model_validate(point)
        return automation.add_point(curve, point)

    def update_automation_point(
        self, track_id: str, param: AutomationParam, index: int, patch: dict[str, Any]
    ) -> bool:
        curve = self._curve(track_id, param, create=False)
        if curve is None:
            return False
        return automation.update_point(curve, index, patch)

    def remove_automation_point(self, track_id: str, param: AutomationParam, index: int) -> bool:
        curve = self._curve(track_id, param, create=False)
        if curve is None:
            return False
        return automation.remove_point(curve, index)
