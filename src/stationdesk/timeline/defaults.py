"""Default tracks, viewport and settings for new projects, plus track limits."""

from __future__ import annotations

from typing import Any

from stationdesk.models.config import TimelineConfig
from stationdesk.models.project import Project
from stationdesk.models.timeline import (
    AudioSegment,
    ProjectSettings,
    TimelineViewport,
    Track,
    TrackType,
)
from stationdesk.timeline.snap import enforce_min_width

MASTER_TRACK_ID = "master-track"
TRACK_COLORS = ["#10B981", "#8B5CF6", "#F59E0B", "#EF4444", "#06B6D4"]
MASTER_COLOR = "#3B82F6"


def create_default_tracks() -> list[Track]:
    """Master plus two audio tracks."""
    return [
        Track(id=MASTER_TRACK_ID, name="Master", type="master", index=0, color=MASTER_COLOR),
        Track(id="audio-track-1", name="Audio 1", type="audio", index=1, color="#10B981"),
        Track(id="audio-track-2", name="Audio 2", type="audio", index=2, color="#F59E0B"),
    ]


def create_default_viewport(duration_ms: float, config: TimelineConfig | None = None) -> TimelineViewport:
    config = config or TimelineConfig()
    return TimelineViewport(
        start_ms=0,
        end_ms=max(config.default_viewport_ms, duration_ms),
        pixels_per_ms=0.1,
        snap_to_grid=True,
        grid_size_ms=config.default_grid_ms,
        follow_playhead=False,
    )


def create_default_project_settings() -> ProjectSettings:
    return ProjectSettings()


def next_track_color(existing: list[Track]) -> str:
    used = {t.color for t in existing}
    return next((c for c in TRACK_COLORS if c not in used), TRACK_COLORS[0])


def create_track_template(
    name: str,
    index: int,
    type: TrackType = "audio",
    existing: list[Track] | None = None,
) -> dict[str, Any]:
    """Field values for a new track, without an id."""
    return {
        "name": name,
        "type": type,
        "index": index,
        "color": next_track_color(existing or []),
    }


def can_add_track(tracks: list[Track], type: TrackType = "audio", config: TimelineConfig | None = None) -> bool:
    config = config or TimelineConfig()
    if type == "master":
        return not any(t.type == "master" for t in tracks)
    if type == "aux":
        return sum(t.type == "aux" for t in tracks) < config.max_aux_tracks
    return sum(t.type == "audio" for t in tracks) < config.max_audio_tracks


def can_remove_track(track: Track, tracks: list[Track], config: TimelineConfig | None = None) -> bool:
    config = config or TimelineConfig()
    if track.type == "master":
        return False
    if track.type == "audio":
        return sum(t.type == "audio" for t in tracks) > config.min_audio_tracks
    return True


def optimize_tracks_for_mobile(tracks: list[Track], config: TimelineConfig | None = None) -> list[Track]:
    """Trim to the mobile limits and renumber indices: master, audio, then aux."""
    config = config or TimelineConfig()
    ordered = sorted(tracks, key=lambda t: t.index)
    master = [t for t in ordered if t.type == "master"][:1]
    audio = [t for t in ordered if t.type == "audio"][: config.max_audio_tracks]
    aux = [t for t in ordered if t.type == "aux"][: config.max_aux_tracks]
    return [t.model_copy(update={"index": i}) for i, t in enumerate(master + audio + aux)]


def convert_legacy_segments(legacy: list[dict[str, Any]]) -> list[AudioSegment]:
    """Map old bed/sfx lane clips onto the default audio tracks."""
    segments = []
    for seg in legacy:
        lane = seg.get("track") or seg.get("trackId") or seg.get("track_id")
        if lane == "bed":
            track_id = "audio-track-1"
        elif lane == "sfx":
            track_id = "audio-track-2"
        else:
            track_id = lane or "audio-track-1"

        start = seg.get("startMs", seg.get("start_ms", 0))
        end = seg.get("endMs", seg.get("end_ms", 0))
        start, end = enforce_min_width(float(start), float(end))
        segments.append(AudioSegment(
            id=seg["id"],
            uri=seg["uri"],
            name=seg.get("name") or "Audio Clip",
            start_ms=start,
            end_ms=end,
            track_id=track_id,
            gain=seg.get("gain") or 1,
            pan=seg.get("pan") or 0,
            muted=bool(seg.get("muted", False)),
            fade_in_ms=seg.get("fadeInMs") or 0,
            fade_out_ms=seg.get("fadeOutMs") or 0,
            source_start_ms=seg.get("sourceStartMs") or 0,
            source_duration_ms=seg.get("sourceDurationMs") or (end - start),
            waveform=seg.get("waveform"),
        ))
    return segments


def ensure_multitrack_data(project: Project, config: TimelineConfig | None = None) -> Project:
    """Fill in default tracks, viewport and settings on older projects."""
    if not project.tracks:
        project.tracks = create_default_tracks()
    if project.master_track is None:
        project.tracks.insert(
            0, Track(id=MASTER_TRACK_ID, name="Master", type="master", index=0, color=MASTER_COLOR)
        )
        project.tracks = [t.model_copy(update={"index": i}) for i, t in enumerate(project.tracks)]
    if project.viewport.end_ms < (project.duration_ms or 0):
        project.viewport = create_default_viewport(project.duration_ms or 0, config)
    return project
