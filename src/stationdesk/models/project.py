"""Project model — a finalized recording and its multitrack timeline."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from stationdesk.models.timeline import (
    AudioSegment,
    FxSettings,
    ProjectSettings,
    TimelineViewport,
    Track,
)

WorkflowStatus = Literal["created", "ready_edit", "in_edit", "ready_broadcast", "delivered"]
SyncStatus = Literal["pending", "uploading", "failed", "synced"]


class RecordingHistory(BaseModel):
    """One saved trim of the recording."""

    version: int
    trim_start_ms: float
    trim_end_ms: float
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Project(BaseModel):
    """A station recording and everything the editor has done to it.

    The project exclusively owns its tracks and segments; segments point at
    tracks by id only.
    """

    id: str
    station_id: str
    uri: str
    name: str = ""
    category: str = "general"
    duration_ms: float | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 1
    trim_start_ms: float | None = None
    trim_end_ms: float | None = None
    effects: FxSettings = Field(default_factory=FxSettings)
    tracks: list[Track] = Field(default_factory=list)
    segments: list[AudioSegment] = Field(default_factory=list)
    viewport: TimelineViewport = Field(default_factory=TimelineViewport)
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    waveform: list[float] | None = None
    processed_waveform: list[float] | None = None
    waveform_version: int = 0
    history: list[RecordingHistory] = Field(default_factory=list)
    workflow_status: WorkflowStatus = "ready_edit"
    sync_status: SyncStatus | None = None
    lufs: float | None = None
    cloud_path: str | None = None
    uploaded_at: datetime | None = None
    flattened_uri: str | None = None
    flattened_at: datetime | None = None

    def get_track(self, track_id: str) -> Track | None:
        return next((t for t in self.tracks if t.id == track_id), None)

    def get_segment(self, segment_id: str) -> AudioSegment | None:
        return next((s for s in self.segments if s.id == segment_id), None)

    @property
    def master_track(self) -> Track | None:
        return next((t for t in self.tracks if t.type == "master"), None)

    def segments_on(self, track_id: str) -> list[AudioSegment]:
        return [s for s in self.segments if s.track_id == track_id]
