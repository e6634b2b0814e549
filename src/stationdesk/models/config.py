"""Configuration models for the render core."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from stationdesk.utils.io import read_yaml


class RenderConfig(BaseModel):
    """Configuration for the offline render pipeline."""

    block_size: int = Field(default=1024, ge=64, le=65536)
    default_sample_rate: int = 44100
    # Progress checkpoints: load 0-0.2, analyze 0.2-0.3, process 0.3-0.8, save 0.8-1.0
    analyze_at: float = 0.2
    process_at: float = 0.3
    save_at: float = 0.8
    default_out_ext: str = "m4a"  # m4a | wav | mp3
    output_dir_name: str = "Flattened"


class TimelineConfig(BaseModel):
    """Configuration for the timeline data model."""

    min_segment_ms: int = Field(default=100, ge=1)
    min_audio_tracks: int = Field(default=1, ge=0)
    max_audio_tracks: int = Field(default=2, ge=1)
    max_aux_tracks: int = Field(default=1, ge=0)
    default_grid_ms: int = Field(default=1000, ge=1)
    default_viewport_ms: int = 60000


class CacheConfig(BaseModel):
    """Configuration for the waveform cache service."""

    capacity: int = Field(default=50, ge=1)
    waveform_samples: int = Field(default=160, ge=8, le=4096)


class UploadConfig(BaseModel):
    """Configuration for the upload queue."""

    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_multiplier: float = Field(default=1.0, ge=0.0)


class StationConfig(BaseModel):
    """All module configurations."""

    render: RenderConfig = Field(default_factory=RenderConfig)
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)


def load_config(path: Path | str | None) -> StationConfig:
    """Load a ``StationConfig`` from YAML; a missing file yields defaults."""
    if path is None:
        return StationConfig()
    path = Path(path)
    if not path.exists():
        return StationConfig()
    return StationConfig(**read_yaml(path))
