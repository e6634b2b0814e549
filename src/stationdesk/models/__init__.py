"""Pydantic data models for StationDesk."""

from stationdesk.models.project import Project
from stationdesk.models.config import (
    CacheConfig,
    RenderConfig,
    StationConfig,
    TimelineConfig,
    UploadConfig,
)

__all__ = [
    "Project",
    "StationConfig",
    "RenderConfig",
    "TimelineConfig",
    "CacheConfig",
    "UploadConfig",
]
