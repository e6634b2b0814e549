"""Cached waveform entry."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class WaveformData(BaseModel):
    """Display waveform for one recording, values in [0, 1]."""

    original: list[float]
    processed: list[float] | None = None
    version: int = 0
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
