"""Render job models — the wire format exchanged with the render requester."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RenderSegment(_CamelModel):
    uri: str
    start_ms: float
    end_ms: float
    gain_db: float | None = None


class RenderFx(_CamelModel):
    normalize_gain_db: float | None = None
    fade_in_ms: float | None = None
    fade_out_ms: float | None = None
    pad_head_ms: float | None = None
    pad_tail_ms: float | None = None


class RenderPlan(_CamelModel):
    """A render request: base recording, timeline segments and export fx."""

    base_uri: str
    segments: list[RenderSegment] = Field(default_factory=list)
    fx: RenderFx | None = None
    out_ext: Literal["m4a", "wav", "mp3"] = "m4a"

    @property
    def wants_fx(self) -> bool:
        fx = self.fx
        return fx is not None and any(
            v is not None for v in (fx.normalize_gain_db, fx.fade_in_ms, fx.fade_out_ms)
        )


class RenderSummary(_CamelModel):
    """JSON sidecar written next to a baked render."""

    baked: bool = True
    normalize_gain_db: float | None = None
    fade_in_ms: float | None = None
    fade_out_ms: float | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RenderStatus(_CamelModel):
    progress: float
    uri: str | None = None


class JobStatus(_CamelModel):
    """Server-side analysis result polled after an upload completes."""

    status: str = "unknown"
    lufs: float | None = None
    waveform: list[float] | None = None
