"""Upload queue item model."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UploadState = Literal["pending", "uploading", "failed", "complete"]


class QueueItem(BaseModel):
    """A rendered file waiting to be uploaded; resumable from ``offset``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str  # recording id
    station_id: str
    local_uri: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    status: UploadState = "pending"
    progress: float = 0.0
    error: str | None = None
    session_id: str | None = None
    offset: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_tried_at: datetime | None = None


class FinalizeResult(BaseModel):
    cloud_path: str
    job_id: str
