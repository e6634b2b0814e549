"""Resumable upload queue for rendered recordings.

Items move pending → uploading → complete, or → failed with an error. An
item that was interrupted mid-upload keeps its ``session_id`` and ``offset``
so the next ``pump`` resumes it instead of starting over.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

from pydantic import TypeAdapter

from stationdesk.errors import UploadError
from stationdesk.models.config import UploadConfig
from stationdesk.models.render import JobStatus
from stationdesk.models.upload import FinalizeResult, QueueItem
from stationdesk.utils.io import read_json, write_json
from stationdesk.utils.progress import log_error, log_step, log_success, log_warning
from stationdesk.utils.retry import retry_transport

RecordingHook = Callable[[str, str, dict[str, Any]], None]

_items_adapter = TypeAdapter(list[QueueItem])


class UploadTransport(Protocol):
    """Chunked, resumable upload service.

    Implementations raise ``UploadError`` for rejected requests and
    ``ConnectionError``/``TimeoutError`` for transient network failures;
    only the latter are retried. Any other exception still fails the item.
    """

    def start_session(self, station_id: str, metadata: dict[str, Any]) -> str: ...

    def upload_chunk(
        self,
        session_id: str,
        path: str,
        offset: int,
        on_progress: Callable[[float], None] | None = None,
    ) -> int: ...

    def finalize(self, session_id: str, metadata: dict[str, Any]) -> FinalizeResult: ...

    def job_status(self, job_id: str) -> JobStatus: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UploadQueue:
    """Newest-first queue of uploads driven by an ``UploadTransport``.

    ``on_update`` sees every item change. ``on_recording`` receives
    ``(station_id, recording_id, patch)`` for the recording behind an item:
    sync status, cloud path, and the analysis results from ``poll_job``.
    """

    def __init__(
        self,
        transport: UploadTransport,
        *,
        config: UploadConfig | None = None,
        on_update: Callable[[QueueItem], None] | None = None,
        on_recording: RecordingHook | None = None,
        state_path: Path | str | None = None,
    ):
        self.transport = transport
        self.config = config or UploadConfig()
        self.on_update = on_update
        self.on_recording = on_recording
        self.state_path = Path(state_path) if state_path is not None else None
        self.items: list[QueueItem] = []
        if self.state_path is not None and self.state_path.exists():
            self.items = _items_adapter.validate_python(read_json(self.state_path))

    def _save(self) -> None:
        if self.state_path is not None:
            write_json(self.state_path, _items_adapter.dump_python(self.items, mode="json", by_alias=True))

    def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        wrapped = retry_transport(
            self.config.retry_attempts, multiplier=self.config.retry_multiplier
        )(fn)
        return wrapped(*args, **kwargs)

    def _recording(self, item: QueueItem, patch: dict[str, Any]) -> None:
        if self.on_recording is not None:
            self.on_recording(item.station_id, item.id, patch)

    def get(self, item_id: str) -> QueueItem | None:
        return next((it for it in self.items if it.id == item_id), None)

    def enqueue(self, item: QueueItem) -> None:
        self.items.insert(0, item)
        self._save()
        if self.on_update is not None:
            self.on_update(item)

    def update(self, item_id: str, **patch: Any) -> QueueItem | None:
        for i, it in enumerate(self.items):
            if it.id == item_id:
                updated = it.model_copy(update=patch)
                self.items[i] = updated
                self._save()
                if self.on_update is not None:
                    self.on_update(updated)
                return updated
        return None

    def remove(self, item_id: str) -> None:
        self.items = [it for it in self.items if it.id != item_id]
        self._save()

    def pump(self) -> None:
        """Upload every item that is not complete, in queue order."""
        for item_id in [it.id for it in self.items]:
            item = self.get(item_id)
            if item is None or item.status == "complete":
                continue
            self._upload(item)

    def _upload(self, item: QueueItem) -> None:
        log_step("Upload", f"{item.id} → station {item.station_id}")
        try:
            self.update(item.id, status="uploading", error=None, last_tried_at=_now())

            session_id = item.session_id
            if not session_id:
                session_id = self._call(self.transport.start_session, item.station_id, item.metadata)
                self.update(item.id, session_id=session_id)
            elif item.offset:
                log_step("Upload", f"Resuming {item.id} at byte {item.offset}")

            offset = self._call(
                self.transport.upload_chunk,
                session_id,
                item.local_uri,
                item.offset,
                lambda p: self.update(item.id, progress=p),
            )
            self.update(item.id, offset=offset)

            result: FinalizeResult = self._call(self.transport.finalize, session_id, item.metadata)
            self.update(item.id, status="complete", progress=1.0)
        except Exception as e:
            message = str(e) or "Upload failed"
            self.update(item.id, status="failed", error=message)
            self._recording(item, {"sync_status": "failed"})
            log_error(f"Upload {item.id} failed: {message}")
            return

        self._recording(
            item,
            {"sync_status": "synced", "uploaded_at": _now(), "cloud_path": result.cloud_path},
        )
        log_success(f"Uploaded {item.id} → {result.cloud_path}")
        self.poll_job(item, result.job_id)

    def retry(self, item_id: str) -> None:
        if self.get(item_id) is None:
            return
        self.update(item_id, status="pending", error=None)
        self.pump()

    def poll_job(self, item: QueueItem, job_id: str) -> JobStatus | None:
        """Fetch server-side analysis and hand loudness and waveform to the recording."""
        try:
            job = self._call(self.transport.job_status, job_id)
        except (UploadError, OSError) as e:
            log_warning(f"Job status for {job_id} unavailable: {e}")
            return None

        patch: dict[str, Any] = {}
        if job.lufs is not None:
            patch["lufs"] = job.lufs
        if job.waveform is not None:
            patch["waveform"] = job.waveform
        if patch:
            self._recording(item, patch)
        return job
