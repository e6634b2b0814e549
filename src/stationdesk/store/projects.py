"""YAML project store, one document per recording, grouped by station."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

from stationdesk.models.project import Project
from stationdesk.timeline.defaults import convert_legacy_segments, ensure_multitrack_data
from stationdesk.utils.io import read_yaml, write_yaml
from stationdesk.utils.progress import log_step, log_warning


class ProjectStore:
    """Persists projects under ``<root>/stations/<station_id>/<project_id>.yaml``."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def station_dir(self, station_id: str) -> Path:
        return self.root / "stations" / station_id

    def path(self, station_id: str, project_id: str) -> Path:
        return self.station_dir(station_id) / f"{project_id}.yaml"

    def save(self, project: Project) -> Path:
        path = self.path(project.station_id, project.id)
        write_yaml(path, project.model_dump(mode="json"))
        return path

    def load(self, station_id: str, project_id: str) -> Project | None:
        path = self.path(station_id, project_id)
        if not path.exists():
            return None
        return self._from_data(read_yaml(path))

    def _from_data(self, data: dict[str, Any]) -> Project:
        if not data.get("tracks"):
            # pre-multitrack projects kept clips on fixed bed/sfx lanes
            legacy = [dict(s) for s in data.get("segments") or []]
            data["segments"] = convert_legacy_segments(legacy)
        return ensure_multitrack_data(Project.model_validate(data))

    def list(self, station_id: str) -> list[Project]:
        """All projects of a station, newest first."""
        station_dir = self.station_dir(station_id)
        if not station_dir.is_dir():
            return []
        projects = [self._from_data(read_yaml(p)) for p in sorted(station_dir.glob("*.yaml"))]
        return sorted(projects, key=lambda p: p.created_at, reverse=True)

    def delete(self, station_id: str, project_id: str) -> bool:
        path = self.path(station_id, project_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def purge_station(self, station_id: str) -> int:
        """Remove every project of a station; returns how many were removed."""
        station_dir = self.station_dir(station_id)
        if not station_dir.is_dir():
            return 0
        count = len(list(station_dir.glob("*.yaml")))
        shutil.rmtree(station_dir)
        log_step("Store", f"Purged {count} project(s) of station {station_id}")
        return count

    def update_recording(self, station_id: str, project_id: str, patch: dict[str, Any]) -> Project | None:
        """Apply a shallow field patch and save; unknown projects are ignored."""
        project = self.load(station_id, project_id)
        if project is None:
            log_warning(f"No project {project_id} in station {station_id}")
            return None
        updated = Project.model_validate({**project.model_dump(), **patch})
        self.save(updated)
        return updated
