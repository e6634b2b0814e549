"""Entity id and waveform version generation."""

from __future__ import annotations

import itertools
import threading
import uuid


def new_id(prefix: str) -> str:
    """Return a collision-resistant id such as ``track-3f9c2a1b7d4e``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class VersionCounter:
    """Monotonic version stamps; two bumps never return the same value."""

    def __init__(self, start: int = 0):
        self._counter = itertools.count(start + 1)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)
