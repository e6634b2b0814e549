"""Grid snapping and the minimum segment width policy."""

from __future__ import annotations

MIN_SEGMENT_MS = 100


def snap_ms(value: float, grid_ms: float, enabled: bool = True) -> float:
    """Round ``value`` to the nearest multiple of ``grid_ms`` when enabled."""
    if not enabled or grid_ms <= 0:
        return value
    return round(value / grid_ms) * grid_ms


def enforce_min_width(start_ms: float, end_ms: float, min_ms: float = MIN_SEGMENT_MS) -> tuple[float, float]:
    """Return a (start, end) pair at least ``min_ms`` wide.

    A too-narrow range keeps its end and moves its start backward; if that
    would cross zero the start is pinned at 0 and the end is pushed out.
    """
    start_ms = max(0.0, start_ms)
    end_ms = max(0.0, end_ms)
    if end_ms - start_ms >= min_ms:
        return start_ms, end_ms
    start_ms = end_ms - min_ms
    if start_ms < 0:
        start_ms = 0.0
        end_ms = min_ms
    return start_ms, end_ms
