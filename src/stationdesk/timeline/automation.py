"""Automation curve editing and evaluation.

A curve always holds at least two points and is kept sorted by time after
every insert or update.
"""

from __future__ import annotations

import math

from stationdesk.models.timeline import MIN_AUTOMATION_POINTS, AutomationCurve, AutomationPoint, CurveType

MIN_POINTS = MIN_AUTOMATION_POINTS


def default_curve(duration_ms: float, value: float = 1.0, type: CurveType = "linear") -> AutomationCurve:
    """A flat two-point curve spanning the timeline."""
    return AutomationCurve(
        points=[
            AutomationPoint(time_ms=0, value=value),
            AutomationPoint(time_ms=max(1.0, duration_ms), value=value),
        ],
        type=type,
    )


def _resort(curve: AutomationCurve) -> None:
    curve.points.sort(key=lambda p: p.time_ms)


def add_point(curve: AutomationCurve, point: AutomationPoint) -> int:
    """Insert ``point`` and return its index after sorting."""
    curve.points.append(point)
    _resort(curve)
    return next(i for i, p in enumerate(curve.points) if p is point)


def update_point(curve: AutomationCurve, index: int, patch: dict) -> bool:
    if not 0 <= index < len(curve.points):
        return False
    current = curve.points[index]
    curve.points[index] = AutomationPoint.model_validate({**current.model_dump(), **patch})
    _resort(curve)
    return True


def remove_point(curve: AutomationCurve, index: int) -> bool:
    """Remove a point; refused when it would leave fewer than two."""
    if len(curve.points) <= MIN_POINTS or not 0 <= index < len(curve.points):
        return False
    del curve.points[index]
    return True


def _shape(t: float, type: CurveType) -> float:
    if type == "exponential":
        return t * t
    if type == "logarithmic":
        return math.sqrt(t)
    return t


def value_at(curve: AutomationCurve, time_ms: float) -> float | None:
    """Evaluate the curve; values are held flat before the first and after the last point."""
    points = curve.points
    if not points:
        return None
    if time_ms <= points[0].time_ms:
        return points[0].value
    if time_ms >= points[-1].time_ms:
        return points[-1].value

    for left, right in zip(points, points[1:]):
        if left.time_ms <= time_ms <= right.time_ms:
            span = right.time_ms - left.time_ms
            if span <= 0:
                return right.value
            t = _shape((time_ms - left.time_ms) / span, curve.type)
            return left.value + (right.value - left.value) * t
    return points[-1].value
