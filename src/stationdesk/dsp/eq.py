"""Heuristic three-band EQ simulation.

The renderer works on a scalar gain envelope, not on frequency bins, so the
"EQ" is a weighted blend of the three band gains. The weights describe how
much of the current signal is attributed to low, mid and high content and
drift with how quickly the processed level changes: rapid change pulls
weight toward high, steady signal pulls it toward low. This is not a real
filter and must stay bit-for-bit reproducible across exports.
"""

from __future__ import annotations

from dataclasses import dataclass

from stationdesk.dsp.dynamics import clamp, db_to_linear
from stationdesk.models.timeline import EQSettings

RAPID_CHANGE = 0.1
WEIGHT_STEP_UP = 0.01
WEIGHT_STEP_DOWN = 0.005
WEIGHT_FLOOR = 0.2
WEIGHT_CEILING = 0.6


@dataclass
class ContentWeights:
    """Estimated share of low/mid/high content; always sums to 1."""

    low: float = 0.33
    mid: float = 0.33
    high: float = 0.34

    def normalize(self) -> None:
        total = self.low + self.mid + self.high
        self.low /= total
        self.mid /= total
        self.high /= total


class EQSimulator:
    def __init__(self, settings: EQSettings):
        self.weights = ContentWeights()
        self.low_gain = self.mid_gain = self.high_gain = 1.0
        self.update_settings(settings)

    def update_settings(self, settings: EQSettings) -> None:
        self.settings = settings
        if settings.enabled:
            self.low_gain = db_to_linear(clamp(settings.low_gain, -12, 12))
            self.mid_gain = db_to_linear(clamp(settings.mid_gain, -12, 12))
            self.high_gain = db_to_linear(clamp(settings.high_gain, -12, 12))
        else:
            self.low_gain = self.mid_gain = self.high_gain = 1.0

    def update_content(self, level: float, previous_level: float) -> None:
        """Shift the content weights based on the level change since the last sample."""
        w = self.weights
        if abs(level - previous_level) > RAPID_CHANGE:
            w.high = min(WEIGHT_CEILING, w.high + WEIGHT_STEP_UP)
            w.low = max(WEIGHT_FLOOR, w.low - WEIGHT_STEP_DOWN)
        else:
            w.low = min(WEIGHT_CEILING, w.low + WEIGHT_STEP_UP)
            w.high = max(WEIGHT_FLOOR, w.high - WEIGHT_STEP_DOWN)
        w.normalize()

    def process(self, gain: float) -> float:
        if not self.settings.enabled:
            return gain
        w = self.weights
        shaped = (
            gain * w.low * self.low_gain
            + gain * w.mid * self.mid_gain
            + gain * w.high * self.high_gain
        )
        return clamp(shaped, 0.1, 3.0)

    def reset(self) -> None:
        self.weights = ContentWeights()
