"""Noise gate / downward expander with hold time."""

from __future__ import annotations

from stationdesk.dsp.dynamics import DEFAULT_SAMPLE_RATE, EnvelopeFollower, clamp, db_to_linear
from stationdesk.models.timeline import NoiseGateSettings

DEFAULT_ATTACK_MS = 1.0
DEFAULT_RELEASE_MS = 50.0
DEFAULT_HOLD_MS = 10.0
MIN_GAIN = 0.01
SMOOTHING = 0.05


class NoiseGate:
    """Expands signal below the threshold once the hold period has elapsed.

    Crossing back above the threshold re-opens the gate immediately. Every
    gain change is smoothed by a 5% step per sample to avoid clicks.
    """

    def __init__(self, settings: NoiseGateSettings, sample_rate: int = DEFAULT_SAMPLE_RATE):
        self.sample_rate = sample_rate
        self.envelope = EnvelopeFollower(
            settings.attack or DEFAULT_ATTACK_MS,
            settings.release or DEFAULT_RELEASE_MS,
            sample_rate,
        )
        self.hold_samples = (settings.hold_time or DEFAULT_HOLD_MS) * 0.001 * sample_rate
        self.hold_counter = 0.0
        self.is_open = True
        self.previous_gain = 1.0
        self.update_settings(settings)

    def update_settings(self, settings: NoiseGateSettings) -> None:
        self.settings = settings
        self.threshold = db_to_linear(settings.threshold)
        self.ratio = clamp(settings.ratio, 1, 10)

    def process(self, gain: float) -> float:
        if not self.settings.enabled:
            return gain

        level = self.envelope.process(gain)
        gate_gain = 1.0

        if level < self.threshold:
            if self.is_open:
                self.hold_counter = self.hold_samples
                self.is_open = False

            if self.hold_counter > 0:
                self.hold_counter -= 1
            elif level > 0:
                expanded = 1 + (self.threshold / level - 1) * (self.ratio - 1)
                gate_gain = max(MIN_GAIN, 1 / expanded)
            elif self.ratio > 1:
                gate_gain = MIN_GAIN
        else:
            self.is_open = True
            self.hold_counter = 0.0

        gate_gain = self.previous_gain + (gate_gain - self.previous_gain) * SMOOTHING
        self.previous_gain = gate_gain

        return gain * gate_gain

    def reset(self) -> None:
        self.envelope.reset()
        self.hold_counter = 0.0
        self.is_open = True
        self.previous_gain = 1.0
