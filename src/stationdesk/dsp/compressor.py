"""Envelope-following compressor operating on the gain envelope."""

from __future__ import annotations

from stationdesk.dsp.dynamics import DEFAULT_SAMPLE_RATE, EnvelopeFollower, clamp, db_to_linear
from stationdesk.models.timeline import CompressorSettings

DEFAULT_ATTACK_MS = 10.0
DEFAULT_RELEASE_MS = 100.0
SMOOTHING = 0.1


class Compressor:
    def __init__(self, settings: CompressorSettings, sample_rate: int = DEFAULT_SAMPLE_RATE):
        self.sample_rate = sample_rate
        self.previous_reduction = 1.0
        self.update_settings(settings)

    def update_settings(self, settings: CompressorSettings) -> None:
        self.settings = settings
        self.threshold = db_to_linear(settings.threshold)
        self.ratio = clamp(settings.ratio, 1, 20)
        self.makeup = db_to_linear(settings.makeup_gain or 0)
        self.envelope = EnvelopeFollower(
            settings.attack or DEFAULT_ATTACK_MS,
            settings.release or DEFAULT_RELEASE_MS,
            self.sample_rate,
        )

    def process(self, gain: float) -> float:
        if not self.settings.enabled:
            return gain

        level = self.envelope.process(gain)

        reduction = 1.0
        if level > self.threshold:
            over = level / self.threshold
            compressed = 1 + (over - 1) / self.ratio
            reduction = compressed / over

        reduction = self.previous_reduction + (reduction - self.previous_reduction) * SMOOTHING
        self.previous_reduction = reduction

        return clamp(gain * reduction * self.makeup, 0.01, 2.0)

    def reset(self) -> None:
        self.envelope.reset()
        self.previous_reduction = 1.0
