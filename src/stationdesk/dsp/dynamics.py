"""Gain conversion helpers and the envelope follower shared by the dynamics units."""

from __future__ import annotations

import math

DEFAULT_SAMPLE_RATE = 44100


def db_to_linear(db: float) -> float:
    return math.pow(10.0, db / 20.0)


def linear_to_db(linear: float) -> float:
    return 20.0 * math.log10(max(0.000001, linear))


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def time_coefficient(time_ms: float, sample_rate: int) -> float:
    """Per-sample smoothing coefficient for a time constant in milliseconds."""
    return math.exp(-1.0 / (time_ms * 0.001 * sample_rate))


class EnvelopeFollower:
    """Single-pole attack/release smoother over a rectified level.

    The level rises with the attack coefficient and falls with the release
    coefficient. Call ``reset`` before reusing it on a fresh buffer.
    """

    def __init__(self, attack_ms: float, release_ms: float, sample_rate: int = DEFAULT_SAMPLE_RATE):
        self.attack_ms = attack_ms
        self.release_ms = release_ms
        self.sample_rate = sample_rate
        self.attack_coeff = time_coefficient(attack_ms, sample_rate)
        self.release_coeff = time_coefficient(release_ms, sample_rate)
        self.level = 0.0

    def process(self, input_level: float) -> float:
        target = abs(input_level)
        coeff = self.attack_coeff if target > self.level else self.release_coeff
        self.level = target + (self.level - target) * coeff
        return self.level

    def reset(self) -> None:
        self.level = 0.0
