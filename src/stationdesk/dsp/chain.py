"""Effects chain orchestrator: one per-sample gain function for a render."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field

from stationdesk.dsp.compressor import Compressor
from stationdesk.dsp.dynamics import DEFAULT_SAMPLE_RATE, clamp, db_to_linear
from stationdesk.dsp.eq import EQSimulator
from stationdesk.dsp.gate import NoiseGate
from stationdesk.models.timeline import (
    CompressorSettings,
    EffectChain,
    EQSettings,
    FxSettings,
    NoiseGateSettings,
)

OUTPUT_FLOOR = 0.001
OUTPUT_CEILING = 3.0


class EffectsSettings(BaseModel):
    """Everything the chain needs for one render."""

    eq: EQSettings | None = None
    compressor: CompressorSettings | None = None
    noise_gate: NoiseGateSettings | None = Field(
        default=None,
        validation_alias=AliasChoices("noise_gate", "noise_suppression"),
    )
    normalize_target_lufs: float | None = None
    normalize_gain_db: float | None = None
    fade_in_ms: float | None = None
    fade_out_ms: float | None = None

    @property
    def has_dynamics(self) -> bool:
        return any(
            unit is not None and unit.enabled
            for unit in (self.eq, self.compressor, self.noise_gate)
        )


class EffectsChain:
    """Applies normalize, fades, gate, EQ and compressor in a fixed order.

    Units keep envelope and gain-reduction history between calls, so one
    chain belongs to one render job. Call ``reset`` before reusing it.
    """

    def __init__(self, settings: EffectsSettings, sample_rate: int = DEFAULT_SAMPLE_RATE):
        self.sample_rate = sample_rate
        self.eq: EQSimulator | None = None
        self.compressor: Compressor | None = None
        self.noise_gate: NoiseGate | None = None
        self.previous_level = 0.0
        self.update_settings(settings)

    def update_settings(self, settings: EffectsSettings) -> None:
        self.settings = settings

        if settings.eq is not None and settings.eq.enabled:
            if self.eq is None:
                self.eq = EQSimulator(settings.eq)
            else:
                self.eq.update_settings(settings.eq)
        else:
            self.eq = None

        if settings.compressor is not None and settings.compressor.enabled:
            if self.compressor is None:
                self.compressor = Compressor(settings.compressor, self.sample_rate)
            else:
                self.compressor.update_settings(settings.compressor)
        else:
            self.compressor = None

        if settings.noise_gate is not None and settings.noise_gate.enabled:
            if self.noise_gate is None:
                self.noise_gate = NoiseGate(settings.noise_gate, self.sample_rate)
            else:
                self.noise_gate.update_settings(settings.noise_gate)
        else:
            self.noise_gate = None

    def process(self, gain: float, position_ms: float, start_ms: float, end_ms: float) -> float:
        s = self.settings

        if s.normalize_gain_db is not None:
            gain *= db_to_linear(clamp(s.normalize_gain_db, -12, 12))

        if s.fade_in_ms and s.fade_in_ms > 0:
            gain *= clamp((position_ms - start_ms) / s.fade_in_ms, 0, 1)

        if s.fade_out_ms and s.fade_out_ms > 0:
            gain *= clamp((end_ms - position_ms) / s.fade_out_ms, 0, 1)

        if self.noise_gate is not None:
            gain = self.noise_gate.process(gain)

        if self.eq is not None:
            self.eq.update_content(gain, self.previous_level)
            gain = self.eq.process(gain)

        # compressor is always last
        if self.compressor is not None:
            gain = self.compressor.process(gain)

        self.previous_level = gain
        return clamp(gain, OUTPUT_FLOOR, OUTPUT_CEILING)

    def reset(self) -> None:
        if self.eq is not None:
            self.eq.reset()
        if self.compressor is not None:
            self.compressor.reset()
        if self.noise_gate is not None:
            self.noise_gate.reset()
        self.previous_level = 0.0


def build_effects_settings(
    chain: EffectChain | None = None,
    fx: FxSettings | None = None,
    *,
    noise_gate: NoiseGateSettings | None = None,
) -> EffectsSettings:
    """Combine a track's effect chain with recording-level export fx.

    Reverb has no offline implementation and is dropped here.
    """
    settings = EffectsSettings(noise_gate=noise_gate)
    if chain is not None:
        settings.eq = chain.eq
        settings.compressor = chain.compressor
    if fx is not None:
        settings.normalize_target_lufs = fx.normalize_target_lufs
        settings.normalize_gain_db = fx.normalize_gain_db
        settings.fade_in_ms = fx.fade_in_ms
        settings.fade_out_ms = fx.fade_out_ms
    return settings


def estimate_processing_time_ms(duration_ms: float, settings: EffectsSettings) -> float:
    """Rough wall-clock estimate for rendering ``duration_ms`` of audio."""
    complexity = 1.0
    if settings.eq is not None and settings.eq.enabled:
        complexity += 0.5
    if settings.compressor is not None and settings.compressor.enabled:
        complexity += 0.3
    if settings.noise_gate is not None and settings.noise_gate.enabled:
        complexity += 0.2

    base = duration_ms * 0.1 * complexity
    overhead = min(5000.0, duration_ms * 0.05)
    return base + overhead
