"""Timeline entities: tracks, segments, effect chains, automation, viewport.

Numeric fields are clamped into their documented range on validation rather
than rejected, so editor patches coming from the UI never fail.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, Field, field_validator


def _clamp_to(lo: float, hi: float):
    def _clamp(value):
        if value is None:
            return value
        return max(lo, min(hi, float(value)))

    return BeforeValidator(_clamp)


LinearGain = Annotated[float, _clamp_to(0.0, 2.0)]
Pan = Annotated[float, _clamp_to(-1.0, 1.0)]
BandGainDb = Annotated[float, _clamp_to(-12.0, 12.0)]
Frequency = Annotated[float, _clamp_to(20.0, 20000.0)]
Unit = Annotated[float, _clamp_to(0.0, 1.0)]
NonNegativeMs = Annotated[float, _clamp_to(0.0, float("inf"))]

MIN_AUTOMATION_POINTS = 2

TrackType = Literal["master", "audio", "aux"]
CurveType = Literal["linear", "exponential", "logarithmic"]


class EQSettings(BaseModel):
    """Three-band EQ settings (heuristic simulation, not a spectral filter)."""

    enabled: bool = False
    low_gain: BandGainDb = 0.0
    mid_gain: BandGainDb = 0.0
    high_gain: BandGainDb = 0.0
    low_freq: Frequency = 100.0
    mid_freq: Frequency = 1000.0
    high_freq: Frequency = 10000.0


class CompressorSettings(BaseModel):
    enabled: bool = False
    threshold: Annotated[float, _clamp_to(-60.0, 0.0)] = -12.0  # dB
    ratio: Annotated[float, _clamp_to(1.0, 20.0)] = 4.0
    attack: Annotated[float, _clamp_to(0.0, 1000.0)] = 10.0  # ms, 0 → default
    release: Annotated[float, _clamp_to(0.0, 5000.0)] = 100.0  # ms, 0 → default
    makeup_gain: Annotated[float, _clamp_to(0.0, 24.0)] = 0.0  # dB


class NoiseGateSettings(BaseModel):
    enabled: bool = False
    threshold: Annotated[float, _clamp_to(-80.0, 0.0)] = -40.0  # dB
    ratio: Annotated[float, _clamp_to(1.0, 10.0)] = 2.0  # expansion ratio
    attack: Annotated[float, _clamp_to(0.0, 1000.0)] = 1.0  # ms
    release: Annotated[float, _clamp_to(0.0, 5000.0)] = 50.0  # ms
    hold_time: Annotated[float, _clamp_to(0.0, 5000.0)] = 10.0  # ms


class ReverbSettings(BaseModel):
    """Reverb parameters. Stored for the UI; the offline renderer ignores them."""

    enabled: bool = False
    room_size: Unit = 0.5
    damping: Unit = 0.5
    wet_level: Unit = 0.3
    dry_level: Unit = 0.7


class EffectChain(BaseModel):
    eq: EQSettings = Field(default_factory=EQSettings)
    compressor: CompressorSettings = Field(default_factory=CompressorSettings)
    reverb: ReverbSettings = Field(default_factory=ReverbSettings)


class AutomationPoint(BaseModel):
    time_ms: NonNegativeMs
    value: Pan  # 0..1 for volume, -1..1 for pan


class AutomationCurve(BaseModel):
    """Time-ordered control points, at least two. Always kept sorted by ``time_ms``."""

    points: list[AutomationPoint]
    type: CurveType = "linear"

    @field_validator("points")
    @classmethod
    def _sort_points(cls, points: list[AutomationPoint]) -> list[AutomationPoint]:
        if len(points) < MIN_AUTOMATION_POINTS:
            raise ValueError(f"an automation curve needs at least {MIN_AUTOMATION_POINTS} points")
        return sorted(points, key=lambda p: p.time_ms)


class TrackAutomation(BaseModel):
    volume: AutomationCurve | None = None
    pan: AutomationCurve | None = None
    enabled: bool = False


class Track(BaseModel):
    id: str
    name: str = ""
    type: TrackType = "audio"
    index: int = 0  # display order
    height: int = 80
    gain: LinearGain = 1.0
    pan: Pan = 0.0
    muted: bool = False
    soloed: bool = False
    record_armed: bool = False
    color: str = "#10B981"
    collapsed: bool = False
    effects: EffectChain = Field(default_factory=EffectChain)
    send_levels: dict[str, LinearGain] = Field(default_factory=dict)
    automation: TrackAutomation | None = None


class AudioSegment(BaseModel):
    id: str
    uri: str
    name: str = "Audio Clip"
    start_ms: NonNegativeMs
    end_ms: NonNegativeMs
    track_id: str
    gain: LinearGain = 1.0
    pan: Pan = 0.0
    muted: bool = False
    fade_in_ms: NonNegativeMs = 0.0
    fade_out_ms: NonNegativeMs = 0.0
    fade_in_curve: CurveType = "linear"
    fade_out_curve: CurveType = "linear"
    color: str = "#10B981"
    source_start_ms: NonNegativeMs = 0.0
    source_duration_ms: NonNegativeMs = 0.0
    waveform: list[float] | None = None
    processed_waveform: list[float] | None = None
    waveform_version: int = 0

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms


class TimelineViewport(BaseModel):
    """View-state only; consulted by editors for snap parameters."""

    start_ms: NonNegativeMs = 0.0
    end_ms: NonNegativeMs = 60000.0
    pixels_per_ms: Annotated[float, _clamp_to(0.001, 10.0)] = 0.1
    snap_to_grid: bool = True
    grid_size_ms: Annotated[float, _clamp_to(1.0, 600000.0)] = 1000.0
    follow_playhead: bool = False


class TimeSignature(BaseModel):
    numerator: int = 4
    denominator: int = 4


class ProjectSettings(BaseModel):
    sample_rate: int = 44100
    bit_depth: int = 16
    tempo: Annotated[float, _clamp_to(20.0, 300.0)] = 120.0
    time_signature: TimeSignature = Field(default_factory=TimeSignature)
    master_gain: LinearGain = 1.0
    master_pan: Pan = 0.0


class FxSettings(BaseModel):
    """Recording-level export effects applied by the offline renderer."""

    normalize_target_lufs: float | None = None
    normalize_gain_db: Annotated[float | None, _clamp_to(-12.0, 12.0)] = None
    fade_in_ms: Annotated[float | None, _clamp_to(0.0, float("inf"))] = None
    fade_out_ms: Annotated[float | None, _clamp_to(0.0, float("inf"))] = None
    pad_head_ms: Annotated[float | None, _clamp_to(0.0, float("inf"))] = None
    pad_tail_ms: Annotated[float | None, _clamp_to(0.0, float("inf"))] = None
