"""Waveform cache service.

Display waveforms are short lists of levels in [0, 1] (160 by default). The
service derives them from live meter values, decoded audio or a seeded
placeholder, bakes export fx into a processed copy, and keeps recent ones in
a bounded LRU with optional JSON persistence.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from pathlib import Path
from typing import Any

import numpy as np
from pydantic import ValidationError

from stationdesk.codec.wav import AudioBuffer
from stationdesk.models.config import CacheConfig
from stationdesk.models.waveform import WaveformData
from stationdesk.timeline.ids import VersionCounter
from stationdesk.utils.io import read_json, write_json
from stationdesk.utils.progress import log_step, log_warning

STORAGE_PREFIX = "waveform_"
RMS_BOOST = 1.2
PLACEHOLDER_FLOOR = 0.08

_MASK = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


def _utf16_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le")
    return [int.from_bytes(raw[i:i + 2], "little") for i in range(0, len(raw), 2)]


class WaveformCache:
    """Bounded LRU keyed by recording id; reads refresh recency."""

    def __init__(self, capacity: int = 50):
        self.capacity = capacity
        self._entries: OrderedDict[str, WaveformData] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> WaveformData | None:
        data = self._entries.get(key)
        if data is not None:
            self._entries.move_to_end(key)
        return data

    def set(self, key: str, data: WaveformData) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            log_step("Cache", f"Evicted waveform {evicted}")
        self._entries[key] = data

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


class WaveformService:
    """Derives, caches and persists display waveforms."""

    def __init__(
        self,
        cache: WaveformCache | None = None,
        store_dir: Path | str | None = None,
        versions: VersionCounter | None = None,
        *,
        config: CacheConfig | None = None,
    ):
        self.config = config or CacheConfig()
        self.cache = cache or WaveformCache(self.config.capacity)
        self.store_dir = Path(store_dir) if store_dir is not None else None
        self.versions = versions or VersionCounter()

    @property
    def samples(self) -> int:
        return self.config.waveform_samples

    def generate_placeholder(self, seed: str, count: int | None = None) -> list[float]:
        """Deterministic pseudo-random waveform for ``seed``."""
        count = count or self.samples
        h = 2166136261
        for unit in _utf16_units(seed):
            h = _imul(h ^ unit, 16777619)

        samples = []
        for i in range(count):
            h = (h + 0x6D2B79F5) & _MASK
            t = _imul(h ^ (h >> 15), 1 | h)
            t ^= (t + _imul(t ^ (t >> 7), 61 | t)) & _MASK
            r = (t ^ (t >> 14)) / 4294967296

            base = r * 0.9 + 0.1
            envelope = math.sin(i / count * math.pi) * 0.7 + 0.3
            samples.append(max(PLACEHOLDER_FLOOR, min(1.0, base * envelope)))
        return samples

    def from_live_values(self, values: list[float] | None, count: int | None = None) -> list[float]:
        count = count or self.samples
        if not values:
            return self.generate_placeholder("live", count)
        return self.downsample(values, count)

    def downsample(self, samples: list[float], count: int) -> list[float]:
        """RMS per bucket, boosted by 1.2 and capped at 1."""
        if len(samples) <= count:
            return list(samples)

        step = len(samples) / count
        result = []
        i = 0.0
        while i < len(samples):
            end = min(i + step, len(samples))
            chunk = samples[math.floor(i):math.floor(end)]
            if chunk:
                rms = math.sqrt(sum(v * v for v in chunk) / len(chunk))
                result.append(min(1.0, rms * RMS_BOOST))
            i += step
        return result

    def from_buffer(self, buffer: AudioBuffer, count: int | None = None) -> list[float]:
        """Waveform of decoded audio: per-bucket RMS of the channel mix."""
        count = count or self.samples
        if buffer.length == 0 or buffer.channels == 0:
            return [0.0] * count

        mono = np.mean(np.stack(buffer.data[: buffer.channels]), axis=0, dtype=np.float64)
        buckets = np.array_split(mono, min(count, buffer.length))
        return [
            float(min(1.0, math.sqrt(float(np.mean(b * b))) * RMS_BOOST))
            for b in buckets
        ]

    def slice_waveform(
        self,
        samples: list[float] | None,
        full_duration_ms: float,
        start_ms: float,
        end_ms: float,
        count: int | None = None,
    ) -> list[float] | None:
        """The part of ``samples`` covering ``[start_ms, end_ms)``, resampled."""
        count = count or self.samples
        if not samples or full_duration_ms <= 0 or end_ms <= start_ms:
            return None

        start_ratio = max(0.0, start_ms) / full_duration_ms
        end_ratio = min(full_duration_ms, end_ms) / full_duration_ms
        start_idx = math.floor(start_ratio * len(samples))
        end_idx = math.ceil(end_ratio * len(samples))

        sliced = samples[start_idx:end_idx]
        return self.downsample(sliced, count) if sliced else None

    def apply_effects(
        self,
        samples: list[float],
        *,
        normalize_gain_db: float | None = None,
        fade_in_ms: float | None = None,
        fade_out_ms: float | None = None,
        duration_ms: float = 0.0,
    ) -> list[float]:
        """Preview export fx on a waveform: gain, then linear fades."""
        if not samples:
            return samples
        result = list(samples)
        n = len(result)

        if normalize_gain_db:
            gain = 10 ** (normalize_gain_db / 20)
            result = [max(0.0, min(1.0, v * gain)) for v in result]

        if fade_in_ms and fade_in_ms > 0 and duration_ms > 0:
            fade_samples = math.floor(n * fade_in_ms / duration_ms)
            for i in range(min(fade_samples, n)):
                result[i] *= i / fade_samples

        if fade_out_ms and fade_out_ms > 0 and duration_ms > 0:
            fade_samples = min(n, math.floor(n * fade_out_ms / duration_ms))
            fade_start = n - fade_samples
            for i in range(fade_start, n):
                result[i] *= 1 - (i - fade_start) / fade_samples

        return result

    @staticmethod
    def is_valid_waveform(samples: Any) -> bool:
        return (
            isinstance(samples, list)
            and len(samples) > 0
            and all(
                isinstance(s, (int, float)) and not isinstance(s, bool) and 0 <= s <= 1
                for s in samples
            )
        )

    def _path(self, recording_id: str) -> Path | None:
        if self.store_dir is None:
            return None
        return self.store_dir / f"{STORAGE_PREFIX}{recording_id}.json"

    def _persist(self, recording_id: str, data: WaveformData) -> None:
        path = self._path(recording_id)
        if path is None:
            return
        try:
            write_json(path, data.model_dump(mode="json"))
        except OSError as e:
            log_warning(f"Failed to persist waveform {recording_id}: {e}")

    def _load(self, recording_id: str) -> WaveformData | None:
        path = self._path(recording_id)
        if path is None or not path.exists():
            return None
        try:
            return WaveformData.model_validate(read_json(path))
        except (OSError, ValueError, ValidationError) as e:
            log_warning(f"Failed to load waveform {recording_id}: {e}")
            return None

    def get_data(self, recording_id: str) -> WaveformData | None:
        data = self.cache.get(recording_id)
        if data is None:
            data = self._load(recording_id)
            if data is not None:
                self.cache.set(recording_id, data)
        return data

    def get(self, recording_id: str, *, processed: bool = False) -> list[float] | None:
        """The cached waveform; ``processed`` prefers the fx copy when there is one."""
        data = self.get_data(recording_id)
        if data is None:
            return None
        if processed and data.processed:
            return data.processed
        return data.original

    def set(self, recording_id: str, original: list[float], processed: list[float] | None = None) -> WaveformData:
        data = WaveformData(original=original, processed=processed, version=self.versions.next())
        self.cache.set(recording_id, data)
        self._persist(recording_id, data)
        return data

    def update_processed(
        self,
        recording_id: str,
        *,
        normalize_gain_db: float | None = None,
        fade_in_ms: float | None = None,
        fade_out_ms: float | None = None,
        duration_ms: float = 0.0,
    ) -> list[float] | None:
        data = self.get_data(recording_id)
        if data is None:
            log_warning(f"No original waveform for {recording_id}")
            return None

        processed = self.apply_effects(
            data.original,
            normalize_gain_db=normalize_gain_db,
            fade_in_ms=fade_in_ms,
            fade_out_ms=fade_out_ms,
            duration_ms=duration_ms,
        )
        updated = WaveformData(original=data.original, processed=processed, version=self.versions.next())
        self.cache.set(recording_id, updated)
        self._persist(recording_id, updated)
        return processed

    def clear_processed(self, recording_id: str) -> None:
        data = self.get_data(recording_id)
        if data is None:
            return
        updated = WaveformData(original=data.original, version=self.versions.next())
        self.cache.set(recording_id, updated)
        self._persist(recording_id, updated)

    def remove(self, recording_id: str) -> None:
        self.cache.delete(recording_id)
        path = self._path(recording_id)
        if path is not None:
            path.unlink(missing_ok=True)

    def clear_cache(self) -> None:
        self.cache.clear()
