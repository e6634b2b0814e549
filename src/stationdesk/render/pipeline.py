"""Offline render pipeline: load → analyze → process → save.

Stage weights for progress reporting are fixed: loading 0–0.2, analyzing
0.2–0.3, processing 0.3–0.8, saving 0.8–1.0. Reported values never go
backwards and a successful render always ends with exactly 1.0.

Processing runs the effects chain on ``|sample|`` and re-applies the
sign of the input sample. This is a gain-envelope approximation: the chain
never sees real waveform shape, so the EQ stage is not a spectral filter.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

import numpy as np

from stationdesk.codec.wav import AudioBuffer, read_wav, write_wav
from stationdesk.dsp.chain import EffectsChain, EffectsSettings
from stationdesk.errors import RenderCancelled, RenderError, WavFormatError
from stationdesk.models.config import RenderConfig
from stationdesk.utils.progress import log_error, log_step, log_success, log_warning

ProgressCallback = Callable[[float, str], None]

CANCELLED_STATUS = "Processing cancelled"


class RenderStage(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ANALYZING = "analyzing"
    PROCESSING = "processing"
    SAVING = "saving"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancelToken:
    """Cooperative cancellation flag, polled once per block."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class RenderRequest:
    input_path: Path
    output_path: Path
    trim_start_ms: float = 0.0
    trim_end_ms: float | None = None
    # overrides the renderer's settings for this request only
    effects: EffectsSettings | None = None


@dataclass
class RenderResult:
    output_path: Path
    stage: RenderStage
    sample_rate: int
    channels: int
    samples: int
    blocks: int
    elapsed_seconds: float

    @property
    def duration_ms(self) -> float:
        return self.samples / self.sample_rate * 1000.0 if self.sample_rate else 0.0


class OfflineRenderer:
    """Renders one file through a private effects chain.

    Each instance owns its chain, so independent renders can run in parallel
    on separate instances. Blocks are processed strictly in order because
    envelope and gain-reduction state carry across them.
    """

    def __init__(
        self,
        effects: EffectsSettings,
        *,
        config: RenderConfig | None = None,
        cancel_token: CancelToken | None = None,
    ):
        self.effects = effects
        self.config = config or RenderConfig()
        self.cancel_token = cancel_token or CancelToken()
        self.stage = RenderStage.IDLE
        self.chain: EffectsChain | None = None
        self._last_progress = 0.0
        self._on_progress: ProgressCallback | None = None

    def cancel(self) -> None:
        self.cancel_token.cancel()

    def _report(self, progress: float, status: str) -> None:
        self._last_progress = max(self._last_progress, progress)
        if self._on_progress is not None:
            self._on_progress(self._last_progress, status)

    def render(self, request: RenderRequest, on_progress: ProgressCallback | None = None) -> RenderResult:
        self._on_progress = on_progress
        self._last_progress = 0.0
        started = time.time()

        self.stage = RenderStage.LOADING
        self._report(0.0, "Loading audio file...")
        source = self._load(request.input_path)

        self.stage = RenderStage.ANALYZING
        self._report(self.config.analyze_at, "Analyzing audio...")
        start_sample, end_sample, trim_end_ms = self._analyze(source, request)

        self.stage = RenderStage.PROCESSING
        self._report(self.config.process_at, "Applying audio effects...")
        processed, blocks = self._process(
            source,
            start_sample,
            end_sample,
            request.trim_start_ms,
            trim_end_ms,
            request.effects or self.effects,
        )

        self.stage = RenderStage.SAVING
        self._report(self.config.save_at, "Saving processed audio...")
        self._save(processed, request.output_path)

        self.stage = RenderStage.DONE
        self._report(1.0, "Processing complete")

        elapsed = time.time() - started
        log_success(
            f"Rendered {processed.length} samples × {processed.channels}ch "
            f"→ {request.output_path.name} in {elapsed:.2f}s"
        )
        return RenderResult(
            output_path=request.output_path,
            stage=self.stage,
            sample_rate=processed.sample_rate,
            channels=processed.channels,
            samples=processed.length,
            blocks=blocks,
            elapsed_seconds=elapsed,
        )

    def _load(self, path: Path) -> AudioBuffer:
        log_step("Load", f"Decoding {Path(path).name}")
        try:
            return read_wav(path)
        except WavFormatError as e:
            self.stage = RenderStage.FAILED
            log_error(f"Unsupported input: {e}")
            raise
        except OSError as e:
            self.stage = RenderStage.FAILED
            log_error(f"Cannot read input: {e}")
            raise RenderError(RenderStage.LOADING.value, str(e)) from e

    def _analyze(self, source: AudioBuffer, request: RenderRequest) -> tuple[int, int, float]:
        rate = source.sample_rate
        start_sample = math.floor(request.trim_start_ms / 1000 * rate)
        if request.trim_end_ms:
            end_sample = math.floor(request.trim_end_ms / 1000 * rate)
            trim_end_ms = request.trim_end_ms
        else:
            end_sample = source.length
            trim_end_ms = source.length / rate * 1000

        start_sample = max(0, min(start_sample, source.length))
        end_sample = max(start_sample, end_sample)
        if end_sample > source.length:
            log_warning(
                f"Trim end {trim_end_ms:.0f}ms is past the end of the audio; padding with silence"
            )
        log_step("Analyze", f"Range {start_sample}–{end_sample} of {source.length} samples @ {rate}Hz")
        return start_sample, end_sample, trim_end_ms

    def _process(
        self,
        source: AudioBuffer,
        start_sample: int,
        end_sample: int,
        trim_start_ms: float,
        trim_end_ms: float,
        effects: EffectsSettings,
    ) -> tuple[AudioBuffer, int]:
        rate = source.sample_rate
        length = end_sample - start_sample
        out = AudioBuffer.empty(rate, source.channels, length)

        self.chain = EffectsChain(effects, rate)
        self.chain.reset()
        process = self.chain.process

        block_size = self.config.block_size
        total_blocks = math.ceil(length / block_size)
        span = self.config.save_at - self.config.process_at
        log_step("Process", f"{total_blocks} blocks of {block_size} samples")

        for block in range(total_blocks):
            if self.cancel_token.cancelled:
                self.stage = RenderStage.CANCELLED
                self._report(self._last_progress, CANCELLED_STATUS)
                log_warning(f"Render cancelled at block {block}/{total_blocks}")
                raise RenderCancelled(block, total_blocks)

            block_start = block * block_size
            block_end = min(block_start + block_size, length)
            work = [np.zeros(block_end - block_start, dtype=np.float32) for _ in range(source.channels)]

            for i in range(block_start, block_end):
                source_index = start_sample + i
                time_ms = source_index / rate * 1000
                for ch in range(source.channels):
                    samples = source.data[ch]
                    x = float(samples[source_index]) if source_index < source.length else 0.0
                    y = process(abs(x), time_ms, trim_start_ms, trim_end_ms)
                    work[ch][i - block_start] = y if x >= 0 else -y

            # commit only whole blocks
            for ch in range(source.channels):
                out.data[ch][block_start:block_end] = work[ch]

            done = (block + 1) / total_blocks
            self._report(
                self.config.process_at + done * span,
                f"Processing audio... {round(done * 100)}%",
            )

        return out, total_blocks

    def _save(self, buffer: AudioBuffer, path: Path) -> None:
        log_step("Save", f"Encoding {Path(path).name}")
        try:
            write_wav(buffer, path)
        except OSError as e:
            self.stage = RenderStage.FAILED
            if Path(path).exists():
                Path(path).unlink()
            log_error(f"Failed to save processed audio: {e}")
            raise RenderError(RenderStage.SAVING.value, str(e)) from e


def process_audio_offline(
    input_path: Path | str,
    output_path: Path | str,
    effects: EffectsSettings,
    *,
    trim_start_ms: float = 0.0,
    trim_end_ms: float | None = None,
    on_progress: ProgressCallback | None = None,
    config: RenderConfig | None = None,
    cancel_token: CancelToken | None = None,
) -> bool:
    """Render and report success as a boolean, for callers that fall back on failure."""
    renderer = OfflineRenderer(effects, config=config, cancel_token=cancel_token)
    request = RenderRequest(
        input_path=Path(input_path),
        output_path=Path(output_path),
        trim_start_ms=trim_start_ms,
        trim_end_ms=trim_end_ms,
    )
    try:
        renderer.render(request, on_progress)
    except RenderCancelled:
        return False
    except (WavFormatError, RenderError) as e:
        log_error(f"Offline processing failed: {e}")
        if on_progress is not None:
            on_progress(renderer._last_progress, f"Error: {e}")
        return False
    return True
