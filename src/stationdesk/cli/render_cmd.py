"""stationdesk render — run the offline render on a WAV file."""

from __future__ import annotations

from pathlib import Path

import click

from stationdesk.dsp.chain import EffectsSettings, estimate_processing_time_ms
from stationdesk.errors import RenderCancelled, RenderError, WavFormatError
from stationdesk.models.config import load_config
from stationdesk.models.timeline import CompressorSettings, EQSettings, NoiseGateSettings
from stationdesk.render.pipeline import CancelToken, OfflineRenderer, RenderRequest
from stationdesk.utils.progress import log_error, log_progress, log_warning, show_render_summary


@click.command()
@click.argument("input_path", type=click.Path(dir_okay=False))
@click.argument("output_path", type=click.Path(dir_okay=False))
@click.option("--trim-start", default=0.0, type=float, help="Trim start (ms)")
@click.option("--trim-end", default=None, type=float, help="Trim end (ms). Defaults to the full length.")
@click.option("--normalize-db", default=None, type=float, help="Normalize gain (dB, ±12)")
@click.option("--fade-in", default=None, type=float, help="Fade-in length (ms)")
@click.option("--fade-out", default=None, type=float, help="Fade-out length (ms)")
@click.option("--eq/--no-eq", default=False, help="Enable the EQ simulator")
@click.option("--compressor/--no-compressor", default=False, help="Enable the compressor")
@click.option("--gate/--no-gate", default=False, help="Enable the noise gate")
@click.option("--block-size", default=None, type=int, help="Samples per processing block")
@click.option(
    "--cancel-after-blocks",
    default=None,
    type=int,
    help="Cancel the render after this many blocks (for testing cancellation)",
)
@click.option("--config", "config_path", default=None, type=click.Path(), help="Path to stationdesk.yaml")
def render_cmd(
    input_path: str,
    output_path: str,
    trim_start: float,
    trim_end: float | None,
    normalize_db: float | None,
    fade_in: float | None,
    fade_out: float | None,
    eq: bool,
    compressor: bool,
    gate: bool,
    block_size: int | None,
    cancel_after_blocks: int | None,
    config_path: str | None,
) -> None:
    """Render INPUT_PATH through the effects chain into OUTPUT_PATH."""
    config = load_config(config_path)
    render_config = config.render
    if block_size is not None:
        render_config = render_config.model_copy(update={"block_size": block_size})

    effects = EffectsSettings(
        eq=EQSettings(enabled=True) if eq else None,
        compressor=CompressorSettings(enabled=True) if compressor else None,
        noise_gate=NoiseGateSettings(enabled=True) if gate else None,
        normalize_gain_db=normalize_db,
        fade_in_ms=fade_in,
        fade_out_ms=fade_out,
    )

    token = CancelToken()
    renderer = OfflineRenderer(effects, config=render_config, cancel_token=token)
    blocks_done = 0
    last_decile = -1

    def on_progress(progress: float, status: str) -> None:
        nonlocal blocks_done, last_decile
        if status.startswith("Processing audio"):
            blocks_done += 1
            if cancel_after_blocks is not None and blocks_done >= cancel_after_blocks:
                token.cancel()
            decile = int(progress * 10)
            if decile == last_decile:
                return
            last_decile = decile
        log_progress(progress, status)

    request = RenderRequest(
        input_path=Path(input_path),
        output_path=Path(output_path),
        trim_start_ms=trim_start,
        trim_end_ms=trim_end,
    )

    try:
        result = renderer.render(request, on_progress)
    except RenderCancelled as e:
        log_warning(f"Render cancelled after {e.block} of {e.total_blocks} blocks")
        raise SystemExit(130)
    except (WavFormatError, RenderError) as e:
        log_error(f"Render failed: {e}")
        raise SystemExit(1)

    show_render_summary(
        "Render complete",
        result.elapsed_seconds,
        {
            "Output": str(result.output_path),
            "Samples": f"{result.samples} × {result.channels}ch @ {result.sample_rate}Hz",
            "Blocks": result.blocks,
            "Estimated": f"{estimate_processing_time_ms(result.duration_ms, effects) / 1000:.2f}s",
        },
    )
