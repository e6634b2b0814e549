"""stationdesk init — create a project from a recording."""

from __future__ import annotations

from pathlib import Path

import click

from stationdesk.cache.waveform import WaveformService
from stationdesk.codec.wav import read_wav
from stationdesk.errors import WavFormatError
from stationdesk.models.config import load_config
from stationdesk.models.project import Project
from stationdesk.store.projects import ProjectStore
from stationdesk.timeline.defaults import (
    create_default_project_settings,
    create_default_tracks,
    create_default_viewport,
)
from stationdesk.timeline.ids import new_id
from stationdesk.utils.progress import log, log_error, log_success


@click.command()
@click.argument("audio", type=click.Path(exists=True, dir_okay=False))
@click.option("--station", "-s", required=True, help="Station id")
@click.option("--name", default=None, help="Recording name. Defaults to the file name.")
@click.option("--category", default="general", help="Recording category")
@click.option("--id", "project_id", default=None, help="Project id. Generated when omitted.")
@click.option("--root", default=".", type=click.Path(file_okay=False), help="Store root directory")
@click.option("--config", "config_path", default=None, type=click.Path(), help="Path to stationdesk.yaml")
def init_cmd(
    audio: str,
    station: str,
    name: str | None,
    category: str,
    project_id: str | None,
    root: str,
    config_path: str | None,
) -> None:
    """Create a multitrack project for a WAV recording."""
    config = load_config(config_path)
    audio_path = Path(audio).resolve()

    try:
        buffer = read_wav(audio_path)
    except WavFormatError as e:
        log_error(f"Cannot import {audio_path.name}: {e}")
        raise SystemExit(1)

    duration_ms = buffer.duration_ms
    waveforms = WaveformService(config=config.cache)

    project = Project(
        id=project_id or new_id("rec"),
        station_id=station,
        uri=str(audio_path),
        name=name or audio_path.stem,
        category=category,
        duration_ms=duration_ms,
        tracks=create_default_tracks(),
        viewport=create_default_viewport(duration_ms, config.timeline),
        settings=create_default_project_settings().model_copy(
            update={"sample_rate": buffer.sample_rate}
        ),
        waveform=waveforms.from_buffer(buffer),
        waveform_version=1,
    )

    path = ProjectStore(root).save(project)
    log(f"Duration: {duration_ms / 1000:.1f}s @ {buffer.sample_rate}Hz, {buffer.channels}ch")
    log_success(f"Project {project.id} created at {path}")
    click.echo(project.id)
