"""stationdesk status — show a project's tracks and segments."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from stationdesk.store.projects import ProjectStore
from stationdesk.utils.progress import log_error

console = Console()

TRACK_ICONS = {
    "master": "[blue]◆[/blue]",
    "audio": "[green]●[/green]",
    "aux": "[magenta]◑[/magenta]",
}


def _flag(on: bool, label: str) -> str:
    return label if on else "[dim]—[/dim]"


def _ms(value: float | None) -> str:
    return f"{value / 1000:.2f}s" if value is not None else "—"


@click.command()
@click.argument("project_id")
@click.option("--station", "-s", required=True, help="Station id")
@click.option("--root", default=".", type=click.Path(file_okay=False), help="Store root directory")
def status_cmd(project_id: str, station: str, root: str) -> None:
    """Show tracks and segments of a project."""
    project = ProjectStore(root).load(station, project_id)
    if project is None:
        log_error(f"Project not found: {station}/{project_id}")
        raise SystemExit(1)

    console.print(f"\n[bold]{project.name or project.id}[/bold] — {project.station_id}")
    console.print(f"[dim]{project.uri}[/dim]")
    console.print(
        f"Duration: {_ms(project.duration_ms)}  "
        f"Status: {project.workflow_status}  "
        f"Sync: {project.sync_status or '—'}"
    )
    console.print()

    tracks = Table(title="Tracks", show_lines=True)
    tracks.add_column("#", justify="right")
    tracks.add_column("Track", style="bold")
    tracks.add_column("Type")
    tracks.add_column("Gain")
    tracks.add_column("Pan")
    tracks.add_column("M/S")
    tracks.add_column("Segments", justify="right")

    for track in sorted(project.tracks, key=lambda t: t.index):
        icon = TRACK_ICONS.get(track.type, "?")
        tracks.add_row(
            str(track.index),
            track.name or track.id,
            f"{icon} {track.type}",
            f"{track.gain:.2f}",
            f"{track.pan:+.2f}",
            f"{_flag(track.muted, 'M')} {_flag(track.soloed, 'S')}",
            str(len(project.segments_on(track.id))),
        )
    console.print(tracks)

    if project.segments:
        segments = Table(title="Segments", show_lines=True)
        segments.add_column("Segment", style="bold")
        segments.add_column("Track")
        segments.add_column("Start")
        segments.add_column("End")
        segments.add_column("Fades")

        for seg in sorted(project.segments, key=lambda s: (s.track_id, s.start_ms)):
            segments.add_row(
                seg.name,
                seg.track_id,
                _ms(seg.start_ms),
                _ms(seg.end_ms),
                f"{seg.fade_in_ms:.0f}/{seg.fade_out_ms:.0f}ms",
            )
        console.print(segments)
    console.print()
