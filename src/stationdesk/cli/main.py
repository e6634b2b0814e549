"""Root CLI group for StationDesk."""

from __future__ import annotations

import click

from stationdesk import __version__


@click.group()
@click.version_option(version=__version__, prog_name="stationdesk")
def cli() -> None:
    """StationDesk — offline render core for station audio production."""


# Import and register subcommands
from stationdesk.cli.init_cmd import init_cmd  # noqa: E402
from stationdesk.cli.render_cmd import render_cmd  # noqa: E402
from stationdesk.cli.status_cmd import status_cmd  # noqa: E402
from stationdesk.cli.job_cmd import job_cmd  # noqa: E402

cli.add_command(init_cmd, "init")
cli.add_command(render_cmd, "render")
cli.add_command(status_cmd, "status")
cli.add_command(job_cmd, "job")
