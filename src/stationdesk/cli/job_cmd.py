"""stationdesk job — submit and resolve render jobs."""

from __future__ import annotations

from pathlib import Path

import click
from pydantic import ValidationError

from stationdesk.models.config import load_config
from stationdesk.models.render import RenderPlan
from stationdesk.render.jobs import RenderJobs
from stationdesk.utils.io import read_json
from stationdesk.utils.progress import log, log_error, log_success


@click.group()
@click.option("--station", "-s", required=True, help="Station id")
@click.option("--root", default=".", type=click.Path(file_okay=False), help="Store root directory")
@click.option("--config", "config_path", default=None, type=click.Path(), help="Path to stationdesk.yaml")
@click.pass_context
def job_cmd(ctx: click.Context, station: str, root: str, config_path: str | None) -> None:
    """Manage render jobs for a station."""
    ctx.ensure_object(dict)
    ctx.obj["station"] = station
    ctx.obj["jobs"] = RenderJobs(root, load_config(config_path).render)


@job_cmd.command("submit")
@click.argument("plan_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--wait/--no-wait", default=True, help="Resolve the job right away")
@click.pass_context
def submit(ctx: click.Context, plan_path: str, wait: bool) -> None:
    """Submit a render plan (JSON) and optionally resolve it."""
    jobs: RenderJobs = ctx.obj["jobs"]
    station = ctx.obj["station"]
    try:
        plan = RenderPlan.model_validate(read_json(Path(plan_path)))
    except (ValueError, ValidationError) as e:
        log_error(f"Invalid render plan: {e}")
        raise SystemExit(1)

    job_id = jobs.start_render(plan, station)
    click.echo(job_id)
    if wait:
        _report(jobs, job_id, station)


@job_cmd.command("status")
@click.argument("job_id")
@click.pass_context
def status(ctx: click.Context, job_id: str) -> None:
    """Resolve a render job and show where its output is."""
    _report(ctx.obj["jobs"], job_id, ctx.obj["station"])


def _report(jobs: RenderJobs, job_id: str, station: str) -> None:
    result = jobs.get_render_status(job_id, station)
    if result.uri:
        log_success(f"{job_id}: done → {result.uri}")
    else:
        log(f"{job_id}: {result.progress:.0%} (pending)")
        raise SystemExit(1)
