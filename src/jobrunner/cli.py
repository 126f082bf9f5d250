# cli.py
from __future__ import annotations

import dataclasses
import json
import logging
import subprocess
import sys
import time
import uuid
from pathlib import Path

import click

from jobrunner.errors import JobRunnerError
from jobrunner.git_facts.git import get_current_ref, get_remote_url, is_dirty, repo_root
from jobrunner.notifier import MemoryNotifier
from jobrunner.registry import CapabilityKind, default_registry, load_builtin_plugins, load_plugins
from jobrunner.runner import JobRunner
from jobrunner.settings import Settings
from jobrunner.ui.console import Console, get_console, set_console

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _load_plugins(settings: Settings) -> None:
    load_builtin_plugins()
    load_plugins(settings.plugins)


def _current_repo_source() -> dict:
    """
    Describe the repository the CLI runs from as a git source.

    Raises:
        click.ClickException: if it isn't a git checkout with an origin
    """
    console = get_console()
    try:
        url = get_remote_url("origin")
        ref = get_current_ref()
        dirty = is_dirty()
        root = repo_root()
    except subprocess.CalledProcessError:
        raise click.ClickException(
            "--here needs a git repository with an 'origin' remote"
        )
    except FileNotFoundError:
        raise click.ClickException("git command not found. Please install Git.")

    if dirty:
        console.print_info("Warning: uncommitted changes won't be part of the job's checkout")
    console.print_debug(f"Using repository {url} at {ref} (checked out in {root})")
    return {"type": "git", "url": url, "branch": ref}


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and debug logging)",
)
@click.pass_context
def cli(ctx, debug):
    """jobrunner: run a CI job on a leased build host."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=logging.DEBUG if debug else settings.log_level,
        format=LOG_FORMAT,
    )
    set_console(Console(debug=debug))
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("job_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--job-id", default=None, help="Job identifier (defaults to a random id)")
@click.option("--builder", default=None, help="Builder plugin to lease the build host from")
@click.option(
    "--here/--no-here",
    default=False,
    help="Add the current git repository (origin, current ref) as a source",
)
@click.pass_context
def run(ctx, job_file, job_id, builder, here):
    """Run the job described by JOB_FILE (JSON)."""
    console = get_console()
    settings: Settings = ctx.obj["settings"]
    if builder:
        settings = dataclasses.replace(settings, builder=builder)

    try:
        payload = json.loads(job_file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        console.print_error(
            "Failed to load job",
            f"Could not read a job definition from {job_file}",
            details=[str(e)],
        )
        sys.exit(1)

    if here:
        if not isinstance(payload, dict):
            console.print_error("Invalid job definition", f"{job_file} must contain a JSON object")
            sys.exit(1)
        payload.setdefault("sources", []).append(_current_repo_source())

    job_id = job_id or uuid.uuid4().hex[:12]
    notifier = MemoryNotifier(echo=console.print_log_line)
    started = time.monotonic()

    try:
        _load_plugins(settings)

        console.print_job_started(
            job_name=str(payload.get("name", "?")) if isinstance(payload, dict) else "?",
            job_id=job_id,
            builder=settings.builder,
            source_count=len(payload.get("sources", [])) if isinstance(payload, dict) else 0,
        )

        runner = JobRunner(job_id, payload, notifier, settings=settings)
        success = runner.run()

        console.print_stage_results(runner.outcomes)
        console.print_job_result(notifier.status.name, duration=time.monotonic() - started)
        if not success:
            sys.exit(1)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except JobRunnerError as e:
        console.print_error(
            "Job failed",
            str(e),
            details=[f"status: {notifier.status.name}", f"error: {type(e).__name__}"],
        )
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@click.pass_context
def plugins(ctx):
    """List the registered plugins by capability kind."""
    console = get_console()
    settings: Settings = ctx.obj["settings"]
    try:
        _load_plugins(settings)
    except ImportError as e:
        console.print_error("Failed to load plugins", str(e))
        sys.exit(1)

    console.print_plugins({kind.value: default_registry.names(kind) for kind in CapabilityKind})


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
