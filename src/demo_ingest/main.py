"""CLI entrypoint for demo-ingest."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import rich_click as click
from dotenv import load_dotenv

from demo_ingest import __version__
from demo_ingest.orchestrator.controllers import (
    ProcessJobCommand,
    RunWorkerCommand,
    WorkerCliController,
)
from demo_ingest.orchestrator.errors import ConfigurationError

click.rich_click.USE_MARKDOWN = True
WORKER_CONTROLLER = WorkerCliController()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
T = TypeVar("T")


@click.group()
@click.version_option(version=__version__, prog_name="demo-ingest")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Root logger level.",
)
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=Path(".env"),
    show_default=True,
    help="Dotenv file to load; variables already set in the environment win.",
)
def demo_ingest(log_level: str, env_file: Path) -> None:
    """Demo session ingestion worker."""

    logging.basicConfig(level=getattr(logging, log_level.upper()), format=LOG_FORMAT)
    load_dotenv(env_file, override=False)


@demo_ingest.command("run")
@click.option(
    "--drain/--service",
    default=None,
    help=(
        "Drain exits once nothing is queued or in flight; service polls forever. "
        "Defaults to DEMO_INGEST_DRAIN (drain)."
    ),
)
@click.option(
    "--work-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Working directory for transient files; wiped at start.",
)
def run_worker(drain: bool | None, work_dir: Path | None) -> None:
    """Poll the job source and process sessions until drained or stopped."""

    _emit_lines(
        _with_config_errors(
            lambda: WORKER_CONTROLLER.run_worker(RunWorkerCommand(work_dir=work_dir, drain=drain)),
        ),
    )


@demo_ingest.command("process")
@click.argument("session_id")
@click.option(
    "--work-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Working directory for transient files.",
)
def process_job(session_id: str, work_dir: Path | None) -> None:
    """Run the fetch, analyze, upload and acknowledge pipeline for one session."""

    result = _with_config_errors(
        lambda: WORKER_CONTROLLER.process_job(
            ProcessJobCommand(job_id=session_id, work_dir=work_dir),
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(f"Processing failed for {session_id}.")


@demo_ingest.command("check-config")
@click.option(
    "--work-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Working directory override.",
)
def check_config(work_dir: Path | None) -> None:
    """Validate configuration and print resolved settings with secrets masked."""

    _emit_lines(_with_config_errors(lambda: WORKER_CONTROLLER.check_config(work_dir=work_dir)))


def _with_config_errors(action: Callable[[], T]) -> T:
    try:
        return action()
    except ConfigurationError as error:
        raise click.ClickException(f"Configuration error: {error}") from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    demo_ingest()
