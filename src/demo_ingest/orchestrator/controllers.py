"""Controllers for worker CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path

from demo_ingest.clients.analysis_runner import SubprocessAnalysisRunner
from demo_ingest.clients.artifact_store import S3ArtifactStore, build_s3_client
from demo_ingest.clients.http_api import HttpIngestionSink, HttpJobSource, build_http_client
from demo_ingest.config import Settings
from demo_ingest.orchestrator.orchestrator import JobOrchestrator
from demo_ingest.orchestrator.pipeline import JobPipeline
from demo_ingest.orchestrator.workdir import WorkdirLayout

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunWorkerCommand:
    """CLI input for the polling worker."""

    work_dir: Path | None
    drain: bool | None


@dataclass(slots=True)
class ProcessJobCommand:
    """CLI input for one-off processing of a single session."""

    job_id: str
    work_dir: Path | None


@dataclass(slots=True)
class ProcessJobResult:
    """One-off processing report to render in CLI."""

    lines: list[str]
    success: bool


@dataclass(slots=True)
class _Collaborators:
    source: HttpJobSource
    pipeline: JobPipeline


class WorkerCliController:
    """Builds settings and collaborators, then drives the orchestrator or a single pipeline."""

    def check_config(self, work_dir: Path | None = None) -> list[str]:
        settings = _load_settings(work_dir=work_dir)
        return ["Configuration OK", *settings.describe()]

    def run_worker(self, command: RunWorkerCommand) -> list[str]:
        settings = _load_settings(work_dir=command.work_dir)
        if command.drain is not None:
            settings = replace(settings, worker=replace(settings.worker, drain=command.drain))

        layout = WorkdirLayout(settings.worker.work_dir)
        layout.reset()
        logger.info(
            "Starting worker: mode=%s concurrency=%d queue_capacity=%d batch_size=%d",
            "drain" if settings.worker.drain else "service",
            settings.worker.concurrency,
            settings.worker.effective_queue_capacity,
            settings.worker.batch_size,
        )

        with (
            _collaborators(settings, layout) as collaborators,
            JobOrchestrator(
                source=collaborators.source,
                run_job=collaborators.pipeline.run,
                concurrency=settings.worker.concurrency,
                queue_capacity=settings.worker.effective_queue_capacity,
                batch_size=settings.worker.batch_size,
                short_interval_seconds=settings.worker.short_interval_seconds,
                long_interval_seconds=settings.worker.long_interval_seconds,
                drain=settings.worker.drain,
            ) as orchestrator,
        ):
            summary = orchestrator.run_loop()

        return [
            "Worker summary: "
            f"ticks={summary.ticks} admitted={summary.admitted} "
            f"dispatched={summary.dispatched} succeeded={summary.succeeded} "
            f"failed={summary.failed} source_errors={summary.source_errors} "
            f"idle_ticks={summary.idle_ticks}",
        ]

    def process_job(self, command: ProcessJobCommand) -> ProcessJobResult:
        settings = _load_settings(work_dir=command.work_dir)
        layout = WorkdirLayout(settings.worker.work_dir)
        layout.ensure()

        with _collaborators(settings, layout) as collaborators:
            outcome = collaborators.pipeline.run(command.job_id)

        if outcome.ok:
            return ProcessJobResult(
                lines=[f"Job completed successfully: {command.job_id}"],
                success=True,
            )
        failure_class = outcome.failure_class.value if outcome.failure_class else "unknown"
        return ProcessJobResult(
            lines=[
                f"Job failed: {command.job_id} failure_class={failure_class}",
                outcome.error,
            ],
            success=False,
        )


def _load_settings(work_dir: Path | None) -> Settings:
    settings = Settings.from_env(work_dir=work_dir)
    settings.validate()
    return settings


@contextmanager
def _collaborators(settings: Settings, layout: WorkdirLayout) -> Iterator[_Collaborators]:
    http_client = build_http_client(timeout_seconds=settings.endpoints.request_timeout_seconds)
    try:
        source = HttpJobSource(
            url=settings.endpoints.jobs_url,
            api_key=settings.endpoints.api_key,
            client=http_client,
        )
        sink = HttpIngestionSink(
            url=settings.endpoints.ingest_url,
            api_key=settings.endpoints.api_key,
            success_status=settings.endpoints.ingest_success_status,
            client=http_client,
        )
        store = S3ArtifactStore(
            client=build_s3_client(
                endpoint_url=settings.store.endpoint_url,
                access_key=settings.store.access_key,
                secret_key=settings.store.secret_key,
                region=settings.store.region,
            ),
            raw_bucket=settings.store.raw_bucket,
            results_bucket=settings.store.results_bucket,
            raw_extension=settings.store.raw_extension,
        )
        pipeline = JobPipeline(
            store=store,
            runner=SubprocessAnalysisRunner(settings.analysis.executable, cwd=Path.cwd()),
            sink=sink,
            layout=layout,
            analysis_timeout_seconds=settings.worker.analysis_timeout_seconds,
            raw_extension=settings.store.raw_extension,
        )
        yield _Collaborators(source=source, pipeline=pipeline)
    finally:
        http_client.close()
