"""Per-job pipeline: fetch demo, run analysis, upload result, acknowledge ingestion."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from demo_ingest.clients.base import AnalysisRunner, ArtifactStore, IngestionSink
from demo_ingest.orchestrator.errors import PipelineStageError, UploadError
from demo_ingest.orchestrator.models import FailureClass, JobOutcome
from demo_ingest.orchestrator.workdir import WorkdirLayout

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JobFiles:
    """Local paths owned by one pipeline run."""

    raw_path: Path
    result_path: Path


class JobPipeline:
    """Runs the four collaborator stages for one session and always removes its local files.

    Every failure is returned as a ``JobOutcome``; nothing raised by a
    collaborator escapes ``run``.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        store: ArtifactStore,
        runner: AnalysisRunner,
        sink: IngestionSink,
        layout: WorkdirLayout,
        analysis_timeout_seconds: float = 60.0,
        raw_extension: str = ".dem",
    ) -> None:
        self.store = store
        self.runner = runner
        self.sink = sink
        self.layout = layout
        self.analysis_timeout_seconds = analysis_timeout_seconds
        self.raw_extension = raw_extension

    def run(self, job_id: str) -> JobOutcome:
        try:
            with self._job_files(job_id) as files:
                self._fetch(job_id, files)
                document = self._analyze(files)
                self._upload(job_id, files, document)
                self.sink.acknowledge(job_id)
        except PipelineStageError as error:
            return JobOutcome.failure(str(error), error.failure_class)
        except Exception as error:  # noqa: BLE001
            logger.exception("Unexpected pipeline error for %s", job_id)
            return JobOutcome.failure(
                f"Unexpected error: {type(error).__name__}: {error}",
                FailureClass.UNEXPECTED_ERROR,
            )
        return JobOutcome.success()

    def _fetch(self, job_id: str, files: JobFiles) -> None:
        self.store.fetch(job_id, files.raw_path)

    def _analyze(self, files: JobFiles) -> str:
        result = self.runner.run(files.raw_path, self.analysis_timeout_seconds)
        return result.stdout

    def _upload(self, job_id: str, files: JobFiles, document: str) -> None:
        try:
            files.result_path.write_text(document, "utf-8")
        except OSError as error:
            raise UploadError(f"Failed to write result document: {error}") from error
        self.store.put_result(job_id, files.result_path)

    @contextmanager
    def _job_files(self, job_id: str) -> Iterator[JobFiles]:
        files = JobFiles(
            raw_path=self.layout.raw_path(job_id, self.raw_extension),
            result_path=self.layout.result_path(job_id),
        )
        try:
            yield files
        finally:
            files.raw_path.unlink(missing_ok=True)
            files.result_path.unlink(missing_ok=True)
