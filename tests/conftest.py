"""Shared test fixtures and in-memory collaborators."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Executor, Future
from pathlib import Path

import pytest

from demo_ingest.clients.base import AnalysisResult
from demo_ingest.orchestrator.errors import AcknowledgeError, FetchError, UploadError
from demo_ingest.orchestrator.workdir import WorkdirLayout

ENV_NAMES = (
    "DEMO_INGEST_PROCESS_LIMIT",
    "DEMO_INGEST_QUEUE_CAPACITY",
    "DEMO_INGEST_QUERY_LIMIT",
    "DEMO_INGEST_SHORT_INTERVAL_SECONDS",
    "DEMO_INGEST_LONG_INTERVAL_SECONDS",
    "DEMO_INGEST_ANALYSIS_TIMEOUT_SECONDS",
    "DEMO_INGEST_DRAIN",
    "DEMO_INGEST_WORK_DIR",
    "DEMO_INGEST_JOBS_URL",
    "DEMO_INGEST_INGEST_URL",
    "DEMO_INGEST_API_KEY",
    "DEMO_INGEST_REQUEST_TIMEOUT_SECONDS",
    "DEMO_INGEST_INGEST_SUCCESS_STATUS",
    "DEMO_INGEST_STORE_ENDPOINT",
    "DEMO_INGEST_STORE_ACCESS_KEY",
    "DEMO_INGEST_STORE_SECRET_KEY",
    "DEMO_INGEST_STORE_REGION",
    "DEMO_INGEST_RAW_BUCKET",
    "DEMO_INGEST_RESULTS_BUCKET",
    "DEMO_INGEST_RAW_EXTENSION",
    "DEMO_INGEST_ANALYSIS_EXECUTABLE",
    "PROCESS_LIMIT",
    "QUERY_LIMIT",
    "JOBS_URL",
    "INGEST_URL",
    "KEY",
    "ANALYSIS_EXECUTABLE",
    "MINIO_HOSTNAME",
    "MINIO_ACCESS_KEY",
    "MINIO_SECRET_KEY",
)

VALID_ENV = {
    "DEMO_INGEST_JOBS_URL": "https://api.example.com/jobs",
    "DEMO_INGEST_INGEST_URL": "https://api.example.com/ingest",
    "DEMO_INGEST_API_KEY": "secret-api-key",
    "DEMO_INGEST_ANALYSIS_EXECUTABLE": "/opt/analyzer/bin/analyze",
    "DEMO_INGEST_STORE_ENDPOINT": "http://minio.local:9000",
    "DEMO_INGEST_STORE_ACCESS_KEY": "minio-access",
    "DEMO_INGEST_STORE_SECRET_KEY": "minio-secret",
}


@pytest.fixture()
def clean_env(monkeypatch):
    """Remove every worker variable; values set later (e.g. by dotenv) are undone too."""

    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


@pytest.fixture()
def valid_env(clean_env):
    for name, value in VALID_ENV.items():
        clean_env.setenv(name, value)
    return clean_env


@pytest.fixture()
def layout(tmp_path: Path) -> WorkdirLayout:
    layout = WorkdirLayout(tmp_path / "temp")
    layout.reset()
    return layout


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeJobSource:
    """Replays scripted responses; an exception instance is raised instead of returned."""

    def __init__(self, responses: list[list[str] | Exception] | None = None) -> None:
        self.responses = list(responses or [])
        self.calls: list[int] = []

    def list_pending(self, limit: int) -> list[str]:
        self.calls.append(limit)
        if not self.responses:
            return []
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return list(response)


class RepeatingJobSource:
    """Always lists the same ids, like an upstream that has not seen the acknowledgement yet."""

    def __init__(self, job_ids: list[str]) -> None:
        self.job_ids = job_ids
        self.calls = 0

    def list_pending(self, limit: int) -> list[str]:
        self.calls += 1
        return self.job_ids[:limit]


class FakeArtifactStore:
    def __init__(
        self,
        raw: dict[str, bytes] | None = None,
        *,
        put_error: str | None = None,
        partial_fetch: bool = False,
    ) -> None:
        self.raw = dict(raw or {})
        self.results: dict[str, str] = {}
        self.put_error = put_error
        self.partial_fetch = partial_fetch
        self.fetched: list[tuple[str, Path]] = []

    def fetch(self, job_id: str, destination: Path) -> None:
        self.fetched.append((job_id, destination))
        if job_id not in self.raw:
            if self.partial_fetch:
                destination.write_bytes(b"partial")
            raise FetchError(f"Failed to fetch s3://demoblobs/{job_id}.dem: not found (NoSuchKey)")
        destination.write_bytes(self.raw[job_id])

    def put_result(self, job_id: str, source: Path) -> None:
        if self.put_error is not None:
            raise UploadError(self.put_error)
        self.results[job_id] = source.read_text("utf-8")


class FakeAnalysisRunner:
    def __init__(self, stdout: str = '{"ok":true}', error: Exception | None = None) -> None:
        self.stdout = stdout
        self.error = error
        self.calls: list[tuple[Path, float]] = []
        self.seen_inputs: list[bytes] = []

    def run(self, artifact_path: Path, timeout_seconds: float) -> AnalysisResult:
        self.calls.append((artifact_path, timeout_seconds))
        self.seen_inputs.append(artifact_path.read_bytes())
        if self.error is not None:
            raise self.error
        return AnalysisResult(stdout=self.stdout, exit_code=0, duration_seconds=0.01)


class FakeIngestionSink:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.acknowledged: list[str] = []

    def acknowledge(self, job_id: str) -> None:
        if self.error is not None:
            raise self.error
        self.acknowledged.append(job_id)


def rejecting_sink(message: str = "Failed to mark job as ingested: 500") -> FakeIngestionSink:
    return FakeIngestionSink(error=AcknowledgeError(message))


class ManualExecutor(Executor):
    """Holds submitted runs until the test finishes them explicitly."""

    def __init__(self) -> None:
        self.pending: dict[str, tuple[Callable[[str], object], Future]] = {}
        self.submitted: list[str] = []

    def submit(self, fn, /, *args, **kwargs):
        job_id = args[0]
        future: Future = Future()
        future.set_running_or_notify_cancel()
        self.pending[job_id] = (fn, future)
        self.submitted.append(job_id)
        return future

    def finish(self, job_id: str) -> None:
        fn, future = self.pending.pop(job_id)
        try:
            future.set_result(fn(job_id))
        except Exception as error:  # noqa: BLE001
            future.set_exception(error)

    def finish_all(self) -> None:
        for job_id in list(self.pending):
            self.finish(job_id)


class ImmediateExecutor(Executor):
    """Runs each job synchronously at submit time."""

    def submit(self, fn, /, *args, **kwargs):
        future: Future = Future()
        future.set_running_or_notify_cancel()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as error:  # noqa: BLE001
            future.set_exception(error)
        return future
