"""Collaborator interfaces used by the job pipeline and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(slots=True)
class AnalysisResult:
    """Captured output of one successful analysis run."""

    stdout: str
    exit_code: int
    duration_seconds: float


class JobSource(Protocol):
    """Lists pending session ids; raises ``SourceUnavailableError`` on failure."""

    def list_pending(self, limit: int) -> list[str]:
        """Return up to ``limit`` pending job ids."""


class ArtifactStore(Protocol):
    """Fetches raw artifacts and stores result documents."""

    def fetch(self, job_id: str, destination: Path) -> None:
        """Write the raw artifact for ``job_id`` to ``destination``."""

    def put_result(self, job_id: str, source: Path) -> None:
        """Upload the result document at ``source`` for ``job_id``."""


class AnalysisRunner(Protocol):
    """Runs the external analysis tool against a local artifact."""

    def run(self, artifact_path: Path, timeout_seconds: float) -> AnalysisResult:
        """Analyze ``artifact_path``; raises ``AnalysisError`` on any failure."""


class IngestionSink(Protocol):
    """Receives completion acknowledgements."""

    def acknowledge(self, job_id: str) -> None:
        """Mark ``job_id`` as ingested; raises ``AcknowledgeError`` when rejected."""
