"""Typed models for job outcomes and loop accounting."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FailureClass(str, Enum):
    """Where in the pipeline a job failed."""

    FETCH_FAILURE = "fetch_failure"
    ANALYSIS_FAILURE = "analysis_failure"
    ANALYSIS_TIMEOUT = "analysis_timeout"
    UPLOAD_FAILURE = "upload_failure"
    ACKNOWLEDGE_FAILURE = "acknowledge_failure"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True, slots=True)
class JobOutcome:
    """Result of one pipeline run.

    An empty ``error`` means success; anything else is a human-readable
    failure description.
    """

    error: str = ""
    failure_class: FailureClass | None = None

    @property
    def ok(self) -> bool:
        return not self.error

    @classmethod
    def success(cls) -> JobOutcome:
        return SUCCESS

    @classmethod
    def failure(cls, error: str, failure_class: FailureClass) -> JobOutcome:
        return cls(error=error or "Unknown error", failure_class=failure_class)


SUCCESS = JobOutcome()


@dataclass(slots=True)
class TickReport:
    """What happened during one orchestrator tick."""

    admitted: int = 0
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    evicted: int = 0
    source_error: str | None = None

    @property
    def reaped(self) -> int:
        return self.succeeded + self.failed


@dataclass(slots=True)
class OrchestratorRunSummary:
    """Aggregate loop counters for CLI reporting."""

    ticks: int = 0
    admitted: int = 0
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    source_errors: int = 0
    idle_ticks: int = 0

    def add(self, report: TickReport, *, idle: bool) -> None:
        self.ticks += 1
        self.admitted += report.admitted
        self.dispatched += report.dispatched
        self.succeeded += report.succeeded
        self.failed += report.failed
        if report.source_error is not None:
            self.source_errors += 1
        if idle:
            self.idle_ticks += 1
