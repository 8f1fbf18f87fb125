"""Error taxonomy for configuration, job source and pipeline stage failures."""

from __future__ import annotations

from demo_ingest.orchestrator.models import FailureClass


class ConfigurationError(ValueError):
    """Required configuration is missing or invalid; fatal at startup."""


class SourceUnavailableError(RuntimeError):
    """Job listing failed or returned a non-success response."""


class PipelineStageError(RuntimeError):
    """A pipeline stage failed; converted to a failure outcome by the pipeline."""

    failure_class: FailureClass = FailureClass.UNEXPECTED_ERROR


class FetchError(PipelineStageError):
    failure_class = FailureClass.FETCH_FAILURE


class AnalysisError(PipelineStageError):
    failure_class = FailureClass.ANALYSIS_FAILURE

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        super().__init__(message)
        self.timed_out = timed_out
        if timed_out:
            self.failure_class = FailureClass.ANALYSIS_TIMEOUT


class UploadError(PipelineStageError):
    failure_class = FailureClass.UPLOAD_FAILURE


class AcknowledgeError(PipelineStageError):
    failure_class = FailureClass.ACKNOWLEDGE_FAILURE
