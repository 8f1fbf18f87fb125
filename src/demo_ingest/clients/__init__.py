"""Adapters for the job source, object store, analysis executable and ingestion sink."""

from demo_ingest.clients.analysis_runner import SubprocessAnalysisRunner
from demo_ingest.clients.artifact_store import S3ArtifactStore
from demo_ingest.clients.base import (
    AnalysisResult,
    AnalysisRunner,
    ArtifactStore,
    IngestionSink,
    JobSource,
)
from demo_ingest.clients.http_api import HttpIngestionSink, HttpJobSource

__all__ = [
    "AnalysisResult",
    "AnalysisRunner",
    "ArtifactStore",
    "HttpIngestionSink",
    "HttpJobSource",
    "IngestionSink",
    "JobSource",
    "S3ArtifactStore",
    "SubprocessAnalysisRunner",
]
