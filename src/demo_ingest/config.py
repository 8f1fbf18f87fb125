"""Runtime configuration for the session ingestion worker."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from demo_ingest.orchestrator.errors import ConfigurationError

DEFAULT_MINIO_PORT = 9000


@dataclass(slots=True)
class WorkerSettings:
    """Loop pacing, concurrency and local layout settings."""

    concurrency: int = 1
    queue_capacity: int | None = None
    batch_size: int = 1
    short_interval_seconds: float = 1.0
    long_interval_seconds: float = 60.0
    analysis_timeout_seconds: float = 60.0
    drain: bool = True
    work_dir: Path = Path("temp")

    @property
    def effective_queue_capacity(self) -> int:
        if self.queue_capacity is None:
            return self.concurrency
        return self.queue_capacity

    @property
    def retention_seconds(self) -> float:
        return 2 * self.long_interval_seconds


@dataclass(slots=True)
class EndpointSettings:
    """Job listing and ingestion acknowledgement endpoints."""

    jobs_url: str = ""
    ingest_url: str = ""
    api_key: str = ""
    request_timeout_seconds: float = 30.0
    ingest_success_status: int = 201


@dataclass(slots=True)
class ArtifactStoreSettings:
    """S3-compatible object store holding raw demos and analysis results."""

    endpoint_url: str = ""
    access_key: str = ""
    secret_key: str = ""
    region: str = "us-east-1"
    raw_bucket: str = "demoblobs"
    results_bucket: str = "jsonblobs"
    raw_extension: str = ".dem"


@dataclass(slots=True)
class AnalysisSettings:
    """External analysis executable."""

    executable: str = ""


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    worker: WorkerSettings = field(default_factory=WorkerSettings)
    endpoints: EndpointSettings = field(default_factory=EndpointSettings)
    store: ArtifactStoreSettings = field(default_factory=ArtifactStoreSettings)
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)

    @classmethod
    def from_env(cls, work_dir: Path | None = None) -> Settings:
        """Load settings from environment; legacy variable names are used as fallbacks."""

        queue_capacity_raw = _env("DEMO_INGEST_QUEUE_CAPACITY")
        return cls(
            worker=WorkerSettings(
                concurrency=_env_int("DEMO_INGEST_PROCESS_LIMIT", "PROCESS_LIMIT", default=1),
                queue_capacity=(
                    _parse_int("DEMO_INGEST_QUEUE_CAPACITY", queue_capacity_raw)
                    if queue_capacity_raw
                    else None
                ),
                batch_size=_env_int("DEMO_INGEST_QUERY_LIMIT", "QUERY_LIMIT", default=1),
                short_interval_seconds=_env_float(
                    "DEMO_INGEST_SHORT_INTERVAL_SECONDS",
                    default=1.0,
                ),
                long_interval_seconds=_env_float(
                    "DEMO_INGEST_LONG_INTERVAL_SECONDS",
                    default=60.0,
                ),
                analysis_timeout_seconds=_env_float(
                    "DEMO_INGEST_ANALYSIS_TIMEOUT_SECONDS",
                    default=60.0,
                ),
                drain=_env_bool("DEMO_INGEST_DRAIN", default=True),
                work_dir=work_dir or Path(_env("DEMO_INGEST_WORK_DIR") or "temp"),
            ),
            endpoints=EndpointSettings(
                jobs_url=_env("DEMO_INGEST_JOBS_URL", "JOBS_URL"),
                ingest_url=_env("DEMO_INGEST_INGEST_URL", "INGEST_URL"),
                api_key=_env("DEMO_INGEST_API_KEY", "KEY"),
                request_timeout_seconds=_env_float(
                    "DEMO_INGEST_REQUEST_TIMEOUT_SECONDS",
                    default=30.0,
                ),
                ingest_success_status=_env_int("DEMO_INGEST_INGEST_SUCCESS_STATUS", default=201),
            ),
            store=ArtifactStoreSettings(
                endpoint_url=_store_endpoint(),
                access_key=_env("DEMO_INGEST_STORE_ACCESS_KEY", "MINIO_ACCESS_KEY"),
                secret_key=_env("DEMO_INGEST_STORE_SECRET_KEY", "MINIO_SECRET_KEY"),
                region=_env("DEMO_INGEST_STORE_REGION") or "us-east-1",
                raw_bucket=_env("DEMO_INGEST_RAW_BUCKET") or "demoblobs",
                results_bucket=_env("DEMO_INGEST_RESULTS_BUCKET") or "jsonblobs",
                raw_extension=_env("DEMO_INGEST_RAW_EXTENSION") or ".dem",
            ),
            analysis=AnalysisSettings(
                executable=_env("DEMO_INGEST_ANALYSIS_EXECUTABLE", "ANALYSIS_EXECUTABLE"),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error listing every missing or invalid value."""

        missing = [
            name
            for name, value in (
                ("DEMO_INGEST_JOBS_URL", self.endpoints.jobs_url),
                ("DEMO_INGEST_INGEST_URL", self.endpoints.ingest_url),
                ("DEMO_INGEST_API_KEY", self.endpoints.api_key),
                ("DEMO_INGEST_ANALYSIS_EXECUTABLE", self.analysis.executable),
                ("DEMO_INGEST_STORE_ENDPOINT", self.store.endpoint_url),
                ("DEMO_INGEST_STORE_ACCESS_KEY", self.store.access_key),
                ("DEMO_INGEST_STORE_SECRET_KEY", self.store.secret_key),
            )
            if not value.strip()
        ]
        if missing:
            raise ConfigurationError(
                "Missing required configuration: " + ", ".join(missing),
            )

        _validate_http_url("DEMO_INGEST_JOBS_URL", self.endpoints.jobs_url)
        _validate_http_url("DEMO_INGEST_INGEST_URL", self.endpoints.ingest_url)
        _validate_http_url("DEMO_INGEST_STORE_ENDPOINT", self.store.endpoint_url)

        if self.worker.concurrency <= 0:
            raise ConfigurationError("DEMO_INGEST_PROCESS_LIMIT must be a positive integer.")
        if self.worker.batch_size <= 0:
            raise ConfigurationError("DEMO_INGEST_QUERY_LIMIT must be a positive integer.")
        if self.worker.effective_queue_capacity <= 0:
            raise ConfigurationError("DEMO_INGEST_QUEUE_CAPACITY must be a positive integer.")
        if self.worker.short_interval_seconds < 0:
            raise ConfigurationError("DEMO_INGEST_SHORT_INTERVAL_SECONDS must be >= 0.")
        if self.worker.long_interval_seconds < self.worker.short_interval_seconds:
            raise ConfigurationError(
                "DEMO_INGEST_LONG_INTERVAL_SECONDS must be >= DEMO_INGEST_SHORT_INTERVAL_SECONDS.",
            )
        if self.worker.analysis_timeout_seconds <= 0:
            raise ConfigurationError("DEMO_INGEST_ANALYSIS_TIMEOUT_SECONDS must be > 0.")
        if self.endpoints.request_timeout_seconds <= 0:
            raise ConfigurationError("DEMO_INGEST_REQUEST_TIMEOUT_SECONDS must be > 0.")

    def describe(self) -> list[str]:
        """Resolved settings as display lines with secrets masked."""

        return [
            f"jobs_url={self.endpoints.jobs_url}",
            f"ingest_url={self.endpoints.ingest_url}",
            f"api_key={_mask(self.endpoints.api_key)}",
            f"store_endpoint={self.store.endpoint_url}",
            f"store_access_key={_mask(self.store.access_key)}",
            f"store_secret_key={_mask(self.store.secret_key)}",
            f"buckets=raw:{self.store.raw_bucket} results:{self.store.results_bucket}",
            f"analysis_executable={self.analysis.executable}",
            f"concurrency={self.worker.concurrency} "
            f"queue_capacity={self.worker.effective_queue_capacity} "
            f"batch_size={self.worker.batch_size}",
            f"intervals=short:{self.worker.short_interval_seconds}s "
            f"long:{self.worker.long_interval_seconds}s "
            f"retention:{self.worker.retention_seconds}s",
            f"analysis_timeout={self.worker.analysis_timeout_seconds}s",
            f"mode={'drain' if self.worker.drain else 'service'}",
            f"work_dir={self.worker.work_dir}",
        ]


def _env(*names: str) -> str:
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return ""


def _env_int(*names: str, default: int) -> int:
    for name in names:
        raw = os.getenv(name, "").strip()
        if raw:
            return _parse_int(name, raw)
    return default


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as error:
        raise ConfigurationError(f"Invalid integer value for {name}: {raw!r}") from error


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ConfigurationError(f"Invalid numeric value for {name}: {raw!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"Invalid boolean value for {name}: {value!r}")


def _store_endpoint() -> str:
    explicit = _env("DEMO_INGEST_STORE_ENDPOINT")
    if explicit:
        return explicit
    hostname = _env("MINIO_HOSTNAME")
    if not hostname:
        return ""
    # Legacy deployments give a bare host; the store listens on plain HTTP.
    return f"http://{hostname}:{DEFAULT_MINIO_PORT}"


def _validate_http_url(name: str, value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigurationError(
            f"Invalid URL for {name}: {value!r}. "
            "Expected an absolute URL with http:// or https:// scheme.",
        )


def _mask(secret: str) -> str:
    if not secret:
        return "<unset>"
    if len(secret) <= 4:
        return "****"
    return f"{secret[:2]}****{secret[-2:]}"
