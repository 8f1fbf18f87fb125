"""HTTP clients for the job listing and ingestion acknowledgement endpoints."""

from __future__ import annotations

import logging

import httpx

from demo_ingest.orchestrator.errors import AcknowledgeError, SourceUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_USER_AGENT = "demo-ingest-worker/1.0"
_ERROR_BODY_MAX_CHARS = 500


def build_http_client(
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    max_retries: int = DEFAULT_MAX_RETRIES,
    user_agent: str = DEFAULT_USER_AGENT,
) -> httpx.Client:
    """Shared client with connection retries and a bounded timeout."""

    transport = httpx.HTTPTransport(retries=max_retries)
    return httpx.Client(
        timeout=httpx.Timeout(timeout_seconds, connect=10.0),
        headers={"User-Agent": user_agent},
        transport=transport,
        follow_redirects=True,
    )


class HttpJobSource:
    """Lists pending session ids from the jobs endpoint."""

    def __init__(self, *, url: str, api_key: str, client: httpx.Client | None = None) -> None:
        self._url = url
        self._api_key = api_key
        self._client = client or build_http_client()

    def list_pending(self, limit: int) -> list[str]:
        try:
            response = self._client.get(
                self._url,
                params={"api_key": self._api_key, "limit": limit},
            )
        except httpx.HTTPError as error:
            raise SourceUnavailableError(f"Job listing request failed: {error}") from error

        if not response.is_success:
            raise SourceUnavailableError(
                "Failed to get jobs for queue: "
                f"{response.status_code} - {response.reason_phrase}\n{_body_excerpt(response)}",
            )

        try:
            payload = response.json()
        except ValueError as error:
            raise SourceUnavailableError(f"Job listing is not valid JSON: {error}") from error
        if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
            raise SourceUnavailableError(
                f"Job listing must be a JSON array of strings, got: {_body_excerpt(response)}",
            )
        return [item for item in payload if item]

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpJobSource:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class HttpIngestionSink:
    """Posts ingestion acknowledgements for finished sessions."""

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        success_status: int = 201,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._success_status = success_status
        self._client = client or build_http_client()

    def acknowledge(self, job_id: str) -> None:
        try:
            response = self._client.post(
                self._url,
                params={"api_key": self._api_key, "session_id": job_id},
                json={"session_id": job_id},
            )
        except httpx.HTTPError as error:
            raise AcknowledgeError(f"Failed to mark job as ingested: {error}") from error

        if response.status_code != self._success_status:
            raise AcknowledgeError(
                "Failed to mark job as ingested: "
                f"{response.status_code} - {response.reason_phrase}\n{_body_excerpt(response)}",
            )
        logger.debug("Acknowledged ingestion of %s", job_id)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpIngestionSink:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def _body_excerpt(response: httpx.Response) -> str:
    text = response.text.strip()
    if len(text) > _ERROR_BODY_MAX_CHARS:
        return text[:_ERROR_BODY_MAX_CHARS] + "..."
    return text
