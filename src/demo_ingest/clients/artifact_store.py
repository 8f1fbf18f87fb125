"""S3-compatible object store adapter for raw demos and analysis results."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from demo_ingest.orchestrator.errors import FetchError, UploadError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def build_s3_client(
    *,
    endpoint_url: str,
    access_key: str,
    secret_key: str,
    region: str = "us-east-1",
) -> Any:
    """Create an S3 client for the given endpoint."""

    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=region,
        config=Config(
            signature_version="s3v4",
            retries={"max_attempts": 3},
        ),
    )


class S3ArtifactStore:
    """Fetches ``<id><ext>`` from the raw bucket and stores ``<id>.json`` in the results bucket."""

    def __init__(
        self,
        *,
        client: Any,
        raw_bucket: str,
        results_bucket: str,
        raw_extension: str = ".dem",
    ) -> None:
        self._client = client
        self.raw_bucket = raw_bucket
        self.results_bucket = results_bucket
        self.raw_extension = raw_extension

    def raw_key(self, job_id: str) -> str:
        return f"{job_id}{self.raw_extension}"

    def result_key(self, job_id: str) -> str:
        return f"{job_id}.json"

    def fetch(self, job_id: str, destination: Path) -> None:
        key = self.raw_key(job_id)
        try:
            response = self._client.get_object(Bucket=self.raw_bucket, Key=key)
            body = response["Body"]
            try:
                with destination.open("wb") as handle:
                    for chunk in body.iter_chunks(chunk_size=_CHUNK_SIZE):
                        handle.write(chunk)
            finally:
                body.close()
        except ClientError as error:
            raise FetchError(
                f"Failed to fetch s3://{self.raw_bucket}/{key}: {_client_error_text(error)}",
            ) from error
        except (BotoCoreError, OSError) as error:
            raise FetchError(f"Failed to fetch s3://{self.raw_bucket}/{key}: {error}") from error
        logger.debug("Fetched s3://%s/%s to %s", self.raw_bucket, key, destination)

    def put_result(self, job_id: str, source: Path) -> None:
        key = self.result_key(job_id)
        try:
            data = source.read_bytes()
            self._client.put_object(
                Bucket=self.results_bucket,
                Key=key,
                Body=data,
                ContentLength=len(data),
                ContentType="application/json",
            )
        except ClientError as error:
            raise UploadError(
                f"Failed to upload s3://{self.results_bucket}/{key}: {_client_error_text(error)}",
            ) from error
        except (BotoCoreError, OSError) as error:
            raise UploadError(
                f"Failed to upload s3://{self.results_bucket}/{key}: {error}",
            ) from error
        logger.debug("Uploaded %s to s3://%s/%s", source, self.results_bucket, key)


def _client_error_text(error: ClientError) -> str:
    details = error.response.get("Error", {})
    code = details.get("Code", "")
    if code in {"NoSuchKey", "404", "NotFound"}:
        return f"not found ({code})"
    message = details.get("Message") or str(error)
    return f"{code}: {message}" if code else message
