from __future__ import annotations

import io
from pathlib import Path

import allure
import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from demo_ingest.clients.artifact_store import S3ArtifactStore
from demo_ingest.orchestrator.errors import FetchError, UploadError

pytestmark = [
    allure.epic("Session Worker"),
    allure.feature("Artifact Store"),
]


@pytest.fixture()
def s3_client():
    return boto3.client(
        "s3",
        endpoint_url="http://minio.local:9000",
        aws_access_key_id="access",
        aws_secret_access_key="secret",
        region_name="us-east-1",
    )


@pytest.fixture()
def store(s3_client) -> S3ArtifactStore:
    return S3ArtifactStore(client=s3_client, raw_bucket="demoblobs", results_bucket="jsonblobs")


def test_fetch_streams_raw_object_to_destination(s3_client, store, tmp_path: Path) -> None:
    payload = b"\x01\x02demo"
    destination = tmp_path / "s1.dem"
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(payload), len(payload))},
            {"Bucket": "demoblobs", "Key": "s1.dem"},
        )
        store.fetch("s1", destination)
        stubber.assert_no_pending_responses()

    assert destination.read_bytes() == payload


def test_fetch_missing_object_reports_not_found(s3_client, store, tmp_path: Path) -> None:
    with Stubber(s3_client) as stubber:
        stubber.add_client_error(
            "get_object",
            service_error_code="NoSuchKey",
            service_message="The specified key does not exist.",
            http_status_code=404,
        )
        with pytest.raises(FetchError, match="not found"):
            store.fetch("s2", tmp_path / "s2.dem")


def test_put_result_uploads_json_with_content_length(s3_client, store, tmp_path: Path) -> None:
    source = tmp_path / "s1.json"
    source.write_text('{"ok":true}', "utf-8")
    with Stubber(s3_client) as stubber:
        stubber.add_response(
            "put_object",
            {},
            {
                "Bucket": "jsonblobs",
                "Key": "s1.json",
                "Body": ANY,
                "ContentLength": 11,
                "ContentType": "application/json",
            },
        )
        store.put_result("s1", source)
        stubber.assert_no_pending_responses()


def test_put_result_service_error_is_upload_failure(s3_client, store, tmp_path: Path) -> None:
    source = tmp_path / "s1.json"
    source.write_text("{}", "utf-8")
    with Stubber(s3_client) as stubber:
        stubber.add_client_error(
            "put_object",
            service_error_code="AccessDenied",
            service_message="Access Denied",
            http_status_code=403,
        )
        with pytest.raises(UploadError, match="AccessDenied"):
            store.put_result("s1", source)


def test_put_result_missing_local_file_is_upload_failure(store, tmp_path: Path) -> None:
    with pytest.raises(UploadError):
        store.put_result("s1", tmp_path / "missing.json")


def test_keys_match_between_fetch_and_upload(store) -> None:
    assert store.raw_key("abc") == "abc.dem"
    assert store.result_key("abc") == "abc.json"
