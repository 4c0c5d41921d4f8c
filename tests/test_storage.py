from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import ANY, Stubber

from gradeflow.core.errors import ArtifactMissing, StorageError
from gradeflow.storage.base import submission_artifact_path
from gradeflow.storage.local import LocalFileStorage
from gradeflow.storage.s3 import S3ArtifactStorage

pytestmark = pytest.mark.anyio

BUCKET = "gradeflow-test"


def test_artifact_path_layout():
    now = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)

    path = submission_artifact_path(7, "student-1", "essay.txt", now=now)

    assert path == f"submissions/7/student-1/{int(now.timestamp() * 1000)}_essay.txt"


def test_artifact_path_drops_directories_from_filename():
    path = submission_artifact_path(1, "s", "..\\..\\evil.txt")
    assert path.endswith("_evil.txt")
    assert ".." not in path


async def test_local_round_trip(tmp_path):
    storage = LocalFileStorage(tmp_path, public_url="https://files.example.com/")

    ref = await storage.upload("submissions/1/s/1_my essay.txt", b"hello", "text/plain")

    assert await storage.exists(ref)
    assert (tmp_path / ref).read_bytes() == b"hello"
    assert await storage.url_for(ref) == "https://files.example.com/submissions/1/s/1_my%20essay.txt"

    await storage.delete(ref)
    assert not await storage.exists(ref)


async def test_local_url_without_public_base_is_file_uri(tmp_path):
    storage = LocalFileStorage(tmp_path)
    ref = await storage.upload("a/b.txt", b"x", "text/plain")

    assert (await storage.url_for(ref)).startswith("file://")


async def test_local_delete_missing_raises(tmp_path):
    storage = LocalFileStorage(tmp_path)

    with pytest.raises(ArtifactMissing):
        await storage.delete("submissions/1/s/gone.txt")


async def test_local_rejects_paths_outside_root(tmp_path):
    storage = LocalFileStorage(tmp_path / "root")

    with pytest.raises(StorageError):
        await storage.upload("../outside.txt", b"x", "text/plain")


@pytest.fixture()
def s3():
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )
    with Stubber(client) as stubber:
        yield S3ArtifactStorage(bucket=BUCKET, client=client), stubber
        stubber.assert_no_pending_responses()


async def test_s3_upload(s3):
    storage, stubber = s3
    stubber.add_response(
        "put_object",
        {},
        {"Bucket": BUCKET, "Key": "submissions/1/s/1_a.txt", "Body": ANY, "ContentType": "text/plain"},
    )

    assert await storage.upload("submissions/1/s/1_a.txt", b"data", "text/plain") == "submissions/1/s/1_a.txt"


async def test_s3_upload_failure_is_storage_error(s3):
    storage, stubber = s3
    stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)

    with pytest.raises(StorageError):
        await storage.upload("k.txt", b"data", "text/plain")


async def test_s3_presigned_url(s3):
    storage, _ = s3

    url = await storage.url_for("submissions/1/s/1_a.txt")

    assert BUCKET in url
    assert "submissions/1/s/1_a.txt" in url


async def test_s3_delete_existing(s3):
    storage, stubber = s3
    stubber.add_response("head_object", {}, {"Bucket": BUCKET, "Key": "k.txt"})
    stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "k.txt"})

    await storage.delete("k.txt")


async def test_s3_delete_missing_raises(s3):
    storage, stubber = s3
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

    with pytest.raises(ArtifactMissing):
        await storage.delete("gone.txt")


async def test_s3_exists_propagates_other_errors(s3):
    storage, stubber = s3
    stubber.add_client_error("head_object", service_error_code="403", http_status_code=403)

    with pytest.raises(StorageError):
        await storage.exists("k.txt")


def test_s3_requires_bucket():
    with pytest.raises(StorageError):
        S3ArtifactStorage(bucket="", client=object())
