import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from gradeflow.core import config
from gradeflow.core.errors import ArtifactMissing, StorageError
from gradeflow.storage.base import ArtifactStorage

logger = logging.getLogger(__name__)

_MISSING_CODES = ("404", "NoSuchKey", "NotFound")


def _get_s3_client() -> Any:
    return boto3.client(
        "s3",
        endpoint_url=config.S3_ENDPOINT,
        aws_access_key_id=config.S3_ACCESS_KEY,
        aws_secret_access_key=config.S3_SECRET_KEY,
        region_name=config.S3_REGION,
    )


def _error_code(e: ClientError) -> str:
    return str((e.response.get("Error") or {}).get("Code"))


class S3ArtifactStorage(ArtifactStorage):
    """S3-compatible bucket (AWS, R2, MinIO). boto3 calls run in a worker thread."""

    def __init__(self, bucket: str, client: Any = None, url_expires: int = config.S3_URL_EXPIRES_SECONDS):
        if not bucket:
            raise StorageError("S3_BUCKET is not set")
        self.bucket = bucket
        self.client = client or _get_s3_client()
        self.url_expires = url_expires

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload {path}: {e}") from e
        logger.info("Uploaded s3://%s/%s (%d bytes)", self.bucket, path, len(data))
        return path

    async def url_for(self, ref: str) -> str:
        try:
            return await asyncio.to_thread(
                self.client.generate_presigned_url,
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": ref},
                ExpiresIn=self.url_expires,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to presign {ref}: {e}") from e

    async def exists(self, ref: str) -> bool:
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=ref)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise StorageError(f"Failed to stat {ref}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to stat {ref}: {e}") from e
        return True

    async def delete(self, ref: str) -> None:
        # S3 DeleteObject succeeds for absent keys, so check first
        if not await self.exists(ref):
            raise ArtifactMissing(f"Artifact not found: s3://{self.bucket}/{ref}")
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=ref)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete {ref}: {e}") from e
        logger.info("Deleted s3://%s/%s", self.bucket, ref)
