"""S3-compatible object store (AWS, Vultr, MinIO...)."""

import asyncio
from typing import Optional, Union
from urllib.parse import quote

import boto3
from botocore.exceptions import ClientError

from core.models.refs import StoredObject
from core.observability.logging import get_logger
from core.storage.artifacts import ObjectStore, _as_bytes, _compute_sha256

logger = get_logger(__name__)


class S3ObjectStore(ObjectStore):
    """Uploads objects as public-read, inline-disposition files.

    boto3 is synchronous, so calls run in a worker thread.
    """

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region_name: Optional[str] = None,
        client=None,
    ):
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self.region_name = region_name or "us-east-1"
        self.s3_client = client or boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=self.region_name,
        )

    def location_url(self, bucket: str, key: str) -> str:
        quoted = quote(key)
        if self.endpoint_url:
            return f"{self.endpoint_url}/{bucket}/{quoted}"
        return f"https://{bucket}.s3.amazonaws.com/{quoted}"

    async def put(
        self,
        bucket: str,
        key: str,
        body: Union[bytes, str],
        content_type: str = "application/octet-stream",
        overwrite: bool = True,
    ) -> StoredObject:
        return await asyncio.to_thread(
            self._put_sync, bucket, key, _as_bytes(body), content_type, overwrite
        )

    def _exists(self, bucket: str, key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise

    def _put_sync(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        overwrite: bool,
    ) -> StoredObject:
        if not overwrite and self._exists(bucket, key):
            logger.info(f"Object already present, keeping it: {bucket}/{key}")
            return StoredObject(
                bucket=bucket,
                key=key,
                location_url=self.location_url(bucket, key),
            )

        logger.info(f"Uploading to S3: bucket={bucket}, key={key}")
        self.s3_client.put_object(
            Bucket=bucket,
            Key=key,
            Body=data,
            ACL="public-read",
            ContentType=content_type,
            ContentDisposition="inline",
        )

        return StoredObject(
            bucket=bucket,
            key=key,
            location_url=self.location_url(bucket, key),
            content_hash=_compute_sha256(data),
            size_bytes=len(data),
        )

    async def get(self, bucket: str, key: str) -> bytes:
        return await asyncio.to_thread(self._get_sync, bucket, key)

    def _get_sync(self, bucket: str, key: str) -> bytes:
        try:
            response = self.s3_client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("404", "NoSuchKey", "NotFound"):
                raise FileNotFoundError(f"Object not found: {bucket}/{key}") from e
            raise
        return response["Body"].read()
