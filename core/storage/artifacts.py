"""Object storage abstraction for AFD feeds and ERP execution logs.

Every store exposes the same ``put(bucket, key, body, content_type, overwrite)``
contract and returns a :class:`StoredObject` describing where the body landed.
"""

import asyncio
import hashlib
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Union

from core.models.refs import StoredObject


def _compute_sha256(data: bytes) -> str:
    """Compute SHA256 hash of bytes."""
    return hashlib.sha256(data).hexdigest()


def _as_bytes(body: Union[bytes, str]) -> bytes:
    if isinstance(body, str):
        return body.encode("utf-8")
    return body


class ObjectStore(ABC):
    """Write-by-key object storage."""

    @abstractmethod
    async def put(
        self,
        bucket: str,
        key: str,
        body: Union[bytes, str],
        content_type: str = "application/octet-stream",
        overwrite: bool = True,
    ) -> StoredObject:
        """Store ``body`` under ``bucket/key``.

        Args:
            bucket: Target bucket
            key: Object key (may contain "/" separators)
            body: Content to store; text is encoded as UTF-8
            content_type: MIME type recorded with the object
            overwrite: When False and the key already exists, the existing
                object is kept and its reference returned

        Returns:
            StoredObject with the object's location
        """

    @abstractmethod
    async def get(self, bucket: str, key: str) -> bytes:
        """Read an object back.

        Raises:
            FileNotFoundError: If nothing is stored under the key
        """


class LocalObjectStore(ObjectStore):
    """Filesystem-backed store: buckets are folders under ``base_path``."""

    def __init__(self, base_path: Union[str, Path]):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def resolve_path(self, bucket: str, key: str) -> Path:
        """Resolve a bucket/key pair to an absolute path."""
        return self.base_path / bucket / key

    async def put(
        self,
        bucket: str,
        key: str,
        body: Union[bytes, str],
        content_type: str = "application/octet-stream",
        overwrite: bool = True,
    ) -> StoredObject:
        return await asyncio.to_thread(self._put_sync, bucket, key, _as_bytes(body), overwrite)

    def _put_sync(self, bucket: str, key: str, data: bytes, overwrite: bool) -> StoredObject:
        path = self.resolve_path(bucket, key)

        if not overwrite and path.exists():
            existing = path.read_bytes()
            return StoredObject(
                bucket=bucket,
                key=key,
                location_url=path.absolute().as_uri(),
                content_hash=_compute_sha256(existing),
                size_bytes=len(existing),
                stored_at=datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc),
            )

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

        return StoredObject(
            bucket=bucket,
            key=key,
            location_url=path.absolute().as_uri(),
            content_hash=_compute_sha256(data),
            size_bytes=len(data),
        )

    async def get(self, bucket: str, key: str) -> bytes:
        path = self.resolve_path(bucket, key)
        if not path.exists():
            raise FileNotFoundError(f"Object not found: {bucket}/{key}")
        return path.read_bytes()
