"""Storage reference models."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class StoredObject(BaseModel):
    """Reference to an object written to an object store.

    Attributes:
        bucket: Bucket (or top-level folder for the local store)
        key: Object key inside the bucket
        location_url: Public/shareable location of the object
        content_hash: SHA256 hash of the stored body
        size_bytes: Size of the stored body
        stored_at: When the object was written
    """
    bucket: str = Field(..., description="Bucket name")
    key: str = Field(..., description="Object key")
    location_url: str = Field(..., description="Location of the stored object")
    content_hash: str = Field(default="", description="SHA256 hash of content")
    size_bytes: int = Field(default=0, description="Size in bytes")
    stored_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
