"""Core storage - object store abstraction and backends."""

from core.storage.artifacts import ObjectStore, LocalObjectStore
from core.storage.s3 import S3ObjectStore

__all__ = [
    "ObjectStore",
    "LocalObjectStore",
    "S3ObjectStore",
]
