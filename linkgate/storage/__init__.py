"""Content storage for templates and their assets."""

from linkgate.storage.content_store import (
    AssetContent,
    ContentStore,
    DatabaseBlob,
    ObjectStoreBlob,
    asset_source,
)
from linkgate.storage.object_store import ObjectStore, S3ObjectStore, build_object_store

__all__ = [
    "AssetContent",
    "ContentStore",
    "DatabaseBlob",
    "ObjectStore",
    "ObjectStoreBlob",
    "S3ObjectStore",
    "asset_source",
    "build_object_store",
]
