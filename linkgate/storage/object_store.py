"""Object store access for template assets.

Assets too large for the database live in an S3 compatible bucket
such as Cloudflare R2. Only reads are needed here.
boto3 is synchronous, so calls are pushed to a worker thread.
"""

import asyncio
import logging
from typing import Optional, Protocol

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from linkgate.core.config import Settings
from linkgate.services.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

# Error codes S3 compatible stores use for a missing key
MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


class ObjectStore(Protocol):
    """Keyed blob store."""

    async def get(self, key: str) -> Optional[bytes]:
        """Return the object's bytes, or None when the key does not exist.

        Raises:
            StorageUnavailableError: When the store cannot be reached
        """
        ...


class S3ObjectStore:
    """ObjectStore backed by a boto3 S3 client."""

    def __init__(self, bucket: str, client=None, **client_options):
        self.bucket = bucket
        self._client = client
        self._client_options = client_options

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                config=BotoConfig(signature_version="s3v4"),
                **self._client_options,
            )
        return self._client

    def _get_sync(self, key: str) -> Optional[bytes]:
        try:
            client = self.client
        except ValueError as e:
            # botocore rejects a malformed endpoint URL with a plain ValueError
            raise StorageUnavailableError(f"Object store client could not be created: {e}") from e

        try:
            response = client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_KEY_CODES:
                return None
            raise
        return response["Body"].read()

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except (BotoCoreError, ClientError) as e:
            raise StorageUnavailableError(f"Object store read failed for key '{key}': {e}") from e


def build_object_store(settings: Settings) -> Optional[ObjectStore]:
    """Create the configured object store, or None when no bucket is set."""
    if not settings.OBJECT_STORE_BUCKET:
        logger.info("Object store not configured; object-store assets will be unavailable")
        return None

    client_options = {"region_name": settings.OBJECT_STORE_REGION}
    if settings.OBJECT_STORE_ENDPOINT_URL:
        client_options["endpoint_url"] = settings.OBJECT_STORE_ENDPOINT_URL
    if settings.OBJECT_STORE_ACCESS_KEY_ID and settings.OBJECT_STORE_SECRET_ACCESS_KEY:
        client_options["aws_access_key_id"] = settings.OBJECT_STORE_ACCESS_KEY_ID
        client_options["aws_secret_access_key"] = settings.OBJECT_STORE_SECRET_ACCESS_KEY

    return S3ObjectStore(settings.OBJECT_STORE_BUCKET, **client_options)
