"""Uniform read access to template and asset content.

Template HTML lives either inline on the template row or in an asset
file. Asset bytes live either in the database or in the object store.
Every miss, whatever its cause, is reported as None so callers can fall
back to a built-in response.
"""

import logging
import mimetypes
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.models.template import AssetStorageType, TemplateAsset
from linkgate.repositories.base import RepositoryError
from linkgate.repositories.template_repository import AssetRepository, TemplateRepository
from linkgate.services.exceptions import StorageUnavailableError
from linkgate.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class AssetContent:
    data: bytes
    content_type: str


@dataclass(frozen=True)
class DatabaseBlob:
    """Asset bytes stored in the asset row."""
    content: Optional[bytes]

    async def read(self, object_store: Optional[ObjectStore]) -> Optional[bytes]:
        return self.content


@dataclass(frozen=True)
class ObjectStoreBlob:
    """Asset bytes stored under a key in the object store."""
    key: Optional[str]

    async def read(self, object_store: Optional[ObjectStore]) -> Optional[bytes]:
        if not self.key:
            return None
        if object_store is None:
            raise StorageUnavailableError("Object store is not configured")
        return await object_store.get(self.key)


AssetSource = Union[DatabaseBlob, ObjectStoreBlob]


def asset_source(asset: TemplateAsset) -> Optional[AssetSource]:
    """Map an asset's storage tag to where its bytes are read from."""
    if asset.storage_type == AssetStorageType.DATABASE:
        return DatabaseBlob(asset.content)
    if asset.storage_type == AssetStorageType.OBJECT_STORE:
        return ObjectStoreBlob(asset.object_key)
    return None


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


class ContentStore:
    """Reads template and asset content from the database or the object store."""

    def __init__(
        self,
        template_repository: TemplateRepository,
        asset_repository: AssetRepository,
        object_store: Optional[ObjectStore] = None,
    ):
        self.template_repository = template_repository
        self.asset_repository = asset_repository
        self.object_store = object_store

    async def get_inline(self, db: AsyncSession, template_id: int) -> Optional[str]:
        """Return the inline HTML of an active template, or None."""
        try:
            template = await self.template_repository.get_active(db, template_id)
        except RepositoryError as e:
            logger.error(f"Error loading template {template_id}: {e}")
            return None
        if template is None:
            return None
        return template.html_content or None

    async def get_asset(
        self,
        db: AsyncSession,
        asset_prefix: str,
        filename: str,
        public_only: bool = False,
    ) -> Optional[AssetContent]:
        """
        Return an asset's bytes and content type, or None.

        Args:
            db: Database session
            asset_prefix: Asset prefix of the owning template
            filename: File name within the prefix
            public_only: Only serve assets flagged as public

        Returns:
            AssetContent if the asset exists and its bytes could be read
        """
        try:
            asset = await self.asset_repository.get_by_path(db, asset_prefix, filename, public_only=public_only)
        except RepositoryError as e:
            logger.error(f"Error loading asset {asset_prefix}/{filename}: {e}")
            return None
        if asset is None:
            return None

        source = asset_source(asset)
        if source is None:
            logger.warning(f"Asset {asset_prefix}/{filename} has unknown storage type {asset.storage_type}")
            return None

        try:
            data = await source.read(self.object_store)
        except StorageUnavailableError as e:
            logger.error(f"Storage unavailable for asset {asset_prefix}/{filename}: {e}")
            return None
        if data is None:
            return None

        return AssetContent(
            data=bytes(data),
            content_type=asset.content_type or guess_content_type(filename),
        )
