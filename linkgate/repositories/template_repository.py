"""Template and asset repositories for the link redirector.

These repositories are read-only: templates and assets are managed
elsewhere and only looked up here while rendering pages.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import and_

from linkgate.models.template import RedirectTemplate, TemplateAsset
from linkgate.repositories.base import BaseRepository, RepositoryError


class TemplateRepository(BaseRepository[RedirectTemplate, RedirectTemplate]):
    """Repository for RedirectTemplate model database operations."""

    def __init__(self):
        super().__init__(RedirectTemplate)

    async def get_active(self, db: AsyncSession, template_id: int) -> Optional[RedirectTemplate]:
        """
        Get a template by ID, only if it is active.

        Args:
            db: Database session
            template_id: Template ID

        Returns:
            The active template if found, None otherwise
        """
        template = await self.get_by_id(db, template_id)
        if template is None or not template.is_active:
            return None
        return template


class AssetRepository(BaseRepository[TemplateAsset, TemplateAsset]):
    """Repository for TemplateAsset model database operations."""

    def __init__(self):
        super().__init__(TemplateAsset)

    async def get_by_path(
        self,
        db: AsyncSession,
        asset_prefix: str,
        filename: str,
        public_only: bool = False
    ) -> Optional[TemplateAsset]:
        """
        Find an asset by its prefix and filename.

        Args:
            db: Database session
            asset_prefix: Asset prefix of the owning template
            filename: File name within the prefix (may contain slashes)
            public_only: Only match assets flagged as public

        Returns:
            The TemplateAsset if found, None otherwise

        Raises:
            RepositoryError: On database errors
        """
        try:
            conditions = [
                TemplateAsset.asset_prefix == asset_prefix,
                TemplateAsset.filename == filename,
            ]
            if public_only:
                conditions.append(TemplateAsset.is_public == True)  # noqa: E712

            result = await db.execute(select(TemplateAsset).where(and_(*conditions)))
            return result.scalar_one_or_none()
        except Exception as e:
            raise RepositoryError(f"Error retrieving asset {asset_prefix}/{filename}: {e}") from e
