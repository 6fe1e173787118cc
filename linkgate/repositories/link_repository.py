"""Link Repository for the link redirector.

This module provides the LinkRepository class for database operations related to
ShortLink models, including the joined link and domain lookup used for redirects.
"""

from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import and_

from linkgate.models.domain import Domain
from linkgate.models.link import ShortLink, ShortLinkBase
from linkgate.repositories.base import BaseRepository, RepositoryError


class LinkRepository(BaseRepository[ShortLink, ShortLinkBase]):
    """
    Repository for ShortLink model database operations.

    Reads are side-effect free; the only write is the click counter update.
    """

    def __init__(self):
        """Initialize the repository with the ShortLink model type."""
        super().__init__(ShortLink)

    async def get_for_redirect(
        self,
        db: AsyncSession,
        host: str,
        code: str
    ) -> Optional[Tuple[ShortLink, Domain]]:
        """
        Find a live link by host and code, joined to its active domain.

        A link is live when it is neither soft-deleted nor disabled.

        Args:
            db: Database session
            host: Host name from the request
            code: Short code from the request path

        Returns:
            The (ShortLink, Domain) pair if found, None otherwise

        Raises:
            RepositoryError: On database errors
        """
        try:
            query = (
                select(ShortLink, Domain)
                .join(Domain, ShortLink.domain_id == Domain.id)
                .where(
                    and_(
                        ShortLink.code == code,
                        Domain.host == host,
                        ShortLink.deleted_at.is_(None),
                        ShortLink.is_disabled == False,  # noqa: E712
                        Domain.is_active == True,  # noqa: E712
                    )
                )
                .limit(1)
            )
            result = await db.execute(query)
            row = result.first()
            if row is None:
                return None
            return row[0], row[1]
        except Exception as e:
            raise RepositoryError(f"Error retrieving link for redirect: {e}") from e

    async def increment_click_count(self, db: AsyncSession, link_id: int, accessed_at: int) -> int:
        """
        Increment the click counter and stamp the last access time.

        Uses a single UPDATE so concurrent increments are never lost.

        Args:
            db: Database session
            link_id: The ID of the ShortLink to update
            accessed_at: Access time in epoch seconds

        Returns:
            Number of rows updated

        Raises:
            RepositoryError: On database errors
        """
        try:
            stmt = (
                update(ShortLink)
                .where(ShortLink.id == link_id)
                .values(
                    total_clicks=ShortLink.total_clicks + 1,
                    last_access_at=accessed_at,
                )
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(stmt)
            return result.rowcount
        except Exception as e:
            raise RepositoryError(f"Error incrementing click count: {e}") from e
