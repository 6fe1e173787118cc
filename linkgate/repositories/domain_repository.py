"""Domain Repository for the link redirector."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.models.domain import Domain, DomainBase
from linkgate.repositories.base import BaseRepository


class DomainRepository(BaseRepository[Domain, DomainBase]):
    """Repository for Domain model database operations."""

    def __init__(self):
        super().__init__(Domain)

    async def get_active_by_host(self, db: AsyncSession, host: str) -> Optional[Domain]:
        """
        Find an active domain by host name.

        Used when no link matched, to pick the domain-level error template.

        Raises:
            RepositoryError: On database errors
        """
        return await self.get_one_by(db, host=host, is_active=True)
