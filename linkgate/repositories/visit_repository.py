"""Visit Repository for the append-only visit event log."""

from typing import Any, Dict, Union

from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.models.visit import VisitEvent, VisitEventCreate
from linkgate.repositories.base import BaseRepository


class VisitRepository(BaseRepository[VisitEvent, VisitEventCreate]):
    """
    Repository for VisitEvent model database operations.

    Events are only ever appended; there are no update or delete operations.
    """

    def __init__(self):
        super().__init__(VisitEvent)

    async def create_visit_event(
        self,
        db: AsyncSession,
        data: Union[VisitEventCreate, Dict[str, Any]]
    ) -> VisitEvent:
        """
        Record a new visit event.

        Called from a background task after the response has been sent.

        Raises:
            RepositoryError: On database errors
        """
        return await self.create(db, data)
