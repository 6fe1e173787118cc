"""Shared repository plumbing.

Every repository here is bound to one SQLModel table and reports
database failures as RepositoryError, so the service layer never has
to know about SQLAlchemy exception types.
"""

import logging
from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

ModelT = TypeVar("ModelT", bound=SQLModel)
CreateT = TypeVar("CreateT", bound=BaseModel)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """A lookup or write failed at the database level."""
    pass


class BaseRepository(Generic[ModelT, CreateT]):
    """
    Lookups and appends common to all tables.

    Type parameters:
        ModelT: Table model handled by the repository
        CreateT: Schema accepted by ``create``
    """

    def __init__(self, model_type: Type[ModelT]):
        self.model_type = model_type

    @property
    def entity_name(self) -> str:
        return self.model_type.__name__

    async def get_by_id(self, db: AsyncSession, id: Any) -> Optional[ModelT]:
        """
        Fetch a row by primary key.

        Raises:
            RepositoryError: On database errors
        """
        try:
            return await db.get(self.model_type, id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load {self.entity_name} #{id}: {e}")
            raise RepositoryError(f"Could not load {self.entity_name} #{id}: {e}") from e

    async def get_one_by(self, db: AsyncSession, **filters) -> Optional[ModelT]:
        """
        Fetch the first row whose columns equal the given values.

        Args:
            db: Database session
            **filters: Column name to expected value

        Returns:
            The matching row, or None
        """
        if not filters:
            raise ValueError("get_one_by needs at least one filter")

        clauses = [getattr(self.model_type, column) == value for column, value in filters.items()]
        try:
            result = await db.execute(select(self.model_type).where(*clauses).limit(1))
        except SQLAlchemyError as e:
            logger.error(f"Failed to look up {self.entity_name} by {filters}: {e}")
            raise RepositoryError(f"Could not look up {self.entity_name}: {e}") from e
        return result.scalars().first()

    async def create(self, db: AsyncSession, data: Union[CreateT, Dict[str, Any]]) -> ModelT:
        """
        Insert a row and flush it so its id is populated.

        The caller owns the transaction and decides when to commit.

        Raises:
            RepositoryError: On database errors
        """
        values = data.model_dump(exclude_unset=True) if isinstance(data, BaseModel) else dict(data)
        entity = self.model_type(**values)
        try:
            db.add(entity)
            await db.flush()
            await db.refresh(entity)
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert {self.entity_name}: {e}")
            raise RepositoryError(f"Could not insert {self.entity_name}: {e}") from e
        return entity
