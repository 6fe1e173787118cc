"""Request and unit-of-work session helpers.

``get_db`` hands a session to route handlers; ``db_transaction`` wraps a
coroutine so the session it receives is committed when it returns and
rolled back when it raises.
"""

import inspect
import logging
from functools import wraps
from typing import AsyncGenerator, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.db.base import get_session

logger = logging.getLogger(__name__)

R = TypeVar("R")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request.

    Example:
        ```python
        @router.get("/{code}")
        async def resolve(code: str, db: AsyncSession = Depends(get_db)):
            ...
        ```
    """
    async with get_session() as session:
        try:
            yield session
        except SQLAlchemyError:
            logger.exception("Database error while handling request")
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise


def _session_locator(func: Callable, db_param_name: Optional[str]):
    """Return (position, name) of the session parameter of ``func``."""
    for position, (name, param) in enumerate(inspect.signature(func).parameters.items()):
        if name == db_param_name or (db_param_name is None and param.annotation is AsyncSession):
            return position, name

    logger.warning(f"No session parameter found on '{func.__name__}'")
    return None, None


def db_transaction(db_param_name: Optional[str] = None) -> Callable:
    """Commit the wrapped coroutine's session on success, roll it back on error.

    Args:
        db_param_name: Name of the session parameter. When omitted the
            parameter annotated as AsyncSession is used.

    Raises:
        ValueError: If no session is passed at call time
    """
    def decorator(func: Callable[..., R]) -> Callable[..., R]:
        position, name = _session_locator(func, db_param_name)

        @wraps(func)
        async def wrapper(*args, **kwargs):
            if name is not None and name in kwargs:
                db = kwargs[name]
            elif position is not None and position < len(args):
                db = args[position]
            else:
                db = next((v for v in (*args, *kwargs.values()) if isinstance(v, AsyncSession)), None)

            if db is None:
                raise ValueError(f"'{func.__name__}' was called without a database session")

            try:
                result = await func(*args, **kwargs)
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.error(f"Rolled back transaction in '{func.__name__}': {e}")
                raise
            return result

        return wrapper
    return decorator
