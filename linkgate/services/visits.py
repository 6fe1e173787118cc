"""Visit recording for the link redirector.

Every resolved request appends one visit event; allowed requests also
bump the link's click counter. Both writes happen after the response has
been sent, each in its own transaction, and any failure is logged and
dropped so it can never change a response that was already decided.
"""

from typing import Callable, Optional, Protocol

from fastapi import BackgroundTasks
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.core.visit_logger import log_visit
from linkgate.db.base import get_session
from linkgate.db.session import db_transaction
from linkgate.models.visit import VisitEventCreate
from linkgate.repositories.link_repository import LinkRepository
from linkgate.repositories.visit_repository import VisitRepository
from linkgate.services.client import VisitRequest, parse_user_agent


def _clip(value: Optional[str], limit: int) -> Optional[str]:
    return value[:limit] if value else value


def build_visit_event(
    visit: VisitRequest,
    now: int,
    http_status: int,
    block_reason: Optional[str] = None,
    link_id: Optional[int] = None,
    domain_id: Optional[int] = None,
) -> VisitEventCreate:
    """Assemble the audit record for one request."""
    client = parse_user_agent(visit.user_agent)
    return VisitEventCreate(
        short_link_id=link_id,
        domain_id=domain_id,
        code=_clip(visit.code, 64),
        visited_at=now,
        ip=_clip(visit.ip, 45),
        ua=_clip(visit.user_agent, 1024),
        referer=_clip(visit.referer, 2048),
        country=_clip(visit.country, 64),
        region=_clip(visit.region, 128),
        city=_clip(visit.city, 128),
        device_type=client.device_type,
        os=client.os,
        browser=client.browser,
        is_blocked=block_reason is not None,
        block_reason=block_reason,
        http_status=http_status,
    )


class VisitDispatcher(Protocol):
    """Schedules a visit to be recorded without waiting for it."""

    def dispatch(self, event: VisitEventCreate, count_click: bool = False) -> None:
        ...


class VisitRecorder:
    """
    Writes visit events and click counts.

    Args:
        visit_repository: Repository for the visit event log
        link_repository: Repository used for the click counter update
        session_factory: Async context manager factory yielding sessions
    """

    def __init__(
        self,
        visit_repository: VisitRepository,
        link_repository: LinkRepository,
        session_factory: Callable = get_session,
    ):
        self.visit_repository = visit_repository
        self.link_repository = link_repository
        self.session_factory = session_factory

    async def record(self, event: VisitEventCreate, count_click: bool = False) -> None:
        """Append the visit event and, for allowed visits, count the click."""
        try:
            async with self.session_factory() as db:
                await self._append_event(db, event)
        except Exception as e:
            logger.error("Error recording visit event", code=event.code, error=str(e))

        if count_click and event.short_link_id is not None:
            try:
                async with self.session_factory() as db:
                    await self._count_click(db, event.short_link_id, event.visited_at)
            except Exception as e:
                logger.error("Error counting click", link_id=event.short_link_id, error=str(e))

        log_visit(
            code=event.code,
            domain_id=event.domain_id,
            ip_address=event.ip,
            http_status=event.http_status,
            block_reason=event.block_reason,
            user_agent=event.ua,
        )

    @db_transaction(db_param_name="db")
    async def _append_event(self, db: AsyncSession, event: VisitEventCreate) -> None:
        await self.visit_repository.create_visit_event(db, event)

    @db_transaction(db_param_name="db")
    async def _count_click(self, db: AsyncSession, link_id: int, accessed_at: int) -> None:
        await self.link_repository.increment_click_count(db, link_id, accessed_at)


class BackgroundVisitDispatcher:
    """Dispatches visits onto FastAPI background tasks, run after the response is sent."""

    def __init__(self, background_tasks: BackgroundTasks, recorder: VisitRecorder):
        self.background_tasks = background_tasks
        self.recorder = recorder

    def dispatch(self, event: VisitEventCreate, count_click: bool = False) -> None:
        self.background_tasks.add_task(self.recorder.record, event, count_click)
