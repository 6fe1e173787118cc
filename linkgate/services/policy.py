"""Policy evaluation for short link requests.

Each request walks a fixed sequence of checks:

    found -> expiry -> visit limit -> password -> interstitial -> allow

Any check may stop the walk by raising a ResolutionError. The evaluator
turns that error into a Disposition (status code plus body) and hands
exactly one visit record to the dispatcher, whatever the outcome.
"""

import hmac
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.models.domain import Domain
from linkgate.models.link import ShortLink
from linkgate.repositories.base import RepositoryError
from linkgate.repositories.domain_repository import DomainRepository
from linkgate.repositories.link_repository import LinkRepository
from linkgate.services.client import VisitRequest
from linkgate.services.exceptions import (
    BlockReason,
    InterstitialRequiredError,
    LinkExpiredError,
    LinkLookupFailedError,
    LinkNotFoundError,
    PasswordIncorrectError,
    PasswordRequiredError,
    ResolutionError,
    VisitLimitReachedError,
)
from linkgate.services.templates import TemplateResolver, TemplateRole
from linkgate.services.tickets import (
    DEFAULT_TICKET_MAX_AGE,
    issue_ticket,
    ticket_within_window,
    verify_signature,
)
from linkgate.services.visits import VisitDispatcher, build_visit_event

logger = logging.getLogger(__name__)


def _epoch_now() -> int:
    return int(time.time())


@dataclass(frozen=True)
class Disposition:
    """Terminal outcome of a request: a redirect, or a blocked response with its body."""

    status_code: int
    reason: Optional[BlockReason] = None
    location: Optional[str] = None
    html: Optional[str] = None
    text: Optional[str] = None
    payload: Optional[Dict[str, str]] = field(default=None)

    @property
    def allowed(self) -> bool:
        return self.reason is None


class PolicyEvaluator:
    """
    Classifies a request for a short link into a terminal disposition.

    Args:
        link_repository: Looks up the link and its domain
        domain_repository: Looks up the domain by host when no link matched
        template_resolver: Renders error, password and interstitial pages
        dispatcher: Receives one visit record per request
        secret: Key used to sign interstitial tickets
        ticket_max_age: Upper bound on ticket age in seconds
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        link_repository: LinkRepository,
        domain_repository: DomainRepository,
        template_resolver: TemplateResolver,
        dispatcher: VisitDispatcher,
        secret: str,
        ticket_max_age: int = DEFAULT_TICKET_MAX_AGE,
        clock: Callable[[], int] = _epoch_now,
    ):
        self.link_repository = link_repository
        self.domain_repository = domain_repository
        self.templates = template_resolver
        self.dispatcher = dispatcher
        self.secret = secret
        self.ticket_max_age = ticket_max_age
        self.clock = clock

    async def evaluate(self, db: AsyncSession, visit: VisitRequest) -> Disposition:
        """
        Resolve one request.

        Args:
            db: Database session
            visit: Host, code, query parameters and client context

        Returns:
            Disposition: What to send back to the client
        """
        now = self.clock()

        try:
            match = await self.link_repository.get_for_redirect(db, visit.host, visit.code)
        except RepositoryError as e:
            logger.error(f"Error looking up link {visit.host}/{visit.code}: {e}")
            exc = LinkLookupFailedError()
            disposition = Disposition(status_code=exc.status_code, reason=exc.reason, text=exc.message)
            self._dispatch(visit, now, disposition, None, None)
            return disposition

        if match is None:
            domain = await self._domain_for_host(db, visit.host)
            disposition = await self._error_page(db, LinkNotFoundError(), None, domain, visit.code)
            self._dispatch(visit, now, disposition, None, domain)
            return disposition

        link, domain = match
        try:
            self._check_expiry(link, now)
            self._check_visit_limit(link)
            self._check_password(link, visit)
            await self._check_interstitial(db, link, domain, visit, now)
            disposition = self._allow(link)
        except (LinkExpiredError, VisitLimitReachedError) as exc:
            disposition = await self._error_page(db, exc, link, domain, link.code)
        except (PasswordRequiredError, PasswordIncorrectError) as exc:
            disposition = await self._password_page(db, exc, link, domain)
        except InterstitialRequiredError as exc:
            disposition = await self._interstitial_page(db, exc, link, visit, now)

        self._dispatch(visit, now, disposition, link, domain)
        return disposition

    # Checks

    def _check_expiry(self, link: ShortLink, now: int) -> None:
        if link.is_expired(now):
            raise LinkExpiredError()

    def _check_visit_limit(self, link: ShortLink) -> None:
        # Reads the counter before this visit's increment lands; the quota is best-effort
        if link.visit_limit_reached():
            raise VisitLimitReachedError()

    def _check_password(self, link: ShortLink, visit: VisitRequest) -> None:
        if not link.password:
            return
        if not visit.password:
            raise PasswordRequiredError()
        if not hmac.compare_digest(link.password.encode("utf-8"), visit.password.encode("utf-8")):
            raise PasswordIncorrectError()

    async def _check_interstitial(
        self,
        db: AsyncSession,
        link: ShortLink,
        domain: Domain,
        visit: VisitRequest,
        now: int,
    ) -> None:
        if not link.use_interstitial:
            return

        template = await self.templates.resolve(db, TemplateRole.INTERSTITIAL, link, domain)
        if template is None:
            return

        if visit.ticket_timestamp:
            # Without forced verification the bare timestamp is enough
            if not link.force_interstitial:
                return
            if self._ticket_accepted(link, visit, now):
                return

        raise InterstitialRequiredError(template)

    def _ticket_accepted(self, link: ShortLink, visit: VisitRequest, now: int) -> bool:
        if not visit.ticket_signature:
            return False
        try:
            timestamp = int(visit.ticket_timestamp)
        except (TypeError, ValueError):
            return False

        if not verify_signature(self.secret, timestamp, visit.host, visit.code, visit.ticket_signature):
            logger.info(f"Rejected interstitial ticket with bad signature for {visit.host}/{visit.code}")
            return False

        return ticket_within_window(now - timestamp, link.interstitial_delay, self.ticket_max_age)

    # Dispositions

    def _allow(self, link: ShortLink) -> Disposition:
        return Disposition(status_code=link.redirect_status, location=link.target_url)

    async def _error_page(
        self,
        db: AsyncSession,
        exc: ResolutionError,
        link: Optional[ShortLink],
        domain: Optional[Domain],
        code: str,
    ) -> Disposition:
        html = await self.templates.render_role(
            db,
            TemplateRole.ERROR,
            link,
            domain,
            {
                "error_message": exc.message,
                "error_code": exc.error_code,
                "http_status": exc.status_code,
                "code": code,
            },
        )
        if html is not None:
            return Disposition(status_code=exc.status_code, reason=exc.reason, html=html)
        return Disposition(
            status_code=exc.status_code,
            reason=exc.reason,
            payload={"error": exc.reason.value, "message": exc.message},
        )

    async def _password_page(
        self,
        db: AsyncSession,
        exc: ResolutionError,
        link: ShortLink,
        domain: Domain,
    ) -> Disposition:
        wrong = isinstance(exc, PasswordIncorrectError)
        html = await self.templates.render_role(
            db,
            TemplateRole.PASSWORD,
            link,
            domain,
            {"errorpassword": "true" if wrong else "false"},
        )
        if html is not None:
            return Disposition(status_code=exc.status_code, reason=exc.reason, html=html)
        return Disposition(status_code=exc.status_code, reason=exc.reason, text=exc.message)

    async def _interstitial_page(
        self,
        db: AsyncSession,
        exc: InterstitialRequiredError,
        link: ShortLink,
        visit: VisitRequest,
        now: int,
    ) -> Disposition:
        ticket = issue_ticket(self.secret, now, visit.host, visit.code)
        html = await self.templates.render(
            db,
            exc.template,
            {
                "delay": link.interstitial_delay,
                "timestamp": ticket.timestamp,
                "sign": ticket.signature,
            },
        )
        if html is None:
            logger.warning(f"Interstitial template {exc.template.id} has no content; redirecting directly")
            return self._allow(link)
        return Disposition(status_code=exc.status_code, reason=exc.reason, html=html)

    async def _domain_for_host(self, db: AsyncSession, host: str) -> Optional[Domain]:
        try:
            return await self.domain_repository.get_active_by_host(db, host)
        except RepositoryError as e:
            logger.error(f"Error looking up domain {host}: {e}")
            return None

    def _dispatch(
        self,
        visit: VisitRequest,
        now: int,
        disposition: Disposition,
        link: Optional[ShortLink],
        domain: Optional[Domain],
    ) -> None:
        event = build_visit_event(
            visit,
            now,
            http_status=disposition.status_code,
            block_reason=disposition.reason.value if disposition.reason else None,
            link_id=link.id if link is not None else None,
            domain_id=domain.id if domain is not None else None,
        )
        self.dispatcher.dispatch(event, count_click=disposition.allowed)
