"""Tests for the redirect policy evaluator."""

import pytest
import pytest_asyncio

from linkgate.repositories.base import RepositoryError
from linkgate.repositories.domain_repository import DomainRepository
from linkgate.repositories.link_repository import LinkRepository
from linkgate.repositories.template_repository import AssetRepository, TemplateRepository
from linkgate.services.client import VisitRequest
from linkgate.services.exceptions import BlockReason
from linkgate.services.policy import PolicyEvaluator
from linkgate.services.templates import TemplateResolver
from linkgate.services.tickets import generate_signature
from linkgate.storage.content_store import ContentStore
from tests.utils import (
    DEFAULT_HOST,
    NOW,
    TEST_SECRET,
    FakeObjectStore,
    RecordingDispatcher,
    create_file_template,
    create_inline_template,
    create_test_domain,
    create_test_link,
)

INTERSTITIAL_HTML = "wait {{delay}} {{timestamp}} {{sign}}"


def visit(code: str, **fields) -> VisitRequest:
    return VisitRequest(host=DEFAULT_HOST, code=code, **fields)


def ticket(code: str, timestamp: int) -> dict:
    return {
        "ticket_timestamp": str(timestamp),
        "ticket_signature": generate_signature(TEST_SECRET, timestamp, DEFAULT_HOST, code),
    }


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def evaluator(dispatcher):
    content_store = ContentStore(TemplateRepository(), AssetRepository(), FakeObjectStore())
    return PolicyEvaluator(
        link_repository=LinkRepository(),
        domain_repository=DomainRepository(),
        template_resolver=TemplateResolver(TemplateRepository(), content_store),
        dispatcher=dispatcher,
        secret=TEST_SECRET,
        clock=lambda: NOW,
    )


@pytest_asyncio.fixture
async def domain(test_db):
    return await create_test_domain(test_db)


@pytest.mark.service
class TestAllow:

    @pytest.mark.asyncio
    async def test_plain_link_redirects(self, test_db, evaluator, dispatcher, domain):
        link = await create_test_link(test_db, domain, code="plain", target_url="https://example.com/x")

        result = await evaluator.evaluate(test_db, visit("plain", ip="203.0.113.9"))

        assert result.allowed
        assert result.status_code == 302
        assert result.location == "https://example.com/x"

        [(event, count_click)] = dispatcher.dispatched
        assert count_click is True
        assert event.short_link_id == link.id
        assert event.domain_id == domain.id
        assert event.http_status == 302
        assert event.is_blocked is False
        assert event.block_reason is None
        assert event.visited_at == NOW
        assert event.ip == "203.0.113.9"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("configured,expected", [(301, 301), (307, 307), (308, 308), (303, 302), (200, 302)])
    async def test_redirect_status(self, test_db, evaluator, domain, configured, expected):
        await create_test_link(test_db, domain, code="status", redirect_http_code=configured)

        result = await evaluator.evaluate(test_db, visit("status"))

        assert result.status_code == expected

    @pytest.mark.asyncio
    async def test_zero_max_visits_means_unlimited(self, test_db, evaluator, domain):
        await create_test_link(test_db, domain, code="zero", max_visits=0, total_clicks=50)

        assert (await evaluator.evaluate(test_db, visit("zero"))).allowed

    @pytest.mark.asyncio
    async def test_future_expiry_allows(self, test_db, evaluator, domain):
        await create_test_link(test_db, domain, code="soon", expire_at=NOW + 1)

        assert (await evaluator.evaluate(test_db, visit("soon"))).allowed

    @pytest.mark.asyncio
    async def test_expiry_boundary_is_exclusive(self, test_db, evaluator, domain):
        await create_test_link(test_db, domain, code="edge", expire_at=NOW)

        assert (await evaluator.evaluate(test_db, visit("edge"))).allowed


@pytest.mark.service
class TestNotFound:

    @pytest.mark.asyncio
    async def test_json_fallback(self, test_db, evaluator, dispatcher, domain):
        result = await evaluator.evaluate(test_db, visit("missing"))

        assert result.status_code == 404
        assert result.reason == BlockReason.NOT_FOUND
        assert result.payload == {"error": "not_found", "message": "Short link not found"}

        [(event, count_click)] = dispatcher.dispatched
        assert count_click is False
        assert event.short_link_id is None
        assert event.domain_id == domain.id
        assert event.block_reason == "not_found"
        assert event.http_status == 404

    @pytest.mark.asyncio
    async def test_lookup_failure(self, test_db, dispatcher):
        class FailingLinkRepository(LinkRepository):
            async def get_for_redirect(self, db, host, code):
                raise RepositoryError("database is down")

        content_store = ContentStore(TemplateRepository(), AssetRepository(), FakeObjectStore())
        evaluator = PolicyEvaluator(
            link_repository=FailingLinkRepository(),
            domain_repository=DomainRepository(),
            template_resolver=TemplateResolver(TemplateRepository(), content_store),
            dispatcher=dispatcher,
            secret=TEST_SECRET,
            clock=lambda: NOW,
        )

        result = await evaluator.evaluate(test_db, visit("any"))

        assert result.status_code == 500
        assert result.reason == BlockReason.LOOKUP_FAILED
        assert result.text == "Internal server error"
        [(event, count_click)] = dispatcher.dispatched
        assert count_click is False
        assert event.block_reason == "lookup_failed"

    @pytest.mark.asyncio
    async def test_unknown_host(self, test_db, evaluator, dispatcher):
        result = await evaluator.evaluate(test_db, VisitRequest(host="nowhere.example.com", code="x"))

        assert result.status_code == 404
        assert dispatcher.events[0].domain_id is None

    @pytest.mark.asyncio
    async def test_domain_error_template(self, test_db, evaluator):
        template = await create_inline_template(
            test_db, "{{http_status}} {{error_code}} {{error_message}} {{code}}"
        )
        await create_test_domain(test_db, host="branded.example.com", error_template_id=template.id)

        result = await evaluator.evaluate(test_db, VisitRequest(host="branded.example.com", code="nope"))

        assert result.status_code == 404
        assert result.html == "404 -3 Short link not found nope"

    @pytest.mark.asyncio
    async def test_disabled_link_is_not_found(self, test_db, evaluator, domain):
        await create_test_link(test_db, domain, code="off", is_disabled=True)

        assert (await evaluator.evaluate(test_db, visit("off"))).status_code == 404


@pytest.mark.service
class TestExpiryAndLimit:

    @pytest.mark.asyncio
    async def test_expired(self, test_db, evaluator, dispatcher, domain):
        link = await create_test_link(test_db, domain, code="old", expire_at=NOW - 1)

        result = await evaluator.evaluate(test_db, visit("old"))

        assert result.status_code == 410
        assert result.payload == {"error": "expired", "message": "Link expired"}
        [(event, count_click)] = dispatcher.dispatched
        assert count_click is False
        assert event.short_link_id == link.id
        assert event.block_reason == "expired"

    @pytest.mark.asyncio
    async def test_limit_reached(self, test_db, evaluator, domain):
        await create_test_link(test_db, domain, code="full", max_visits=3, total_clicks=3)

        result = await evaluator.evaluate(test_db, visit("full"))

        assert result.status_code == 410
        assert result.payload == {"error": "limit", "message": "Link visit limit reached"}

    @pytest.mark.asyncio
    async def test_below_limit_allows(self, test_db, evaluator, domain):
        await create_test_link(test_db, domain, code="room", max_visits=3, total_clicks=2)

        assert (await evaluator.evaluate(test_db, visit("room"))).allowed

    @pytest.mark.asyncio
    async def test_quota_is_best_effort(self, test_db, evaluator, domain):
        # The check reads the counter before any pending increment lands
        await create_test_link(test_db, domain, code="race", max_visits=1, total_clicks=0)

        first = await evaluator.evaluate(test_db, visit("race"))
        second = await evaluator.evaluate(test_db, visit("race"))

        assert first.allowed and second.allowed

    @pytest.mark.asyncio
    async def test_expiry_beats_password(self, test_db, evaluator, domain):
        await create_test_link(test_db, domain, code="both", expire_at=NOW - 10, password="pw")

        result = await evaluator.evaluate(test_db, visit("both", password="pw"))

        assert result.status_code == 410
        assert result.reason == BlockReason.EXPIRED

    @pytest.mark.asyncio
    async def test_limit_beats_password(self, test_db, evaluator, domain):
        await create_test_link(test_db, domain, code="both", max_visits=1, total_clicks=1, password="pw")

        result = await evaluator.evaluate(test_db, visit("both"))

        assert result.reason == BlockReason.LIMIT

    @pytest.mark.asyncio
    async def test_link_error_template(self, test_db, evaluator, domain):
        template = await create_inline_template(test_db, "<b>{{error_message}}</b> {{error_code}}")
        await create_test_link(test_db, domain, code="old", expire_at=NOW - 1, error_template_id=template.id)

        result = await evaluator.evaluate(test_db, visit("old"))

        assert result.status_code == 410
        assert result.html == "<b>Link expired</b> -4"


@pytest.mark.service
class TestPassword:

    @pytest.mark.asyncio
    async def test_challenge_without_template(self, test_db, evaluator, dispatcher, domain):
        await create_test_link(test_db, domain, code="locked", password="hunter2")

        result = await evaluator.evaluate(test_db, visit("locked"))

        assert result.status_code == 200
        assert result.reason == BlockReason.PASSWORD
        assert result.text == "Password required"
        assert dispatcher.events[0].block_reason == "password"
        assert dispatcher.events[0].http_status == 200

    @pytest.mark.asyncio
    async def test_wrong_password(self, test_db, evaluator, dispatcher, domain):
        await create_test_link(test_db, domain, code="locked", password="hunter2")

        result = await evaluator.evaluate(test_db, visit("locked", password="hunter3"))

        assert result.status_code == 401
        assert result.text == "Incorrect password"
        assert dispatcher.dispatched[0][1] is False
        assert dispatcher.events[0].block_reason == "password_wrong"

    @pytest.mark.asyncio
    async def test_correct_password(self, test_db, evaluator, dispatcher, domain):
        await create_test_link(test_db, domain, code="locked", password="hunter2", target_url="https://t.example")

        result = await evaluator.evaluate(test_db, visit("locked", password="hunter2"))

        assert result.allowed
        assert result.location == "https://t.example"
        assert dispatcher.dispatched[0][1] is True

    @pytest.mark.asyncio
    async def test_template_flags_wrong_password(self, test_db, evaluator, domain):
        template = await create_inline_template(test_db, "<form data-error='{{errorpassword}}'>")
        await create_test_link(test_db, domain, code="locked", password="pw", password_template_id=template.id)

        challenge = await evaluator.evaluate(test_db, visit("locked"))
        wrong = await evaluator.evaluate(test_db, visit("locked", password="nope"))

        assert challenge.status_code == 200
        assert challenge.html == "<form data-error='false'>"
        assert wrong.status_code == 401
        assert wrong.html == "<form data-error='true'>"


@pytest.mark.service
class TestInterstitial:

    @pytest_asyncio.fixture
    async def wait_template(self, test_db):
        return await create_inline_template(test_db, INTERSTITIAL_HTML)

    @pytest.mark.asyncio
    async def test_first_visit_renders_page(self, test_db, evaluator, dispatcher, domain, wait_template):
        await create_test_link(
            test_db, domain, code="ad", use_interstitial=True, interstitial_delay=5, template_id=wait_template.id
        )

        result = await evaluator.evaluate(test_db, visit("ad"))

        signature = generate_signature(TEST_SECRET, NOW, DEFAULT_HOST, "ad")
        assert result.status_code == 200
        assert result.reason == BlockReason.INTERSTITIAL
        assert result.html == f"wait 5 {NOW} {signature}"
        assert dispatcher.events[0].block_reason == "interstitial"
        assert dispatcher.dispatched[0][1] is False

    @pytest.mark.asyncio
    async def test_domain_template_used(self, test_db, evaluator, wait_template):
        domain = await create_test_domain(test_db, interstitial_template_id=wait_template.id)
        await create_test_link(test_db, domain, code="ad", use_interstitial=True)

        result = await evaluator.evaluate(test_db, visit("ad"))

        assert result.reason == BlockReason.INTERSTITIAL

    @pytest.mark.asyncio
    async def test_unforced_accepts_bare_timestamp(self, test_db, evaluator, domain, wait_template):
        await create_test_link(
            test_db, domain, code="ad", use_interstitial=True, interstitial_delay=5, template_id=wait_template.id
        )

        result = await evaluator.evaluate(test_db, visit("ad", ticket_timestamp="whatever"))

        assert result.allowed

    @pytest.mark.asyncio
    async def test_no_template_redirects(self, test_db, evaluator, domain):
        await create_test_link(test_db, domain, code="ad", use_interstitial=True, force_interstitial=True)

        assert (await evaluator.evaluate(test_db, visit("ad"))).allowed

    @pytest.mark.asyncio
    async def test_template_without_content_redirects(self, test_db, evaluator, domain):
        broken = await create_file_template(test_db, "nothing-here")
        await create_test_link(test_db, domain, code="ad", use_interstitial=True, template_id=broken.id)

        result = await evaluator.evaluate(test_db, visit("ad"))

        assert result.allowed
        assert result.status_code == 302

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "elapsed,allowed",
        [
            (5, True),      # exactly the delay
            (4, True),      # one second early
            (3, False),     # two seconds early
            (1800, True),
            (1801, False),
        ],
    )
    async def test_forced_ticket_window(self, test_db, evaluator, domain, wait_template, elapsed, allowed):
        await create_test_link(
            test_db,
            domain,
            code="ad",
            use_interstitial=True,
            force_interstitial=True,
            interstitial_delay=5,
            template_id=wait_template.id,
        )

        result = await evaluator.evaluate(test_db, visit("ad", **ticket("ad", NOW - elapsed)))

        assert result.allowed is allowed
        if not allowed:
            assert result.status_code == 200
            assert result.reason == BlockReason.INTERSTITIAL

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields",
        [
            {"ticket_timestamp": str(NOW - 10)},
            {"ticket_timestamp": str(NOW - 10), "ticket_signature": "0" * 64},
            {"ticket_timestamp": "not-a-number", "ticket_signature": "abc"},
            {"ticket_signature": "abc"},
        ],
    )
    async def test_forced_rejects_bad_tickets(self, test_db, evaluator, domain, wait_template, fields):
        await create_test_link(
            test_db,
            domain,
            code="ad",
            use_interstitial=True,
            force_interstitial=True,
            interstitial_delay=5,
            template_id=wait_template.id,
        )

        result = await evaluator.evaluate(test_db, visit("ad", **fields))

        assert result.reason == BlockReason.INTERSTITIAL

    @pytest.mark.asyncio
    async def test_ticket_for_other_code_rejected(self, test_db, evaluator, domain, wait_template):
        await create_test_link(
            test_db, domain, code="ad", use_interstitial=True, force_interstitial=True, template_id=wait_template.id
        )

        result = await evaluator.evaluate(test_db, visit("ad", **ticket("other", NOW - 10)))

        assert result.reason == BlockReason.INTERSTITIAL

    @pytest.mark.asyncio
    async def test_password_checked_before_interstitial(self, test_db, evaluator, domain, wait_template):
        await create_test_link(
            test_db, domain, code="ad", password="pw", use_interstitial=True, template_id=wait_template.id
        )

        locked = await evaluator.evaluate(test_db, visit("ad"))
        unlocked = await evaluator.evaluate(test_db, visit("ad", password="pw"))

        assert locked.reason == BlockReason.PASSWORD
        assert unlocked.reason == BlockReason.INTERSTITIAL
