"""Test utilities for link redirector tests."""

import random
import string
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.models.domain import Domain
from linkgate.models.link import ShortLink
from linkgate.models.template import (
    AssetStorageType,
    RedirectTemplate,
    TemplateAsset,
    TemplateContentType,
)
from linkgate.services.exceptions import StorageUnavailableError

DEFAULT_HOST = "go.example.com"
TEST_SECRET = "test-interstitial-secret"
NOW = 1_700_000_000


class FakeObjectStore:
    """In-memory ObjectStore used in place of the S3 bucket."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None, fail: bool = False):
        self.objects = dict(objects or {})
        self.fail = fail
        self.requested = []

    async def get(self, key: str) -> Optional[bytes]:
        self.requested.append(key)
        if self.fail:
            raise StorageUnavailableError("object store offline")
        return self.objects.get(key)


class RecordingDispatcher:
    """VisitDispatcher that keeps events in memory instead of writing them."""

    def __init__(self):
        self.dispatched = []

    def dispatch(self, event, count_click: bool = False) -> None:
        self.dispatched.append((event, count_click))

    @property
    def events(self):
        return [event for event, _ in self.dispatched]


def random_string(length: int = 10) -> str:
    """Generate a random alphanumeric string."""
    return ''.join(random.choice(string.ascii_letters + string.digits) for _ in range(length))


def random_url() -> str:
    """Generate a random URL for testing."""
    return f"https://{random_string(8).lower()}.com/{random_string(12)}"


async def _persist(db: AsyncSession, entity):
    db.add(entity)
    await db.commit()
    await db.refresh(entity)
    return entity


async def create_test_domain(db: AsyncSession, host: str = DEFAULT_HOST, **fields) -> Domain:
    """Create and persist a test Domain."""
    return await _persist(db, Domain(host=host, **fields))


async def create_test_link(
    db: AsyncSession,
    domain: Domain,
    code: Optional[str] = None,
    target_url: Optional[str] = None,
    **fields
) -> ShortLink:
    """Create and persist a test ShortLink on a domain."""
    link = ShortLink(
        domain_id=domain.id,
        code=code or random_string(6),
        target_url=target_url or random_url(),
        **fields
    )
    return await _persist(db, link)


async def create_inline_template(
    db: AsyncSession,
    html_content: str,
    name: Optional[str] = None,
    **fields
) -> RedirectTemplate:
    """Create and persist a template whose HTML is stored on the row."""
    template = RedirectTemplate(
        name=name or f"template-{random_string(4)}",
        content_type=TemplateContentType.INLINE,
        html_content=html_content,
        **fields
    )
    return await _persist(db, template)


async def create_file_template(
    db: AsyncSession,
    asset_prefix: str,
    main_file: str = "index.html",
    name: Optional[str] = None,
    **fields
) -> RedirectTemplate:
    """Create and persist a template whose HTML is an asset file."""
    template = RedirectTemplate(
        name=name or f"template-{random_string(4)}",
        content_type=TemplateContentType.FILE,
        asset_prefix=asset_prefix,
        main_file=main_file,
        **fields
    )
    return await _persist(db, template)


async def create_test_asset(
    db: AsyncSession,
    asset_prefix: str,
    filename: str,
    content: Optional[bytes] = None,
    object_key: Optional[str] = None,
    **fields
) -> TemplateAsset:
    """Create and persist an asset, in the database or as an object-store key."""
    storage_type = AssetStorageType.OBJECT_STORE if object_key else AssetStorageType.DATABASE
    asset = TemplateAsset(
        asset_prefix=asset_prefix,
        filename=filename,
        storage_type=storage_type,
        content=content,
        object_key=object_key,
        size=len(content) if content is not None else None,
        **fields
    )
    return await _persist(db, asset)
