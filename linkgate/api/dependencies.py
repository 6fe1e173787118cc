"""API dependencies for FastAPI.

This module provides dependency injection functions for FastAPI endpoints
to access repositories, storage and the resolution services. The signing
secret and the object store are handed to the services here, so tests can
override any of these providers with fakes.
"""

from functools import lru_cache
from typing import Optional

from fastapi import BackgroundTasks, Depends

from linkgate.core.config import settings
from linkgate.repositories.domain_repository import DomainRepository
from linkgate.repositories.link_repository import LinkRepository
from linkgate.repositories.template_repository import AssetRepository, TemplateRepository
from linkgate.repositories.visit_repository import VisitRepository
from linkgate.services.policy import PolicyEvaluator
from linkgate.services.templates import TemplateResolver
from linkgate.services.visits import BackgroundVisitDispatcher, VisitDispatcher, VisitRecorder
from linkgate.storage.content_store import ContentStore
from linkgate.storage.object_store import ObjectStore, build_object_store


async def get_link_repository() -> LinkRepository:
    """Get an instance of the link repository."""
    return LinkRepository()


async def get_domain_repository() -> DomainRepository:
    """Get an instance of the domain repository."""
    return DomainRepository()


async def get_template_repository() -> TemplateRepository:
    """Get an instance of the template repository."""
    return TemplateRepository()


async def get_asset_repository() -> AssetRepository:
    """Get an instance of the asset repository."""
    return AssetRepository()


@lru_cache
def _configured_object_store() -> Optional[ObjectStore]:
    return build_object_store(settings)


async def get_object_store() -> Optional[ObjectStore]:
    """Get the configured object store, shared across requests."""
    return _configured_object_store()


async def get_content_store(
    template_repo: TemplateRepository = Depends(get_template_repository),
    asset_repo: AssetRepository = Depends(get_asset_repository),
    object_store: Optional[ObjectStore] = Depends(get_object_store),
) -> ContentStore:
    """Get an instance of the content store."""
    return ContentStore(template_repo, asset_repo, object_store)


async def get_template_resolver(
    template_repo: TemplateRepository = Depends(get_template_repository),
    content_store: ContentStore = Depends(get_content_store),
) -> TemplateResolver:
    """Get an instance of the template resolver."""
    return TemplateResolver(template_repo, content_store)


async def get_visit_recorder(
    link_repo: LinkRepository = Depends(get_link_repository),
) -> VisitRecorder:
    """Get an instance of the visit recorder."""
    return VisitRecorder(visit_repository=VisitRepository(), link_repository=link_repo)


async def get_visit_dispatcher(
    background_tasks: BackgroundTasks,
    recorder: VisitRecorder = Depends(get_visit_recorder),
) -> VisitDispatcher:
    """Get a dispatcher that records visits after the response is sent."""
    return BackgroundVisitDispatcher(background_tasks, recorder)


def get_interstitial_secret() -> str:
    """Get the key used to sign interstitial tickets."""
    return settings.INTERSTITIAL_SECRET


async def get_policy_evaluator(
    link_repo: LinkRepository = Depends(get_link_repository),
    domain_repo: DomainRepository = Depends(get_domain_repository),
    template_resolver: TemplateResolver = Depends(get_template_resolver),
    dispatcher: VisitDispatcher = Depends(get_visit_dispatcher),
    secret: str = Depends(get_interstitial_secret),
) -> PolicyEvaluator:
    """Get an instance of the policy evaluator."""
    return PolicyEvaluator(
        link_repository=link_repo,
        domain_repository=domain_repo,
        template_resolver=template_resolver,
        dispatcher=dispatcher,
        secret=secret,
    )
