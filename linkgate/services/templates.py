"""Template resolution for error, password and interstitial pages.

Templates are picked in two tiers: the link's own template for a role
if it exists and is active, else the domain's. Content is loaded inline
or from the template's main asset file, then placeholders of the form
``{{key}}`` are substituted.
"""

import logging
from enum import Enum
from typing import Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.models.domain import Domain
from linkgate.models.link import ShortLink
from linkgate.models.template import RedirectTemplate
from linkgate.repositories.base import RepositoryError
from linkgate.repositories.template_repository import TemplateRepository
from linkgate.storage.content_store import ContentStore

logger = logging.getLogger(__name__)


class TemplateRole(str, Enum):
    INTERSTITIAL = "interstitial"
    ERROR = "error"
    PASSWORD = "password"


# (link attribute, domain attribute) holding the template id for each role
ROLE_FIELDS = {
    TemplateRole.INTERSTITIAL: ("template_id", "interstitial_template_id"),
    TemplateRole.ERROR: ("error_template_id", "error_template_id"),
    TemplateRole.PASSWORD: ("password_template_id", "password_template_id"),
}


def substitute(text: str, replacements: Mapping[str, object]) -> str:
    """Replace every literal ``{{key}}`` with its value; other placeholders are left as-is."""
    for key, value in replacements.items():
        text = text.replace("{{" + key + "}}", str(value))
    return text


class TemplateResolver:
    """Selects, loads and fills page templates."""

    def __init__(self, template_repository: TemplateRepository, content_store: ContentStore):
        self.template_repository = template_repository
        self.content_store = content_store

    async def resolve(
        self,
        db: AsyncSession,
        role: TemplateRole,
        link: Optional[ShortLink],
        domain: Optional[Domain],
    ) -> Optional[RedirectTemplate]:
        """
        Pick the template for a role, link level first, then domain level.

        Args:
            db: Database session
            role: Which page is being rendered
            link: The resolved link, if any
            domain: The link's domain, or the domain matched by host

        Returns:
            The first active template found, or None
        """
        link_field, domain_field = ROLE_FIELDS[role]
        candidates = (
            getattr(link, link_field, None) if link is not None else None,
            getattr(domain, domain_field, None) if domain is not None else None,
        )

        for template_id in candidates:
            if template_id is None:
                continue
            try:
                template = await self.template_repository.get_active(db, template_id)
            except RepositoryError as e:
                logger.error(f"Error resolving {role.value} template {template_id}: {e}")
                continue
            if template is not None:
                return template

        return None

    async def load(self, db: AsyncSession, template: RedirectTemplate) -> Optional[str]:
        """Return a template's HTML, or None when its content is missing."""
        if not template.is_file_based:
            return await self.content_store.get_inline(db, template.id)

        if not template.asset_prefix or not template.main_file:
            logger.warning(f"File based template {template.id} has no asset prefix or main file")
            return None

        asset = await self.content_store.get_asset(db, template.asset_prefix, template.main_file)
        if asset is None:
            return None

        try:
            return asset.data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning(f"Main file of template {template.id} is not valid UTF-8")
            return None

    async def render(
        self,
        db: AsyncSession,
        template: Optional[RedirectTemplate],
        replacements: Mapping[str, object],
    ) -> Optional[str]:
        """Load a template and substitute its placeholders."""
        if template is None:
            return None
        html = await self.load(db, template)
        if html is None:
            return None
        return substitute(html, replacements)

    async def render_role(
        self,
        db: AsyncSession,
        role: TemplateRole,
        link: Optional[ShortLink],
        domain: Optional[Domain],
        replacements: Mapping[str, object],
    ) -> Optional[str]:
        """Resolve, load and fill the template for a role in one call."""
        template = await self.resolve(db, role, link, domain)
        return await self.render(db, template, replacements)
