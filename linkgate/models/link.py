"""Short link data models.

This module defines the ShortLink model: the mapping from a (domain, code)
pair to a target URL together with the policies guarding the redirect.
"""
import time
from datetime import datetime
from typing import Optional

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from linkgate.models.timestamps import created_at_field

REDIRECT_STATUS_CODES = (301, 302, 307, 308)
DEFAULT_REDIRECT_STATUS = 302


class ShortLinkBase(SQLModel):
    """Base model for short link data."""

    domain_id: int = Field(foreign_key="domains.id", description="Domain the code is scoped to")
    code: str = Field(max_length=64, description="Short code, unique per domain")
    target_url: str = Field(description="URL the visitor is redirected to")
    owner_id: Optional[int] = Field(default=None, description="Owning user")
    redirect_http_code: int = Field(default=DEFAULT_REDIRECT_STATUS)

    # Interstitial page
    use_interstitial: bool = Field(default=False)
    interstitial_delay: int = Field(default=0, description="Seconds the visitor must wait")
    force_interstitial: bool = Field(
        default=False,
        description="Require a valid signed ticket instead of the bare timestamp",
    )

    # Link-level templates, preferred over the domain-level ones
    template_id: Optional[int] = Field(default=None, foreign_key="redirect_templates.id")
    error_template_id: Optional[int] = Field(default=None, foreign_key="redirect_templates.id")
    password_template_id: Optional[int] = Field(default=None, foreign_key="redirect_templates.id")

    password: Optional[str] = Field(default=None, max_length=255)
    max_visits: Optional[int] = Field(default=None)
    expire_at: Optional[int] = Field(default=None, description="Epoch seconds")

    is_disabled: bool = Field(default=False)
    deleted_at: Optional[int] = Field(default=None, description="Soft delete marker (epoch seconds)")


class ShortLink(ShortLinkBase, table=True):
    """
    Short link model for storing links in the database.

    Codes are unique within a domain among links that are not
    soft-deleted, so a deleted code can be reissued.
    """

    __tablename__ = "short_links"

    id: Optional[int] = Field(default=None, primary_key=True)
    total_clicks: int = Field(default=0, description="Counter of allowed visits")
    last_access_at: Optional[int] = Field(default=None, description="Epoch seconds")
    created_at: datetime = created_at_field()

    __table_args__ = (
        Index(
            "uq_short_links_domain_code_live",
            "domain_id",
            "code",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    def is_expired(self, now: Optional[int] = None) -> bool:
        """Check if the link has passed its expiry time."""
        if self.expire_at is None:
            return False
        if now is None:
            now = int(time.time())
        return self.expire_at < now

    def visit_limit_reached(self) -> bool:
        """Check if the link has used up its visit quota."""
        if not self.max_visits:
            return False
        return self.total_clicks >= self.max_visits

    @property
    def redirect_status(self) -> int:
        """Configured redirect status, falling back to 302 for unsupported values."""
        if self.redirect_http_code in REDIRECT_STATUS_CODES:
            return self.redirect_http_code
        return DEFAULT_REDIRECT_STATUS
