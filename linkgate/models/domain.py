"""Domain data models.

A domain is a host that short links are served on. It carries the
second-tier template references used when a link has none of its own.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from linkgate.models.timestamps import created_at_field


class DomainBase(SQLModel):
    """Base model for domain data."""

    host: str = Field(
        description="Host name matched against the request Host header",
        unique=True,
        max_length=255,
    )
    is_active: bool = Field(default=True, description="Inactive domains resolve nothing")
    is_default: bool = Field(default=False, description="Default domain for new links")
    error_template_id: Optional[int] = Field(
        default=None,
        foreign_key="redirect_templates.id",
        description="Fallback error page template",
    )
    password_template_id: Optional[int] = Field(
        default=None,
        foreign_key="redirect_templates.id",
        description="Fallback password challenge template",
    )
    interstitial_template_id: Optional[int] = Field(
        default=None,
        foreign_key="redirect_templates.id",
        description="Fallback interstitial page template",
    )


class Domain(DomainBase, table=True):
    """Domain model for storing served hosts in the database."""

    __tablename__ = "domains"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = created_at_field()
