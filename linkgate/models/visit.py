"""
Visit event data models.

This module defines the VisitEvent model, the append-only audit record
written once for every resolution attempt.
"""

from typing import Optional

from sqlalchemy import Index
from sqlmodel import Field, SQLModel


class VisitEventBase(SQLModel):
    """Base model for visit event data."""

    short_link_id: Optional[int] = Field(
        default=None,
        description="Resolved link, empty when the code was not found",
    )
    domain_id: Optional[int] = Field(default=None)
    code: str = Field(max_length=64)
    visited_at: int = Field(description="Epoch seconds")

    # Client context
    ip: Optional[str] = Field(default=None, max_length=45)
    ua: Optional[str] = Field(default=None, max_length=1024)
    referer: Optional[str] = Field(default=None, max_length=2048)
    country: Optional[str] = Field(default=None, max_length=64)
    region: Optional[str] = Field(default=None, max_length=128)
    city: Optional[str] = Field(default=None, max_length=128)
    device_type: Optional[str] = Field(default=None, max_length=64)
    os: Optional[str] = Field(default=None, max_length=128)
    browser: Optional[str] = Field(default=None, max_length=128)

    # Outcome
    is_blocked: bool = Field(default=False)
    block_reason: Optional[str] = Field(default=None, max_length=32)
    http_status: int = Field(default=0)


class VisitEvent(VisitEventBase, table=True):
    """Visit event model for the link_visit_events table."""

    __tablename__ = "link_visit_events"

    id: Optional[int] = Field(default=None, primary_key=True)

    __table_args__ = (
        Index("ix_link_visit_events_link_visited_at", "short_link_id", "visited_at"),
        Index("ix_link_visit_events_visited_at", "visited_at"),
    )


class VisitEventCreate(VisitEventBase):
    """Schema for creating a visit event record."""
    pass
