"""Timestamp columns shared by the table models."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlmodel import Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def created_at_field():
    """Row creation time, stored timezone-aware in UTC."""
    return Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
