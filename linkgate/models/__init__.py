"""
Data models for the link redirector.

This module imports and exports all SQLModel models used in the application.
"""

# First import SQLModel itself to ensure metadata is initialized
from sqlmodel import SQLModel

# Templates first: domains and links reference them
from linkgate.models.template import (
    AssetStorageType,
    RedirectTemplate,
    TemplateAsset,
    TemplateContentType,
    TemplateType,
)
from linkgate.models.domain import Domain, DomainBase
from linkgate.models.link import ShortLink, ShortLinkBase
from linkgate.models.visit import VisitEvent, VisitEventBase, VisitEventCreate

__all__ = [
    "SQLModel",
    # Templates and assets
    "AssetStorageType",
    "RedirectTemplate",
    "TemplateAsset",
    "TemplateContentType",
    "TemplateType",
    # Domains and links
    "Domain",
    "DomainBase",
    "ShortLink",
    "ShortLinkBase",
    # Visits
    "VisitEvent",
    "VisitEventBase",
    "VisitEventCreate",
]
