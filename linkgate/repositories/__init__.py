"""Repository layer for the link redirector.

This module provides repository classes that abstract database operations
and implement the Repository pattern for clean separation of concerns.
"""

from linkgate.repositories.base import BaseRepository, RepositoryError
from linkgate.repositories.domain_repository import DomainRepository
from linkgate.repositories.link_repository import LinkRepository
from linkgate.repositories.template_repository import AssetRepository, TemplateRepository
from linkgate.repositories.visit_repository import VisitRepository

__all__ = [
    # Base classes and exceptions
    "BaseRepository",
    "RepositoryError",

    # Concrete repositories
    "AssetRepository",
    "DomainRepository",
    "LinkRepository",
    "TemplateRepository",
    "VisitRepository",
]
