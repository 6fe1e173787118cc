"""Routes package initialization.

This module exports the route collection for the application.
"""

from fastapi import APIRouter

from linkgate.api.routes import assets, health, redirect
from linkgate.core.config import settings

api_router = APIRouter()

api_router.include_router(
    health.router,
    prefix=settings.API_PREFIX
)

api_router.include_router(assets.router)

# Registered last so /{code} never shadows the routes above
api_router.include_router(redirect.router)

__all__ = ["api_router"]
