"""API package for the link redirector.

This package contains the HTTP layer: the redirect and asset routes,
health probes and the dependency providers that wire the services.
"""

from linkgate.api.routes import api_router

__all__ = ["api_router"]
