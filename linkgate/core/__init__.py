"""Core module for the link redirector: settings and logging."""

from linkgate.core.config import settings

__all__ = ["settings"]
