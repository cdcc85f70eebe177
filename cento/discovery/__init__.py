"""Robot discovery adapters."""

from ..core.config import DiscoveryMode, DiscoverySettings
from .http import HttpDiscovery, parse_service
from .interface import DiscoveryInterface
from .static import StaticDiscovery


def create_discovery(settings: DiscoverySettings) -> DiscoveryInterface:
    """Build the resolver selected by settings."""
    if settings.mode == DiscoveryMode.HTTP:
        return HttpDiscovery(settings.url)
    return StaticDiscovery(settings)


__all__ = [
    "DiscoveryInterface",
    "HttpDiscovery",
    "StaticDiscovery",
    "create_discovery",
    "parse_service",
]
