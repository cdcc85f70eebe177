"""Discovery from configured address (no network lookup)."""

from ..core.config import DiscoverySettings
from ..core.types import ServiceInfo
from .interface import DiscoveryInterface


class StaticDiscovery(DiscoveryInterface):
    """Returns the host/port from settings."""

    def __init__(self, settings: DiscoverySettings | None = None):
        self.settings = settings or DiscoverySettings()

    def resolve(self, service: str, timeout_s: float = 5.0) -> ServiceInfo | None:
        if not self.settings.host:
            return None
        return ServiceInfo(
            name=service,
            host=self.settings.host,
            port=self.settings.port,
            addresses=[self.settings.host],
        )
