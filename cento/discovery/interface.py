"""Abstract interface for locating the robot on the network."""

from abc import ABC, abstractmethod

from ..core.types import ServiceInfo


class DiscoveryInterface(ABC):
    """Resolves a named service to a host and port.

    Implementations can be static (address from settings) or ask a
    discovery endpoint over HTTP.
    """

    @abstractmethod
    def resolve(self, service: str, timeout_s: float = 5.0) -> ServiceInfo | None:
        """Look up a service.

        Args:
            service: Advertised service name (e.g. "CentoBot")
            timeout_s: Upper bound on the lookup

        Returns:
            ServiceInfo for the first match, or None if nothing answered
            within the timeout
        """
        pass
