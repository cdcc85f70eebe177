"""HTTP discovery client for a "find-bot" endpoint.

The endpoint browses for the robot's advertised service and answers with
``{"name", "host", "port", "addresses"}``, or 404 when nothing was found
before its own timeout.
"""

import json
import logging
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from ..core.bus import EventBus, get_event_bus
from ..core.events import Event, EventType
from ..core.types import ServiceInfo
from .interface import DiscoveryInterface


logger = logging.getLogger(__name__)


def parse_service(payload: dict) -> ServiceInfo:
    """Build ServiceInfo from a find-bot response body.

    Raises:
        ValueError: If host or port is missing or malformed
    """
    try:
        host = str(payload["host"])
        port = int(payload["port"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed find-bot response: {payload!r}") from e
    return ServiceInfo(
        name=str(payload.get("name") or ""),
        host=host,
        port=port,
        addresses=[str(a) for a in payload.get("addresses") or []],
    )


class HttpDiscovery(DiscoveryInterface):
    """Resolve the robot through a find-bot HTTP endpoint.

    Usage:
        discovery = HttpDiscovery("http://localhost:5001/find-bot")
        info = discovery.resolve("CentoBot", timeout_s=5.0)
        if info:
            print(info.address, info.port)
    """

    def __init__(self, url: str = "http://localhost:5001/find-bot", bus: EventBus | None = None):
        self.url = url
        self.bus = bus or get_event_bus()
        self.last_error: str = ""

    def resolve(self, service: str, timeout_s: float = 5.0) -> ServiceInfo | None:
        self.last_error = ""
        url = f"{self.url}?{urlencode({'service': service})}"
        logger.info(f"Looking up {service} via {self.url}")

        try:
            req = Request(url, headers={"Accept": "application/json"})
            with urlopen(req, timeout=timeout_s) as resp:
                info = parse_service(json.loads(resp.read().decode("utf-8")))
        except HTTPError as e:
            self.last_error = f"HTTP {e.code}"
            if e.code != 404:
                logger.warning(f"find-bot returned HTTP {e.code}")
            return self._not_found(service)
        except (URLError, TimeoutError) as e:
            self.last_error = str(getattr(e, "reason", e))
            logger.warning(f"find-bot unreachable: {self.last_error}")
            return self._not_found(service)
        except ValueError as e:
            # Covers JSONDecodeError and malformed payloads
            self.last_error = str(e)
            logger.warning(self.last_error)
            return self._not_found(service)

        logger.info(f"Found {info.name or service} at {info.address}:{info.port}")
        self.bus.publish(Event(
            type=EventType.ROBOT_FOUND,
            data=info,
            source="http_discovery"
        ))
        return info

    def _not_found(self, service: str) -> None:
        self.bus.publish(Event(
            type=EventType.ROBOT_NOT_FOUND,
            data={"service": service, "error": self.last_error},
            source="http_discovery"
        ))
        return None
