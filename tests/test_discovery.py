"""Robot discovery: static settings and the find-bot HTTP client."""

import io
import json
from urllib.error import HTTPError, URLError

import pytest

from cento.core.config import DiscoverySettings
from cento.core.events import EventType
from cento.discovery import HttpDiscovery, StaticDiscovery, create_discovery, parse_service
from cento.discovery import http as http_module


class _Response(io.BytesIO):
    status = 200


def _serve(monkeypatch, body=None, error=None):
    calls = []

    def fake_urlopen(req, timeout=None):
        calls.append((req.full_url, timeout))
        if error is not None:
            raise error
        return _Response(json.dumps(body).encode("utf-8"))

    monkeypatch.setattr(http_module, "urlopen", fake_urlopen)
    return calls


FOUND = {"name": "CentoBot", "host": "cento.local", "port": 9090, "addresses": ["192.168.1.40"]}


def test_static_discovery_without_host_finds_nothing():
    assert StaticDiscovery(DiscoverySettings(host="")).resolve("CentoBot") is None


def test_static_discovery_returns_configured_address():
    info = StaticDiscovery(DiscoverySettings(host="10.0.0.5", port=7000)).resolve("CentoBot")
    assert (info.name, info.address, info.port) == ("CentoBot", "10.0.0.5", 7000)


def test_http_discovery_parses_service(monkeypatch, bus):
    calls = _serve(monkeypatch, body=FOUND)

    info = HttpDiscovery("http://backend:5001/find-bot", bus).resolve("CentoBot", timeout_s=3.0)

    assert info.host == "cento.local"
    assert info.address == "192.168.1.40"
    assert info.port == 9090
    assert calls == [("http://backend:5001/find-bot?service=CentoBot", 3.0)]
    assert bus.events_of(EventType.ROBOT_FOUND)[0].data == info


def test_http_discovery_not_found(monkeypatch, bus):
    _serve(monkeypatch, error=HTTPError("http://backend/find-bot", 404, "Not Found", None, None))

    discovery = HttpDiscovery("http://backend/find-bot", bus)

    assert discovery.resolve("CentoBot") is None
    assert discovery.last_error == "HTTP 404"
    assert bus.events_of(EventType.ROBOT_NOT_FOUND)


@pytest.mark.parametrize("error", [URLError("connection refused"), TimeoutError("timed out")])
def test_http_discovery_unreachable(monkeypatch, bus, error):
    _serve(monkeypatch, error=error)
    assert HttpDiscovery("http://backend/find-bot", bus).resolve("CentoBot") is None


def test_http_discovery_malformed_body(monkeypatch, bus):
    _serve(monkeypatch, body={"name": "CentoBot"})
    discovery = HttpDiscovery("http://backend/find-bot", bus)

    assert discovery.resolve("CentoBot") is None
    assert "Malformed" in discovery.last_error


def test_parse_service_without_addresses_falls_back_to_host():
    info = parse_service({"host": "cento.local", "port": "9090"})
    assert info.address == "cento.local"
    assert info.port == 9090


def test_create_discovery_selects_by_mode():
    assert isinstance(create_discovery(DiscoverySettings(mode="http")), HttpDiscovery)
    assert isinstance(create_discovery(DiscoverySettings()), StaticDiscovery)
