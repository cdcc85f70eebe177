"""Shared fixtures: fast timing, a private event bus and a connected mock channel."""

import pytest

from cento.core.bus import EventBus, reset_event_bus
from cento.core.config import TimingSettings, reset_settings
from cento.execution import SequenceExecutor, TimingPolicy
from cento.motion import MockMotionChannel


@pytest.fixture(autouse=True)
def _fresh_singletons():
    reset_settings()
    reset_event_bus()
    yield
    reset_settings()
    reset_event_bus()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def timing():
    """Real constants scaled down 100x (2 s -> 20 ms, 100 ms tick -> 1 ms)."""
    return TimingPolicy(TimingSettings(time_scale=0.01))


@pytest.fixture
def channel(bus):
    channel = MockMotionChannel(bus=bus)
    channel.connect()
    return channel


@pytest.fixture
def executor(channel, timing, bus):
    return SequenceExecutor(channel, timing, bus)
