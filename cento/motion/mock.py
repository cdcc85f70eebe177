"""Mock motion channel for testing without a robot.

Records every command so tests and dry runs can inspect exactly what
would have been sent.
"""

import logging
import threading

from ..core.bus import EventBus, get_event_bus
from ..core.errors import PublishError
from ..core.events import Event, EventType
from ..core.types import ChannelCommand, CommandType, Vector3
from .interface import MotionChannelInterface


logger = logging.getLogger(__name__)


class MockMotionChannel(MotionChannelInterface):
    """Motion channel that records commands instead of sending them."""

    def __init__(self, fail_on: int | None = None, bus: EventBus | None = None):
        """Initialize mock channel.

        Args:
            fail_on: Zero-based index of the publish attempt that raises
                PublishError (None never fails)
            bus: Event bus (uses global if None)
        """
        self.fail_on = fail_on
        self.bus = bus or get_event_bus()
        self._connected = False
        self._lock = threading.Lock()
        self._commands: list[ChannelCommand] = []
        self._attempts = 0
        self.failed_attempts = 0

    def connect(self) -> bool:
        self._connected = True
        self.bus.publish(Event(
            type=EventType.CHANNEL_CONNECTED,
            data={"mode": "mock"},
            source="mock_channel"
        ))
        return True

    def disconnect(self) -> None:
        self._connected = False
        self.bus.publish(Event(
            type=EventType.CHANNEL_DISCONNECTED,
            source="mock_channel"
        ))

    def is_connected(self) -> bool:
        return self._connected

    def publish_gesture(self, name: str) -> None:
        self._record(ChannelCommand(type=CommandType.GESTURE, gesture=name))

    def publish_velocity(self, linear: Vector3, angular: Vector3) -> None:
        self._record(ChannelCommand(type=CommandType.VELOCITY, linear=linear, angular=angular))

    def _record(self, command: ChannelCommand) -> None:
        with self._lock:
            if not self._connected:
                self.failed_attempts += 1
                raise PublishError("Mock channel is not connected")
            attempt = self._attempts
            self._attempts += 1
            if attempt == self.fail_on:
                self.failed_attempts += 1
                raise PublishError(f"Injected failure on publish #{attempt}")
            self._commands.append(command)
        logger.debug(f"[MOCK] {command}")

    # ── inspection helpers ──────────────────────────────────

    @property
    def commands(self) -> list[ChannelCommand]:
        """Copy of every recorded command, oldest first."""
        with self._lock:
            return list(self._commands)

    @property
    def gestures(self) -> list[str]:
        return [c.gesture for c in self.commands if c.type == CommandType.GESTURE]

    @property
    def stops(self) -> list[ChannelCommand]:
        return [c for c in self.commands if c.is_stop]

    def clear(self) -> None:
        with self._lock:
            self._commands.clear()
