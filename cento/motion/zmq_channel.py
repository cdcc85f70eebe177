"""ZeroMQ motion channel.

Publishes commands on a PUB socket as two-frame messages ``[topic, json]``.
Topic names and payload shapes mirror the robot's ROS topics so a bridge on
the robot can forward them unchanged:

- ``/<robot>/arm_topic``: ``{"data": "<gesture>"}`` (std_msgs/String)
- ``/<robot>/cmd_vel``: ``{"linear": {x,y,z}, "angular": {x,y,z}}``
  (geometry_msgs/Twist)
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any

import zmq

from ..core.bus import EventBus, get_event_bus
from ..core.config import ChannelSettings
from ..core.errors import PublishError
from ..core.events import Event, EventType
from ..core.types import ChannelCommand, CommandType, Vector3
from .interface import MotionChannelInterface


logger = logging.getLogger(__name__)


def encode_gesture(topic: str, name: str) -> list[bytes]:
    """Frames for a gesture command."""
    return [topic.encode("utf-8"), json.dumps({"data": name}).encode("utf-8")]


def encode_twist(topic: str, linear: Vector3, angular: Vector3) -> list[bytes]:
    """Frames for a velocity command."""
    payload = {"linear": linear.as_dict(), "angular": angular.as_dict()}
    return [topic.encode("utf-8"), json.dumps(payload).encode("utf-8")]


def decode_message(frames: list[bytes]) -> tuple[str, dict[str, Any]]:
    """Split a received message into (topic, payload).

    Raises:
        ValueError: If the message is not a two-frame topic/JSON pair
    """
    if len(frames) != 2:
        raise ValueError(f"Expected 2 frames, got {len(frames)}")
    topic = frames[0].decode("utf-8")
    try:
        payload = json.loads(frames[1].decode("utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Payload on {topic} is not JSON: {e}") from e
    return topic, payload


def payload_to_command(topic: str, payload: dict[str, Any]) -> ChannelCommand:
    """Rebuild a ChannelCommand from a decoded message."""
    if "data" in payload:
        return ChannelCommand(type=CommandType.GESTURE, gesture=str(payload["data"]))
    linear = payload.get("linear") or {}
    angular = payload.get("angular") or {}
    return ChannelCommand(
        type=CommandType.VELOCITY,
        linear=Vector3(**{k: float(v) for k, v in linear.items()}),
        angular=Vector3(**{k: float(v) for k, v in angular.items()}),
    )


class ZmqMotionChannel(MotionChannelInterface):
    """Motion channel over a ZeroMQ PUB socket."""

    def __init__(self, settings: ChannelSettings | None = None, bus: EventBus | None = None):
        """Initialize channel with connection settings.

        Args:
            settings: Channel settings (defaults from environment if None)
            bus: Event bus (uses global if None)
        """
        self.settings = settings or ChannelSettings()
        self.bus = bus or get_event_bus()
        self._context: zmq.Context | None = None
        self._socket: zmq.Socket | None = None
        self._connected = False
        self._lock = threading.Lock()
        self.last_error: str = ""

    @property
    def endpoint(self) -> str:
        return self.settings.endpoint

    def connect(self) -> bool:
        """Open the PUB socket.

        Returns:
            True if the socket is bound/connected, False otherwise
        """
        if self._connected:
            self.disconnect()
        try:
            self.last_error = ""
            self._context = zmq.Context()
            self._socket = self._context.socket(zmq.PUB)
            self._socket.setsockopt(zmq.LINGER, 0)
            if self.settings.bind:
                self._socket.bind(self.endpoint)
            else:
                self._socket.connect(self.endpoint)
            # PUB drops messages until subscribers finish joining
            if self.settings.connect_settle_ms:
                time.sleep(self.settings.connect_settle_ms / 1000.0)
            self._connected = True
            logger.info(f"Motion channel {'bound' if self.settings.bind else 'connected'} on {self.endpoint}")
            self.bus.publish(Event(
                type=EventType.CHANNEL_CONNECTED,
                data={"mode": "zmq", "endpoint": self.endpoint},
                source="zmq_channel"
            ))
            return True
        except zmq.ZMQError as e:
            self.last_error = str(e)
            logger.error(f"Motion channel failed to open {self.endpoint}: {e}")
            self._close()
            self.bus.publish(Event(
                type=EventType.CHANNEL_ERROR,
                data={"endpoint": self.endpoint, "error": self.last_error},
                source="zmq_channel"
            ))
            return False

    def disconnect(self) -> None:
        """Close the socket and context."""
        was_connected = self._connected
        self._close()
        if was_connected:
            logger.info("Motion channel closed")
            self.bus.publish(Event(
                type=EventType.CHANNEL_DISCONNECTED,
                source="zmq_channel"
            ))

    def _close(self) -> None:
        with self._lock:
            if self._socket:
                self._socket.close()
                self._socket = None
            if self._context:
                self._context.term()
                self._context = None
            self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    def publish_gesture(self, name: str) -> None:
        self._send(encode_gesture(self.settings.arm_topic, name))

    def publish_velocity(self, linear: Vector3, angular: Vector3) -> None:
        self._send(encode_twist(self.settings.cmd_vel_topic, linear, angular))

    def _send(self, frames: list[bytes]) -> None:
        with self._lock:
            if not self._connected or self._socket is None:
                raise PublishError("Motion channel is not connected")
            try:
                self._socket.send_multipart(frames, flags=zmq.NOBLOCK)
            except zmq.ZMQError as e:
                self.last_error = str(e)
                raise PublishError(f"Send on {frames[0].decode('utf-8')} failed: {e}") from e
