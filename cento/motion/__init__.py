"""Motion channel adapters."""

from ..core.config import ChannelMode, ChannelSettings
from .interface import MotionChannelInterface
from .mock import MockMotionChannel
from .zmq_channel import ZmqMotionChannel, decode_message, encode_gesture, encode_twist, payload_to_command


def create_channel(settings: ChannelSettings) -> MotionChannelInterface:
    """Build the channel selected by settings."""
    if settings.mode == ChannelMode.ZMQ:
        return ZmqMotionChannel(settings)
    return MockMotionChannel()


__all__ = [
    "MockMotionChannel",
    "MotionChannelInterface",
    "ZmqMotionChannel",
    "create_channel",
    "decode_message",
    "encode_gesture",
    "encode_twist",
    "payload_to_command",
]
