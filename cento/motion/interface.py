"""Abstract interface for the robot motion channel."""

from abc import ABC, abstractmethod

from ..core.types import ZERO, Vector3


class MotionChannelInterface(ABC):
    """Publish-only connection to the robot.

    Implementations can be mock (for testing) or real (ZeroMQ bridge).
    Publishing is fire-and-forget: no acknowledgement is awaited. A failed
    send raises ``PublishError``.
    """

    @abstractmethod
    def connect(self) -> bool:
        """Open the channel.

        Returns:
            True if connection succeeded
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close the channel."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the channel is open."""
        pass

    @abstractmethod
    def publish_gesture(self, name: str) -> None:
        """Send a named arm gesture.

        Args:
            name: Gesture name (e.g. "Hi")
        """
        pass

    @abstractmethod
    def publish_velocity(self, linear: Vector3, angular: Vector3) -> None:
        """Send a velocity twist.

        Args:
            linear: Linear velocity (m/s)
            angular: Angular velocity (rad/s)
        """
        pass

    def publish_stop(self) -> None:
        """Send a zero-velocity twist."""
        self.publish_velocity(ZERO, ZERO)
