"""
Shared data types for the Cento block-program runner.

These types are the contracts between modules.
All modules communicate using these structures.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto


# ─────────────────────────────────────────────────────────────
# BLOCK TREE
# ─────────────────────────────────────────────────────────────


class BlockKind(str, Enum):
    """Closed set of block categories."""

    ARM = "arm"
    WHEEL = "wheel"
    DELAY = "delay"
    REPEAT = "repeat"


class WheelAction(str, Enum):
    """Wheel primitives."""

    MOVE_FORWARD = "MoveForward"
    MOVE_BACKWARD = "MoveBackward"
    TURN_LEFT = "TurnLeft"
    TURN_RIGHT = "TurnRight"

    @property
    def is_linear(self) -> bool:
        return self in (WheelAction.MOVE_FORWARD, WheelAction.MOVE_BACKWARD)

    @property
    def is_angular(self) -> bool:
        return self in (WheelAction.TURN_LEFT, WheelAction.TURN_RIGHT)

    @property
    def sign(self) -> float:
        """+1 for forward/left (positive x / counter-clockwise z), -1 otherwise."""
        if self in (WheelAction.MOVE_FORWARD, WheelAction.TURN_LEFT):
            return 1.0
        return -1.0


class ArmGesture(str, Enum):
    """Named arm gestures understood by the robot's arm node."""

    HI = "Hi"
    NAMASTE = "Namaste"
    LHAND_UP = "LHandUp"
    RHAND_UP = "RHandUp"
    HOME = "Home"
    HANDS_UP = "HandsUp"


@dataclass
class Block:
    """
    One instruction node in a program tree.

    Attributes:
        kind: Block category
        action: Primitive within the category (e.g. "MoveForward", "Hi")
        params: Numeric parameters (speed, angle, duration, seconds, times, time)
        children: Loop body, only meaningful for REPEAT blocks
    """

    kind: BlockKind
    action: str
    params: dict[str, float] = field(default_factory=dict)
    children: list["Block"] = field(default_factory=list)

    def __str__(self) -> str:
        if self.params:
            args = ", ".join(f"{k}={v:g}" for k, v in self.params.items())
            return f"{self.action}({args})"
        return self.action

    @property
    def wheel_action(self) -> WheelAction | None:
        """The wheel primitive, or None for non-wheel/unknown actions."""
        if self.kind != BlockKind.WHEEL:
            return None
        try:
            return WheelAction(self.action)
        except ValueError:
            return None

    def copy(self) -> "Block":
        """Create a deep copy of the block and its children."""
        return Block(
            kind=self.kind,
            action=self.action,
            params=dict(self.params),
            children=[child.copy() for child in self.children],
        )


Program = list[Block]


@dataclass(frozen=True)
class Violation:
    """One problem found in a program tree.

    Attributes:
        path: Location such as "[2].children[0]" ("" for the whole program)
        message: Human-readable description
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


# ─────────────────────────────────────────────────────────────
# MOTION COMMANDS
# ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Vector3:
    """3D vector (m/s for linear, rad/s for angular)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @property
    def is_zero(self) -> bool:
        return self.x == 0.0 and self.y == 0.0 and self.z == 0.0


ZERO = Vector3()


class CommandType(Enum):
    """Kind of command sent over the motion channel."""

    GESTURE = auto()
    VELOCITY = auto()


@dataclass
class ChannelCommand:
    """A command as it went out on the motion channel."""

    type: CommandType
    gesture: str | None = None
    linear: Vector3 = ZERO
    angular: Vector3 = ZERO
    timestamp: float = field(default_factory=time.monotonic)

    @property
    def is_stop(self) -> bool:
        """Zero-velocity twist."""
        return (
            self.type == CommandType.VELOCITY
            and self.linear.is_zero
            and self.angular.is_zero
        )

    def __str__(self) -> str:
        if self.type == CommandType.GESTURE:
            return f"gesture {self.gesture}"
        if self.is_stop:
            return "stop"
        return f"twist lin.x={self.linear.x:+.2f} ang.z={self.angular.z:+.2f}"


# ─────────────────────────────────────────────────────────────
# EXECUTION
# ─────────────────────────────────────────────────────────────


class ExecutorState(Enum):
    """Lifecycle of a sequence executor."""

    IDLE = auto()
    RUNNING = auto()
    COMPLETED = auto()
    CANCELLED = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutorState.COMPLETED, ExecutorState.CANCELLED, ExecutorState.FAILED)


class RunStatus(Enum):
    """Terminal outcome of one run."""

    COMPLETED = auto()
    CANCELLED = auto()
    FAILED = auto()


@dataclass
class RunOutcome:
    """Result of one run of a program."""

    status: RunStatus
    reason: str | None = None
    blocks_executed: int = 0
    commands_published: int = 0
    elapsed_s: float = 0.0

    @property
    def completed(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status == RunStatus.CANCELLED

    @property
    def failed(self) -> bool:
        return self.status == RunStatus.FAILED

    def __str__(self) -> str:
        text = f"{self.status.name} after {self.elapsed_s:.1f}s ({self.blocks_executed} blocks, {self.commands_published} commands)"
        if self.reason:
            text += f": {self.reason}"
        return text


# ─────────────────────────────────────────────────────────────
# DISCOVERY
# ─────────────────────────────────────────────────────────────


@dataclass
class ServiceInfo:
    """A resolved network service."""

    name: str
    host: str
    port: int
    addresses: list[str] = field(default_factory=list)

    @property
    def address(self) -> str:
        """Preferred address: first resolved IP, else the host name."""
        return self.addresses[0] if self.addresses else self.host
