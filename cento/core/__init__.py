"""Core infrastructure for the Cento block-program runner."""

from .bus import EventBus, get_event_bus, reset_event_bus
from .config import (
    ArmTimingMode,
    ChannelMode,
    ChannelSettings,
    DiscoveryMode,
    DiscoverySettings,
    Settings,
    StoreSettings,
    TimingSettings,
    get_settings,
    reset_settings,
)
from .errors import (
    CentoError,
    ChannelUnavailableError,
    ExecutorBusyError,
    ProgramStoreError,
    ProgramValidationError,
    PublishError,
)
from .events import Event, EventType
from .types import (
    ZERO,
    ArmGesture,
    Block,
    BlockKind,
    ChannelCommand,
    CommandType,
    ExecutorState,
    Program,
    RunOutcome,
    RunStatus,
    ServiceInfo,
    Vector3,
    Violation,
    WheelAction,
)


__all__ = [
    # Config
    "get_settings",
    "reset_settings",
    "Settings",
    "ChannelMode",
    "ArmTimingMode",
    "DiscoveryMode",
    "ChannelSettings",
    "TimingSettings",
    "DiscoverySettings",
    "StoreSettings",
    # Errors
    "CentoError",
    "ProgramValidationError",
    "ChannelUnavailableError",
    "PublishError",
    "ExecutorBusyError",
    "ProgramStoreError",
    # Types
    "BlockKind",
    "WheelAction",
    "ArmGesture",
    "Block",
    "Program",
    "Vector3",
    "ZERO",
    "CommandType",
    "ChannelCommand",
    "ExecutorState",
    "RunStatus",
    "RunOutcome",
    "ServiceInfo",
    "Violation",
    # Events
    "Event",
    "EventType",
    "EventBus",
    "get_event_bus",
    "reset_event_bus",
]
