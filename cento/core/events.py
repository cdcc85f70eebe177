"""
Event definitions for the Cento block-program runner.

Events enable loose coupling between modules.
Modules publish events without knowing who consumes them.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class EventType(Enum):
    """Types of events in the system."""

    # Channel events
    CHANNEL_CONNECTED = auto()
    CHANNEL_DISCONNECTED = auto()
    COMMAND_PUBLISHED = auto()
    CHANNEL_ERROR = auto()

    # Run events
    RUN_STARTED = auto()
    BLOCK_STARTED = auto()
    BLOCK_FINISHED = auto()
    INTERLOCK_INSERTED = auto()
    RUN_COMPLETED = auto()
    RUN_CANCELLED = auto()
    RUN_FAILED = auto()

    # Program events
    PROGRAM_SAVED = auto()
    PROGRAM_DELETED = auto()

    # Discovery events
    ROBOT_FOUND = auto()
    ROBOT_NOT_FOUND = auto()


@dataclass
class Event:
    """
    Base event structure.

    Attributes:
        type: The type of event
        data: Event-specific payload
        timestamp: When the event was created
        source: Which module created the event
    """

    type: EventType
    data: Any = None
    timestamp: float = field(default_factory=time.time)
    source: str = "unknown"

    def __str__(self) -> str:
        return f"[{self.source}] {self.type.name}: {self.data}"
