"""Timing policy: how long the executor holds each block.

All durations are wall-clock seconds after ``TimingSettings.time_scale``
is applied.
"""

import math
from collections.abc import Iterable

from ..core.config import ArmTimingMode, TimingSettings
from ..core.types import Block, BlockKind
from .risk import is_transition_risky


class TimingPolicy:
    """Resolves per-block durations from settings and block params.

    Arm blocks support two conventions: FIXED waits the category constant
    after every gesture, PARAMETRIZED honours a per-block ``time`` param and
    falls back to the constant.
    """

    def __init__(self, settings: TimingSettings | None = None):
        self.settings = settings or TimingSettings()

    def _scaled(self, seconds: float) -> float:
        return seconds * self.settings.time_scale

    # ── fixed pauses ────────────────────────────────────────

    @property
    def interlock_s(self) -> float:
        return self._scaled(self.settings.interlock_ms / 1000.0)

    @property
    def repeat_pause_s(self) -> float:
        return self._scaled(self.settings.repeat_pause_ms / 1000.0)

    @property
    def arm_settle_s(self) -> float:
        return self._scaled(self.settings.arm_settle_ms / 1000.0)

    @property
    def publish_interval_s(self) -> float:
        return self._scaled(self.settings.publish_interval_ms / 1000.0)

    # ── per-block durations ─────────────────────────────────

    def arm_wait_s(self, block: Block) -> float:
        fixed = self.settings.arm_wait_ms / 1000.0
        if self.settings.arm_mode == ArmTimingMode.PARAMETRIZED:
            return self._scaled(block.params.get("time", fixed))
        return self._scaled(fixed)

    def move_duration_s(self, block: Block) -> float:
        return self._scaled(block.params.get("duration", self.settings.move_default_s))

    def turn_duration_s(self, block: Block) -> float:
        """Time to hold the turn command for the requested angle.

        The commanded rate plus a slip correction gives the effective
        rotation rate observed on the robot.
        """
        angle_rad = math.radians(block.params.get("angle", 90.0))
        rate = self.settings.angular_speed + self.settings.slip_correction
        return self._scaled(angle_rad / rate)

    def delay_s(self, block: Block) -> float:
        return self._scaled(block.params.get("seconds", 1.0))

    def linear_speed(self, block: Block) -> float:
        """Commanded linear speed (m/s), unscaled."""
        return block.params.get("speed", self.settings.linear_speed)

    @property
    def angular_speed(self) -> float:
        """Commanded turn rate (rad/s), unscaled."""
        return self.settings.angular_speed

    def turn_publish_count(self, block: Block) -> int:
        """Number of velocity publishes during a turn."""
        duration = self.turn_duration_s(block)
        if duration <= 0:
            return 0
        return math.ceil(round(duration / self.publish_interval_s, 9))

    def duration_s(self, block: Block) -> float:
        """Time the executor waits after issuing ``block``'s command.

        Repeat blocks are not directly timed; their estimate is returned.
        """
        if block.kind == BlockKind.ARM:
            return self.arm_wait_s(block)
        if block.kind == BlockKind.WHEEL:
            action = block.wheel_action
            if action is not None and action.is_angular:
                return self.turn_duration_s(block)
            return self.move_duration_s(block)
        if block.kind == BlockKind.DELAY:
            return self.delay_s(block)
        return self.estimate_s([block])

    # ── whole-program estimate ──────────────────────────────

    def estimate_s(self, program: Iterable[Block]) -> float:
        """Expected wall-clock time of a full run, interlocks included."""
        seconds, _ = self._sequence_estimate(list(program), None, in_loop=False)
        return seconds

    def _block_cost(self, block: Block) -> float:
        if block.kind == BlockKind.WHEEL:
            action = block.wheel_action
            if action is not None and action.is_angular:
                return self.turn_duration_s(block) + self.publish_interval_s
            return self.move_duration_s(block)
        return self.duration_s(block)

    def _sequence_estimate(
        self, blocks: list[Block], previous: Block | None, *, in_loop: bool
    ) -> tuple[float, Block | None]:
        total = 0.0
        for block in blocks:
            if block.kind == BlockKind.REPEAT:
                total += self._repeat_estimate(block)
                continue
            if block.kind == BlockKind.WHEEL:
                if is_transition_risky(previous, block):
                    total += self.interlock_s
                previous = block
            total += self._block_cost(block)
            if in_loop and block.kind == BlockKind.ARM:
                total += self.arm_settle_s
        return total, previous

    def _repeat_estimate(self, block: Block) -> float:
        times = int(block.params.get("times", 1))
        if times <= 0:
            return 0.0
        first, last = self._sequence_estimate(block.children, None, in_loop=True)
        later, _ = self._sequence_estimate(block.children, last, in_loop=True)
        return first + (times - 1) * (later + self.repeat_pause_s)
