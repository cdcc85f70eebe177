"""Sequence executor: runs a block program against the motion channel.

The executor walks the program depth-first, left to right, one block at a
time. Every wait goes through the run's cancellation token, so ``cancel()``
is observed at each block boundary, on every republish tick of a turn, and
inside every timed wait. Whenever a wheel motion is in flight when the run
unwinds (cancel or failure) a zero-velocity stop is published first.
"""

import logging
import threading
import time
from dataclasses import dataclass, field

from ..core.bus import EventBus, get_event_bus
from ..core.errors import ChannelUnavailableError, ExecutorBusyError, PublishError
from ..core.events import Event, EventType
from ..core.types import (
    ZERO,
    Block,
    BlockKind,
    ExecutorState,
    Program,
    RunOutcome,
    RunStatus,
    Vector3,
)
from ..motion.interface import MotionChannelInterface
from ..program.validation import validate
from .risk import is_transition_risky
from .timing import TimingPolicy


logger = logging.getLogger(__name__)


class _RunCancelled(Exception):
    """Unwinds the traversal once the cancellation token is set."""


@dataclass
class _RunContext:
    """Mutable bookkeeping for one run."""

    token: threading.Event
    started: float = field(default_factory=time.monotonic)
    blocks_executed: int = 0
    commands_published: int = 0
    wheel_active: bool = False

    def outcome(self, status: RunStatus, reason: str | None = None) -> RunOutcome:
        return RunOutcome(
            status=status,
            reason=reason,
            blocks_executed=self.blocks_executed,
            commands_published=self.commands_published,
            elapsed_s=time.monotonic() - self.started,
        )


class SequenceExecutor:
    """Cancellable interpreter for block programs.

    State machine: IDLE -> RUNNING -> {COMPLETED, CANCELLED, FAILED}. A new
    run may start from IDLE or any terminal state; a call while RUNNING is
    rejected.

    Usage:
        executor = SequenceExecutor(channel)
        outcome = executor.run(program)          # blocking
        executor.start(program); executor.cancel(); executor.join()
    """

    def __init__(
        self,
        channel: MotionChannelInterface,
        timing: TimingPolicy | None = None,
        bus: EventBus | None = None,
    ):
        """Initialize executor.

        Args:
            channel: Motion channel (must be connected before each run)
            timing: Timing policy (defaults from TimingSettings if None)
            bus: Event bus (uses global if None)
        """
        self.channel = channel
        self.timing = timing or TimingPolicy()
        self.bus = bus or get_event_bus()
        self._state = ExecutorState.IDLE
        self._state_lock = threading.Lock()
        self._token: threading.Event | None = None
        self._worker: threading.Thread | None = None
        self._last_outcome: RunOutcome | None = None

    # ─────────────────────────────────────────────────────────────
    # PUBLIC API
    # ─────────────────────────────────────────────────────────────

    @property
    def state(self) -> ExecutorState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ExecutorState.RUNNING

    @property
    def last_outcome(self) -> RunOutcome | None:
        return self._last_outcome

    def run(self, program: Program, cancel_event: threading.Event | None = None) -> RunOutcome:
        """Run a program to completion, cancellation or failure.

        Args:
            program: Top-level block sequence
            cancel_event: Optional cancellation token owned by the caller;
                ``cancel()`` sets the same token

        Returns:
            RunOutcome with COMPLETED, CANCELLED or FAILED status

        Raises:
            ExecutorBusyError: If a run is already in progress
            ProgramValidationError: If the program is malformed
            ChannelUnavailableError: If the channel is not connected
        """
        normalized, token = self._begin(program, cancel_event)
        return self._execute(normalized, token)

    def start(self, program: Program, cancel_event: threading.Event | None = None) -> None:
        """Run a program on a background thread.

        Preconditions are checked synchronously and raise the same errors
        as ``run``. Use ``join()`` to collect the outcome.
        """
        normalized, token = self._begin(program, cancel_event)
        self._worker = threading.Thread(
            target=self._execute, args=(normalized, token), daemon=True, name="CentoRun"
        )
        self._worker.start()

    def join(self, timeout: float | None = None) -> RunOutcome | None:
        """Wait for a background run; returns None if still running."""
        if self._worker is not None:
            self._worker.join(timeout=timeout)
            if self._worker.is_alive():
                return None
            self._worker = None
        return self._last_outcome

    def cancel(self) -> None:
        """Request cooperative termination of the current run.

        Idempotent; a no-op when nothing is running.
        """
        with self._state_lock:
            if self._state != ExecutorState.RUNNING or self._token is None:
                return
            if not self._token.is_set():
                logger.info("[RUN] Cancel requested")
            self._token.set()

    # ─────────────────────────────────────────────────────────────
    # RUN LIFECYCLE
    # ─────────────────────────────────────────────────────────────

    def _begin(
        self, program: Program, cancel_event: threading.Event | None
    ) -> tuple[Program, threading.Event]:
        normalized = validate(program).raise_for_violations()
        if not self.channel.is_connected():
            raise ChannelUnavailableError("Motion channel is not connected")

        token = cancel_event or threading.Event()
        with self._state_lock:
            if not (self._state == ExecutorState.IDLE or self._state.is_terminal):
                raise ExecutorBusyError("A program is already running")
            self._state = ExecutorState.RUNNING
            self._token = token
        return normalized, token

    def _execute(self, program: Program, token: threading.Event) -> RunOutcome:
        ctx = _RunContext(token=token)
        logger.info(f"[RUN] Starting program with {len(program)} top-level blocks")
        self._emit(EventType.RUN_STARTED, {"blocks": len(program)})

        try:
            self._run_sequence(program, ctx)
            outcome = ctx.outcome(RunStatus.COMPLETED)
        except _RunCancelled:
            outcome = self._unwind(ctx, RunStatus.CANCELLED, None)
        except PublishError as e:
            logger.error(f"[RUN] Publish failed: {e}")
            outcome = self._unwind(ctx, RunStatus.FAILED, str(e))
        except Exception as e:
            logger.exception("[RUN] Unexpected error")
            outcome = self._unwind(ctx, RunStatus.FAILED, f"Unexpected error: {e}")

        self._finish(outcome)
        return outcome

    def _unwind(self, ctx: _RunContext, status: RunStatus, reason: str | None) -> RunOutcome:
        """Stop any wheel motion in flight, then build the outcome."""
        if ctx.wheel_active:
            try:
                self.channel.publish_stop()
                ctx.commands_published += 1
                ctx.wheel_active = False
                logger.info("[RUN] Published stop while unwinding")
            except PublishError as e:
                logger.error(f"[RUN] Stop command failed while unwinding: {e}")
                if status == RunStatus.CANCELLED:
                    status, reason = RunStatus.FAILED, f"Stop after cancel failed: {e}"
        return ctx.outcome(status, reason)

    def _finish(self, outcome: RunOutcome) -> None:
        with self._state_lock:
            self._state = ExecutorState[outcome.status.name]
            self._token = None
            self._last_outcome = outcome

        logger.info(f"[RUN] {outcome}")
        event_type = {
            RunStatus.COMPLETED: EventType.RUN_COMPLETED,
            RunStatus.CANCELLED: EventType.RUN_CANCELLED,
            RunStatus.FAILED: EventType.RUN_FAILED,
        }[outcome.status]
        self._emit(event_type, outcome)

    # ─────────────────────────────────────────────────────────────
    # TRAVERSAL
    # ─────────────────────────────────────────────────────────────

    def _run_sequence(
        self,
        blocks: list[Block],
        ctx: _RunContext,
        previous_wheel: Block | None = None,
        *,
        in_loop: bool = False,
    ) -> Block | None:
        """Run one sequence level; returns its last executed wheel block."""
        for block in blocks:
            self._check_cancel(ctx)
            previous_wheel = self._run_block(block, previous_wheel, ctx)
            if in_loop and block.kind == BlockKind.ARM:
                self._wait(ctx, self.timing.arm_settle_s)
        return previous_wheel

    def _run_block(self, block: Block, previous_wheel: Block | None, ctx: _RunContext) -> Block | None:
        if block.kind == BlockKind.REPEAT:
            self._run_repeat(block, ctx)
            return previous_wheel

        logger.info(f"[RUN] {block.kind.value}: {block}")
        self._emit(EventType.BLOCK_STARTED, {"block": str(block), "kind": block.kind.value})

        if block.kind == BlockKind.DELAY:
            self._wait(ctx, self.timing.delay_s(block))
        elif block.kind == BlockKind.ARM:
            self._run_arm(block, ctx)
        elif block.kind == BlockKind.WHEEL:
            if is_transition_risky(previous_wheel, block):
                self._interlock(previous_wheel, block, ctx)
            self._run_wheel(block, ctx)
            previous_wheel = block
        else:
            raise ValueError(f"Unhandled block kind: {block.kind}")

        ctx.blocks_executed += 1
        self._emit(EventType.BLOCK_FINISHED, {"block": str(block), "kind": block.kind.value})
        return previous_wheel

    def _run_repeat(self, block: Block, ctx: _RunContext) -> None:
        times = int(block.params.get("times", 1))
        logger.info(f"[RUN] repeat: {times} iteration(s) of {len(block.children)} block(s)")

        # Loop bodies keep their own predecessor chain across iterations
        last_wheel: Block | None = None
        for i in range(times):
            if i > 0:
                logger.debug("[RUN] Pause between iterations")
                self._wait(ctx, self.timing.repeat_pause_s)
            self._check_cancel(ctx)
            logger.debug(f"[RUN] Iteration {i + 1}/{times}")
            last_wheel = self._run_sequence(block.children, ctx, last_wheel, in_loop=True)

    def _run_arm(self, block: Block, ctx: _RunContext) -> None:
        self.channel.publish_gesture(block.action)
        self._count_publish(ctx, f"gesture {block.action}")
        self._wait(ctx, self.timing.arm_wait_s(block))

    def _interlock(self, previous: Block, current: Block, ctx: _RunContext) -> None:
        seconds = self.timing.interlock_s
        logger.info(f"[RUN] Interlock {seconds:.2f}s: {previous.action} -> {current.action}")
        self._emit(EventType.INTERLOCK_INSERTED, {
            "previous": previous.action,
            "current": current.action,
            "seconds": seconds,
        })
        self._wait(ctx, seconds)

    def _run_wheel(self, block: Block, ctx: _RunContext) -> None:
        action = block.wheel_action
        if action is None:
            raise ValueError(f"Unknown wheel action: {block.action}")

        if action.is_linear:
            speed = self.timing.linear_speed(block) * action.sign
            self._publish_velocity(ctx, Vector3(x=speed), ZERO)
            self._wait(ctx, self.timing.move_duration_s(block))
            self._publish_velocity(ctx, ZERO, ZERO)
            return

        # Turns need a live command stream or the robot's watchdog halts it
        duration = self.timing.turn_duration_s(block)
        interval = self.timing.publish_interval_s
        angular = Vector3(z=self.timing.angular_speed * action.sign)
        elapsed = 0.0
        while duration - elapsed > 1e-9:
            self._check_cancel(ctx)
            self._publish_velocity(ctx, ZERO, angular)
            step = min(interval, duration - elapsed)
            self._wait(ctx, step)
            elapsed += step
        self._publish_velocity(ctx, ZERO, ZERO)
        self._wait(ctx, interval)

    # ─────────────────────────────────────────────────────────────
    # HELPERS
    # ─────────────────────────────────────────────────────────────

    def _publish_velocity(self, ctx: _RunContext, linear: Vector3, angular: Vector3) -> None:
        is_stop = linear.is_zero and angular.is_zero
        if not is_stop:
            # Set before sending: a failed send may still have reached the robot
            ctx.wheel_active = True
        self.channel.publish_velocity(linear, angular)
        if is_stop:
            ctx.wheel_active = False
        self._count_publish(ctx, "stop" if is_stop else f"twist x={linear.x:+.2f} z={angular.z:+.2f}")

    def _count_publish(self, ctx: _RunContext, description: str) -> None:
        ctx.commands_published += 1
        logger.debug(f"[RUN] -> {description}")
        self._emit(EventType.COMMAND_PUBLISHED, description)

    def _check_cancel(self, ctx: _RunContext) -> None:
        if ctx.token.is_set():
            raise _RunCancelled()

    def _wait(self, ctx: _RunContext, seconds: float) -> None:
        """Sleep that returns early (by raising) when cancelled."""
        if seconds <= 0:
            self._check_cancel(ctx)
            return
        if ctx.token.wait(seconds):
            raise _RunCancelled()

    def _emit(self, event_type: EventType, data) -> None:
        self.bus.publish(Event(type=event_type, data=data, source="sequence_executor"))
