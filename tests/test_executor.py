"""Sequence executor: ordering, timing, interlocks, loops, cancellation and failures."""

import threading
import time

import pytest

from cento.core.config import TimingSettings
from cento.core.errors import ChannelUnavailableError, ExecutorBusyError, ProgramValidationError
from cento.core.events import EventType
from cento.core.types import CommandType, ExecutorState, RunStatus
from cento.execution import SequenceExecutor, TimingPolicy
from cento.motion import MockMotionChannel

from .helpers import arm, delay, repeat, wait_for, wheel


def _velocity(channel):
    return [c for c in channel.commands if c.type == CommandType.VELOCITY]


# ─────────────────────────────────────────────────────────────
# ORDERING AND TIMING
# ─────────────────────────────────────────────────────────────


def test_move_then_turn_end_to_end(executor, channel, timing, bus):
    program = [wheel("MoveForward", duration=2), wheel("TurnLeft", angle=90)]

    outcome = executor.run(program)

    assert outcome.status == RunStatus.COMPLETED
    commands = channel.commands
    turns = timing.turn_publish_count(program[1])

    assert commands[0].linear.x == pytest.approx(0.3)
    assert commands[0].angular.is_zero
    assert commands[1].is_stop
    assert all(c.angular.z == pytest.approx(0.3) and c.linear.is_zero for c in commands[2:2 + turns])
    assert commands[2 + turns].is_stop
    assert len(commands) == turns + 3
    assert outcome.commands_published == len(commands)
    assert outcome.blocks_executed == 2

    # Forward held for its duration, then the axis-switch interlock before turning
    held = commands[1].timestamp - commands[0].timestamp
    gap = commands[2].timestamp - commands[1].timestamp
    assert held >= 0.9 * timing.move_duration_s(program[0])
    assert gap >= 0.9 * timing.interlock_s
    assert len(bus.events_of(EventType.INTERLOCK_INSERTED)) == 1


def test_move_then_turn_total_time(channel, bus):
    timing = TimingPolicy(TimingSettings(time_scale=0.1))
    executor = SequenceExecutor(channel, timing, bus)
    program = [wheel("MoveForward", duration=2), wheel("TurnLeft", angle=90)]

    outcome = executor.run(program)

    commands = channel.commands
    turns = timing.turn_publish_count(program[1])
    turn_s = timing.turn_duration_s(program[1])
    expected = (
        timing.move_duration_s(program[0])
        + timing.interlock_s
        + turn_s
        + timing.publish_interval_s
    )

    assert outcome.completed
    # Turn held for the computed rotation time before its stop
    assert commands[2 + turns].timestamp - commands[2].timestamp >= 0.9 * turn_s
    # One publish interval of settle after the stop
    assert outcome.elapsed_s - (commands[2 + turns].timestamp - commands[0].timestamp) >= 0.9 * timing.publish_interval_s
    assert 0.95 * expected <= outcome.elapsed_s < expected + 0.25


def test_backward_and_right_use_negative_sign(executor, channel):
    executor.run([wheel("MoveBackward", duration=0.5), wheel("TurnRight", angle=10)])

    moving = [c for c in _velocity(channel) if not c.is_stop]
    assert moving[0].linear.x == pytest.approx(-0.3)
    assert moving[-1].angular.z == pytest.approx(-0.3)


def test_move_speed_param_is_used(executor, channel):
    executor.run([wheel("MoveForward", speed=0.15, duration=0.5)])
    assert channel.commands[0].linear.x == pytest.approx(0.15)


def test_same_direction_has_no_interlock(executor, bus):
    executor.run([wheel("MoveForward", duration=0.5), wheel("MoveForward", duration=0.5)])
    assert bus.events_of(EventType.INTERLOCK_INSERTED) == []


def test_arm_and_delay_do_not_break_risk_chain(executor, bus):
    executor.run([wheel("MoveForward", duration=0.5), arm("Hi"), delay(0.5), wheel("MoveBackward", duration=0.5)])
    assert len(bus.events_of(EventType.INTERLOCK_INSERTED)) == 1


def test_gesture_and_delay_publish_nothing_but_the_gesture(executor, channel):
    outcome = executor.run([arm("Namaste"), delay(1)])

    assert channel.gestures == ["Namaste"]
    assert len(channel.commands) == 1
    assert outcome.blocks_executed == 2


def test_empty_program_completes_immediately(executor, channel):
    outcome = executor.run([])
    assert outcome.completed
    assert channel.commands == []


def test_run_emits_lifecycle_events(executor, bus):
    executor.run([arm("Hi")])

    types = [e.type for e in bus.get_event_log(limit=50)]
    assert types.index(EventType.RUN_STARTED) < types.index(EventType.BLOCK_STARTED)
    assert types.index(EventType.COMMAND_PUBLISHED) < types.index(EventType.BLOCK_FINISHED)
    assert types[-1] == EventType.RUN_COMPLETED


# ─────────────────────────────────────────────────────────────
# REPEAT
# ─────────────────────────────────────────────────────────────


@pytest.fixture
def loop_executor(channel, bus):
    """Zero waits except a 50 ms pause between iterations."""
    settings = TimingSettings(arm_wait_ms=0, arm_settle_ms=0, repeat_pause_ms=50)
    return SequenceExecutor(channel, TimingPolicy(settings), bus)


def test_repeat_zero_times_issues_nothing(loop_executor, channel):
    outcome = loop_executor.run([repeat(0, wheel("MoveForward"), arm("Hi"))])

    assert outcome.completed
    assert channel.commands == []
    assert outcome.blocks_executed == 0
    assert outcome.elapsed_s < 0.04


def test_repeat_three_times_pauses_twice(loop_executor, channel):
    outcome = loop_executor.run([repeat(3, arm("Hi"))])

    assert channel.gestures == ["Hi", "Hi", "Hi"]
    assert outcome.blocks_executed == 3
    # Two 50 ms pauses, not three
    assert 0.09 <= outcome.elapsed_s < 0.145
    gaps = [b.timestamp - a.timestamp for a, b in zip(channel.commands, channel.commands[1:])]
    assert all(g >= 0.045 for g in gaps)


def test_nested_repeat_multiplies(loop_executor, channel):
    loop_executor.run([repeat(2, repeat(3, arm("Hi")))])
    assert len(channel.gestures) == 6


def test_empty_repeat_body_is_noop(loop_executor, channel):
    outcome = loop_executor.run([repeat(3)])
    assert outcome.completed
    assert channel.commands == []


def test_loop_chain_interlocks_across_iterations(executor, bus):
    # Backward at the end of pass 1 -> forward at the start of pass 2
    executor.run([repeat(2, wheel("MoveForward", duration=0.5), wheel("MoveBackward", duration=0.5))])
    assert len(bus.events_of(EventType.INTERLOCK_INSERTED)) == 3


def test_loop_body_chain_is_independent_of_parent(executor, bus):
    # Parent forward -> loop body backward: no shared predecessor
    executor.run([wheel("MoveForward", duration=0.5), repeat(1, wheel("MoveBackward", duration=0.5))])
    assert bus.events_of(EventType.INTERLOCK_INSERTED) == []


def test_arm_settle_inside_loop_only(channel, bus):
    settings = TimingSettings(arm_wait_ms=0, arm_settle_ms=60, repeat_pause_ms=0)
    executor = SequenceExecutor(channel, TimingPolicy(settings), bus)

    top_level = executor.run([arm("Hi")])
    in_loop = executor.run([repeat(1, arm("Hi"))])

    assert top_level.elapsed_s < 0.04
    assert in_loop.elapsed_s >= 0.055


# ─────────────────────────────────────────────────────────────
# CANCELLATION
# ─────────────────────────────────────────────────────────────


def test_pre_cancelled_run_publishes_nothing(executor, channel):
    token = threading.Event()
    token.set()

    outcome = executor.run([wheel("MoveForward"), arm("Hi")], cancel_event=token)

    assert outcome.status == RunStatus.CANCELLED
    assert channel.commands == []
    assert executor.state == ExecutorState.CANCELLED


def test_cancel_mid_turn_publishes_stop(channel, bus):
    timing = TimingPolicy(TimingSettings(time_scale=0.1))
    executor = SequenceExecutor(channel, timing, bus)
    program = [wheel("TurnLeft", angle=90)]

    executor.start(program)
    assert wait_for(lambda: len(channel.commands) >= 2)
    executor.cancel()
    outcome = executor.join(timeout=2.0)

    assert outcome.status == RunStatus.CANCELLED
    assert channel.commands[-1].is_stop
    assert len(channel.stops) == 1
    assert len(channel.commands) - 1 < timing.turn_publish_count(program[0])
    assert bus.events_of(EventType.RUN_CANCELLED)


def test_cancel_during_move_stops_wheels(channel, bus):
    executor = SequenceExecutor(channel, TimingPolicy(TimingSettings()), bus)

    executor.start([wheel("MoveForward", duration=10), arm("Hi")])
    assert wait_for(lambda: len(channel.commands) == 1)
    started = time.monotonic()
    executor.cancel()
    outcome = executor.join(timeout=2.0)

    assert outcome.cancelled
    assert time.monotonic() - started < 1.0
    assert [str(c) for c in channel.commands] == ["twist lin.x=+0.30 ang.z=+0.00", "stop"]


def test_cancel_during_delay_publishes_no_stop(channel, bus):
    executor = SequenceExecutor(channel, TimingPolicy(TimingSettings()), bus)

    executor.start([arm("Hi"), delay(10)])
    assert wait_for(lambda: len(channel.commands) == 1)
    executor.cancel()
    outcome = executor.join(timeout=6.0)

    assert outcome.cancelled
    assert channel.stops == []


def test_double_cancel_equals_single(channel, bus):
    executor = SequenceExecutor(channel, TimingPolicy(TimingSettings()), bus)

    executor.start([wheel("MoveBackward", duration=10)])
    assert wait_for(lambda: len(channel.commands) == 1)
    executor.cancel()
    executor.cancel()
    outcome = executor.join(timeout=2.0)

    assert outcome.cancelled
    assert len(channel.stops) == 1
    assert len(bus.events_of(EventType.RUN_CANCELLED)) == 1


def test_cancel_when_idle_is_noop(executor, channel):
    executor.cancel()
    assert executor.state == ExecutorState.IDLE

    outcome = executor.run([arm("Hi")])
    assert outcome.completed


def test_new_run_after_cancel(channel, bus):
    executor = SequenceExecutor(channel, TimingPolicy(TimingSettings(time_scale=0.01)), bus)
    token = threading.Event()
    token.set()
    executor.run([arm("Hi")], cancel_event=token)

    outcome = executor.run([arm("Hi")])

    assert outcome.completed
    assert executor.state == ExecutorState.COMPLETED


# ─────────────────────────────────────────────────────────────
# PRECONDITIONS AND FAILURES
# ─────────────────────────────────────────────────────────────


def test_disconnected_channel_is_rejected(bus, timing):
    channel = MockMotionChannel(bus=bus)
    executor = SequenceExecutor(channel, timing, bus)

    with pytest.raises(ChannelUnavailableError):
        executor.run([arm("Hi")])
    assert executor.state == ExecutorState.IDLE
    assert bus.events_of(EventType.RUN_STARTED) == []


def test_unknown_wheel_action_fails_before_run(executor, channel):
    with pytest.raises(ProgramValidationError):
        executor.run([arm("Hi"), wheel("Fly")])
    assert channel.commands == []
    assert executor.state == ExecutorState.IDLE


def test_busy_executor_rejects_second_run(channel, bus):
    executor = SequenceExecutor(channel, TimingPolicy(TimingSettings()), bus)
    executor.start([delay(10)])
    try:
        assert executor.is_running
        with pytest.raises(ExecutorBusyError):
            executor.run([arm("Hi")])
    finally:
        executor.cancel()
        executor.join(timeout=2.0)
    assert executor.state == ExecutorState.CANCELLED


def test_publish_failure_fails_run_after_stop(bus, timing):
    channel = MockMotionChannel(fail_on=1, bus=bus)
    channel.connect()
    executor = SequenceExecutor(channel, timing, bus)

    # Attempt 0 drives forward, attempt 1 (its stop) fails, attempt 2 is the recovery stop
    outcome = executor.run([wheel("MoveForward", duration=0.5), arm("Hi")])

    assert outcome.status == RunStatus.FAILED
    assert "Injected" in outcome.reason
    assert channel.failed_attempts == 1
    assert channel.commands[-1].is_stop
    assert channel.gestures == []
    assert executor.state == ExecutorState.FAILED


def test_failed_gesture_needs_no_stop(bus, timing):
    channel = MockMotionChannel(fail_on=0, bus=bus)
    channel.connect()
    executor = SequenceExecutor(channel, timing, bus)

    outcome = executor.run([arm("Hi"), wheel("MoveForward")])

    assert outcome.failed
    assert channel.commands == []


def test_outcome_available_after_background_run(executor):
    executor.start([arm("Hi")])
    outcome = executor.join(timeout=2.0)

    assert outcome is executor.last_outcome
    assert outcome.completed
    assert not executor.is_running
