"""Transition risk policy."""

import pytest

from cento.core.types import WheelAction
from cento.execution.risk import is_action_pair_risky, is_transition_risky

from .helpers import arm, delay, wheel


F = WheelAction.MOVE_FORWARD
B = WheelAction.MOVE_BACKWARD
L = WheelAction.TURN_LEFT
R = WheelAction.TURN_RIGHT

# (previous, current) -> risky
MATRIX = {
    (F, F): False, (F, B): True, (F, L): True, (F, R): True,
    (B, F): True, (B, B): False, (B, L): True, (B, R): True,
    (L, F): True, (L, B): True, (L, L): False, (L, R): True,
    (R, F): True, (R, B): True, (R, L): True, (R, R): False,
}


def test_matrix_is_exhaustive():
    assert set(MATRIX) == {(p, c) for p in WheelAction for c in WheelAction}


@pytest.mark.parametrize(("previous", "current"), sorted(MATRIX, key=lambda k: (k[0].value, k[1].value)))
def test_action_pair(previous, current):
    assert is_action_pair_risky(previous, current) is MATRIX[(previous, current)]


@pytest.mark.parametrize(("previous", "current"), list(MATRIX))
def test_block_pair_matches_action_pair(previous, current):
    assert is_transition_risky(wheel(previous.value), wheel(current.value)) is MATRIX[(previous, current)]


def test_first_wheel_block_is_never_risky():
    assert is_transition_risky(None, wheel("MoveBackward")) is False


def test_arm_and_control_blocks_are_exempt():
    assert is_transition_risky(wheel("MoveForward"), arm("Hi")) is False
    assert is_transition_risky(arm("Hi"), wheel("TurnLeft")) is False
    assert is_transition_risky(wheel("TurnLeft"), delay(1)) is False


def test_unknown_wheel_action_is_not_classified():
    assert is_transition_risky(wheel("MoveForward"), wheel("Fly")) is False
