"""Transition risk between consecutive wheel motions.

Reversing direction, or switching between translation and rotation, with
no settling time jerks a differential-drive base. The executor inserts an
interlock pause before such a transition.
"""

from ..core.types import Block, WheelAction


_REVERSALS = {
    (WheelAction.MOVE_FORWARD, WheelAction.MOVE_BACKWARD),
    (WheelAction.MOVE_BACKWARD, WheelAction.MOVE_FORWARD),
    (WheelAction.TURN_LEFT, WheelAction.TURN_RIGHT),
    (WheelAction.TURN_RIGHT, WheelAction.TURN_LEFT),
}


def is_action_pair_risky(previous: WheelAction, current: WheelAction) -> bool:
    """Same-axis reversal or linear/angular axis switch."""
    if (previous, current) in _REVERSALS:
        return True
    return previous.is_linear != current.is_linear


def is_transition_risky(previous: Block | None, current: Block | None) -> bool:
    """Decide whether an interlock must precede ``current``.

    Args:
        previous: Most recently executed wheel block at the same level, or
            None if ``current`` is the first
        current: Block about to execute

    Returns:
        True if an interlock delay is required. Arm and control blocks are
        never subject to the policy.
    """
    if previous is None or current is None:
        return False
    prev_action = previous.wheel_action
    curr_action = current.wheel_action
    if prev_action is None or curr_action is None:
        return False
    return is_action_pair_risky(prev_action, curr_action)
