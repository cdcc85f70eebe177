"""Program execution: risk policy, timing policy and the sequence executor."""

from .executor import SequenceExecutor
from .risk import is_action_pair_risky, is_transition_risky
from .timing import TimingPolicy


__all__ = [
    "SequenceExecutor",
    "TimingPolicy",
    "is_action_pair_risky",
    "is_transition_risky",
]
