"""Structural validation of program trees."""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..core.errors import ProgramValidationError
from ..core.types import Block, BlockKind, Program, Violation
from .model import ACTIONS, PARAM_KEYS, default_params


@dataclass
class ValidationResult:
    """Outcome of validating a program.

    Attributes:
        violations: Every problem found, in depth-first order
        program: Copy of the input with category defaults filled in
    """

    violations: list[Violation] = field(default_factory=list)
    program: Program = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    def raise_for_violations(self) -> Program:
        """Return the defaulted program, or raise if anything was wrong."""
        if self.violations:
            raise ProgramValidationError(self.violations)
        return self.program


def validate(program: Iterable[Block]) -> ValidationResult:
    """Check a program tree without mutating it.

    Checks that every action is known for its kind, parameter keys are
    recognized for the kind and numeric, loop counts are non-negative
    integers, and only REPEAT blocks carry children. Missing params are
    filled with category defaults in the returned copy.

    Args:
        program: Top-level block sequence

    Returns:
        ValidationResult with violations and the defaulted copy
    """
    violations: list[Violation] = []
    normalized = [
        _check(block, f"[{i}]", violations) for i, block in enumerate(program)
    ]
    return ValidationResult(violations=violations, program=normalized)


def _check(block: Block, path: str, violations: list[Violation]) -> Block:
    try:
        kind = BlockKind(block.kind)
    except ValueError:
        violations.append(Violation(path, f"Unknown block kind '{block.kind}'"))
        return block.copy()

    if block.action not in ACTIONS[kind]:
        violations.append(Violation(path, f"Unknown action '{block.action}' for kind {kind.value}"))

    params = default_params(kind, block.action)
    for key, value in block.params.items():
        if key not in PARAM_KEYS[kind]:
            violations.append(Violation(path, f"Parameter '{key}' is not recognized for kind {kind.value}"))
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            violations.append(Violation(path, f"Parameter '{key}' must be a finite number, got {value!r}"))
            continue
        if value < 0:
            violations.append(Violation(path, f"Parameter '{key}' must be non-negative, got {value:g}"))
            continue
        params[key] = float(value)

    if kind == BlockKind.REPEAT:
        times = params.get("times", 0.0)
        if not float(times).is_integer():
            violations.append(Violation(path, f"Repeat count must be a whole number, got {times:g}"))
    elif block.children:
        violations.append(Violation(path, f"Only Repeat blocks may have children ({kind.value} has {len(block.children)})"))

    children = [
        _check(child, f"{path}.children[{i}]", violations)
        for i, child in enumerate(block.children)
    ]
    return Block(kind=kind, action=block.action, params=params, children=children)
