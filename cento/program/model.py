"""Block catalog and conversion between program trees and JSON-like dicts.

The loader is the editing boundary: parameter values are clamped into
their valid ranges here, never by the executor.
"""

import re
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from ..core.errors import ProgramValidationError
from ..core.types import ArmGesture, Block, BlockKind, Program, Violation, WheelAction


# ─────────────────────────────────────────────────────────────
# CATALOG
# ─────────────────────────────────────────────────────────────

DELAY_ACTION = "Delay"
REPEAT_ACTION = "Repeat"

ACTIONS: dict[BlockKind, frozenset[str]] = {
    BlockKind.ARM: frozenset(g.value for g in ArmGesture),
    BlockKind.WHEEL: frozenset(a.value for a in WheelAction),
    BlockKind.DELAY: frozenset({DELAY_ACTION}),
    BlockKind.REPEAT: frozenset({REPEAT_ACTION}),
}

PARAM_KEYS: dict[BlockKind, frozenset[str]] = {
    BlockKind.ARM: frozenset({"time"}),
    BlockKind.WHEEL: frozenset({"speed", "angle", "duration"}),
    BlockKind.DELAY: frozenset({"seconds"}),
    BlockKind.REPEAT: frozenset({"times"}),
}

# Inclusive (min, max) per parameter
PARAM_RANGES: dict[str, tuple[float, float]] = {
    "speed": (0.1, 0.3),
    "angle": (1.0, 360.0),
    "duration": (0.1, 60.0),
    "seconds": (0.1, 60.0),
    "time": (0.1, 60.0),
    "times": (0.0, 100.0),
}

BLOCK_COLORS: dict[BlockKind, str] = {
    BlockKind.ARM: "purple",
    BlockKind.WHEEL: "blue",
    BlockKind.DELAY: "amber",
    BlockKind.REPEAT: "amber",
}

_KIND_ALIASES = {
    "arm": BlockKind.ARM,
    "hand": BlockKind.ARM,
    "wheel": BlockKind.WHEEL,
    "delay": BlockKind.DELAY,
    "repeat": BlockKind.REPEAT,
}


def default_params(kind: BlockKind, action: str) -> dict[str, float]:
    """Category defaults filled in when a block omits a required param."""
    if kind == BlockKind.WHEEL:
        if action in (WheelAction.TURN_LEFT.value, WheelAction.TURN_RIGHT.value):
            return {"angle": 90.0}
        return {"speed": 0.3}
    if kind == BlockKind.DELAY:
        return {"seconds": 1.0}
    if kind == BlockKind.REPEAT:
        return {"times": 1.0}
    return {}


def canonical_action(name: str) -> str:
    """Map editor labels ("Move Forward", "move_forward") to catalog names."""
    raw = (name or "").strip()
    compact = re.sub(r"[\s_\-]+", "", raw).lower()
    for names in ACTIONS.values():
        for candidate in names:
            if candidate.lower() == compact:
                return candidate
    return raw


def display_label(action: str) -> str:
    """Editor label for an action ("MoveForward" -> "Move Forward")."""
    if action in ACTIONS[BlockKind.WHEEL]:
        return re.sub(r"(?<=[a-z])(?=[A-Z])", " ", action)
    return action


def kind_for(category: str | None, action: str) -> BlockKind | None:
    """Resolve a block kind from a category label and action name.

    The editor files Delay and Repeat under a shared "control" category,
    so control blocks are resolved by action.
    """
    if action == DELAY_ACTION:
        return BlockKind.DELAY
    if action == REPEAT_ACTION:
        return BlockKind.REPEAT

    key = (category or "").strip().lower()
    if key in _KIND_ALIASES:
        return _KIND_ALIASES[key]
    if key in ("", "control"):
        for kind, names in ACTIONS.items():
            if action in names:
                return kind
    return None


def clamp_param(name: str, value: float) -> float:
    """Clamp a parameter into its valid range (unknown names pass through)."""
    bounds = PARAM_RANGES.get(name)
    if bounds is None:
        return value
    low, high = bounds
    clamped = min(max(value, low), high)
    if name == "times":
        clamped = float(int(round(clamped)))
    return clamped


# ─────────────────────────────────────────────────────────────
# DICT <-> BLOCK
# ─────────────────────────────────────────────────────────────


def load_program(data: Any, *, clamp: bool = True) -> Program:
    """Build a program from a list of block dicts.

    Also accepts ``{"blocks": [...]}`` / ``{"program": [...]}`` wrappers.

    Raises:
        ProgramValidationError: On unresolved kinds or non-numeric params
    """
    if isinstance(data, Mapping):
        for key in ("program", "blocks", "sequence"):
            if key in data:
                data = data[key]
                break
    if not isinstance(data, list):
        raise ProgramValidationError(
            [Violation(path="", message=f"Program must be a list of blocks, got {type(data).__name__}")]
        )

    problems: list[Violation] = []
    program = [
        _build(item, clamp=clamp, path=f"[{i}]", problems=problems)
        for i, item in enumerate(data)
    ]
    if problems:
        raise ProgramValidationError(problems)
    return program


def _build(data: Any, *, clamp: bool, path: str, problems: list) -> Block:
    if not isinstance(data, Mapping):
        problems.append(Violation(path=path, message=f"Block must be an object, got {type(data).__name__}"))
        return Block(kind=BlockKind.DELAY, action=DELAY_ACTION)

    action = canonical_action(str(data.get("action") or data.get("type") or ""))
    category = data.get("kind") or data.get("category")
    kind = kind_for(str(category) if category is not None else None, action)
    if kind is None:
        problems.append(Violation(path=path, message=f"Unknown block kind '{category}' for action '{action}'"))
        kind = BlockKind.DELAY

    params: dict[str, float] = {}
    for key, value in (data.get("params") or {}).items():
        try:
            number = float(value)
        except (TypeError, ValueError):
            problems.append(Violation(path=path, message=f"Parameter '{key}' is not a number: {value!r}"))
            continue
        params[str(key)] = clamp_param(str(key), number) if clamp else number

    children = [
        _build(child, clamp=clamp, path=f"{path}.children[{i}]", problems=problems)
        for i, child in enumerate(data.get("children") or [])
    ]
    return Block(kind=kind, action=action, params=params, children=children)


def block_to_dict(block: Block) -> dict[str, Any]:
    """Serialize a block (and its subtree) to a JSON-ready dict."""
    data: dict[str, Any] = {
        "kind": block.kind.value,
        "action": block.action,
        "params": dict(block.params),
    }
    if block.kind == BlockKind.REPEAT:
        data["children"] = [block_to_dict(child) for child in block.children]
    return data


def program_to_list(program: Iterable[Block]) -> list[dict[str, Any]]:
    return [block_to_dict(b) for b in program]


# ─────────────────────────────────────────────────────────────
# TREE HELPERS
# ─────────────────────────────────────────────────────────────


def walk(program: Iterable[Block]) -> Iterator[Block]:
    """Depth-first, left-to-right iteration over every block."""
    for block in program:
        yield block
        yield from walk(block.children)


def count_blocks(program: Iterable[Block]) -> int:
    """Number of blocks in the tree (loops counted once)."""
    return sum(1 for _ in walk(program))
