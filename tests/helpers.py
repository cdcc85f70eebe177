"""Block builders and polling helpers for tests."""

import time

from cento.core.types import Block, BlockKind


def wheel(action, **params):
    return Block(kind=BlockKind.WHEEL, action=action, params=dict(params))


def arm(action, **params):
    return Block(kind=BlockKind.ARM, action=action, params=dict(params))


def delay(seconds):
    return Block(kind=BlockKind.DELAY, action="Delay", params={"seconds": seconds})


def repeat(times, *children):
    return Block(kind=BlockKind.REPEAT, action="Repeat", params={"times": times}, children=list(children))


def wait_for(predicate, timeout=2.0):
    """Poll until predicate() is truthy."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.002)
    return bool(predicate())
