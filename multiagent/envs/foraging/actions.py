"""Action types for the foraging grid.

  - STAY:    do nothing
  - UP/DOWN/LEFT/RIGHT: move one cell, clamped to the grid
  - COLLECT: pick up the resource on the agent's cell, if any
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ForageAction(IntEnum):
    """Discrete actions, indexed to match ``Discrete(len(ForageAction))``."""

    STAY = 0
    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4
    COLLECT = 5


MOVES: dict[ForageAction, tuple[int, int]] = {
    ForageAction.UP: (0, -1),
    ForageAction.DOWN: (0, 1),
    ForageAction.LEFT: (-1, 0),
    ForageAction.RIGHT: (1, 0),
}


def parse_action(raw: Any) -> ForageAction:
    """Coerce a policy output into a ForageAction.

    Accepts ForageAction, plain ints (including NumPy integers) and dicts of
    the form ``{"action": int}``.
    """
    if isinstance(raw, ForageAction):
        return raw
    if isinstance(raw, dict):
        raw = raw.get("action")
    try:
        return ForageAction(int(raw))
    except (TypeError, ValueError):
        raise ValueError(f"Invalid foraging action: {raw!r}") from None
