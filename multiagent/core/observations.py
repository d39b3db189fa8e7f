"""Partial-observability helpers for spatial environments.

An observer only learns where another agent is when that agent lies inside
its view radius.  Agents outside the radius are still listed (so policies
see a stable roster) but as ``{"id": ..., "visible": False}`` with no
position or distance attached.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Sequence

from multiagent.core.types import AgentID

Position = Sequence[float]


def within_view(origin: Position, target: Position, radius: float) -> bool:
    """Chebyshev (square window) visibility test."""
    return all(abs(t - o) <= radius for o, t in zip(origin, target))


def observe_others(
    observer_id: AgentID,
    positions: Mapping[AgentID, Position],
    radius: float,
    info: Mapping[AgentID, dict[str, Any]] | None = None,
) -> dict[AgentID, dict[str, Any]]:
    """Build the ``others`` section of an observation for ``observer_id``."""
    origin = positions[observer_id]
    others: dict[AgentID, dict[str, Any]] = {}
    for other_id, pos in positions.items():
        if other_id == observer_id:
            continue
        if not within_view(origin, pos, radius):
            others[other_id] = {"id": other_id, "visible": False}
            continue
        entry: dict[str, Any] = {
            "id": other_id,
            "visible": True,
            "position": tuple(pos),
            "distance": math.dist(origin, pos),
        }
        if info and other_id in info:
            entry["info"] = dict(info[other_id])
        others[other_id] = entry
    return others
