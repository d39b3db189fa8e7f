"""Forager agent — greedy heuristic for the foraging grid.

Collects when standing on a resource, otherwise steps toward the nearest
visible resource (Manhattan distance), otherwise wanders randomly.
"""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np

from multiagent.core.seeding import make_rng
from multiagent.core.types import AgentSpaces
from multiagent.envs.foraging.actions import ForageAction

from multiagent.agents.base import BaseAgent

_WANDER = [ForageAction.UP, ForageAction.DOWN, ForageAction.LEFT, ForageAction.RIGHT]


class ForagerAgent(BaseAgent):

    def __init__(self) -> None:
        self._rng: np.random.Generator | None = None

    def initialize(self, spaces: AgentSpaces, config: Mapping[str, Any]) -> None:
        self._rng = make_rng(config.get("seed"))

    def select_action(self, observation: dict[str, Any]) -> ForageAction:
        assert self._rng is not None, "Must call initialize() before select_action()"
        x, y = observation["state"]["position"]
        resources = observation.get("resources", [])
        if not resources:
            return _WANDER[int(self._rng.integers(len(_WANDER)))]

        tx, ty = min(
            (tuple(r["position"]) for r in resources),
            key=lambda p: abs(p[0] - x) + abs(p[1] - y),
        )
        if (tx, ty) == (x, y):
            return ForageAction.COLLECT
        if tx != x:
            return ForageAction.RIGHT if tx > x else ForageAction.LEFT
        return ForageAction.DOWN if ty > y else ForageAction.UP
