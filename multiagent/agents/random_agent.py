"""Random agent — samples uniformly from its action space (seeded)."""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np
from gymnasium import Space

from multiagent.core.types import AgentSpaces

from multiagent.agents.base import BaseAgent


class RandomAgent(BaseAgent):
    """Uniformly random policy, deterministic given ``config["seed"]``."""

    def __init__(self) -> None:
        self._space: Space | None = None

    def initialize(self, spaces: AgentSpaces, config: Mapping[str, Any]) -> None:
        self._space = spaces.action_space
        seed = config.get("seed")
        self._space.seed(int(seed) if seed is not None else None)

    def select_action(self, observation: dict[str, Any]) -> Any:
        assert self._space is not None, "Must call initialize() before select_action()"
        action = self._space.sample()
        if isinstance(action, np.integer):
            return int(action)
        return action
