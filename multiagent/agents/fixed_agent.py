"""Fixed agent — always submits the same configured action."""

from __future__ import annotations

from typing import Any, Mapping

from multiagent.core.types import AgentSpaces

from multiagent.agents.base import BaseAgent


class FixedAgent(BaseAgent):
    """Returns ``config["action"]`` (default 0) every tick.

    Useful as a baseline and for deterministic tests.
    """

    def __init__(self) -> None:
        self._action: Any = 0
        self.transitions = 0

    def initialize(self, spaces: AgentSpaces, config: Mapping[str, Any]) -> None:
        self._action = config.get("action", 0)

    def select_action(self, observation: dict[str, Any]) -> Any:
        return self._action

    def update(self, transition) -> dict[str, Any]:
        self.transitions += 1
        return {"transitions": self.transitions}
