"""Base agent interface for pluggable policies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from multiagent.core.types import AgentSpaces, Transition


class BaseAgent(ABC):
    """Interface that all agent policies must implement.

    The coordinator owns the bookkeeping around a policy; the policy only
    maps observations to actions and optionally learns from transitions.
    """

    @abstractmethod
    def initialize(self, spaces: AgentSpaces, config: Mapping[str, Any]) -> None:
        """Bind the policy to its spaces before the first episode."""

    @abstractmethod
    def select_action(self, observation: dict[str, Any]) -> Any:
        """Choose an action given the current observation.

        Returning None means "no action this tick".
        """

    def update(self, transition: Transition) -> dict[str, Any]:
        """Consume one transition. Scripted policies ignore it."""
        return {}

    def terminate(self) -> None:
        """Release resources at the end of an experiment."""
