"""Agent construction: policy registry and the default factory."""

from __future__ import annotations

from typing import Any, Mapping

from multiagent.agents.base import BaseAgent
from multiagent.agents.fixed_agent import FixedAgent
from multiagent.agents.forager import ForagerAgent
from multiagent.agents.random_agent import RandomAgent

POLICY_REGISTRY: dict[str, type[BaseAgent]] = {
    "random": RandomAgent,
    "fixed": FixedAgent,
    "forager": ForagerAgent,
}

ALLOWED_POLICIES = frozenset(POLICY_REGISTRY)


def create_agent(config: Mapping[str, Any]) -> BaseAgent | None:
    """Instantiate the policy named by ``config["type"]``.

    Returns None when the type is missing or not registered; the
    coordinator treats that as a construction failure.
    """
    cls = POLICY_REGISTRY.get(config.get("type", ""))
    if cls is None:
        return None
    return cls()
