"""Agent policies package — policy registry, factory and the coordinator."""

from __future__ import annotations

from multiagent.agents.base import BaseAgent
from multiagent.agents.coordinator import AgentCoordinator, AgentRecord
from multiagent.agents.factory import ALLOWED_POLICIES, POLICY_REGISTRY, create_agent
from multiagent.agents.fixed_agent import FixedAgent
from multiagent.agents.forager import ForagerAgent
from multiagent.agents.random_agent import RandomAgent

__all__ = [
    "BaseAgent",
    "AgentCoordinator",
    "AgentRecord",
    "ALLOWED_POLICIES",
    "POLICY_REGISTRY",
    "create_agent",
    "FixedAgent",
    "ForagerAgent",
    "RandomAgent",
]
