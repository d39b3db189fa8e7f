"""Foraging grid environment package."""

from multiagent.envs.foraging.actions import ForageAction
from multiagent.envs.foraging.strategy import ForagingStrategy

__all__ = ["ForageAction", "ForagingStrategy"]
