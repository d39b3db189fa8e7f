"""Concrete environment strategies, looked up by config ``environment.type``."""

from __future__ import annotations

from typing import Any, Callable

from multiagent.core.environment import EnvironmentStrategy
from multiagent.envs.foraging import ForagingStrategy

ENVIRONMENT_REGISTRY: dict[str, Callable[..., EnvironmentStrategy]] = {
    "foraging": ForagingStrategy,
}


def create_strategy(env_type: str, **kwargs: Any) -> EnvironmentStrategy:
    """Instantiate an environment strategy by type name.

    Raises KeyError if the type is not registered.
    """
    return ENVIRONMENT_REGISTRY[env_type](**kwargs)


__all__ = ["ENVIRONMENT_REGISTRY", "ForagingStrategy", "create_strategy"]
