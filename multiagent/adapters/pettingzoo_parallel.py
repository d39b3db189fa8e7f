"""PettingZoo ParallelEnv adapter for EnvironmentCore.

Thin wrapper that translates between an initialised EnvironmentCore and
the PettingZoo ParallelEnv API (gymnasium spaces).  Observations are
converted with ``encode``; when none is given the strategy's
``encode_observation`` is used if it has one, otherwise raw observation
dicts pass through unchanged.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

import numpy as np
from gymnasium import spaces
from pettingzoo import ParallelEnv

from multiagent.core.environment import EnvironmentCore
from multiagent.core.types import EnvironmentPhase

ObservationEncoder = Callable[[Mapping[str, Any]], Any]


class CoordinationParallelEnv(ParallelEnv):
    """PettingZoo ParallelEnv wrapper around an EnvironmentCore."""

    metadata = {"render_modes": ["ansi"], "name": "coordination_v0"}

    def __init__(
        self,
        core: EnvironmentCore,
        encode: ObservationEncoder | None = None,
    ) -> None:
        super().__init__()
        if core.phase is EnvironmentPhase.UNINITIALIZED:
            raise RuntimeError("EnvironmentCore must be initialized before wrapping.")
        self._core = core
        self._encode = encode or getattr(core.strategy, "encode_observation", None) or _identity

        self.possible_agents: list[str] = core.agent_ids
        self.agents: list[str] = []

        self._observation_spaces = core.observation_spaces()
        self._action_spaces = core.action_spaces()

    # ------------------------------------------------------------------
    # Space definitions
    # ------------------------------------------------------------------

    def observation_space(self, agent: str) -> spaces.Space:
        return self._observation_spaces[agent]

    def action_space(self, agent: str) -> spaces.Space:
        return self._action_spaces[agent]

    # ------------------------------------------------------------------
    # ParallelEnv API
    # ------------------------------------------------------------------

    def reset(
        self,
        seed: int | None = None,
        options: dict | None = None,
    ) -> tuple[dict[str, Any], dict[str, dict]]:
        if seed is not None:
            # Re-initialising rebuilds strategy state with the new seed.
            self._core.initialize({"seed": seed})
        raw_obs = self._core.reset()
        self.agents = list(raw_obs.keys())

        observations = {a: self._encode(raw_obs[a]) for a in self.agents}
        infos: dict[str, dict] = {a: {} for a in self.agents}
        return observations, infos

    def step(
        self, actions: dict[str, Any]
    ) -> tuple[
        dict[str, Any],
        dict[str, float],
        dict[str, bool],
        dict[str, bool],
        dict[str, dict],
    ]:
        # PettingZoo samples NumPy scalars; strategies expect plain ints.
        env_actions = {
            aid: int(act) if isinstance(act, np.integer) else act
            for aid, act in actions.items()
        }
        step_results = self._core.step(env_actions)

        max_steps = self._core.max_steps_per_episode
        is_truncated = max_steps is not None and self._core.current_step >= max_steps

        observations: dict[str, Any] = {}
        rewards: dict[str, float] = {}
        terminations: dict[str, bool] = {}
        truncations: dict[str, bool] = {}
        infos: dict[str, dict] = {}

        for aid in self.agents:
            sr = step_results[aid]
            observations[aid] = self._encode(sr.observation)
            rewards[aid] = sr.reward
            truncations[aid] = is_truncated
            terminations[aid] = sr.done and not is_truncated
            infos[aid] = sr.info

        if self._core.is_done():
            self.agents = []
        else:
            self.agents = [a for a in self.agents if not terminations[a]]

        return observations, rewards, terminations, truncations, infos

    def render(self) -> Any:
        return self._core.render("ansi")

    def close(self) -> None:
        self._core.close()


def _identity(observation: Mapping[str, Any]) -> Any:
    return observation
