"""ForagingStrategy — a grid world where agents gather scattered resources.

Implements the EnvironmentStrategy hooks:
  initialize_state(config) -> grid + RNG
  reset_state / reset_agent_state -> scatter resources, spawn agents
  process_actions(actions) -> move / collect, in action order
  calculate_reward(aid)    -> value gathered this tick minus a step penalty

Each agent only sees resources and other agents inside a square window of
``view_distance`` cells; agents outside it appear as not visible.
The episode ends for everyone when no resources are left.
"""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np
from gymnasium import spaces

from multiagent.core.environment import EnvironmentStrategy
from multiagent.core.observations import observe_others, within_view
from multiagent.core.seeding import make_rng
from multiagent.core.types import AgentID, AgentSpaces
from multiagent.envs.foraging.actions import MOVES, ForageAction, parse_action
from multiagent.envs.foraging.state import ForagerState, ForagingState, Resource

DEFAULTS: dict[str, Any] = {
    "grid_size": 8,
    "view_distance": 2,
    "num_resources": 6,
    "resource_value": 1.0,
    "step_penalty": 0.01,
    "seed": 0,
}


class ForagingStrategy(EnvironmentStrategy):
    """Team-friendly foraging grid with partial observability."""

    def __init__(self, **overrides: Any) -> None:
        self._params = {**DEFAULTS, **overrides}
        self._state: ForagingState | None = None
        self._rng: np.random.Generator | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def initialize_state(self, config: Mapping[str, Any]) -> None:
        params = {**self._params, **{k: v for k, v in config.items() if k in DEFAULTS}}
        if params["grid_size"] < 2:
            raise ValueError(f"grid_size must be >= 2, got {params['grid_size']}")
        if params["view_distance"] < 0:
            raise ValueError(f"view_distance must be >= 0, got {params['view_distance']}")
        self._params = params
        self._rng = make_rng(params["seed"])
        self._state = ForagingState(grid_size=int(params["grid_size"]))

    def reset_state(self) -> None:
        state = self._require_state()
        state.tick = 0
        state.agents.clear()
        g = state.grid_size
        n = min(int(self._params["num_resources"]), g * g)
        cells = self._rng.choice(g * g, size=n, replace=False)
        state.resources = [
            Resource(position=(int(c) % g, int(c) // g), value=float(self._params["resource_value"]))
            for c in cells
        ]

    def reset_agent_state(self, agent_id: AgentID) -> None:
        state = self._require_state()
        x, y = (int(v) for v in self._rng.integers(0, state.grid_size, size=2))
        state.agents[agent_id] = ForagerState(agent_id=agent_id, position=(x, y))

    def remove_agent_state(self, agent_id: AgentID) -> None:
        if self._state is not None:
            self._state.agents.pop(agent_id, None)

    # ------------------------------------------------------------------
    # Spaces
    # ------------------------------------------------------------------

    def build_spaces(
        self, agent_id: AgentID, agent_config: Mapping[str, Any]
    ) -> AgentSpaces | None:
        g = int(self._params["grid_size"])
        window = 2 * int(self._params["view_distance"]) + 1
        observation_space = spaces.Dict(
            {
                "position": spaces.Box(low=0, high=g - 1, shape=(2,), dtype=np.int64),
                # channel 0: resources, channel 1: other agents
                "local_view": spaces.Box(
                    low=0.0, high=1.0, shape=(window, window, 2), dtype=np.float32
                ),
            }
        )
        return AgentSpaces(
            observation_space=observation_space,
            action_space=spaces.Discrete(len(ForageAction)),
        )

    # ------------------------------------------------------------------
    # Step
    # ------------------------------------------------------------------

    def process_actions(self, actions: Mapping[AgentID, Any]) -> None:
        state = self._require_state()
        state.tick += 1
        for agent in state.agents.values():
            agent.gained = 0.0

        for agent_id, raw in actions.items():
            agent = state.agents.get(agent_id)
            if agent is None:
                continue
            action = parse_action(raw)
            agent.last_action = action.name.lower()
            if action in MOVES:
                dx, dy = MOVES[action]
                agent.position = state.clamp(agent.position[0] + dx, agent.position[1] + dy)
            elif action is ForageAction.COLLECT:
                resource = state.resource_at(agent.position)
                if resource is not None:
                    resource.collected_by = agent_id
                    agent.collected += 1
                    agent.gained += resource.value
                    agent.score += resource.value

    def calculate_reward(self, agent_id: AgentID, actions: Mapping[AgentID, Any]) -> float:
        agent = self._require_state().agents[agent_id]
        return agent.gained - float(self._params["step_penalty"])

    def is_agent_done(self, agent_id: AgentID) -> bool:
        return not self._require_state().remaining()

    def generate_observation(self, agent_id: AgentID) -> dict[str, Any]:
        state = self._require_state()
        agent = state.agents[agent_id]
        radius = int(self._params["view_distance"])
        positions = {aid: a.position for aid, a in state.agents.items()}
        others = observe_others(
            agent_id,
            positions,
            radius,
            info={aid: {"collected": a.collected} for aid, a in state.agents.items()},
        )
        resources = [
            {"position": r.position, "value": r.value}
            for r in state.remaining()
            if within_view(agent.position, r.position, radius)
        ]
        return {
            "state": {
                "position": agent.position,
                "collected": agent.collected,
                "score": agent.score,
            },
            "others": others,
            "resources": resources,
            "environment": {
                "step": state.tick,
                "grid_size": state.grid_size,
                "remaining_resources": len(state.remaining()),
            },
        }

    def get_agent_info(self, agent_id: AgentID) -> dict[str, Any]:
        agent = self._require_state().agents[agent_id]
        return {
            "collected": agent.collected,
            "score": agent.score,
            "last_action": agent.last_action,
        }

    # ------------------------------------------------------------------
    # Encoding / display
    # ------------------------------------------------------------------

    def encode_observation(self, observation: Mapping[str, Any]) -> dict[str, np.ndarray]:
        """Convert an observation dict into arrays matching the declared space."""
        radius = int(self._params["view_distance"])
        window = 2 * radius + 1
        x, y = observation["state"]["position"]
        view = np.zeros((window, window, 2), dtype=np.float32)
        for res in observation["resources"]:
            rx, ry = res["position"]
            view[ry - y + radius, rx - x + radius, 0] = 1.0
        for other in observation["others"].values():
            if other["visible"]:
                ox, oy = other["position"]
                view[oy - y + radius, ox - x + radius, 1] = 1.0
        return {"position": np.array([x, y], dtype=np.int64), "local_view": view}

    def render(self, mode: str = "human") -> str | None:
        if mode != "ansi":
            return None
        state = self._require_state()
        rows = [["." for _ in range(state.grid_size)] for _ in range(state.grid_size)]
        for res in state.remaining():
            rows[res.position[1]][res.position[0]] = "*"
        for i, agent in enumerate(state.agents.values()):
            x, y = agent.position
            rows[y][x] = str(i % 10)
        return "\n".join("".join(r) for r in rows)

    @property
    def state(self) -> ForagingState | None:
        return self._state

    def _require_state(self) -> ForagingState:
        if self._state is None:
            raise RuntimeError("Must call initialize_state() first.")
        return self._state
