"""EnvironmentCore — the per-episode state machine shared by all agents.

The core owns everything that is domain-agnostic:

  1. Agent registry  — ids in registration order plus their declared spaces
  2. Lifecycle       — initialize() -> reset() -> step()* -> close()
  3. Counters        — step (reset every episode) and episode
  4. Rewards         — raw per-agent rewards redistributed by a RewardResolver

Everything domain-specific (state, observations, action effects, raw
rewards, termination) is delegated to an ``EnvironmentStrategy`` supplied by
a concrete environment.  The core depends only on that interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from multiagent.core.registry import OrderedRegistry
from multiagent.core.rewards import RewardResolver, RewardStructure
from multiagent.core.types import AgentID, AgentSpaces, EnvironmentPhase, StepResult
from multiagent.metrics.definitions import EventType
from multiagent.metrics.events import EventLog


class EnvironmentStrategy(ABC):
    """Domain hooks a concrete environment must implement."""

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @abstractmethod
    def initialize_state(self, config: Mapping[str, Any]) -> None:
        """Build the environment-wide state from config."""
        ...

    @abstractmethod
    def reset_state(self) -> None:
        """Reset environment-wide state at the start of an episode."""
        ...

    @abstractmethod
    def reset_agent_state(self, agent_id: AgentID) -> None:
        """(Re)create the domain state of one agent."""
        ...

    def remove_agent_state(self, agent_id: AgentID) -> None:
        """Forget the domain state of a removed agent."""

    # ------------------------------------------------------------------
    # Spaces
    # ------------------------------------------------------------------

    @abstractmethod
    def build_spaces(
        self, agent_id: AgentID, agent_config: Mapping[str, Any]
    ) -> AgentSpaces | None:
        """Declare the spaces of one agent, or None if they cannot be resolved."""
        ...

    # ------------------------------------------------------------------
    # Step
    # ------------------------------------------------------------------

    @abstractmethod
    def process_actions(self, actions: Mapping[AgentID, Any]) -> None:
        """Apply the actions of the agents that acted this tick."""
        ...

    @abstractmethod
    def generate_observation(self, agent_id: AgentID) -> dict[str, Any]:
        ...

    @abstractmethod
    def calculate_reward(self, agent_id: AgentID, actions: Mapping[AgentID, Any]) -> float:
        """Raw (pre-redistribution) reward for one agent this tick."""
        ...

    @abstractmethod
    def is_agent_done(self, agent_id: AgentID) -> bool:
        ...

    @abstractmethod
    def get_agent_info(self, agent_id: AgentID) -> dict[str, Any]:
        ...

    # ------------------------------------------------------------------
    # Display / teardown
    # ------------------------------------------------------------------

    @abstractmethod
    def render(self, mode: str = "human") -> Any:
        """External display only; never consulted by the core."""
        ...

    def close(self) -> None:
        """Release resources held by the strategy."""


@dataclass(slots=True)
class _AgentSlot:
    config: dict[str, Any] = field(default_factory=dict)
    spaces: AgentSpaces | None = None


class EnvironmentCore:
    """Domain-agnostic multi-agent environment driven by a strategy."""

    def __init__(
        self,
        strategy: EnvironmentStrategy,
        reward_structure: RewardStructure | None = None,
        *,
        max_steps_per_episode: int | None = None,
        simultaneous_actions: bool = True,
        logger: logging.Logger | None = None,
        events: EventLog | None = None,
    ) -> None:
        self._strategy = strategy
        self._resolver = RewardResolver(reward_structure)
        self._max_steps = max_steps_per_episode
        self._simultaneous = simultaneous_actions
        self._log = logger or logging.getLogger(__name__)
        self._events = events if events is not None else EventLog()

        self._agents: OrderedRegistry[_AgentSlot] = OrderedRegistry()
        self._phase = EnvironmentPhase.UNINITIALIZED
        self._step = 0
        self._episode = 0
        self._episode_done = False

    # ------------------------------------------------------------------
    # Agent registry
    # ------------------------------------------------------------------

    def add_agent(self, agent_id: AgentID, config: Mapping[str, Any] | None = None) -> bool:
        """Register an agent. Fails without side effects on duplicates or
        (once initialised) when the strategy cannot resolve its spaces."""
        self._require_open()
        if agent_id in self._agents:
            self._log.warning("Agent with ID %s already registered in environment", agent_id)
            return False

        slot = _AgentSlot(config=dict(config or {}))
        if self._phase is not EnvironmentPhase.UNINITIALIZED:
            spaces = self._strategy.build_spaces(agent_id, slot.config)
            if spaces is None:
                self._log.error("Cannot resolve spaces for agent %s", agent_id)
                return False
            slot.spaces = spaces

        self._agents.add(agent_id, slot)
        if self._phase is EnvironmentPhase.RUNNING:
            self._strategy.reset_agent_state(agent_id)

        self._events.record(EventType.AGENT_ADDED, agent_id=agent_id)
        self._log.info("Added agent %s to environment", agent_id)
        return True

    def remove_agent(self, agent_id: AgentID) -> bool:
        self._require_open()
        if self._agents.remove(agent_id) is None:
            self._log.warning("Agent with ID %s is not registered in environment", agent_id)
            return False

        self._strategy.remove_agent_state(agent_id)
        self._events.record(EventType.AGENT_REMOVED, agent_id=agent_id, source="environment")
        self._log.info("Removed agent %s from environment", agent_id)
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, config: Mapping[str, Any] | None = None) -> bool:
        """Build domain state and the spaces of every registered agent.

        If any agent's spaces cannot be resolved, no spaces are committed and
        the call returns False.  The strategy has already rebuilt its state
        by then, so the core falls back to UNINITIALIZED and ``reset``/``step``
        raise until a later ``initialize`` succeeds.
        """
        self._require_open()
        self._strategy.initialize_state(dict(config or {}))

        staged: dict[AgentID, AgentSpaces] = {}
        for agent_id, slot in self._agents.items():
            spaces = self._strategy.build_spaces(agent_id, slot.config)
            if spaces is None:
                self._log.error(
                    "Missing observation or action space for agent %s", agent_id
                )
                self._phase = EnvironmentPhase.UNINITIALIZED
                self._episode_done = False
                return False
            staged[agent_id] = spaces

        for agent_id, spaces in staged.items():
            self._agents.get(agent_id).spaces = spaces

        self._phase = EnvironmentPhase.INITIALIZED
        self._episode_done = False
        self._log.info("Environment initialized with %d agents", len(self._agents))
        return True

    def reset(self) -> dict[AgentID, dict[str, Any]]:
        """Start a new episode. Return initial observations keyed by agent ID."""
        self._require_open()
        if self._phase is EnvironmentPhase.UNINITIALIZED:
            raise RuntimeError("Must call initialize() before reset().")

        self._strategy.reset_state()
        observations: dict[AgentID, dict[str, Any]] = {}
        for agent_id in self._agents:
            self._strategy.reset_agent_state(agent_id)
        for agent_id in self._agents:
            observations[agent_id] = self._strategy.generate_observation(agent_id)

        self._step = 0
        self._episode += 1
        self._episode_done = False
        self._phase = EnvironmentPhase.RUNNING
        self._log.debug("Episode %d started", self._episode)
        return observations

    def step(self, actions: Mapping[AgentID, Any]) -> dict[AgentID, StepResult]:
        """Advance one tick.

        Every registered agent receives a StepResult, whether or not it
        submitted an action this tick.
        """
        if self._phase is not EnvironmentPhase.RUNNING:
            if self._phase is EnvironmentPhase.TERMINATED:
                raise RuntimeError("Environment is closed.")
            raise RuntimeError("Must call reset() before step().")
        if self._episode_done:
            raise RuntimeError("Episode is done. Call reset().")

        known: dict[AgentID, Any] = {}
        for agent_id, action in actions.items():
            if agent_id in self._agents:
                known[agent_id] = action
            else:
                self._log.warning("Dropping action for unknown agent %s", agent_id)

        # Raises before any domain state moves.
        self._resolver.check(self._agents.ids())
        self._strategy.process_actions(known)

        next_step = self._step + 1
        ceiling = self._max_steps is not None and next_step >= self._max_steps

        raw: dict[AgentID, float] = {}
        dones: dict[AgentID, bool] = {}
        observations: dict[AgentID, dict[str, Any]] = {}
        infos: dict[AgentID, dict[str, Any]] = {}
        for agent_id in self._agents:
            raw[agent_id] = float(self._strategy.calculate_reward(agent_id, known))
            dones[agent_id] = bool(self._strategy.is_agent_done(agent_id)) or ceiling
            observations[agent_id] = self._strategy.generate_observation(agent_id)
            infos[agent_id] = {
                **self._strategy.get_agent_info(agent_id),
                "raw_reward": raw[agent_id],
                "acted": agent_id in known,
            }

        payouts = self._resolver.resolve(raw)

        self._step = next_step
        results = {
            agent_id: StepResult(
                observation=observations[agent_id],
                reward=payouts[agent_id],
                done=dones[agent_id],
                info=infos[agent_id],
            )
            for agent_id in raw
        }

        if ceiling or (dones and all(dones.values())):
            self._episode_done = True
            self._events.record(
                EventType.EPISODE_ENDED, episode=self._episode, step=self._step
            )
            self._log.debug("Episode %d ended after %d steps", self._episode, self._step)

        return results

    def close(self) -> None:
        if self._phase is EnvironmentPhase.TERMINATED:
            return
        self._strategy.close()
        self._phase = EnvironmentPhase.TERMINATED
        self._log.info("Environment closed after %d episodes", self._episode)

    def render(self, mode: str = "human") -> Any:
        return self._strategy.render(mode)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def agent_ids(self) -> list[AgentID]:
        return self._agents.ids()

    def spaces_for(self, agent_id: AgentID) -> AgentSpaces | None:
        slot = self._agents.get(agent_id)
        return slot.spaces if slot is not None else None

    def observation_spaces(self) -> dict[AgentID, Any]:
        return {
            aid: slot.spaces.observation_space
            for aid, slot in self._agents.items()
            if slot.spaces is not None
        }

    def action_spaces(self) -> dict[AgentID, Any]:
        return {
            aid: slot.spaces.action_space
            for aid, slot in self._agents.items()
            if slot.spaces is not None
        }

    @property
    def phase(self) -> EnvironmentPhase:
        return self._phase

    @property
    def current_step(self) -> int:
        return self._step

    @property
    def episode(self) -> int:
        return self._episode

    @property
    def max_steps_per_episode(self) -> int | None:
        return self._max_steps

    @property
    def supports_simultaneous_actions(self) -> bool:
        return self._simultaneous

    @property
    def reward_structure(self) -> RewardStructure:
        return self._resolver.structure

    @property
    def strategy(self) -> EnvironmentStrategy:
        return self._strategy

    @property
    def events(self) -> EventLog:
        return self._events

    def is_done(self) -> bool:
        """True once the current episode has ended."""
        return self._episode_done

    def _require_open(self) -> None:
        if self._phase is EnvironmentPhase.TERMINATED:
            raise RuntimeError("Environment is closed.")
