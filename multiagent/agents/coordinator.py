"""AgentCoordinator — decides who acts each tick and feeds results back.

Per tick the driver calls:

    actions = coordinator.get_actions(observations)
    results = environment.step(actions)
    coordinator.update_agents(results)

In simultaneous mode every active agent with an observation acts (in
registration order).  In turn-based mode only ``turn_order[turn_index]``
acts and the index advances by exactly one per call, even when that agent
produced no action.  A policy that raises is logged and skipped; it never
stops the other agents.

Not thread-safe: one driver per coordinator/environment pair.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from multiagent.core.environment import EnvironmentCore
from multiagent.core.registry import OrderedRegistry
from multiagent.core.teams import Team, TeamRegistry
from multiagent.core.types import ActionMode, AgentID, StepResult, TeamID, Transition
from multiagent.metrics.definitions import EventType
from multiagent.metrics.events import EventLog

from multiagent.agents.base import BaseAgent
from multiagent.agents.factory import create_agent

AgentFactory = Callable[[Mapping[str, Any]], "BaseAgent | None"]


@dataclass(slots=True, eq=False)
class AgentRecord:
    """Coordinator bookkeeping for one agent (not the policy itself)."""

    id: AgentID
    policy: BaseAgent
    config: dict[str, Any] = field(default_factory=dict)
    team_id: TeamID | None = None
    active: bool = True
    last_observation: dict[str, Any] | None = None
    last_action: Any = None
    episode_reward: float = 0.0
    total_reward: float = 0.0
    steps: int = 0
    episodes: int = 0

    def clear_episode(self) -> None:
        self.episode_reward = 0.0
        self.last_observation = None
        self.last_action = None


class AgentCoordinator:
    """Owns agent records, teams and the turn order."""

    def __init__(
        self,
        agent_factory: AgentFactory = create_agent,
        *,
        action_mode: ActionMode = ActionMode.SIMULTANEOUS,
        agents: Mapping[AgentID, Mapping[str, Any]] | None = None,
        teams: Mapping[TeamID, Iterable[AgentID]] | None = None,
        turn_order: Iterable[AgentID] | None = None,
        logger: logging.Logger | None = None,
        events: EventLog | None = None,
    ) -> None:
        self._factory = agent_factory
        self._mode = action_mode
        self._log = logger or logging.getLogger(__name__)
        self._events = events if events is not None else EventLog()

        self._agents: OrderedRegistry[AgentRecord] = OrderedRegistry()
        self._teams = TeamRegistry(self._agents, logger=self._log)
        self._turn_order: list[AgentID] = list(turn_order or [])
        self._turn_index = 0

        for team_id, member_ids in (teams or {}).items():
            self.create_team(team_id, member_ids)
        for agent_id, config in (agents or {}).items():
            self.create_agent(agent_id, config)

        self._log.info(
            "AgentCoordinator initialized with action mode %s, %d agents, %d teams",
            self._mode.value, len(self._agents), len(self._teams),
        )

    # ------------------------------------------------------------------
    # Agent lifecycle
    # ------------------------------------------------------------------

    def create_agent(
        self, agent_id: AgentID, config: Mapping[str, Any] | None = None
    ) -> AgentRecord | None:
        """Construct a policy via the factory and register it.

        Returns None (and registers nothing) on a duplicate id or when the
        factory fails.
        """
        if agent_id in self._agents:
            self._log.warning("Agent with ID %s already exists", agent_id)
            return None

        agent_config = dict(config or {})
        try:
            policy = self._factory(agent_config)
        except Exception:
            self._log.exception("Error creating agent with ID %s", agent_id)
            return None
        if policy is None:
            self._log.error("Failed to create agent with ID %s", agent_id)
            return None

        record = AgentRecord(id=agent_id, policy=policy, config=agent_config)
        self._agents.add(agent_id, record)
        self._teams.attach(record)

        if self._mode is ActionMode.TURN_BASED and agent_id not in self._turn_order:
            self._turn_order.append(agent_id)

        self._events.record(EventType.AGENT_CREATED, agent_id=agent_id, team_id=record.team_id)
        self._log.info("Created agent with ID %s", agent_id)
        return record

    def remove_agent(self, agent_id: AgentID) -> bool:
        if self._agents.remove(agent_id) is None:
            self._log.warning("Agent with ID %s does not exist", agent_id)
            return False

        while agent_id in self._turn_order:
            pos = self._turn_order.index(agent_id)
            del self._turn_order[pos]
            if self._turn_index > pos:
                self._turn_index -= 1
        if self._turn_index >= len(self._turn_order):
            self._turn_index = 0

        self._teams.detach(agent_id)

        self._events.record(EventType.AGENT_REMOVED, agent_id=agent_id, source="coordinator")
        self._log.info("Removed agent with ID %s", agent_id)
        return True

    def initialize_agents(self, environment: EnvironmentCore) -> bool:
        """Bind every policy to its spaces in ``environment``.

        Fails without initialising anyone if any agent has no spaces.  Every
        policy is initialised before any record changes, so a policy that
        raises leaves the records as they were.
        """
        resolved = {}
        for agent_id in self._agents:
            spaces = environment.spaces_for(agent_id)
            if spaces is None:
                self._log.error("Missing observation or action space for agent %s", agent_id)
                return False
            resolved[agent_id] = spaces

        for agent_id, record in self._agents.items():
            try:
                record.policy.initialize(resolved[agent_id], dict(record.config))
            except Exception:
                self._log.exception("Error initializing agent %s", agent_id)
                return False

        for record in self._agents.values():
            record.active = True
            record.clear_episode()

        self._turn_index = 0
        self._log.info("Initialized %d agents with environment", len(self._agents))
        return True

    def reset_agents(self) -> None:
        """Clear per-episode bookkeeping before a new episode."""
        for record in self._agents.values():
            record.clear_episode()
        self._turn_index = 0
        self._log.debug("Reset all agents for new episode")

    def terminate_agents(self) -> None:
        for record in self._agents.values():
            try:
                record.policy.terminate()
            except Exception:
                self._log.exception("Error terminating agent %s", record.id)
        self._log.info("Terminated all agents")

    def set_active(self, agent_id: AgentID, active: bool) -> bool:
        record = self._agents.get(agent_id)
        if record is None:
            self._log.warning("Agent with ID %s does not exist", agent_id)
            return False
        record.active = active
        return True

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def get_actions(self, observations: Mapping[AgentID, dict[str, Any]]) -> dict[AgentID, Any]:
        """Collect actions from whoever may act this tick."""
        actions: dict[AgentID, Any] = {}

        if self._mode is ActionMode.SIMULTANEOUS:
            for agent_id, record in self._agents.items():
                if record.active and agent_id in observations:
                    action = self._select(record, observations[agent_id])
                    if action is not None:
                        actions[agent_id] = action
            return actions

        if not self._turn_order:
            return actions

        agent_id = self._turn_order[self._turn_index]
        record = self._agents.get(agent_id)
        if record is not None and record.active and agent_id in observations:
            action = self._select(record, observations[agent_id])
            if action is not None:
                actions[agent_id] = action

        # Advances even if the agent was missing, inactive, or failed.
        self._turn_index = (self._turn_index + 1) % len(self._turn_order)
        return actions

    def update_agents(self, step_results: Mapping[AgentID, StepResult]) -> None:
        """Feed transitions to policies and accumulate rewards."""
        for agent_id, result in step_results.items():
            record = self._agents.get(agent_id)
            if record is None or not record.active:
                continue

            if record.last_observation is not None and record.last_action is not None:
                transition = Transition(
                    observation=record.last_observation,
                    action=record.last_action,
                    next_observation=result.observation,
                    reward=result.reward,
                    done=result.done,
                    info=result.info,
                )
                try:
                    record.policy.update(transition)
                except Exception:
                    self._log.exception("Error updating agent %s", agent_id)
                record.last_action = None

            record.last_observation = result.observation
            record.episode_reward += result.reward
            record.total_reward += result.reward

            if result.done:
                record.episodes += 1
                record.episode_reward = 0.0
                self._log.debug(
                    "Agent %s completed episode %d with total reward %.3f",
                    agent_id, record.episodes, record.total_reward,
                )

    def _select(self, record: AgentRecord, observation: dict[str, Any]) -> Any:
        try:
            action = record.policy.select_action(observation)
        except Exception:
            self._log.exception("Error getting action from agent %s", record.id)
            return None
        if action is None:
            return None
        record.last_observation = observation
        record.last_action = action
        record.steps += 1
        return action

    # ------------------------------------------------------------------
    # Turn order / mode
    # ------------------------------------------------------------------

    def set_turn_order(self, order: Iterable[AgentID]) -> None:
        order = list(order)
        for agent_id in order:
            if agent_id not in self._agents:
                self._log.warning("Turn order includes unknown agent ID %s", agent_id)
        self._turn_order = order
        self._turn_index = 0
        self._log.info("Set turn order: %s", ", ".join(order))

    def set_action_mode(self, mode: ActionMode) -> None:
        self._mode = mode
        if mode is ActionMode.TURN_BASED and not self._turn_order:
            self._turn_order = self._agents.ids()
            self._turn_index = 0
        self._log.info("Set action mode to %s", mode.value)

    def current_agent(self) -> AgentID | None:
        """Whose turn it is, or None outside turn-based mode."""
        if self._mode is ActionMode.TURN_BASED and self._turn_order:
            return self._turn_order[self._turn_index]
        return None

    @property
    def action_mode(self) -> ActionMode:
        return self._mode

    @property
    def turn_order(self) -> list[AgentID]:
        return list(self._turn_order)

    @property
    def turn_index(self) -> int:
        return self._turn_index

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def create_team(
        self, team_id: TeamID, member_ids: Iterable[AgentID], config: Any = None
    ) -> bool:
        member_ids = list(member_ids)
        if not self._teams.create_team(team_id, member_ids, config):
            return False
        self._events.record(EventType.TEAM_CREATED, team_id=team_id, members=member_ids)
        return True

    def remove_team(self, team_id: TeamID) -> bool:
        if not self._teams.remove_team(team_id):
            return False
        self._events.record(EventType.TEAM_REMOVED, team_id=team_id)
        return True

    def get_team(self, team_id: TeamID) -> Team | None:
        return self._teams.get_team(team_id)

    def get_team_agents(self, team_id: TeamID) -> dict[AgentID, AgentRecord]:
        return self._teams.get_team_agents(team_id)

    @property
    def teams(self) -> TeamRegistry:
        return self._teams

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_agent(self, agent_id: AgentID) -> AgentRecord | None:
        return self._agents.get(agent_id)

    def agents(self) -> dict[AgentID, AgentRecord]:
        return dict(self._agents.items())

    def active_agents(self) -> dict[AgentID, AgentRecord]:
        return {aid: rec for aid, rec in self._agents.items() if rec.active}

    @property
    def events(self) -> EventLog:
        return self._events

    def __len__(self) -> int:
        return len(self._agents)
