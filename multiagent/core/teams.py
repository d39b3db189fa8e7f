"""Team membership bookkeeping.

The registry keeps two views in sync: ``Team.members`` (team -> agent ids)
and ``record.team_id`` (agent -> team).  For every registered agent,
``record.team_id == T`` iff ``record.id in teams[T].members``.  Member lists
may also hold ids that are not registered yet; they are picked up by
``attach`` when the agent arrives.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from multiagent.core.registry import OrderedRegistry
from multiagent.core.types import AgentID, TeamID


class TeamMember(Protocol):
    """Anything with an id and a mutable team reference."""

    id: AgentID
    team_id: TeamID | None


@dataclass(slots=True)
class Team:
    """One team: ordered member ids plus opaque config."""

    id: TeamID
    members: list[AgentID] = field(default_factory=list)
    config: Any = None


class TeamRegistry:
    """Bidirectional agent <-> team membership over a shared agent registry."""

    def __init__(
        self,
        agents: OrderedRegistry[Any],
        logger: logging.Logger | None = None,
    ) -> None:
        self._agents = agents
        self._teams: dict[TeamID, Team] = {}
        self._log = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def create_team(
        self,
        team_id: TeamID,
        member_ids: Iterable[AgentID],
        config: Any = None,
    ) -> bool:
        """Create a team. Returns False (no mutation) if it already exists."""
        if team_id in self._teams:
            self._log.warning("Team with ID %s already exists", team_id)
            return False

        members = list(dict.fromkeys(member_ids))
        for agent_id in members:
            if agent_id not in self._agents:
                self._log.warning("Team %s includes unknown agent ID %s", team_id, agent_id)

        # An id belongs to at most one team's member list.
        for other in self._teams.values():
            other.members = [m for m in other.members if m not in members]

        self._teams[team_id] = Team(id=team_id, members=members, config=config)
        for agent_id in members:
            record = self._agents.get(agent_id)
            if record is not None:
                record.team_id = team_id

        self._log.info("Created team %s with %d agents", team_id, len(members))
        return True

    def remove_team(self, team_id: TeamID) -> bool:
        """Delete a team and clear the team reference on its members."""
        team = self._teams.pop(team_id, None)
        if team is None:
            self._log.warning("Team with ID %s does not exist", team_id)
            return False

        for agent_id in team.members:
            record = self._agents.get(agent_id)
            if record is not None and record.team_id == team_id:
                record.team_id = None

        self._log.info("Removed team %s", team_id)
        return True

    def attach(self, record: TeamMember) -> TeamID | None:
        """Resolve and set the team of a newly registered agent record."""
        record.team_id = self.team_for(record.id)
        return record.team_id

    def detach(self, agent_id: AgentID) -> None:
        """Drop an agent id from every member list."""
        for team in self._teams.values():
            if agent_id in team.members:
                team.members.remove(agent_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_team(self, team_id: TeamID) -> Team | None:
        return self._teams.get(team_id)

    def teams(self) -> dict[TeamID, Team]:
        return dict(self._teams)

    def team_for(self, agent_id: AgentID) -> TeamID | None:
        for team_id, team in self._teams.items():
            if agent_id in team.members:
                return team_id
        return None

    def get_team_agents(self, team_id: TeamID) -> dict[AgentID, Any]:
        """Live records of a team's members; unknown team gives ``{}``."""
        team = self._teams.get(team_id)
        if team is None:
            return {}
        result: dict[AgentID, Any] = {}
        for agent_id in team.members:
            record = self._agents.get(agent_id)
            if record is not None:
                result[agent_id] = record
        return result

    def memberships(self) -> dict[TeamID, list[AgentID]]:
        return {tid: list(team.members) for tid, team in self._teams.items()}

    def __contains__(self, team_id: object) -> bool:
        return team_id in self._teams

    def __len__(self) -> int:
        return len(self._teams)
