"""Reward structures and the resolver that applies them.

A reward structure turns the raw per-agent rewards computed by an
environment into the payouts agents actually receive:

  - individual: payout = raw reward
  - team:       every member of team T receives the *sum* of T's raw rewards
  - mixed:      w_individual * raw + w_team * team total
  - zero-sum:   raw reward minus the mean raw reward of all agents this tick

The structure set is closed.  ``resolve_rewards`` dispatches on it
exhaustively; a new structure type must be handled there or the type
checker flags the ``assert_never`` branch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping, Sequence, Union, assert_never

from multiagent.core.types import AgentID, TeamID

if TYPE_CHECKING:
    from multiagent.config.schema import RewardStructureConfig


class RewardConfigurationError(ValueError):
    """A team-based structure does not match the agents being rewarded."""


# ---------------------------------------------------------------------------
# Structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class IndividualRewards:
    pass


@dataclass(frozen=True, slots=True)
class TeamRewards:
    teams: Mapping[TeamID, Sequence[AgentID]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MixedRewards:
    teams: Mapping[TeamID, Sequence[AgentID]] = field(default_factory=dict)
    individual_weight: float = 0.5
    team_weight: float = 0.5


@dataclass(frozen=True, slots=True)
class ZeroSumRewards:
    pass


RewardStructure = Union[IndividualRewards, TeamRewards, MixedRewards, ZeroSumRewards]


def structure_name(structure: RewardStructure) -> str:
    """Config-level type tag of a structure."""
    if isinstance(structure, IndividualRewards):
        return "individual"
    if isinstance(structure, TeamRewards):
        return "team"
    if isinstance(structure, MixedRewards):
        return "mixed"
    if isinstance(structure, ZeroSumRewards):
        return "zero-sum"
    assert_never(structure)


def reward_structure_from_config(config: RewardStructureConfig | None) -> RewardStructure:
    """Build a structure from an already-validated config section."""
    if config is None or config.type == "individual":
        return IndividualRewards()
    teams = {tid: tuple(members) for tid, members in config.teams.items()}
    if config.type == "team":
        return TeamRewards(teams=teams)
    if config.type == "mixed":
        if config.weights is None:
            raise ValueError("Mixed reward structure requires weights")
        return MixedRewards(
            teams=teams,
            individual_weight=config.weights.individual,
            team_weight=config.weights.team,
        )
    if config.type == "zero-sum":
        return ZeroSumRewards()
    raise ValueError(f"Invalid reward structure type: {config.type}")


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve_rewards(
    structure: RewardStructure,
    raw_rewards: Mapping[AgentID, float],
) -> dict[AgentID, float]:
    """Return the payout for every agent in ``raw_rewards``."""
    if not raw_rewards:
        return {}

    if isinstance(structure, IndividualRewards):
        return {aid: float(r) for aid, r in raw_rewards.items()}

    if isinstance(structure, TeamRewards):
        return _team_totals(structure.teams, raw_rewards)

    if isinstance(structure, MixedRewards):
        team_payouts = _team_totals(structure.teams, raw_rewards)
        return {
            aid: structure.individual_weight * float(r)
            + structure.team_weight * team_payouts[aid]
            for aid, r in raw_rewards.items()
        }

    if isinstance(structure, ZeroSumRewards):
        mean = sum(raw_rewards.values()) / len(raw_rewards)
        return {aid: float(r) - mean for aid, r in raw_rewards.items()}

    assert_never(structure)


def _team_totals(
    teams: Mapping[TeamID, Sequence[AgentID]],
    raw_rewards: Mapping[AgentID, float],
) -> dict[AgentID, float]:
    """Team payout per agent: the summed raw reward of its team."""
    team_of = _team_assignment(teams, list(raw_rewards))
    totals = {
        team_id: sum(float(raw_rewards[m]) for m in members if m in raw_rewards)
        for team_id, members in teams.items()
    }
    return {aid: totals[team_of[aid]] for aid in raw_rewards}


def _team_assignment(
    teams: Mapping[TeamID, Sequence[AgentID]],
    agent_ids: Sequence[AgentID],
) -> dict[AgentID, TeamID]:
    """Map each present agent to its first listed team.

    Raises RewardConfigurationError when a team has no present member or a
    present agent belongs to no team.
    """
    present = set(agent_ids)
    team_of: dict[AgentID, TeamID] = {}
    for team_id, members in teams.items():
        current = [m for m in members if m in present]
        if not current:
            raise RewardConfigurationError(
                f"Reward structure references team {team_id!r} with no current members"
            )
        for member in current:
            team_of.setdefault(member, team_id)

    for aid in agent_ids:
        if aid not in team_of:
            raise RewardConfigurationError(
                f"Agent {aid!r} has no team under a team-based reward structure"
            )
    return team_of


def check_membership(structure: RewardStructure, agent_ids: Sequence[AgentID]) -> None:
    """Raise RewardConfigurationError if ``structure`` cannot reward ``agent_ids``.

    Only team coverage is checked; it depends on which agents exist, never on
    the reward values, so it can run before a tick mutates anything.
    """
    if not agent_ids:
        return
    if isinstance(structure, (TeamRewards, MixedRewards)):
        _team_assignment(structure.teams, agent_ids)


class RewardResolver:
    """Holds the active structure for an environment and applies it."""

    def __init__(self, structure: RewardStructure | None = None) -> None:
        self._structure: RewardStructure = (
            structure if structure is not None else IndividualRewards()
        )

    @property
    def structure(self) -> RewardStructure:
        return self._structure

    @property
    def name(self) -> str:
        return structure_name(self._structure)

    def check(self, agent_ids: Sequence[AgentID]) -> None:
        check_membership(self._structure, agent_ids)

    def resolve(self, raw_rewards: Mapping[AgentID, float]) -> dict[AgentID, float]:
        return resolve_rewards(self._structure, raw_rewards)
