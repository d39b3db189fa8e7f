"""Configuration schema for multi-agent experiments — single source of truth.

Pydantic models that fully describe one experiment: who the agents are,
which teams exist, how actions are dispatched, which environment runs and
how rewards are redistributed.  Field names are snake_case in Python and
accept the camelCase spelling used in experiment files (``actionMode``,
``turnOrder``, ``rewardStructure``, ``maxSteps`` ...).

Validation happens here, before any environment or coordinator is built:
a config that resolves is safe to run.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from multiagent.core.types import ActionMode


class _Section(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Section 1: Agents & teams
# ---------------------------------------------------------------------------

class AgentSpec(_Section):
    """One agent.  Extra keys are passed to the policy as its config."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1, description="Unique agent id.")
    type: str = Field(min_length=1, description="Policy type, resolved by the agent factory.")
    team: str | None = Field(default=None, description="Id of the team this agent joins.")

    def agent_config(self) -> dict[str, Any]:
        """Config handed to the agent factory / policy."""
        return self.model_dump(exclude={"id"})


class TeamSpec(_Section):
    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    name: str | None = None


# ---------------------------------------------------------------------------
# Section 2: Environment
# ---------------------------------------------------------------------------

class EnvironmentSpec(_Section):
    """Which environment strategy runs.  Extra keys are strategy parameters."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(min_length=1, description="Key into the environment registry.")
    max_steps_per_episode: int | None = Field(
        default=None, gt=0,
        description="Per-episode step ceiling. None = episode ends only on done flags.",
    )
    simultaneous_actions: bool = True

    def params(self) -> dict[str, Any]:
        """Strategy-specific parameters (everything not declared above)."""
        return dict(self.model_extra or {})


# ---------------------------------------------------------------------------
# Section 3: Reward structure
# ---------------------------------------------------------------------------

class RewardWeights(_Section):
    """Blend of individual and team payout for the mixed structure."""

    individual: float = Field(ge=0.0, le=1.0)
    team: float = Field(ge=0.0, le=1.0)


class RewardStructureConfig(_Section):
    """How raw rewards are turned into payouts.

    ``team`` and ``mixed`` need a non-empty team -> members mapping; ``mixed``
    also needs weights that sum to exactly 1.
    """

    type: Literal["individual", "team", "mixed", "zero-sum"] = "individual"
    teams: dict[str, list[str]] = Field(default_factory=dict)
    weights: RewardWeights | None = None

    @model_validator(mode="after")
    def shape_matches_type(self) -> RewardStructureConfig:
        problems: list[str] = []
        if self.type in ("team", "mixed") and not self.teams:
            problems.append(f"Reward structure of type {self.type} requires team definitions")
        if self.type == "mixed":
            if self.weights is None:
                problems.append("Mixed reward structure requires weights")
            else:
                total = self.weights.individual + self.weights.team
                if total != 1:
                    problems.append(f"Mixed reward structure weights must sum to 1, got {total}")
        if problems:
            raise ValueError("; ".join(problems))
        return self


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

class ExperimentConfig(_Section):
    """Complete description of one multi-agent experiment."""

    id: str = Field(min_length=1)
    type: Literal["multi-agent"] = "multi-agent"
    seed: int = Field(default=0, ge=0, description="Root seed for agents and environment.")

    action_mode: ActionMode = ActionMode.SIMULTANEOUS
    turn_order: list[str] = Field(default_factory=list)

    agents: list[AgentSpec] = Field(min_length=1)
    teams: list[TeamSpec] = Field(default_factory=list)
    environment: EnvironmentSpec
    reward_structure: RewardStructureConfig | None = None

    max_steps: int = Field(gt=0, description="Total step budget across episodes.")
    max_episodes: int = Field(gt=0)
    evaluation_frequency: int | None = Field(default=None, gt=0)
    evaluation_episodes: int | None = Field(default=None, gt=0)
    checkpoint_frequency: int | None = Field(default=None, gt=0)
    log_frequency: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def references_resolve(self) -> ExperimentConfig:
        problems = self._reference_problems()
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def _reference_problems(self) -> list[str]:
        problems: list[str] = []

        agent_ids: set[str] = set()
        for agent in self.agents:
            if agent.id in agent_ids:
                problems.append(f"Duplicate agent ID: {agent.id}")
            agent_ids.add(agent.id)

        team_ids: set[str] = set()
        for team in self.teams:
            if team.id in team_ids:
                problems.append(f"Duplicate team ID: {team.id}")
            team_ids.add(team.id)

        for agent in self.agents:
            if agent.team is not None and agent.team not in team_ids:
                problems.append(f"Agent {agent.id} references unknown team: {agent.team}")

        if self.action_mode is ActionMode.TURN_BASED:
            for agent_id in self.turn_order:
                if agent_id not in agent_ids:
                    problems.append(f"Turn order includes unknown agent ID: {agent_id}")

        rs = self.reward_structure
        if rs is not None and rs.type in ("team", "mixed"):
            seen: dict[str, str] = {}
            for team_id, members in rs.teams.items():
                for agent_id in members:
                    if agent_id not in agent_ids:
                        problems.append(
                            f"Reward structure team {team_id} includes unknown agent ID: {agent_id}"
                        )
                    elif agent_id in seen:
                        problems.append(
                            f"Agent {agent_id} appears in reward structure teams "
                            f"{seen[agent_id]} and {team_id}"
                        )
                    else:
                        seen[agent_id] = team_id
            for agent in self.agents:
                if agent.id not in seen:
                    problems.append(
                        f"Agent {agent.id} is not a member of any reward structure team"
                    )
        return problems

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def team_members(self) -> dict[str, list[str]]:
        """Team id -> agent ids, from each agent's ``team`` field."""
        members: dict[str, list[str]] = {team.id: [] for team in self.teams}
        for agent in self.agents:
            if agent.team is not None:
                members.setdefault(agent.team, []).append(agent.id)
        return members


# ---------------------------------------------------------------------------
# Validation entry points
# ---------------------------------------------------------------------------

class ConfigurationError(ValueError):
    """An experiment config failed validation; ``errors`` lists every problem."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid experiment configuration:\n  - " + "\n  - ".join(self.errors))


def format_validation_errors(exc: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into human-readable lines."""
    messages: list[str] = []
    for err in exc.errors():
        msg = err["msg"]
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        loc = ".".join(str(part) for part in err["loc"])
        for part in msg.split("; "):
            messages.append(f"{loc}: {part}" if loc else part)
    return messages


def validate_experiment_config(data: Mapping[str, Any] | ExperimentConfig) -> list[str]:
    """Return every problem with ``data``; an empty list means it is valid."""
    if isinstance(data, ExperimentConfig):
        data = data.model_dump(by_alias=True)
    try:
        ExperimentConfig.model_validate(data)
    except ValidationError as exc:
        return format_validation_errors(exc)
    return []


def load_experiment_config(data: Mapping[str, Any]) -> ExperimentConfig:
    """Resolve raw config data, raising ConfigurationError on any problem."""
    try:
        return ExperimentConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(format_validation_errors(exc)) from exc
