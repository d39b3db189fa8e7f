"""Framework-level types shared by the coordination layer.

These are the shared vocabulary of the core.  Domain-specific types
(e.g. foraging actions) live in their respective env packages, not here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gymnasium import spaces


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

AgentID = str  # unique within an environment / coordinator
TeamID = str


# ---------------------------------------------------------------------------
# Step result (what the environment returns per agent per step)
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class StepResult:
    """Per-agent output of a single environment step."""

    observation: dict[str, Any]
    reward: float
    done: bool
    info: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Transition:
    """One (obs, action, next_obs, reward, done) tuple handed to a policy."""

    observation: dict[str, Any]
    action: Any
    next_observation: dict[str, Any]
    reward: float
    done: bool
    info: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Spaces
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class AgentSpaces:
    """Observation / action space pair declared for one agent."""

    observation_space: spaces.Space
    action_space: spaces.Space


# ---------------------------------------------------------------------------
# Modes and lifecycle
# ---------------------------------------------------------------------------

class ActionMode(Enum):
    """How the coordinator collects actions each tick."""

    SIMULTANEOUS = "simultaneous"
    TURN_BASED = "turn-based"


class EnvironmentPhase(Enum):
    """Lifecycle of an EnvironmentCore instance."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    TERMINATED = "terminated"
