"""Metric names and event schemas for coordination runs.

Defines three categories:
  - Step metrics: per-agent, per-step measurements
  - Episode metrics: summary of an entire episode
  - Event types: lifecycle events (agent churn, teams, episode ends)

Schemas are plain dicts describing expected keys and types, used for
documentation and by consumers that poll the event log.
"""

from __future__ import annotations

from enum import Enum


# ---------------------------------------------------------------------------
# Step metric keys (one record per agent per step)
# ---------------------------------------------------------------------------

STEP_METRIC_KEYS: list[str] = [
    "episode",
    "step",
    "agent_id",
    "team_id",
    "acted",
    "raw_reward",
    "reward",
    "done",
]

STEP_METRIC_SCHEMA: dict[str, str] = {
    "episode": "int",
    "step": "int",
    "agent_id": "str",
    "team_id": "str | None",
    "acted": "bool",
    "raw_reward": "float",
    "reward": "float",
    "done": "bool",
}


# ---------------------------------------------------------------------------
# Episode metric keys (one record per episode)
# ---------------------------------------------------------------------------

EPISODE_METRIC_KEYS: list[str] = [
    "episode",
    "episode_length",
    "total_reward_per_agent",
    "total_reward_per_team",
]


# ---------------------------------------------------------------------------
# Lifecycle event types
# ---------------------------------------------------------------------------

class EventType(Enum):
    """Lifecycle events emitted by the coordination layer."""

    AGENT_CREATED = "agent_created"
    AGENT_REMOVED = "agent_removed"
    AGENT_ADDED = "agent_added"
    TEAM_CREATED = "team_created"
    TEAM_REMOVED = "team_removed"
    EPISODE_ENDED = "episode_ended"


EVENT_SCHEMAS: dict[str, dict[str, str]] = {
    EventType.AGENT_CREATED.value: {"event": "str", "agent_id": "str", "team_id": "str | None"},
    EventType.AGENT_REMOVED.value: {"event": "str", "agent_id": "str", "source": "str"},
    EventType.AGENT_ADDED.value: {"event": "str", "agent_id": "str"},
    EventType.TEAM_CREATED.value: {"event": "str", "team_id": "str", "members": "list[str]"},
    EventType.TEAM_REMOVED.value: {"event": "str", "team_id": "str"},
    EventType.EPISODE_ENDED.value: {"event": "str", "episode": "int", "step": "int"},
}
