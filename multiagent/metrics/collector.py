"""Metrics collector for coordination runs.

Ingests the StepResults of every tick to produce:
  - structured step metric dicts (one per agent, keys in STEP_METRIC_KEYS)
  - accumulated per-episode totals per agent and per team
  - episode summaries (keys in EPISODE_METRIC_KEYS)

Totals accumulate on every step; ``step_log_frequency`` only thins out the
step records that are kept.
"""

from __future__ import annotations

from typing import Any, Mapping

from multiagent.core.types import AgentID, StepResult, TeamID


class MetricsCollector:
    """Collects step records and episode summaries across a run."""

    def __init__(self, step_log_frequency: int = 1) -> None:
        if step_log_frequency < 1:
            raise ValueError(f"step_log_frequency must be >= 1, got {step_log_frequency}")
        self._frequency = step_log_frequency
        self._records: list[dict[str, Any]] = []
        self._episodes: list[dict[str, Any]] = []
        self._agent_totals: dict[AgentID, float] = {}
        self._team_totals: dict[TeamID, float] = {}

    # ------------------------------------------------------------------
    # Step metrics
    # ------------------------------------------------------------------

    def collect_step(
        self,
        episode: int,
        step: int,
        results: Mapping[AgentID, StepResult],
        teams: Mapping[AgentID, TeamID | None] | None = None,
    ) -> list[dict[str, Any]]:
        """Accumulate totals and build this step's records.

        Returns an empty list when ``step`` is skipped by the log frequency.
        """
        teams = teams or {}
        for aid, sr in results.items():
            self._agent_totals[aid] = self._agent_totals.get(aid, 0.0) + sr.reward
            team_id = teams.get(aid)
            if team_id is not None:
                self._team_totals[team_id] = self._team_totals.get(team_id, 0.0) + sr.reward

        if step % self._frequency != 0:
            return []

        records = [
            {
                "episode": episode,
                "step": step,
                "agent_id": aid,
                "team_id": teams.get(aid),
                "acted": bool(sr.info.get("acted", False)),
                "raw_reward": float(sr.info.get("raw_reward", sr.reward)),
                "reward": sr.reward,
                "done": sr.done,
            }
            for aid, sr in results.items()
        ]
        self._records.extend(records)
        return records

    @property
    def step_records(self) -> list[dict[str, Any]]:
        return list(self._records)

    # ------------------------------------------------------------------
    # Episode summary
    # ------------------------------------------------------------------

    def end_episode(self, episode: int, episode_length: int) -> dict[str, Any]:
        """Close the current episode: store and return its summary, reset totals."""
        summary = {
            "episode": episode,
            "episode_length": episode_length,
            "total_reward_per_agent": dict(self._agent_totals),
            "total_reward_per_team": dict(self._team_totals),
        }
        self._episodes.append(summary)
        self._agent_totals = {}
        self._team_totals = {}
        return summary

    @property
    def episodes(self) -> list[dict[str, Any]]:
        return list(self._episodes)
