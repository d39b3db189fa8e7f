"""Tests for MetricsCollector — record structure, frequency and summaries."""

from __future__ import annotations

import pytest

from multiagent.core.types import StepResult
from multiagent.metrics.collector import MetricsCollector
from multiagent.metrics.definitions import EPISODE_METRIC_KEYS, STEP_METRIC_KEYS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AGENTS = ["agent_0", "agent_1", "agent_2"]
TEAMS = {"agent_0": "red", "agent_1": "red", "agent_2": None}


def _make_results(agent_ids: list[str]) -> dict[str, StepResult]:
    return {
        aid: StepResult(
            observation={"step": 1},
            reward=0.1 * (i + 1),
            done=False,
            info={"raw_reward": 1.0, "acted": i % 2 == 0},
        )
        for i, aid in enumerate(agent_ids)
    }


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestStepMetrics:
    def test_one_record_per_agent_with_all_keys(self) -> None:
        collector = MetricsCollector()
        records = collector.collect_step(1, 1, _make_results(AGENTS), TEAMS)
        assert len(records) == len(AGENTS)
        for rec in records:
            assert set(rec) == set(STEP_METRIC_KEYS)

    def test_record_values(self) -> None:
        collector = MetricsCollector()
        records = collector.collect_step(2, 5, _make_results(AGENTS), TEAMS)
        first = records[0]
        assert first["episode"] == 2
        assert first["step"] == 5
        assert first["team_id"] == "red"
        assert first["acted"] is True
        assert first["raw_reward"] == 1.0
        assert first["reward"] == pytest.approx(0.1)
        assert records[1]["acted"] is False
        assert records[2]["team_id"] is None

    def test_frequency_skips_records_not_totals(self) -> None:
        collector = MetricsCollector(step_log_frequency=2)
        assert collector.collect_step(1, 1, _make_results(AGENTS), TEAMS) == []
        assert len(collector.collect_step(1, 2, _make_results(AGENTS), TEAMS)) == 3
        assert len(collector.step_records) == 3

        summary = collector.end_episode(1, 2)
        assert summary["total_reward_per_agent"]["agent_0"] == pytest.approx(0.2)

    def test_invalid_frequency(self) -> None:
        with pytest.raises(ValueError):
            MetricsCollector(step_log_frequency=0)


class TestEpisodeSummary:
    def test_summary_keys_and_team_totals(self) -> None:
        collector = MetricsCollector()
        collector.collect_step(1, 1, _make_results(AGENTS), TEAMS)
        summary = collector.end_episode(1, 1)
        assert set(summary) == set(EPISODE_METRIC_KEYS)
        assert summary["total_reward_per_team"] == {"red": pytest.approx(0.3)}
        assert summary["episode_length"] == 1

    def test_totals_reset_between_episodes(self) -> None:
        collector = MetricsCollector()
        collector.collect_step(1, 1, _make_results(AGENTS), TEAMS)
        collector.end_episode(1, 1)
        summary = collector.end_episode(2, 0)
        assert summary["total_reward_per_agent"] == {}
        assert [s["episode"] for s in collector.episodes] == [1, 2]
