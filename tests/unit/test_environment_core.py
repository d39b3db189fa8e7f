"""Unit tests for EnvironmentCore — lifecycle, step contract and events.

Uses a minimal counting strategy so the core's own behaviour is isolated
from any concrete environment.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import pytest
from gymnasium import spaces

from multiagent.core.environment import EnvironmentCore, EnvironmentStrategy
from multiagent.core.rewards import (
    MixedRewards,
    RewardConfigurationError,
    TeamRewards,
    ZeroSumRewards,
)
from multiagent.core.types import AgentSpaces, EnvironmentPhase
from multiagent.metrics.definitions import EventType


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _CountingStrategy(EnvironmentStrategy):
    """Each action adds its value to the agent's counter; reward = action value.

    Agents listed in ``no_spaces`` cannot resolve spaces.  An agent is done
    once its counter reaches ``done_at``.
    """

    def __init__(self, no_spaces: set[str] | None = None, done_at: int | None = None) -> None:
        self.no_spaces = no_spaces or set()
        self.done_at = done_at
        self.counters: dict[str, int] = {}
        self.initialized_with: dict[str, Any] | None = None
        self.process_calls = 0
        self.closed = False

    def initialize_state(self, config: Mapping[str, Any]) -> None:
        self.initialized_with = dict(config)

    def reset_state(self) -> None:
        self.counters.clear()

    def reset_agent_state(self, agent_id: str) -> None:
        self.counters[agent_id] = 0

    def remove_agent_state(self, agent_id: str) -> None:
        self.counters.pop(agent_id, None)

    def build_spaces(self, agent_id: str, agent_config: Mapping[str, Any]) -> AgentSpaces | None:
        if agent_id in self.no_spaces:
            return None
        return AgentSpaces(observation_space=spaces.Discrete(100), action_space=spaces.Discrete(5))

    def process_actions(self, actions: Mapping[str, Any]) -> None:
        self.process_calls += 1
        for aid, value in actions.items():
            self.counters[aid] += int(value)

    def generate_observation(self, agent_id: str) -> dict[str, Any]:
        return {"count": self.counters[agent_id]}

    def calculate_reward(self, agent_id: str, actions: Mapping[str, Any]) -> float:
        return float(actions.get(agent_id, 0))

    def is_agent_done(self, agent_id: str) -> bool:
        return self.done_at is not None and self.counters[agent_id] >= self.done_at

    def get_agent_info(self, agent_id: str) -> dict[str, Any]:
        return {"count": self.counters[agent_id]}

    def render(self, mode: str = "human") -> Any:
        return str(self.counters) if mode == "ansi" else None

    def close(self) -> None:
        self.closed = True


def _core(*agent_ids: str, strategy: _CountingStrategy | None = None, **kwargs) -> EnvironmentCore:
    core = EnvironmentCore(strategy or _CountingStrategy(), **kwargs)
    for aid in agent_ids:
        core.add_agent(aid)
    return core


def _running(*agent_ids: str, **kwargs) -> EnvironmentCore:
    core = _core(*agent_ids, **kwargs)
    assert core.initialize()
    core.reset()
    return core


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_initialize_resolves_spaces(self) -> None:
        core = _core("a", "b")
        assert core.phase is EnvironmentPhase.UNINITIALIZED
        assert core.initialize({"size": 3}) is True
        assert core.phase is EnvironmentPhase.INITIALIZED
        assert core.strategy.initialized_with == {"size": 3}
        assert set(core.observation_spaces()) == {"a", "b"}
        assert set(core.action_spaces()) == {"a", "b"}

    def test_initialize_is_all_or_nothing(self, caplog) -> None:
        core = _core("a", "b", strategy=_CountingStrategy(no_spaces={"b"}))
        with caplog.at_level(logging.ERROR):
            assert core.initialize() is False
        assert "b" in caplog.text
        assert core.phase is EnvironmentPhase.UNINITIALIZED
        assert core.spaces_for("a") is None

    def test_failed_reinitialize_of_running_core(self, caplog) -> None:
        strategy = _CountingStrategy()
        core = _core("a", "b", strategy=strategy)
        assert core.initialize()
        core.reset()
        core.step({"a": 1})
        old_spaces = core.spaces_for("b")

        strategy.no_spaces = {"b"}
        with caplog.at_level(logging.ERROR):
            assert core.initialize({"seed": 5}) is False
        assert core.phase is EnvironmentPhase.UNINITIALIZED
        assert core.spaces_for("b") is old_spaces
        with pytest.raises(RuntimeError, match="reset"):
            core.step({"a": 0})
        with pytest.raises(RuntimeError, match="initialize"):
            core.reset()

        strategy.no_spaces = set()
        assert core.initialize({"seed": 5})
        core.reset()
        assert core.step({"a": 1})["a"].observation == {"count": 1}

    def test_reset_before_initialize_raises(self) -> None:
        core = _core("a")
        with pytest.raises(RuntimeError, match="initialize"):
            core.reset()

    def test_step_before_reset_raises(self) -> None:
        core = _core("a")
        core.initialize()
        with pytest.raises(RuntimeError, match="reset"):
            core.step({})

    def test_reset_returns_observation_per_agent(self) -> None:
        core = _core("a", "b")
        core.initialize()
        obs = core.reset()
        assert obs == {"a": {"count": 0}, "b": {"count": 0}}
        assert core.current_step == 0
        assert core.episode == 1
        assert core.phase is EnvironmentPhase.RUNNING

    def test_reset_restarts_step_counter(self) -> None:
        core = _running("a")
        core.step({"a": 1})
        core.step({"a": 1})
        core.reset()
        assert core.current_step == 0
        assert core.episode == 2

    def test_close_is_idempotent_and_final(self) -> None:
        core = _running("a")
        core.close()
        core.close()
        assert core.phase is EnvironmentPhase.TERMINATED
        assert core.strategy.closed is True
        with pytest.raises(RuntimeError, match="closed"):
            core.step({"a": 1})
        with pytest.raises(RuntimeError, match="closed"):
            core.reset()


# ---------------------------------------------------------------------------
# Agent registry
# ---------------------------------------------------------------------------

class TestAgentRegistry:
    def test_registration_order(self) -> None:
        core = _core("c", "a", "b")
        assert core.agent_ids == ["c", "a", "b"]

    def test_duplicate_add_rejected(self) -> None:
        core = _core("a")
        assert core.add_agent("a") is False
        assert core.agent_ids == ["a"]

    def test_add_after_initialize_needs_spaces(self) -> None:
        core = _core("a", strategy=_CountingStrategy(no_spaces={"x"}))
        core.initialize()
        assert core.add_agent("x") is False
        assert "x" not in core.agent_ids
        assert core.add_agent("b") is True
        assert core.spaces_for("b") is not None

    def test_add_while_running_joins_episode(self) -> None:
        core = _running("a")
        assert core.add_agent("late") is True
        results = core.step({"late": 2})
        assert results["late"].observation == {"count": 2}

    def test_remove_agent(self) -> None:
        core = _running("a", "b")
        assert core.remove_agent("a") is True
        assert core.remove_agent("a") is False
        assert set(core.step({}).keys()) == {"b"}


# ---------------------------------------------------------------------------
# Step contract
# ---------------------------------------------------------------------------

class TestStep:
    def test_every_agent_gets_a_result(self) -> None:
        core = _running("a", "b", "c")
        results = core.step({"b": 1})
        assert set(results) == {"a", "b", "c"}
        assert results["b"].info["acted"] is True
        assert results["a"].info["acted"] is False
        assert results["a"].reward == 0.0

    def test_step_counter_advances_once_per_call(self) -> None:
        core = _running("a", "b")
        for expected in range(1, 4):
            core.step({"a": 1, "b": 1})
            assert core.current_step == expected
        assert core.strategy.process_calls == 3

    def test_unknown_action_ids_dropped(self, caplog) -> None:
        core = _running("a")
        with caplog.at_level(logging.WARNING):
            results = core.step({"a": 1, "ghost": 3})
        assert "ghost" in caplog.text
        assert "ghost" not in results
        assert results["a"].observation == {"count": 1}

    def test_info_carries_raw_reward(self) -> None:
        core = _running("a", "b", reward_structure=ZeroSumRewards())
        results = core.step({"a": 4})
        assert results["a"].info["raw_reward"] == 4.0
        assert results["a"].reward == pytest.approx(2.0)
        assert results["b"].reward == pytest.approx(-2.0)

    def test_team_rewards_applied(self) -> None:
        structure = TeamRewards(teams={"red": ("a", "b"), "blue": ("c",)})
        core = _running("a", "b", "c", reward_structure=structure)
        results = core.step({"a": 1, "b": 2, "c": 4})
        assert results["a"].reward == results["b"].reward == 3.0
        assert results["c"].reward == 4.0

    def test_emptied_team_fails_step_before_any_mutation(self) -> None:
        structure = TeamRewards(teams={"red": ("a",), "blue": ("b",)})
        core = _running("a", "b", reward_structure=structure)
        core.step({"a": 1, "b": 1})
        assert core.remove_agent("b")

        with pytest.raises(RewardConfigurationError, match="blue"):
            core.step({"a": 3})
        assert core.strategy.counters == {"a": 1}
        assert core.strategy.process_calls == 1
        assert core.current_step == 1
        assert not core.is_done()

    def test_unteamed_agent_fails_step_before_any_mutation(self) -> None:
        structure = MixedRewards(teams={"red": ("a",)}, individual_weight=0.5, team_weight=0.5)
        core = _running("a", reward_structure=structure)
        assert core.add_agent("loner")

        with pytest.raises(RewardConfigurationError, match="loner"):
            core.step({"a": 2, "loner": 2})
        assert core.strategy.counters == {"a": 0, "loner": 0}
        assert core.strategy.process_calls == 0
        assert core.current_step == 0

    def test_step_ceiling_ends_episode(self) -> None:
        core = _running("a", max_steps_per_episode=3)
        assert core.step({"a": 0})["a"].done is False
        assert core.step({"a": 0})["a"].done is False
        assert core.step({"a": 0})["a"].done is True
        assert core.is_done()
        with pytest.raises(RuntimeError, match="done"):
            core.step({"a": 0})

    def test_all_done_ends_episode(self) -> None:
        core = _running("a", "b", strategy=_CountingStrategy(done_at=2))
        results = core.step({"a": 2})
        assert results["a"].done is True
        assert results["b"].done is False
        assert not core.is_done()
        core.step({"b": 2})
        assert core.is_done()

    def test_render_delegates(self) -> None:
        core = _running("a")
        assert core.render("ansi") == "{'a': 0}"
        assert core.render() is None


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class TestEvents:
    def test_churn_and_episode_events(self) -> None:
        core = _running("a", max_steps_per_episode=1)
        core.remove_agent("a")
        core.add_agent("b")
        core.step({})
        kinds = [e["event"] for e in core.events.events]
        assert kinds == [
            EventType.AGENT_ADDED.value,
            EventType.AGENT_REMOVED.value,
            EventType.AGENT_ADDED.value,
            EventType.EPISODE_ENDED.value,
        ]
        ended = core.events.of_type(EventType.EPISODE_ENDED)[0]
        assert ended["episode"] == 1
        assert ended["step"] == 1
