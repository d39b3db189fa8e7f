"""Unit tests for the foraging grid strategy running inside EnvironmentCore."""

from __future__ import annotations

import numpy as np
import pytest

from multiagent.core.environment import EnvironmentCore
from multiagent.core.rewards import TeamRewards
from multiagent.envs import ENVIRONMENT_REGISTRY, create_strategy
from multiagent.envs.foraging import ForageAction, ForagingStrategy
from multiagent.envs.foraging.actions import parse_action
from multiagent.envs.foraging.state import Resource


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _env(*agent_ids: str, seed: int = 42, **params) -> EnvironmentCore:
    core = EnvironmentCore(ForagingStrategy(), max_steps_per_episode=params.pop("max_steps", None))
    for aid in agent_ids:
        core.add_agent(aid)
    assert core.initialize({"seed": seed, **params})
    core.reset()
    return core


def _place(core: EnvironmentCore, positions: dict, resources: list) -> None:
    """Overwrite agent positions and resources after reset."""
    state = core.strategy.state
    for aid, pos in positions.items():
        state.agents[aid].position = pos
    state.resources = [Resource(position=p, value=1.0) for p in resources]


# ---------------------------------------------------------------------------
# Registry / parsing
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_foraging_registered(self) -> None:
        assert isinstance(create_strategy("foraging"), ForagingStrategy)
        assert "foraging" in ENVIRONMENT_REGISTRY

    def test_unknown_environment(self) -> None:
        with pytest.raises(KeyError):
            create_strategy("lava")


class TestParseAction:
    def test_accepts_enum_int_numpy_and_dict(self) -> None:
        assert parse_action(ForageAction.UP) is ForageAction.UP
        assert parse_action(5) is ForageAction.COLLECT
        assert parse_action(np.int64(3)) is ForageAction.LEFT
        assert parse_action({"action": 4}) is ForageAction.RIGHT

    @pytest.mark.parametrize("raw", [9, "north", None, {"move": 1}])
    def test_rejects_invalid(self, raw) -> None:
        with pytest.raises(ValueError, match="Invalid foraging action"):
            parse_action(raw)


# ---------------------------------------------------------------------------
# State and spaces
# ---------------------------------------------------------------------------

class TestSetup:
    def test_invalid_params_rejected(self) -> None:
        with pytest.raises(ValueError, match="grid_size"):
            ForagingStrategy().initialize_state({"grid_size": 1})
        with pytest.raises(ValueError, match="view_distance"):
            ForagingStrategy().initialize_state({"view_distance": -1})

    def test_reset_scatters_distinct_resources(self) -> None:
        core = _env("a", grid_size=5, num_resources=8)
        cells = [r.position for r in core.strategy.state.resources]
        assert len(cells) == 8
        assert len(set(cells)) == 8

    def test_same_seed_same_layout(self) -> None:
        first = _env("a", "b", seed=3).strategy.state
        second = _env("a", "b", seed=3).strategy.state
        assert [r.position for r in first.resources] == [r.position for r in second.resources]
        assert first.agents["a"].position == second.agents["a"].position

    def test_spaces_match_encoded_observation(self) -> None:
        core = _env("a", "b")
        obs = core.reset()
        encoded = core.strategy.encode_observation(obs["a"])
        assert core.observation_spaces()["a"].contains(encoded)
        assert core.action_spaces()["a"].n == len(ForageAction)


# ---------------------------------------------------------------------------
# Dynamics
# ---------------------------------------------------------------------------

class TestDynamics:
    def test_move_is_clamped(self) -> None:
        core = _env("a")
        _place(core, {"a": (0, 0)}, [(7, 7)])
        core.step({"a": ForageAction.UP})
        assert core.strategy.state.agents["a"].position == (0, 0)
        core.step({"a": ForageAction.RIGHT})
        assert core.strategy.state.agents["a"].position == (1, 0)

    def test_collect_rewards_and_removes_resource(self) -> None:
        core = _env("a", "b", step_penalty=0.0)
        _place(core, {"a": (2, 2), "b": (6, 6)}, [(2, 2), (5, 5)])
        results = core.step({"a": ForageAction.COLLECT, "b": ForageAction.COLLECT})
        assert results["a"].reward == pytest.approx(1.0)
        assert results["b"].reward == pytest.approx(0.0)
        assert results["a"].info["collected"] == 1
        assert len(core.strategy.state.remaining()) == 1

    def test_step_penalty_applies_to_idle_agents(self) -> None:
        core = _env("a", "b", step_penalty=0.05)
        results = core.step({"a": ForageAction.STAY})
        assert results["b"].reward == pytest.approx(-0.05)
        assert results["b"].info["acted"] is False

    def test_episode_ends_when_resources_gone(self) -> None:
        core = _env("a", "b")
        _place(core, {"a": (1, 1), "b": (4, 4)}, [(1, 1)])
        results = core.step({"a": ForageAction.COLLECT})
        assert all(r.done for r in results.values())
        assert core.is_done()

    def test_team_reward_shared(self) -> None:
        core = EnvironmentCore(ForagingStrategy(), TeamRewards(teams={"red": ("a", "b")}))
        core.add_agent("a")
        core.add_agent("b")
        core.initialize({"step_penalty": 0.0})
        core.reset()
        _place(core, {"a": (0, 0), "b": (5, 5)}, [(0, 0), (7, 7)])
        results = core.step({"a": ForageAction.COLLECT})
        assert results["a"].reward == results["b"].reward == pytest.approx(1.0)

    def test_invalid_action_raises(self) -> None:
        core = _env("a")
        with pytest.raises(ValueError):
            core.step({"a": 42})


# ---------------------------------------------------------------------------
# Partial observability
# ---------------------------------------------------------------------------

class TestObservation:
    def test_only_nearby_agents_and_resources_visible(self) -> None:
        core = _env("a", "b", "c", view_distance=2)
        _place(core, {"a": (3, 3), "b": (4, 5), "c": (7, 0)}, [(1, 1), (6, 6)])
        obs = core.step({})["a"].observation
        assert obs["others"]["b"]["visible"] is True
        assert obs["others"]["b"]["position"] == (4, 5)
        assert obs["others"]["c"] == {"id": "c", "visible": False}
        assert [r["position"] for r in obs["resources"]] == [(1, 1)]
        assert obs["environment"]["remaining_resources"] == 2

    def test_render_ansi(self) -> None:
        core = _env("a", grid_size=4)
        _place(core, {"a": (0, 0)}, [(3, 3)])
        grid = core.render("ansi").splitlines()
        assert grid[0][0] == "0"
        assert grid[3][3] == "*"
        assert core.render("human") is None
