"""Default experiment configuration.

A small two-team foraging experiment with mixed rewards, useful as a
baseline for quick runs.  All values are explicit.
"""

from multiagent.config.schema import (
    AgentSpec,
    EnvironmentSpec,
    ExperimentConfig,
    RewardStructureConfig,
    RewardWeights,
    TeamSpec,
)


def default_config(seed: int = 42) -> ExperimentConfig:
    """Return a complete, valid default experiment."""
    return ExperimentConfig(
        id="foraging_teams",
        seed=seed,
        agents=[
            AgentSpec(id="red_0", type="forager", team="red"),
            AgentSpec(id="red_1", type="random", team="red"),
            AgentSpec(id="blue_0", type="forager", team="blue"),
            AgentSpec(id="blue_1", type="random", team="blue"),
        ],
        teams=[TeamSpec(id="red", name="Red"), TeamSpec(id="blue", name="Blue")],
        environment=EnvironmentSpec(
            type="foraging",
            max_steps_per_episode=100,
            grid_size=8,
            view_distance=2,
            num_resources=10,
        ),
        reward_structure=RewardStructureConfig(
            type="mixed",
            teams={"red": ["red_0", "red_1"], "blue": ["blue_0", "blue_1"]},
            weights=RewardWeights(individual=0.6, team=0.4),
        ),
        max_steps=1_000,
        max_episodes=5,
        log_frequency=50,
    )
