"""Experiment wiring and the episode loop.

``build_experiment`` turns a validated ExperimentConfig into a coupled
EnvironmentCore / AgentCoordinator pair.  ``ExperimentRunner`` drives the
pair:

    runner = ExperimentRunner(config)
    if runner.setup():
        summary = runner.run()
    runner.cleanup()

An episode ends when every agent is done or the per-episode step ceiling is
reached; the run stops at ``max_steps`` total steps or ``max_episodes``
completed episodes, whichever comes first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from multiagent.agents.coordinator import AgentCoordinator, AgentFactory
from multiagent.agents.factory import create_agent
from multiagent.config.schema import ExperimentConfig
from multiagent.core.environment import EnvironmentCore, EnvironmentStrategy
from multiagent.core.rewards import reward_structure_from_config
from multiagent.core.seeding import agent_seed, derive_seed
from multiagent.core.types import ActionMode, AgentID, StepResult
from multiagent.envs import ENVIRONMENT_REGISTRY
from multiagent.metrics.collector import MetricsCollector
from multiagent.metrics.events import EventLog


@dataclass(slots=True)
class Experiment:
    """A wired, not yet initialised environment/coordinator pair."""

    environment: EnvironmentCore
    coordinator: AgentCoordinator
    events: EventLog
    environment_config: dict[str, Any] = field(default_factory=dict)


def build_experiment(
    config: ExperimentConfig,
    environments: Mapping[str, Callable[..., EnvironmentStrategy]] = ENVIRONMENT_REGISTRY,
    agent_factory: AgentFactory = create_agent,
    logger: logging.Logger | None = None,
) -> Experiment:
    """Wire an experiment from config.

    Teams are created first so agents join them on arrival; agents are
    created in config order, which is also the default turn order.  Agents
    without an explicit ``seed`` get one derived from the root seed and
    their id.

    Raises ValueError for an unknown environment type or an agent the
    factory cannot build.
    """
    log = logger or logging.getLogger(__name__)
    env_spec = config.environment
    strategy_cls = environments.get(env_spec.type)
    if strategy_cls is None:
        raise ValueError(f"Unknown environment type: {env_spec.type}")

    events = EventLog()
    environment = EnvironmentCore(
        strategy_cls(),
        reward_structure_from_config(config.reward_structure),
        max_steps_per_episode=env_spec.max_steps_per_episode,
        simultaneous_actions=env_spec.simultaneous_actions,
        logger=log,
        events=events,
    )
    coordinator = AgentCoordinator(
        agent_factory, action_mode=config.action_mode, logger=log, events=events
    )

    for team_id, members in config.team_members().items():
        coordinator.create_team(team_id, members)

    for spec in config.agents:
        agent_config = spec.agent_config()
        agent_config.setdefault("seed", agent_seed(config.seed, spec.id))
        if coordinator.create_agent(spec.id, agent_config) is None:
            raise ValueError(f"Could not create agent {spec.id} of type {spec.type}")
        environment.add_agent(spec.id, agent_config)

    if config.action_mode is ActionMode.TURN_BASED and config.turn_order:
        coordinator.set_turn_order(config.turn_order)

    env_config = env_spec.params()
    env_config.setdefault("seed", derive_seed(config.seed, 0))
    return Experiment(
        environment=environment,
        coordinator=coordinator,
        events=events,
        environment_config=env_config,
    )


class ExperimentRunner:
    """Runs one experiment: setup, episodes, summary, cleanup."""

    def __init__(
        self,
        config: ExperimentConfig,
        *,
        environments: Mapping[str, Callable[..., EnvironmentStrategy]] = ENVIRONMENT_REGISTRY,
        agent_factory: AgentFactory = create_agent,
        collector: MetricsCollector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._environments = environments
        self._agent_factory = agent_factory
        self._collector = collector or MetricsCollector()
        self._log = logger or logging.getLogger(__name__)

        self._experiment: Experiment | None = None
        self._observations: dict[AgentID, dict[str, Any]] = {}
        self._total_steps = 0
        self._episodes_completed = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def setup(self) -> bool:
        """Build, initialise the environment, then bind agents to their spaces."""
        try:
            experiment = build_experiment(
                self._config, self._environments, self._agent_factory, logger=self._log
            )
        except ValueError:
            self._log.exception("Failed to build experiment %s", self._config.id)
            return False

        try:
            initialized = experiment.environment.initialize(experiment.environment_config)
        except ValueError:
            self._log.exception("Invalid environment configuration for %s", self._config.id)
            return False
        if not initialized:
            self._log.error("Failed to initialize environment for %s", self._config.id)
            return False
        if not experiment.coordinator.initialize_agents(experiment.environment):
            self._log.error("Failed to initialize agents for %s", self._config.id)
            return False

        self._experiment = experiment
        self._log.info(
            "Experiment %s set up with %d agents in %s mode",
            self._config.id, len(experiment.coordinator), self._config.action_mode.value,
        )
        return True

    def reset(self) -> dict[AgentID, dict[str, Any]]:
        """Start a new episode and return the initial observations."""
        experiment = self._require_experiment()
        experiment.coordinator.reset_agents()
        self._observations = experiment.environment.reset()
        return dict(self._observations)

    def step(self) -> dict[AgentID, StepResult]:
        """Run one tick: select actions, step the environment, feed results back."""
        experiment = self._require_experiment()
        env, coordinator = experiment.environment, experiment.coordinator

        actions = coordinator.get_actions(self._observations)
        results = env.step(actions)
        coordinator.update_agents(results)
        self._observations = {aid: sr.observation for aid, sr in results.items()}
        self._total_steps += 1

        teams = {aid: rec.team_id for aid, rec in coordinator.agents().items()}
        self._collector.collect_step(env.episode, env.current_step, results, teams)

        freq = self._config.log_frequency
        if freq and self._total_steps % freq == 0:
            self._log.info(
                "Step %d (episode %d, tick %d): mean reward %.3f",
                self._total_steps, env.episode, env.current_step,
                sum(sr.reward for sr in results.values()) / max(len(results), 1),
            )

        if env.is_done():
            self._episodes_completed += 1
            summary = self._collector.end_episode(env.episode, env.current_step)
            self._log.debug("Episode %d summary: %s", env.episode, summary)
        return results

    def run(self) -> dict[str, Any]:
        """Run episodes until the step or episode budget is exhausted."""
        if self._experiment is None and not self.setup():
            raise RuntimeError(f"Experiment {self._config.id} could not be set up")
        env = self._require_experiment().environment

        while (
            self._total_steps < self._config.max_steps
            and self._episodes_completed < self._config.max_episodes
        ):
            self.reset()
            while not env.is_done() and self._total_steps < self._config.max_steps:
                self.step()

        summary = self.summary()
        self._log.info(
            "Experiment %s finished: %d steps, %d episodes",
            self._config.id, summary["total_steps"], summary["episodes"],
        )
        return summary

    def cleanup(self) -> None:
        if self._experiment is None:
            return
        self._experiment.coordinator.terminate_agents()
        self._experiment.environment.close()
        self._experiment = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def summary(self) -> dict[str, Any]:
        experiment = self._require_experiment()
        records = experiment.coordinator.agents()
        per_team: dict[str, float] = {}
        for rec in records.values():
            if rec.team_id is not None:
                per_team[rec.team_id] = per_team.get(rec.team_id, 0.0) + rec.total_reward
        return {
            "experiment_id": self._config.id,
            "total_steps": self._total_steps,
            "episodes": self._episodes_completed,
            "total_reward_per_agent": {aid: rec.total_reward for aid, rec in records.items()},
            "total_reward_per_team": per_team,
            "episode_summaries": self._collector.episodes,
        }

    @property
    def experiment(self) -> Experiment | None:
        return self._experiment

    @property
    def collector(self) -> MetricsCollector:
        return self._collector

    @property
    def total_steps(self) -> int:
        return self._total_steps

    @property
    def episodes_completed(self) -> int:
        return self._episodes_completed

    def _require_experiment(self) -> Experiment:
        if self._experiment is None:
            raise RuntimeError("Must call setup() first.")
        return self._experiment
