"""File-based experiment configuration.

Layout under a config directory::

    experiments/<name>.yaml   top-level key ``experiment``
    agents/<type>.yaml        top-level key ``agent``        (base per policy type)
    environments/<type>.yaml  top-level key ``environment``  (base per env type)
    presets/<name>.yaml       top-level key ``preset``       (overrides)

JSON files (``.json``) are accepted anywhere YAML is.  Resolution merges
base agent/environment configs under the experiment's own entries, then
applies presets in order, then validates the result.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from multiagent.config.schema import ExperimentConfig, load_experiment_config

_EXTENSIONS = (".yaml", ".yml", ".json")


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Nested mappings merge key by key; every other value (lists included) in
    ``override`` replaces the one in ``base``.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class ConfigLoader:
    """Loads, merges and validates experiment configs from a directory."""

    def __init__(self, config_dir: str | Path, logger: logging.Logger | None = None) -> None:
        self._dir = Path(config_dir)
        self._log = logger or logging.getLogger(__name__)

    @property
    def config_dir(self) -> Path:
        return self._dir

    # ------------------------------------------------------------------
    # Raw sections
    # ------------------------------------------------------------------

    def load_agent_config(self, name: str) -> dict[str, Any]:
        return self._read_section("agents", name, "agent")

    def load_environment_config(self, name: str) -> dict[str, Any]:
        return self._read_section("environments", name, "environment")

    def load_preset_config(self, name: str) -> dict[str, Any]:
        return self._read_section("presets", name, "preset")

    def load_raw_experiment(self, name: str) -> dict[str, Any]:
        """Experiment section with base agent/environment configs merged in."""
        data = self._read_section("experiments", name, "experiment")

        agents = []
        for agent in data.get("agents") or []:
            agent_type = agent.get("type") if isinstance(agent, Mapping) else None
            if agent_type:
                base = self._optional_base("agents", agent_type, "agent")
                agent = deep_merge(base, agent)
            agents.append(agent)
        if agents:
            data["agents"] = agents

        environment = data.get("environment")
        if isinstance(environment, Mapping) and environment.get("type"):
            base = self._optional_base("environments", environment["type"], "environment")
            data["environment"] = deep_merge(base, environment)

        return data

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def load_experiment(self, name: str, presets: Iterable[str] = ()) -> ExperimentConfig:
        """Load an experiment, apply presets in order and validate it.

        Raises ConfigurationError listing every problem if the merged config
        is invalid, FileNotFoundError if the experiment itself is missing.
        """
        data = self.load_raw_experiment(name)
        for preset in presets:
            try:
                data = deep_merge(data, self.load_preset_config(preset))
            except (FileNotFoundError, ValueError) as exc:
                self._log.warning("Could not apply preset %s: %s", preset, exc)
        config = load_experiment_config(data)
        self._log.debug("Resolved experiment %s with presets %s", name, list(presets))
        return config

    def save_experiment(self, config: ExperimentConfig, name: str) -> Path:
        path = self._dir / "experiments" / f"{name}.yaml"
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"experiment": config.model_dump(mode="json", by_alias=True, exclude_none=True)}
        path.write_text(yaml.safe_dump(payload, sort_keys=False, indent=2), encoding="utf-8")
        self._log.info("Saved experiment configuration %s to %s", name, path)
        return path

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_experiments(self) -> list[str]:
        return self._list("experiments")

    def list_agents(self) -> list[str]:
        return self._list("agents")

    def list_environments(self) -> list[str]:
        return self._list("environments")

    def list_presets(self) -> list[str]:
        return self._list("presets")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _list(self, kind: str) -> list[str]:
        folder = self._dir / kind
        if not folder.is_dir():
            return []
        return sorted({p.stem for p in folder.iterdir() if p.suffix in _EXTENSIONS})

    def _find(self, kind: str, name: str) -> Path:
        for ext in _EXTENSIONS:
            path = self._dir / kind / f"{name}{ext}"
            if path.is_file():
                return path
        raise FileNotFoundError(f"{kind[:-1].capitalize()} configuration file not found: {name}")

    def _read_section(self, kind: str, name: str, section: str) -> dict[str, Any]:
        path = self._find(kind, name)
        text = path.read_text(encoding="utf-8")
        data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
        if not isinstance(data, Mapping) or not isinstance(data.get(section), Mapping):
            raise ValueError(f"Invalid {kind[:-1]} configuration {path}: missing '{section}' section")
        return dict(data[section])

    def _optional_base(self, kind: str, name: str, section: str) -> dict[str, Any]:
        try:
            return self._read_section(kind, name, section)
        except FileNotFoundError:
            self._log.warning("No base %s configuration for %s", section, name)
        except ValueError as exc:
            self._log.warning("Could not load base %s configuration for %s: %s", section, name, exc)
        return {}
