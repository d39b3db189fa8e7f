"""CLI entrypoint: python -m multiagent.runner.run_experiment

Usage:
    python -m multiagent.runner.run_experiment --experiment default
    python -m multiagent.runner.run_experiment --config-dir configs --experiment foraging --preset quick
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from multiagent.config.defaults import default_config
from multiagent.config.loader import ConfigLoader
from multiagent.config.schema import ConfigurationError, load_experiment_config

from .experiment import ExperimentRunner

CONFIGS_DIR = Path("configs")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a multi-agent coordination experiment.")
    parser.add_argument(
        "--experiment",
        default="default",
        help='Experiment name under <config-dir>/experiments/ or "default" for default_config().',
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=CONFIGS_DIR,
        help="Directory holding experiments/, agents/, environments/ and presets/.",
    )
    parser.add_argument(
        "--preset",
        action="append",
        default=[],
        help="Preset to apply on top of the experiment (repeatable, applied in order).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override the experiment's root seed.",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Override max_steps for a shorter run.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.experiment == "default":
        config = default_config()
    else:
        loader = ConfigLoader(args.config_dir)
        try:
            config = loader.load_experiment(args.experiment, presets=args.preset)
        except FileNotFoundError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1
        except ConfigurationError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 2

    overrides = {}
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.max_steps is not None:
        overrides["maxSteps"] = args.max_steps
    if overrides:
        raw = config.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            config = load_experiment_config({**raw, **overrides})
        except ConfigurationError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 2

    runner = ExperimentRunner(config)
    if not runner.setup():
        print(f"ERROR: experiment {config.id} could not be set up", file=sys.stderr)
        return 1
    try:
        summary = runner.run()
    finally:
        runner.cleanup()

    print(json.dumps(summary, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
