"""Deterministic seeding utilities.

Every random draw in environments and scripted policies goes through a
NumPy Generator built here, so an experiment is reproducible from its root
seed alone.
"""

from __future__ import annotations

import zlib

import numpy as np


def make_rng(seed: int | None = None) -> np.random.Generator:
    """Create a NumPy Generator; ``None`` gives a fresh, non-reproducible one."""
    return np.random.default_rng(seed)


def derive_seed(parent_seed: int, index: int) -> int:
    """Child seed for the ``index``-th consumer of ``parent_seed``."""
    ss = np.random.SeedSequence(parent_seed).spawn(index + 1)
    return int(ss[-1].generate_state(1)[0])


def agent_seed(root_seed: int, agent_id: str) -> int:
    """Child seed keyed by agent id instead of position.

    Agents can be created and removed mid-experiment, so a positional index
    would hand the same seed to different agents across runs.
    """
    ss = np.random.SeedSequence([root_seed, zlib.crc32(agent_id.encode("utf-8"))])
    return int(ss.generate_state(1)[0])
