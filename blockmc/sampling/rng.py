"""
Random number streams for the sweep samplers.

Sweeps draw from ``numpy.random.Generator`` objects. Seeds go through
``jax.random`` keys so that one run seed fans out into independent,
reproducible per-worker streams with ``jax.random.split``.
"""

from __future__ import annotations

import time
from typing import List, Optional

import numpy as np
import jax.random as random


def make_key(seed: Optional[int] = None):
    """JAX PRNG key from a seed, or from the wall clock if seed is None."""
    if seed is not None:
        return random.PRNGKey(seed)
    return random.PRNGKey(int(time.time() * 1000) % (2**31 - 1))


def generator_from_key(key) -> np.random.Generator:
    """Build a numpy Generator seeded with the raw bits of a JAX key."""
    return np.random.default_rng(np.asarray(random.key_data(key)))


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """
    Generator for a sampler run.

    Examples
    --------
    >>> rng = make_rng(42)
    >>> rng.integers(10) == make_rng(42).integers(10)
    True
    """
    return generator_from_key(make_key(seed))


class ParallelRNG:
    """
    One independent generator per worker.

    The parent generator is consumed exactly once (one draw for the split
    seed), so the streams depend only on the parent's state and the worker
    count.

    Parameters
    ----------
    rng : np.random.Generator
        Parent generator.
    n_workers : int
        Number of worker streams.
    """

    def __init__(self, rng: np.random.Generator, n_workers: int):
        if n_workers < 1:
            raise ValueError("n_workers must be >= 1")
        seed = int(rng.integers(2**31 - 1))
        keys = random.split(random.PRNGKey(seed), n_workers)
        self._streams: List[np.random.Generator] = [
            generator_from_key(keys[i]) for i in range(n_workers)
        ]

    def __len__(self) -> int:
        return len(self._streams)

    def get(self, worker: int) -> np.random.Generator:
        return self._streams[worker]
