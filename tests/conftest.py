"""
Pytest configuration and shared fixtures for blockmc tests.

This module provides:
- Warning suppression for expected test warnings
- Shared graph and model-state fixtures
"""

import jax

jax.config.update("jax_enable_x64", True)

import pytest
import warnings

import numpy as np

from blockmc.models import BlockState, PottsState, planted_partition
from test_utils import ring_adjacency


# ==============================================================================
# Warning Suppression Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def suppress_expected_warnings():
    """
    Suppress expected warnings during tests.

    These warnings are suppressed in tests only - they will still appear
    in production runs.

    Suppressed warnings:
    - parallel Metropolis sweeps at finite beta (approximate sampling)
    - multicanonical start outside the energy range
    """
    with warnings.catch_warnings():
        warnings.filterwarnings(
            "ignore",
            message="parallel sweeps at finite beta",
            category=UserWarning,
        )
        warnings.filterwarnings(
            "ignore",
            message="starting objective",
            category=UserWarning,
        )

        yield


# ==============================================================================
# Graph Fixtures
# ==============================================================================


@pytest.fixture
def ring():
    """10-cycle."""
    return ring_adjacency(10)


@pytest.fixture(scope="module")
def planted_graph():
    """Two dense groups of 20 vertices with sparse links between them."""
    A, labels = planted_partition(40, 2, 0.5, 0.05, rng=np.random.default_rng(0))
    return A, labels


@pytest.fixture
def potts_state(planted_graph):
    """Potts state with a random 3-group starting partition."""
    A, _ = planted_graph
    b = np.random.default_rng(1).integers(3, size=A.shape[0])
    return PottsState(A, b=b, B=3)


@pytest.fixture
def block_state(planted_graph):
    """Block model state with a random 3-group starting partition."""
    A, _ = planted_graph
    b = np.random.default_rng(2).integers(3, size=A.shape[0])
    return BlockState(A, b=b, B=3)


# ==============================================================================
# Slow Test Marker
# ==============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
