"""
MCMC sweep samplers for partition inference.

This module provides the sampling engine: a parameter resolver that reads
typed fields out of a configuration bundle, dispatch catalogs that pick the
sampler specialisation for the bundle's model state and vertex list, and
three sampler families (Metropolis-Hastings, Gibbs, multicanonical).

Quick Start
-----------
>>> import numpy as np
>>> from blockmc.models import BlockState, planted_partition
>>> from blockmc.sampling import MCMCSweepConfig, mcmc_sweep
>>>
>>> # Graph with 4 planted groups and a random starting partition
>>> rng = np.random.default_rng(1)
>>> A, planted = planted_partition(200, 4, 0.2, 0.01, rng=rng)
>>> state = BlockState(A, b=rng.integers(4, size=200), B=4)
>>>
>>> # Configure and run
>>> config = MCMCSweepConfig(beta=1.0, c=1.0, niter=20, seed=42)
>>> bundle = config.to_bundle(
...     state=state, vlist=np.arange(200), block_list=np.arange(4)
... )
>>> dS, nattempts, nmoves = mcmc_sweep(bundle)
"""

from blockmc.sampling.base import SweepResult, SweepSampler
from blockmc.sampling.bundle import AnyHolder, ConfigBundle, Ref
from blockmc.sampling.configs import (
    BaseSweepConfig,
    MCMCSweepConfig,
    GibbsSweepConfig,
    MulticanonicalSweepConfig,
    SweepYAMLConfig,
)
from blockmc.sampling.resolver import (
    Extracted,
    extract,
    get_any,
    resolve_config,
    try_extract,
)
from blockmc.sampling.dispatch import StateDispatch, TypeListField
from blockmc.sampling.mcmc import MetropolisSampler, metropolis_accept
from blockmc.sampling.gibbs import GibbsSampler
from blockmc.sampling.multicanonical import (
    MulticanonicalSampler,
    MulticanonicalState,
    multicanonical_equilibrate,
)
from blockmc.sampling.rng import ParallelRNG, make_rng
from blockmc.sampling.factory import (
    build_sampler,
    get_available_samplers,
    get_dispatch,
    register_sampler,
    run_sampler,
    mcmc_sweep,
    gibbs_sweep,
    multicanonical_sweep,
)

__all__ = [
    # Core classes
    'SweepSampler',
    'SweepResult',
    'ConfigBundle',
    'AnyHolder',
    'Ref',
    # Config classes
    'BaseSweepConfig',
    'MCMCSweepConfig',
    'GibbsSweepConfig',
    'MulticanonicalSweepConfig',
    'SweepYAMLConfig',
    # Resolver
    'Extracted',
    'extract',
    'get_any',
    'resolve_config',
    'try_extract',
    # Dispatch
    'StateDispatch',
    'TypeListField',
    'build_sampler',
    'get_available_samplers',
    'get_dispatch',
    'register_sampler',
    'run_sampler',
    'mcmc_sweep',
    'gibbs_sweep',
    'multicanonical_sweep',
    # Samplers
    'MetropolisSampler',
    'GibbsSampler',
    'MulticanonicalSampler',
    'MulticanonicalState',
    'metropolis_accept',
    'multicanonical_equilibrate',
    # Random numbers
    'ParallelRNG',
    'make_rng',
]
