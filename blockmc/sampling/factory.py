"""
Sampler factory and dispatch-catalog registry.

Provides `run_sampler()` and the per-family shortcuts `mcmc_sweep()`,
`gibbs_sweep()` and `multicanonical_sweep()`, which look a catalog up by
name and run one sampler invocation from a configuration bundle.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np

from blockmc.models import MODEL_STATES
from blockmc.sampling.base import SweepResult, SweepSampler
from blockmc.sampling.dispatch import StateDispatch, TypeListField
from blockmc.sampling.gibbs import GibbsSampler
from blockmc.sampling.mcmc import MetropolisSampler
from blockmc.sampling.multicanonical import MulticanonicalSampler
from blockmc.sampling.resolver import try_extract

# Accepted containers for the vertex list
VERTEX_LISTS = (np.ndarray, list, tuple, range)

# Catalog registry
_SAMPLER_REGISTRY: Dict[str, StateDispatch] = {}


def register_sampler(name: str, catalog: StateDispatch) -> None:
    """
    Register a dispatch catalog.

    Parameters
    ----------
    name : str
        Name to register the catalog under (case-insensitive).
    catalog : StateDispatch
        Catalog to register.
    """
    _SAMPLER_REGISTRY[name.lower()] = catalog


def get_available_samplers() -> List[str]:
    """
    Get list of registered sampler names.

    Examples
    --------
    >>> from blockmc.sampling import get_available_samplers
    >>> print(get_available_samplers())
    ['gibbs', 'mcmc', 'metropolis', 'multicanonical', 'wang_landau']
    """
    return sorted(_SAMPLER_REGISTRY.keys())


def get_dispatch(name: str) -> StateDispatch:
    """
    Catalog registered under ``name``.

    Raises
    ------
    ValueError
        If the sampler name is not registered.
    """
    name_lower = name.lower()
    if name_lower not in _SAMPLER_REGISTRY:
        available = ', '.join(get_available_samplers())
        raise ValueError(f"Unknown sampler '{name}'. Available: {available}")
    return _SAMPLER_REGISTRY[name_lower]


def build_sampler(
    name: str, bundle: Any, rng: Optional[np.random.Generator] = None
) -> SweepSampler:
    """
    Build the specialised sampler for a bundle without running it.

    Examples
    --------
    >>> sampler = build_sampler('mcmc', bundle)
    >>> sampler.name
    'MetropolisSampler[PottsState, ndarray]'
    """
    return get_dispatch(name).make_dispatch(bundle, lambda sampler: sampler, rng=rng)


def run_sampler(
    bundle: Any,
    name: Optional[str] = None,
    rng: Optional[np.random.Generator] = None,
) -> SweepResult:
    """
    Run one sampler invocation described by a configuration bundle.

    Parameters
    ----------
    bundle : ConfigBundle
        State, vertex list, block list, algorithm parameters and flags.
    name : str, optional
        Sampler name. Defaults to the bundle's ``sampler`` field, or
        'mcmc' if it has none.
    rng : np.random.Generator, optional
        Generator to use. If None, the sampler seeds its own from the
        bundle's ``seed`` field.

    Returns
    -------
    SweepResult
        ``(dS, nattempts, nmoves)`` plus diagnostics.

    Raises
    ------
    DispatchError
        If the bundle's state or vertex list matches no catalog entry.
    ExtractionError
        If a required field is missing or has the wrong type.
    """
    if name is None:
        name = try_extract(bundle, 'sampler', str, optional=True, default='mcmc').unwrap()
    return get_dispatch(name).make_dispatch(
        bundle, lambda sampler: sampler.run(), rng=rng
    )


def mcmc_sweep(bundle: Any, rng: Optional[np.random.Generator] = None) -> SweepResult:
    """Metropolis-Hastings sweeps; see :func:`run_sampler`."""
    return run_sampler(bundle, 'mcmc', rng)


def gibbs_sweep(bundle: Any, rng: Optional[np.random.Generator] = None) -> SweepResult:
    """Gibbs sweeps; see :func:`run_sampler`."""
    return run_sampler(bundle, 'gibbs', rng)


def multicanonical_sweep(
    bundle: Any, rng: Optional[np.random.Generator] = None
) -> SweepResult:
    """Multicanonical sweeps; see :func:`run_sampler`."""
    return run_sampler(bundle, 'multicanonical', rng)


def _register_builtins() -> None:
    """Build and register the built-in catalogs."""
    type_fields = [
        TypeListField('state', MODEL_STATES),
        TypeListField('vlist', VERTEX_LISTS),
    ]

    mcmc = StateDispatch('mcmc', MetropolisSampler, type_fields)
    gibbs = StateDispatch('gibbs', GibbsSampler, type_fields)
    multicanonical = StateDispatch('multicanonical', MulticanonicalSampler, type_fields)

    register_sampler('mcmc', mcmc)
    register_sampler('gibbs', gibbs)
    register_sampler('multicanonical', multicanonical)

    # Aliases
    register_sampler('metropolis', mcmc)
    register_sampler('wang_landau', multicanonical)


# Build catalogs on module import
_register_builtins()
