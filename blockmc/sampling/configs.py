"""
Configuration classes for sweep samplers.

Each sampler family has its own config class with only the relevant
fields. The dataclass is also the record layout of the configuration
bundle: :func:`blockmc.sampling.resolver.resolve_config` extracts one bundle
field per dataclass field, using the annotation as the expected type.
Fields whose metadata is ``OPTIONAL`` may be left out of a bundle.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from blockmc.sampling.bundle import ConfigBundle

OPTIONAL = {'optional': True}

OUT_OF_RANGE_POLICIES = ('reject', 'clamp')

# multicanonical section keys read by the Wang-Landau driver, not the state
WANG_LANDAU_KEYS = ('f_min', 'flatness')


@dataclass
class BaseSweepConfig:
    """
    Minimal configuration shared by all sweep samplers.

    Attributes
    ----------
    niter : int
        Number of sweeps to perform.
    allow_empty : bool
        Whether a move may leave a group empty.
    verbose : bool
        Print one line per attempted move.
    seed : int, optional
        Seed for the sampler's generator when none is passed to ``run``.
        If None, uses the wall clock.
    """

    niter: int = 1
    allow_empty: bool = True
    verbose: bool = False
    seed: Optional[int] = field(default=None, metadata=OPTIONAL)

    def __post_init__(self):
        if self.niter < 0:
            raise ValueError("niter must be >= 0")

    def to_bundle(self, **values: Any) -> ConfigBundle:
        """
        Flatten this config plus runtime values into a ConfigBundle.

        Examples
        --------
        >>> config = MCMCSweepConfig(beta=float('inf'), niter=5)
        >>> bundle = config.to_bundle(state=state, vlist=vertices,
        ...                           block_list=groups)
        """
        bundle = ConfigBundle({f.name: getattr(self, f.name) for f in fields(self)})
        bundle.update(values)
        return bundle


def _check_rate(name: str, value: float) -> None:
    if math.isnan(value) or value < 0:
        raise ValueError(f"{name} must be >= 0 (inf allowed), got {value}")


@dataclass
class MCMCSweepConfig(BaseSweepConfig):
    """
    Configuration for Metropolis-Hastings sweeps.

    Attributes
    ----------
    beta : float
        Inverse temperature. ``inf`` gives a greedy descent.
    c : float
        Locality parameter for move proposals. ``inf`` proposes groups
        uniformly and disables the Hastings correction.
    sequential : bool
        Visit every vertex once per sweep (shuffled). Otherwise vertices are
        sampled uniformly with replacement.
    parallel : bool
        Evaluate proposals with a worker pool against the pre-sweep state,
        then commit them in a sequential reconciliation pass.
    deterministic : bool
        Do not shuffle; reverse the visiting order after every sweep.
    n_workers : int
        Worker count for parallel sweeps.

    Examples
    --------
    >>> config = MCMCSweepConfig(beta=1.0, c=0.5, niter=10, seed=42)
    """

    beta: float = 1.0
    c: float = 1.0
    sequential: bool = True
    parallel: bool = False
    deterministic: bool = field(default=False, metadata=OPTIONAL)
    n_workers: int = field(default=1, metadata=OPTIONAL)

    def __post_init__(self):
        super().__post_init__()
        _check_rate('beta', self.beta)
        _check_rate('c', self.c)
        if self.n_workers < 1:
            raise ValueError("n_workers must be >= 1")


@dataclass
class GibbsSweepConfig(BaseSweepConfig):
    """
    Configuration for single-site Gibbs sweeps.

    Attributes
    ----------
    beta : float
        Inverse temperature. ``inf`` picks the best candidate.
    sequential : bool
        Visit every vertex once per sweep (shuffled).
    deterministic : bool
        Do not shuffle; reverse the visiting order after every sweep.
    """

    beta: float = 1.0
    sequential: bool = True
    deterministic: bool = field(default=False, metadata=OPTIONAL)

    def __post_init__(self):
        super().__post_init__()
        _check_rate('beta', self.beta)


@dataclass
class MulticanonicalSweepConfig(BaseSweepConfig):
    """
    Configuration for multicanonical (Wang-Landau) sweeps.

    The histogram and density-of-states arrays are not part of the config:
    they are mutated by the sweep and travel in the bundle as ``hist`` and
    ``dens``.

    Attributes
    ----------
    c : float
        Locality parameter for move proposals.
    S_min, S_max : float
        Objective range covered by the histogram bins.
    f : float
        Log-density increment added to the current bin at every step.
    S : float
        Objective value of the state at the start of the sweep.
    out_of_range : str
        'reject' (default) rejects moves leaving [S_min, S_max];
        'clamp' maps them to the nearest boundary bin.
    """

    c: float = math.inf
    S_min: float = 0.0
    S_max: float = 1.0
    f: float = 1.0
    S: float = 0.0
    out_of_range: str = field(default='reject', metadata=OPTIONAL)

    def __post_init__(self):
        super().__post_init__()
        _check_rate('c', self.c)
        _check_rate('f', self.f)
        if not self.S_max > self.S_min:
            raise ValueError("S_max must be > S_min")
        if self.out_of_range not in OUT_OF_RANGE_POLICIES:
            raise ValueError(
                f"out_of_range must be one of {OUT_OF_RANGE_POLICIES}, "
                f"got '{self.out_of_range}'"
            )


# =============================================================================
# YAML Configuration Loading
# =============================================================================

CONFIG_TYPES = {
    'mcmc': MCMCSweepConfig,
    'metropolis': MCMCSweepConfig,
    'gibbs': GibbsSweepConfig,
    'multicanonical': MulticanonicalSweepConfig,
    'wang_landau': MulticanonicalSweepConfig,
}


@dataclass
class SweepYAMLConfig:
    """
    Complete configuration for a sweep run loaded from YAML.

    Attributes
    ----------
    sampler : str
        Sampler name ('mcmc', 'gibbs', 'multicanonical').
    sampler_config : dict
        Options for the sampler config class.
    model : dict
        Model state options: ``type`` ('potts', 'blockmodel') plus
        keyword arguments for the model constructor.
    graph : dict
        Planted-partition generator parameters (n, B, p_in, p_out, seed).
    n_sweeps : int
        Number of sampler invocations.
    multicanonical : dict
        Energy range, bin count and initial ``f`` for multicanonical runs,
        plus the refinement options ``f_min`` and ``flatness``.
    output : dict
        Output configuration (paths, formats).
    """

    sampler: str
    sampler_config: Dict[str, Any] = field(default_factory=dict)
    model: Dict[str, Any] = field(default_factory=lambda: {'type': 'potts'})
    graph: Dict[str, Any] = field(default_factory=dict)
    n_sweeps: int = 1
    multicanonical: Dict[str, Any] = field(default_factory=dict)
    output: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'SweepYAMLConfig':
        """
        Load configuration from YAML file.

        Parameters
        ----------
        path : str or Path
            Path to YAML configuration file.

        Returns
        -------
        SweepYAMLConfig
            Loaded configuration.
        """
        path = Path(path)

        with open(path, 'r') as f:
            config_dict = yaml.safe_load(f)

        return cls(**config_dict)

    def get_sampler_config(self) -> BaseSweepConfig:
        """
        Convert sampler_config to the matching config class.

        Raises
        ------
        ValueError
            If the sampler name is unknown.
        """
        sampler_lower = self.sampler.lower()
        if sampler_lower not in CONFIG_TYPES:
            raise ValueError(f"Unknown sampler type: {self.sampler}")
        return CONFIG_TYPES[sampler_lower](**self.sampler_config)

    def get_wang_landau_options(self) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Split the multicanonical section.

        Returns
        -------
        tuple of dict
            ``(state_args, driver_args)``: keyword arguments for
            ``MulticanonicalState`` and for ``multicanonical_equilibrate``
            (``f_min``, ``flatness``).
        """
        state_args = dict(self.multicanonical)
        driver_args = {k: state_args.pop(k) for k in WANG_LANDAU_KEYS if k in state_args}
        if 'f_min' in driver_args and not driver_args['f_min'] > 0:
            raise ValueError("f_min must be > 0")
        if 'flatness' in driver_args and not 0 < driver_args['flatness'] <= 1:
            raise ValueError("flatness must be in (0, 1]")
        return state_args, driver_args
