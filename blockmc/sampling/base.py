"""
Base classes for the sweep samplers.

This module defines:
- SweepSampler: Abstract base class shared by the Metropolis-Hastings,
  Gibbs and multicanonical samplers
- SweepResult: Aggregate statistics returned by every sweep
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Sequence, Type, TYPE_CHECKING

import numpy as np

from blockmc.sampling.rng import make_rng
from blockmc.state import ModelState

if TYPE_CHECKING:
    from blockmc.sampling.configs import BaseSweepConfig


@dataclass
class SweepResult:
    """
    Aggregate statistics of one sampler invocation.

    Unpacks as ``dS, nattempts, nmoves``.

    Attributes
    ----------
    dS : float
        Total objective change over all committed moves.
    nattempts : float
        Sum of node weights of the vertices for which a move was attempted.
    nmoves : float
        Sum of node weights of the vertices whose move was committed.
    diagnostics : dict
        Sampler-specific diagnostic information.
    metadata : dict
        Additional metadata (sampler name, final objective, ...).
    """

    dS: float = 0.0
    nattempts: float = 0
    nmoves: float = 0

    diagnostics: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __iter__(self) -> Iterator[float]:
        yield self.dS
        yield self.nattempts
        yield self.nmoves

    @property
    def acceptance_fraction(self) -> Optional[float]:
        """Accepted over attempted weight, None if nothing was attempted."""
        if self.nattempts == 0:
            return None
        return self.nmoves / self.nattempts

    def __add__(self, other: 'SweepResult') -> 'SweepResult':
        return SweepResult(
            dS=self.dS + other.dS,
            nattempts=self.nattempts + other.nattempts,
            nmoves=self.nmoves + other.nmoves,
            diagnostics=dict(other.diagnostics),
            metadata={**self.metadata, **other.metadata},
        )

    def summary(self) -> None:
        """Print a short report of this result."""
        print(f"Sampler: {self.metadata.get('sampler', 'unknown')}")
        print(f"  dS:          {self.dS:.6g}")
        print(f"  attempts:    {self.nattempts:g}")
        print(f"  moves:       {self.nmoves:g}")
        if self.acceptance_fraction is not None:
            print(f"  acceptance:  {self.acceptance_fraction:.3f}")
        for key, value in self.diagnostics.items():
            print(f"  {key}: {value}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            'dS': self.dS,
            'nattempts': self.nattempts,
            'nmoves': self.nmoves,
            'acceptance_fraction': self.acceptance_fraction,
            'diagnostics': self.diagnostics,
            'metadata': self.metadata,
        }


class SweepSampler(ABC):
    """
    Abstract base class for sweep samplers.

    A sampler binds one model state, a vertex list and a candidate group
    list to a config, and runs ``config.niter`` sweeps when ``run`` is
    called. The dispatch layer creates one subclass per concrete
    (state type, vertex-list type) pair; ``state_type`` and ``vlist_type``
    hold those types.

    Class Attributes
    ----------------
    config_class : Type[BaseSweepConfig]
        Which config class this sampler expects.
    extra_fields : dict
        Fixed-type bundle fields passed to the constructor besides the
        state, vertex list and config.
    state_type, vlist_type : type
        Concrete types of the specialisation.

    Parameters
    ----------
    state : ModelState
        Model state, owned by the caller and mutated in place.
    vlist : sequence of int
        Vertices to visit.
    config : BaseSweepConfig
        Sampler configuration.
    block_list : sequence of int
        Candidate groups for move proposals.
    rng : np.random.Generator, optional
        Default generator for ``run``. Built from ``config.seed`` if None.
    """

    config_class: Type['BaseSweepConfig'] = None  # Set by subclasses
    extra_fields: Dict[str, type] = {'block_list': np.ndarray}
    state_type: type = ModelState
    vlist_type: type = object

    def __init__(
        self,
        state: ModelState,
        vlist: Sequence[int],
        config: 'BaseSweepConfig',
        block_list: Sequence[int],
        rng: Optional[np.random.Generator] = None,
    ):
        self.state = state
        self.config = config
        # own copy: sweeps shuffle and reverse it in place
        self.vlist = np.array(vlist, dtype=np.int64).reshape(-1)
        self.block_list = np.asarray(block_list, dtype=np.int64).reshape(-1)
        self.rng = rng if rng is not None else make_rng(config.seed)
        self._validate()
        self.state.init_mcmc(self.locality, self.block_list)

    def _validate(self) -> None:
        """
        Validate that state and config match this sampler.

        Override in subclasses for sampler-specific validation.
        """
        if self.config_class is not None:
            if not isinstance(self.config, self.config_class):
                raise TypeError(
                    f"{self.__class__.__name__} expects config of type "
                    f"{self.config_class.__name__}, got {type(self.config).__name__}"
                )
        if not isinstance(self.state, self.state_type):
            raise TypeError(
                f"{self.__class__.__name__} expects state of type "
                f"{self.state_type.__name__}, got {type(self.state).__name__}"
            )

    @property
    def locality(self) -> float:
        """Locality parameter c used for proposals (inf if not configured)."""
        return getattr(self.config, 'c', math.inf)

    def skip_node(self, v: int) -> bool:
        """Frozen vertices and sole members of a group that must not empty."""
        if self.state.skip_node(v):
            return True
        return not self.config.allow_empty and self.state.is_last_in_group(v)

    def move_proposal(self, v: int, rng: np.random.Generator) -> int:
        """
        Candidate group for v.

        Returns the current label when the empty-group policy forbids
        moving v out of its group, or when the sampled group carries a
        different constraint label.
        """
        state = self.state
        r = state.node_state(v)
        if not self.config.allow_empty and state.is_last_in_group(v):
            return r
        s = state.sample_move(v, self.locality, self.block_list, rng)
        if s == state.null_move:
            return s
        if state.group_constraint(s) != state.group_constraint(r):
            return r
        return s

    def virtual_move_dS(self, v: int, s: int):
        """``(dS, mP)`` of moving v to s under this sampler's locality."""
        return self.state.virtual_move_cost(v, s, self.locality)

    def _sweep_order(self, rng: np.random.Generator) -> np.ndarray:
        """Vertices to visit in the next sweep."""
        sequential = getattr(self.config, 'sequential', False)
        deterministic = getattr(self.config, 'deterministic', False)
        if sequential:
            if not deterministic:
                rng.shuffle(self.vlist)
            return self.vlist
        if len(self.vlist) == 0:
            return self.vlist
        return self.vlist[rng.integers(len(self.vlist), size=len(self.vlist))]

    def _end_sweep(self) -> None:
        if getattr(self.config, 'sequential', False) and getattr(
            self.config, 'deterministic', False
        ):
            self.vlist = self.vlist[::-1].copy()

    @abstractmethod
    def run(self, rng: Optional[np.random.Generator] = None) -> SweepResult:
        """
        Run ``config.niter`` sweeps.

        Parameters
        ----------
        rng : np.random.Generator, optional
            Generator to use instead of the sampler's own.

        Returns
        -------
        SweepResult
            Total objective change, attempted weight, accepted weight.
        """
        pass

    @property
    def name(self) -> str:
        """Name of this sampler."""
        return self.__class__.__name__
