"""
Model state contract consumed by the sweep samplers.

A model state owns the partition (vertex -> group label) and whatever cached
statistics it needs to evaluate moves. Samplers only ever talk to it through
the methods below; the block-model mathematics behind them is up to the
implementation (see :mod:`blockmc.models` for two reference states).
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np

# Labels are non-negative integers, so -1 can never be a real group.
NULL_MOVE = -1


class ModelState(ABC):
    """
    Abstract base class for partition model states.

    Subclasses must implement:
    - node_state(v): current group of v
    - sample_move(v, c, candidate_groups, rng): propose a new group
    - virtual_move(v, nr): objective change of moving v to nr, no mutation
    - apply_move(v, nr): commit the move
    - is_last_in_group(v): True if v is the only member of its group

    Optional overrides:
    - move_probability(v, r, s, c, reverse): proposal probability, used for
      the Hastings correction when c is finite
    - group_constraint(r): constraint label of group r; proposals never
      cross constraint labels
    - step(v, s): called after every sequential accept/reject decision
    - node_weight(v), skip_node(v), would_empty_group(v), init_mcmc(c, ...)
    - entropy(): total objective. The default raises NotImplementedError;
      it is required by MulticanonicalState and multicanonical_equilibrate
      when no starting objective is given

    Attributes
    ----------
    null_move : int
        Sentinel returned by ``sample_move`` when no candidate exists.
    """

    null_move: int = NULL_MOVE

    @abstractmethod
    def node_state(self, v: int) -> int:
        """Current group label of vertex v."""
        pass

    @abstractmethod
    def sample_move(
        self,
        v: int,
        c: float,
        candidate_groups: Sequence[int],
        rng: np.random.Generator,
    ) -> int:
        """
        Propose a candidate group for v.

        Parameters
        ----------
        v : int
            Vertex index.
        c : float
            Locality parameter. Small values favour the groups of v's
            neighbours, ``inf`` samples uniformly from ``candidate_groups``.
        candidate_groups : sequence of int
            Groups that may be proposed.
        rng : np.random.Generator
            Generator to draw from.

        Returns
        -------
        int
            Proposed label, or ``null_move``.
        """
        pass

    @abstractmethod
    def virtual_move(self, v: int, nr: int) -> float:
        """Objective change of moving v to nr. Must not mutate the state."""
        pass

    @abstractmethod
    def apply_move(self, v: int, nr: int) -> None:
        """Move v to group nr and update cached statistics."""
        pass

    @abstractmethod
    def is_last_in_group(self, v: int) -> bool:
        """True if v is the sole member of its group."""
        pass

    def would_empty_group(self, v: int) -> bool:
        """True if removing v would leave its group empty."""
        return self.is_last_in_group(v)

    def node_weight(self, v: int) -> float:
        return 1

    def skip_node(self, v: int) -> bool:
        """True if v is not eligible for moves (e.g. frozen)."""
        return False

    def init_mcmc(self, c: float, block_list: Sequence[int]) -> None:
        """Hook called once by every sampler before its first sweep."""
        pass

    def group_constraint(self, r: int) -> int:
        """
        Constraint label of group r.

        A proposal s for a vertex in group r is only allowed when
        ``group_constraint(s) == group_constraint(r)``. All groups share
        label 0 by default.
        """
        return 0

    def step(self, v: int, s: int) -> None:
        """Hook called after each sequential accept/reject decision on v."""
        pass

    def move_probability(
        self, v: int, r: int, s: int, c: float, reverse: bool = False
    ) -> float:
        """
        Probability of proposing s for v while v sits in r.

        With ``reverse=True`` the probability is evaluated in the
        hypothetical state where v has already been moved to r. The default
        describes a symmetric proposal.
        """
        return 1.0

    def virtual_move_cost(
        self, v: int, nr: int, c: float = math.inf
    ) -> Tuple[float, float]:
        """
        Objective change and Hastings term of moving v to nr.

        Returns
        -------
        tuple of float
            ``(dS, mP)`` with ``mP = log p(back) - log p(forward)``. ``mP`` is
            zero when ``c`` is infinite (uniform proposals).
        """
        dS = self.virtual_move(v, nr)
        a = 0.0
        if not math.isinf(c):
            r = self.node_state(v)
            pf = self.move_probability(v, r, nr, c, False)
            pb = self.move_probability(v, nr, r, c, True)
            with np.errstate(divide='ignore'):
                a = float(np.log(pb) - np.log(pf))
        return dS, a

    def entropy(self) -> float:
        """Total objective of the current partition."""
        raise NotImplementedError(
            f"{self.__class__.__name__} does not provide a total entropy"
        )

    @property
    def name(self) -> str:
        return self.__class__.__name__


def labels_array(b: Optional[Sequence[int]], n: int) -> np.ndarray:
    """Copy ``b`` into an int64 label array of length n (zeros if None)."""
    if b is None:
        return np.zeros(n, dtype=np.int64)
    b = np.array(b, dtype=np.int64)
    if b.shape != (n,):
        raise ValueError(f"partition must have shape ({n},), got {b.shape}")
    if n > 0 and b.min() < 0:
        raise ValueError("group labels must be non-negative")
    return b
