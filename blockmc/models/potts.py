"""
Potts-like partition state.

The objective is the weighted number of edges whose endpoints sit in
different groups, scaled by a coupling J:

    S(b) = J * sum_{(u, v) in E} w_uv [b_u != b_v]

so lower S means fewer cut edges. Moves are proposed either from the
groups of a random neighbour or uniformly from the candidate groups.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from blockmc.models.base import GraphState


class PottsState(GraphState):
    """
    Potts model on a weighted graph.

    Parameters
    ----------
    adjacency : array-like or sparse matrix
        Symmetric (N, N) adjacency matrix.
    b : sequence of int, optional
        Initial labels.
    B : int, optional
        Number of groups.
    J : float
        Coupling; positive values favour aligned neighbours.
    vweight, frozen : sequence, optional
        Node weights and frozen flags.

    Notes
    -----
    With locality c, a proposal follows a random neighbour (chosen by edge
    weight) with probability ``1 / (1 + c)`` and takes its group; otherwise
    it picks a candidate group uniformly. Vertices without neighbours, and
    ``c = inf``, always propose uniformly.

    Examples
    --------
    >>> state = PottsState(A, b=np.zeros(N, dtype=int), B=4)
    >>> state.virtual_move(0, 1)
    2.0
    """

    def __init__(
        self,
        adjacency,
        b: Optional[Sequence[int]] = None,
        B: Optional[int] = None,
        J: float = 1.0,
        vweight: Optional[Sequence[float]] = None,
        frozen: Optional[Sequence[bool]] = None,
    ):
        super().__init__(adjacency, b=b, B=B, vweight=vweight, frozen=frozen)
        self.J = float(J)

    @staticmethod
    def _p_neighbour(c: float) -> float:
        if math.isinf(c):
            return 0.0
        return 1.0 / (1.0 + c)

    def virtual_move(self, v: int, nr: int) -> float:
        r = self._b[v]
        if nr == r:
            return 0.0
        nbrs, w = self.neighbours(v)
        labels = self._b[nbrs]
        m_r = w[labels == r].sum()
        m_s = w[labels == nr].sum()
        return float(self.J * (m_r - m_s))

    def apply_move(self, v: int, nr: int) -> None:
        self._check_label(nr)
        if nr == self._b[v]:
            return
        self._relabel(v, nr)

    def sample_move(
        self,
        v: int,
        c: float,
        candidate_groups: Sequence[int],
        rng: np.random.Generator,
    ) -> int:
        if len(candidate_groups) == 0:
            return self.null_move
        nbrs, w = self.neighbours(v)
        k = w.sum()
        p_n = self._p_neighbour(c)
        if k > 0 and p_n > 0 and rng.random() < p_n:
            u = nbrs[rng.choice(len(nbrs), p=w / k)]
            return int(self._b[u])
        return self._uniform_choice(candidate_groups, rng)

    def move_probability(
        self, v: int, r: int, s: int, c: float, reverse: bool = False
    ) -> float:
        # neighbour labels do not depend on where v itself sits
        uniform = self._uniform_probability(s)
        nbrs, w = self.neighbours(v)
        k = w.sum()
        p_n = self._p_neighbour(c)
        if k == 0 or p_n == 0:
            return uniform
        m_s = w[self._b[nbrs] == s].sum()
        return p_n * m_s / k + (1 - p_n) * uniform

    def entropy(self) -> float:
        A = self._adj.tocoo()
        cut = self._b[A.row] != self._b[A.col]
        return float(self.J * A.data[cut].sum() / 2)
