"""
Non-degree-corrected stochastic block model state.

The objective is the negative log-likelihood (microcanonical entropy
approximation) of the traditional SBM,

    S = E - 1/2 * sum_rs e_rs * ln(e_rs / (n_r * n_s))

where ``e_rs`` counts edge weight between groups r and s (twice the
internal weight on the diagonal), ``n_r`` is the size of group r and E the
total edge weight. Optionally the description length of the partition
itself is added.

References
----------
Karrer & Newman (2011): https://arxiv.org/abs/1008.3926
Peixoto (2014): https://arxiv.org/abs/1310.4378
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy.special import gammaln

from blockmc.models.base import GraphState


def _log_binom(n: float, k: float) -> float:
    return gammaln(n + 1) - gammaln(k + 1) - gammaln(n - k + 1)


class BlockState(GraphState):
    """
    Stochastic block model state.

    Parameters
    ----------
    adjacency : array-like or sparse matrix
        Symmetric (N, N) adjacency matrix.
    b : sequence of int, optional
        Initial labels.
    B : int, optional
        Number of groups.
    partition_dl : bool
        Add the description length of the partition to the objective.
    vweight, frozen : sequence, optional
        Node weights and frozen flags.

    Notes
    -----
    Proposals follow Peixoto (2014): pick a random neighbour u of v (by
    edge weight), let t be its group, then propose s with probability

        p(s | t) = (c * [s in L] + e_ts) / (e_t + c * |L|)

    where L is the candidate group list. With no neighbours, or ``c = inf``,
    s is uniform over L.
    """

    def __init__(
        self,
        adjacency,
        b: Optional[Sequence[int]] = None,
        B: Optional[int] = None,
        partition_dl: bool = False,
        vweight: Optional[Sequence[float]] = None,
        frozen: Optional[Sequence[bool]] = None,
    ):
        super().__init__(adjacency, b=b, B=B, vweight=vweight, frozen=frozen)
        self.partition_dl = partition_dl

        A = self._adj.tocoo()
        self.E = float(A.data.sum() / 2)
        self._e = np.zeros((self.B, self.B))
        np.add.at(self._e, (self._b[A.row], self._b[A.col]), A.data)
        self._S = self._entropy(self._e, self._wr)

    @property
    def e(self) -> np.ndarray:
        """Copy of the group edge-count matrix."""
        return self._e.copy()

    def _entropy(self, e: np.ndarray, n: np.ndarray) -> float:
        mask = e > 0
        nn = np.outer(n, n).astype(np.float64)
        S = self.E - 0.5 * np.sum(e[mask] * np.log(e[mask] / nn[mask]))
        if self.partition_dl:
            S += self._partition_dl(n)
        return float(S)

    @staticmethod
    def _partition_dl(n: np.ndarray) -> float:
        N = n.sum()
        if N == 0:
            return 0.0
        B = np.count_nonzero(n)
        return float(
            gammaln(N + 1) - gammaln(n + 1).sum() + _log_binom(N - 1, B - 1) + math.log(N)
        )

    def _moved(self, v: int, nr: int) -> Tuple[np.ndarray, np.ndarray]:
        """Edge-count matrix and group sizes after moving v to nr."""
        r = self._b[v]
        d = self.neighbour_groups(v)
        e = self._e.copy()
        e[r, :] -= d
        e[:, r] -= d
        e[nr, :] += d
        e[:, nr] += d
        n = self._wr.copy()
        n[r] -= 1
        n[nr] += 1
        return e, n

    def virtual_move(self, v: int, nr: int) -> float:
        if nr == self._b[v]:
            return 0.0
        e, n = self._moved(v, nr)
        return self._entropy(e, n) - self._S

    def apply_move(self, v: int, nr: int) -> None:
        self._check_label(nr)
        if nr == self._b[v]:
            return
        self._e, _ = self._moved(v, nr)
        self._relabel(v, nr)
        self._S = self._entropy(self._e, self._wr)

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
        if k == 0 or math.isinf(c):
            return self._uniform_choice(candidate_groups, rng)

        u = nbrs[rng.choice(len(nbrs), p=w / k)]
        t = self._b[u]
        e_t = np.clip(self._e[t], 0, None)
        e_tot = e_t.sum()
        n_cand = len(candidate_groups)
        if e_tot == 0 or rng.random() < c * n_cand / (e_tot + c * n_cand):
            return self._uniform_choice(candidate_groups, rng)
        return int(rng.choice(self.B, p=e_t / e_tot))

    def move_probability(
        self, v: int, r: int, s: int, c: float, reverse: bool = False
    ) -> float:
        uniform = self._uniform_probability(s)
        nbrs, w = self.neighbours(v)
        k = w.sum()
        if k == 0 or math.isinf(c):
            return uniform

        e = self._e
        if reverse and r != self._b[v]:
            e = self._moved(v, r)[0]

        L = self._block_list
        n_cand = len(L)
        in_L = np.count_nonzero(L == s)
        d = self.neighbour_groups(v)

        p = 0.0
        for t in np.flatnonzero(d):
            e_tot = e[t].sum()
            if e_tot == 0:
                p += d[t] / k * uniform
            else:
                p += d[t] / k * (c * in_L + e[t, s]) / (e_tot + c * n_cand)
        return float(p)

    def entropy(self) -> float:
        return self._S
