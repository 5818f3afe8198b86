"""
Shared graph bookkeeping for the reference model states.

Both reference states live on an undirected weighted graph stored as a
symmetric ``scipy.sparse`` CSR matrix without self-loops, and keep a label
array plus per-group vertex counts.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np
from scipy import sparse

from blockmc.state import ModelState, labels_array


def as_adjacency(adjacency) -> sparse.csr_matrix:
    """
    Symmetric CSR adjacency matrix with self-loops removed.

    Parameters
    ----------
    adjacency : array-like or sparse matrix
        Square (N, N) matrix of non-negative edge weights.

    Raises
    ------
    ValueError
        If the matrix is not square, not symmetric or has negative weights.
    """
    A = sparse.csr_matrix(adjacency, dtype=np.float64)
    if A.shape[0] != A.shape[1]:
        raise ValueError(f"adjacency must be square, got shape {A.shape}")
    if A.nnz and A.data.min() < 0:
        raise ValueError("edge weights must be non-negative")
    if (A != A.T).nnz:
        raise ValueError("adjacency must be symmetric (undirected graph)")
    A = A.tolil()
    A.setdiag(0)
    A = A.tocsr()
    A.eliminate_zeros()
    return A


class GraphState(ModelState):
    """
    Partition of the vertices of a fixed graph.

    Parameters
    ----------
    adjacency : array-like or sparse matrix
        Symmetric (N, N) adjacency matrix.
    b : sequence of int, optional
        Initial labels. All vertices start in group 0 if None.
    B : int, optional
        Number of groups. Defaults to ``max(b) + 1``.
    vweight : sequence of float, optional
        Node weights reported to the samplers (default 1).
    frozen : sequence of bool, optional
        Vertices that must never move.
    """

    def __init__(
        self,
        adjacency,
        b: Optional[Sequence[int]] = None,
        B: Optional[int] = None,
        vweight: Optional[Sequence[float]] = None,
        frozen: Optional[Sequence[bool]] = None,
    ):
        self._adj = as_adjacency(adjacency)
        self.N = self._adj.shape[0]
        self._b = labels_array(b, self.N)

        n_used = int(self._b.max()) + 1 if self.N else 1
        self.B = n_used if B is None else int(B)
        if self.B < n_used:
            raise ValueError(f"B={self.B} is smaller than the largest label + 1 ({n_used})")

        self._wr = np.bincount(self._b, minlength=self.B).astype(np.int64)

        if vweight is None:
            self._vweight = np.ones(self.N)
        else:
            self._vweight = np.asarray(vweight, dtype=np.float64)
        if frozen is None:
            self._frozen = np.zeros(self.N, dtype=bool)
        else:
            self._frozen = np.asarray(frozen, dtype=bool)
        if self._vweight.shape != (self.N,) or self._frozen.shape != (self.N,):
            raise ValueError("vweight and frozen must have one entry per vertex")

        self._block_list = np.arange(self.B)

    @property
    def adjacency(self) -> sparse.csr_matrix:
        return self._adj

    @property
    def b(self) -> np.ndarray:
        """Copy of the current labels."""
        return self._b.copy()

    @property
    def group_sizes(self) -> np.ndarray:
        return self._wr.copy()

    def get_nonempty_B(self) -> int:
        return int(np.count_nonzero(self._wr))

    def neighbours(self, v: int) -> Tuple[np.ndarray, np.ndarray]:
        """Neighbour indices and edge weights of v."""
        start, end = self._adj.indptr[v], self._adj.indptr[v + 1]
        return self._adj.indices[start:end], self._adj.data[start:end]

    def neighbour_groups(self, v: int) -> np.ndarray:
        """Edge weight from v into every group, shape (B,)."""
        nbrs, w = self.neighbours(v)
        return np.bincount(self._b[nbrs], weights=w, minlength=self.B)

    def _check_label(self, nr: int) -> None:
        if not 0 <= nr < self.B:
            raise ValueError(f"group label {nr} out of range [0, {self.B})")

    def _relabel(self, v: int, nr: int) -> None:
        r = self._b[v]
        self._wr[r] -= 1
        self._wr[nr] += 1
        self._b[v] = nr

    def node_state(self, v: int) -> int:
        return int(self._b[v])

    def is_last_in_group(self, v: int) -> bool:
        return self._wr[self._b[v]] == 1

    def node_weight(self, v: int) -> float:
        return self._vweight[v]

    def skip_node(self, v: int) -> bool:
        return bool(self._frozen[v])

    def init_mcmc(self, c: float, block_list: Sequence[int]) -> None:
        self._block_list = np.asarray(block_list, dtype=np.int64)

    def _uniform_probability(self, s: int) -> float:
        L = self._block_list
        if len(L) == 0:
            return 0.0
        return np.count_nonzero(L == s) / len(L)

    def _uniform_choice(
        self, candidate_groups: Sequence[int], rng: np.random.Generator
    ) -> int:
        return int(candidate_groups[rng.integers(len(candidate_groups))])

    def __repr__(self) -> str:
        return (
            f"{self.name}(N={self.N}, E={self._adj.nnz // 2}, "
            f"B={self.B}, nonempty={self.get_nonempty_B()})"
        )
