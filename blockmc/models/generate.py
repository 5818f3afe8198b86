"""
Synthetic graphs with planted community structure.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
from scipy import sparse


def planted_partition(
    n: int,
    B: int,
    p_in: float,
    p_out: float,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[sparse.csr_matrix, np.ndarray]:
    """
    Sample an undirected planted-partition graph.

    Vertices are split into B groups of near-equal size; each pair is
    connected with probability ``p_in`` inside a group and ``p_out``
    across groups. No self-loops.

    Parameters
    ----------
    n : int
        Number of vertices.
    B : int
        Number of planted groups.
    p_in, p_out : float
        Edge probabilities within and between groups.
    rng : np.random.Generator, optional
        Generator to draw edges from.

    Returns
    -------
    adjacency : scipy.sparse.csr_matrix
        Symmetric 0/1 adjacency matrix.
    labels : np.ndarray
        Planted group of every vertex.
    """
    if n < 0 or B < 1:
        raise ValueError("n must be >= 0 and B >= 1")
    for name, p in (('p_in', p_in), ('p_out', p_out)):
        if not 0 <= p <= 1:
            raise ValueError(f"{name} must be in [0, 1], got {p}")
    if rng is None:
        rng = np.random.default_rng()

    sizes = np.full(B, n // B)
    sizes[: n % B] += 1
    labels = np.repeat(np.arange(B), sizes)

    same = labels[:, None] == labels[None, :]
    P = np.where(same, p_in, p_out)
    draw = np.triu(rng.random((n, n)) < P, k=1)
    A = draw | draw.T
    return sparse.csr_matrix(A.astype(np.float64)), labels
