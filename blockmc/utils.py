"""
Marginal collection and dense relabelling helpers.

The marginal collectors accumulate how often each vertex (or edge) has
been seen in each group (or group pair) across a series of sampled
partitions. The ``vector_*`` functions rewrite label arrays in place.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np


def collect_vertex_marginals(
    b: np.ndarray, p: Optional[List[np.ndarray]] = None
) -> List[np.ndarray]:
    """
    Add one partition to per-vertex group counts.

    Parameters
    ----------
    b : np.ndarray
        Group label of every vertex.
    p : list of np.ndarray, optional
        Running counts, one array per vertex indexed by group. Arrays are
        grown when a larger label shows up. Created if None.

    Returns
    -------
    list of np.ndarray
        The updated counts (``p`` itself when given).

    Examples
    --------
    >>> p = collect_vertex_marginals(np.array([0, 2]))
    >>> p = collect_vertex_marginals(np.array([0, 1]), p)
    >>> p[1]
    array([0, 1, 1])
    """
    b = np.asarray(b, dtype=np.int64)
    if p is None:
        p = [np.zeros(0, dtype=np.int64) for _ in range(len(b))]
    if len(p) != len(b):
        raise ValueError(f"expected {len(b)} marginal arrays, got {len(p)}")

    for v, r in enumerate(b):
        if r < 0:
            raise ValueError(f"vertex {v} has negative label {r}")
        if len(p[v]) <= r:
            p[v] = np.pad(p[v], (0, r + 1 - len(p[v])))
        p[v][r] += 1
    return p


def collect_edge_marginals(
    edges: np.ndarray, b: np.ndarray, B: int, p: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Add one partition to per-edge group-pair counts.

    For an edge with endpoints ``u = min(src, tgt)`` and ``v = max(src, tgt)``
    in groups r and s, entry ``r + B * s`` of its row is incremented.

    Parameters
    ----------
    edges : np.ndarray
        (E, 2) array of edge endpoints.
    b : np.ndarray
        Group label of every vertex.
    B : int
        Number of groups.
    p : np.ndarray, optional
        (E, B * B) running counts. Created if None.

    Returns
    -------
    np.ndarray
        The updated counts (``p`` itself when given).
    """
    edges = np.asarray(edges, dtype=np.int64).reshape(-1, 2)
    b = np.asarray(b, dtype=np.int64)
    if p is None:
        p = np.zeros((len(edges), B * B), dtype=np.int64)
    if p.shape != (len(edges), B * B):
        raise ValueError(
            f"edge marginals must have shape {(len(edges), B * B)}, got {p.shape}"
        )

    u = edges.min(axis=1)
    v = edges.max(axis=1)
    j = b[u] + B * b[v]
    np.add.at(p, (np.arange(len(edges)), j), 1)
    return p


def vector_map(vals: np.ndarray, map: np.ndarray) -> None:
    """
    Relabel ``vals`` in place through a lazily filled map.

    ``map`` entries equal to -1 are unassigned. Unassigned values get
    consecutive indices starting at 0 in order of first appearance, whatever
    the map already holds. ``map`` is updated too.
    """
    pos = 0
    for i in range(len(vals)):
        v = vals[i]
        if map[v] == -1:
            map[v] = pos
            pos += 1
        vals[i] = map[v]


def vector_rmap(vals: np.ndarray, map: np.ndarray) -> None:
    """Inverse map in place: ``map[vals[i]] = i`` for every i."""
    map[vals] = np.arange(len(vals), dtype=map.dtype)


def vector_continuous_map(vals: np.ndarray) -> None:
    """
    Relabel ``vals`` in place to 0..k-1 in order of first appearance.

    Examples
    --------
    >>> vals = np.array([5, 3, 5, 9])
    >>> vector_continuous_map(vals)
    >>> vals
    array([0, 1, 0, 2])
    """
    _, first, inverse = np.unique(vals, return_index=True, return_inverse=True)
    # np.unique sorts by value; re-rank by first occurrence
    rank = np.empty(len(first), dtype=np.int64)
    rank[np.argsort(first)] = np.arange(len(first))
    vals[:] = rank[inverse.reshape(-1)]
