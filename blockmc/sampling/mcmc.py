"""
Metropolis-Hastings sweeps over vertex group memberships.

Two execution modes share the same acceptance rule:

- sequential: vertices are visited one at a time and accepted moves are
  committed immediately, so later visits see earlier moves;
- parallel: a fixed worker pool evaluates one proposal per vertex against
  the pre-sweep state, then a sequential reconciliation pass re-evaluates
  each recorded move against the current state and commits it.

References
----------
Peixoto (2014): https://arxiv.org/abs/1310.4378
"""

from __future__ import annotations

import math
import threading
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional, Tuple

import numpy as np

from blockmc.sampling.base import SweepResult, SweepSampler
from blockmc.sampling.configs import MCMCSweepConfig
from blockmc.sampling.rng import ParallelRNG


def metropolis_accept(
    dS: float, mP: float, beta: float, rng: np.random.Generator
) -> bool:
    """
    Metropolis-Hastings acceptance test.

    Parameters
    ----------
    dS : float
        Objective change of the move.
    mP : float
        Hastings term, ``log p(back) - log p(forward)``.
    beta : float
        Inverse temperature. At ``inf`` only strict improvements pass and no
        random number is drawn.
    rng : np.random.Generator
        Generator for the acceptance draw.
    """
    if math.isinf(beta):
        return dS < 0
    a = -dS * beta + mP
    if a > 0:
        return True
    return rng.random() < math.exp(a)


class MetropolisSampler(SweepSampler):
    """
    Metropolis-Hastings sweep sampler.

    Parameters
    ----------
    state : ModelState
        Model state, mutated in place.
    vlist : sequence of int
        Vertices to visit.
    config : MCMCSweepConfig
        Sampler configuration.
    block_list : sequence of int
        Candidate groups for proposals.
    rng : np.random.Generator, optional
        Default generator.

    Examples
    --------
    >>> config = MCMCSweepConfig(beta=1.0, c=1.0, niter=10, seed=42)
    >>> sampler = MetropolisSampler(state, np.arange(N), config, np.arange(B))
    >>> dS, nattempts, nmoves = sampler.run()
    """

    config_class = MCMCSweepConfig

    def _validate(self) -> None:
        super()._validate()
        if self.config.parallel and not math.isinf(self.config.beta):
            warnings.warn(
                "parallel sweeps at finite beta do not preserve detailed "
                "balance; samples are only approximately distributed",
                stacklevel=3,
            )

    def run(self, rng: Optional[np.random.Generator] = None) -> SweepResult:
        rng = rng if rng is not None else self.rng
        if self.config.parallel:
            return self._sweep_parallel(rng)
        return self._sweep(rng)

    def _sweep(self, rng: np.random.Generator) -> SweepResult:
        state = self.state
        node_state = state.node_state
        node_weight = state.node_weight
        apply_move = state.apply_move
        step = state.step
        null_move = state.null_move
        skip_node = self.skip_node
        move_proposal = self.move_proposal
        virtual_move_dS = self.virtual_move_dS
        beta = self.config.beta
        verbose = self.config.verbose

        S = 0.0
        nattempts = 0
        nmoves = 0

        for _ in range(self.config.niter):
            for v in self._sweep_order(rng):
                v = int(v)
                if skip_node(v):
                    continue

                r = node_state(v)
                s = move_proposal(v, rng)
                if s == null_move:
                    continue

                dS, mP = virtual_move_dS(v, s)
                w = node_weight(v)
                nattempts += w

                accept = metropolis_accept(dS, mP, beta, rng)
                if accept:
                    apply_move(v, s)
                    nmoves += w
                    S += dS

                step(v, s)

                if verbose:
                    print(f"{v}: {r} -> {s} {accept} {dS} {mP} {-dS * beta + mP} {S}")

            self._end_sweep()

        return SweepResult(
            dS=S,
            nattempts=nattempts,
            nmoves=nmoves,
            metadata={'sampler': self.name, 'mode': 'sequential'},
        )

    def _propose_chunk(
        self,
        chunk: np.ndarray,
        rng: np.random.Generator,
        lock: threading.Lock,
    ) -> Tuple[Dict[int, Tuple[int, float]], float]:
        """
        Proposal phase for one worker. Reads the state, never writes it.

        Returns
        -------
        tuple
            ``({v: (s, dS)}`` for accepted proposals, attempted weight).
        """
        state = self.state
        beta = self.config.beta
        moves = {}
        nattempts = 0
        for v in chunk:
            v = int(v)
            w = state.node_weight(v)
            if w == 0 or self.skip_node(v):
                continue

            # candidate samplers may share mutable scratch space
            with lock:
                s = self.move_proposal(v, rng)

            if s == state.null_move:
                continue

            dS, mP = self.virtual_move_dS(v, s)
            nattempts += w
            if metropolis_accept(dS, mP, beta, rng):
                moves[v] = (s, dS)

            if self.config.verbose:
                print(f"{v}: {state.node_state(v)} -> {s} {dS} {mP}")
        return moves, nattempts

    def _sweep_parallel(self, rng: np.random.Generator) -> SweepResult:
        state = self.state
        beta = self.config.beta
        n_workers = self.config.n_workers
        streams = ParallelRNG(rng, n_workers)
        lock = threading.Lock()
        # static schedule: worker i always gets the same contiguous chunk
        chunks = np.array_split(self.vlist, n_workers)

        S = 0.0
        nattempts = 0
        nmoves = 0

        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            for _ in range(self.config.niter):
                futures = [
                    pool.submit(self._propose_chunk, chunk, streams.get(i), lock)
                    for i, chunk in enumerate(chunks)
                ]
                best_move = {}
                for future in futures:
                    moves, attempts = future.result()
                    best_move.update(moves)
                    nattempts += attempts

                for v in self.vlist:
                    move = best_move.pop(int(v), None)
                    if move is None:
                        continue
                    v = int(v)
                    # a commit earlier in this pass may have left v alone in its group
                    if self.skip_node(v):
                        continue
                    s, _ = move
                    ddS, _ = self.virtual_move_dS(v, s)
                    if math.isinf(beta) and not ddS < 0:
                        continue
                    state.apply_move(v, s)
                    nmoves += state.node_weight(v)
                    S += ddS

        return SweepResult(
            dS=S,
            nattempts=nattempts,
            nmoves=nmoves,
            metadata={
                'sampler': self.name,
                'mode': 'parallel',
                'n_workers': n_workers,
            },
        )
