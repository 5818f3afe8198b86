"""
Rejection-free single-site Gibbs sweeps.

For every visited vertex the full conditional over the candidate groups is
evaluated and the next group is drawn from it, so there is no accept/reject
step: every outcome, including staying put, is applied.
"""

from __future__ import annotations

import math
from typing import List, Optional

import numpy as np
from scipy.special import softmax

from blockmc.sampling.base import SweepResult, SweepSampler
from blockmc.sampling.configs import GibbsSweepConfig


class GibbsSampler(SweepSampler):
    """
    Single-site Gibbs sweep sampler.

    The conditional probability of group s for vertex v is proportional to
    ``exp(-beta * dS(v -> s))``. At ``beta = inf`` the best candidate is
    taken; ties keep the current group.

    Examples
    --------
    >>> config = GibbsSweepConfig(beta=1.0, niter=5, seed=1)
    >>> sampler = GibbsSampler(state, np.arange(N), config, np.arange(B))
    >>> dS, nattempts, nmoves = sampler.run()
    """

    config_class = GibbsSweepConfig

    def candidates(self, v: int) -> List[int]:
        """Current group first, then the other groups sharing its constraint label."""
        state = self.state
        r = state.node_state(v)
        label = state.group_constraint(r)
        return [r] + [
            int(s) for s in self.block_list
            if s != r and state.group_constraint(int(s)) == label
        ]

    def run(self, rng: Optional[np.random.Generator] = None) -> SweepResult:
        rng = rng if rng is not None else self.rng
        state = self.state
        node_weight = state.node_weight
        virtual_move_cost = state.virtual_move_cost
        apply_move = state.apply_move
        skip_node = self.skip_node
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

                labels = self.candidates(v)
                dS = np.zeros(len(labels))
                for k in range(1, len(labels)):
                    dS[k] = virtual_move_cost(v, labels[k])[0]

                if math.isinf(beta):
                    k = int(np.argmin(dS))
                else:
                    probs = softmax(-beta * dS)
                    k = int(rng.choice(len(labels), p=probs))

                w = node_weight(v)
                nattempts += w
                if k != 0:
                    apply_move(v, labels[k])
                    nmoves += w
                    S += dS[k]

                if verbose:
                    print(f"{v}: {labels[0]} -> {labels[k]} {dS[k]} {S}")

            self._end_sweep()

        return SweepResult(
            dS=float(S),
            nattempts=nattempts,
            nmoves=nmoves,
            metadata={'sampler': self.name},
        )
