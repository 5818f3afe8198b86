"""
Multicanonical (Wang-Landau) sampling of partitions.

Instead of a fixed temperature, moves are biased by a running estimate of
the log density of states over a binned objective range. The sweep
sampler below only performs the per-step acceptance and histogram update;
:class:`MulticanonicalState` and :func:`multicanonical_equilibrate` hold the
artifacts across calls and drive the refinement of ``f``.

References
----------
Wang & Landau (2001): https://arxiv.org/abs/cond-mat/0011174
Belardinelli & Pereyra (2007): https://arxiv.org/abs/cond-mat/0702414
"""

from __future__ import annotations

import math
import warnings
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
from scipy.special import logsumexp

from blockmc.sampling.base import SweepResult, SweepSampler
from blockmc.sampling.bundle import ConfigBundle
from blockmc.sampling.configs import MulticanonicalSweepConfig
from blockmc.state import ModelState


class MulticanonicalSampler(SweepSampler):
    """
    Multicanonical sweep sampler.

    A move from the current bin i to bin j is accepted with probability
    ``min(1, exp(dens[i] - dens[j] + mP))``. Every step, accepted or not,
    adds one histogram count and ``f`` to the log density of bin i, the bin
    the step started from.

    Parameters
    ----------
    state : ModelState
        Model state, mutated in place.
    vlist : sequence of int
        Vertices to sample from (uniformly, with replacement).
    config : MulticanonicalSweepConfig
        Energy range, increment ``f`` and the starting objective ``S``.
    block_list : sequence of int
        Candidate groups for proposals.
    hist : np.ndarray
        Visit histogram, updated in place.
    dens : np.ndarray
        Log density of states, updated in place.
    rng : np.random.Generator, optional
        Default generator.
    """

    config_class = MulticanonicalSweepConfig
    extra_fields = {
        'block_list': np.ndarray,
        'hist': np.ndarray,
        'dens': np.ndarray,
    }

    def __init__(
        self,
        state: ModelState,
        vlist: Sequence[int],
        config: MulticanonicalSweepConfig,
        block_list: Sequence[int],
        hist: np.ndarray,
        dens: np.ndarray,
        rng: Optional[np.random.Generator] = None,
    ):
        self.hist = hist
        self.dens = dens
        super().__init__(state, vlist, config, block_list, rng)

    def _validate(self) -> None:
        super()._validate()
        if self.hist.ndim != 1 or len(self.hist) == 0:
            raise ValueError("hist must be a non-empty 1-D array")
        if self.dens.shape != self.hist.shape:
            raise ValueError(
                f"dens shape {self.dens.shape} does not match hist shape "
                f"{self.hist.shape}"
            )
        S = self.config.S
        if not self.config.S_min <= S <= self.config.S_max:
            warnings.warn(
                f"starting objective {S} is outside [{self.config.S_min}, "
                f"{self.config.S_max}]; it is counted in the nearest bin",
                stacklevel=3,
            )

    @property
    def n_bins(self) -> int:
        return len(self.hist)

    def get_bin(self, S: float) -> Tuple[int, bool]:
        """
        Bin index of objective value S.

        Returns
        -------
        tuple
            ``(index, in_range)``; out-of-range values are clamped to the
            nearest boundary bin.
        """
        S_min, S_max = self.config.S_min, self.config.S_max
        in_range = S_min <= S <= S_max
        if S <= S_min:
            i = 0
        elif S >= S_max:
            i = self.n_bins - 1
        else:
            i = min(int((S - S_min) / (S_max - S_min) * self.n_bins), self.n_bins - 1)
        return i, in_range

    def move_proposal(self, v: int, rng: np.random.Generator) -> int:
        """
        Candidate group for v, or ``null_move``.

        Moves that would cross constraint labels or empty a group under
        ``allow_empty=False`` become null moves: the step is still credited
        to the histogram but is neither attempted nor accepted.
        """
        state = self.state
        r = state.node_state(v)
        s = state.sample_move(v, self.locality, self.block_list, rng)
        if s == state.null_move or s == r:
            return s
        if state.group_constraint(s) != state.group_constraint(r):
            return state.null_move
        if not self.config.allow_empty and state.would_empty_group(v):
            return state.null_move
        return s

    def run(self, rng: Optional[np.random.Generator] = None) -> SweepResult:
        rng = rng if rng is not None else self.rng
        state = self.state
        node_weight = state.node_weight
        null_move = state.null_move
        hist, dens = self.hist, self.dens
        f = self.config.f
        clamp = self.config.out_of_range == 'clamp'
        verbose = self.config.verbose

        S0 = S = self.config.S
        nattempts = 0
        nmoves = 0
        nsteps = 0
        nout = 0

        for _ in range(self.config.niter):
            for v in self._sweep_order(rng):
                v = int(v)
                nsteps += 1
                i, _ = self.get_bin(S)

                s = null_move
                if not state.skip_node(v):
                    s = self.move_proposal(v, rng)

                accept = False
                if s != null_move:
                    dS, mP = self.virtual_move_dS(v, s)
                    j, in_range = self.get_bin(S + dS)
                    nattempts += node_weight(v)
                    if in_range or clamp:
                        a = dens[i] - dens[j] + mP
                        accept = a > 0 or rng.random() < math.exp(a)
                    else:
                        nout += 1
                    if accept:
                        state.apply_move(v, s)
                        S += dS
                        nmoves += node_weight(v)
                    state.step(v, s)

                    if verbose:
                        print(f"{v}: -> {s} {accept} {dS} {mP} {S} [{i} -> {j}]")

                # the bin this step started from; an accepted move is credited
                # to its destination on the next step
                hist[i] += 1
                dens[i] += f

        return SweepResult(
            dS=S - S0,
            nattempts=nattempts,
            nmoves=nmoves,
            diagnostics={'n_out_of_range': nout},
            metadata={'sampler': self.name, 'S': S, 'steps': nsteps},
        )


class MulticanonicalState:
    """
    Wang-Landau artifacts kept across multicanonical sweeps.

    Parameters
    ----------
    S_min, S_max : float
        Objective range covered by the histogram.
    n_bins : int
        Number of bins.
    f : float
        Initial log-density increment.

    Examples
    --------
    >>> m_state = MulticanonicalState(S_min=0, S_max=100, n_bins=50)
    >>> bundle = m_state.to_bundle(state, vlist=np.arange(N),
    ...                            block_list=np.arange(B), niter=10)
    >>> result = multicanonical_sweep(bundle)
    >>> m_state.update(result)
    """

    def __init__(self, S_min: float, S_max: float, n_bins: int = 1000, f: float = 1.0):
        if not S_max > S_min:
            raise ValueError("S_max must be > S_min")
        if n_bins < 1:
            raise ValueError("n_bins must be >= 1")
        self._S_min = float(S_min)
        self._S_max = float(S_max)
        self._hist = np.zeros(n_bins, dtype=np.int64)
        self._density = np.zeros(n_bins, dtype=np.float64)
        self._f = float(f)
        self._time = 0

    @property
    def hist(self) -> np.ndarray:
        return self._hist

    @property
    def dens(self) -> np.ndarray:
        return self._density

    @property
    def S_range(self) -> Tuple[float, float]:
        return self._S_min, self._S_max

    def get_f(self) -> float:
        return self._f

    def set_f(self, f: float) -> None:
        self._f = float(f)

    def get_time(self) -> int:
        """Number of Wang-Landau steps recorded so far."""
        return self._time

    def get_energies(self) -> np.ndarray:
        """Objective value at the centre of each bin."""
        n = len(self._hist)
        width = (self._S_max - self._S_min) / n
        return self._S_min + width * (np.arange(n) + 0.5)

    def get_allowed_energies(self) -> np.ndarray:
        """Bin centres that have been visited at least once."""
        return self.get_energies()[self._hist > 0]

    def get_density(self) -> np.ndarray:
        """Log density of states normalised over the visited bins."""
        dens = np.full(len(self._density), -np.inf)
        visited = self._hist > 0
        if visited.any():
            dens[visited] = self._density[visited] - logsumexp(self._density[visited])
        return dens

    def get_flatness(self) -> float:
        """
        Histogram flatness, ``min(h) / mean(h)`` over the visited bins.

        Returns 0 if nothing has been visited.
        """
        h = self._hist[self._hist > 0]
        if len(h) == 0:
            return 0.0
        return float(h.min() / h.mean())

    def reset_histogram(self) -> None:
        self._hist[:] = 0

    def update(self, result: SweepResult) -> None:
        """Advance the step counter from a sweep result."""
        self._time += int(result.metadata.get('steps', 0))

    def to_bundle(self, state: ModelState, **values) -> ConfigBundle:
        """
        Bundle for one multicanonical sweep over ``state``.

        ``S`` defaults to ``state.entropy()``; states without an entropy
        must pass it explicitly. Remaining keyword arguments (vlist,
        block_list, niter, c, ...) are passed through.
        """
        bundle = ConfigBundle(
            state=state,
            hist=self._hist,
            dens=self._density,
            S_min=self._S_min,
            S_max=self._S_max,
            f=self._f,
            c=math.inf,
            niter=1,
            allow_empty=True,
            verbose=False,
        )
        bundle.update(values)
        if 'S' not in bundle:
            bundle.S = _starting_objective(state)
        return bundle


def _starting_objective(state: ModelState) -> float:
    try:
        return state.entropy()
    except NotImplementedError as e:
        raise ValueError(
            f"{state.name} does not implement entropy(); pass the starting "
            "objective S explicitly"
        ) from e


def multicanonical_equilibrate(
    m_state: MulticanonicalState,
    state: ModelState,
    vlist: Sequence[int],
    block_list: Sequence[int],
    f_min: float = 1e-6,
    flatness: float = 0.95,
    niter: int = 10,
    max_rounds: Optional[int] = None,
    callback: Optional[Callable[[MulticanonicalState], None]] = None,
    rng: Optional[np.random.Generator] = None,
    verbose: bool = False,
    **sweep_args,
) -> int:
    """
    Run multicanonical sweeps until ``f`` drops below ``f_min``.

    After every batch of ``niter`` sweeps, if the histogram is flat enough
    the increment is halved and the histogram reset.

    Parameters
    ----------
    m_state : MulticanonicalState
        Artifacts to refine.
    state : ModelState
        Model state to sample.
    vlist, block_list : sequence of int
        Vertices and candidate groups.
    f_min : float
        Stop once ``f`` falls below this value.
    flatness : float
        Flatness threshold in (0, 1].
    niter : int
        Sweeps per batch.
    max_rounds : int, optional
        Upper bound on the number of batches.
    callback : callable, optional
        Called with ``m_state`` after every batch.
    rng : np.random.Generator, optional
        Generator shared by all batches.
    verbose : bool
        Print progress after every batch.
    **sweep_args
        Extra bundle fields (c, allow_empty, out_of_range, ...). ``S`` sets
        the starting objective, otherwise ``state.entropy()`` is used.

    Returns
    -------
    int
        Number of batches performed.
    """
    from blockmc.sampling.factory import multicanonical_sweep

    if not 0 < flatness <= 1:
        raise ValueError("flatness must be in (0, 1]")

    rounds = 0
    S = sweep_args.pop('S', None)
    if S is None:
        S = _starting_objective(state)
    while m_state.get_f() >= f_min:
        if max_rounds is not None and rounds >= max_rounds:
            break
        bundle = m_state.to_bundle(
            state,
            vlist=vlist,
            block_list=np.asarray(block_list, dtype=np.int64),
            niter=niter,
            S=S,
            **sweep_args,
        )
        result = multicanonical_sweep(bundle, rng=rng)
        m_state.update(result)
        S = result.metadata['S']
        rounds += 1

        flat = m_state.get_flatness()
        if flat >= flatness:
            m_state.set_f(m_state.get_f() / 2)
            m_state.reset_histogram()

        if verbose:
            print(
                f"round {rounds}: f={m_state.get_f():.3g} flatness={flat:.3f} "
                f"S={S:.4f} time={m_state.get_time()}"
            )
        if callback is not None:
            callback(m_state)

    return rounds
