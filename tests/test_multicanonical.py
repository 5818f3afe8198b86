"""
Tests for multicanonical sweeps and the Wang-Landau driver.

Tests:
- Per-step acceptance and histogram bookkeeping (exact, with FlipState)
- Out-of-range policies
- MulticanonicalState helpers
- multicanonical_equilibrate
"""

import pytest
import numpy as np

from blockmc.models import PottsState
from blockmc.sampling import (
    MulticanonicalSampler,
    MulticanonicalState,
    MulticanonicalSweepConfig,
    make_rng,
    multicanonical_equilibrate,
    multicanonical_sweep,
)
from blockmc.state import ModelState
from test_utils import FlipState, ring_adjacency


class LabelledFlipState(FlipState):
    """FlipState whose two labels carry different constraint labels."""

    def __init__(self, b=0, constrained=True):
        super().__init__(b)
        self.constrained = constrained
        self.steps = []

    def group_constraint(self, r):
        return r if self.constrained else 0

    def step(self, v, s):
        self.steps.append(s)


class NoEntropyState(FlipState):
    entropy = ModelState.entropy


def flip_sampler(state, hist, dens, **options):
    config = MulticanonicalSweepConfig(**options)
    return MulticanonicalSampler(
        state, [0], config, np.arange(2), hist, dens, rng=make_rng(0)
    )


# ==============================================================================
# Histogram Bookkeeping Tests
# ==============================================================================


class TestHistogramUpdate:
    """The visited bin is credited on every step, accepted or not."""

    def test_rejected_move_credits_current_bin(self):
        state = FlipState(0)
        hist = np.zeros(2, dtype=np.int64)
        dens = np.array([0.0, 1000.0])

        result = flip_sampler(state, hist, dens, S_min=0.0, S_max=2.0, f=0.5, S=0.0).run()

        assert state.label == 0
        np.testing.assert_array_equal(hist, [1, 0])
        np.testing.assert_allclose(dens, [0.5, 1000.0])
        assert tuple(result) == (0.0, 1, 0)

    def test_accepted_move_credits_destination_next_step(self):
        state = FlipState(0)
        hist = np.zeros(2, dtype=np.int64)
        dens = np.array([0.0, -1000.0])

        result = flip_sampler(
            state, hist, dens, S_min=0.0, S_max=2.0, f=0.5, S=0.0, niter=2
        ).run()

        # step 1: accepted 0 -> 1, bin 0 credited
        # step 2: move back rejected, bin 1 credited
        assert state.label == 1
        np.testing.assert_array_equal(hist, [1, 1])
        np.testing.assert_allclose(dens, [0.5, -999.5])
        assert tuple(result) == (1.0, 2, 1)
        assert result.metadata['S'] == 1.0
        assert result.metadata['steps'] == 2

    def test_accepted_move_alone_credits_origin(self):
        state = FlipState(0)
        hist = np.zeros(2, dtype=np.int64)
        dens = np.array([0.0, -1000.0])

        flip_sampler(state, hist, dens, S_min=0.0, S_max=2.0, f=1.0, S=0.0).run()

        assert state.label == 1
        np.testing.assert_array_equal(hist, [1, 0])

    def test_skipped_step_still_credited(self):
        state = FlipState(0, frozen=True)
        hist = np.zeros(2, dtype=np.int64)
        dens = np.zeros(2)

        result = flip_sampler(state, hist, dens, S_min=0.0, S_max=2.0, f=0.25, niter=3).run()

        np.testing.assert_array_equal(hist, [3, 0])
        np.testing.assert_allclose(dens, [0.75, 0.0])
        assert tuple(result) == (0.0, 0, 0)

    def test_zero_iterations(self):
        state = FlipState(0)
        hist = np.zeros(2, dtype=np.int64)
        dens = np.zeros(2)

        result = flip_sampler(state, hist, dens, S_min=0.0, S_max=2.0, niter=0).run()

        assert tuple(result) == (0, 0, 0)
        assert hist.sum() == 0
        assert state.label == 0


class TestProposalRules:
    """Forbidden proposals become null steps."""

    def test_empty_group_policy_gives_null_step(self):
        state = FlipState(0)
        hist = np.zeros(2, dtype=np.int64)
        dens = np.zeros(2)

        result = flip_sampler(
            state, hist, dens, S_min=0.0, S_max=2.0, allow_empty=False, niter=2
        ).run()

        assert state.label == 0
        assert tuple(result) == (0.0, 0, 0)
        np.testing.assert_array_equal(hist, [2, 0])

    def test_constraint_gives_null_step(self):
        state = LabelledFlipState(0)
        hist = np.zeros(2, dtype=np.int64)
        dens = np.zeros(2)

        result = flip_sampler(state, hist, dens, S_min=0.0, S_max=2.0).run()

        assert state.label == 0
        assert tuple(result) == (0.0, 0, 0)
        np.testing.assert_array_equal(hist, [1, 0])

    def test_step_hook(self):
        state = LabelledFlipState(0, constrained=False)
        flip_sampler(
            state, np.zeros(2, dtype=np.int64), np.zeros(2), S_min=0.0, S_max=2.0, niter=3
        ).run()

        # called on every proposed move, accepted or not
        assert len(state.steps) == 3
        assert state.steps[0] == 1


class TestOutOfRange:
    """Moves whose objective leaves [S_min, S_max]."""

    def test_reject(self):
        state = FlipState(0)
        hist = np.zeros(1, dtype=np.int64)
        dens = np.zeros(1)

        result = flip_sampler(state, hist, dens, S_min=0.0, S_max=0.5, S=0.0).run()

        assert state.label == 0
        assert result.diagnostics['n_out_of_range'] == 1
        assert result.nattempts == 1
        np.testing.assert_array_equal(hist, [1])

    def test_clamp(self):
        state = FlipState(0)
        hist = np.zeros(1, dtype=np.int64)
        dens = np.zeros(1)

        result = flip_sampler(
            state, hist, dens, S_min=0.0, S_max=0.5, S=0.0, out_of_range='clamp'
        ).run()

        # clamped into the same bin: a = 0, always accepted
        assert state.label == 1
        assert result.diagnostics['n_out_of_range'] == 0

    def test_get_bin(self):
        sampler = flip_sampler(
            FlipState(0), np.zeros(4, dtype=np.int64), np.zeros(4), S_min=0.0, S_max=4.0
        )

        assert sampler.get_bin(0.0) == (0, True)
        assert sampler.get_bin(2.5) == (2, True)
        assert sampler.get_bin(4.0) == (3, True)
        assert sampler.get_bin(-1.0) == (0, False)
        assert sampler.get_bin(9.0) == (3, False)

    def test_invalid_policy(self):
        with pytest.raises(ValueError, match="out_of_range"):
            MulticanonicalSweepConfig(out_of_range='wrap')


class TestValidation:
    """Construction-time checks."""

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="dens shape"):
            flip_sampler(FlipState(0), np.zeros(3), np.zeros(2), S_max=2.0)

    def test_empty_histogram(self):
        with pytest.raises(ValueError, match="non-empty"):
            flip_sampler(FlipState(0), np.zeros(0), np.zeros(0), S_max=2.0)

    def test_start_outside_range_warns(self):
        with pytest.warns(UserWarning, match="outside"):
            flip_sampler(FlipState(0), np.zeros(2), np.zeros(2), S_min=1.0, S_max=2.0, S=0.0)

    def test_invalid_range(self):
        with pytest.raises(ValueError, match="S_max"):
            MulticanonicalSweepConfig(S_min=1.0, S_max=1.0)


# ==============================================================================
# MulticanonicalState Tests
# ==============================================================================


class TestMulticanonicalState:
    """Tests for the Wang-Landau artifact container."""

    def test_energies(self):
        m_state = MulticanonicalState(0.0, 10.0, n_bins=5)

        np.testing.assert_allclose(m_state.get_energies(), [1, 3, 5, 7, 9])
        assert len(m_state.get_allowed_energies()) == 0

    def test_flatness(self):
        m_state = MulticanonicalState(0.0, 4.0, n_bins=4)
        assert m_state.get_flatness() == 0.0

        m_state.hist[:] = [2, 4, 0, 6]
        assert m_state.get_flatness() == pytest.approx(0.5)

        m_state.reset_histogram()
        assert m_state.hist.sum() == 0

    def test_density_normalised(self):
        m_state = MulticanonicalState(0.0, 3.0, n_bins=3)
        m_state.hist[:] = [1, 1, 0]
        m_state.dens[:] = [2.0, 3.0, 7.0]

        density = m_state.get_density()
        assert np.isneginf(density[2])
        assert np.exp(density[:2]).sum() == pytest.approx(1.0)

    def test_to_bundle(self):
        state = PottsState(ring_adjacency(6), b=[0, 0, 0, 1, 1, 1], B=2)
        m_state = MulticanonicalState(0.0, 7.0, n_bins=7, f=0.5)

        bundle = m_state.to_bundle(state, vlist=np.arange(6), block_list=np.arange(2))

        assert bundle.S == state.entropy() == 2.0
        assert bundle.f == 0.5
        assert bundle.hist is m_state.hist
        assert bundle.dens is m_state.dens

    def test_sweep_through_dispatch(self):
        state = PottsState(ring_adjacency(6), b=[0, 0, 0, 1, 1, 1], B=2)
        m_state = MulticanonicalState(0.0, 7.0, n_bins=7)
        bundle = m_state.to_bundle(
            state, vlist=np.arange(6), block_list=np.arange(2), niter=5
        )

        result = multicanonical_sweep(bundle, rng=make_rng(1))
        m_state.update(result)

        assert m_state.hist.sum() == 30
        assert m_state.get_time() == 30
        assert result.metadata['S'] == pytest.approx(state.entropy())
        assert result.dS == pytest.approx(state.entropy() - 2.0)

    def test_state_without_entropy(self):
        m_state = MulticanonicalState(0.0, 7.0)

        with pytest.raises(ValueError, match="entropy"):
            m_state.to_bundle(NoEntropyState(), vlist=np.arange(1))
        assert m_state.to_bundle(NoEntropyState(), S=3.0).S == 3.0

    def test_invalid(self):
        with pytest.raises(ValueError):
            MulticanonicalState(1.0, 0.0)
        with pytest.raises(ValueError):
            MulticanonicalState(0.0, 1.0, n_bins=0)


class TestEquilibrate:
    """Tests for multicanonical_equilibrate."""

    @pytest.fixture
    def ring_state(self):
        return PottsState(ring_adjacency(6), b=[0, 0, 0, 1, 1, 1], B=2)

    def test_halves_f_until_f_min(self, ring_state):
        m_state = MulticanonicalState(0.0, 7.0, n_bins=7, f=1.0)

        rounds = multicanonical_equilibrate(
            m_state, ring_state, np.arange(6), np.arange(2),
            f_min=0.1, flatness=0.01, niter=10, rng=make_rng(3),
        )

        # any histogram with one count per visited bin is 1/60-flat
        assert rounds == 4
        assert m_state.get_f() == 0.0625
        assert m_state.get_time() == 4 * 10 * 6

    def test_max_rounds(self, ring_state):
        m_state = MulticanonicalState(0.0, 7.0, n_bins=7, f=1.0)
        seen = []

        rounds = multicanonical_equilibrate(
            m_state, ring_state, np.arange(6), np.arange(2),
            f_min=1e-3, flatness=1.0, niter=2, max_rounds=3,
            callback=lambda m: seen.append(m.get_time()), rng=make_rng(0),
        )

        assert rounds == 3
        assert seen == [12, 24, 36]

    def test_nothing_to_do(self, ring_state):
        m_state = MulticanonicalState(0.0, 7.0, f=1.0)

        assert multicanonical_equilibrate(
            m_state, ring_state, np.arange(6), np.arange(2), f_min=2.0
        ) == 0

    def test_invalid_flatness(self, ring_state):
        with pytest.raises(ValueError, match="flatness"):
            multicanonical_equilibrate(
                MulticanonicalState(0.0, 7.0), ring_state, np.arange(6), np.arange(2),
                flatness=0.0,
            )
