"""
Tests for sampler configuration classes and YAML loading.
"""

from pathlib import Path

import pytest
import numpy as np
import yaml

from blockmc.sampling import (
    BaseSweepConfig,
    GibbsSweepConfig,
    MCMCSweepConfig,
    MulticanonicalSweepConfig,
    SweepYAMLConfig,
    make_rng,
    ParallelRNG,
)


# ==============================================================================
# Config Tests
# ==============================================================================


class TestConfigs:
    """Tests for sweep configuration classes."""

    def test_mcmc_defaults(self):
        config = MCMCSweepConfig()

        assert config.niter == 1
        assert config.sequential and not config.parallel
        assert config.n_workers == 1

    def test_mcmc_validation(self):
        with pytest.raises(ValueError):
            MCMCSweepConfig(beta=-1.0)
        with pytest.raises(ValueError):
            MCMCSweepConfig(c=float('nan'))
        with pytest.raises(ValueError):
            MCMCSweepConfig(n_workers=0)
        with pytest.raises(ValueError):
            MCMCSweepConfig(niter=-1)

    def test_infinite_rates_allowed(self):
        config = MCMCSweepConfig(beta=np.inf, c=np.inf)
        assert np.isinf(config.beta)

    def test_gibbs_config(self):
        config = GibbsSweepConfig(beta=2.0, niter=4, seed=1)

        assert isinstance(config, BaseSweepConfig)
        assert config.seed == 1

    def test_multicanonical_defaults(self):
        config = MulticanonicalSweepConfig(S_min=-1.0, S_max=1.0)

        assert np.isinf(config.c)
        assert config.out_of_range == 'reject'

    def test_to_bundle(self):
        bundle = MCMCSweepConfig(beta=0.5).to_bundle(vlist=[0, 1])

        assert bundle.beta == 0.5
        assert bundle.vlist == [0, 1]
        assert 'seed' in bundle


# ==============================================================================
# YAML Tests
# ==============================================================================


class TestYAMLConfig:
    """Tests for SweepYAMLConfig."""

    def test_from_yaml(self, tmp_path):
        path = tmp_path / 'run.yaml'
        path.write_text(yaml.safe_dump({
            'sampler': 'mcmc',
            'n_sweeps': 5,
            'graph': {'n': 20, 'B': 2, 'p_in': 0.5, 'p_out': 0.1},
            'model': {'type': 'blockmodel'},
            'sampler_config': {'beta': 2.0, 'c': 0.5, 'niter': 3, 'seed': 4},
        }))

        run = SweepYAMLConfig.from_yaml(path)
        config = run.get_sampler_config()

        assert run.n_sweeps == 5
        assert run.model['type'] == 'blockmodel'
        assert isinstance(config, MCMCSweepConfig)
        assert config.beta == 2.0 and config.niter == 3 and config.seed == 4

    def test_infinity_in_yaml(self, tmp_path):
        path = tmp_path / 'run.yaml'
        path.write_text(
            "sampler: wang_landau\n"
            "sampler_config:\n"
            "  c: .inf\n"
            "  S_min: 0.0\n"
            "  S_max: 10.0\n"
        )

        config = SweepYAMLConfig.from_yaml(path).get_sampler_config()

        assert isinstance(config, MulticanonicalSweepConfig)
        assert np.isinf(config.c)

    def test_unknown_sampler(self):
        with pytest.raises(ValueError, match="Unknown sampler type"):
            SweepYAMLConfig(sampler='annealing').get_sampler_config()

    def test_defaults(self):
        run = SweepYAMLConfig(sampler='gibbs')

        assert run.model == {'type': 'potts'}
        assert isinstance(run.get_sampler_config(), GibbsSweepConfig)

    def test_wang_landau_options(self):
        run = SweepYAMLConfig(
            sampler='multicanonical',
            multicanonical={'S_min': 0.0, 'S_max': 10.0, 'f_min': 1e-3, 'flatness': 0.8},
        )

        state_args, driver_args = run.get_wang_landau_options()

        assert state_args == {'S_min': 0.0, 'S_max': 10.0}
        assert driver_args == {'f_min': 1e-3, 'flatness': 0.8}
        assert 'f_min' in run.multicanonical

    def test_wang_landau_options_invalid(self):
        run = SweepYAMLConfig(sampler='multicanonical', multicanonical={'flatness': 1.5})
        with pytest.raises(ValueError, match="flatness"):
            run.get_wang_landau_options()

    def test_shipped_wang_landau_config(self):
        path = Path(__file__).parents[1] / 'configs' / 'potts_wang_landau.yaml'
        run = SweepYAMLConfig.from_yaml(path)

        state_args, driver_args = run.get_wang_landau_options()

        assert set(driver_args) == {'f_min', 'flatness'}
        assert state_args['f'] > driver_args['f_min']


# ==============================================================================
# Random Stream Tests
# ==============================================================================


class TestRNG:
    """Tests for make_rng and ParallelRNG."""

    def test_seeded_streams_repeat(self):
        assert make_rng(42).integers(1 << 30) == make_rng(42).integers(1 << 30)

    def test_parallel_streams_reproducible(self):
        a = ParallelRNG(make_rng(1), 3)
        b = ParallelRNG(make_rng(1), 3)

        assert len(a) == 3
        for i in range(3):
            assert a.get(i).random() == b.get(i).random()

    def test_parallel_streams_differ(self):
        streams = ParallelRNG(make_rng(1), 2)
        assert streams.get(0).random() != streams.get(1).random()

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            ParallelRNG(make_rng(0), 0)
