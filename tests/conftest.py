"""Shared test fixtures and configuration."""

import pytest
import torch
import numpy as np

from cbmsim.config import ActivityParams, ConnectivityParams, SimulationConfig, TrialConfig


@pytest.fixture(autouse=True)
def set_random_seed():
    """Ensure reproducible tests by setting all random seeds.

    State generation uses its own seeded generators; this keeps any
    incidental use of the global generators deterministic as well.
    """
    torch.manual_seed(42)
    np.random.seed(42)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(42)


@pytest.fixture
def small_con_params():
    """Tiny network: every fan-in fits its source population."""
    return ConnectivityParams(
        num_mf=4,
        num_gr=32,
        num_go=8,
        num_bc=4,
        num_sc=4,
        num_pc=4,
        num_io=2,
        num_nc=2,
        num_zones=1,
        mf_gr_fan_in=2,
        go_gr_fan_in=2,
        gr_go_fan_in=4,
        mf_go_fan_in=2,
        go_go_fan_in=2,
        go_gj_fan_in=2,
        gr_sc_fan_in=4,
        bc_pc_fan_in=2,
        sc_pc_fan_in=2,
        pc_bc_fan_in=2,
        pc_nc_fan_in=2,
        nc_io_fan_in=1,
        mf_nc_fan_in=2,
    )


@pytest.fixture
def act_params():
    return ActivityParams()


@pytest.fixture
def short_trials():
    """20-step trials with the CS over [10, 15)."""
    return TrialConfig(
        trial_time=20,
        cs_start=10,
        cs_length=5,
        cs_phasic_size=5,
        ms_pre_cs=2,
        ms_post_cs=2,
        homeo_tuning_trials=0,
        granule_act_detect_trials=0,
        num_training_trials=1,
        gr_sample_size=16,
    )


@pytest.fixture
def small_config(small_con_params, act_params, short_trials, tmp_path):
    return SimulationConfig(
        connectivity=small_con_params,
        activity=act_params,
        trials=short_trials,
        seed=1234,
        output_dir=str(tmp_path / "output"),
    )
