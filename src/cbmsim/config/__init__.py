"""
Configuration module for CbmSim.

Usage:
    from cbmsim.config import (
        SimulationConfig,
        ConnectivityParams,
        ActivityParams,
        TrialConfig,
    )

    config = SimulationConfig(
        connectivity=ConnectivityParams(num_mf=4096, num_zones=2),
        trials=TrialConfig(num_training_trials=100),
        seed=42,
    )
"""

from cbmsim.config.base import BaseConfig, DeviceConfig
from cbmsim.config.params import ActivityParams, ConnectivityParams
from cbmsim.config.simulation_config import SimulationConfig
from cbmsim.config.trial_config import TrialConfig

__all__ = [
    "BaseConfig",
    "DeviceConfig",
    "ActivityParams",
    "ConnectivityParams",
    "SimulationConfig",
    "TrialConfig",
]
