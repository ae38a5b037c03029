"""
Top-level simulation configuration.

Usage:
======
    from cbmsim.config import SimulationConfig

    config = SimulationConfig.from_json("experiments/acquisition.json")
    session = Session(config)

A JSON description mirrors ``to_dict()``::

    {
        "connectivity": {"num_mf": 4096, "num_gr": 1048576, ...},
        "activity": {"gogr_w": 0.017, ...},
        "trials": {"cs_start": 2000, "cs_length": 2000, ...},
        "device": "cuda",
        "seed": 1234,
        "output_dir": "output/run1"
    }

Any section or key may be omitted to keep its default.

Author: CbmSim Project
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cbmsim.config.base import DeviceConfig
from cbmsim.config.params import ActivityParams, ConnectivityParams
from cbmsim.config.trial_config import TrialConfig
from cbmsim.errors import ConfigurationError


@dataclass(frozen=True)
class SimulationConfig(DeviceConfig):
    """Everything the session, state container and trial engine read."""

    connectivity: ConnectivityParams = field(default_factory=ConnectivityParams)
    activity: ActivityParams = field(default_factory=ActivityParams)
    trials: TrialConfig = field(default_factory=TrialConfig)

    seed: Optional[int] = None
    """Top-level seed for state generation. None = caller must supply one."""

    output_dir: str = "output"
    """Directory receiving raster dumps."""

    def __post_init__(self) -> None:
        if self.trials.gr_sample_size > self.connectivity.num_gr:
            raise ConfigurationError(
                f"gr_sample_size={self.trials.gr_sample_size} exceeds "
                f"num_gr={self.connectivity.num_gr}"
            )

    @property
    def num_zones(self) -> int:
        return self.connectivity.num_zones

    def with_params(
        self,
        connectivity: ConnectivityParams,
        activity: ActivityParams,
    ) -> "SimulationConfig":
        """Copy of this config with parameter blocks read from a file."""
        return replace(self, connectivity=connectivity, activity=activity)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        sections = {
            "connectivity": ConnectivityParams,
            "activity": ActivityParams,
            "trials": TrialConfig,
        }
        known = set(sections) | {"device", "seed", "output_dir"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown SimulationConfig field(s): {unknown}")

        kwargs: Dict[str, Any] = {
            key: data[key] for key in ("device", "seed", "output_dir") if key in data
        }
        for key, section_cls in sections.items():
            if key in data:
                kwargs[key] = section_cls.from_dict(data[key])
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "SimulationConfig":
        """Load a configuration from a JSON file."""
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
        return cls.from_dict(data)

    def to_json(self, path: Union[str, Path]) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2))
