"""
Base Configuration Classes.

All CbmSim configuration values are frozen dataclasses that are built once
(from defaults, keyword arguments or a JSON experiment description) and then
passed explicitly to the components that need them. Nothing reads
simulation parameters from module-level globals.

Author: CbmSim Project
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Type, TypeVar

import torch

from cbmsim.errors import ConfigurationError

TConfig = TypeVar("TConfig", bound="BaseConfig")


@dataclass(frozen=True)
class BaseConfig:
    """Base configuration with dictionary conversion helpers."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain (JSON-compatible) dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls: Type[TConfig], data: Dict[str, Any]) -> TConfig:
        """Build from a dictionary, rejecting unknown keys.

        Raises:
            ConfigurationError: If ``data`` contains keys that are not fields
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown {cls.__name__} field(s): {unknown}. "
                f"Valid fields: {sorted(known)}"
            )
        return cls(**data)


@dataclass(frozen=True)
class DeviceConfig(BaseConfig):
    """Configuration carrying the torch device that owns per-cell tensors."""

    device: str = "cpu"
    """Device to run on: 'cpu', 'cuda', 'cuda:0', etc."""

    def get_torch_device(self) -> torch.device:
        """Get PyTorch device object."""
        return torch.device(self.device)
