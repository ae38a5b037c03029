"""
Centralized constants for CbmSim.

Usage:
======
    from cbmsim.constants import CellType, MS_PER_SECOND

Author: CbmSim Project
"""

from __future__ import annotations

from .cell_types import (
    CellType,
    INNET_CELL_TYPES,
    MZONE_CELL_TYPES,
    RASTER_CELL_TYPES,
    RASTER_FILE_NAMES,
)
from .time import MS_PER_SECOND, SECONDS_PER_MS, ms_to_seconds

__all__ = [
    "CellType",
    "INNET_CELL_TYPES",
    "MZONE_CELL_TYPES",
    "RASTER_CELL_TYPES",
    "RASTER_FILE_NAMES",
    "MS_PER_SECOND",
    "SECONDS_PER_MS",
    "ms_to_seconds",
]
