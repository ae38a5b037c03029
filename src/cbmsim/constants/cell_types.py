"""
Cerebellar cell populations.

The input network holds the mossy fibers, granule, Golgi and stellate
cells. Every output zone holds its own basket, Purkinje, inferior olive and
deep nucleus cells.

Author: CbmSim Project
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Tuple


class CellType(IntEnum):
    """Closed set of simulated cell populations.

    The integer values index per-type buffers and must stay stable.
    """

    MF = 0
    GR = 1
    GO = 2
    BC = 3
    SC = 4
    PC = 5
    IO = 6
    DCN = 7


INNET_CELL_TYPES: Tuple[CellType, ...] = (CellType.MF, CellType.GR, CellType.GO, CellType.SC)
"""Populations owned by the input network."""

MZONE_CELL_TYPES: Tuple[CellType, ...] = (CellType.BC, CellType.PC, CellType.IO, CellType.DCN)
"""Populations replicated in every output zone."""

RASTER_CELL_TYPES: Tuple[CellType, ...] = (
    CellType.GO,
    CellType.GR,
    CellType.PC,
    CellType.DCN,
    CellType.IO,
)
"""Populations captured in raster files (GR as a fixed-size sample)."""

RASTER_FILE_NAMES: Dict[CellType, str] = {
    CellType.GO: "allGORaster.bin",
    CellType.GR: "sampleGRRaster.bin",
    CellType.PC: "allPCRaster.bin",
    CellType.DCN: "allNCRaster.bin",
    CellType.IO: "allIORaster.bin",
}
"""File name written for each raster population."""
