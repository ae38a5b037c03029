"""
Spike raster capture and raw dump.

A raster is a per-cell, per-timestep binary spike matrix. The recorder owns
one fixed-size uint8 buffer ``[num_cells, raster_column_size]`` per monitored
cell type for its whole lifetime; the trial engine fills one column per
recorded timestep and the buffers are dumped at the end of a run.

Raster file format (one file per cell type, see ``RASTER_FILE_NAMES``):
    raw uint8 bytes of the row-major ``[num_cells][raster_column_size]``
    matrix, no header.

Granule cells are too numerous to record in full; a fixed sample of
distinct granule indices is recorded instead.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

import torch

from cbmsim.constants import CellType, RASTER_CELL_TYPES, RASTER_FILE_NAMES
from cbmsim.io.output import open_for_write
from cbmsim.state.base import make_generator

logger = logging.getLogger(__name__)


def sample_granule_indices(num_gr: int, sample_size: int, seed: int = 0) -> torch.Tensor:
    """Draw ``sample_size`` distinct granule indices (int64, in draw order)."""
    if sample_size > num_gr:
        raise ValueError(f"sample_size={sample_size} exceeds num_gr={num_gr}")
    generator = make_generator(seed)
    return torch.randperm(num_gr, generator=generator)[:sample_size]


class RasterRecorder:
    """Fixed-size raster buffers indexed by ``CellType``.

    Args:
        population_sizes: Cells per type (GR is the full population size)
        column_size: Raster columns (recorded timesteps) for the whole run
        gr_sample_size: Number of sampled granule cells
        cell_types: Types to record
        gr_sample_seed: Seed for the granule sample
        device: Device of the buffers
    """

    def __init__(
        self,
        population_sizes: Mapping[CellType, int],
        column_size: int,
        gr_sample_size: int = 4096,
        cell_types: Sequence[CellType] = RASTER_CELL_TYPES,
        gr_sample_seed: int = 0,
        device: str = "cpu",
    ):
        self.column_size = column_size
        self.cell_types = tuple(cell_types)
        self.gr_indices: Optional[torch.Tensor] = None

        self._buffers: Dict[CellType, torch.Tensor] = {}
        for cell_type in self.cell_types:
            if cell_type == CellType.GR:
                self.gr_indices = sample_granule_indices(
                    population_sizes[CellType.GR], gr_sample_size, gr_sample_seed
                ).to(device)
                rows = gr_sample_size
            else:
                rows = population_sizes[cell_type]
            self._buffers[cell_type] = torch.zeros(
                rows, column_size, dtype=torch.uint8, device=device
            )

    def buffer(self, cell_type: CellType) -> torch.Tensor:
        """Raster buffer for ``cell_type`` (shared, not copied)."""
        return self._buffers[cell_type]

    def record(self, column: int, spikes_by_type: Mapping[CellType, torch.Tensor]) -> None:
        """Store one timestep of spikes in ``column``."""
        if not 0 <= column < self.column_size:
            raise IndexError(f"raster column {column} out of range [0, {self.column_size})")
        for cell_type, buf in self._buffers.items():
            spikes = spikes_by_type[cell_type]
            if cell_type == CellType.GR:
                spikes = spikes[self.gr_indices]
            buf[:, column] = spikes.to(torch.uint8)

    def clear(self) -> None:
        for buf in self._buffers.values():
            buf.zero_()

    def save(self, directory: Union[str, Path]) -> Dict[CellType, Path]:
        """Dump every buffer to ``directory``.

        Raises:
            OutputFileError: If a file cannot be opened (fatal)
        """
        directory = Path(directory)
        written = {}
        for cell_type, buf in self._buffers.items():
            logger.info("Filling %s files...", cell_type.name)
            path = directory / RASTER_FILE_NAMES[cell_type]
            with open_for_write(path) as f:
                f.write(buf.cpu().contiguous().numpy().tobytes())
            written[cell_type] = path
        return written
