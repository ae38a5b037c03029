"""
CbmSim I/O Module - Positional binary files

This module provides:
- Positional field encoding for parameter blocks and state tensors
- Simulation files (parameters + state) and state files
- Raw raster dumps

Example:
    from cbmsim.io.sim_file import save_sim_file, load_sim_file

    save_sim_file("run.sim", con_params, act_params, state.serialize)
    con_params, act_params, state = load_sim_file("run.sim")

``cbmsim.io.sim_file`` depends on ``cbmsim.state`` and is imported from
its own module path.
"""

from .binary_format import BinaryReader, BinaryWriter
from .output import open_for_write

__all__ = [
    "BinaryReader",
    "BinaryWriter",
    "open_for_write",
]
