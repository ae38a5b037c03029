"""
Simulation and state files.

File Format:
    Simulation file:
        [CONNECTIVITY PARAMS]   fixed-size struct record
        [ACTIVITY PARAMS]       fixed-size struct record
        [STATE]                 SimulationState.serialize() output

    State file:
        [STATE]                 SimulationState.serialize() output

The zone count is taken from the connectivity parameter block, which is why
a simulation file can be restored on its own while a state file needs the
parameters from elsewhere (a previously loaded simulation or build).

No header, magic number or version tag is written and byte order is that
of the writing machine for tensor data.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Callable, Tuple, Union

from cbmsim.config.params import ActivityParams, ConnectivityParams
from cbmsim.io.binary_format import BinaryReader, BinaryWriter
from cbmsim.io.output import open_for_write
from cbmsim.state.simulation_state import SimulationState

logger = logging.getLogger(__name__)

StateWriter = Callable[[BinaryIO], object]
"""Anything that writes the state block to a stream (container or kernel)."""


def write_params(
    stream: BinaryIO,
    con_params: ConnectivityParams,
    act_params: ActivityParams,
) -> int:
    """Write both parameter blocks and return bytes written."""
    writer = BinaryWriter(stream)
    writer.write_params(con_params)
    writer.write_params(act_params)
    return writer.bytes_written


def read_params(stream: BinaryIO) -> Tuple[ConnectivityParams, ActivityParams]:
    """Read both parameter blocks from the current stream position."""
    reader = BinaryReader(stream)
    con_params = reader.read_params(ConnectivityParams)
    act_params = reader.read_params(ActivityParams)
    return con_params, act_params


def save_sim_file(
    path: Union[str, Path],
    con_params: ConnectivityParams,
    act_params: ActivityParams,
    write_state: StateWriter,
) -> None:
    """Write a complete simulation file.

    Args:
        path: Output file
        con_params: Connectivity parameter block
        act_params: Activity parameter block
        write_state: ``SimulationState.serialize`` or the kernel's
            ``write_state``; called once with the open stream
    """
    with open_for_write(path) as f:
        write_params(f, con_params, act_params)
        write_state(f)
    logger.info("Saved simulation to %s", path)


def load_sim_file(
    path: Union[str, Path],
    device: str = "cpu",
) -> Tuple[ConnectivityParams, ActivityParams, SimulationState]:
    """Read parameters and state from a simulation file."""
    with open(path, "rb") as f:
        con_params, act_params = read_params(f)
        state = SimulationState.restore(con_params.num_zones, f, con_params, act_params, device)
    logger.info("Loaded simulation from %s (%d zones)", path, state.num_zones)
    return con_params, act_params, state


def save_state_file(path: Union[str, Path], write_state: StateWriter) -> None:
    """Write the state block alone."""
    with open_for_write(path) as f:
        write_state(f)
    logger.info("Saved state to %s", path)


def load_state_file(
    path: Union[str, Path],
    con_params: ConnectivityParams,
    act_params: ActivityParams,
    device: str = "cpu",
) -> SimulationState:
    """Read a state file whose zone count comes from ``con_params``."""
    with open(path, "rb") as f:
        state = SimulationState.restore(con_params.num_zones, f, con_params, act_params, device)
    logger.info("Loaded state from %s", path)
    return state
