"""
Simulation state records and their container.

Usage:
    from cbmsim.state import SimulationState

    state = SimulationState.create(num_zones=con.num_zones, seed=17,
                                   con_params=con, act_params=act)
    with open("run.state", "wb") as f:
        state.serialize(f)
"""

from cbmsim.state.base import FieldSpec, StateRecord
from cbmsim.state.innet import InNetActivityState, InNetConnectivityState
from cbmsim.state.mzone import MZoneActivityState, MZoneConnectivityState
from cbmsim.state.simulation_state import (
    SimulationState,
    draw_record_seeds,
    expected_state_bytes,
)

__all__ = [
    "FieldSpec",
    "StateRecord",
    "InNetActivityState",
    "InNetConnectivityState",
    "MZoneActivityState",
    "MZoneConnectivityState",
    "SimulationState",
    "draw_record_seeds",
    "expected_state_bytes",
]
