"""
Simulation State Container.

Owns the input-network records and one connectivity/activity pair per
output zone, and defines the order in which they are written and read:

    [innet connectivity][innet activity]
    [zone 0 connectivity][zone 0 activity] ... [zone N-1 connectivity][zone N-1 activity]

This order is the file format. There are no length prefixes or type tags,
so the zone count and connectivity parameters must be known before a call
to ``restore`` (they are read from the parameter blocks at the head of a
simulation file, see ``cbmsim.io.sim_file``).

Two construction modes exist and never mix on one instance:

- ``SimulationState.create``: generative, from a caller-supplied seed
- ``SimulationState.restore``: restorative, from a byte stream

The container performs no numeric simulation; the kernel mutates the
owned records in place through the accessors.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Iterator, List, Sequence, Tuple

import torch

from cbmsim.config.params import ActivityParams, ConnectivityParams
from cbmsim.errors import ConfigurationError
from cbmsim.io.binary_format import BinaryReader, BinaryWriter
from cbmsim.state.base import make_generator
from cbmsim.state.innet import InNetActivityState, InNetConnectivityState
from cbmsim.state.mzone import MZoneActivityState, MZoneConnectivityState

logger = logging.getLogger(__name__)

SEED_UPPER_BOUND = 2**31 - 1
"""Exclusive upper bound of the per-record seeds drawn by ``create``."""


def draw_record_seeds(seed: int, num_zones: int) -> Tuple[int, List[Tuple[int, int]]]:
    """Fan one top-level seed out into per-record seeds.

    The input-network connectivity seed is drawn first, then for each zone
    in index order its connectivity seed followed by its activity seed.

    Returns:
        (innet_connectivity_seed, [(zone_connectivity_seed, zone_activity_seed), ...])
    """
    generator = make_generator(seed)

    def draw() -> int:
        return int(torch.randint(0, SEED_UPPER_BOUND, (1,), generator=generator).item())

    innet_seed = draw()
    zone_seeds = []
    for _ in range(num_zones):
        con_seed = draw()
        act_seed = draw()
        zone_seeds.append((con_seed, act_seed))
    return innet_seed, zone_seeds


class SimulationState:
    """Connectivity and activity of the whole network, for a fixed zone count.

    Use ``create`` or ``restore`` rather than calling the constructor.
    """

    def __init__(
        self,
        con_params: ConnectivityParams,
        act_params: ActivityParams,
        innet_connectivity: InNetConnectivityState,
        innet_activity: InNetActivityState,
        zone_connectivity: Sequence[MZoneConnectivityState],
        zone_activity: Sequence[MZoneActivityState],
    ):
        if len(zone_connectivity) != len(zone_activity):
            raise ValueError(
                f"{len(zone_connectivity)} zone connectivity records but "
                f"{len(zone_activity)} zone activity records"
            )
        if len(zone_connectivity) == 0:
            raise ConfigurationError("A simulation state needs at least one zone")
        if len(zone_connectivity) != con_params.num_zones:
            raise ConfigurationError(
                f"{len(zone_connectivity)} zones but the connectivity parameters "
                f"declare num_zones={con_params.num_zones}"
            )

        self._con_params = con_params
        self._act_params = act_params
        self._num_zones = len(zone_connectivity)
        self._innet_connectivity = innet_connectivity
        self._innet_activity = innet_activity
        self._zone_connectivity: Tuple[MZoneConnectivityState, ...] = tuple(zone_connectivity)
        self._zone_activity: Tuple[MZoneActivityState, ...] = tuple(zone_activity)

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def create(
        cls,
        num_zones: int,
        seed: int,
        con_params: ConnectivityParams,
        act_params: ActivityParams,
        device: str = "cpu",
    ) -> "SimulationState":
        """Generate a new network from ``seed``.

        Args:
            num_zones: Number of output zones (>= 1)
            seed: Top-level seed; identical seeds and parameters give
                identical states. Use ``cbmsim.utils.seeding.clock_seed()``
                explicitly for a time-based seed.
            con_params: Population sizes and fan-in
            act_params: Initial activity values
            device: Torch device for the owned tensors
        """
        _check_zone_count(num_zones, con_params)
        logger.debug("Generating cbm state (%d zones, seed=%d)...", num_zones, seed)

        innet_seed, zone_seeds = draw_record_seeds(seed, num_zones)
        innet_con = InNetConnectivityState.generate(innet_seed, con_params, device)
        innet_act = InNetActivityState.initial(con_params, act_params, device)
        zone_con = []
        zone_act = []
        for con_seed, act_seed in zone_seeds:
            zone_con.append(MZoneConnectivityState.generate(con_seed, con_params, device))
            zone_act.append(MZoneActivityState.generate(act_seed, con_params, act_params, device))

        logger.debug("Finished generating cbm state.")
        return cls(con_params, act_params, innet_con, innet_act, zone_con, zone_act)

    @classmethod
    def restore(
        cls,
        num_zones: int,
        stream: BinaryIO,
        con_params: ConnectivityParams,
        act_params: ActivityParams,
        device: str = "cpu",
    ) -> "SimulationState":
        """Read a state written by ``serialize`` from the current stream position.

        Raises:
            CorruptStateError: If the stream ends before every field is read
        """
        _check_zone_count(num_zones, con_params)
        logger.debug("Initializing cbm state from stream (%d zones)...", num_zones)

        reader = BinaryReader(stream)
        innet_con = InNetConnectivityState.from_stream(reader, con_params, device)
        innet_act = InNetActivityState.from_stream(reader, con_params, device)
        zone_con = []
        zone_act = []
        for _ in range(num_zones):
            zone_con.append(MZoneConnectivityState.from_stream(reader, con_params, device))
            zone_act.append(MZoneActivityState.from_stream(reader, con_params, device))

        logger.debug("Finished initializing cbm state (%d bytes).", reader.bytes_read)
        return cls(con_params, act_params, innet_con, innet_act, zone_con, zone_act)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def serialize(self, stream: BinaryIO) -> int:
        """Write every record in file order and return bytes written."""
        writer = BinaryWriter(stream)
        con = self._con_params
        self._innet_connectivity.write_state(writer, con)
        self._innet_activity.write_state(writer, con)
        for zone_con, zone_act in self.zones():
            zone_con.write_state(writer, con)
            zone_act.write_state(writer, con)
        return writer.bytes_written

    def read_state(self, stream: BinaryIO, device: str = "cpu") -> None:
        """Refresh every record in place from ``stream`` (same order as ``serialize``).

        Raises:
            CorruptStateError: If the stream ends early. No record is
                modified in that case.
        """
        reader = BinaryReader(stream)
        con = self._con_params
        records = [self._innet_connectivity, self._innet_activity]
        for zone_con, zone_act in self.zones():
            records.extend((zone_con, zone_act))

        pending = [record.read_fields(reader, con, device) for record in records]
        for record, values in zip(records, pending):
            record.assign_fields(values)

    def num_bytes(self) -> int:
        """Size of ``serialize`` output for this network."""
        return expected_state_bytes(self._num_zones, self._con_params)

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def num_zones(self) -> int:
        return self._num_zones

    @property
    def con_params(self) -> ConnectivityParams:
        return self._con_params

    @property
    def act_params(self) -> ActivityParams:
        return self._act_params

    @property
    def innet_connectivity(self) -> InNetConnectivityState:
        return self._innet_connectivity

    @property
    def innet_activity(self) -> InNetActivityState:
        return self._innet_activity

    def zone_connectivity_state(self, zone: int) -> MZoneConnectivityState:
        return self._zone_connectivity[self._check_zone(zone)]

    def zone_activity_state(self, zone: int) -> MZoneActivityState:
        return self._zone_activity[self._check_zone(zone)]

    def zones(self) -> Iterator[Tuple[MZoneConnectivityState, MZoneActivityState]]:
        """(connectivity, activity) pairs in zone index order."""
        return zip(self._zone_connectivity, self._zone_activity)

    def state_equal(self, other: "SimulationState") -> bool:
        """True if every owned record of ``other`` holds identical data."""
        if self._num_zones != other.num_zones:
            return False
        if not self._innet_connectivity.state_equal(other.innet_connectivity):
            return False
        if not self._innet_activity.state_equal(other.innet_activity):
            return False
        for (con, act), (other_con, other_act) in zip(self.zones(), other.zones()):
            if not (con.state_equal(other_con) and act.state_equal(other_act)):
                return False
        return True

    def _check_zone(self, zone: int) -> int:
        if not 0 <= zone < self._num_zones:
            raise IndexError(f"zone {zone} out of range for {self._num_zones} zones")
        return zone

    def __repr__(self) -> str:
        return (
            f"SimulationState(num_zones={self._num_zones}, "
            f"num_gr={self._con_params.num_gr}, bytes={self.num_bytes()})"
        )


def expected_state_bytes(num_zones: int, con_params: ConnectivityParams) -> int:
    """Serialized size of a state with ``num_zones`` zones."""
    per_zone = (
        MZoneConnectivityState.num_bytes(con_params)
        + MZoneActivityState.num_bytes(con_params)
    )
    return (
        InNetConnectivityState.num_bytes(con_params)
        + InNetActivityState.num_bytes(con_params)
        + num_zones * per_zone
    )


def _check_zone_count(num_zones: int, con_params: ConnectivityParams) -> None:
    if num_zones < 1:
        raise ConfigurationError(f"num_zones={num_zones} must be at least 1")
    # The parameter block is the only record of the zone count in a file
    if num_zones != con_params.num_zones:
        raise ConfigurationError(
            f"num_zones={num_zones} does not match the connectivity parameters "
            f"(num_zones={con_params.num_zones})"
        )
