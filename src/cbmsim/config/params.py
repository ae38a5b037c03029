"""
Connectivity and Activity Parameters.

These two blocks are the first records of every saved simulation file, and
they carry the population sizes and zone count that the positional state
records need before they can be read back.

Field order is part of the file format: ``cbmsim.io.binary_format`` packs
each block field by field in declaration order (``int`` fields as uint32,
``float`` fields as float64). New fields may only be appended.

Author: CbmSim Project
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from cbmsim.config.base import BaseConfig
from cbmsim.constants import CellType
from cbmsim.errors import (
    ConfigurationError,
    validate_fan_in,
    validate_non_negative,
    validate_positive,
)


@dataclass(frozen=True)
class ConnectivityParams(BaseConfig):
    """Population sizes, zone count and per-connection fan-in.

    Defaults describe a scaled-down network that runs comfortably on a CPU.
    The full-size network of the GPU simulator uses 4096 mossy fibers and
    1,048,576 granule cells.
    """

    # =========================================================================
    # POPULATION SIZES
    # =========================================================================
    num_mf: int = 256
    num_gr: int = 8192
    num_go: int = 256
    num_bc: int = 64
    num_sc: int = 128
    num_pc: int = 32
    num_io: int = 4
    num_nc: int = 8

    num_zones: int = 1
    """Number of output zones (Purkinje/nucleus/olive circuits)."""

    # =========================================================================
    # INPUT NETWORK FAN-IN
    # =========================================================================
    mf_gr_fan_in: int = 4
    """Mossy fibers contacting each granule cell dendrite set."""

    go_gr_fan_in: int = 3
    gr_go_fan_in: int = 64
    mf_go_fan_in: int = 20
    go_go_fan_in: int = 12
    go_gj_fan_in: int = 18
    """Golgi-Golgi gap-junction partners per Golgi cell."""

    gr_sc_fan_in: int = 64

    # =========================================================================
    # OUTPUT ZONE FAN-IN
    # =========================================================================
    bc_pc_fan_in: int = 16
    sc_pc_fan_in: int = 16
    pc_bc_fan_in: int = 4
    pc_nc_fan_in: int = 16
    nc_io_fan_in: int = 4
    mf_nc_fan_in: int = 4

    def __post_init__(self) -> None:
        for cell_type, size in self.population_sizes().items():
            validate_positive(size, f"{cell_type.name} population size")
        if self.num_zones < 1:
            raise ConfigurationError(f"num_zones={self.num_zones} must be at least 1")

        validate_fan_in(self.mf_gr_fan_in, self.num_mf, "mf_gr_fan_in")
        validate_fan_in(self.go_gr_fan_in, self.num_go, "go_gr_fan_in")
        validate_fan_in(self.gr_go_fan_in, self.num_gr, "gr_go_fan_in")
        validate_fan_in(self.mf_go_fan_in, self.num_mf, "mf_go_fan_in")
        validate_fan_in(self.go_go_fan_in, self.num_go, "go_go_fan_in")
        validate_fan_in(self.go_gj_fan_in, self.num_go, "go_gj_fan_in")
        validate_fan_in(self.gr_sc_fan_in, self.num_gr, "gr_sc_fan_in")
        validate_fan_in(self.bc_pc_fan_in, self.num_bc, "bc_pc_fan_in")
        validate_fan_in(self.sc_pc_fan_in, self.num_sc, "sc_pc_fan_in")
        validate_fan_in(self.pc_bc_fan_in, self.num_pc, "pc_bc_fan_in")
        validate_fan_in(self.pc_nc_fan_in, self.num_pc, "pc_nc_fan_in")
        validate_fan_in(self.nc_io_fan_in, self.num_nc, "nc_io_fan_in")
        validate_fan_in(self.mf_nc_fan_in, self.num_mf, "mf_nc_fan_in")

    def population_sizes(self) -> Dict[CellType, int]:
        """Number of cells per type (zone populations counted once)."""
        return {
            CellType.MF: self.num_mf,
            CellType.GR: self.num_gr,
            CellType.GO: self.num_go,
            CellType.BC: self.num_bc,
            CellType.SC: self.num_sc,
            CellType.PC: self.num_pc,
            CellType.IO: self.num_io,
            CellType.DCN: self.num_nc,
        }


@dataclass(frozen=True)
class ActivityParams(BaseConfig):
    """Timestep, synaptic weight/gain scalars and initial cell variables."""

    ms_per_timestep: float = 1.0

    # =========================================================================
    # WEIGHT / GAIN SCALARS (passed to the kernel every timestep)
    # =========================================================================
    mfgo_w: float = 0.0035 * 0.9
    gogr_w: float = 0.017
    grgo_w: float = 0.0007 * 0.9
    gogo_w: float = 0.0125
    spill_frac: float = 0.15
    """Fraction of Golgi inhibition delivered by glutamate spillover."""

    # =========================================================================
    # LEAK REVERSAL POTENTIALS (initial membrane voltage, mV)
    # =========================================================================
    e_leak_gr: float = -65.0
    e_leak_go: float = -65.0
    e_leak_sc: float = -60.0
    e_leak_bc: float = -70.0
    e_leak_pc: float = -60.0
    e_leak_nc: float = -65.0
    e_leak_io: float = -60.0

    # =========================================================================
    # RESTING THRESHOLDS (mV)
    # =========================================================================
    thresh_rest_gr: float = -40.0
    thresh_rest_go: float = -34.0
    thresh_rest_sc: float = -50.0
    thresh_rest_bc: float = -65.0
    thresh_rest_pc: float = -62.0
    thresh_rest_nc: float = -72.0
    thresh_rest_io: float = -57.0

    # =========================================================================
    # PLASTIC SYNAPSES
    # =========================================================================
    init_syn_w_pfpc: float = 0.5
    init_syn_w_mfnc: float = 0.00085

    vm_jitter: float = 1.0
    """Half-width (mV) of the seeded jitter on initial zone membrane potentials."""

    # =========================================================================
    # MOSSY FIBER GENERATORS
    # =========================================================================
    mf_rand_seed: int = 3
    thresh_decay_tau: float = 4.0

    def __post_init__(self) -> None:
        validate_positive(self.ms_per_timestep, "ms_per_timestep")
        for name in ("mfgo_w", "gogr_w", "grgo_w", "gogo_w", "init_syn_w_pfpc",
                     "init_syn_w_mfnc", "vm_jitter", "thresh_decay_tau"):
            validate_non_negative(getattr(self, name), name)
        if not 0.0 <= self.spill_frac <= 1.0:
            raise ConfigurationError(f"spill_frac={self.spill_frac} outside valid range [0, 1]")

    def weight_args(self) -> Dict[str, float]:
        """Keyword arguments for ``SimulationKernel.calc_activity``."""
        return {
            "mfgo_w": self.mfgo_w,
            "gogr_w": self.gogr_w,
            "grgo_w": self.grgo_w,
            "gogo_w": self.gogo_w,
            "spill_frac": self.spill_frac,
        }
