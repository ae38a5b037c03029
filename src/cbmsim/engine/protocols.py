"""External collaborator protocols.

The trial engine drives three collaborators it does not implement:

- ``SimulationKernel``: the numeric integration kernel (GPU-resident in
  production) that owns the per-timestep conductance and spike computation
  and mutates the ``SimulationState`` records in place.
- ``MossyFiberFrequencies``: per-fiber firing frequency profiles (Hz) for
  each stimulus phase.
- ``MossyFiberGenerator``: turns a frequency profile into one timestep of
  stochastic mossy fiber spikes.

Any object with the right methods satisfies a protocol; no inheritance is
required.

Usage:
======
    from cbmsim.engine.protocols import SimulationKernel

    assert isinstance(my_kernel, SimulationKernel)

Author: CbmSim Project
"""

from typing import TYPE_CHECKING, BinaryIO, Callable, Protocol, runtime_checkable

import torch

from cbmsim.constants import CellType

if TYPE_CHECKING:
    from cbmsim.config import SimulationConfig
    from cbmsim.state import SimulationState


@runtime_checkable
class SimulationKernel(Protocol):
    """Numeric integration kernel."""

    def update_err_drive(self, zone: int, magnitude: float) -> None:
        """Set the error (US) drive of ``zone``'s inferior olive."""
        ...

    def update_true_mfs(self, is_true_mf: torch.Tensor) -> None:
        """Mark which mossy fibers are true inputs (bool [num_mf])."""
        ...

    def update_mf_input(self, mf_spikes: torch.Tensor) -> None:
        """Load this timestep's mossy fiber spikes (uint8 [num_mf])."""
        ...

    def calc_activity(
        self,
        mfgo_w: float,
        gogr_w: float,
        grgo_w: float,
        gogo_w: float,
        spill_frac: float,
    ) -> None:
        """Advance the network one timestep."""
        ...

    def export_ap(self, cell_type: CellType, zone: int = 0) -> torch.Tensor:
        """Spikes of the last timestep (0/1 per cell).

        Input network types ignore ``zone``.
        """
        ...

    def export_gsum(self, pre: CellType, post: CellType) -> torch.Tensor:
        """Summed conductance from ``pre`` onto each ``post`` cell."""
        ...

    def write_state(self, stream: BinaryIO) -> object:
        """Write the kernel-managed state in ``SimulationState.serialize`` order."""
        ...


@runtime_checkable
class MossyFiberFrequencies(Protocol):
    """Per-fiber frequency profiles (Hz, float [num_mf])."""

    def background(self) -> torch.Tensor:
        ...

    def cs_tonic(self) -> torch.Tensor:
        ...

    def cs_phasic(self) -> torch.Tensor:
        ...

    def in_cs_tonic(self) -> torch.Tensor:
        """Tonic profile applied during the CS after the phasic sub-window."""
        ...


@runtime_checkable
class MossyFiberGenerator(Protocol):
    """Stochastic mossy fiber spike source."""

    def calc_poiss_activity(self, frequencies: torch.Tensor) -> torch.Tensor:
        """One timestep of spikes (uint8 [num_mf]) for ``frequencies``."""
        ...

    def calc_true_mfs(self, frequencies: torch.Tensor) -> torch.Tensor:
        """Which fibers are true inputs (bool [num_mf])."""
        ...


KernelFactory = Callable[["SimulationState", "SimulationConfig"], SimulationKernel]
"""Builds a kernel bound to a state (the kernel mutates that state)."""
