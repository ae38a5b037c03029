"""
Spike Statistics Tracker.

Counts spikes per cell and per cell type, split by stimulus phase, and
derives mean and median firing rates at the end of a trial.

Phase partition for a CS window ``[cs_start, cs_start + cs_length)``:

    ts <  cs_start                 -> non-CS tallies
    cs_start <= ts < cs_end        -> CS tallies
    ts >= cs_end                   -> not counted

The post-CS period is deliberately excluded from both tallies, so the
"non-CS" rate is a pre-CS baseline rate.

Usage:
    stats = SpikeStatistics()
    stats.initialize(con_params.population_sizes())
    for ts in range(trial_time):
        ...
        stats.record_timestep(ts, cs_start, cs_length, spikes_by_type)
    rates = stats.compute_firing_rates(cs_seconds=2.0, pre_cs_seconds=2.0)
    stats.reset()
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Mapping, Optional

import torch

from cbmsim.constants import CellType
from cbmsim.errors import SequencingError


@dataclass
class SpikeSum:
    """Running spike counts for one cell type.

    Invariant: ``cs_spike_sum == cs_spike_counter.sum()`` and likewise for
    the non-CS tallies, after every update and until the counters are sorted.
    """

    num_cells: int
    cs_spike_counter: torch.Tensor
    non_cs_spike_counter: torch.Tensor
    cs_spike_sum: int = 0
    non_cs_spike_sum: int = 0

    @classmethod
    def zeros(cls, num_cells: int, device: str = "cpu") -> "SpikeSum":
        return cls(
            num_cells=num_cells,
            cs_spike_counter=torch.zeros(num_cells, dtype=torch.int64, device=device),
            non_cs_spike_counter=torch.zeros(num_cells, dtype=torch.int64, device=device),
        )

    def reset(self) -> None:
        self.cs_spike_sum = 0
        self.non_cs_spike_sum = 0
        self.cs_spike_counter.zero_()
        self.non_cs_spike_counter.zero_()

    def is_consistent(self) -> bool:
        """Check the sum/counter invariant."""
        return (
            int(self.cs_spike_counter.sum().item()) == self.cs_spike_sum
            and int(self.non_cs_spike_counter.sum().item()) == self.non_cs_spike_sum
        )


@dataclass(frozen=True)
class FiringRate:
    """Firing rates (Hz) of one cell type over one trial."""

    cs_mean_fr: float = 0.0
    cs_median_fr: float = 0.0
    non_cs_mean_fr: float = 0.0
    non_cs_median_fr: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def median_rate(sorted_counts: torch.Tensor, seconds: float) -> float:
    """Median spike count divided by ``seconds``.

    Even populations average the two middle counts; odd populations use the
    middle count. Empty populations and non-positive durations give 0.0.
    """
    n = sorted_counts.numel()
    if n == 0 or seconds <= 0.0:
        return 0.0
    if n % 2 == 0:
        middle = int(sorted_counts[n // 2 - 1].item()) + int(sorted_counts[n // 2].item())
        return middle / (2.0 * seconds)
    return int(sorted_counts[n // 2].item()) / seconds


def mean_rate(spike_sum: int, num_cells: int, seconds: float) -> float:
    """Population mean rate; 0.0 for empty populations or non-positive durations."""
    if num_cells == 0 or seconds <= 0.0:
        return 0.0
    return spike_sum / (seconds * num_cells)


class SpikeStatistics:
    """Per-type CS / non-CS spike tallies."""

    def __init__(self) -> None:
        self._sums: Dict[CellType, SpikeSum] = {}
        self._sorted = False

    @property
    def initialized(self) -> bool:
        return bool(self._sums)

    @property
    def is_sorted(self) -> bool:
        """True after ``compute_firing_rates`` until the next ``reset``."""
        return self._sorted

    def initialize(
        self,
        population_sizes: Mapping[CellType, int],
        device: str = "cpu",
    ) -> None:
        """Allocate zero-filled counters for every cell type in ``population_sizes``."""
        self._sums = {
            cell_type: SpikeSum.zeros(int(n), device)
            for cell_type, n in population_sizes.items()
        }
        self._sorted = False

    def __getitem__(self, cell_type: CellType) -> SpikeSum:
        return self._sums[cell_type]

    def __contains__(self, cell_type: object) -> bool:
        return cell_type in self._sums

    def cell_types(self):
        return self._sums.keys()

    def record_timestep(
        self,
        ts: int,
        cs_start: int,
        cs_length: int,
        spikes_by_type: Mapping[CellType, torch.Tensor],
    ) -> None:
        """Add one timestep of 0/1 spike flags to the tallies of its phase.

        Raises:
            SequencingError: If the counters were sorted by
                ``compute_firing_rates`` and not reset since
        """
        if self._sorted:
            raise SequencingError(
                "Spike counters were sorted by compute_firing_rates",
                hint="call reset() before recording the next trial",
            )
        if cs_start <= ts < cs_start + cs_length:
            in_cs = True
        elif ts < cs_start:
            in_cs = False
        else:
            return

        for cell_type, spike_sum in self._sums.items():
            spikes = spikes_by_type[cell_type].to(torch.int64)
            n_spikes = int(spikes.sum().item())
            if in_cs:
                spike_sum.cs_spike_counter += spikes
                spike_sum.cs_spike_sum += n_spikes
            else:
                spike_sum.non_cs_spike_counter += spikes
                spike_sum.non_cs_spike_sum += n_spikes

    def reset(self) -> None:
        """Zero all sums and counters in place."""
        for spike_sum in self._sums.values():
            spike_sum.reset()
        self._sorted = False

    def compute_firing_rates(
        self,
        cs_seconds: float,
        pre_cs_seconds: float,
    ) -> Dict[CellType, FiringRate]:
        """Mean and median rates per cell type.

        Sorts every per-cell counter ascending in place; ``reset()`` must be
        called before recording again.

        Args:
            cs_seconds: Duration of the CS window in seconds
            pre_cs_seconds: Duration of the pre-CS period in seconds
        """
        rates = {}
        for cell_type, s in self._sums.items():
            s.non_cs_spike_counter.copy_(torch.sort(s.non_cs_spike_counter).values)
            s.cs_spike_counter.copy_(torch.sort(s.cs_spike_counter).values)
            rates[cell_type] = FiringRate(
                cs_mean_fr=mean_rate(s.cs_spike_sum, s.num_cells, cs_seconds),
                cs_median_fr=median_rate(s.cs_spike_counter, cs_seconds),
                non_cs_mean_fr=mean_rate(s.non_cs_spike_sum, s.num_cells, pre_cs_seconds),
                non_cs_median_fr=median_rate(s.non_cs_spike_counter, pre_cs_seconds),
            )
        self._sorted = True
        return rates

    def is_consistent(self, cell_type: Optional[CellType] = None) -> bool:
        """Check the sum/counter invariant for one or all cell types."""
        if cell_type is not None:
            return self._sums[cell_type].is_consistent()
        return all(s.is_consistent() for s in self._sums.values())
