"""
Golgi cell activity summary over the CS window.

During the CS the engine accumulates Golgi spikes and the summed
MF->GO and GR->GO conductances. At CS offset it reports the mean
conductances per Golgi cell per timestep, the GR:MF conductance ratio and
the Golgi mean/median firing rates.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict

import torch

from cbmsim.stats.spike_sums import mean_rate, median_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CsWindowReport:
    mean_g_grgo: float
    mean_g_mfgo: float
    gr_mf_ratio: float
    go_mean_fr: float
    go_median_fr: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class CsWindowSummary:
    """Accumulator for one trial's CS window."""

    def __init__(self, num_go: int, device: str = "cpu"):
        self.num_go = num_go
        self.go_spike_counter = torch.zeros(num_go, dtype=torch.int64, device=device)
        self.g_grgo_sum = 0.0
        self.g_mfgo_sum = 0.0
        self.num_timesteps = 0

    def reset(self) -> None:
        self.go_spike_counter.zero_()
        self.g_grgo_sum = 0.0
        self.g_mfgo_sum = 0.0
        self.num_timesteps = 0

    def accumulate(
        self,
        go_spikes: torch.Tensor,
        g_grgo: torch.Tensor,
        g_mfgo: torch.Tensor,
    ) -> None:
        """Add one CS timestep."""
        self.go_spike_counter += go_spikes.to(torch.int64)
        self.g_grgo_sum += float(g_grgo.sum().item())
        self.g_mfgo_sum += float(g_mfgo.sum().item())
        self.num_timesteps += 1

    def report(self, cs_seconds: float) -> CsWindowReport:
        """Summarize the accumulated window (does not reset)."""
        cell_steps = self.num_go * self.num_timesteps
        sorted_counts = torch.sort(self.go_spike_counter).values
        report = CsWindowReport(
            mean_g_grgo=self.g_grgo_sum / cell_steps if cell_steps else 0.0,
            mean_g_mfgo=self.g_mfgo_sum / cell_steps if cell_steps else 0.0,
            gr_mf_ratio=self.g_grgo_sum / self.g_mfgo_sum if self.g_mfgo_sum else 0.0,
            go_mean_fr=mean_rate(int(sorted_counts.sum().item()), self.num_go, cs_seconds),
            go_median_fr=median_rate(sorted_counts, cs_seconds),
        )
        logger.info("Mean GO Rate: %.4f", report.go_mean_fr)
        logger.info("Median GO Rate: %.4f", report.go_median_fr)
        logger.info("mean gGRGO   = %.6f", report.mean_g_grgo)
        logger.info("mean gMFGO   = %.6f", report.mean_g_mfgo)
        logger.info("GR:MF ratio  = %.4f", report.gr_mf_ratio)
        return report
