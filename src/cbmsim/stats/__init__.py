"""Spike statistics: per-phase spike tallies and derived firing rates."""

from cbmsim.stats.cs_window import CsWindowReport, CsWindowSummary
from cbmsim.stats.spike_sums import (
    FiringRate,
    SpikeStatistics,
    SpikeSum,
    mean_rate,
    median_rate,
)

__all__ = [
    "CsWindowReport",
    "CsWindowSummary",
    "FiringRate",
    "SpikeStatistics",
    "SpikeSum",
    "mean_rate",
    "median_rate",
]
