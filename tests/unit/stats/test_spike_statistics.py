"""
Tests for spike tallies and firing rates.

Test Coverage:
- Phase partition (pre-CS, CS, post-CS ignored)
- Sum/counter conservation
- Reset idempotence (rates are exactly zero, never NaN)
- Median rule for even and odd populations
- Sorted counters refuse further recording until reset
"""

import math

import pytest
import torch

from cbmsim.constants import CellType
from cbmsim.errors import SequencingError
from cbmsim.stats import FiringRate, SpikeStatistics, median_rate, mean_rate

CS_START = 10
CS_LENGTH = 5


@pytest.fixture
def stats():
    s = SpikeStatistics()
    s.initialize({CellType.MF: 4, CellType.GO: 3})
    return s


def all_spiking():
    return {
        CellType.MF: torch.ones(4, dtype=torch.uint8),
        CellType.GO: torch.ones(3, dtype=torch.uint8),
    }


class TestPhasePartition:
    def test_scenario_counts(self, stats):
        """4 always-spiking fibers over a 20-step trial with the CS at [10, 15)."""
        for ts in range(20):
            stats.record_timestep(ts, CS_START, CS_LENGTH, all_spiking())

        mf = stats[CellType.MF]
        assert mf.non_cs_spike_sum == 40
        assert mf.cs_spike_sum == 20
        assert mf.non_cs_spike_counter.tolist() == [10, 10, 10, 10]
        assert mf.cs_spike_counter.tolist() == [5, 5, 5, 5]

    def test_post_cs_not_counted(self, stats):
        stats.record_timestep(CS_START + CS_LENGTH, CS_START, CS_LENGTH, all_spiking())
        assert stats[CellType.MF].cs_spike_sum == 0
        assert stats[CellType.MF].non_cs_spike_sum == 0

    def test_cs_bounds(self, stats):
        stats.record_timestep(CS_START - 1, CS_START, CS_LENGTH, all_spiking())
        stats.record_timestep(CS_START, CS_START, CS_LENGTH, all_spiking())
        assert stats[CellType.GO].non_cs_spike_sum == 3
        assert stats[CellType.GO].cs_spike_sum == 3

    def test_conservation(self, stats):
        generator = torch.Generator().manual_seed(3)
        for ts in range(20):
            spikes = {
                CellType.MF: (torch.rand(4, generator=generator) > 0.5).to(torch.uint8),
                CellType.GO: (torch.rand(3, generator=generator) > 0.5).to(torch.uint8),
            }
            stats.record_timestep(ts, CS_START, CS_LENGTH, spikes)
            assert stats.is_consistent()
        assert stats.is_consistent(CellType.MF)


class TestReset:
    def test_reset_zeroes_everything(self, stats):
        for ts in range(20):
            stats.record_timestep(ts, CS_START, CS_LENGTH, all_spiking())
        stats.reset()
        for cell_type in stats.cell_types():
            s = stats[cell_type]
            assert s.cs_spike_sum == 0 and s.non_cs_spike_sum == 0
            assert int(s.cs_spike_counter.sum()) == 0
            assert int(s.non_cs_spike_counter.sum()) == 0

    def test_rates_after_reset_are_zero(self, stats):
        stats.reset()
        stats.reset()
        rates = stats.compute_firing_rates(cs_seconds=0.005, pre_cs_seconds=0.01)
        for rate in rates.values():
            values = rate.to_dict().values()
            assert all(v == 0.0 and not math.isnan(v) for v in values)

    def test_empty_population(self):
        stats = SpikeStatistics()
        stats.initialize({CellType.IO: 0})
        rates = stats.compute_firing_rates(2.0, 2.0)
        assert rates[CellType.IO] == FiringRate()


class TestFiringRates:
    def test_scenario_rates(self, stats):
        for ts in range(20):
            stats.record_timestep(ts, CS_START, CS_LENGTH, all_spiking())
        rates = stats.compute_firing_rates(cs_seconds=0.005, pre_cs_seconds=0.01)
        mf = rates[CellType.MF]
        assert mf.cs_mean_fr == pytest.approx(1000.0)
        assert mf.cs_median_fr == pytest.approx(1000.0)
        assert mf.non_cs_mean_fr == pytest.approx(1000.0)
        assert mf.non_cs_median_fr == pytest.approx(1000.0)

    def test_counters_sorted_after_rates(self):
        stats = SpikeStatistics()
        stats.initialize({CellType.GO: 3})
        stats.record_timestep(
            0, 1, 1, {CellType.GO: torch.tensor([1, 0, 1], dtype=torch.uint8)}
        )
        stats.compute_firing_rates(1.0, 1.0)
        assert stats.is_sorted
        assert stats[CellType.GO].non_cs_spike_counter.tolist() == [0, 1, 1]
        assert stats.is_consistent()

    def test_record_after_sort_is_refused(self, stats):
        stats.compute_firing_rates(1.0, 1.0)
        with pytest.raises(SequencingError, match="reset"):
            stats.record_timestep(0, CS_START, CS_LENGTH, all_spiking())
        stats.reset()
        assert not stats.is_sorted
        stats.record_timestep(0, CS_START, CS_LENGTH, all_spiking())


class TestRateHelpers:
    def test_even_median_averages_middle_pair(self):
        counts = torch.tensor([1, 2, 4, 10])
        assert median_rate(counts, 2.0) == pytest.approx((2 + 4) / (2 * 2.0))

    def test_odd_median_uses_middle_element(self):
        counts = torch.tensor([1, 3, 10])
        assert median_rate(counts, 2.0) == pytest.approx(1.5)

    def test_zero_seconds(self):
        assert median_rate(torch.tensor([1, 2]), 0.0) == 0.0
        assert mean_rate(10, 4, 0.0) == 0.0

    def test_mean(self):
        assert mean_rate(20, 4, 0.005) == pytest.approx(1000.0)
        assert mean_rate(5, 0, 1.0) == 0.0
