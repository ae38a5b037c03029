"""
Tests for the simulation state container.

Test Coverage:
- Generative construction is deterministic in the seed
- Seed fan-out order (innet, then per zone connectivity then activity)
- serialize/restore round trip for several zone counts
- Serialized size matches the layouts
- Truncated streams raise CorruptStateError
- Accessors return the owned records by reference
"""

import io

import pytest
import torch

from cbmsim.config import ConnectivityParams
from cbmsim.errors import ConfigurationError, CorruptStateError
from cbmsim.state import (
    InNetActivityState,
    InNetConnectivityState,
    MZoneActivityState,
    MZoneConnectivityState,
    SimulationState,
    draw_record_seeds,
    expected_state_bytes,
)
from cbmsim.state.simulation_state import SEED_UPPER_BOUND


def with_zones(con_params, num_zones):
    return ConnectivityParams(**{**con_params.to_dict(), "num_zones": num_zones})


class TestSeedFanOut:
    def test_count_and_range(self):
        innet_seed, zone_seeds = draw_record_seeds(17, 3)
        assert len(zone_seeds) == 3
        for seed in [innet_seed] + [s for pair in zone_seeds for s in pair]:
            assert 0 <= seed < SEED_UPPER_BOUND

    def test_zone_seeds_extend_prefix(self):
        # Adding zones appends draws; existing records keep their seeds
        innet_1, zones_1 = draw_record_seeds(17, 1)
        innet_3, zones_3 = draw_record_seeds(17, 3)
        assert innet_1 == innet_3
        assert zones_1[0] == zones_3[0]

    def test_different_seeds_differ(self):
        assert draw_record_seeds(1, 1) != draw_record_seeds(2, 1)


class TestCreate:
    def test_deterministic(self, small_con_params, act_params):
        a = SimulationState.create(1, 5, small_con_params, act_params)
        b = SimulationState.create(1, 5, small_con_params, act_params)
        assert a.state_equal(b)

    def test_seed_changes_connectivity(self, small_con_params, act_params):
        a = SimulationState.create(1, 5, small_con_params, act_params)
        b = SimulationState.create(1, 6, small_con_params, act_params)
        assert not a.innet_connectivity.state_equal(b.innet_connectivity)

    def test_zones_are_independent(self, small_con_params, act_params):
        con = with_zones(small_con_params, 2)
        state = SimulationState.create(2, 5, con, act_params)
        assert not state.zone_activity_state(0).state_equal(state.zone_activity_state(1))

    def test_fan_in_tables(self, small_con_params, act_params):
        state = SimulationState.create(1, 5, small_con_params, act_params)
        mf_to_gr = state.innet_connectivity.mf_to_gr
        assert mf_to_gr.shape == (small_con_params.num_gr, small_con_params.mf_gr_fan_in)
        assert mf_to_gr.dtype == torch.int32
        assert int(mf_to_gr.min()) >= 0
        assert int(mf_to_gr.max()) < small_con_params.num_mf
        # Distinct presynaptic cells per row, sorted
        assert bool((mf_to_gr[:, 1:] > mf_to_gr[:, :-1]).all())

    def test_initial_activity(self, small_con_params, act_params):
        state = SimulationState.create(1, 5, small_con_params, act_params)
        innet = state.innet_activity
        assert torch.all(innet.vm_gr == act_params.e_leak_gr)
        assert torch.all(innet.thresh_go == act_params.thresh_rest_go)
        assert int(innet.ap_gr.sum()) == 0

        zone = state.zone_activity_state(0)
        assert torch.all(zone.pfpc_weights == act_params.init_syn_w_pfpc)
        assert torch.all((zone.vm_pc - act_params.e_leak_pc).abs() <= act_params.vm_jitter)
        assert zone.err_drive.item() == 0.0

    def test_rejects_zero_zones(self, small_con_params, act_params):
        with pytest.raises(ConfigurationError):
            SimulationState.create(0, 5, small_con_params, act_params)

    def test_rejects_zone_count_mismatch(self, small_con_params, act_params):
        # A file written from such a state would restore with the wrong zone count
        with pytest.raises(ConfigurationError, match="num_zones"):
            SimulationState.create(3, 7, small_con_params, act_params)


class TestSerialization:
    @pytest.mark.parametrize("num_zones", [1, 2, 4])
    def test_roundtrip(self, small_con_params, act_params, num_zones):
        con = with_zones(small_con_params, num_zones)
        state = SimulationState.create(num_zones, 321, con, act_params)

        buf = io.BytesIO()
        written = state.serialize(buf)
        assert written == len(buf.getvalue()) == state.num_bytes()

        buf.seek(0)
        restored = SimulationState.restore(num_zones, buf, con, act_params)
        assert restored.num_zones == num_zones
        assert restored.state_equal(state)

    def test_size_is_sum_of_records(self, small_con_params):
        con = with_zones(small_con_params, 3)
        expected = (
            InNetConnectivityState.num_bytes(con)
            + InNetActivityState.num_bytes(con)
            + 3 * (MZoneConnectivityState.num_bytes(con) + MZoneActivityState.num_bytes(con))
        )
        assert expected_state_bytes(3, con) == expected

    def test_record_order(self, small_con_params, act_params):
        state = SimulationState.create(1, 321, small_con_params, act_params)
        buf = io.BytesIO()
        state.serialize(buf)
        data = buf.getvalue()

        first = state.innet_connectivity.mf_to_gr.numpy().tobytes()
        assert data[: len(first)] == first
        last = state.zone_activity_state(0).err_drive.numpy().tobytes()
        assert data[-len(last):] == last

    def test_truncated_stream(self, small_con_params, act_params):
        state = SimulationState.create(1, 321, small_con_params, act_params)
        buf = io.BytesIO()
        state.serialize(buf)
        short = io.BytesIO(buf.getvalue()[: InNetConnectivityState.num_bytes(small_con_params) + 3])

        with pytest.raises(CorruptStateError) as exc_info:
            SimulationState.restore(1, short, small_con_params, act_params)
        assert exc_info.value.record == "InNetActivityState"
        assert exc_info.value.field_name == "vm_gr"

    def test_read_state_refreshes_in_place(self, small_con_params, act_params):
        state = SimulationState.create(1, 321, small_con_params, act_params)
        buf = io.BytesIO()
        state.serialize(buf)

        other = SimulationState.create(1, 999, small_con_params, act_params)
        innet = other.innet_connectivity
        buf.seek(0)
        other.read_state(buf)
        assert other.innet_connectivity is innet
        assert other.state_equal(state)

    def test_restore_rejects_zone_count_mismatch(self, small_con_params, act_params):
        state = SimulationState.create(1, 321, small_con_params, act_params)
        buf = io.BytesIO()
        state.serialize(buf)
        buf.seek(0)
        with pytest.raises(ConfigurationError):
            SimulationState.restore(2, buf, small_con_params, act_params)

    def test_truncated_read_state_leaves_state_unchanged(self, small_con_params, act_params):
        source = SimulationState.create(1, 321, small_con_params, act_params)
        buf = io.BytesIO()
        source.serialize(buf)

        target = SimulationState.create(1, 999, small_con_params, act_params)
        snapshot = io.BytesIO()
        target.serialize(snapshot)

        with pytest.raises(CorruptStateError):
            target.read_state(io.BytesIO(buf.getvalue()[:-4]))

        after = io.BytesIO()
        target.serialize(after)
        assert after.getvalue() == snapshot.getvalue()
        assert not target.innet_connectivity.state_equal(source.innet_connectivity)


class TestAccessors:
    def test_records_are_shared(self, small_con_params, act_params):
        state = SimulationState.create(1, 5, small_con_params, act_params)
        state.zone_activity_state(0).pfpc_weights[0] = 0.25
        assert state.zone_activity_state(0).pfpc_weights[0].item() == 0.25

    def test_zone_index_checked(self, small_con_params, act_params):
        state = SimulationState.create(1, 5, small_con_params, act_params)
        with pytest.raises(IndexError):
            state.zone_connectivity_state(1)

    def test_params_exposed(self, small_con_params, act_params):
        state = SimulationState.create(1, 5, small_con_params, act_params)
        assert state.con_params == small_con_params
        assert state.act_params == act_params
        assert "num_zones=1" in repr(state)
