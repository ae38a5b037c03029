"""
Input network state records.

The input network is shared by every output zone: mossy fibers drive
granule and Golgi cells, Golgi cells inhibit granule cells and each other,
granule cell parallel fibers drive Golgi and stellate cells.

Connectivity tables are stored as int32 ``[n_post, fan_in]`` index arrays
(row ``i`` lists the presynaptic cells of postsynaptic cell ``i``).

Author: CbmSim Project
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import torch

from cbmsim.config.params import ActivityParams, ConnectivityParams
from cbmsim.state.base import FieldSpec, StateRecord, make_generator, sample_fan_in


@dataclass
class InNetConnectivityState(StateRecord):
    """Structural wiring of the input network (seeded)."""

    mf_to_gr: torch.Tensor
    go_to_gr: torch.Tensor
    gr_to_go: torch.Tensor
    mf_to_go: torch.Tensor
    go_to_go: torch.Tensor
    go_gap_junctions: torch.Tensor
    gr_to_sc: torch.Tensor

    @classmethod
    def layout(cls, con_params: ConnectivityParams) -> List[FieldSpec]:
        c = con_params
        return [
            FieldSpec("mf_to_gr", torch.int32, (c.num_gr, c.mf_gr_fan_in)),
            FieldSpec("go_to_gr", torch.int32, (c.num_gr, c.go_gr_fan_in)),
            FieldSpec("gr_to_go", torch.int32, (c.num_go, c.gr_go_fan_in)),
            FieldSpec("mf_to_go", torch.int32, (c.num_go, c.mf_go_fan_in)),
            FieldSpec("go_to_go", torch.int32, (c.num_go, c.go_go_fan_in)),
            FieldSpec("go_gap_junctions", torch.int32, (c.num_go, c.go_gj_fan_in)),
            FieldSpec("gr_to_sc", torch.int32, (c.num_sc, c.gr_sc_fan_in)),
        ]

    @classmethod
    def generate(
        cls,
        seed: int,
        con_params: ConnectivityParams,
        device: str = "cpu",
    ) -> "InNetConnectivityState":
        """Draw every table from one generator seeded with ``seed``.

        Tables are drawn in layout order, so the same seed and parameters
        always give the same wiring.
        """
        c = con_params
        g = make_generator(seed)
        state = cls(
            mf_to_gr=sample_fan_in(c.num_gr, c.num_mf, c.mf_gr_fan_in, g),
            go_to_gr=sample_fan_in(c.num_gr, c.num_go, c.go_gr_fan_in, g),
            gr_to_go=sample_fan_in(c.num_go, c.num_gr, c.gr_go_fan_in, g),
            mf_to_go=sample_fan_in(c.num_go, c.num_mf, c.mf_go_fan_in, g),
            go_to_go=sample_fan_in(c.num_go, c.num_go, c.go_go_fan_in, g),
            go_gap_junctions=sample_fan_in(c.num_go, c.num_go, c.go_gj_fan_in, g),
            gr_to_sc=sample_fan_in(c.num_sc, c.num_gr, c.gr_sc_fan_in, g),
        )
        return state.to(device)


@dataclass
class InNetActivityState(StateRecord):
    """Dynamic variables of the input network.

    Initialized deterministically from the activity parameters; only the
    kernel changes these values once a run starts.
    """

    # Granule cells
    vm_gr: torch.Tensor
    g_e_sum_gr: torch.Tensor
    g_i_sum_gr: torch.Tensor
    thresh_gr: torch.Tensor
    ap_gr: torch.Tensor

    # Golgi cells
    vm_go: torch.Tensor
    g_sum_mfgo: torch.Tensor
    g_sum_grgo: torch.Tensor
    g_sum_gogo: torch.Tensor
    thresh_go: torch.Tensor
    ap_go: torch.Tensor

    # Stellate cells
    vm_sc: torch.Tensor
    g_sum_grsc: torch.Tensor
    thresh_sc: torch.Tensor
    ap_sc: torch.Tensor

    # Mossy fibers
    hist_mf: torch.Tensor

    @classmethod
    def layout(cls, con_params: ConnectivityParams) -> List[FieldSpec]:
        c = con_params
        f32, u8 = torch.float32, torch.uint8
        return [
            FieldSpec("vm_gr", f32, (c.num_gr,)),
            FieldSpec("g_e_sum_gr", f32, (c.num_gr,)),
            FieldSpec("g_i_sum_gr", f32, (c.num_gr,)),
            FieldSpec("thresh_gr", f32, (c.num_gr,)),
            FieldSpec("ap_gr", u8, (c.num_gr,)),
            FieldSpec("vm_go", f32, (c.num_go,)),
            FieldSpec("g_sum_mfgo", f32, (c.num_go,)),
            FieldSpec("g_sum_grgo", f32, (c.num_go,)),
            FieldSpec("g_sum_gogo", f32, (c.num_go,)),
            FieldSpec("thresh_go", f32, (c.num_go,)),
            FieldSpec("ap_go", u8, (c.num_go,)),
            FieldSpec("vm_sc", f32, (c.num_sc,)),
            FieldSpec("g_sum_grsc", f32, (c.num_sc,)),
            FieldSpec("thresh_sc", f32, (c.num_sc,)),
            FieldSpec("ap_sc", u8, (c.num_sc,)),
            FieldSpec("hist_mf", torch.int32, (c.num_mf,)),
        ]

    @classmethod
    def initial(
        cls,
        con_params: ConnectivityParams,
        act_params: ActivityParams,
        device: str = "cpu",
    ) -> "InNetActivityState":
        """Resting state: leak potentials, resting thresholds, no spikes."""
        c, a = con_params, act_params

        def full(n: int, value: float) -> torch.Tensor:
            return torch.full((n,), value, dtype=torch.float32, device=device)

        def zeros(n: int, dtype: torch.dtype = torch.float32) -> torch.Tensor:
            return torch.zeros(n, dtype=dtype, device=device)

        return cls(
            vm_gr=full(c.num_gr, a.e_leak_gr),
            g_e_sum_gr=zeros(c.num_gr),
            g_i_sum_gr=zeros(c.num_gr),
            thresh_gr=full(c.num_gr, a.thresh_rest_gr),
            ap_gr=zeros(c.num_gr, torch.uint8),
            vm_go=full(c.num_go, a.e_leak_go),
            g_sum_mfgo=zeros(c.num_go),
            g_sum_grgo=zeros(c.num_go),
            g_sum_gogo=zeros(c.num_go),
            thresh_go=full(c.num_go, a.thresh_rest_go),
            ap_go=zeros(c.num_go, torch.uint8),
            vm_sc=full(c.num_sc, a.e_leak_sc),
            g_sum_grsc=zeros(c.num_sc),
            thresh_sc=full(c.num_sc, a.thresh_rest_sc),
            ap_sc=zeros(c.num_sc, torch.uint8),
            hist_mf=zeros(c.num_mf, torch.int32),
        )
