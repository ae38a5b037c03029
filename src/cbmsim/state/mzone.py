"""
Output zone ("microzone") state records.

Each zone is an independently parameterized Purkinje circuit: basket and
stellate cells inhibit Purkinje cells, Purkinje cells inhibit the deep
nucleus, the nucleus inhibits the inferior olive, and each Purkinje cell
receives one climbing fiber from the olive. Parallel fiber to Purkinje
weights (one per granule cell) are the site of learning.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import torch

from cbmsim.config.params import ActivityParams, ConnectivityParams
from cbmsim.state.base import (
    FieldSpec,
    StateRecord,
    make_generator,
    sample_fan_in,
    uniform_jitter,
)


@dataclass
class MZoneConnectivityState(StateRecord):
    """Structural wiring of one output zone (seeded)."""

    bc_to_pc: torch.Tensor
    sc_to_pc: torch.Tensor
    pc_to_bc: torch.Tensor
    pc_to_nc: torch.Tensor
    nc_to_io: torch.Tensor
    io_to_pc: torch.Tensor
    mf_to_nc: torch.Tensor

    @classmethod
    def layout(cls, con_params: ConnectivityParams) -> List[FieldSpec]:
        c = con_params
        return [
            FieldSpec("bc_to_pc", torch.int32, (c.num_pc, c.bc_pc_fan_in)),
            FieldSpec("sc_to_pc", torch.int32, (c.num_pc, c.sc_pc_fan_in)),
            FieldSpec("pc_to_bc", torch.int32, (c.num_bc, c.pc_bc_fan_in)),
            FieldSpec("pc_to_nc", torch.int32, (c.num_nc, c.pc_nc_fan_in)),
            FieldSpec("nc_to_io", torch.int32, (c.num_io, c.nc_io_fan_in)),
            FieldSpec("io_to_pc", torch.int32, (c.num_pc, 1)),
            FieldSpec("mf_to_nc", torch.int32, (c.num_nc, c.mf_nc_fan_in)),
        ]

    @classmethod
    def generate(
        cls,
        seed: int,
        con_params: ConnectivityParams,
        device: str = "cpu",
    ) -> "MZoneConnectivityState":
        c = con_params
        g = make_generator(seed)
        # Climbing fibers: contiguous blocks of Purkinje cells share an olive cell
        io_to_pc = (torch.arange(c.num_pc) * c.num_io // c.num_pc).to(torch.int32)
        state = cls(
            bc_to_pc=sample_fan_in(c.num_pc, c.num_bc, c.bc_pc_fan_in, g),
            sc_to_pc=sample_fan_in(c.num_pc, c.num_sc, c.sc_pc_fan_in, g),
            pc_to_bc=sample_fan_in(c.num_bc, c.num_pc, c.pc_bc_fan_in, g),
            pc_to_nc=sample_fan_in(c.num_nc, c.num_pc, c.pc_nc_fan_in, g),
            nc_to_io=sample_fan_in(c.num_io, c.num_nc, c.nc_io_fan_in, g),
            io_to_pc=io_to_pc.unsqueeze(1),
            mf_to_nc=sample_fan_in(c.num_nc, c.num_mf, c.mf_nc_fan_in, g),
        )
        return state.to(device)


@dataclass
class MZoneActivityState(StateRecord):
    """Dynamic variables and plastic weights of one output zone."""

    pfpc_weights: torch.Tensor
    mfnc_weights: torch.Tensor

    vm_bc: torch.Tensor
    thresh_bc: torch.Tensor
    ap_bc: torch.Tensor

    vm_pc: torch.Tensor
    thresh_pc: torch.Tensor
    ap_pc: torch.Tensor

    vm_nc: torch.Tensor
    thresh_nc: torch.Tensor
    ap_nc: torch.Tensor

    vm_io: torch.Tensor
    thresh_io: torch.Tensor
    ap_io: torch.Tensor

    err_drive: torch.Tensor
    """Scalar error drive set by the US and consumed by the olive."""

    @classmethod
    def layout(cls, con_params: ConnectivityParams) -> List[FieldSpec]:
        c = con_params
        f32, u8 = torch.float32, torch.uint8
        return [
            FieldSpec("pfpc_weights", f32, (c.num_gr,)),
            FieldSpec("mfnc_weights", f32, (c.num_nc, c.mf_nc_fan_in)),
            FieldSpec("vm_bc", f32, (c.num_bc,)),
            FieldSpec("thresh_bc", f32, (c.num_bc,)),
            FieldSpec("ap_bc", u8, (c.num_bc,)),
            FieldSpec("vm_pc", f32, (c.num_pc,)),
            FieldSpec("thresh_pc", f32, (c.num_pc,)),
            FieldSpec("ap_pc", u8, (c.num_pc,)),
            FieldSpec("vm_nc", f32, (c.num_nc,)),
            FieldSpec("thresh_nc", f32, (c.num_nc,)),
            FieldSpec("ap_nc", u8, (c.num_nc,)),
            FieldSpec("vm_io", f32, (c.num_io,)),
            FieldSpec("thresh_io", f32, (c.num_io,)),
            FieldSpec("ap_io", u8, (c.num_io,)),
            FieldSpec("err_drive", f32, ()),
        ]

    @classmethod
    def generate(
        cls,
        seed: int,
        con_params: ConnectivityParams,
        act_params: ActivityParams,
        device: str = "cpu",
    ) -> "MZoneActivityState":
        """Initial zone activity; ``seed`` jitters the membrane potentials."""
        c, a = con_params, act_params
        g = make_generator(seed)

        def full(shape, value: float) -> torch.Tensor:
            return torch.full(shape, value, dtype=torch.float32)

        def no_spikes(n: int) -> torch.Tensor:
            return torch.zeros(n, dtype=torch.uint8)

        state = cls(
            pfpc_weights=full((c.num_gr,), a.init_syn_w_pfpc),
            mfnc_weights=full((c.num_nc, c.mf_nc_fan_in), a.init_syn_w_mfnc),
            vm_bc=uniform_jitter(c.num_bc, a.e_leak_bc, a.vm_jitter, g),
            thresh_bc=full((c.num_bc,), a.thresh_rest_bc),
            ap_bc=no_spikes(c.num_bc),
            vm_pc=uniform_jitter(c.num_pc, a.e_leak_pc, a.vm_jitter, g),
            thresh_pc=full((c.num_pc,), a.thresh_rest_pc),
            ap_pc=no_spikes(c.num_pc),
            vm_nc=uniform_jitter(c.num_nc, a.e_leak_nc, a.vm_jitter, g),
            thresh_nc=full((c.num_nc,), a.thresh_rest_nc),
            ap_nc=no_spikes(c.num_nc),
            vm_io=uniform_jitter(c.num_io, a.e_leak_io, a.vm_jitter, g),
            thresh_io=full((c.num_io,), a.thresh_rest_io),
            ap_io=no_spikes(c.num_io),
            err_drive=torch.tensor(0.0, dtype=torch.float32),
        )
        return state.to(device)
