"""
State Record Base Implementation.

Every connectivity or activity record is a dataclass of torch tensors. Its
``layout()`` lists the fields as ``(name, dtype, shape)`` in wire order;
shapes come from the connectivity parameters, so a reader must have those
before it can restore anything.

Architecture Pattern:
=====================
1. ``layout(con_params)`` → ordered ``FieldSpec`` list (the file format)
2. ``write_state(writer)`` / ``read_state(reader)``: positional encoding
   through ``cbmsim.io.binary_format``
3. ``from_stream(reader, ...)``: restorative construction
4. Concrete ``generate``/``initial`` classmethods: generative construction

Usage Example:
==============
```python
con = InNetConnectivityState.generate(seed=17, con_params=params)
with open("innet.bin", "wb") as f:
    con.write_state(BinaryWriter(f))

with open("innet.bin", "rb") as f:
    restored = InNetConnectivityState.from_stream(BinaryReader(f), params)
assert restored.state_equal(con)
```

Author: CbmSim Project
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Tuple, Type, TypeVar

import torch

from cbmsim.config.params import ConnectivityParams
from cbmsim.io.binary_format import BinaryReader, BinaryWriter, tensor_nbytes

TStateRecord = TypeVar("TStateRecord", bound="StateRecord")

# Largest number of random keys drawn at once while sampling fan-in tables
_SAMPLE_CHUNK_ELEMENTS = 1 << 24


@dataclass(frozen=True)
class FieldSpec:
    """One positional field of a state record."""

    name: str
    dtype: torch.dtype
    shape: Tuple[int, ...]

    @property
    def nbytes(self) -> int:
        return tensor_nbytes(self.shape, self.dtype)


@dataclass
class StateRecord:
    """Base class for connectivity and activity records.

    Subclasses declare one tensor field per entry of ``layout()`` and
    nothing else.
    """

    @classmethod
    def layout(cls, con_params: ConnectivityParams) -> List[FieldSpec]:
        raise NotImplementedError(f"{cls.__name__} must define layout()")

    @classmethod
    def num_bytes(cls, con_params: ConnectivityParams) -> int:
        """Serialized size of this record for the given network."""
        return sum(spec.nbytes for spec in cls.layout(con_params))

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def write_state(self, writer: BinaryWriter, con_params: ConnectivityParams) -> int:
        """Write every field in layout order and return bytes written."""
        total = 0
        for spec in self.layout(con_params):
            tensor = getattr(self, spec.name)
            if tuple(tensor.shape) != spec.shape or tensor.dtype != spec.dtype:
                raise ValueError(
                    f"{type(self).__name__}.{spec.name} is {tensor.dtype}{tuple(tensor.shape)}, "
                    f"layout expects {spec.dtype}{spec.shape}"
                )
            total += writer.write_tensor(tensor)
        return total

    def read_state(
        self,
        reader: BinaryReader,
        con_params: ConnectivityParams,
        device: str = "cpu",
    ) -> None:
        """Overwrite every field in place from ``reader``.

        Raises:
            CorruptStateError: If the stream ends before the last field
        """
        self.assign_fields(self.read_fields(reader, con_params, device))

    def assign_fields(self, values: Dict[str, torch.Tensor]) -> None:
        """Replace fields with tensors returned by ``read_fields``."""
        for name, tensor in values.items():
            setattr(self, name, tensor)

    @classmethod
    def from_stream(
        cls: Type[TStateRecord],
        reader: BinaryReader,
        con_params: ConnectivityParams,
        device: str = "cpu",
    ) -> TStateRecord:
        """Build a record from the next ``num_bytes`` bytes of ``reader``."""
        return cls(**cls.read_fields(reader, con_params, device))

    @classmethod
    def read_fields(
        cls,
        reader: BinaryReader,
        con_params: ConnectivityParams,
        device: str,
    ) -> Dict[str, torch.Tensor]:
        """Read this record's fields from ``reader`` without storing them."""
        values = {}
        for spec in cls.layout(con_params):
            values[spec.name] = reader.read_tensor(
                spec.shape, spec.dtype, cls.__name__, spec.name, device=device
            )
        return values

    # =========================================================================
    # INSPECTION
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Field name -> tensor mapping (tensors shared, not copied)."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def state_equal(self, other: "StateRecord") -> bool:
        """True if ``other`` is the same record type with identical tensors."""
        if type(other) is not type(self):
            return False
        for f in fields(self):
            mine = getattr(self, f.name)
            theirs = getattr(other, f.name)
            if mine.dtype != theirs.dtype or not torch.equal(mine.cpu(), theirs.cpu()):
                return False
        return True

    def to(self: TStateRecord, device: str) -> TStateRecord:
        """Move every tensor to ``device`` in place and return self."""
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name).to(device))
        return self


# =============================================================================
# GENERATION HELPERS
# =============================================================================


def make_generator(seed: int) -> torch.Generator:
    """CPU generator seeded with ``seed``."""
    generator = torch.Generator(device="cpu")
    generator.manual_seed(seed)
    return generator


def sample_fan_in(
    n_post: int,
    n_pre: int,
    fan_in: int,
    generator: torch.Generator,
) -> torch.Tensor:
    """Pick ``fan_in`` distinct presynaptic indices for every postsynaptic cell.

    Returns:
        int32 tensor [n_post, fan_in], each row sorted ascending
    """
    rows_per_chunk = max(1, _SAMPLE_CHUNK_ELEMENTS // n_pre)
    chunks = []
    for start in range(0, n_post, rows_per_chunk):
        n_rows = min(rows_per_chunk, n_post - start)
        keys = torch.rand(n_rows, n_pre, generator=generator)
        picked = keys.topk(fan_in, dim=1).indices
        chunks.append(picked.sort(dim=1).values)
    return torch.cat(chunks, dim=0).to(torch.int32)


def uniform_jitter(
    size: int,
    center: float,
    half_width: float,
    generator: torch.Generator,
) -> torch.Tensor:
    """float32 tensor [size] uniform in ``[center - half_width, center + half_width)``."""
    noise = torch.rand(size, generator=generator, dtype=torch.float32) * 2.0 - 1.0
    return center + half_width * noise
