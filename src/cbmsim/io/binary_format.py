"""
Binary Format Implementation - Positional field encoding/decoding.

Simulation and state files carry no header, magic number, version tag or
length prefix. A reader must already know what comes next (the record
layouts are derived from the connectivity parameters) and reads it field
by field in the same order the writer used.

Parameter blocks:
    One fixed-size little-endian ``struct`` record per parameter dataclass,
    fields in declaration order: ``int`` -> uint32, ``float`` -> float64.

Tensor fields:
    Raw element bytes of a contiguous CPU copy, native byte order, no
    shape or dtype information.

Reading past the end of the stream raises ``CorruptStateError`` instead of
returning partially filled data.
"""

from __future__ import annotations

import struct
from dataclasses import fields
from typing import BinaryIO, Dict, Tuple, Type, TypeVar

import numpy as np
import torch

from cbmsim.errors import CorruptStateError

TParams = TypeVar("TParams")

# Parameter field type -> struct code
_PARAM_CODES: Dict[str, str] = {
    "int": "I",
    "float": "d",
}

# Torch dtype -> numpy dtype used for raw byte views
TORCH_TO_NUMPY: Dict[torch.dtype, np.dtype] = {
    torch.float32: np.dtype(np.float32),
    torch.float64: np.dtype(np.float64),
    torch.int32: np.dtype(np.int32),
    torch.int64: np.dtype(np.int64),
    torch.uint8: np.dtype(np.uint8),
    torch.bool: np.dtype(np.bool_),
}


def params_struct(params_cls: type) -> struct.Struct:
    """Build the ``struct`` layout for a parameter dataclass."""
    codes = []
    for f in fields(params_cls):
        type_name = f.type if isinstance(f.type, str) else f.type.__name__
        if type_name not in _PARAM_CODES:
            raise TypeError(
                f"{params_cls.__name__}.{f.name} has unsupported type {type_name!r}"
            )
        codes.append(_PARAM_CODES[type_name])
    return struct.Struct("<" + "".join(codes))


def tensor_nbytes(shape: Tuple[int, ...], dtype: torch.dtype) -> int:
    """Bytes occupied by a tensor of ``shape`` and ``dtype`` on disk."""
    numel = 1
    for dim in shape:
        numel *= dim
    return numel * TORCH_TO_NUMPY[dtype].itemsize


class BinaryWriter:
    """Low-level positional writer that counts the bytes it emits."""

    def __init__(self, file: BinaryIO):
        self.file = file
        self._write_count = 0

    @property
    def bytes_written(self) -> int:
        return self._write_count

    def write_bytes(self, data: bytes) -> int:
        """Write raw bytes and return bytes written."""
        self.file.write(data)
        self._write_count += len(data)
        return len(data)

    def write_params(self, params: object) -> int:
        """Write a parameter dataclass as a fixed-size record."""
        layout = params_struct(type(params))
        values = [getattr(params, f.name) for f in fields(params)]
        return self.write_bytes(layout.pack(*values))

    def write_tensor(self, tensor: torch.Tensor) -> int:
        """Write the raw element bytes of ``tensor``."""
        data = tensor.detach().cpu().contiguous()
        return self.write_bytes(data.numpy().tobytes())


class BinaryReader:
    """Low-level positional reader that refuses short reads."""

    def __init__(self, file: BinaryIO):
        self.file = file
        self._read_count = 0

    @property
    def bytes_read(self) -> int:
        return self._read_count

    def read_bytes(self, length: int, record: str, field_name: str) -> bytes:
        """Read exactly ``length`` bytes.

        Raises:
            CorruptStateError: If the stream ends first
        """
        data = self.file.read(length)
        if len(data) < length:
            raise CorruptStateError(record, field_name, length, len(data))
        self._read_count += length
        return data

    def read_params(self, params_cls: Type[TParams]) -> TParams:
        """Read a parameter record written by ``BinaryWriter.write_params``."""
        layout = params_struct(params_cls)
        data = self.read_bytes(layout.size, params_cls.__name__, "<params>")
        values = layout.unpack(data)
        kwargs = {f.name: value for f, value in zip(fields(params_cls), values)}
        return params_cls(**kwargs)

    def read_tensor(
        self,
        shape: Tuple[int, ...],
        dtype: torch.dtype,
        record: str,
        field_name: str,
        device: str = "cpu",
    ) -> torch.Tensor:
        """Read one tensor field of known shape and dtype."""
        raw_bytes = self.read_bytes(tensor_nbytes(shape, dtype), record, field_name)
        np_array = np.frombuffer(raw_bytes, dtype=TORCH_TO_NUMPY[dtype]).reshape(shape)
        return torch.from_numpy(np_array.copy()).to(device)
