"""Tests for raster capture and raw raster dumps."""

import numpy as np
import pytest
import torch

from cbmsim.constants import CellType, RASTER_CELL_TYPES, RASTER_FILE_NAMES
from cbmsim.io.raster import RasterRecorder, sample_granule_indices


@pytest.fixture
def recorder(small_con_params):
    return RasterRecorder(small_con_params.population_sizes(), column_size=6, gr_sample_size=16)


def spikes_for(sizes, column):
    """Cell i spikes in column c iff (i + c) is even."""
    return {
        ct: (torch.arange(n) + column) % 2 == 0 for ct, n in sizes.items()
    }


class TestGranuleSample:
    def test_distinct_and_in_range(self):
        indices = sample_granule_indices(100, 40, seed=5)
        assert indices.numel() == 40
        assert len(set(indices.tolist())) == 40
        assert int(indices.min()) >= 0 and int(indices.max()) < 100

    def test_seeded(self):
        assert torch.equal(sample_granule_indices(100, 40, 5), sample_granule_indices(100, 40, 5))

    def test_rejects_oversized_sample(self):
        with pytest.raises(ValueError, match="sample_size"):
            sample_granule_indices(10, 11)


class TestRasterRecorder:
    def test_buffer_shapes(self, recorder, small_con_params):
        assert recorder.buffer(CellType.GO).shape == (small_con_params.num_go, 6)
        assert recorder.buffer(CellType.GR).shape == (16, 6)
        assert recorder.buffer(CellType.DCN).shape == (small_con_params.num_nc, 6)
        assert recorder.buffer(CellType.GO).dtype == torch.uint8

    def test_record_column(self, recorder, small_con_params):
        sizes = small_con_params.population_sizes()
        recorder.record(3, spikes_for(sizes, 3))

        go = recorder.buffer(CellType.GO)
        expected = ((torch.arange(sizes[CellType.GO]) + 3) % 2 == 0).to(torch.uint8)
        assert torch.equal(go[:, 3], expected)
        assert int(go[:, :3].sum()) == 0

    def test_granule_rows_follow_sample(self, recorder, small_con_params):
        sizes = small_con_params.population_sizes()
        recorder.record(0, spikes_for(sizes, 0))
        gr = recorder.buffer(CellType.GR)[:, 0]
        expected = (recorder.gr_indices % 2 == 0).to(torch.uint8)
        assert torch.equal(gr, expected)

    def test_column_out_of_range(self, recorder, small_con_params):
        with pytest.raises(IndexError):
            recorder.record(6, spikes_for(small_con_params.population_sizes(), 0))

    def test_clear(self, recorder, small_con_params):
        recorder.record(0, spikes_for(small_con_params.population_sizes(), 0))
        recorder.clear()
        assert all(int(recorder.buffer(ct).sum()) == 0 for ct in RASTER_CELL_TYPES)

    def test_save_writes_row_major_bytes(self, recorder, small_con_params, tmp_path):
        sizes = small_con_params.population_sizes()
        for column in range(6):
            recorder.record(column, spikes_for(sizes, column))

        written = recorder.save(tmp_path)
        assert set(written) == set(RASTER_CELL_TYPES)
        for ct, path in written.items():
            assert path.name == RASTER_FILE_NAMES[ct]

        pc = np.fromfile(tmp_path / "allPCRaster.bin", dtype=np.uint8)
        assert pc.size == small_con_params.num_pc * 6
        matrix = pc.reshape(small_con_params.num_pc, 6)
        assert np.array_equal(matrix, recorder.buffer(CellType.PC).numpy())
        # Row 0 spikes in even columns only
        assert matrix[0].tolist() == [1, 0, 1, 0, 1, 0]
