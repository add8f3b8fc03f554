"""Tests for the GeohashGrid class."""

import random

import numpy as np
import pytest

from geolife.core import geohash
from geolife.core.errors import InvalidPrecision
from geolife.core.grid import MAX_GRID_PRECISION, GeohashGrid, Window


class TestGeohashGrid:
    """Test cases for the GeohashGrid class."""

    def test_initialization(self):
        """Test grid initialization."""
        grid = GeohashGrid(1)
        assert grid.precision == 1
        assert grid.rows == 4
        assert grid.columns == 8
        assert grid.shape == (4, 8)

    def test_invalid_precision(self):
        """Test rejection of unsupported precisions."""
        with pytest.raises(InvalidPrecision):
            GeohashGrid(0)
        with pytest.raises(InvalidPrecision):
            GeohashGrid(MAX_GRID_PRECISION + 1)

    def test_keys_round_trip(self):
        """Test conversion between geohashes and keys."""
        grid = GeohashGrid(5)
        cells = ["u2edk", "ezs42", "00000", "zzzzz"]
        keys = grid.to_keys(cells)

        assert keys.dtype == np.int64
        assert keys[2] == 0
        assert keys[3] == grid.rows * grid.columns - 1
        assert grid.to_hashes(keys) == cells

    def test_max_precision_keys(self):
        """Test that the largest precision still fits in int64."""
        grid = GeohashGrid(MAX_GRID_PRECISION)
        keys = grid.to_keys(["zzzzzzzzzzzz"])
        assert grid.to_hashes(keys) == ["zzzzzzzzzzzz"]

    def test_mixed_precision_rejected(self):
        """Test that cells of another precision are rejected."""
        grid = GeohashGrid(5)
        with pytest.raises(InvalidPrecision):
            grid.to_keys(["u2edk", "u2ed"])

    def test_neighbor_keys_match_codec(self):
        """Test vectorised neighbours against the codec for every small cell."""
        for precision in (1, 2):
            grid = GeohashGrid(precision)
            rows, columns = grid.shape
            cells = [geohash.encode_index(r, c, precision) for r in range(rows) for c in range(columns)]

            neighbor_keys = grid.neighbor_keys(grid.to_keys(cells))
            assert neighbor_keys.shape == (len(cells), 8)
            for cell, keys in zip(cells, neighbor_keys):
                assert grid.to_hashes(keys) == list(geohash.neighbors(cell).values())

    def test_candidate_keys(self):
        """Test that candidates are the live cells and their neighbours."""
        grid = GeohashGrid(3)
        cell = "u2e"
        candidates = grid.to_hashes(grid.candidate_keys(grid.to_keys([cell])))

        assert len(candidates) == 9
        assert set(candidates) == {cell} | set(geohash.neighbors(cell).values())

    def test_count_live_neighbors(self):
        """Test gather counting of live neighbours."""
        grid = GeohashGrid(3)
        center = "u2e"
        ring = geohash.neighbors(center)
        live = grid.to_keys([ring["n"], ring["e"], ring["sw"]])

        counts = grid.count_live_neighbors(grid.to_keys([center, ring["n"]]), live)
        assert list(counts) == [3, 1]

    def test_pole_counts_own_slot(self):
        """Test that a polar cell sees itself and repeats east/west."""
        grid = GeohashGrid(1)
        live = grid.to_keys(["b", "c"])

        # b: n=b, ne=c, e=c
        # c: n=c, nw=b, w=b
        counts = grid.count_live_neighbors(live, live)
        assert list(counts) == [3, 3]

    def test_window_simple(self):
        """Test the window around a single cell."""
        grid = GeohashGrid(2)
        key = 10 * grid.columns + 5
        assert grid.window(np.array([key])) == Window(9, 3, 4, 3, False)

    def test_window_across_antimeridian(self):
        """Test that the window starts east of the widest empty run."""
        grid = GeohashGrid(2)
        keys = np.array([10 * grid.columns + 0, 10 * grid.columns + 31])
        assert grid.window(keys) == Window(9, 3, 30, 4, False)

    def test_window_clamped_at_pole(self):
        """Test that the window does not extend beyond the polar rows."""
        grid = GeohashGrid(2)
        keys = np.array([(grid.rows - 1) * grid.columns + 7])
        window = grid.window(keys)
        assert window.row0 == grid.rows - 2
        assert window.height == 2

    def test_window_full_ring(self):
        """Test that a window spanning all columns becomes a ring."""
        grid = GeohashGrid(1)
        keys = np.array([0, 3, 6])
        window = grid.window(keys)
        assert window.ring
        assert window.col0 == 0
        assert window.width == grid.columns

    def test_window_empty(self):
        """Test that an empty cell set has no window."""
        grid = GeohashGrid(2)
        with pytest.raises(ValueError):
            grid.window(np.array([], dtype=np.int64))

    @pytest.mark.parametrize("precision", [1, 2, 3])
    def test_window_counts_match_gather(self, precision):
        """Test convolution counts against gather counts, poles and antimeridian included."""
        grid = GeohashGrid(precision)
        rng = random.Random(precision)
        rows, columns = grid.shape

        for _ in range(20):
            live_rows = [rows - 1, rows - 2, 0, 1, rows // 2]
            live_cols = [columns - 1, columns - 2, 0, 1, 2]
            live = np.unique(
                np.array(
                    [rng.choice(live_rows) * columns + rng.choice(live_cols) for _ in range(rng.randint(1, 12))],
                    dtype=np.int64,
                )
            )

            counts, alive, window = grid.count_window_neighbors(live)
            assert counts.shape == (window.height, window.width)
            assert alive.sum() == live.size

            win_rows, win_cols = np.indices(counts.shape)
            keys = grid.window_keys(window, win_rows.ravel(), win_cols.ravel())
            expected = grid.count_live_neighbors(keys, live)
            assert list(counts.ravel()) == list(expected)

    def test_window_keys(self):
        """Test mapping window positions back to keys with wraparound."""
        grid = GeohashGrid(2)
        window = Window(9, 3, 30, 4, False)
        keys = grid.window_keys(window, np.array([1, 1]), np.array([0, 3]))
        assert list(keys) == [10 * grid.columns + 30, 10 * grid.columns + 1]
