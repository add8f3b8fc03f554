"""Integer cell-index grid for geohashes of a single precision."""

import logging
from typing import Iterable, List, NamedTuple, Tuple

import numpy as np
import torch
import torch.nn.functional as F

from . import geohash
from .errors import InvalidPrecision

logger = logging.getLogger(__name__)

# Keys are row * columns + column; 12 characters is 60 bits, the most an int64 holds.
MAX_GRID_PRECISION = 12

_ROW_STEPS = np.array([step[0] for step in geohash.DIRECTIONS.values()], dtype=np.int64)
_COLUMN_STEPS = np.array([step[1] for step in geohash.DIRECTIONS.values()], dtype=np.int64)


class Window(NamedTuple):
    """Dense block of the grid covering a set of cells plus a one-cell margin."""

    row0: int
    height: int
    col0: int
    width: int
    ring: bool


class GeohashGrid:
    """The grid of geohash cells at one precision.

    Cells are addressed by integer keys (``row * columns + column``) so that
    neighbour derivation and counting can be vectorised with numpy, or run as
    a PyTorch convolution over a dense window around the live cells.
    """

    def __init__(self, precision: int) -> None:
        """Initialize a grid.

        Args:
            precision: Geohash length of every cell on this grid

        Raises:
            InvalidPrecision: If precision is not in 1..MAX_GRID_PRECISION
        """
        precision = geohash.check_precision(precision)
        if precision > MAX_GRID_PRECISION:
            raise InvalidPrecision(f"Grid precision cannot exceed {MAX_GRID_PRECISION}, got {precision}")

        self.precision = precision
        self.rows, self.columns = geohash.grid_shape(precision)

        # Set single-threaded, the simulation runs on one thread
        torch.set_num_threads(1)
        self._torch_kernel = (
            torch.tensor([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=torch.float32).unsqueeze(0).unsqueeze(0)
        )

    @property
    def shape(self) -> Tuple[int, int]:
        """Get grid dimensions as (rows, columns)."""
        return (self.rows, self.columns)

    def to_keys(self, hashes: Iterable[str]) -> np.ndarray:
        """Convert geohashes to cell keys.

        Raises:
            InvalidGeohash: If a geohash is malformed
            InvalidPrecision: If a geohash has a different precision
        """
        hashes = list(hashes)
        keys = np.empty(len(hashes), dtype=np.int64)
        for i, cell in enumerate(hashes):
            lat_index, lng_index, precision = geohash.decode_index(cell)
            if precision != self.precision:
                raise InvalidPrecision(
                    f"Geohash {cell!r} has precision {precision}, grid expects {self.precision}"
                )
            keys[i] = lat_index * self.columns + lng_index
        return keys

    def to_hashes(self, keys: Iterable[int]) -> List[str]:
        """Convert cell keys back to geohashes."""
        return [
            geohash.encode_index(int(key) // self.columns, int(key) % self.columns, self.precision)
            for key in keys
        ]

    def neighbor_keys(self, keys: np.ndarray) -> np.ndarray:
        """Get the 8 neighbour keys of every key.

        Returns:
            Array of shape (len(keys), 8) in n, ne, e, se, s, sw, w, nw order
        """
        keys = np.asarray(keys, dtype=np.int64)
        rows = keys // self.columns
        cols = keys % self.columns
        neighbor_rows = np.clip(rows[:, None] + _ROW_STEPS, 0, self.rows - 1)
        neighbor_cols = (cols[:, None] + _COLUMN_STEPS) % self.columns
        return neighbor_rows * self.columns + neighbor_cols

    def candidate_keys(self, live_keys: np.ndarray) -> np.ndarray:
        """Get the sorted union of the live cells and all of their neighbours."""
        live_keys = np.asarray(live_keys, dtype=np.int64)
        return np.unique(np.concatenate([live_keys, self.neighbor_keys(live_keys).ravel()]))

    def count_live_neighbors(self, candidate_keys: np.ndarray, live_keys: np.ndarray) -> np.ndarray:
        """Count live neighbours of each candidate cell.

        Duplicate neighbour slots (polar rows) are counted once per slot.

        Returns:
            Array of counts (0-8), aligned with candidate_keys
        """
        neighbor_keys = self.neighbor_keys(candidate_keys)
        return np.isin(neighbor_keys, live_keys).sum(axis=1)

    def window(self, live_keys: np.ndarray) -> Window:
        """Find the smallest dense window holding the live cells and their neighbours.

        Longitude wraps, so the window starts just east of the widest run of
        empty columns. When the margin would cover the whole ring the window
        is the full ring.
        """
        live_keys = np.asarray(live_keys, dtype=np.int64)
        if live_keys.size == 0:
            raise ValueError("Cannot build a window around an empty cell set")

        rows = live_keys // self.columns
        row0 = max(int(rows.min()) - 1, 0)
        row1 = min(int(rows.max()) + 1, self.rows - 1)
        height = row1 - row0 + 1

        cols = np.unique(live_keys % self.columns)
        gaps = np.append(np.diff(cols), cols[0] + self.columns - cols[-1])
        widest = int(np.argmax(gaps))
        start = int(cols[(widest + 1) % cols.size])
        span = self.columns - int(gaps[widest]) + 1

        if span + 2 >= self.columns:
            return Window(row0, height, 0, self.columns, True)
        return Window(row0, height, (start - 1) % self.columns, span + 2, False)

    def count_window_neighbors(self, live_keys: np.ndarray) -> Tuple[np.ndarray, np.ndarray, Window]:
        """Count neighbours for every cell of the window using PyTorch convolution.

        Longitude is padded circularly when the window is the full ring, with
        zeros otherwise. Latitude is padded by replication so that a polar row
        sees itself to the north (or south), matching the clamped adjacency.

        Returns:
            Tuple of (neighbor counts, alive mask, window), both arrays shaped
            (window.height, window.width)
        """
        live_keys = np.asarray(live_keys, dtype=np.int64)
        window = self.window(live_keys)

        rows = live_keys // self.columns - window.row0
        cols = (live_keys % self.columns - window.col0) % self.columns

        cells = torch.zeros(1, 1, window.height, window.width, dtype=torch.float32)
        cells[0, 0, torch.from_numpy(rows), torch.from_numpy(cols)] = 1.0

        if window.ring:
            padded = F.pad(cells, (1, 1, 0, 0), mode="circular")
        else:
            padded = F.pad(cells, (1, 1, 0, 0), mode="constant", value=0.0)
        padded = F.pad(padded, (0, 0, 1, 1), mode="replicate")

        neighbors = F.conv2d(padded, self._torch_kernel)
        counts = neighbors[0, 0].numpy().astype(np.int8)
        alive = cells[0, 0].numpy() > 0
        return counts, alive, window

    def window_keys(self, window: Window, rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
        """Map window-local (row, col) positions back to cell keys."""
        rows = np.asarray(rows, dtype=np.int64) + window.row0
        cols = (np.asarray(cols, dtype=np.int64) + window.col0) % self.columns
        return rows * self.columns + cols
