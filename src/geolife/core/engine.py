"""Conway's Game of Life over the geohash grid."""

import logging
from typing import Dict, FrozenSet, Iterable, Optional

import numpy as np

from . import geohash
from .errors import InvalidPrecision
from .grid import MAX_GRID_PRECISION, GeohashGrid

logger = logging.getLogger(__name__)

BACKENDS = ("auto", "python", "numpy", "torch")


class LifeGridEngine:
    """Advances a sparse set of live geohashes by one generation.

    Implements the classic rules over geohash adjacency:
    - Live cell with 2-3 live neighbors survives
    - Dead cell with exactly 3 live neighbors becomes alive
    - All other cells die or stay dead

    Only the live cells and their neighbours are ever evaluated. Three
    interchangeable backends compute the same result: plain Python over the
    geohash codec, numpy over integer cell keys, and a PyTorch convolution
    over the dense window around the live cells.
    """

    def __init__(
        self,
        precision: Optional[int] = None,
        backend: str = "auto",
        max_window_cells: int = 1_000_000,
    ) -> None:
        """Initialize the engine.

        Args:
            precision: Geohash length of the cells; inferred from the input when None
            backend: One of "auto", "python", "numpy", "torch"
            max_window_cells: Largest dense window "auto" hands to PyTorch

        Raises:
            ValueError: If the backend is unknown
            InvalidPrecision: If precision is given and not a positive integer,
                or too large for the numpy and torch backends
        """
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{backend}'. Available: {', '.join(BACKENDS)}")

        self.precision = geohash.check_precision(precision) if precision is not None else None
        if self.precision is not None and backend in ("numpy", "torch") and self.precision > MAX_GRID_PRECISION:
            raise InvalidPrecision(
                f"The {backend} backend supports precision up to {MAX_GRID_PRECISION}, got {self.precision}"
            )
        self.backend = backend
        self.max_window_cells = max_window_cells
        self._grids: Dict[int, GeohashGrid] = {}

    def step(self, live_set: Iterable[str]) -> FrozenSet[str]:
        """Compute the next generation.

        The input is never modified. Every geohash in it is assumed valid and
        of the same precision.

        Args:
            live_set: Currently live geohashes

        Returns:
            New frozenset of live geohashes
        """
        live = frozenset(live_set)
        if not live:
            return frozenset()

        precision = self.precision or len(next(iter(live)))
        if self.backend == "python" or (self.backend == "auto" and precision > MAX_GRID_PRECISION):
            return self._step_python(live)

        grid = self._grid(precision)
        live_keys = np.unique(grid.to_keys(live))

        backend = self.backend
        if backend == "auto":
            window = grid.window(live_keys)
            backend = "torch" if window.height * window.width <= self.max_window_cells else "numpy"
            logger.debug("Selected %s backend for a %dx%d window", backend, window.height, window.width)

        if backend == "torch":
            next_keys = self._step_torch(grid, live_keys)
        else:
            next_keys = self._step_numpy(grid, live_keys)

        return frozenset(grid.to_hashes(next_keys))

    def _grid(self, precision: int) -> GeohashGrid:
        if precision not in self._grids:
            self._grids[precision] = GeohashGrid(precision)
        return self._grids[precision]

    @staticmethod
    def _step_python(live: FrozenSet[str]) -> FrozenSet[str]:
        candidates = set(live)
        for cell in live:
            candidates.update(geohash.neighbors(cell).values())

        counts: Dict[str, int] = {}
        for cell in candidates:
            counts[cell] = sum(1 for neighbor in geohash.neighbors(cell).values() if neighbor in live)

        return frozenset(
            cell for cell, count in counts.items() if count == 3 or (count == 2 and cell in live)
        )

    @staticmethod
    def _step_numpy(grid: GeohashGrid, live_keys: np.ndarray) -> np.ndarray:
        candidates = grid.candidate_keys(live_keys)
        counts = grid.count_live_neighbors(candidates, live_keys)
        alive = np.isin(candidates, live_keys)

        # Birth: dead cell with exactly 3 neighbors
        birth_mask = ~alive & (counts == 3)

        # Survival: live cell with 2 or 3 neighbors
        survive_mask = alive & ((counts == 2) | (counts == 3))

        return candidates[birth_mask | survive_mask]

    @staticmethod
    def _step_torch(grid: GeohashGrid, live_keys: np.ndarray) -> np.ndarray:
        counts, alive, window = grid.count_window_neighbors(live_keys)

        birth_mask = ~alive & (counts == 3)
        survive_mask = alive & ((counts == 2) | (counts == 3))

        rows, cols = np.nonzero(birth_mask | survive_mask)
        return grid.window_keys(window, rows, cols)


_default_engine = LifeGridEngine()


def step(live_set: Iterable[str]) -> FrozenSet[str]:
    """Advance a set of live geohashes by one generation with the default engine."""
    return _default_engine.step(live_set)
