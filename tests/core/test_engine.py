"""Tests for the LifeGridEngine class."""

import random

import pytest

from geolife.core import geohash
from geolife.core.engine import BACKENDS, LifeGridEngine, step
from geolife.core.errors import InvalidPrecision
from geolife.core.patterns import Pattern, PatternLibrary

ANCHOR = "u2edk"
ALL_BACKENDS = ["python", "numpy", "torch", "auto"]


def shifted(anchor: str, east: int, south: int) -> str:
    """Move an anchor cell by whole cells."""
    for _ in range(east):
        anchor = geohash.neighbor(anchor, "e")
    for _ in range(south):
        anchor = geohash.neighbor(anchor, "s")
    return anchor


@pytest.fixture
def library():
    return PatternLibrary()


class TestLifeGridEngine:
    """Test cases for the LifeGridEngine class."""

    def test_initialization(self):
        """Test engine defaults."""
        engine = LifeGridEngine()
        assert engine.precision is None
        assert engine.backend == "auto"
        assert set(BACKENDS) == {"auto", "python", "numpy", "torch"}

    def test_unknown_backend(self):
        """Test rejection of unknown backends."""
        with pytest.raises(ValueError):
            LifeGridEngine(backend="opencl")

    @pytest.mark.parametrize("backend", ALL_BACKENDS)
    def test_empty_set(self, backend):
        """Test that nothing comes from nothing."""
        assert LifeGridEngine(backend=backend).step(set()) == frozenset()

    @pytest.mark.parametrize("backend", ALL_BACKENDS)
    def test_extinction(self, backend):
        """Test that an isolated cell dies."""
        engine = LifeGridEngine(backend=backend)
        assert engine.step({ANCHOR}) == frozenset()

    @pytest.mark.parametrize("backend", ALL_BACKENDS)
    def test_still_life_block(self, backend, library):
        """Test that a 2x2 block is a fixed point."""
        engine = LifeGridEngine(backend=backend)
        block = library.get_pattern("Block").place(ANCHOR)

        assert len(block) == 4
        assert engine.step(block) == block
        assert engine.step(engine.step(block)) == block

    @pytest.mark.parametrize("backend", ALL_BACKENDS)
    def test_birth(self, backend):
        """Test that a dead cell with three live neighbours is born."""
        engine = LifeGridEngine(backend=backend)
        corner = Pattern("L", [(0, 0), (1, 0), (0, 1)]).place(ANCHOR)
        born = Pattern("cell", [(1, 1)]).place(ANCHOR)

        result = engine.step(corner)
        assert born <= result
        assert result == corner | born

    @pytest.mark.parametrize("backend", ALL_BACKENDS)
    def test_oscillator_blinker(self, backend, library):
        """Test blinker oscillator (period 2)."""
        engine = LifeGridEngine(backend=backend)
        horizontal = library.get_pattern("Blinker").place(ANCHOR)
        vertical = Pattern("vertical", [(1, 0), (1, 1), (1, 2)]).place(ANCHOR)

        assert engine.step(horizontal) == vertical
        assert engine.step(vertical) == horizontal

    @pytest.mark.parametrize("backend", ALL_BACKENDS)
    def test_glider_moves(self, backend, library):
        """Test that a glider travels one cell south-east every 4 generations."""
        engine = LifeGridEngine(backend=backend)
        glider = library.get_pattern("Glider")
        cells = glider.place(ANCHOR)

        for _ in range(4):
            cells = engine.step(cells)

        assert cells == glider.place(shifted(ANCHOR, 1, 1))

    @pytest.mark.parametrize("backend", ALL_BACKENDS)
    def test_glider_crosses_antimeridian(self, backend, library):
        """Test that a glider keeps its shape when wrapping around longitude 180."""
        engine = LifeGridEngine(backend=backend)
        glider = library.get_pattern("Glider")
        anchor = geohash.encode(10.0, 179.99, 4)
        cells = glider.place(anchor)

        for _ in range(8):
            cells = engine.step(cells)

        assert cells == glider.place(shifted(anchor, 2, 2))

    def test_input_not_mutated(self, library):
        """Test that step never modifies its input."""
        engine = LifeGridEngine()
        cells = set(library.get_pattern("R-pentomino").place(ANCHOR))
        snapshot = set(cells)

        engine.step(cells)
        assert cells == snapshot

    def test_order_independent(self, library):
        """Test that input order does not affect the result."""
        engine = LifeGridEngine()
        cells = sorted(library.get_pattern("R-pentomino").place(ANCHOR))

        assert engine.step(cells) == engine.step(list(reversed(cells)))
        assert engine.step(cells) == engine.step(frozenset(cells))

    def test_returns_frozenset(self):
        """Test result type."""
        assert isinstance(LifeGridEngine().step({ANCHOR}), frozenset)

    def test_fixed_point_is_stable(self, library):
        """Test that once step(S) == S it stays that way."""
        engine = LifeGridEngine()
        cells = library.get_pattern("Beehive").place(ANCHOR)
        for _ in range(5):
            assert engine.step(cells) == cells
            cells = engine.step(cells)

    def test_backends_agree_on_random_soups(self):
        """Test that all backends compute identical generations, poles and antimeridian included."""
        engines = {backend: LifeGridEngine(backend=backend) for backend in ["python", "numpy", "torch"]}
        rng = random.Random(1234)

        for precision in (1, 2, 3):
            rows, columns = geohash.grid_shape(precision)
            live_rows = list(range(rows - 4, rows)) + list(range(0, 3))
            live_cols = list(range(columns - 3, columns)) + list(range(0, 3))

            for _ in range(5):
                cells = frozenset(
                    geohash.encode_index(rng.choice(live_rows), rng.choice(live_cols), precision)
                    for _ in range(rng.randint(3, 25))
                )
                for _ in range(6):
                    results = {name: engine.step(cells) for name, engine in engines.items()}
                    assert results["numpy"] == results["python"]
                    assert results["torch"] == results["python"]
                    cells = results["python"]

    def test_auto_falls_back_to_numpy(self, library):
        """Test that a tiny window limit selects the sparse backend with the same result."""
        cells = library.get_pattern("Diehard").place(ANCHOR)
        dense = LifeGridEngine(backend="auto")
        sparse = LifeGridEngine(backend="auto", max_window_cells=1)
        assert dense.step(cells) == sparse.step(cells)

    def test_scattered_cells(self):
        """Test cells far apart on the globe evolve independently."""
        engine = LifeGridEngine(backend="auto", max_window_cells=10_000)
        library = PatternLibrary()
        vienna = library.get_pattern("Block").place(geohash.encode(48.2, 16.37, 6))
        sydney = library.get_pattern("Blinker").place(geohash.encode(-33.87, 151.21, 6))

        result = engine.step(vienna | sydney)
        assert vienna <= result
        assert len(result) == 7
        assert len(sydney & result) == 1

    def test_high_precision_uses_codec(self, library):
        """Test precisions beyond the integer grid."""
        engine = LifeGridEngine()
        block = library.get_pattern("Block").place(geohash.encode(48.2, 16.37, 14))
        assert engine.step(block) == block

    @pytest.mark.parametrize("backend", ["numpy", "torch"])
    def test_grid_backend_rejects_high_precision(self, backend):
        """Test that integer-grid backends refuse precisions beyond int64 keys."""
        with pytest.raises(InvalidPrecision):
            LifeGridEngine(precision=13, backend=backend)

    def test_explicit_precision(self, library):
        """Test an engine bound to a precision."""
        engine = LifeGridEngine(precision=5, backend="numpy")
        block = library.get_pattern("Block").place(ANCHOR)
        assert engine.step(block) == block

    def test_module_step(self, library):
        """Test the module-level step function."""
        block = library.get_pattern("Block").place(ANCHOR)
        assert step(block) == block
        assert step({ANCHOR}) == frozenset()
