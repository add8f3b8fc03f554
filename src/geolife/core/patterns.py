"""Common Game of Life patterns placed on the geohash grid."""

from typing import Dict, FrozenSet, List, Optional, Tuple

from . import geohash


class Pattern:
    """A named arrangement of live cells.

    Cells are (x, y) offsets from the anchor cell: x grows eastward and y grows
    southward, so patterns read the way they are usually drawn.
    """

    def __init__(
        self,
        name: str,
        cells: List[Tuple[int, int]],
        description: str = "",
        category: str = "Custom",
    ) -> None:
        self.name = name
        self.cells = cells
        self.description = description
        self.category = category

    @property
    def population(self) -> int:
        """Number of live cells in the pattern."""
        return len(set(self.cells))

    def get_bounding_box(self) -> Tuple[int, int, int, int]:
        """Get bounding box of the pattern as (min_x, min_y, max_x, max_y)."""
        if not self.cells:
            return (0, 0, 0, 0)

        xs, ys = zip(*self.cells)
        return (min(xs), min(ys), max(xs), max(ys))

    def get_size(self) -> Tuple[int, int]:
        """Get pattern size as (width, height)."""
        min_x, min_y, max_x, max_y = self.get_bounding_box()
        return (max_x - min_x + 1, max_y - min_y + 1)

    def place(self, anchor: str) -> FrozenSet[str]:
        """Lay the pattern out on the grid of the anchor's precision.

        Longitude wraps across the antimeridian. Cells that would fall beyond
        a pole are skipped.

        Args:
            anchor: Geohash receiving offset (0, 0)

        Returns:
            Frozenset of geohashes

        Raises:
            InvalidGeohash: If the anchor is malformed
        """
        lat_index, lng_index, precision = geohash.decode_index(anchor)
        rows, columns = geohash.grid_shape(precision)

        placed = set()
        for x, y in self.cells:
            row = lat_index - y
            if not 0 <= row < rows:
                continue
            placed.add(geohash.encode_index(row, (lng_index + x) % columns, precision))
        return frozenset(placed)


class PatternLibrary:
    """Manages a collection of patterns."""

    def __init__(self) -> None:
        self._patterns: Dict[str, Pattern] = {}
        self._load_builtin_patterns()

    def _load_builtin_patterns(self) -> None:
        """Load built-in common patterns."""
        # Still life patterns
        self.add_pattern(Pattern("Block", [(0, 0), (0, 1), (1, 0), (1, 1)], "2x2 still life block", "Still Life"))
        self.add_pattern(
            Pattern("Beehive", [(1, 0), (2, 0), (0, 1), (3, 1), (1, 2), (2, 2)], "Beehive still life", "Still Life")
        )
        self.add_pattern(
            Pattern(
                "Loaf",
                [(1, 0), (2, 0), (0, 1), (3, 1), (1, 2), (3, 2), (2, 3)],
                "Loaf still life",
                "Still Life",
            )
        )
        self.add_pattern(Pattern("Boat", [(0, 0), (1, 0), (0, 1), (2, 1), (1, 2)], "Boat still life", "Still Life"))

        # Oscillators
        self.add_pattern(Pattern("Blinker", [(0, 1), (1, 1), (2, 1)], "Period-2 oscillator", "Oscillators"))
        self.add_pattern(
            Pattern("Toad", [(1, 0), (2, 0), (3, 0), (0, 1), (1, 1), (2, 1)], "Period-2 oscillator", "Oscillators")
        )
        self.add_pattern(
            Pattern(
                "Beacon",
                [(0, 0), (1, 0), (0, 1), (3, 2), (2, 3), (3, 3)],
                "Period-2 oscillator",
                "Oscillators",
            )
        )

        # Pulsar: one quadrant mirrored across both axes
        quadrant = [(2, 0), (3, 0), (4, 0), (0, 2), (0, 3), (0, 4), (5, 2), (5, 3), (5, 4), (2, 5), (3, 5), (4, 5)]
        pulsar = sorted({(px, py) for x, y in quadrant for px in (x, 12 - x) for py in (y, 12 - y)})
        self.add_pattern(Pattern("Pulsar", pulsar, "Period-3 oscillator", "Oscillators"))

        # Spaceships
        self.add_pattern(
            Pattern("Glider", [(1, 0), (2, 1), (0, 2), (1, 2), (2, 2)], "Smallest spaceship, period-4", "Spaceships")
        )
        self.add_pattern(
            Pattern(
                "Lightweight Spaceship",
                [(0, 0), (3, 0), (4, 1), (0, 2), (4, 2), (1, 3), (2, 3), (3, 3), (4, 3)],
                "LWSS - Period-4 spaceship",
                "Spaceships",
            )
        )

        # Methuselahs
        self.add_pattern(
            Pattern(
                "R-pentomino",
                [(1, 0), (2, 0), (0, 1), (1, 1), (1, 2)],
                "Famous methuselah that stabilizes after 1103 generations",
                "Methuselahs",
            )
        )
        self.add_pattern(
            Pattern(
                "Diehard",
                [(6, 0), (0, 1), (1, 1), (1, 2), (5, 2), (6, 2), (7, 2)],
                "Dies after exactly 130 generations",
                "Methuselahs",
            )
        )

    def add_pattern(self, pattern: Pattern) -> None:
        """Add a pattern to the library, replacing any pattern of the same name."""
        self._patterns[pattern.name] = pattern

    def get_pattern(self, name: str) -> Optional[Pattern]:
        """Get a pattern by name, or None if not found."""
        return self._patterns.get(name)

    def list_patterns(self) -> List[str]:
        """Get list of all pattern names."""
        return list(self._patterns.keys())

    def get_patterns_by_category(self) -> Dict[str, List[str]]:
        """Get pattern names grouped by category, in insertion order."""
        categories: Dict[str, List[str]] = {}
        for pattern in self._patterns.values():
            categories.setdefault(pattern.category, []).append(pattern.name)
        return categories
