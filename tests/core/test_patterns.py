"""Tests for patterns on the geohash grid."""

from geolife.core import geohash
from geolife.core.patterns import Pattern, PatternLibrary


class TestPattern:
    """Test cases for the Pattern class."""

    def test_initialization(self):
        """Test pattern initialization."""
        pattern = Pattern("Test", [(0, 0), (1, 1)], "A test pattern", "Custom")

        assert pattern.name == "Test"
        assert pattern.cells == [(0, 0), (1, 1)]
        assert pattern.description == "A test pattern"
        assert pattern.category == "Custom"
        assert pattern.population == 2

    def test_bounding_box_and_size(self):
        """Test bounding box and size."""
        pattern = Pattern("Test", [(1, 2), (3, 1), (2, 4)])
        assert pattern.get_bounding_box() == (1, 1, 3, 4)
        assert pattern.get_size() == (3, 4)

    def test_empty_pattern(self):
        """Test an empty pattern."""
        pattern = Pattern("Empty", [])
        assert pattern.get_bounding_box() == (0, 0, 0, 0)
        assert pattern.place("u2edk") == frozenset()

    def test_place_orientation(self):
        """Test that x grows eastward and y grows southward."""
        anchor = "u2edk"
        cells = Pattern("Corner", [(0, 0), (1, 0), (0, 1)]).place(anchor)

        assert cells == {
            anchor,
            geohash.neighbor(anchor, "e"),
            geohash.neighbor(anchor, "s"),
        }

    def test_place_wraps_longitude(self):
        """Test placement across the antimeridian."""
        anchor = geohash.encode(0.0, 179.9, 3)
        cells = Pattern("Line", [(0, 0), (1, 0)]).place(anchor)

        lngs = sorted(geohash.decode_bbox(cell).min_lng for cell in cells)
        assert lngs[0] == -180.0
        assert geohash.neighbor(anchor, "e") in cells

    def test_place_skips_beyond_pole(self):
        """Test that cells south of the south pole are dropped."""
        anchor = geohash.encode(-90.0, 0.0, 2)
        cells = Pattern("Column", [(0, 0), (0, 1), (0, 2)]).place(anchor)
        assert cells == {anchor}

    def test_place_keeps_precision(self):
        """Test that placed cells share the anchor precision."""
        cells = PatternLibrary().get_pattern("Glider").place("u2e")
        assert len(cells) == 5
        assert all(len(cell) == 3 for cell in cells)


class TestPatternLibrary:
    """Test cases for the PatternLibrary class."""

    def test_builtin_patterns(self):
        """Test that built-in patterns are loaded."""
        library = PatternLibrary()
        patterns = library.list_patterns()

        for name in ["Block", "Beehive", "Blinker", "Toad", "Glider", "R-pentomino", "Diehard"]:
            assert name in patterns

    def test_pulsar(self):
        """Test the mirrored pulsar layout."""
        pulsar = PatternLibrary().get_pattern("Pulsar")
        assert pulsar.population == 48
        assert pulsar.get_size() == (13, 13)

    def test_get_missing_pattern(self):
        """Test lookup of unknown names."""
        assert PatternLibrary().get_pattern("Nope") is None

    def test_add_pattern(self):
        """Test adding a custom pattern."""
        library = PatternLibrary()
        library.add_pattern(Pattern("Dot", [(0, 0)]))

        assert library.get_pattern("Dot").population == 1
        assert library.get_patterns_by_category()["Custom"] == ["Dot"]

    def test_categories(self):
        """Test grouping by category."""
        categories = PatternLibrary().get_patterns_by_category()

        assert "Block" in categories["Still Life"]
        assert "Pulsar" in categories["Oscillators"]
        assert "Glider" in categories["Spaceships"]
        assert "Diehard" in categories["Methuselahs"]
        assert "Custom" not in categories
