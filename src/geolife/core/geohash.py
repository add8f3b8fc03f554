"""Geohash encoding, decoding and neighbour derivation.

A geohash of precision ``p`` carries ``5 * p`` interleaved bits, longitude
first. Longitude therefore gets ``ceil(5p / 2)`` bits and latitude
``floor(5p / 2)`` bits, which makes the cells of a precision an integer grid
of ``2 ** lat_bits`` rows by ``2 ** lng_bits`` columns. Neighbours are derived
on that grid: rows clamp at the poles and columns wrap at the antimeridian,
which reproduces the classic "offset the centre by one cell" algorithm
exactly.
"""

import numbers
from typing import Dict, List, NamedTuple, Tuple

from .errors import InvalidCoordinate, InvalidGeohash, InvalidPrecision

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5

MIN_LAT, MAX_LAT = -90.0, 90.0
MIN_LNG, MAX_LNG = -180.0, 180.0

# (row step, column step) for each direction, in neighbour order
DIRECTIONS: Dict[str, Tuple[int, int]] = {
    "n": (1, 0),
    "ne": (1, 1),
    "e": (0, 1),
    "se": (-1, 1),
    "s": (-1, 0),
    "sw": (-1, -1),
    "w": (0, -1),
    "nw": (1, -1),
}

_DECODE_MAP = {char: index for index, char in enumerate(BASE32)}


class BoundingBox(NamedTuple):
    """Rectangle of latitude/longitude space.

    A single geohash always has ``min_lng < max_lng``. A box spanning several
    cells across the antimeridian has ``min_lng > max_lng``: it runs east from
    ``min_lng`` through 180 to ``max_lng``, as in GeoJSON bounding boxes.
    """

    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    @property
    def crosses_antimeridian(self) -> bool:
        """Whether the box wraps across longitude 180."""
        return self.min_lng > self.max_lng

    @property
    def center(self) -> Tuple[float, float]:
        """Centre of the box as (lat, lng)."""
        lat = (self.min_lat + self.max_lat) / 2
        if not self.crosses_antimeridian:
            return (lat, (self.min_lng + self.max_lng) / 2)

        lng = (self.min_lng + self.max_lng + 360.0) / 2
        if lng > MAX_LNG:
            lng -= 360.0
        return (lat, lng)

    def contains(self, lat: float, lng: float) -> bool:
        """Check whether a coordinate lies inside the box (edges included)."""
        if not self.min_lat <= lat <= self.max_lat:
            return False
        if self.crosses_antimeridian:
            return lng >= self.min_lng or lng <= self.max_lng
        return self.min_lng <= lng <= self.max_lng

    def to_polygon(self) -> List[Tuple[float, float]]:
        """Corner points as (lat, lng), counter-clockwise from the south-west."""
        return [
            (self.min_lat, self.min_lng),
            (self.min_lat, self.max_lng),
            (self.max_lat, self.max_lng),
            (self.max_lat, self.min_lng),
        ]


class CellIndex(NamedTuple):
    """Row/column position of a geohash on the grid of its precision."""

    lat_index: int
    lng_index: int
    precision: int


def check_precision(precision: int) -> int:
    """Validate a precision and return it as a plain int.

    Raises:
        InvalidPrecision: If precision is not a positive integer
    """
    if isinstance(precision, bool) or not isinstance(precision, numbers.Integral) or precision <= 0:
        raise InvalidPrecision(f"Precision must be a positive integer, got {precision!r}")
    return int(precision)


def bit_counts(precision: int) -> Tuple[int, int]:
    """Get the number of (latitude, longitude) bits for a precision."""
    total = check_precision(precision) * BITS_PER_CHAR
    return total // 2, total - total // 2


def grid_shape(precision: int) -> Tuple[int, int]:
    """Get the (rows, columns) of the cell grid at a precision."""
    lat_bits, lng_bits = bit_counts(precision)
    return 1 << lat_bits, 1 << lng_bits


def is_valid(geohash: str) -> bool:
    """Check whether a string is a well-formed geohash."""
    return isinstance(geohash, str) and bool(geohash) and all(char in _DECODE_MAP for char in geohash)


def _check_geohash(geohash: str) -> None:
    if not isinstance(geohash, str):
        raise InvalidGeohash(f"Geohash must be a string, got {type(geohash).__name__}")
    if not geohash:
        raise InvalidGeohash("Geohash must not be empty")
    for char in geohash:
        if char not in _DECODE_MAP:
            raise InvalidGeohash(f"Invalid character {char!r} in geohash {geohash!r}")


def _check_coordinate(lat: float, lng: float) -> Tuple[float, float]:
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError) as e:
        raise InvalidCoordinate(f"Coordinates must be numbers: {e}") from e

    # NaN fails both comparisons
    if not MIN_LAT <= lat <= MAX_LAT:
        raise InvalidCoordinate(f"Latitude {lat} outside [{MIN_LAT}, {MAX_LAT}]")
    if not MIN_LNG <= lng <= MAX_LNG:
        raise InvalidCoordinate(f"Longitude {lng} outside [{MIN_LNG}, {MAX_LNG}]")
    return lat, lng


def _bisect(value: float, low: float, high: float, bits: int) -> int:
    index = 0
    for _ in range(bits):
        mid = (low + high) / 2
        index <<= 1
        if value > mid:
            index |= 1
            low = mid
        else:
            high = mid
    return index


def encode_index(lat_index: int, lng_index: int, precision: int) -> str:
    """Build the geohash for a grid cell.

    Args:
        lat_index: Row, counted northward from the south pole
        lng_index: Column, counted eastward from the antimeridian
        precision: Geohash length

    Returns:
        Geohash string

    Raises:
        InvalidPrecision: If precision is not a positive integer
        IndexError: If the row or column is outside the grid
    """
    precision = check_precision(precision)
    lat_bits, lng_bits = bit_counts(precision)
    if not (0 <= lat_index < (1 << lat_bits) and 0 <= lng_index < (1 << lng_bits)):
        raise IndexError(f"Cell ({lat_index}, {lng_index}) outside the precision-{precision} grid")

    value = 0
    for i in range(precision * BITS_PER_CHAR):
        if i % 2 == 0:
            bit = (lng_index >> (lng_bits - 1 - i // 2)) & 1
        else:
            bit = (lat_index >> (lat_bits - 1 - i // 2)) & 1
        value = (value << 1) | bit

    chars = []
    for shift in range((precision - 1) * BITS_PER_CHAR, -1, -BITS_PER_CHAR):
        chars.append(BASE32[(value >> shift) & 0x1F])
    return "".join(chars)


def decode_index(geohash: str) -> CellIndex:
    """Get the grid cell a geohash denotes.

    Raises:
        InvalidGeohash: If the geohash is empty or malformed
    """
    _check_geohash(geohash)

    value = 0
    for char in geohash:
        value = (value << BITS_PER_CHAR) | _DECODE_MAP[char]

    total = len(geohash) * BITS_PER_CHAR
    lat_index = lng_index = 0
    for i in range(total):
        bit = (value >> (total - 1 - i)) & 1
        if i % 2 == 0:
            lng_index = (lng_index << 1) | bit
        else:
            lat_index = (lat_index << 1) | bit

    return CellIndex(lat_index, lng_index, len(geohash))


def encode(lat: float, lng: float, precision: int) -> str:
    """Encode a coordinate as a geohash.

    Args:
        lat: Latitude in [-90, 90]
        lng: Longitude in [-180, 180]
        precision: Geohash length (positive)

    Returns:
        Geohash of the cell containing the coordinate. A coordinate lying
        exactly on a cell edge belongs to the southern/western cell.

    Raises:
        InvalidPrecision: If precision is not a positive integer
        InvalidCoordinate: If the coordinate is out of range
    """
    precision = check_precision(precision)
    lat, lng = _check_coordinate(lat, lng)
    lat_bits, lng_bits = bit_counts(precision)
    return encode_index(
        _bisect(lat, MIN_LAT, MAX_LAT, lat_bits),
        _bisect(lng, MIN_LNG, MAX_LNG, lng_bits),
        precision,
    )


def decode_bbox(geohash: str) -> BoundingBox:
    """Decode a geohash to the rectangle it denotes.

    Raises:
        InvalidGeohash: If the geohash is empty or malformed
    """
    lat_index, lng_index, precision = decode_index(geohash)
    rows, columns = grid_shape(precision)
    lat_height = (MAX_LAT - MIN_LAT) / rows
    lng_width = (MAX_LNG - MIN_LNG) / columns
    min_lat = MIN_LAT + lat_index * lat_height
    min_lng = MIN_LNG + lng_index * lng_width
    return BoundingBox(min_lat, min_lng, min_lat + lat_height, min_lng + lng_width)


def decode(geohash: str) -> Tuple[float, float]:
    """Decode a geohash to the (lat, lng) centre of its cell."""
    return decode_bbox(geohash).center


def _shift(cell: CellIndex, direction: str) -> str:
    lat_step, lng_step = DIRECTIONS[direction]
    rows, columns = grid_shape(cell.precision)
    lat_index = min(max(cell.lat_index + lat_step, 0), rows - 1)
    lng_index = (cell.lng_index + lng_step) % columns
    return encode_index(lat_index, lng_index, cell.precision)


def neighbor(geohash: str, direction: str) -> str:
    """Get the adjacent geohash in one direction.

    Args:
        geohash: Source cell
        direction: One of n, ne, e, se, s, sw, w, nw

    Raises:
        InvalidGeohash: If the geohash is malformed
        ValueError: If the direction is unknown
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown direction {direction!r}. Expected one of: {', '.join(DIRECTIONS)}")
    return _shift(decode_index(geohash), direction)


def neighbors(geohash: str) -> Dict[str, str]:
    """Get all 8 adjacent geohashes at the same precision.

    Cells on the polar rows are their own northern (or southern) neighbour and
    their diagonal neighbours across the pole repeat the east/west ones.
    Longitude wraps across the antimeridian.

    Returns:
        Dictionary keyed n, ne, e, se, s, sw, w, nw

    Raises:
        InvalidGeohash: If the geohash is malformed
    """
    cell = decode_index(geohash)
    return {direction: _shift(cell, direction) for direction in DIRECTIONS}
