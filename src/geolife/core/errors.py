"""Exceptions raised by the geolife core."""


class GeolifeError(Exception):
    """Base class for all geolife errors."""


class InvalidGeohash(GeolifeError, ValueError):
    """Geohash is empty or contains characters outside the base32 alphabet."""


class InvalidPrecision(GeolifeError, ValueError):
    """Precision is not a positive integer or does not match the grid."""


class InvalidCoordinate(GeolifeError, ValueError):
    """Latitude or longitude is outside the valid range."""


class SimulationStateError(GeolifeError, RuntimeError):
    """Controller action is not allowed in the current state."""
