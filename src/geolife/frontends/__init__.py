"""Frontend interfaces for the geohash Game of Life."""

from .cli import CLIGeoLife

__all__ = ["CLIGeoLife"]
