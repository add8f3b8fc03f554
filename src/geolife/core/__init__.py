"""Core geohash and Game of Life logic."""

from . import geohash
from .config import SimulationConfig
from .controller import SimulationController, SimulationState
from .engine import LifeGridEngine, step
from .errors import (
    GeolifeError,
    InvalidCoordinate,
    InvalidGeohash,
    InvalidPrecision,
    SimulationStateError,
)
from .grid import GeohashGrid
from .patterns import Pattern, PatternLibrary

__all__ = [
    "geohash",
    "SimulationConfig",
    "SimulationController",
    "SimulationState",
    "LifeGridEngine",
    "step",
    "GeolifeError",
    "InvalidCoordinate",
    "InvalidGeohash",
    "InvalidPrecision",
    "SimulationStateError",
    "GeohashGrid",
    "Pattern",
    "PatternLibrary",
]
