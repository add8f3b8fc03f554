"""Conway's Game of Life on an unbounded grid of geohash cells."""

__version__ = "0.1.0"

from .core.config import SimulationConfig
from .core.controller import SimulationController, SimulationState
from .core.engine import LifeGridEngine
from .core.patterns import Pattern, PatternLibrary

__all__ = [
    "SimulationConfig",
    "SimulationController",
    "SimulationState",
    "LifeGridEngine",
    "Pattern",
    "PatternLibrary",
]
