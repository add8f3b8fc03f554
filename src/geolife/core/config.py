"""Simulation configuration."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from . import geohash
from .engine import BACKENDS
from .errors import InvalidPrecision
from .grid import MAX_GRID_PRECISION

DEFAULT_PRECISION = 2
DEFAULT_TICK_RATE_HZ = 5.0


@dataclass
class SimulationConfig:
    """Configuration for a simulation run."""

    precision: int = DEFAULT_PRECISION
    tick_rate_hz: float = DEFAULT_TICK_RATE_HZ
    backend: str = "auto"
    detect_cycles: bool = False
    history_size: int = 1000
    max_generations: Optional[int] = None

    def __post_init__(self) -> None:
        self.precision = geohash.check_precision(self.precision)

        if isinstance(self.tick_rate_hz, bool) or not isinstance(self.tick_rate_hz, (int, float)):
            raise ValueError(f"Tick rate must be a number, got {self.tick_rate_hz!r}")
        if not self.tick_rate_hz > 0:
            raise ValueError(f"Tick rate must be positive, got {self.tick_rate_hz}")

        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{self.backend}'. Available: {', '.join(BACKENDS)}")
        if self.backend in ("numpy", "torch") and self.precision > MAX_GRID_PRECISION:
            raise InvalidPrecision(
                f"The {self.backend} backend supports precision up to {MAX_GRID_PRECISION}, got {self.precision}"
            )

        if self.history_size <= 0:
            raise ValueError("History size must be positive")

        if self.max_generations is not None and self.max_generations <= 0:
            raise ValueError("Max generations must be positive")

    @property
    def tick_interval(self) -> float:
        """Seconds between two ticks."""
        return 1.0 / self.tick_rate_hz

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        """Create a configuration from a dictionary, ignoring unknown keys."""
        known = {key: value for key, value in data.items() if key in cls.__dataclass_fields__}
        return cls(**known)
