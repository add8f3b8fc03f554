"""Simulation controller: owns the live set and drives generations."""

import logging
import time
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, FrozenSet, Iterable, Optional, Tuple

import numpy as np

from . import geohash
from .config import SimulationConfig
from .engine import LifeGridEngine
from .errors import InvalidPrecision, SimulationStateError
from .patterns import Pattern

logger = logging.getLogger(__name__)

# Population counts kept for statistics and the change rate
POPULATION_HISTORY_SIZE = 100


class SimulationState(Enum):
    """Lifecycle states of a simulation."""

    IDLE = "idle"
    EDITING = "editing"
    RUNNING = "running"
    CONVERGED = "converged"


# (state, action) -> next state; reset is allowed from every state
_TRANSITIONS: Dict[Tuple[SimulationState, str], SimulationState] = {
    (SimulationState.IDLE, "edit"): SimulationState.EDITING,
    (SimulationState.EDITING, "edit"): SimulationState.EDITING,
    (SimulationState.EDITING, "start"): SimulationState.RUNNING,
    (SimulationState.RUNNING, "tick"): SimulationState.RUNNING,
    (SimulationState.RUNNING, "converge"): SimulationState.CONVERGED,
    (SimulationState.RUNNING, "stop"): SimulationState.EDITING,
}


class SimulationController:
    """Game of Life simulation on geohash cells.

    The controller is the only owner of the live set. Cells can be toggled
    while idle or editing; once running, each tick replaces the live set with
    the engine's next generation. A tick that produces the same set ends the
    run in the converged state, which lasts until reset.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        engine: Optional[LifeGridEngine] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the controller.

        Args:
            config: Simulation configuration (defaults to SimulationConfig())
            engine: Engine used to compute generations
            clock: Monotonic time source used for tick pacing
            sleep: Function used to wait between ticks
        """
        self.config = config or SimulationConfig()
        self.engine = engine or LifeGridEngine(self.config.precision, backend=self.config.backend)
        self._clock = clock
        self._sleep = sleep

        self._state = SimulationState.IDLE
        self._live_cells: FrozenSet[str] = frozenset()
        self._generation = 0
        self._population_history: Deque[int] = deque(maxlen=POPULATION_HISTORY_SIZE)
        self._finish_reason: Optional[str] = None
        self._cycle_length = 0
        self._state_history: Deque[Tuple[FrozenSet[str], int]] = deque()
        self._seen_states: Dict[FrozenSet[str], int] = {}

        self._update_population_history()

    @property
    def state(self) -> SimulationState:
        """Current lifecycle state."""
        return self._state

    @property
    def live_cells(self) -> FrozenSet[str]:
        """Currently live geohashes."""
        return self._live_cells

    @property
    def generation(self) -> int:
        """Current generation number."""
        return self._generation

    @property
    def population(self) -> int:
        """Current number of living cells."""
        return len(self._live_cells)

    @property
    def population_history(self) -> list:
        """History of population counts."""
        return list(self._population_history)

    @property
    def finish_reason(self) -> Optional[str]:
        """Why the last run ended: still_life, extinction, cycle, max_generations or stopped."""
        return self._finish_reason

    @property
    def cycle_length(self) -> int:
        """Length of detected cycle (0 if none)."""
        return self._cycle_length

    @property
    def accepts_edits(self) -> bool:
        """Whether cells can currently be toggled."""
        return (self._state, "edit") in _TRANSITIONS

    def _transition(self, action: str) -> None:
        try:
            next_state = _TRANSITIONS[(self._state, action)]
        except KeyError:
            raise SimulationStateError(f"Cannot {action} while {self._state.value}") from None

        if next_state is not self._state:
            logger.debug("Simulation %s -> %s on %s", self._state.value, next_state.value, action)
        self._state = next_state

    def _check_cell(self, cell: str) -> None:
        precision = geohash.decode_index(cell).precision
        if precision != self.config.precision:
            raise InvalidPrecision(
                f"Geohash {cell!r} has precision {precision}, simulation uses {self.config.precision}"
            )

    def toggle_cell(self, cell: str) -> bool:
        """Toggle a cell alive or dead.

        Args:
            cell: Geohash at the configured precision

        Returns:
            New state of the cell

        Raises:
            SimulationStateError: If the simulation is running or converged
            InvalidGeohash: If the geohash is malformed
            InvalidPrecision: If the geohash has a different precision
        """
        if not self.accepts_edits:
            raise SimulationStateError(f"Cannot edit cells while {self._state.value}")
        self._check_cell(cell)
        self._transition("edit")

        if cell in self._live_cells:
            self._live_cells = self._live_cells - {cell}
            alive = False
        else:
            self._live_cells = self._live_cells | {cell}
            alive = True

        self._update_population_history()
        return alive

    def toggle_at(self, lat: float, lng: float) -> str:
        """Toggle the cell containing a coordinate.

        Returns:
            Geohash of the toggled cell

        Raises:
            SimulationStateError: If the simulation is running or converged
            InvalidCoordinate: If the coordinate is out of range
        """
        if not self.accepts_edits:
            raise SimulationStateError(f"Cannot edit cells while {self._state.value}")
        cell = geohash.encode(lat, lng, self.config.precision)
        self.toggle_cell(cell)
        return cell

    def load_cells(self, cells: Iterable[str]) -> None:
        """Mark cells alive, keeping cells that are already alive.

        Raises:
            SimulationStateError: If the simulation is running or converged
            InvalidGeohash: If a geohash is malformed
            InvalidPrecision: If a geohash has a different precision
        """
        if not self.accepts_edits:
            raise SimulationStateError(f"Cannot edit cells while {self._state.value}")
        cells = frozenset(cells)
        for cell in cells:
            self._check_cell(cell)
        self._transition("edit")
        self._live_cells = self._live_cells | cells
        self._update_population_history()

    def place_pattern(self, pattern: Pattern, anchor: str) -> FrozenSet[str]:
        """Place a pattern with its (0, 0) offset on the anchor cell.

        Returns:
            The geohashes the pattern occupies
        """
        self._check_cell(anchor)
        cells = pattern.place(anchor)
        self.load_cells(cells)
        return cells

    def start(self) -> None:
        """Begin ticking.

        Raises:
            SimulationStateError: If there is nothing being edited
        """
        self._transition("start")
        self._finish_reason = None
        self._cycle_length = 0
        self._clear_cycle_detection()
        self._remember_state()

    def stop(self) -> None:
        """Pause a running simulation and return to editing."""
        self._transition("stop")
        self._finish_reason = "stopped"

    def reset(self) -> None:
        """Clear all cells and counters and return to editing."""
        self._state = SimulationState.EDITING
        self._live_cells = frozenset()
        self._generation = 0
        self._finish_reason = None
        self._cycle_length = 0
        self._population_history.clear()
        self._clear_cycle_detection()
        self._update_population_history()
        logger.debug("Simulation reset")

    def tick(self) -> bool:
        """Advance the simulation by one generation.

        Returns:
            True if the live set changed, False if the simulation converged

        Raises:
            SimulationStateError: If the simulation is not running
        """
        if self._state is not SimulationState.RUNNING:
            raise SimulationStateError(f"Cannot tick while {self._state.value}")

        next_cells = self.engine.step(self._live_cells)
        if next_cells == self._live_cells:
            self._converge("extinction" if not next_cells else "still_life")
            return False

        self._transition("tick")
        self._live_cells = next_cells
        self._generation += 1
        self._update_population_history()

        if self.config.detect_cycles:
            self._check_for_cycles()
        return True

    def run(
        self,
        max_generations: Optional[int] = None,
        on_tick: Optional[Callable[["SimulationController"], None]] = None,
        realtime: bool = True,
    ) -> Tuple[int, str]:
        """Tick at the configured rate until the simulation converges.

        Starts the simulation if it is being edited. Each tick runs to
        completion before the next one is scheduled.

        Args:
            max_generations: Stop once this generation is reached
                (defaults to config.max_generations, None for no limit)
            on_tick: Called after every tick with the controller
            realtime: Wait between ticks to honour the tick rate

        Returns:
            Tuple of (final_generation, reason) where reason is one of:
            'still_life', 'extinction', 'cycle', 'max_generations', 'stopped'
        """
        if self._state is not SimulationState.RUNNING:
            self.start()

        limit = max_generations if max_generations is not None else self.config.max_generations
        interval = self.config.tick_interval

        while self._state is SimulationState.RUNNING:
            if limit is not None and self._generation >= limit:
                self._finish_reason = "max_generations"
                break

            started = self._clock()
            self.tick()

            if on_tick is not None:
                on_tick(self)

            if realtime and self._state is SimulationState.RUNNING:
                remaining = interval - (self._clock() - started)
                if remaining > 0:
                    self._sleep(remaining)

        return self._generation, self._finish_reason

    def _converge(self, reason: str) -> None:
        self._transition("converge")
        self._finish_reason = reason
        logger.debug("Simulation converged at generation %d: %s", self._generation, reason)

    def _update_population_history(self) -> None:
        self._population_history.append(self.population)

    def _clear_cycle_detection(self) -> None:
        self._state_history.clear()
        self._seen_states.clear()

    def _remember_state(self) -> None:
        if not self.config.detect_cycles:
            return

        self._seen_states[self._live_cells] = self._generation
        self._state_history.append((self._live_cells, self._generation))

        # Forget the oldest generation to bound memory
        if len(self._state_history) > self.config.history_size:
            old_cells, old_generation = self._state_history.popleft()
            if self._seen_states.get(old_cells) == old_generation:
                del self._seen_states[old_cells]

    def _check_for_cycles(self) -> None:
        first_occurrence = self._seen_states.get(self._live_cells)
        if first_occurrence is None:
            self._remember_state()
            return

        self._cycle_length = self._generation - first_occurrence
        self._converge("cycle")

    def bounding_boxes(self) -> Dict[str, geohash.BoundingBox]:
        """Get the rectangle of every live cell, keyed by geohash."""
        return {cell: geohash.decode_bbox(cell) for cell in sorted(self._live_cells)}

    def get_population_change_rate(self, window_size: int = 10) -> float:
        """Average population change per generation over recent history."""
        recent_history = list(self._population_history)[-window_size:]
        if len(recent_history) < 2:
            return 0.0

        return float(np.mean(np.diff(recent_history)))

    def get_statistics(self) -> Dict[str, Any]:
        """Get simulation statistics.

        Returns:
            Dictionary with various statistics
        """
        stats: Dict[str, Any] = {
            "state": self._state.value,
            "generation": self._generation,
            "population": self.population,
            "population_change_rate": self.get_population_change_rate(),
            "population_history": list(self._population_history),
            "finish_reason": self._finish_reason,
            "cycle_length": self._cycle_length,
            "precision": self.config.precision,
            "tick_rate_hz": self.config.tick_rate_hz,
            "bounding_box": self.get_bounding_box(),
        }

        return stats

    def get_bounding_box(self) -> Optional[geohash.BoundingBox]:
        """Get the smallest box holding every live cell, or None when empty.

        Longitude wraps, so the box leaves out the widest run of empty
        longitude. Live cells on both sides of the antimeridian give a box
        with min_lng > max_lng.
        """
        boxes = list(self.bounding_boxes().values())
        if not boxes:
            return None

        cell_width = boxes[0].max_lng - boxes[0].min_lng
        west_edges = np.unique([box.min_lng for box in boxes])
        gaps = np.append(np.diff(west_edges), west_edges[0] + 360.0 - west_edges[-1])
        widest = int(np.argmax(gaps))

        if gaps[widest] <= cell_width:
            # Every column is live
            min_lng, max_lng = geohash.MIN_LNG, geohash.MAX_LNG
        else:
            min_lng = float(west_edges[(widest + 1) % west_edges.size])
            max_lng = float(west_edges[widest]) + cell_width

        return geohash.BoundingBox(
            min(box.min_lat for box in boxes),
            min_lng,
            max(box.max_lat for box in boxes),
            max_lng,
        )
