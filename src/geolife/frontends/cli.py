"""Command-line interface for the geohash Game of Life."""

import argparse
import json
import logging
import sys
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core import geohash
from ..core.config import SimulationConfig
from ..core.controller import SimulationController
from ..core.engine import BACKENDS
from ..core.errors import GeolifeError, InvalidCoordinate
from ..core.patterns import PatternLibrary


def parse_point(value: str) -> Tuple[float, float]:
    """Parse a 'LAT,LNG' string.

    Raises:
        argparse.ArgumentTypeError: If the value is not two comma-separated numbers
    """
    parts = value.split(",")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Invalid point '{value}'. Expected 'LAT,LNG'")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid point '{value}'. Expected numbers") from None


class CLIGeoLife:
    """Command-line interface for running geohash Game of Life simulations."""

    def __init__(self) -> None:
        self.pattern_library = PatternLibrary()

    def resolve_anchor(self, anchor: str, precision: int) -> str:
        """Turn an anchor given as a geohash or 'LAT,LNG' into a geohash.

        Raises:
            InvalidCoordinate: If a 'LAT,LNG' anchor is malformed or out of range
        """
        if "," in anchor:
            try:
                lat, lng = parse_point(anchor)
            except argparse.ArgumentTypeError as e:
                raise InvalidCoordinate(str(e)) from e
            return geohash.encode(lat, lng, precision)
        return anchor

    def run_simulation(
        self,
        config: SimulationConfig,
        cells: Sequence[str] = (),
        points: Sequence[Tuple[float, float]] = (),
        pattern: Optional[str] = None,
        anchor: Optional[str] = None,
        realtime: bool = False,
        verbose: bool = False,
        show_cells: bool = False,
    ) -> Tuple[int, str, Dict[str, Any], SimulationController]:
        """Run a simulation until it converges or hits the generation limit.

        Args:
            config: Simulation configuration
            cells: Initial live geohashes
            points: Initial live coordinates as (lat, lng)
            pattern: Optional pattern name to place at the anchor
            anchor: Geohash or 'LAT,LNG' receiving the pattern
            realtime: Tick at config.tick_rate_hz instead of as fast as possible
            verbose: Print progress updates
            show_cells: Print initial and final live cells

        Returns:
            Tuple of (final_generation, finish_reason, statistics, controller)

        Raises:
            ValueError: If the pattern is unknown or has no anchor
            GeolifeError: If a cell, point or anchor is invalid
        """
        controller = SimulationController(config)

        if cells:
            controller.load_cells(cells)
        for lat, lng in points:
            cell = controller.toggle_at(lat, lng)
            if verbose:
                print(f"Toggled {cell} at ({lat}, {lng})")

        if pattern:
            loaded_pattern = self.pattern_library.get_pattern(pattern)
            if loaded_pattern is None:
                raise ValueError(f"Pattern '{pattern}' not found")
            if anchor is None:
                raise ValueError("A pattern needs an --anchor")
            anchor_cell = self.resolve_anchor(anchor, config.precision)
            if verbose:
                print(f"Placing pattern '{pattern}' at {anchor_cell}")
            controller.place_pattern(loaded_pattern, anchor_cell)

        initial_population = controller.population
        if verbose:
            print(f"Initial population: {initial_population} cells (precision {config.precision})")

        if show_cells:
            print("\nInitial cells:")
            print(self._format_cells(controller))

        start_time = time.time()
        on_tick = self._print_progress if verbose else None
        final_generation, reason = controller.run(on_tick=on_tick, realtime=realtime)
        duration = time.time() - start_time

        stats = controller.get_statistics()
        stats["duration_seconds"] = duration
        stats["generations_per_second"] = final_generation / duration if duration > 0 else 0
        stats["initial_population"] = initial_population

        if show_cells:
            print(f"\nFinal cells (generation {final_generation}):")
            print(self._format_cells(controller))

        return final_generation, reason, stats, controller

    @staticmethod
    def _print_progress(controller: SimulationController) -> None:
        if controller.generation % 100 == 0:
            print(f"Generation {controller.generation}: population {controller.population}")

    @staticmethod
    def _format_cells(controller: SimulationController, max_cells: int = 50) -> str:
        boxes = controller.bounding_boxes()
        if not boxes:
            return "  (no live cells)"

        lines = []
        for cell, box in list(boxes.items())[:max_cells]:
            lat, lng = box.center
            lines.append(f"  {cell}  center ({lat:.5f}, {lng:.5f})")
        if len(boxes) > max_cells:
            lines.append(f"  ... and {len(boxes) - max_cells} more")
        return "\n".join(lines)

    def list_patterns(self) -> None:
        """Print available patterns grouped by category."""
        print("Available patterns:")
        for category, names in self.pattern_library.get_patterns_by_category().items():
            print(f"\n{category}:")
            for name in names:
                pattern = self.pattern_library.get_pattern(name)
                width, height = pattern.get_size()
                print(f"  {name:<24} {width}x{height}, {pattern.population} cells - {pattern.description}")

    @staticmethod
    def show_neighbors(cell: str) -> None:
        """Print the 8 neighbours of a geohash."""
        print(f"Neighbors of {cell}:")
        for direction, neighbor in geohash.neighbors(cell).items():
            print(f"  {direction:<2} {neighbor}")


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Run Conway's Game of Life on geohash cells from the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Blinker anchored on cell u2 at precision 2
  geolife-cli --precision 2 --pattern Blinker --anchor u2

  # Glider anchored on Vienna, printing cells
  geolife-cli --precision 5 --pattern Glider --anchor 48.196,16.357 --show-cells

  # Toggle cells by coordinate and tick at 5 generations per second
  geolife-cli --point 48.2,16.3 --point 48.2,27.0 --point 48.2,38.0 --realtime --fps 5

  # Stop oscillators by remembering recent generations
  geolife-cli --pattern Toad --anchor u2ed --precision 4 --detect-cycles

  # Show neighbours of a geohash
  geolife-cli --neighbors u2edk

  # List available patterns
  geolife-cli --list-patterns
        """,
    )

    # Grid configuration
    parser.add_argument(
        "-P",
        "--precision",
        type=int,
        default=2,
        help="Geohash length of every cell (default: 2)",
    )

    # Initial cells
    parser.add_argument(
        "-c",
        "--cell",
        action="append",
        default=[],
        metavar="GEOHASH",
        help="Initial live cell (repeatable)",
    )

    parser.add_argument(
        "--point",
        action="append",
        default=[],
        type=parse_point,
        metavar="LAT,LNG",
        help="Toggle the cell containing a coordinate (repeatable)",
    )

    parser.add_argument("--pattern", type=str, help="Place a named pattern")

    parser.add_argument(
        "--anchor",
        type=str,
        metavar="GEOHASH|LAT,LNG",
        help="Cell receiving the pattern's top-left corner",
    )

    # Simulation configuration
    parser.add_argument(
        "-m",
        "--max-generations",
        type=int,
        default=1000,
        help="Maximum generations to simulate (default: 1000)",
    )

    parser.add_argument(
        "--fps",
        type=float,
        default=5.0,
        help="Generations per second with --realtime (default: 5)",
    )

    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Tick at --fps instead of as fast as possible",
    )

    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default="auto",
        help="Neighbour counting backend (default: auto)",
    )

    parser.add_argument(
        "--detect-cycles",
        action="store_true",
        help="Stop when any earlier generation repeats, not only on still lifes",
    )

    # Output configuration
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print detailed progress information",
    )

    parser.add_argument(
        "-s",
        "--show-cells",
        action="store_true",
        help="Display initial and final live cells",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the final live cells and their bounding boxes as JSON",
    )

    # Utility commands
    parser.add_argument("--list-patterns", action="store_true", help="List available patterns and exit")

    parser.add_argument("--neighbors", metavar="GEOHASH", help="Print the neighbours of a geohash and exit")

    return parser


def format_finish_reason(reason: str, stats: dict) -> str:
    """Format the simulation finish reason for display.

    Args:
        reason: Finish reason from SimulationController.run
        stats: Statistics dictionary

    Returns:
        Formatted reason string
    """
    if reason == "extinction":
        return "Extinction - all cells died"
    elif reason == "still_life":
        return "Converged - the live cells no longer change"
    elif reason == "cycle":
        return f"Cycle detected - length {stats.get('cycle_length', 0)}"
    elif reason == "max_generations":
        return f"Maximum generations reached ({stats.get('generation', 0)})"
    elif reason == "stopped":
        return "Stopped before converging"
    else:
        return f"Unknown reason: {reason}"


def print_results(final_generation: int, reason: str, stats: dict, verbose: bool) -> None:
    """Print simulation results.

    Args:
        final_generation: Final generation number
        reason: Finish reason
        stats: Statistics dictionary
        verbose: Whether to show detailed statistics
    """
    print(f"\nSimulation completed after {final_generation} generations")
    print(f"Finish reason: {format_finish_reason(reason, stats)}")

    if verbose:
        print("\nDetailed Statistics:")
        print(f"  Precision: {stats['precision']}")
        print(f"  Initial population: {stats['initial_population']}")
        print(f"  Final population: {stats['population']}")
        print(f"  Population change rate: {stats['population_change_rate']:.2f}")
        if "duration_seconds" in stats:
            print(f"  Duration: {stats['duration_seconds']:.3f} seconds")
            print(f"  Speed: {stats['generations_per_second']:.0f} generations/second")

        bbox = stats["bounding_box"]
        if bbox:
            print(
                f"  Bounding box: ({bbox.min_lat:.5f}, {bbox.min_lng:.5f}) "
                f"to ({bbox.max_lat:.5f}, {bbox.max_lng:.5f})"
            )
    else:
        print(
            "Population: {} -> {}, "
            "Duration: {:.3f}s, "
            "Speed: {:.0f} gen/s".format(
                stats["initial_population"],
                stats["population"],
                stats.get("duration_seconds", 0),
                stats.get("generations_per_second", 0),
            )
        )


def format_json(final_generation: int, reason: str, controller: SimulationController) -> str:
    """Serialise the final live set with bounding boxes for a renderer."""
    return json.dumps(
        {
            "generation": final_generation,
            "reason": reason,
            "precision": controller.config.precision,
            "cells": [
                {"geohash": cell, "bbox": list(box)} for cell, box in controller.bounding_boxes().items()
            ],
        },
        indent=2,
    )


def validate_args(args: argparse.Namespace) -> bool:
    """Validate command-line arguments.

    Args:
        args: Parsed arguments

    Returns:
        True if arguments are valid
    """
    errors = []

    if args.precision <= 0:
        errors.append("Precision must be positive")

    if args.max_generations <= 0:
        errors.append("Max generations must be positive")

    if args.fps <= 0:
        errors.append("FPS must be positive")

    if args.pattern and not args.anchor:
        errors.append("--pattern requires --anchor")

    if not (args.cell or args.point or args.pattern):
        errors.append("Give at least one --cell, --point or --pattern")

    if errors:
        print("Error: Invalid arguments:")
        for error in errors:
            print(f"  - {error}")
        return False

    return True


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI interface.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    cli = CLIGeoLife()

    # Handle special commands
    if args.list_patterns:
        cli.list_patterns()
        return 0

    try:
        if args.neighbors:
            cli.show_neighbors(args.neighbors)
            return 0

        if not validate_args(args):
            return 1

        config = SimulationConfig(
            precision=args.precision,
            tick_rate_hz=args.fps,
            backend=args.backend,
            detect_cycles=args.detect_cycles,
            max_generations=args.max_generations,
        )

        final_generation, reason, stats, controller = cli.run_simulation(
            config,
            cells=args.cell,
            points=args.point,
            pattern=args.pattern,
            anchor=args.anchor,
            realtime=args.realtime,
            verbose=args.verbose and not args.json,
            show_cells=args.show_cells and not args.json,
        )

        if args.json:
            print(format_json(final_generation, reason, controller))
        else:
            print_results(final_generation, reason, stats, args.verbose)

        return 0

    except KeyboardInterrupt:
        print("\nSimulation interrupted by user")
        return 1
    except (GeolifeError, ValueError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
