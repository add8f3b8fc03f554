#!/usr/bin/env python3
"""
Example usage of the geolife package.
"""

from geolife import PatternLibrary, SimulationConfig, SimulationController
from geolife.core import geohash


def main():
    """Demonstrate programmatic usage of the geolife package."""
    # Create a controller for precision-5 cells (about 5 km across)
    config = SimulationConfig(precision=5, detect_cycles=True)
    controller = SimulationController(config)

    # Load a pattern
    library = PatternLibrary()
    glider = library.get_pattern("Glider")

    if glider:
        # Place the glider with its top-left corner over Vienna
        anchor = geohash.encode(48.2, 16.37, config.precision)
        controller.place_pattern(glider, anchor)

        print("Initial cells:")
        print(sorted(controller.live_cells))
        print(f"Population: {controller.population}")
        print()

        # Run simulation for 10 generations
        controller.start()
        for _ in range(10):
            if not controller.tick():
                print(f"Converged: {controller.finish_reason}")
                break

            print(f"Generation {controller.generation}:")
            print(sorted(controller.live_cells))
            print(f"Population: {controller.population}")
            print()

    # Show the rectangles a map would draw
    print("Final cells:")
    for cell, box in controller.bounding_boxes().items():
        print(f"  {cell}: {box.to_polygon()}")

    # Show statistics
    stats = controller.get_statistics()
    print("Final statistics:")
    for key, value in stats.items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
