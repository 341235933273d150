# Licensed under the PolyForm Noncommercial License 1.0.0
"""
Command-line interface for the ascent simulator.
"""

import argparse
import logging

from .config import load_config
from .core import AscentSimulator
from .plotting import plot_results


def main(argv=None):
    """Fly the configured vehicle and print a mission summary."""
    parser = argparse.ArgumentParser(description="Launch vehicle ascent guidance simulator")
    parser.add_argument("--config", help="YAML file with rocket/guidance sections")
    parser.add_argument("--duration", type=float, default=3000.0, help="Simulated seconds to fly")
    parser.add_argument("--time-warp", type=float, default=10.0, help="Time acceleration factor")
    parser.add_argument("--plot", action="store_true", help="Show result plots")
    parser.add_argument("--save", help="Save result plots to this path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    rocket, guidance = load_config(args.config)

    print("Orbital Ascent Simulator")
    print("========================")
    print(f"Target orbit: {guidance.target_altitude / 1000:.0f} km")

    simulator = AscentSimulator(rocket, guidance)
    results = simulator.run(args.duration, frame_dt=0.1, time_warp=args.time_warp)

    if args.plot or args.save:
        plot_results(results, show=args.plot, save_path=args.save)

    orbit = simulator.orbit
    print(f"\nSimulation {'complete' if results['success'] else 'FAILED'}")
    print(f"Elapsed time: {simulator.state.time:.1f} s")
    print(f"Peak altitude: {results['altitude'].max() / 1000:.1f} km")
    print(f"Final speed: {simulator.state.speed / 1000:.2f} km/s")
    print(f"Apoapsis: {orbit.apoapsis_altitude / 1000:.1f} km")
    print(f"Periapsis: {orbit.periapsis_altitude / 1000:.1f} km")
    print(f"Eccentricity: {orbit.eccentricity:.4f}")
    print(f"Final mass: {results['m'][-1] / 1000:.1f} tons")
    print("\nEvents:")
    for event in results['events']:
        print(f"  T+{event.time:8.1f}s  {event.message}")


if __name__ == "__main__":
    main()
