#!/usr/bin/env python3
"""
Braess - Road Traffic Simulator
===============================

Discrete-time simulation of cars on a small road network for exploring
Braess's paradox: opening a bridge between two routes can make the average
trip slower when every driver picks the route that looks quickest.

Usage:
    python main.py                      # Run with default settings
    python main.py --bridge --ticks 5000
    python main.py --compare --rate 0.12 --congestion 1.0 --timing periodic
    python main.py --test               # Run the test suite
    python main.py --check              # Check dependencies

Requirements:
    - Python 3.9+
    - networkx, numpy
    - pytest (for tests)
"""

import sys
import argparse
import logging
from dataclasses import replace


def build_config(args):
    """Build a SimulationConfig from parsed arguments and BRAESS_* variables."""
    from braess.simulation.engine import SimulationConfig

    config = SimulationConfig.from_env()
    overrides = {
        'launch_rate': args.rate,
        'congestion_coefficient': args.congestion,
        'launch_timing': args.timing,
        'routing_mode': args.routing,
        'speed_mode': args.speed_mode,
        'selection_method': args.selection,
        'max_cars': args.max_cars,
        'seed': args.seed,
    }
    data = config.to_dict()
    data.update({k: v for k, v in overrides.items() if v is not None})
    if args.bridge:
        data['bridge_open'] = True
    return SimulationConfig.from_dict(data)


def run_once(config, ticks: int):
    """Run for `ticks`, drain the network and return the simulation."""
    from braess.simulation.engine import Simulation

    sim = Simulation(config)
    sim.run(max_ticks=ticks)
    if not sim.drain():
        logging.getLogger("main").warning("Network did not drain completely")
    return sim


def print_dashboard(sim, title: str) -> None:
    """Print per-route counts and normalized times."""
    print(f"\n{title}")
    print("=" * 50)
    print(f"  Ticks: {sim.ticks}   Departures: {sim.dashboard.departures}")
    print(f"  {'Route':8} {'Trips':>8} {'Time':>8} {'Ticks':>10}")
    for label, readout in sim.dashboard.readouts().items():
        average = sim.dashboard.average_time(label)
        ticks = "--" if average is None else f"{average:.1f}"
        print(f"  {label:8} {readout['count']:>8} {readout['time']:>8} {ticks:>10}")


def run_cli(args):
    """Run a headless simulation and print the statistics."""
    config = build_config(args)
    print("Braess - Command Line Mode")
    print("=" * 50)
    print(f"  Launch rate: {config.launch_rate}")
    print(f"  Congestion:  {config.congestion_coefficient}")
    print(f"  Routing:     {config.routing_mode.value} / "
          f"{config.selection_method.value} / {config.speed_mode.value}")
    print(f"  Timing:      {config.launch_timing.value}")

    if args.compare:
        closed = replace(config, bridge_open=False)
        opened = replace(config, bridge_open=True)
        sim_closed = run_once(closed, args.ticks)
        sim_open = run_once(opened, args.ticks)
        print_dashboard(sim_closed, "Bridge closed")
        print_dashboard(sim_open, "Bridge open")

        closed_avg = sim_closed.dashboard.average_time()
        open_avg = sim_open.dashboard.average_time()
        if closed_avg is not None and open_avg is not None:
            verdict = "slower" if open_avg > closed_avg else "not slower"
            print(f"\nOpening the bridge: {closed_avg:.1f} -> {open_avg:.1f} ticks ({verdict})")
    else:
        sim = run_once(config, args.ticks)
        print_dashboard(sim, "Bridge open" if config.bridge_open else "Bridge closed")


def run_tests():
    """
    Run the unit tests with pytest.

    Runs every test in the tests/ directory.
    """
    print("Running tests...")

    import subprocess
    result = subprocess.run(
        [sys.executable, "-m", "pytest", "tests/", "-v", "--tb=short"],
        cwd=sys.path[0] or "."
    )
    sys.exit(result.returncode)


def check_dependencies():
    """
    Check the required dependencies.

    Reports whether each required and optional library is installed.
    """
    print("Dependency check")
    print("=" * 50)

    dependencies = [
        ("networkx", "networkx"),
        ("numpy", "numpy"),
        ("pytest", "pytest"),
    ]

    all_ok = True
    for name, package in dependencies:
        try:
            __import__(package)
            status = "OK"
        except ImportError:
            status = "MISSING"
            all_ok = False

        print(f"  {name:15} [{status}]")

    print()
    if all_ok:
        print("All dependencies are installed!")
    else:
        print("Some dependencies are missing. Run:")
        print("  pip install -e .[test]")

    return all_ok


def main():
    """
    Main entry point.

    Parses the command line and starts the selected mode:
    - Default: headless simulation
    - --compare: bridge closed vs bridge open
    - --test: run tests
    - --check: check dependencies
    """
    parser = argparse.ArgumentParser(
        description="Braess - Road Traffic Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --ticks 3000
  python main.py --bridge --routing random
  python main.py --compare --rate 0.12 --congestion 1.0 --timing periodic
  python main.py --check
        """
    )

    parser.add_argument("--ticks", type=int, default=3000,
                        help="Ticks of launching before the network drains")
    parser.add_argument("--rate", type=float, help="Launch rate (cars per tick)")
    parser.add_argument("--congestion", type=float, help="Congestion coefficient 0..1")
    parser.add_argument("--bridge", action="store_true", help="Open the bridge")
    parser.add_argument("--routing", choices=["selfish", "random"])
    parser.add_argument("--speed-mode", dest="speed_mode",
                        choices=["theoretical", "actual", "historical"])
    parser.add_argument("--selection", choices=["minimum", "probabilistic"])
    parser.add_argument("--timing", choices=["poisson", "uniform", "periodic"])
    parser.add_argument("--max-cars", dest="max_cars",
                        help="Stop launching after this many cars (blank = unlimited)")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--compare", action="store_true",
                        help="Run with the bridge closed and then open")
    parser.add_argument("--log-file", dest="log_file", help="Also log to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--test", action="store_true", help="Run tests")
    parser.add_argument("--check", action="store_true", help="Check dependencies")

    args = parser.parse_args()

    if args.check:
        check_dependencies()
        return
    if args.test:
        run_tests()
        return

    from braess.logging_setup import setup_logging
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)
    run_cli(args)


if __name__ == "__main__":
    main()
