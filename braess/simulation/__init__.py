"""
Simulation module for the Braess network.

Provides:
- Simulation: the tick scheduler and owner of all mutable state
- RouteChooser and the travel time estimators
- Dashboard: trip statistics
- Inter-arrival distributions for launches
"""

from .engine import (
    Simulation,
    SimulationState,
    SimulationConfig,
    parse_max_cars,
    clamp_launch_rate,
    clip_congestion
)

from .routing import (
    RouteChooser,
    RoutingMode,
    SpeedMode,
    SelectionMethod,
    estimate_travel_time,
    theoretical_travel_time,
    actual_travel_time,
    historical_travel_time,
    refresh_travel_times
)

from .dashboard import Dashboard, TOTAL

from .timing import LaunchTiming, interarrival, poisson, uniform, periodic

__all__ = [
    # Engine
    'Simulation',
    'SimulationState',
    'SimulationConfig',
    'parse_max_cars',
    'clamp_launch_rate',
    'clip_congestion',
    # Routing
    'RouteChooser',
    'RoutingMode',
    'SpeedMode',
    'SelectionMethod',
    'estimate_travel_time',
    'theoretical_travel_time',
    'actual_travel_time',
    'historical_travel_time',
    'refresh_travel_times',
    # Statistics
    'Dashboard',
    'TOTAL',
    # Timing
    'LaunchTiming',
    'interarrival',
    'poisson',
    'uniform',
    'periodic',
]
