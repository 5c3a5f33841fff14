"""
Simulation engine for the Braess road network.

Advances the network one discrete tick at a time:
- nodes dispatch their resident vehicle onto the next link
- links drive their vehicles forward and hand finished ones to nodes
- a new vehicle is launched from the idle pool when one is due
- the clock advances and termination is checked

All mutable state (clock, idle pool, statistics, random generator, network)
belongs to one Simulation instance; separate instances share nothing.
"""

from typing import Any, Callable, Dict, List, Optional, Union
from dataclasses import dataclass, fields, replace
from enum import Enum
import logging
import math
import os
import re

import numpy as np

from ..data.topology import BRAESS_TOPOLOGY, NetworkTopology
from ..models.ring_queue import RingQueue
from ..models.vehicle import Vehicle
from ..models.network import RoadNetwork, build_network, default_fleet_size
from .dashboard import Dashboard
from .routing import (
    RouteChooser, RoutingMode, SelectionMethod, SpeedMode, parse_enum
)
from .timing import LaunchTiming, interarrival

log = logging.getLogger(__name__)

MIN_LAUNCH_RATE = 0.001

# Optional sign and digits at the start of a launch limit entry
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class SimulationState(Enum):
    """Lifecycle states of the simulation."""
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"  # No more launches; vehicles drain out


def parse_max_cars(value: Union[int, float, str, None]) -> float:
    """
    Interpret a launch limit.

    Text is read up to the first non-digit, so "12abc" and "3.7" give 12 and
    3. Blank, non-numeric, zero or negative entries mean "no limit" and return
    math.inf rather than failing.
    """
    if value is None or isinstance(value, bool):
        return math.inf
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match is None:
            if value.strip():
                log.warning("Ignoring non-numeric launch limit %r; running unlimited", value)
            return math.inf
        value = int(match.group(1))
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return math.inf
    if value <= 0:
        return math.inf
    return int(value)


def clamp_launch_rate(rate: float) -> float:
    """Raise rates below MIN_LAUNCH_RATE (or NaN) to the floor, with a warning."""
    value = float(rate)
    if not value >= MIN_LAUNCH_RATE:
        log.warning("Launch rate %r raised to %s", rate, MIN_LAUNCH_RATE)
        return MIN_LAUNCH_RATE
    return value


def clip_congestion(coefficient: float) -> float:
    """Clip a congestion coefficient to [0, 1]; NaN becomes 0."""
    value = float(coefficient)
    clipped = float(np.clip(value, 0.0, 1.0)) if not math.isnan(value) else 0.0
    if clipped != value:
        log.warning("Congestion coefficient %r clipped to %s", coefficient, clipped)
    return clipped


def _parse_bool(text: str) -> bool:
    return text.strip().lower() in ('1', 'true', 'yes', 'on', 'open')


@dataclass
class SimulationConfig:
    """Configuration for simulation parameters."""
    speed_limit: float = 3  # Distance per tick in free-flowing traffic
    vehicle_length: float = 6  # Minimum gap between successive vehicles

    # Tunables, settable between ticks
    launch_rate: float = 0.55  # Mean launch attempts per tick
    congestion_coefficient: float = 0.55  # 0 = no slowdown, 1 = near standstill when full
    launch_timing: LaunchTiming = LaunchTiming.POISSON
    routing_mode: RoutingMode = RoutingMode.SELFISH
    speed_mode: SpeedMode = SpeedMode.THEORETICAL
    selection_method: SelectionMethod = SelectionMethod.MINIMUM
    max_cars: float = math.inf  # Launch limit; inf = unlimited
    bridge_open: bool = False

    seed: Optional[int] = None
    fleet_size: Optional[int] = None  # None = sized from the topology

    def __post_init__(self):
        self.launch_timing = parse_enum(LaunchTiming, self.launch_timing)
        self.routing_mode = parse_enum(RoutingMode, self.routing_mode)
        self.speed_mode = parse_enum(SpeedMode, self.speed_mode)
        self.selection_method = parse_enum(SelectionMethod, self.selection_method)
        self.max_cars = parse_max_cars(self.max_cars)
        self.launch_rate = clamp_launch_rate(self.launch_rate)
        self.congestion_coefficient = clip_congestion(self.congestion_coefficient)
        if self.speed_limit <= 0 or self.vehicle_length <= 0:
            raise ValueError("speed_limit and vehicle_length must be positive")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = value.value if isinstance(value, Enum) else value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationConfig':
        """Create from dictionary, ignoring unknown keys."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'SimulationConfig':
        """Create from BRAESS_* environment variables, defaults elsewhere."""
        environ = os.environ if environ is None else environ
        converters = {
            'launch_rate': float,
            'congestion_coefficient': float,
            'launch_timing': str,
            'routing_mode': str,
            'speed_mode': str,
            'selection_method': str,
            'max_cars': str,
            'bridge_open': _parse_bool,
            'seed': int,
        }
        data = {}
        for name, convert in converters.items():
            raw = environ.get(f"BRAESS_{name.upper()}")
            if raw is not None:
                data[name] = convert(raw)
        return cls.from_dict(data)


# Type aliases for callbacks
UpdateCallback = Callable[['Simulation'], None]
CompletionCallback = Callable[[Dashboard], None]


class Simulation:
    """
    Discrete-time microsimulation of the Braess network.

    The external animation layer calls step() at a fixed cadence; it must
    not start a new tick before the previous one returns. Tunables may be
    changed between ticks through the set_* methods.
    """

    def __init__(self, config: Optional[SimulationConfig] = None,
                 topology: NetworkTopology = BRAESS_TOPOLOGY):
        """
        Initialize the simulation.

        Args:
            config: Simulation configuration
            topology: Road network descriptor
        """
        # Private copy; the set_* methods mutate it
        self.config = replace(config) if config is not None else SimulationConfig()
        self.topology = topology
        self.rng = np.random.default_rng(self.config.seed)

        self.fleet_size = self.config.fleet_size or default_fleet_size(
            topology, self.config.vehicle_length)
        self.network: RoadNetwork = build_network(topology, self.fleet_size)
        self.network.set_bridge_open(self.config.bridge_open)

        # Every vehicle ever used; the idle pool starts with all of them
        self.fleet: List[Vehicle] = [Vehicle(serial=i) for i in range(self.fleet_size)]
        self.idle_pool: RingQueue = RingQueue(self.fleet_size)
        for vehicle in self.fleet:
            self.idle_pool.enqueue(vehicle)

        self.chooser = RouteChooser(self.rng)
        self.dashboard = Dashboard(
            labels=[route.label for route in self.network.get_routes()],
            speed_limit=self.config.speed_limit,
            quickest_trip=self.network.quickest_route_length() / self.config.speed_limit,
        )

        self._origin = self.network.origin
        self._schedule = [(node, self.network.inbound_links(node.id))
                          for node in self.network.service_order]

        # State
        self._state = SimulationState.STOPPED
        self.clock = 0.0  # Advances by speed_limit per tick
        self.ticks = 0
        self.next_departure = 0.0

        # Callbacks
        self._update_callback: Optional[UpdateCallback] = None
        self._completion_callbacks: List[CompletionCallback] = []

        self.network.refresh_speeds(self)

    # ==================== Properties ====================

    @property
    def state(self) -> SimulationState:
        """Get current simulation state."""
        return self._state

    @property
    def bridge_open(self) -> bool:
        return self.config.bridge_open

    def set_update_callback(self, callback: Optional[UpdateCallback]) -> None:
        """Set a callback invoked after every tick."""
        self._update_callback = callback

    def set_completion_callback(self, callback: CompletionCallback) -> None:
        """Add a callback invoked when the simulation reaches STOPPED on its own."""
        self._completion_callbacks.append(callback)

    # ==================== Lifecycle ====================

    def start(self) -> None:
        """Begin launching vehicles."""
        if self._state == SimulationState.STOPPED:
            self._state = SimulationState.RUNNING
            log.info("Simulation running (bridge %s)",
                     "open" if self.bridge_open else "closed")

    def stop(self) -> None:
        """Stop launching; vehicles already on the road drain out."""
        if self._state == SimulationState.RUNNING:
            self._state = SimulationState.STOPPING
            log.info("Simulation stopping at tick %d after %d departures",
                     self.ticks, self.dashboard.departures)

    def reset(self) -> None:
        """Clear the network, the clock and all statistics."""
        if self._state != SimulationState.STOPPED:
            log.info("Simulation reset while %s", self._state.value)
        self._state = SimulationState.STOPPED
        removed = self.network.evacuate(self)
        self.clock = 0.0
        self.ticks = 0
        self.next_departure = 0.0
        self.dashboard.reset()
        for route in self.network.get_routes():
            route.travel_time = 0.0
        log.info("Reset: %d vehicles returned to the idle pool", removed)

    def park(self, vehicle: Vehicle) -> None:
        """Reset a vehicle and return it to the idle pool."""
        vehicle.park()
        self.idle_pool.enqueue(vehicle)

    # ==================== Tick ====================

    def step(self) -> Dashboard:
        """
        Advance the simulation by exactly one tick.

        Returns:
            The dashboard after the tick
        """
        for node, links in self._schedule:
            # Random service order so a saturated node cannot starve one approach
            order = self.rng.permutation(len(links)) if len(links) > 1 else range(len(links))
            for i in order:
                node.dispatch(self)
                links[i].drive(self)
            if not links:
                node.dispatch(self)

        # Twice, to clear a waiting vehicle before trying a new launch
        self._origin.dispatch(self)
        self._origin.dispatch(self)
        self.launch_car()

        self.clock += self.config.speed_limit
        self.ticks += 1
        self._check_termination()

        if self._update_callback:
            self._update_callback(self)

        return self.dashboard

    def launch_car(self) -> Optional[Vehicle]:
        """
        Launch a vehicle from the idle pool if one is due.

        Returns:
            The launched vehicle, or None.
        """
        if not (self._origin.has_room()
                and self.clock >= self.next_departure
                and self._state == SimulationState.RUNNING
                and self.idle_pool):
            return None

        routes = self.network.available_routes()
        if not routes:
            return None

        vehicle = self.idle_pool.dequeue()
        vehicle.depart_time = self.clock
        vehicle.route = self.chooser.choose(routes, self)
        self._origin.accept(vehicle)
        self.dashboard.record_departure()
        self.next_departure = self.clock + self._interarrival()
        log.debug("Vehicle %d launched on %s at %.0f",
                  vehicle.serial, vehicle.route.label, self.clock)
        return vehicle

    def _interarrival(self) -> float:
        lam = self.config.launch_rate / self.config.speed_limit
        return interarrival(self.config.launch_timing, self.rng, lam)

    def _check_termination(self) -> None:
        if (self._state == SimulationState.STOPPING
                and len(self.idle_pool) == self.fleet_size):
            self._state = SimulationState.STOPPED
            log.info("Simulation stopped at tick %d: %d trips, mean %s ticks",
                     self.ticks, self.dashboard.arrivals,
                     _fmt(self.dashboard.average_time()))
            for callback in self._completion_callbacks:
                callback(self.dashboard)
        elif (self._state == SimulationState.RUNNING
                and self.dashboard.departures >= self.config.max_cars):
            self._state = SimulationState.STOPPING
            log.info("Launch limit %s reached at tick %d; draining",
                     self.config.max_cars, self.ticks)

    def run(self, max_ticks: Optional[int] = None) -> Dashboard:
        """
        Run headless until the simulation stops or `max_ticks` elapse.

        Args:
            max_ticks: Tick budget; required when no launch limit is set

        Returns:
            Final dashboard
        """
        if max_ticks is None and math.isinf(self.config.max_cars):
            raise ValueError("run() needs max_ticks when max_cars is unlimited")

        self.start()
        ticks = 0
        while self._state != SimulationState.STOPPED:
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.step()
            ticks += 1
        return self.dashboard

    def drain(self, max_ticks: int = 100_000) -> bool:
        """
        Stop launching and step until every vehicle is back in the pool.

        Returns:
            True if the network drained within `max_ticks`.
        """
        self.stop()
        for _ in range(max_ticks):
            if self._state == SimulationState.STOPPED:
                break
            self.step()
        return self._state == SimulationState.STOPPED

    # ==================== Tunables ====================

    def set_launch_rate(self, rate: float) -> None:
        """Set the launch rate (> 0) and reschedule the next departure."""
        self.config.launch_rate = clamp_launch_rate(rate)
        self.next_departure = self.clock + self._interarrival()

    def set_congestion_coefficient(self, coefficient: float) -> None:
        """Set the congestion coefficient, clipped to [0, 1]."""
        self.config.congestion_coefficient = clip_congestion(coefficient)
        self.network.refresh_speeds(self)

    def set_launch_timing(self, timing: Union[LaunchTiming, str]) -> None:
        self.config.launch_timing = parse_enum(LaunchTiming, timing)

    def set_routing_mode(self, mode: Union[RoutingMode, str]) -> None:
        self.config.routing_mode = parse_enum(RoutingMode, mode)

    def set_speed_mode(self, mode: Union[SpeedMode, str]) -> None:
        self.config.speed_mode = parse_enum(SpeedMode, mode)

    def set_selection_method(self, method: Union[SelectionMethod, str]) -> None:
        self.config.selection_method = parse_enum(SelectionMethod, method)

    def set_max_cars(self, value: Union[int, float, str, None]) -> None:
        """Set the launch limit; blank or invalid entries mean unlimited."""
        self.config.max_cars = parse_max_cars(value)

    def set_bridge_open(self, is_open: bool) -> None:
        """Open or close both bridge links."""
        self.config.bridge_open = bool(is_open)
        self.network.set_bridge_open(self.config.bridge_open)
        log.info("Bridge %s", "opened" if self.config.bridge_open else "closed")

    def toggle_bridge(self) -> bool:
        """Flip the bridge; returns the new open state."""
        self.set_bridge_open(not self.config.bridge_open)
        return self.config.bridge_open

    # ==================== Inspection ====================

    def vehicle_census(self) -> Dict[str, int]:
        """Where every vehicle is; the parts always sum to the fleet size."""
        idle = len(self.idle_pool)
        on_links = self.network.vehicles_on_links()
        at_nodes = self.network.vehicles_at_nodes()
        return {
            'idle': idle,
            'on_links': on_links,
            'at_nodes': at_nodes,
            'total': idle + on_links + at_nodes,
        }

    def snapshot(self) -> Dict[str, Any]:
        """Get a snapshot of the current state for rendering."""
        vehicles = []
        for link in self.network.get_links():
            for vehicle in link.vehicles():
                vehicles.append({
                    'serial': vehicle.serial,
                    'link': link.id,
                    'node': None,
                    'progress': vehicle.progress,
                    'color': vehicle.color,
                    'visible': vehicle.is_dispatched,
                })
        for node in self.network.get_nodes():
            if node.car is not None:
                vehicles.append({
                    'serial': node.car.serial,
                    'link': None,
                    'node': node.id,
                    'progress': 0.0,
                    'color': node.car.color,
                    'visible': node.car.is_dispatched,
                })

        return {
            'tick': self.ticks,
            'clock': self.clock,
            'state': self._state.value,
            'vehicles': vehicles,
            'network': self.network.to_dict(),
            'dashboard': self.dashboard.to_dict(),
            'config': self.config.to_dict(),
        }


def _fmt(value: Optional[float]) -> str:
    return "--" if value is None else f"{value:.1f}"
