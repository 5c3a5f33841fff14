"""
Route time estimation and route choice.

Three interchangeable estimators predict how long a route will take:
- theoretical: sum of the current link travel times
- actual: implied by the average speed of vehicles now on the route
- historical: mean time of vehicles that already completed the route

A RouteChooser then picks a route for each launched vehicle, either at random
or selfishly from the estimates (the quickest, or weighted by 1/time).
"""

from enum import Enum
from typing import Any, List, Sequence, Type, TypeVar, Union

import numpy as np

from ..models.route import Route


class RoutingMode(Enum):
    """How drivers pick a route."""
    SELFISH = "selfish"  # Use travel time estimates
    RANDOM = "random"    # Ignore travel times


class SpeedMode(Enum):
    """Which travel time estimator selfish drivers consult."""
    THEORETICAL = "theoretical"
    ACTUAL = "actual"
    HISTORICAL = "historical"


class SelectionMethod(Enum):
    """How selfish drivers turn estimates into a choice."""
    MINIMUM = "minimum"
    PROBABILISTIC = "probabilistic"


E = TypeVar('E', bound=Enum)


def parse_enum(enum_cls: Type[E], value: Union[E, str]) -> E:
    """Accept an enum member or its string value."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"unknown {enum_cls.__name__} {value!r} (expected one of: {choices})")


# ==================== Estimators ====================

def theoretical_travel_time(route: Route, ctx: Any) -> float:
    """Sum of each link's current travel time. Ignores waiting at nodes."""
    return sum(link.travel_time for link in route.itinerary)


def actual_travel_time(route: Route, ctx: Any) -> float:
    """
    Average travel time implied by vehicles currently on the route.

    For each vehicle on the route that has moved, its average speed so far
    gives an implied time for the whole route; the implied times are averaged.
    Falls back to the free-flow time when no vehicle qualifies.
    """
    speed_limit = ctx.config.speed_limit
    total = 0.0
    n = 0
    for vehicle in ctx.fleet:
        if vehicle.route is route and vehicle.odometer > 0:
            speed = vehicle.odometer / (ctx.clock - vehicle.depart_time) * speed_limit
            total += route.route_length / speed
            n += 1
    if n == 0:
        return route.free_flow_time(speed_limit)
    return total / n


def historical_travel_time(route: Route, ctx: Any) -> float:
    """Mean time of completed trips on the route, free-flow time if none."""
    average = ctx.dashboard.average_time(route.label)
    if average is None:
        return route.free_flow_time(ctx.config.speed_limit)
    return average


ESTIMATORS = {
    SpeedMode.THEORETICAL: theoretical_travel_time,
    SpeedMode.ACTUAL: actual_travel_time,
    SpeedMode.HISTORICAL: historical_travel_time,
}


def estimate_travel_time(route: Route, ctx: Any) -> float:
    """Estimate a route's travel time with the configured estimator."""
    return ESTIMATORS[ctx.config.speed_mode](route, ctx)


def refresh_travel_times(routes: Sequence[Route], ctx: Any) -> List[float]:
    """Estimate every route and store the estimate on the route."""
    times = []
    for route in routes:
        route.travel_time = estimate_travel_time(route, ctx)
        times.append(route.travel_time)
    return times


# ==================== Choosers ====================

class RouteChooser:
    """
    Picks a route for each launched vehicle.

    Holds the simulation's random generator so that choices are reproducible
    for a seeded simulation and independent across simulations.
    """

    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    def random(self, routes: Sequence[Route]) -> Route:
        """Uniform choice, ignoring travel time."""
        return routes[int(self.rng.integers(len(routes)))]

    def minimum(self, routes: Sequence[Route], times: Sequence[float]) -> Route:
        """Quickest route; exact ties are broken uniformly at random."""
        best = min(times)
        tied = [route for route, t in zip(routes, times) if t == best]
        if len(tied) == 1:
            return tied[0]
        return tied[int(self.rng.integers(len(tied)))]

    def weights(self, times: Sequence[float]) -> np.ndarray:
        """Selection probabilities proportional to 1 / time."""
        inverse = 1.0 / np.asarray(times, dtype=float)
        return inverse / inverse.sum()

    def probabilistic(self, routes: Sequence[Route], times: Sequence[float]) -> Route:
        """
        Sample a route with probability proportional to 1 / time.

        Uses a single uniform draw against the cumulative weights. The weights
        are local; the routes' stored travel times are left untouched.
        """
        cumulative = np.cumsum(self.weights(times))
        r = self.rng.random()
        index = int(np.searchsorted(cumulative, r, side='left'))
        # Rounding can leave the last cumulative weight just under r
        return routes[min(index, len(routes) - 1)]

    def choose(self, routes: Sequence[Route], ctx: Any) -> Route:
        """
        Pick a route from the available routes.

        Args:
            routes: Routes currently open to traffic
            ctx: Simulation providing the configuration and estimator inputs

        Returns:
            The chosen route.
        """
        if not routes:
            raise ValueError("no route is open to traffic")

        config = ctx.config
        if config.routing_mode == RoutingMode.RANDOM:
            return self.random(routes)

        times = refresh_travel_times(routes, ctx)
        if config.selection_method == SelectionMethod.MINIMUM:
            return self.minimum(routes, times)
        return self.probabilistic(routes, times)
