"""
Trip statistics for the Braess simulation.

Counts departures and completed trips, and accumulates travel times per route
label and in total. Times are in ticks; the normalized time divides the
average by the quickest possible trip.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..models.vehicle import Vehicle

TOTAL = "total"


@dataclass
class Dashboard:
    """Per-route and total trip statistics."""
    labels: List[str]
    speed_limit: float
    quickest_trip: float  # Ticks for the shortest route at the speed limit
    departures: int = 0
    counts: Dict[str, int] = field(default_factory=dict)
    times: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        self.reset()

    def reset(self) -> None:
        """Zero every counter."""
        self.departures = 0
        self.counts = {label: 0 for label in [*self.labels, TOTAL]}
        self.times = {label: 0.0 for label in [*self.labels, TOTAL]}

    @property
    def arrivals(self) -> int:
        return self.counts[TOTAL]

    def record_departure(self) -> None:
        self.departures += 1

    def record_arrival(self, vehicle: Vehicle, clock: float) -> float:
        """
        Record a completed trip.

        Args:
            vehicle: Vehicle that just reached the destination
            clock: Current clock reading

        Returns:
            Elapsed travel time in ticks.
        """
        elapsed = (clock - vehicle.depart_time) / self.speed_limit
        label = vehicle.route.label
        self.counts[label] += 1
        self.counts[TOTAL] += 1
        self.times[label] += elapsed
        self.times[TOTAL] += elapsed
        return elapsed

    def average_time(self, label: str = TOTAL) -> Optional[float]:
        """Mean travel time in ticks, None when no trip has completed."""
        if self.counts[label] == 0:
            return None
        return self.times[label] / self.counts[label]

    def normalized_time(self, label: str = TOTAL) -> Optional[float]:
        """Mean travel time divided by the quickest possible trip."""
        average = self.average_time(label)
        if average is None:
            return None
        return average / self.quickest_trip

    def combined_average(self, labels: Iterable[str]) -> Optional[float]:
        """Mean travel time over the trips of several routes together."""
        labels = list(labels)
        count = sum(self.counts[label] for label in labels)
        if count == 0:
            return None
        return sum(self.times[label] for label in labels) / count

    def readouts(self) -> Dict[str, Dict[str, str]]:
        """Display strings: counts, and normalized times to three decimals."""
        result = {}
        for label in self.counts:
            normalized = self.normalized_time(label)
            result[label] = {
                'count': str(self.counts[label]),
                'time': "--" if normalized is None else f"{normalized:.3f}",
            }
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'departures': self.departures,
            'arrivals': self.arrivals,
            'counts': dict(self.counts),
            'average_times': {label: self.average_time(label) for label in self.counts},
            'normalized_times': {label: self.normalized_time(label) for label in self.counts},
            'quickest_trip': self.quickest_trip,
        }
