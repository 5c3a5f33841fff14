"""
Route model: a named itinerary from the origin to the destination.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .link import Link


@dataclass(eq=False)
class Route:
    """An ordered sequence of links plus per-node directions.

    `directions` maps a node id to the link a vehicle on this route takes when
    it is at that node (None where the route does not pass). `travel_time`
    holds the most recent estimate in ticks and is only ever written with a
    real time estimate.
    """
    label: str
    itinerary: List[Link] = field(repr=False)
    color: str = "#000000"
    directions: Dict[str, Optional[Link]] = field(default_factory=dict, repr=False)
    route_length: int = 0
    travel_time: float = 0.0

    def __post_init__(self):
        if not self.itinerary:
            raise ValueError(f"route {self.label!r} has an empty itinerary")
        if not self.directions:
            self.directions = {link.origin.id: link for link in self.itinerary}
        self.route_length = self.calc_route_length()

    def calc_route_length(self) -> int:
        """Sum of the lengths of the links in the itinerary."""
        return sum(link.length for link in self.itinerary)

    @property
    def link_ids(self) -> List[str]:
        return [link.id for link in self.itinerary]

    @property
    def available(self) -> bool:
        """A route can be chosen only while all its links are open."""
        return all(link.open_to_traffic for link in self.itinerary)

    @property
    def uses_bridge(self) -> bool:
        return any(link.is_bridge for link in self.itinerary)

    def free_flow_time(self, speed_limit: float) -> float:
        """Travel time with every link at the speed limit."""
        return self.route_length / speed_limit

    def next_link(self, node_id: str) -> Optional[Link]:
        return self.directions.get(node_id)
