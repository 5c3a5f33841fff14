r"""
Network topology descriptors.

A topology describes nodes (with drawing positions), links (endpoints,
length, kind) and optionally the named routes. The simulation builds its
network from a descriptor; a renderer can read the same descriptor to lay out
the roads.

The reference instance is the classic Braess network:

  orig ----- a (narrow) ----> south ------- B (wide) ------> dest
    \                         |   ^                           ^
     \                    sn  v   |  ns                       |
      +----- A (wide) ----> north ------- b (narrow) --------+

The narrow roads are 271 long, the wide roads 499 and each bridge link 40:
1620 in all, and the quickest route (a, bridge, b) is 582.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import math


@dataclass(frozen=True)
class NodeSpec:
    """Node descriptor."""
    id: str
    x: float
    y: float
    role: str = "junction"  # origin, junction, destination


@dataclass(frozen=True)
class LinkSpec:
    """Link descriptor. Length defaults to the straight-line distance."""
    id: str
    source: str
    target: str
    length: Optional[float] = None
    congestible: bool = False
    bridge: bool = False


@dataclass(frozen=True)
class RouteSpec:
    """Route descriptor: a label, a paint color and the link ids in order."""
    label: str
    links: List[str]
    color: str = "#000000"


@dataclass(frozen=True)
class NetworkTopology:
    """Complete description of a road network."""
    nodes: List[NodeSpec]
    links: List[LinkSpec]
    routes: List[RouteSpec] = field(default_factory=list)
    # Non-origin nodes in the order the scheduler services them each tick
    service_order: List[str] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[NodeSpec]:
        for spec in self.nodes:
            if spec.id == node_id:
                return spec
        return None

    def link_length(self, spec: LinkSpec) -> int:
        """Resolved length of a link, rounded to whole units."""
        if spec.length is not None:
            return int(round(spec.length))
        source = self.node(spec.source)
        target = self.node(spec.target)
        if source is None or target is None:
            raise ValueError(f"link {spec.id!r} references an unknown node")
        return int(round(math.hypot(target.x - source.x, target.y - source.y)))

    def total_length(self) -> int:
        return sum(self.link_length(spec) for spec in self.links)


# Route paint colors
ROUTE_COLORS: Dict[str, str] = {
    "Ab": "#cb0130",
    "aB": "#1010a5",
    "AB": "#ffc526",
    "ab": "#4b9b55",
}


BRAESS_TOPOLOGY = NetworkTopology(
    nodes=[
        NodeSpec("orig", 20, 60, role="origin"),
        NodeSpec("south", 291, 60),
        NodeSpec("north", 291, 100),
        NodeSpec("dest", 562, 100, role="destination"),
    ],
    links=[
        # Narrow roads: short but slowed by traffic
        LinkSpec("a", "orig", "south", congestible=True),
        LinkSpec("b", "north", "dest", congestible=True),
        # Wide roads: long curves, constant speed
        LinkSpec("A", "orig", "north", length=499),
        LinkSpec("B", "south", "dest", length=499),
        # The bridge, opened and closed as a unit
        LinkSpec("sn-bridge", "south", "north", bridge=True),
        LinkSpec("ns-bridge", "north", "south", bridge=True),
    ],
    routes=[
        RouteSpec("Ab", ["A", "b"], ROUTE_COLORS["Ab"]),
        RouteSpec("aB", ["a", "B"], ROUTE_COLORS["aB"]),
        RouteSpec("AB", ["A", "ns-bridge", "B"], ROUTE_COLORS["AB"]),
        RouteSpec("ab", ["a", "sn-bridge", "b"], ROUTE_COLORS["ab"]),
    ],
    service_order=["dest", "north", "south"],
)
