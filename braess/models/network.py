"""
Network graph model for the Braess simulation.
Wraps a NetworkX multigraph with nodes, links and routes.
"""

from typing import Any, Dict, Iterator, List, Optional
from dataclasses import dataclass
import math

import networkx as nx

from .node import Node, NodeType, Origin, Destination
from .link import Link, LinkKind
from .route import Route
from .vehicle import Vehicle
from ..data.topology import NetworkTopology


class TopologyError(ValueError):
    """Raised when a topology descriptor does not describe a usable network."""


@dataclass
class NetworkStats:
    """Statistics about the network."""
    total_nodes: int = 0
    total_links: int = 0
    congestible_links: int = 0
    bridge_links: int = 0
    open_links: int = 0
    total_routes: int = 0
    available_routes: int = 0
    total_length: int = 0
    vehicles_on_links: int = 0
    vehicles_at_nodes: int = 0


class RoadNetwork:
    """
    Graph representation of the road network.
    Contains nodes (single-car junctions), links (roads) and routes.
    """

    def __init__(self):
        """Initialize empty network."""
        # Parallel links between the same pair of nodes are allowed
        self._graph = nx.MultiDiGraph()

        self._nodes: Dict[str, Node] = {}
        self._links: Dict[str, Link] = {}
        self._routes: Dict[str, Route] = {}
        self._service_order: List[str] = []

    # ==================== Node Operations ====================

    def add_node(self, node: Node) -> None:
        """Add a node to the network."""
        self._nodes[node.id] = node
        self._graph.add_node(node.id, data=node)

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by ID."""
        return self._nodes.get(node_id)

    def get_nodes(self) -> Iterator[Node]:
        """Iterate over all nodes."""
        return iter(self._nodes.values())

    def _single_node(self, node_type: NodeType) -> Node:
        matches = [n for n in self._nodes.values() if n.node_type == node_type]
        if len(matches) != 1:
            raise TopologyError(
                f"network needs exactly one {node_type.value} node, found {len(matches)}")
        return matches[0]

    @property
    def origin(self) -> Node:
        return self._single_node(NodeType.ORIGIN)

    @property
    def destination(self) -> Node:
        return self._single_node(NodeType.DESTINATION)

    # ==================== Link Operations ====================

    def add_link(self, link: Link) -> None:
        """Add a link to the network."""
        if link.origin.id not in self._nodes or link.destination.id not in self._nodes:
            raise TopologyError(f"link {link.id!r} references an unknown node")
        self._links[link.id] = link
        self._graph.add_edge(link.origin.id, link.destination.id, key=link.id, data=link)

    def get_link(self, link_id: str) -> Optional[Link]:
        """Get a link by ID."""
        return self._links.get(link_id)

    def get_links(self) -> Iterator[Link]:
        """Iterate over all links."""
        return iter(self._links.values())

    def inbound_links(self, node_id: str) -> List[Link]:
        """Links ending at a node, in declaration order."""
        return [link for link in self._links.values() if link.destination.id == node_id]

    def outbound_links(self, node_id: str) -> List[Link]:
        """Links starting at a node, in declaration order."""
        return [link for link in self._links.values() if link.origin.id == node_id]

    def bridge_links(self) -> List[Link]:
        return [link for link in self._links.values() if link.is_bridge]

    def set_bridge_open(self, is_open: bool) -> None:
        """Open or close every bridge link together."""
        for link in self.bridge_links():
            link.open_to_traffic = is_open

    @property
    def bridge_open(self) -> bool:
        bridges = self.bridge_links()
        return bool(bridges) and all(link.open_to_traffic for link in bridges)

    # ==================== Route Operations ====================

    def add_route(self, route: Route) -> None:
        """Add a route after checking it runs from origin to destination."""
        self._validate_itinerary(route.label, route.itinerary)
        directions: Dict[str, Optional[Link]] = {node_id: None for node_id in self._nodes}
        directions.update({link.origin.id: link for link in route.itinerary})
        route.directions = directions
        self._routes[route.label] = route

    def _validate_itinerary(self, label: str, itinerary: List[Link]) -> None:
        if itinerary[0].origin is not self.origin:
            raise TopologyError(f"route {label!r} does not start at the origin")
        if itinerary[-1].destination is not self.destination:
            raise TopologyError(f"route {label!r} does not end at the destination")
        visited = {itinerary[0].origin.id}
        for prev, link in zip(itinerary, itinerary[1:]):
            if link.origin is not prev.destination:
                raise TopologyError(
                    f"route {label!r}: link {link.id!r} does not follow {prev.id!r}")
        for link in itinerary:
            if link.destination.id in visited:
                raise TopologyError(f"route {label!r} visits {link.destination.id!r} twice")
            visited.add(link.destination.id)

    def get_route(self, label: str) -> Optional[Route]:
        return self._routes.get(label)

    def get_routes(self) -> List[Route]:
        """All routes, in declaration order."""
        return list(self._routes.values())

    def available_routes(self) -> List[Route]:
        """Routes whose links are all open to traffic."""
        return [route for route in self._routes.values() if route.available]

    def enumerate_itineraries(self) -> List[List[Link]]:
        """All simple link paths from the origin to the destination."""
        paths = nx.all_simple_edge_paths(self._graph, self.origin.id, self.destination.id)
        return [[self._links[key] for _, _, key in path] for path in paths]

    def quickest_route_length(self) -> int:
        """Length of the shortest route over all routes (open or not)."""
        return min(route.route_length for route in self._routes.values())

    # ==================== Scheduling ====================

    @property
    def service_order(self) -> List[Node]:
        """Non-origin nodes in the order the scheduler visits them."""
        return [self._nodes[node_id] for node_id in self._service_order]

    def set_service_order(self, node_ids: List[str]) -> None:
        expected = {n.id for n in self._nodes.values() if n.node_type != NodeType.ORIGIN}
        if set(node_ids) != expected or len(node_ids) != len(expected):
            raise TopologyError(
                f"service order must list every non-origin node once: {sorted(expected)}")
        self._service_order = list(node_ids)

    def default_service_order(self) -> List[str]:
        """Non-origin nodes by descending hop distance from the origin."""
        hops = nx.single_source_shortest_path_length(self._graph, self.origin.id)
        candidates = [n for n in self._nodes.values() if n.node_type != NodeType.ORIGIN]
        ranked = sorted(
            candidates,
            key=lambda n: (n.node_type != NodeType.DESTINATION, -hops.get(n.id, 0)))
        return [n.id for n in ranked]

    # ==================== State Management ====================

    def vehicles_on_links(self) -> int:
        return sum(link.occupancy for link in self._links.values())

    def vehicles_at_nodes(self) -> int:
        return sum(1 for node in self._nodes.values() if node.car is not None)

    def active_vehicles(self) -> Iterator[Vehicle]:
        """Vehicles currently in the network (on links or in nodes)."""
        for link in self._links.values():
            yield from link.vehicles()
        for node in self._nodes.values():
            if node.car is not None:
                yield node.car

    def refresh_speeds(self, ctx: Any) -> None:
        """Recompute every link's speed, e.g. after a tunable changed."""
        for link in self._links.values():
            link.update_speed(ctx)

    def evacuate(self, ctx: Any) -> int:
        """Return every vehicle in the network to the idle pool."""
        removed = 0
        for link in self._links.values():
            removed += link.evacuate(ctx)
        for node in self._nodes.values():
            removed += node.evacuate(ctx)
        return removed

    # ==================== Statistics ====================

    def get_stats(self) -> NetworkStats:
        """Get network statistics."""
        stats = NetworkStats()
        stats.total_nodes = len(self._nodes)
        stats.total_links = len(self._links)
        stats.congestible_links = sum(1 for l in self._links.values() if l.congestible)
        stats.bridge_links = sum(1 for l in self._links.values() if l.is_bridge)
        stats.open_links = sum(1 for l in self._links.values() if l.open_to_traffic)
        stats.total_routes = len(self._routes)
        stats.available_routes = len(self.available_routes())
        stats.total_length = sum(l.length for l in self._links.values())
        stats.vehicles_on_links = self.vehicles_on_links()
        stats.vehicles_at_nodes = self.vehicles_at_nodes()
        return stats

    # ==================== Serialization ====================

    def to_dict(self) -> dict:
        """Convert network to dictionary for rendering or inspection."""
        return {
            'nodes': [
                {
                    'id': n.id,
                    'x': n.x,
                    'y': n.y,
                    'type': n.node_type.value,
                    'occupied': n.car is not None,
                }
                for n in self._nodes.values()
            ],
            'links': [
                {
                    'id': l.id,
                    'source': l.origin.id,
                    'target': l.destination.id,
                    'length': l.length,
                    'kind': l.kind.value,
                    'bridge': l.is_bridge,
                    'open': l.open_to_traffic,
                    'occupancy': l.occupancy,
                    'speed': l.speed,
                    'travel_time': l.travel_time,
                }
                for l in self._links.values()
            ],
            'routes': [
                {
                    'label': r.label,
                    'links': r.link_ids,
                    'color': r.color,
                    'length': r.route_length,
                    'available': r.available,
                }
                for r in self._routes.values()
            ],
        }


def default_fleet_size(topology: NetworkTopology, vehicle_length: float) -> int:
    """
    Number of vehicles to create for a topology.

    At least as many as the network can physically hold: each link holds at
    most length / vehicle_length + 1 vehicles and each node holds one.
    """
    return (math.ceil(topology.total_length() / vehicle_length)
            + len(topology.links) + len(topology.nodes))


def _route_label(itinerary: List[Link]) -> str:
    return "-".join(link.id for link in itinerary)


def build_network(topology: NetworkTopology, fleet_size: int) -> RoadNetwork:
    """
    Build a fresh network from a topology descriptor.

    Args:
        topology: Node, link and route descriptors
        fleet_size: Capacity of every link queue (the whole fleet)

    Returns:
        A network whose links are all open except the bridge links.
    """
    node_classes = {"origin": Origin, "destination": Destination, "junction": Node}

    network = RoadNetwork()
    for spec in topology.nodes:
        cls = node_classes.get(spec.role)
        if cls is None:
            raise TopologyError(f"node {spec.id!r} has unknown role {spec.role!r}")
        network.add_node(cls(id=spec.id, x=spec.x, y=spec.y))

    # Raises unless there is exactly one of each
    _ = (network.origin, network.destination)

    for spec in topology.links:
        source = network.get_node(spec.source)
        target = network.get_node(spec.target)
        if source is None or target is None:
            raise TopologyError(f"link {spec.id!r} references an unknown node")
        network.add_link(Link(
            id=spec.id,
            length=topology.link_length(spec),
            origin=source,
            destination=target,
            capacity=fleet_size,
            kind=LinkKind.CONGESTIBLE if spec.congestible else LinkKind.CONSTANT,
            is_bridge=spec.bridge,
            open_to_traffic=not spec.bridge,
        ))

    if topology.routes:
        for spec in topology.routes:
            itinerary = []
            for link_id in spec.links:
                link = network.get_link(link_id)
                if link is None:
                    raise TopologyError(f"route {spec.label!r} uses unknown link {link_id!r}")
                itinerary.append(link)
            if not itinerary:
                raise TopologyError(f"route {spec.label!r} has no links")
            network.add_route(Route(label=spec.label, itinerary=itinerary, color=spec.color))
    else:
        for itinerary in network.enumerate_itineraries():
            network.add_route(Route(label=_route_label(itinerary), itinerary=itinerary))

    if not network.get_routes():
        raise TopologyError("no route connects the origin to the destination")

    network.set_service_order(topology.service_order or network.default_service_order())
    return network
