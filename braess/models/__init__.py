"""
Model package for the road network.
"""

from .ring_queue import RingQueue
from .vehicle import Vehicle
from .link import Link, LinkKind, MIN_SPEED
from .node import Node, NodeType, Origin, Destination
from .route import Route
from .network import (
    RoadNetwork, NetworkStats, TopologyError, build_network, default_fleet_size
)

__all__ = [
    'RingQueue', 'Vehicle',
    'Link', 'LinkKind', 'MIN_SPEED',
    'Node', 'NodeType', 'Origin', 'Destination',
    'Route',
    'RoadNetwork', 'NetworkStats', 'TopologyError', 'build_network', 'default_fleet_size'
]
