"""
Topology descriptors for building road networks.
"""

from .topology import (
    NodeSpec, LinkSpec, RouteSpec, NetworkTopology,
    BRAESS_TOPOLOGY, ROUTE_COLORS
)

__all__ = [
    'NodeSpec', 'LinkSpec', 'RouteSpec', 'NetworkTopology',
    'BRAESS_TOPOLOGY', 'ROUTE_COLORS'
]
