"""
Node models for the Braess network.
A node is a junction with room for exactly one vehicle: it takes a vehicle
off an inbound link and places it on the link its route asks for.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple
import logging

from .vehicle import Vehicle

log = logging.getLogger(__name__)


class NodeType(Enum):
    """Roles a node can play in the network."""
    ORIGIN = "origin"            # Vehicles are launched here
    JUNCTION = "junction"        # Intermediate node
    DESTINATION = "destination"  # Vehicles finish their trip here


@dataclass(eq=False)
class Node:
    """Single-capacity junction that routes vehicles onto their next link."""
    id: str
    x: float = 0.0
    y: float = 0.0
    node_type: NodeType = NodeType.JUNCTION
    car: Optional[Vehicle] = field(default=None, repr=False)

    @property
    def position(self) -> Tuple[float, float]:
        """Reference position (used only for drawing)."""
        return (self.x, self.y)

    def has_room(self) -> bool:
        """Must be checked before handing a vehicle to the node."""
        return self.car is None

    def accept(self, vehicle: Vehicle) -> None:
        """Make `vehicle` the resident. Requires has_room()."""
        assert self.car is None, f"node {self.id!r} is already occupied"
        self.car = vehicle

    def dispatch(self, ctx: Any) -> bool:
        """
        Move the resident vehicle onto the link its route dictates.

        The move only happens if the link has room at its entrance; otherwise
        the vehicle stays and is retried on the next call.

        Returns:
            True if a vehicle left the node.
        """
        if self.car is None:
            return False

        next_link = self.car.route.directions.get(self.id)
        assert next_link is not None, \
            f"route {self.car.route.label!r} has no direction at node {self.id!r}"

        if not next_link.can_enter(ctx.config.vehicle_length):
            return False

        next_link.enter(self.car, ctx)
        self.car = None
        return True

    def evacuate(self, ctx: Any) -> int:
        """Return the resident vehicle, if any, to the idle pool."""
        if self.car is None:
            return 0
        ctx.park(self.car)
        self.car = None
        return 1


@dataclass(eq=False)
class Origin(Node):
    """Entry node where new vehicles are launched."""

    def __post_init__(self):
        self.node_type = NodeType.ORIGIN


@dataclass(eq=False)
class Destination(Node):
    """Final node: records the arrival and parks the vehicle."""

    def __post_init__(self):
        self.node_type = NodeType.DESTINATION

    def dispatch(self, ctx: Any) -> bool:
        if self.car is None:
            return False

        vehicle = self.car
        vehicle.arrive_time = ctx.clock
        ctx.dashboard.record_arrival(vehicle, ctx.clock)
        log.debug("Vehicle %d arrived via %s", vehicle.serial, vehicle.route.label)

        self.car = None
        ctx.park(vehicle)
        return True
