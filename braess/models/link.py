"""
Link model for the Braess network.
Represents directed road segments holding the queue of vehicles in transit.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional, TYPE_CHECKING

from .ring_queue import RingQueue
from .vehicle import Vehicle

if TYPE_CHECKING:
    from .node import Node


# Floor for congestible speed so travel time stays finite
MIN_SPEED = 1e-10


class LinkKind(Enum):
    """How a link's speed responds to occupancy."""
    CONSTANT = "constant"        # Wide roads - always at the speed limit
    CONGESTIBLE = "congestible"  # Narrow roads - slow down as they fill


@dataclass(eq=False)
class Link:
    """A directed road segment from one node to the next.

    The queue is ordered front to back: the head is the vehicle closest to
    the destination node. Vehicles in the queue have non-increasing progress
    and a follower never closes to within one vehicle length of its leader.
    """
    id: str
    length: int
    origin: 'Node' = field(repr=False)
    destination: 'Node' = field(repr=False)
    capacity: int = field(repr=False)
    kind: LinkKind = LinkKind.CONSTANT
    is_bridge: bool = False
    open_to_traffic: bool = True

    # Derived state, recomputed whenever occupancy changes
    speed: float = 0.0
    travel_time: float = 0.0

    queue: RingQueue = field(init=False, repr=False)

    def __post_init__(self):
        self.length = int(round(self.length))
        if self.length <= 0:
            raise ValueError(f"link {self.id!r} must have positive length")
        self.queue = RingQueue(self.capacity)

    @property
    def congestible(self) -> bool:
        return self.kind == LinkKind.CONGESTIBLE

    @property
    def occupancy(self) -> int:
        """Number of vehicles currently on the link."""
        return len(self.queue)

    def vehicles(self) -> Iterator[Vehicle]:
        """Iterate vehicles front to back."""
        return iter(self.queue)

    def update_speed(self, ctx: Any) -> None:
        """Recompute speed and travel time from the current occupancy."""
        speed_limit = ctx.config.speed_limit
        if self.kind == LinkKind.CONGESTIBLE:
            slowdown = (self.occupancy * ctx.config.vehicle_length * speed_limit *
                        ctx.config.congestion_coefficient) / self.length
            self.speed = max(MIN_SPEED, speed_limit - slowdown)
        else:
            self.speed = speed_limit
        self.travel_time = self.length / self.speed

    def can_enter(self, vehicle_length: float) -> bool:
        """Check whether there is physical room at the entrance."""
        if not self.queue:
            return True
        return self.queue.last().progress >= vehicle_length

    def enter(self, vehicle: Vehicle, ctx: Any) -> None:
        """Place a vehicle at the entrance of the link."""
        vehicle.progress = 0.0
        vehicle.past_progress = 0.0
        self.queue.enqueue(vehicle)
        self.update_speed(ctx)

    def drive(self, ctx: Any) -> Optional[Vehicle]:
        """
        Advance every vehicle on the link by one tick.

        The front vehicle moves up to the end of the link; each follower moves
        at most to one vehicle length behind its leader. A front vehicle that
        has reached the end is handed to the destination node if the node has
        room, otherwise it waits there.

        Returns:
            The vehicle handed to the destination node, if any.
        """
        if not self.queue:
            return None

        vehicle_length = ctx.config.vehicle_length
        front = self.queue.first()
        front.move_to(min(self.length, front.progress + self.speed))

        leader = front
        for i in range(1, len(self.queue)):
            follower = self.queue.peek(i)
            follower.move_to(min(follower.progress + self.speed,
                                 leader.progress - vehicle_length))
            leader = follower

        if front.progress >= self.length and self.destination.has_room():
            self.destination.accept(self.queue.dequeue())
            self.update_speed(ctx)
            return front
        return None

    def evacuate(self, ctx: Any) -> int:
        """Return every vehicle on the link to the idle pool.

        Returns:
            Number of vehicles removed.
        """
        removed = 0
        while self.queue:
            ctx.park(self.queue.dequeue())
            removed += 1
        self.update_speed(ctx)
        return removed
