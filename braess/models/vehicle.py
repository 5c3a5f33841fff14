"""
Vehicle record for the Braess network.
"""

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .route import Route


@dataclass(eq=False)
class Vehicle:
    """A single simulated car.

    Vehicles are created once when the simulation is built and cycle forever
    between the idle pool and the network; they are never destroyed.
    """
    serial: int
    progress: float = 0.0  # Distance travelled along the current link
    past_progress: float = 0.0  # Progress at the previous tick
    depart_time: float = 0.0  # Clock reading at launch
    arrive_time: float = 0.0  # Clock reading at arrival
    odometer: float = 0.0  # Distance over the whole trip
    route: Optional['Route'] = field(default=None, repr=False)

    @property
    def is_dispatched(self) -> bool:
        """True while the vehicle is assigned to a route (visible on screen)."""
        return self.route is not None

    @property
    def color(self) -> Optional[str]:
        """Paint color of the assigned route, None when idle."""
        return self.route.color if self.route is not None else None

    def move_to(self, progress: float) -> None:
        """Move to `progress` along the current link, updating the odometer."""
        self.past_progress = self.progress
        self.progress = progress
        self.odometer += self.progress - self.past_progress

    def park(self) -> None:
        """Restore idle defaults before returning to the pool."""
        self.route = None
        self.progress = 0.0
        self.past_progress = 0.0
        self.odometer = 0.0
