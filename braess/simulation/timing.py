"""
Inter-arrival time distributions for vehicle launches.

Each function takes the simulation's random generator and a rate `lam`
(launches per clock unit) and returns the time until the next launch.
"""

from enum import Enum
from typing import Callable, Dict

import numpy as np


class LaunchTiming(Enum):
    """Families of inter-arrival distributions."""
    POISSON = "poisson"
    UNIFORM = "uniform"
    PERIODIC = "periodic"


def poisson(rng: np.random.Generator, lam: float) -> float:
    """
    Exponential interval, giving a Poisson stream of launches.

    Uses 1 - U with U in [0, 1) so the log argument lies in (0, 1].
    """
    return -np.log(1.0 - rng.random()) / lam


def uniform(rng: np.random.Generator, lam: float) -> float:
    """Uniform interval on [0, 2/lam), mean 1/lam."""
    return rng.random() * 2.0 / lam


def periodic(rng: np.random.Generator, lam: float) -> float:
    """
    Constant interval 1/lam.

    Launches only happen on whole ticks, so the observed stream is not quite
    as regular as this.
    """
    return 1.0 / lam


InterArrival = Callable[[np.random.Generator, float], float]

TIMERS: Dict[LaunchTiming, InterArrival] = {
    LaunchTiming.POISSON: poisson,
    LaunchTiming.UNIFORM: uniform,
    LaunchTiming.PERIODIC: periodic,
}


def interarrival(timing: LaunchTiming, rng: np.random.Generator, lam: float) -> float:
    """Sample the next inter-arrival interval for the selected distribution."""
    return float(TIMERS[timing](rng, lam))
