"""
Braess - Road traffic microsimulation

Discrete-time simulation of cars on a small road network, for exploring
Braess's paradox: opening an extra link can make selfish drivers slower.
"""

__version__ = '1.0.0'

from .simulation.engine import Simulation, SimulationConfig, SimulationState

__all__ = ['Simulation', 'SimulationConfig', 'SimulationState', '__version__']
