"""
Metro Network Simulation

A tick-driven rail network simulation: trains move along lines, contend
for tracks and platforms, and exchange passengers at stations.
"""

__version__ = "1.0.0"
__author__ = "Metro Simulation Team"

from .core import data_models, errors, events, simulation_engine
from .components import line, passenger_generator, station, track, train, transit_network

__all__ = [
    'data_models',
    'errors',
    'events',
    'simulation_engine',
    'line',
    'passenger_generator',
    'station',
    'track',
    'train',
    'transit_network',
]
