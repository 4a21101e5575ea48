"""
Simulation components.

Contains the network resources (tracks, lines, stations), the train state
machine and passenger generation.
"""

from . import track
from . import line
from . import passenger_generator
from . import station
from . import train
from . import transit_network

__all__ = [
    'track',
    'line',
    'passenger_generator',
    'station',
    'train',
    'transit_network',
]
