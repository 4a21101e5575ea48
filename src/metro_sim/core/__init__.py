"""
Core simulation components.

Contains the simulation engine, data models, errors and the event log.
"""

from . import errors
from . import events
from . import data_models
from . import simulation_engine

__all__ = ['errors', 'events', 'data_models', 'simulation_engine']
