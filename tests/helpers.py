"""
Shared builders for the test suites.
"""

import sys
from pathlib import Path

# Add project source to path
project_root = Path(__file__).parent.parent
src_path = project_root / 'src'
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from metro_sim.components.line import Line
from metro_sim.components.station import Station
from metro_sim.core.data_models import PassengerIdAllocator, SimulationContext
from metro_sim.core.events import EventLog

DATA_DIR = project_root / 'data'


class StubRng:
    """Returns queued values from ``integers`` so draws can be scripted."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def integers(self, low, high=None):
        self.calls.append((low, high))
        return self.values.pop(0)


def make_context(seed: int = 1) -> SimulationContext:
    return SimulationContext.seeded(seed, echo_events=False)


def stub_context(values) -> SimulationContext:
    return SimulationContext(rng=StubRng(values), passenger_ids=PassengerIdAllocator(),
                             events=EventLog(echo=False))


def make_stations(names, spacing: float = 100.0, **kwargs):
    """Stations laid out along the x axis, ``spacing`` apart."""
    return [Station(name, (i * spacing, 0.0), **kwargs) for i, name in enumerate(names)]


def make_line(name, stations, dual: bool = False) -> Line:
    line = Line(name)
    for station in stations:
        line.add_station(station, dual)
    return line


def run_ticks(train, context, ticks: int, delta: float = 0.5):
    for _ in range(ticks):
        context.advance(delta)
        train.update(delta, context)
