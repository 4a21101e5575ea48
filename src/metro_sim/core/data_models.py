"""
Core data models and structures for the metro simulation.
"""

import itertools
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple

import numpy as np

from .events import EventLog

# Maximum cargo weight (kg) a single passenger may carry
MAX_CARGO = 50


class TrainState(Enum):
    """States of the per-train state machine."""
    FROM_DEPOT = 'FROM_DEPOT'
    WAITING_ENTRY = 'WAITING_ENTRY'
    IN_STATION = 'IN_STATION'
    READY_DEPART = 'READY_DEPART'
    ON_ROUTE = 'ON_ROUTE'
    PASSING_THROUGH = 'PASSING_THROUGH'


class TrainKind(Enum):
    """Capability of a train: plain passenger service or cargo-capable."""
    PASSENGER = 'passenger'
    CARGO = 'cargo'


class ArrivalOutcome(Enum):
    """Result of a train trying to arrive at a station."""
    STOPPED = 'stopped'
    PASSED_THROUGH = 'passed_through'
    BLOCKED = 'blocked'


@dataclass(frozen=True)
class StationPolicy:
    """
    Behaviour attached to a station at construction time.

    Plain and cargo stations differ only in which trains may stop, which
    stations are valid destinations and whether generated passengers carry
    cargo.
    """
    name: str
    stoppable_kinds: FrozenSet[TrainKind]
    cargo_hub: bool = False

    def stoppable_by(self, kind: TrainKind) -> bool:
        return kind in self.stoppable_kinds

    def valid_destination(self, origin, other) -> bool:
        if other is origin:
            return False
        if self.cargo_hub:
            return other.policy.cargo_hub
        return True

    def cargo_weight(self, rng) -> int:
        """Draw the cargo weight for a passenger generated under this policy."""
        if not self.cargo_hub:
            return 0
        return int(rng.integers(1, MAX_CARGO + 1))


PASSENGER_STATION_POLICY = StationPolicy(
    name='passenger',
    stoppable_kinds=frozenset({TrainKind.PASSENGER}),
)

CARGO_STATION_POLICY = StationPolicy(
    name='cargo',
    stoppable_kinds=frozenset({TrainKind.PASSENGER, TrainKind.CARGO}),
    cargo_hub=True,
)


@dataclass(frozen=True, eq=False)
class Passenger:
    """An immutable itinerary waiting at, or travelling from, its origin."""
    passenger_id: int
    origin: object
    destination: object
    cargo_weight: int = 0

    def __post_init__(self):
        if self.origin is self.destination:
            raise ValueError(f"Passenger {self.passenger_id} has identical origin and destination")
        if not 0 <= self.cargo_weight <= MAX_CARGO:
            raise ValueError(f"Cargo weight {self.cargo_weight} outside [0, {MAX_CARGO}]")

    @property
    def has_cargo(self) -> bool:
        return self.cargo_weight > 0

    def should_embark(self, train) -> bool:
        """
        Decide whether to board the given train.

        The train's line must serve the destination and the train must be
        heading in the direction that leads from origin to destination.
        """
        line = train.line
        if not line.has_station(self.destination):
            return False
        should_go_forward = line.direction_between(self.origin, self.destination)
        return train.forward == should_go_forward

    def should_disembark(self, train) -> bool:
        return train.station is self.destination

    def __repr__(self) -> str:
        return (f"Passenger(id={self.passenger_id}, {self.origin.name} -> "
                f"{self.destination.name}, cargo={self.cargo_weight})")


class PassengerIdAllocator:
    """Hands out sequential passenger identifiers, starting at 1."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self.last_id = start - 1

    def next_id(self) -> int:
        self.last_id = next(self._counter)
        return self.last_id


@dataclass
class SimulationConfig:
    """Configuration for a simulation run."""
    tick_seconds: float = 1.0 / 60.0
    duration_seconds: float = 60.0
    seed: int = 30006
    stations_file: Optional[str] = None
    lines_file: Optional[str] = None
    trains_file: Optional[str] = None
    output_dir: str = 'output'
    summary: bool = True
    debug: bool = False


@dataclass
class SimulationContext:
    """
    State shared by every component during a run.

    The random source, passenger identifiers and the event log are owned
    here and passed explicitly to each call that needs them.
    """
    rng: np.random.Generator
    passenger_ids: PassengerIdAllocator = field(default_factory=PassengerIdAllocator)
    events: EventLog = field(default_factory=EventLog)

    @classmethod
    def seeded(cls, seed: int, echo_events: bool = True) -> 'SimulationContext':
        return cls(rng=np.random.default_rng(seed), events=EventLog(echo=echo_events))

    @property
    def time(self) -> float:
        return self.events.time

    def advance(self, delta: float) -> None:
        self.events.time += delta


@dataclass(frozen=True)
class TrainSnapshot:
    """Read-only view of a train for renderers and result tables."""
    time: float
    name: str
    line: str
    kind: str
    state: str
    forward: bool
    x: float
    y: float
    station: str
    passengers: int
    cargo: int
    in_station: bool = False
    failed: bool = False


@dataclass(frozen=True)
class StationSnapshot:
    """Read-only view of a station."""
    name: str
    policy: str
    active: bool
    x: float
    y: float
    trains_present: int
    platforms: Optional[int]
    waiting: int


@dataclass(frozen=True)
class TrackSnapshot:
    """Read-only view of a track segment."""
    line: str
    start: Tuple[float, float]
    end: Tuple[float, float]
    dual: bool
    forward_occupied: bool
    backward_occupied: bool
