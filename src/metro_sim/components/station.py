"""
Stations: capacity-limited platforms holding trains and waiting passengers.
"""

from typing import Callable, List, Optional, Tuple

from ..core.data_models import (
    CARGO_STATION_POLICY,
    PASSENGER_STATION_POLICY,
    Passenger,
    SimulationContext,
    StationPolicy,
    StationSnapshot,
)
from ..core.errors import StationFullError, StationInvalidActionError
from .passenger_generator import PassengerGenerator

DEFAULT_GENERATOR = PassengerGenerator()


class Station:
    """
    A station on one or more lines.

    Trains enter (pass through) or stop at a station while it has a free
    platform. Active stations create waiting passengers whenever a train
    stops; passive stations never do.
    """

    # Default number of trains a station can hold at once
    PLATFORMS = 2

    def __init__(self, name: str, position: Tuple[float, float] = (0.0, 0.0),
                 max_passengers: int = 0, active: bool = False,
                 platforms: Optional[int] = PLATFORMS,
                 policy: StationPolicy = PASSENGER_STATION_POLICY,
                 generator: PassengerGenerator = DEFAULT_GENERATOR):
        """
        Initialize a station.

        Parameters:
        -----------
        name : str
            Unique station name.
        position : Tuple[float, float]
            Location on the map.
        max_passengers : int
            Capacity of the waiting queue.
        active : bool
            Whether stopping trains trigger passenger generation.
        platforms : Optional[int]
            Number of trains that may be present at once; None is unlimited.
        policy : StationPolicy
            Plain or cargo behaviour.
        generator : PassengerGenerator
            Generation policy used when the station is active.
        """
        if platforms is not None and platforms < 1:
            raise ValueError(f"Station {name} needs at least one platform")
        if max_passengers < 0:
            raise ValueError(f"Station {name} cannot have a negative passenger capacity")

        self.name = name
        self.position = (float(position[0]), float(position[1]))
        self.max_passengers = max_passengers
        self.active = active
        self.platforms = platforms
        self.policy = policy
        self.generator = generator

        self._lines: List = []
        self._trains: List = []
        self._waiting: List[Passenger] = []

    @property
    def lines(self) -> Tuple:
        return tuple(self._lines)

    def register_line(self, line) -> None:
        if all(existing is not line for existing in self._lines):
            self._lines.append(line)

    # ----------------- platforms -----------------
    @property
    def present_trains(self) -> Tuple:
        return tuple(self._trains)

    def is_present(self, train) -> bool:
        return any(t is train for t in self._trains)

    def can_enter(self, train) -> bool:
        if self.platforms is None:
            return True
        return len(self._trains) < self.platforms

    def can_stop(self, train) -> bool:
        if not self.policy.stoppable_by(train.kind):
            return False
        return self.can_enter(train)

    def enter(self, train) -> None:
        if not self.can_enter(train):
            raise StationFullError(f"Station {self.name} has no free platform for {train.name}")
        self._trains.append(train)

    def stop(self, train, context: SimulationContext) -> None:
        """
        Stop a train at this station.

        If the station is active, new passengers are generated and the train
        is invited to board them straight away.
        """
        if not self.can_stop(train):
            raise StationInvalidActionError(f"{train.name} is not permitted to stop at {self.name}")
        self.enter(train)

        if self.active:
            self.generator.generate_passengers(self, context)
            train.embark_passengers(context)

    def leave(self, train) -> None:
        if not self.is_present(train):
            raise StationInvalidActionError(f"{train.name} cannot leave {self.name}: it is not present")
        self._trains = [t for t in self._trains if t is not train]

    # ----------------- waiting passengers -----------------
    @property
    def waiting_passengers(self) -> Tuple[Passenger, ...]:
        return tuple(self._waiting)

    @property
    def waiting_count(self) -> int:
        return len(self._waiting)

    def add_waiting(self, passenger: Passenger) -> None:
        if len(self._waiting) >= self.max_passengers:
            raise StationFullError(f"Station {self.name} cannot queue more than {self.max_passengers} passengers")
        self._waiting.append(passenger)

    def release_waiting(self, accept: Callable[[Passenger], bool]) -> List[Passenger]:
        """
        Offer every waiting passenger, in queue order, to ``accept``.

        Passengers for which ``accept`` returns True leave the queue; the
        rest keep their relative order.

        Returns:
        --------
        List[Passenger]
            The passengers that left the queue.
        """
        released = []
        remaining = []
        for passenger in self._waiting:
            if accept(passenger):
                released.append(passenger)
            else:
                remaining.append(passenger)
        self._waiting = remaining
        return released

    def snapshot(self) -> StationSnapshot:
        return StationSnapshot(
            name=self.name,
            policy=self.policy.name,
            active=self.active,
            x=self.position[0],
            y=self.position[1],
            trains_present=len(self._trains),
            platforms=self.platforms,
            waiting=len(self._waiting),
        )

    def __repr__(self) -> str:
        return f"Station({self.name}, trains={len(self._trains)}, waiting={len(self._waiting)})"


def make_active_station(name: str, position: Tuple[float, float], max_passengers: int,
                        platforms: Optional[int] = Station.PLATFORMS) -> Station:
    """Build a plain station that generates passengers."""
    return Station(name, position, max_passengers=max_passengers, active=True, platforms=platforms)


def make_cargo_station(name: str, position: Tuple[float, float], max_passengers: int,
                       platforms: Optional[int] = Station.PLATFORMS) -> Station:
    """Build an active station that any train may stop at and that generates cargo."""
    return Station(name, position, max_passengers=max_passengers, active=True,
                   platforms=platforms, policy=CARGO_STATION_POLICY)
