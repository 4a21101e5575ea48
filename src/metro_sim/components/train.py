"""
Train state machine: moving along a line, claiming tracks and platforms,
and exchanging passengers at stations.
"""

import logging
import math
from typing import Callable, Dict, List, Optional, Tuple

from ..core.data_models import (
    ArrivalOutcome,
    Passenger,
    SimulationContext,
    TrainKind,
    TrainSnapshot,
    TrainState,
)
from ..core.errors import TrainFullError
from ..core.events import DISEMBARK, EMBARK

logger = logging.getLogger(__name__)

# States in which a train is physically inside a station
IN_STATION_STATES = (TrainState.IN_STATION, TrainState.READY_DEPART, TrainState.PASSING_THROUGH)


class Train:
    """
    A single train operating back and forth along one line.

    The train starts in the depot (FROM_DEPOT) heading for its starting
    station and then cycles through the station and route states for the
    rest of the run. Cargo-capable trains additionally track the cargo
    weight they carry and may only stop at stations whose policy allows it.
    """

    # Distance units travelled per second while on route
    TRAIN_SPEED = 50.0
    # Seconds spent in a station before trying to depart
    WAIT_TIME = 2.0
    # A train closer than this to its target station may try to enter it
    DISTANCE_THRESHOLD = 10.0

    def __init__(self, name: str, line, start, forward: bool = True,
                 max_passengers: int = 10, kind: TrainKind = TrainKind.PASSENGER,
                 max_cargo: Optional[int] = None):
        """
        Initialize a train in the depot.

        Parameters:
        -----------
        name : str
            Train name used in logs.
        line : Line
            The line this train operates on.
        start : Station
            First station the train heads for; must be on ``line``.
        forward : bool
            Initial direction of travel along the line.
        max_passengers : int
            Passenger capacity.
        kind : TrainKind
            Passenger or cargo-capable train.
        max_cargo : Optional[int]
            Cargo capacity in kg; required for cargo trains.
        """
        if max_passengers < 0:
            raise ValueError(f"Train {name} cannot have a negative passenger capacity")
        if kind is TrainKind.CARGO and max_cargo is None:
            raise ValueError(f"Cargo train {name} needs a cargo capacity")

        self.name = name
        self.line = line
        self.station = start
        self.track = None
        self.forward = forward
        self.kind = kind
        self.max_passengers = max_passengers
        self.max_cargo = max_cargo
        self.current_cargo = 0

        self.state = TrainState.FROM_DEPOT
        self.position: Tuple[float, float] = start.position
        self.departure_timer = 0.0
        self.disembarked = False
        self._passengers: List[Passenger] = []

        self._handlers: Dict[TrainState, Callable[[float, SimulationContext], None]] = {
            TrainState.FROM_DEPOT: self._update_from_depot,
            TrainState.IN_STATION: self._update_in_station,
            TrainState.READY_DEPART: self._update_ready_depart,
            TrainState.ON_ROUTE: self._update_on_route,
            TrainState.WAITING_ENTRY: self._update_waiting_entry,
            TrainState.PASSING_THROUGH: self._update_passing_through,
        }

    @property
    def is_cargo(self) -> bool:
        return self.kind is TrainKind.CARGO

    @property
    def passengers(self) -> Tuple[Passenger, ...]:
        return tuple(self._passengers)

    @property
    def in_station(self) -> bool:
        return self.state in IN_STATION_STATES

    # ----------------- state machine -----------------
    def update(self, delta: float, context: SimulationContext) -> None:
        """
        Advance the state machine by one tick.

        Parameters:
        -----------
        delta : float
            Seconds elapsed since the previous tick.
        context : SimulationContext
            Shared random source, passenger identifiers and event log.

        Raises:
        -------
        ContractError
            When the line or a station reports a broken contract; the
            train's state is left as it was before the failing call.
        """
        original_state = self.state
        self._handlers[self.state](delta, context)

        if self.state is not original_state:
            context.events.state_changed(self.name, original_state.value,
                                         self.state.value, self.station.name)

    def _update_from_depot(self, delta: float, context: SimulationContext) -> None:
        self.process_arrival(context)

    def _update_in_station(self, delta: float, context: SimulationContext) -> None:
        self.position = self.station.position

        if not self.disembarked:
            self.calculate_direction()
            self.disembark_passengers(context)
            self.embark_passengers(context)
            self.departure_timer = self.WAIT_TIME

        self.departure_timer -= delta
        if self.departure_timer <= 0:
            self.process_departure()

    def _update_ready_depart(self, delta: float, context: SimulationContext) -> None:
        if self.track.can_enter(self):
            self.track.enter(self)
            self.state = TrainState.ON_ROUTE

    def _update_on_route(self, delta: float, context: SimulationContext) -> None:
        if self.near_station():
            self.state = TrainState.WAITING_ENTRY
        else:
            self.move(delta)

    def _update_waiting_entry(self, delta: float, context: SimulationContext) -> None:
        track = self.track
        if self.process_arrival(context) is not ArrivalOutcome.BLOCKED:
            track.leave(self)
            self.track = None

    def _update_passing_through(self, delta: float, context: SimulationContext) -> None:
        self.position = self.station.position
        self.calculate_direction()
        self.process_departure()

    def process_arrival(self, context: SimulationContext) -> ArrivalOutcome:
        """
        Try to stop at, or else pass through, the target station.

        Returns:
        --------
        ArrivalOutcome
            BLOCKED when the station has no free platform; the train keeps
            its state and retries on the next tick.
        """
        if self.station.can_stop(self):
            self.disembarked = False
            self.station.stop(self, context)
            self.state = TrainState.IN_STATION
            return ArrivalOutcome.STOPPED

        if self.station.can_enter(self):
            self.station.enter(self)
            self.state = TrainState.PASSING_THROUGH
            return ArrivalOutcome.PASSED_THROUGH

        return ArrivalOutcome.BLOCKED

    def process_departure(self) -> bool:
        """
        Release the current station and target the next one along the line.

        Does nothing (and returns False) unless the train is currently in
        a station it has not yet departed from.
        """
        if self.state not in (TrainState.IN_STATION, TrainState.PASSING_THROUGH):
            return False

        # Resolve the topology first so a failing lookup leaves the station held
        next_track = self.line.next_track(self.station, self.forward)
        next_station = self.line.next_station(self.station, self.forward)

        self.station.leave(self)
        self.track = next_track
        self.station = next_station
        self.state = TrainState.READY_DEPART
        return True

    def calculate_direction(self) -> None:
        """Turn around at either end of the line."""
        if self.line.end_of_line(self.station):
            self.forward = False
        elif self.line.start_of_line(self.station):
            self.forward = True

    # ----------------- passengers -----------------
    def can_embark(self, passenger: Passenger) -> bool:
        if len(self._passengers) >= self.max_passengers:
            return False
        if self.max_cargo is not None:
            return self.current_cargo + passenger.cargo_weight <= self.max_cargo
        return True

    def embark(self, passenger: Passenger, context: Optional[SimulationContext] = None) -> None:
        if not self.can_embark(passenger):
            raise TrainFullError(
                f"{self.name} has no room for passenger {passenger.passenger_id} "
                f"({len(self._passengers)}/{self.max_passengers} passengers, "
                f"{self.current_cargo}/{self.max_cargo} kg)"
            )

        self._passengers.append(passenger)
        self.current_cargo += passenger.cargo_weight
        if context is not None:
            context.events.passenger_moved(EMBARK, passenger, self.name, self.station.name)

    def embark_passengers(self, context: SimulationContext) -> List[Passenger]:
        """Board every waiting passenger who wants this train and fits."""
        def board(passenger: Passenger) -> bool:
            if passenger.should_embark(self) and self.can_embark(passenger):
                self.embark(passenger, context)
                return True
            return False

        return self.station.release_waiting(board)

    def disembark_passengers(self, context: SimulationContext) -> List[Passenger]:
        """
        Let off every passenger whose destination is the current station.

        Runs at most once per stop.
        """
        if self.disembarked:
            return []

        leaving = []
        staying = []
        for passenger in self._passengers:
            if passenger.should_disembark(self):
                leaving.append(passenger)
            else:
                staying.append(passenger)

        self._passengers = staying
        for passenger in leaving:
            self.current_cargo -= passenger.cargo_weight
            context.events.passenger_moved(DISEMBARK, passenger, self.name, self.station.name)

        self.disembarked = True
        return leaving

    # ----------------- movement -----------------
    def distance_to_station(self) -> float:
        x, y = self.position
        sx, sy = self.station.position
        return math.hypot(sx - x, sy - y)

    def near_station(self) -> bool:
        return self.distance_to_station() < self.DISTANCE_THRESHOLD

    def move(self, delta: float) -> None:
        """Move towards the target station without overshooting it."""
        x, y = self.position
        sx, sy = self.station.position
        angle = math.atan2(sy - y, sx - x)
        step = min(self.TRAIN_SPEED * delta, self.distance_to_station())
        self.position = (x + math.cos(angle) * step, y + math.sin(angle) * step)

    def snapshot(self, time: float = 0.0, failed: bool = False) -> TrainSnapshot:
        return TrainSnapshot(
            time=time,
            name=self.name,
            line=self.line.name,
            kind=self.kind.value,
            state=self.state.value,
            forward=self.forward,
            x=self.position[0],
            y=self.position[1],
            station=self.station.name,
            passengers=len(self._passengers),
            cargo=self.current_cargo,
            in_station=self.in_station,
            failed=failed,
        )

    def __repr__(self) -> str:
        return (f"Train({self.name}, line={self.line.name}, state={self.state.value}, "
                f"station={self.station.name}, forward={self.forward}, "
                f"passengers={len(self._passengers)})")


def make_cargo_train(name: str, line, start, forward: bool = True,
                     max_passengers: int = 10, max_cargo: int = 200) -> Train:
    """Build a cargo-capable train."""
    return Train(name, line, start, forward=forward, max_passengers=max_passengers,
                 kind=TrainKind.CARGO, max_cargo=max_cargo)
