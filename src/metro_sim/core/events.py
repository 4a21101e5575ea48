"""
Structured event log for the metro simulation.

Every train state change and every passenger boarding/alighting is recorded
as a plain record. The log also renders each event as a readable message on
the ``metro_sim.events`` logger.
"""

import logging
from dataclasses import dataclass, asdict
from typing import List, Optional, Union

import pandas as pd

logger = logging.getLogger('metro_sim.events')

EMBARK = 'embark'
DISEMBARK = 'disembark'

# Message templates keyed by the state a train has just entered
STATE_MESSAGES = {
    'FROM_DEPOT': "{train} is travelling from the depot to {station}",
    'IN_STATION': "{train} is in {station}",
    'READY_DEPART': "{train} is ready to depart for {station}",
    'ON_ROUTE': "{train} enroute to {station}",
    'WAITING_ENTRY': "{train} is awaiting entry to {station}",
    'PASSING_THROUGH': "{train} is passing through {station}",
}


@dataclass(frozen=True)
class StateChangeEvent:
    """A train moved from one state to another."""
    time: float
    train: str
    old_state: str
    new_state: str
    station: str

    def message(self) -> str:
        template = STATE_MESSAGES.get(self.new_state, "{train} changed state at {station}")
        return template.format(train=self.train, station=self.station)


@dataclass(frozen=True)
class PassengerEvent:
    """A passenger boarded or alighted from a train."""
    time: float
    kind: str  # embark or disembark
    passenger_id: int
    cargo_weight: int
    origin: str
    destination: str
    train: str
    station: str

    def message(self) -> str:
        if self.kind == EMBARK:
            return (f"Passenger {self.passenger_id} carrying {self.cargo_weight} kg cargo "
                    f"is embarking at {self.origin} heading to {self.destination}")
        return f"Passenger {self.passenger_id} is disembarking at {self.destination}"


Event = Union[StateChangeEvent, PassengerEvent]


class EventLog:
    """
    Collects simulation events in the order they happen.
    """

    def __init__(self, echo: bool = True):
        """
        Initialize the event log.

        Parameters:
        -----------
        echo : bool
            Whether every recorded event is also written to the logger.
        """
        self.echo = echo
        self.time = 0.0
        self.events: List[Event] = []

    def state_changed(self, train: str, old_state: str, new_state: str, station: str) -> StateChangeEvent:
        event = StateChangeEvent(self.time, train, old_state, new_state, station)
        self._record(event)
        return event

    def passenger_moved(self, kind: str, passenger, train: str, station: str) -> PassengerEvent:
        event = PassengerEvent(
            time=self.time,
            kind=kind,
            passenger_id=passenger.passenger_id,
            cargo_weight=passenger.cargo_weight,
            origin=passenger.origin.name,
            destination=passenger.destination.name,
            train=train,
            station=station,
        )
        self._record(event)
        return event

    def _record(self, event: Event) -> None:
        self.events.append(event)
        if self.echo:
            logger.info(event.message())

    def state_changes(self, train: Optional[str] = None) -> List[StateChangeEvent]:
        """Return state change events, optionally for a single train."""
        return [e for e in self.events
                if isinstance(e, StateChangeEvent) and (train is None or e.train == train)]

    def passenger_events(self, kind: Optional[str] = None) -> List[PassengerEvent]:
        """Return boarding/alighting events, optionally of a single kind."""
        return [e for e in self.events
                if isinstance(e, PassengerEvent) and (kind is None or e.kind == kind)]

    def to_dataframe(self) -> pd.DataFrame:
        """
        Convert the log into a DataFrame with one row per event.

        Returns:
        --------
        pd.DataFrame
            Columns of both event kinds; a ``type`` column tells them apart.
        """
        rows = []
        for event in self.events:
            row = asdict(event)
            row['type'] = 'state_change' if isinstance(event, StateChangeEvent) else 'passenger'
            row['message'] = event.message()
            rows.append(row)
        return pd.DataFrame(rows)

    def export_csv(self, filepath: str) -> None:
        """Export all recorded events to a CSV file."""
        self.to_dataframe().to_csv(filepath, index=False)

    def __len__(self) -> int:
        return len(self.events)
