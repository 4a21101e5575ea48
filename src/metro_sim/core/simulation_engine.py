"""
Simulation engine: advances every train once per tick and isolates
per-train failures.
"""

import logging
import time
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import pandas as pd

from .data_models import SimulationConfig, SimulationContext, TrainKind, TrainState
from .errors import ContractError
from .events import DISEMBARK, EMBARK

logger = logging.getLogger(__name__)

# States in which a train holds the track it is travelling on
TRACK_STATES = (TrainState.ON_ROUTE, TrainState.WAITING_ENTRY)


@dataclass(frozen=True)
class TrainFailure:
    """Diagnostic record for a train taken out of service by a contract error."""
    time: float
    train: str
    line: str
    station: str
    state: str
    error_type: str
    message: str


class SimulationEngine:
    """
    Main engine that drives the metro simulation.

    Trains are updated sequentially in registration order, so when two
    trains compete for a track or platform on the same tick, the earlier
    one wins.
    """

    def __init__(self, network, config: SimulationConfig = None,
                 context: Optional[SimulationContext] = None):
        """
        Initialize the simulation engine.

        Parameters:
        -----------
        network : TransitNetwork
            A fully built network; its lines are frozen from here on.
        config : SimulationConfig
            Run configuration (tick length, duration, seed).
        context : Optional[SimulationContext]
            Shared run state; a seeded one is created when omitted.
        """
        self.network = network
        self.config = config if config else SimulationConfig()
        self.context = context if context else SimulationContext.seeded(self.config.seed)

        self.network.freeze()

        self.ticks = 0
        self.failures: Dict[str, TrainFailure] = {}
        self.positions_results: List[dict] = []

    @property
    def time(self) -> float:
        return self.context.time

    def active_trains(self) -> List:
        return [t for t in self.network.trains if t.name not in self.failures]

    def step(self, delta: float) -> List[TrainFailure]:
        """
        Advance the simulation by one tick.

        Parameters:
        -----------
        delta : float
            Seconds elapsed since the previous tick.

        Returns:
        --------
        List[TrainFailure]
            Trains that failed during this tick; they are skipped from now on.
        """
        self.context.advance(delta)
        self.ticks += 1

        new_failures = []
        for train in self.active_trains():
            try:
                train.update(delta, self.context)
            except ContractError as e:
                failure = self._record_failure(train, e)
                new_failures.append(failure)

        return new_failures

    def _record_failure(self, train, error: ContractError) -> TrainFailure:
        failure = TrainFailure(
            time=self.time,
            train=train.name,
            line=train.line.name,
            station=train.station.name,
            state=train.state.value,
            error_type=type(error).__name__,
            message=str(error),
        )
        self.failures[train.name] = failure
        logger.exception(
            f"Train {train.name} taken out of service: line={failure.line} "
            f"station={failure.station} state={failure.state}"
        )

        # A train out of service holds no platform or track
        if train.station.is_present(train):
            train.station.leave(train)
        if train.state in TRACK_STATES and train.track is not None:
            train.track.leave(train)

        return failure

    def run(self, duration: Optional[float] = None, tick: Optional[float] = None,
            record_positions: bool = True) -> pd.DataFrame:
        """
        Run the simulation for the given duration.

        Parameters:
        -----------
        duration : Optional[float]
            Simulated seconds to run; defaults to the configured duration.
        tick : Optional[float]
            Seconds per tick; defaults to the configured tick length.
        record_positions : bool
            Whether to keep a snapshot of every train after each tick.

        Returns:
        --------
        pd.DataFrame
            One row per train per tick of this call with its position and state;
            ``positions_results`` keeps the rows of every call.
        """
        duration = self.config.duration_seconds if duration is None else duration
        tick = self.config.tick_seconds if tick is None else tick
        if tick <= 0:
            raise ValueError("tick must be positive")

        total_steps = int(round(duration / tick))
        start_time = time.time()
        logger.info(f"Starting simulation: {total_steps} ticks of {tick:.4f}s "
                    f"for {len(self.network.trains)} trains")

        first_row = len(self.positions_results)
        last_progress = -1
        for step_count in range(1, total_steps + 1):
            self.step(tick)
            if record_positions:
                self.positions_results.extend(
                    asdict(s) for s in self.train_snapshots()
                )

            progress = (step_count * 100) // total_steps
            if progress > last_progress and progress % 25 == 0:
                logger.debug(f"Simulation {progress}% complete - t={self.time:.2f}s")
                last_progress = progress

        elapsed_time = time.time() - start_time
        logger.info(f"Simulation completed in {elapsed_time:.2f} seconds "
                    f"({len(self.failures)} train failures)")

        return pd.DataFrame(self.positions_results[first_row:])

    # ----------------- observation -----------------
    def train_snapshots(self) -> list:
        return [t.snapshot(self.time, failed=t.name in self.failures) for t in self.network.trains]

    def snapshot(self) -> dict:
        """Read-only view of the whole network for renderers."""
        return {
            'time': self.time,
            'trains': self.train_snapshots(),
            'stations': [s.snapshot() for s in self.network.stations.values()],
            'tracks': [t.snapshot() for t in self.network.tracks()],
        }

    def check_invariants(self) -> List[str]:
        """
        Check the resource invariants of the network.

        Returns:
        --------
        List[str]
            A description of every violation; empty when all hold.
        """
        violations = []

        for station in self.network.stations.values():
            present = len(station.present_trains)
            if station.platforms is not None and present > station.platforms:
                violations.append(f"Station {station.name} holds {present} trains "
                                  f"on {station.platforms} platforms")
            if station.waiting_count > station.max_passengers:
                violations.append(f"Station {station.name} queues {station.waiting_count} "
                                  f"passengers (max {station.max_passengers})")

        for line in self.network.lines.values():
            for index, track in enumerate(line.tracks):
                holders = Counter(
                    track.lane_for(train.forward) for train in self.network.trains
                    if train.track is track and train.state in TRACK_STATES
                )
                if any(count > 1 for count in holders.values()):
                    violations.append(f"Track {index} of line {line.name} is held by "
                                      f"{sum(holders.values())} trains in one lane")

        for train in self.network.trains:
            if len(train.passengers) > train.max_passengers:
                violations.append(f"Train {train.name} carries {len(train.passengers)} "
                                  f"passengers (max {train.max_passengers})")
            carried = sum(p.cargo_weight for p in train.passengers)
            if carried != train.current_cargo:
                violations.append(f"Train {train.name} records {train.current_cargo} kg "
                                  f"but carries {carried} kg")
            if train.max_cargo is not None and train.current_cargo > train.max_cargo:
                violations.append(f"Train {train.name} carries {train.current_cargo} kg "
                                  f"(max {train.max_cargo})")
            if (train.kind is TrainKind.CARGO and train.state is TrainState.IN_STATION
                    and not train.station.policy.stoppable_by(train.kind)):
                violations.append(f"Cargo train {train.name} stopped at {train.station.name}")

        return violations

    def summary(self) -> dict:
        """Counters describing the run so far."""
        events = self.context.events
        return {
            'simulated_seconds': round(self.time, 6),
            'ticks': self.ticks,
            'trains': len(self.network.trains),
            'failed_trains': sorted(self.failures),
            'passengers_generated': self.context.passenger_ids.last_id,
            'boardings': len(events.passenger_events(EMBARK)),
            'alightings': len(events.passenger_events(DISEMBARK)),
            'state_changes': len(events.state_changes()),
            'waiting_passengers': sum(s.waiting_count for s in self.network.stations.values()),
            'passengers_on_trains': sum(len(t.passengers) for t in self.network.trains),
        }
