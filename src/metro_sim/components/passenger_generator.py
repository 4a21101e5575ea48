"""
Passenger generation policy for active stations.
"""

import logging
from typing import List

from ..core.data_models import Passenger, SimulationContext

logger = logging.getLogger(__name__)


class PassengerGenerator:
    """
    Creates waiting passengers at a station each time a train stops there.
    """

    # Upper bound on passengers created per stopping event
    MAX_GENERATED = 4

    def __init__(self, max_generated: int = MAX_GENERATED):
        """Initialize the passenger generator."""
        if max_generated < 1:
            raise ValueError("max_generated must be at least 1")
        self.max_generated = max_generated

    def generate_passengers(self, station, context: SimulationContext) -> List[Passenger]:
        """
        Generate up to ``max_generated`` passengers and queue them at the station.

        The drawn count is clamped to the room left in the station's queue.
        Generation stops early when the station has no valid destination.

        Parameters:
        -----------
        station : Station
            The active station a train has just stopped at.
        context : SimulationContext
            Supplies the random source and passenger identifiers.

        Returns:
        --------
        List[Passenger]
            The passengers appended to the waiting queue, in order.
        """
        to_generate = int(context.rng.integers(1, self.max_generated + 1))
        room_left = max(0, station.max_passengers - station.waiting_count)
        to_generate = min(to_generate, room_left)

        generated = []
        for _ in range(to_generate):
            destination = self.choose_destination(station, context)
            if destination is None:
                break

            passenger = self.generate_passenger(station, destination, context)
            station.add_waiting(passenger)
            generated.append(passenger)

        if generated:
            logger.debug(f"Generated {len(generated)} passengers at {station.name}")
        return generated

    def generate_passenger(self, station, destination, context: SimulationContext) -> Passenger:
        """Create a single passenger leaving ``station`` for ``destination``."""
        cargo_weight = station.policy.cargo_weight(context.rng)
        return Passenger(
            passenger_id=context.passenger_ids.next_id(),
            origin=station,
            destination=destination,
            cargo_weight=cargo_weight,
        )

    def valid_destinations(self, station) -> List:
        """
        Distinct stations reachable from ``station`` over any of its lines.

        Order is the line registration order, then station order on each line.
        """
        candidates = []
        seen = set()
        for line in station.lines:
            for other in line.stations:
                if id(other) in seen:
                    continue
                if station.policy.valid_destination(station, other):
                    seen.add(id(other))
                    candidates.append(other)
        return candidates

    def choose_destination(self, station, context: SimulationContext):
        candidates = self.valid_destinations(station)
        if not candidates:
            return None
        return candidates[int(context.rng.integers(len(candidates)))]
