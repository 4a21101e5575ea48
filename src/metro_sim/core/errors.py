"""
Error taxonomy for the metro simulation.

Capacity errors are expected outcomes of contention and are retried by the
train state machine. Contract errors indicate a defect in network
construction or in the state machine itself.
"""

from typing import Optional


class SimulationError(Exception):
    """Base class for every error raised by the simulation core."""


class CapacityError(SimulationError):
    """A shared resource had no room for the requester (retryable)."""


class StationFullError(CapacityError):
    """Entry attempted beyond a station's platform or queue capacity."""


class TrackFullError(CapacityError):
    """Entry attempted on an occupied track (or track direction)."""


class TrainFullError(CapacityError):
    """Embark attempted beyond a train's passenger or cargo capacity."""


class ContractError(SimulationError):
    """A caller broke the contract of a component (non-retryable)."""


class StationInvalidActionError(ContractError):
    """Stop attempted when not permitted, or leave by a train not present."""


class LineInvalidActionError(ContractError):
    """Topology query on a station not on the line, or between identical stations."""


class LineIndexOutOfRangeError(ContractError):
    """Next station/track requested past either end of a line."""

    def __init__(self, line_name: str, index: int, length: int):
        self.line_name = line_name
        self.index = index
        self.length = length
        super().__init__(
            f"Line {line_name}: index {index} is outside [0, {length})"
        )


class NetworkConfigurationError(SimulationError):
    """The network description is malformed; the whole run cannot start."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)
