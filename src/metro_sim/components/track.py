"""
Track segments between consecutive stations of a line.
"""

from typing import Dict, Optional, Tuple

from ..core.data_models import TrackSnapshot
from ..core.errors import TrackFullError

Point = Tuple[float, float]


class Track:
    """
    A single-occupancy segment: at most one train, whatever its direction.

    Occupancy is kept per lane. A plain track has one shared lane; a
    ``DualTrack`` has one lane per direction of travel.
    """

    dual = False

    def __init__(self, start: Point, end: Point, line_name: str = ''):
        """
        Initialize a track.

        Parameters:
        -----------
        start : Tuple[float, float]
            Position of the station the segment starts from.
        end : Tuple[float, float]
            Position of the station the segment leads to.
        line_name : str
            Name of the line owning this segment.
        """
        self.start = start
        self.end = end
        self.line_name = line_name
        self._occupied: Dict[Optional[bool], bool] = {lane: False for lane in self.lanes()}

    def lanes(self) -> Tuple[Optional[bool], ...]:
        return (None,)

    def lane_for(self, forward: bool) -> Optional[bool]:
        return None

    def can_enter(self, train) -> bool:
        return not self._occupied[self.lane_for(train.forward)]

    def enter(self, train) -> None:
        if not self.can_enter(train):
            raise TrackFullError(f"{self} is occupied; {train.name} cannot enter")
        self._occupied[self.lane_for(train.forward)] = True

    def leave(self, train) -> None:
        self._occupied[self.lane_for(train.forward)] = False

    def occupancy(self, forward: bool) -> int:
        """Number of trains holding the lane used by the given direction."""
        return int(self._occupied[self.lane_for(forward)])

    @property
    def occupied(self) -> bool:
        return any(self._occupied.values())

    def snapshot(self) -> TrackSnapshot:
        return TrackSnapshot(
            line=self.line_name,
            start=self.start,
            end=self.end,
            dual=self.dual,
            forward_occupied=bool(self.occupancy(True)),
            backward_occupied=bool(self.occupancy(False)),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.line_name}: {self.start} -> {self.end})"


class DualTrack(Track):
    """
    A segment with one lane per direction.

    Forward and backward trains never contend with each other.
    """

    dual = True

    def lanes(self) -> Tuple[Optional[bool], ...]:
        return (True, False)

    def lane_for(self, forward: bool) -> Optional[bool]:
        return bool(forward)
