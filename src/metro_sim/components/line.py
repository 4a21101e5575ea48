"""
Line topology: an ordered run of stations joined by track segments.
"""

from typing import List, Tuple

from ..core.errors import LineIndexOutOfRangeError, LineInvalidActionError
from .track import DualTrack, Track


class Line:
    """
    An ordered sequence of distinct stations with one track between each
    consecutive pair.

    "Forward" means towards higher indices in the station ordering.
    """

    def __init__(self, name: str):
        self.name = name
        self._stations: List = []
        self._tracks: List[Track] = []
        self.frozen = False

    @property
    def stations(self) -> Tuple:
        return tuple(self._stations)

    @property
    def tracks(self) -> Tuple[Track, ...]:
        return tuple(self._tracks)

    def add_station(self, station, dual: bool = False) -> None:
        """
        Append a station to the end of the line.

        Parameters:
        -----------
        station : Station
            The station to append; it must not already be on this line.
        dual : bool
            Build a two-lane track from the previous last station.
        """
        if self.frozen:
            raise LineInvalidActionError(f"Line {self.name} is in operation and cannot be extended")
        if self.has_station(station):
            raise LineInvalidActionError(f"Station {station.name} is already on line {self.name}")

        if self._stations:
            last = self._stations[-1]
            track_cls = DualTrack if dual else Track
            self._tracks.append(track_cls(last.position, station.position, self.name))

        station.register_line(self)
        self._stations.append(station)

    def freeze(self) -> None:
        """Forbid further changes to the station sequence."""
        self.frozen = True

    def has_station(self, station) -> bool:
        return any(s is station for s in self._stations)

    def index_of(self, station) -> int:
        """Index of the station on this line (last matching occurrence)."""
        for index in range(len(self._stations) - 1, -1, -1):
            if self._stations[index] is station:
                return index
        raise LineInvalidActionError(f"Station {station.name} is not on line {self.name}")

    def next_track(self, station, forward: bool) -> Track:
        index = self.index_of(station)
        if not forward:
            index -= 1
        self._check_index(index, len(self._tracks))
        return self._tracks[index]

    def next_station(self, station, forward: bool):
        index = self.index_of(station) + (1 if forward else -1)
        self._check_index(index, len(self._stations))
        return self._stations[index]

    def _check_index(self, index: int, length: int) -> None:
        if not 0 <= index < length:
            raise LineIndexOutOfRangeError(self.name, index, length)

    def direction_between(self, start, end) -> bool:
        """
        Whether travelling from ``start`` to ``end`` means going forward.

        Raises LineInvalidActionError when both are the same station.
        """
        if start is end:
            raise LineInvalidActionError(
                f"No direction between {start.name} and itself on line {self.name}"
            )
        return self.index_of(end) > self.index_of(start)

    def start_of_line(self, station) -> bool:
        return bool(self._stations) and self._stations[0] is station

    def end_of_line(self, station) -> bool:
        return bool(self._stations) and self._stations[-1] is station

    def __len__(self) -> int:
        return len(self._stations)

    def __repr__(self) -> str:
        names = ' - '.join(s.name for s in self._stations)
        return f"Line({self.name}: {names})"
