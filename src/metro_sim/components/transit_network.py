"""
Network topology container for the metro system.
Holds stations, lines and trains and loads them from CSV files.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ..core.data_models import CARGO_STATION_POLICY, PASSENGER_STATION_POLICY, TrainKind
from ..core.errors import LineInvalidActionError, NetworkConfigurationError
from .line import Line
from .station import Station
from .train import Train

logger = logging.getLogger(__name__)


class TransitNetwork:
    """
    Manages the network topology: stations, lines and the trains on them.
    """

    # Positions in network files are divided by this to fit the map
    POSITION_SCALE = 8

    # Capacity presets by train size: (passengers, cargo kg)
    TRAIN_SIZES = {
        'Big': (80, 1000),
        'Small': (10, 200),
    }

    STATION_TYPES = ('Active', 'Cargo', 'Passive')

    def __init__(self):
        """Initialize an empty network."""
        self.stations: Dict[str, Station] = {}
        self.lines: Dict[str, Line] = {}
        self.trains: List[Train] = []

    # ----------------- building -----------------
    def add_station(self, station: Station) -> Station:
        if station.name in self.stations:
            raise NetworkConfigurationError(f"Duplicate station name: {station.name}")
        self.stations[station.name] = station
        return station

    def add_line(self, name: str, stops: Iterable[Tuple[str, bool]]) -> Line:
        """
        Create a line through the named stations.

        Parameters:
        -----------
        name : str
            Unique line name.
        stops : Iterable[Tuple[str, bool]]
            Station names in line order, each with a flag telling whether
            the track leading to it is a dual track.
        """
        if name in self.lines:
            raise NetworkConfigurationError(f"Duplicate line name: {name}")

        line = Line(name)
        for station_name, dual in stops:
            station = self._station(station_name, f"line {name}")
            try:
                line.add_station(station, dual)
            except LineInvalidActionError as e:
                raise NetworkConfigurationError(str(e)) from e

        if len(line) == 0:
            raise NetworkConfigurationError(f"Line {name} has no stations")

        self.lines[name] = line
        return line

    def add_train(self, train: Train) -> Train:
        if any(t.name == train.name for t in self.trains):
            raise NetworkConfigurationError(f"Duplicate train name: {train.name}")
        if not train.line.has_station(train.station):
            raise NetworkConfigurationError(
                f"Train {train.name} starts at {train.station.name}, which is not on line {train.line.name}"
            )
        self.trains.append(train)
        return train

    def create_train(self, name: str, train_type: str, line_name: str,
                     start: str, forward: bool) -> Train:
        """
        Create and register a train from a type label such as ``BigCargo``.
        """
        size = next((s for s in self.TRAIN_SIZES if train_type.startswith(s)), None)
        if size is None or not train_type.endswith(('Cargo', 'Passenger')):
            raise NetworkConfigurationError(f"Unknown train type '{train_type}' for train {name}")

        if line_name not in self.lines:
            raise NetworkConfigurationError(f"Train {name} refers to unknown line {line_name}")
        line = self.lines[line_name]
        station = self._station(start, f"train {name}")

        max_passengers, max_cargo = self.TRAIN_SIZES[size]
        if train_type.endswith('Cargo'):
            train = Train(name, line, station, forward=forward, max_passengers=max_passengers,
                          kind=TrainKind.CARGO, max_cargo=max_cargo)
        else:
            train = Train(name, line, station, forward=forward, max_passengers=max_passengers)
        return self.add_train(train)

    def freeze(self) -> None:
        """Lock every line's station sequence before trains start running."""
        for line in self.lines.values():
            line.freeze()

    def _station(self, name: str, context: str) -> Station:
        if name not in self.stations:
            raise NetworkConfigurationError(f"Unknown station '{name}' referenced by {context}")
        return self.stations[name]

    # ----------------- loading -----------------
    def load_network_data(self, stations_file: str, lines_file: str, trains_file: str) -> 'TransitNetwork':
        """
        Load stations, lines and trains from CSV files.

        Parameters:
        -----------
        stations_file : str
            CSV with columns name, type, x, y, max_passengers.
        lines_file : str
            CSV with columns line, station, double (rows in line order).
        trains_file : str
            CSV with columns name, type, line, start, forward.

        Raises:
        -------
        NetworkConfigurationError
            If a file is missing columns or references unknown entities.
        """
        stations_df = self._read_csv(stations_file, ['name', 'type', 'x', 'y'])
        lines_df = self._read_csv(lines_file, ['line', 'station'])
        trains_df = self._read_csv(trains_file, ['name', 'type', 'line', 'start', 'forward'])

        self._process_stations(stations_df, stations_file)
        self._process_lines(lines_df)
        self._process_trains(trains_df)

        logger.info(f"Loaded {len(self.stations)} stations, {len(self.lines)} lines "
                    f"and {len(self.trains)} trains")
        return self

    @staticmethod
    def _read_csv(filepath: str, required_columns: List[str]) -> pd.DataFrame:
        try:
            df = pd.read_csv(filepath, skipinitialspace=True)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise NetworkConfigurationError(f"Cannot read network file: {e}", source=filepath) from e

        for col in required_columns:
            if col not in df.columns:
                raise NetworkConfigurationError(f"Required column '{col}' not found in CSV.", source=filepath)
        return df

    def _process_stations(self, df: pd.DataFrame, source: str) -> None:
        for _, row in df.iterrows():
            name = str(row['name']).strip()
            station_type = str(row['type']).strip()
            if station_type not in self.STATION_TYPES:
                raise NetworkConfigurationError(f"Station {name} has unknown type '{station_type}'", source=source)

            position = (float(row['x']) / self.POSITION_SCALE, float(row['y']) / self.POSITION_SCALE)
            if station_type == 'Passive':
                station = Station(name, position)
            else:
                max_passengers = row.get('max_passengers')
                if pd.isna(max_passengers):
                    raise NetworkConfigurationError(f"Station {name} needs max_passengers", source=source)
                policy = CARGO_STATION_POLICY if station_type == 'Cargo' else PASSENGER_STATION_POLICY
                station = Station(name, position, max_passengers=int(max_passengers),
                                  active=True, policy=policy)
            self.add_station(station)

    def _process_lines(self, df: pd.DataFrame) -> None:
        df = df.copy()
        df['line'] = df['line'].astype(str).str.strip()
        df['station'] = df['station'].astype(str).str.strip()
        if 'double' not in df.columns:
            df['double'] = False
        df['double'] = df['double'].map(_parse_bool)

        # Preserve the order in which lines first appear
        for line_name in df['line'].unique():
            rows = df[df['line'] == line_name]
            self.add_line(line_name, zip(rows['station'], rows['double']))

    def _process_trains(self, df: pd.DataFrame) -> None:
        for _, row in df.iterrows():
            self.create_train(
                name=str(row['name']).strip(),
                train_type=str(row['type']).strip(),
                line_name=str(row['line']).strip(),
                start=str(row['start']).strip(),
                forward=_parse_bool(row['forward']),
            )

    # ----------------- queries -----------------
    def tracks(self) -> List:
        return [track for line in self.lines.values() for track in line.tracks]

    def get_train(self, name: str) -> Optional[Train]:
        return next((t for t in self.trains if t.name == name), None)


def _parse_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    if pd.isna(value):
        return False
    return bool(value)
