"""In-memory station catalog: line membership, nearest stations, interchanges."""

import logging
from typing import Callable, Optional

from metroroute.config import NEAREST_STATION_MAX_DISTANCE_KM
from metroroute.geo import haversine, validate_coordinate
from metroroute.models import Coordinate, NearestStation, Station, TransitLine
from metroroute.network_data import TransitNetwork

logger = logging.getLogger("metroroute.stations")


class StationIndex:
    def __init__(self, network: TransitNetwork):
        self.network = network
        self._station_lines: dict[str, set[str]] = {sid: set() for sid in network.stations}
        for line in network.lines.values():
            for station_id in line.station_ids:
                self._station_lines[station_id].add(line.id)

        interchange_count = sum(1 for lines in self._station_lines.values() if len(lines) >= 2)
        logger.info(
            f"Station index built: {len(network.stations)} stations, "
            f"{len(network.lines)} lines, {interchange_count} interchanges"
        )

    @property
    def stations(self) -> dict[str, Station]:
        return self.network.stations

    @property
    def lines(self) -> dict[str, TransitLine]:
        return self.network.lines

    def has_station(self, station_id: str) -> bool:
        return station_id in self.network.stations

    def get_station(self, station_id: str) -> Optional[Station]:
        return self.network.stations.get(station_id)

    def get_line(self, line_id: str) -> Optional[TransitLine]:
        return self.network.lines.get(line_id)

    def get_lines_for_station(self, station_id: str) -> set[str]:
        return set(self._station_lines.get(station_id, ()))

    def is_interchange(self, station_id: str) -> bool:
        return len(self._station_lines.get(station_id, ())) >= 2

    def adjacent_pairs(self, line_id: str) -> list[tuple[str, str]]:
        """Consecutive (from, to) station pairs of a line in line order."""
        line = self.network.lines.get(line_id)
        if not line:
            return []
        ids = line.station_ids
        return [(ids[i], ids[i + 1]) for i in range(len(ids) - 1) if ids[i] != ids[i + 1]]

    def find_nearest_stations(
        self,
        location: Coordinate,
        n: int,
        max_distance_km: float = NEAREST_STATION_MAX_DISTANCE_KM,
        include_lines: bool = True,
        station_filter: Optional[Callable[[Station], bool]] = None,
    ) -> list[NearestStation]:
        """Nearest stations to a point, closest first, ties by station id."""
        validate_coordinate(location)
        if n <= 0:
            return []

        candidates = []
        for station in self.network.stations.values():
            if station_filter is not None and not station_filter(station):
                continue
            dist = haversine(location.lat, location.lng, station.coordinates.lat, station.coordinates.lng)
            if dist <= max_distance_km:
                candidates.append((dist, station.id, station))

        candidates.sort(key=lambda c: (c[0], c[1]))

        return [
            NearestStation(
                station=station,
                distance_km=round(dist, 6),
                lines=sorted(self._station_lines[station.id]) if include_lines else [],
            )
            for dist, _, station in candidates[:n]
        ]
