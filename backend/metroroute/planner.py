"""Route planning entry point.

resolve endpoints -> build request graph -> k shortest paths -> assemble
-> rank. Outcomes other than "ok" come back as a typed PlanResult status,
never as exceptions; only malformed input raises (InvalidInputError).
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from metroroute.config import (
    MAX_DESTINATION_WALKING_DISTANCE,
    MAX_ORIGIN_WALKING_DISTANCE,
    MAX_PATHS_TO_FIND,
    MAX_WALKING_DISTANCE,
    TRIVIAL_WALK_DISTANCE_METERS,
)
from metroroute.exceptions import InvalidInputError, NoNearbyStationError, NoRouteFoundError
from metroroute.geo import distance_meters, estimate_walking_seconds, validate_coordinate
from metroroute.graph_builder import DESTINATION_NODE, ORIGIN_NODE, Endpoint, TransitGraphBuilder
from metroroute.models import (
    Coordinate,
    Route,
    RouteRequest,
    RouteResponse,
    RouteStation,
    RoutingStatus,
    TravelMode,
)
from metroroute.path_search import k_shortest_paths
from metroroute.route_assembler import ACCESS_LABELS, assemble_route, direct_walk_route
from metroroute.scoring import rank_routes
from metroroute.station_index import StationIndex
from metroroute.travel_time import TravelTimeService

logger = logging.getLogger("metroroute.engine")


@dataclass
class PlanResult:
    status: RoutingStatus
    routes: list[Route] = field(default_factory=list)
    side: Optional[str] = None  # "origin" / "destination" when no station is nearby

    @property
    def ok(self) -> bool:
        return self.status == RoutingStatus.OK

    def raise_for_status(self) -> "PlanResult":
        if self.status == RoutingStatus.NO_NEARBY_STATION:
            raise NoNearbyStationError(f"No station within walking range of the {self.side}", side=self.side)
        if self.status == RoutingStatus.NO_ROUTE_FOUND:
            raise NoRouteFoundError()
        return self

    def to_response(self) -> RouteResponse:
        return RouteResponse(status=self.status, routes=self.routes, side=self.side)


class RoutePlanner:
    def __init__(
        self,
        index: StationIndex,
        travel_times: TravelTimeService,
        graph_builder: Optional[TransitGraphBuilder] = None,
    ):
        self.index = index
        self.travel_times = travel_times
        self.graph_builder = graph_builder or TransitGraphBuilder(index, travel_times)

    async def plan(self, request: RouteRequest) -> PlanResult:
        origin = self._resolve_endpoint(request.from_station_id, request.from_location, "origin")
        destination = self._resolve_endpoint(request.to_station_id, request.to_location, "destination")

        gap = distance_meters(origin.coordinates, destination.coordinates)
        if gap <= TRIVIAL_WALK_DISTANCE_METERS:
            logger.debug(f"Endpoints {gap:.0f} m apart, returning direct walk")
            return await self._direct_walk(origin, destination)

        origin_station = self._primary_station(origin, MAX_ORIGIN_WALKING_DISTANCE)
        if origin_station is None:
            return PlanResult(status=RoutingStatus.NO_NEARBY_STATION, side="origin")
        destination_station = self._primary_station(destination, MAX_DESTINATION_WALKING_DISTANCE)
        if destination_station is None:
            return PlanResult(status=RoutingStatus.NO_NEARBY_STATION, side="destination")

        if origin_station == destination_station:
            logger.debug(f"Both endpoints resolve to {origin_station}, returning direct walk")
            return await self._direct_walk(origin, destination)

        graph = await self.graph_builder.build_request_graph(origin, destination)
        if graph.out_degree(ORIGIN_NODE) == 0:
            return PlanResult(status=RoutingStatus.NO_NEARBY_STATION, side="origin")
        if graph.in_degree(DESTINATION_NODE) == 0:
            return PlanResult(status=RoutingStatus.NO_NEARBY_STATION, side="destination")

        paths = k_shortest_paths(graph, ORIGIN_NODE, DESTINATION_NODE, k=MAX_PATHS_TO_FIND)
        if not paths:
            logger.info(f"No path between {origin_station} and {destination_station}")
            return PlanResult(status=RoutingStatus.NO_ROUTE_FOUND)

        candidates = [
            assemble_route(path, graph, self.index, f"candidate-{i + 1}")
            for i, path in enumerate(paths)
        ]
        ranked = rank_routes(candidates)
        if not ranked:
            return PlanResult(status=RoutingStatus.NO_ROUTE_FOUND)

        routes = [r.model_copy(update={"id": f"route-{i + 1}"}) for i, r in enumerate(ranked)]
        logger.info(
            f"Planned {origin_station} -> {destination_station}: "
            f"{len(paths)} paths, {len(routes)} routes returned"
        )
        return PlanResult(status=RoutingStatus.OK, routes=routes)

    def _resolve_endpoint(
        self, station_id: Optional[str], location: Optional[Coordinate], side: str
    ) -> Endpoint:
        """Station id wins over location; raises InvalidInputError before any graph work."""
        if location is not None:
            validate_coordinate(location)

        if station_id:
            station = self.index.get_station(station_id)
            if station is None:
                raise InvalidInputError(f"Unknown {side} station: {station_id}")
            if not self.index.get_lines_for_station(station_id):
                raise InvalidInputError(f"{side.capitalize()} station {station_id} is not served by any line")
            return Endpoint(coordinates=station.coordinates, station_id=station.id)

        if location is None:
            raise InvalidInputError(f"Either a station id or a location is required for the {side}")
        return Endpoint(coordinates=location)

    def _primary_station(self, endpoint: Endpoint, envelope_meters: float) -> Optional[str]:
        if endpoint.station_id is not None:
            return endpoint.station_id
        nearest = self.index.find_nearest_stations(
            endpoint.coordinates,
            n=1,
            max_distance_km=min(envelope_meters, MAX_WALKING_DISTANCE) / 1000.0,
            include_lines=False,
            station_filter=lambda s: bool(self.index.get_lines_for_station(s.id)),
        )
        return nearest[0].station.id if nearest else None

    def _endpoint_station(self, endpoint: Endpoint, access_node: str) -> RouteStation:
        if endpoint.station_id is not None:
            station = self.index.get_station(endpoint.station_id)
            return RouteStation(id=station.id, name=station.name, coordinates=station.coordinates)
        return RouteStation(id=access_node, name=ACCESS_LABELS[access_node], coordinates=endpoint.coordinates)

    async def _direct_walk(self, origin: Endpoint, destination: Endpoint) -> PlanResult:
        straight = distance_meters(origin.coordinates, destination.coordinates)
        estimate = None
        if straight > 0:
            estimate = await self.travel_times.estimate(
                origin.coordinates, destination.coordinates, TravelMode.WALKING
            )

        if estimate is not None:
            duration, meters = estimate.duration_seconds, estimate.distance_meters
        else:
            duration, meters = estimate_walking_seconds(straight), straight

        route = direct_walk_route(
            self._endpoint_station(origin, ORIGIN_NODE),
            self._endpoint_station(destination, DESTINATION_NODE),
            duration,
            meters,
        )
        return PlanResult(status=RoutingStatus.OK, routes=[route])
