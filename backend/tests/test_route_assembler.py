"""
Route assembly tests
"""

import networkx as nx
import pytest
import pytest_asyncio

from conftest import BASE_LAT, BASE_LNG, STEP
from metroroute.exceptions import GraphInvariantError
from metroroute.graph_builder import DESTINATION_NODE, ORIGIN_NODE, Endpoint, GraphEdge, TransitGraphBuilder, add_edge
from metroroute.models import Coordinate, EdgeKind, RouteStation, TransitSegment, WalkSegment
from metroroute.path_search import make_candidate
from metroroute.route_assembler import access_recommendation, assemble_route, direct_walk_route

NEAR_A = Coordinate(lat=BASE_LAT + 0.001, lng=BASE_LNG)
NEAR_C = Coordinate(lat=BASE_LAT + 0.001, lng=BASE_LNG + 2 * STEP)


@pytest_asyncio.fixture
async def interchange_graph(interchange_index, travel_times):
    builder = TransitGraphBuilder(interchange_index, travel_times)
    return await builder.build_request_graph(Endpoint(NEAR_A), Endpoint(NEAR_C))


class TestAssembleRoute:
    @pytest.mark.asyncio
    async def test_interchange_route(self, interchange_graph, interchange_index):
        nodes = [ORIGIN_NODE, "a@red", "b@red", "b@green", "c@green", DESTINATION_NODE]
        route = assemble_route(make_candidate(interchange_graph, nodes), interchange_graph, interchange_index, "r1")

        kinds = [s.type for s in route.segments]
        assert kinds == ["walk", "transit", "transit", "walk"]

        red, green = route.segments[1], route.segments[2]
        assert [s.id for s in red.stations] == ["a", "b"]
        assert [s.id for s in green.stations] == ["b", "c"]
        assert red.line.id == "red" and red.line.color == "#E53E3E"
        assert route.transfers == 1
        assert route.total_stops == 2

        # transfer time at b is carried into the green ride
        assert red.stop_wait_time == 20
        assert green.stop_wait_time == 20 + 120
        assert green.duration == pytest.approx(red.duration + 120)

    @pytest.mark.asyncio
    async def test_totals_add_up(self, interchange_graph, interchange_index):
        nodes = [ORIGIN_NODE, "a@red", "b@red", "b@green", "c@green", DESTINATION_NODE]
        route = assemble_route(make_candidate(interchange_graph, nodes), interchange_graph, interchange_index, "r1")

        assert route.total_duration == pytest.approx(sum(s.duration for s in route.segments), abs=0.1)
        assert route.total_distance == pytest.approx(
            sum(s.distance if isinstance(s, TransitSegment) else s.walking_distance for s in route.segments),
            abs=0.1,
        )
        assert route.total_fare == 60.0
        assert all(s.fare == 30.0 for s in route.segments if isinstance(s, TransitSegment))

    @pytest.mark.asyncio
    async def test_access_recommendations(self, interchange_graph, interchange_index):
        nodes = [ORIGIN_NODE, "a@red", "b@red", "b@green", "c@green", DESTINATION_NODE]
        route = assemble_route(make_candidate(interchange_graph, nodes), interchange_graph, interchange_index, "r1")

        assert route.access.origin.type == "walk"
        assert 100 <= route.access.origin.distance <= 120
        assert "travelmode=walking" in route.access.origin.google_maps_url
        assert route.access.destination.type == "walk"

    @pytest.mark.asyncio
    async def test_same_line_edges_merge(self, red_index, travel_times):
        graph = await TransitGraphBuilder(red_index, travel_times).build_request_graph(Endpoint(NEAR_A), Endpoint(NEAR_C))
        nodes = [ORIGIN_NODE, "a@red", "b@red", "c@red", DESTINATION_NODE]
        route = assemble_route(make_candidate(graph, nodes), graph, red_index, "r1")

        rides = [s for s in route.segments if isinstance(s, TransitSegment)]
        assert len(rides) == 1
        assert [s.id for s in rides[0].stations] == ["a", "b", "c"]
        assert rides[0].stop_wait_time == 40
        assert route.total_stops == 2
        assert route.transfers == 0

    @pytest.mark.asyncio
    async def test_zero_length_access_walks_dropped(self, interchange_index, travel_times):
        a = interchange_index.get_station("a").coordinates
        c = interchange_index.get_station("c").coordinates
        graph = await TransitGraphBuilder(interchange_index, travel_times).build_request_graph(
            Endpoint(a, "a"), Endpoint(c, "c")
        )
        nodes = [ORIGIN_NODE, "a@red", "b@red", "b@green", "c@green", DESTINATION_NODE]
        route = assemble_route(make_candidate(graph, nodes), graph, interchange_index, "r1")

        assert [s.type for s in route.segments] == ["transit", "transit"]
        assert route.access.origin is None
        assert route.access.destination is None

    def test_walk_between_identical_points_dropped(self, interchange_index):
        graph = nx.DiGraph()
        b = interchange_index.get_station("b").coordinates
        graph.add_node("p", station_id="b", coordinates=b)
        graph.add_node("q", station_id="b", coordinates=b)
        graph.add_node("r", station_id="c", coordinates=interchange_index.get_station("c").coordinates)
        add_edge(graph, GraphEdge("p", "q", EdgeKind.WALK, weight=5, duration=5, is_shortcut=True))
        add_edge(graph, GraphEdge("q", "r", EdgeKind.TRANSIT, weight=100, duration=100, line_id="green"))

        route = assemble_route(make_candidate(graph, ["p", "q", "r"]), graph, interchange_index, "r1")
        assert [s.type for s in route.segments] == ["transit"]

    def test_unknown_station_fails_loudly(self, interchange_index):
        graph = nx.DiGraph()
        graph.add_node("p", station_id="ghost", coordinates=NEAR_A)
        graph.add_node("q", station_id="a", coordinates=NEAR_A)
        add_edge(graph, GraphEdge("p", "q", EdgeKind.TRANSIT, weight=1, duration=1, line_id="red"))

        with pytest.raises(GraphInvariantError):
            assemble_route(make_candidate(graph, ["p", "q"]), graph, interchange_index, "r1")

    def test_unknown_line_fails_loudly(self, interchange_index):
        graph = nx.DiGraph()
        graph.add_node("p", station_id="a", coordinates=NEAR_A)
        graph.add_node("q", station_id="b", coordinates=NEAR_A)
        add_edge(graph, GraphEdge("p", "q", EdgeKind.TRANSIT, weight=1, duration=1, line_id="purple"))

        with pytest.raises(GraphInvariantError):
            assemble_route(make_candidate(graph, ["p", "q"]), graph, interchange_index, "r1")


class TestDirectWalk:
    def test_zero_length_walk_kept(self):
        here = RouteStation(id="a", name="A", coordinates=NEAR_A)
        route = direct_walk_route(here, here, 0.0, 0.0)

        assert len(route.segments) == 1
        assert isinstance(route.segments[0], WalkSegment)
        assert route.transfers == 0
        assert route.total_stops == 0
        assert route.total_fare == 0.0

    def test_totals(self):
        start = RouteStation(id=ORIGIN_NODE, name="Origin", coordinates=NEAR_A)
        end = RouteStation(id=DESTINATION_NODE, name="Destination", coordinates=NEAR_C)
        route = direct_walk_route(start, end, 123.4, 170.0)
        assert route.total_duration == 123.4
        assert route.total_distance == 170.0


class TestAccessRecommendation:
    def test_very_close_is_omitted(self):
        assert access_recommendation(NEAR_A, Coordinate(lat=NEAR_A.lat + 0.0003, lng=NEAR_A.lng)) is None

    def test_walk(self):
        rec = access_recommendation(NEAR_A, Coordinate(lat=NEAR_A.lat + 0.003, lng=NEAR_A.lng))
        assert rec.type == "walk"
        assert rec.distance == pytest.approx(334, abs=1)

    def test_public_transport(self):
        rec = access_recommendation(NEAR_A, Coordinate(lat=NEAR_A.lat + 0.008, lng=NEAR_A.lng), outbound=False)
        assert rec.type == "public_transport"
        assert "travelmode=transit" in rec.google_maps_url
        assert rec.google_maps_url.startswith("https://www.google.com/maps/dir/?api=1")
