"""
Shared fixtures: small synthetic networks and deterministic travel-time providers.
"""

import pytest

from metroroute.exceptions import ProviderUnavailableError
from metroroute.network_data import build_network
from metroroute.station_index import StationIndex
from metroroute.travel_time import StraightLineProvider, TravelTimeService, clear_travel_time_cache

# 0.016 deg of longitude at this latitude is about 1.48 km
BASE_LAT = 33.70
BASE_LNG = 73.00
STEP = 0.016


def station_row(station_id, lng_offset, lat_offset=0.0, name=None):
    return {
        "station_id": station_id,
        "name": name or station_id.upper(),
        "lat": BASE_LAT + lat_offset,
        "lng": BASE_LNG + lng_offset,
    }


class CountingProvider(StraightLineProvider):
    """Straight-line provider that records every call."""

    def __init__(self):
        self.calls = []

    async def estimate(self, origin, destination, mode):
        self.calls.append((origin, destination, mode))
        return await super().estimate(origin, destination, mode)


class FailingProvider(StraightLineProvider):
    """Provider whose upstream is always down."""

    name = "failing"

    def __init__(self):
        self.calls = 0

    async def estimate(self, origin, destination, mode):
        self.calls += 1
        raise ProviderUnavailableError("upstream down")


@pytest.fixture(autouse=True)
def _reset_travel_time_cache():
    clear_travel_time_cache()
    yield
    clear_travel_time_cache()


@pytest.fixture
def provider():
    return CountingProvider()


@pytest.fixture
def failing_provider():
    return FailingProvider()


@pytest.fixture
def travel_times(provider):
    return TravelTimeService(provider, retry_delay=0)


@pytest.fixture
def failing_travel_times(failing_provider):
    return TravelTimeService(failing_provider, retry_delay=0)


@pytest.fixture
def red_line_network():
    """A - B - C on line red, about 1.48 km apart."""
    return build_network(
        [station_row("a", 0.0), station_row("b", STEP), station_row("c", 2 * STEP)],
        {"red": ["a", "b", "c"]},
    )


@pytest.fixture
def interchange_network():
    """red A - B, green B - C; B is shared by both lines."""
    return build_network(
        [station_row("a", 0.0), station_row("b", STEP), station_row("c", 2 * STEP)],
        {"red": ["a", "b"], "green": ["b", "c"]},
    )


@pytest.fixture
def island_network():
    """red A - B and blue D - E about 30 km away, never connected."""
    return build_network(
        [
            station_row("a", 0.0),
            station_row("b", STEP),
            station_row("d", 0.0, lat_offset=0.27),
            station_row("e", STEP, lat_offset=0.27),
        ],
        {"red": ["a", "b"], "blue": ["d", "e"]},
    )


@pytest.fixture
def red_index(red_line_network):
    return StationIndex(red_line_network)


@pytest.fixture
def interchange_index(interchange_network):
    return StationIndex(interchange_network)


@pytest.fixture
def island_index(island_network):
    return StationIndex(island_network)
