"""
Network dataset loading tests
"""

import pandas as pd
import pytest

from metroroute.exceptions import NetworkDataError
from metroroute.network_data import DEFAULT_FARE, build_network, get_fallback_network, load_network


class TestLoadNetwork:
    @pytest.fixture(scope="class")
    def network(self):
        return load_network()

    def test_loads_all_lines(self, network):
        assert not network.using_fallback
        assert set(network.lines) >= {"red", "orange", "green", "blue", "fr_1", "fr_14a"}
        assert len(network.lines) == 15

    def test_line_order_follows_stop_sequence(self, network):
        red = network.lines["red"]
        assert red.station_ids[0] == "secretariat"
        assert red.station_ids[-1] == "saddar"
        assert len(red.station_ids) == 24

    def test_line_metadata(self, network):
        red = network.lines["red"]
        assert red.name == "Red Line"
        assert red.color == "#E53E3E"
        assert red.fare == DEFAULT_FARE
        assert network.lines["fr_1"].mode == "FEEDER"

    def test_every_line_station_exists(self, network):
        for line in network.lines.values():
            for station_id in line.station_ids:
                assert station_id in network.stations

    def test_quoted_names_survive(self, network):
        assert network.stations["bharakau"].name == "Jillani, Bharakau"
        assert network.stations["cdaStop"].name == "CDA Stop, I10"

    def test_explicit_shortcuts(self, network):
        pairs = {(s.from_station, s.to_station) for s in network.shortcuts}
        assert ("pims", "pims_gate") in pairs

    def test_missing_directory_uses_fallback(self, tmp_path):
        network = load_network(str(tmp_path))
        assert network.using_fallback
        assert set(network.lines) == {"red", "orange", "green", "blue"}


class TestLoadFromCsv:
    def test_small_dataset(self, tmp_path):
        pd.DataFrame([
            {"station_id": "x", "name": "X", "lat": 33.70, "lng": 73.00},
            {"station_id": "y", "name": "Y", "lat": 33.71, "lng": 73.01},
            {"station_id": "z", "name": "Z", "lat": 33.72, "lng": 73.02},
        ]).to_csv(tmp_path / "stations.csv", index=False)
        # rows deliberately out of order
        pd.DataFrame([
            {"line_id": "fr_2", "stop_sequence": 2, "station_id": "y"},
            {"line_id": "fr_2", "stop_sequence": 1, "station_id": "x"},
            {"line_id": "fr_2", "stop_sequence": 3, "station_id": "z"},
        ]).to_csv(tmp_path / "line_stops.csv", index=False)

        network = load_network(str(tmp_path))

        line = network.lines["fr_2"]
        assert line.station_ids == ("x", "y", "z")
        assert line.name == "FR-2"
        assert line.mode == "FEEDER"
        assert network.shortcuts == ()


class TestBuildNetwork:
    def test_unknown_station_in_line(self):
        with pytest.raises(NetworkDataError):
            build_network(
                [{"station_id": "a", "name": "A", "lat": 33.7, "lng": 73.0}],
                {"red": ["a", "ghost"]},
            )

    def test_unknown_shortcut_skipped(self):
        network = build_network(
            [{"station_id": "a", "name": "A", "lat": 33.7, "lng": 73.0}],
            {"red": ["a"]},
            shortcuts=[{"from_station": "a", "to_station": "ghost", "priority": 3}],
        )
        assert network.shortcuts == ()

    def test_fallback_network_is_consistent(self):
        network = get_fallback_network()
        assert network.using_fallback
        for line in network.lines.values():
            assert all(sid in network.stations for sid in line.station_ids)
