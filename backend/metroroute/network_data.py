"""Static network dataset: stations, lines, line stops and walking shortcuts.

Primary source: CSV files under data/network (stations.csv, lines.csv,
line_stops.csv, walking_shortcuts.csv).
Fallback: hardcoded Red/Orange/Green/Blue metro core if the files are missing.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, Optional

import pandas as pd

from metroroute.config import settings
from metroroute.exceptions import NetworkDataError
from metroroute.models import Coordinate, Station, TransitLine

logger = logging.getLogger("metroroute.network")

DEFAULT_FARE = 30.0  # PKR, flat per boarding

METRO_LINE_INFO = {
    "red": {"name": "Red Line", "color": "#E53E3E", "mode": "BRT"},
    "orange": {"name": "Orange Line", "color": "#ED8936", "mode": "BRT"},
    "green": {"name": "Green Line", "color": "#38A169", "mode": "BRT"},
    "blue": {"name": "Blue Line", "color": "#3182CE", "mode": "BRT"},
}

FEEDER_COLOR = "#4FD1C5"
UNKNOWN_LINE_COLOR = "#4A5568"

METRO_STATIONS = [
    {"station_id": "secretariat", "name": "Secretariat", "lat": 33.736213104501985, "lng": 73.09159035101419},
    {"station_id": "paradeGround", "name": "Parade Ground", "lat": 33.72500523070584, "lng": 73.08471819822587},
    {"station_id": "shaheedEMillat", "name": "Shaheed-E-Millat", "lat": 33.72174068068394, "lng": 73.07877749292581},
    {"station_id": "seventhAvenue", "name": "7th Avenue", "lat": 33.718077437572234, "lng": 73.07177960456261},
    {"station_id": "stockExchange", "name": "Stock Exchange", "lat": 33.71176846947479, "lng": 73.06033196357797},
    {"station_id": "pims", "name": "PIMS", "lat": 33.705834978100135, "lng": 73.04839610641643},
    {"station_id": "pims_children_hospital", "name": "PIMS Children Hospital", "lat": 33.705411763048566, "lng": 73.05550725496231},
    {"station_id": "pims_gate", "name": "PIMS Gate", "lat": 33.70535821100434, "lng": 73.05071146519091},
    {"station_id": "kachehry", "name": "Kachehry", "lat": 33.702506917209504, "lng": 73.04205536965178},
    {"station_id": "ibnESina", "name": "Ibn-e-Sina", "lat": 33.696377646408166, "lng": 73.03860710034219},
    {"station_id": "chaman", "name": "Chaman", "lat": 33.69018093106195, "lng": 73.04354130034186},
    {"station_id": "kashmirHighway", "name": "Kashmir Highway", "lat": 33.6861871107659, "lng": 73.048283867797},
    {"station_id": "faizAhmadFaiz", "name": "Faiz Ahmad Faiz", "lat": 33.676229226018755, "lng": 73.05499703947167},
    {"station_id": "khayabanEJohar", "name": "Khayaban-e-Johar", "lat": 33.669400089439776, "lng": 73.059124979335},
    {"station_id": "potohar", "name": "Potohar", "lat": 33.66052867450109, "lng": 73.06457403868524},
    {"station_id": "ijPrincipal", "name": "IJ Principal", "lat": 33.651, "lng": 73.074},
    {"station_id": "faizabad", "name": "Faizabad", "lat": 33.66128301347426, "lng": 73.08280889714392},
    {"station_id": "shamsabad", "name": "Shamsabad", "lat": 33.65013878009155, "lng": 73.07990132597995},
    {"station_id": "sixthRoad", "name": "6th Road", "lat": 33.6433588097611, "lng": 73.0777363548161},
    {"station_id": "rehmanabad", "name": "Rehmanabad", "lat": 33.636256275776354, "lng": 73.07492419714325},
    {"station_id": "chandaniChowk", "name": "Chandani Chowk", "lat": 33.630129735354465, "lng": 73.0719579326242},
    {"station_id": "warisKhan", "name": "Waris Khan", "lat": 33.62056260504173, "lng": 73.06609199714276},
    {"station_id": "committeeChowk", "name": "Committee Chowk", "lat": 33.613116268587156, "lng": 73.06521072597887},
    {"station_id": "liaquatBagh", "name": "Liaquat Bagh", "lat": 33.60622912247219, "lng": 73.06569902597865},
    {"station_id": "marrirChowk", "name": "Marrir Chowk", "lat": 33.5995017433237, "lng": 73.06257952994271},
    {"station_id": "saddar", "name": "Saddar", "lat": 33.593644284775294, "lng": 73.05605302755386},
    {"station_id": "g10", "name": "G-10", "lat": 33.66702433588719, "lng": 73.0154890342314},
    {"station_id": "nha", "name": "NHA/G-9", "lat": 33.684, "lng": 73.0335},
    {"station_id": "policeFoundation", "name": "Police Foundation", "lat": 33.6612, "lng": 73.0027},
    {"station_id": "nust", "name": "NUST", "lat": 33.6498, "lng": 72.9873},
    {"station_id": "g13", "name": "G-13", "lat": 33.6327, "lng": 72.9642},
    {"station_id": "golraMorr", "name": "Golra Morr", "lat": 33.651, "lng": 73.065},
    {"station_id": "n5", "name": "N-5", "lat": 33.627, "lng": 72.9565},
    {"station_id": "airport", "name": "Airport", "lat": 33.55595323251649, "lng": 72.83735356830452},
    {"station_id": "g7g8", "name": "G7/G8", "lat": 33.69765640152494, "lng": 73.06192245759635},
    {"station_id": "cda", "name": "CDA", "lat": 33.70026269568505, "lng": 73.07816222598147},
    {"station_id": "aabpara", "name": "Aabpara", "lat": 33.70587017153255, "lng": 73.088788480754},
    {"station_id": "foreignOffice", "name": "Foreign Office", "lat": 33.71253396928778, "lng": 73.10147021235335},
    {"station_id": "lakeviewPark", "name": "Lakeview Park", "lat": 33.7230059572911, "lng": 73.13539361588158},
    {"station_id": "malpur", "name": "Malpur", "lat": 33.729778587260185, "lng": 73.14452185146958},
    {"station_id": "shahdara", "name": "Shahdara", "lat": 33.73476959678367, "lng": 73.15926194293299},
    {"station_id": "bharakau", "name": "Jillani, Bharakau", "lat": 33.73545330312739, "lng": 73.16534652238195},
    {"station_id": "h8Shakarparia", "name": "H-8 / Shakarparia", "lat": 33.683907271374636, "lng": 73.055678},
    {"station_id": "i8ParadeGround", "name": "I-8/Parade Ground", "lat": 33.67327094873524, "lng": 73.08056387534658},
    {"station_id": "sohan", "name": "Sohan", "lat": 33.659589883030115, "lng": 73.09080522598016},
    {"station_id": "iqbalTown", "name": "Iqbal Town", "lat": 33.645789656066505, "lng": 73.10088498639699},
    {"station_id": "kuriRoad", "name": "Kuri Road", "lat": 33.64271726797072, "lng": 73.10380327946089},
    {"station_id": "ziaMasjid", "name": "Zia Masjid", "lat": 33.63666729372628, "lng": 73.10764972498504},
    {"station_id": "khannaPul", "name": "Khanna Pul", "lat": 33.62585038147842, "lng": 73.11554358446452},
    {"station_id": "fazaia", "name": "Fazaia", "lat": 33.62094759803972, "lng": 73.11937715608676},
    {"station_id": "gangal", "name": "Gangal", "lat": 33.61244250465781, "lng": 73.12606611655178},
    {"station_id": "koralChowk", "name": "Koral Chowk", "lat": 33.603225129723704, "lng": 73.13299865331676},
    {"station_id": "gulberg", "name": "Gulberg", "lat": 33.59847373401423, "lng": 73.1380386979626},
    {"station_id": "dhokeKalaKhan", "name": "Dhoke Kala Khan", "lat": 33.649770494504395, "lng": 73.0977740685629},
]

METRO_LINE_STOPS = {
    "red": [
        "secretariat",
        "paradeGround",
        "shaheedEMillat",
        "seventhAvenue",
        "stockExchange",
        "pims",
        "kachehry",
        "ibnESina",
        "chaman",
        "kashmirHighway",
        "faizAhmadFaiz",
        "khayabanEJohar",
        "potohar",
        "ijPrincipal",
        "faizabad",
        "shamsabad",
        "sixthRoad",
        "rehmanabad",
        "chandaniChowk",
        "warisKhan",
        "committeeChowk",
        "liaquatBagh",
        "marrirChowk",
        "saddar",
    ],
    "orange": [
        "faizAhmadFaiz",
        "g10",
        "nha",
        "policeFoundation",
        "nust",
        "g13",
        "golraMorr",
        "n5",
        "airport",
    ],
    "green": [
        "pims_gate",
        "pims_children_hospital",
        "g7g8",
        "cda",
        "aabpara",
        "foreignOffice",
        "lakeviewPark",
        "malpur",
        "shahdara",
        "bharakau",
    ],
    "blue": [
        "pims_gate",
        "pims_children_hospital",
        "g7g8",
        "h8Shakarparia",
        "i8ParadeGround",
        "sohan",
        "dhokeKalaKhan",
        "iqbalTown",
        "kuriRoad",
        "ziaMasjid",
        "khannaPul",
        "fazaia",
        "gangal",
        "koralChowk",
        "gulberg",
    ],
}

METRO_WALKING_SHORTCUTS = [
    {"from_station": "pims", "to_station": "pims_gate", "priority": 8},
]


@dataclass(frozen=True)
class WalkingShortcut:
    from_station: str
    to_station: str
    priority: int = 0


@dataclass(frozen=True)
class TransitNetwork:
    stations: dict[str, Station]
    lines: dict[str, TransitLine]
    shortcuts: tuple[WalkingShortcut, ...] = field(default_factory=tuple)
    using_fallback: bool = False


def _default_line_info(line_id: str) -> dict:
    if line_id in METRO_LINE_INFO:
        return METRO_LINE_INFO[line_id]
    if line_id.startswith("fr_"):
        return {"name": line_id.replace("_", "-").upper(), "color": FEEDER_COLOR, "mode": "FEEDER"}
    return {"name": line_id, "color": UNKNOWN_LINE_COLOR, "mode": "BRT"}


def build_network(
    stations: Iterable[dict],
    line_stops: dict[str, list[str]],
    line_info: Optional[dict[str, dict]] = None,
    shortcuts: Iterable[dict] = (),
    using_fallback: bool = False,
) -> TransitNetwork:
    """Assemble an immutable network from plain rows.

    stations: [{station_id, name, lat, lng}]
    line_stops: line_id -> ordered station ids
    line_info: line_id -> {name, color, mode, fare}
    """
    line_info = line_info or {}

    station_map: dict[str, Station] = {}
    for row in stations:
        station_id = str(row["station_id"])
        station_map[station_id] = Station(
            id=station_id,
            name=str(row.get("name") or station_id),
            coordinates=Coordinate(lat=float(row["lat"]), lng=float(row["lng"])),
        )

    lines: dict[str, TransitLine] = {}
    for line_id, station_ids in line_stops.items():
        unknown = [sid for sid in station_ids if sid not in station_map]
        if unknown:
            raise NetworkDataError(f"Line {line_id} references unknown stations: {unknown}")
        info = {**_default_line_info(line_id), **line_info.get(line_id, {})}
        lines[line_id] = TransitLine(
            id=line_id,
            name=info["name"],
            color=info["color"],
            mode=info.get("mode", "BRT"),
            fare=float(info.get("fare", DEFAULT_FARE)),
            station_ids=tuple(station_ids),
        )

    shortcut_list = []
    for row in shortcuts:
        shortcut = WalkingShortcut(
            from_station=str(row["from_station"]),
            to_station=str(row["to_station"]),
            priority=int(row.get("priority", 0)),
        )
        if shortcut.from_station not in station_map or shortcut.to_station not in station_map:
            logger.warning(f"Skipping walking shortcut with unknown station: {shortcut}")
            continue
        shortcut_list.append(shortcut)

    return TransitNetwork(
        stations=station_map,
        lines=lines,
        shortcuts=tuple(shortcut_list),
        using_fallback=using_fallback,
    )


def get_fallback_network() -> TransitNetwork:
    """Red/Orange/Green/Blue core network used when the CSV dataset is missing."""
    return build_network(
        METRO_STATIONS,
        METRO_LINE_STOPS,
        shortcuts=METRO_WALKING_SHORTCUTS,
        using_fallback=True,
    )


def load_network(data_dir: Optional[str] = None) -> TransitNetwork:
    """Load the network dataset from CSV files, falling back to the metro core."""
    data_dir = data_dir or settings.NETWORK_DATA_DIR

    stations_path = os.path.join(data_dir, "stations.csv")
    stops_path = os.path.join(data_dir, "line_stops.csv")
    lines_path = os.path.join(data_dir, "lines.csv")
    shortcuts_path = os.path.join(data_dir, "walking_shortcuts.csv")

    if not os.path.exists(stations_path) or not os.path.exists(stops_path):
        logger.warning(f"Network dataset not found in {data_dir}; using hardcoded metro core")
        return get_fallback_network()

    stations_df = pd.read_csv(stations_path, dtype={"station_id": str})
    stops_df = pd.read_csv(stops_path, dtype={"line_id": str, "station_id": str})
    logger.info(f"Loaded stations: {len(stations_df)} rows, line stops: {len(stops_df)} rows")

    missing = {"station_id", "name", "lat", "lng"} - set(stations_df.columns)
    if missing:
        raise NetworkDataError(f"stations.csv missing columns: {sorted(missing)}")

    line_stops: dict[str, list[str]] = {}
    # Keep line order as first seen in the file, stops ordered by stop_sequence
    for line_id, group in stops_df.groupby("line_id", sort=False):
        line_stops[str(line_id)] = group.sort_values("stop_sequence")["station_id"].astype(str).tolist()

    line_info: dict[str, dict] = {}
    if os.path.exists(lines_path):
        lines_df = pd.read_csv(lines_path, dtype={"line_id": str})
        for _, row in lines_df.iterrows():
            info = {}
            for col in ("name", "color", "mode", "fare"):
                if col in lines_df.columns and pd.notna(row.get(col)):
                    info[col] = row[col]
            line_info[str(row["line_id"])] = info

    shortcuts: list[dict] = []
    if os.path.exists(shortcuts_path):
        shortcuts_df = pd.read_csv(shortcuts_path, dtype={"from_station": str, "to_station": str})
        shortcuts = shortcuts_df.to_dict("records")

    network = build_network(
        stations_df.to_dict("records"),
        line_stops,
        line_info=line_info,
        shortcuts=shortcuts,
    )
    logger.info(
        f"Network loaded: {len(network.stations)} stations, {len(network.lines)} lines, "
        f"{len(network.shortcuts)} walking shortcuts"
    )
    return network
