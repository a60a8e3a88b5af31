import os


class Settings:
    PROJECT_NAME: str = "MetroRoute API"
    VERSION: str = "0.1.0"

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Google Distance Matrix (walking/driving travel times)
    GOOGLE_MAPS_API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    DISTANCE_MATRIX_API_URL: str = os.getenv(
        "DISTANCE_MATRIX_API_URL",
        "https://maps.googleapis.com/maps/api/distancematrix/json",
    )
    TRAVEL_TIME_TIMEOUT_SECONDS: float = float(os.getenv("TRAVEL_TIME_TIMEOUT_SECONDS", 5.0))
    TRAVEL_TIME_MAX_CONCURRENCY: int = int(os.getenv("TRAVEL_TIME_MAX_CONCURRENCY", 8))
    TRAVEL_TIME_MAX_ATTEMPTS: int = int(os.getenv("TRAVEL_TIME_MAX_ATTEMPTS", 2))

    NETWORK_DATA_DIR: str = os.getenv(
        "NETWORK_DATA_DIR",
        os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "network"),
    )

    ALLOWED_ORIGINS: list[str] = os.getenv(
        "ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")

    @property
    def has_google_key(self) -> bool:
        return bool(self.GOOGLE_MAPS_API_KEY) and self.GOOGLE_MAPS_API_KEY != "your-google-maps-key-here"


settings = Settings()


# Result limits
MAX_ROUTES_TO_RETURN = 3
MAX_PATHS_TO_FIND = 5
MAX_TRANSFERS = 3
MAX_SEARCH_EXPANSIONS = 50_000

# Station lookup
NEAREST_STATION_MAX_DISTANCE_KM = 8.0
TRIVIAL_WALK_DISTANCE_METERS = 50.0

# Walking envelope (meters)
MAX_WALKING_DISTANCE = 10_000
MAX_ORIGIN_WALKING_DISTANCE = 9_000
MAX_DESTINATION_WALKING_DISTANCE = 9_000
# Provider walking results beyond this are never used as edges
PROVIDER_WALKING_CUTOFF_METERS = 4_000

# Speeds used for distance-proportional fallbacks
WALKING_SPEED_MPS = 1.4
TRANSIT_SPEED_MPS = 8.0
STOP_WAIT_TIME_SECONDS = 20

# Walking duration penalty tiers: (max distance in meters, multiplier)
WALKING_SEGMENT_PENALTIES = [
    (500, 1.0),
    (1000, 1.1),
    (1500, 1.3),
    (2000, 1.5),
    (2500, 1.8),
]
WALKING_PENALTY_CAP = 3.0

# Transfers at shared stations (seconds)
TRANSFER_TIME_BASE = 90
TRANSFER_TIME_PER_LINE = 15

# Interchange importance -> transfer cost multiplier
INTERCHANGE_MULTIPLIERS = {
    "critical": 0.2,
    "major": 0.3,
    "standard": 0.5,
    "minor": 0.8,
}
DEFAULT_INTERCHANGE_MULTIPLIER = 1.0

# Generic line-pair importance (order of the pair does not matter)
LINE_PAIR_IMPORTANCE = {
    ("red", "orange"): "critical",
    ("green", "blue"): "critical",
    ("red", "blue"): "major",
    ("red", "green"): "major",
    ("orange", "blue"): "standard",
    ("orange", "green"): "standard",
}

# Station-specific overrides: (station_id, line_a, line_b) -> importance
STATION_INTERCHANGE_IMPORTANCE = {
    ("faizAhmadFaiz", "red", "orange"): "critical",
    ("pims_gate", "green", "blue"): "critical",
    ("faizabad", "red", "fr_1"): "major",
    ("faizabad", "red", "fr_9"): "major",
    ("faizabad", "red", "fr_14"): "major",
    ("sohan", "blue", "fr_1"): "major",
    ("sohan", "blue", "fr_9"): "standard",
    ("sohan", "blue", "fr_14"): "standard",
    ("pims_gate", "green", "fr_8a"): "minor",
    ("pims_gate", "blue", "fr_8c"): "minor",
}

# Walking shortcuts between nearby stations of different lines
WALKING_SHORTCUT_MAX_DISTANCE = 800
VIRTUAL_NODE_DISTANCE_MULTIPLIER = 1.5
CLOSEST_STATION_MULTIPLIER = 2.0
DURATION_BONUS = 0.95

# Scoring
TRANSFER_WEIGHT = 0.65
WALKING_WEIGHT = 0.35
TRANSFER_PENALTIES = [0, 15, 40, 70, 100]
DURATION_MULTIPLIER = 1.4

# Deduplication
ROUTE_SIMILARITY_THRESHOLD = 0.5
SIMILARITY_WEIGHTS = {
    "line": 0.5,
    "key_station": 0.3,
    "segment_count": 0.2,
}
WALK_ONLY_SIMILARITY = 0.8  # two routes with no transit ride at all

# Access recommendations
ACCESS_WALK_THRESHOLD_METERS = 500
ACCESS_MIN_DISTANCE_METERS = 50
