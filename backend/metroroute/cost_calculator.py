from metroroute.models import TransitLine, TransitSegment
from metroroute.network_data import DEFAULT_FARE

# Metro bus and feeder fares are flat per boarding (PKR)
WALK_FARE = 0.0


def segment_fare(line: TransitLine | None) -> float:
    """Display fare for boarding a line once."""
    if line is None:
        return DEFAULT_FARE
    return round(line.fare, 2)


def calculate_total_fare(segments: list) -> float:
    """Sum of boarding fares; walking is free."""
    total = WALK_FARE
    for segment in segments:
        if isinstance(segment, TransitSegment):
            total += segment.fare
    return round(total, 2)
