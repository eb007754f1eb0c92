"""
Great-circle distance and travel helpers for pharmacy lookups.

All functions are pure: no I/O and no shared state.
"""
from __future__ import annotations

import math
from typing import Final, Iterable, List, Optional, Sequence


EARTH_RADIUS_KM: Final[float] = 6371.0

DIRECTIONS: Final[Sequence[str]] = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")

# km/h, driving is a city average with traffic
TRAVEL_SPEEDS_KMH: Final[dict[str, float]] = {
    "walking": 5.0,
    "cycling": 15.0,
    "driving": 30.0,
}


def _validate_coordinates(lat: float, lng: float) -> None:
    """
    Raises:
        ValueError: If latitude or longitude is not a finite number in range.
    """
    for label, value, bound in (("latitude", lat, 90.0), ("longitude", lng, 180.0)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{label} must be a number")
        if not math.isfinite(value) or abs(value) > bound:
            raise ValueError(f"{label} must be between -{bound:g} and {bound:g}")


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Haversine distance between two points in kilometres, rounded to 2 decimals.

    Raises:
        ValueError: If any coordinate is invalid.
    """
    _validate_coordinates(lat1, lng1)
    _validate_coordinates(lat2, lng2)

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Floating error can push a just outside [0, 1] for antipodal points
    a = min(1.0, max(0.0, a))

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 2)


def calculate_bearing(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Initial compass bearing from the first point to the second, in [0, 360)."""
    _validate_coordinates(lat1, lng1)
    _validate_coordinates(lat2, lng2)

    d_lng = math.radians(lng2 - lng1)
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)

    y = math.sin(d_lng) * math.cos(lat2_rad)
    x = math.cos(lat1_rad) * math.sin(lat2_rad) - math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(d_lng)

    return (math.degrees(math.atan2(y, x)) + 360) % 360


def get_direction(bearing: float) -> str:
    """Bucket a bearing into one of eight 45 degree sectors centred on N, NE, E..."""
    index = int(math.floor((bearing % 360) / 45 + 0.5)) % 8
    return DIRECTIONS[index]


def format_distance(distance_km: float) -> str:
    if distance_km < 1:
        return f"{round(distance_km * 1000)}m"
    if distance_km < 10:
        return f"{round(distance_km, 1)}km"
    return f"{round(distance_km)}km"


def estimate_travel_time(distance_km: float, mode: str = "driving") -> dict:
    """
    Estimate travel time with a constant speed per transport mode.

    Unknown modes fall back to driving.

    Returns:
        Dictionary with ``minutes`` (int), ``formatted`` and ``mode``.
    """
    speed = TRAVEL_SPEEDS_KMH.get(mode, TRAVEL_SPEEDS_KMH["driving"])
    minutes = int(math.floor(distance_km / speed * 60 + 0.5))

    if minutes < 60:
        formatted = f"{minutes} min"
    else:
        hours, rest = divmod(minutes, 60)
        formatted = f"{hours}h {rest}m" if rest else f"{hours}h"

    return {"minutes": minutes, "formatted": formatted, "mode": mode}


def is_within_radius(
    point_lat: float, point_lng: float, center_lat: float, center_lng: float, radius_km: float
) -> bool:
    return calculate_distance(point_lat, point_lng, center_lat, center_lng) <= radius_km


def get_bounding_box(lat: float, lng: float, radius_km: float) -> dict:
    """Approximate north/south/east/west bounds of a circle around a point."""
    _validate_coordinates(lat, lng)
    angular = radius_km / EARTH_RADIUS_KM
    d_lat = math.degrees(angular)
    d_lng = math.degrees(math.asin(min(1.0, math.sin(angular) / math.cos(math.radians(lat)))))
    return {
        "north": lat + d_lat,
        "south": lat - d_lat,
        "east": lng + d_lng,
        "west": lng - d_lng,
    }


def sort_by_distance(lat: float, lng: float, points: Iterable[dict]) -> List[dict]:
    """Copy each point with a ``distance`` key added, nearest first."""
    with_distance = [
        {**point, "distance": calculate_distance(lat, lng, point["lat"], point["lng"])}
        for point in points
    ]
    return sorted(with_distance, key=lambda p: p["distance"])


def find_closest_point(lat: float, lng: float, points: Iterable[dict]) -> Optional[dict]:
    ordered = sort_by_distance(lat, lng, points)
    return ordered[0] if ordered else None


__all__ = [
    "EARTH_RADIUS_KM",
    "TRAVEL_SPEEDS_KMH",
    "calculate_distance",
    "calculate_bearing",
    "get_direction",
    "format_distance",
    "estimate_travel_time",
    "is_within_radius",
    "get_bounding_box",
    "sort_by_distance",
    "find_closest_point",
]
