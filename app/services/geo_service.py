"""
Geo Service - Proximity guard and nearby-area filtering
"""
import math
from typing import Iterable, List, Optional, Tuple

from app.core.config import settings
from app.core.exceptions import OutOfRangeException
from app.models.parking_area import ParkingArea

EARTH_RADIUS_M = 6371000


def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two coordinates using Haversine formula

    Returns:
        float: Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def ensure_within_area(
    latitude: float,
    longitude: float,
    area: ParkingArea,
    tolerance_m: Optional[float] = None
) -> float:
    """
    Validate a claimed location against the area's registered coordinate

    Args:
        latitude: Claimed latitude
        longitude: Claimed longitude
        area: Parking area the operation is performed in
        tolerance_m: Allowed distance, defaults to settings.GEOFENCE_TOLERANCE_M

    Returns:
        float: Distance in meters

    Raises:
        OutOfRangeException: If the distance exceeds the tolerance
    """
    if tolerance_m is None:
        tolerance_m = settings.GEOFENCE_TOLERANCE_M

    distance = haversine_distance_m(area.pa_latitude, area.pa_longitude, latitude, longitude)

    # Exactly on the radius is still inside
    if distance > tolerance_m:
        raise OutOfRangeException(
            f"Location is out of range (distance: {distance:.0f}m, allowed: {tolerance_m:.0f}m)",
            details={"distance_m": round(distance, 1), "tolerance_m": tolerance_m}
        )

    return distance


def filter_nearby(
    areas: Iterable[ParkingArea],
    latitude: float,
    longitude: float,
    radius_km: float
) -> List[Tuple[ParkingArea, float]]:
    """Keep areas within radius_km of the point, closest first, with their distance in meters"""
    radius_m = radius_km * 1000
    nearby = []
    for area in areas:
        distance = haversine_distance_m(latitude, longitude, area.pa_latitude, area.pa_longitude)
        if distance <= radius_m:
            nearby.append((area, distance))
    nearby.sort(key=lambda item: item[1])
    return nearby
