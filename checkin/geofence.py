"""
Great-circle distance and geofence checks between a device and a job site.
"""

import math
from typing import Any

from checkin.models import GeofenceResult, GeoPoint

EARTH_RADIUS_KM = 6371.0

# Check-in is only allowed within 100 m of the hospital.
GEOFENCE_RADIUS_KM = 0.1


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float | None:
    """Distance in km between two points given in degrees, None for non-finite input."""
    if not all(math.isfinite(v) for v in (lat1, lon1, lat2, lon2)):
        return None
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Rounding can push a marginally above 1 for antipodal points
    a = min(1.0, a)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_km(device: Any, target: Any) -> float | None:
    """
    Distance between two locations, or None if either is unknown.

    Accepts GeoPoint instances, mappings with latitude/longitude keys
    (numbers or numeric strings), or None.
    """
    a = GeoPoint.from_mapping(device)
    b = GeoPoint.from_mapping(target)
    if a is None or b is None:
        return None
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def format_distance(km: float | None) -> str | None:
    if km is None:
        return None
    meters = round(km * 1000)
    if meters < 1000:
        return f"{meters}m"
    return f"{km:.2f}km"


def estimate_eta_minutes(km: float | None, average_speed_kmh: float = 30.0) -> int | None:
    if km is None or average_speed_kmh <= 0:
        return None
    return round(km / average_speed_kmh * 60)


def evaluate_geofence(
    device: Any,
    target: Any,
    radius_km: float = GEOFENCE_RADIUS_KM,
    average_speed_kmh: float = 30.0,
) -> GeofenceResult:
    km = distance_km(device, target)
    if km is None:
        return GeofenceResult(distance_km=None, within_range=False)
    return GeofenceResult(
        distance_km=km,
        within_range=km <= radius_km,
        distance_formatted=format_distance(km),
        eta_minutes=estimate_eta_minutes(km, average_speed_kmh),
    )
