import re

import pytest

from checkin.geofence import (
    GEOFENCE_RADIUS_KM,
    distance_km,
    estimate_eta_minutes,
    evaluate_geofence,
    format_distance,
    haversine_km,
)
from checkin.models import GeoPoint

BANGALORE = {"latitude": 12.9716, "longitude": 77.5946}
CHENNAI = {"latitude": 13.0827, "longitude": 80.2707}


def test_identical_points() -> None:
    result = evaluate_geofence(BANGALORE, dict(BANGALORE))
    assert result.distance_km == 0
    assert result.within_range is True
    assert result.distance_formatted == "0m"


def test_bangalore_to_chennai() -> None:
    result = evaluate_geofence(BANGALORE, CHENNAI)
    assert 280 < result.distance_km < 300
    assert result.within_range is False
    assert re.fullmatch(r"\d+\.\d{2}km", result.distance_formatted)


def test_distance_is_symmetric() -> None:
    assert distance_km(BANGALORE, CHENNAI) == distance_km(CHENNAI, BANGALORE)
    assert haversine_km(10.0, 20.0, -33.9, 151.2) == haversine_km(-33.9, 151.2, 10.0, 20.0)


def test_string_coordinates_are_coerced() -> None:
    device = {"latitude": "12.9716", "longitude": " 77.5946 "}
    result = evaluate_geofence(device, GeoPoint(latitude=12.9716, longitude=77.5946))
    assert result.distance_km == 0
    assert result.within_range is True


def test_within_radius() -> None:
    # ~44 m north
    nearby = {"latitude": 12.9720, "longitude": 77.5946}
    result = evaluate_geofence(nearby, BANGALORE)
    assert result.within_range is True
    assert result.distance_formatted.endswith("m")
    assert not result.distance_formatted.endswith("km")


def test_outside_radius() -> None:
    # ~222 m north
    result = evaluate_geofence({"latitude": 12.9736, "longitude": 77.5946}, BANGALORE)
    assert result.distance_km > GEOFENCE_RADIUS_KM
    assert result.within_range is False


def test_radius_boundary_is_inclusive() -> None:
    other = {"latitude": 12.9725, "longitude": 77.5950}
    km = distance_km(BANGALORE, other)
    assert evaluate_geofence(BANGALORE, other, radius_km=km).within_range is True


@pytest.mark.parametrize(
    "device",
    [
        {"latitude": "abc", "longitude": 77.5946},
        {"latitude": 12.9716, "longitude": None},
        {"latitude": 12.9716},
        {"latitude": "", "longitude": ""},
        {"latitude": "nan", "longitude": "77.5"},
        {"latitude": "inf", "longitude": "77.5"},
        {"latitude": True, "longitude": 77.5},
        {},
        None,
        "12.9716,77.5946",
    ],
)
def test_unusable_coordinates(device) -> None:
    result = evaluate_geofence(device, BANGALORE)
    assert result.distance_km is None
    assert result.within_range is False
    assert result.distance_formatted is None
    assert result.eta_minutes is None


def test_missing_target() -> None:
    result = evaluate_geofence(BANGALORE, None)
    assert result.distance_km is None
    assert result.within_range is False


def test_format_distance() -> None:
    assert format_distance(0.0456) == "46m"
    assert format_distance(1.0) == "1.00km"
    assert format_distance(290.1234) == "290.12km"
    assert format_distance(None) is None


def test_estimate_eta() -> None:
    assert estimate_eta_minutes(15) == 30
    assert estimate_eta_minutes(15, average_speed_kmh=60) == 15
    assert estimate_eta_minutes(None) is None


def test_unvalidated_geo_point_is_rechecked() -> None:
    bad = GeoPoint.model_construct(latitude=float("nan"), longitude=77.5)
    result = evaluate_geofence(bad, BANGALORE)
    assert result.distance_km is None
    assert result.within_range is False


def test_infinite_coordinates_do_not_raise() -> None:
    result = evaluate_geofence({"latitude": float("inf"), "longitude": 77.5}, BANGALORE)
    assert result.distance_km is None
    assert result.within_range is False
    assert haversine_km(float("inf"), 77.5, 12.9, 77.5) is None
    assert haversine_km(float("nan"), 77.5, 12.9, 77.5) is None


def test_format_distance_rounding_to_a_kilometre() -> None:
    assert format_distance(0.9996) == "1.00km"
    assert format_distance(0.9994) == "999m"
