from datetime import UTC, date, datetime, time

import pytest
from pydantic import ValidationError

from checkin.coercion import (
    parse_time_of_day,
    parse_timestamp,
    resolve_scheduled_start,
    to_finite_number_or_none,
)
from checkin.models import GeoPoint, JobSession


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (12.5, 12.5),
        (7, 7.0),
        ("77.5946", 77.5946),
        ("  -33.9 ", -33.9),
        ("abc", None),
        ("", None),
        (None, None),
        (float("nan"), None),
        ("Infinity", None),
        (False, None),
        ([1.0], None),
    ],
)
def test_to_finite_number_or_none(value, expected) -> None:
    assert to_finite_number_or_none(value) == expected


def test_parse_timestamp_variants() -> None:
    expected = datetime(2024, 1, 10, 4, 30, tzinfo=UTC)
    assert parse_timestamp("2024-01-10T04:30:00Z") == expected
    assert parse_timestamp("2024-01-10 04:30:00") == expected
    assert parse_timestamp("2024-01-10T10:00:00+05:30") == expected
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(1704861000) is None


def test_parse_time_of_day() -> None:
    assert parse_time_of_day("10:00") == time(10, 0)
    assert parse_time_of_day("14:30:15") == time(14, 30, 15)
    assert parse_time_of_day("2024-01-10T10:00:00") is None
    assert parse_time_of_day("25:00") is None


def test_resolve_scheduled_start_uses_local_offset() -> None:
    start = resolve_scheduled_start("2024-01-10", "10:00", utc_offset_minutes=330)
    assert start == datetime(2024, 1, 10, 4, 30, tzinfo=UTC)
    assert resolve_scheduled_start(None, "10:00", utc_offset_minutes=330) is None


def test_job_session_tolerates_malformed_fields() -> None:
    session = JobSession(
        id=7,
        session_date="2024-13-45",
        start_time=930,
        approved_at="not-a-date",
        check_in_time={"at": "noon"},
        tracking_started_at="",
        auto_cancelled=None,
    )
    assert session.session_date is None
    assert session.start_time is None
    assert session.approved_at is None
    assert session.check_in_time is None
    assert session.tracking_started_at is None
    assert session.auto_cancelled is False


@pytest.mark.parametrize(
    ("value", "expected"),
    [(True, True), (1, True), ("true", True), ("yes", True), ("0", False), (0, False)],
)
def test_job_session_auto_cancelled_flag(value, expected) -> None:
    assert JobSession(id=1, auto_cancelled=value).auto_cancelled is expected


def test_job_session_from_payload() -> None:
    session = JobSession.from_payload(
        42,
        {
            "id": 999,
            "session_date": "2024-01-10T00:00:00.000000Z",
            "start_time": " 10:00:00 ",
            "approved_at": "2024-01-08T06:15:00Z",
            "job_requirement": {"latitude": "12.9"},
        },
    )
    assert session.id == 42
    assert session.session_date == date(2024, 1, 10)
    assert session.start_time == "10:00:00"
    assert session.approved_at == datetime(2024, 1, 8, 6, 15, tzinfo=UTC)


def test_geo_point_from_raw() -> None:
    point = GeoPoint.from_raw("12.9716", 77.5946)
    assert point == GeoPoint(latitude=12.9716, longitude=77.5946)
    assert GeoPoint.from_raw("", "77.5") is None
    assert GeoPoint.from_raw(0, 0) == GeoPoint(latitude=0.0, longitude=0.0)


def test_resolve_scheduled_start_naive_timestamp_is_local() -> None:
    start = resolve_scheduled_start(None, "2024-01-10T10:00:00", utc_offset_minutes=330)
    assert start == datetime(2024, 1, 10, 4, 30, tzinfo=UTC)


def test_resolve_scheduled_start_keeps_time_offset() -> None:
    start = resolve_scheduled_start("2024-01-10", "10:00:00-05:00", utc_offset_minutes=330)
    assert start == datetime(2024, 1, 10, 15, 0, tzinfo=UTC)


def test_geo_point_rejects_non_finite() -> None:
    with pytest.raises(ValidationError):
        GeoPoint(latitude="nan", longitude=77.5)
    with pytest.raises(ValidationError):
        GeoPoint(latitude=float("inf"), longitude=77.5)
