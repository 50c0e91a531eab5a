"""
Typed records for session snapshots, locations and derived check-in state.
"""

from collections.abc import Mapping
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from checkin.coercion import (
    parse_date,
    parse_timestamp,
    to_finite_number_or_none,
)


class TrackingWindowStatus(StrEnum):
    NO_SESSION = "no_session"
    TOO_EARLY = "too_early"  # window opens 1h before shift start
    ACTIVE = "active"
    STARTED = "started"  # terminal
    EXPIRED = "expired"  # terminal


class CheckInBlocker(StrEnum):
    NO_SESSION = "no_session"
    NOT_APPROVED = "not_approved"
    ALREADY_CHECKED_IN = "already_checked_in"
    WINDOW_EXPIRED = "window_expired"
    TOO_EARLY = "too_early"
    LOCATION_UNAVAILABLE = "location_unavailable"
    TOO_FAR = "too_far"


class JobSession(BaseModel):
    """
    Read-only snapshot of a backend job session.

    Field names follow the backend payload. Malformed values are dropped
    to None instead of failing validation.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    session_date: date | None = None
    start_time: str | None = None  # "HH:MM[:SS]" or a full timestamp
    end_time: str | None = None
    approved_at: datetime | None = None
    check_in_time: datetime | None = None
    tracking_started_at: datetime | None = None
    auto_cancelled: bool = False

    @field_validator(
        "approved_at", "check_in_time", "tracking_started_at", mode="before"
    )
    @classmethod
    def _lenient_timestamp(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("session_date", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> date | None:
        return parse_date(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _lenient_time(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, datetime):
            return value.isoformat()
        return None

    @field_validator("auto_cancelled", mode="before")
    @classmethod
    def _lenient_flag(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "t", "yes", "y")
        if isinstance(value, bool | int):
            return bool(value)
        return False

    @classmethod
    def from_payload(cls, session_id: int, payload: Mapping[str, Any]) -> "JobSession":
        """Build a snapshot from a raw API payload under a known id."""
        return cls(**{**dict(payload), "id": session_id})


class GeoPoint(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    latitude: float
    longitude: float

    @classmethod
    def from_raw(cls, latitude: Any, longitude: Any) -> "GeoPoint | None":
        """Coerce string or numeric coordinates; None if either is unusable."""
        lat = to_finite_number_or_none(latitude)
        lng = to_finite_number_or_none(longitude)
        if lat is None or lng is None:
            return None
        return cls(latitude=lat, longitude=lng)

    @classmethod
    def from_mapping(cls, data: Any) -> "GeoPoint | None":
        if isinstance(data, GeoPoint):
            # model_construct skips validation
            return cls.from_raw(data.latitude, data.longitude)
        if not isinstance(data, Mapping):
            return None
        return cls.from_raw(data.get("latitude"), data.get("longitude"))


class DeviceLocation(BaseModel):
    """Request body for a device position; either coordinate may be missing."""

    latitude: Any = None
    longitude: Any = None


class TrackingWindow(BaseModel):
    status: TrackingWindowStatus
    tracking_window_start: datetime | None = None
    tracking_window_end: datetime | None = None
    minutes_until_cancellation: int | None = None
    is_within_warning_period: bool = False
    can_start_tracking: bool = False
    time_until_tracking_formatted: str | None = None
    time_remaining_formatted: str | None = None


class GeofenceResult(BaseModel):
    distance_km: float | None = None
    within_range: bool = False
    distance_formatted: str | None = None
    eta_minutes: int | None = None


class Eligibility(BaseModel):
    session_id: int | None = None
    window: TrackingWindow
    geofence: GeofenceResult
    is_checked_in: bool = False
    needs_check_in: bool = False
    can_start_tracking: bool = False
    can_check_in: bool = False
    blocker: CheckInBlocker | None = None


class WorkProgress(BaseModel):
    elapsed_seconds: int
    remaining_seconds: int
    progress_percent: float
    elapsed_formatted: str  # HH:MM:SS
    remaining_formatted: str
    is_complete: bool
