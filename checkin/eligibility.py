"""
Tracking-window classification and check-in gating for job sessions.

A doctor may start live tracking from one hour before the scheduled start.
If tracking has not started by the auto-cancel deadline the backend cancels
the session; this module only reads the resulting ``auto_cancelled`` flag.

Status is recomputed from the snapshot and ``now`` on every call:

    no_session -> too_early -> active -> started
                               active -> expired

``started`` and ``expired`` are terminal. Nothing here raises for missing
or malformed session fields.
"""

import math
from datetime import datetime, timedelta
from typing import Any

from checkin.coercion import ensure_aware, resolve_scheduled_start
from checkin.config import Settings
from checkin.geofence import evaluate_geofence
from checkin.models import (
    CheckInBlocker,
    Eligibility,
    JobSession,
    TrackingWindow,
    TrackingWindowStatus,
    WorkProgress,
)


def _ceil_minutes(delta: timedelta) -> int:
    return max(0, math.ceil(delta.total_seconds() / 60))


def format_countdown(delta: timedelta) -> str:
    """Render a positive delta as "Xh Ym" or "Xm", rounding up to the minute."""
    minutes = _ceil_minutes(delta)
    hours, rest = divmod(minutes, 60)
    if hours:
        return f"{hours}h {rest}m"
    return f"{rest}m"


def format_clock(seconds: int) -> str:
    hours, rest = divmod(max(0, seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def evaluate_tracking_window(
    session: JobSession | None,
    now: datetime,
    *,
    auto_cancel_minutes_after_window_start: int,
    tracking_lead_minutes: int = 60,
    warning_threshold_minutes: int = 10,
    utc_offset_minutes: int = 330,
) -> TrackingWindow:
    if session is None:
        return TrackingWindow(status=TrackingWindowStatus.NO_SESSION)

    now = ensure_aware(now, utc_offset_minutes)
    scheduled_start = resolve_scheduled_start(
        session.session_date, session.start_time, utc_offset_minutes
    )

    window_start = window_end = None
    if scheduled_start is not None:
        window_start = scheduled_start - timedelta(minutes=tracking_lead_minutes)
        window_end = window_start + timedelta(
            minutes=auto_cancel_minutes_after_window_start
        )

    # Flags decide the terminal states even when the schedule is unreadable
    if session.tracking_started_at is not None:
        return TrackingWindow(
            status=TrackingWindowStatus.STARTED,
            tracking_window_start=window_start,
            tracking_window_end=window_end,
        )

    if session.auto_cancelled or (window_end is not None and now > window_end):
        return TrackingWindow(
            status=TrackingWindowStatus.EXPIRED,
            tracking_window_start=window_start,
            tracking_window_end=window_end,
            minutes_until_cancellation=0 if window_end is not None else None,
        )

    if window_start is None or window_end is None:
        return TrackingWindow(status=TrackingWindowStatus.NO_SESSION)

    if now < window_start:
        return TrackingWindow(
            status=TrackingWindowStatus.TOO_EARLY,
            tracking_window_start=window_start,
            tracking_window_end=window_end,
            time_until_tracking_formatted=format_countdown(window_start - now),
        )

    remaining = window_end - now
    minutes_left = _ceil_minutes(remaining)
    return TrackingWindow(
        status=TrackingWindowStatus.ACTIVE,
        tracking_window_start=window_start,
        tracking_window_end=window_end,
        minutes_until_cancellation=minutes_left,
        is_within_warning_period=minutes_left <= warning_threshold_minutes,
        can_start_tracking=True,
        time_remaining_formatted=format_countdown(remaining),
    )


def evaluate_window_with_settings(
    session: JobSession | None, now: datetime, settings: Settings
) -> TrackingWindow:
    return evaluate_tracking_window(
        session,
        now,
        auto_cancel_minutes_after_window_start=settings.auto_cancel_minutes_after_window_start,
        tracking_lead_minutes=settings.tracking_lead_minutes,
        warning_threshold_minutes=settings.warning_threshold_minutes,
        utc_offset_minutes=settings.utc_offset_minutes,
    )


def _check_in_blocker(
    session: JobSession | None, window: TrackingWindow, within_range: bool, has_distance: bool
) -> CheckInBlocker | None:
    if session is None or window.status == TrackingWindowStatus.NO_SESSION:
        return CheckInBlocker.NO_SESSION
    if session.check_in_time is not None:
        return CheckInBlocker.ALREADY_CHECKED_IN
    if session.approved_at is None:
        return CheckInBlocker.NOT_APPROVED
    if window.status == TrackingWindowStatus.EXPIRED:
        return CheckInBlocker.WINDOW_EXPIRED
    if window.status == TrackingWindowStatus.TOO_EARLY:
        return CheckInBlocker.TOO_EARLY
    if not has_distance:
        return CheckInBlocker.LOCATION_UNAVAILABLE
    if not within_range:
        return CheckInBlocker.TOO_FAR
    return None


def evaluate_eligibility(
    session: JobSession | None,
    now: datetime,
    device_location: Any,
    target_location: Any,
    settings: Settings,
) -> Eligibility:
    """Combine the tracking window with the geofence verdict for one session."""
    window = evaluate_window_with_settings(session, now, settings)
    geofence = evaluate_geofence(
        device_location,
        target_location,
        radius_km=settings.geofence_radius_km,
        average_speed_kmh=settings.average_speed_kmh,
    )

    is_checked_in = session is not None and session.check_in_time is not None
    needs_check_in = (
        session is not None and session.approved_at is not None and not is_checked_in
    )
    blocker = _check_in_blocker(
        session, window, geofence.within_range, geofence.distance_km is not None
    )

    return Eligibility(
        session_id=session.id if session is not None else None,
        window=window,
        geofence=geofence,
        is_checked_in=is_checked_in,
        needs_check_in=needs_check_in,
        can_start_tracking=window.can_start_tracking,
        can_check_in=needs_check_in and blocker is None,
        blocker=blocker,
    )


def evaluate_work_progress(
    session: JobSession | None,
    now: datetime,
    duration_hours: float = 2.0,
    utc_offset_minutes: int = 330,
) -> WorkProgress | None:
    """Elapsed and remaining time of a checked-in session, capped at its duration."""
    if session is None or session.check_in_time is None:
        return None

    now = ensure_aware(now, utc_offset_minutes)
    duration = int(duration_hours * 3600)
    elapsed = int((now - session.check_in_time).total_seconds())
    elapsed = min(max(0, elapsed), duration)
    remaining = duration - elapsed

    return WorkProgress(
        elapsed_seconds=elapsed,
        remaining_seconds=remaining,
        progress_percent=round(elapsed / duration * 100, 2) if duration else 100.0,
        elapsed_formatted=format_clock(elapsed),
        remaining_formatted=format_clock(remaining),
        is_complete=elapsed >= duration,
    )
