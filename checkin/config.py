from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from checkin.geofence import GEOFENCE_RADIUS_KM


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHECKIN_", env_file=".env", extra="ignore"
    )

    # Tracking window
    tracking_lead_minutes: int = 60
    auto_cancel_minutes_after_window_start: int = 90
    warning_threshold_minutes: int = 10

    # Geofence
    geofence_radius_km: float = GEOFENCE_RADIUS_KM
    average_speed_kmh: float = 30.0

    # Session times are local to the hospital (IST by default)
    utc_offset_minutes: int = 330

    work_duration_hours: float = 2.0

    poll_interval_seconds: float = 30.0

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
