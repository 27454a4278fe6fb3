"""
Application configuration using Pydantic settings.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    host: str = "0.0.0.0"
    port: int = 49155
    log_level: str = "INFO"

    # Polling
    poll_interval: float = 1.0
    request_timeout: float = 5.0

    # Sessions
    max_sessions: int = 10
    session_idle_timeout: float = 30  # Seconds without a client read
    track_stale_timeout: float = 5  # Seconds since last detection
    source_stale_timeout: float = 10  # Reprocess an unchanged snapshot after this

    # Doppler smoothing
    history_size: int = 10
    doppler_smoothing_window: int = 10

    # Sources
    allow_private_networks: bool = False
    adsblol_url: str = "https://api.adsb.lol"
    adsblol_radius_nm: float = 40
    adsblol_max_radius_nm: float = 250

    # Synthetic detections
    synthetic_max_duration: float = 3600  # Seconds
    synthetic_max_frames: int = 10000
    synthetic_max_false_alarm_rate: float = 100  # Clutter detections per frame

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
