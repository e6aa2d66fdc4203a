"""Configuration settings for the election alerting service."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Background maintenance
    sweep_interval_seconds: float = 60

    # Retention of in-memory state (hours)
    cooldown_retention_hours: float = 24
    filter_retention_hours: float = 2
    event_history_retention_hours: float = 24

    # Candidate update rate limit
    minor_update_hourly_cap: int = 5
    rate_limit_window_minutes: int = 60

    # Share of subscribers routed to SMS for high priority alerts
    high_priority_sms_share: float = 0.3

    # External notification queue
    dispatcher_webhook_url: Optional[str] = None
    dispatcher_timeout_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    # Admin API Server
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    class Config:
        env_prefix = "ELECTION_ALERTS_"
        env_file = ".env"


settings = Settings()
