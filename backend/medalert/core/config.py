"""Module: config."""

from pydantic_settings import BaseSettings

# Centralized runtime configuration loaded from environment variables.
class Settings(BaseSettings):
    # Primary SQLAlchemy connection string for the backend database.
    database_url: str = "sqlite:///./medalert.db"
    # Base URL of the notification gateway (email/sms/push/device relay).
    notify_gateway_url: str = "http://mock-notify:8003"
    # Per-request timeout for outbound notification calls.
    dispatch_timeout_seconds: float = 5.0
    # Worker threads used for fire-and-forget notification delivery.
    dispatch_workers: int = 4
    # Channels used when a user has no stored channel preference.
    default_channels: list[str] = ["email"]
    # An upcoming dose this long past its reminder is swept as missed.
    missed_grace_minutes: int = 60
    # Look-ahead window for reminder notices sent by the sweep.
    reminder_window_minutes: int = 30
    log_level: str = "INFO"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Configure pydantic-settings to also load values from local .env file.
    class Config:
        env_file = ".env"

# Global settings instance imported by app modules at runtime.
settings = Settings()
