"""Configuration settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_lock_ttl_seconds: int = 10

    # Room-type creation lock: "redis" or "local" (single process only)
    lock_backend: str = "redis"
    lock_wait_timeout_seconds: float = 5.0

    # Reservations
    hold_window_minutes: int = 15
    currency: str = "INR"
    default_check_in_time: str = "12:00:00"
    default_check_out_time: str = "11:00:00"

    # Payment gateway (Razorpay)
    razorpay_key_id: str = ""
    gateway_timeout_seconds: float = 10.0

    # Shared secrets for payment signatures: the API key secret signs the
    # checkout return, the webhook secret signs webhook bodies
    payment_key_secret: str = ""
    payment_webhook_secret: str = ""

    # Rate Limiting
    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: int = 60

    # Admin identities (comma-separated)
    admin_user_ids: str = ""

    # Logging
    log_level: str = "INFO"

    # Application
    app_name: str = "hotel-booking"
    environment: str = "development"

    # HTTP API
    api_host: str = "127.0.0.1"
    api_port: int = 7700

    @property
    def admin_identities(self) -> list[str]:
        """Parse admin identities from comma-separated string."""
        if not self.admin_user_ids:
            return []
        return [uid.strip() for uid in self.admin_user_ids.split(",") if uid.strip()]


def load_settings() -> Settings:
    """Load and validate settings from environment."""
    return Settings()  # type: ignore[call-arg]
