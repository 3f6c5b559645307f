"""
Configuration management for the Shift Timekeeping service
"""
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_ENVS = ("local", "staging", "prod")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Required settings
    DATABASE_URL: str = Field(..., description="Database URL (PostgreSQL in prod, SQLite for local/tests)")
    JWT_SECRET_KEY: str = Field(..., description="Secret used to verify tokens issued by the auth service")

    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Business timezone: attendance dates and shift wall-clock times are interpreted here.
    # Instants are always stored in UTC.
    BUSINESS_TZ: str = Field(default="Asia/Kolkata", description="Timezone that defines the attendance calendar day")

    # Lateness / half-day
    LATE_GRACE_MINUTES: int = Field(default=30, ge=0, description="Minutes after shift start before a clock-in is late")
    WEEKLY_LATE_WARNING_THRESHOLD: int = Field(default=3, ge=1, description="Late logins per week before a warning is shown")
    HALF_DAY_MIN_WORK_MINUTES: int = Field(default=510, ge=1, description="Net worked minutes required for a full day (8.5h)")

    # Auto-logout sweeper
    AUTO_LOGOUT_ENABLED: bool = Field(default=True, description="Default for the enableAutoLogout toggle")
    AUTO_LOGOUT_BUFFER_MINUTES: int = Field(default=90, ge=30, le=480, description="Minutes past expected logout before auto-logout")
    AUTO_LOGOUT_INTERVAL_MINUTES: int = Field(default=5, ge=1, description="Sweeper run interval")
    AUTO_LOGOUT_START_DELAY_SECONDS: int = Field(default=2, ge=0, description="Delay before the first sweep after startup")
    SCHEDULER_ENABLED: bool = Field(default=True, description="Start the background scheduler on application startup")
    LEASE_TTL_SECONDS: int = Field(default=120, ge=1, description="Lifetime of a sweeper claim on a log/session")
    LEGACY_SESSION_MAX_AGE_HOURS: int = Field(default=24, ge=1, description="Open logs older than this are legacy")

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=True)

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        if v not in APP_ENVS:
            raise ValueError(f"APP_ENV must be one of {list(APP_ENVS)}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {list(LOG_LEVELS)}")
        return level

    @field_validator("BUSINESS_TZ")
    @classmethod
    def validate_business_tz(cls, v: str) -> str:
        """BUSINESS_TZ must be a valid IANA zone name"""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"BUSINESS_TZ '{v}' is not a known timezone")
        return v

    def validate_production(self) -> None:
        """
        Stricter checks for APP_ENV=prod.

        Raises:
            ValueError: on a short JWT secret or wildcard CORS origins
        """
        if self.APP_ENV != "prod":
            return
        if len(self.JWT_SECRET_KEY) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters in production environment")
        if not self.ALLOWED_ORIGINS or self.ALLOWED_ORIGINS == "*":
            raise ValueError("ALLOWED_ORIGINS must be explicitly set (not '*') in production environment")

    def get_allowed_origins_list(self) -> List[str]:
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = Settings()
settings.validate_production()
