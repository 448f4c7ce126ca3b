"""
Configuration management for the Aircraft Maintenance Tracker.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = Field(default="Aircraft Maintenance Tracker", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # API
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    api_workers: int = Field(default=1, alias="API_WORKERS")

    # Database
    database_url: str = Field(
        default="sqlite:///./aircraft_maintenance.db", alias="DATABASE_URL"
    )

    # Sequential identifiers
    employee_number_start: int = Field(default=1000, alias="EMPLOYEE_NUMBER_START")
    task_id_start: int = Field(default=1, alias="TASK_ID_START")

    # Fleet
    inspection_warning_days: int = Field(
        default=7,
        alias="INSPECTION_WARNING_DAYS",
        description="Aircraft with an inspection due within this many days are flagged as due soon.",
    )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
