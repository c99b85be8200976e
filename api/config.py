"""
Configuration management using pydantic-settings.

Settings come from environment variables or a local .env file. The rollup
thresholds and the proposal classification name are read once per process
and handed to DashboardRollupEngine.from_settings.
"""

from datetime import date
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROPOSAL_CLASSIFICATION_NAME = "提案（有料記事）"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: str = Field(default="development", description="Deployment environment")

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_reload: bool = Field(default=True, description="Enable hot reload")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="CORS allowed origins (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Rollup engine
    proposal_classification_name: str = Field(
        default=DEFAULT_PROPOSAL_CLASSIFICATION_NAME,
        description="Primary classification name whose articles form the propose/sell stages",
    )
    spike_stddev_multiplier: float = Field(
        default=2.0, gt=0.0, description="Stddev multiplier for daily spike detection"
    )
    above_average_multiplier: float = Field(
        default=1.5, gt=0.0, description="Mean multiplier for above-average categories"
    )

    # Development
    dev_mode: bool = Field(default=True, description="Development mode")
    testing: bool = Field(default=False, description="Testing mode")

    @field_validator("cors_origins")
    @classmethod
    def parse_cors_origins(cls, v: str) -> List[str]:
        """Parse comma-separated CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("proposal_classification_name")
    @classmethod
    def validate_proposal_name(cls, v: str) -> str:
        """Ensure the proposal classification name is not blank."""
        if not v or not v.strip():
            raise ValueError("Proposal classification name must not be empty")
        return v.strip()


def default_date_range(today: date | None = None) -> tuple[date, date]:
    """
    Default dashboard range: first day of the current month through today.

    Args:
        today: Reference date (default: date.today())

    Returns:
        (start, end) tuple
    """
    today = today or date.today()
    return today.replace(day=1), today


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()
