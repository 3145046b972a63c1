"""
Configuration Models

Pydantic models for system configuration validation.
"""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class RetryPolicy(BaseModel):
    """Backoff settings for transient service failures.

    Total attempts made by the retry executor are ``max_retries + 1``.
    """

    max_retries: int = Field(default=3, ge=0, le=10)
    base_delay: float = Field(default=2.0, gt=0.0, le=60.0)
    multiplier: float = Field(default=2.0, ge=1.0, le=10.0)
    max_jitter: float = Field(default=0.5, ge=0.0, le=5.0)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


class RateLimiting(BaseModel):
    """Client-side throttling of generative service calls."""

    requests_per_minute: int = Field(
        default=15,
        gt=0,
        le=600,
        description="Maximum service requests issued per minute",
    )


class Timeouts(BaseModel):
    """Timeout configuration in seconds."""

    service_call: int = Field(default=60, gt=0, le=600)


class SearchConfig(BaseModel):
    """Job discovery parameters passed to the search prompt."""

    platforms: list[str] = Field(default_factory=lambda: ["LinkedIn", "Naukri"])
    default_location: str = Field(default="India")
    salary_currency: str = Field(default="INR")
    max_results: int = Field(default=10, gt=0, le=50)

    @field_validator("platforms")
    @classmethod
    def validate_platforms(cls, v: list[str]) -> list[str]:
        """Require at least one non-blank platform name."""
        cleaned = [p.strip() for p in v if p and p.strip()]
        if not cleaned:
            raise ValueError("At least one job platform must be configured")
        return cleaned


class ServiceConfig(BaseModel):
    """Generative service settings."""

    model: Optional[str] = Field(
        default=None, description="Model override (None = service default)"
    )
    lenient_not_found: bool = Field(
        default=False,
        description="Treat not-found responses as transient and retry them",
    )


class SystemParams(BaseModel):
    """System parameters configuration model."""

    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    rate_limiting: RateLimiting = Field(default_factory=RateLimiting)
    timeouts: Timeouts = Field(default_factory=Timeouts)
    search: SearchConfig = Field(default_factory=SearchConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(
        default=None, description="Also write JSON log lines to this file"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @classmethod
    def load(cls, config_path: Path | str | None = None) -> "SystemParams":
        """Load system parameters from config file.

        Args:
            config_path: Path to system_params.json (defaults to config/system_params.json)

        Returns:
            SystemParams: Validated configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config validation fails
        """
        if config_path is None:
            config_path = Path("config/system_params.json")
        else:
            config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}. "
                f"Copy {config_path.stem}.example.json to {config_path.name}"
            )

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = json.load(f)

        return cls(**config_data)
