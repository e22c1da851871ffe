# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Configuration management using Pydantic Settings."""

from beartype import beartype
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with immutable configuration."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        frozen=True,  # Immutable settings
        validate_default=True,
        extra="forbid",
    )

    # API Configuration
    app_name: str = Field(
        default="Ratebook Rating Engine",
        description="Application name",
        min_length=1,
    )
    api_host: str = Field(
        default="0.0.0.0",  # nosec B104 - Binding to all interfaces is needed for containerized deployment
        description="API host to bind to",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API port to bind to",
    )
    api_env: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="API environment",
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Root log level",
    )

    # Computation offload
    offload_mode: str = Field(
        default="process",
        pattern="^(process|thread)$",
        description="Executor kind used to run rating computations off the caller's thread",
    )
    offload_max_workers: int = Field(
        default=2,
        ge=1,
        le=64,
        description="Maximum concurrent rating workers",
    )
    offload_request_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Per-request wait limit; in-flight work is discarded, not cancelled",
    )
    slow_calculation_ms: int = Field(
        default=50,
        ge=1,
        description="Calculations slower than this are logged as warnings",
    )

    # Queue worker
    broker_url: str = Field(
        default="redis://localhost:6379/0",
        description="Celery broker URL",
        min_length=1,
    )
    result_backend_url: str = Field(
        default="redis://localhost:6379/0",
        description="Celery result backend URL",
        min_length=1,
    )

    @field_validator("offload_max_workers")
    @classmethod
    def validate_process_workers(
        cls: type["Settings"], v: int, info: ValidationInfo
    ) -> int:
        """Keep process pools small; each worker is a full interpreter."""
        if info.data.get("offload_mode") == "process" and v > 32:
            raise ValueError(
                f"offload_max_workers ({v}) must be <= 32 when offload_mode is 'process'"
            )
        return v

    @property
    @beartype
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.api_env == "production"

    @property
    @beartype
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.api_env == "development"


_settings: Settings | None = None


@beartype
def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


@beartype
def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    global _settings
    _settings = None
