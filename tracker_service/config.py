"""
Tracker Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class TrackerSettings(BaseSettings):
    """
    Job tracker configuration with validation.

    All settings can be overridden via environment variables.
    Validation happens at startup to fail fast on misconfiguration.
    """

    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # === Storage ===
    data_dir: str = Field(
        default="data",
        description="Directory holding the backing file and upload landing file"
    )
    jobs_filename: str = Field(
        default="jobs.json",
        description="Backing file name inside data_dir"
    )
    upload_landing_filename: str = Field(
        default="jobs-upload.json",
        description="Fixed file name uploads are streamed to before validation"
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        le=100 * 1024 * 1024,
        description="Upload size cap in bytes (1 KiB - 100 MiB)"
    )
    strict_records: bool = Field(
        default=False,
        description="Validate every row against the JobRecord schema"
    )

    # === CORS ===
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # === Rate limiting ===
    rate_limit_requests: int = Field(
        default=0,
        ge=0,
        le=100000,
        description="Requests allowed per caller per route per window (0 disables)"
    )
    rate_limit_window_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Sliding window length in seconds (1-3600)"
    )

    log_level: str = Field(default="INFO", description="Root log level")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("jobs_filename", "upload_landing_filename")
    @classmethod
    def validate_plain_filename(cls, v: str) -> str:
        """File names live directly inside data_dir."""
        if not v or Path(v).name != v or v in {".", ".."}:
            raise ValueError(f"Expected a plain file name, got: {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v_upper

    @model_validator(mode="after")
    def validate_distinct_files(self) -> "TrackerSettings":
        if self.jobs_filename == self.upload_landing_filename:
            raise ValueError("jobs_filename and upload_landing_filename must differ")
        return self

    @property
    def jobs_path(self) -> Path:
        """Full path of the backing file."""
        return Path(self.data_dir) / self.jobs_filename

    @property
    def upload_landing_path(self) -> Path:
        """Full path of the upload landing file."""
        return Path(self.data_dir) / self.upload_landing_filename

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def rate_limit_enabled(self) -> bool:
        return self.rate_limit_requests > 0

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration is suitable for production.

        Returns list of warning/error messages.
        """
        issues = []

        if self.is_production:
            if "*" in self.cors_origins_list:
                issues.append("WARNING: CORS_ORIGINS allows any origin")
            if not self.rate_limit_enabled:
                issues.append("WARNING: rate limiting disabled (RATE_LIMIT_REQUESTS=0)")

        return issues

    class Config:
        env_prefix = ""  # No prefix, use exact env var names
        case_sensitive = False  # DATA_DIR = data_dir


@lru_cache()
def get_settings() -> TrackerSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached. Tests call get_settings.cache_clear()
    after changing the environment.
    """
    return TrackerSettings()


def validate_config_on_startup() -> TrackerSettings:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    logger = logging.getLogger(__name__)

    try:
        settings = get_settings()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")

    for issue in settings.validate_production_config():
        if issue.startswith("CRITICAL"):
            raise ValueError(issue)
        logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  jobs_path={settings.jobs_path}")
    logger.info(f"  max_upload_bytes={settings.max_upload_bytes}")
    logger.info(f"  strict_records={settings.strict_records}")
    logger.info(
        f"  rate_limit={settings.rate_limit_requests}/{settings.rate_limit_window_seconds}s"
        if settings.rate_limit_enabled else "  rate_limit=disabled"
    )
    return settings
