"""Application configuration with validation."""

from enum import Enum
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


_DEFAULT_JWT_SECRET = "dev-insecure-key-change-me"
_DEFAULT_MINIO_CREDENTIAL = "minioadmin"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every field can be overridden by the upper-case environment variable
    of the same name (``DATABASE_URL``, ``MINIO_ENDPOINT``, ...).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./opendesk.db",
        description="Database connection URL"
    )
    # Pool tuning applies to server databases only; SQLite ignores it.
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_timeout: int = Field(default=30)
    db_pool_recycle: int = Field(default=1800)

    # Authentication
    jwt_secret_key: str = Field(
        default=_DEFAULT_JWT_SECRET,
        description="JWT signing secret (override in production)"
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_hours: int = Field(
        default=24,
        description="Lifetime of issued bearer tokens"
    )

    rate_limit_per_minute: int = Field(
        default=120,
        description="Maximum requests per client per minute (0 disables)"
    )

    trust_proxy_headers: bool = Field(
        default=False,
        description="Key rate limits on X-Forwarded-For; enable only behind a proxy that sets it"
    )

    # Object store (S3-compatible, accessed with the MinIO SDK)
    minio_endpoint: str = Field(default="localhost")
    minio_port: int = Field(default=9000)
    minio_access_key: str = Field(default=_DEFAULT_MINIO_CREDENTIAL)
    minio_secret_key: str = Field(default=_DEFAULT_MINIO_CREDENTIAL)
    minio_use_ssl: bool = Field(default=False)
    minio_region: str = Field(
        default="us-east-1",
        description="Bucket region; set explicitly so presigning never needs a network lookup"
    )
    minio_bucket: str = Field(default="opendesk-files")
    minio_public_endpoint: str = Field(
        default="",
        description="Public base URL (e.g. https://files.example.com) used to sign browser-facing URLs"
    )
    presigned_url_expiry_seconds: int = Field(default=24 * 60 * 60)
    storage_delete_retries: int = Field(
        default=3,
        description="Attempts made for an object delete before surfacing the error"
    )

    # Export pipeline
    soffice_binary: str = Field(
        default="soffice",
        description="LibreOffice executable used for DOCX to PDF conversion"
    )
    export_timeout_seconds: int = Field(default=120)

    # Trash retention
    trash_retention_days: int = Field(
        default=30,
        description="Days a soft-deleted item stays recoverable before it is purged"
    )
    trash_sweep_interval_seconds: int = Field(
        default=6 * 60 * 60,
        description="Seconds between purge sweeps run by the worker"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    def insecure_defaults(self) -> list[str]:
        """List the security-relevant settings still at their development defaults."""
        problems: list[str] = []

        if self.jwt_secret_key == _DEFAULT_JWT_SECRET:
            problems.append(
                "JWT_SECRET_KEY is using the default insecure value. "
                "Generate a secure key: openssl rand -hex 32"
            )

        if _DEFAULT_MINIO_CREDENTIAL in (self.minio_access_key, self.minio_secret_key):
            problems.append(
                "MINIO_ACCESS_KEY / MINIO_SECRET_KEY are the MinIO defaults."
            )

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            problems.append(
                f"CORS allows localhost origins: {localhost_origins}."
            )

        return problems

    def validate_production_config(self) -> None:
        """Fail startup in production when insecure defaults are still in place.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        problems = self.insecure_defaults()
        if problems and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(problems)
            )


settings = Settings()
