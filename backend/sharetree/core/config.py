"""Application configuration with validation."""

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every field can be overridden from the environment (case-insensitive)
    or from a ``.env`` file next to the process.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./sharetree.db",
        description="Database connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(default=5, description="Number of persistent database connections")
    db_max_overflow: int = Field(default=10, description="Extra connections allowed during traffic bursts")
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    db_pool_recycle: int = Field(default=1800, description="Seconds before a connection is recycled")

    # Folder tree
    max_subfolder_depth: int = Field(
        default=5,
        description="Folders may be nested below a root until this depth is reached"
    )
    list_page_size: int = Field(
        default=10,
        description="Default page size for folder listings"
    )

    # Object store
    storage_root: str = Field(
        default="./storage",
        description="Directory backing the local object store"
    )
    storage_key_length: int = Field(
        default=21,
        description="Length of generated storage keys"
    )
    storage_limit_gb: float = Field(
        default=10,
        description="Per-user storage quota in gigabytes (0 = unlimited)"
    )

    # Repair worker
    repair_max_retries: int = Field(
        default=3,
        description="Attempts before a repair task is marked failed"
    )
    repair_poll_interval: int = Field(
        default=10,
        description="Seconds between repair queue polls"
    )

    # Bootstrap
    bootstrap_admin_id: str = Field(
        default="",
        description="User id of a superadmin created on startup if missing (empty = disabled)"
    )
    bootstrap_admin_name: str = Field(
        default="Administrator",
        description="Display name of the bootstrap superadmin"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    @property
    def storage_limit_bytes(self) -> int:
        return int(self.storage_limit_gb * 1024 * 1024 * 1024)

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

    @field_validator('max_subfolder_depth')
    @classmethod
    def validate_max_depth(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_SUBFOLDER_DEPTH must be at least 1")
        return v

    @field_validator('storage_key_length')
    @classmethod
    def validate_key_length(cls, v: int) -> int:
        # Shorter keys make collisions plausible within one parent.
        if v < 12:
            raise ValueError("STORAGE_KEY_LENGTH must be at least 12")
        return v

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        Raises:
            ConfigurationError: If production config is unsafe.
        """
        errors: list[str] = []

        if self.database_url.startswith("sqlite"):
            errors.append(
                "DATABASE_URL points at SQLite. "
                "Row locks on move/delete are only enforced by PostgreSQL."
            )

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Production configuration is unsafe:\n  - " + "\n  - ".join(errors)
            )


# Global settings instance
settings = Settings()
