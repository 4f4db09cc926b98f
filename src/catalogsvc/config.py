"""Configuration management for the catalog service."""

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class CatalogConfig(BaseSettings):
    """Configuration for the catalog service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy database URL (in-memory catalog when unset)",
    )

    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements issued by the catalog store",
    )

    currency_symbol: str = Field(
        default="$",
        max_length=4,
        description="Currency symbol used in discount messages",
    )

    api_host: str = Field(
        default="0.0.0.0",
        description="API host address",
    )

    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API port",
    )

    allowed_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of CORS origins",
    )

    rate_limit: str = Field(
        default="60/minute",
        description="Per-client rate limit for write and pricing endpoints",
    )

    log_level: str = Field(
        default="INFO",
        description="Root log level",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case and validate the log level name."""
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: '{v}'. "
                f"Valid: {', '.join(sorted(_LOG_LEVELS))}"
            )
        return level

    def get_allowed_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    def validate_config(self) -> None:
        """Validate configuration at startup. Raises ValueError if invalid."""
        errors = []

        if self.database_url is not None and not self.database_url.strip():
            errors.append("DATABASE_URL cannot be blank")

        if "/" not in self.rate_limit:
            errors.append("RATE_LIMIT must look like '<count>/<period>'")

        if not self.currency_symbol.strip():
            errors.append("CURRENCY_SYMBOL cannot be blank")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )


_config_instance = None


def get_config() -> CatalogConfig:
    """Get or create global configuration instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = CatalogConfig()
        _config_instance.validate_config()
        logger.info("Configuration validated successfully")
    return _config_instance


def reload_config() -> CatalogConfig:
    """Reload configuration (useful for testing)."""
    global _config_instance
    _config_instance = CatalogConfig()
    return _config_instance


def configure_logging(config: CatalogConfig, *, verbose: bool = False) -> None:
    """Apply root logging format and level."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
