"""
Transit Store Backend - Application Configuration
===================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by the lifespan, the transit client factory and the storage factory.
When:  Loaded once at module import time.

Environment variables keep the names the service has always used:
    VAULT_ADDR, VAULT_TOKEN   transit oracle location and credentials
    SQLITE_DB_PATH            SQLite file when DATABASE_URL is not given
    PORT                      listening port for the `transit-store` entry point
"""

from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Oracle settings are optional at load time. A missing VAULT_ADDR or
    VAULT_TOKEN is reported during startup and surfaces as an encryption or
    decryption failure on first use.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Full async SQLAlchemy URL, e.g. postgresql+asyncpg://user:pw@host/db
    database_url: Optional[str] = Field(
        default=None,
        description="Async SQLAlchemy URL; overrides sqlite_db_path when set",
    )
    sqlite_db_path: str = Field(default="transit-demo.db")

    # ── Transit Oracle ────────────────────────────────────────────────────
    vault_addr: Optional[str] = Field(
        default=None,
        description="Base URL of the transit encryption service",
    )
    vault_token: Optional[SecretStr] = Field(
        default=None,
        description="Token sent in the X-Vault-Token header",
    )
    transit_timeout_seconds: float = Field(default=10.0, gt=0, le=300)

    # ── Authentication Gate ───────────────────────────────────────────────
    # Unset means the folder routes are open.
    api_token: Optional[SecretStr] = Field(default=None)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001, ge=1, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    @property
    def resolved_database_url(self) -> str:
        """DATABASE_URL if given, otherwise an aiosqlite URL for SQLITE_DB_PATH."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.sqlite_db_path}"

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that the transit oracle is configured.
        When:  Called during app startup (lifespan).
        How:   Collects every missing setting and raises one ValueError.
        """
        errors = []
        if not self.vault_addr:
            errors.append("VAULT_ADDR is not set. Point it at the transit encryption service.")
        if self.vault_token is None or not self.vault_token.get_secret_value():
            errors.append("VAULT_TOKEN is not set. Encrypt and decrypt calls will be rejected.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


settings = Settings()
