# src/tracker_api/config/settings.py
from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Shorthands accepted for the mode selector
MODE_ALIASES = {
    "api": "api-only",
    "api_only": "api-only",
    "apionly": "api-only",
    "proxy": "ui-proxy",
    "ui": "ui-proxy",
    "ui_proxy": "ui-proxy",
    "full": "combined",
}


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from tracker_api.config.settings import get_settings
        settings = get_settings()
        mode = settings.mode
    """

    # Application Settings
    app_name: str = Field(
        default="learning-tracker",
        description="Application name"
    )

    app_version: str = Field(
        default="1.0.0",
        validation_alias=AliasChoices("app_version", "APP_VERSION", "VERSION"),
        description="Version reported by /health"
    )

    # Deployment Mode
    mode: str = Field(
        default="combined",
        validation_alias=AliasChoices("mode", "MODE", "APP_MODE"),
        description="Deployment mode: combined, api-only, or ui-proxy"
    )

    # Peer (ui-proxy mode)
    api_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the API instance a ui-proxy process forwards to"
    )

    peer_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Timeout in seconds for each call to the peer"
    )

    # Database Configuration
    database_type: str = Field(
        default="sqlite",
        validation_alias=AliasChoices("database_type", "DB_TYPE"),
        description="Store backend: sqlite or mongodb"
    )

    database_path: str = Field(
        default="learning.db",
        validation_alias=AliasChoices("database_path", "DB_NAME"),
        description="SQLite database file"
    )

    mongodb_uri: Optional[str] = Field(
        default=None,
        description="MongoDB connection string"
    )

    mongodb_database: Optional[str] = Field(
        default=None,
        description="MongoDB database name (defaults to the one in the URI)"
    )

    db_pool_size: int = Field(
        default=10,
        ge=1,
        description="Maximum concurrent database connections"
    )

    db_pool_acquire_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for a pooled connection before failing"
    )

    # Server
    host: str = Field(default="0.0.0.0")

    port: int = Field(default=3000)

    metrics_port: Optional[int] = Field(
        default=None,
        description="Serve /metrics on this port instead of the main one"
    )

    shutdown_timeout: float = Field(
        default=5.0,
        description="Seconds to wait for in-flight requests on shutdown"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_output: str = Field(
        default="console",
        description="Log destination: console or file"
    )

    log_file: str = Field(
        default="app.log",
        description="Log file used when log_output is 'file'"
    )

    @field_validator('mode', mode='before')
    @classmethod
    def normalize_mode(cls, v):
        """Normalize the mode selector. Validity is checked by the mode composer."""
        if isinstance(v, str):
            v = v.strip().lower()
            return MODE_ALIASES.get(v, v)
        return v

    @field_validator('database_type', mode='before')
    @classmethod
    def normalize_database_type(cls, v):
        """Normalize database type values."""
        if isinstance(v, str):
            v = v.strip().lower()
            return {"mongo": "mongodb", "sqlite3": "sqlite"}.get(v, v)
        return v

    @field_validator('database_type')
    @classmethod
    def validate_database_type(cls, v):
        """Validate database type is one of the supported backends."""
        valid_types = ["sqlite", "mongodb"]
        if v not in valid_types:
            raise ValueError(f"Invalid database_type: {v}. Must be one of {valid_types}")
        return v

    @field_validator('log_output')
    @classmethod
    def validate_log_output(cls, v):
        """Validate the log destination."""
        v = v.strip().lower()
        if v not in ("console", "file"):
            raise ValueError(f"Invalid log_output: {v}. Must be 'console' or 'file'")
        return v

    @field_validator('api_base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        if v:
            v = v.strip().rstrip("/")
        return v or None

    def get_environment_dict(self) -> Dict[str, Any]:
        """Get configuration as a dictionary suitable for display or subprocess env.

        Returns:
            Dictionary of environment variables
        """
        env_dict = {
            'MODE': self.mode,
            'PORT': self.port,
            'METRICS_PORT': self.metrics_port or '',
            'LOG_LEVEL': self.log_level,
            'LOG_OUTPUT': self.log_output,
        }

        if self.mode == 'ui-proxy':
            env_dict.update({
                'API_BASE_URL': self.api_base_url or '',
                'PEER_TIMEOUT': self.peer_timeout,
            })
        else:
            env_dict.update({
                'DB_TYPE': self.database_type,
                'DB_NAME': self.database_path,
                'MONGODB_URI': '***' if self.mongodb_uri else '',
                'DB_POOL_SIZE': self.db_pool_size,
            })

        return env_dict

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
