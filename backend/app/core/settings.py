"""Application settings and configuration management."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # App basics
    app_name: str = "Tutorial Backend"
    version: str = "1.0.0"
    environment: str = "development"  # development, staging, production
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Database
    database_url: str = "mongodb://localhost:27017/tutorial_db"
    database_name: str = "tutorial_db"
    database_connect_timeout_ms: Optional[int] = None  # driver default when unset
    database_health_timeout_ms: int = 2000
    wait_for_database: bool = False
    db_failure_exit_code: int = 1

    # Routing
    route_modules: Annotated[List[str], NoDecode] = Field(default_factory=list)

    # Body parsing
    json_body_limit: int = 100 * 1024  # 100kb

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path("data/logs")
    log_to_file: bool = False
    log_retention_days: int = 90

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Ensure the port is bindable."""
        if not 0 < v < 65536:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is a valid value."""
        if v not in ["development", "staging", "production"]:
            raise ValueError("Environment must be one of: development, staging, production")
        return v

    @field_validator("route_modules", mode="before")
    @classmethod
    def split_route_modules(cls, v: Any) -> Any:
        """Accept a JSON list or a comma-separated string."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                return json.loads(v)
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("json_body_limit")
    @classmethod
    def validate_body_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("json_body_limit must be positive")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "str_strip_whitespace": True,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get the process-wide settings instance.

    Returns:
        Settings: Cached settings loaded from the environment
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload settings from environment.

    Returns:
        Settings: Reloaded settings instance
    """
    get_settings.cache_clear()
    return get_settings()


__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
